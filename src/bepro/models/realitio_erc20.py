"""
RealitioERC20Contract - Reality.eth oracle with ERC-20 bonds.

Answers are bytes32 on-chain.  For single-select questions the answer is
the outcome index; the all-ones word marks an invalid question.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from ..numbers import AmountLike, to_base_units, to_decimal
from ..utils import ZERO_ADDRESS
from .base import ContractWrapper
from .erc20 import ERC20Contract

QUESTION_DELIMITER = "␟"
SINGLE_SELECT_TEMPLATE_ID = 2
INVALID_ANSWER = b"\xff" * 32

QuestionId = Union[bytes, str]


def encode_question_text(
    title: str,
    outcomes: Sequence[str],
    category: str = "",
    lang: str = "en_US",
) -> str:
    """Encode a single-select question the way Reality.eth templates expect."""
    text = json.dumps(title, ensure_ascii=False)[1:-1]
    outcome_str = json.dumps(list(outcomes), ensure_ascii=False, separators=(",", ":"))[1:-1]
    return QUESTION_DELIMITER.join([text, outcome_str, category, lang or "en_US"])


def answer_to_bytes32(outcome_id: int) -> bytes:
    if outcome_id == -1:
        return INVALID_ANSWER
    if outcome_id < 0:
        raise ValueError(f"Invalid outcome id: {outcome_id}")
    return outcome_id.to_bytes(32, "big")


def bytes32_to_answer(answer: bytes) -> int:
    if answer == INVALID_ANSWER:
        return -1
    return int.from_bytes(answer, "big")


def to_question_id(question_id: QuestionId) -> bytes:
    if isinstance(question_id, str):
        raw = bytes.fromhex(question_id[2:] if question_id.startswith("0x") else question_id)
    else:
        raw = bytes(question_id)
    if len(raw) != 32:
        raise ValueError(f"Question id must be 32 bytes, got {len(raw)}")
    return raw


class RealitioERC20Contract(ContractWrapper):
    abi_name = "RealitioERC20"

    def __init__(self, connection, contract_address: Optional[str] = None, abi: Optional[list] = None) -> None:
        super().__init__(connection, contract_address, abi=abi)
        self._token: Optional[ERC20Contract] = None

    def start(self) -> None:
        super().start()
        self.get_token().start()

    def get_token(self) -> ERC20Contract:
        """Bond token, resolved from the contract on first use."""
        if self._token is None:
            self._token = ERC20Contract(self.connection, self.call_function("token"))
        return self._token

    # ---- questions ----

    def get_question(self, question_id: QuestionId) -> dict[str, Any]:
        qid = to_question_id(question_id)
        (
            content_hash,
            arbitrator,
            opening_ts,
            timeout,
            finalize_ts,
            is_pending_arbitration,
            bounty,
            best_answer,
            history_hash,
            bond,
        ) = self.call_function("questions", qid)
        decimals = self.get_token().get_decimals()
        return {
            "id": "0x" + qid.hex(),
            "content_hash": "0x" + content_hash.hex(),
            "arbitrator": arbitrator,
            "opening_ts": opening_ts,
            "timeout": timeout,
            "finalize_ts": finalize_ts,
            "is_pending_arbitration": is_pending_arbitration,
            "bounty": to_decimal(bounty, decimals),
            "best_answer": "0x" + best_answer.hex(),
            "history_hash": "0x" + history_hash.hex(),
            "bond": to_decimal(bond, decimals),
            "is_finalized": self.is_finalized(qid),
        }

    def get_question_best_answer(self, question_id: QuestionId) -> int:
        """Outcome index currently winning; -1 for invalid."""
        return bytes32_to_answer(self.call_function("getBestAnswer", to_question_id(question_id)))

    def result_for(self, question_id: QuestionId) -> int:
        """Final outcome index.  The node reverts if not finalized."""
        return bytes32_to_answer(self.call_function("resultFor", to_question_id(question_id)))

    def is_finalized(self, question_id: QuestionId) -> bool:
        return self.call_function("isFinalized", to_question_id(question_id))

    def get_bond(self, question_id: QuestionId) -> Decimal:
        return to_decimal(
            self.call_function("getBond", to_question_id(question_id)),
            self.get_token().get_decimals(),
        )

    def get_claimable_balance(self, user: Optional[str] = None) -> Decimal:
        """Withdrawable balance held by the oracle for ``user``."""
        user = user or self.connection.address
        return to_decimal(
            self.call_function("balanceOf", user), self.get_token().get_decimals()
        )

    # ---- transactions ----

    def ask_question(
        self,
        title: str,
        outcomes: Sequence[str],
        timeout: int,
        opening_ts: int = 0,
        category: str = "",
        arbitrator: str = ZERO_ADDRESS,
        bounty: AmountLike = 0,
        nonce: int = 0,
    ) -> dict:
        """
        Ask a single-select question.

        Returns:
            Result dict with ``question_id`` taken from LogNewQuestion
        """
        question = encode_question_text(title, outcomes, category)
        result = self.send_function(
            "askQuestionERC20",
            SINGLE_SELECT_TEMPLATE_ID,
            question,
            arbitrator,
            timeout,
            opening_ts,
            nonce,
            to_base_units(bounty, self.get_token().get_decimals()),
        )
        events = self.decode_events("LogNewQuestion", result.get("receipt", {}))
        if events:
            result["question_id"] = "0x" + events[0]["question_id"].hex()
        return result

    def submit_answer(self, question_id: QuestionId, outcome_id: int, amount: AmountLike) -> dict:
        """
        Answer with a bond of ``amount`` bond tokens.

        The oracle pulls the bond with transferFrom, so the caller must
        have approved at least ``amount`` to this contract.
        """
        bond = to_base_units(amount, self.get_token().get_decimals())
        return self.send_function(
            "submitAnswerERC20",
            to_question_id(question_id),
            answer_to_bytes32(outcome_id),
            0,
            bond,
        )

    def withdraw(self) -> dict:
        return self.send_function("withdraw")

    # ---- deployment ----

    def deploy(
        self,
        token_address: Optional[str] = None,
        *,
        bytecode: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> dict:
        """Deploy the oracle and, when given, set its bond token."""
        result = self.deploy_contract(bytecode=bytecode, gas_limit=gas_limit)
        if token_address:
            self.send_function("setToken", token_address)
        self._token = None
        return result
