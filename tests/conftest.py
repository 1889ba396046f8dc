"""
Shared fixtures: an in-memory JSON-RPC node behind httpx.MockTransport.

The node understands the handful of eth_* methods the SDK uses, keeps
ERC-20 balances for real, and lets tests plug in stub contracts that
answer fixed values per function signature.
"""

from __future__ import annotations

import copy
import json
import threading
from typing import Any, Callable, Optional

import httpx
import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account

from bepro import config
from bepro.connection.web3_connection import Web3Connection
from bepro.models.erc20 import ERC20Contract
from bepro.utils import keccak256

RPC_URL = "http://node.test:8545"
CHAIN_ID = 1337

# Well-known throwaway keys (documentation examples), never funded anywhere
TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
OTHER_PRIVATE_KEY = "0x" + "46" * 32

NODE_ACCOUNTS = ["0x" + "ab" * 20, "0x" + "cd" * 20]

ERC20_BYTECODE = "0x60806040aa"
STUB_BYTECODE = "0x60806040bb"

TRANSFER_TOPIC = "0x" + keccak256(b"Transfer(address,address,uint256)").hex()
APPROVAL_TOPIC = "0x" + keccak256(b"Approval(address,address,uint256)").hex()

_ENV_VARS = (
    "WEB3_HOST_PROVIDER",
    "WEB3_PRIVATE_KEY",
    "CHAIN_ID",
    "RPC_TIMEOUT",
    "BEPRO_CONTRACTS_OUT",
    "ERC20_ADDRESS",
)


def selector(signature: str) -> bytes:
    return keccak256(signature.encode("utf-8"))[:4]


def input_types(signature: str) -> list[str]:
    inner = signature[signature.index("(") + 1:-1]
    return inner.split(",") if inner else []


def topic_address(address: str) -> str:
    return "0x" + "0" * 24 + address.lower()[2:]


def topic_uint(value: int) -> str:
    return "0x" + value.to_bytes(32, "big").hex()


def hex_data(types: list[str], values: list[Any]) -> str:
    return "0x" + encode(types, values).hex()


class Revert(Exception):
    pass


class NodeError(Exception):
    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class FakeERC20:
    """Capped ERC-20 with real balance / allowance bookkeeping."""

    OUTPUTS = {
        "name()": ["string"],
        "symbol()": ["string"],
        "decimals()": ["uint8"],
        "totalSupply()": ["uint256"],
        "cap()": ["uint256"],
        "balanceOf(address)": ["uint256"],
        "allowance(address,address)": ["uint256"],
        "approve(address,uint256)": ["bool"],
        "increaseAllowance(address,uint256)": ["bool"],
        "decreaseAllowance(address,uint256)": ["bool"],
        "transfer(address,uint256)": ["bool"],
        "transferFrom(address,address,uint256)": ["bool"],
    }
    SELECTORS = {selector(sig): sig for sig in OUTPUTS}

    def __init__(self, name: str, symbol: str, cap: int, holder: str, decimals: int = 18) -> None:
        self.token_name = name
        self.token_symbol = symbol
        self.token_decimals = decimals
        self.token_cap = cap
        self.balances: dict[str, int] = {holder.lower(): cap}
        self.allowances: dict[tuple[str, str], int] = {}
        self.emitted: list[dict] = []

    @classmethod
    def from_constructor(cls, sender: str, args: bytes) -> "FakeERC20":
        name, symbol, cap, holder = decode(["string", "string", "uint256", "address"], args)
        return cls(name, symbol, cap, holder)

    def execute(self, sender: str, data: bytes, value: int) -> tuple[bytes, list[dict]]:
        signature = self.SELECTORS.get(data[:4])
        if signature is None:
            raise Revert("function selector was not recognized")
        types = input_types(signature)
        args = decode(types, data[4:]) if types else ()
        self.emitted = []
        handler = getattr(self, "fn_" + signature[: signature.index("(")])
        result = handler(sender.lower(), *args)
        return encode(self.OUTPUTS[signature], [result]), self.emitted

    # ---- views ----

    def fn_name(self, sender: str) -> str:
        return self.token_name

    def fn_symbol(self, sender: str) -> str:
        return self.token_symbol

    def fn_decimals(self, sender: str) -> int:
        return self.token_decimals

    def fn_totalSupply(self, sender: str) -> int:
        return sum(self.balances.values())

    def fn_cap(self, sender: str) -> int:
        return self.token_cap

    def fn_balanceOf(self, sender: str, owner: str) -> int:
        return self.balances.get(owner.lower(), 0)

    def fn_allowance(self, sender: str, owner: str, spender: str) -> int:
        return self.allowances.get((owner.lower(), spender.lower()), 0)

    # ---- writes ----

    def _move(self, src: str, dst: str, amount: int) -> None:
        if self.balances.get(src, 0) < amount:
            raise Revert("ERC20: transfer amount exceeds balance")
        self.balances[src] -= amount
        self.balances[dst] = self.balances.get(dst, 0) + amount
        self.emitted.append({
            "topics": [TRANSFER_TOPIC, topic_address(src), topic_address(dst)],
            "data": hex_data(["uint256"], [amount]),
        })

    def _set_allowance(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(owner, spender)] = amount
        self.emitted.append({
            "topics": [APPROVAL_TOPIC, topic_address(owner), topic_address(spender)],
            "data": hex_data(["uint256"], [amount]),
        })

    def fn_approve(self, sender: str, spender: str, amount: int) -> bool:
        self._set_allowance(sender, spender.lower(), amount)
        return True

    def fn_increaseAllowance(self, sender: str, spender: str, amount: int) -> bool:
        current = self.fn_allowance(sender, sender, spender)
        self._set_allowance(sender, spender.lower(), current + amount)
        return True

    def fn_decreaseAllowance(self, sender: str, spender: str, amount: int) -> bool:
        current = self.fn_allowance(sender, sender, spender)
        if current < amount:
            raise Revert("ERC20: decreased allowance below zero")
        self._set_allowance(sender, spender.lower(), current - amount)
        return True

    def fn_transfer(self, sender: str, to: str, amount: int) -> bool:
        self._move(sender, to.lower(), amount)
        return True

    def fn_transferFrom(self, sender: str, src: str, dst: str, amount: int) -> bool:
        src = src.lower()
        allowed = self.allowances.get((src, sender), 0)
        if allowed < amount:
            raise Revert("ERC20: insufficient allowance")
        self._move(src, dst.lower(), amount)
        self.allowances[(src, sender)] = allowed - amount
        return True


class StubContract:
    """
    Contract answering fixed values per function signature.

    Every state-changing call that reaches it is recorded in
    ``transactions`` with its decoded arguments and ETH value.
    """

    def __init__(self) -> None:
        self.responses: dict[bytes, tuple[str, list[str], list[Any], list[dict]]] = {}
        self.transactions: list[tuple[str, tuple, int, str]] = []
        self.constructor_args: bytes = b""

    def on(
        self,
        signature: str,
        output_types: Optional[list[str]] = None,
        values: Optional[list[Any]] = None,
        logs: Optional[list[dict]] = None,
    ) -> "StubContract":
        self.responses[selector(signature)] = (
            signature, list(output_types or []), list(values or []), list(logs or []),
        )
        return self

    def execute(self, sender: str, data: bytes, value: int) -> tuple[bytes, list[dict]]:
        entry = self.responses.get(data[:4])
        if entry is None:
            raise Revert("function selector was not recognized")
        signature, types, values, logs = entry
        arg_types = input_types(signature)
        args = decode(arg_types, data[4:]) if arg_types else ()
        self.transactions.append((signature, args, value, sender))
        output = encode(types, values) if types else b""
        return output, [copy.deepcopy(log) for log in logs]

    def sent(self, signature: str) -> list[tuple[tuple, int]]:
        """(args, value) of every recorded transaction to ``signature``."""
        return [(args, value) for sig, args, value, _ in self.transactions if sig == signature]


def _hex_bytes(data: Optional[str]) -> bytes:
    if not data:
        return b""
    return bytes.fromhex(data[2:] if data.startswith("0x") else data)


def _quantity(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


class FakeNode:
    """In-memory Ethereum node speaking JSON-RPC over httpx.MockTransport."""

    def __init__(self, chain_id: int = CHAIN_ID, accounts: Optional[list[str]] = None) -> None:
        self.chain_id = chain_id
        self.accounts = list(NODE_ACCOUNTS if accounts is None else accounts)
        self.block = 1
        self.contracts: dict[str, Any] = {}
        self.factories: dict[str, Callable[[str, bytes], Any]] = {
            ERC20_BYTECODE[2:]: FakeERC20.from_constructor,
        }
        self.balances: dict[str, int] = {}
        self.nonces: dict[str, int] = {}
        self.receipts: dict[str, dict] = {}
        self.logs: list[dict] = []
        self.requests: list[tuple[str, list]] = []
        self.mined: list[dict] = []
        self.lock = threading.RLock()

    # ---- test helpers ----

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def methods(self) -> list[str]:
        return [method for method, _ in self.requests]

    def add_contract(self, contract: Any) -> str:
        address = f"0x{0xC0DE0000 + len(self.contracts) + 1:040x}"
        self.contracts[address] = contract
        return address

    def register_bytecode(self, bytecode: str, factory: Callable[[str, bytes], Any]) -> None:
        self.factories[bytecode[2:] if bytecode.startswith("0x") else bytecode] = factory

    # ---- transport ----

    def handle(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        method, params = payload["method"], payload.get("params", [])
        body: dict[str, Any] = {"jsonrpc": "2.0", "id": payload["id"]}
        handler = getattr(self, method, None)
        with self.lock:
            self.requests.append((method, params))
            try:
                if handler is None:
                    raise NodeError(-32601, f"the method {method} does not exist/is not available")
                body["result"] = handler(*params)
            except NodeError as exc:
                body["error"] = {"code": exc.code, "message": exc.message}
        return httpx.Response(200, json=body)

    # ---- execution ----

    def _create(self, sender: str, data: bytes, commit: bool) -> Optional[str]:
        code = data.hex()
        for prefix, factory in self.factories.items():
            if code.startswith(prefix):
                instance = factory(sender, data[len(prefix) // 2:])
                return self.add_contract(instance) if commit else None
        raise Revert("invalid opcode")

    def _execute(self, sender: str, to: Optional[str], data: bytes, value: int, commit: bool):
        if not to:
            return b"", [], self._create(sender, data, commit)
        contract = self.contracts.get(to.lower())
        if contract is None:
            return b"", [], None
        target = contract if commit else copy.deepcopy(contract)
        output, logs = target.execute(sender.lower(), data, value)
        for log in logs:
            log["address"] = to.lower()
        return output, logs, None

    def _mine(self, sender: str, to: Optional[str], data: bytes, value: int, raw: bool) -> str:
        sender = sender.lower()
        nonce = self.nonces.get(sender, 0)
        self.nonces[sender] = nonce + 1
        self.block += 1
        tx_hash = "0x" + keccak256(f"{sender}:{nonce}:{data.hex()}".encode("utf-8")).hex()

        try:
            _, logs, created = self._execute(sender, to, data, value, commit=True)
            status = 1
        except Revert:
            logs, created, status = [], None, 0

        for index, log in enumerate(logs):
            log.update(blockNumber=hex(self.block), transactionHash=tx_hash, logIndex=hex(index))
            self.logs.append(log)

        self.receipts[tx_hash] = {
            "transactionHash": tx_hash,
            "blockNumber": hex(self.block),
            "from": sender,
            "to": to.lower() if to else None,
            "contractAddress": created,
            "status": hex(status),
            "logs": logs,
        }
        self.mined.append({"hash": tx_hash, "from": sender, "to": to, "value": value, "raw": raw})
        return tx_hash

    # ---- eth_* ----

    def eth_chainId(self) -> str:
        return hex(self.chain_id)

    def eth_blockNumber(self) -> str:
        return hex(self.block)

    def eth_accounts(self) -> list[str]:
        return list(self.accounts)

    def eth_getBalance(self, address: str, block: str) -> str:
        return hex(self.balances.get(address.lower(), 0))

    def eth_getTransactionCount(self, address: str, block: str) -> str:
        return hex(self.nonces.get(address.lower(), 0))

    def eth_gasPrice(self) -> str:
        return hex(10**9)

    def eth_estimateGas(self, tx: dict) -> str:
        try:
            self._execute(tx.get("from", ""), tx.get("to"), _hex_bytes(tx.get("data")),
                          _quantity(tx.get("value")), commit=False)
        except Revert as exc:
            raise NodeError(3, f"execution reverted: {exc}") from None
        return hex(60_000)

    def eth_call(self, tx: dict, block: str) -> str:
        try:
            output, _, _ = self._execute(tx.get("from", ""), tx.get("to"), _hex_bytes(tx.get("data")),
                                         _quantity(tx.get("value")), commit=False)
        except Revert as exc:
            raise NodeError(3, f"execution reverted: {exc}") from None
        return "0x" + output.hex()

    def eth_sendTransaction(self, tx: dict) -> str:
        sender = tx.get("from", "")
        if sender.lower() not in [a.lower() for a in self.accounts]:
            raise NodeError(-32000, "unknown account")
        return self._mine(sender, tx.get("to"), _hex_bytes(tx.get("data")),
                          _quantity(tx.get("value")), raw=False)

    def eth_sendRawTransaction(self, raw_tx: str) -> str:
        fields = rlp.decode(_hex_bytes(raw_tx))
        to, value, data = fields[3], fields[4], fields[5]
        sender = Account.recover_transaction(raw_tx)
        return self._mine(
            sender,
            "0x" + to.hex() if to else None,
            data,
            int.from_bytes(value, "big"),
            raw=True,
        )

    def eth_getTransactionReceipt(self, tx_hash: str) -> Optional[dict]:
        return self.receipts.get(tx_hash)

    def eth_getLogs(self, log_filter: dict) -> list[dict]:
        address = (log_filter.get("address") or "").lower()
        topics = log_filter.get("topics") or []
        matched = []
        for log in self.logs:
            if address and log["address"] != address:
                continue
            log_topics = [t.lower() for t in log["topics"]]
            if any(
                wanted is not None and (i >= len(log_topics) or log_topics[i] != wanted.lower())
                for i, wanted in enumerate(topics)
            ):
                continue
            matched.append(log)
        return matched


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> Any:
    """Keep the real ~/.bepro/.env and WEB3_* variables out of every test."""
    for name in _ENV_VARS:
        # setenv first so values loaded by python-dotenv are undone too
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    env_path = tmp_path / ".bepro" / ".env"
    monkeypatch.setattr(config, "BEPRO_ENV", env_path)
    return env_path


@pytest.fixture()
def node() -> FakeNode:
    return FakeNode()


@pytest.fixture()
def node_connection(node: FakeNode):
    """Connection acting as the node's first unlocked account."""
    conn = Web3Connection(RPC_URL, transport=node.transport())
    conn.login()
    yield conn
    conn.close()


@pytest.fixture()
def key_connection(node: FakeNode):
    """Connection signing locally with TEST_PRIVATE_KEY."""
    conn = Web3Connection(RPC_URL, TEST_PRIVATE_KEY, transport=node.transport())
    conn.login()
    yield conn
    conn.close()


@pytest.fixture(params=["node", "key"])
def connection(request: pytest.FixtureRequest):
    """Both account modes; contract wrappers must behave the same in each."""
    return request.getfixturevalue(f"{request.param}_connection")


@pytest.fixture()
def erc20(connection: Web3Connection) -> ERC20Contract:
    token = ERC20Contract(connection)
    token.deploy("BEPRO", "$BEPRO", "1000000", bytecode=ERC20_BYTECODE)
    return token
