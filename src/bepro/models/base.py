"""
ContractWrapper - Binds one ABI to one on-chain address.

Subclasses set ``abi_name`` and expose semantically named methods on top
of ``call_function`` / ``send_function``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from ..connection import abi as abilib
from ..connection.tx import deployment_data
from ..connection.web3_connection import Web3Connection
from ..errors import NotDeployedError, TransactionFailedError
from ..utils import to_checksum_address, to_hex

logger = logging.getLogger(__name__)


class ContractWrapper:
    abi_name: str = ""

    def __init__(
        self,
        connection: Web3Connection,
        contract_address: Optional[str] = None,
        abi: Optional[list] = None,
    ) -> None:
        self.connection = connection
        if abi is None:
            abi = abilib.load_abi(self.abi_name, connection.settings.contracts_out)
        self.abi: list = abi
        self._address: Optional[str] = (
            to_checksum_address(contract_address) if contract_address else None
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(address={self._address!r})"

    @property
    def contract_address(self) -> Optional[str]:
        return self._address

    @contract_address.setter
    def contract_address(self, value: Optional[str]) -> None:
        self._address = to_checksum_address(value) if value else None

    def get_address(self) -> str:
        return self._require_address()

    def _require_address(self) -> str:
        if not self._address:
            raise NotDeployedError(
                f"{type(self).__name__} is not deployed, first deploy it "
                "and provide a contract address"
            )
        return self._address

    def start(self) -> None:
        """Assert the contract is deployed; subclasses preload state here."""
        self._require_address()

    # ---------------------------------------------------------------------
    # Primitives
    # ---------------------------------------------------------------------

    def call_function(self, function_name: str, *args: Any) -> Any:
        """Run a read-only function and return its decoded output."""
        address = self._require_address()
        calldata = abilib.encode_function_call(self.abi, function_name, args)
        result = self.connection.call(address, calldata)
        if not result or result == "0x":
            func = abilib.find_function(self.abi, function_name, len(args))
            if func.get("outputs"):
                raise NotDeployedError(
                    f"{type(self).__name__}.{function_name} returned no data; "
                    f"is there a contract at {address}?"
                )
            return None
        return abilib.decode_function_result(self.abi, function_name, result, len(args))

    def send_function(
        self,
        function_name: str,
        *args: Any,
        value: int = 0,
        gas_limit: Optional[int] = None,
    ) -> dict:
        """
        Submit a state-changing function call.

        Args:
            function_name: ABI function name
            *args: Function arguments, amounts already in base units
            value: ETH value in wei
            gas_limit: Explicit gas limit

        Returns:
            Dict with tx_hash, receipt, status

        Raises:
            TransactionFailedError: If the mined receipt has status 0
        """
        address = self._require_address()
        calldata = abilib.encode_function_call(self.abi, function_name, args)
        result = self.connection.send_transaction(
            address, calldata, value=value, gas_limit=gas_limit
        )
        self._check_status(function_name, result)
        return result

    def deploy_contract(
        self,
        *constructor_args: Any,
        bytecode: Optional[str] = None,
        gas_limit: Optional[int] = None,
        value: int = 0,
    ) -> dict:
        """
        Deploy this contract and bind the wrapper to the new address.

        Bytecode comes from the argument or, failing that, from the
        compiled artifact (see ``BEPRO_CONTRACTS_OUT``).
        """
        code = bytecode or abilib.load_bytecode(
            self.abi_name, self.connection.settings.contracts_out
        )
        encoded_args = abilib.encode_constructor_args(self.abi, constructor_args)
        result = self.connection.send_transaction(
            None, deployment_data(code, encoded_args), value=value, gas_limit=gas_limit
        )
        self._check_status("constructor", result)

        contract_address = result.get("contract_address")
        if not contract_address:
            raise TransactionFailedError(
                f"Could not extract {type(self).__name__} address from receipt",
                tx_hash=result.get("tx_hash"),
                receipt=result.get("receipt"),
            )
        self.contract_address = contract_address
        logger.info("%s deployed at %s", type(self).__name__, contract_address)
        return result

    @staticmethod
    def _check_status(function_name: str, result: dict) -> None:
        if "status" in result and result["status"] != 1:
            raise TransactionFailedError(
                f"{function_name} reverted",
                tx_hash=result.get("tx_hash"),
                receipt=result.get("receipt"),
            )

    # ---------------------------------------------------------------------
    # Events
    # ---------------------------------------------------------------------

    def decode_events(self, event_name: str, receipt: dict) -> list[dict[str, Any]]:
        """Decode every ``event_name`` log of a receipt emitted by this contract."""
        address = (self._address or "").lower()
        events = []
        for log in receipt.get("logs", []):
            if address and log.get("address", "").lower() != address:
                continue
            decoded = abilib.decode_event_log(self.abi, event_name, log)
            if decoded is not None:
                events.append(decoded)
        return events

    def get_past_events(
        self,
        event_name: str,
        from_block: Union[int, str] = 0,
        to_block: Union[int, str] = "latest",
        filters: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """
        Query and decode past events via eth_getLogs.

        ``filters`` maps indexed argument names to the value they must
        have; the node does the matching.  Each entry carries the decoded
        arguments plus ``blockNumber`` and ``transactionHash``.
        """
        address = self._require_address()
        event = abilib.find_event(self.abi, event_name)
        log_filter = {
            "address": address,
            "topics": abilib.event_filter_topics(event, filters or {}),
            "fromBlock": to_hex(from_block) if isinstance(from_block, int) else from_block,
            "toBlock": to_hex(to_block) if isinstance(to_block, int) else to_block,
        }
        events = []
        for log in self.connection.rpc.get_logs(log_filter):
            decoded = abilib.decode_event_log(self.abi, event_name, log)
            if decoded is None:
                continue
            decoded["blockNumber"] = log.get("blockNumber")
            decoded["transactionHash"] = log.get("transactionHash")
            events.append(decoded)
        return events
