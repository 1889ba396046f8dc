"""
JSON-RPC client for Ethereum nodes.

Lightweight alternative to web3.py: uses httpx for HTTP.  ABI encoding
lives in ``abi``; this module only moves JSON-RPC payloads.
"""

from __future__ import annotations

import itertools
import logging
import time
from typing import Any, Optional

import httpx

from ..config import DEFAULT_TIMEOUT
from ..errors import RpcError
from ..utils import from_hex

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


def rpc_call(
    method: str,
    params: list,
    rpc_url: str,
    client: Optional[httpx.Client] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """
    Make a JSON-RPC call.

    Args:
        method: RPC method name (e.g., "eth_call")
        params: RPC parameters
        rpc_url: RPC endpoint URL
        client: Reusable httpx client (a short-lived one is created if None)
        timeout: Request timeout for the short-lived client

    Returns:
        Result field from the RPC response

    Raises:
        RpcError: If the node answers with a JSON-RPC error object or the
            body is not a JSON-RPC response
        httpx.HTTPError: On transport or HTTP status failures
    """
    payload = {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": next(_request_ids),
    }
    logger.debug("rpc -> %s %s", method, params)

    if client is None:
        with httpx.Client(timeout=timeout) as short_lived:
            response = short_lived.post(rpc_url, json=payload)
    else:
        response = client.post(rpc_url, json=payload)
    response.raise_for_status()
    try:
        data = response.json()
    except ValueError as e:
        raise RpcError(f"Invalid JSON-RPC response from {rpc_url}: {e}") from e
    if not isinstance(data, dict):
        raise RpcError(f"Invalid JSON-RPC response from {rpc_url}: expected an object")

    if "error" in data and data["error"] is not None:
        error = data["error"]
        if isinstance(error, dict):
            raise RpcError(
                str(error.get("message", error)),
                code=error.get("code"),
                data=error.get("data"),
            )
        raise RpcError(str(error))

    return data.get("result")


class RpcClient:
    """
    Node transport bound to one endpoint.

    A single ``httpx.Client`` is shared by every call so connections are
    pooled; calls are independent and may run from several threads.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._client = httpx.Client(timeout=timeout, transport=transport)

    def call(self, method: str, params: Optional[list] = None) -> Any:
        return rpc_call(method, params or [], self.rpc_url, client=self._client)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # -- chain state ------------------------------------------------------

    def chain_id(self) -> int:
        return from_hex(self.call("eth_chainId"))

    def block_number(self) -> int:
        return from_hex(self.call("eth_blockNumber"))

    def accounts(self) -> list[str]:
        return list(self.call("eth_accounts") or [])

    def get_balance(self, address: str, block: str = "latest") -> int:
        """Balance in wei."""
        return from_hex(self.call("eth_getBalance", [address, block]))

    def get_nonce(self, address: str, block: str = "pending") -> int:
        return from_hex(self.call("eth_getTransactionCount", [address, block]))

    def get_gas_price(self) -> int:
        return from_hex(self.call("eth_gasPrice"))

    def estimate_gas(self, tx: dict) -> int:
        return from_hex(self.call("eth_estimateGas", [tx]))

    def eth_call(self, tx: dict, block: str = "latest") -> str:
        return self.call("eth_call", [tx, block])

    def get_logs(self, log_filter: dict) -> list[dict]:
        return list(self.call("eth_getLogs", [log_filter]) or [])

    # -- transactions -----------------------------------------------------

    def send_raw_transaction(self, raw_tx: str) -> str:
        """Submit a signed transaction; returns the tx hash."""
        return self.call("eth_sendRawTransaction", [raw_tx])

    def send_transaction(self, tx: dict) -> str:
        """Submit an unsigned transaction for the node to sign."""
        return self.call("eth_sendTransaction", [tx])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        return self.call("eth_getTransactionReceipt", [tx_hash])

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float = 120,
        poll_interval: float = 2.0,
    ) -> dict:
        """
        Wait for a transaction receipt.

        Args:
            tx_hash: Transaction hash
            timeout: Maximum wait time in seconds
            poll_interval: Polling interval in seconds

        Returns:
            Transaction receipt dict

        Raises:
            TimeoutError: If receipt not found within timeout
        """
        start = time.monotonic()
        while True:
            receipt = self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            if time.monotonic() - start >= timeout:
                break
            time.sleep(poll_interval)

        raise TimeoutError(f"Transaction {tx_hash} not confirmed within {timeout}s")
