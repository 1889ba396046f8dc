from __future__ import annotations

from typing import Any, Optional


class BeproError(RuntimeError):
    exit_code: int = 1


class NotConnectedError(BeproError):
    """No node transport or no account is available."""

    exit_code = 2


class NotDeployedError(BeproError):
    """The operation needs a contract address and none is set."""

    exit_code = 3


class RpcError(BeproError):
    """
    JSON-RPC error object returned by the node.

    ``code``, ``message`` and ``data`` are kept exactly as the node sent
    them so callers can inspect revert reasons.
    """

    exit_code = 4

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code is None:
            return f"RPC error: {self.message}"
        return f"RPC error {self.code}: {self.message}"


class TransactionFailedError(BeproError):
    """A transaction was mined but reverted (receipt status 0)."""

    exit_code = 5

    def __init__(self, message: str, tx_hash: Optional[str] = None, receipt: Optional[dict] = None) -> None:
        super().__init__(message)
        self.tx_hash = tx_hash
        self.receipt = receipt or {}


__all__ = [
    "BeproError",
    "NotConnectedError",
    "NotDeployedError",
    "RpcError",
    "TransactionFailedError",
]
