"""
Transaction Builder - Build, sign, and send Ethereum transactions.

Two submission paths share one transaction shape:
- local key: eth-account signs, the node receives eth_sendRawTransaction
- node-managed account: the node signs via eth_sendTransaction
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..utils import from_hex, to_checksum_address, to_hex
from .account import ConnectedAccount
from .rpc import RpcClient

logger = logging.getLogger(__name__)

# eth_estimateGas is exact for the current state; leave room for drift
GAS_MARGIN_NUMERATOR = 6
GAS_MARGIN_DENOMINATOR = 5

_QUANTITY_FIELDS = ("value", "nonce", "gas", "gasPrice", "chainId")


def to_rpc_transaction(tx: dict) -> dict:
    """Hex-encode integer fields for JSON-RPC."""
    return {
        key: to_hex(value) if key in _QUANTITY_FIELDS and isinstance(value, int) else value
        for key, value in tx.items()
    }


def build_transaction(
    rpc: RpcClient,
    account: ConnectedAccount,
    to: Optional[str],
    data: str,
    value: int = 0,
    gas_limit: Optional[int] = None,
    chain_id: Optional[int] = None,
    nonce: Optional[int] = None,
) -> dict:
    """
    Build an unsigned transaction.

    Args:
        rpc: Node transport
        account: Sender
        to: Target address, None for contract creation
        data: 0x-prefixed calldata or deployment code
        value: ETH value in wei
        gas_limit: Gas limit (default: estimate plus margin)
        chain_id: Chain id (default: asked from the node)
        nonce: Account nonce (default: pending count from the node)

    Returns:
        Unsigned transaction dict with integer fields
    """
    tx: dict[str, Any] = {"from": account.address, "data": data, "value": value}
    if to is not None:
        tx["to"] = to_checksum_address(to)

    if gas_limit is None:
        # Estimation failures are reverts; let the node's error through
        estimate = rpc.estimate_gas(to_rpc_transaction(tx))
        gas_limit = estimate * GAS_MARGIN_NUMERATOR // GAS_MARGIN_DENOMINATOR

    tx["gas"] = gas_limit
    tx["gasPrice"] = rpc.get_gas_price()
    tx["nonce"] = nonce if nonce is not None else rpc.get_nonce(account.address)
    tx["chainId"] = chain_id if chain_id is not None else rpc.chain_id()
    return tx


def finish_transaction(rpc: RpcClient, tx_hash: str, wait: bool, timeout: float) -> dict:
    result: dict[str, Any] = {"tx_hash": tx_hash}
    logger.info("Transaction sent: %s", tx_hash)

    if wait:
        receipt = rpc.wait_for_receipt(tx_hash, timeout=timeout)
        result["receipt"] = receipt
        result["status"] = from_hex(receipt.get("status", "0x0"))
        contract_address = receipt.get("contractAddress")
        if contract_address:
            result["contract_address"] = to_checksum_address(contract_address)
        logger.info(
            "Transaction %s mined in block %s (status %s)",
            tx_hash, from_hex(receipt.get("blockNumber")), result["status"],
        )

    return result


def sign_and_submit(rpc: RpcClient, tx: dict, account: ConnectedAccount) -> str:
    """
    Sign a transaction locally and send it.

    Returns:
        Transaction hash
    """
    if not account.is_local:
        raise ValueError("sign_and_submit needs an account with a local private key")

    unsigned = {k: v for k, v in tx.items() if k != "from"}
    signed = account.local.sign_transaction(unsigned)
    raw_tx = "0x" + bytes(signed.raw_transaction).hex()
    return rpc.send_raw_transaction(raw_tx)


def submit_via_node(rpc: RpcClient, tx: dict) -> str:
    """Hand an unsigned transaction to the node's account manager."""
    unsigned = {k: v for k, v in tx.items() if k != "chainId"}
    return rpc.send_transaction(to_rpc_transaction(unsigned))


def submit_transaction(rpc: RpcClient, tx: dict, account: ConnectedAccount) -> str:
    """Submit through whichever path the account uses; returns the tx hash."""
    if account.is_local:
        return sign_and_submit(rpc, tx, account)
    return submit_via_node(rpc, tx)


def deployment_data(bytecode: str, constructor_args: bytes = b"") -> str:
    """Deployment code followed by ABI-encoded constructor arguments."""
    code = bytecode[2:] if bytecode.startswith("0x") else bytecode
    return "0x" + code + constructor_args.hex()
