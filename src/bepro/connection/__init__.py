"""
Connection - Node access layer.

Provides the JSON-RPC transport, ABI handling, key management and
transaction submission behind a single Web3Connection object.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""

from .account import ConnectedAccount
from .rpc import RpcClient
from .web3_connection import Web3Connection

__all__ = ["ConnectedAccount", "RpcClient", "Web3Connection"]
