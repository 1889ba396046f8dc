__all__ = [
    # Session
    "Application",
    "Web3Connection",
    "ConnectedAccount",
    "RpcClient",
    # Contracts
    "ContractWrapper",
    "ERC20Contract",
    "CERC20Mock",
    "PredictionMarketContract",
    "RealitioERC20Contract",
    "MarketState",
    "MarketAction",
    # Numbers
    "MAX_UINT256",
    "to_base_units",
    "to_decimal",
    "format_amount",
    # Errors
    "BeproError",
    "NotConnectedError",
    "NotDeployedError",
    "RpcError",
    "TransactionFailedError",
    # Keys
    "generate_account",
    "load_private_key",
    "save_private_key",
]

__version__ = "1.0.0"

from .numbers import MAX_UINT256, format_amount, to_base_units, to_decimal
from .errors import (
    BeproError,
    NotConnectedError,
    NotDeployedError,
    RpcError,
    TransactionFailedError,
)
from .connection.account import (
    ConnectedAccount,
    generate_account,
    load_private_key,
    save_private_key,
)
from .connection.rpc import RpcClient
from .connection.web3_connection import Web3Connection
from .models import (
    CERC20Mock,
    ContractWrapper,
    ERC20Contract,
    MarketAction,
    MarketState,
    PredictionMarketContract,
    RealitioERC20Contract,
)
from .application import Application
