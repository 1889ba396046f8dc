"""
Models - Contract wrappers.

Each wrapper binds one bundled ABI and exposes semantically named methods
over a shared Web3Connection.
"""

from .base import ContractWrapper
from .cerc20_mock import CERC20Mock
from .erc20 import ERC20Contract
from .prediction_market import MarketAction, MarketState, PredictionMarketContract
from .realitio_erc20 import RealitioERC20Contract

__all__ = [
    "CERC20Mock",
    "ContractWrapper",
    "ERC20Contract",
    "MarketAction",
    "MarketState",
    "PredictionMarketContract",
    "RealitioERC20Contract",
]
