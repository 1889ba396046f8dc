"""
Application - Session facade handing out contract wrappers.

One Application owns one Web3Connection; every wrapper it creates shares
that connection (and therefore its node and selected account).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

import httpx

from .connection.web3_connection import Web3Connection
from .models import CERC20Mock, ERC20Contract, PredictionMarketContract, RealitioERC20Contract


class Application:
    def __init__(
        self,
        test: bool = False,
        mainnet: bool = True,
        localtest: bool = False,
        web3_host: Optional[str] = None,
        private_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.test = test
        self.mainnet = mainnet
        self.web3_connection = Web3Connection(
            web3_host,
            private_key,
            test=test,
            mainnet=mainnet,
            localtest=localtest,
            transport=transport,
        )

    # ---- core ----

    def start(self) -> None:
        self.web3_connection.start()

    def login(self) -> bool:
        return self.web3_connection.login()

    def is_logged_in(self) -> bool:
        return self.web3_connection.is_logged_in()

    # ---- getters ----

    def get_prediction_market_contract(self, contract_address: Optional[str] = None) -> PredictionMarketContract:
        return PredictionMarketContract(self.web3_connection, contract_address)

    def get_realitio_erc20_contract(self, contract_address: Optional[str] = None) -> RealitioERC20Contract:
        return RealitioERC20Contract(self.web3_connection, contract_address)

    def get_erc20_contract(self, contract_address: Optional[str] = None) -> ERC20Contract:
        return ERC20Contract(self.web3_connection, contract_address)

    def get_cerc20_mock_contract(
        self,
        contract_address: Optional[str] = None,
        token_address: Optional[str] = None,
    ) -> CERC20Mock:
        return CERC20Mock(self.web3_connection, contract_address, token_address=token_address)

    # ---- utils ----

    def get_eth_network(self) -> str:
        return self.web3_connection.get_network()

    def get_address(self) -> str:
        return self.web3_connection.get_address()

    def get_eth_balance(self) -> Decimal:
        return self.web3_connection.get_eth_balance()
