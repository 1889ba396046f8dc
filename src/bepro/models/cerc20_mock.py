"""
CERC20Mock - Compound-style cToken mock over an underlying ERC-20.

Amounts supplied, minted or redeemed are denominated in the underlying
token, so they are scaled with the underlying token's decimals.  The
exchange rate is scaled with the cToken's own decimals.

See https://compound.finance/developers
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..numbers import AmountLike, to_base_units, to_decimal
from .erc20 import ERC20Contract


class CERC20Mock(ERC20Contract):
    abi_name = "CERC20Mock"

    def __init__(
        self,
        connection,
        contract_address: Optional[str] = None,
        token_address: Optional[str] = None,
        abi: Optional[list] = None,
    ) -> None:
        super().__init__(connection, contract_address, abi=abi)
        self._underlying: Optional[ERC20Contract] = None
        if token_address:
            self._underlying = ERC20Contract(connection, token_address)

    def get_underlying_contract(self) -> Optional[ERC20Contract]:
        return self._underlying

    def _underlying_decimals(self) -> int:
        if self._underlying is None:
            self._underlying = ERC20Contract(self.connection, self.underlying())
        return self._underlying.get_decimals()

    def start(self) -> None:
        super().start()
        if self._underlying is None:
            self._underlying = ERC20Contract(self.connection, self.underlying())
        self._underlying.start()

    # ---- views ----

    def initial_block_number(self) -> int:
        """Block number that interest started to increase from."""
        return self.call_function("initialBlockNumber")

    def initial_exchange_rate(self) -> int:
        """Raw exchange rate used when minting the first cTokens."""
        return self.call_function("initialExchangeRate")

    def is_ctoken(self) -> bool:
        return self.call_function("isCToken")

    def underlying(self) -> str:
        return self.call_function("underlying")

    def balance_of_underlying(self, owner: str) -> Decimal:
        """Amount of underlying owned by ``owner``."""
        return to_decimal(
            self.call_function("balanceOfUnderlying", owner),
            self._underlying_decimals(),
        )

    def exchange_rate_current(self) -> Decimal:
        return to_decimal(self.call_function("exchangeRateCurrent"), self.get_decimals())

    # ---- transactions ----

    def mint(self, mint_amount: AmountLike) -> dict:
        """Supply underlying into the market and receive cTokens."""
        return self.send_function(
            "mint", to_base_units(mint_amount, self._underlying_decimals())
        )

    def supply_underlying(self, supply_amount: AmountLike) -> dict:
        return self.send_function(
            "supplyUnderlying", to_base_units(supply_amount, self._underlying_decimals())
        )

    def redeem_underlying(self, redeem_amount: AmountLike) -> dict:
        return self.send_function(
            "redeemUnderlying", to_base_units(redeem_amount, self._underlying_decimals())
        )

    # ---- deployment ----

    def deploy(
        self,
        initial_exchange_rate: int,
        decimals: int,
        *,
        bytecode: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> dict:
        """
        Deploy against the underlying token given as ``token_address``.

        Args:
            initial_exchange_rate: Raw rate, scaled by 1e18
            decimals: ERC-20 precision of the cToken
        """
        if not initial_exchange_rate:
            raise ValueError("Please provide an initial exchange rate")
        if not decimals:
            raise ValueError("Please provide decimals")
        if self._underlying is None:
            raise ValueError("No Token Address Provided")

        result = self.deploy_contract(
            self._underlying.get_address(),
            int(initial_exchange_rate),
            int(decimals),
            bytecode=bytecode,
            gas_limit=gas_limit,
        )
        self.start()
        return result
