"""
ERC20Contract - Capped ERC-20 token.

All amounts crossing this API are human amounts; conversion to and from
base units uses the token's own ``decimals()``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..numbers import AmountLike, to_base_units, to_decimal
from .base import ContractWrapper


class ERC20Contract(ContractWrapper):
    abi_name = "ERC20"

    def __init__(self, connection, contract_address: Optional[str] = None, abi: Optional[list] = None) -> None:
        super().__init__(connection, contract_address, abi=abi)
        self._decimals: Optional[int] = None

    def start(self) -> None:
        super().start()
        self._decimals = None
        self.get_decimals()

    # ---- metadata ----

    def name(self) -> str:
        return self.call_function("name")

    def symbol(self) -> str:
        return self.call_function("symbol")

    def get_decimals(self) -> int:
        """Token precision, read once and cached."""
        if self._decimals is None:
            self._decimals = int(self.call_function("decimals"))
        return self._decimals

    decimals = get_decimals

    def total_supply(self) -> Decimal:
        return to_decimal(self.call_function("totalSupply"), self.get_decimals())

    def cap(self) -> Decimal:
        return to_decimal(self.call_function("cap"), self.get_decimals())

    # ---- balances ----

    def balance_of(self, address: str) -> Decimal:
        return to_decimal(self.call_function("balanceOf", address), self.get_decimals())

    get_token_amount = balance_of

    def allowance(self, owner: str, spender: str) -> Decimal:
        return to_decimal(
            self.call_function("allowance", owner, spender), self.get_decimals()
        )

    def is_approved(self, spender: str, amount: AmountLike, owner: Optional[str] = None) -> bool:
        """Whether ``spender`` may move at least ``amount`` of ``owner``'s tokens."""
        owner = owner or self.connection.address
        allowed = self.call_function("allowance", owner, spender)
        return allowed >= to_base_units(amount, self.get_decimals())

    # ---- transactions ----

    def approve(self, spender: str, amount: AmountLike) -> dict:
        return self.send_function(
            "approve", spender, to_base_units(amount, self.get_decimals())
        )

    def increase_allowance(self, spender: str, amount: AmountLike) -> dict:
        return self.send_function(
            "increaseAllowance", spender, to_base_units(amount, self.get_decimals())
        )

    def decrease_allowance(self, spender: str, amount: AmountLike) -> dict:
        return self.send_function(
            "decreaseAllowance", spender, to_base_units(amount, self.get_decimals())
        )

    def transfer(self, to: str, amount: AmountLike) -> dict:
        return self.send_function(
            "transfer", to, to_base_units(amount, self.get_decimals())
        )

    transfer_token_amount = transfer

    def transfer_from(self, sender: str, to: str, amount: AmountLike) -> dict:
        return self.send_function(
            "transferFrom", sender, to, to_base_units(amount, self.get_decimals())
        )

    # ---- deployment ----

    def deploy(
        self,
        name: str,
        symbol: str,
        cap: AmountLike,
        distribution_address: Optional[str] = None,
        *,
        bytecode: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> dict:
        """
        Deploy a capped token; the whole cap is minted to the distribution
        address (default: the deploying account).

        ``cap`` is a human amount; the token is deployed with 18 decimals.
        """
        if not name:
            raise ValueError("Please provide a name")
        if not symbol:
            raise ValueError("Please provide a symbol")

        distribution_address = distribution_address or self.connection.address
        result = self.deploy_contract(
            name,
            symbol,
            to_base_units(cap, 18),
            distribution_address,
            bytecode=bytecode,
            gas_limit=gas_limit,
        )
        self.start()
        return result
