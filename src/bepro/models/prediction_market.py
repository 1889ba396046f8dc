"""
PredictionMarketContract - Outcome-share markets resolved by Reality.eth.

Markets are funded in ETH; every ETH amount and share count uses 18
decimals.  Each market is backed by a Reality.eth question whose id is
available through ``get_market_question_id``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import IntEnum
from typing import Any, Optional, Sequence, Union

from ..numbers import AmountLike, to_base_units, to_decimal
from .base import ContractWrapper
from .realitio_erc20 import encode_question_text

logger = logging.getLogger(__name__)

ETH_DECIMALS = 18


class MarketState(IntEnum):
    OPEN = 0
    CLOSED = 1
    RESOLVED = 2


class MarketAction(IntEnum):
    BUY = 0
    SELL = 1
    ADD_LIQUIDITY = 2
    REMOVE_LIQUIDITY = 3
    CLAIM_WINNINGS = 4
    CLAIM_LIQUIDITY = 5


def _known(enum_cls: type, value: int) -> Union[IntEnum, int]:
    """Enum member for known values; values from newer contracts stay ints."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _eth(value: int) -> Decimal:
    return to_decimal(value, ETH_DECIMALS)


def _wei(value: AmountLike) -> int:
    return to_base_units(value, ETH_DECIMALS)


class PredictionMarketContract(ContractWrapper):
    abi_name = "PredictionMarket"

    # ---- reads ----

    def get_fee(self) -> Decimal:
        return _eth(self.call_function("fee"))

    def get_markets(self) -> list[int]:
        return list(self.call_function("getMarkets"))

    def get_market_data(self, market_id: int) -> dict[str, Any]:
        state, closes_at, liquidity, balance, shares, resolved = self.call_function(
            "getMarketData", market_id
        )
        return {
            "state": _known(MarketState, state),
            "closes_at": datetime.fromtimestamp(closes_at, tz=timezone.utc),
            "liquidity": _eth(liquidity),
            "balance": _eth(balance),
            "shares": _eth(shares),
            "resolved_outcome_id": resolved,
            "outcome_ids": list(self.call_function("getMarketOutcomeIds", market_id)),
        }

    def get_market_outcome_data(self, market_id: int, outcome_id: int) -> dict[str, Decimal]:
        price, available, total = self.call_function(
            "getMarketOutcomeData", market_id, outcome_id
        )
        return {
            "price": _eth(price),
            "shares": _eth(available),
            "total_shares": _eth(total),
        }

    def get_market_prices(self, market_id: int) -> dict[str, Any]:
        liquidity, outcomes = self.call_function("getMarketPrices", market_id)
        return {
            "liquidity": _eth(liquidity),
            "outcomes": {i: _eth(price) for i, price in enumerate(outcomes)},
        }

    def get_market_question_id(self, market_id: int) -> str:
        return "0x" + self.call_function("getMarketQuestion", market_id).hex()

    def get_user_market_shares(self, market_id: int, user: Optional[str] = None) -> dict[str, Any]:
        user = user or self.connection.address
        liquidity, outcomes = self.call_function("getUserMarketShares", market_id, user)
        return {
            "liquidity": _eth(liquidity),
            "outcomes": {i: _eth(shares) for i, shares in enumerate(outcomes)},
        }

    get_my_market_shares = get_user_market_shares

    def get_user_claim_status(self, market_id: int, user: Optional[str] = None) -> dict[str, Any]:
        user = user or self.connection.address
        (
            winnings_to_claim,
            winnings_claimed,
            liquidity_to_claim,
            liquidity_claimed,
            claimable_liquidity,
        ) = self.call_function("getUserClaimStatus", market_id, user)
        return {
            "winnings_to_claim": winnings_to_claim,
            "winnings_claimed": winnings_claimed,
            "liquidity_to_claim": liquidity_to_claim,
            "liquidity_claimed": liquidity_claimed,
            "claimable_liquidity": _eth(claimable_liquidity),
        }

    def get_my_portfolio(self) -> dict[int, dict[str, Any]]:
        """Shares and claim status of the selected account, per market."""
        portfolio = {}
        for market_id in self.get_markets():
            shares = self.get_user_market_shares(market_id)
            portfolio[market_id] = {
                "liquidity_shares": shares["liquidity"],
                "outcomes": shares["outcomes"],
                "claim_status": self.get_user_claim_status(market_id),
            }
        return portfolio

    def get_market_actions(
        self,
        market_id: Optional[int] = None,
        user: Optional[str] = None,
        from_block: Union[int, str] = 0,
    ) -> list[dict[str, Any]]:
        """
        Trading history from MarketActionTx events.

        Args:
            market_id: Only this market (default: all)
            user: Only this trader (default: all)
            from_block: First block to scan

        Returns:
            One dict per action, oldest first, amounts in ETH
        """
        filters: dict[str, Any] = {}
        if user is not None:
            filters["user"] = user
        if market_id is not None:
            filters["marketId"] = market_id

        actions = []
        for event in self.get_past_events("MarketActionTx", from_block=from_block, filters=filters):
            actions.append({
                "user": event["user"],
                "action": _known(MarketAction, event["action"]),
                "market_id": event["marketId"],
                "outcome_id": event["outcomeId"],
                "shares": _eth(event["shares"]),
                "value": _eth(event["value"]),
                "timestamp": datetime.fromtimestamp(event["timestamp"], tz=timezone.utc),
                "transaction_hash": event["transactionHash"],
            })
        return actions

    def get_my_market_actions(self, market_id: Optional[int] = None) -> list[dict[str, Any]]:
        return self.get_market_actions(market_id, user=self.connection.address)

    def calc_buy_amount(self, amount: AmountLike, market_id: int, outcome_id: int) -> Decimal:
        """Outcome shares received for ``amount`` ETH."""
        return _eth(self.call_function("calcBuyAmount", _wei(amount), market_id, outcome_id))

    def calc_sell_amount(self, amount: AmountLike, market_id: int, outcome_id: int) -> Decimal:
        """Outcome shares needed to withdraw ``amount`` ETH."""
        return _eth(self.call_function("calcSellAmount", _wei(amount), market_id, outcome_id))

    # ---- writes ----

    def create_market(
        self,
        name: str,
        image: str,
        closes_at: int,
        oracle_address: str,
        outcomes: Sequence[str],
        eth_amount: AmountLike,
        category: str = "",
        description: str = "",
    ) -> dict:
        """
        Create a market funded with ``eth_amount`` of initial liquidity.

        Args:
            name: Market title
            image: Image hash / URL stored with the market
            closes_at: Unix timestamp after which trading stops
            oracle_address: Reality.eth arbitrator
            outcomes: Outcome labels, at least two
            eth_amount: Initial liquidity in ETH
            category: Reality.eth category
            description: Appended to the title after ";"

        Returns:
            Result dict with ``market_id`` taken from MarketCreated
        """
        if len(outcomes) < 2:
            raise ValueError("A market needs at least two outcomes")

        title = f"{name};{description}" if description else name
        question = encode_question_text(title, outcomes, category)
        result = self.send_function(
            "createMarket",
            question,
            image,
            int(closes_at),
            oracle_address,
            len(outcomes),
            value=_wei(eth_amount),
        )

        events = self.decode_events("MarketCreated", result.get("receipt", {}))
        if events:
            result["market_id"] = events[0]["marketId"]
            logger.info("Market %s created", result["market_id"])
        return result

    def buy(
        self,
        market_id: int,
        outcome_id: int,
        eth_amount: AmountLike,
        min_outcome_shares_to_buy: AmountLike = 0,
    ) -> dict:
        return self.send_function(
            "buy",
            market_id,
            outcome_id,
            _wei(min_outcome_shares_to_buy),
            value=_wei(eth_amount),
        )

    def sell(
        self,
        market_id: int,
        outcome_id: int,
        eth_amount: AmountLike,
        max_outcome_shares_to_sell: AmountLike,
    ) -> dict:
        return self.send_function(
            "sell",
            market_id,
            outcome_id,
            _wei(eth_amount),
            _wei(max_outcome_shares_to_sell),
        )

    def add_liquidity(self, market_id: int, eth_amount: AmountLike) -> dict:
        return self.send_function("addLiquidity", market_id, value=_wei(eth_amount))

    def remove_liquidity(self, market_id: int, shares: AmountLike) -> dict:
        return self.send_function("removeLiquidity", market_id, _wei(shares))

    def resolve_market_outcome(self, market_id: int) -> dict:
        return self.send_function("resolveMarketOutcome", market_id)

    def claim_winnings(self, market_id: int) -> dict:
        return self.send_function("claimWinnings", market_id)

    def claim_liquidity(self, market_id: int) -> dict:
        return self.send_function("claimLiquidity", market_id)

    # ---- deployment ----

    def deploy(
        self,
        fee: AmountLike,
        realitio_address: str,
        realitio_timeout: int,
        *,
        bytecode: Optional[str] = None,
        gas_limit: Optional[int] = None,
    ) -> dict:
        """Deploy with a trading fee (fraction, 18 decimals) and oracle settings."""
        return self.deploy_contract(
            _wei(fee),
            realitio_address,
            int(realitio_timeout),
            bytecode=bytecode,
            gas_limit=gas_limit,
        )
