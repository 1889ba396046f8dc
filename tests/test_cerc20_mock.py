"""CERC20Mock: cToken reads, underlying-denominated writes and deployment."""

from __future__ import annotations

from decimal import Decimal

import pytest
from eth_abi import decode

from bepro.connection.web3_connection import Web3Connection
from bepro.models.cerc20_mock import CERC20Mock
from bepro.models.erc20 import ERC20Contract
from bepro.utils import to_checksum_address

from .conftest import STUB_BYTECODE, FakeNode, StubContract


def ctoken_stub(underlying: str) -> StubContract:
    return (
        StubContract()
        .on("name()", ["string"], ["Compound BEPRO"])
        .on("symbol()", ["string"], ["cBEPRO"])
        .on("decimals()", ["uint8"], [8])
        .on("balanceOf(address)", ["uint256"], [3 * 10**8])
        .on("underlying()", ["address"], [underlying])
        .on("initialBlockNumber()", ["uint256"], [100])
        .on("initialExchangeRate()", ["uint256"], [2 * 10**26])
        .on("isCToken()", ["bool"], [True])
        .on("balanceOfUnderlying(address)", ["uint256"], [25 * 10**17])
        .on("exchangeRateCurrent()", ["uint256"], [2 * 10**8])
        .on("mint(uint256)", ["uint256"], [0])
        .on("supplyUnderlying(uint256)", ["uint256"], [0])
        .on("redeemUnderlying(uint256)", ["uint256"], [0])
    )


@pytest.fixture()
def ctoken(node: FakeNode, connection: Web3Connection, erc20: ERC20Contract) -> tuple[CERC20Mock, StubContract]:
    stub = ctoken_stub(erc20.get_address())
    address = node.add_contract(stub)
    return CERC20Mock(connection, address), stub


class TestReads:
    def test_views(self, ctoken: tuple[CERC20Mock, StubContract], erc20: ERC20Contract) -> None:
        contract, _ = ctoken
        assert contract.initial_block_number() == 100
        assert contract.initial_exchange_rate() == 2 * 10**26
        assert contract.is_ctoken() is True
        assert contract.underlying() == erc20.get_address()

    def test_own_decimals_for_ctoken_amounts(self, ctoken: tuple[CERC20Mock, StubContract], connection) -> None:
        contract, _ = ctoken
        assert contract.get_decimals() == 8
        assert contract.balance_of(connection.address) == Decimal(3)
        assert contract.exchange_rate_current() == Decimal(2)

    def test_underlying_decimals_for_underlying_amounts(self, ctoken: tuple[CERC20Mock, StubContract], connection) -> None:
        contract, _ = ctoken
        assert contract.balance_of_underlying(connection.address) == Decimal("2.5")

    def test_start_resolves_underlying(self, ctoken: tuple[CERC20Mock, StubContract], erc20: ERC20Contract) -> None:
        contract, _ = ctoken
        assert contract.get_underlying_contract() is None
        contract.start()
        assert contract.get_underlying_contract().get_address() == erc20.get_address()


class TestWrites:
    def test_mint_uses_underlying_decimals(self, ctoken: tuple[CERC20Mock, StubContract]) -> None:
        contract, stub = ctoken
        contract.mint("1.5")
        assert stub.sent("mint(uint256)") == [((15 * 10**17,), 0)]

    def test_supply_and_redeem(self, ctoken: tuple[CERC20Mock, StubContract]) -> None:
        contract, stub = ctoken
        contract.supply_underlying(2)
        contract.redeem_underlying("0.25")
        assert stub.sent("supplyUnderlying(uint256)") == [((2 * 10**18,), 0)]
        assert stub.sent("redeemUnderlying(uint256)") == [((25 * 10**16,), 0)]


class TestDeploy:
    def test_deploy_passes_underlying_rate_and_decimals(
        self, node: FakeNode, connection: Web3Connection, erc20: ERC20Contract
    ) -> None:
        deployed: list[StubContract] = []

        def factory(sender: str, args: bytes) -> StubContract:
            stub = ctoken_stub(erc20.get_address())
            stub.constructor_args = args
            deployed.append(stub)
            return stub

        node.register_bytecode(STUB_BYTECODE, factory)
        contract = CERC20Mock(connection, token_address=erc20.get_address())
        result = contract.deploy(2 * 10**26, 8, bytecode=STUB_BYTECODE)

        assert result["status"] == 1
        assert contract.get_address() == result["contract_address"]
        underlying, rate, decimals = decode(["address", "uint256", "uint8"], deployed[-1].constructor_args)
        assert to_checksum_address(underlying) == erc20.get_address()
        assert rate == 2 * 10**26
        assert decimals == 8

    @pytest.mark.parametrize(
        ("rate", "decimals", "token", "message"),
        [
            (0, 8, True, "initial exchange rate"),
            (10**18, 0, True, "decimals"),
            (10**18, 8, False, "No Token Address Provided"),
        ],
    )
    def test_deploy_validation(
        self, connection: Web3Connection, erc20: ERC20Contract, rate: int, decimals: int, token: bool, message: str
    ) -> None:
        contract = CERC20Mock(connection, token_address=erc20.get_address() if token else None)
        with pytest.raises(ValueError, match=message):
            contract.deploy(rate, decimals, bytecode=STUB_BYTECODE)
