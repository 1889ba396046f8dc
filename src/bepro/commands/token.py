"""
Token - ERC-20 queries and transfers from the selected account.

The token address comes from --token or ERC20_ADDRESS.
"""

from __future__ import annotations

from typing import Optional

import click
import httpx

from ..errors import BeproError
from ..models.erc20 import ERC20Contract
from .connect import fail, open_connection

_token_option = click.option(
    "--token",
    "token_address",
    envvar="ERC20_ADDRESS",
    required=True,
    help="ERC-20 token contract address",
)


@click.group()
def token() -> None:
    """ERC-20 token operations.

    \b
    Examples:
      bepro token info --token 0xAbC...
      bepro token balance --token 0xAbC...
      bepro token transfer --token 0xAbC... --to 0x... --amount 5.5
    """


@token.command()
@_token_option
@click.pass_context
def info(ctx: click.Context, token_address: str) -> None:
    """Show token metadata."""
    try:
        with open_connection(ctx, need_account=False) as conn:
            erc20 = ERC20Contract(conn, token_address)
            click.echo(click.style("Token:        ", dim=True) + erc20.get_address())
            click.echo(click.style("Name:         ", dim=True) + erc20.name())
            click.echo(click.style("Symbol:       ", dim=True) + erc20.symbol())
            click.echo(click.style("Decimals:     ", dim=True) + str(erc20.get_decimals()))
            click.echo(click.style("Total supply: ", dim=True) + f"{erc20.total_supply():f}")
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)


@token.command("balance")
@_token_option
@click.option("--address", default=None, help="Holder address (default: your wallet)")
@click.pass_context
def token_balance(ctx: click.Context, token_address: str, address: Optional[str]) -> None:
    """Show token balance."""
    try:
        with open_connection(ctx, need_account=address is None) as conn:
            erc20 = ERC20Contract(conn, token_address)
            holder = address or conn.address
            amount = erc20.balance_of(holder)
            click.echo(f"{holder}: {amount:f} {erc20.symbol()}")
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)


@token.command()
@_token_option
@click.option("--spender", required=True, help="Spender address")
@click.option("--owner", default=None, help="Owner address (default: your wallet)")
@click.pass_context
def allowance(ctx: click.Context, token_address: str, spender: str, owner: Optional[str]) -> None:
    """Show how much a spender may move."""
    try:
        with open_connection(ctx, need_account=owner is None) as conn:
            erc20 = ERC20Contract(conn, token_address)
            amount = erc20.allowance(owner or conn.address, spender)
            click.echo(f"Allowance: {amount:f} {erc20.symbol()}")
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)


@token.command()
@_token_option
@click.option("--spender", required=True, help="Spender address")
@click.option("--amount", required=True, help="Amount in human-readable units (e.g. 1.5)")
@click.pass_context
def approve(ctx: click.Context, token_address: str, spender: str, amount: str) -> None:
    """Approve a spender."""
    try:
        with open_connection(ctx) as conn:
            erc20 = ERC20Contract(conn, token_address)
            result = erc20.approve(spender, amount)
            click.secho("Approved", fg="green")
            click.echo(click.style("TX: ", dim=True) + result["tx_hash"])
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)


@token.command()
@_token_option
@click.option("--to", "recipient", required=True, help="Recipient address (0x...)")
@click.option("--amount", required=True, help="Amount in human-readable units (e.g. 1.5)")
@click.pass_context
def transfer(ctx: click.Context, token_address: str, recipient: str, amount: str) -> None:
    """Transfer tokens to a recipient.

    \b
    Examples:
      bepro token transfer --token 0xDEF... --to 0xAbc... --amount 10
    """
    try:
        with open_connection(ctx) as conn:
            erc20 = ERC20Contract(conn, token_address)
            symbol = erc20.symbol()
            click.echo(click.style("From:   ", dim=True) + conn.address)
            click.echo(click.style("To:     ", dim=True) + recipient)
            click.echo(click.style("Amount: ", dim=True) + f"{amount} {symbol}")

            result = erc20.transfer(recipient, amount)
            click.secho("Transfer successful!", fg="green", bold=True)
            click.echo(click.style("TX: ", dim=True) + result["tx_hash"])
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)
