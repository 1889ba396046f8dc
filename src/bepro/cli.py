"""
Bepro CLI

Command-line access to the SDK for quick checks against a node.

Commands:
  init      - Create a local wallet key in ~/.bepro/.env
  whoami    - Show current wallet address
  network   - Show the connected network
  balance   - Show ETH balance
  token     - ERC-20 token queries and transfers
"""

from __future__ import annotations

import sys
from typing import Optional

import click
import httpx

from . import __version__
from .connection.account import get_address, load_private_key
from .errors import BeproError
from .utils import setup_logging


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="bepro")
@click.option(
    "--rpc-url",
    envvar="WEB3_HOST_PROVIDER",
    default=None,
    help="Node JSON-RPC URL (default: public mainnet / testnet endpoint)",
)
@click.option("--testnet", is_flag=True, help="Use the default testnet endpoint")
@click.option(
    "--log-level",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity",
)
@click.pass_context
def cli(ctx: click.Context, rpc_url: Optional[str], testnet: bool, log_level: str) -> None:
    """Bepro: smart-contract SDK command line."""
    setup_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj.setdefault("transport", None)
    ctx.obj["rpc_url"] = rpc_url
    ctx.obj["mainnet"] = not testnet
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# ============ Commands ============

from .commands.connect import fail, open_connection
from .commands.init import init
from .commands.token import token

cli.add_command(init)
cli.add_command(token)


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        pk = load_private_key()
        address = get_address(pk)
        click.echo(f"Address: {address}")
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Run 'bepro init' to create one.")
        sys.exit(1)


@cli.command()
@click.pass_context
def network(ctx: click.Context) -> None:
    """Show the network the node is on."""
    try:
        with open_connection(ctx, need_account=False) as conn:
            chain_id = conn.get_chain_id()
            block = conn.rpc.block_number()
            click.echo(f"Node:     {conn.web3_host}")
            click.echo(f"Network:  {conn.get_network()} (chain id {chain_id})")
            click.echo(f"Block:    {block}")
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)


@cli.command()
@click.option("--address", default=None, help="Address to query (default: your wallet)")
@click.pass_context
def balance(ctx: click.Context, address: Optional[str]) -> None:
    """Show ETH balance."""
    try:
        with open_connection(ctx, need_account=address is None) as conn:
            target = address or conn.address
            click.echo(f"{target}: {conn.get_eth_balance(target):f} ETH")
    except (BeproError, httpx.HTTPError) as exc:
        fail(exc)


# ============ Entry Points ============


def main() -> None:
    """Bepro CLI entry point."""
    cli()


if __name__ == "__main__":
    main()
