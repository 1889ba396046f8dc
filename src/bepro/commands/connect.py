from __future__ import annotations

import sys

import click

from ..connection.account import load_private_key
from ..connection.web3_connection import Web3Connection


def fail(exc: Exception) -> None:
    """Print an error and exit with its code."""
    click.secho(f"ERROR: {exc}", fg="red")
    sys.exit(getattr(exc, "exit_code", 1))


def open_connection(ctx: click.Context, need_account: bool = True) -> Web3Connection:
    """
    Connection for a CLI command.

    Uses the saved wallet key when there is one, otherwise the first
    account the node manages (only when an account is needed).
    """
    obj = ctx.find_root().obj or {}
    try:
        private_key = load_private_key()
    except ValueError:
        private_key = None

    conn = Web3Connection(
        obj.get("rpc_url"),
        private_key,
        mainnet=obj.get("mainnet", True),
        transport=obj.get("transport"),
    )
    conn.start()
    if need_account:
        try:
            conn.login()
        except Exception:
            conn.close()
            raise
    return conn
