"""
Init - Create a local wallet for explicit-key sessions.

Flow:
1. Reuse the key in ~/.bepro/.env if present (unless --force)
2. Otherwise generate a new secp256k1 key and save it
3. Fill in default settings that are not set yet
"""

from __future__ import annotations

from typing import Optional

import click
from dotenv import dotenv_values, set_key

from .. import config
from ..connection.account import generate_account, get_address, load_private_key, save_private_key

# Written once so the .env documents what can be configured
_DEFAULTS: dict[str, str] = {
    "WEB3_HOST_PROVIDER": config.ETH_URL_TESTNET,
    "RPC_TIMEOUT": str(config.DEFAULT_TIMEOUT),
}


def _ensure_defaults(env_path) -> None:
    """Add default keys missing from the .env; user values are preserved."""
    existing = dotenv_values(env_path) if env_path.exists() else {}
    for key, value in _DEFAULTS.items():
        if key not in existing:
            set_key(str(env_path), key, value, quote_mode="never")


@click.command()
@click.option("--force", is_flag=True, help="Replace an existing key")
@click.option("--key", "private_key", default=None, help="Import this private key instead of generating one")
def init(force: bool, private_key: Optional[str]) -> None:
    """Create (or import) the wallet key used for signing."""
    env_path = config.BEPRO_ENV

    existing: Optional[str] = None
    if not force and private_key is None:
        try:
            existing = load_private_key(env_path)
        except ValueError:
            existing = None

    if existing is not None:
        address = get_address(existing)
        click.echo(f"Wallet already exists: {address}")
        click.echo(click.style("Config: ", dim=True) + str(env_path))
        return

    if private_key is None:
        private_key, address = generate_account()
    else:
        if not private_key.startswith("0x"):
            private_key = "0x" + private_key
        try:
            address = get_address(private_key)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--key") from exc

    save_private_key(private_key, env_path)
    _ensure_defaults(env_path)

    click.secho("Wallet ready", fg="green", bold=True)
    click.echo(f"Address: {address}")
    click.echo(click.style("Config:  ", dim=True) + str(env_path))
    click.secho("IMPORTANT: Back up ~/.bepro/.env, a lost key cannot be recovered.", fg="yellow")
