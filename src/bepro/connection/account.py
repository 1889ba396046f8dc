"""
ECDSA / secp256k1 key management.

Keys for the explicit-key connection mode are stored in ~/.bepro/.env as
WEB3_PRIVATE_KEY (hex format).  Node-managed accounts never touch this
module: the node holds their keys.

Dependencies: eth-account (no full web3.py needed)
"""

from __future__ import annotations

import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, load_dotenv
from eth_account import Account
from eth_account.signers.local import LocalAccount

from .. import config
from ..utils import to_checksum_address


@dataclass(frozen=True)
class ConnectedAccount:
    """
    The account a connection acts as.

    Attributes:
        address: Checksummed address
        local: Signing account when the private key is held locally;
            None when the node signs (node-managed / injected wallet)
    """
    address: str
    local: Optional[LocalAccount] = None

    @property
    def is_local(self) -> bool:
        return self.local is not None

    @classmethod
    def from_key(cls, private_key: str) -> "ConnectedAccount":
        local = get_account(private_key)
        return cls(address=local.address, local=local)

    @classmethod
    def node_managed(cls, address: str) -> "ConnectedAccount":
        return cls(address=to_checksum_address(address))


def generate_account() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, address)
    """
    private_key = "0x" + secrets.token_hex(32)
    account = Account.from_key(private_key)
    return private_key, account.address


def save_private_key(private_key: str, env_path: Optional[Path] = None) -> Path:
    """
    Save private key to .env file, preserving other entries.

    Args:
        private_key: 0x-prefixed hex private key
        env_path: Path to .env file (default: ~/.bepro/.env)

    Returns:
        Path to the saved .env file
    """
    env_path = env_path or config.BEPRO_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = {k: v for k, v in dotenv_values(env_path).items() if v is not None}

    existing["WEB3_PRIVATE_KEY"] = private_key

    lines = [f"{k}={v}" for k, v in existing.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(env_path: Optional[Path] = None) -> str:
    """
    Load private key from .env file or environment.

    Returns:
        0x-prefixed hex private key

    Raises:
        ValueError: If WEB3_PRIVATE_KEY is not set anywhere
    """
    env_path = env_path or config.BEPRO_ENV

    if env_path.exists():
        load_dotenv(env_path, override=True)

    private_key = os.environ.get("WEB3_PRIVATE_KEY")
    if not private_key:
        raise ValueError(
            f"WEB3_PRIVATE_KEY not found. Run 'bepro init' or set "
            f"WEB3_PRIVATE_KEY in {env_path}"
        )

    if not private_key.startswith("0x"):
        private_key = "0x" + private_key

    return private_key


def get_account(private_key: Optional[str] = None) -> LocalAccount:
    """
    Get an eth-account LocalAccount from a private key.

    If private_key is None, it is loaded from .env.
    """
    if private_key is None:
        private_key = load_private_key()
    return Account.from_key(private_key)


def get_address(private_key: Optional[str] = None) -> str:
    return get_account(private_key).address
