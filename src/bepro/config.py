"""
Configuration - Network table and session settings.

Settings come from explicit arguments first, then environment variables,
then ``~/.bepro/.env`` (loaded with python-dotenv), then built-in defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Default config directory
BEPRO_DIR = Path.home() / ".bepro"
BEPRO_ENV = BEPRO_DIR / ".env"

ETH_URL_MAINNET = "https://ethereum-rpc.publicnode.com"
ETH_URL_TESTNET = "https://ethereum-sepolia-rpc.publicnode.com"
ETH_URL_LOCAL = "http://127.0.0.1:8545"

# First dev account of Anvil / Hardhat ("test test ... junk" mnemonic).
# Public knowledge; only ever used against a local node.
LOCALTEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

DEFAULT_TIMEOUT = 30

NETWORKS: dict[int, str] = {
    1: "Main",
    2: "Morden",
    3: "Ropsten",
    4: "Rinkeby",
    5: "Goerli",
    42: "Kovan",
    1337: "Local",
    31337: "Local",
    11155111: "Sepolia",
}


def network_name(chain_id: int) -> str:
    return NETWORKS.get(chain_id, "Unknown")


@dataclass(frozen=True)
class Settings:
    web3_host: str
    private_key: Optional[str] = None
    chain_id: Optional[int] = None
    timeout: float = DEFAULT_TIMEOUT
    contracts_out: Optional[Path] = None


def load_env(env_path: Optional[Path] = None) -> None:
    """Load ``~/.bepro/.env`` into the process environment (no override)."""
    env_path = env_path or BEPRO_ENV
    if env_path.exists():
        load_dotenv(env_path, override=False)


def _normalize_key(private_key: Optional[str]) -> Optional[str]:
    if not private_key:
        return None
    private_key = private_key.strip()
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    return private_key


def load_settings(
    web3_host: Optional[str] = None,
    private_key: Optional[str] = None,
    *,
    test: bool = False,
    mainnet: bool = True,
    localtest: bool = False,
    env_path: Optional[Path] = None,
    contracts_out: Optional[Path] = None,
) -> Settings:
    """
    Resolve the node URL and account material for a session.

    Args:
        web3_host: Explicit node URL (wins over everything else)
        private_key: Explicit private key
        test: Automated-test session; the key comes from WEB3_PRIVATE_KEY
        mainnet: Default to the mainnet endpoint instead of the testnet one
        localtest: Use a local dev node and its well-known first key
        env_path: Alternative .env file
        contracts_out: Compiled artifacts directory (wins over BEPRO_CONTRACTS_OUT)

    Returns:
        Settings for Web3Connection
    """
    load_env(env_path)

    if web3_host is None:
        web3_host = os.environ.get("WEB3_HOST_PROVIDER")
    if web3_host is None:
        if localtest:
            web3_host = ETH_URL_LOCAL
        else:
            web3_host = ETH_URL_MAINNET if mainnet else ETH_URL_TESTNET

    if private_key is None and (test or localtest):
        private_key = os.environ.get("WEB3_PRIVATE_KEY")
        if private_key is None and localtest:
            private_key = LOCALTEST_PRIVATE_KEY

    chain_id = os.environ.get("CHAIN_ID")
    if contracts_out is None:
        out_dir = os.environ.get("BEPRO_CONTRACTS_OUT")
        contracts_out = Path(out_dir) if out_dir else None

    return Settings(
        web3_host=web3_host,
        private_key=_normalize_key(private_key),
        chain_id=int(chain_id) if chain_id else None,
        timeout=float(os.environ.get("RPC_TIMEOUT", DEFAULT_TIMEOUT)),
        contracts_out=Path(contracts_out).expanduser() if contracts_out else None,
    )
