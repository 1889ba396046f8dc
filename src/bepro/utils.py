from __future__ import annotations

import logging
import re
from typing import Optional, Union

from eth_hash.auto import keccak

_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")

ZERO_ADDRESS = "0x" + "0" * 40


def keccak256(data: bytes) -> bytes:
    # Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(data)


def is_address(value: object) -> bool:
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    if not is_address(address):
        raise ValueError(f"Invalid address: {address!r}")
    addr = address.lower().replace("0x", "")
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


def to_hex(value: int) -> str:
    """Encode an int as a JSON-RPC quantity."""
    return hex(value)


def from_hex(value: Union[str, int, None]) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """
    Configure stdlib logging for scripts and the CLI.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional path for an additional file handler
    """
    log_level = getattr(logging, level.upper())
    fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(level=log_level, format=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(logging.Formatter(fmt))
        logging.getLogger().addHandler(file_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
