"""
ABI Loader - Contract artifacts, selectors and call encoding.

Bundled ABIs live in ``bepro/abis/<Name>.json``.  Compiled artifacts with
deployment bytecode can be supplied through ``BEPRO_CONTRACTS_OUT``
(Foundry ``<Name>.sol/<Name>.json`` or flat ``<Name>.json`` layout); they
take precedence over the bundled files.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Sequence

import jsonschema
from eth_abi import decode, encode

from ..utils import keccak256, to_checksum_address

BUNDLED_ABI_DIR = Path(__file__).resolve().parent.parent / "abis"

ARTIFACT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["abi"],
    "properties": {
        "abi": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["type"],
                "properties": {
                    "type": {
                        "enum": ["function", "constructor", "event", "error", "fallback", "receive"],
                    },
                    "name": {"type": "string"},
                    "inputs": {"type": "array", "items": {"$ref": "#/$defs/param"}},
                    "outputs": {"type": "array", "items": {"$ref": "#/$defs/param"}},
                },
            },
        },
        "bytecode": {
            "oneOf": [
                {"type": "string"},
                {"type": "object", "properties": {"object": {"type": "string"}}},
            ],
        },
    },
    "$defs": {
        "param": {
            "type": "object",
            "required": ["type"],
            "properties": {
                "name": {"type": "string"},
                "type": {"type": "string"},
                "indexed": {"type": "boolean"},
                "components": {"type": "array", "items": {"$ref": "#/$defs/param"}},
            },
        },
    },
}


class ArtifactError(ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


def validate_artifact(artifact: dict[str, Any], source: str = "<artifact>") -> None:
    validator_cls = jsonschema.validators.validator_for(ARTIFACT_SCHEMA)
    validator = validator_cls(ARTIFACT_SCHEMA)
    errors = sorted(validator.iter_errors(artifact), key=lambda e: list(e.path))
    if errors:
        formatted = [
            f"{'/'.join(str(part) for part in err.path) or '<root>'}: {err.message}"
            for err in errors
        ]
        raise ArtifactError(f"Invalid contract artifact {source}.", errors=formatted)


def _candidate_paths(contract_name: str, contracts_out: Optional[Path] = None) -> list[Path]:
    paths = []
    out_dir = contracts_out or os.environ.get("BEPRO_CONTRACTS_OUT")
    if out_dir:
        root = Path(out_dir).expanduser()
        paths.append(root / f"{contract_name}.sol" / f"{contract_name}.json")
        paths.append(root / f"{contract_name}.json")
    paths.append(BUNDLED_ABI_DIR / f"{contract_name}.json")
    return paths


@lru_cache(maxsize=32)
def _load_artifact_cached(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        artifact = json.load(f)
    validate_artifact(artifact, str(path))
    return artifact


def load_artifact(contract_name: str, contracts_out: Optional[Path] = None) -> dict[str, Any]:
    """
    Load the compiled artifact for a contract.

    Args:
        contract_name: Contract name (e.g., "ERC20", "PredictionMarket")
        contracts_out: Compiled artifacts directory (default: BEPRO_CONTRACTS_OUT)

    Returns:
        Artifact dict with at least an ``abi`` key

    Raises:
        FileNotFoundError: If no artifact exists for the name
    """
    for path in _candidate_paths(contract_name, contracts_out):
        if path.exists():
            return _load_artifact_cached(path)
    raise FileNotFoundError(
        f"ABI not found for {contract_name}. "
        f"Set BEPRO_CONTRACTS_OUT to your compiled contracts directory."
    )


def load_abi(contract_name: str, contracts_out: Optional[Path] = None) -> list[dict[str, Any]]:
    return load_artifact(contract_name, contracts_out)["abi"]


def load_bytecode(contract_name: str, contracts_out: Optional[Path] = None) -> str:
    """
    Load deployment bytecode for a contract.

    Returns:
        Hex-encoded bytecode string (0x-prefixed)

    Raises:
        ValueError: If the artifact carries no bytecode
    """
    artifact = load_artifact(contract_name, contracts_out)
    bytecode = artifact.get("bytecode", "")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object", "")
    if not bytecode or bytecode == "0x":
        raise ValueError(
            f"No bytecode in artifact for {contract_name}. "
            f"Pass bytecode explicitly or point BEPRO_CONTRACTS_OUT at compiled artifacts."
        )
    if not bytecode.startswith("0x"):
        bytecode = "0x" + bytecode
    return bytecode


# ---------------------------------------------------------------------------
# Encoding / decoding
# ---------------------------------------------------------------------------

def _canonical_type(param: dict[str, Any]) -> str:
    """Solidity type as it appears in signatures; tuples are expanded."""
    type_ = param["type"]
    if type_.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){type_[len('tuple'):]}"
    return type_


def _types(params: Sequence[dict[str, Any]]) -> list[str]:
    return [_canonical_type(p) for p in params]


def _tuple_components(type_: str) -> list[str]:
    """Split ``(a,(b,c)[],d)`` into its top-level component types."""
    parts, depth, current = [], 0, ""
    for ch in type_[1:-1]:
        if ch == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        current += ch
    if current:
        parts.append(current)
    return parts


def _checksum_value(type_: str, value: Any) -> Any:
    """
    Checksum every ``address`` inside a decoded value.

    eth-abi returns checksummed addresses up to 5.x and lowercase ones
    from 6.0; callers always get EIP-55 form.
    """
    if type_.endswith("]"):
        element = type_[: type_.rindex("[")]
        return tuple(_checksum_value(element, item) for item in value)
    if type_.startswith("("):
        return tuple(
            _checksum_value(component, item)
            for component, item in zip(_tuple_components(type_), value)
        )
    if type_ == "address":
        return to_checksum_address(value)
    return value


def _decode(types: list[str], data: bytes) -> tuple:
    return tuple(_checksum_value(t, v) for t, v in zip(types, decode(types, data)))


def find_function(abi: list, function_name: str, arg_count: Optional[int] = None) -> dict[str, Any]:
    """
    Find a function entry by name.

    Overloads are told apart by argument count.
    """
    candidates = [
        entry for entry in abi
        if entry.get("type") == "function" and entry.get("name") == function_name
    ]
    if arg_count is not None and len(candidates) > 1:
        candidates = [c for c in candidates if len(c.get("inputs", [])) == arg_count]
    if not candidates:
        raise ValueError(f"Function {function_name} not found in ABI")
    return candidates[0]


def find_event(abi: list, event_name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "event" and entry.get("name") == event_name:
            return entry
    raise ValueError(f"Event {event_name} not found in ABI")


def signature(entry: dict[str, Any]) -> str:
    return f"{entry['name']}({','.join(_types(entry.get('inputs', [])))})"


def function_selector(entry: dict[str, Any]) -> bytes:
    return keccak256(signature(entry).encode("utf-8"))[:4]


def event_topic(entry: dict[str, Any]) -> str:
    return "0x" + keccak256(signature(entry).encode("utf-8")).hex()


def event_filter_topics(entry: dict[str, Any], filters: dict[str, Any]) -> list[Optional[str]]:
    """
    eth_getLogs ``topics`` for an event, matching indexed arguments by value.

    Unfiltered positions are None (wildcard); trailing wildcards are dropped.
    """
    indexed = [p for p in entry.get("inputs", []) if p.get("indexed")]
    unknown = set(filters) - {p["name"] for p in indexed}
    if unknown:
        raise ValueError(f"{entry['name']} has no indexed argument {sorted(unknown)[0]}")

    topics: list[Optional[str]] = [event_topic(entry)]
    for param in indexed:
        if param["name"] not in filters:
            topics.append(None)
            continue
        type_ = _canonical_type(param)
        if type_ in ("string", "bytes") or type_.endswith("]") or type_.startswith("("):
            raise ValueError(f"Cannot filter on dynamic indexed argument {param['name']}")
        topics.append("0x" + encode([type_], [filters[param["name"]]]).hex())

    while topics[-1] is None:
        topics.pop()
    return topics


def encode_function_call(abi: list, function_name: str, args: Sequence[Any]) -> str:
    """
    ABI-encode a function call.

    Returns:
        0x-prefixed hex encoded calldata
    """
    func = find_function(abi, function_name, len(args))
    input_types = _types(func.get("inputs", []))
    if len(input_types) != len(args):
        raise ValueError(
            f"{function_name} expects {len(input_types)} arguments, got {len(args)}"
        )

    selector = function_selector(func)
    encoded_args = encode(input_types, list(args)) if args else b""
    return "0x" + selector.hex() + encoded_args.hex()


def _hex_to_bytes(data: str) -> bytes:
    return bytes.fromhex(data[2:] if data.startswith("0x") else data)


def decode_function_result(abi: list, function_name: str, data: str, arg_count: Optional[int] = None) -> Any:
    """
    ABI-decode a function call result.

    Returns:
        None for no outputs, the value for one output, a tuple otherwise
    """
    func = find_function(abi, function_name, arg_count)
    output_types = _types(func.get("outputs", []))
    if not output_types:
        return None

    decoded = _decode(output_types, _hex_to_bytes(data))
    if len(decoded) == 1:
        return decoded[0]
    return decoded


def encode_constructor_args(abi: list, args: Sequence[Any]) -> bytes:
    constructor = next((e for e in abi if e.get("type") == "constructor"), None)
    if constructor is None:
        if args:
            raise ValueError("Constructor not found in ABI, but constructor_args were provided.")
        return b""
    input_types = _types(constructor.get("inputs", []))
    if len(input_types) != len(args):
        raise ValueError(
            f"Constructor expects {len(input_types)} arguments, got {len(args)}"
        )
    return encode(input_types, list(args)) if args else b""


def decode_event_log(abi: list, event_name: str, log: dict[str, Any]) -> Optional[dict[str, Any]]:
    """
    Decode a receipt / eth_getLogs entry for the named event.

    Returns:
        Dict of argument name -> value, or None if the log is another event
    """
    event = find_event(abi, event_name)
    topics = [t.lower() for t in log.get("topics", [])]
    if not topics or topics[0] != event_topic(event).lower():
        return None

    inputs = event.get("inputs", [])
    indexed = [p for p in inputs if p.get("indexed")]
    plain = [p for p in inputs if not p.get("indexed")]

    values: dict[str, Any] = {}
    for param, topic in zip(indexed, topics[1:]):
        type_ = _canonical_type(param)
        if type_ in ("string", "bytes") or type_.endswith("]") or type_.startswith("("):
            # Dynamic indexed values are stored as their hash
            values[param["name"]] = _hex_to_bytes(topic)
        else:
            values[param["name"]] = _decode([type_], _hex_to_bytes(topic))[0]

    if plain:
        decoded = _decode(_types(plain), _hex_to_bytes(log.get("data", "0x")))
        for param, value in zip(plain, decoded):
            values[param["name"]] = value

    return values
