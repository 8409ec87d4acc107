"""Parameter parsing helpers for composer routines."""

from __future__ import annotations

import re
from typing import Any, List, Mapping, Optional

from solders.pubkey import Pubkey

from .errors import ConfigurationError

U8_MAX = 2**8 - 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1

_HEX_RE = re.compile(r"^[0-9a-fA-F]*$")
_DECIMAL_RE = re.compile(r"^[0-9]+$")
_HEX_INT_RE = re.compile(r"^0[xX][0-9a-fA-F]+$")

# camelCase parameter spellings and their canonical names.
PARAM_ALIASES = {
    "feeHandler": "fee_handler",
    "dstChainId": "dst_chain_id",
    "dstAddress": "dst_address",
}


def canonical_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Rename aliased keys; a canonical key given alongside its alias is an error."""
    result = dict(params)
    for alias, canonical in PARAM_ALIASES.items():
        if alias not in result:
            continue
        if canonical in result:
            raise ConfigurationError(f"Parameters '{alias}' and '{canonical}' are the same; give only one")
        result[canonical] = result.pop(alias)
    return result


def require(params: Mapping[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None or value == "":
        raise ConfigurationError(f"Missing required parameter '{key}'")
    return value


def ensure_int(value: Any, name: str, maximum: int = U64_MAX) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be an integer")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        text = value.strip()
        if _HEX_INT_RE.match(text):
            number = int(text, 16)
        elif _DECIMAL_RE.match(text):
            number = int(text, 10)
        else:
            raise ConfigurationError(f"{name} must be numeric, got '{value}'")
    else:
        raise ConfigurationError(f"{name} must be an integer")
    if number < 0 or number > maximum:
        raise ConfigurationError(f"{name} must be within 0..{maximum}")
    return number


def int_param(params: Mapping[str, Any], key: str, maximum: int = U64_MAX) -> int:
    return ensure_int(require(params, key), key, maximum)


def ensure_str(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{name} must be a string")
    return value


def str_param(params: Mapping[str, Any], key: str) -> str:
    return ensure_str(require(params, key), key)


def parse_hex(value: Any, name: str) -> bytes:
    text = ensure_str(value, name).strip()
    if text.lower().startswith("0x"):
        text = text[2:]
    if len(text) % 2 or not _HEX_RE.match(text):
        raise ConfigurationError(f"{name} must be hex-encoded, got '{value}'")
    return bytes.fromhex(text)


def hex_param(params: Mapping[str, Any], key: str, default: Optional[bytes] = None) -> bytes:
    value = params.get(key)
    if value is None:
        if default is None:
            raise ConfigurationError(f"Missing required parameter '{key}'")
        return default
    return parse_hex(value, key)


def parse_byte_array(value: Any, name: str) -> bytes:
    """Accept hex text or a JSON array of byte values."""
    if isinstance(value, list):
        if not all(isinstance(b, int) and not isinstance(b, bool) and 0 <= b <= U8_MAX for b in value):
            raise ConfigurationError(f"{name} must be an array of byte values")
        return bytes(value)
    return parse_hex(value, name)


def parse_pubkey(value: Any, name: str) -> Pubkey:
    text = ensure_str(value, name).strip()
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise ConfigurationError(f"{name} is not a valid pubkey: '{value}'") from exc


def pubkey_param(params: Mapping[str, Any], key: str) -> Pubkey:
    return parse_pubkey(require(params, key), key)


def string_list(params: Mapping[str, Any], key: str, default: Optional[List[str]] = None) -> List[str]:
    value = params.get(key)
    if value is None:
        if default is None:
            raise ConfigurationError(f"Missing required parameter '{key}'")
        return list(default)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigurationError(f"{key} must be an array of strings")
    return list(value)


def network_address(value: Any, name: str = "to") -> tuple[str, str]:
    """Split ``<network-id>/<address>`` into its parts."""
    text = ensure_str(value, name)
    if text != text.strip():
        raise ConfigurationError(f"{name} must not have surrounding whitespace, got '{value}'")
    nid, sep, account = text.partition("/")
    if not sep or not nid or not account:
        raise ConfigurationError(f"{name} must be a network address '<network-id>/<address>', got '{value}'")
    return nid, account
