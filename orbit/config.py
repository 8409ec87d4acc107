"""Chain configuration and signer loading."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
import tomllib
from typing import Any, Dict, Mapping, Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey
import tomli_w

from .constants import CLUSTER_URLS, MAINNET_PROFILE, TESTNET_PROFILE
from .errors import ConfigurationError

CONFIG_DIR = Path.home() / ".orbit"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_KEYPAIR_PATH = Path.home() / ".config" / "solana" / "id.json"


def config_path(override: str | Path | None = None) -> Path:
    if override:
        return Path(override).expanduser()
    env_path = os.environ.get("ORBIT_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_PATH


def load_document(path: str | Path | None = None) -> Dict[str, Any]:
    path = config_path(path)
    if not path.exists():
        return {}
    try:
        return tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Unable to parse config file {path}: {exc}") from exc


def save_document(data: Mapping[str, Any], path: str | Path | None = None) -> Path:
    path = config_path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomli_w.dumps(dict(data)))
    return path


def set_value(data: Dict[str, Any], key_path: str, value: str) -> Dict[str, Any]:
    """Set ``a.b.c`` in ``data``, creating intermediate tables."""
    keys = [key.strip() for key in key_path.split(".")]
    if not keys or any(not key for key in keys):
        raise ConfigurationError(f"Invalid key path '{key_path}'. Use key.nestedKey=value")
    current = data
    for key in keys[:-1]:
        nested = current.get(key)
        if not isinstance(nested, dict):
            nested = {}
            current[key] = nested
        current = nested
    current[keys[-1]] = value
    return data


def parse_assignment(raw: str) -> tuple[str, str]:
    if "=" not in raw:
        raise ConfigurationError("Invalid format. Use --set key.nestedKey=value")
    key_path, value = raw.split("=", 1)
    if not key_path.strip():
        raise ConfigurationError("Invalid format. Use --set key.nestedKey=value")
    return key_path.strip(), value.strip()


def profile_name(env: str) -> str:
    return MAINNET_PROFILE if env == "mainnet" else TESTNET_PROFILE


@dataclass(frozen=True)
class ChainConfig:
    profile: str
    network_id: str
    rpc_url: str
    contracts: Mapping[str, str] = field(default_factory=dict)

    def has(self, contract: str) -> bool:
        return bool(self.contracts.get(contract))

    def address(self, contract: str) -> Pubkey:
        raw = self.contracts.get(contract)
        if not raw:
            raise ConfigurationError(
                f"Contract address for '{contract}' not set in [{self.profile}] configuration"
            )
        try:
            return Pubkey.from_string(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Contract address for '{contract}' is not a valid pubkey: {raw}") from exc


def chain_config_from_document(
    data: Mapping[str, Any],
    env: str,
    rpc_override: Optional[str] = None,
) -> ChainConfig:
    profile = profile_name(env)
    section = data.get(profile)
    if not isinstance(section, dict):
        raise ConfigurationError(
            f"Solana configuration [{profile}] not found. Please set it using the \"config\" command."
        )
    network_id = section.get("network-id") or ("mainnet-beta" if env == "mainnet" else "testnet")
    rpc_url = rpc_override or section.get("rpc-url") or CLUSTER_URLS.get(network_id)
    if not rpc_url:
        raise ConfigurationError(f"Unknown network ID '{network_id}'")
    contracts: Dict[str, str] = {}
    for name, entry in section.items():
        if not isinstance(entry, dict):
            continue
        address = entry.get("contract-address", entry.get("contractAddress"))
        if isinstance(address, str):
            contracts[name] = address.strip()
    return ChainConfig(profile=profile, network_id=network_id, rpc_url=rpc_url, contracts=contracts)


def load_chain_config(env: str, path: str | Path | None = None, rpc_override: Optional[str] = None) -> ChainConfig:
    return chain_config_from_document(load_document(path), env, rpc_override=rpc_override)


def load_keypair(path: str | Path | None = None) -> Keypair:
    if path:
        keypair_path = Path(path).expanduser().resolve()
        if not keypair_path.exists():
            raise ConfigurationError(f"Sender keypair file not found at path: {keypair_path}")
    else:
        keypair_path = DEFAULT_KEYPAIR_PATH
        if not keypair_path.exists():
            raise ConfigurationError(
                f"Default Solana keypair file not found at path: {keypair_path}. "
                "Please provide a keypair file using the --sender option."
            )
    try:
        raw = json.loads(keypair_path.read_text())
        return Keypair.from_bytes(bytes(raw))
    except (OSError, ValueError, TypeError) as exc:
        raise ConfigurationError(f"Failed to load keypair from path '{keypair_path}': {exc}") from exc
