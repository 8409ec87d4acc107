"""Program-derived address helpers."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Sequence, Tuple, Union

from solders.pubkey import Pubkey

from .constants import SEQUENCE_WIDTH, SMALL_INDEX_WIDTH
from .errors import ConfigurationError, DerivationExhausted

log = logging.getLogger(__name__)

MAX_SEED_LEN = 32
MAX_SEEDS = 16
MAX_BUMP = 255


@dataclass(frozen=True)
class IntSeed:
    """Unsigned integer seed, encoded big-endian at a fixed width."""

    value: int
    width: int

    def encode(self) -> bytes:
        return be_bytes(self.value, self.width)


Seed = Union[str, bytes, Pubkey, IntSeed]


def be_bytes(value: int, width: int) -> bytes:
    if width not in (SMALL_INDEX_WIDTH, SEQUENCE_WIDTH):
        raise ValueError(f"unsupported seed width {width}")
    if value < 0 or value >= 1 << (8 * width):
        raise ConfigurationError(f"seed value {value} does not fit in {width} bytes")
    return value.to_bytes(width, "big")


def from_be_bytes(raw: bytes, width: int) -> int:
    if len(raw) != width:
        raise ValueError(f"expected {width} seed bytes, got {len(raw)}")
    return int.from_bytes(raw, "big")


def u64_seed(value: int) -> IntSeed:
    return IntSeed(value, SMALL_INDEX_WIDTH)


def u128_seed(value: int) -> IntSeed:
    return IntSeed(value, SEQUENCE_WIDTH)


def seed_bytes(seed: Seed) -> bytes:
    if isinstance(seed, IntSeed):
        raw = seed.encode()
    elif isinstance(seed, Pubkey):
        raw = bytes(seed)
    elif isinstance(seed, str):
        raw = seed.encode()
    elif isinstance(seed, (bytes, bytearray)):
        raw = bytes(seed)
    else:
        raise TypeError(f"unsupported seed type: {type(seed).__name__}")
    if len(raw) > MAX_SEED_LEN:
        raise ConfigurationError(f"seed longer than {MAX_SEED_LEN} bytes: {raw!r}")
    return raw


def find_program_address(seeds: Sequence[Seed], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """Search bumps from 255 down to 1 for the first off-curve address.

    The result depends only on ``seeds`` and ``program_id``.
    """
    encoded: List[bytes] = [seed_bytes(seed) for seed in seeds]
    if len(encoded) + 1 > MAX_SEEDS:
        raise ConfigurationError(f"at most {MAX_SEEDS - 1} seeds are allowed")
    for bump in range(MAX_BUMP, 0, -1):
        try:
            address = Pubkey.create_program_address([*encoded, bytes([bump])], program_id)
        except Exception:  # noqa: BLE001 - solders raises PubkeyError for on-curve points
            continue
        log.debug("derived %s (bump %d) from %r under %s", address, bump, encoded, program_id)
        return address, bump
    raise DerivationExhausted(f"no viable bump for seeds {encoded!r} under {program_id}")


def derive(program_id: Pubkey, *seeds: Seed) -> Pubkey:
    return find_program_address(seeds, program_id)[0]


def parse_seed_spec(spec: str) -> Seed:
    """Parse ``kind:value`` seeds: string, hex, pubkey, u8, u64be, u128be."""
    if ":" not in spec:
        raise ConfigurationError(f"seed must be kind:value, got '{spec}'")
    kind, value = spec.split(":", 1)
    kind = kind.strip().lower()
    try:
        if kind == "string":
            return value
        if kind == "hex":
            return bytes.fromhex(value[2:] if value.lower().startswith("0x") else value)
        if kind == "pubkey":
            return Pubkey.from_string(value)
        if kind == "u8":
            number = int(value, 0)
            if number < 0 or number > 0xFF:
                raise ConfigurationError("u8 seed must fit in one byte")
            return bytes([number])
        if kind == "u64be":
            return u64_seed(int(value, 0))
        if kind == "u128be":
            return u128_seed(int(value, 0))
    except ValueError as exc:
        raise ConfigurationError(f"invalid {kind} seed '{value}': {exc}") from exc
    raise ConfigurationError(f"unknown seed kind '{kind}' (expected string|hex|pubkey|u8|u64be|u128be)")
