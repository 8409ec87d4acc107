"""Per-invocation context handed to every composer routine."""

from __future__ import annotations

from dataclasses import dataclass

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .config import ChainConfig
from .rpc import ChainRpc


@dataclass(frozen=True)
class CallContext:
    signer: Keypair
    rpc: ChainRpc
    chain: ChainConfig

    @property
    def sender(self) -> Pubkey:
        return self.signer.pubkey()
