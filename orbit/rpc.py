"""Chain RPC capability used by the registry reader and the submitter."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol, Sequence

from solana.rpc.api import Client
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

log = logging.getLogger(__name__)


class ChainRpc(Protocol):
    def get_accounts_data(self, addresses: Sequence[Pubkey]) -> List[Optional[bytes]]:
        """Return raw account data in request order, ``None`` for missing accounts."""

    def latest_blockhash(self) -> Hash: ...

    def send_transaction(self, tx: Transaction) -> Signature: ...

    def confirm_transaction(self, signature: Signature) -> Optional[Any]:
        """Block until ``signature`` is confirmed; return the on-chain error, if any."""


class SolanaRpc:
    """``ChainRpc`` over a JSON-RPC endpoint at "confirmed" commitment."""

    def __init__(self, url: str, timeout: float = 30.0) -> None:
        self.url = url
        self.client = Client(url, commitment=Confirmed, timeout=timeout)

    def get_accounts_data(self, addresses: Sequence[Pubkey]) -> List[Optional[bytes]]:
        log.debug("getMultipleAccounts %s", [str(a) for a in addresses])
        resp = self.client.get_multiple_accounts(list(addresses), commitment=Confirmed)
        return [None if info is None else bytes(info.data) for info in resp.value]

    def latest_blockhash(self) -> Hash:
        return self.client.get_latest_blockhash(commitment=Confirmed).value.blockhash

    def send_transaction(self, tx: Transaction) -> Signature:
        opts = TxOpts(skip_preflight=False, preflight_commitment=Confirmed)
        return self.client.send_raw_transaction(bytes(tx), opts=opts).value

    def confirm_transaction(self, signature: Signature) -> Optional[Any]:
        resp = self.client.confirm_transaction(signature, commitment=Confirmed)
        statuses = resp.value
        status = statuses[0] if statuses else None
        return None if status is None else status.err
