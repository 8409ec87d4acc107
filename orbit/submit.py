"""Signing, submission and confirmation of composed transactions."""

from __future__ import annotations

import logging
from typing import List, Optional

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException, UnconfirmedTxError
from solders.compute_budget import set_compute_unit_limit
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.signature import Signature
from solders.transaction import Transaction

from .compose import Composition
from .context import CallContext
from .errors import SubmissionError

log = logging.getLogger(__name__)

RPC_ERRORS = (SolanaRpcException, RPCException, UnconfirmedTxError)


def transaction_instructions(composition: Composition) -> List[Instruction]:
    instructions = list(composition.instructions)
    if composition.compute_units is not None:
        instructions.insert(0, set_compute_unit_limit(composition.compute_units))
    return instructions


def build_transaction(composition: Composition, signer: Keypair, blockhash: Hash) -> Transaction:
    if not composition.instructions:
        raise ValueError("nothing to submit: composition has no instructions")
    tx = Transaction.new_with_payer(transaction_instructions(composition), signer.pubkey())
    tx.sign([signer], blockhash)
    return tx


def submit(ctx: CallContext, composition: Composition) -> Signature:
    """Sign and send once, then wait for "confirmed" commitment. Never retries."""
    try:
        blockhash = ctx.rpc.latest_blockhash()
    except RPC_ERRORS as exc:
        raise SubmissionError(f"Unable to fetch a recent blockhash: {exc}") from exc
    tx = build_transaction(composition, ctx.signer, blockhash)
    log.debug("sending %d instruction(s) with blockhash %s", len(tx.message.instructions), blockhash)
    try:
        signature = ctx.rpc.send_transaction(tx)
    except RPC_ERRORS as exc:
        raise SubmissionError(f"Transaction rejected: {exc}") from exc
    log.debug("sent %s, awaiting confirmation", signature)
    try:
        err: Optional[object] = ctx.rpc.confirm_transaction(signature)
    except RPC_ERRORS as exc:
        raise SubmissionError(f"Transaction {signature} not confirmed: {exc}") from exc
    if err is not None:
        raise SubmissionError(f"Transaction {signature} failed: {err}")
    return signature
