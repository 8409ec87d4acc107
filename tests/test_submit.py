import unittest

from solana.rpc.core import RPCException
from solders.compute_budget import set_compute_unit_limit

from fakes import ASSET_MANAGER, BLOCKHASH, CONNECTIONS, FakeRpc, context, registry_accounts, signer
from orbit.compose import Composition
from orbit.dispatch import dispatch
from orbit.errors import SubmissionError
from orbit.submit import build_transaction, submit, transaction_instructions

TO = "0x2.icon/hx0000000000000000000000000000000000000001"
DEPOSIT = {"amount": 1000, "to": TO, "data": "0x"}


class SubmitTests(unittest.TestCase):
    def test_deposit_native_end_to_end(self) -> None:
        rpc = FakeRpc(registry_accounts())
        ctx = context(rpc)
        signature = submit(ctx, dispatch(ctx, "asset-manager", "deposit_native", DEPOSIT))

        self.assertEqual(len(rpc.sent), 1)
        tx = rpc.sent[0]
        self.assertEqual(signature, tx.signatures[0])
        self.assertEqual(rpc.confirmed, [signature])
        self.assertEqual(tx.message.recent_blockhash, BLOCKHASH)
        self.assertEqual(tx.message.account_keys[0], ctx.sender)

        budget, deposit = tx.message.instructions
        keys = tx.message.account_keys
        self.assertEqual(keys[deposit.program_id_index], ASSET_MANAGER)
        self.assertEqual(len(deposit.accounts), 13 + 4 + 3 * len(CONNECTIONS))
        self.assertEqual(bytes(budget.data), bytes(set_compute_unit_limit(1_000_000).data))

    def test_compute_budget_is_prepended(self) -> None:
        ctx = context()
        composition = dispatch(ctx, "asset-manager", "deposit_native", DEPOSIT)
        instructions = transaction_instructions(composition)
        self.assertEqual(instructions[0], set_compute_unit_limit(1_000_000))
        self.assertEqual(instructions[1:], composition.instructions)

    def test_no_compute_budget_for_admin_calls(self) -> None:
        ctx = context()
        composition = dispatch(ctx, "xcall", "set_protocol_fee", {"fee": 1})
        self.assertEqual(transaction_instructions(composition), composition.instructions)

    def test_rejected_send_is_not_retried(self) -> None:
        rpc = FakeRpc(registry_accounts(), send_error=RPCException("blockhash not found"))
        ctx = context(rpc)
        with self.assertRaises(SubmissionError):
            submit(ctx, dispatch(ctx, "asset-manager", "deposit_native", DEPOSIT))
        self.assertEqual(len(rpc.sent), 1)
        self.assertEqual(rpc.confirmed, [])

    def test_reinvocation_after_failure_is_identical(self) -> None:
        rpc = FakeRpc(registry_accounts(), send_error=RPCException("node unhealthy"))
        ctx = context(rpc)
        for _ in range(2):
            with self.assertRaises(SubmissionError):
                submit(ctx, dispatch(ctx, "asset-manager", "deposit_native", DEPOSIT))
        first, second = rpc.sent
        self.assertEqual(bytes(first), bytes(second))

    def test_failed_confirmation_raises(self) -> None:
        rpc = FakeRpc(registry_accounts(), confirm_error={"InstructionError": [1, "Custom"]})
        ctx = context(rpc)
        with self.assertRaises(SubmissionError):
            submit(ctx, dispatch(ctx, "asset-manager", "deposit_native", DEPOSIT))
        self.assertEqual(len(rpc.confirmed), 1)

    def test_empty_composition_rejected(self) -> None:
        with self.assertRaises(ValueError):
            build_transaction(Composition(instructions=[]), signer(), BLOCKHASH)


if __name__ == "__main__":
    unittest.main()
