import unittest
from unittest.mock import patch

from fakes import FakeRpc, context, registry_accounts
from orbit import dispatch as dispatch_module
from orbit.compose import Composition, Query
from orbit.dispatch import HANDLERS, Operation, contracts, dispatch, methods_for, resolve
from orbit.errors import UnsupportedOperation


class DispatchTests(unittest.TestCase):
    def test_every_operation_has_a_handler(self) -> None:
        self.assertEqual(set(HANDLERS), set(Operation))
        dispatch_module._check_exhaustive()

    def test_missing_handler_detected(self) -> None:
        with patch.dict(dispatch_module.HANDLERS, clear=False):
            del dispatch_module.HANDLERS[Operation.SEND_CALL]
            with self.assertRaises(RuntimeError):
                dispatch_module._check_exhaustive()

    def test_resolve_known_pair(self) -> None:
        self.assertIs(resolve("asset-manager", "deposit_native"), Operation.DEPOSIT_NATIVE)
        self.assertEqual(Operation.DEPOSIT_NATIVE.contract, "asset-manager")
        self.assertEqual(Operation.DEPOSIT_NATIVE.method, "deposit_native")

    def test_contracts_and_methods(self) -> None:
        self.assertEqual(
            contracts(),
            ["asset-manager", "balanced-dollar", "centralized-connection", "connection", "mock", "xcall", "xcall-manager"],
        )
        self.assertIn("get_whitelisted_actions", methods_for("xcall-manager"))
        self.assertEqual(methods_for("nope"), [])

    def test_unknown_method_lists_valid_methods(self) -> None:
        with self.assertRaises(UnsupportedOperation) as ctx:
            resolve("xcall", "withdraw")
        message = str(ctx.exception)
        self.assertIn("withdraw", message)
        self.assertIn("send_call", message)

    def test_unknown_contract_lists_contracts(self) -> None:
        with self.assertRaises(UnsupportedOperation) as ctx:
            resolve("bridge", "deposit_native")
        self.assertIn("asset-manager", str(ctx.exception))

    def test_unsupported_pair_does_no_work(self) -> None:
        rpc = FakeRpc(registry_accounts())
        with patch("orbit.pda.find_program_address") as derive_mock:
            for contract, method in (("xcall", "deposit_native"), ("mock", "set_admin"), ("evm", "initialize")):
                with self.assertRaises(UnsupportedOperation):
                    dispatch(context(rpc), contract, method, {"amount": 1})
        derive_mock.assert_not_called()
        self.assertEqual(rpc.calls, 0)

    def test_dispatch_routes_to_composer(self) -> None:
        result = dispatch(context(), "xcall", "set_protocol_fee", {"fee": 10})
        self.assertIsInstance(result, Composition)
        query = dispatch(context(), "balanced-dollar", "get_bnusd_token_authority", {})
        self.assertIsInstance(query, Query)


if __name__ == "__main__":
    unittest.main()
