import struct
import unittest

from solders.instruction import AccountMeta

from fakes import (
    ASSET_MANAGER,
    BALANCED_DOLLAR,
    CENTRALIZED,
    CLUSTER_CONNECTION,
    MOCK,
    XCALL,
    XCALL_MANAGER,
    context,
    key,
)
from orbit import compose
from orbit.constants import SYSTEM_PROGRAM_ID
from orbit.dispatch import dispatch
from orbit.errors import ConfigurationError
from orbit.pda import derive
from orbit.schema import sighash

SYSTEM = AccountMeta(SYSTEM_PROGRAM_ID, False, False)


def _string(text: str) -> bytes:
    raw = text.encode()
    return struct.pack("<I", len(raw)) + raw


def _bytes(raw: bytes) -> bytes:
    return struct.pack("<I", len(raw)) + raw


def _strings(items: list) -> bytes:
    return struct.pack("<I", len(items)) + b"".join(_string(item) for item in items)


def _signer() -> AccountMeta:
    return AccountMeta(context().sender, True, True)


def compose_single(composer, params):
    result = composer(context(), params)
    assert len(result.instructions) == 1
    return result.instructions[0]


class SetAdminComposerTests(unittest.TestCase):
    def test_set_admin_layouts(self) -> None:
        new_admin = key(70)
        cases = [
            (compose.asset_manager_set_admin, ASSET_MANAGER, "state"),
            (compose.balanced_dollar_set_admin, BALANCED_DOLLAR, "state"),
            (compose.xcall_manager_set_admin, XCALL_MANAGER, "state"),
            (compose.xcall_set_admin, XCALL, "config"),
            (compose.centralized_set_admin, CENTRALIZED, "config"),
            (compose.connection_set_admin, CLUSTER_CONNECTION, "config"),
        ]
        for composer, program, seed in cases:
            with self.subTest(composer=composer.__name__):
                ix = compose_single(composer, {"new_admin": str(new_admin)})
                self.assertEqual(ix.program_id, program)
                self.assertEqual(
                    list(ix.accounts),
                    [_signer(), AccountMeta(derive(program, seed), False, True)],
                )
                self.assertEqual(bytes(ix.data), sighash("set_admin") + bytes(new_admin))

    def test_set_admin_requires_valid_pubkey(self) -> None:
        with self.assertRaises(ConfigurationError):
            compose.xcall_set_admin(context(), {"new_admin": "not-a-key"})


class InitializeComposerTests(unittest.TestCase):
    def test_asset_manager_initialize(self) -> None:
        ix = compose_single(compose.asset_manager_initialize, {"icon_asset_manager": "0x2.icon/cx01"})
        self.assertEqual(
            list(ix.accounts),
            [_signer(), AccountMeta(derive(ASSET_MANAGER, "state"), False, True), SYSTEM],
        )
        self.assertEqual(
            bytes(ix.data),
            sighash("initialize")
            + bytes(XCALL)
            + _string("0x2.icon/cx01")
            + bytes(XCALL_MANAGER)
            + bytes(derive(XCALL_MANAGER, "state")),
        )

    def test_balanced_dollar_initialize(self) -> None:
        mint = key(71)
        params = {"icon_bnusd": "0x2.icon/cx02", "bnusd_token": str(mint)}
        ix = compose_single(compose.balanced_dollar_initialize, params)
        self.assertEqual(
            list(ix.accounts),
            [_signer(), AccountMeta(derive(BALANCED_DOLLAR, "state"), False, True), SYSTEM],
        )
        self.assertEqual(
            bytes(ix.data),
            sighash("initialize")
            + bytes(XCALL)
            + _string("0x2.icon/cx02")
            + bytes(XCALL_MANAGER)
            + bytes(mint)
            + bytes(derive(XCALL_MANAGER, "state")),
        )

    def test_xcall_initialize(self) -> None:
        ix = compose_single(compose.xcall_initialize, {"nid": "0x1.solana"})
        self.assertEqual(
            list(ix.accounts),
            [_signer(), SYSTEM, AccountMeta(derive(XCALL, "config"), False, True)],
        )
        self.assertEqual(bytes(ix.data), sighash("initialize") + _string("0x1.solana"))

    def test_xcall_manager_initialize(self) -> None:
        params = {
            "icon_governance": "0x2.icon/cx03",
            "sources": [str(key(31))],
            "destinations": ["cx04", "cx05"],
        }
        ix = compose_single(compose.xcall_manager_initialize, params)
        self.assertEqual(
            list(ix.accounts),
            [_signer(), AccountMeta(derive(XCALL_MANAGER, "state"), False, True), SYSTEM],
        )
        self.assertEqual(
            bytes(ix.data),
            sighash("initialize")
            + bytes(XCALL)
            + _string("0x2.icon/cx03")
            + _strings([str(key(31))])
            + _strings(["cx04", "cx05"]),
        )

    def test_centralized_initialize_includes_authority(self) -> None:
        admin = key(72)
        ix = compose_single(compose.centralized_initialize, {"admin": str(admin)})
        self.assertEqual(
            list(ix.accounts),
            [
                _signer(),
                AccountMeta(derive(CENTRALIZED, "config"), False, True),
                SYSTEM,
                AccountMeta(derive(CENTRALIZED, "connection_authority"), False, True),
            ],
        )
        self.assertEqual(bytes(ix.data), sighash("initialize") + bytes(XCALL) + bytes(admin))

    def test_connection_initialize(self) -> None:
        ix = compose_single(compose.connection_initialize, {"chain_id": 7})
        self.assertEqual(
            list(ix.accounts),
            [_signer(), AccountMeta(derive(CLUSTER_CONNECTION, "config"), False, True), SYSTEM],
        )
        self.assertEqual(bytes(ix.data), sighash("initialize") + (7).to_bytes(8, "little"))

    def test_mock_initialize(self) -> None:
        ix = compose_single(compose.mock_initialize, {})
        self.assertEqual(
            list(ix.accounts),
            [_signer(), SYSTEM, AccountMeta(derive(MOCK, "state"), False, True)],
        )
        self.assertEqual(bytes(ix.data), sighash("initialize") + bytes(CLUSTER_CONNECTION))

    def test_program_id_override_from_params(self) -> None:
        other = key(73)
        ix = compose_single(compose.xcall_initialize, {"nid": "0x1.solana", "xcall": str(other)})
        self.assertEqual(ix.program_id, other)
        self.assertEqual(ix.accounts[2].pubkey, derive(other, "config"))


class AdminComposerTests(unittest.TestCase):
    def test_set_fee_handler_uses_program_method_name(self) -> None:
        handler = key(74)
        ix = compose_single(compose.set_fee_handler, {"fee_handler": str(handler)})
        self.assertEqual(list(ix.accounts), [_signer(), AccountMeta(derive(XCALL, "config"), False, True)])
        self.assertEqual(bytes(ix.data), sighash("set_protocol_fee_handler") + bytes(handler))

    def test_set_fee_handler_camel_case_alias(self) -> None:
        handler = key(74)
        ix = dispatch(context(), "xcall", "set_fee_handler", {"feeHandler": str(handler)}).instructions[0]
        self.assertEqual(bytes(ix.data), sighash("set_protocol_fee_handler") + bytes(handler))

    def test_set_protocols(self) -> None:
        params = {"sources": [str(key(31)), str(key(32))], "destinations": ["cx06"]}
        ix = compose_single(compose.set_protocols, params)
        self.assertEqual(
            list(ix.accounts),
            [_signer(), AccountMeta(derive(XCALL_MANAGER, "state"), False, True)],
        )
        self.assertEqual(
            bytes(ix.data),
            sighash("set_protocols") + _strings([str(key(31)), str(key(32))]) + _strings(["cx06"]),
        )

    def test_remove_action(self) -> None:
        ix = compose_single(compose.remove_action, {"action": "0xdeadbeef"})
        self.assertEqual(
            list(ix.accounts),
            [_signer(), AccountMeta(derive(XCALL_MANAGER, "state"), False, True)],
        )
        self.assertEqual(bytes(ix.data), sighash("remove_action") + _bytes(bytes.fromhex("deadbeef")))

    def test_send_message(self) -> None:
        params = {"dst_chain_id": 2, "dst_address": "0x0102", "data": "0xff"}
        ix = compose_single(compose.send_message, params)
        self.assertEqual(ix.program_id, MOCK)
        self.assertEqual(
            list(ix.accounts),
            [
                _signer(),
                AccountMeta(derive(MOCK, "state"), False, True),
                SYSTEM,
                AccountMeta(CLUSTER_CONNECTION, False, False),
                AccountMeta(derive(CLUSTER_CONNECTION, "config"), False, True),
            ],
        )
        self.assertEqual(
            bytes(ix.data),
            sighash("send_message") + (2).to_bytes(8, "little") + _bytes(b"\x01\x02") + _bytes(b"\xff"),
        )

    def test_send_message_camel_case_aliases(self) -> None:
        canonical = compose_single(compose.send_message, {"dst_chain_id": 2, "dst_address": "0x0102"})
        aliased = dispatch(context(), "mock", "send_message", {"dstChainId": 2, "dstAddress": "0x0102"})
        self.assertEqual(aliased.instructions[0], canonical)

    def test_alias_and_canonical_together_rejected(self) -> None:
        with self.assertRaises(ConfigurationError):
            dispatch(context(), "mock", "send_message", {"dstChainId": 2, "dst_chain_id": 2})


if __name__ == "__main__":
    unittest.main()
