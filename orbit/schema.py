"""Instruction and account layouts for the protocol's Anchor programs.

Each instruction is described by its on-chain method name, the account list in
the exact order the program expects, and a Borsh argument struct. Instruction
data is the 8-byte Anchor discriminator followed by the encoded arguments.
Optional accounts that are not supplied are replaced by the program id, which
is how Anchor marks an absent ``Option<Account>``.
"""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
from typing import Any, Dict, List, Mapping, Optional, Tuple

from borsh_construct import Bytes, CStruct, Enum, Option, String, U8, U64, U128, Vec
from construct import Adapter, Bytes as FixedBytes, Construct, ConstructError
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey


class _PubkeyAdapter(Adapter):
    def _decode(self, obj, context, path):
        return Pubkey.from_bytes(bytes(obj))

    def _encode(self, obj, context, path):
        return bytes(obj)


PUBKEY = _PubkeyAdapter(FixedBytes(32))
SECP256K1_SIGNATURE = FixedBytes(65)


def sighash(method: str) -> bytes:
    return hashlib.sha256(f"global:{method}".encode()).digest()[:8]


def account_discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


@dataclass(frozen=True)
class AccountSpec:
    name: str
    signer: bool = False
    writable: bool = False
    optional: bool = False


def acc(name: str, *, signer: bool = False, writable: bool = False, optional: bool = False) -> AccountSpec:
    return AccountSpec(name=name, signer=signer, writable=writable, optional=optional)


@dataclass(frozen=True)
class InstructionSchema:
    method: str
    accounts: Tuple[AccountSpec, ...]
    args: Construct

    def encode_args(self, values: Mapping[str, Any]) -> bytes:
        return sighash(self.method) + self.args.build(dict(values))

    def account_metas(self, program_id: Pubkey, resolved: Mapping[str, Optional[Pubkey]]) -> List[AccountMeta]:
        unknown = set(resolved) - {spec.name for spec in self.accounts}
        if unknown:
            raise ValueError(f"{self.method}: unknown accounts {sorted(unknown)}")
        metas: List[AccountMeta] = []
        for spec in self.accounts:
            pubkey = resolved.get(spec.name)
            if pubkey is None:
                if not spec.optional:
                    raise ValueError(f"{self.method}: account '{spec.name}' is required")
                metas.append(AccountMeta(program_id, False, False))
                continue
            metas.append(AccountMeta(pubkey, spec.signer, spec.writable))
        return metas

    def build(
        self,
        program_id: Pubkey,
        accounts: Mapping[str, Optional[Pubkey]],
        args: Mapping[str, Any],
        remaining: Optional[List[AccountMeta]] = None,
    ) -> Instruction:
        metas = self.account_metas(program_id, accounts)
        if remaining:
            metas.extend(remaining)
        return Instruction(program_id, self.encode_args(args), metas)


@dataclass(frozen=True)
class AccountLayout:
    name: str
    layout: Construct

    def decode(self, data: bytes) -> Any:
        prefix = account_discriminator(self.name)
        if len(data) < len(prefix) or data[: len(prefix)] != prefix:
            raise ValueError(f"account data is not a {self.name} account")
        try:
            return self.layout.parse(data[len(prefix) :])
        except ConstructError as exc:
            raise ValueError(f"malformed {self.name} account: {exc}") from exc

    def encode(self, values: Mapping[str, Any]) -> bytes:
        return account_discriminator(self.name) + self.layout.build(dict(values))


ADMIN_STATE_ACCOUNTS = (acc("admin", signer=True, writable=True), acc("state", writable=True))
ADMIN_CONFIG_ACCOUNTS = (acc("admin", signer=True, writable=True), acc("config", writable=True))
SET_ADMIN_ARGS = CStruct("new_admin" / PUBKEY)


# ── asset-manager ──────────────────────────────────────────────────

_DEPOSIT_ACCOUNTS = (
    acc("from", writable=True, optional=True),
    acc("from_authority", signer=True, writable=True),
    acc("vault_token_account", writable=True, optional=True),
    acc("valult_authority", writable=True, optional=True),
    acc("vault_native_account", writable=True, optional=True),
    acc("state", writable=True),
    acc("xcall_manager_state", writable=True),
    acc("xcall_config", writable=True),
    acc("xcall"),
    acc("xcall_manager"),
    acc("token_program", optional=True),
    acc("system_program"),
    acc("xcall_authority", writable=True),
)
_DEPOSIT_ARGS = CStruct("amount" / U64, "to" / Option(String), "data" / Option(Bytes))

ASSET_MANAGER: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (acc("admin", signer=True, writable=True), acc("state", writable=True), acc("system_program")),
        CStruct(
            "xcall" / PUBKEY,
            "icon_asset_manager" / String,
            "xcall_manager" / PUBKEY,
            "xcall_manager_state" / PUBKEY,
        ),
    ),
    "deposit_native": InstructionSchema("deposit_native", _DEPOSIT_ACCOUNTS, _DEPOSIT_ARGS),
    "deposit_token": InstructionSchema("deposit_token", _DEPOSIT_ACCOUNTS, _DEPOSIT_ARGS),
    "configure_rate_limit": InstructionSchema(
        "configure_rate_limit",
        (
            acc("admin", signer=True, writable=True),
            acc("state", writable=True),
            acc("token_state", writable=True),
            acc("system_program"),
        ),
        CStruct("token" / PUBKEY, "period" / U64, "percentage" / U64),
    ),
    "set_admin": InstructionSchema("set_admin", ADMIN_STATE_ACCOUNTS, SET_ADMIN_ARGS),
}


# ── balanced-dollar ────────────────────────────────────────────────

BALANCED_DOLLAR: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (acc("admin", signer=True, writable=True), acc("state", writable=True), acc("system_program")),
        CStruct(
            "xcall" / PUBKEY,
            "icon_bn_usd" / String,
            "xcall_manager" / PUBKEY,
            "bn_usd_token" / PUBKEY,
            "xcall_manager_state" / PUBKEY,
        ),
    ),
    "cross_transfer": InstructionSchema(
        "cross_transfer",
        (
            acc("from", writable=True),
            acc("mint", writable=True),
            acc("from_authority", signer=True, writable=True),
            acc("state", writable=True),
            acc("xcall_manager_state", writable=True),
            acc("xcall_config", writable=True),
            acc("xcall"),
            acc("token_program"),
            acc("system_program"),
            acc("xcall_authority", writable=True),
        ),
        CStruct("to" / String, "value" / U64, "data" / Option(Bytes)),
    ),
    "set_admin": InstructionSchema("set_admin", ADMIN_STATE_ACCOUNTS, SET_ADMIN_ARGS),
}


# ── xcall ──────────────────────────────────────────────────────────

ANY_MESSAGE = Enum(
    "CallMessage" / CStruct("data" / Bytes),
    "CallMessageWithRollback" / CStruct("data" / Bytes, "rollback" / Bytes),
    "CallMessagePersisted" / CStruct("data" / Bytes),
    enum_name="AnyMessage",
)
ENVELOPE = CStruct("message" / ANY_MESSAGE, "sources" / Vec(String), "destinations" / Vec(String))

XCALL: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (acc("signer", signer=True, writable=True), acc("system_program"), acc("config", writable=True)),
        CStruct("network_id" / String),
    ),
    "set_protocol_fee": InstructionSchema("set_protocol_fee", ADMIN_CONFIG_ACCOUNTS, CStruct("fee" / U64)),
    "set_protocol_fee_handler": InstructionSchema(
        "set_protocol_fee_handler",
        ADMIN_CONFIG_ACCOUNTS,
        CStruct("fee_handler" / PUBKEY),
    ),
    "set_admin": InstructionSchema("set_admin", ADMIN_CONFIG_ACCOUNTS, SET_ADMIN_ARGS),
    "send_call": InstructionSchema(
        "send_call",
        (
            acc("signer", signer=True, writable=True),
            acc("dapp_authority", signer=True, optional=True),
            acc("system_program"),
            acc("config", writable=True),
            acc("fee_handler", writable=True),
            acc("instruction_sysvar"),
            acc("rollback_account", writable=True, optional=True),
        ),
        CStruct("envelope" / Bytes, "to" / String),
    ),
    "execute_call": InstructionSchema(
        "execute_call",
        (
            acc("signer", signer=True, writable=True),
            acc("system_program"),
            acc("config", writable=True),
            acc("admin", writable=True),
            acc("proxy_request", writable=True),
        ),
        CStruct(
            "req_id" / U128,
            "data" / Bytes,
            "from_nid" / String,
            "conn_sn" / U128,
            "connection" / PUBKEY,
        ),
    ),
}


# ── xcall-manager ──────────────────────────────────────────────────

_ACTION_ARGS = CStruct("action" / Bytes)
_PROTOCOL_ARGS = CStruct("sources" / Vec(String), "destinations" / Vec(String))

XCALL_MANAGER: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (acc("admin", signer=True, writable=True), acc("state", writable=True), acc("system_program")),
        CStruct(
            "xcall" / PUBKEY,
            "icon_governance" / String,
            "sources" / Vec(String),
            "destinations" / Vec(String),
        ),
    ),
    "whitelist_action": InstructionSchema("whitelist_action", ADMIN_STATE_ACCOUNTS, _ACTION_ARGS),
    "remove_action": InstructionSchema("remove_action", ADMIN_STATE_ACCOUNTS, _ACTION_ARGS),
    "set_protocols": InstructionSchema("set_protocols", ADMIN_STATE_ACCOUNTS, _PROTOCOL_ARGS),
    "set_admin": InstructionSchema("set_admin", ADMIN_STATE_ACCOUNTS, SET_ADMIN_ARGS),
}


# ── connections ────────────────────────────────────────────────────

CENTRALIZED_CONNECTION: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (
            acc("signer", signer=True, writable=True),
            acc("config", writable=True),
            acc("system_program"),
            acc("authority", writable=True),
        ),
        CStruct("xcall" / PUBKEY, "admin" / PUBKEY),
    ),
    "set_fee": InstructionSchema(
        "set_fee",
        (
            acc("config", writable=True),
            acc("network_fee", writable=True),
            acc("admin", signer=True, writable=True),
            acc("system_program"),
        ),
        CStruct("network_id" / String, "message_fee" / U64, "response_fee" / U64),
    ),
    "set_admin": InstructionSchema("set_admin", ADMIN_CONFIG_ACCOUNTS, SET_ADMIN_ARGS),
}

CLUSTER_CONNECTION: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (acc("signer", signer=True, writable=True), acc("config", writable=True), acc("system_program")),
        CStruct("chain_id" / U64),
    ),
    "update_validators": InstructionSchema(
        "update_validators",
        ADMIN_CONFIG_ACCOUNTS,
        CStruct("validators" / Vec(SECP256K1_SIGNATURE), "threshold" / U8),
    ),
    "set_admin": InstructionSchema("set_admin", ADMIN_CONFIG_ACCOUNTS, SET_ADMIN_ARGS),
}


# ── mock dapp ──────────────────────────────────────────────────────

_MOCK_MESSAGE_ACCOUNTS_TAIL = (
    acc("system_program"),
    acc("connection"),
    acc("connection_config", writable=True),
)

MOCK_DAPP: Dict[str, InstructionSchema] = {
    "initialize": InstructionSchema(
        "initialize",
        (acc("sender", signer=True, writable=True), acc("system_program"), acc("config", writable=True)),
        CStruct("connection" / PUBKEY),
    ),
    "send_message": InstructionSchema(
        "send_message",
        (acc("sender", signer=True, writable=True), acc("config", writable=True), *_MOCK_MESSAGE_ACCOUNTS_TAIL),
        CStruct("dst_chain_id" / U64, "dst_address" / Bytes, "payload" / Bytes),
    ),
    "recv_message": InstructionSchema(
        "recv_message",
        (acc("signer", signer=True, writable=True), acc("config", writable=True), *_MOCK_MESSAGE_ACCOUNTS_TAIL),
        CStruct(
            "src_chain_id" / U64,
            "src_address" / Bytes,
            "conn_sn" / U128,
            "payload" / Bytes,
            "signatures" / Vec(SECP256K1_SIGNATURE),
        ),
    ),
}


# ── account layouts ────────────────────────────────────────────────

XCALL_CONFIG = AccountLayout(
    "Config",
    CStruct(
        "admin" / PUBKEY,
        "fee_handler" / PUBKEY,
        "network_id" / String,
        "protocol_fee" / U64,
        "sequence_no" / U128,
        "last_req_id" / U128,
    ),
)

XCALL_MANAGER_STATE = AccountLayout(
    "XmState",
    CStruct(
        "xcall" / PUBKEY,
        "icon_governance" / String,
        "admin" / PUBKEY,
        "sources" / Vec(String),
        "destinations" / Vec(String),
        "whitelisted_actions" / Vec(Bytes),
    ),
)

BALANCED_DOLLAR_STATE = AccountLayout(
    "State",
    CStruct(
        "xcall" / PUBKEY,
        "icon_bn_usd" / String,
        "xcall_manager" / PUBKEY,
        "bn_usd_token" / PUBKEY,
    ),
)
