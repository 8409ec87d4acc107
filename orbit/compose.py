"""Instruction composition for every supported contract method.

A composer parses and validates its parameters and the configured contract
addresses first, then derives addresses and reads the registry, and finally
assembles instructions in each program's account order. Caller mistakes raise
``ConfigurationError`` before the RPC is touched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, List, Mapping, Optional, Sequence

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .constants import (
    ASSOCIATED_TOKEN_PROGRAM_ID,
    ATA_CREATE_IDEMPOTENT,
    INSTRUCTIONS_SYSVAR_ID,
    RELAY_COMPUTE_UNITS,
    SEED_BNUSD_AUTHORITY,
    SEED_CONFIG,
    SEED_CONNECTION_AUTHORITY,
    SEED_DAPP_AUTHORITY,
    SEED_FEE,
    SEED_PROXY,
    SEED_RECEIPT,
    SEED_ROLLBACK,
    SEED_STATE,
    SEED_TOKEN_STATE,
    SEED_VAULT,
    SEED_VAULT_NATIVE,
    SYSTEM_PROGRAM_ID,
    TOKEN_PROGRAM_ID,
)
from .context import CallContext
from .errors import ConfigurationError
from .pda import derive, u64_seed, u128_seed
from .registry import (
    ConnectionAccounts,
    RegistryState,
    connections_for,
    fetch_bnusd_mint,
    fetch_manager_state,
    fetch_xcall_config,
    load_registry_state,
    xcall_config_address,
)
from .schema import (
    ANY_MESSAGE,
    ASSET_MANAGER,
    BALANCED_DOLLAR,
    CENTRALIZED_CONNECTION,
    CLUSTER_CONNECTION,
    ENVELOPE,
    MOCK_DAPP,
    XCALL,
    XCALL_MANAGER,
)
from .util import (
    U8_MAX,
    U128_MAX,
    ensure_str,
    hex_param,
    int_param,
    network_address,
    parse_byte_array,
    parse_hex,
    parse_pubkey,
    pubkey_param,
    require,
    str_param,
    string_list,
)

log = logging.getLogger(__name__)

Params = Mapping[str, Any]


@dataclass(frozen=True)
class Composition:
    """Instructions for one transaction, in execution order."""

    instructions: List[Instruction]
    compute_units: Optional[int] = None
    summary: str = ""


@dataclass(frozen=True)
class Query:
    """Result of a read-only method; nothing is submitted."""

    label: str
    value: Any


class RemainingAccounts:
    """Ordered builder for the variable-length tail of a relayed instruction.

    Sections always come out as outer ++ connections ++ trailing, whatever
    order they are filled in.
    """

    def __init__(self) -> None:
        self._outer: List[AccountMeta] = []
        self._connections: List[ConnectionAccounts] = []
        self._trailing: List[AccountMeta] = []

    def outer(self, *metas: AccountMeta) -> "RemainingAccounts":
        self._outer.extend(metas)
        return self

    def connections(self, entries: Sequence[ConnectionAccounts]) -> "RemainingAccounts":
        self._connections.extend(entries)
        return self

    def trailing(self, *metas: AccountMeta) -> "RemainingAccounts":
        self._trailing.extend(metas)
        return self

    def build(self) -> List[AccountMeta]:
        metas = list(self._outer)
        for entry in self._connections:
            metas.extend(entry.metas())
        metas.extend(self._trailing)
        return metas


def xcall_outer_accounts(xcall_id: Pubkey, registry: RegistryState) -> List[AccountMeta]:
    """xcall accounts a dapp forwards when relaying: config, rollback, sysvar, fee handler."""
    rollback = derive(xcall_id, SEED_ROLLBACK, u128_seed(registry.sequence_no + 1))
    return [
        AccountMeta(xcall_config_address(xcall_id), False, True),
        AccountMeta(rollback, False, True),
        AccountMeta(INSTRUCTIONS_SYSVAR_ID, False, False),
        AccountMeta(registry.fee_handler, False, True),
    ]


def relay_remaining_accounts(
    ctx: CallContext,
    xcall_id: Pubkey,
    manager_id: Pubkey,
    network_id: str,
) -> List[AccountMeta]:
    registry = load_registry_state(ctx.rpc, xcall_id, manager_id)
    builder = RemainingAccounts()
    builder.outer(*xcall_outer_accounts(xcall_id, registry))
    builder.connections(connections_for(registry.connections, network_id))
    return builder.build()


def associated_token_address(owner: Pubkey, mint: Pubkey) -> Pubkey:
    return derive(ASSOCIATED_TOKEN_PROGRAM_ID, owner, TOKEN_PROGRAM_ID, mint)


def create_associated_token_account(payer: Pubkey, owner: Pubkey, mint: Pubkey) -> Instruction:
    ata = associated_token_address(owner, mint)
    metas = [
        AccountMeta(payer, True, True),
        AccountMeta(ata, False, True),
        AccountMeta(owner, False, False),
        AccountMeta(mint, False, False),
        AccountMeta(SYSTEM_PROGRAM_ID, False, False),
        AccountMeta(TOKEN_PROGRAM_ID, False, False),
    ]
    return Instruction(ASSOCIATED_TOKEN_PROGRAM_ID, bytes([ATA_CREATE_IDEMPOTENT]), metas)


def program_id(ctx: CallContext, contract: str, params: Params, key: Optional[str] = None) -> Pubkey:
    """Program id from ``params[key]`` when given, else from chain configuration."""
    if key and params.get(key):
        return parse_pubkey(params[key], key)
    return ctx.chain.address(contract)


def single(instruction: Instruction, summary: str, compute_units: Optional[int] = None) -> Composition:
    return Composition(instructions=[instruction], compute_units=compute_units, summary=summary)


def _set_admin_state(ctx: CallContext, contract: str, schema: Mapping, params: Params) -> Composition:
    target = ctx.chain.address(contract)
    new_admin = pubkey_param(params, "new_admin")
    ix = schema["set_admin"].build(
        target,
        {"admin": ctx.sender, "state": derive(target, SEED_STATE)},
        {"new_admin": new_admin},
    )
    return single(ix, f"{contract}.set_admin -> {new_admin}")


def _set_admin_config(ctx: CallContext, target: Pubkey, contract: str, schema: Mapping, params: Params) -> Composition:
    new_admin = pubkey_param(params, "new_admin")
    ix = schema["set_admin"].build(
        target,
        {"admin": ctx.sender, "config": derive(target, SEED_CONFIG)},
        {"new_admin": new_admin},
    )
    return single(ix, f"{contract}.set_admin -> {new_admin}")


# ── asset-manager ──────────────────────────────────────────────────


def asset_manager_initialize(ctx: CallContext, params: Params) -> Composition:
    asset_manager = program_id(ctx, "asset-manager", params, "asset_manager")
    xcall = program_id(ctx, "xcall", params, "xcall")
    xcall_manager = program_id(ctx, "xcall-manager", params, "xcall_manager")
    icon_asset_manager = str_param(params, "icon_asset_manager")
    ix = ASSET_MANAGER["initialize"].build(
        asset_manager,
        {"admin": ctx.sender, "state": derive(asset_manager, SEED_STATE), "system_program": SYSTEM_PROGRAM_ID},
        {
            "xcall": xcall,
            "icon_asset_manager": icon_asset_manager,
            "xcall_manager": xcall_manager,
            "xcall_manager_state": derive(xcall_manager, SEED_STATE),
        },
    )
    return single(ix, f"asset-manager.initialize {asset_manager}")


def _deposit_common(ctx: CallContext, params: Params) -> dict:
    return {
        "xcall": ctx.chain.address("xcall"),
        "xcall_manager": ctx.chain.address("xcall-manager"),
        "asset_manager": ctx.chain.address("asset-manager"),
        "amount": int_param(params, "amount"),
        "to": str_param(params, "to"),
        "nid": network_address(params.get("to"))[0],
        "data": hex_param(params, "data", default=b""),
    }


def _deposit_accounts(ctx: CallContext, c: dict) -> dict:
    asset_manager = c["asset_manager"]
    return {
        "from_authority": ctx.sender,
        "state": derive(asset_manager, SEED_STATE),
        "xcall_manager_state": derive(c["xcall_manager"], SEED_STATE),
        "xcall_config": xcall_config_address(c["xcall"]),
        "xcall": c["xcall"],
        "xcall_manager": c["xcall_manager"],
        "system_program": SYSTEM_PROGRAM_ID,
        "xcall_authority": derive(asset_manager, SEED_DAPP_AUTHORITY),
    }


def deposit_native(ctx: CallContext, params: Params) -> Composition:
    c = _deposit_common(ctx, params)
    accounts = _deposit_accounts(ctx, c)
    accounts["vault_native_account"] = derive(c["asset_manager"], SEED_VAULT_NATIVE)
    remaining = relay_remaining_accounts(ctx, c["xcall"], c["xcall_manager"], c["nid"])
    ix = ASSET_MANAGER["deposit_native"].build(
        c["asset_manager"],
        accounts,
        {"amount": c["amount"], "to": c["to"], "data": c["data"]},
        remaining,
    )
    return single(ix, f"asset-manager.deposit_native {c['amount']} -> {c['to']}", RELAY_COMPUTE_UNITS)


def deposit_token(ctx: CallContext, params: Params) -> Composition:
    c = _deposit_common(ctx, params)
    mint = pubkey_param(params, "asset_token")
    vault = derive(c["asset_manager"], SEED_VAULT, mint)
    accounts = _deposit_accounts(ctx, c)
    accounts.update(
        {
            "from": associated_token_address(ctx.sender, mint),
            "vault_token_account": associated_token_address(vault, mint),
            "valult_authority": vault,
            "token_program": TOKEN_PROGRAM_ID,
        }
    )
    remaining = relay_remaining_accounts(ctx, c["xcall"], c["xcall_manager"], c["nid"])
    ix = ASSET_MANAGER["deposit_token"].build(
        c["asset_manager"],
        accounts,
        {"amount": c["amount"], "to": c["to"], "data": c["data"]},
        remaining,
    )
    return Composition(
        instructions=[
            create_associated_token_account(ctx.sender, ctx.sender, mint),
            create_associated_token_account(ctx.sender, vault, mint),
            ix,
        ],
        compute_units=RELAY_COMPUTE_UNITS,
        summary=f"asset-manager.deposit_token {c['amount']} of {mint} -> {c['to']}",
    )


def configure_rate_limit(ctx: CallContext, params: Params) -> Composition:
    asset_manager = ctx.chain.address("asset-manager")
    token = pubkey_param(params, "asset_token") if params.get("asset_token") else SYSTEM_PROGRAM_ID
    period = int_param(params, "period")
    percentage = int_param(params, "percentage")
    ix = ASSET_MANAGER["configure_rate_limit"].build(
        asset_manager,
        {
            "admin": ctx.sender,
            "state": derive(asset_manager, SEED_STATE),
            "token_state": derive(asset_manager, SEED_TOKEN_STATE, token),
            "system_program": SYSTEM_PROGRAM_ID,
        },
        {"token": token, "period": period, "percentage": percentage},
    )
    return single(ix, f"asset-manager.configure_rate_limit {token} period={period} percentage={percentage}")


def asset_manager_set_admin(ctx: CallContext, params: Params) -> Composition:
    return _set_admin_state(ctx, "asset-manager", ASSET_MANAGER, params)


# ── balanced-dollar ────────────────────────────────────────────────


def balanced_dollar_initialize(ctx: CallContext, params: Params) -> Composition:
    balanced_dollar = program_id(ctx, "balanced-dollar", params, "balanced_dollar")
    xcall = program_id(ctx, "xcall", params, "xcall")
    xcall_manager = program_id(ctx, "xcall-manager", params, "xcall_manager")
    icon_bnusd = str_param(params, "icon_bnusd")
    bnusd_token = pubkey_param(params, "bnusd_token")
    ix = BALANCED_DOLLAR["initialize"].build(
        balanced_dollar,
        {
            "admin": ctx.sender,
            "state": derive(balanced_dollar, SEED_STATE),
            "system_program": SYSTEM_PROGRAM_ID,
        },
        {
            "xcall": xcall,
            "icon_bn_usd": icon_bnusd,
            "xcall_manager": xcall_manager,
            "bn_usd_token": bnusd_token,
            "xcall_manager_state": derive(xcall_manager, SEED_STATE),
        },
    )
    return single(ix, f"balanced-dollar.initialize {balanced_dollar}")


def cross_transfer(ctx: CallContext, params: Params) -> Composition:
    xcall = ctx.chain.address("xcall")
    xcall_manager = ctx.chain.address("xcall-manager")
    balanced_dollar = ctx.chain.address("balanced-dollar")
    amount = int_param(params, "amount")
    to = str_param(params, "to")
    nid = network_address(to)[0]
    data = hex_param(params, "data", default=b"")

    mint = fetch_bnusd_mint(ctx.rpc, balanced_dollar)
    remaining = relay_remaining_accounts(ctx, xcall, xcall_manager, nid)
    ix = BALANCED_DOLLAR["cross_transfer"].build(
        balanced_dollar,
        {
            "from": associated_token_address(ctx.sender, mint),
            "mint": mint,
            "from_authority": ctx.sender,
            "state": derive(balanced_dollar, SEED_STATE),
            "xcall_manager_state": derive(xcall_manager, SEED_STATE),
            "xcall_config": xcall_config_address(xcall),
            "xcall": xcall,
            "token_program": TOKEN_PROGRAM_ID,
            "system_program": SYSTEM_PROGRAM_ID,
            "xcall_authority": derive(balanced_dollar, SEED_DAPP_AUTHORITY),
        },
        {"to": to, "value": amount, "data": data},
        remaining,
    )
    return Composition(
        instructions=[create_associated_token_account(ctx.sender, ctx.sender, mint), ix],
        compute_units=RELAY_COMPUTE_UNITS,
        summary=f"balanced-dollar.cross_transfer {amount} -> {to}",
    )


def bnusd_token_authority(ctx: CallContext, params: Params) -> Query:
    balanced_dollar = program_id(ctx, "balanced-dollar", params, "balanced_dollar")
    return Query("BNUSD Authority", str(derive(balanced_dollar, SEED_BNUSD_AUTHORITY)))


def balanced_dollar_set_admin(ctx: CallContext, params: Params) -> Composition:
    return _set_admin_state(ctx, "balanced-dollar", BALANCED_DOLLAR, params)


# ── xcall ──────────────────────────────────────────────────────────


def xcall_initialize(ctx: CallContext, params: Params) -> Composition:
    xcall = program_id(ctx, "xcall", params, "xcall")
    network_id = str_param(params, "nid")
    ix = XCALL["initialize"].build(
        xcall,
        {"signer": ctx.sender, "system_program": SYSTEM_PROGRAM_ID, "config": xcall_config_address(xcall)},
        {"network_id": network_id},
    )
    return single(ix, f"xcall.initialize {network_id}")


def set_protocol_fee(ctx: CallContext, params: Params) -> Composition:
    xcall = ctx.chain.address("xcall")
    fee = int_param(params, "fee")
    ix = XCALL["set_protocol_fee"].build(
        xcall,
        {"admin": ctx.sender, "config": xcall_config_address(xcall)},
        {"fee": fee},
    )
    return single(ix, f"xcall.set_protocol_fee {fee}")


def set_fee_handler(ctx: CallContext, params: Params) -> Composition:
    xcall = ctx.chain.address("xcall")
    fee_handler = pubkey_param(params, "fee_handler")
    ix = XCALL["set_protocol_fee_handler"].build(
        xcall,
        {"admin": ctx.sender, "config": xcall_config_address(xcall)},
        {"fee_handler": fee_handler},
    )
    return single(ix, f"xcall.set_fee_handler {fee_handler}")


def xcall_set_admin(ctx: CallContext, params: Params) -> Composition:
    return _set_admin_config(ctx, ctx.chain.address("xcall"), "xcall", XCALL, params)


def send_call(ctx: CallContext, params: Params) -> Composition:
    xcall = ctx.chain.address("xcall")
    to = str_param(params, "to")
    nid = network_address(to)[0]
    data = hex_param(params, "data")
    rollback = hex_param(params, "rollback", default=b"") or None
    destinations = string_list(params, "destinations", default=[])
    sources: Optional[List[Pubkey]] = None
    if params.get("sources") is not None:
        sources = [parse_pubkey(s, "sources") for s in string_list(params, "sources")]
    elif not ctx.chain.has("xcall-manager"):
        raise ConfigurationError("send_call needs 'sources' or a configured xcall-manager")
    manager = ctx.chain.address("xcall-manager") if sources is None else None

    if manager is not None:
        registry = load_registry_state(ctx.rpc, xcall, manager)
        sources = list(registry.connections)
        sequence_no, fee_handler = registry.sequence_no, registry.fee_handler
    else:
        config = fetch_xcall_config(ctx.rpc, xcall)
        sequence_no, fee_handler = config.sequence_no, config.fee_handler

    if rollback is None:
        message = ANY_MESSAGE.enum.CallMessage(data=data)
        rollback_account = None
    else:
        message = ANY_MESSAGE.enum.CallMessageWithRollback(data=data, rollback=rollback)
        rollback_account = derive(xcall, SEED_ROLLBACK, u128_seed(sequence_no + 1))
    envelope = ENVELOPE.build(
        {"message": message, "sources": [str(s) for s in sources], "destinations": destinations}
    )
    remaining = RemainingAccounts().connections(connections_for(sources, nid)).build()
    ix = XCALL["send_call"].build(
        xcall,
        {
            "signer": ctx.sender,
            "system_program": SYSTEM_PROGRAM_ID,
            "config": xcall_config_address(xcall),
            "fee_handler": fee_handler,
            "instruction_sysvar": INSTRUCTIONS_SYSVAR_ID,
            "rollback_account": rollback_account,
        },
        {"envelope": envelope, "to": to},
        remaining,
    )
    return single(ix, f"xcall.send_call -> {to} via {len(sources)} connection(s)", RELAY_COMPUTE_UNITS)


def _dapp_account_meta(entry: Any) -> AccountMeta:
    if isinstance(entry, dict):
        pubkey = parse_pubkey(require(entry, "pubkey"), "dapp_accounts.pubkey")
        return AccountMeta(pubkey, bool(entry.get("is_signer", False)), bool(entry.get("is_writable", True)))
    return AccountMeta(parse_pubkey(entry, "dapp_accounts"), False, True)


def execute_call(ctx: CallContext, params: Params) -> Composition:
    xcall = ctx.chain.address("xcall")
    req_id = int_param(params, "req_id", U128_MAX)
    conn_sn = int_param(params, "conn_sn", U128_MAX)
    data = hex_param(params, "data")
    from_nid = str_param(params, "from_nid")
    connection = pubkey_param(params, "connection")
    dapp = pubkey_param(params, "dapp")
    raw_accounts = params.get("dapp_accounts") or []
    if not isinstance(raw_accounts, list):
        raise ConfigurationError("dapp_accounts must be an array")
    dapp_accounts = [_dapp_account_meta(entry) for entry in raw_accounts]

    config = fetch_xcall_config(ctx.rpc, xcall)
    remaining = RemainingAccounts().trailing(AccountMeta(dapp, False, False), *dapp_accounts).build()
    ix = XCALL["execute_call"].build(
        xcall,
        {
            "signer": ctx.sender,
            "system_program": SYSTEM_PROGRAM_ID,
            "config": xcall_config_address(xcall),
            "admin": config.admin,
            "proxy_request": derive(xcall, SEED_PROXY, u128_seed(req_id)),
        },
        {
            "req_id": req_id,
            "data": data,
            "from_nid": from_nid,
            "conn_sn": conn_sn,
            "connection": connection,
        },
        remaining,
    )
    return single(ix, f"xcall.execute_call req_id={req_id} from {from_nid}", RELAY_COMPUTE_UNITS)


# ── xcall-manager ──────────────────────────────────────────────────


def xcall_manager_initialize(ctx: CallContext, params: Params) -> Composition:
    manager = program_id(ctx, "xcall-manager", params, "xcall_manager")
    xcall = program_id(ctx, "xcall", params, "xcall")
    ix = XCALL_MANAGER["initialize"].build(
        manager,
        {"admin": ctx.sender, "state": derive(manager, SEED_STATE), "system_program": SYSTEM_PROGRAM_ID},
        {
            "xcall": xcall,
            "icon_governance": str_param(params, "icon_governance"),
            "sources": string_list(params, "sources"),
            "destinations": string_list(params, "destinations"),
        },
    )
    return single(ix, f"xcall-manager.initialize {manager}")


def _manager_action(ctx: CallContext, params: Params, method: str) -> Composition:
    manager = ctx.chain.address("xcall-manager")
    action = parse_byte_array(require(params, "action"), "action")
    ix = XCALL_MANAGER[method].build(
        manager,
        {"admin": ctx.sender, "state": derive(manager, SEED_STATE)},
        {"action": action},
    )
    return single(ix, f"xcall-manager.{method} 0x{action.hex()}")


def whitelist_action(ctx: CallContext, params: Params) -> Composition:
    return _manager_action(ctx, params, "whitelist_action")


def remove_action(ctx: CallContext, params: Params) -> Composition:
    return _manager_action(ctx, params, "remove_action")


def whitelisted_actions(ctx: CallContext, params: Params) -> Query:
    manager = ctx.chain.address("xcall-manager")
    state = fetch_manager_state(ctx.rpc, manager)
    return Query("Whitelisted actions", ["0x" + action.hex() for action in state.whitelisted_actions])


def set_protocols(ctx: CallContext, params: Params) -> Composition:
    manager = ctx.chain.address("xcall-manager")
    sources = string_list(params, "sources")
    destinations = string_list(params, "destinations")
    ix = XCALL_MANAGER["set_protocols"].build(
        manager,
        {"admin": ctx.sender, "state": derive(manager, SEED_STATE)},
        {"sources": sources, "destinations": destinations},
    )
    return single(ix, f"xcall-manager.set_protocols {len(sources)} source(s) {len(destinations)} destination(s)")


def xcall_manager_set_admin(ctx: CallContext, params: Params) -> Composition:
    return _set_admin_state(ctx, "xcall-manager", XCALL_MANAGER, params)


# ── centralized-connection ─────────────────────────────────────────


def centralized_initialize(ctx: CallContext, params: Params) -> Composition:
    connection = program_id(ctx, "centralized-connection", params, "centralized")
    xcall = program_id(ctx, "xcall", params, "xcall")
    admin = pubkey_param(params, "admin")
    ix = CENTRALIZED_CONNECTION["initialize"].build(
        connection,
        {
            "signer": ctx.sender,
            "config": derive(connection, SEED_CONFIG),
            "system_program": SYSTEM_PROGRAM_ID,
            "authority": derive(connection, SEED_CONNECTION_AUTHORITY),
        },
        {"xcall": xcall, "admin": admin},
    )
    return single(ix, f"centralized-connection.initialize {connection}")


def set_network_fees(ctx: CallContext, params: Params) -> Composition:
    connection = program_id(ctx, "centralized-connection", params, "centralized")
    nid = str_param(params, "nid")
    message_fee = int_param(params, "message_fee")
    response_fee = int_param(params, "response_fee")
    ix = CENTRALIZED_CONNECTION["set_fee"].build(
        connection,
        {
            "config": derive(connection, SEED_CONFIG),
            "network_fee": derive(connection, SEED_FEE, nid),
            "admin": ctx.sender,
            "system_program": SYSTEM_PROGRAM_ID,
        },
        {"network_id": nid, "message_fee": message_fee, "response_fee": response_fee},
    )
    return single(ix, f"centralized-connection.set_fee {nid} message={message_fee} response={response_fee}")


def centralized_set_admin(ctx: CallContext, params: Params) -> Composition:
    target = program_id(ctx, "centralized-connection", params, "centralized")
    return _set_admin_config(ctx, target, "centralized-connection", CENTRALIZED_CONNECTION, params)


# ── cluster connection ─────────────────────────────────────────────


def connection_initialize(ctx: CallContext, params: Params) -> Composition:
    connection = program_id(ctx, "connection", params, "connection")
    chain_id = int_param(params, "chain_id")
    ix = CLUSTER_CONNECTION["initialize"].build(
        connection,
        {"signer": ctx.sender, "config": derive(connection, SEED_CONFIG), "system_program": SYSTEM_PROGRAM_ID},
        {"chain_id": chain_id},
    )
    return single(ix, f"connection.initialize chain_id={chain_id}")


def add_validators(ctx: CallContext, params: Params) -> Composition:
    connection = program_id(ctx, "connection", params, "connection")
    raw = require(params, "validators")
    if not isinstance(raw, list):
        raise ConfigurationError("validators must be an array of hex-encoded public keys")
    validators = [parse_hex(v, "validators") for v in raw]
    for key in validators:
        if len(key) != 65:
            raise ConfigurationError("validators must be 65-byte uncompressed secp256k1 public keys")
    threshold = int_param(params, "threshold", U8_MAX)
    if threshold > len(validators):
        raise ConfigurationError(f"threshold {threshold} exceeds validator count {len(validators)}")
    ix = CLUSTER_CONNECTION["update_validators"].build(
        connection,
        {"admin": ctx.sender, "config": derive(connection, SEED_CONFIG)},
        {"validators": validators, "threshold": threshold},
    )
    return single(ix, f"connection.update_validators {len(validators)} validator(s) threshold={threshold}")


def connection_set_admin(ctx: CallContext, params: Params) -> Composition:
    target = program_id(ctx, "connection", params, "connection")
    return _set_admin_config(ctx, target, "connection", CLUSTER_CONNECTION, params)


# ── mock dapp ──────────────────────────────────────────────────────


def _mock_ids(ctx: CallContext, params: Params) -> tuple[Pubkey, Pubkey]:
    return program_id(ctx, "mock", params, "mock"), program_id(ctx, "connection", params, "connection")


def mock_initialize(ctx: CallContext, params: Params) -> Composition:
    mock, connection = _mock_ids(ctx, params)
    ix = MOCK_DAPP["initialize"].build(
        mock,
        {"sender": ctx.sender, "system_program": SYSTEM_PROGRAM_ID, "config": derive(mock, SEED_STATE)},
        {"connection": connection},
    )
    return single(ix, f"mock.initialize connection={connection}")


def send_message(ctx: CallContext, params: Params) -> Composition:
    mock, connection = _mock_ids(ctx, params)
    dst_chain_id = int_param(params, "dst_chain_id")
    dst_address = hex_param(params, "dst_address", default=b"")
    payload = hex_param(params, "data", default=b"")
    ix = MOCK_DAPP["send_message"].build(
        mock,
        {
            "sender": ctx.sender,
            "config": derive(mock, SEED_STATE),
            "system_program": SYSTEM_PROGRAM_ID,
            "connection": connection,
            "connection_config": derive(connection, SEED_CONFIG),
        },
        {"dst_chain_id": dst_chain_id, "dst_address": dst_address, "payload": payload},
    )
    return single(ix, f"mock.send_message -> chain {dst_chain_id}")


def receive_message(ctx: CallContext, params: Params) -> Composition:
    mock, connection = _mock_ids(ctx, params)
    src_chain_id = int_param(params, "src_chain_id")
    conn_sn = int_param(params, "conn_sn", U128_MAX)
    src_address = hex_param(params, "src_address", default=b"")
    payload = hex_param(params, "data", default=b"")
    raw_signatures = params.get("signatures") or []
    if not isinstance(raw_signatures, list):
        raise ConfigurationError("signatures must be an array of hex strings")
    signatures = [parse_hex(ensure_str(s, "signatures"), "signatures") for s in raw_signatures]
    if any(len(sig) != 65 for sig in signatures):
        raise ConfigurationError("signatures must be 65-byte recoverable secp256k1 signatures")
    receipt = derive(connection, SEED_RECEIPT, u64_seed(src_chain_id), u128_seed(conn_sn))
    remaining = RemainingAccounts().trailing(AccountMeta(receipt, False, True)).build()
    ix = MOCK_DAPP["recv_message"].build(
        mock,
        {
            "signer": ctx.sender,
            "config": derive(mock, SEED_STATE),
            "system_program": SYSTEM_PROGRAM_ID,
            "connection": connection,
            "connection_config": derive(connection, SEED_CONFIG),
        },
        {
            "src_chain_id": src_chain_id,
            "src_address": src_address,
            "conn_sn": conn_sn,
            "payload": payload,
            "signatures": signatures,
        },
        remaining,
    )
    return single(ix, f"mock.recv_message from chain {src_chain_id} sn={conn_sn}")
