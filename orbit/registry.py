"""Reads of mutable on-chain registry state.

Nothing here is cached: every call goes back to the cluster, because admins
change the registered connections, fee handler and sequence counter between
invocations.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, List, Optional, Sequence, Tuple

from solana.exceptions import SolanaRpcException
from solana.rpc.core import RPCException
from solders.instruction import AccountMeta
from solders.pubkey import Pubkey

from .constants import SEED_CONFIG, SEED_FEE, SEED_STATE
from .errors import RegistryUnavailable
from .pda import derive
from .rpc import ChainRpc
from .schema import BALANCED_DOLLAR_STATE, XCALL_CONFIG, XCALL_MANAGER_STATE, AccountLayout

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class XCallConfig:
    admin: Pubkey
    fee_handler: Pubkey
    network_id: str
    protocol_fee: int
    sequence_no: int
    last_req_id: int


@dataclass(frozen=True)
class ManagerState:
    xcall: Pubkey
    icon_governance: str
    admin: Pubkey
    sources: Tuple[Pubkey, ...]
    destinations: Tuple[str, ...]
    whitelisted_actions: Tuple[bytes, ...]


@dataclass(frozen=True)
class RegistryState:
    connections: Tuple[Pubkey, ...]
    whitelisted_actions: frozenset
    sequence_no: int
    fee_handler: Pubkey


@dataclass(frozen=True)
class ConnectionAccounts:
    program: Pubkey
    config: Pubkey
    fee: Pubkey

    def metas(self) -> List[AccountMeta]:
        return [
            AccountMeta(self.program, False, True),
            AccountMeta(self.config, False, True),
            AccountMeta(self.fee, False, True),
        ]


def connection_accounts(program: Pubkey, network_id: str) -> ConnectionAccounts:
    return ConnectionAccounts(
        program=program,
        config=derive(program, SEED_CONFIG),
        fee=derive(program, SEED_FEE, network_id),
    )


def _decode_all(rpc: ChainRpc, entries: Sequence[Tuple[Pubkey, AccountLayout]]) -> List[Any]:
    addresses = [address for address, _ in entries]
    try:
        raw = rpc.get_accounts_data(addresses)
    except (SolanaRpcException, RPCException) as exc:
        raise RegistryUnavailable(f"Unable to read registry accounts: {exc}") from exc
    if len(raw) != len(entries):
        raise RegistryUnavailable(f"RPC returned {len(raw)} accounts for {len(entries)} requested")
    decoded: List[Any] = []
    for (address, layout), data in zip(entries, raw):
        if data is None:
            raise RegistryUnavailable(f"{layout.name} account {address} not found")
        try:
            decoded.append(layout.decode(data))
        except ValueError as exc:
            raise RegistryUnavailable(f"{layout.name} account {address}: {exc}") from exc
    return decoded


def _xcall_config(parsed: Any) -> XCallConfig:
    return XCallConfig(
        admin=parsed.admin,
        fee_handler=parsed.fee_handler,
        network_id=parsed.network_id,
        protocol_fee=parsed.protocol_fee,
        sequence_no=parsed.sequence_no,
        last_req_id=parsed.last_req_id,
    )


def _manager_state(parsed: Any, address: Pubkey) -> ManagerState:
    sources: List[Pubkey] = []
    for raw in parsed.sources:
        try:
            sources.append(Pubkey.from_string(raw))
        except ValueError as exc:
            raise RegistryUnavailable(
                f"XmState account {address} lists an invalid connection '{raw}'"
            ) from exc
    return ManagerState(
        xcall=parsed.xcall,
        icon_governance=parsed.icon_governance,
        admin=parsed.admin,
        sources=tuple(sources),
        destinations=tuple(parsed.destinations),
        whitelisted_actions=tuple(bytes(a) for a in parsed.whitelisted_actions),
    )


def xcall_config_address(xcall_id: Pubkey) -> Pubkey:
    return derive(xcall_id, SEED_CONFIG)


def manager_state_address(manager_id: Pubkey) -> Pubkey:
    return derive(manager_id, SEED_STATE)


def fetch_xcall_config(rpc: ChainRpc, xcall_id: Pubkey) -> XCallConfig:
    (parsed,) = _decode_all(rpc, [(xcall_config_address(xcall_id), XCALL_CONFIG)])
    return _xcall_config(parsed)


def fetch_manager_state(rpc: ChainRpc, manager_id: Pubkey) -> ManagerState:
    address = manager_state_address(manager_id)
    (parsed,) = _decode_all(rpc, [(address, XCALL_MANAGER_STATE)])
    return _manager_state(parsed, address)


def fetch_bnusd_mint(rpc: ChainRpc, balanced_dollar_id: Pubkey) -> Pubkey:
    (parsed,) = _decode_all(rpc, [(derive(balanced_dollar_id, SEED_STATE), BALANCED_DOLLAR_STATE)])
    return parsed.bn_usd_token


def load_registry_state(rpc: ChainRpc, xcall_id: Pubkey, manager_id: Pubkey) -> RegistryState:
    manager_address = manager_state_address(manager_id)
    config, state = _decode_all(
        rpc,
        [
            (xcall_config_address(xcall_id), XCALL_CONFIG),
            (manager_address, XCALL_MANAGER_STATE),
        ],
    )
    xcall = _xcall_config(config)
    manager = _manager_state(state, manager_address)
    log.debug(
        "registry: %d connections, sequence %d, fee handler %s",
        len(manager.sources),
        xcall.sequence_no,
        xcall.fee_handler,
    )
    return RegistryState(
        connections=manager.sources,
        whitelisted_actions=frozenset(manager.whitelisted_actions),
        sequence_no=xcall.sequence_no,
        fee_handler=xcall.fee_handler,
    )


def connections_for(programs: Sequence[Pubkey], network_id: str) -> List[ConnectionAccounts]:
    return [connection_accounts(program, network_id) for program in programs]


def resolve_connections(
    rpc: ChainRpc,
    manager_id: Pubkey,
    network_id: str,
    state: Optional[ManagerState] = None,
) -> List[ConnectionAccounts]:
    """Connection triples registered with ``manager_id``, in stored order."""
    if state is None:
        state = fetch_manager_state(rpc, manager_id)
    return connections_for(state.sources, network_id)
