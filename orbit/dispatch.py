"""Mapping from (contract, method) to composer routines."""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Union

from . import compose
from .compose import Composition, Query
from .context import CallContext
from .errors import UnsupportedOperation
from .util import canonical_params


class Operation(Enum):
    ASSET_MANAGER_INITIALIZE = ("asset-manager", "initialize")
    DEPOSIT_TOKEN = ("asset-manager", "deposit_token")
    DEPOSIT_NATIVE = ("asset-manager", "deposit_native")
    CONFIGURE_RATE_LIMIT = ("asset-manager", "configure_rate_limit")
    ASSET_MANAGER_SET_ADMIN = ("asset-manager", "set_admin")

    BALANCED_DOLLAR_INITIALIZE = ("balanced-dollar", "initialize")
    CROSS_TRANSFER = ("balanced-dollar", "cross_transfer")
    BNUSD_TOKEN_AUTHORITY = ("balanced-dollar", "get_bnusd_token_authority")
    BALANCED_DOLLAR_SET_ADMIN = ("balanced-dollar", "set_admin")

    XCALL_INITIALIZE = ("xcall", "initialize")
    SET_PROTOCOL_FEE = ("xcall", "set_protocol_fee")
    SET_FEE_HANDLER = ("xcall", "set_fee_handler")
    XCALL_SET_ADMIN = ("xcall", "set_admin")
    SEND_CALL = ("xcall", "send_call")
    EXECUTE_CALL = ("xcall", "execute_call")

    XCALL_MANAGER_INITIALIZE = ("xcall-manager", "initialize")
    WHITELIST_ACTION = ("xcall-manager", "whitelist_action")
    REMOVE_ACTION = ("xcall-manager", "remove_action")
    GET_WHITELISTED_ACTIONS = ("xcall-manager", "get_whitelisted_actions")
    SET_PROTOCOLS = ("xcall-manager", "set_protocols")
    XCALL_MANAGER_SET_ADMIN = ("xcall-manager", "set_admin")

    CENTRALIZED_INITIALIZE = ("centralized-connection", "initialize")
    CENTRALIZED_SET_ADMIN = ("centralized-connection", "set_admin")
    SET_NETWORK_FEES = ("centralized-connection", "set_network_fees")

    CONNECTION_INITIALIZE = ("connection", "initialize")
    CONNECTION_SET_ADMIN = ("connection", "set_admin")
    ADD_VALIDATORS = ("connection", "add_validators")

    MOCK_INITIALIZE = ("mock", "initialize")
    SEND_MESSAGE = ("mock", "send_message")
    RECEIVE_MESSAGE = ("mock", "receive_message")

    @property
    def contract(self) -> str:
        return self.value[0]

    @property
    def method(self) -> str:
        return self.value[1]


Handler = Callable[[CallContext, Mapping[str, Any]], Union[Composition, Query]]

HANDLERS: Dict[Operation, Handler] = {
    Operation.ASSET_MANAGER_INITIALIZE: compose.asset_manager_initialize,
    Operation.DEPOSIT_TOKEN: compose.deposit_token,
    Operation.DEPOSIT_NATIVE: compose.deposit_native,
    Operation.CONFIGURE_RATE_LIMIT: compose.configure_rate_limit,
    Operation.ASSET_MANAGER_SET_ADMIN: compose.asset_manager_set_admin,
    Operation.BALANCED_DOLLAR_INITIALIZE: compose.balanced_dollar_initialize,
    Operation.CROSS_TRANSFER: compose.cross_transfer,
    Operation.BNUSD_TOKEN_AUTHORITY: compose.bnusd_token_authority,
    Operation.BALANCED_DOLLAR_SET_ADMIN: compose.balanced_dollar_set_admin,
    Operation.XCALL_INITIALIZE: compose.xcall_initialize,
    Operation.SET_PROTOCOL_FEE: compose.set_protocol_fee,
    Operation.SET_FEE_HANDLER: compose.set_fee_handler,
    Operation.XCALL_SET_ADMIN: compose.xcall_set_admin,
    Operation.SEND_CALL: compose.send_call,
    Operation.EXECUTE_CALL: compose.execute_call,
    Operation.XCALL_MANAGER_INITIALIZE: compose.xcall_manager_initialize,
    Operation.WHITELIST_ACTION: compose.whitelist_action,
    Operation.REMOVE_ACTION: compose.remove_action,
    Operation.GET_WHITELISTED_ACTIONS: compose.whitelisted_actions,
    Operation.SET_PROTOCOLS: compose.set_protocols,
    Operation.XCALL_MANAGER_SET_ADMIN: compose.xcall_manager_set_admin,
    Operation.CENTRALIZED_INITIALIZE: compose.centralized_initialize,
    Operation.CENTRALIZED_SET_ADMIN: compose.centralized_set_admin,
    Operation.SET_NETWORK_FEES: compose.set_network_fees,
    Operation.CONNECTION_INITIALIZE: compose.connection_initialize,
    Operation.CONNECTION_SET_ADMIN: compose.connection_set_admin,
    Operation.ADD_VALIDATORS: compose.add_validators,
    Operation.MOCK_INITIALIZE: compose.mock_initialize,
    Operation.SEND_MESSAGE: compose.send_message,
    Operation.RECEIVE_MESSAGE: compose.receive_message,
}


def _check_exhaustive() -> None:
    missing = [op.name for op in Operation if op not in HANDLERS]
    if missing:
        raise RuntimeError(f"operations without a composer: {', '.join(missing)}")


_check_exhaustive()

_BY_PAIR: Dict[tuple, Operation] = {op.value: op for op in Operation}


def contracts() -> List[str]:
    return sorted({op.contract for op in Operation})


def methods_for(contract: str) -> List[str]:
    return [op.method for op in Operation if op.contract == contract]


def resolve(contract: str, method: str) -> Operation:
    op = _BY_PAIR.get((contract, method))
    if op is not None:
        return op
    valid = methods_for(contract)
    if not valid:
        raise UnsupportedOperation(
            f"Contract '{contract}' is not supported. Allowed contracts are: {', '.join(contracts())}"
        )
    raise UnsupportedOperation(
        f"Method '{method}' is not supported for {contract}. Valid methods: {', '.join(valid)}"
    )


def dispatch(ctx: CallContext, contract: str, method: str, params: Mapping[str, Any]) -> Union[Composition, Query]:
    op = resolve(contract, method)
    return HANDLERS[op](ctx, canonical_params(params))
