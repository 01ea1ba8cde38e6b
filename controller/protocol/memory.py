"""In-memory UniswapV3 factory/pool protocol.

Simulates the admin surface of UniswapV3Factory and UniswapV3Pool closely
enough to exercise the controller without a node:

- enableFeeAmount / setOwner are restricted to the factory owner
- setFeeProtocol / collectProtocol are restricted to the owner of the pool's factory
- setFeeProtocol accepts 0 or 4..10 per leg
- collectProtocol caps each requested amount at the accrued balance
- raw calls move native value and dispatch known calldata to factories/pools

All state lives in one object so atomic() can snapshot and revert it, the
same way evm_snapshot/evm_revert work on a development node.

Usage:
    protocol = InMemoryProtocol(account=CONTROLLER)
    factory = protocol.deploy_factory()
    pool = protocol.create_pool(factory, WETH, USDC, 3000)
    protocol.accrue_protocol_fees(pool, 10**15, 2 * 10**6)
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import structlog
from web3 import Web3

from controller.constants import (
    V3_DEFAULT_FEE_TIERS,
    V3_FEE_PROTOCOL_MAX,
    V3_FEE_PROTOCOL_MIN,
    V3_MAX_FEE,
    V3_MAX_TICK_SPACING,
)
from controller.errors import ExternalCallFailed
from controller.models.types import is_uint, normalize_address, to_identity

from .encoding import decode_factory_call, decode_pool_call, encode_returns, pack_fee_protocol

logger = structlog.get_logger()

# (sender, value, data) -> return data
CallHandler = Callable[[str, int, bytes], bytes]


@dataclass
class FactoryState:
    """Storage of one simulated UniswapV3Factory."""

    address: str
    owner: str
    fee_amount_tick_spacing: dict[int, int] = field(
        default_factory=lambda: dict(V3_DEFAULT_FEE_TIERS)
    )


@dataclass
class PoolState:
    """Storage of one simulated UniswapV3Pool (admin-relevant fields only)."""

    address: str
    factory: str
    token0: str
    token1: str
    fee: int
    fee_protocol0: int = 0
    fee_protocol1: int = 0
    protocol_fees0: int = 0
    protocol_fees1: int = 0


@dataclass
class _State:
    factories: dict[str, FactoryState] = field(default_factory=dict)
    pools: dict[str, PoolState] = field(default_factory=dict)
    # (token, holder) -> balance
    token_balances: dict[tuple[str, str], int] = field(default_factory=dict)
    native_balances: dict[str, int] = field(default_factory=dict)
    nonce: int = 0


def _require(condition: bool, method: str, reason: str) -> None:
    if not condition:
        raise ExternalCallFailed(f"{method} reverted: {reason}")


class InMemoryFactory:
    """Handle to a simulated factory, acting as the protocol's account."""

    def __init__(self, protocol: InMemoryProtocol, address: str) -> None:
        self._protocol = protocol
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    def owner(self) -> str:
        return self._protocol.execute(self._address, "owner", ())

    def fee_amount_tick_spacing(self, fee: int) -> int:
        return self._protocol.execute(self._address, "feeAmountTickSpacing", (fee,))

    def enable_fee_amount(self, fee: int, tick_spacing: int) -> None:
        self._protocol.execute(self._address, "enableFeeAmount", (fee, tick_spacing))

    def set_owner(self, new_owner: str) -> None:
        self._protocol.execute(self._address, "setOwner", (new_owner,))


class InMemoryPool:
    """Handle to a simulated pool, acting as the protocol's account."""

    def __init__(self, protocol: InMemoryProtocol, address: str) -> None:
        self._protocol = protocol
        self._address = address

    @property
    def address(self) -> str:
        return self._address

    def fee_protocol(self) -> tuple[int, int]:
        return self._protocol.execute(self._address, "feeProtocol", ())

    def set_fee_protocol(self, fee_protocol0: int, fee_protocol1: int) -> None:
        self._protocol.execute(self._address, "setFeeProtocol", (fee_protocol0, fee_protocol1))

    def protocol_fees(self) -> tuple[int, int]:
        return self._protocol.execute(self._address, "protocolFees", ())

    def collect_protocol(self, recipient: str, amount0: int, amount1: int) -> tuple[int, int]:
        return self._protocol.execute(
            self._address, "collectProtocol", (recipient, amount0, amount1)
        )


class InMemoryProtocol:
    """Simulated factory/pool protocol seen from one account.

    Factory and pool methods check every condition before changing state, so a
    reverting call leaves nothing behind. Only atomic() snapshots state, once
    per block.

    Args:
        account: Address the protocol sees as the caller
        record_calls: Keep every issued call in `calls`. Off by default so a
            long-running process does not accumulate them.

    Attributes:
        calls: Calls issued through the protocol, as (target, method, args),
            when record_calls is set. Not reverted by atomic(), so tests can
            assert on attempted calls.
    """

    def __init__(self, account: str, record_calls: bool = False) -> None:
        self._account = to_identity(account, "account")
        self._state = _State()
        self._snapshots: list[_State] = []
        self._faults: set[tuple[str, str | None]] = set()
        self._handlers: dict[str, CallHandler] = {}
        self._record_calls = record_calls
        self.calls: list[tuple[str, str, tuple[Any, ...]]] = []

        self._factory_methods: dict[str, Callable[..., Any]] = {
            "owner": self._factory_owner,
            "feeAmountTickSpacing": self._factory_fee_amount_tick_spacing,
            "enableFeeAmount": self._factory_enable_fee_amount,
            "setOwner": self._factory_set_owner,
        }
        self._pool_methods: dict[str, Callable[..., Any]] = {
            "slot0": self._pool_slot0,
            "feeProtocol": self._pool_fee_protocol,
            "protocolFees": self._pool_protocol_fees,
            "setFeeProtocol": self._pool_set_fee_protocol,
            "collectProtocol": self._pool_collect_protocol,
        }

    # --- ProtocolBackend ---

    @property
    def account(self) -> str:
        return self._account

    def factory(self, address: str) -> InMemoryFactory:
        return InMemoryFactory(self, normalize_address(address))

    def pool(self, address: str) -> InMemoryPool:
        return InMemoryPool(self, normalize_address(address))

    def call(self, target: str, value: int, data: bytes) -> bytes:
        """Raw call from the account.

        Value moves first; the call then goes to a registered handler, to a
        factory or pool (decoded calldata), or to a plain account. Any failure
        reverts the value transfer.

        Raises:
            ExternalCallFailed: On insufficient balance, undecodable calldata for
                a contract, a reverting dispatch, or a failing handler
        """
        target = normalize_address(target)
        self._record(target, "call", (value, bytes(data)))
        self._check_fault(target, "call")

        self._transfer_native(self._account, target, value)
        try:
            return self._deliver(target, value, bytes(data))
        except BaseException:
            self._transfer_native(target, self._account, value)
            raise

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Revert every state change made inside the block if it raises."""
        snapshot_id = self.snapshot()
        try:
            yield
        except BaseException:
            self.revert(snapshot_id)
            raise
        else:
            del self._snapshots[snapshot_id:]

    # --- Snapshots ---

    def snapshot(self) -> int:
        """Record the current state and return an id for revert()."""
        self._snapshots.append(copy.deepcopy(self._state))
        return len(self._snapshots) - 1

    def revert(self, snapshot_id: int) -> None:
        """Restore the state recorded by snapshot_id, discarding it and later snapshots."""
        if not 0 <= snapshot_id < len(self._snapshots):
            raise ValueError(f"Unknown snapshot: {snapshot_id}")
        self._state = self._snapshots[snapshot_id]
        del self._snapshots[snapshot_id:]

    # --- Setup and inspection (not access-controlled) ---

    def deploy_factory(self, address: str | None = None, owner: str | None = None) -> str:
        """Deploy a factory with the default fee tiers.

        Args:
            address: Factory address (derived from a nonce if omitted)
            owner: Factory owner (defaults to the protocol's account)

        Returns:
            The factory address
        """
        factory_address = (
            to_identity(address, "factory") if address else self._next_address("factory")
        )
        if factory_address in self._state.factories:
            raise ValueError(f"Factory already deployed at {factory_address}")
        self._state.factories[factory_address] = FactoryState(
            address=factory_address,
            owner=to_identity(owner, "owner") if owner else self._account,
        )
        return factory_address

    def create_pool(self, factory: str, token_a: str, token_b: str, fee: int) -> str:
        """Create a pool for an enabled fee tier; tokens are sorted as token0 < token1.

        Returns:
            The pool address, derived from (factory, token0, token1, fee)
        """
        factory_state = self._state.factories[normalize_address(factory)]
        if fee not in factory_state.fee_amount_tick_spacing:
            raise ValueError(f"Fee tier {fee} not enabled on {factory_state.address}")
        token0, token1 = sorted((to_identity(token_a, "token"), to_identity(token_b, "token")))
        if token0 == token1:
            raise ValueError("Pool tokens must differ")
        salt = f"{factory_state.address}:{token0}:{token1}:{fee}".encode()
        pool_address = "0x" + bytes(Web3.keccak(salt)[12:]).hex()
        if pool_address in self._state.pools:
            raise ValueError(f"Pool already exists at {pool_address}")
        self._state.pools[pool_address] = PoolState(
            address=pool_address,
            factory=factory_state.address,
            token0=token0,
            token1=token1,
            fee=fee,
        )
        return pool_address

    def accrue_protocol_fees(self, pool: str, amount0: int, amount1: int) -> None:
        """Credit protocol fees to a pool, as swaps with a protocol fee on would."""
        state = self._state.pools[normalize_address(pool)]
        state.protocol_fees0 += amount0
        state.protocol_fees1 += amount1
        self._credit(state.token0, state.address, amount0)
        self._credit(state.token1, state.address, amount1)

    def fund(self, address: str, amount: int) -> None:
        """Credit native balance to address."""
        holder = normalize_address(address)
        self._state.native_balances[holder] = self.native_balance(holder) + amount

    def register_handler(self, target: str, handler: CallHandler) -> None:
        """Route raw calls to target through handler."""
        self._handlers[normalize_address(target)] = handler

    def inject_fault(self, address: str, method: str | None = None) -> None:
        """Make calls to address (only `method`, if given) revert until cleared."""
        self._faults.add((normalize_address(address), method))

    def clear_faults(self) -> None:
        self._faults.clear()

    def pool_state(self, address: str) -> PoolState:
        """Pool storage, for assertions. Not recorded in `calls`.

        A revert replaces state objects, so fetch this after the operation under test.
        """
        return self._state.pools[normalize_address(address)]

    def factory_state(self, address: str) -> FactoryState:
        """Factory storage, for assertions. Not recorded in `calls`."""
        return self._state.factories[normalize_address(address)]

    def balance_of(self, token: str, holder: str) -> int:
        return self._state.token_balances.get(
            (normalize_address(token), normalize_address(holder)), 0
        )

    def native_balance(self, address: str) -> int:
        return self._state.native_balances.get(normalize_address(address), 0)

    # --- Dispatch ---

    def execute(self, target: str, method: str, args: tuple[Any, ...]) -> Any:
        """Run a typed factory/pool method as the account, recording the call.

        Raises:
            ExternalCallFailed: If no contract lives at target, a fault is
                injected, or the method reverts
        """
        target = normalize_address(target)
        self._record(target, method, args)
        self._check_fault(target, method)
        return self._invoke(target, method, args)

    def _invoke(self, target: str, method: str, args: tuple[Any, ...]) -> Any:
        if target in self._state.factories:
            methods = self._factory_methods
            state: FactoryState | PoolState = self._state.factories[target]
        elif target in self._state.pools:
            methods = self._pool_methods
            state = self._state.pools[target]
        else:
            raise ExternalCallFailed(f"{method} reverted: no contract at {target}")

        implementation = methods.get(method)
        _require(implementation is not None, method, f"unknown function on {target}")
        return implementation(state, *args)

    def _deliver(self, target: str, value: int, data: bytes) -> bytes:
        handler = self._handlers.get(target)
        if handler is not None:
            try:
                return handler(self._account, value, data)
            except ExternalCallFailed:
                raise
            except Exception as err:
                raise ExternalCallFailed(f"call to {target} reverted: {err}") from err

        if target in self._state.factories:
            return self._dispatch_raw(target, value, data, decode_factory_call)
        if target in self._state.pools:
            return self._dispatch_raw(target, value, data, decode_pool_call)

        return b""

    def _dispatch_raw(
        self,
        target: str,
        value: int,
        data: bytes,
        decoder: Callable[[bytes], tuple[Any, tuple[Any, ...]]],
    ) -> bytes:
        try:
            spec, args = decoder(bytes(data))
        except ValueError as err:
            raise ExternalCallFailed(f"call to {target} reverted: {err}") from err
        _require(value == 0, spec.name, "function is not payable")
        result = self._invoke(target, spec.name, args)
        return encode_returns(spec, result)

    def _record(self, target: str, method: str, args: tuple[Any, ...]) -> None:
        if self._record_calls:
            self.calls.append((target, method, args))

    def _check_fault(self, target: str, method: str) -> None:
        if (target, None) in self._faults or (target, method) in self._faults:
            raise ExternalCallFailed(f"{method} reverted: injected fault at {target}")

    # --- Factory methods ---

    def _factory_owner(self, factory: FactoryState) -> str:
        return factory.owner

    def _factory_fee_amount_tick_spacing(self, factory: FactoryState, fee: int) -> int:
        return factory.fee_amount_tick_spacing.get(fee, 0)

    def _factory_enable_fee_amount(
        self, factory: FactoryState, fee: int, tick_spacing: int
    ) -> None:
        method = "enableFeeAmount"
        _require(self._account == factory.owner, method, "caller is not the factory owner")
        _require(is_uint(fee, 24) and fee < V3_MAX_FEE, method, f"fee out of range: {fee}")
        _require(
            isinstance(tick_spacing, int) and 0 < tick_spacing < V3_MAX_TICK_SPACING,
            method,
            f"tick spacing out of range: {tick_spacing}",
        )
        _require(
            fee not in factory.fee_amount_tick_spacing,
            method,
            f"fee tier {fee} already enabled",
        )
        factory.fee_amount_tick_spacing[fee] = tick_spacing

    def _factory_set_owner(self, factory: FactoryState, new_owner: str) -> None:
        _require(self._account == factory.owner, "setOwner", "caller is not the factory owner")
        factory.owner = to_identity(new_owner, "factory owner")

    # --- Pool methods ---

    def _require_factory_owner(self, pool: PoolState, method: str) -> None:
        factory = self._state.factories.get(pool.factory)
        _require(
            factory is not None and factory.owner == self._account,
            method,
            "caller is not the factory owner",
        )

    def _pool_slot0(self, pool: PoolState) -> tuple[int, int, int, int, int, int, bool]:
        # Only feeProtocol is meaningful here; price state is not simulated
        return (0, 0, 0, 0, 0, pack_fee_protocol(pool.fee_protocol0, pool.fee_protocol1), True)

    def _pool_fee_protocol(self, pool: PoolState) -> tuple[int, int]:
        return pool.fee_protocol0, pool.fee_protocol1

    def _pool_protocol_fees(self, pool: PoolState) -> tuple[int, int]:
        return pool.protocol_fees0, pool.protocol_fees1

    def _pool_set_fee_protocol(
        self, pool: PoolState, fee_protocol0: int, fee_protocol1: int
    ) -> None:
        method = "setFeeProtocol"
        self._require_factory_owner(pool, method)
        for fee_protocol in (fee_protocol0, fee_protocol1):
            _require(
                fee_protocol == 0
                or (
                    is_uint(fee_protocol, 8)
                    and V3_FEE_PROTOCOL_MIN <= fee_protocol <= V3_FEE_PROTOCOL_MAX
                ),
                method,
                f"invalid fee protocol: {fee_protocol}",
            )
        pool.fee_protocol0 = fee_protocol0
        pool.fee_protocol1 = fee_protocol1
        logger.debug(
            "pool_fee_protocol_set",
            pool=pool.address,
            fee_protocol0=fee_protocol0,
            fee_protocol1=fee_protocol1,
        )

    def _pool_collect_protocol(
        self, pool: PoolState, recipient: str, amount0_requested: int, amount1_requested: int
    ) -> tuple[int, int]:
        method = "collectProtocol"
        self._require_factory_owner(pool, method)
        _require(
            is_uint(amount0_requested, 128) and is_uint(amount1_requested, 128),
            method,
            "requested amount is not a uint128",
        )
        recipient = to_identity(recipient, "recipient")
        amount0 = min(amount0_requested, pool.protocol_fees0)
        amount1 = min(amount1_requested, pool.protocol_fees1)
        self._require_balance(pool.token0, pool.address, amount0)
        self._require_balance(pool.token1, pool.address, amount1)
        pool.protocol_fees0 -= amount0
        pool.protocol_fees1 -= amount1
        self._move_token(pool.token0, pool.address, recipient, amount0)
        self._move_token(pool.token1, pool.address, recipient, amount1)
        return amount0, amount1

    # --- Balances ---

    def _credit(self, token: str, holder: str, amount: int) -> None:
        key = (token, holder)
        self._state.token_balances[key] = self._state.token_balances.get(key, 0) + amount

    def _require_balance(self, token: str, holder: str, amount: int) -> None:
        balance = self._state.token_balances.get((token, holder), 0)
        _require(balance >= amount, "transfer", f"insufficient {token} balance")

    def _move_token(self, token: str, sender: str, recipient: str, amount: int) -> None:
        if amount == 0:
            return
        self._require_balance(token, sender, amount)
        self._state.token_balances[(token, sender)] -= amount
        self._credit(token, recipient, amount)

    def _transfer_native(self, sender: str, recipient: str, amount: int) -> None:
        _require(is_uint(amount, 256), "call", f"invalid value: {amount}")
        if amount == 0:
            return
        balance = self.native_balance(sender)
        _require(balance >= amount, "call", "insufficient native balance")
        self._state.native_balances[sender] = balance - amount
        self._state.native_balances[recipient] = self.native_balance(recipient) + amount

    def _next_address(self, kind: str) -> str:
        self._state.nonce += 1
        return "0x" + bytes(Web3.keccak(text=f"{kind}:{self._state.nonce}")[12:]).hex()


__all__ = [
    "CallHandler",
    "FactoryState",
    "PoolState",
    "InMemoryFactory",
    "InMemoryPool",
    "InMemoryProtocol",
]
