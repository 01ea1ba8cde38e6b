"""Fee controller: owner/operator administration of a UniswapV3-style protocol.

The FeeController is the entry point for administering the external factory
and its pools. It checks the caller's capability first, then issues calls
to the protocol backend:

- Owner-only configuration: fee tiers, factory ownership, protocol fee,
  maker (treasury), factory reference
- Owner-or-trusted batches: apply the protocol fee to pools, collect
  protocol fees to the maker
- Owner-only escape hatch: one raw call with value and calldata

Batches are all-or-nothing. If any call in a batch fails, the backend is
reverted to its state before the batch and ExternalCallFailed is raised.
"""

from __future__ import annotations

import dataclasses
import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from controller.auth import AuthorityRegistry
from controller.config import ControllerConfig, Settings
from controller.constants import PROTOCOL_FEE_BITS
from controller.errors import ControllerError, ExternalCallFailed, InvalidConfiguration
from controller.models.types import is_uint, is_zero_address, to_identity

if TYPE_CHECKING:
    from controller.protocol.base import ProtocolBackend

logger = structlog.get_logger()

T = TypeVar("T")
F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class Action:
    """A raw call issued through the escape hatch.

    The controller does not interpret data; the action is only as safe as
    the owner who issues it.

    Attributes:
        target: Address called
        value: Native amount sent with the call (wei)
        data: Calldata, forwarded unmodified
    """

    target: str
    value: int = 0
    data: bytes = b""

    def __post_init__(self) -> None:
        object.__setattr__(self, "target", to_identity(self.target, "action target"))
        if not is_uint(self.value, 256):
            raise InvalidConfiguration(f"Action value must be a uint256, got {self.value!r}")
        if not isinstance(self.data, bytes | bytearray):
            raise InvalidConfiguration(f"Action data must be bytes, got {type(self.data).__name__}")
        object.__setattr__(self, "data", bytes(self.data))


@dataclass(frozen=True)
class Collection:
    """Protocol fees swept from one pool to the maker."""

    pool: str
    amount0: int
    amount1: int


def _serialized(method: F) -> F:
    """Run method while holding the controller lock."""

    @wraps(method)
    def wrapper(self: FeeController, *args: Any, **kwargs: Any) -> Any:
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]


class FeeController:
    """Administers one factory and its pools on behalf of an owner.

    Every public operation takes the caller's address as its first argument
    and is serialized against every other operation on the same instance.

    Args:
        owner: Initial owner address (non-zero)
        operator: Initial trusted operator, or None for an empty trusted set
        backend: Protocol backend; its account is the address the external
            protocol sees as the caller and must own the factory
        config: Initial configuration (factory, maker, protocol fee)

    Raises:
        InvalidConfiguration: If an address is malformed, the owner is the
            zero address, or the protocol fee is not a uint8
    """

    def __init__(
        self,
        owner: str,
        operator: str | None,
        backend: ProtocolBackend,
        config: ControllerConfig,
    ) -> None:
        self.auth = AuthorityRegistry(owner, [operator] if operator else [])
        self._backend = backend
        self._config = self._validated(config)
        self._lock = threading.RLock()

    # --- Read accessors ---

    @property
    def config(self) -> ControllerConfig:
        """Current configuration tuple."""
        return self._config

    @property
    def owner(self) -> str:
        return self.auth.owner

    @property
    def trusted(self) -> frozenset[str]:
        return self.auth.trusted

    @property
    def factory(self) -> str:
        return self._config.factory

    @property
    def maker(self) -> str:
        return self._config.maker

    @property
    def protocol_fee(self) -> int:
        return self._config.protocol_fee

    @property
    def backend(self) -> ProtocolBackend:
        return self._backend

    # --- Authority ---

    @_serialized
    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Transfer controller ownership (owner only)."""
        self.auth.transfer_ownership(caller, new_owner)

    @_serialized
    def set_trusted(self, caller: str, address: str, trusted: bool) -> None:
        """Add or remove a trusted operator (owner only, idempotent)."""
        self.auth.set_trusted(caller, address, trusted)

    def add_trusted(self, caller: str, address: str) -> None:
        self.set_trusted(caller, address, True)

    def remove_trusted(self, caller: str, address: str) -> None:
        self.set_trusted(caller, address, False)

    # --- Owner-only configuration ---

    @_serialized
    def create_fee_tier(self, caller: str, fee: int, tick_spacing: int) -> None:
        """Enable a new fee tier on the factory (owner only).

        Arguments are forwarded unchanged; the factory decides whether they
        are acceptable.

        Raises:
            Unauthorized: If caller is not the owner
            ExternalCallFailed: If the factory rejects the fee tier
        """
        self.auth.require_owner(caller)
        with self._atomic("create_fee_tier", fee=fee, tick_spacing=tick_spacing):
            self._backend.factory(self._config.factory).enable_fee_amount(fee, tick_spacing)
        logger.info(
            "fee_tier_created", factory=self._config.factory, fee=fee, tick_spacing=tick_spacing
        )

    @_serialized
    def set_factory_owner(self, caller: str, new_owner: str) -> None:
        """Hand factory ownership to new_owner (owner only).

        After this succeeds the controller can no longer administer the
        factory or its pools until new_owner hands ownership back.

        Raises:
            Unauthorized: If caller is not the owner
            InvalidConfiguration: If new_owner is malformed, or is the zero
                address while reject_zero_address is set
            ExternalCallFailed: If the factory rejects the transfer
        """
        self.auth.require_owner(caller)
        new_owner_norm = self._check_address(new_owner, "factory owner")
        with self._atomic("set_factory_owner", new_owner=new_owner_norm):
            self._backend.factory(self._config.factory).set_owner(new_owner_norm)
        logger.warning(
            "factory_ownership_released",
            factory=self._config.factory,
            new_owner=new_owner_norm,
            message="Controller no longer owns the factory",
        )

    @_serialized
    def set_protocol_fee(self, caller: str, value: int) -> None:
        """Set the pending protocol fee (owner only).

        Pools are unaffected until apply_protocol_fee targets them. Only the
        uint8 domain is checked here; the pools validate the value when it is applied.

        Raises:
            Unauthorized: If caller is not the owner
            InvalidConfiguration: If value is not a uint8
        """
        self.auth.require_owner(caller)
        self._replace_config(protocol_fee=self._check_protocol_fee(value))

    @_serialized
    def set_maker(self, caller: str, maker: str) -> None:
        """Set the treasury that receives collected fees (owner only)."""
        self.auth.require_owner(caller)
        self._replace_config(maker=self._check_address(maker, "maker"))

    @_serialized
    def set_factory(self, caller: str, factory: str) -> None:
        """Point the controller at another factory (owner only)."""
        self.auth.require_owner(caller)
        self._replace_config(factory=self._check_address(factory, "factory"))

    # --- Owner-or-trusted batches ---

    @_serialized
    def apply_protocol_fee(self, caller: str, pools: Iterable[str]) -> int:
        """Set the current protocol fee on both legs of every pool, in order.

        Every pool of the batch receives the protocol fee as it was when the
        call started.

        Args:
            caller: Owner or trusted operator
            pools: Pool addresses; not stored

        Returns:
            The protocol fee value that was applied

        Raises:
            Unauthorized: If caller is neither owner nor trusted
            InvalidConfiguration: If a pool address is malformed (before any call)
            ExternalCallFailed: If any pool rejects the call; no pool keeps a change
        """
        self.auth.require_trusted(caller)
        targets = self._pool_list(pools)
        fee = self._config.protocol_fee

        def apply(address: str) -> None:
            self._backend.pool(address).set_fee_protocol(fee, fee)

        self._run_batch("apply_protocol_fee", targets, apply, protocol_fee=fee)
        logger.info("protocol_fee_applied", protocol_fee=fee, pool_count=len(targets))
        return fee

    @_serialized
    def collect_fees(self, caller: str, pools: Iterable[str]) -> list[Collection]:
        """Sweep each pool's accrued protocol fees to the maker, in order.

        For each pool the balances are read and exactly those amounts are
        requested in the same step.

        Args:
            caller: Owner or trusted operator
            pools: Pool addresses; not stored

        Returns:
            One Collection per pool, in list order, with the amounts sent

        Raises:
            Unauthorized: If caller is neither owner nor trusted
            InvalidConfiguration: If a pool address is malformed (before any call)
            ExternalCallFailed: If any read or sweep fails; nothing is swept
        """
        self.auth.require_trusted(caller)
        targets = self._pool_list(pools)
        maker = self._config.maker

        def collect(address: str) -> Collection:
            pool = self._backend.pool(address)
            amount0, amount1 = pool.protocol_fees()
            sent0, sent1 = pool.collect_protocol(maker, amount0, amount1)
            return Collection(pool=address, amount0=sent0, amount1=sent1)

        collections = self._run_batch("collect_fees", targets, collect, maker=maker)
        logger.info(
            "protocol_fees_collected",
            maker=maker,
            pool_count=len(collections),
            total0=sum(c.amount0 for c in collections),
            total1=sum(c.amount1 for c in collections),
        )
        return collections

    # --- Escape hatch ---

    @_serialized
    def execute(self, caller: str, action: Action) -> bytes:
        """Issue one raw call (owner only).

        This is the only path through which the controller calls an arbitrary
        address. Every invocation is logged with its target, value, and selector.

        Returns:
            Return data of the call

        Raises:
            Unauthorized: If caller is not the owner
            ExternalCallFailed: If the call fails; its effects are reverted
        """
        self.auth.require_owner(caller)
        logger.warning(
            "escape_hatch_call",
            caller=caller,
            target=action.target,
            value=action.value,
            selector=action.data[:4].hex(),
            data_length=len(action.data),
        )
        with self._atomic("do_action", target=action.target):
            return self._backend.call(action.target, action.value, action.data)

    def do_action(self, caller: str, target: str, value: int = 0, data: bytes = b"") -> bytes:
        """Build an Action from its parts and execute it (owner only).

        Raises:
            Unauthorized: If caller is not the owner
            InvalidConfiguration: If target, value, or data is malformed
            ExternalCallFailed: If the call fails
        """
        self.auth.require_owner(caller)
        return self.execute(caller, Action(target=target, value=value, data=data))

    # --- Internals ---

    def _run_batch(
        self,
        operation: str,
        pools: list[str],
        step: Callable[[str], T],
        **context: Any,
    ) -> list[T]:
        results: list[T] = []
        with self._atomic(operation, pool_count=len(pools), **context):
            for index, pool in enumerate(pools):
                try:
                    results.append(step(pool))
                except Exception:
                    logger.warning("batch_step_failed", operation=operation, index=index, pool=pool)
                    raise
        return results

    @contextmanager
    def _atomic(self, operation: str, **context: Any) -> Iterator[None]:
        """Run a block inside backend.atomic(), surfacing failures as ExternalCallFailed."""
        try:
            with self._backend.atomic():
                yield
        except ControllerError as err:
            logger.warning("operation_reverted", operation=operation, error=str(err), **context)
            raise
        except Exception as err:
            logger.exception("operation_reverted", operation=operation, **context)
            raise ExternalCallFailed(f"{operation} failed: {err}") from err

    def _pool_list(self, pools: Iterable[str]) -> list[str]:
        if isinstance(pools, str):
            raise InvalidConfiguration("Pools must be a list of addresses, not a single string")
        return [to_identity(pool, "pool") for pool in pools]

    def _check_address(
        self, address: str, name: str, config: ControllerConfig | None = None
    ) -> str:
        """Validate a maker/factory/factory-owner address.

        The zero address is rejected only when reject_zero_address is set.
        """
        address_norm = to_identity(address, name)
        if is_zero_address(address_norm):
            if (config or self._config).reject_zero_address:
                raise InvalidConfiguration(f"{name} cannot be the zero address")
            logger.warning("zero_address_accepted", field=name)
        return address_norm

    @staticmethod
    def _check_protocol_fee(value: int) -> int:
        if not is_uint(value, PROTOCOL_FEE_BITS):
            raise InvalidConfiguration(f"Protocol fee must be a uint8, got {value!r}")
        return value

    def _validated(self, config: ControllerConfig) -> ControllerConfig:
        return dataclasses.replace(
            config,
            factory=self._check_address(config.factory, "factory", config),
            maker=self._check_address(config.maker, "maker", config),
            protocol_fee=self._check_protocol_fee(config.protocol_fee),
        )

    def _replace_config(self, **changes: Any) -> None:
        previous = self._config
        self._config = dataclasses.replace(previous, **changes)
        logger.info(
            "config_updated",
            **{name: value for name, value in changes.items()},
            previous={name: getattr(previous, name) for name in changes},
        )


# Account the in-memory protocol runs the controller as when CONTROLLER_ACCOUNT is unset
DEFAULT_SIMULATION_ACCOUNT = "0x00000000000000000000000000000000000fee00"


def create_controller(settings: Settings) -> FeeController:
    """Create a controller from settings.

    With RPC_URL set, the controller drives a node through RpcProtocol and
    CONTROLLER_ACCOUNT must be an account the node can send from. Otherwise it
    runs against an InMemoryProtocol with the factory deployed and owned by
    the controller account.

    Raises:
        InvalidConfiguration: If CONTROLLER_OWNER is unset, or CONTROLLER_ACCOUNT
            is unset while RPC_URL is set
    """
    if not settings.owner:
        raise InvalidConfiguration("CONTROLLER_OWNER is not set")

    backend: ProtocolBackend
    if settings.rpc_url:
        from controller.protocol.rpc import RpcProtocol

        if not settings.account:
            raise InvalidConfiguration("CONTROLLER_ACCOUNT is required with RPC_URL")
        logger.info("rpc_backend_enabled", rpc_url=settings.rpc_url[:50] + "...")
        backend = RpcProtocol(settings.rpc_url, account=settings.account)
    else:
        from controller.protocol.memory import InMemoryProtocol

        logger.info("in_memory_backend_enabled", reason="RPC_URL not set")
        protocol = InMemoryProtocol(account=settings.account or DEFAULT_SIMULATION_ACCOUNT)
        protocol.deploy_factory(settings.factory)
        backend = protocol

    return FeeController(
        owner=settings.owner,
        operator=settings.operator,
        backend=backend,
        config=settings.controller_config(),
    )


_default_controller: FeeController | None = None
_default_controller_lock = threading.Lock()


def get_default_controller() -> FeeController:
    """Get the process-wide controller, creating it from the environment on first use."""
    global _default_controller
    if _default_controller is None:
        with _default_controller_lock:
            if _default_controller is None:
                _default_controller = create_controller(Settings.from_env())
    return _default_controller


__all__ = ["Action", "Collection", "FeeController", "create_controller", "get_default_controller"]
