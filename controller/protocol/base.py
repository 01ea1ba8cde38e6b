"""Interfaces of the external pool protocol the controller drives.

The controller never implements trading logic; it only issues calls to a
UniswapV3-style factory and its pools. These Protocols allow swapping between
a node-backed implementation and the in-memory one used for testing and
simulation.

All calls act as the backend's account (the controller's own address) and
raise ExternalCallFailed when the external side rejects them.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol


class PoolFactory(Protocol):
    """Factory entry points used by the controller."""

    @property
    def address(self) -> str: ...

    def owner(self) -> str:
        """Current factory owner."""
        ...

    def fee_amount_tick_spacing(self, fee: int) -> int:
        """Tick spacing enabled for fee, or 0 if the fee tier is not enabled."""
        ...

    def enable_fee_amount(self, fee: int, tick_spacing: int) -> None:
        """Enable a new fee tier (factory owner only)."""
        ...

    def set_owner(self, new_owner: str) -> None:
        """Transfer factory ownership (factory owner only)."""
        ...


class Pool(Protocol):
    """Pool entry points used by the controller."""

    @property
    def address(self) -> str: ...

    def fee_protocol(self) -> tuple[int, int]:
        """Current protocol fee denominators for (token0, token1)."""
        ...

    def set_fee_protocol(self, fee_protocol0: int, fee_protocol1: int) -> None:
        """Set the protocol fee of each leg (factory owner only)."""
        ...

    def protocol_fees(self) -> tuple[int, int]:
        """Accrued, uncollected protocol fees as (amount0, amount1)."""
        ...

    def collect_protocol(self, recipient: str, amount0: int, amount1: int) -> tuple[int, int]:
        """Send up to the requested protocol fees to recipient (factory owner only).

        Returns:
            The amounts actually sent
        """
        ...


class ProtocolBackend(Protocol):
    """Access to the external protocol for one controller account."""

    @property
    def account(self) -> str:
        """Address the backend issues calls from."""
        ...

    def factory(self, address: str) -> PoolFactory:
        """Handle to the factory at address."""
        ...

    def pool(self, address: str) -> Pool:
        """Handle to the pool at address. Calls fail if no pool lives there."""
        ...

    def call(self, target: str, value: int, data: bytes) -> bytes:
        """Raw call: send value (native asset) and data to target.

        Returns:
            Return data of the call
        """
        ...

    def atomic(self) -> AbstractContextManager[None]:
        """Context in which every effect is reverted if the block raises."""
        ...


__all__ = ["PoolFactory", "Pool", "ProtocolBackend"]
