"""Configuration for the fee controller."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from controller.constants import V3_FACTORY_ADDRESS


@dataclass(frozen=True)
class ControllerConfig:
    """Configuration tuple owned by one FeeController instance.

    The controller never mutates a config in place; owner-gated setters
    swap in a new instance, so an operation always sees one consistent tuple.

    Attributes:
        maker: Treasury address that receives swept protocol fees
        factory: Address of the pool factory the controller administers
        protocol_fee: Pending protocol fee (uint8), applied to both legs of
            every pool the next time apply_protocol_fee targets it
        reject_zero_address: If True, setting the zero address as maker,
            factory, or factory owner raises InvalidConfiguration.
            If False, it is accepted and logged as a warning.
    """

    maker: str
    factory: str = V3_FACTORY_ADDRESS
    protocol_fee: int = 0

    # Behavior flags
    reject_zero_address: bool = False


def _env_flag(value: str | None) -> bool:
    return (value or "false").lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    """Process-level settings read from the environment.

    Environment variables:
    - CONTROLLER_HOST / CONTROLLER_PORT / CONTROLLER_DEBUG: API server binding
    - CONTROLLER_OWNER: initial owner address (required to build a controller)
    - CONTROLLER_OPERATOR: initial trusted operator address (optional)
    - CONTROLLER_ACCOUNT: address the controller sends calls from
    - CONTROLLER_FACTORY / CONTROLLER_MAKER / CONTROLLER_PROTOCOL_FEE: initial config
    - CONTROLLER_REJECT_ZERO_ADDRESS: see ControllerConfig.reject_zero_address
    - RPC_URL: if set, talk to a node instead of the in-memory protocol
    """

    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    owner: str | None = None
    operator: str | None = None
    account: str | None = None
    factory: str = V3_FACTORY_ADDRESS
    maker: str | None = None
    protocol_fee: int = 0
    reject_zero_address: bool = False
    rpc_url: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables (defaults where unset)."""
        env = os.environ if environ is None else environ
        return cls(
            host=env.get("CONTROLLER_HOST", "0.0.0.0"),
            port=int(env.get("CONTROLLER_PORT", "8000")),
            debug=_env_flag(env.get("CONTROLLER_DEBUG")),
            owner=env.get("CONTROLLER_OWNER") or None,
            operator=env.get("CONTROLLER_OPERATOR") or None,
            account=env.get("CONTROLLER_ACCOUNT") or None,
            factory=env.get("CONTROLLER_FACTORY", V3_FACTORY_ADDRESS),
            maker=env.get("CONTROLLER_MAKER") or None,
            protocol_fee=int(env.get("CONTROLLER_PROTOCOL_FEE", "0")),
            reject_zero_address=_env_flag(env.get("CONTROLLER_REJECT_ZERO_ADDRESS")),
            rpc_url=env.get("RPC_URL") or None,
        )

    def controller_config(self) -> ControllerConfig:
        """The initial ControllerConfig described by these settings.

        The maker defaults to the owner when unset.
        """
        return ControllerConfig(
            factory=self.factory,
            maker=self.maker or self.owner or "",
            protocol_fee=self.protocol_fee,
            reject_zero_address=self.reject_zero_address,
        )
