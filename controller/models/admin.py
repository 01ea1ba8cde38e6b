"""Pydantic models for the admin API request/response bodies."""

from pydantic import BaseModel, Field

from controller.models.types import Address, Calldata, Uint256


class FeeTierRequest(BaseModel):
    """New fee tier to enable on the factory.

    Values are forwarded to the factory unchanged; it decides their validity.
    """

    fee: int = Field(description="Fee in hundredths of a basis point (3000 = 0.3%).")
    tick_spacing: int = Field(alias="tickSpacing", description="Tick spacing for the tier.")

    model_config = {"populate_by_name": True}


class AddressRequest(BaseModel):
    """A single address (new owner, maker, factory, ...)."""

    address: Address


class ProtocolFeeRequest(BaseModel):
    """Pending protocol fee; applied to pools by a later batch."""

    value: int = Field(ge=0, le=255, description="Protocol fee (uint8), used for both legs.")


class PoolsRequest(BaseModel):
    """Pools targeted by a batch, in execution order."""

    pools: list[Address] = Field(description="Pool addresses; not stored by the controller.")


class ActionRequest(BaseModel):
    """Raw call issued through the escape hatch."""

    target: Address
    value: Uint256 = Field(default="0", description="Native amount sent with the call (wei).")
    data: Calldata = Field(default="0x", description="Calldata, forwarded unmodified.")


class ConfigResponse(BaseModel):
    """Controller configuration and authority state."""

    owner: Address
    trusted: list[Address]
    factory: Address
    maker: Address
    protocol_fee: int = Field(alias="protocolFee")

    model_config = {"populate_by_name": True}


class ApplyResponse(BaseModel):
    """Result of applying the protocol fee to a batch of pools."""

    protocol_fee: int = Field(alias="protocolFee")
    pools: list[Address]

    model_config = {"populate_by_name": True}


class CollectionModel(BaseModel):
    """Protocol fees swept from one pool."""

    pool: Address
    amount0: Uint256
    amount1: Uint256


class CollectResponse(BaseModel):
    """Result of collecting protocol fees from a batch of pools."""

    maker: Address
    collected: list[CollectionModel]


class ActionResponse(BaseModel):
    """Return data of an escape-hatch call."""

    result: Calldata
