"""Identity types and pydantic models for the admin API."""

from controller.models.admin import (
    ActionRequest,
    ActionResponse,
    AddressRequest,
    ApplyResponse,
    CollectionModel,
    CollectResponse,
    ConfigResponse,
    FeeTierRequest,
    PoolsRequest,
    ProtocolFeeRequest,
)
from controller.models.types import (
    ZERO_ADDRESS,
    Address,
    Calldata,
    Uint256,
    is_valid_address,
    normalize_address,
    to_identity,
)

__all__ = [
    # Types
    "Address",
    "Calldata",
    "Uint256",
    "ZERO_ADDRESS",
    "is_valid_address",
    "normalize_address",
    "to_identity",
    # Requests
    "FeeTierRequest",
    "AddressRequest",
    "ProtocolFeeRequest",
    "PoolsRequest",
    "ActionRequest",
    # Responses
    "ConfigResponse",
    "ApplyResponse",
    "CollectionModel",
    "CollectResponse",
    "ActionResponse",
]
