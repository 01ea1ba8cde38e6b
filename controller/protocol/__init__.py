"""External pool protocol access.

This package provides the factory/pool interfaces the controller drives:
- Protocols (PoolFactory, Pool, ProtocolBackend)
- Calldata encoding for the admin entry points
- In-memory simulation with snapshot/revert
- Node-backed implementation (RpcProtocol, imported from controller.protocol.rpc)
"""

from .base import Pool, PoolFactory, ProtocolBackend
from .encoding import (
    COLLECT_PROTOCOL_SELECTOR,
    ENABLE_FEE_AMOUNT_SELECTOR,
    FACTORY_ABI,
    POOL_ABI,
    SET_FEE_PROTOCOL_SELECTOR,
    SET_OWNER_SELECTOR,
    encode_collect_protocol,
    encode_enable_fee_amount,
    encode_set_fee_protocol,
    encode_set_owner,
)
from .memory import InMemoryFactory, InMemoryPool, InMemoryProtocol, PoolState

__all__ = [
    # Interfaces
    "PoolFactory",
    "Pool",
    "ProtocolBackend",
    # Encoding
    "FACTORY_ABI",
    "POOL_ABI",
    "ENABLE_FEE_AMOUNT_SELECTOR",
    "SET_OWNER_SELECTOR",
    "SET_FEE_PROTOCOL_SELECTOR",
    "COLLECT_PROTOCOL_SELECTOR",
    "encode_enable_fee_amount",
    "encode_set_owner",
    "encode_set_fee_protocol",
    "encode_collect_protocol",
    # In-memory
    "InMemoryProtocol",
    "InMemoryFactory",
    "InMemoryPool",
    "PoolState",
]
