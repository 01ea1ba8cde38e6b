"""Calldata encoding for UniswapV3 factory and pool admin calls.

Used to build escape-hatch payloads and, on the in-memory protocol, to decode
raw calls aimed at a factory or pool.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from controller.models.types import normalize_address

# UniswapV3Factory ABI - minimal, just the functions we need
FACTORY_ABI = [
    {
        "name": "owner",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "name": "feeAmountTickSpacing",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "fee", "type": "uint24"}],
        "outputs": [{"name": "", "type": "int24"}],
    },
    {
        "name": "enableFeeAmount",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "fee", "type": "uint24"},
            {"name": "tickSpacing", "type": "int24"},
        ],
        "outputs": [],
    },
    {
        "name": "setOwner",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "_owner", "type": "address"}],
        "outputs": [],
    },
]

# UniswapV3Pool ABI - admin functions plus the slot0/protocolFees getters
POOL_ABI = [
    {
        "name": "slot0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "sqrtPriceX96", "type": "uint160"},
            {"name": "tick", "type": "int24"},
            {"name": "observationIndex", "type": "uint16"},
            {"name": "observationCardinality", "type": "uint16"},
            {"name": "observationCardinalityNext", "type": "uint16"},
            {"name": "feeProtocol", "type": "uint8"},
            {"name": "unlocked", "type": "bool"},
        ],
    },
    {
        "name": "protocolFees",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "token0", "type": "uint128"},
            {"name": "token1", "type": "uint128"},
        ],
    },
    {
        "name": "setFeeProtocol",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "feeProtocol0", "type": "uint8"},
            {"name": "feeProtocol1", "type": "uint8"},
        ],
        "outputs": [],
    },
    {
        "name": "collectProtocol",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "recipient", "type": "address"},
            {"name": "amount0Requested", "type": "uint128"},
            {"name": "amount1Requested", "type": "uint128"},
        ],
        "outputs": [
            {"name": "amount0", "type": "uint128"},
            {"name": "amount1", "type": "uint128"},
        ],
    },
]


@dataclass(frozen=True)
class CallSpec:
    """Name and ABI types of one encodable function."""

    name: str
    input_types: tuple[str, ...]
    output_types: tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        return bytes(Web3.keccak(text=self.signature)[:4])


def _specs_from_abi(abi: list[dict[str, Any]]) -> dict[str, CallSpec]:
    return {
        entry["name"]: CallSpec(
            name=entry["name"],
            input_types=tuple(arg["type"] for arg in entry["inputs"]),
            output_types=tuple(arg["type"] for arg in entry["outputs"]),
        )
        for entry in abi
    }


FACTORY_CALLS = _specs_from_abi(FACTORY_ABI)
POOL_CALLS = _specs_from_abi(POOL_ABI)

ENABLE_FEE_AMOUNT_SELECTOR = FACTORY_CALLS["enableFeeAmount"].selector
SET_OWNER_SELECTOR = FACTORY_CALLS["setOwner"].selector
SET_FEE_PROTOCOL_SELECTOR = POOL_CALLS["setFeeProtocol"].selector
COLLECT_PROTOCOL_SELECTOR = POOL_CALLS["collectProtocol"].selector

_FACTORY_BY_SELECTOR = {spec.selector: spec for spec in FACTORY_CALLS.values()}
_POOL_BY_SELECTOR = {spec.selector: spec for spec in POOL_CALLS.values()}


def encode_call(spec: CallSpec, *args: Any) -> bytes:
    """Encode a call as selector + ABI-encoded arguments."""
    return spec.selector + encode(list(spec.input_types), list(args))


def decode_call(data: bytes, specs: dict[bytes, CallSpec]) -> tuple[CallSpec, tuple[Any, ...]]:
    """Decode calldata against a selector table.

    Addresses in the decoded arguments are normalized to lowercase.

    Raises:
        ValueError: If data is shorter than a selector, the selector is
            unknown, or the arguments do not decode
    """
    if len(data) < 4:
        raise ValueError(f"Calldata too short: {len(data)} bytes")
    spec = specs.get(bytes(data[:4]))
    if spec is None:
        raise ValueError(f"Unknown selector: 0x{bytes(data[:4]).hex()}")
    try:
        args = decode(list(spec.input_types), bytes(data[4:]))
    except DecodingError as err:
        raise ValueError(f"Malformed {spec.name} calldata: {err}") from err
    normalized = tuple(
        normalize_address(arg) if type_ == "address" else arg
        for type_, arg in zip(spec.input_types, args, strict=True)
    )
    return spec, normalized


def decode_factory_call(data: bytes) -> tuple[CallSpec, tuple[Any, ...]]:
    """Decode calldata aimed at a factory."""
    return decode_call(data, _FACTORY_BY_SELECTOR)


def decode_pool_call(data: bytes) -> tuple[CallSpec, tuple[Any, ...]]:
    """Decode calldata aimed at a pool."""
    return decode_call(data, _POOL_BY_SELECTOR)


def encode_returns(spec: CallSpec, values: tuple[Any, ...] | None) -> bytes:
    """ABI-encode the return values of spec (empty for functions returning nothing)."""
    if not spec.output_types:
        return b""
    if values is None:
        raise ValueError(f"{spec.name} returns {spec.output_types}, got nothing")
    return encode(list(spec.output_types), list(values))


def encode_enable_fee_amount(fee: int, tick_spacing: int) -> bytes:
    """Encode UniswapV3Factory.enableFeeAmount(fee, tickSpacing)."""
    return encode_call(FACTORY_CALLS["enableFeeAmount"], fee, tick_spacing)


def encode_set_owner(new_owner: str) -> bytes:
    """Encode UniswapV3Factory.setOwner(newOwner)."""
    return encode_call(FACTORY_CALLS["setOwner"], normalize_address(new_owner))


def encode_set_fee_protocol(fee_protocol0: int, fee_protocol1: int) -> bytes:
    """Encode UniswapV3Pool.setFeeProtocol(feeProtocol0, feeProtocol1)."""
    return encode_call(POOL_CALLS["setFeeProtocol"], fee_protocol0, fee_protocol1)


def encode_collect_protocol(recipient: str, amount0: int, amount1: int) -> bytes:
    """Encode UniswapV3Pool.collectProtocol(recipient, amount0, amount1)."""
    return encode_call(
        POOL_CALLS["collectProtocol"], normalize_address(recipient), amount0, amount1
    )


def pack_fee_protocol(fee_protocol0: int, fee_protocol1: int) -> int:
    """Pack per-leg protocol fees the way slot0.feeProtocol stores them."""
    return fee_protocol0 + (fee_protocol1 << 4)


def unpack_fee_protocol(packed: int) -> tuple[int, int]:
    """Split slot0.feeProtocol into (feeProtocol0, feeProtocol1)."""
    return packed % 16, packed >> 4


__all__ = [
    "FACTORY_ABI",
    "POOL_ABI",
    "CallSpec",
    "FACTORY_CALLS",
    "POOL_CALLS",
    "ENABLE_FEE_AMOUNT_SELECTOR",
    "SET_OWNER_SELECTOR",
    "SET_FEE_PROTOCOL_SELECTOR",
    "COLLECT_PROTOCOL_SELECTOR",
    "encode_call",
    "decode_call",
    "decode_factory_call",
    "decode_pool_call",
    "encode_returns",
    "encode_enable_fee_amount",
    "encode_set_owner",
    "encode_set_fee_protocol",
    "encode_collect_protocol",
    "pack_fee_protocol",
    "unpack_fee_protocol",
]
