"""Protocol constants for the fee controller.

Centralizes well-known addresses and the numeric domains of the
UniswapV3 factory/pool entry points the controller drives.
"""

from controller.models.types import is_valid_address


def _validate_address(name: str, address: str) -> str:
    """Validate and return a well-known address.

    Raises:
        ValueError: If the address is invalid
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be 0x + 40 hex chars)")
    return address


# UniswapV3Factory (mainnet)
V3_FACTORY_ADDRESS = _validate_address("V3_FACTORY", "0x1f98431c8ad98523631ae4a59f267346ea31f984")

# Fee tiers enabled by the factory constructor, in hundredths of a basis point
# (fee = units / 1,000,000, e.g. 3000 = 0.3%) -> tick spacing
V3_DEFAULT_FEE_TIERS = {
    500: 10,
    3000: 60,
    10000: 200,
}

# enableFeeAmount bounds: fee < 1_000_000, 0 < tickSpacing < 16384
V3_MAX_FEE = 1_000_000
V3_MAX_TICK_SPACING = 16384

# setFeeProtocol accepts 0 (off) or a denominator in [4, 10] per leg,
# i.e. the protocol takes 1/N of swap fees
V3_FEE_PROTOCOL_MIN = 4
V3_FEE_PROTOCOL_MAX = 10

# The controller stores the protocol fee as a uint8
PROTOCOL_FEE_BITS = 8
