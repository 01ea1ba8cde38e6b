"""Shared address constants for tests.

All addresses are lowercase for consistency with normalize_address().

Usage:
    from tests.helpers import OWNER, OPERATOR
    # or
    from tests.helpers.constants import WETH, USDC
"""

# =============================================================================
# Principals
# =============================================================================

OWNER = "0x1111111111111111111111111111111111111111"
OPERATOR = "0x2222222222222222222222222222222222222222"
STRANGER = "0x3333333333333333333333333333333333333333"
MAKER = "0x4444444444444444444444444444444444444444"
NEW_OWNER = "0x5555555555555555555555555555555555555555"

# Address the protocol sees as the caller (the controller itself)
CONTROLLER_ACCOUNT = "0x00000000000000000000000000000000000fee00"

ZERO = "0x0000000000000000000000000000000000000000"

# =============================================================================
# Mainnet tokens
# =============================================================================

WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"  # Wrapped Ether (18 decimals)
USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"  # USD Coin (6 decimals)
DAI = "0x6b175474e89094c44da98b954eedeac495271d0f"  # Dai Stablecoin (18 decimals)
USDT = "0xdac17f958d2ee523a2206206994597c13d831ec7"  # Tether USD (6 decimals)

# UniswapV3Factory (mainnet)
V3_FACTORY = "0x1f98431c8ad98523631ae4a59f267346ea31f984"
