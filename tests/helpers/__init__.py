"""Test helpers module for shared test utilities.

- constants: Principal and token addresses
- factories: Controller/protocol deployment factory
"""

from tests.helpers.constants import (
    CONTROLLER_ACCOUNT,
    DAI,
    MAKER,
    NEW_OWNER,
    OPERATOR,
    OWNER,
    STRANGER,
    USDC,
    USDT,
    V3_FACTORY,
    WETH,
    ZERO,
)
from tests.helpers.factories import Deployment, make_deployment

__all__ = [
    # Constants
    "OWNER",
    "OPERATOR",
    "STRANGER",
    "MAKER",
    "NEW_OWNER",
    "CONTROLLER_ACCOUNT",
    "ZERO",
    "WETH",
    "USDC",
    "DAI",
    "USDT",
    "V3_FACTORY",
    # Factories
    "Deployment",
    "make_deployment",
]
