"""Fee controller for UniswapV3-style pool protocols."""

from controller.auth import AuthorityRegistry, Capability, is_authorized
from controller.config import ControllerConfig, Settings
from controller.errors import (
    ControllerError,
    ExternalCallFailed,
    InvalidConfiguration,
    Unauthorized,
)
from controller.fee_controller import (
    Action,
    Collection,
    FeeController,
    create_controller,
    get_default_controller,
)

__version__ = "0.1.0"
__all__ = [
    "Action",
    "AuthorityRegistry",
    "Capability",
    "Collection",
    "ControllerConfig",
    "ControllerError",
    "ExternalCallFailed",
    "FeeController",
    "InvalidConfiguration",
    "Settings",
    "Unauthorized",
    "create_controller",
    "get_default_controller",
    "is_authorized",
    "__version__",
]
