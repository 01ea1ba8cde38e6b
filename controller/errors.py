"""Fee controller error classes.

Every public controller operation either completes or raises one of these.
Nothing is retried and nothing is partially committed.
"""


class ControllerError(Exception):
    """Base error for fee controller operations."""

    pass


class Unauthorized(ControllerError):
    """Caller lacks the capability required by the operation.

    Raised before any external call is attempted.
    """

    pass


class ExternalCallFailed(ControllerError):
    """A call into the factory, a pool, or an escape-hatch target failed.

    When raised from a batch, all effects of the batch have been reverted.
    """

    pass


class InvalidConfiguration(ControllerError):
    """An identity or configuration value was rejected by the controller."""

    pass
