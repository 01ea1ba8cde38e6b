"""Owner and trusted-operator authorization.

Two capability levels gate every privileged controller operation:

- OWNER: only the current owner
- TRUSTED: the owner or any member of the trusted operator set

Trusted operators may run the batch fee operations but can never change
configuration, the trusted set, or ownership.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum

import structlog

from controller.errors import InvalidConfiguration, Unauthorized
from controller.models.types import is_valid_address, is_zero_address, to_identity

logger = structlog.get_logger()


class Capability(str, Enum):
    """Capability an operation requires from its caller."""

    OWNER = "owner"
    TRUSTED = "trusted"


def is_authorized(
    caller: str,
    owner: str,
    trusted: Iterable[str],
    capability: Capability,
) -> bool:
    """Decide whether caller holds capability.

    The owner holds every capability. Addresses are compared
    case-insensitively; a malformed caller is never authorized.

    Args:
        caller: Address of the principal invoking the operation
        owner: Current owner address
        trusted: Current trusted operator addresses
        capability: Capability the operation requires

    Returns:
        True if the caller may perform the operation
    """
    if not is_valid_address(caller):
        return False
    caller_norm = caller.lower()
    if caller_norm == owner.lower():
        return True
    if capability is Capability.TRUSTED:
        return caller_norm in {member.lower() for member in trusted}
    return False


class AuthorityRegistry:
    """Holds the owner and the trusted operator set.

    Args:
        owner: Initial owner. Must be a valid, non-zero address.
        trusted: Initial trusted operators.

    Raises:
        InvalidConfiguration: If owner is malformed or the zero address,
            or any trusted address is malformed
    """

    def __init__(self, owner: str, trusted: Iterable[str] = ()) -> None:
        self._owner = self._check_owner(owner)
        self._trusted: set[str] = {to_identity(member, "trusted operator") for member in trusted}

    @property
    def owner(self) -> str:
        """Current owner address (lowercase)."""
        return self._owner

    @property
    def trusted(self) -> frozenset[str]:
        """Snapshot of the trusted operator set."""
        return frozenset(self._trusted)

    def is_trusted(self, address: str) -> bool:
        """True if address is in the trusted set (the owner is not implicitly included)."""
        return is_valid_address(address) and address.lower() in self._trusted

    def require(self, caller: str, capability: Capability) -> None:
        """Raise Unauthorized unless caller holds capability."""
        if not is_authorized(caller, self._owner, self._trusted, capability):
            logger.warning("unauthorized_caller", caller=caller, required=capability.value)
            raise Unauthorized(f"{caller} lacks {capability.value} capability")

    def require_owner(self, caller: str) -> None:
        """Raise Unauthorized unless caller is the owner."""
        self.require(caller, Capability.OWNER)

    def require_trusted(self, caller: str) -> None:
        """Raise Unauthorized unless caller is the owner or a trusted operator."""
        self.require(caller, Capability.TRUSTED)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand the owner capability to new_owner.

        The previous owner loses every owner capability immediately. It keeps
        trusted-operator rights only if it is itself a member of the trusted set.

        Raises:
            Unauthorized: If caller is not the owner
            InvalidConfiguration: If new_owner is malformed or the zero address
        """
        self.require_owner(caller)
        new_owner_norm = self._check_owner(new_owner)
        previous = self._owner
        self._owner = new_owner_norm
        logger.info("ownership_transferred", previous_owner=previous, new_owner=new_owner_norm)

    def set_trusted(self, caller: str, address: str, trusted: bool) -> None:
        """Add or remove address from the trusted set.

        Idempotent: adding a member or removing a non-member changes nothing.

        Raises:
            Unauthorized: If caller is not the owner
            InvalidConfiguration: If address is malformed
        """
        self.require_owner(caller)
        member = to_identity(address, "trusted operator")
        changed = (member in self._trusted) != trusted
        if trusted:
            self._trusted.add(member)
        else:
            self._trusted.discard(member)
        logger.info("trusted_set", operator=member, trusted=trusted, changed=changed)

    def add_trusted(self, caller: str, address: str) -> None:
        """Grant address trusted-operator rights (owner only)."""
        self.set_trusted(caller, address, True)

    def remove_trusted(self, caller: str, address: str) -> None:
        """Revoke address's trusted-operator rights (owner only)."""
        self.set_trusted(caller, address, False)

    @staticmethod
    def _check_owner(owner: str) -> str:
        owner_norm = to_identity(owner, "owner")
        if is_zero_address(owner_norm):
            raise InvalidConfiguration("Owner cannot be the zero address")
        return owner_norm
