"""Tests for owner/trusted-operator authorization."""

import pytest

from controller.auth import AuthorityRegistry, Capability, is_authorized
from controller.errors import InvalidConfiguration, Unauthorized
from tests.helpers import NEW_OWNER, OPERATOR, OWNER, STRANGER, ZERO


@pytest.fixture
def registry() -> AuthorityRegistry:
    return AuthorityRegistry(OWNER, [OPERATOR])


class TestIsAuthorized:
    """Tests for the pure capability function."""

    @pytest.mark.parametrize(
        "caller,capability,expected",
        [
            (OWNER, Capability.OWNER, True),
            (OWNER, Capability.TRUSTED, True),
            (OPERATOR, Capability.OWNER, False),
            (OPERATOR, Capability.TRUSTED, True),
            (STRANGER, Capability.OWNER, False),
            (STRANGER, Capability.TRUSTED, False),
        ],
    )
    def test_capability_matrix(self, caller, capability, expected):
        """Owner holds both capabilities, operators only TRUSTED, others nothing."""
        assert is_authorized(caller, OWNER, {OPERATOR}, capability) is expected

    def test_comparison_is_case_insensitive(self):
        """Checksummed and lowercase forms of the same address are the same principal."""
        owner = "0xAbCdEf0123456789aBcDeF0123456789AbCdEf01"
        assert is_authorized(owner.lower(), owner, [], Capability.OWNER)
        operator = OPERATOR.upper().replace("0X", "0x")
        assert is_authorized(operator, OWNER, [OPERATOR], Capability.TRUSTED)

    def test_malformed_caller_is_never_authorized(self):
        """A caller that is not an address gets nothing, even if it matches a stored string."""
        assert not is_authorized("owner", "owner", [], Capability.OWNER)
        assert not is_authorized("", OWNER, [""], Capability.TRUSTED)


class TestRegistryConstruction:
    """Tests for AuthorityRegistry construction."""

    def test_stores_normalized_identities(self):
        """Owner and operators are stored lowercase."""
        registry = AuthorityRegistry(OWNER.upper().replace("0X", "0x"), [OPERATOR])
        assert registry.owner == OWNER
        assert registry.trusted == frozenset({OPERATOR})

    def test_zero_owner_rejected(self):
        """The owner can never be the zero address."""
        with pytest.raises(InvalidConfiguration):
            AuthorityRegistry(ZERO)

    def test_malformed_owner_rejected(self):
        with pytest.raises(InvalidConfiguration):
            AuthorityRegistry("0x1234")

    def test_malformed_operator_rejected(self):
        with pytest.raises(InvalidConfiguration):
            AuthorityRegistry(OWNER, ["not-an-address"])

    def test_empty_trusted_set(self):
        registry = AuthorityRegistry(OWNER)
        assert registry.trusted == frozenset()


class TestRequire:
    """Tests for require_owner / require_trusted."""

    def test_owner_passes_both_checks(self, registry):
        registry.require_owner(OWNER)
        registry.require_trusted(OWNER)

    def test_operator_passes_trusted_only(self, registry):
        registry.require_trusted(OPERATOR)
        with pytest.raises(Unauthorized):
            registry.require_owner(OPERATOR)

    def test_stranger_fails_both(self, registry):
        with pytest.raises(Unauthorized):
            registry.require_owner(STRANGER)
        with pytest.raises(Unauthorized):
            registry.require_trusted(STRANGER)

    def test_owner_is_not_reported_as_trusted_member(self, registry):
        """is_trusted reflects set membership only; the owner's rights come from ownership."""
        assert registry.is_trusted(OPERATOR)
        assert not registry.is_trusted(OWNER)


class TestTransferOwnership:
    """Tests for ownership transfer."""

    def test_transfer_moves_owner_capability(self, registry):
        """New owner gains and old owner immediately loses owner capability."""
        registry.transfer_ownership(OWNER, NEW_OWNER)

        assert registry.owner == NEW_OWNER
        registry.require_owner(NEW_OWNER)
        with pytest.raises(Unauthorized):
            registry.transfer_ownership(OWNER, OWNER)

    def test_old_owner_loses_trusted_capability(self, registry):
        """The old owner was never a trusted-set member, so it keeps nothing."""
        registry.transfer_ownership(OWNER, NEW_OWNER)
        with pytest.raises(Unauthorized):
            registry.require_trusted(OWNER)

    def test_non_owner_cannot_transfer(self, registry):
        with pytest.raises(Unauthorized):
            registry.transfer_ownership(OPERATOR, OPERATOR)
        assert registry.owner == OWNER

    def test_zero_new_owner_rejected(self, registry):
        """Transferring to the zero address fails and leaves the owner in place."""
        with pytest.raises(InvalidConfiguration):
            registry.transfer_ownership(OWNER, ZERO)
        assert registry.owner == OWNER

    def test_unauthorized_checked_before_validation(self, registry):
        """A non-owner learns nothing about argument validity."""
        with pytest.raises(Unauthorized):
            registry.transfer_ownership(STRANGER, ZERO)


class TestTrustedSet:
    """Tests for trusted set mutation."""

    def test_add_trusted_is_idempotent(self, registry):
        """Adding the same identity twice leaves the set size unchanged."""
        registry.add_trusted(OWNER, STRANGER)
        size = len(registry.trusted)
        registry.add_trusted(OWNER, STRANGER)
        assert len(registry.trusted) == size
        assert registry.is_trusted(STRANGER)

    def test_remove_non_member_is_noop(self, registry):
        registry.remove_trusted(OWNER, STRANGER)
        assert registry.trusted == frozenset({OPERATOR})

    def test_removed_operator_loses_rights(self, registry):
        registry.remove_trusted(OWNER, OPERATOR)
        with pytest.raises(Unauthorized):
            registry.require_trusted(OPERATOR)

    def test_operator_cannot_mutate_trusted_set(self, registry):
        """Trusted membership never grants trusted-set mutation."""
        with pytest.raises(Unauthorized):
            registry.add_trusted(OPERATOR, STRANGER)
        with pytest.raises(Unauthorized):
            registry.remove_trusted(OPERATOR, OPERATOR)
        assert registry.trusted == frozenset({OPERATOR})

    def test_set_trusted_combined_form(self, registry):
        registry.set_trusted(OWNER, STRANGER, True)
        assert registry.is_trusted(STRANGER)
        registry.set_trusted(OWNER, STRANGER, False)
        assert not registry.is_trusted(STRANGER)

    def test_trusted_snapshot_is_immutable(self, registry):
        """The trusted property is a copy; mutating the registry later does not change it."""
        snapshot = registry.trusted
        registry.add_trusted(OWNER, STRANGER)
        assert STRANGER not in snapshot
