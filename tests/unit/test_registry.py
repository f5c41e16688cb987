"""
Unit Tests for the Commitment Registry
======================================

Tests for commitment lifecycle, nullifier uniqueness and access control.
"""

import pytest

from tests.conftest import ALICE, BOB, OWNER
from zklend.errors import ErrorKind
from zklend.protocol import CommitmentRegistry, CommitmentStatus, CommitmentType
from zklend.zk.field import MODULUS
from zklend.zk.poseidon import commit


POOL = "0xpool"


class TestCommitmentRegistry:
    """Tests for CommitmentRegistry."""

    @pytest.fixture
    def registry(self) -> CommitmentRegistry:
        """Create a fresh registry with the pool authorized."""
        registry = CommitmentRegistry(owner=OWNER)
        assert registry.set_authorized_caller(OWNER, POOL).ok
        return registry

    @pytest.fixture
    def live(self, registry: CommitmentRegistry) -> int:
        """A registered collateral commitment owned by Alice."""
        c = commit(100, 1)
        assert registry.register(c, CommitmentType.COLLATERAL, ALICE, caller=POOL).ok
        return c

    def test_register(self, registry: CommitmentRegistry) -> None:
        """Test registering a commitment."""
        c = commit(100, 1)
        assert registry.status(c) is CommitmentStatus.UNREGISTERED

        outcome = registry.register(c, CommitmentType.COLLATERAL, ALICE, caller=POOL)

        assert outcome.ok
        assert registry.is_valid(c)
        record = registry.get_record(c)
        assert record.owner == ALICE
        assert record.commitment_type is CommitmentType.COLLATERAL
        assert record.nullifier is None

    def test_register_twice(self, registry: CommitmentRegistry, live: int) -> None:
        """A live commitment cannot be registered again."""
        outcome = registry.register(live, CommitmentType.DEBT, BOB, caller=POOL)

        assert not outcome.ok
        assert outcome.error_kind is ErrorKind.STATE_CONFLICT
        assert registry.get_record(live).owner == ALICE

    def test_register_malformed(self, registry: CommitmentRegistry) -> None:
        """Zero and out-of-field commitments are malformed."""
        for bad in (0, MODULUS, -5):
            outcome = registry.register(bad, CommitmentType.COLLATERAL, ALICE, caller=POOL)
            assert outcome.error_kind is ErrorKind.MALFORMED_INPUT

    def test_nullify(self, registry: CommitmentRegistry, live: int) -> None:
        """Test retiring a commitment with a nullifier."""
        outcome = registry.nullify(live, 999, caller=POOL)

        assert outcome.ok
        assert registry.status(live) is CommitmentStatus.NULLIFIED
        assert registry.is_nullifier_used(999)
        record = registry.get_record(live)
        assert record.nullifier == 999
        assert record.nullified_at is not None

    def test_nullified_is_terminal(self, registry: CommitmentRegistry, live: int) -> None:
        """A nullified commitment can be neither re-registered nor re-nullified."""
        assert registry.nullify(live, 999, caller=POOL).ok

        again = registry.nullify(live, 1000, caller=POOL)
        assert again.error_kind is ErrorKind.STATE_CONFLICT

        replay = registry.register(live, CommitmentType.COLLATERAL, ALICE, caller=POOL)
        assert replay.error_kind is ErrorKind.STATE_CONFLICT

    def test_nullifier_single_use(self, registry: CommitmentRegistry, live: int) -> None:
        """A nullifier retires at most one commitment."""
        other = commit(200, 2)
        assert registry.register(other, CommitmentType.COLLATERAL, BOB, caller=POOL).ok
        assert registry.nullify(live, 999, caller=POOL).ok

        outcome = registry.nullify(other, 999, caller=POOL)

        assert outcome.error_kind is ErrorKind.STATE_CONFLICT
        assert registry.is_valid(other)

    def test_nullify_unregistered(self, registry: CommitmentRegistry) -> None:
        outcome = registry.nullify(commit(1, 1), 5, caller=POOL)
        assert outcome.error_kind is ErrorKind.STATE_CONFLICT

    def test_update(self, registry: CommitmentRegistry, live: int) -> None:
        """Update retires the old commitment and registers its successor."""
        new = commit(100, 2)
        outcome = registry.update(live, new, 777, caller=POOL)

        assert outcome.ok
        assert registry.status(live) is CommitmentStatus.NULLIFIED
        assert registry.get_record(live).replaced_by == new
        assert registry.is_valid(new)
        assert registry.get_record(new).owner == ALICE
        assert registry.get_record(new).commitment_type is CommitmentType.COLLATERAL

    def test_update_is_atomic(self, registry: CommitmentRegistry, live: int) -> None:
        """If the successor is taken, the old commitment stays live."""
        taken = commit(300, 3)
        assert registry.register(taken, CommitmentType.DEBT, BOB, caller=POOL).ok

        outcome = registry.update(live, taken, 777, caller=POOL)

        assert outcome.error_kind is ErrorKind.STATE_CONFLICT
        assert registry.is_valid(live)
        assert not registry.is_nullifier_used(777)

    def test_update_with_spent_nullifier(self, registry: CommitmentRegistry, live: int) -> None:
        other = commit(200, 2)
        assert registry.register(other, CommitmentType.COLLATERAL, ALICE, caller=POOL).ok
        assert registry.nullify(other, 777, caller=POOL).ok

        outcome = registry.update(live, commit(100, 9), 777, caller=POOL)

        assert outcome.error_kind is ErrorKind.STATE_CONFLICT
        assert registry.is_valid(live)

    def test_unauthorized_caller(self, registry: CommitmentRegistry) -> None:
        """Only the owner and authorized callers may mutate."""
        outcome = registry.register(commit(1, 2), CommitmentType.COLLATERAL, ALICE, caller=BOB)

        assert outcome.error_kind is ErrorKind.POLICY_VIOLATION
        assert registry.get_stats()["commitments"] == 0

    def test_owner_may_mutate(self, registry: CommitmentRegistry) -> None:
        assert registry.register(commit(1, 2), CommitmentType.DEBT, ALICE, caller=OWNER).ok

    def test_authorization_owner_only(self, registry: CommitmentRegistry) -> None:
        """Only the owner can grant or revoke access."""
        outcome = registry.set_authorized_caller(BOB, BOB)
        assert outcome.error_kind is ErrorKind.POLICY_VIOLATION
        assert not registry.is_authorized(BOB)

        assert registry.set_authorized_caller(OWNER, POOL, authorized=False).ok
        assert not registry.is_authorized(POOL)

    def test_user_commitments(self, registry: CommitmentRegistry, live: int) -> None:
        """Only live commitments are listed, optionally filtered by type."""
        debt = commit(50, 5)
        assert registry.register(debt, CommitmentType.DEBT, ALICE, caller=POOL).ok
        assert registry.nullify(live, 1, caller=POOL).ok

        records = registry.get_user_commitments(ALICE)
        assert [r.commitment for r in records] == [debt]
        assert registry.get_user_commitments(ALICE, CommitmentType.COLLATERAL) == []
        assert registry.get_user_commitments(BOB) == []

    def test_snapshot_restore(self, registry: CommitmentRegistry, live: int) -> None:
        """Restoring a snapshot undoes later transitions."""
        snapshot = registry.snapshot()
        assert registry.nullify(live, 42, caller=POOL).ok
        assert registry.register(commit(9, 9), CommitmentType.DEBT, ALICE, caller=POOL).ok

        registry.restore(snapshot)

        assert registry.is_valid(live)
        assert not registry.is_nullifier_used(42)
        assert registry.status(commit(9, 9)) is CommitmentStatus.UNREGISTERED
        assert registry.is_authorized(POOL)

    def test_stats(self, registry: CommitmentRegistry, live: int) -> None:
        assert registry.nullify(live, 1, caller=POOL).ok
        assert registry.register(commit(2, 2), CommitmentType.DEBT, ALICE, caller=POOL).ok

        assert registry.get_stats() == {
            "commitments": 2,
            "live": 1,
            "nullified": 1,
            "nullifiers": 1,
        }

    def test_clear_all(self, registry: CommitmentRegistry, live: int) -> None:
        registry.clear_all()
        assert registry.status(live) is CommitmentStatus.UNREGISTERED
