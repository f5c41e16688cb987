"""
Commitment Registry
===================

In-memory commitment/nullifier registry.

Each commitment moves unregistered -> live -> nullified, and nullified is
terminal. A nullifier, once recorded, blocks every later use of the same
value; it is the only defense against replaying a retired commitment.

All mutations fail closed and return an Outcome instead of raising. Only the
owner and callers it authorizes (the lending pool) may mutate.

Version: 0.1.0
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from zklend.errors import (
    MalformedInputError,
    Outcome,
    PolicyViolationError,
    StateConflictError,
    ZKLendError,
)
from zklend.logging import get_logger
from zklend.protocol.models import CommitmentRecord, CommitmentStatus, CommitmentType
from zklend.zk.field import is_canonical


logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    records: dict[int, CommitmentRecord]
    nullifiers: dict[int, int]
    user_commitments: dict[str, list[int]]
    authorized: frozenset[str]


def _require_element(name: str, value: Any) -> int:
    if not is_canonical(value) or value == 0:
        raise MalformedInputError(f"{name} must be a non-zero field element")
    return value


class CommitmentRegistry:
    """
    Registry of live commitments, their owners, and spent nullifiers.

    Usage:
        registry = CommitmentRegistry(owner="0xdeployer")
        registry.set_authorized_caller("0xdeployer", "0xpool")

        outcome = registry.register(c, CommitmentType.COLLATERAL, "0xalice", caller="0xpool")
    """

    def __init__(self, owner: str) -> None:
        self.owner = owner
        self._records: dict[int, CommitmentRecord] = {}
        self._nullifiers: dict[int, int] = {}
        self._user_commitments: dict[str, list[int]] = {}
        self._authorized: set[str] = set()

        logger.debug("commitment_registry_initialized", owner=owner)

    def _run(self, action: str, operation: Callable[[], None]) -> Outcome:
        try:
            operation()
        except ZKLendError as exc:
            logger.warning(
                "registry_call_rejected",
                action=action,
                error_kind=exc.kind.value,
                reason=exc.reason,
            )
            return Outcome.from_error(exc)
        return Outcome.success()

    # =========================================================================
    # Access control
    # =========================================================================

    def is_authorized(self, caller: str) -> bool:
        return caller == self.owner or caller in self._authorized

    def _require_caller(self, caller: str) -> None:
        if not self.is_authorized(caller):
            raise PolicyViolationError(f"Caller {caller} is not authorized")

    def set_authorized_caller(self, sender: str, caller: str, authorized: bool = True) -> Outcome:
        """Grant or revoke mutation rights. Owner only."""

        def operation() -> None:
            if sender != self.owner:
                raise PolicyViolationError("Only the registry owner can authorize callers")
            if authorized:
                self._authorized.add(caller)
            else:
                self._authorized.discard(caller)
            logger.info("registry_caller_authorized", caller=caller, authorized=authorized)

        return self._run("set_authorized_caller", operation)

    # =========================================================================
    # Transitions
    # =========================================================================

    def _require_live(self, commitment: int) -> CommitmentRecord:
        record = self._records.get(commitment)
        if record is None:
            raise StateConflictError(f"Commitment {commitment:#x} is not registered")
        if record.status is not CommitmentStatus.LIVE:
            raise StateConflictError(f"Commitment {commitment:#x} is already nullified")
        return record

    def _require_unregistered(self, commitment: int) -> None:
        record = self._records.get(commitment)
        if record is not None:
            raise StateConflictError(
                f"Commitment {commitment:#x} is already {record.status.value}"
            )

    def _require_unused(self, nullifier: int) -> None:
        if nullifier in self._nullifiers:
            raise StateConflictError(f"Nullifier {nullifier:#x} has already been used")

    def _retire(self, record: CommitmentRecord, nullifier: int, replaced_by: int | None) -> None:
        self._records[record.commitment] = record.model_copy(
            update={
                "status": CommitmentStatus.NULLIFIED,
                "nullified_at": datetime.now(UTC),
                "nullifier": nullifier,
                "replaced_by": replaced_by,
            }
        )
        self._nullifiers[nullifier] = record.commitment

    def _add(self, commitment: int, commitment_type: CommitmentType, owner: str) -> None:
        self._records[commitment] = CommitmentRecord(
            commitment=commitment,
            commitment_type=commitment_type,
            owner=owner,
        )
        self._user_commitments.setdefault(owner, []).append(commitment)

    def register(
        self,
        commitment: int,
        commitment_type: CommitmentType,
        owner: str,
        *,
        caller: str,
    ) -> Outcome:
        """unregistered -> live."""

        def operation() -> None:
            self._require_caller(caller)
            _require_element("commitment", commitment)
            if not isinstance(commitment_type, CommitmentType):
                raise MalformedInputError(f"Unknown commitment type {commitment_type!r}")
            self._require_unregistered(commitment)
            self._add(commitment, commitment_type, owner)
            logger.debug(
                "commitment_registered",
                commitment_type=commitment_type.value,
                owner=owner,
            )

        return self._run("register", operation)

    def update(self, old: int, new: int, nullifier: int, *, caller: str) -> Outcome:
        """Retire old and register new in its place, atomically."""

        def operation() -> None:
            self._require_caller(caller)
            _require_element("old commitment", old)
            _require_element("new commitment", new)
            _require_element("nullifier", nullifier)
            record = self._require_live(old)
            self._require_unused(nullifier)
            self._require_unregistered(new)

            self._retire(record, nullifier, replaced_by=new)
            self._add(new, record.commitment_type, record.owner)
            logger.debug(
                "commitment_updated",
                commitment_type=record.commitment_type.value,
                owner=record.owner,
            )

        return self._run("update", operation)

    def nullify(self, commitment: int, nullifier: int, *, caller: str) -> Outcome:
        """live -> nullified."""

        def operation() -> None:
            self._require_caller(caller)
            _require_element("commitment", commitment)
            _require_element("nullifier", nullifier)
            record = self._require_live(commitment)
            self._require_unused(nullifier)

            self._retire(record, nullifier, replaced_by=None)
            logger.debug(
                "commitment_nullified",
                commitment_type=record.commitment_type.value,
                owner=record.owner,
            )

        return self._run("nullify", operation)

    # =========================================================================
    # Queries
    # =========================================================================

    def status(self, commitment: int) -> CommitmentStatus:
        record = self._records.get(commitment)
        return record.status if record is not None else CommitmentStatus.UNREGISTERED

    def is_valid(self, commitment: int) -> bool:
        """True iff the commitment is live."""
        return self.status(commitment) is CommitmentStatus.LIVE

    def is_nullifier_used(self, nullifier: int) -> bool:
        return nullifier in self._nullifiers

    def get_record(self, commitment: int) -> CommitmentRecord | None:
        return self._records.get(commitment)

    def get_user_commitments(
        self,
        owner: str,
        commitment_type: CommitmentType | None = None,
    ) -> list[CommitmentRecord]:
        """Live commitments owned by a user, oldest first."""
        records = [self._records[c] for c in self._user_commitments.get(owner, [])]
        return [
            r
            for r in records
            if r.status is CommitmentStatus.LIVE
            and (commitment_type is None or r.commitment_type is commitment_type)
        ]

    # =========================================================================
    # Transactions
    # =========================================================================

    def snapshot(self) -> RegistrySnapshot:
        """Capture state so a failed transaction can be rolled back."""
        return RegistrySnapshot(
            records=dict(self._records),
            nullifiers=dict(self._nullifiers),
            user_commitments={k: list(v) for k, v in self._user_commitments.items()},
            authorized=frozenset(self._authorized),
        )

    def restore(self, snapshot: RegistrySnapshot) -> None:
        self._records = dict(snapshot.records)
        self._nullifiers = dict(snapshot.nullifiers)
        self._user_commitments = {k: list(v) for k, v in snapshot.user_commitments.items()}
        self._authorized = set(snapshot.authorized)
        logger.debug("commitment_registry_restored")

    # =========================================================================
    # Test Utilities
    # =========================================================================

    def clear_all(self) -> None:
        """Clear all records (for testing)."""
        self._records.clear()
        self._nullifiers.clear()
        self._user_commitments.clear()
        logger.debug("commitment_registry_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get storage statistics."""
        live = sum(1 for r in self._records.values() if r.status is CommitmentStatus.LIVE)
        return {
            "commitments": len(self._records),
            "live": live,
            "nullified": len(self._records) - live,
            "nullifiers": len(self._nullifiers),
        }
