"""
Error Taxonomy
==============

Every failure in the protocol falls into one of four kinds:

- MALFORMED_INPUT: wrong public-input count, out-of-field scalar, zero commitment.
  Rejected before any cryptographic work.
- PROOF_INVALID: well-formed but the statement is not proven.
- STATE_CONFLICT: registry invariant violations (live commitment, spent nullifier,
  closed position). Always fatal to the calling transaction.
- POLICY_VIOLATION: a valid proof for a transition the pool does not allow.

The registry and the pool report these through result objects. The exceptions
below are raised internally and converted at the call boundary.

Version: 0.1.0
"""

from enum import Enum

from pydantic import BaseModel


class ErrorKind(str, Enum):
    """Failure categories reported to callers."""

    MALFORMED_INPUT = "malformed_input"
    PROOF_INVALID = "proof_invalid"
    STATE_CONFLICT = "state_conflict"
    POLICY_VIOLATION = "policy_violation"


class ZKLendError(Exception):
    """Base error carrying an error kind and a human readable reason."""

    kind: ErrorKind = ErrorKind.MALFORMED_INPUT

    def __init__(self, reason: str, kind: ErrorKind | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        if kind is not None:
            self.kind = kind


class MalformedInputError(ZKLendError):
    kind = ErrorKind.MALFORMED_INPUT


class ProofInvalidError(ZKLendError):
    kind = ErrorKind.PROOF_INVALID


class StateConflictError(ZKLendError):
    kind = ErrorKind.STATE_CONFLICT


class PolicyViolationError(ZKLendError):
    kind = ErrorKind.POLICY_VIOLATION


class MalformedProofError(MalformedInputError):
    """A proof or key element does not decode to a valid curve point."""


class UnsatisfiedCircuitError(ValueError):
    """The witness does not satisfy the named constraint."""

    def __init__(self, constraint: str) -> None:
        super().__init__(f"Witness does not satisfy constraint '{constraint}'")
        self.constraint = constraint


class UnsupportedConstraintError(ValueError):
    """The constraint system uses a feature the proving backend cannot encode."""


class Outcome(BaseModel):
    """Success or a failure kind with its reason."""

    ok: bool
    error_kind: ErrorKind | None = None
    reason: str | None = None

    @classmethod
    def success(cls) -> "Outcome":
        return cls(ok=True)

    @classmethod
    def failure(cls, kind: ErrorKind, reason: str) -> "Outcome":
        return cls(ok=False, error_kind=kind, reason=reason)

    @classmethod
    def from_error(cls, error: ZKLendError) -> "Outcome":
        return cls.failure(error.kind, error.reason)

    def __bool__(self) -> bool:
        return self.ok
