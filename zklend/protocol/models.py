"""
Protocol Models
===============

Pydantic models for registry records, positions, pool events and receipts.

Version: 0.1.0
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from zklend.errors import ErrorKind, Outcome  # noqa: F401


class CommitmentType(str, Enum):
    """What a registered commitment commits to."""

    COLLATERAL = "collateral"
    DEBT = "debt"
    POSITION = "position"


class CommitmentStatus(str, Enum):
    """Commitment lifecycle: unregistered -> live -> nullified (terminal)."""

    UNREGISTERED = "unregistered"
    LIVE = "live"
    NULLIFIED = "nullified"


class CommitmentRecord(BaseModel):
    """A commitment known to the registry."""

    commitment: int
    commitment_type: CommitmentType
    owner: str
    status: CommitmentStatus = CommitmentStatus.LIVE
    registered_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    nullified_at: datetime | None = None
    nullifier: int | None = Field(default=None, description="Nullifier consumed when retired")
    replaced_by: int | None = Field(default=None, description="Successor commitment on update")


class PositionState(str, Enum):
    EMPTY = "empty"
    DEPOSITED = "deposited"
    BORROWED = "borrowed"


class Position(BaseModel):
    """A user's registry-visible lending position."""

    owner: str
    has_deposit: bool = False
    has_borrow: bool = False
    collateral_commitment: int | None = None
    debt_commitment: int | None = None
    position_commitment: int | None = None

    # Deposited amount; the deposit transfer is public
    collateral_amount: int = 0

    # Visible principal; the settlement transfer is public anyway
    borrowed_amount: int = 0

    # Total debt at the last touch and the borrow index at that time
    debt_snapshot: int = 0
    index_snapshot: int = 0

    # Unix timestamps
    deposited_at: int | None = None
    borrowed_at: int | None = None
    updated_at: int | None = None

    @property
    def state(self) -> PositionState:
        if self.has_borrow:
            return PositionState.BORROWED
        if self.has_deposit:
            return PositionState.DEPOSITED
        return PositionState.EMPTY


class PoolEventType(str, Enum):
    """Types of pool events."""

    LIQUIDITY_SUPPLIED = "liquidity_supplied"
    PRICE_UPDATED = "price_updated"
    DEPOSITED = "deposited"
    BORROWED = "borrowed"
    REPAID = "repaid"
    INTEREST_PAID = "interest_paid"
    WITHDRAWN = "withdrawn"
    LIQUIDATED = "liquidated"


class PoolEvent(BaseModel):
    """An event emitted by a successful pool transaction."""

    event_type: PoolEventType
    user: str
    timestamp: int
    tx_hash: str
    block_number: int
    data: dict[str, Any] = Field(default_factory=dict)


class TxReceipt(BaseModel):
    """Result of a pool call; failed calls leave no state behind."""

    ok: bool
    action: str
    sender: str
    tx_hash: str
    block_number: int
    timestamp: int
    events: list[PoolEvent] = Field(default_factory=list)

    # Error info
    error_kind: ErrorKind | None = None
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.ok


class DebtBreakdown(BaseModel):
    principal: int
    interest: int
    total: int


class PoolStatus(BaseModel):
    """Aggregate pool state."""

    available_liquidity: int
    total_borrowed: int
    total_collateral: int
    total_interest_collected: int
    utilization_rate: int = Field(..., description="Percent")
    interest_rate_bps: int
    borrow_index: int
    price: int
    open_positions: int
