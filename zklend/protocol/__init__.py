"""
Lending Protocol
================

Commitment registry, interest model and the lending pool state machine.

Usage:
    from zklend.protocol import deploy

    pool = deploy(verifier, owner="0xowner")
    pool.supply_liquidity("0xowner", 1_000_000)

Version: 0.1.0
"""

from zklend.protocol.interest import BPS, RAY, SECONDS_PER_YEAR, InterestRateModel
from zklend.protocol.models import (
    CommitmentRecord,
    CommitmentStatus,
    CommitmentType,
    DebtBreakdown,
    Outcome,
    PoolEvent,
    PoolEventType,
    PoolStatus,
    Position,
    PositionState,
    TxReceipt,
)
from zklend.protocol.pool import LendingPool, deploy
from zklend.protocol.registry import CommitmentRegistry


__all__ = [
    # Pool
    "LendingPool",
    "deploy",
    # Registry
    "CommitmentRegistry",
    # Interest
    "InterestRateModel",
    "RAY",
    "BPS",
    "SECONDS_PER_YEAR",
    # Models
    "Outcome",
    "CommitmentType",
    "CommitmentStatus",
    "CommitmentRecord",
    "Position",
    "PositionState",
    "PoolEvent",
    "PoolEventType",
    "PoolStatus",
    "DebtBreakdown",
    "TxReceipt",
]
