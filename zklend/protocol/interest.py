"""
Interest Rate Model
===================

Piecewise-linear borrow rate over pool utilization, with a steeper slope
above the optimal-utilization knee, and a global borrow index that compounds
each time a state-changing call touches the pool.
"""

from dataclasses import dataclass

from zklend.config.settings import PoolSettings


SECONDS_PER_YEAR = 365 * 24 * 60 * 60
RAY = 10**27
BPS = 10_000


@dataclass(frozen=True)
class InterestRateModel:
    base_rate_bps: int = 500
    slope1_bps: int = 2000
    slope2_bps: int = 7500
    optimal_utilization: int = 80

    @classmethod
    def from_settings(cls, settings: PoolSettings) -> "InterestRateModel":
        return cls(
            base_rate_bps=settings.base_rate_bps,
            slope1_bps=settings.slope1_bps,
            slope2_bps=settings.slope2_bps,
            optimal_utilization=settings.optimal_utilization,
        )

    @staticmethod
    def utilization(borrowed: int, available: int) -> int:
        """Borrowed share of all pool funds, in whole percent."""
        total = borrowed + available
        if total == 0:
            return 0
        return borrowed * 100 // total

    def borrow_rate(self, utilization: int) -> int:
        """Annual borrow rate in basis points."""
        if utilization <= self.optimal_utilization:
            return self.base_rate_bps + utilization * self.slope1_bps // self.optimal_utilization
        excess = utilization - self.optimal_utilization
        return (
            self.base_rate_bps
            + self.slope1_bps
            + excess * self.slope2_bps // (100 - self.optimal_utilization)
        )

    @staticmethod
    def accrue(index: int, rate_bps: int, elapsed: int) -> int:
        """Grow a RAY index by simple interest over elapsed seconds."""
        if elapsed <= 0 or rate_bps == 0:
            return index
        return index + index * rate_bps * elapsed // (BPS * SECONDS_PER_YEAR)

    @staticmethod
    def simple_interest(amount: int, rate_bps: int, duration: int) -> int:
        return amount * rate_bps * duration // (BPS * SECONDS_PER_YEAR)
