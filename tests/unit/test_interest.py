"""
Unit Tests for the Interest Rate Model
======================================
"""

import pytest

from zklend.config import PoolSettings
from zklend.protocol import RAY, SECONDS_PER_YEAR, InterestRateModel


class TestInterestRateModel:
    """Tests for utilization, the rate curve and index accrual."""

    @pytest.fixture
    def model(self) -> InterestRateModel:
        return InterestRateModel()

    def test_utilization(self, model):
        assert model.utilization(0, 0) == 0
        assert model.utilization(100_000, 900_000) == 10
        assert model.utilization(1, 2) == 33
        assert model.utilization(500, 0) == 100

    @pytest.mark.parametrize(
        ("utilization", "rate"),
        [
            (0, 500),
            (10, 750),
            (80, 2500),
            (90, 6250),
            (100, 10000),
        ],
    )
    def test_rate_curve(self, model, utilization, rate):
        """Base rate plus slope1 up to the knee, then slope2."""
        assert model.borrow_rate(utilization) == rate

    def test_accrue_one_year(self, model):
        """7.5% over one year grows the index by exactly 7.5%."""
        index = model.accrue(RAY, 750, SECONDS_PER_YEAR)
        assert index == RAY * 1075 // 1000

    def test_accrue_no_time(self, model):
        assert model.accrue(RAY, 750, 0) == RAY
        assert model.accrue(RAY, 0, SECONDS_PER_YEAR) == RAY

    def test_simple_interest(self, model):
        assert model.simple_interest(100_000, 750, SECONDS_PER_YEAR) == 7500
        assert model.simple_interest(100_000, 750, SECONDS_PER_YEAR // 2) == 3750

    def test_from_settings(self):
        settings = PoolSettings(base_rate_bps=100, slope1_bps=400, slope2_bps=6000, optimal_utilization=90)
        model = InterestRateModel.from_settings(settings)

        assert model.borrow_rate(0) == 100
        assert model.borrow_rate(90) == 500
        assert model.borrow_rate(100) == 6500
