"""
Liquidation Circuit
===================

Public:  price, liq_threshold, position_hash
Private: collateral, debt, salt

position_hash == H(collateral, debt, salt) and
collateral * price * liq_threshold < debt * 100 * PRICE_SCALE.

The inequality is strict: a health factor of exactly 1.0 is still safe.
"""

from zklend.zk.circuits.base import LendingCircuit
from zklend.zk.constraints import ConstraintSystem
from zklend.zk.gadgets import RangeStrategy, enforce_commitment, enforce_gt, enforce_range
from zklend.zk.models import ProofType
from zklend.zk.params import (
    LIQUIDATION_COMPARE_BITS,
    PERCENT,
    PERCENT_BITS,
    PRICE_SCALE,
    VALUE_BITS,
)
from zklend.zk.poseidon import position_hash


class LiquidationCircuit(LendingCircuit):
    """Proves a committed position has fallen below its liquidation threshold."""

    proof_type = ProofType.LIQUIDATION
    circuit_name = "liquidation_proof"
    public_input_names = ("price", "liq_threshold", "position_hash")

    def __init__(
        self,
        collateral: int | None,
        debt: int | None,
        salt: int | None,
        price: int | None,
        liquidation_threshold: int | None,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> None:
        super().__init__(strategy)
        self.collateral = collateral
        self.debt = debt
        self.salt = salt
        self.price = price
        self.liquidation_threshold = liquidation_threshold
        self.position_hash = (
            position_hash(collateral, debt, salt)
            if None not in (collateral, debt, salt)
            else None
        )

    @classmethod
    def blank(cls, strategy: RangeStrategy = RangeStrategy.DECOMPOSITION) -> "LiquidationCircuit":
        return cls(None, None, None, None, None, strategy=strategy)

    def public_inputs(self) -> list[int | None]:
        return [self.price, self.liquidation_threshold, self.position_hash]

    def synthesize(self, cs: ConstraintSystem) -> None:
        price = cs.new_input("price", self.price)
        liq_threshold = cs.new_input("liq_threshold", self.liquidation_threshold)
        position = cs.new_input("position_hash", self.position_hash)
        collateral = cs.new_witness("collateral", self.collateral)
        debt = cs.new_witness("debt", self.debt)
        salt = cs.new_witness("salt", self.salt)

        enforce_range(cs, collateral, VALUE_BITS, "collateral_range", self.strategy)
        enforce_range(cs, debt, VALUE_BITS, "debt_range", self.strategy)
        enforce_range(cs, price, VALUE_BITS, "price_range", self.strategy)
        enforce_range(cs, liq_threshold, PERCENT_BITS, "liq_threshold_range", self.strategy)

        enforce_commitment(cs, position, [collateral, debt, salt], "position_hash")

        collateral_value = cs.mul(collateral, price, "collateral_value")
        risk_adjusted = cs.mul(collateral_value, liq_threshold, "risk_adjusted_value")
        enforce_gt(
            cs,
            debt * (PERCENT * PRICE_SCALE),
            risk_adjusted,
            LIQUIDATION_COMPARE_BITS,
            "below_liquidation_threshold",
            self.strategy,
        )
