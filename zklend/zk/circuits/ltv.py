"""
Loan-to-Value Circuit
=====================

Public:  max_ltv, collateral_commitment, debt_commitment
Private: collateral, debt, salt_c, salt_d

Both commitments open correctly and debt * 100 <= collateral * max_ltv,
the division-free form of debt / collateral <= max_ltv / 100.
"""

from zklend.zk.circuits.base import LendingCircuit
from zklend.zk.constraints import ConstraintSystem
from zklend.zk.gadgets import RangeStrategy, enforce_commitment, enforce_gte, enforce_range
from zklend.zk.models import ProofType
from zklend.zk.params import LTV_COMPARE_BITS, PERCENT, PERCENT_BITS, VALUE_BITS
from zklend.zk.poseidon import commit


class LTVCircuit(LendingCircuit):
    """Proves committed debt stays within a loan-to-value bound of committed collateral."""

    proof_type = ProofType.LTV
    circuit_name = "ltv_proof"
    public_input_names = ("max_ltv", "collateral_commitment", "debt_commitment")

    def __init__(
        self,
        collateral: int | None,
        debt: int | None,
        collateral_salt: int | None,
        debt_salt: int | None,
        max_ltv: int | None,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> None:
        super().__init__(strategy)
        self.collateral = collateral
        self.debt = debt
        self.collateral_salt = collateral_salt
        self.debt_salt = debt_salt
        self.max_ltv = max_ltv
        self.collateral_commitment = (
            commit(collateral, collateral_salt)
            if collateral is not None and collateral_salt is not None
            else None
        )
        self.debt_commitment = (
            commit(debt, debt_salt) if debt is not None and debt_salt is not None else None
        )

    @classmethod
    def blank(cls, strategy: RangeStrategy = RangeStrategy.DECOMPOSITION) -> "LTVCircuit":
        return cls(None, None, None, None, None, strategy=strategy)

    def public_inputs(self) -> list[int | None]:
        return [self.max_ltv, self.collateral_commitment, self.debt_commitment]

    def synthesize(self, cs: ConstraintSystem) -> None:
        max_ltv = cs.new_input("max_ltv", self.max_ltv)
        collateral_commitment = cs.new_input("collateral_commitment", self.collateral_commitment)
        debt_commitment = cs.new_input("debt_commitment", self.debt_commitment)
        collateral = cs.new_witness("collateral", self.collateral)
        debt = cs.new_witness("debt", self.debt)
        salt_c = cs.new_witness("salt_c", self.collateral_salt)
        salt_d = cs.new_witness("salt_d", self.debt_salt)

        enforce_range(cs, collateral, VALUE_BITS, "collateral_range", self.strategy)
        enforce_range(cs, debt, VALUE_BITS, "debt_range", self.strategy)
        enforce_range(cs, max_ltv, PERCENT_BITS, "max_ltv_range", self.strategy)

        enforce_commitment(cs, collateral_commitment, [collateral, salt_c], "collateral_commitment")
        enforce_commitment(cs, debt_commitment, [debt, salt_d], "debt_commitment")

        borrowing_power = cs.mul(collateral, max_ltv, "borrowing_power")
        enforce_gte(
            cs,
            borrowing_power,
            debt * PERCENT,
            LTV_COMPARE_BITS,
            "debt_within_ltv",
            self.strategy,
        )
