"""
Collateral Circuit
==================

Public:  threshold, commitment
Private: collateral, salt

commitment == H(collateral, salt) and collateral >= threshold.
"""

from zklend.zk.circuits.base import LendingCircuit
from zklend.zk.constraints import ConstraintSystem
from zklend.zk.gadgets import RangeStrategy, enforce_commitment, enforce_gte, enforce_range
from zklend.zk.models import ProofType
from zklend.zk.params import COLLATERAL_COMPARE_BITS, VALUE_BITS
from zklend.zk.poseidon import commit


class CollateralCircuit(LendingCircuit):
    """Proves a committed collateral amount covers a public threshold."""

    proof_type = ProofType.COLLATERAL
    circuit_name = "collateral_proof"
    public_input_names = ("threshold", "commitment")

    def __init__(
        self,
        collateral: int | None,
        salt: int | None,
        threshold: int | None,
        commitment: int | None = None,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> None:
        super().__init__(strategy)
        self.collateral = collateral
        self.salt = salt
        self.threshold = threshold
        if commitment is None and collateral is not None and salt is not None:
            commitment = commit(collateral, salt)
        self.commitment = commitment

    @classmethod
    def blank(cls, strategy: RangeStrategy = RangeStrategy.DECOMPOSITION) -> "CollateralCircuit":
        return cls(None, None, None, strategy=strategy)

    def public_inputs(self) -> list[int | None]:
        return [self.threshold, self.commitment]

    def synthesize(self, cs: ConstraintSystem) -> None:
        threshold = cs.new_input("threshold", self.threshold)
        commitment = cs.new_input("commitment", self.commitment)
        collateral = cs.new_witness("collateral", self.collateral)
        salt = cs.new_witness("salt", self.salt)

        enforce_range(cs, collateral, VALUE_BITS, "collateral_range", self.strategy)
        enforce_range(cs, threshold, VALUE_BITS, "threshold_range", self.strategy)
        enforce_commitment(cs, commitment, [collateral, salt], "collateral_commitment")
        enforce_gte(
            cs,
            collateral,
            threshold,
            COLLATERAL_COMPARE_BITS,
            "collateral_covers_threshold",
            self.strategy,
        )
