"""
Circuit Base
============

A lending circuit owns its public/private input layout and knows how to lay
its constraints into a ConstraintSystem. Circuits built without values
(`blank()`) have the same shape as circuits built with a witness, which is
what key generation relies on.
"""

from abc import ABC, abstractmethod
from typing import ClassVar

from zklend.zk.constraints import ConstraintSystem
from zklend.zk.gadgets import RangeStrategy
from zklend.zk.models import ProofType


class LendingCircuit(ABC):
    """Base class for the collateral, LTV and liquidation circuits."""

    proof_type: ClassVar[ProofType]
    circuit_name: ClassVar[str]
    public_input_names: ClassVar[tuple[str, ...]]

    def __init__(self, strategy: RangeStrategy = RangeStrategy.DECOMPOSITION) -> None:
        self.strategy = strategy

    @classmethod
    @abstractmethod
    def blank(cls, strategy: RangeStrategy = RangeStrategy.DECOMPOSITION) -> "LendingCircuit":
        """Circuit with no values, for key generation."""

    @abstractmethod
    def synthesize(self, cs: ConstraintSystem) -> None:
        """Allocate public inputs (in order), witnesses and constraints."""

    @abstractmethod
    def public_inputs(self) -> list[int | None]:
        """Public input values in allocation order."""

    @property
    def public_parameters(self) -> dict[str, int]:
        return {
            name: value
            for name, value in zip(self.public_input_names, self.public_inputs())
            if value is not None
        }

    def build(self) -> ConstraintSystem:
        cs = ConstraintSystem()
        self.synthesize(cs)
        return cs
