"""
Lending Circuits
================

Each proof type maps to exactly one circuit class.
"""

from zklend.zk.circuits.base import LendingCircuit
from zklend.zk.circuits.collateral import CollateralCircuit
from zklend.zk.circuits.liquidation import LiquidationCircuit
from zklend.zk.circuits.ltv import LTVCircuit
from zklend.zk.models import ProofType


CIRCUITS: dict[ProofType, type[LendingCircuit]] = {
    ProofType.COLLATERAL: CollateralCircuit,
    ProofType.LTV: LTVCircuit,
    ProofType.LIQUIDATION: LiquidationCircuit,
}


__all__ = [
    "CIRCUITS",
    "LendingCircuit",
    "CollateralCircuit",
    "LTVCircuit",
    "LiquidationCircuit",
]
