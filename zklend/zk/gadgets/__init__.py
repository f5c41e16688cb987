"""
Circuit Gadgets
===============

Reusable constraint fragments composed by the lending circuits:

- range_check: v < 2^BITS by bit decomposition or table lookup
- comparison: a >= b and a > b over a field with no ordering
- poseidon: in-circuit Poseidon and the binding commitment check
"""

from zklend.zk.gadgets.comparison import enforce_gt, enforce_gte, greater_or_equal
from zklend.zk.gadgets.poseidon import enforce_commitment, poseidon_gadget
from zklend.zk.gadgets.range_check import RangeStrategy, enforce_range, to_bits


__all__ = [
    # Range checks
    "RangeStrategy",
    "enforce_range",
    "to_bits",
    # Comparison
    "greater_or_equal",
    "enforce_gte",
    "enforce_gt",
    # Hashing
    "poseidon_gadget",
    "enforce_commitment",
]
