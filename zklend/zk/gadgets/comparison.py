"""
Comparison Gadget
=================

Proves a >= b (and a > b) for a, b already known to lie in [0, 2^(BITS-1)).

diff = a - b + 2^(BITS-1) lies in [0, 2^BITS). Its top bit is set exactly
when a >= b; when a < b the offset is only partially consumed and the top bit
is clear. Callers are responsible for range checking both operands first.
"""

from zklend.zk.constraints import ConstraintSystem, Term, Variable, as_lc
from zklend.zk.gadgets.range_check import RangeStrategy, enforce_range, to_bits


def greater_or_equal(
    cs: ConstraintSystem,
    a: Term,
    b: Term,
    bits: int,
    name: str = "gte",
    strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
) -> Variable:
    """Boolean witness equal to 1 iff a >= b."""
    if bits < 2:
        raise ValueError(f"Comparison needs at least 2 bits, got {bits}")
    offset = 1 << (bits - 1)
    diff = as_lc(a) - b + offset

    if strategy is RangeStrategy.DECOMPOSITION:
        return to_bits(cs, diff, bits, f"{name}_diff")[-1]

    # Split off the top bit and look up the remainder
    d = cs.value(diff)
    msb = cs.new_witness(f"{name}_msb", None if d is None else d >> (bits - 1))
    cs.enforce_boolean(msb, f"{name}_msb_boolean")
    enforce_range(cs, diff - msb * offset, bits - 1, f"{name}_low", strategy)
    return msb


def enforce_gte(
    cs: ConstraintSystem,
    a: Term,
    b: Term,
    bits: int,
    name: str = "gte",
    strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
) -> None:
    """Constrain a >= b."""
    msb = greater_or_equal(cs, a, b, bits, name, strategy)
    cs.enforce_equal(msb, 1, f"{name}_holds")


def enforce_gt(
    cs: ConstraintSystem,
    a: Term,
    b: Term,
    bits: int,
    name: str = "gt",
    strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
) -> None:
    """Constrain a > b, as a >= b + 1."""
    enforce_gte(cs, a, as_lc(b) + 1, bits, name, strategy)
