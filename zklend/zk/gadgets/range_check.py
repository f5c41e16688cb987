"""
Range Check Gadget
==================

Constrains a field element to represent an unsigned integer below 2^BITS.

Two strategies are available:

- DECOMPOSITION: BITS boolean witnesses recomposed into the value. O(BITS)
  rank-1 constraints; the only strategy the Groth16 backend can encode.
- LOOKUP: one membership check against the table range(2^BITS). Constant cost
  per check; honoured by the satisfiability checker.

BITS must stay well below the 254-bit modulus, otherwise a wrapped negative
value could alias a small valid one.
"""

from enum import Enum

from zklend.zk.constraints import ConstraintSystem, LinearCombination, Term, Variable
from zklend.zk.field import MODULUS


MAX_BITS = MODULUS.bit_length() - 1


class RangeStrategy(str, Enum):
    """How range membership is proven."""

    DECOMPOSITION = "decomposition"
    LOOKUP = "lookup"


def _check_width(bits: int) -> None:
    if not 1 <= bits <= MAX_BITS:
        raise ValueError(f"Range width must be between 1 and {MAX_BITS} bits, got {bits}")


def to_bits(cs: ConstraintSystem, value: Term, bits: int, name: str) -> list[Variable]:
    """
    Decompose value into little-endian boolean witnesses.

    Satisfiable iff 0 <= value < 2^bits.
    """
    _check_width(bits)
    v = cs.value(value)
    out: list[Variable] = []
    recomposed = LinearCombination()
    for i in range(bits):
        bit = cs.new_witness(f"{name}_bit{i}", None if v is None else (v >> i) & 1)
        cs.enforce_boolean(bit, f"{name}_bit{i}_boolean")
        recomposed = recomposed + bit * (1 << i)
        out.append(bit)
    cs.enforce_equal(recomposed, value, f"{name}_recompose")
    return out


def enforce_range(
    cs: ConstraintSystem,
    value: Term,
    bits: int,
    name: str = "range",
    strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
) -> list[Variable] | None:
    """
    Constrain 0 <= value < 2^bits.

    Returns the bit witnesses for the decomposition strategy, None for lookups.
    """
    _check_width(bits)
    if strategy is RangeStrategy.LOOKUP:
        cs.enforce_lookup(value, bits, f"{name}_lookup")
        return None
    return to_bits(cs, value, bits, name)
