"""
BN254 Scalar Field
==================

Arithmetic helpers for the scalar field of the BN254 (alt_bn128) curve, the
field every constraint, witness and public input lives in.

Version: 0.1.0
"""

from collections.abc import Sequence

from py_ecc.optimized_bn128 import curve_order


MODULUS: int = curve_order

# Smallest generator of the multiplicative group
GENERATOR = 5

# 2-adicity of MODULUS - 1
TWO_ADICITY = 28


def is_canonical(value: object) -> bool:
    """Check that a value is an integer in [0, MODULUS)."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < MODULUS


def inverse(value: int) -> int:
    """Multiplicative inverse. Raises ZeroDivisionError for zero."""
    value %= MODULUS
    if value == 0:
        raise ZeroDivisionError("zero has no inverse in the scalar field")
    return pow(value, MODULUS - 2, MODULUS)


def batch_inverse(values: Sequence[int]) -> list[int]:
    """Invert many non-zero elements with a single exponentiation."""
    prefix = [1] * (len(values) + 1)
    for i, value in enumerate(values):
        prefix[i + 1] = prefix[i] * value % MODULUS
    acc = inverse(prefix[-1])
    result = [0] * len(values)
    for i in range(len(values) - 1, -1, -1):
        result[i] = acc * prefix[i] % MODULUS
        acc = acc * values[i] % MODULUS
    return result


def root_of_unity(size: int) -> int:
    """Primitive `size`-th root of unity for a power-of-two size."""
    if size <= 0 or size & (size - 1):
        raise ValueError(f"Domain size must be a power of two, got {size}")
    if size.bit_length() - 1 > TWO_ADICITY:
        raise ValueError(f"Domain size 2^{size.bit_length() - 1} exceeds field 2-adicity")
    return pow(GENERATOR, (MODULUS - 1) // size, MODULUS)
