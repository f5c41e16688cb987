"""
BN254 Group Helpers
===================

Thin layer over py_ecc.optimized_bn128: decoding and validating points from
integer coordinates, encoding them back, windowed fixed-base multiplication
for key generation, Pippenger multi-scalar multiplication for proving, and a
batched pairing-product check.

Points are py_ecc projective triples; the point at infinity has z == 0.

Version: 0.1.0
"""

from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    G1,
    G2,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    double,
    field_modulus,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    normalize,
    pairing,
)

from zklend.errors import MalformedProofError


G1Point = tuple[FQ, FQ, FQ]
G2Point = tuple[FQ2, FQ2, FQ2]
Point = Any

__all__ = [
    "G1",
    "G2",
    "Z1",
    "Z2",
    "add",
    "neg",
    "multiply",
    "is_inf",
    "g1_from_ints",
    "g2_from_ints",
    "g1_to_ints",
    "g2_to_ints",
    "FixedBaseTable",
    "g1_table",
    "g2_table",
    "msm",
    "pairing_check",
]


def _coeff(value: Any) -> int:
    return value if isinstance(value, int) else value.n


def _check_coordinate(value: object) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value < field_modulus:
        raise MalformedProofError(f"Coordinate is not a canonical base field element: {value!r}")
    return value


# =============================================================================
# Codecs
# =============================================================================


def g1_from_ints(x: int, y: int) -> G1Point:
    """Decode an affine G1 point; rejects infinity and off-curve coordinates."""
    x, y = _check_coordinate(x), _check_coordinate(y)
    if x == 0 and y == 0:
        raise MalformedProofError("G1 point at infinity")
    point = (FQ(x), FQ(y), FQ.one())
    if not is_on_curve(point, b):
        raise MalformedProofError("G1 point is not on the curve")
    return point


def g2_from_ints(x: tuple[int, int], y: tuple[int, int]) -> G2Point:
    """
    Decode an affine G2 point given as (real, imaginary) coordinate pairs.

    Also checks membership in the prime-order subgroup, which the twist curve
    does not guarantee.
    """
    coords = [_check_coordinate(c) for c in (*x, *y)]
    if not any(coords):
        raise MalformedProofError("G2 point at infinity")
    point = (FQ2(coords[0:2]), FQ2(coords[2:4]), FQ2.one())
    if not is_on_curve(point, b2):
        raise MalformedProofError("G2 point is not on the curve")
    if not is_inf(multiply(point, curve_order)):
        raise MalformedProofError("G2 point is outside the prime-order subgroup")
    return point


def g1_to_ints(point: G1Point) -> tuple[int, int]:
    if is_inf(point):
        return 0, 0
    x, y = normalize(point)
    return _coeff(x), _coeff(y)


def g2_to_ints(point: G2Point) -> tuple[tuple[int, int], tuple[int, int]]:
    if is_inf(point):
        return (0, 0), (0, 0)
    x, y = normalize(point)
    x0, x1 = (_coeff(c) for c in x.coeffs)
    y0, y1 = (_coeff(c) for c in y.coeffs)
    return (x0, x1), (y0, y1)


# =============================================================================
# Scalar multiplication
# =============================================================================


def _identity_like(point: Point) -> Point:
    return Z1 if isinstance(point[0], FQ) else Z2


class FixedBaseTable:
    """
    Precomputed multiples j * 2^(w*k) * base for every window k.

    A multiplication then costs one addition per non-zero window digit.
    """

    def __init__(self, base: Point, window: int = 8, scalar_bits: int = 254) -> None:
        self.window = window
        self.mask = (1 << window) - 1
        self.identity = _identity_like(base)
        self.rows: list[list[Point]] = []
        current = base
        for _ in range(-(-scalar_bits // window)):
            row = [self.identity, current]
            for _ in range(2, 1 << window):
                row.append(add(row[-1], current))
            self.rows.append(row)
            current = add(row[-1], current)

    def mul(self, scalar: int) -> Point:
        scalar %= curve_order
        acc = self.identity
        k = 0
        while scalar:
            digit = scalar & self.mask
            if digit:
                acc = add(acc, self.rows[k][digit])
            scalar >>= self.window
            k += 1
        return acc


@lru_cache(maxsize=None)
def g1_table() -> FixedBaseTable:
    return FixedBaseTable(G1)


@lru_cache(maxsize=None)
def g2_table() -> FixedBaseTable:
    return FixedBaseTable(G2, window=6)


def _window_size(n: int) -> int:
    return max(2, min(12, n.bit_length() - 2))


def msm(points: Sequence[Point], scalars: Sequence[int], identity: Point) -> Point:
    """
    Sum of scalar_i * point_i using Pippenger's bucket method.

    Zero scalars and points at infinity are skipped, and unit scalars are
    added directly, which covers the many boolean wires of a circuit.
    """
    if len(points) != len(scalars):
        raise ValueError(f"{len(points)} points but {len(scalars)} scalars")

    direct = identity
    pairs: list[tuple[Point, int]] = []
    for point, scalar in zip(points, scalars):
        scalar %= curve_order
        if scalar == 0 or is_inf(point):
            continue
        if scalar == 1:
            direct = add(direct, point)
        else:
            pairs.append((point, scalar))
    if not pairs:
        return direct

    c = _window_size(len(pairs))
    mask = (1 << c) - 1
    num_windows = -(-max(s.bit_length() for _, s in pairs) // c)

    result = identity
    started = False
    for w in reversed(range(num_windows)):
        if started:
            for _ in range(c):
                result = double(result)
        buckets: list[Point | None] = [None] * (1 << c)
        shift = w * c
        for point, scalar in pairs:
            digit = (scalar >> shift) & mask
            if digit:
                bucket = buckets[digit]
                buckets[digit] = point if bucket is None else add(bucket, point)

        running: Point | None = None
        window_sum: Point | None = None
        for bucket in reversed(buckets[1:]):
            if bucket is not None:
                running = bucket if running is None else add(running, bucket)
            if running is not None:
                window_sum = running if window_sum is None else add(window_sum, running)
        if window_sum is not None:
            result = add(result, window_sum)
            started = True
    return add(direct, result)


# =============================================================================
# Pairing
# =============================================================================


def pairing_check(pairs: Sequence[tuple[G1Point, G2Point]]) -> bool:
    """True iff the product of e(P_i, Q_i) is the identity in GT."""
    acc = FQ12.one()
    for p, q in pairs:
        acc = acc * pairing(q, p, final_exponentiate=False)
    return final_exponentiate(acc) == FQ12.one()
