"""
Evaluation Domain
=================

Radix-2 multiplicative subgroup of the scalar field, used to interpolate the
QAP polynomials and compute the quotient polynomial by coset FFT.
"""

from collections.abc import Sequence

from zklend.zk.field import GENERATOR, MODULUS, batch_inverse, inverse, root_of_unity


def _bit_reverse(values: list[int]) -> None:
    n = len(values)
    j = 0
    for i in range(1, n):
        bit = n >> 1
        while j & bit:
            j ^= bit
            bit >>= 1
        j |= bit
        if i < j:
            values[i], values[j] = values[j], values[i]


def _ntt(values: Sequence[int], omega: int) -> list[int]:
    a = list(values)
    n = len(a)
    _bit_reverse(a)
    length = 2
    while length <= n:
        half = length // 2
        step = pow(omega, n // length, MODULUS)
        twiddles = [1] * half
        for k in range(1, half):
            twiddles[k] = twiddles[k - 1] * step % MODULUS
        for start in range(0, n, length):
            for k in range(half):
                u = a[start + k]
                v = a[start + k + half] * twiddles[k] % MODULUS
                a[start + k] = (u + v) % MODULUS
                a[start + k + half] = (u - v) % MODULUS
        length <<= 1
    return a


class EvaluationDomain:
    """Subgroup {omega^i} of the smallest power-of-two size >= min_size."""

    def __init__(self, min_size: int) -> None:
        size = 2
        while size < min_size:
            size <<= 1
        self.size = size
        self.omega = root_of_unity(size)
        self.omega_inv = inverse(self.omega)
        self.size_inv = inverse(size)
        self.coset_shift = GENERATOR
        self.coset_shift_inv = inverse(GENERATOR)

    def _pad(self, values: Sequence[int]) -> list[int]:
        if len(values) > self.size:
            raise ValueError(f"{len(values)} values exceed domain size {self.size}")
        return [*values, *([0] * (self.size - len(values)))]

    def fft(self, coeffs: Sequence[int]) -> list[int]:
        return _ntt(self._pad(coeffs), self.omega)

    def ifft(self, evals: Sequence[int]) -> list[int]:
        return [v * self.size_inv % MODULUS for v in _ntt(self._pad(evals), self.omega_inv)]

    def coset_fft(self, coeffs: Sequence[int]) -> list[int]:
        shifted = []
        power = 1
        for c in self._pad(coeffs):
            shifted.append(c * power % MODULUS)
            power = power * self.coset_shift % MODULUS
        return _ntt(shifted, self.omega)

    def coset_ifft(self, evals: Sequence[int]) -> list[int]:
        coeffs = self.ifft(evals)
        power = 1
        for i, c in enumerate(coeffs):
            coeffs[i] = c * power % MODULUS
            power = power * self.coset_shift_inv % MODULUS
        return coeffs

    def vanishing_at(self, x: int) -> int:
        """Z(x) = x^n - 1."""
        return (pow(x, self.size, MODULUS) - 1) % MODULUS

    def lagrange_at(self, tau: int) -> list[int]:
        """
        All Lagrange basis polynomials evaluated at tau.

        L_i(tau) = omega^i * Z(tau) / (n * (tau - omega^i)); tau must lie
        outside the domain.
        """
        z = self.vanishing_at(tau)
        if z == 0:
            raise ValueError("tau lies inside the evaluation domain")
        points = []
        power = 1
        for _ in range(self.size):
            points.append(power)
            power = power * self.omega % MODULUS
        denominators = batch_inverse([(tau - p) % MODULUS for p in points])
        scale = z * self.size_inv % MODULUS
        return [p * d % MODULUS * scale % MODULUS for p, d in zip(points, denominators)]
