"""
Groth16 over BN254
==================

Key generation, proving and verification for rank-1 constraint systems.

The QAP is interpolated over a power-of-two domain holding every constraint
row plus one row x_i * 0 = 0 per instance wire, which keeps the public-input
polynomials linearly independent.

Verification accepts iff

    e(-A, B) * e(alpha, beta) * e(L, gamma) * e(C, delta) == 1

with L = IC_0 + sum(x_i * IC_i), evaluated with a single final exponentiation.

Version: 0.1.0
"""

import random
import secrets
from collections.abc import Sequence
from dataclasses import dataclass

from zklend.errors import MalformedInputError, UnsatisfiedCircuitError, UnsupportedConstraintError
from zklend.logging import get_logger
from zklend.zk import curve
from zklend.zk.constraints import ConstraintSystem
from zklend.zk.domain import EvaluationDomain
from zklend.zk.field import MODULUS, inverse, is_canonical
from zklend.zk.models import VerificationKey, ZKProof


logger = get_logger(__name__)


@dataclass(frozen=True)
class VerifyingKey:
    alpha_g1: curve.G1Point
    beta_g2: curve.G2Point
    gamma_g2: curve.G2Point
    delta_g2: curve.G2Point
    gamma_abc_g1: tuple[curve.G1Point, ...]

    @property
    def num_public_inputs(self) -> int:
        return len(self.gamma_abc_g1) - 1


@dataclass(frozen=True)
class ProvingKey:
    vk: VerifyingKey
    beta_g1: curve.G1Point
    delta_g1: curve.G1Point
    a_query: tuple[curve.G1Point, ...]
    b_g1_query: tuple[curve.G1Point, ...]
    b_g2_query: tuple[curve.G2Point, ...]
    h_query: tuple[curve.G1Point, ...]
    l_query: tuple[curve.G1Point, ...]
    num_instance: int
    num_witness: int
    num_constraints: int
    domain_size: int


@dataclass(frozen=True)
class Proof:
    a: curve.G1Point
    b: curve.G2Point
    c: curve.G1Point


def _random_scalar(rng: random.Random | None) -> int:
    if rng is not None:
        return rng.randrange(1, MODULUS)
    return secrets.randbelow(MODULUS - 1) + 1


def _dot(row: dict[int, int], assignment: Sequence[int]) -> int:
    return sum(coeff * assignment[k] for k, coeff in row.items()) % MODULUS


def _reject_lookups(cs: ConstraintSystem) -> None:
    if cs.lookups:
        raise UnsupportedConstraintError(
            f"Groth16 cannot encode {len(cs.lookups)} lookup constraint(s); "
            "use the decomposition range strategy"
        )


# =============================================================================
# Setup
# =============================================================================


def setup(cs: ConstraintSystem, rng: random.Random | None = None) -> ProvingKey:
    """
    Generate a proving key for the shape of a constraint system.

    Values in the system are ignored, so a blank circuit is sufficient.
    Passing a seeded rng makes the keys reproducible, which is only
    acceptable for tests and local development.
    """
    _reject_lookups(cs)
    rows = cs.matrices()
    num_instance = cs.num_instance
    num_wires = num_instance + cs.num_witness
    domain = EvaluationDomain(len(rows) + num_instance)

    tau = _random_scalar(rng)
    while domain.vanishing_at(tau) == 0:
        tau = _random_scalar(rng)
    alpha, beta, gamma, delta = (_random_scalar(rng) for _ in range(4))

    lagrange = domain.lagrange_at(tau)
    a_tau = [0] * num_wires
    b_tau = [0] * num_wires
    c_tau = [0] * num_wires
    for j, (row_a, row_b, row_c) in enumerate(rows):
        basis = lagrange[j]
        for k, coeff in row_a.items():
            a_tau[k] = (a_tau[k] + coeff * basis) % MODULUS
        for k, coeff in row_b.items():
            b_tau[k] = (b_tau[k] + coeff * basis) % MODULUS
        for k, coeff in row_c.items():
            c_tau[k] = (c_tau[k] + coeff * basis) % MODULUS
    for i in range(num_instance):
        a_tau[i] = (a_tau[i] + lagrange[len(rows) + i]) % MODULUS

    gamma_inv = inverse(gamma)
    delta_inv = inverse(delta)
    g1 = curve.g1_table()
    g2 = curve.g2_table()

    def combined(k: int) -> int:
        return (beta * a_tau[k] + alpha * b_tau[k] + c_tau[k]) % MODULUS

    vk = VerifyingKey(
        alpha_g1=g1.mul(alpha),
        beta_g2=g2.mul(beta),
        gamma_g2=g2.mul(gamma),
        delta_g2=g2.mul(delta),
        gamma_abc_g1=tuple(g1.mul(combined(k) * gamma_inv) for k in range(num_instance)),
    )

    z_over_delta = domain.vanishing_at(tau) * delta_inv % MODULUS
    h_query = []
    power = 1
    for _ in range(domain.size - 1):
        h_query.append(g1.mul(power * z_over_delta))
        power = power * tau % MODULUS

    pk = ProvingKey(
        vk=vk,
        beta_g1=g1.mul(beta),
        delta_g1=g1.mul(delta),
        a_query=tuple(g1.mul(x) for x in a_tau),
        b_g1_query=tuple(g1.mul(x) for x in b_tau),
        b_g2_query=tuple(g2.mul(x) for x in b_tau),
        h_query=tuple(h_query),
        l_query=tuple(g1.mul(combined(k) * delta_inv) for k in range(num_instance, num_wires)),
        num_instance=num_instance,
        num_witness=cs.num_witness,
        num_constraints=cs.num_constraints,
        domain_size=domain.size,
    )

    logger.info(
        "groth16_setup_complete",
        constraints=cs.num_constraints,
        public_inputs=num_instance - 1,
        witnesses=cs.num_witness,
        domain_size=domain.size,
    )
    return pk


# =============================================================================
# Proving
# =============================================================================


def _quotient(
    domain: EvaluationDomain,
    a_evals: list[int],
    b_evals: list[int],
    c_evals: list[int],
) -> list[int]:
    """Coefficients of H(x) = (A(x) B(x) - C(x)) / Z(x)."""
    a = domain.coset_fft(domain.ifft(a_evals))
    b = domain.coset_fft(domain.ifft(b_evals))
    c = domain.coset_fft(domain.ifft(c_evals))
    z_inv = inverse(domain.vanishing_at(domain.coset_shift))
    h_evals = [(x * y - z) * z_inv % MODULUS for x, y, z in zip(a, b, c)]
    return domain.coset_ifft(h_evals)


def prove(pk: ProvingKey, cs: ConstraintSystem, rng: random.Random | None = None) -> Proof:
    """
    Prove that the assignment held by cs satisfies its constraints.

    Raises:
        UnsatisfiedCircuitError: if any constraint fails for the witness
        ValueError: if cs does not have the shape pk was generated for
    """
    _reject_lookups(cs)
    failing = cs.which_is_unsatisfied()
    if failing is not None:
        raise UnsatisfiedCircuitError(failing)
    if (cs.num_instance, cs.num_witness, cs.num_constraints) != (
        pk.num_instance,
        pk.num_witness,
        pk.num_constraints,
    ):
        raise ValueError("Constraint system shape does not match the proving key")

    w = cs.assignment()
    rows = cs.matrices()
    domain = EvaluationDomain(pk.domain_size)

    a_evals = [0] * domain.size
    b_evals = [0] * domain.size
    c_evals = [0] * domain.size
    for j, (row_a, row_b, row_c) in enumerate(rows):
        a_evals[j] = _dot(row_a, w)
        b_evals[j] = _dot(row_b, w)
        c_evals[j] = _dot(row_c, w)
    for i in range(pk.num_instance):
        a_evals[len(rows) + i] = w[i]
    h = _quotient(domain, a_evals, b_evals, c_evals)

    r = _random_scalar(rng)
    s = _random_scalar(rng)

    a = curve.add(
        curve.add(pk.vk.alpha_g1, curve.msm(pk.a_query, w, curve.Z1)),
        curve.multiply(pk.delta_g1, r),
    )
    b_g2 = curve.add(
        curve.add(pk.vk.beta_g2, curve.msm(pk.b_g2_query, w, curve.Z2)),
        curve.multiply(pk.vk.delta_g2, s),
    )
    b_g1 = curve.add(
        curve.add(pk.beta_g1, curve.msm(pk.b_g1_query, w, curve.Z1)),
        curve.multiply(pk.delta_g1, s),
    )

    c = curve.add(
        curve.msm(pk.l_query, w[pk.num_instance :], curve.Z1),
        curve.msm(pk.h_query, h[: len(pk.h_query)], curve.Z1),
    )
    c = curve.add(c, curve.multiply(a, s))
    c = curve.add(c, curve.multiply(b_g1, r))
    c = curve.add(c, curve.neg(curve.multiply(pk.delta_g1, r * s % MODULUS)))

    return Proof(a=a, b=b_g2, c=c)


# =============================================================================
# Verification
# =============================================================================


def verify(vk: VerifyingKey, proof: Proof, public_inputs: Sequence[int]) -> bool:
    """
    Check a decoded proof against a decoded key.

    Raises:
        MalformedInputError: wrong input count or a non-canonical input,
            detected before any curve arithmetic
    """
    if len(public_inputs) != vk.num_public_inputs:
        raise MalformedInputError(
            f"Expected {vk.num_public_inputs} public inputs, got {len(public_inputs)}"
        )
    for value in public_inputs:
        if not is_canonical(value):
            raise MalformedInputError(f"Public input {value!r} is not a canonical field element")

    acc = curve.msm(vk.gamma_abc_g1[1:], list(public_inputs), curve.Z1)
    linear = curve.add(vk.gamma_abc_g1[0], acc)
    return curve.pairing_check(
        [
            (curve.neg(proof.a), proof.b),
            (vk.alpha_g1, vk.beta_g2),
            (linear, vk.gamma_g2),
            (proof.c, vk.delta_g2),
        ]
    )


# =============================================================================
# Wire format
# =============================================================================


def _g1_strings(point: curve.G1Point) -> list[str]:
    x, y = curve.g1_to_ints(point)
    return [str(x), str(y), "1"]


def _g2_strings(point: curve.G2Point) -> list[list[str]]:
    (x0, x1), (y0, y1) = curve.g2_to_ints(point)
    return [[str(x0), str(x1)], [str(y0), str(y1)], ["1", "0"]]


def _parse_int(value: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise MalformedInputError(f"Not an integer coordinate: {value!r}") from exc


def _g1_from_strings(coords: Sequence[str]) -> curve.G1Point:
    return curve.g1_from_ints(_parse_int(coords[0]), _parse_int(coords[1]))


def _g2_from_strings(coords: Sequence[Sequence[str]]) -> curve.G2Point:
    x = (_parse_int(coords[0][0]), _parse_int(coords[0][1]))
    y = (_parse_int(coords[1][0]), _parse_int(coords[1][1]))
    return curve.g2_from_ints(x, y)


def export_proof(proof: Proof) -> ZKProof:
    return ZKProof(pi_a=_g1_strings(proof.a), pi_b=_g2_strings(proof.b), pi_c=_g1_strings(proof.c))


def import_proof(model: ZKProof) -> Proof:
    """Decode and validate proof points. Raises MalformedProofError."""
    return Proof(
        a=_g1_from_strings(model.pi_a),
        b=_g2_from_strings(model.pi_b),
        c=_g1_from_strings(model.pi_c),
    )


def export_verification_key(vk: VerifyingKey) -> VerificationKey:
    return VerificationKey(
        n_public=vk.num_public_inputs,
        vk_alpha_1=_g1_strings(vk.alpha_g1),
        vk_beta_2=_g2_strings(vk.beta_g2),
        vk_gamma_2=_g2_strings(vk.gamma_g2),
        vk_delta_2=_g2_strings(vk.delta_g2),
        ic=[_g1_strings(point) for point in vk.gamma_abc_g1],
    )


def import_verification_key(model: VerificationKey) -> VerifyingKey:
    """Decode and validate key points. Raises MalformedProofError."""
    return VerifyingKey(
        alpha_g1=_g1_from_strings(model.vk_alpha_1),
        beta_g2=_g2_from_strings(model.vk_beta_2),
        gamma_g2=_g2_from_strings(model.vk_gamma_2),
        delta_g2=_g2_from_strings(model.vk_delta_2),
        gamma_abc_g1=tuple(_g1_from_strings(point) for point in model.ic),
    )
