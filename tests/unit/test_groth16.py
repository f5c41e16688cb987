"""
Unit Tests for the Groth16 Backend
==================================

Uses a two-constraint circuit so setup, proving and verification stay fast.
"""

import random

import pytest

from tests.conftest import square_chain_circuit
from zklend.errors import MalformedInputError, UnsatisfiedCircuitError, UnsupportedConstraintError
from zklend.zk import curve, groth16
from zklend.zk.constraints import ConstraintSystem
from zklend.zk.field import MODULUS


@pytest.fixture(scope="module")
def proving_key() -> groth16.ProvingKey:
    return groth16.setup(square_chain_circuit(None), random.Random(7))


@pytest.fixture(scope="module")
def proof(proving_key) -> groth16.Proof:
    return groth16.prove(proving_key, square_chain_circuit(3), random.Random(8))


class TestSetup:
    """Tests for key generation."""

    def test_key_shape(self, proving_key):
        """One IC point per public input plus the constant wire."""
        assert proving_key.vk.num_public_inputs == 2
        assert len(proving_key.vk.gamma_abc_g1) == 3
        assert proving_key.num_instance == 3
        assert proving_key.num_witness == 1
        assert len(proving_key.a_query) == 4
        assert len(proving_key.l_query) == 1
        assert len(proving_key.h_query) == proving_key.domain_size - 1

    def test_seeded_setup_is_reproducible(self, proving_key):
        again = groth16.setup(square_chain_circuit(None), random.Random(7))
        assert curve.g1_to_ints(again.vk.alpha_g1) == curve.g1_to_ints(proving_key.vk.alpha_g1)

    def test_lookups_unsupported(self):
        """Lookup constraints cannot be encoded."""
        cs = ConstraintSystem()
        x = cs.new_witness("x", None)
        cs.enforce_lookup(x, 8, "byte")

        with pytest.raises(UnsupportedConstraintError, match="lookup"):
            groth16.setup(cs)


class TestProveVerify:
    """Tests for proving and verification."""

    def test_valid_proof(self, proving_key, proof):
        assert groth16.verify(proving_key.vk, proof, [9, 27])

    def test_wrong_public_input(self, proving_key, proof):
        assert not groth16.verify(proving_key.vk, proof, [9, 28])

    def test_swapped_points(self, proving_key, proof):
        forged = groth16.Proof(a=proof.c, b=proof.b, c=proof.a)
        assert not groth16.verify(proving_key.vk, forged, [9, 27])

    def test_proofs_are_randomized(self, proving_key, proof):
        """A second proof of the same statement differs but still verifies."""
        other = groth16.prove(proving_key, square_chain_circuit(3), random.Random(9))

        assert curve.g1_to_ints(other.a) != curve.g1_to_ints(proof.a)
        assert groth16.verify(proving_key.vk, other, [9, 27])

    def test_unsatisfied_witness(self, proving_key):
        """Proving a false statement fails before any curve work."""
        cs = square_chain_circuit(3)
        cs.instance_values[2] = 28

        with pytest.raises(UnsatisfiedCircuitError) as exc_info:
            groth16.prove(proving_key, cs)
        assert exc_info.value.constraint == "cube"

    def test_shape_mismatch(self, proving_key):
        cs = square_chain_circuit(3)
        extra = cs.new_witness("extra", 0)
        cs.enforce(extra, extra, extra, "extra")

        with pytest.raises(ValueError, match="shape"):
            groth16.prove(proving_key, cs)

    def test_wrong_input_count(self, proving_key, proof):
        with pytest.raises(MalformedInputError, match="Expected 2 public inputs"):
            groth16.verify(proving_key.vk, proof, [9])

    def test_non_canonical_input(self, proving_key, proof):
        """9 + MODULUS is rejected, not reduced."""
        with pytest.raises(MalformedInputError, match="canonical"):
            groth16.verify(proving_key.vk, proof, [9 + MODULUS, 27])


class TestWireFormat:
    """Tests for snarkjs-style encoding."""

    def test_proof_encoding(self, proving_key, proof):
        encoded = groth16.export_proof(proof)
        decoded = groth16.import_proof(encoded)

        assert encoded.pi_a[2] == "1"
        assert encoded.pi_b[2] == ["1", "0"]
        assert groth16.verify(proving_key.vk, decoded, [9, 27])

    def test_key_encoding(self, proving_key, proof):
        model = groth16.export_verification_key(proving_key.vk)
        vk = groth16.import_verification_key(model)

        assert model.n_public == 2
        assert len(model.to_elements()) == 20
        assert groth16.verify(vk, proof, [9, 27])


class TestCurve:
    """Tests for the group helpers."""

    def test_msm_matches_naive(self):
        points = [curve.multiply(curve.G1, k) for k in (1, 2, 3, 4, 5)]
        scalars = [0, 1, 2, MODULUS - 1, 123456789]
        expected = curve.Z1
        for point, scalar in zip(points, scalars):
            expected = curve.add(expected, curve.multiply(point, scalar))

        assert curve.g1_to_ints(curve.msm(points, scalars, curve.Z1)) == curve.g1_to_ints(expected)

    def test_fixed_base_matches_multiply(self):
        scalar = 987654321987654321
        assert curve.g1_to_ints(curve.g1_table().mul(scalar)) == curve.g1_to_ints(
            curve.multiply(curve.G1, scalar)
        )

    def test_g1_decoding_rejects_bad_points(self):
        with pytest.raises(MalformedInputError, match="infinity"):
            curve.g1_from_ints(0, 0)
        with pytest.raises(MalformedInputError, match="not on the curve"):
            curve.g1_from_ints(1, 1)
        with pytest.raises(MalformedInputError, match="canonical"):
            curve.g1_from_ints(1, curve.field_modulus + 2)

    def test_g2_roundtrip(self):
        point = curve.g2_table().mul(42)
        x, y = curve.g2_to_ints(point)
        assert curve.g2_to_ints(curve.g2_from_ints(x, y)) == (x, y)

    def test_pairing_check(self):
        """e(aP, Q) * e(-P, aQ) == 1."""
        p = curve.multiply(curve.G1, 5)
        q = curve.G2
        assert curve.pairing_check([(p, q), (curve.neg(curve.G1), curve.multiply(q, 5))])
        assert not curve.pairing_check([(p, q), (curve.neg(curve.G1), curve.multiply(q, 6))])
