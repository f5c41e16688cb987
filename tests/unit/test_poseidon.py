"""
Unit Tests for Poseidon Commitments
===================================

Tests for the native hash, commitments, nullifier derivation and the
in-circuit gadget.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from zklend.zk.constraints import ConstraintSystem
from zklend.zk.field import MODULUS
from zklend.zk.gadgets import enforce_commitment, poseidon_gadget
from zklend.zk.poseidon import (
    WIDTH,
    commit,
    derive_nullifier,
    hasher,
    initial_state,
    parameters,
    poseidon_hash,
    position_hash,
)


class TestPoseidonHash:
    """Tests for the native hash."""

    def test_deterministic(self):
        assert poseidon_hash(1, 2) == poseidon_hash(1, 2)

    def test_output_is_field_element(self):
        digest = poseidon_hash(MODULUS - 1, 0, 12345)
        assert 0 <= digest < MODULUS

    def test_order_matters(self):
        assert poseidon_hash(1, 2) != poseidon_hash(2, 1)

    def test_length_separated(self):
        """Inputs padded with zeros do not collide with shorter inputs."""
        assert poseidon_hash(5) != poseidon_hash(5, 0)
        assert poseidon_hash(5, 0) != poseidon_hash(5, 0, 0)

    def test_input_count(self):
        with pytest.raises(ValueError, match="1 to 3 inputs"):
            poseidon_hash()
        with pytest.raises(ValueError, match="1 to 3 inputs"):
            poseidon_hash(1, 2, 3, 4)

    def test_rejects_non_integers(self):
        with pytest.raises(TypeError):
            poseidon_hash("1")
        with pytest.raises(TypeError):
            poseidon_hash(True)

    def test_parameters_come_from_library(self):
        """Round counts, constants and MDS are the library instance's own."""
        h = hasher()
        params = parameters()

        assert params.width == h.t == WIDTH
        assert params.full_rounds == h.full_round
        assert params.partial_rounds == h.partial_round
        assert len(params.round_constants) == params.total_rounds
        assert params.round_constants[0][0] == int(h.rc_field[0])
        assert params.mds[1][2] == int(h.mds_matrix[1][2])
        assert params.is_full_round(0)
        assert not params.is_full_round(params.full_rounds // 2)
        assert params.is_full_round(params.total_rounds - 1)

    def test_capacity_holds_input_count(self):
        assert initial_state((7,)) == [1, 7, 0, 0]
        assert initial_state((7, 8, 9)) == [3, 7, 8, 9]


class TestCommitments:
    """Tests for commitments and nullifiers."""

    def test_hiding(self):
        """The same value under different salts gives unrelated commitments."""
        assert commit(100, 1) != commit(100, 2)

    def test_binding(self):
        """Different values under the same salt give different commitments."""
        assert commit(100, 7) != commit(101, 7)

    def test_commit_is_two_input_hash(self):
        assert commit(100, 7) == poseidon_hash(100, 7)

    def test_position_hash(self):
        assert position_hash(100, 50, 9) == poseidon_hash(100, 50, 9)
        assert position_hash(100, 50, 9) != position_hash(100, 51, 9)

    def test_concurrent_hashing(self):
        """Proving threads share one library instance without mixing states."""
        expected = [commit(v, v + 1) for v in range(32)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            digests = list(pool.map(lambda v: commit(v, v + 1), range(32)))

        assert digests == expected

    def test_derived_nullifiers_distinct(self):
        """One action can retire several commitments without reusing a nullifier."""
        base = 0xABCDEF
        derived = {derive_nullifier(base, i) for i in (1, 2, 3)}
        assert len(derived) == 3
        assert base not in derived


class TestPoseidonGadget:
    """Tests for the in-circuit hash."""

    @pytest.mark.parametrize("inputs", [(7,), (100, 12345), (1, 2, 3), (MODULUS - 1, 0, 5)])
    def test_matches_native(self, inputs):
        """The gadget computes the same digest as the native hash."""
        cs = ConstraintSystem()
        wires = [cs.new_witness(f"x{i}", value) for i, value in enumerate(inputs)]
        digest = poseidon_gadget(cs, wires)

        assert cs.value(digest) == poseidon_hash(*inputs)
        assert cs.is_satisfied()

    def test_constraint_count(self):
        """Three multiplications per S-box."""
        cs = ConstraintSystem()
        wires = [cs.new_witness("x", 1), cs.new_witness("y", 2)]
        poseidon_gadget(cs, wires)

        params = parameters()
        sboxes = params.full_rounds * params.width + params.partial_rounds
        assert cs.num_constraints == 3 * sboxes

    def test_commitment_opening(self):
        """A correct opening satisfies the commitment check."""
        cs = ConstraintSystem()
        c = cs.new_input("commitment", commit(500, 42))
        value = cs.new_witness("value", 500)
        salt = cs.new_witness("salt", 42)
        enforce_commitment(cs, c, [value, salt])

        assert cs.is_satisfied()

    def test_wrong_opening(self):
        """Opening with a different value fails at the equality check."""
        cs = ConstraintSystem()
        c = cs.new_input("commitment", commit(500, 42))
        value = cs.new_witness("value", 501)
        salt = cs.new_witness("salt", 42)
        enforce_commitment(cs, c, [value, salt], "collateral_commitment")

        assert cs.which_is_unsatisfied() == "collateral_commitment/opening"
