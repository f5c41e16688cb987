"""
Unit Tests for the Constraint System
====================================

Tests for scalar field helpers, linear combinations, the R1CS builder and the
evaluation domain.
"""

import pytest

from zklend.zk.constraints import ONE, ConstraintSystem, LinearCombination, VariableKind
from zklend.zk.domain import EvaluationDomain
from zklend.zk.field import MODULUS, batch_inverse, inverse, is_canonical, root_of_unity


class TestField:
    """Tests for scalar field helpers."""

    def test_is_canonical_bounds(self):
        """Only integers in [0, MODULUS) are canonical."""
        assert is_canonical(0)
        assert is_canonical(MODULUS - 1)
        assert not is_canonical(MODULUS)
        assert not is_canonical(-1)

    def test_is_canonical_rejects_non_integers(self):
        """Booleans, strings and floats are not field elements."""
        assert not is_canonical(True)
        assert not is_canonical("5")
        assert not is_canonical(5.0)

    def test_inverse(self):
        """x * inverse(x) == 1."""
        assert 12345 * inverse(12345) % MODULUS == 1

        with pytest.raises(ZeroDivisionError):
            inverse(MODULUS)

    def test_batch_inverse_matches_single(self):
        """Batch inversion agrees with element-wise inversion."""
        values = [2, 3, 5, 7, MODULUS - 1]
        assert batch_inverse(values) == [inverse(v) for v in values]

    def test_root_of_unity_order(self):
        """omega has order exactly n."""
        omega = root_of_unity(16)
        assert pow(omega, 16, MODULUS) == 1
        assert pow(omega, 8, MODULUS) != 1

        with pytest.raises(ValueError, match="power of two"):
            root_of_unity(12)


class TestLinearCombination:
    """Tests for linear combination arithmetic."""

    def test_terms_cancel(self):
        """Adding a term and its negation leaves nothing behind."""
        cs = ConstraintSystem()
        x = cs.new_witness("x", 3)

        lc = x + 5 - x
        assert lc.terms == {ONE: 5}

    def test_scalar_multiplication_reduces(self):
        """Coefficients are kept reduced modulo the field."""
        cs = ConstraintSystem()
        x = cs.new_witness("x", 1)

        lc = x * (MODULUS + 2)
        assert lc.terms == {x: 2}

    def test_constant(self):
        lc = LinearCombination.constant(7)
        assert lc.terms == {ONE: 7}
        assert len(LinearCombination.constant(0)) == 0


class TestConstraintSystem:
    """Tests for the R1CS builder."""

    def test_wire_layout(self):
        """One, then public inputs, then witnesses."""
        cs = ConstraintSystem()
        w = cs.new_witness("w", 4)
        y = cs.new_input("y", 16)

        assert y.kind is VariableKind.INSTANCE
        assert cs.wire_index(ONE) == 0
        assert cs.wire_index(y) == 1
        assert cs.wire_index(w) == 2
        assert cs.assignment() == [1, 16, 4]
        assert cs.public_inputs() == [16]

    def test_satisfied_square(self):
        """x * x = y holds for x=3, y=9."""
        cs = ConstraintSystem()
        y = cs.new_input("y", 9)
        x = cs.new_witness("x", 3)
        cs.enforce(x, x, y, "square")

        assert cs.is_satisfied()
        assert cs.which_is_unsatisfied() is None

    def test_reports_failing_constraint(self):
        """The first failing constraint is reported by name."""
        cs = ConstraintSystem()
        y = cs.new_input("y", 10)
        x = cs.new_witness("x", 3)
        cs.enforce(x, x, y, "square")

        assert cs.which_is_unsatisfied() == "square"

    def test_mul_allocates_product(self):
        """mul creates a constrained witness holding the product."""
        cs = ConstraintSystem()
        a = cs.new_witness("a", 6)
        b = cs.new_witness("b", 7)
        product = cs.mul(a, b, "product")

        assert cs.value_of(product) == 42
        assert cs.num_constraints == 1
        assert cs.is_satisfied()

    def test_namespace_prefixes_names(self):
        """Names allocated in a namespace are qualified."""
        cs = ConstraintSystem()
        with cs.namespace("outer"):
            with cs.namespace("inner"):
                x = cs.new_witness("x", 2)
                cs.enforce_equal(x, 3, "check")

        assert cs.witness_names == ["outer/inner/x"]
        assert cs.which_is_unsatisfied() == "outer/inner/check"

    def test_enforce_boolean(self):
        """Only 0 and 1 satisfy the boolean constraint."""
        for value, expected in ((0, True), (1, True), (2, False)):
            cs = ConstraintSystem()
            bit = cs.new_witness("bit", value)
            cs.enforce_boolean(bit, "boolean")
            assert cs.is_satisfied() is expected

    def test_lookup_checked(self):
        """Lookups are checked against range(2^bits)."""
        cs = ConstraintSystem()
        x = cs.new_witness("x", 255)
        cs.enforce_lookup(x, 8, "byte")
        assert cs.is_satisfied()

        cs = ConstraintSystem()
        x = cs.new_witness("x", 256)
        cs.enforce_lookup(x, 8, "byte")
        assert cs.which_is_unsatisfied() == "byte"

    def test_blank_assignment_incomplete(self):
        """A system without values cannot produce an assignment."""
        cs = ConstraintSystem()
        x = cs.new_witness("x", None)
        cs.enforce(x, x, x, "idempotent")

        assert cs.value(x + 1) is None
        assert cs.which_is_unsatisfied() == "idempotent"
        with pytest.raises(ValueError, match="incomplete"):
            cs.assignment()

    def test_matrices(self):
        """Rows are keyed by flattened wire index."""
        cs = ConstraintSystem()
        y = cs.new_input("y", 9)
        x = cs.new_witness("x", 3)
        cs.enforce(x, x + 1, y * 2, "row")

        [(a, b, c)] = cs.matrices()
        assert a == {2: 1}
        assert b == {2: 1, 0: 1}
        assert c == {1: 2}

    def test_stats(self):
        cs = ConstraintSystem()
        cs.new_input("y", 1)
        x = cs.new_witness("x", 1)
        cs.enforce_boolean(x, "b")
        cs.enforce_lookup(x, 1, "l")

        assert cs.stats() == {"constraints": 1, "lookups": 1, "public_inputs": 1, "witnesses": 1}


class TestEvaluationDomain:
    """Tests for FFT over the scalar field."""

    def test_size_rounds_up(self):
        assert EvaluationDomain(5).size == 8
        assert EvaluationDomain(8).size == 8
        assert EvaluationDomain(1).size == 2

    def test_fft_evaluates_polynomial(self):
        """fft(coeffs)[i] is the polynomial evaluated at omega^i."""
        domain = EvaluationDomain(4)
        coeffs = [3, 0, 2, 1]  # 3 + 2x^2 + x^3
        evals = domain.fft(coeffs)

        for i, value in enumerate(evals):
            x = pow(domain.omega, i, MODULUS)
            assert value == (3 + 2 * x * x + x * x * x) % MODULUS
        assert domain.ifft(evals) == coeffs

    def test_coset_inverse(self):
        domain = EvaluationDomain(8)
        coeffs = [1, 2, 3, 4, 5, 6, 7, 8]
        assert domain.coset_ifft(domain.coset_fft(coeffs)) == coeffs

    def test_lagrange_basis_sums_to_one(self):
        """The Lagrange basis is a partition of unity."""
        domain = EvaluationDomain(8)
        assert sum(domain.lagrange_at(123456789)) % MODULUS == 1

    def test_lagrange_rejects_domain_point(self):
        domain = EvaluationDomain(8)
        with pytest.raises(ValueError, match="inside the evaluation domain"):
            domain.lagrange_at(domain.omega)

    def test_vanishing(self):
        domain = EvaluationDomain(4)
        assert domain.vanishing_at(domain.omega) == 0
        assert domain.vanishing_at(2) == 15
