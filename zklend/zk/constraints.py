"""
Rank-1 Constraint System
========================

Constraints have the form <a, w> * <b, w> = <c, w> where w is the full
assignment: the constant one, the public inputs in allocation order, then the
private witnesses. Range lookups are recorded separately; the satisfiability
checker understands them but the Groth16 backend does not.

Values may be unknown (None) when the system is synthesized only for its
shape, as during key generation.

Version: 0.1.0
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Union

from zklend.zk.field import MODULUS


class VariableKind(str, Enum):
    INSTANCE = "instance"
    WITNESS = "witness"


@dataclass(frozen=True)
class Variable:
    """A wire in the constraint system."""

    kind: VariableKind
    index: int

    def lc(self) -> "LinearCombination":
        return LinearCombination({self: 1})

    def __add__(self, other: "Term") -> "LinearCombination":
        return self.lc() + other

    def __radd__(self, other: "Term") -> "LinearCombination":
        return self.lc() + other

    def __sub__(self, other: "Term") -> "LinearCombination":
        return self.lc() - other

    def __rsub__(self, other: "Term") -> "LinearCombination":
        return as_lc(other) - self.lc()

    def __mul__(self, scalar: int) -> "LinearCombination":
        return self.lc() * scalar

    def __rmul__(self, scalar: int) -> "LinearCombination":
        return self.lc() * scalar

    def __neg__(self) -> "LinearCombination":
        return -self.lc()


ONE = Variable(VariableKind.INSTANCE, 0)


class LinearCombination:
    """Sparse sum of coefficient * variable over the scalar field."""

    __slots__ = ("terms",)

    def __init__(self, terms: dict[Variable, int] | None = None) -> None:
        self.terms: dict[Variable, int] = {}
        for var, coeff in (terms or {}).items():
            coeff %= MODULUS
            if coeff:
                self.terms[var] = coeff

    @classmethod
    def constant(cls, value: int) -> "LinearCombination":
        return cls({ONE: value})

    def _combine(self, other: "Term", sign: int) -> "LinearCombination":
        result = LinearCombination()
        result.terms = dict(self.terms)
        for var, coeff in as_lc(other).terms.items():
            merged = (result.terms.get(var, 0) + sign * coeff) % MODULUS
            if merged:
                result.terms[var] = merged
            else:
                result.terms.pop(var, None)
        return result

    def __add__(self, other: "Term") -> "LinearCombination":
        return self._combine(other, 1)

    def __radd__(self, other: "Term") -> "LinearCombination":
        return self._combine(other, 1)

    def __sub__(self, other: "Term") -> "LinearCombination":
        return self._combine(other, -1)

    def __rsub__(self, other: "Term") -> "LinearCombination":
        return as_lc(other)._combine(self, -1)

    def __mul__(self, scalar: int) -> "LinearCombination":
        if not isinstance(scalar, int):
            return NotImplemented
        return LinearCombination({var: coeff * scalar for var, coeff in self.terms.items()})

    __rmul__ = __mul__

    def __neg__(self) -> "LinearCombination":
        return self * -1

    def __len__(self) -> int:
        return len(self.terms)

    def __repr__(self) -> str:
        parts = [f"{coeff}*{var.kind.value[0]}{var.index}" for var, coeff in self.terms.items()]
        return f"LinearCombination({' + '.join(parts) or '0'})"


Term = Union[LinearCombination, Variable, int]


def as_lc(value: Term) -> LinearCombination:
    if isinstance(value, LinearCombination):
        return value
    if isinstance(value, Variable):
        return value.lc()
    if isinstance(value, int):
        return LinearCombination.constant(value)
    raise TypeError(f"Cannot use {type(value).__name__} in a linear combination")


@dataclass
class Constraint:
    a: LinearCombination
    b: LinearCombination
    c: LinearCombination
    name: str


@dataclass
class Lookup:
    """Membership of a value in the table range(2**bits)."""

    value: LinearCombination
    bits: int
    name: str

    @property
    def table(self) -> range:
        return range(1 << self.bits)


class ConstraintSystem:
    """
    Collects allocations and constraints for one circuit instance.

    Usage:
        cs = ConstraintSystem()
        x = cs.new_witness("x", 3)
        y = cs.new_input("y", 9)
        cs.enforce(x, x, y, "square")
        assert cs.is_satisfied()
    """

    def __init__(self) -> None:
        self.instance_values: list[int | None] = [1]
        self.instance_names: list[str] = ["one"]
        self.witness_values: list[int | None] = []
        self.witness_names: list[str] = []
        self.constraints: list[Constraint] = []
        self.lookups: list[Lookup] = []
        self._namespace: list[str] = []

    # =========================================================================
    # Allocation
    # =========================================================================

    @property
    def one(self) -> Variable:
        return ONE

    @property
    def num_instance(self) -> int:
        """Number of instance wires including the constant one."""
        return len(self.instance_values)

    @property
    def num_witness(self) -> int:
        return len(self.witness_values)

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    def _qualify(self, name: str) -> str:
        return "/".join([*self._namespace, name])

    @contextmanager
    def namespace(self, name: str) -> Iterator[None]:
        """Prefix constraint and variable names allocated inside the block."""
        self._namespace.append(name)
        try:
            yield
        finally:
            self._namespace.pop()

    def new_input(self, name: str, value: int | None) -> Variable:
        """Allocate a public input wire."""
        self.instance_values.append(None if value is None else value % MODULUS)
        self.instance_names.append(self._qualify(name))
        return Variable(VariableKind.INSTANCE, len(self.instance_values) - 1)

    def new_witness(self, name: str, value: int | None) -> Variable:
        """Allocate a private witness wire."""
        self.witness_values.append(None if value is None else value % MODULUS)
        self.witness_names.append(self._qualify(name))
        return Variable(VariableKind.WITNESS, len(self.witness_values) - 1)

    # =========================================================================
    # Constraints
    # =========================================================================

    def enforce(self, a: Term, b: Term, c: Term, name: str) -> None:
        self.constraints.append(Constraint(as_lc(a), as_lc(b), as_lc(c), self._qualify(name)))

    def enforce_equal(self, left: Term, right: Term, name: str) -> None:
        self.enforce(as_lc(left) - right, ONE, 0, name)

    def enforce_boolean(self, value: Term, name: str) -> None:
        """value * (1 - value) = 0"""
        self.enforce(value, 1 - as_lc(value), 0, name)

    def enforce_lookup(self, value: Term, bits: int, name: str) -> None:
        self.lookups.append(Lookup(as_lc(value), bits, self._qualify(name)))

    def mul(self, a: Term, b: Term, name: str) -> Variable:
        """Allocate a * b as a new witness and constrain it."""
        a_value, b_value = self.value(a), self.value(b)
        product = None if a_value is None or b_value is None else a_value * b_value
        out = self.new_witness(name, product)
        self.enforce(a, b, out, name)
        return out

    # =========================================================================
    # Evaluation
    # =========================================================================

    def value_of(self, var: Variable) -> int | None:
        if var.kind is VariableKind.INSTANCE:
            return self.instance_values[var.index]
        return self.witness_values[var.index]

    def value(self, term: Term) -> int | None:
        """Evaluate a term against the current assignment, None if unknown."""
        total = 0
        for var, coeff in as_lc(term).terms.items():
            v = self.value_of(var)
            if v is None:
                return None
            total += coeff * v
        return total % MODULUS

    def which_is_unsatisfied(self) -> str | None:
        """Name of the first failing constraint or lookup, None if all hold."""
        for constraint in self.constraints:
            a, b, c = (self.value(constraint.a), self.value(constraint.b), self.value(constraint.c))
            if a is None or b is None or c is None:
                return constraint.name
            if a * b % MODULUS != c:
                return constraint.name
        for lookup in self.lookups:
            v = self.value(lookup.value)
            if v is None or v not in lookup.table:
                return lookup.name
        return None

    def is_satisfied(self) -> bool:
        return self.which_is_unsatisfied() is None

    # =========================================================================
    # Export
    # =========================================================================

    def wire_index(self, var: Variable) -> int:
        """Position of a variable in the flattened assignment."""
        if var.kind is VariableKind.INSTANCE:
            return var.index
        return self.num_instance + var.index

    def matrices(self) -> list[tuple[dict[int, int], dict[int, int], dict[int, int]]]:
        """Constraint rows keyed by flattened wire index."""
        rows = []
        for constraint in self.constraints:
            rows.append(
                tuple(
                    {self.wire_index(var): coeff for var, coeff in lc.terms.items()}
                    for lc in (constraint.a, constraint.b, constraint.c)
                )
            )
        return rows

    def assignment(self) -> list[int]:
        """Flattened assignment: one, public inputs, private witnesses."""
        values = [*self.instance_values, *self.witness_values]
        if any(v is None for v in values):
            raise ValueError("Assignment is incomplete; circuit was synthesized without witness")
        return values  # type: ignore[return-value]

    def public_inputs(self) -> list[int]:
        """Public input values, excluding the constant one."""
        return [v for v in self.instance_values[1:] if v is not None]

    def stats(self) -> dict[str, int]:
        return {
            "constraints": self.num_constraints,
            "lookups": len(self.lookups),
            "public_inputs": self.num_instance - 1,
            "witnesses": self.num_witness,
        }
