"""
Poseidon Gadget
===============

In-circuit Poseidon matching `zklend.zk.poseidon.poseidon_hash`, and the
binding commitment check built on it. Round constant additions and MDS mixing
are linear and cost nothing; each S-box costs three multiplications.
"""

from collections.abc import Sequence

from zklend.zk.constraints import ConstraintSystem, LinearCombination, Term, as_lc
from zklend.zk.poseidon import MAX_INPUTS, OUTPUT_INDEX, RATE, parameters


def _sbox(cs: ConstraintSystem, x: LinearCombination, name: str) -> LinearCombination:
    x2 = cs.mul(x, x, f"{name}_x2")
    x4 = cs.mul(x2, x2, f"{name}_x4")
    return cs.mul(x4, x, f"{name}_x5").lc()


def poseidon_gadget(
    cs: ConstraintSystem,
    inputs: Sequence[Term],
    name: str = "poseidon",
) -> LinearCombination:
    """Digest of the inputs as a linear combination."""
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(f"Poseidon accepts 1 to {MAX_INPUTS} inputs, got {len(inputs)}")
    params = parameters()

    state = [
        as_lc(len(inputs)),
        *(as_lc(value) for value in inputs),
        *(as_lc(0) for _ in range(RATE - len(inputs))),
    ]
    for r in range(params.total_rounds):
        state = [s + c for s, c in zip(state, params.round_constants[r])]
        if params.is_full_round(r):
            state = [_sbox(cs, s, f"{name}_r{r}_s{i}") for i, s in enumerate(state)]
        else:
            state[0] = _sbox(cs, state[0], f"{name}_r{r}_s0")
        mixed = []
        for row in params.mds:
            acc = LinearCombination()
            for m, s in zip(row, state):
                acc = acc + s * m
            mixed.append(acc)
        state = mixed
    return state[OUTPUT_INDEX]


def enforce_commitment(
    cs: ConstraintSystem,
    commitment: Term,
    openings: Sequence[Term],
    name: str = "commitment",
) -> None:
    """Constrain commitment == H(*openings)."""
    with cs.namespace(name):
        digest = poseidon_gadget(cs, openings)
        cs.enforce_equal(digest, commitment, "opening")
