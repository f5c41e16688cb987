"""
Poseidon Hash
=============

Poseidon over the BN254 scalar field, used for value commitments, position
hashes and nullifier derivation.

The permutation comes from the `poseidon` library: x^5 S-box at the 128-bit
security level, with round numbers, round constants (Grain LFSR) and MDS
matrix generated the standard way for the field. The in-circuit gadget in
`zklend.zk.gadgets.poseidon` is built from the same instance's parameters, so
digests computed here match digests proven in a circuit.

State layout (width 4): the capacity element carries the input count, up to
three inputs follow, unused slots are zero. The digest is state[1], the
library's output element.

Version: 0.1.0
"""

import threading
from dataclasses import dataclass
from functools import lru_cache

import poseidon

from zklend.zk.field import MODULUS


ALPHA = 5
SECURITY_LEVEL = 128
WIDTH = 4
RATE = WIDTH - 1
MAX_INPUTS = RATE
OUTPUT_INDEX = 1

# run_hash keeps its state on the instance
_hash_lock = threading.Lock()


@dataclass(frozen=True)
class PoseidonParams:
    width: int
    full_rounds: int
    partial_rounds: int
    round_constants: tuple[tuple[int, ...], ...]
    mds: tuple[tuple[int, ...], ...]

    @property
    def total_rounds(self) -> int:
        return self.full_rounds + self.partial_rounds

    def is_full_round(self, r: int) -> bool:
        half = self.full_rounds // 2
        return r < half or r >= half + self.partial_rounds


@lru_cache(maxsize=None)
def hasher() -> poseidon.Poseidon:
    """The shared library instance. Constant generation runs once."""
    return poseidon.Poseidon(
        p=MODULUS,
        security_level=SECURITY_LEVEL,
        alpha=ALPHA,
        input_rate=RATE,
        t=WIDTH,
    )


@lru_cache(maxsize=None)
def parameters() -> PoseidonParams:
    """Round constants and MDS matrix of `hasher()` as plain integers."""
    h = hasher()
    flat = [int(c) for c in h.rc_field]
    rounds = h.full_round + h.partial_round
    if len(flat) < rounds * h.t:
        raise RuntimeError(f"Expected {rounds * h.t} round constants, library produced {len(flat)}")
    constants = tuple(tuple(flat[r * h.t : (r + 1) * h.t]) for r in range(rounds))
    mds = tuple(tuple(int(m) for m in row) for row in h.mds_matrix)
    return PoseidonParams(h.t, h.full_round, h.partial_round, constants, mds)


def initial_state(inputs: tuple[int, ...]) -> list[int]:
    return [len(inputs), *inputs, *([0] * (RATE - len(inputs)))]


def _check_inputs(inputs: tuple[object, ...]) -> None:
    if not 1 <= len(inputs) <= MAX_INPUTS:
        raise ValueError(f"Poseidon accepts 1 to {MAX_INPUTS} inputs, got {len(inputs)}")


def poseidon_hash(*inputs: int) -> int:
    """
    Hash 1 to 3 field elements.

    Inputs of different lengths never share a starting state, because the
    capacity element holds the count.
    """
    _check_inputs(inputs)
    for value in inputs:
        if not isinstance(value, int) or isinstance(value, bool):
            raise TypeError(f"Poseidon inputs must be integers, got {type(value).__name__}")
    state = initial_state(tuple(value % MODULUS for value in inputs))
    with _hash_lock:
        return int(hasher().run_hash(state))


def commit(value: int, salt: int) -> int:
    """Commitment to a value under a blinding factor."""
    return poseidon_hash(value, salt)


def position_hash(collateral: int, debt: int, salt: int) -> int:
    """Commitment to a whole position, the public input of a liquidation proof."""
    return poseidon_hash(collateral, debt, salt)


def derive_nullifier(nullifier: int, index: int) -> int:
    """Independent nullifier for the index-th commitment closed by one action."""
    return poseidon_hash(nullifier, index)
