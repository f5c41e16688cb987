"""
Test Configuration
==================

Pytest fixtures for ZKLend tests.
"""

import os
from collections.abc import Sequence
from typing import Any

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "testing"

from zklend.config import PoolSettings, settings  # noqa: E402
from zklend.logging import setup_logging  # noqa: E402
from zklend.protocol import CommitmentRegistry, LendingPool  # noqa: E402
from zklend.zk import KeyStore, ProofType, ProofVerifier, ZKProof  # noqa: E402
from zklend.zk.constraints import ConstraintSystem  # noqa: E402


setup_logging(
    log_level=settings.log_level.value,
    json_logs=settings.json_logs,
    service_name=settings.service_name,
)


TEST_SETUP_SEED = 20240101

OWNER = "0xowner"
ALICE = "0xalice"
BOB = "0xbob"


class FakeClock:
    """Deterministic unix-time source for the pool."""

    def __init__(self, start: int = 1_700_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


class StubVerifier:
    """Verifier double that accepts or rejects by proof type and records calls."""

    def __init__(self) -> None:
        self.results: dict[ProofType, bool] = {proof_type: True for proof_type in ProofType}
        self.calls: list[tuple[ProofType, list[int]]] = []

    def verify(self, proof_type: ProofType, proof: Any, public_inputs: Sequence[int]) -> bool:
        self.calls.append((proof_type, list(public_inputs)))
        return self.results[proof_type]


def square_chain_circuit(x: int | None) -> ConstraintSystem:
    """
    Two public inputs a = x^2 and b = x^3 with x private.

    Has the same public input count as the collateral circuit, so its key can
    stand in for one in verifier tests.
    """
    cs = ConstraintSystem()
    a = cs.new_input("a", None if x is None else x * x)
    b = cs.new_input("b", None if x is None else x * x * x)
    w = cs.new_witness("x", x)
    cs.enforce(w, w, a, "square")
    cs.enforce(w, a, b, "cube")
    return cs


@pytest.fixture
def sample_proof() -> ZKProof:
    """Structurally valid proof whose points are never decoded by stubs."""
    return ZKProof(
        pi_a=["1", "2", "1"],
        pi_b=[["3", "4"], ["5", "6"], ["1", "0"]],
        pi_c=["7", "8", "1"],
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def stub_verifier() -> StubVerifier:
    return StubVerifier()


@pytest.fixture
def pool_settings() -> PoolSettings:
    return PoolSettings(
        max_ltv=75,
        liquidation_threshold=80,
        base_rate_bps=500,
        slope1_bps=2000,
        slope2_bps=7500,
        optimal_utilization=80,
        initial_price=2000 * 10**8,
    )


@pytest.fixture
def registry() -> CommitmentRegistry:
    return CommitmentRegistry(owner=OWNER)


@pytest.fixture
def pool(
    stub_verifier: StubVerifier,
    registry: CommitmentRegistry,
    pool_settings: PoolSettings,
    clock: FakeClock,
) -> LendingPool:
    """Pool authorized in its registry, holding 1,000,000 of liquidity."""
    pool = LendingPool(stub_verifier, registry, owner=OWNER, settings=pool_settings, clock=clock)
    assert registry.set_authorized_caller(OWNER, pool.address).ok
    assert pool.supply_liquidity(OWNER, 1_000_000).ok
    return pool


@pytest.fixture(scope="session")
def key_store() -> KeyStore:
    """Reproducible Groth16 keys shared by every slow test."""
    return KeyStore(seed=TEST_SETUP_SEED)


@pytest.fixture(scope="session")
def real_verifier(key_store: KeyStore) -> ProofVerifier:
    verifier = ProofVerifier()
    key_store.provision(verifier)
    return verifier
