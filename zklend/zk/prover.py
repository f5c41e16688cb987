"""
ZK-SNARK Proof Generation
=========================

Client-side proof generation for the lending circuits.

Proving is CPU-bound and side-effect free, so each proof runs in a worker
thread and callers may cancel freely. Proving keys are generated lazily the
first time a proof type is used and shared read-only afterwards.

Version: 0.1.0
"""

import asyncio
import random
import secrets
import threading
import time
from pathlib import Path

from zklend.config import get_settings
from zklend.logging import get_logger
from zklend.zk import groth16
from zklend.zk.circuits import (
    CIRCUITS,
    CollateralCircuit,
    LendingCircuit,
    LiquidationCircuit,
    LTVCircuit,
)
from zklend.zk.gadgets import RangeStrategy
from zklend.zk.models import (
    REQUEST_MODELS,
    CollateralProofRequest,
    LiquidationProofRequest,
    LTVProofRequest,
    ProofMetadata,
    ProofRequest,
    ProofResponse,
    ProofType,
    ProofWithMetadata,
    PublicSignals,
    VerificationKey,
    proof_summary,
)
from zklend.zk.verifier import ProofVerifier


logger = get_logger(__name__)


def generate_salt() -> int:
    """Random blinding factor; 31 bytes keeps it below the field modulus."""
    return int.from_bytes(secrets.token_bytes(31), "big")


def generate_nullifier() -> int:
    """Random one-time nullifier, never zero."""
    return generate_salt() or 1


class KeyStore:
    """
    Groth16 keys per proof type, generated on first use.

    A seed makes key generation reproducible. That is only acceptable for
    tests and local development: anyone who knows the seed can forge proofs.
    """

    def __init__(self, seed: int | None = None) -> None:
        self._seed = seed
        self._keys: dict[ProofType, groth16.ProvingKey] = {}
        self._lock = threading.Lock()

    def proving_key(self, proof_type: ProofType) -> groth16.ProvingKey:
        with self._lock:
            if proof_type not in self._keys:
                rng = (
                    random.Random(f"{self._seed}:{proof_type.value}")
                    if self._seed is not None
                    else None
                )
                cs = CIRCUITS[proof_type].blank().build()
                logger.info("zk_key_generation_started", proof_type=proof_type.value, **cs.stats())
                self._keys[proof_type] = groth16.setup(cs, rng)
            return self._keys[proof_type]

    def verification_key(self, proof_type: ProofType) -> VerificationKey:
        return groth16.export_verification_key(self.proving_key(proof_type).vk)

    def key_material(self, proof_type: ProofType) -> list[int]:
        """Flattened key for `ProofVerifier.set_verification_key`."""
        return self.verification_key(proof_type).to_elements()

    def provision(self, verifier: ProofVerifier, proof_types: list[ProofType] | None = None) -> None:
        """Install verification keys into a verifier."""
        for proof_type in proof_types or list(ProofType):
            outcome = verifier.set_verification_key(proof_type, self.key_material(proof_type))
            if not outcome.ok:
                raise RuntimeError(f"Could not provision {proof_type.value} key: {outcome.reason}")

    def export(
        self,
        build_dir: str | Path | None = None,
        proof_types: list[ProofType] | None = None,
    ) -> list[Path]:
        """Write verification_key.json for each circuit under build_dir (PROVER_BUILD_DIR by default)."""
        build_dir = build_dir or get_settings().prover.build_dir
        written = []
        for proof_type in proof_types or list(ProofType):
            circuit_dir = Path(build_dir) / CIRCUITS[proof_type].circuit_name
            circuit_dir.mkdir(parents=True, exist_ok=True)
            path = circuit_dir / "verification_key.json"
            path.write_text(self.verification_key(proof_type).to_json())
            written.append(path)
            logger.info("verification_key_exported", proof_type=proof_type.value, path=str(path))
        return written


class LendingProver:
    """
    Groth16 proof generator for the lending circuits.

    Usage:
        prover = LendingProver()

        proof = await prover.prove_collateral(collateral=150, threshold=100)
        proof.public_inputs  # [threshold, commitment]
    """

    def __init__(
        self,
        keys: KeyStore | None = None,
        max_concurrent: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """
        Initialize the prover.

        Args:
            keys: Key store to prove with. Defaults to a store seeded from settings.
            max_concurrent: Upper bound on proofs generated in parallel.
            rng: Randomness for proof blinding; secrets is used when omitted.
        """
        settings = get_settings().prover
        self.keys = keys or KeyStore(seed=settings.setup_seed)
        self._semaphore = asyncio.Semaphore(max_concurrent or settings.max_concurrent_proofs)
        self._rng = rng

    def _generate_salt(self) -> int:
        return generate_salt()

    def _prove_sync(self, circuit: LendingCircuit) -> tuple[groth16.Proof, list[int], int]:
        pk = self.keys.proving_key(circuit.proof_type)
        cs = circuit.build()
        proof = groth16.prove(pk, cs, self._rng)
        return proof, cs.public_inputs(), cs.num_constraints

    async def _prove(self, circuit: LendingCircuit) -> ProofWithMetadata:
        async with self._semaphore:
            start_time = time.time()
            proof, public_inputs, constraint_count = await asyncio.to_thread(
                self._prove_sync, circuit
            )
            proving_time_ms = int((time.time() - start_time) * 1000)

        result = ProofWithMetadata(
            proof=groth16.export_proof(proof),
            public_signals=PublicSignals(signals=[str(v) for v in public_inputs]),
            metadata=ProofMetadata(
                proof_type=circuit.proof_type,
                circuit_name=circuit.circuit_name,
                proving_time_ms=proving_time_ms,
                constraint_count=constraint_count,
                public_parameters=circuit.public_parameters,
            ),
        )
        logger.info("zk_proof_generated", **proof_summary(result))
        return result

    # =========================================================================
    # Circuits
    # =========================================================================

    async def prove_collateral(
        self,
        collateral: int,
        threshold: int,
        salt: int | None = None,
    ) -> ProofWithMetadata:
        """
        Generate a proof that a committed collateral amount is >= threshold.

        Args:
            collateral: Collateral amount in base units
            threshold: Public minimum
            salt: Blinding factor of the collateral commitment (generated if not provided)

        Returns:
            ProofWithMetadata with public inputs [threshold, commitment]

        Raises:
            ValidationError: If values are outside the 64-bit domain (a ValueError)
            UnsatisfiedCircuitError: If collateral < threshold
        """
        request = CollateralProofRequest(collateral=collateral, threshold=threshold, salt=salt)
        return await self._prove(self._collateral_circuit(request))

    async def prove_ltv(
        self,
        collateral: int,
        debt: int,
        max_ltv: int,
        collateral_salt: int | None = None,
        debt_salt: int | None = None,
    ) -> ProofWithMetadata:
        """
        Generate a proof that debt * 100 <= collateral * max_ltv.

        Returns:
            ProofWithMetadata with public inputs
            [max_ltv, collateral_commitment, debt_commitment]
        """
        request = LTVProofRequest(
            collateral=collateral,
            debt=debt,
            max_ltv=max_ltv,
            collateral_salt=collateral_salt,
            debt_salt=debt_salt,
        )
        return await self._prove(self._ltv_circuit(request))

    async def prove_liquidation(
        self,
        collateral: int,
        debt: int,
        price: int,
        liquidation_threshold: int,
        salt: int | None = None,
    ) -> ProofWithMetadata:
        """
        Generate a proof that a position's health factor is below 1.0.

        Args:
            collateral: Collateral amount in base units
            debt: Debt in settlement units
            price: Collateral price with 8 decimals
            liquidation_threshold: Percentage of collateral value counted as safe
            salt: Blinding factor of the position hash

        Returns:
            ProofWithMetadata with public inputs [price, liq_threshold, position_hash]
        """
        request = LiquidationProofRequest(
            collateral=collateral,
            debt=debt,
            price=price,
            liquidation_threshold=liquidation_threshold,
            salt=salt,
        )
        return await self._prove(self._liquidation_circuit(request))

    # =========================================================================
    # Generic requests
    # =========================================================================

    def _salt(self, value: int | None) -> int:
        return self._generate_salt() if value is None else value

    def _collateral_circuit(
        self,
        request: CollateralProofRequest,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> CollateralCircuit:
        return CollateralCircuit(
            request.collateral, self._salt(request.salt), request.threshold, strategy=strategy
        )

    def _ltv_circuit(
        self,
        request: LTVProofRequest,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> LTVCircuit:
        return LTVCircuit(
            request.collateral,
            request.debt,
            self._salt(request.collateral_salt),
            self._salt(request.debt_salt),
            request.max_ltv,
            strategy=strategy,
        )

    def _liquidation_circuit(
        self,
        request: LiquidationProofRequest,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> LiquidationCircuit:
        return LiquidationCircuit(
            request.collateral,
            request.debt,
            self._salt(request.salt),
            request.price,
            request.liquidation_threshold,
            strategy=strategy,
        )

    def _circuit_for(
        self,
        request: ProofRequest,
        strategy: RangeStrategy = RangeStrategy.DECOMPOSITION,
    ) -> LendingCircuit:
        fields = {**request.public_parameters, **request.private_witness}
        typed = REQUEST_MODELS[request.circuit_type].model_validate(fields)
        if isinstance(typed, CollateralProofRequest):
            return self._collateral_circuit(typed, strategy)
        if isinstance(typed, LTVProofRequest):
            return self._ltv_circuit(typed, strategy)
        return self._liquidation_circuit(typed, strategy)

    async def handle(self, request: ProofRequest) -> ProofResponse:
        """Serve a proof-generation request from the client layer."""
        proof = await self._prove(self._circuit_for(request))
        return ProofResponse.from_proof(proof)

    def check(
        self,
        request: ProofRequest,
        strategy: RangeStrategy = RangeStrategy.LOOKUP,
    ) -> str | None:
        """
        Dry-run a request against the constraints without proving.

        Returns:
            Name of the first unsatisfied constraint, or None if the witness
            satisfies the circuit.
        """
        return self._circuit_for(request, strategy).build().which_is_unsatisfied()
