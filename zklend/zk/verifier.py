"""
ZK-SNARK Proof Verification
===========================

Verifies lending proofs against the verification key provisioned for their
proof type.

`ProofVerifier.verify` is the contract-boundary call: pure, side-effect free
and returning a bare bool. Every rejection, whether a wrong input count, an
out-of-field scalar, a malformed point or a failed pairing, looks the same to
the caller; the reason only appears in the logs.

Version: 0.1.0
"""

import asyncio
import time
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from zklend.errors import ErrorKind, MalformedInputError, Outcome
from zklend.logging import get_logger
from zklend.zk import groth16
from zklend.zk.field import is_canonical
from zklend.zk.models import (
    ProofType,
    ProofWithMetadata,
    VerificationKey,
    VerificationResult,
    ZKProof,
)


logger = get_logger(__name__)


class ProofVerifier:
    """
    Groth16 verifier holding one immutable key per proof type.

    Usage:
        verifier = ProofVerifier()
        verifier.set_verification_key(ProofType.COLLATERAL, key_material)

        ok = verifier.verify(ProofType.COLLATERAL, proof, [threshold, commitment])
    """

    def __init__(self) -> None:
        self._keys: dict[ProofType, groth16.VerifyingKey] = {}

    # =========================================================================
    # Key provisioning
    # =========================================================================

    def has_key(self, proof_type: ProofType) -> bool:
        return proof_type in self._keys

    def set_verification_key(
        self,
        proof_type: ProofType,
        key_material: Sequence[int],
    ) -> Outcome:
        """
        Install the flattened key for a proof type.

        The key must hold 14 + 2 * (public inputs + 1) elements and can only
        be set once.
        """
        if not isinstance(proof_type, ProofType):
            return Outcome.failure(ErrorKind.MALFORMED_INPUT, f"Unknown proof type {proof_type!r}")
        if proof_type in self._keys:
            return Outcome.failure(
                ErrorKind.STATE_CONFLICT,
                f"Verification key for {proof_type.value} is already set",
            )
        if len(key_material) != proof_type.key_length:
            return Outcome.failure(
                ErrorKind.MALFORMED_INPUT,
                f"Key for {proof_type.value} needs {proof_type.key_length} elements, "
                f"got {len(key_material)}",
            )
        try:
            model = VerificationKey.from_elements(list(key_material), proof_type.public_input_count)
            vk = groth16.import_verification_key(model)
        except (ValueError, MalformedInputError) as exc:
            return Outcome.failure(ErrorKind.MALFORMED_INPUT, f"Invalid key material: {exc}")

        self._keys[proof_type] = vk
        logger.info("verification_key_set", proof_type=proof_type.value)
        return Outcome.success()

    def load_verification_key(self, proof_type: ProofType, key: VerificationKey) -> Outcome:
        """Install a key from its snarkjs JSON model."""
        return self.set_verification_key(proof_type, key.to_elements())

    # =========================================================================
    # Verification
    # =========================================================================

    def _reject(self, proof_type: ProofType, reason: str, **context: Any) -> bool:
        logger.warning(
            "zk_verification_rejected",
            proof_type=proof_type.value if isinstance(proof_type, ProofType) else str(proof_type),
            reason=reason,
            **context,
        )
        return False

    def verify(
        self,
        proof_type: ProofType,
        proof: ZKProof | dict[str, Any],
        public_inputs: Sequence[int],
    ) -> bool:
        """Accept iff the proof verifies for these public inputs."""
        vk = self._keys.get(proof_type)
        if vk is None:
            return self._reject(proof_type, "key_not_set")

        if not isinstance(public_inputs, Sequence) or isinstance(public_inputs, str | bytes):
            return self._reject(proof_type, "malformed_inputs", received=type(public_inputs).__name__)
        if len(public_inputs) != vk.num_public_inputs:
            return self._reject(
                proof_type,
                "count_mismatch",
                expected=vk.num_public_inputs,
                received=len(public_inputs),
            )
        if not all(is_canonical(value) for value in public_inputs):
            return self._reject(proof_type, "non_canonical_input")

        try:
            if not isinstance(proof, ZKProof):
                proof = ZKProof.model_validate(proof)
            decoded = groth16.import_proof(proof)
        except (ValidationError, MalformedInputError) as exc:
            return self._reject(proof_type, "malformed_point", error=str(exc))

        if not groth16.verify(vk, decoded, list(public_inputs)):
            return self._reject(proof_type, "pairing_failed")

        logger.debug("zk_proof_accepted", proof_type=proof_type.value)
        return True

    async def verify_off_chain(self, proof: ProofWithMetadata) -> VerificationResult:
        """
        Verify a proof with timing information for diagnostics.

        Runs the pairing in a worker thread so an event loop is not blocked.
        """
        proof_type = proof.metadata.proof_type
        start_time = time.time()
        is_valid = await asyncio.to_thread(
            self.verify,
            proof_type,
            proof.proof,
            proof.public_inputs,
        )
        verification_time_ms = int((time.time() - start_time) * 1000)

        logger.info(
            "zk_proof_verified",
            proof_type=proof_type.value,
            valid=is_valid,
            verification_time_ms=verification_time_ms,
        )

        return VerificationResult(
            valid=is_valid,
            proof_type=proof_type,
            commitment=proof.commitment,
            verification_time_ms=verification_time_ms,
            error=None if is_valid else "Proof rejected",
        )


def generate_solidity_calldata(proof: ProofWithMetadata) -> dict[str, Any]:
    """
    Generate calldata for on-chain verification.

    Returns:
        Dictionary with proof array and public inputs for Solidity
    """
    calldata = proof.proof.to_calldata()
    public_inputs = proof.public_signals.to_int_list()

    return {
        "proof": calldata,
        "publicInputs": public_inputs,
        "solidityCall": f"verifyProof({calldata}, {public_inputs})",
    }
