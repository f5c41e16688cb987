"""
ZK-SNARK Module
===============

Groth16 proofs over BN254 for private lending.

Usage:
    from zklend.zk import KeyStore, LendingProver, ProofType, ProofVerifier

    keys = KeyStore()
    verifier = ProofVerifier()
    keys.provision(verifier)

    # Generate a proof
    prover = LendingProver(keys)
    proof = await prover.prove_collateral(collateral=150, threshold=100)

    # Verify proof
    is_valid = verifier.verify(ProofType.COLLATERAL, proof.proof, proof.public_inputs)

Version: 0.1.0
"""

from zklend.zk.models import (
    ProofMetadata,
    ProofRequest,
    ProofResponse,
    ProofType,
    ProofWithMetadata,
    PublicSignals,
    VerificationKey,
    VerificationResult,
    ZKProof,
)
from zklend.zk.poseidon import commit, derive_nullifier, poseidon_hash, position_hash
from zklend.zk.prover import KeyStore, LendingProver, generate_nullifier, generate_salt
from zklend.zk.verifier import ProofVerifier, generate_solidity_calldata


__all__ = [
    # Prover
    "LendingProver",
    "KeyStore",
    "generate_salt",
    "generate_nullifier",
    # Verifier
    "ProofVerifier",
    "generate_solidity_calldata",
    # Commitments
    "commit",
    "position_hash",
    "poseidon_hash",
    "derive_nullifier",
    # Models
    "ProofType",
    "ZKProof",
    "PublicSignals",
    "ProofMetadata",
    "ProofWithMetadata",
    "ProofRequest",
    "ProofResponse",
    "VerificationKey",
    "VerificationResult",
]
