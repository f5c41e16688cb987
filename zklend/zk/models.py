"""
ZK-SNARK Data Models
====================

Pydantic models for proofs, verification keys and proof requests.

Proofs and keys use the snarkjs JSON layout (decimal strings, projective
coordinates with a trailing "1"). The flattened forms used at the contract
boundary follow EVM precompile ordering, where each G2 coordinate is written
imaginary part first.

Version: 0.1.0
"""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from zklend.zk.params import MAX_VALUE, PERCENT


class ProofType(str, Enum):
    """Types of lending proofs."""

    COLLATERAL = "collateral"
    LTV = "ltv"
    LIQUIDATION = "liquidation"

    @property
    def public_input_count(self) -> int:
        return _PUBLIC_INPUT_COUNTS[self]

    @property
    def key_length(self) -> int:
        """Number of flattened verification key elements."""
        return verification_key_length(self.public_input_count)


_PUBLIC_INPUT_COUNTS = {
    ProofType.COLLATERAL: 2,
    ProofType.LTV: 3,
    ProofType.LIQUIDATION: 3,
}


def verification_key_length(public_input_count: int) -> int:
    """alpha (2) + beta, gamma, delta (4 each) + one G1 point per input plus one."""
    return 14 + 2 * (public_input_count + 1)


def _g2_to_evm(point: list[list[str]]) -> list[int]:
    return [int(point[0][1]), int(point[0][0]), int(point[1][1]), int(point[1][0])]


def _g2_from_evm(elements: list[int]) -> list[list[str]]:
    x_imag, x_real, y_imag, y_real = elements
    return [[str(x_real), str(x_imag)], [str(y_real), str(y_imag)], ["1", "0"]]


class ZKProof(BaseModel):
    """
    A Groth16 proof.

    Compatible with snarkjs Groth16 proof format.
    """

    # Proof points (G1 and G2 elements)
    pi_a: list[str] = Field(..., description="Proof point A (G1)")
    pi_b: list[list[str]] = Field(..., description="Proof point B (G2)")
    pi_c: list[str] = Field(..., description="Proof point C (G1)")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    @field_validator("pi_a", "pi_c")
    @classmethod
    def g1_shape(cls, v: list[str]) -> list[str]:
        if len(v) not in (2, 3):
            raise ValueError(f"G1 point needs 2 or 3 coordinates, got {len(v)}")
        return v

    @field_validator("pi_b")
    @classmethod
    def g2_shape(cls, v: list[list[str]]) -> list[list[str]]:
        if len(v) not in (2, 3) or any(len(c) != 2 for c in v):
            raise ValueError("G2 point needs 2 or 3 coordinate pairs")
        return v

    def to_calldata(self) -> list[int]:
        """Convert to Solidity calldata format (8 uint256, G2 imaginary first)."""
        return [
            int(self.pi_a[0]),
            int(self.pi_a[1]),
            *_g2_to_evm(self.pi_b),
            int(self.pi_c[0]),
            int(self.pi_c[1]),
        ]

    def to_hex(self) -> str:
        """Convert to hex string for storage."""
        return json.dumps(self.model_dump()).encode().hex()

    @classmethod
    def from_hex(cls, hex_str: str) -> "ZKProof":
        """Create from hex string."""
        data = json.loads(bytes.fromhex(hex_str).decode())
        return cls(**data)


class PublicSignals(BaseModel):
    """Public inputs of a proof, in circuit order."""

    signals: list[str] = Field(..., description="Public signals as decimal strings")

    @property
    def commitment(self) -> str:
        """The last signal, which is a commitment for every lending circuit."""
        return self.signals[-1] if self.signals else ""

    def to_int_list(self) -> list[int]:
        """Convert to list of integers."""
        return [int(s) for s in self.signals]


class VerificationKey(BaseModel):
    """
    Groth16 verification key.

    Serializes to the snarkjs verification_key.json layout.
    """

    model_config = ConfigDict(populate_by_name=True)

    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")
    n_public: int = Field(..., ge=0, alias="nPublic")
    vk_alpha_1: list[str]
    vk_beta_2: list[list[str]]
    vk_gamma_2: list[list[str]]
    vk_delta_2: list[list[str]]
    ic: list[list[str]] = Field(..., alias="IC")

    @model_validator(mode="after")
    def ic_matches_inputs(self) -> "VerificationKey":
        if len(self.ic) != self.n_public + 1:
            raise ValueError(f"IC has {len(self.ic)} points, expected {self.n_public + 1}")
        return self

    def to_elements(self) -> list[int]:
        """Flatten to contract key material: 14 + 2 * (n_public + 1) elements."""
        elements = [int(self.vk_alpha_1[0]), int(self.vk_alpha_1[1])]
        for point in (self.vk_beta_2, self.vk_gamma_2, self.vk_delta_2):
            elements.extend(_g2_to_evm(point))
        for point in self.ic:
            elements.extend([int(point[0]), int(point[1])])
        return elements

    @classmethod
    def from_elements(cls, elements: list[int], n_public: int) -> "VerificationKey":
        """Rebuild from flattened key material."""
        expected = verification_key_length(n_public)
        if len(elements) != expected:
            raise ValueError(f"Key material has {len(elements)} elements, expected {expected}")
        ic_flat = elements[14:]
        return cls(
            n_public=n_public,
            vk_alpha_1=[str(elements[0]), str(elements[1]), "1"],
            vk_beta_2=_g2_from_evm(elements[2:6]),
            vk_gamma_2=_g2_from_evm(elements[6:10]),
            vk_delta_2=_g2_from_evm(elements[10:14]),
            ic=[
                [str(ic_flat[i]), str(ic_flat[i + 1]), "1"]
                for i in range(0, len(ic_flat), 2)
            ],
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)

    @classmethod
    def from_json(cls, data: str) -> "VerificationKey":
        return cls.model_validate_json(data)


class ProofMetadata(BaseModel):
    """Metadata about a generated proof."""

    proof_type: ProofType
    circuit_name: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(..., ge=0)
    constraint_count: int | None = None

    # Public parameters by name, e.g. {"threshold": 100}
    public_parameters: dict[str, int] = Field(default_factory=dict)


class ProofWithMetadata(BaseModel):
    """Complete proof with metadata."""

    proof: ZKProof
    public_signals: PublicSignals
    metadata: ProofMetadata

    @property
    def commitment(self) -> str:
        """The commitment the proof is about."""
        return self.public_signals.commitment

    @property
    def public_inputs(self) -> list[int]:
        return self.public_signals.to_int_list()


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    proof_type: ProofType | None = None
    commitment: str | None = None
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None


# =============================================================================
# Requests
# =============================================================================

# Strict ints: bools and numeric strings are rejected rather than coerced
Amount = Annotated[int, Field(strict=True, ge=0, le=MAX_VALUE)]
Percentage = Annotated[int, Field(strict=True, gt=0, le=PERCENT)]
Salt = Annotated[int, Field(strict=True, ge=0)] | None


class CollateralProofRequest(BaseModel):
    """
    Inputs of a collateral proof.

    Only the domain is checked here. Whether collateral actually meets the
    threshold is the circuit's job.
    """

    collateral: Amount
    threshold: Amount
    salt: Salt = None


class LTVProofRequest(BaseModel):
    """Inputs of a debt / collateral <= max_ltv / 100 proof."""

    collateral: Amount
    debt: Amount
    max_ltv: Percentage
    collateral_salt: Salt = None
    debt_salt: Salt = None


class LiquidationProofRequest(BaseModel):
    """Inputs of a health-factor-below-one proof."""

    collateral: Amount
    debt: Amount
    price: Annotated[int, Field(strict=True, gt=0, le=MAX_VALUE)]
    liquidation_threshold: Percentage
    salt: Salt = None


REQUEST_MODELS: dict[ProofType, type[BaseModel]] = {
    ProofType.COLLATERAL: CollateralProofRequest,
    ProofType.LTV: LTVProofRequest,
    ProofType.LIQUIDATION: LiquidationProofRequest,
}


class ProofRequest(BaseModel):
    """Generic proof-generation request as received from the client layer."""

    circuit_type: ProofType
    private_witness: dict[str, int] = Field(default_factory=dict)
    public_parameters: dict[str, int] = Field(default_factory=dict)


class ProofResponse(BaseModel):
    """Proof and its ordered public inputs."""

    proof: ZKProof
    public_inputs: list[str]

    def public_input_ints(self) -> list[int]:
        return [int(s) for s in self.public_inputs]

    @classmethod
    def from_proof(cls, proof: ProofWithMetadata) -> "ProofResponse":
        return cls(proof=proof.proof, public_inputs=proof.public_signals.signals)


def proof_summary(proof: ProofWithMetadata) -> dict[str, Any]:
    """Loggable description of a proof without any witness data."""
    return {
        "proof_type": proof.metadata.proof_type.value,
        "public_inputs": len(proof.public_signals.signals),
        "proving_time_ms": proof.metadata.proving_time_ms,
    }
