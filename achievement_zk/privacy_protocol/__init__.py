"""Public API for the achievement proof protocol."""

from __future__ import annotations

from .commitment import CommitmentEngine
from .derivation import SecretDeriver, SignatureCache, derive_secrets_from_signature
from .exceptions import (
    ArtifactFetchError,
    ConfigurationError,
    CryptographicError,
    InputEncodingError,
    PrivacyProtocolError,
    ProofBatchError,
    ProofGenerationError,
    ProofVerificationError,
    SignatureRejectedError,
    WalletUnavailableError,
)
from .factory import get_prover
from .field import encode_to_field, is_valid_field_element, parse_field_element
from .poseidon import Poseidon, PoseidonParams
from .registry import CommitmentRegistry, InMemoryCommitmentRegistry, RecordedCommitment
from .settings import CircuitManifest, ProverSettings
from .types import (
    Commitment,
    DerivedSecrets,
    GeneratedProof,
    Groth16Proof,
    ProofPack,
    ProofProgress,
    ProofStage,
)
from .wallet import Ed25519Wallet, WalletSigner

__all__ = [
    "CommitmentEngine",
    "SecretDeriver",
    "SignatureCache",
    "derive_secrets_from_signature",
    "ArtifactFetchError",
    "ConfigurationError",
    "CryptographicError",
    "InputEncodingError",
    "PrivacyProtocolError",
    "ProofBatchError",
    "ProofGenerationError",
    "ProofVerificationError",
    "SignatureRejectedError",
    "WalletUnavailableError",
    "get_prover",
    "encode_to_field",
    "is_valid_field_element",
    "parse_field_element",
    "Poseidon",
    "PoseidonParams",
    "CommitmentRegistry",
    "InMemoryCommitmentRegistry",
    "RecordedCommitment",
    "CircuitManifest",
    "ProverSettings",
    "Commitment",
    "DerivedSecrets",
    "GeneratedProof",
    "Groth16Proof",
    "ProofPack",
    "ProofProgress",
    "ProofStage",
    "Ed25519Wallet",
    "WalletSigner",
]
