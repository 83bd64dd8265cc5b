"""Groth16 proving, artifact handling and verification."""

from .assets import (
    ArtifactCache,
    CircuitArtifacts,
    fetch_artifact,
    fetch_artifact_sync,
    load_verification_key,
)
from .generator import ProofGenerator
from .groth16 import VerificationKey, verify_groth16
from .prover import ProvingBackend, RapidsnarkProver, SnarkjsProver
from .verifier import ProofVerifier, VerificationResult, compute_proof_hash

__all__ = [
    "ArtifactCache",
    "CircuitArtifacts",
    "fetch_artifact",
    "fetch_artifact_sync",
    "load_verification_key",
    "ProofGenerator",
    "VerificationKey",
    "verify_groth16",
    "ProvingBackend",
    "RapidsnarkProver",
    "SnarkjsProver",
    "ProofVerifier",
    "VerificationResult",
    "compute_proof_hash",
]
