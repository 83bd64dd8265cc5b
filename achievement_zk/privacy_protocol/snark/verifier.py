"""
⚠️ DRAFT — requires crypto review before production use

Proof verification for achievement claims.

A claim "credential X carries achievement Y" is accepted only if:
1. the proof and public signals are well formed,
2. the disclosed (commitment, credential_hash, achievement_hash) equal the
   recorded commitment and the encodings of X and Y,
3. the Groth16 pairing check passes.

Verification never raises on bad input; it returns a VerificationResult so
many proofs can be checked in bulk.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..config import CURVE_NAME, MAX_PROOF_JSON_BYTES, NUM_PUBLIC_SIGNALS, PROOF_PROTOCOL
from ..exceptions import InputEncodingError, ProofVerificationError
from ..field import encode_to_field, parse_field_element
from ..registry import CommitmentRegistry
from ..security import field_elements_equal
from ..types import GeneratedProof, Groth16Proof, ProofPack
from .groth16 import VerificationKey, verify_groth16

logger = logging.getLogger(__name__)

REASON_INVALID_PROOF_STRUCTURE = "invalid_proof_structure"
REASON_INVALID_PUBLIC_SIGNALS = "invalid_public_signals"
REASON_COMMITMENT_MISMATCH = "commitment_mismatch"
REASON_CREDENTIAL_HASH_MISMATCH = "credential_hash_mismatch"
REASON_ACHIEVEMENT_HASH_MISMATCH = "achievement_hash_mismatch"
REASON_COMMITMENT_NOT_FOUND = "commitment_not_found"
REASON_PAIRING_CHECK_FAILED = "pairing_check_failed"

_REASON_MESSAGES = {
    REASON_INVALID_PROOF_STRUCTURE: "Invalid proof structure",
    REASON_INVALID_PUBLIC_SIGNALS: "Invalid public signals",
    REASON_COMMITMENT_MISMATCH: "Commitment in proof does not match stored commitment",
    REASON_CREDENTIAL_HASH_MISMATCH: "Credential hash in proof does not match expected value",
    REASON_ACHIEVEMENT_HASH_MISMATCH: "Achievement hash in proof does not match expected value",
    REASON_COMMITMENT_NOT_FOUND: "No commitment recorded for this credential and achievement",
    REASON_PAIRING_CHECK_FAILED: "Groth16 pairing check failed",
}


@dataclass(frozen=True)
class VerificationResult:
    """
    Attributes:
        verified: True only if every check passed
        reason: Machine-readable failure code, None on success
        proof_hash: SHA-256 hex of the canonical proof JSON (audit trail)
        achievement_code: Set by verify_claim() / verify_pack()
    """

    verified: bool
    reason: Optional[str]
    proof_hash: str
    achievement_code: Optional[str] = None

    def __bool__(self) -> bool:
        return self.verified

    @property
    def message(self) -> str:
        if self.verified:
            return "Proof verified"
        return _REASON_MESSAGES.get(self.reason or "", self.reason or "Verification failed")

    def raise_for_failure(self) -> None:
        """
        Raises:
            ProofVerificationError: If verification failed
        """
        if not self.verified:
            raise ProofVerificationError(self.message, reason=self.reason)


def compute_proof_hash(proof: Any) -> str:
    """SHA-256 hex digest of the proof serialized as canonical JSON."""
    if isinstance(proof, Groth16Proof):
        proof = proof.to_dict()
    try:
        canonical = json.dumps(proof, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError):
        canonical = repr(proof)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _structured_proof(proof: Any) -> Optional[Groth16Proof]:
    try:
        if not isinstance(proof, Groth16Proof):
            if len(json.dumps(proof)) > MAX_PROOF_JSON_BYTES:
                return None
            proof = Groth16Proof.from_dict(proof)
    except (TypeError, ValueError):
        return None
    if len(proof.pi_a) != 3 or len(proof.pi_c) != 3 or len(proof.pi_b) != 3:
        return None
    if any(len(row) != 2 for row in proof.pi_b):
        return None
    if proof.protocol != PROOF_PROTOCOL or proof.curve != CURVE_NAME:
        return None
    return proof


def _expected_value(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return parse_field_element(value)
    except InputEncodingError:
        return None


def _matches(actual: int, expected: Optional[int]) -> bool:
    if expected is None or not 0 <= expected < 2**256:
        return False
    return field_elements_equal(actual, expected)


class ProofVerifier:
    """
    Verifies achievement proofs against a verification key.

    Args:
        verification_key: Parsed key for the circuit
        registry: Recorded commitments, needed by verify_claim()/verify_pack()
        encoder: Identifier-to-field encoder shared with the prover side

    Example:
        >>> verifier = ProofVerifier(load_verification_key("vkey.json"), registry)
        >>> verifier.verify_claim(proof, "cred-001", "dean-list-2023").verified
        True
    """

    def __init__(
        self,
        verification_key: VerificationKey,
        registry: Optional[CommitmentRegistry] = None,
        encoder: Callable[[str], int] = encode_to_field,
    ):
        self._vk = verification_key
        self._registry = registry
        self._encoder = encoder

    def verify(
        self,
        proof: Any,
        public_signals: Any,
        expected_commitment: int | str,
        expected_credential_hash: int | str,
        expected_achievement_hash: int | str,
    ) -> VerificationResult:
        """Structure check, binding check, then the pairing check."""
        proof_hash = compute_proof_hash(proof)

        structured = _structured_proof(proof)
        if structured is None:
            return VerificationResult(False, REASON_INVALID_PROOF_STRUCTURE, proof_hash)

        try:
            if not isinstance(public_signals, (list, tuple)):
                raise InputEncodingError("public signals must be a list")
            if len(public_signals) != NUM_PUBLIC_SIGNALS:
                raise InputEncodingError("unexpected number of public signals")
            signals = [parse_field_element(signal) for signal in public_signals]
        except InputEncodingError:
            return VerificationResult(False, REASON_INVALID_PUBLIC_SIGNALS, proof_hash)

        # All three are compared before deciding.
        checks = [
            (_matches(signals[0], _expected_value(expected_commitment)), REASON_COMMITMENT_MISMATCH),
            (
                _matches(signals[1], _expected_value(expected_credential_hash)),
                REASON_CREDENTIAL_HASH_MISMATCH,
            ),
            (
                _matches(signals[2], _expected_value(expected_achievement_hash)),
                REASON_ACHIEVEMENT_HASH_MISMATCH,
            ),
        ]
        for ok, reason in checks:
            if not ok:
                return VerificationResult(False, reason, proof_hash)

        if not verify_groth16(self._vk, structured, list(public_signals)):
            return VerificationResult(False, REASON_PAIRING_CHECK_FAILED, proof_hash)

        return VerificationResult(True, None, proof_hash)

    def verify_claim(
        self, generated: GeneratedProof | dict, credential_id: str, achievement_code: str
    ) -> VerificationResult:
        """
        Verify a proof artifact against the recorded commitment for
        (credential_id, achievement_code).
        """
        if isinstance(generated, dict):
            try:
                generated = GeneratedProof.from_dict(generated)
            except ValueError:
                return VerificationResult(
                    False,
                    REASON_INVALID_PROOF_STRUCTURE,
                    compute_proof_hash(generated.get("proof")),
                    achievement_code,
                )

        proof_hash = compute_proof_hash(generated.proof)
        record = (
            self._registry.lookup(credential_id, achievement_code)
            if self._registry is not None
            else None
        )
        if record is None:
            logger.info(
                "No recorded commitment for credential %s achievement %s",
                credential_id,
                achievement_code,
            )
            return VerificationResult(
                False, REASON_COMMITMENT_NOT_FOUND, proof_hash, achievement_code
            )

        try:
            credential_hash = self._encoder(credential_id)
            achievement_hash = self._encoder(achievement_code)
        except InputEncodingError:
            return VerificationResult(
                False, REASON_INVALID_PUBLIC_SIGNALS, proof_hash, achievement_code
            )

        result = self.verify(
            generated.proof,
            list(generated.public_signals),
            record.commitment,
            credential_hash,
            achievement_hash,
        )
        logger.info(
            "Verification for credential %s achievement %s: %s",
            credential_id,
            achievement_code,
            "verified" if result.verified else result.reason,
        )
        return VerificationResult(
            result.verified, result.reason, result.proof_hash, achievement_code
        )

    def verify_pack(self, pack: ProofPack) -> List[VerificationResult]:
        """One result per proof in the pack, in pack order."""
        return [
            self.verify_claim(proof, pack.credential_id, proof.achievement_code)
            for proof in pack.proofs
        ]

