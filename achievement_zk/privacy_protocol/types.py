"""
⚠️ DRAFT — requires crypto review before production use

Common types for achievement membership proofs.

This module provides:
1. DerivedSecrets - per-holder (student_secret, salt) pair
2. Commitment - public commitment plus the two disclosed hashes
3. ProofStage / ProofProgress - generation progress events
4. Groth16Proof / GeneratedProof / ProofPack - the proof exchange format

Exchange format (JSON):
    {
      "achievementCode": "dean-list-2023",
      "proof": {"pi_a": [...], "pi_b": [[...]], "pi_c": [...],
                "protocol": "groth16", "curve": "bn128"},
      "publicSignals": ["<commitment>", "<credential_hash>", "<achievement_hash>"],
      "commitment": "<commitment>"
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Tuple

import cbor2

from .config import CIRCUIT_ID, CURVE_NAME, PROOF_PACK_VERSION, PROOF_PROTOCOL
from .exceptions import CryptographicError, InputEncodingError
from .field import field_element_to_string, is_valid_field_element, parse_field_element

# ============================================================================
# SECRETS & COMMITMENTS
# ============================================================================


@dataclass(frozen=True)
class DerivedSecrets:
    """
    Deterministic holder secrets derived from a wallet signature.

    Never persisted; recomputed on demand. repr() hides the values so they
    do not end up in logs or tracebacks.
    """

    student_secret: int
    salt: int

    def __post_init__(self):
        for name in ("student_secret", "salt"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an int, got {type(value).__name__}")
            if not is_valid_field_element(value):
                raise ValueError(f"{name} must be a field element")

    def __repr__(self) -> str:
        return "DerivedSecrets(student_secret=<hidden>, salt=<hidden>)"


@dataclass(frozen=True)
class Commitment:
    """
    Binding commitment for one (credential, achievement) pair.

    Attributes:
        commitment: H4(credential_hash, student_secret, salt, achievement_hash)
        credential_hash: Field encoding of the credential id
        achievement_hash: Field encoding of the achievement code
    """

    commitment: int
    credential_hash: int
    achievement_hash: int

    def public_signals(self) -> List[str]:
        """Public signals in circuit order."""
        return [
            field_element_to_string(self.commitment),
            field_element_to_string(self.credential_hash),
            field_element_to_string(self.achievement_hash),
        ]

    def to_dict(self) -> dict:
        return {
            "commitment": str(self.commitment),
            "credentialHash": str(self.credential_hash),
            "achievementHash": str(self.achievement_hash),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Commitment":
        try:
            return cls(
                commitment=parse_field_element(data["commitment"]),
                credential_hash=parse_field_element(data["credentialHash"]),
                achievement_hash=parse_field_element(data["achievementHash"]),
            )
        except (KeyError, TypeError, InputEncodingError) as exc:
            raise ValueError(f"Invalid commitment format: {exc}") from exc


# ============================================================================
# PROGRESS
# ============================================================================


class ProofStage(Enum):
    """
    Stages of one generation run.

    LOADING_WASM -> LOADING_ZKEY -> GENERATING_PROOF (per achievement)
    -> COMPLETE; ERROR is terminal and reachable from any other stage.
    """

    LOADING_WASM = "loading_wasm"
    LOADING_ZKEY = "loading_zkey"
    GENERATING_PROOF = "generating_proof"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ProofProgress:
    achievement_code: str
    stage: ProofStage
    percent: float
    message: str


# ============================================================================
# PROOF EXCHANGE FORMAT
# ============================================================================


@dataclass(frozen=True)
class Groth16Proof:
    """
    snarkjs-style Groth16 proof.

    Coordinates are decimal strings; pi_a / pi_c are projective G1 points
    [x, y, z] and pi_b a projective G2 point [[x0, x1], [y0, y1], [z0, z1]].
    """

    pi_a: Tuple[str, ...]
    pi_b: Tuple[Tuple[str, ...], ...]
    pi_c: Tuple[str, ...]
    protocol: str = PROOF_PROTOCOL
    curve: str = CURVE_NAME

    def to_dict(self) -> dict:
        return {
            "pi_a": list(self.pi_a),
            "pi_b": [list(row) for row in self.pi_b],
            "pi_c": list(self.pi_c),
            "protocol": self.protocol,
            "curve": self.curve,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Groth16Proof":
        """
        Build from a snarkjs proof object.

        Raises:
            ValueError: If required keys are missing or not lists of strings
        """
        if not isinstance(data, dict):
            raise ValueError("Invalid proof format: expected an object")
        try:
            pi_a = _string_tuple(data["pi_a"], "pi_a")
            pi_c = _string_tuple(data["pi_c"], "pi_c")
            if not isinstance(data["pi_b"], list):
                raise ValueError("pi_b must be a list")
            pi_b = tuple(_string_tuple(row, "pi_b") for row in data["pi_b"])
            protocol = data.get("protocol", PROOF_PROTOCOL)
            curve = data.get("curve", CURVE_NAME)
        except KeyError as exc:
            raise ValueError(f"Invalid proof format: missing {exc}") from exc
        if not isinstance(protocol, str) or not isinstance(curve, str):
            raise ValueError("Invalid proof format: protocol/curve must be strings")
        return cls(pi_a=pi_a, pi_b=pi_b, pi_c=pi_c, protocol=protocol, curve=curve)


@dataclass(frozen=True)
class GeneratedProof:
    """Output of one proof-generation run for one achievement."""

    achievement_code: str
    proof: Groth16Proof
    public_signals: Tuple[str, ...]
    commitment: str

    def to_dict(self) -> dict:
        return {
            "achievementCode": self.achievement_code,
            "proof": self.proof.to_dict(),
            "publicSignals": list(self.public_signals),
            "commitment": self.commitment,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "GeneratedProof":
        if not isinstance(data, dict):
            raise ValueError("Invalid proof artifact: expected an object")
        try:
            achievement_code = data["achievementCode"]
            proof = Groth16Proof.from_dict(data["proof"])
            public_signals = _string_tuple(data["publicSignals"], "publicSignals")
            commitment = data["commitment"]
        except KeyError as exc:
            raise ValueError(f"Invalid proof artifact: missing {exc}") from exc
        if not isinstance(achievement_code, str) or not isinstance(commitment, str):
            raise ValueError("Invalid proof artifact: achievementCode/commitment must be strings")
        return cls(
            achievement_code=achievement_code,
            proof=proof,
            public_signals=public_signals,
            commitment=commitment,
        )

    # ========================================================================
    # SERIALIZATION (CBOR)
    # ========================================================================

    def serialize(self) -> bytes:
        """
        Compact CBOR encoding with a version field.

        Raises:
            CryptographicError: If serialization fails
        """
        try:
            return cbor2.dumps({"v": PROOF_PACK_VERSION, "p": self.to_dict()})
        except Exception as e:
            raise CryptographicError(f"Failed to serialize proof: {e}")

    @classmethod
    def deserialize(cls, data: bytes) -> "GeneratedProof":
        """
        Decode CBOR produced by serialize().

        Raises:
            ValueError: If version is unsupported or data is invalid
            CryptographicError: If CBOR decoding fails
        """
        try:
            obj = cbor2.loads(data)
        except Exception as e:
            raise CryptographicError(f"Failed to deserialize proof: {e}")

        if not isinstance(obj, dict) or "p" not in obj:
            raise ValueError("Invalid proof format: missing required fields")

        version = obj.get("v", PROOF_PACK_VERSION)
        if version != PROOF_PACK_VERSION:
            raise ValueError(
                f"Unsupported proof version: {version} "
                f"(expected {PROOF_PACK_VERSION})"
            )
        return cls.from_dict(obj["p"])


@dataclass(frozen=True)
class ProofPack:
    """All proofs a holder generated for one credential."""

    credential_id: str
    proofs: Tuple[GeneratedProof, ...] = field(default_factory=tuple)
    circuit_id: str = CIRCUIT_ID

    def to_dict(self) -> dict:
        return {
            "version": PROOF_PACK_VERSION,
            "circuitId": self.circuit_id,
            "credentialId": self.credential_id,
            "proofs": [proof.to_dict() for proof in self.proofs],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Any) -> "ProofPack":
        if not isinstance(data, dict):
            raise ValueError("Invalid proof pack: expected an object")
        version = data.get("version", PROOF_PACK_VERSION)
        if version != PROOF_PACK_VERSION:
            raise ValueError(f"Unsupported proof pack version: {version}")
        credential_id = data.get("credentialId")
        if not isinstance(credential_id, str) or not credential_id:
            raise ValueError("Invalid proof pack: missing credentialId")
        raw_proofs = data.get("proofs", [])
        if not isinstance(raw_proofs, list):
            raise ValueError("Invalid proof pack: proofs must be a list")
        return cls(
            credential_id=credential_id,
            proofs=tuple(GeneratedProof.from_dict(item) for item in raw_proofs),
            circuit_id=data.get("circuitId", CIRCUIT_ID),
        )

    @classmethod
    def from_json(cls, text: str) -> "ProofPack":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid proof pack JSON: {exc}") from exc
        return cls.from_dict(data)


def _string_tuple(value: Any, label: str) -> Tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{label} must be a list of strings")
    return tuple(value)
