"""
Recorded commitments.

The issuer records one commitment per (credential, achievement) when the
holder enables proofs. Verifiers look the recorded value up and require the
proof to disclose exactly that commitment.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

from .config import CIRCUIT_ID
from .exceptions import InputEncodingError
from .field import encode_to_field, parse_field_element

logger = logging.getLogger(__name__)

REGISTRY_FILE_VERSION = 1


@dataclass(frozen=True)
class RecordedCommitment:
    credential_id: str
    achievement_code: str
    commitment: int
    credential_hash: int
    achievement_hash: int
    wallet_public_key: Optional[str] = None
    circuit_id: str = CIRCUIT_ID

    def to_dict(self) -> dict:
        return {
            "credentialId": self.credential_id,
            "achievementCode": self.achievement_code,
            "commitment": str(self.commitment),
            "credentialHash": str(self.credential_hash),
            "achievementHash": str(self.achievement_hash),
            "walletPublicKey": self.wallet_public_key,
            "circuitId": self.circuit_id,
        }


@dataclass(frozen=True)
class RegistrationResult:
    credential_id: str
    achievement_code: str
    success: bool
    message: str


@runtime_checkable
class CommitmentRegistry(Protocol):
    def lookup(self, credential_id: str, achievement_code: str) -> Optional[RecordedCommitment]:
        ...


class InMemoryCommitmentRegistry:
    """
    Dict-backed registry with JSON persistence.

    Registering the same (credential, achievement) again replaces the
    earlier record.
    """

    def __init__(self):
        self._records: Dict[Tuple[str, str], RecordedCommitment] = {}

    def lookup(self, credential_id: str, achievement_code: str) -> Optional[RecordedCommitment]:
        return self._records.get((credential_id, achievement_code))

    def register(
        self,
        credential_id: str,
        achievement_code: str,
        commitment: str | int,
        wallet_public_key: Optional[str] = None,
        circuit_id: str = CIRCUIT_ID,
    ) -> RecordedCommitment:
        """
        Record (or replace) a commitment.

        Args:
            commitment: Decimal string or int below the field order

        Raises:
            InputEncodingError: Empty identifiers or invalid commitment
        """
        if not isinstance(credential_id, str) or not credential_id:
            raise InputEncodingError("credential id is required")
        if not isinstance(achievement_code, str) or not achievement_code:
            raise InputEncodingError("achievement code is required")

        if isinstance(commitment, int) and not isinstance(commitment, bool):
            commitment = str(commitment)
        try:
            value = parse_field_element(commitment)
        except InputEncodingError as exc:
            raise InputEncodingError(
                "invalid commitment: must be a decimal string less than the field order"
            ) from exc

        record = RecordedCommitment(
            credential_id=credential_id,
            achievement_code=achievement_code,
            commitment=value,
            credential_hash=encode_to_field(credential_id),
            achievement_hash=encode_to_field(achievement_code),
            wallet_public_key=wallet_public_key,
            circuit_id=circuit_id,
        )
        self._records[(credential_id, achievement_code)] = record
        logger.info(
            "Registered commitment for credential %s achievement %s",
            credential_id,
            achievement_code,
        )
        return record

    def register_batch(self, entries: Iterable[dict]) -> List[RegistrationResult]:
        """
        Register several entries; a bad entry does not stop the rest.

        Each entry is a mapping with credentialId, achievementCode,
        commitment and optionally walletPublicKey / circuitId.
        """
        results = []
        for entry in entries:
            credential_id = str(entry.get("credentialId", ""))
            achievement_code = str(entry.get("achievementCode", ""))
            try:
                self.register(
                    credential_id,
                    achievement_code,
                    entry.get("commitment"),
                    wallet_public_key=entry.get("walletPublicKey"),
                    circuit_id=entry.get("circuitId", CIRCUIT_ID),
                )
            except InputEncodingError as exc:
                results.append(
                    RegistrationResult(credential_id, achievement_code, False, str(exc))
                )
                continue
            results.append(
                RegistrationResult(
                    credential_id, achievement_code, True, "Commitment registered successfully"
                )
            )
        return results

    def records(self) -> List[RecordedCommitment]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    # ========================================================================
    # PERSISTENCE
    # ========================================================================

    def to_dict(self) -> dict:
        return {
            "version": REGISTRY_FILE_VERSION,
            "commitments": [record.to_dict() for record in self._records.values()],
        }

    def save(self, path: Path | str) -> None:
        Path(path).write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")

    @classmethod
    def from_dict(cls, data: dict) -> "InMemoryCommitmentRegistry":
        """
        Raises:
            ValueError: If the document is malformed
        """
        if not isinstance(data, dict) or not isinstance(data.get("commitments"), list):
            raise ValueError("Invalid registry file: missing commitments list")
        if data.get("version", REGISTRY_FILE_VERSION) != REGISTRY_FILE_VERSION:
            raise ValueError(f"Unsupported registry version: {data.get('version')}")
        registry = cls()
        for result in registry.register_batch(data["commitments"]):
            if not result.success:
                raise ValueError(
                    f"Invalid registry entry {result.credential_id}/{result.achievement_code}: "
                    f"{result.message}"
                )
        return registry

    @classmethod
    def load(cls, path: Path | str) -> "InMemoryCommitmentRegistry":
        path = Path(path)
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid registry file {path}: {exc}") from exc
        return cls.from_dict(data)
