"""
⚠️ DRAFT — requires crypto review before production use

Achievement commitments.

    credential_hash  = F(credential_id)
    achievement_hash = F(achievement_code)
    commitment       = H4(credential_hash, student_secret, salt, achievement_hash)

The commitment is published at issuance time. Later, the proof shows that a
disclosed commitment opens to the disclosed hashes under a secret only the
holder can re-derive.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable

from .exceptions import InputEncodingError
from .field import encode_to_field, is_valid_field_element
from .poseidon import Poseidon
from .types import Commitment, DerivedSecrets

logger = logging.getLogger(__name__)


class CommitmentEngine:
    """
    Computes commitments with an injected H4 hasher.

    Example:
        >>> engine = CommitmentEngine(Poseidon.for_arity(4))
        >>> c = engine.commit("cred-001", "dean-list-2023", secrets)
    """

    def __init__(self, hasher: Poseidon):
        if hasher.arity != 4:
            raise ValueError(f"commitment hasher must take 4 inputs, got {hasher.arity}")
        self._hasher = hasher

    @property
    def hasher(self) -> Poseidon:
        return self._hasher

    def commitment_from_hashes(
        self, credential_hash: int, student_secret: int, salt: int, achievement_hash: int
    ) -> int:
        """
        Raw H4 over already-encoded field elements.

        Raises:
            InputEncodingError: If any input is not a field element
        """
        for value in (credential_hash, student_secret, salt, achievement_hash):
            if not is_valid_field_element(value) or isinstance(value, str):
                raise InputEncodingError("commitment inputs must be field elements")
        return self._hasher([credential_hash, student_secret, salt, achievement_hash])

    def commit(
        self, credential_id: str, achievement_code: str, secrets: DerivedSecrets
    ) -> Commitment:
        """
        Commitment for one achievement on one credential.

        Raises:
            InputEncodingError: If an identifier cannot be encoded or is empty
        """
        _require_identifier(credential_id, "credential_id")
        _require_identifier(achievement_code, "achievement_code")

        credential_hash = encode_to_field(credential_id)
        achievement_hash = encode_to_field(achievement_code)
        commitment = self.commitment_from_hashes(
            credential_hash, secrets.student_secret, secrets.salt, achievement_hash
        )
        return Commitment(
            commitment=commitment,
            credential_hash=credential_hash,
            achievement_hash=achievement_hash,
        )

    def commit_many(
        self,
        credential_id: str,
        achievement_codes: Iterable[str],
        secrets: DerivedSecrets,
    ) -> Dict[str, Commitment]:
        """
        Commitments for several achievements under the same secrets.

        Returns:
            Mapping achievement_code -> Commitment in input order; repeated
            codes appear once
        """
        result: Dict[str, Commitment] = {}
        for code in achievement_codes:
            if code in result:
                continue
            result[code] = self.commit(credential_id, code, secrets)
        logger.debug(
            "Computed %d commitments for credential %s", len(result), credential_id
        )
        return result


def _require_identifier(value, label: str) -> None:
    if not isinstance(value, str) or not value:
        raise InputEncodingError(f"{label} must be a non-empty string")
