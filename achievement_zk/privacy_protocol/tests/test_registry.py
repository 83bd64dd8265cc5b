"""Unit tests for the recorded-commitment registry."""

from __future__ import annotations

import json

import pytest

from achievement_zk.privacy_protocol.config import BN254_SCALAR_FIELD
from achievement_zk.privacy_protocol.exceptions import InputEncodingError
from achievement_zk.privacy_protocol.field import encode_to_field
from achievement_zk.privacy_protocol.registry import (
    CommitmentRegistry,
    InMemoryCommitmentRegistry,
)


def test_register_and_lookup() -> None:
    registry = InMemoryCommitmentRegistry()
    record = registry.register("cred-001", "dean-list-2023", "12345", wallet_public_key="pk")
    assert registry.lookup("cred-001", "dean-list-2023") == record
    assert record.commitment == 12345
    assert record.credential_hash == encode_to_field("cred-001")
    assert record.achievement_hash == encode_to_field("dean-list-2023")
    assert record.circuit_id == "ach_member_v1"


def test_lookup_missing_returns_none() -> None:
    assert InMemoryCommitmentRegistry().lookup("cred-001", "dean-list-2023") is None


def test_register_is_upsert() -> None:
    registry = InMemoryCommitmentRegistry()
    registry.register("cred-001", "dean-list-2023", 1)
    registry.register("cred-001", "dean-list-2023", 2)
    assert len(registry) == 1
    assert registry.lookup("cred-001", "dean-list-2023").commitment == 2


@pytest.mark.parametrize("commitment", [str(BN254_SCALAR_FIELD), "-1", "abc", None, True])
def test_register_rejects_invalid_commitment(commitment) -> None:
    with pytest.raises(InputEncodingError, match="invalid commitment"):
        InMemoryCommitmentRegistry().register("cred-001", "dean-list-2023", commitment)


def test_register_requires_identifiers() -> None:
    registry = InMemoryCommitmentRegistry()
    with pytest.raises(InputEncodingError, match="achievement code is required"):
        registry.register("cred-001", "", "1")
    with pytest.raises(InputEncodingError, match="credential id is required"):
        registry.register("", "dean-list-2023", "1")


def test_register_batch_reports_per_entry() -> None:
    registry = InMemoryCommitmentRegistry()
    results = registry.register_batch(
        [
            {"credentialId": "cred-001", "achievementCode": "a", "commitment": "1"},
            {"credentialId": "cred-001", "achievementCode": "b", "commitment": "not-a-number"},
            {"credentialId": "cred-001", "achievementCode": "c", "commitment": "3"},
        ]
    )
    assert [r.success for r in results] == [True, False, True]
    assert "invalid commitment" in results[1].message
    assert len(registry) == 2


def test_save_and_load(tmp_path) -> None:
    path = tmp_path / "registry.json"
    registry = InMemoryCommitmentRegistry()
    registry.register("cred-001", "dean-list-2023", "42", wallet_public_key="pk")
    registry.save(path)

    loaded = InMemoryCommitmentRegistry.load(path)
    assert loaded.lookup("cred-001", "dean-list-2023") == registry.lookup(
        "cred-001", "dean-list-2023"
    )
    assert json.loads(path.read_text())["version"] == 1


def test_load_missing_file_is_empty(tmp_path) -> None:
    assert len(InMemoryCommitmentRegistry.load(tmp_path / "missing.json")) == 0


def test_load_rejects_bad_entries(tmp_path) -> None:
    path = tmp_path / "registry.json"
    path.write_text(
        json.dumps(
            {
                "version": 1,
                "commitments": [
                    {"credentialId": "cred-001", "achievementCode": "a", "commitment": "x"}
                ],
            }
        )
    )
    with pytest.raises(ValueError, match="Invalid registry entry"):
        InMemoryCommitmentRegistry.load(path)


def test_load_rejects_malformed_json(tmp_path) -> None:
    path = tmp_path / "registry.json"
    path.write_text("{not json")
    with pytest.raises(ValueError, match="Invalid registry file"):
        InMemoryCommitmentRegistry.load(path)


def test_implements_protocol() -> None:
    assert isinstance(InMemoryCommitmentRegistry(), CommitmentRegistry)
