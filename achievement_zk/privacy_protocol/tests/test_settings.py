"""Unit tests for the circuit manifest and prover settings."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from achievement_zk.privacy_protocol.exceptions import ConfigurationError
from achievement_zk.privacy_protocol.settings import (
    ArtifactLocation,
    CircuitManifest,
    ProverSettings,
)

DIGEST = "ab" * 32


def test_manifest_from_yaml_resolves_relative_paths(tmp_path: Path) -> None:
    path = tmp_path / "manifest.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "circuit_id": "ach_member_v1",
                "wasm": {"location": "build/circuit.wasm", "sha256": DIGEST.upper()},
                "zkey": "https://cdn.example.org/circuit.zkey",
                "vkey": {"location": "/abs/vkey.json"},
            }
        )
    )
    manifest = CircuitManifest.from_yaml(path)
    assert manifest.wasm.location == str(tmp_path / "build/circuit.wasm")
    assert manifest.wasm.sha256 == DIGEST
    assert manifest.zkey.location == "https://cdn.example.org/circuit.zkey"
    assert manifest.vkey.location == "/abs/vkey.json"


def test_manifest_missing_entry(tmp_path: Path) -> None:
    path = tmp_path / "manifest.yaml"
    path.write_text(yaml.safe_dump({"wasm": "a.wasm", "zkey": "a.zkey"}))
    with pytest.raises(ConfigurationError, match="vkey"):
        CircuitManifest.from_yaml(path)


def test_manifest_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "manifest.yaml"
    path.write_text("wasm: [unclosed")
    with pytest.raises(ConfigurationError, match="invalid manifest YAML"):
        CircuitManifest.from_yaml(path)


def test_manifest_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ACHIEVEMENT_ZK_ARTIFACTS_DIR", str(tmp_path))
    manifest = CircuitManifest.from_env()
    assert manifest.wasm.location == str(tmp_path / "ach_member_v1.wasm")
    assert manifest.zkey.location == str(tmp_path / "ach_member_v1.zkey")
    assert manifest.vkey.location == str(tmp_path / "ach_member_v1_vkey.json")


def test_manifest_from_env_unset(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ACHIEVEMENT_ZK_ARTIFACTS_DIR", raising=False)
    with pytest.raises(ConfigurationError, match="not set"):
        CircuitManifest.from_env()


def test_manifest_to_dict_round_trip(tmp_path: Path) -> None:
    manifest = CircuitManifest.from_directory(tmp_path)
    assert CircuitManifest.from_dict(manifest.to_dict()) == manifest


def test_artifact_location_rejects_bad_digest() -> None:
    with pytest.raises(ConfigurationError, match="sha256"):
        ArtifactLocation("a.wasm", sha256="xyz")


class TestProverSettings:
    """Test prover options and backend selection."""

    @pytest.fixture(autouse=True)
    def clear_prover_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("ACHIEVEMENT_ZK_PROVER", raising=False)

    def test_defaults(self):
        """Test default settings use snarkjs with one proof at a time."""
        settings = ProverSettings()
        assert settings.prover == "snarkjs"
        assert settings.max_concurrent_proofs == 1
        assert settings.snarkjs_command == ("snarkjs",)

    def test_prover_from_env(self, monkeypatch: pytest.MonkeyPatch):
        """Test ACHIEVEMENT_ZK_PROVER fills in an unset prover."""
        monkeypatch.setenv("ACHIEVEMENT_ZK_PROVER", "rapidsnark")
        assert ProverSettings().prover == "rapidsnark"
        assert ProverSettings(prover="").prover == "rapidsnark"

    def test_explicit_prover_beats_env(self, monkeypatch: pytest.MonkeyPatch):
        """Test an explicit prover ignores the environment."""
        monkeypatch.setenv("ACHIEVEMENT_ZK_PROVER", "rapidsnark")
        assert ProverSettings(prover="snarkjs").prover == "snarkjs"

    def test_empty_env_treated_as_unset(self, monkeypatch: pytest.MonkeyPatch):
        """Test an empty ACHIEVEMENT_ZK_PROVER falls back to snarkjs."""
        monkeypatch.setenv("ACHIEVEMENT_ZK_PROVER", "")
        assert ProverSettings().prover == "snarkjs"

    @pytest.mark.parametrize("value", ["invalid", 3])
    def test_rejects_unknown_prover(self, value):
        """Test unknown prover names are rejected with the valid options."""
        with pytest.raises(ConfigurationError, match="snarkjs, rapidsnark"):
            ProverSettings(prover=value)

    def test_rejects_unknown_prover_from_env(self, monkeypatch: pytest.MonkeyPatch):
        """Test an unknown prover in the environment is rejected."""
        monkeypatch.setenv("ACHIEVEMENT_ZK_PROVER", "invalid")
        with pytest.raises(ConfigurationError, match="Invalid prover"):
            ProverSettings()

    @pytest.mark.parametrize("value", [0, -1, True, 1.5])
    def test_rejects_bad_concurrency(self, value):
        """Test max_concurrent_proofs must be a positive integer."""
        with pytest.raises(ConfigurationError):
            ProverSettings(max_concurrent_proofs=value)

    def test_command_lists_become_tuples(self):
        """Test command lists are stored as tuples."""
        settings = ProverSettings(snarkjs_command=["npx", "snarkjs"])
        assert settings.snarkjs_command == ("npx", "snarkjs")

    def test_rejects_empty_command(self):
        """Test an empty command is rejected."""
        with pytest.raises(ConfigurationError):
            ProverSettings(rapidsnark_command=())
