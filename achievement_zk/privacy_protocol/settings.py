"""
Runtime settings: circuit artifact manifest and prover options.

Manifest format (YAML):

    circuit_id: ach_member_v1
    wasm:
      location: build/ach_member_v1.wasm
      sha256: 3f0c...        # optional
    zkey:
      location: https://cdn.example.org/ach_member_v1.zkey
    vkey:
      location: build/ach_member_v1_vkey.json

Relative locations resolve against the manifest's directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Optional, Tuple

import yaml

from .config import CIRCUIT_ID, DEFAULT_MAX_CONCURRENT_PROOFS
from .exceptions import ConfigurationError

ARTIFACTS_DIR_ENV_VAR: Final[str] = "ACHIEVEMENT_ZK_ARTIFACTS_DIR"
PROVER_ENV_VAR: Final[str] = "ACHIEVEMENT_ZK_PROVER"

VALID_PROVERS: Final[tuple[str, ...]] = ("snarkjs", "rapidsnark")
DEFAULT_PROVER: Final[str] = "snarkjs"

_ARTIFACT_KINDS: Final[tuple[str, ...]] = ("wasm", "zkey", "vkey")
_URL_SCHEMES: Final[tuple[str, ...]] = ("http://", "https://", "file://")


@dataclass(frozen=True)
class ArtifactLocation:
    """Where one artifact lives, with an optional SHA-256 hex digest."""

    location: str
    sha256: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.location, str) or not self.location:
            raise ConfigurationError("artifact location must be a non-empty string")
        if self.sha256 is not None:
            digest = self.sha256.lower()
            if len(digest) != 64 or any(c not in "0123456789abcdef" for c in digest):
                raise ConfigurationError(f"invalid sha256 digest for {self.location}")
            object.__setattr__(self, "sha256", digest)

    def resolved(self, base_dir: Path) -> "ArtifactLocation":
        if self.location.startswith(_URL_SCHEMES) or Path(self.location).is_absolute():
            return self
        return ArtifactLocation(str(base_dir / self.location), self.sha256)


@dataclass(frozen=True)
class CircuitManifest:
    """Locations of the wasm, proving key and verification key for a circuit."""

    wasm: ArtifactLocation
    zkey: ArtifactLocation
    vkey: ArtifactLocation
    circuit_id: str = CIRCUIT_ID

    @classmethod
    def from_dict(cls, data: Any, base_dir: Path | str | None = None) -> "CircuitManifest":
        """
        Build a manifest from parsed YAML/JSON.

        Raises:
            ConfigurationError: On missing or malformed entries
        """
        if not isinstance(data, dict):
            raise ConfigurationError("manifest must be a mapping")
        base = Path(base_dir) if base_dir is not None else Path.cwd()

        entries = {}
        for kind in _ARTIFACT_KINDS:
            raw = data.get(kind)
            if isinstance(raw, str):
                raw = {"location": raw}
            if not isinstance(raw, dict) or "location" not in raw:
                raise ConfigurationError(f"manifest entry {kind!r} needs a location")
            entries[kind] = ArtifactLocation(
                location=str(raw["location"]),
                sha256=raw.get("sha256"),
            ).resolved(base)

        circuit_id = data.get("circuit_id", CIRCUIT_ID)
        if not isinstance(circuit_id, str) or not circuit_id:
            raise ConfigurationError("circuit_id must be a non-empty string")

        return cls(circuit_id=circuit_id, **entries)

    @classmethod
    def from_yaml(cls, path: Path | str) -> "CircuitManifest":
        path = Path(path)
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"cannot read manifest {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"invalid manifest YAML {path}: {exc}") from exc
        return cls.from_dict(data, base_dir=path.parent)

    @classmethod
    def from_directory(cls, directory: Path | str, circuit_id: str = CIRCUIT_ID) -> "CircuitManifest":
        """Default layout: <dir>/<id>.wasm, <dir>/<id>.zkey, <dir>/<id>_vkey.json."""
        base = Path(directory)
        return cls(
            circuit_id=circuit_id,
            wasm=ArtifactLocation(str(base / f"{circuit_id}.wasm")),
            zkey=ArtifactLocation(str(base / f"{circuit_id}.zkey")),
            vkey=ArtifactLocation(str(base / f"{circuit_id}_vkey.json")),
        )

    @classmethod
    def from_env(cls, circuit_id: str = CIRCUIT_ID) -> "CircuitManifest":
        """
        Manifest from ACHIEVEMENT_ZK_ARTIFACTS_DIR.

        Raises:
            ConfigurationError: If the variable is unset or empty
        """
        directory = os.getenv(ARTIFACTS_DIR_ENV_VAR)
        if not directory:
            raise ConfigurationError(f"{ARTIFACTS_DIR_ENV_VAR} is not set")
        return cls.from_directory(directory, circuit_id)

    def to_dict(self) -> dict:
        def entry(loc: ArtifactLocation) -> dict:
            out = {"location": loc.location}
            if loc.sha256:
                out["sha256"] = loc.sha256
            return out

        return {
            "circuit_id": self.circuit_id,
            "wasm": entry(self.wasm),
            "zkey": entry(self.zkey),
            "vkey": entry(self.vkey),
        }


@dataclass(frozen=True)
class ProverSettings:
    """
    Proof generation options.

    Attributes:
        prover: Proving backend name; None or "" falls back to
            ACHIEVEMENT_ZK_PROVER, then "snarkjs"
        max_concurrent_proofs: Upper bound on proofs running at once
        snarkjs_command: argv prefix used to invoke snarkjs
        rapidsnark_command: argv prefix used to invoke the rapidsnark prover

    Raises:
        ConfigurationError: On an unknown prover or bad option values
    """

    prover: Optional[str] = None
    max_concurrent_proofs: int = DEFAULT_MAX_CONCURRENT_PROOFS
    snarkjs_command: Tuple[str, ...] = field(default=("snarkjs",))
    rapidsnark_command: Tuple[str, ...] = field(default=("prover",))

    def __post_init__(self):
        prover = self.prover
        if prover is None or prover == "":
            prover = os.getenv(PROVER_ENV_VAR) or DEFAULT_PROVER
        if not isinstance(prover, str) or prover not in VALID_PROVERS:
            raise ConfigurationError(
                f"Invalid prover: {prover!r}. Valid options: {', '.join(VALID_PROVERS)}"
            )
        object.__setattr__(self, "prover", prover)

        if (
            isinstance(self.max_concurrent_proofs, bool)
            or not isinstance(self.max_concurrent_proofs, int)
            or self.max_concurrent_proofs < 1
        ):
            raise ConfigurationError("max_concurrent_proofs must be an integer >= 1")
        for name in ("snarkjs_command", "rapidsnark_command"):
            value = getattr(self, name)
            if not value or not all(isinstance(part, str) and part for part in value):
                raise ConfigurationError(f"{name} must be a non-empty list of strings")
            object.__setattr__(self, name, tuple(value))
