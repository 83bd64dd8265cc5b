"""
Circuit artifact loading and caching.

Artifacts (witness generator wasm, proving key zkey, verification key) are
external inputs. They are fetched from a local path, a file:// URL or an
http(s) URL, optionally checked against a SHA-256 digest, and cached per
circuit id for the lifetime of the cache object.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import unquote, urlparse

import requests
import trio

from ..config import ARTIFACT_FETCH_TIMEOUT, MAX_VERIFICATION_KEY_BYTES
from ..exceptions import ArtifactFetchError, CryptographicError
from ..settings import ArtifactLocation
from .groth16 import VerificationKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CircuitArtifacts:
    """Witness generator and proving key bytes for one circuit."""

    circuit_id: str
    wasm: bytes
    zkey: bytes

    def __repr__(self) -> str:
        return (
            f"CircuitArtifacts(circuit_id={self.circuit_id!r}, "
            f"wasm=<{len(self.wasm)} bytes>, zkey=<{len(self.zkey)} bytes>)"
        )


# ============================================================================
# FETCHING
# ============================================================================


def _read_location(location: str, timeout: float) -> bytes:
    if location.startswith(("http://", "https://")):
        try:
            response = requests.get(location, timeout=timeout)
        except requests.RequestException as exc:
            raise ArtifactFetchError(f"GET {location} failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise ArtifactFetchError(f"GET {location} returned HTTP {response.status_code}")
        return response.content

    if location.startswith("file://"):
        path = Path(unquote(urlparse(location).path))
    else:
        path = Path(location)
    try:
        return path.read_bytes()
    except OSError as exc:
        raise ArtifactFetchError(f"cannot read artifact {path}: {exc}") from exc


def fetch_artifact_sync(
    location: ArtifactLocation | str,
    sha256: Optional[str] = None,
    timeout: float = ARTIFACT_FETCH_TIMEOUT,
) -> bytes:
    """
    Blocking fetch with optional digest check.

    Raises:
        ArtifactFetchError: I/O failure, non-2xx response or digest mismatch
    """
    if isinstance(location, ArtifactLocation):
        sha256 = sha256 or location.sha256
        location = location.location

    data = _read_location(location, timeout)
    if sha256 is not None:
        actual = hashlib.sha256(data).hexdigest()
        if not hmac.compare_digest(actual, sha256.lower()):
            raise ArtifactFetchError(f"integrity check failed for {location}")
    logger.debug("Fetched artifact %s (%d bytes)", location, len(data))
    return data


async def fetch_artifact(
    location: ArtifactLocation | str,
    sha256: Optional[str] = None,
    timeout: float = ARTIFACT_FETCH_TIMEOUT,
) -> bytes:
    """fetch_artifact_sync() in a worker thread."""
    return await trio.to_thread.run_sync(fetch_artifact_sync, location, sha256, timeout)


# ============================================================================
# CACHE
# ============================================================================


class ArtifactCache:
    """
    Per-circuit artifact cache.

    The first get_or_load() for a circuit runs the loader while holding the
    cache lock; concurrent callers wait and then share the result. Reads of
    an already populated entry take no lock. A failed load leaves no entry,
    so the next call retries from scratch.
    """

    def __init__(self):
        self._entries: Dict[str, CircuitArtifacts] = {}
        self._lock = trio.Lock()

    def is_cached(self, circuit_id: str) -> bool:
        return circuit_id in self._entries

    def get(self, circuit_id: str) -> Optional[CircuitArtifacts]:
        return self._entries.get(circuit_id)

    async def get_or_load(
        self,
        circuit_id: str,
        loader: Callable[[], Awaitable[CircuitArtifacts]],
    ) -> CircuitArtifacts:
        cached = self._entries.get(circuit_id)
        if cached is not None:
            return cached

        async with self._lock:
            cached = self._entries.get(circuit_id)
            if cached is not None:
                return cached
            logger.info("Loading circuit artifacts for %s", circuit_id)
            artifacts = await loader()
            if artifacts.circuit_id != circuit_id:
                raise ArtifactFetchError(
                    f"loader returned artifacts for {artifacts.circuit_id!r}, "
                    f"expected {circuit_id!r}"
                )
            self._entries[circuit_id] = artifacts
            return artifacts

    def clear(self) -> None:
        self._entries.clear()


# ============================================================================
# VERIFICATION KEY
# ============================================================================


def load_verification_key(source: Path | str | dict | Any) -> VerificationKey:
    """
    Load a snarkjs verification key from a path or a parsed dict.

    Raises:
        CryptographicError: Unreadable, oversized or malformed key
    """
    if isinstance(source, dict):
        return VerificationKey.from_dict(source)

    path = Path(source)
    try:
        size = path.stat().st_size
        if size > MAX_VERIFICATION_KEY_BYTES:
            raise CryptographicError("verification key size exceeds limit")
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CryptographicError(f"cannot read verification key {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise CryptographicError(f"verification key is not valid JSON: {exc}") from exc
    return VerificationKey.from_dict(data)
