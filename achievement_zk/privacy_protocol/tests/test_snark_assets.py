"""
Unit tests for artifact fetching, caching and verification key loading.
"""

from __future__ import annotations

import hashlib
import json

import pytest
import requests
import trio
from trio.testing import wait_all_tasks_blocked

from achievement_zk.privacy_protocol.exceptions import ArtifactFetchError, CryptographicError
from achievement_zk.privacy_protocol.settings import ArtifactLocation
from achievement_zk.privacy_protocol.snark import assets
from achievement_zk.privacy_protocol.snark.assets import (
    ArtifactCache,
    CircuitArtifacts,
    fetch_artifact,
    fetch_artifact_sync,
    load_verification_key,
)


class FakeResponse:
    def __init__(self, status_code: int, content: bytes = b""):
        self.status_code = status_code
        self.content = content


# ============================================================================
# FETCHING
# ============================================================================


def test_fetch_plain_path(tmp_path):
    path = tmp_path / "circuit.wasm"
    path.write_bytes(b"wasm-bytes")
    assert fetch_artifact_sync(str(path)) == b"wasm-bytes"


def test_fetch_file_url(tmp_path):
    path = tmp_path / "circuit.zkey"
    path.write_bytes(b"zkey-bytes")
    assert fetch_artifact_sync(path.as_uri()) == b"zkey-bytes"


def test_fetch_checks_digest(tmp_path):
    path = tmp_path / "circuit.wasm"
    path.write_bytes(b"wasm-bytes")
    digest = hashlib.sha256(b"wasm-bytes").hexdigest()
    assert fetch_artifact_sync(ArtifactLocation(str(path), digest)) == b"wasm-bytes"


def test_fetch_digest_mismatch(tmp_path):
    path = tmp_path / "circuit.wasm"
    path.write_bytes(b"tampered")
    digest = hashlib.sha256(b"wasm-bytes").hexdigest()
    with pytest.raises(ArtifactFetchError, match="integrity check failed"):
        fetch_artifact_sync(str(path), sha256=digest)


def test_fetch_missing_file(tmp_path):
    with pytest.raises(ArtifactFetchError, match="cannot read artifact"):
        fetch_artifact_sync(str(tmp_path / "missing.zkey"))


def test_fetch_http(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(200, b"remote-zkey")

    monkeypatch.setattr(assets.requests, "get", fake_get)
    data = fetch_artifact_sync("https://cdn.example.org/c.zkey", timeout=5.0)
    assert data == b"remote-zkey"
    assert calls == [("https://cdn.example.org/c.zkey", 5.0)]


def test_fetch_http_error_status(monkeypatch):
    monkeypatch.setattr(assets.requests, "get", lambda url, timeout: FakeResponse(404))
    with pytest.raises(ArtifactFetchError, match="HTTP 404"):
        fetch_artifact_sync("https://cdn.example.org/c.zkey")


def test_fetch_http_connection_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(assets.requests, "get", fake_get)
    with pytest.raises(ArtifactFetchError, match="connection refused"):
        fetch_artifact_sync("http://localhost:1/c.zkey")


@pytest.mark.trio
async def test_fetch_artifact_async(tmp_path):
    path = tmp_path / "circuit.wasm"
    path.write_bytes(b"async-bytes")
    assert await fetch_artifact(str(path)) == b"async-bytes"


def test_circuit_artifacts_repr_hides_bytes():
    artifacts = CircuitArtifacts("ach_member_v1", b"\x00" * 10, b"\x01" * 20)
    assert "10 bytes" in repr(artifacts)
    assert "20 bytes" in repr(artifacts)


# ============================================================================
# CACHE
# ============================================================================


@pytest.mark.trio
async def test_cache_loads_once_for_concurrent_callers():
    cache = ArtifactCache()
    release = trio.Event()
    loads = []
    results = []

    async def loader():
        loads.append(1)
        await release.wait()
        return CircuitArtifacts("ach_member_v1", b"w", b"z")

    async def caller():
        results.append(await cache.get_or_load("ach_member_v1", loader))

    async with trio.open_nursery() as nursery:
        for _ in range(3):
            nursery.start_soon(caller)
        await wait_all_tasks_blocked()
        release.set()

    assert len(loads) == 1
    assert len(results) == 3
    assert all(result is results[0] for result in results)
    assert cache.is_cached("ach_member_v1")


@pytest.mark.trio
async def test_cache_failed_load_is_retried():
    cache = ArtifactCache()
    attempts = []

    async def flaky_loader():
        attempts.append(1)
        if len(attempts) == 1:
            raise ArtifactFetchError("network down")
        return CircuitArtifacts("ach_member_v1", b"w", b"z")

    with pytest.raises(ArtifactFetchError):
        await cache.get_or_load("ach_member_v1", flaky_loader)
    assert not cache.is_cached("ach_member_v1")

    artifacts = await cache.get_or_load("ach_member_v1", flaky_loader)
    assert artifacts.zkey == b"z"
    assert len(attempts) == 2


@pytest.mark.trio
async def test_cache_rejects_wrong_circuit():
    cache = ArtifactCache()

    async def loader():
        return CircuitArtifacts("other_circuit", b"w", b"z")

    with pytest.raises(ArtifactFetchError, match="expected 'ach_member_v1'"):
        await cache.get_or_load("ach_member_v1", loader)
    assert cache.get("ach_member_v1") is None


@pytest.mark.trio
async def test_cache_clear():
    cache = ArtifactCache()

    async def loader():
        return CircuitArtifacts("ach_member_v1", b"w", b"z")

    await cache.get_or_load("ach_member_v1", loader)
    cache.clear()
    assert not cache.is_cached("ach_member_v1")


# ============================================================================
# VERIFICATION KEY
# ============================================================================


def test_load_verification_key_from_file(tmp_path, groth16_setup):
    path = tmp_path / "vkey.json"
    path.write_text(json.dumps(groth16_setup.vk_dict))
    vk = load_verification_key(path)
    assert vk.n_public == 3


def test_load_verification_key_from_dict(groth16_setup):
    assert load_verification_key(groth16_setup.vk_dict).n_public == 3


def test_load_verification_key_invalid_json(tmp_path):
    path = tmp_path / "vkey.json"
    path.write_text("{not json")
    with pytest.raises(CryptographicError, match="not valid JSON"):
        load_verification_key(path)


def test_load_verification_key_missing(tmp_path):
    with pytest.raises(CryptographicError, match="cannot read"):
        load_verification_key(tmp_path / "missing.json")


def test_load_verification_key_too_large(tmp_path, monkeypatch):
    monkeypatch.setattr(assets, "MAX_VERIFICATION_KEY_BYTES", 16)
    path = tmp_path / "vkey.json"
    path.write_text(json.dumps({"padding": "x" * 64}))
    with pytest.raises(CryptographicError, match="exceeds limit"):
        load_verification_key(path)
