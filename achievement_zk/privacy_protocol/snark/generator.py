"""
⚠️ DRAFT — requires crypto review before production use

Proof pack generation.

For each achievement the holder proves knowledge of (student_secret, salt)
opening the disclosed commitment:

    public:  commitment, credential_hash, achievement_hash
    private: student_secret, salt

Progress is reported as ProofProgress events on an optional trio memory
channel. Percentages never decrease within a batch:

    loading_wasm      10    (skipped when artifacts are cached)
    loading_zkey      30    (skipped when artifacts are cached)
    generating_proof  50 + 50 * i / n       achievement i of n starts
    complete          50 + 50 * (i + 1) / n achievement i of n done
    error             last percent reached

The generator never closes the channel; its owner does.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

import trio

from ..commitment import CommitmentEngine
from ..exceptions import (
    InputEncodingError,
    PrivacyProtocolError,
    ProofBatchError,
    ProofGenerationError,
)
from ..poseidon import Poseidon
from ..settings import CircuitManifest, ProverSettings
from ..types import (
    Commitment,
    DerivedSecrets,
    GeneratedProof,
    Groth16Proof,
    ProofProgress,
    ProofStage,
)
from .assets import ArtifactCache, CircuitArtifacts, fetch_artifact
from .prover import ProvingBackend

logger = logging.getLogger(__name__)

PERCENT_LOADING_WASM = 10.0
PERCENT_LOADING_ZKEY = 30.0
PERCENT_PROVING_START = 50.0
PERCENT_COMPLETE = 100.0


class _ProgressReporter:
    """Sends ProofProgress events and tracks the highest percent sent."""

    def __init__(self, channel: Optional[trio.MemorySendChannel]):
        self._channel = channel
        self.percent = 0.0

    async def emit(self, code: str, stage: ProofStage, percent: float, message: str) -> None:
        self.percent = max(self.percent, percent)
        if self._channel is None:
            return
        try:
            await self._channel.send(ProofProgress(code, stage, self.percent, message))
        except (trio.BrokenResourceError, trio.ClosedResourceError):
            logger.debug("Progress listener went away; dropping further events")
            self._channel = None


class ProofGenerator:
    """
    Builds Groth16 proofs for a credential's achievements.

    Args:
        backend: Proving backend (snarkjs, rapidsnark, ...)
        hasher: H4 Poseidon instance shared with the commitment engine
        manifest: Where the circuit artifacts live
        cache: Artifact cache; share one across generators to load once
        settings: Concurrency and command options

    Example:
        >>> generator = ProofGenerator(SnarkjsProver(), h4, manifest)
        >>> proofs = await generator.generate_pack("cred-001", secrets, ["dean-list-2023"])
    """

    def __init__(
        self,
        backend: ProvingBackend,
        hasher: Poseidon,
        manifest: CircuitManifest,
        cache: Optional[ArtifactCache] = None,
        settings: Optional[ProverSettings] = None,
    ):
        self._backend = backend
        self._engine = CommitmentEngine(hasher)
        self._manifest = manifest
        self._cache = cache if cache is not None else ArtifactCache()
        self._settings = settings if settings is not None else ProverSettings()

    @property
    def cache(self) -> ArtifactCache:
        return self._cache

    @property
    def engine(self) -> CommitmentEngine:
        return self._engine

    # ========================================================================
    # ARTIFACTS
    # ========================================================================

    async def _load_artifacts(
        self, reporter: _ProgressReporter, code: str
    ) -> CircuitArtifacts:
        manifest = self._manifest

        async def _loader() -> CircuitArtifacts:
            await reporter.emit(
                code, ProofStage.LOADING_WASM, PERCENT_LOADING_WASM, "Loading circuit..."
            )
            wasm = await fetch_artifact(manifest.wasm)
            await reporter.emit(
                code,
                ProofStage.LOADING_ZKEY,
                PERCENT_LOADING_ZKEY,
                "Loading proving key (this may take a moment)...",
            )
            zkey = await fetch_artifact(manifest.zkey)
            return CircuitArtifacts(circuit_id=manifest.circuit_id, wasm=wasm, zkey=zkey)

        return await self._cache.get_or_load(manifest.circuit_id, _loader)

    async def preload(self) -> bool:
        """
        Warm the artifact cache. Failures are logged, not raised.

        Returns:
            True if the artifacts are cached afterwards
        """
        try:
            await self._load_artifacts(_ProgressReporter(None), "")
        except PrivacyProtocolError as exc:
            logger.warning("Artifact preload failed: %s", exc)
            return False
        return True

    # ========================================================================
    # PROVING
    # ========================================================================

    def _witness_input(self, commitment: Commitment, secrets: DerivedSecrets) -> Dict[str, str]:
        return {
            "commitment": str(commitment.commitment),
            "credential_hash": str(commitment.credential_hash),
            "achievement_hash": str(commitment.achievement_hash),
            "student_secret": str(secrets.student_secret),
            "salt": str(secrets.salt),
        }

    async def _prove_one(
        self,
        artifacts: CircuitArtifacts,
        code: str,
        commitment: Commitment,
        secrets: DerivedSecrets,
    ) -> GeneratedProof:
        try:
            proof_dict, public_signals = await self._backend.prove(
                artifacts, self._witness_input(commitment, secrets)
            )
        except ProofGenerationError as exc:
            if exc.achievement_code is None:
                exc.achievement_code = code
            raise
        except Exception as exc:
            raise ProofGenerationError(f"proving backend failed: {exc}", code) from exc

        expected = commitment.public_signals()
        if list(public_signals) != expected:
            raise ProofGenerationError(
                "prover returned unexpected public signals", code
            )
        try:
            proof = Groth16Proof.from_dict(proof_dict)
        except ValueError as exc:
            raise ProofGenerationError(f"prover returned a malformed proof: {exc}", code) from exc

        return GeneratedProof(
            achievement_code=code,
            proof=proof,
            public_signals=tuple(expected),
            commitment=expected[0],
        )

    async def generate_pack(
        self,
        credential_id: str,
        secrets: DerivedSecrets,
        achievements: Sequence[str],
        progress: Optional[trio.MemorySendChannel] = None,
        expected_commitments: Optional[Mapping[str, int]] = None,
    ) -> List[GeneratedProof]:
        """
        Generate one proof per achievement code, in input order.

        Args:
            credential_id: Credential the achievements belong to
            secrets: Holder secrets from SecretDeriver
            achievements: Achievement codes; repeats are proved once
            progress: Optional channel receiving ProofProgress events
            expected_commitments: Recorded commitments by achievement code;
                a locally computed commitment that differs fails that
                achievement (typically a different wallet)

        Returns:
            GeneratedProof list in input order

        Raises:
            InputEncodingError: Empty or unencodable identifiers, or a bare
                string passed as the achievement list
            ArtifactFetchError: Circuit artifacts could not be loaded
            ProofBatchError: An achievement failed; `.completed` holds the
                proofs finished before the failure
        """
        if isinstance(achievements, str):
            raise InputEncodingError("achievements must be a sequence of codes, not a string")
        codes = list(dict.fromkeys(achievements))
        if not codes:
            return []

        commitments = self._engine.commit_many(credential_id, codes, secrets)
        reporter = _ProgressReporter(progress)

        try:
            artifacts = await self._load_artifacts(reporter, codes[0])
        except PrivacyProtocolError as exc:
            await reporter.emit(
                codes[0], ProofStage.ERROR, reporter.percent, f"Failed to load circuit: {exc}"
            )
            raise

        total = len(codes)
        results: List[Optional[GeneratedProof]] = [None] * total
        failures: List[ProofGenerationError] = []
        done = 0

        async def _run(index: int, nursery: trio.Nursery) -> None:
            nonlocal done
            code = codes[index]
            commitment = commitments[code]
            await reporter.emit(
                code,
                ProofStage.GENERATING_PROOF,
                PERCENT_PROVING_START + 50.0 * done / total,
                f'Generating proof for "{code}"...',
            )
            try:
                if expected_commitments is not None and code in expected_commitments:
                    if expected_commitments[code] != commitment.commitment:
                        raise ProofGenerationError(
                            "computed commitment does not match the recorded commitment",
                            code,
                        )
                results[index] = await self._prove_one(artifacts, code, commitment, secrets)
            except ProofGenerationError as exc:
                if not failures:
                    failures.append(exc)
                nursery.cancel_scope.cancel()
                return
            done += 1
            logger.info("Generated proof for achievement %s (%d/%d)", code, done, total)
            await reporter.emit(
                code,
                ProofStage.COMPLETE,
                PERCENT_PROVING_START + 50.0 * done / total,
                f'Proof generated for "{code}"',
            )

        pending = iter(range(total))

        async def _worker(nursery: trio.Nursery) -> None:
            for index in pending:
                if failures:
                    return
                await _run(index, nursery)

        workers = min(self._settings.max_concurrent_proofs, total)
        async with trio.open_nursery() as nursery:
            for _ in range(workers):
                nursery.start_soon(_worker, nursery)

        if failures:
            failure = failures[0]
            code = failure.achievement_code or ""
            await reporter.emit(
                code,
                ProofStage.ERROR,
                reporter.percent,
                f"Failed to generate proof: {failure}",
            )
            completed = [proof for proof in results if proof is not None]
            raise ProofBatchError(
                f"proof generation failed for {code!r}: {failure}",
                achievement_code=code,
                completed=completed,
            ) from failure

        return [proof for proof in results if proof is not None]

    async def generate_one(
        self,
        credential_id: str,
        secrets: DerivedSecrets,
        achievement_code: str,
        progress: Optional[trio.MemorySendChannel] = None,
    ) -> GeneratedProof:
        """Single-achievement convenience wrapper around generate_pack()."""
        proofs = await self.generate_pack(credential_id, secrets, [achievement_code], progress)
        return proofs[0]
