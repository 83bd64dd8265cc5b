"""
Groth16 proving backends.

Proving runs in a separate process (snarkjs or rapidsnark), awaited with
trio.run_process, so the event loop keeps running while a proof is built.
There is no internal timeout; callers wrap the call in a trio cancel scope
if they need one.
"""

from __future__ import annotations

import json
import logging
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence, Tuple, runtime_checkable

import trio

from ..exceptions import ProofGenerationError
from .assets import CircuitArtifacts

logger = logging.getLogger(__name__)

ProveResult = Tuple[Dict[str, Any], List[str]]

_STDERR_SUMMARY_CHARS = 500


@runtime_checkable
class ProvingBackend(Protocol):
    """Turns a witness input into a (proof, public_signals) pair."""

    async def prove(
        self, artifacts: CircuitArtifacts, witness_input: Dict[str, str]
    ) -> ProveResult:
        ...


def _write_inputs(workdir: Path, artifacts: CircuitArtifacts, witness_input: Dict[str, str]) -> None:
    (workdir / "circuit.wasm").write_bytes(artifacts.wasm)
    (workdir / "circuit.zkey").write_bytes(artifacts.zkey)
    (workdir / "input.json").write_text(json.dumps(witness_input), encoding="utf-8")


def _read_outputs(workdir: Path) -> ProveResult:
    try:
        proof = json.loads((workdir / "proof.json").read_text(encoding="utf-8"))
        public_signals = json.loads((workdir / "public.json").read_text(encoding="utf-8"))
    except OSError as exc:
        raise ProofGenerationError(f"prover produced no output: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ProofGenerationError(f"prover produced malformed JSON: {exc}") from exc
    if not isinstance(proof, dict) or not isinstance(public_signals, list):
        raise ProofGenerationError("prover output has an unexpected shape")
    return proof, [str(signal) for signal in public_signals]


async def _run(command: Sequence[str], cwd: Path) -> None:
    logger.debug("Running prover command: %s", " ".join(command))
    try:
        result = await trio.run_process(
            list(command),
            cwd=str(cwd),
            capture_stdout=True,
            capture_stderr=True,
            check=False,
        )
    except OSError as exc:
        raise ProofGenerationError(f"cannot start {command[0]}: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        stderr = stderr[:_STDERR_SUMMARY_CHARS] or "unknown prover error"
        raise ProofGenerationError(f"{command[0]} exited with {result.returncode}: {stderr}")


class SnarkjsProver:
    """
    snarkjs groth16 fullprove input.json circuit.wasm circuit.zkey proof.json public.json
    """

    def __init__(self, snarkjs_command: Sequence[str] = ("snarkjs",), **_: Any):
        self._snarkjs = tuple(snarkjs_command)

    async def prove(
        self, artifacts: CircuitArtifacts, witness_input: Dict[str, str]
    ) -> ProveResult:
        with tempfile.TemporaryDirectory(prefix="achievement-zk-") as tmp:
            workdir = Path(tmp)
            await trio.to_thread.run_sync(_write_inputs, workdir, artifacts, witness_input)
            await _run(
                [
                    *self._snarkjs,
                    "groth16",
                    "fullprove",
                    "input.json",
                    "circuit.wasm",
                    "circuit.zkey",
                    "proof.json",
                    "public.json",
                ],
                workdir,
            )
            return await trio.to_thread.run_sync(_read_outputs, workdir)


class RapidsnarkProver:
    """
    Witness with `snarkjs wtns calculate`, proof with the rapidsnark `prover`
    binary.
    """

    def __init__(
        self,
        snarkjs_command: Sequence[str] = ("snarkjs",),
        rapidsnark_command: Sequence[str] = ("prover",),
        **_: Any,
    ):
        self._snarkjs = tuple(snarkjs_command)
        self._rapidsnark = tuple(rapidsnark_command)

    async def prove(
        self, artifacts: CircuitArtifacts, witness_input: Dict[str, str]
    ) -> ProveResult:
        with tempfile.TemporaryDirectory(prefix="achievement-zk-") as tmp:
            workdir = Path(tmp)
            await trio.to_thread.run_sync(_write_inputs, workdir, artifacts, witness_input)
            await _run(
                [*self._snarkjs, "wtns", "calculate", "circuit.wasm", "input.json", "witness.wtns"],
                workdir,
            )
            await _run(
                [*self._rapidsnark, "circuit.zkey", "witness.wtns", "proof.json", "public.json"],
                workdir,
            )
            return await trio.to_thread.run_sync(_read_outputs, workdir)
