"""
Shared fixtures.

Proof-system tests run against a Groth16 setup simulated from known
trapdoor scalars: the verification key is built from those scalars and
proofs are produced by solving the verification equation for C. The
verifier under test still runs the real BN254 pairing check.
"""

from __future__ import annotations

import secrets
from typing import Any, Dict, List, Optional, Sequence

import pytest
import trio
from py_ecc.optimized_bn128 import G1, G2, curve_order, multiply, normalize

from achievement_zk.privacy_protocol.exceptions import ProofGenerationError
from achievement_zk.privacy_protocol.poseidon import Poseidon
from achievement_zk.privacy_protocol.snark.assets import CircuitArtifacts
from achievement_zk.privacy_protocol.snark.groth16 import VerificationKey
from achievement_zk.privacy_protocol.wallet import Ed25519Wallet

TEST_SEED = bytes(range(32))
OTHER_SEED = bytes(range(32, 64))


def g1_json(scalar: int) -> List[str]:
    x, y = normalize(multiply(G1, scalar % curve_order))
    return [str(int(x)), str(int(y)), "1"]


def g2_json(scalar: int) -> List[List[str]]:
    x, y = normalize(multiply(G2, scalar % curve_order))
    return [
        [str(int(x.coeffs[0])), str(int(x.coeffs[1]))],
        [str(int(y.coeffs[0])), str(int(y.coeffs[1]))],
        ["1", "0"],
    ]


class SimulatedGroth16:
    """Groth16 key pair for a 3-public-signal circuit with a known trapdoor."""

    ALPHA = 5
    BETA = 7
    GAMMA = 11
    DELTA = 13
    IC = (17, 19, 23, 29)

    def __init__(self):
        self.vk_dict = {
            "protocol": "groth16",
            "curve": "bn128",
            "nPublic": 3,
            "vk_alpha_1": g1_json(self.ALPHA),
            "vk_beta_2": g2_json(self.BETA),
            "vk_gamma_2": g2_json(self.GAMMA),
            "vk_delta_2": g2_json(self.DELTA),
            "IC": [g1_json(k) for k in self.IC],
        }

    def prove(self, public_signals: Sequence[str], a: int = 3, b: int = 4) -> Dict[str, Any]:
        r = curve_order
        x = self.IC[0]
        for signal, ic in zip(public_signals, self.IC[1:]):
            x += int(signal) * ic
        c = (a * b - self.ALPHA * self.BETA - self.GAMMA * x) * pow(self.DELTA, -1, r) % r
        return {
            "pi_a": g1_json(a),
            "pi_b": g2_json(b),
            "pi_c": g1_json(c),
            "protocol": "groth16",
            "curve": "bn128",
        }


class FakeProver:
    """
    Proving backend that enforces the commitment relation and emits
    simulated proofs. Each proof uses fresh random A and B, so proving the
    same input twice gives different proofs.
    """

    def __init__(self, setup: SimulatedGroth16, hasher: Poseidon, fail_on: Optional[set] = None):
        self._setup = setup
        self._hasher = hasher
        self._fail_on = fail_on or set()
        self.calls: List[Dict[str, str]] = []

    async def prove(self, artifacts: CircuitArtifacts, witness_input: Dict[str, str]):
        await trio.sleep(0)
        self.calls.append(dict(witness_input))
        if witness_input["achievement_hash"] in self._fail_on:
            raise ProofGenerationError("witness generation failed")
        expected = self._hasher(
            [
                int(witness_input["credential_hash"]),
                int(witness_input["student_secret"]),
                int(witness_input["salt"]),
                int(witness_input["achievement_hash"]),
            ]
        )
        if str(expected) != witness_input["commitment"]:
            raise ProofGenerationError("constraint not satisfied")
        public = [
            witness_input["commitment"],
            witness_input["credential_hash"],
            witness_input["achievement_hash"],
        ]
        a = secrets.randbelow(curve_order - 1) + 1
        b = secrets.randbelow(curve_order - 1) + 1
        return self._setup.prove(public, a, b), public


@pytest.fixture(scope="session")
def h4() -> Poseidon:
    return Poseidon.for_arity(4)


@pytest.fixture(scope="session")
def groth16_setup() -> SimulatedGroth16:
    return SimulatedGroth16()


@pytest.fixture(scope="session")
def verification_key(groth16_setup: SimulatedGroth16) -> VerificationKey:
    return VerificationKey.from_dict(groth16_setup.vk_dict)


@pytest.fixture
def fake_prover(groth16_setup: SimulatedGroth16, h4: Poseidon) -> FakeProver:
    return FakeProver(groth16_setup, h4)


@pytest.fixture
def wallet() -> Ed25519Wallet:
    return Ed25519Wallet(TEST_SEED)


@pytest.fixture
def other_wallet() -> Ed25519Wallet:
    return Ed25519Wallet(OTHER_SEED)


@pytest.fixture
def artifacts_dir(tmp_path):
    directory = tmp_path / "artifacts"
    directory.mkdir()
    (directory / "ach_member_v1.wasm").write_bytes(b"\x00asm-test-circuit")
    (directory / "ach_member_v1.zkey").write_bytes(b"zkey-test-material")
    return directory


@pytest.fixture
def make_prover(groth16_setup: SimulatedGroth16, h4: Poseidon):
    def _make(fail_on: Optional[set] = None) -> FakeProver:
        return FakeProver(groth16_setup, h4, fail_on)

    return _make
