"""
⚠️ DRAFT — requires crypto review before production use

Unit tests for the Poseidon sponge.
"""

from __future__ import annotations

import json
import os

import pytest

from achievement_zk.privacy_protocol.config import BN254_SCALAR_FIELD
from achievement_zk.privacy_protocol.exceptions import ConfigurationError, InputEncodingError
from achievement_zk.privacy_protocol.poseidon import Poseidon, PoseidonParams

# circomlibjs poseidon([1, 2, 3, 4]) and poseidon([1, 2])
CIRCOMLIB_H4_1234 = (
    18821383157269793795438455681495246036402687001665670618754263018637548127333
)
CIRCOMLIB_H2_12 = (
    7853200120776062878684798364095072458815029376092732009249414926327459813530
)


def _params_to_json(params: PoseidonParams) -> dict:
    return {
        "C": [str(value) for value in params.round_constants],
        "M": [[str(value) for value in row] for row in params.mds],
    }


class TestPoseidonParams:
    """Test Poseidon parameter generation and loading."""

    def test_h4_shape(self, h4: Poseidon):
        """Test H4 uses t=5, R_F=8, R_P=60."""
        params = h4.params
        assert params.width == 5
        assert params.arity == 4
        assert params.full_rounds == 8
        assert params.partial_rounds == 60
        assert len(params.round_constants) == (8 + 60) * 5
        assert len(params.mds) == 5
        assert all(len(row) == 5 for row in params.mds)

    def test_constants_in_field(self, h4: Poseidon):
        """Test every constant is a field element."""
        assert all(0 <= c < BN254_SCALAR_FIELD for c in h4.params.round_constants)
        assert all(0 < m < BN254_SCALAR_FIELD for row in h4.params.mds for m in row)

    def test_generation_is_deterministic(self):
        """Test parameter generation is deterministic."""
        first = PoseidonParams.generate(3)
        second = PoseidonParams.generate(3)
        assert first == second

    def test_different_widths_give_different_constants(self, h4: Poseidon):
        """Test different widths seed different constants."""
        narrow = PoseidonParams.generate(3)
        assert narrow.round_constants[:3] != h4.params.round_constants[:3]

    def test_wrong_constant_count_rejected(self, h4: Poseidon):
        """Test a short constant list is rejected."""
        with pytest.raises(ConfigurationError, match="round constants"):
            PoseidonParams(
                width=5,
                full_rounds=8,
                partial_rounds=60,
                alpha=5,
                round_constants=h4.params.round_constants[:-1],
                mds=h4.params.mds,
            )

    def test_from_json_round_trip(self, h4: Poseidon):
        """Test exported constants load back unchanged."""
        loaded = PoseidonParams.from_json(_params_to_json(h4.params))
        assert loaded == h4.params

    def test_from_json_accepts_hex_and_nested_rounds(self, h4: Poseidon):
        """Test hex values and per-round nesting are accepted."""
        params = h4.params
        nested = [
            [hex(c) for c in params.round_constants[r * 5:(r + 1) * 5]]
            for r in range(68)
        ]
        data = {"C": nested, "M": [[hex(m) for m in row] for row in params.mds]}
        assert PoseidonParams.from_json(data) == params

    def test_from_json_file(self, tmp_path, h4: Poseidon):
        """Test constants load from a file path."""
        path = tmp_path / "poseidon.json"
        path.write_text(json.dumps(_params_to_json(h4.params)))
        assert PoseidonParams.from_json(path) == h4.params

    def test_from_json_missing_keys(self):
        """Test JSON without C and M is rejected."""
        with pytest.raises(ConfigurationError):
            PoseidonParams.from_json({"C": []})

    def test_from_json_bad_constant(self, h4: Poseidon):
        """Test a non-numeric constant is rejected."""
        data = _params_to_json(h4.params)
        data["C"][0] = "not-a-number"
        with pytest.raises(ConfigurationError, match="invalid Poseidon constant"):
            PoseidonParams.from_json(data)


class TestPoseidonHash:
    """Test the Poseidon sponge."""

    def test_deterministic(self, h4: Poseidon):
        """Test hashing is deterministic."""
        assert h4([1, 2, 3, 4]) == h4([1, 2, 3, 4])

    def test_output_in_field(self, h4: Poseidon):
        """Test output is a field element."""
        assert 0 <= h4([BN254_SCALAR_FIELD - 1] * 4) < BN254_SCALAR_FIELD

    def test_input_order_matters(self, h4: Poseidon):
        """Test input order changes the output."""
        assert h4([1, 2, 3, 4]) != h4([4, 3, 2, 1])

    def test_each_input_changes_output(self, h4: Poseidon):
        """Test every input position affects the output."""
        base = h4([1, 2, 3, 4])
        for index in range(4):
            inputs = [1, 2, 3, 4]
            inputs[index] += 1
            assert h4(inputs) != base

    def test_hash_alias(self, h4: Poseidon):
        """Test hash() matches calling the instance."""
        assert h4.hash([0, 0, 0, 0]) == h4([0, 0, 0, 0])

    def test_wrong_arity(self, h4: Poseidon):
        """Test the wrong number of inputs is rejected."""
        with pytest.raises(InputEncodingError, match="expects 4 inputs"):
            h4([1, 2, 3])

    @pytest.mark.parametrize("bad", [BN254_SCALAR_FIELD, -1, "1", True])
    def test_non_field_inputs(self, h4: Poseidon, bad):
        """Test non-field inputs are rejected."""
        with pytest.raises(InputEncodingError):
            h4([1, 2, 3, bad])

    def test_for_arity_rejects_zero(self):
        """Test arity zero is rejected."""
        with pytest.raises(ConfigurationError):
            Poseidon.for_arity(0)


class TestCircomlibCompatibility:
    """Test generated parameters reproduce circomlib's Poseidon."""

    def test_h4_matches_circomlib(self):
        """Test H4(1, 2, 3, 4) equals the circomlibjs value."""
        assert Poseidon.for_arity(4)([1, 2, 3, 4]) == CIRCOMLIB_H4_1234

    def test_h2_matches_circomlib(self):
        """Test H2(1, 2) equals the circomlibjs value."""
        assert Poseidon.for_arity(2)([1, 2]) == CIRCOMLIB_H2_12


def test_exported_constants_match_circomlib() -> None:
    """Test constants loaded from a circuit build give the circomlib H4."""
    path = os.getenv("ACHIEVEMENT_ZK_POSEIDON_CONSTANTS")
    if not path or not os.path.exists(path):
        pytest.skip("circomlib Poseidon constants not available")
    h4 = Poseidon(PoseidonParams.from_json(path))
    assert h4([1, 2, 3, 4]) == CIRCOMLIB_H4_1234
