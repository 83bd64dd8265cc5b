"""
⚠️ DRAFT — requires crypto review before production use

Poseidon sponge over the BN254 scalar field.

Poseidon is the in-circuit hash H4 behind the achievement commitment:

    C = Poseidon(credential_hash, student_secret, salt, achievement_hash)

Construction (circomlib layout, unoptimized form):
    - state = [0, x1, ..., xn] of width t = n + 1
    - R_F full rounds split around R_P partial rounds
    - every round: add round constants, S-box x^alpha (all cells in full
      rounds, cell 0 only in partial rounds), multiply by the MDS matrix
    - output state[0]

Parameters:
    Round constants and the Cauchy MDS matrix come from the Grain LFSR
    procedure of the Poseidon reference parameter script (prime field,
    x^alpha S-box). The circuit artifacts are an external input, so
    constants exported from the exact circomlib build can be loaded with
    PoseidonParams.from_json() instead.
"""

from __future__ import annotations

import json
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Sequence, Tuple

from .config import (
    BN254_SCALAR_FIELD,
    FIELD_SIZE_BITS,
    POSEIDON_ALPHA,
    POSEIDON_ARITY,
    POSEIDON_FULL_ROUNDS,
    partial_rounds_for_width,
)
from .exceptions import ConfigurationError, InputEncodingError


@dataclass(frozen=True)
class PoseidonParams:
    """
    Poseidon permutation parameters.

    Attributes:
        width: State width t (arity + 1)
        full_rounds: R_F
        partial_rounds: R_P
        alpha: S-box exponent
        round_constants: (R_F + R_P) * t constants, round-major
        mds: t x t matrix
        prime: Field order
    """

    width: int
    full_rounds: int
    partial_rounds: int
    alpha: int
    round_constants: Tuple[int, ...]
    mds: Tuple[Tuple[int, ...], ...]
    prime: int = BN254_SCALAR_FIELD

    def __post_init__(self):
        expected = (self.full_rounds + self.partial_rounds) * self.width
        if len(self.round_constants) != expected:
            raise ConfigurationError(
                f"expected {expected} round constants, got {len(self.round_constants)}"
            )
        if len(self.mds) != self.width or any(len(row) != self.width for row in self.mds):
            raise ConfigurationError(f"MDS matrix must be {self.width}x{self.width}")
        if self.full_rounds % 2:
            raise ConfigurationError("full_rounds must be even")
        for value in self.round_constants:
            if not 0 <= value < self.prime:
                raise ConfigurationError("round constant out of field range")
        for row in self.mds:
            for value in row:
                if not 0 <= value < self.prime:
                    raise ConfigurationError("MDS entry out of field range")

    @property
    def arity(self) -> int:
        return self.width - 1

    @classmethod
    def generate(
        cls,
        width: int,
        full_rounds: int = POSEIDON_FULL_ROUNDS,
        partial_rounds: int | None = None,
        alpha: int = POSEIDON_ALPHA,
        prime: int = BN254_SCALAR_FIELD,
        field_bits: int = FIELD_SIZE_BITS,
    ) -> "PoseidonParams":
        """
        Generate parameters with the Grain LFSR.

        The LFSR is seeded with the parameter set itself, so the output is
        a deterministic function of (field, sbox, n, t, R_F, R_P).
        """
        if partial_rounds is None:
            partial_rounds = partial_rounds_for_width(width)

        grain = _GrainLFSR(
            field_bits=field_bits,
            width=width,
            full_rounds=full_rounds,
            partial_rounds=partial_rounds,
        )

        num_constants = (full_rounds + partial_rounds) * width
        constants = []
        for _ in range(num_constants):
            value = grain.random_int(field_bits)
            while value >= prime:
                value = grain.random_int(field_bits)
            constants.append(value)

        mds = _cauchy_mds(grain, width, prime, field_bits)

        return cls(
            width=width,
            full_rounds=full_rounds,
            partial_rounds=partial_rounds,
            alpha=alpha,
            round_constants=tuple(constants),
            mds=mds,
            prime=prime,
        )

    @classmethod
    def from_json(
        cls,
        path_or_data,
        *,
        full_rounds: int = POSEIDON_FULL_ROUNDS,
        partial_rounds: int | None = None,
        alpha: int = POSEIDON_ALPHA,
    ) -> "PoseidonParams":
        """
        Load constants from a JSON document.

        Expected shape: {"C": [...], "M": [[...], ...]} with decimal or
        0x-prefixed hex strings (or ints). "C" may be flat or one list per
        round.
        """
        if isinstance(path_or_data, (str, Path)):
            data = json.loads(Path(path_or_data).read_text(encoding="utf-8"))
        else:
            data = path_or_data

        if not isinstance(data, dict) or "C" not in data or "M" not in data:
            raise ConfigurationError("Poseidon constants must contain 'C' and 'M'")

        raw_constants = data["C"]
        if raw_constants and isinstance(raw_constants[0], list):
            raw_constants = [value for row in raw_constants for value in row]
        mds = tuple(tuple(_parse_constant(value) for value in row) for row in data["M"])
        width = len(mds)
        if partial_rounds is None:
            partial_rounds = partial_rounds_for_width(width)

        return cls(
            width=width,
            full_rounds=full_rounds,
            partial_rounds=partial_rounds,
            alpha=alpha,
            round_constants=tuple(_parse_constant(value) for value in raw_constants),
            mds=mds,
        )


class Poseidon:
    """
    Fixed-arity Poseidon hash.

    Construct once at startup and inject where hashing is needed:

        >>> h4 = Poseidon.for_arity(4)
        >>> c = h4([1, 2, 3, 4])
    """

    def __init__(self, params: PoseidonParams):
        self._params = params

    @classmethod
    def for_arity(cls, arity: int = POSEIDON_ARITY) -> "Poseidon":
        if arity < 1:
            raise ConfigurationError("Poseidon arity must be >= 1")
        return cls(PoseidonParams.generate(arity + 1))

    @property
    def params(self) -> PoseidonParams:
        return self._params

    @property
    def arity(self) -> int:
        return self._params.arity

    def __call__(self, inputs: Sequence[int]) -> int:
        return self.hash(inputs)

    def hash(self, inputs: Sequence[int]) -> int:
        """
        Hash exactly `arity` field elements.

        Raises:
            InputEncodingError: On wrong input count or non-canonical values
        """
        params = self._params
        p = params.prime
        if len(inputs) != params.arity:
            raise InputEncodingError(
                f"Poseidon expects {params.arity} inputs, got {len(inputs)}"
            )
        for value in inputs:
            if isinstance(value, bool) or not isinstance(value, int):
                raise InputEncodingError("Poseidon inputs must be integers")
            if not 0 <= value < p:
                raise InputEncodingError("Poseidon input is not a field element")

        t = params.width
        half_full = params.full_rounds // 2
        total_rounds = params.full_rounds + params.partial_rounds
        constants = params.round_constants
        mds = params.mds
        alpha = params.alpha

        state = [0, *inputs]
        for r in range(total_rounds):
            offset = r * t
            state = [(state[i] + constants[offset + i]) % p for i in range(t)]
            if r < half_full or r >= half_full + params.partial_rounds:
                state = [pow(x, alpha, p) for x in state]
            else:
                state[0] = pow(state[0], alpha, p)
            state = [
                sum(row[j] * state[j] for j in range(t)) % p
                for row in mds
            ]
        return state[0]


# ============================================================================
# GRAIN LFSR
# ============================================================================


class _GrainLFSR:
    """
    80-bit self-shrinking Grain LFSR from the Poseidon reference scripts.

    Seed layout (MSB first): field type (2 bits, 1 = prime), S-box
    (4 bits, 0 = x^alpha), field size n (12), width t (12), R_F (10),
    R_P (10), then 30 one-bits. The first 160 outputs are discarded.
    """

    _TAPS = (62, 51, 38, 23, 13, 0)

    def __init__(self, field_bits: int, width: int, full_rounds: int, partial_rounds: int):
        seed = (
            _bits(1, 2)
            + _bits(0, 4)
            + _bits(field_bits, 12)
            + _bits(width, 12)
            + _bits(full_rounds, 10)
            + _bits(partial_rounds, 10)
            + [1] * 30
        )
        self._state = deque(seed, maxlen=80)
        for _ in range(160):
            self._step()
        self._bits = self._generator()

    def _step(self) -> int:
        state = self._state
        new_bit = 0
        for tap in self._TAPS:
            new_bit ^= state[tap]
        state.append(new_bit)
        return new_bit

    def _generator(self) -> Iterator[int]:
        # Self-shrinking: output the second bit of each pair whose first
        # bit is 1.
        while True:
            new_bit = self._step()
            while new_bit == 0:
                self._step()
                new_bit = self._step()
            yield self._step()

    def random_int(self, num_bits: int) -> int:
        value = 0
        for _ in range(num_bits):
            value = (value << 1) | next(self._bits)
        return value


def _bits(value: int, width: int) -> list:
    return [int(bit) for bit in format(value, f"0{width}b")]


def _cauchy_mds(grain: _GrainLFSR, width: int, prime: int, field_bits: int):
    """M[i][j] = 1 / (x_i + y_j) from 2t distinct LFSR samples."""
    while True:
        samples = [grain.random_int(field_bits) % prime for _ in range(2 * width)]
        while len(set(samples)) != len(samples):
            samples = [grain.random_int(field_bits) % prime for _ in range(2 * width)]
        xs = samples[:width]
        ys = samples[width:]
        if any((x + y) % prime == 0 for x in xs for y in ys):
            continue
        return tuple(
            tuple(pow((x + y) % prime, -1, prime) for y in ys)
            for x in xs
        )


def _parse_constant(value) -> int:
    if isinstance(value, bool):
        raise ConfigurationError("invalid Poseidon constant")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        try:
            return int(text, 16) if text.startswith("0x") else int(text)
        except ValueError as exc:
            raise ConfigurationError(f"invalid Poseidon constant: {value!r}") from exc
    raise ConfigurationError(f"invalid Poseidon constant: {value!r}")
