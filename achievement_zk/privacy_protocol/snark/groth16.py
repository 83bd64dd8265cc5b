"""
⚠️ DRAFT — requires crypto review before production use

Groth16 verification over BN254 with py_ecc.

Accept iff

    e(-A, B) * e(alpha, beta) * e(vk_x, gamma) * e(C, delta) == 1
    vk_x = IC[0] + sum(s_i * IC[i + 1])

Point encoding follows snarkjs JSON: G1 as [x, y, z] and G2 as
[[x0, x1], [y0, y1], [z0, z1]], every coordinate a decimal string, z = 1
for affine points and z = 0 for the point at infinity. An Fq2 element
[c0, c1] is c0 + c1 * i.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence, Tuple

from py_ecc.optimized_bn128 import (
    FQ,
    FQ2,
    FQ12,
    Z1,
    Z2,
    add,
    b,
    b2,
    curve_order,
    final_exponentiate,
    is_inf,
    is_on_curve,
    multiply,
    neg,
    pairing,
)

from ..config import BN254_BASE_FIELD, BN254_SCALAR_FIELD, CURVE_NAME, PROOF_PROTOCOL
from ..exceptions import CryptographicError, InputEncodingError
from ..field import parse_field_element
from ..types import Groth16Proof

logger = logging.getLogger(__name__)

assert curve_order == BN254_SCALAR_FIELD, "py_ecc curve order does not match BN254"

G1Point = Tuple[FQ, FQ, FQ]
G2Point = Tuple[FQ2, FQ2, FQ2]


# ============================================================================
# POINT PARSING
# ============================================================================


def _coordinate(value: Any) -> int:
    if not isinstance(value, str) or not value.isascii() or not value.isdigit():
        raise CryptographicError(f"coordinate must be a decimal string: {value!r}")
    number = int(value)
    if number >= BN254_BASE_FIELD:
        raise CryptographicError("coordinate exceeds the base field")
    return number


def parse_g1(coords: Any) -> G1Point:
    """
    Parse a snarkjs G1 point.

    Raises:
        CryptographicError: Wrong shape, non-canonical coordinates, or a
            point that is not on the curve
    """
    if not isinstance(coords, (list, tuple)) or len(coords) not in (2, 3):
        raise CryptographicError("G1 point must have 2 or 3 coordinates")
    x, y = _coordinate(coords[0]), _coordinate(coords[1])
    z = _coordinate(coords[2]) if len(coords) == 3 else 1
    if z == 0:
        return Z1
    if z != 1:
        raise CryptographicError("G1 point must be affine (z = 1)")
    point = (FQ(x), FQ(y), FQ(1))
    if not is_on_curve(point, b):
        raise CryptographicError("G1 point is not on the curve")
    return point


def _fq2(value: Any) -> FQ2:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise CryptographicError("Fq2 element must have 2 components")
    return FQ2([_coordinate(value[0]), _coordinate(value[1])])


def parse_g2(coords: Any) -> G2Point:
    """
    Parse a snarkjs G2 point and check it lies in the order-r subgroup.

    Raises:
        CryptographicError: Wrong shape, off-curve or outside the subgroup
    """
    if not isinstance(coords, (list, tuple)) or len(coords) not in (2, 3):
        raise CryptographicError("G2 point must have 2 or 3 coordinates")
    x, y = _fq2(coords[0]), _fq2(coords[1])
    z = _fq2(coords[2]) if len(coords) == 3 else FQ2.one()
    if z == FQ2.zero():
        return Z2
    if z != FQ2.one():
        raise CryptographicError("G2 point must be affine (z = 1)")
    point = (x, y, FQ2.one())
    if not is_on_curve(point, b2):
        raise CryptographicError("G2 point is not on the twist curve")
    # r*Q == O  <=>  (r-1)*Q + Q == O
    if not is_inf(add(multiply(point, curve_order - 1), point)):
        raise CryptographicError("G2 point is not in the prime-order subgroup")
    return point


# ============================================================================
# VERIFICATION KEY
# ============================================================================


@dataclass(frozen=True)
class VerificationKey:
    """
    Parsed snarkjs Groth16 verification key.

    Attributes:
        n_public: Number of public signals the circuit exposes
        ic: IC[0..n_public] in G1
    """

    alpha_g1: G1Point
    beta_g2: G2Point
    gamma_g2: G2Point
    delta_g2: G2Point
    ic: Tuple[G1Point, ...]
    n_public: int
    protocol: str = PROOF_PROTOCOL
    curve: str = CURVE_NAME

    @classmethod
    def from_dict(cls, data: Any) -> "VerificationKey":
        """
        Build from the verification_key.json object snarkjs exports.

        Raises:
            CryptographicError: If the key is malformed
        """
        if not isinstance(data, dict):
            raise CryptographicError("verification key must be an object")
        protocol = data.get("protocol", PROOF_PROTOCOL)
        curve = data.get("curve", CURVE_NAME)
        if protocol != PROOF_PROTOCOL:
            raise CryptographicError(f"unsupported protocol: {protocol!r}")
        if curve != CURVE_NAME:
            raise CryptographicError(f"unsupported curve: {curve!r}")

        try:
            n_public = data["nPublic"]
            raw_ic = data["IC"]
            alpha = parse_g1(data["vk_alpha_1"])
            beta = parse_g2(data["vk_beta_2"])
            gamma = parse_g2(data["vk_gamma_2"])
            delta = parse_g2(data["vk_delta_2"])
        except KeyError as exc:
            raise CryptographicError(f"verification key missing {exc}") from exc

        if isinstance(n_public, bool) or not isinstance(n_public, int) or n_public < 0:
            raise CryptographicError("nPublic must be a non-negative integer")
        if not isinstance(raw_ic, list) or len(raw_ic) != n_public + 1:
            raise CryptographicError("IC must contain nPublic + 1 points")

        return cls(
            alpha_g1=alpha,
            beta_g2=beta,
            gamma_g2=gamma,
            delta_g2=delta,
            ic=tuple(parse_g1(point) for point in raw_ic),
            n_public=n_public,
            protocol=protocol,
            curve=curve,
        )


# ============================================================================
# VERIFICATION
# ============================================================================


def parse_public_signals(public_signals: Sequence[Any], expected: int) -> Tuple[int, ...]:
    """
    Canonical decimal strings below the scalar field order.

    Raises:
        InputEncodingError: Wrong count or malformed signal
    """
    if not isinstance(public_signals, (list, tuple)) or len(public_signals) != expected:
        raise InputEncodingError(f"expected {expected} public signals")
    return tuple(parse_field_element(signal) for signal in public_signals)


def verify_groth16(
    vk: VerificationKey, proof: Groth16Proof | dict, public_signals: Sequence[Any]
) -> bool:
    """
    Run the Groth16 pairing check.

    Returns False for any malformed proof, signal or point rather than
    raising.
    """
    try:
        if isinstance(proof, dict):
            proof = Groth16Proof.from_dict(proof)
        if proof.protocol != PROOF_PROTOCOL or proof.curve != CURVE_NAME:
            return False
        signals = parse_public_signals(public_signals, vk.n_public)
        a = parse_g1(proof.pi_a)
        b_point = parse_g2(proof.pi_b)
        c = parse_g1(proof.pi_c)
    except (ValueError, CryptographicError, InputEncodingError) as exc:
        logger.debug("Rejecting malformed Groth16 input: %s", exc)
        return False

    vk_x = vk.ic[0]
    for signal, ic_point in zip(signals, vk.ic[1:]):
        if signal:
            vk_x = add(vk_x, multiply(ic_point, signal))

    product = (
        pairing(b_point, neg(a), False)
        * pairing(vk.beta_g2, vk.alpha_g1, False)
        * pairing(vk.gamma_g2, vk_x, False)
        * pairing(vk.delta_g2, c, False)
    )
    return final_exponentiate(product) == FQ12.one()
