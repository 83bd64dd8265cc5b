"""
⚠️ DRAFT — requires crypto review before production use

Protocol configuration for achievement membership proofs.

All values here are part of the protocol: changing any of them changes the
derived secrets, commitments or public signals, and invalidates every
commitment already recorded at issuance time.
"""

# ============================================================================
# FIELD SELECTION
# ============================================================================

# BN254 (alt_bn128) is the curve used by circom/snarkjs Groth16 circuits.
CURVE_NAME = "bn128"
PROOF_PROTOCOL = "groth16"

# Scalar field order p. Every value entering the circuit lives in [0, p).
BN254_SCALAR_FIELD = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

# Base field order q. Curve point coordinates live in [0, q).
BN254_BASE_FIELD = (
    21888242871839275222246405745257275088696311157297823662689037894645226208583
)

FIELD_SIZE_BITS = 254

# ============================================================================
# DOMAIN SEPARATION
# ============================================================================

# Signed message is f"{ZK_DOMAIN_SEPARATOR}:{credential_id}". The same tag is
# the HKDF salt parameter (not the protocol's own `salt` output).
ZK_DOMAIN_SEPARATOR = "GenuineGrads:ZK:v1"

HKDF_INFO_STUDENT_SECRET = b"student_secret"
HKDF_INFO_SALT = b"salt"
HKDF_OUTPUT_BYTES = 32

# ============================================================================
# CIRCUIT
# ============================================================================

CIRCUIT_ID = "ach_member_v1"

# Order the circuit declares its public outputs in.
PUBLIC_SIGNAL_NAMES = ("commitment", "credential_hash", "achievement_hash")
NUM_PUBLIC_SIGNALS = len(PUBLIC_SIGNAL_NAMES)

# Poseidon H4: 4 inputs + 1 capacity cell.
POSEIDON_ARITY = 4
POSEIDON_WIDTH = POSEIDON_ARITY + 1
POSEIDON_FULL_ROUNDS = 8
# Partial rounds indexed by width - 2 (circomlib table).
POSEIDON_PARTIAL_ROUNDS = (56, 57, 56, 60, 60, 63, 64, 63, 60, 66, 60, 65, 70, 60, 64, 68)
POSEIDON_ALPHA = 5

# ============================================================================
# SESSION CACHE
# ============================================================================

SIGNATURE_CACHE_TTL_SECONDS = 30 * 60

# ============================================================================
# LIMITS
# ============================================================================

DEFAULT_MAX_CONCURRENT_PROOFS = 1
ARTIFACT_FETCH_TIMEOUT = 30.0

MAX_VERIFICATION_KEY_BYTES = 1024 * 1024
MAX_PROOF_JSON_BYTES = 16 * 1024

PROOF_PACK_VERSION = 1

# ============================================================================
# VALIDATION
# ============================================================================


def validate_config() -> bool:
    """
    Validate configuration parameters.

    Returns:
        True if configuration is valid

    Raises:
        AssertionError: If configuration is invalid
    """
    assert BN254_SCALAR_FIELD.bit_length() == FIELD_SIZE_BITS, "Field size mismatch"
    assert BN254_SCALAR_FIELD < BN254_BASE_FIELD, "Scalar field must be below base field"
    assert HKDF_INFO_STUDENT_SECRET != HKDF_INFO_SALT, "HKDF labels must differ"
    assert HKDF_OUTPUT_BYTES >= 32, "HKDF output too small"
    assert 2 <= POSEIDON_WIDTH <= len(POSEIDON_PARTIAL_ROUNDS) + 1, "Unsupported Poseidon width"
    assert POSEIDON_FULL_ROUNDS % 2 == 0, "Full rounds must split evenly"
    assert SIGNATURE_CACHE_TTL_SECONDS > 0, "Signature cache TTL must be positive"
    assert DEFAULT_MAX_CONCURRENT_PROOFS >= 1, "Concurrency limit must be >= 1"
    return True


def partial_rounds_for_width(width: int) -> int:
    """Partial round count for a Poseidon state of the given width."""
    index = width - 2
    if index < 0 or index >= len(POSEIDON_PARTIAL_ROUNDS):
        raise ValueError(f"Unsupported Poseidon width: {width}")
    return POSEIDON_PARTIAL_ROUNDS[index]


# Auto-validate on import
validate_config()
