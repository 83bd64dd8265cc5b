"""
⚠️ DRAFT — requires crypto review before production use

Custom exceptions for the achievement proof protocol.

Every failure is scoped to a single operation; none of these is fatal to
the host process.
"""


class PrivacyProtocolError(Exception):
    """Base exception for privacy protocol errors."""

    pass


class ConfigurationError(PrivacyProtocolError):
    """Configuration error."""

    pass


class CryptographicError(PrivacyProtocolError):
    """Malformed key, point or other cryptographic material."""

    pass


class InputEncodingError(PrivacyProtocolError):
    """Identifier or field element could not be encoded."""

    pass


class WalletUnavailableError(PrivacyProtocolError):
    """
    Wallet cannot sign right now (disconnected, no signing support, or a
    transient wallet failure). Callers may ask the user to try again.
    """

    pass


class SignatureRejectedError(PrivacyProtocolError):
    """The user declined the signature request."""

    pass


class ArtifactFetchError(PrivacyProtocolError):
    """Circuit artifact could not be fetched or failed its integrity check."""

    pass


class ProofGenerationError(PrivacyProtocolError):
    """Error during proof generation."""

    def __init__(self, message: str, achievement_code: str | None = None):
        super().__init__(message)
        self.achievement_code = achievement_code


class ProofBatchError(ProofGenerationError):
    """
    Proof generation failed part-way through a batch.

    Attributes:
        achievement_code: Achievement whose proof failed
        completed: Proofs finished before the failure, in input order
    """

    def __init__(self, message: str, achievement_code: str, completed: list):
        super().__init__(message, achievement_code)
        self.completed = list(completed)


class ProofVerificationError(PrivacyProtocolError):
    """Raised on request by VerificationResult.raise_for_failure()."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason
