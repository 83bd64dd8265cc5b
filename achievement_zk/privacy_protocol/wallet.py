"""
Wallet signing interface.

Secrets are never stored; they are re-derived from a wallet signature over
a domain-separated message. This only works with a deterministic signature
scheme: Ed25519 signs the same message to the same bytes on every device
holding the key.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from nacl.encoding import HexEncoder
from nacl.signing import SigningKey

from .exceptions import ConfigurationError, SignatureRejectedError


@runtime_checkable
class WalletSigner(Protocol):
    """
    Anything that can sign a message on the holder's behalf.

    `public_key` is None while the wallet is disconnected. `sign_message`
    may wait on the user indefinitely and raises SignatureRejectedError when
    the user declines.
    """

    @property
    def public_key(self) -> Optional[str]:
        ...

    async def sign_message(self, message: bytes) -> bytes:
        ...


class Ed25519Wallet:
    """
    Local Ed25519 wallet backed by a PyNaCl signing key.

    Args:
        seed: 32-byte Ed25519 seed
        reject: When True, every signature request is declined (used to
            exercise the "user declined" path)
    """

    def __init__(self, seed: bytes, *, reject: bool = False):
        if not isinstance(seed, (bytes, bytearray)) or len(seed) != 32:
            raise ConfigurationError("Ed25519 seed must be 32 bytes")
        self._signing_key = SigningKey(bytes(seed))
        self._reject = reject
        self.sign_count = 0

    @classmethod
    def generate(cls) -> "Ed25519Wallet":
        return cls(bytes(SigningKey.generate()))

    @classmethod
    def from_hex(cls, seed_hex: str) -> "Ed25519Wallet":
        try:
            seed = bytes.fromhex(seed_hex.strip())
        except ValueError as exc:
            raise ConfigurationError("Ed25519 seed must be hex encoded") from exc
        return cls(seed)

    @classmethod
    def from_key_file(cls, path: str | Path) -> "Ed25519Wallet":
        """Load a wallet from a file holding a hex-encoded 32-byte seed."""
        return cls.from_hex(Path(path).read_text(encoding="utf-8"))

    @property
    def public_key(self) -> str:
        return self._signing_key.verify_key.encode(encoder=HexEncoder).decode("ascii")

    async def sign_message(self, message: bytes) -> bytes:
        if self._reject:
            raise SignatureRejectedError("user declined the signature request")
        self.sign_count += 1
        return self._signing_key.sign(message).signature
