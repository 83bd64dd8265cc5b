"""
⚠️ DRAFT — requires crypto review before production use

Deterministic secret derivation from a wallet signature.

Same wallet + same credential id = same signature = same secrets, on any
device holding the key. Nothing secret is ever persisted; only the
signature is cached, in memory, for one session window.

Derivation:
    message   = f"{ZK_DOMAIN_SEPARATOR}:{credential_id}"        (UTF-8)
    signature = wallet.sign(message)
    secret    = HKDF-SHA256(ikm=signature, salt=domain tag,
                            info="student_secret", L=32) mod p
    salt      = HKDF-SHA256(ikm=signature, salt=domain tag,
                            info="salt", L=32) mod p

The HKDF `salt` parameter is the protocol domain tag. It is unrelated to
the protocol's own `salt` output.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

import trio
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .config import (
    BN254_SCALAR_FIELD,
    HKDF_INFO_SALT,
    HKDF_INFO_STUDENT_SECRET,
    HKDF_OUTPUT_BYTES,
    SIGNATURE_CACHE_TTL_SECONDS,
    ZK_DOMAIN_SEPARATOR,
)
from .exceptions import SignatureRejectedError, WalletUnavailableError
from .types import DerivedSecrets
from .wallet import WalletSigner

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


# ============================================================================
# SIGNATURE CACHE
# ============================================================================


@dataclass(frozen=True)
class _CachedSignature:
    signature: bytes
    created_at: float


class SignatureCache:
    """
    Session-scoped, in-memory signature cache.

    Keyed by (credential_id, wallet_public_key). An entry is served while
    `now - created_at <= ttl`; afterwards it is evicted on access.

    Args:
        ttl: Lifetime in seconds
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        ttl: float = SIGNATURE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[CacheKey, _CachedSignature] = {}

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, credential_id: str, wallet_public_key: str) -> Optional[bytes]:
        key = (credential_id, wallet_public_key)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.created_at > self._ttl:
            self._entries.pop(key, None)
            return None
        return entry.signature

    def put(self, credential_id: str, wallet_public_key: str, signature: bytes) -> None:
        self._entries[(credential_id, wallet_public_key)] = _CachedSignature(
            signature=bytes(signature),
            created_at=self._clock(),
        )

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(*key) is not None


# ============================================================================
# DERIVATION
# ============================================================================


def _hkdf_field_element(signature: bytes, info: bytes, domain: bytes) -> int:
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=HKDF_OUTPUT_BYTES,
        salt=domain,
        info=info,
    )
    derived = hkdf.derive(signature)
    return int.from_bytes(derived, "big") % BN254_SCALAR_FIELD


def derive_secrets_from_signature(
    signature: bytes, domain_separator: str = ZK_DOMAIN_SEPARATOR
) -> DerivedSecrets:
    """
    Derive (student_secret, salt) from raw signature bytes.

    Raises:
        ValueError: If the signature is empty
    """
    if not isinstance(signature, (bytes, bytearray)) or not signature:
        raise ValueError("signature must be non-empty bytes")
    domain = domain_separator.encode("utf-8")
    return DerivedSecrets(
        student_secret=_hkdf_field_element(bytes(signature), HKDF_INFO_STUDENT_SECRET, domain),
        salt=_hkdf_field_element(bytes(signature), HKDF_INFO_SALT, domain),
    )


def derivation_message(credential_id: str, domain_separator: str = ZK_DOMAIN_SEPARATOR) -> bytes:
    """The exact bytes the wallet is asked to sign."""
    return f"{domain_separator}:{credential_id}".encode("utf-8")


class SecretDeriver:
    """
    Obtains deterministic secrets for (wallet, credential id).

    Concurrent derive() calls for the same key share a single wallet prompt:
    the first caller signs, the others wait and then read the cache.

    Example:
        >>> deriver = SecretDeriver(SignatureCache())
        >>> secrets = await deriver.derive(wallet, "cred-001")
    """

    def __init__(
        self,
        cache: Optional[SignatureCache] = None,
        domain_separator: str = ZK_DOMAIN_SEPARATOR,
    ):
        self._cache = cache if cache is not None else SignatureCache()
        self._domain_separator = domain_separator
        self._locks: Dict[CacheKey, trio.Lock] = {}

    @property
    def cache(self) -> SignatureCache:
        return self._cache

    async def derive(self, wallet: Optional[WalletSigner], credential_id: str) -> DerivedSecrets:
        """
        Derive secrets, prompting the wallet only on a cache miss.

        Raises:
            WalletUnavailableError: No wallet, no public key, no signing
                support, or the wallet failed for another reason
            SignatureRejectedError: The user declined
            ValueError: Empty credential id
        """
        if not isinstance(credential_id, str) or not credential_id:
            raise ValueError("credential_id must be a non-empty string")

        public_key = _wallet_public_key(wallet)

        signature = self._cache.get(credential_id, public_key)
        if signature is None:
            signature = await self._sign_single_flight(wallet, credential_id, public_key)
        else:
            logger.debug("Using cached signature for credential %s", credential_id)

        return derive_secrets_from_signature(signature, self._domain_separator)

    async def _sign_single_flight(
        self, wallet: WalletSigner, credential_id: str, public_key: str
    ) -> bytes:
        key = (credential_id, public_key)
        lock = self._locks.setdefault(key, trio.Lock())
        try:
            async with lock:
                # Another caller may have signed while we waited.
                signature = self._cache.get(credential_id, public_key)
                if signature is not None:
                    return signature

                message = derivation_message(credential_id, self._domain_separator)
                logger.info("Requesting wallet signature for credential %s", credential_id)
                try:
                    signature = await wallet.sign_message(message)
                except SignatureRejectedError:
                    logger.info("Signature request declined for credential %s", credential_id)
                    raise
                except Exception as exc:
                    raise WalletUnavailableError(f"wallet failed to sign: {exc}") from exc

                if not isinstance(signature, (bytes, bytearray)) or not signature:
                    raise WalletUnavailableError("wallet returned an empty signature")

                self._cache.put(credential_id, public_key, bytes(signature))
                return bytes(signature)
        finally:
            if not lock.locked() and lock.statistics().tasks_waiting == 0:
                self._locks.pop(key, None)


def _wallet_public_key(wallet: Optional[WalletSigner]) -> str:
    if wallet is None:
        raise WalletUnavailableError("no wallet connected")
    public_key = getattr(wallet, "public_key", None)
    if not public_key:
        raise WalletUnavailableError("wallet is not connected")
    if not callable(getattr(wallet, "sign_message", None)):
        raise WalletUnavailableError("wallet does not support message signing")
    return str(public_key)
