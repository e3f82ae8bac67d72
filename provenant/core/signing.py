"""Keyed signatures over content digests: HMAC-SHA256.

Key resolution
--------------
The process-wide secret is resolved once, lazily, by ``SecretKeyProvider``
and injected into ``SignatureService``.  Nothing else reads the
environment for the key.

Unkeyed mode
------------
A missing key is a supported state, not an error.  ``has_key()`` reports
it, and callers fall back to digest-only attestation using the
``UNSIGNED`` sentinel.  ``sign`` / ``verify_signature`` raise
``KeyRequiredError`` if called regardless.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import threading

from provenant.config import ProdConfig
from provenant.errors import KeyRequiredError

logger = logging.getLogger(__name__)

UNSIGNED = "unsigned"


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def sign(digest: str, key: str) -> str:
    """HMAC-SHA256 of the digest string's UTF-8 bytes, hex-encoded."""
    return hmac.new(
        key.encode("utf-8"), digest.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify_signature(digest: str, signature: str, key: str) -> bool:
    """Recompute the signature and compare in constant time."""
    expected = sign(digest, key)
    return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


def key_fingerprint(key: str) -> str:
    """First 16 hex chars of SHA-256(key); safe to record in reports."""
    if not key:
        return ""
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]


# ---------------------------------------------------------------------------
# Key provider
# ---------------------------------------------------------------------------


class SecretKeyProvider:
    """Resolves the signing key once, on first need.

    Parameters
    ----------
    key:
        Explicit key.  When ``None`` the key is taken from *settings*
        (``PROVENANT_SIGNING_KEY`` or ``AEGIS_HMAC_KEY``).
    settings:
        Configuration to read from; a fresh ``ProdConfig`` when omitted.
    """

    def __init__(self, key: str | None = None, *, settings: ProdConfig | None = None) -> None:
        self._explicit = key
        self._settings = settings
        self._resolved: str | None = None
        self._lock = threading.Lock()

    def get(self) -> str:
        """Return the key, or ``""`` when none is configured."""
        with self._lock:
            if self._resolved is None:
                if self._explicit is not None:
                    self._resolved = self._explicit
                else:
                    settings = self._settings or ProdConfig()
                    self._resolved = settings.signing_key
                if not self._resolved:
                    logger.info(
                        "No signing key configured; attestation runs digest-only."
                    )
            return self._resolved


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class SignatureService:
    """Signs and verifies digests under the provider's key."""

    algorithm = "hmac-sha256"

    def __init__(self, provider: SecretKeyProvider) -> None:
        self._provider = provider

    @classmethod
    def from_key(cls, key: str | None) -> SignatureService:
        """Convenience constructor; ``None`` or ``""`` gives an unkeyed service."""
        return cls(SecretKeyProvider(key or ""))

    def has_key(self) -> bool:
        return bool(self._provider.get())

    def fingerprint(self) -> str:
        return key_fingerprint(self._provider.get())

    def _require_key(self) -> str:
        key = self._provider.get()
        if not key:
            raise KeyRequiredError(
                "Signing key required but not configured; check has_key() first."
            )
        return key

    def sign(self, digest: str) -> str:
        return sign(digest, self._require_key())

    def verify_signature(self, digest: str, signature: str) -> bool:
        return verify_signature(digest, signature, self._require_key())
