"""
Karma Ledger Authentication Gate

Proves that a caller controls the identity whose record it wants to
mutate. The ledger never mutates an actor's (or renewing soul's) record
unless verify() returns True for that identity. The target of an
interaction is never verified.

The gate fails closed: malformed proofs, unknown key
encodings, stale or future-dated requests and replayed nonces all
return False rather than raising.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from nacl.exceptions import BadSignatureError, CryptoError
from nacl.signing import VerifyKey

from .canonicalization import canonicalize
from .signing import SignedRequest, b64d

logger = logging.getLogger(__name__)


class NonceRegistry(ABC):
    """Single-use nonce tracking for replay protection."""

    @abstractmethod
    def register(self, nonce: str, expires_at: int, now: int) -> bool:
        """
        Record a nonce.

        Returns:
            True on first use, False if the nonce was already seen
        """
        pass


class InMemoryNonceRegistry(NonceRegistry):
    """
    In-memory nonce registry for development/testing.

    Expired nonces are pruned on every registration; a nonce can only
    expire once its request is outside the freshness window anyway.
    """

    def __init__(self):
        self._seen: Dict[str, int] = {}
        self._lock = threading.Lock()

    def register(self, nonce: str, expires_at: int, now: int) -> bool:
        with self._lock:
            expired = [n for n, exp in self._seen.items() if exp < now]
            for n in expired:
                del self._seen[n]
            if nonce in self._seen:
                return False
            self._seen[nonce] = expires_at
            return True


class AuthenticationGate(ABC):
    """Abstract interface for identity-control proofs."""

    @abstractmethod
    def verify(self, identity: str, proof: Optional[SignedRequest], now: int) -> bool:
        """
        Check that `proof` was produced by the controller of `identity`.

        Args:
            identity: The identity the caller claims to act as
            proof: The caller's signed request
            now: The transition's single timestamp

        Returns:
            True if control is proven, False otherwise
        """
        pass


class Ed25519Gate(AuthenticationGate):
    """
    Verifies Ed25519 signatures over canonical request payloads.

    Identities are URL-safe base64 Ed25519 public keys, so no key registry is
    needed: the identity itself is the verification key.
    """

    def __init__(
        self,
        nonces: Optional[NonceRegistry] = None,
        freshness_seconds: int = 300,
        max_clock_skew_seconds: int = 30
    ):
        self.nonces = nonces or InMemoryNonceRegistry()
        self.freshness_seconds = freshness_seconds
        self.max_clock_skew_seconds = max_clock_skew_seconds

    def verify(self, identity: str, proof: Optional[SignedRequest], now: int) -> bool:
        if proof is None:
            return self._reject(identity, "missing proof")

        payload = proof.payload
        if payload.get("authority") != identity:
            return self._reject(identity, "authority mismatch")

        issued_at = payload.get("issued_at")
        if isinstance(issued_at, bool) or not isinstance(issued_at, int):
            return self._reject(identity, "issued_at must be an integer timestamp")

        if now - issued_at > self.freshness_seconds:
            return self._reject(identity, "stale request")
        if issued_at - now > self.max_clock_skew_seconds:
            return self._reject(identity, "request from the future")

        nonce = payload.get("nonce")
        if not isinstance(nonce, str) or not nonce:
            return self._reject(identity, "missing nonce")

        try:
            vk = VerifyKey(b64d(identity))
            vk.verify(canonicalize(payload), b64d(proof.sig_b64))
        except (BadSignatureError, CryptoError, ValueError, TypeError):
            return self._reject(identity, "invalid signature")

        expires_at = issued_at + self.freshness_seconds + self.max_clock_skew_seconds
        if not self.nonces.register(nonce, expires_at, now):
            return self._reject(identity, "replayed nonce")

        return True

    def _reject(self, identity: str, reason: str) -> bool:
        logger.warning("proof rejected for %s: %s", identity, reason)
        return False
