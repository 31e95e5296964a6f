"""
Karma Ledger Request Signing

Client-side helpers. An identity is the URL-safe base64 Ed25519 public
key of its authority; a request is proven by signing the canonical JSON of
its payload with the matching private key.

Payload fields:
    op          "create" | "interact" | "sunrise"
    authority   identity being acted as (signer)
    target      interact only: the affected identity
    direction   interact only: "praise" | "accuse"
    issued_at   epoch seconds when the request was signed
    nonce       single-use random hex string
"""

import base64
import json
import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from nacl.signing import SigningKey

from .canonicalization import canonicalize


OP_CREATE = "create"
OP_INTERACT = "interact"
OP_SUNRISE = "sunrise"


def b64e(b: bytes) -> str:
    """URL-safe base64 encode bytes to string."""
    return base64.urlsafe_b64encode(b).decode('ascii')


def b64d(s: str) -> bytes:
    """URL-safe base64 decode string to bytes (strict)."""
    return base64.b64decode(s.encode('ascii'), altchars=b'-_', validate=True)


@dataclass(frozen=True)
class SignedRequest:
    """Proof that the holder of `payload['authority']` asked for this operation."""
    payload: Dict[str, Any]
    sig_b64: str

    def to_dict(self) -> Dict[str, Any]:
        return {"payload": dict(self.payload), "sig_b64": self.sig_b64}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignedRequest":
        return cls(payload=dict(data["payload"]), sig_b64=data["sig_b64"])


def generate_keypair() -> Tuple[str, str]:
    """
    Generate an Ed25519 key pair.

    Returns:
        Tuple of (identity, private_key_b64); identity is the public key
    """
    sk = SigningKey.generate()
    return b64e(bytes(sk.verify_key)), b64e(bytes(sk))


def identity_of(private_key_b64: str) -> str:
    """Identity (public key) for a private key."""
    return b64e(bytes(SigningKey(b64d(private_key_b64)).verify_key))


def load_key_file(path: str) -> Tuple[str, str]:
    """Read a key file written by `karma keygen`. Returns (identity, private_key_b64)."""
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)
    return raw["identity"], raw["private_key_b64"]


def sign_payload(private_key_b64: str, payload: Dict[str, Any]) -> SignedRequest:
    sk = SigningKey(b64d(private_key_b64))
    sig = sk.sign(canonicalize(payload)).signature
    return SignedRequest(payload=dict(payload), sig_b64=b64e(sig))


def _base_payload(op: str, authority: str, issued_at: Optional[int], nonce: Optional[str]) -> Dict[str, Any]:
    return {
        "op": op,
        "authority": authority,
        "issued_at": int(time.time()) if issued_at is None else int(issued_at),
        "nonce": nonce or secrets.token_hex(16),
    }


def sign_create(private_key_b64: str, issued_at: Optional[int] = None, nonce: Optional[str] = None) -> SignedRequest:
    payload = _base_payload(OP_CREATE, identity_of(private_key_b64), issued_at, nonce)
    return sign_payload(private_key_b64, payload)


def sign_interact(
    private_key_b64: str,
    target: str,
    direction: str,
    issued_at: Optional[int] = None,
    nonce: Optional[str] = None
) -> SignedRequest:
    payload = _base_payload(OP_INTERACT, identity_of(private_key_b64), issued_at, nonce)
    payload["target"] = target
    payload["direction"] = str(getattr(direction, "value", direction)).lower()
    return sign_payload(private_key_b64, payload)


def sign_sunrise(private_key_b64: str, issued_at: Optional[int] = None, nonce: Optional[str] = None) -> SignedRequest:
    payload = _base_payload(OP_SUNRISE, identity_of(private_key_b64), issued_at, nonce)
    return sign_payload(private_key_b64, payload)
