"""
Security module for the Karma Ledger service.

Provides input validation and client identification helpers.
"""

import base64
import binascii
import re
from typing import Any, Dict, List, Optional


# ============================================================
# Input Validation
# ============================================================

BASE64URL_PATTERN = re.compile(r'^[A-Za-z0-9_-]*={0,2}$')
NONCE_PATTERN = re.compile(r'^[A-Za-z0-9_-]{8,128}$')

IDENTITY_KEY_BYTES = 32


class ValidationError(Exception):
    """Raised when input validation fails."""
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


def validate_identity(value: Any, field_name: str = "authority") -> str:
    """
    Validate an identity: URL-safe base64 of a 32-byte Ed25519 public key.

    Returns:
        The validated identity string

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(value, str):
        raise ValidationError(field_name, "must be a string")

    value = value.strip()
    if not value:
        raise ValidationError(field_name, "cannot be empty")

    if not BASE64URL_PATTERN.match(value):
        raise ValidationError(field_name, "must be URL-safe base64")

    try:
        raw = base64.b64decode(value, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError(field_name, "must be URL-safe base64")

    if len(raw) != IDENTITY_KEY_BYTES:
        raise ValidationError(field_name, f"must encode {IDENTITY_KEY_BYTES} bytes")

    return value


def validate_proof_payload(payload: Dict[str, Any]) -> None:
    """
    Shape checks on a signed request payload before it reaches the gate.

    Raises:
        ValidationError: If validation fails
    """
    if not isinstance(payload, dict):
        raise ValidationError("proof.payload", "must be an object")

    for field in ("op", "authority", "issued_at", "nonce"):
        if field not in payload:
            raise ValidationError(f"proof.payload.{field}", "is required")

    validate_identity(payload["authority"], "proof.payload.authority")

    if isinstance(payload["issued_at"], bool) or not isinstance(payload["issued_at"], int):
        raise ValidationError("proof.payload.issued_at", "must be an integer timestamp")

    if not isinstance(payload["nonce"], str) or not NONCE_PATTERN.match(payload["nonce"]):
        raise ValidationError("proof.payload.nonce", "invalid format")


# ============================================================
# Rate Limiting Helpers
# ============================================================

def extract_client_id(headers: Dict[str, str], fallback: Optional[str] = None) -> str:
    """
    Extract a client identifier from request headers for rate limiting.
    Falls back to the peer address, then to a shared default.
    """
    api_key = headers.get("x-api-key", "")
    if api_key:
        return f"api:{api_key[:8]}"

    forwarded = headers.get("x-forwarded-for", "")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"

    if fallback:
        return f"ip:{fallback}"

    return "anonymous"


# ============================================================
# Audit Logging Helpers
# ============================================================

def sanitize_for_logging(data: Dict[str, Any], sensitive_fields: List[str] = None) -> Dict[str, Any]:
    """
    Sanitize data for logging by masking sensitive fields.

    Args:
        data: The data to sanitize
        sensitive_fields: List of field names to mask

    Returns:
        Sanitized copy of the data
    """
    if sensitive_fields is None:
        sensitive_fields = ["sig_b64", "private_key_b64"]

    result = {}
    for key, value in data.items():
        if key in sensitive_fields:
            if isinstance(value, str) and len(value) > 8:
                result[key] = value[:4] + "..." + value[-4:]
            else:
                result[key] = "[REDACTED]"
        elif isinstance(value, dict):
            result[key] = sanitize_for_logging(value, sensitive_fields)
        else:
            result[key] = value

    return result
