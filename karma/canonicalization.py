"""
Karma Ledger Canonical JSON and Hashing

Signed requests and journal entries are hashed over their canonical JSON
form, so the same logical payload always yields the same bytes:

- Object keys sorted lexicographically (Unicode code point order)
- No whitespace between tokens
- UTF-8 encoding, no ASCII escaping
- Arrays keep their order
"""

import hashlib
import json
from typing import Any, Dict, List, Optional, Union


def canonicalize(obj: Any) -> bytes:
    """Convert an object to canonical JSON bytes."""
    canonical = _canonicalize_value(obj)
    return json.dumps(canonical, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


def canonicalize_str(obj: Any) -> str:
    """Return canonical JSON as string."""
    return canonicalize(obj).decode('utf-8')


def _canonicalize_value(value: Any) -> Any:
    if value is None:
        return None
    elif isinstance(value, bool):
        return value
    elif isinstance(value, (int, float)):
        return value
    elif isinstance(value, str):
        return value
    elif isinstance(value, dict):
        return _canonicalize_object(value)
    elif isinstance(value, (list, tuple)):
        return _canonicalize_array(value)
    else:
        raise ValueError(f"Cannot canonicalize type: {type(value)}")


def _canonicalize_object(obj: Dict[str, Any]) -> Dict[str, Any]:
    return {k: _canonicalize_value(obj[k]) for k in sorted(obj.keys())}


def _canonicalize_array(arr: Union[List, tuple]) -> List:
    return [_canonicalize_value(item) for item in arr]


def sha256_hex(data: Union[bytes, str]) -> str:
    """Compute SHA-256 hash and return as lowercase hex string."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def payload_hash(obj: Any) -> str:
    """SHA-256 of the canonical JSON of `obj`."""
    return sha256_hex(canonicalize(obj))


def chain_entry_hash(prev_entry_hash: Optional[str], entry_payload_hash: str) -> str:
    """
    Compute the hash chain entry hash.

    entry_hash = SHA-256(prev_entry_hash || payload_hash); the first
    entry uses an empty previous hash.
    """
    data = (prev_entry_hash or "").encode('utf-8') + entry_payload_hash.encode('utf-8')
    return sha256_hex(data)
