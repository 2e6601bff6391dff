"""Canonical serialization, hashing and content identifiers.

Canonical form: sorted keys, Unicode preserved, two-space indent, UTF-8
encoded. The same record always produces the same bytes, so the same
sha256 and the same CID, regardless of key insertion order.

Content identifiers are CIDv1 strings: multibase base32 (``b`` prefix),
raw codec, sha2-256 multihash. A CIDv1 of this shape is always 59
characters long.
"""

from __future__ import annotations

import base64
import hashlib
import json
from typing import Any

CID_VERSION_1 = 0x01
RAW_CODEC = 0x55
SHA2_256 = 0x12
SHA2_256_LENGTH = 0x20

CIDV1_LENGTH = 59

# Placeholder asset CID used by mock flows; same length as a real CIDv1.
ASSET_CID_MOCK = "a" * CIDV1_LENGTH


def canonical_bytes(record: dict[str, Any]) -> bytes:
    """Serialize a JSON-compatible record to its canonical UTF-8 bytes."""
    return json.dumps(record, sort_keys=True, ensure_ascii=False, indent=2).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Compute SHA-256 hex digest."""
    return hashlib.sha256(data).hexdigest()


def compute_cid(data: bytes) -> str:
    """Derive the CIDv1 (raw, sha2-256) of a byte string."""
    digest = hashlib.sha256(data).digest()
    binary = bytes([CID_VERSION_1, RAW_CODEC, SHA2_256, SHA2_256_LENGTH]) + digest
    encoded = base64.b32encode(binary).decode("ascii").lower().rstrip("=")
    return f"b{encoded}"


def looks_like_cid(text: str) -> bool:
    """True if text has the prefix of a base32 CIDv1 (dag-pb or raw)."""
    return text.startswith(("bafy", "bafk"))
