"""Canonical JSON hashing and attestation ID derivation.

Provides deterministic ID generation for attestations. The ID doubles as a
duplicate guard: identical inputs at the same clock tick always collide.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_hash(data: dict[str, Any]) -> str:
    """Generate deterministic SHA256 hash from canonical JSON.

    Args:
        data: Dictionary to hash

    Returns:
        Hex-encoded SHA256 hash
    """
    if not data:
        raise ValueError("Data cannot be empty")
    canonical_json = json.dumps(data, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical_json.encode('utf-8')).hexdigest()


def generate_attestation_id(issuer: str, subject: str, claim_type: str, timestamp: int) -> str:
    """Generate deterministic attestation ID.

    The timestamp is an explicit clock reading; this function never reads
    the current time itself.
    """
    if timestamp < 0:
        raise ValueError("Timestamp must be non-negative")
    return canonical_json_hash(_build_id_payload(issuer, subject, claim_type, timestamp))


def _build_id_payload(issuer: str, subject: str, claim_type: str, timestamp: int) -> dict[str, Any]:
    """Build canonical payload for ID generation."""
    return {
        "issuer": issuer,
        "subject": subject,
        "claim_type": claim_type,
        "timestamp": timestamp,
    }
