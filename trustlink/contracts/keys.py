"""Storage key layout and retention constants."""

from __future__ import annotations

DAY_IN_LEDGERS = 17280
DEFAULT_LIFETIME = DAY_IN_LEDGERS * 30

ADMIN_KEY = "admin"
ISSUER_PREFIX = "issuer:"
ATTESTATION_PREFIX = "att:"
SUBJECT_INDEX_PREFIX = "subject_atts:"
ISSUER_INDEX_PREFIX = "issuer_atts:"


def issuer_key(address: str) -> str:
    """Key marking `address` as an authorized issuer."""
    return ISSUER_PREFIX + address


def attestation_key(attestation_id: str) -> str:
    """Key holding the attestation record."""
    return ATTESTATION_PREFIX + attestation_id


def subject_index_key(subject: str) -> str:
    """Key holding the subject's attestation IDs."""
    return SUBJECT_INDEX_PREFIX + subject


def issuer_index_key(issuer: str) -> str:
    """Key holding the issuer's attestation IDs."""
    return ISSUER_INDEX_PREFIX + issuer
