"""Attestation store: attestation ID -> full record."""

from __future__ import annotations

from trustlink.contracts.keys import DEFAULT_LIFETIME, attestation_key
from trustlink.sdk.errors import NotFoundError
from trustlink.sdk.hashing import generate_attestation_id
from trustlink.sdk.models import Attestation
from trustlink.sdk.store import Store


class AttestationStore:
    """Keyed attestation records; records are never deleted."""

    def __init__(self, store: Store, lifetime: int = DEFAULT_LIFETIME) -> None:
        self.store = store
        self.lifetime = lifetime

    @staticmethod
    def generate_id(issuer: str, subject: str, claim_type: str, timestamp: int) -> str:
        """Derive the attestation ID; same inputs at the same tick collide."""
        return generate_attestation_id(issuer, subject, claim_type, timestamp)

    def has(self, attestation_id: str) -> bool:
        return self.store.has(attestation_key(attestation_id))

    def get(self, attestation_id: str) -> Attestation:
        """Load an attestation record."""
        raw = self.store.get(attestation_key(attestation_id))
        if raw is None:
            raise NotFoundError(f"Attestation not found: {attestation_id}")
        return Attestation.model_validate(raw)

    def set(self, attestation: Attestation) -> None:
        """Upsert a record under its own ID."""
        key = attestation_key(attestation.id)
        self.store.set(key, attestation.model_dump(mode="json"))
        self.store.extend_ttl(key, self.lifetime)
