"""Append-only subject and issuer indexes with paginated reads."""

from __future__ import annotations

import logging
from collections.abc import Callable

from trustlink.contracts.keys import DEFAULT_LIFETIME, issuer_index_key, subject_index_key
from trustlink.sdk.store import Store

logger = logging.getLogger(__name__)


def page(entries: list[str], start: int, limit: int) -> list[str]:
    """Return entries `[start, min(start + limit, total))`.

    A start past the end or a zero limit yields an empty page.
    """
    if start < 0 or limit < 0:
        raise ValueError("Start and limit must be non-negative")
    end = min(start + limit, len(entries))
    return entries[start:end]


class AttestationIndex:
    """Multi-map from an address to attestation IDs in creation order."""

    def __init__(self, store: Store, key_for: Callable[[str], str], lifetime: int = DEFAULT_LIFETIME) -> None:
        self.store = store
        self.key_for = key_for
        self.lifetime = lifetime

    def all(self, address: str) -> list[str]:
        """Return every attestation ID recorded for `address`."""
        return list(self.store.get(self.key_for(address), []))

    def append(self, address: str, attestation_id: str) -> None:
        """Append an attestation ID to the address's sequence."""
        key = self.key_for(address)
        ids = self.all(address)
        ids.append(attestation_id)
        self.store.set(key, ids)
        self.store.extend_ttl(key, self.lifetime)
        logger.debug("Indexed %s under %s (%d entries)", attestation_id, key, len(ids))

    def range(self, address: str, start: int, limit: int) -> list[str]:
        """Return one page of the address's attestation IDs."""
        return page(self.all(address), start, limit)

    def count(self, address: str) -> int:
        return len(self.all(address))


def subject_index(store: Store, lifetime: int = DEFAULT_LIFETIME) -> AttestationIndex:
    """Index of attestations by subject."""
    return AttestationIndex(store, subject_index_key, lifetime)


def issuer_index(store: Store, lifetime: int = DEFAULT_LIFETIME) -> AttestationIndex:
    """Index of attestations by issuer."""
    return AttestationIndex(store, issuer_index_key, lifetime)
