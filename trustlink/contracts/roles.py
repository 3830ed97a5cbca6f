"""Identity & role store: one administrator and a set of authorized issuers.

Pure data access. Admin-only checks are enforced by the registry engine.
"""

from __future__ import annotations

import logging

from trustlink.contracts.keys import ADMIN_KEY, DEFAULT_LIFETIME, issuer_key
from trustlink.sdk.errors import NotInitializedError
from trustlink.sdk.store import Store

logger = logging.getLogger(__name__)


class RoleStore:
    """Administrator slot and issuer membership."""

    def __init__(self, store: Store, lifetime: int = DEFAULT_LIFETIME) -> None:
        self.store = store
        self.lifetime = lifetime

    def has_admin(self) -> bool:
        """Return True once an administrator has been set."""
        return self.store.has(ADMIN_KEY)

    def set_admin(self, admin: str) -> None:
        """Write the administrator slot; it has no retention lifetime."""
        self.store.set(ADMIN_KEY, admin)

    def get_admin(self) -> str:
        """Return the administrator address."""
        admin = self.store.get(ADMIN_KEY)
        if admin is None:
            raise NotInitializedError()
        return admin

    def is_issuer(self, address: str) -> bool:
        return self.store.has(issuer_key(address))

    def add_issuer(self, issuer: str) -> None:
        """Authorize `issuer` (idempotent)."""
        key = issuer_key(issuer)
        self.store.set(key, True)
        self.store.extend_ttl(key, self.lifetime)
        logger.debug("Issuer %s added", issuer)

    def remove_issuer(self, issuer: str) -> None:
        """Deauthorize `issuer` (idempotent)."""
        self.store.delete(issuer_key(issuer))
        logger.debug("Issuer %s removed", issuer)
