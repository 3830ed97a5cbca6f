"""TrustLink registry - lifecycle and authorization engine.

An administrator manages a set of authorized issuers. Issuers create
time-bounded attestations about subjects and may later revoke them; anyone
can ask whether a subject currently holds a valid claim of a given type.
Status is derived on read from the stored `revoked` flag and the clock.
"""

from __future__ import annotations

import logging

from trustlink.contracts.attestations import AttestationStore
from trustlink.contracts.events import EventSink, NullEventSink, attestation_created, attestation_revoked
from trustlink.contracts.index import AttestationIndex, issuer_index, subject_index
from trustlink.contracts.keys import DEFAULT_LIFETIME
from trustlink.contracts.roles import RoleStore
from trustlink.sdk.auth import Authenticator
from trustlink.sdk.clock import Clock, SystemClock
from trustlink.sdk.errors import (
    AlreadyInitializedError,
    AlreadyRevokedError,
    DuplicateAttestationError,
    NotFoundError,
    TrustLinkError,
    UnauthorizedError,
)
from trustlink.sdk.models import Attestation, AttestationStatus
from trustlink.sdk.store import Store

logger = logging.getLogger(__name__)


class TrustLinkRegistry:
    """Public operation surface of the attestation registry."""

    def __init__(
        self,
        store: Store,
        authenticator: Authenticator,
        clock: Clock | None = None,
        events: EventSink | None = None,
        lifetime: int = DEFAULT_LIFETIME,
    ) -> None:
        if lifetime <= 0:
            raise ValueError("Lifetime must be positive")
        self.store = store
        self.authenticator = authenticator
        self.clock = clock or SystemClock()
        self.events = events or NullEventSink()
        self.roles = RoleStore(store, lifetime)
        self.attestations = AttestationStore(store, lifetime)
        self.subject_index: AttestationIndex = subject_index(store, lifetime)
        self.issuer_index: AttestationIndex = issuer_index(store, lifetime)

    def _reject(self, operation: str, error: TrustLinkError) -> TrustLinkError:
        """Log a rejected operation and hand the error back for raising."""
        logger.warning("%s rejected: %s (%s)", operation, type(error).__name__, error)
        return error

    def _require_auth(self, operation: str, principal: str) -> None:
        """Ensure the current call is authenticated as `principal`."""
        if not self.authenticator.verify(principal):
            raise self._reject(operation, UnauthorizedError(f"Caller is not authenticated as {principal}"))

    def _require_admin(self, operation: str, admin: str) -> None:
        """Ensure `admin` is authenticated and is the stored administrator."""
        self._require_auth(operation, admin)
        try:
            stored = self.roles.get_admin()
        except TrustLinkError as e:
            raise self._reject(operation, e)
        if admin != stored:
            raise self._reject(operation, UnauthorizedError(f"{admin} is not the administrator"))

    def _require_issuer(self, operation: str, issuer: str) -> None:
        """Ensure `issuer` is currently in the issuer set."""
        if not self.roles.is_issuer(issuer):
            raise self._reject(operation, UnauthorizedError(f"{issuer} is not an authorized issuer"))

    # --- Administration ---

    def initialize(self, admin: str) -> None:
        """Set the administrator. Succeeds exactly once."""
        with self.store.transaction():
            if self.roles.has_admin():
                raise self._reject("initialize", AlreadyInitializedError())
            self._require_auth("initialize", admin)
            self.roles.set_admin(admin)
        logger.info("Registry initialized with admin %s", admin)

    def register_issuer(self, admin: str, issuer: str) -> None:
        """Authorize an issuer (admin only, idempotent)."""
        with self.store.transaction():
            self._require_admin("register_issuer", admin)
            self.roles.add_issuer(issuer)
        logger.info("Issuer %s registered", issuer)

    def remove_issuer(self, admin: str, issuer: str) -> None:
        """Deauthorize an issuer (admin only, idempotent).

        Attestations the issuer already created stay valid and remain
        revocable by that issuer.
        """
        with self.store.transaction():
            self._require_admin("remove_issuer", admin)
            self.roles.remove_issuer(issuer)
        logger.info("Issuer %s removed", issuer)

    # --- Lifecycle ---

    def create_attestation(
        self,
        issuer: str,
        subject: str,
        claim_type: str,
        expiration: int | None = None,
    ) -> str:
        """Create an attestation and return its ID.

        The record is written before both indexes are updated. The creation
        event is published only after the writes commit.
        """
        with self.store.transaction():
            self._require_auth("create_attestation", issuer)
            self._require_issuer("create_attestation", issuer)

            timestamp = self.clock.now()
            attestation_id = self.attestations.generate_id(issuer, subject, claim_type, timestamp)
            if self.attestations.has(attestation_id):
                raise self._reject("create_attestation", DuplicateAttestationError(
                    f"Attestation {attestation_id} already exists"
                ))

            attestation = Attestation(
                id=attestation_id,
                issuer=issuer,
                subject=subject,
                claim_type=claim_type,
                timestamp=timestamp,
                expiration=expiration,
                revoked=False,
            )
            self.attestations.set(attestation)
            self.subject_index.append(subject, attestation_id)
            self.issuer_index.append(issuer, attestation_id)

        logger.info("Attestation %s created by %s for %s (%s)", attestation_id, issuer, subject, claim_type)
        self.events.publish(attestation_created(attestation))
        return attestation_id

    def revoke_attestation(self, issuer: str, attestation_id: str) -> None:
        """Revoke an attestation. Only its original issuer may do so."""
        with self.store.transaction():
            self._require_auth("revoke_attestation", issuer)
            try:
                attestation = self.attestations.get(attestation_id)
            except NotFoundError as e:
                raise self._reject("revoke_attestation", e)
            if attestation.issuer != issuer:
                raise self._reject("revoke_attestation", UnauthorizedError(
                    f"{issuer} did not issue attestation {attestation_id}"
                ))
            if attestation.revoked:
                raise self._reject("revoke_attestation", AlreadyRevokedError(
                    f"Attestation {attestation_id} already revoked"
                ))
            self.attestations.set(attestation.as_revoked())

        logger.info("Attestation %s revoked by %s", attestation_id, issuer)
        self.events.publish(attestation_revoked(attestation_id, issuer))

    # --- Queries ---

    def has_valid_claim(self, subject: str, claim_type: str) -> bool:
        """Return True if `subject` holds a valid attestation of `claim_type`.

        Scans the subject's index in creation order. Index entries whose record
        cannot be loaded are skipped.
        """
        current_time = self.clock.now()
        for attestation_id in self.subject_index.all(subject):
            try:
                attestation = self.attestations.get(attestation_id)
            except NotFoundError:
                logger.warning("Subject index for %s references missing attestation %s", subject, attestation_id)
                continue
            if attestation.claim_type == claim_type and attestation.is_valid(current_time):
                return True
        return False

    def require_valid_claim(self, subject: str, claim_type: str) -> None:
        """Raise UnauthorizedError unless `subject` holds a valid `claim_type` claim."""
        if not self.has_valid_claim(subject, claim_type):
            raise UnauthorizedError(f"{subject} has no valid {claim_type} claim")

    def get_attestation(self, attestation_id: str) -> Attestation:
        """Return the stored attestation record."""
        return self.attestations.get(attestation_id)

    def get_attestation_status(self, attestation_id: str) -> AttestationStatus:
        """Return the effective status at the current time."""
        attestation = self.attestations.get(attestation_id)
        return attestation.get_status(self.clock.now())

    def get_subject_attestations(self, subject: str, start: int, limit: int) -> list[str]:
        """List attestation IDs for a subject, in creation order."""
        return self.subject_index.range(subject, start, limit)

    def get_issuer_attestations(self, issuer: str, start: int, limit: int) -> list[str]:
        """List attestation IDs created by an issuer, in creation order."""
        return self.issuer_index.range(issuer, start, limit)

    def is_issuer(self, address: str) -> bool:
        """Return True if `address` is currently an authorized issuer."""
        return self.roles.is_issuer(address)

    def get_admin(self) -> str:
        """Return the administrator address."""
        return self.roles.get_admin()
