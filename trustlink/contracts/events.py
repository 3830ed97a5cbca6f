"""Notification sinks for attestation lifecycle events.

Events are published after the store transaction commits. Delivery is
fire-and-forget.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import BaseModel

from trustlink.sdk.models import Attestation, AttestationCreated, AttestationRevoked

logger = logging.getLogger(__name__)


class EventSink(ABC):
    """Receiver of lifecycle events."""

    @abstractmethod
    def publish(self, event: BaseModel) -> None:
        """Deliver one event."""


class NullEventSink(EventSink):
    """Discards every event."""

    def publish(self, event: BaseModel) -> None:
        pass


class LoggingEventSink(EventSink):
    """Logs each event as canonical JSON."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def publish(self, event: BaseModel) -> None:
        self.log.info("event %s", event.model_dump_json())


class RecordingEventSink(EventSink):
    """Keeps published events in order."""

    def __init__(self) -> None:
        self.events: list[BaseModel] = []

    def publish(self, event: BaseModel) -> None:
        self.events.append(event)

    def topics(self) -> list[str]:
        """Return the topic of each recorded event."""
        return [getattr(event, "topic", type(event).__name__) for event in self.events]


def attestation_created(attestation: Attestation) -> AttestationCreated:
    """Build the creation event for a stored attestation."""
    return AttestationCreated(
        subject=attestation.subject,
        id=attestation.id,
        issuer=attestation.issuer,
        claim_type=attestation.claim_type,
        timestamp=attestation.timestamp,
    )


def attestation_revoked(attestation_id: str, issuer: str) -> AttestationRevoked:
    """Build the revocation event."""
    return AttestationRevoked(issuer=issuer, id=attestation_id)
