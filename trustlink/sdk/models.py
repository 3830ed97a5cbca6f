"""Pydantic models for TrustLink data structures.

Provides type-safe definitions for attestations and the notifications
emitted when they are created or revoked.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AttestationStatus(str, Enum):
    """Effective attestation status, derived on read."""
    VALID = "valid"
    EXPIRED = "expired"
    REVOKED = "revoked"


class Attestation(BaseModel):
    """Attestation record as persisted in the attestation store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Deterministic attestation ID")
    issuer: str = Field(..., description="Issuer address")
    subject: str = Field(..., description="Subject address")
    claim_type: str = Field(..., description="Opaque claim label, e.g. KYC_PASSED")
    timestamp: int = Field(..., ge=0, description="Creation time in clock ticks")
    expiration: int | None = Field(default=None, ge=0, description="Tick at which the claim stops being valid")
    revoked: bool = Field(default=False, description="Set once by the issuer")

    def get_status(self, current_time: int) -> AttestationStatus:
        """Compute the effective status at `current_time`.

        Revocation takes precedence over expiration. Expiration is inclusive:
        the attestation is expired from the `expiration` tick onwards.
        """
        if self.revoked:
            return AttestationStatus.REVOKED
        if self.expiration is not None and current_time >= self.expiration:
            return AttestationStatus.EXPIRED
        return AttestationStatus.VALID

    def is_valid(self, current_time: int) -> bool:
        """Return True if the attestation is valid at `current_time`."""
        return self.get_status(current_time) is AttestationStatus.VALID

    def as_revoked(self) -> Attestation:
        """Return a copy of this record with the revoked flag set."""
        return self.model_copy(update={"revoked": True})


class AttestationCreated(BaseModel):
    """Notification published after an attestation is stored and indexed."""

    topic: str = "created"
    subject: str
    id: str
    issuer: str
    claim_type: str
    timestamp: int


class AttestationRevoked(BaseModel):
    """Notification published after an attestation is revoked."""

    topic: str = "revoked"
    issuer: str
    id: str
