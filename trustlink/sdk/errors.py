"""Error taxonomy for the TrustLink registry.

All errors are terminal business errors; none of them signal a transient
failure and no operation retries internally.
"""

from __future__ import annotations


class TrustLinkError(Exception):
    """Base class for registry errors."""

    code: int = 0
    default_message: str = "TrustLink error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NotInitializedError(TrustLinkError):
    """Administrator has not been set yet."""

    code = 1
    default_message = "Registry not initialized"


class AlreadyInitializedError(TrustLinkError):
    """Administrator was already set."""

    code = 2
    default_message = "Registry already initialized"


class UnauthorizedError(TrustLinkError):
    """Caller lacks the role or authorship the operation requires."""

    code = 3
    default_message = "Unauthorized"


class NotFoundError(TrustLinkError):
    """Referenced attestation does not exist."""

    code = 4
    default_message = "Attestation not found"


class DuplicateAttestationError(TrustLinkError):
    """Attestation ID collision on creation."""

    code = 5
    default_message = "Duplicate attestation"


class AlreadyRevokedError(TrustLinkError):
    """Attestation was already revoked."""

    code = 6
    default_message = "Attestation already revoked"
