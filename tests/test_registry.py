"""Test the TrustLink registry lifecycle and authorization engine.

Runs fully in-process over an in-memory store with a manual clock.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pytest

from tests.helpers import (
    START_TIME,
    Harness,
    build_initialized_registry,
    build_registry,
    new_address,
    register_issuer_helper,
)
from trustlink.contracts.keys import subject_index_key
from trustlink.sdk.errors import (
    AlreadyInitializedError,
    AlreadyRevokedError,
    DuplicateAttestationError,
    NotFoundError,
    NotInitializedError,
    TrustLinkError,
    UnauthorizedError,
)
from trustlink.sdk.models import AttestationCreated, AttestationRevoked, AttestationStatus
from trustlink.sdk.store import InMemoryStore, JsonFileStore


@pytest.fixture
def harness() -> Harness:
    """Initialized registry."""
    return build_initialized_registry()


@pytest.fixture
def issuer(harness: Harness) -> str:
    """Registered and authenticated issuer."""
    return register_issuer_helper(harness)


# --- Initialization ---

def test_initialize_sets_admin() -> None:
    """initialize stores the administrator."""
    harness = build_registry()

    harness.registry.initialize(harness.admin)

    assert harness.registry.get_admin() == harness.admin


def test_double_initialization_fails() -> None:
    """A second initialize fails and keeps the first admin."""
    harness = build_initialized_registry()
    other = new_address()
    harness.auth.callers.add(other)

    with pytest.raises(AlreadyInitializedError):
        harness.registry.initialize(other)

    assert harness.registry.get_admin() == harness.admin


def test_get_admin_before_initialize_fails() -> None:
    """getAdmin requires an administrator."""
    harness = build_registry()

    with pytest.raises(NotInitializedError):
        harness.registry.get_admin()


def test_initialize_requires_auth() -> None:
    """The admin address must be authenticated."""
    harness = build_registry()

    with pytest.raises(UnauthorizedError):
        harness.registry.initialize(new_address())

    with pytest.raises(NotInitializedError):
        harness.registry.get_admin()


def test_register_issuer_before_initialize_fails() -> None:
    """Admin-gated operations need an administrator."""
    harness = build_registry()

    with pytest.raises(NotInitializedError):
        harness.registry.register_issuer(harness.admin, new_address())
    with pytest.raises(NotInitializedError):
        harness.registry.remove_issuer(harness.admin, new_address())


# --- Issuer management ---

def test_register_and_check_issuer(harness: Harness) -> None:
    """Registered issuers pass the membership test."""
    issuer = new_address()
    assert harness.registry.is_issuer(issuer) is False

    harness.registry.register_issuer(harness.admin, issuer)

    assert harness.registry.is_issuer(issuer) is True


def test_register_issuer_is_idempotent(harness: Harness) -> None:
    """Re-adding a member and removing a non-member are not errors."""
    issuer = new_address()

    harness.registry.register_issuer(harness.admin, issuer)
    harness.registry.register_issuer(harness.admin, issuer)
    assert harness.registry.is_issuer(issuer) is True

    harness.registry.remove_issuer(harness.admin, issuer)
    harness.registry.remove_issuer(harness.admin, issuer)
    assert harness.registry.is_issuer(issuer) is False


def test_register_issuer_by_non_admin_fails(harness: Harness) -> None:
    """An authenticated caller that is not the admin is rejected."""
    impostor = new_address()
    harness.auth.callers.add(impostor)

    with pytest.raises(UnauthorizedError):
        harness.registry.register_issuer(impostor, new_address())


def test_register_issuer_without_admin_auth_fails(harness: Harness) -> None:
    """Passing the admin address without controlling it is rejected."""
    harness.act_as(new_address())

    with pytest.raises(UnauthorizedError):
        harness.registry.register_issuer(harness.admin, new_address())


# --- Attestation creation ---

def test_create_attestation(harness: Harness, issuer: str) -> None:
    """Creation stores the record and indexes it under subject and issuer."""
    subject = new_address()

    att_id = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    attestation = harness.registry.get_attestation(att_id)
    assert attestation.id == att_id
    assert attestation.issuer == issuer
    assert attestation.subject == subject
    assert attestation.claim_type == "KYC_PASSED"
    assert attestation.timestamp == START_TIME
    assert attestation.expiration is None
    assert attestation.revoked is False
    assert harness.registry.get_subject_attestations(subject, 0, 10) == [att_id]
    assert harness.registry.get_issuer_attestations(issuer, 0, 10) == [att_id]


def test_create_attestation_by_unregistered_issuer_fails(harness: Harness) -> None:
    """Creation requires current issuer membership."""
    outsider = new_address()
    harness.auth.callers.add(outsider)
    subject = new_address()

    with pytest.raises(UnauthorizedError):
        harness.registry.create_attestation(outsider, subject, "KYC_PASSED")

    assert harness.registry.get_subject_attestations(subject, 0, 10) == []


def test_create_attestation_requires_auth(harness: Harness, issuer: str) -> None:
    """A registered issuer must still authenticate."""
    harness.act_as(harness.admin)

    with pytest.raises(UnauthorizedError):
        harness.registry.create_attestation(issuer, new_address(), "KYC_PASSED")


def test_issuer_lifecycle(harness: Harness) -> None:
    """Unregistered -> can create -> removed -> cannot create but can still revoke."""
    issuer = new_address()
    subject = new_address()
    harness.auth.callers.add(issuer)

    with pytest.raises(UnauthorizedError):
        harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    harness.registry.register_issuer(harness.admin, issuer)
    att_id = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    harness.registry.remove_issuer(harness.admin, issuer)
    harness.clock.advance()
    with pytest.raises(UnauthorizedError):
        harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    harness.registry.revoke_attestation(issuer, att_id)
    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.REVOKED


def test_duplicate_attestation_same_tick(harness: Harness, issuer: str) -> None:
    """Identical inputs at the same tick collide and change nothing."""
    subject = new_address()
    harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    with pytest.raises(DuplicateAttestationError):
        harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    assert len(harness.registry.get_subject_attestations(subject, 0, 10)) == 1
    assert len(harness.registry.get_issuer_attestations(issuer, 0, 10)) == 1
    assert harness.events.topics() == ["created"]


def test_duplicate_guard_only_catches_same_tick(harness: Harness, issuer: str) -> None:
    """The same claim at different ticks yields two listed attestations."""
    subject = new_address()
    first = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")
    harness.clock.advance()
    second = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    assert first != second
    assert harness.registry.get_subject_attestations(subject, 0, 10) == [first, second]


# --- Claim verification ---

def test_has_valid_claim(harness: Harness, issuer: str) -> None:
    """Valid claims match by exact, case-sensitive type."""
    subject = new_address()
    harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is True
    assert harness.registry.has_valid_claim(subject, "OTHER") is False
    assert harness.registry.has_valid_claim(subject, "kyc_passed") is False
    assert harness.registry.has_valid_claim(new_address(), "KYC_PASSED") is False


def test_has_valid_claim_finds_later_valid_attestation(harness: Harness, issuer: str) -> None:
    """A revoked first attestation does not hide a later valid one."""
    subject = new_address()
    first = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")
    harness.registry.revoke_attestation(issuer, first)
    harness.clock.advance()
    harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is True


def test_has_valid_claim_skips_missing_records(
    harness: Harness, issuer: str, caplog: pytest.LogCaptureFixture
) -> None:
    """An index entry without a record is skipped, not fatal."""
    subject = new_address()
    harness.store.set(subject_index_key(subject), ["missing-id"])
    att_id = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    with caplog.at_level(logging.WARNING, logger="trustlink"):
        assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is True
        assert harness.registry.has_valid_claim(subject, "OTHER") is False

    assert harness.registry.get_subject_attestations(subject, 0, 10) == ["missing-id", att_id]
    assert "missing-id" in caplog.text


def test_require_valid_claim(harness: Harness, issuer: str) -> None:
    """Gatekeeping helper raises only when no valid claim exists."""
    borrower = new_address()

    with pytest.raises(UnauthorizedError, match="KYC_PASSED"):
        harness.registry.require_valid_claim(borrower, "KYC_PASSED")

    att_id = harness.registry.create_attestation(issuer, borrower, "KYC_PASSED")
    harness.registry.require_valid_claim(borrower, "KYC_PASSED")

    harness.registry.revoke_attestation(issuer, att_id)
    with pytest.raises(UnauthorizedError):
        harness.registry.require_valid_claim(borrower, "KYC_PASSED")


# --- Revocation ---

def test_revoke_attestation(harness: Harness, issuer: str) -> None:
    """Revocation flips status and claim validity."""
    subject = new_address()
    att_id = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    harness.registry.revoke_attestation(issuer, att_id)

    assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is False
    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.REVOKED
    assert harness.registry.get_attestation(att_id).revoked is True
    # Revoked attestations stay listed
    assert harness.registry.get_subject_attestations(subject, 0, 10) == [att_id]


def test_revoke_twice_fails(harness: Harness, issuer: str) -> None:
    """Second revocation fails and leaves state unchanged."""
    att_id = harness.registry.create_attestation(issuer, new_address(), "KYC_PASSED")
    harness.registry.revoke_attestation(issuer, att_id)
    before = harness.registry.get_attestation(att_id)

    with pytest.raises(AlreadyRevokedError):
        harness.registry.revoke_attestation(issuer, att_id)

    assert harness.registry.get_attestation(att_id) == before
    assert harness.events.topics() == ["created", "revoked"]


def test_revoke_by_other_issuer_fails(harness: Harness, issuer: str) -> None:
    """Only the original issuer may revoke, even if the other is registered."""
    other = register_issuer_helper(harness)
    att_id = harness.registry.create_attestation(issuer, new_address(), "KYC_PASSED")

    with pytest.raises(UnauthorizedError):
        harness.registry.revoke_attestation(other, att_id)

    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.VALID


def test_revoke_requires_auth(harness: Harness, issuer: str) -> None:
    """The original issuer must authenticate to revoke."""
    att_id = harness.registry.create_attestation(issuer, new_address(), "KYC_PASSED")
    harness.act_as(harness.admin)

    with pytest.raises(UnauthorizedError):
        harness.registry.revoke_attestation(issuer, att_id)


def test_revoke_unknown_attestation_fails(harness: Harness, issuer: str) -> None:
    """Unknown IDs raise NotFound."""
    with pytest.raises(NotFoundError):
        harness.registry.revoke_attestation(issuer, "0" * 64)


def test_revoke_expired_attestation(harness: Harness, issuer: str) -> None:
    """Expired attestations can still be revoked; Revoked dominates."""
    att_id = harness.registry.create_attestation(issuer, new_address(), "KYC_PASSED", START_TIME + 10)
    harness.clock.advance(20)
    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.EXPIRED

    harness.registry.revoke_attestation(issuer, att_id)

    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.REVOKED


# --- Expiration ---

def test_expiration_boundary(harness: Harness, issuer: str) -> None:
    """Valid at T+99, expired from T+100 onwards."""
    subject = new_address()
    att_id = harness.registry.create_attestation(issuer, subject, "KYC_PASSED", START_TIME + 100)

    harness.clock.set(START_TIME + 99)
    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.VALID
    assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is True

    harness.clock.set(START_TIME + 100)
    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.EXPIRED
    assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is False

    harness.clock.set(START_TIME + 1000)
    assert harness.registry.get_attestation_status(att_id) is AttestationStatus.EXPIRED


# --- Queries ---

def test_get_unknown_attestation_fails(harness: Harness) -> None:
    """Reads of unknown IDs raise NotFound."""
    with pytest.raises(NotFoundError):
        harness.registry.get_attestation("0" * 64)
    with pytest.raises(NotFoundError):
        harness.registry.get_attestation_status("0" * 64)


def test_pagination(harness: Harness, issuer: str) -> None:
    """Five attestations page out in creation order."""
    subject = new_address()
    ids = []
    for _ in range(5):
        ids.append(harness.registry.create_attestation(issuer, subject, "KYC_PASSED"))
        harness.clock.advance()

    assert harness.registry.get_subject_attestations(subject, 0, 2) == ids[:2]
    assert harness.registry.get_subject_attestations(subject, 4, 2) == ids[4:]
    assert harness.registry.get_subject_attestations(subject, 10, 2) == []
    assert harness.registry.get_issuer_attestations(issuer, 2, 2) == ids[2:4]


def test_issuer_index_spans_subjects(harness: Harness, issuer: str) -> None:
    """The issuer index lists attestations about every subject."""
    first = harness.registry.create_attestation(issuer, new_address(), "KYC_PASSED")
    second = harness.registry.create_attestation(issuer, new_address(), "ACCREDITED")

    assert harness.registry.get_issuer_attestations(issuer, 0, 10) == [first, second]


# --- Notifications ---

def test_events_published(harness: Harness, issuer: str) -> None:
    """Created and revoked events carry the documented payloads."""
    subject = new_address()
    att_id = harness.registry.create_attestation(issuer, subject, "KYC_PASSED")
    harness.registry.revoke_attestation(issuer, att_id)

    created, revoked = harness.events.events
    assert created == AttestationCreated(
        subject=subject, id=att_id, issuer=issuer, claim_type="KYC_PASSED", timestamp=START_TIME
    )
    assert revoked == AttestationRevoked(issuer=issuer, id=att_id)


def test_rejected_operations_publish_nothing(harness: Harness) -> None:
    """Failed mutations emit no events."""
    outsider = new_address()
    harness.auth.callers.add(outsider)

    with pytest.raises(TrustLinkError):
        harness.registry.create_attestation(outsider, new_address(), "KYC_PASSED")

    assert harness.events.events == []


# --- Atomicity ---

class FailingIndexStore(InMemoryStore):
    """Store that fails when the issuer index is written."""

    def set(self, key: str, value: Any) -> None:
        if key.startswith("issuer_atts:"):
            raise OSError("disk full")
        super().set(key, value)


def test_create_attestation_is_all_or_nothing() -> None:
    """A failure after the record write leaves neither record nor index entries."""
    harness = build_initialized_registry(FailingIndexStore())
    issuer = new_address()
    harness.registry.register_issuer(harness.admin, issuer)
    harness.auth.callers.add(issuer)
    subject = new_address()

    with pytest.raises(OSError):
        harness.registry.create_attestation(issuer, subject, "KYC_PASSED")

    assert harness.registry.get_subject_attestations(subject, 0, 10) == []
    assert not any(key.startswith("att:") for key in harness.store.keys())
    assert harness.events.events == []


def test_error_codes_are_stable() -> None:
    """Each error carries its numeric code."""
    assert [
        NotInitializedError.code,
        AlreadyInitializedError.code,
        UnauthorizedError.code,
        NotFoundError.code,
        DuplicateAttestationError.code,
        AlreadyRevokedError.code,
    ] == [1, 2, 3, 4, 5, 6]


def test_create_attestation_survives_failed_file_flush(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """A create whose file write fails leaves no trace in a JSON-backed registry."""
    harness = build_initialized_registry(JsonFileStore(tmp_path / "state.json"))
    issuer = register_issuer_helper(harness)
    subject = new_address()

    def failing_replace(self: Path, target: Path) -> Path:
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", failing_replace)
    with pytest.raises(OSError):
        harness.registry.create_attestation(issuer, subject, "KYC_PASSED")
    monkeypatch.undo()

    assert harness.registry.get_subject_attestations(subject, 0, 10) == []
    assert harness.registry.get_issuer_attestations(issuer, 0, 10) == []
    assert harness.registry.has_valid_claim(subject, "KYC_PASSED") is False
    assert harness.events.events == []
