"""Test helper functions for DRY code and simplified test patterns.

Builds in-process registries over an in-memory store with a manual clock
and recording event sink.
"""

from __future__ import annotations

from dataclasses import dataclass

from algosdk import account

from trustlink.contracts.events import RecordingEventSink
from trustlink.contracts.registry import TrustLinkRegistry
from trustlink.sdk.auth import StaticAuthenticator
from trustlink.sdk.clock import ManualClock
from trustlink.sdk.store import InMemoryStore, Store

START_TIME = 1_700_000_000


def new_address() -> str:
    """Generate a fresh Algorand address."""
    _, address = account.generate_account()
    return address


@dataclass
class Harness:
    """Registry plus the collaborators a test drives directly."""
    registry: TrustLinkRegistry
    store: Store
    auth: StaticAuthenticator
    clock: ManualClock
    events: RecordingEventSink
    admin: str

    def act_as(self, caller: str) -> None:
        """Authenticate subsequent calls as `caller` only."""
        self.auth.set_caller(caller)


def build_registry(store: Store | None = None, start: int = START_TIME) -> Harness:
    """Create an uninitialized registry; the admin address is authenticated."""
    store = store if store is not None else InMemoryStore()
    admin = new_address()
    auth = StaticAuthenticator(admin)
    clock = ManualClock(start)
    events = RecordingEventSink()
    registry = TrustLinkRegistry(store, auth, clock, events)
    return Harness(registry, store, auth, clock, events, admin)


def build_initialized_registry(store: Store | None = None) -> Harness:
    """Create a registry with its admin set."""
    harness = build_registry(store)
    harness.registry.initialize(harness.admin)
    return harness


def register_issuer_helper(harness: Harness) -> str:
    """Register a new issuer and leave both admin and issuer authenticated."""
    issuer = new_address()
    harness.registry.register_issuer(harness.admin, issuer)
    harness.auth.callers.add(issuer)
    return issuer
