"""Caller authentication for privileged registry operations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable


class Authenticator(ABC):
    """Host capability that tells whether the current call is authenticated as a principal."""

    @abstractmethod
    def verify(self, principal: str) -> bool:
        """Return True if the current caller controls `principal`."""


class StaticAuthenticator(Authenticator):
    """Authenticates a fixed set of caller addresses.

    The CLI binds the address derived from its configured mnemonic.
    """

    def __init__(self, callers: str | Iterable[str]) -> None:
        if isinstance(callers, str):
            callers = [callers]
        self.callers = set(callers)

    def verify(self, principal: str) -> bool:
        return principal in self.callers

    def set_caller(self, caller: str) -> None:
        """Replace the authenticated callers with a single address."""
        self.callers = {caller}
