"""Authorization checks for DID record mutation.

The ledger and the registry both ask an :class:`Authorizer` whether a
caller may mutate a record. The default compares the caller with the
record's controller; multi-signature or delegated-key schemes plug in by
subclassing.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from did_registry.ledger.records import DIDRecord


class Authorizer(ABC):
    """Decides whether *caller* may mutate *record*."""

    @abstractmethod
    def is_authorized(self, record: DIDRecord, caller: str) -> bool:
        """Return ``True`` if *caller* may mutate *record*."""


class ControllerAuthorizer(Authorizer):
    """Only the current controller may mutate a record.

    Addresses are compared case-insensitively, since hex addresses are
    routinely written in mixed (checksummed) case.
    """

    def is_authorized(self, record: DIDRecord, caller: str) -> bool:
        return bool(caller) and record.controller.lower() == caller.lower()


__all__ = ["Authorizer", "ControllerAuthorizer"]
