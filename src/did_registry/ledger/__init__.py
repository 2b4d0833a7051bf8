"""did_registry.ledger — client contract for the DID ledger and a reference backend."""
from __future__ import annotations

from did_registry.ledger.authorization import Authorizer, ControllerAuthorizer
from did_registry.ledger.client import LedgerClient
from did_registry.ledger.memory import InMemoryLedger
from did_registry.ledger.records import (
    REVERT_ALREADY_REGISTERED,
    REVERT_DEACTIVATED,
    REVERT_NOT_AUTHORIZED,
    REVERT_NOT_REGISTERED,
    Commitment,
    CommitmentResult,
    DIDRecord,
    LedgerOperation,
)

__all__ = [
    "Authorizer",
    "Commitment",
    "CommitmentResult",
    "ControllerAuthorizer",
    "DIDRecord",
    "InMemoryLedger",
    "LedgerClient",
    "LedgerOperation",
    "REVERT_ALREADY_REGISTERED",
    "REVERT_DEACTIVATED",
    "REVERT_NOT_AUTHORIZED",
    "REVERT_NOT_REGISTERED",
]
