"""Ledger-resident data: DID records, operations, and commitments."""
from __future__ import annotations

import datetime
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class DIDRecord:
    """The ledger's view of one DID.

    Parameters
    ----------
    did_id:
        The DID, unique for the lifetime of the ledger.
    controller:
        Address of the party allowed to mutate this record.
    document_hash:
        Canonical hash of the off-ledger DID document.
    last_updated:
        UTC time of the commit that produced this state.
    active:
        ``False`` once the DID has been deactivated. Terminal.
    """

    did_id: str
    controller: str
    document_hash: str
    last_updated: datetime.datetime
    active: bool = True

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary using the external field names."""
        return {
            "didId": self.did_id,
            "controller": self.controller,
            "documentHash": self.document_hash,
            "lastUpdated": self.last_updated.isoformat(),
            "active": self.active,
        }


class LedgerOperation(str, Enum):
    """State transitions the ledger accepts."""

    REGISTER = "register"
    UPDATE_DOCUMENT_HASH = "updateDocumentHash"
    CHANGE_CONTROLLER = "changeController"
    DEACTIVATE = "deactivate"


# Revert reasons emitted by the ledger on a rejected transaction.
REVERT_ALREADY_REGISTERED = "DID already registered"
REVERT_NOT_AUTHORIZED = "Not authorized"
REVERT_NOT_REGISTERED = "DID not registered"
REVERT_DEACTIVATED = "DID is deactivated"


@dataclass(frozen=True)
class CommitmentResult:
    """Outcome of a committed transaction.

    Parameters
    ----------
    success:
        ``True`` if the transaction was applied.
    reason:
        Revert reason when ``success`` is ``False``.
    record:
        The record state after the transaction when it succeeded.
    """

    success: bool
    reason: str | None = None
    record: DIDRecord | None = None


@dataclass
class Commitment:
    """Handle for a submitted transaction.

    A commitment exists as soon as :meth:`LedgerClient.submit` returns.
    The transaction is not retractable from that point on, even if the
    caller stops waiting for it.
    """

    tx_id: str
    operation: LedgerOperation
    did_id: str
    args: dict[str, Any]
    caller: str
    idempotency_key: str | None = None
    submitted_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    _done: threading.Event = field(
        default_factory=threading.Event, init=False, repr=False, compare=False
    )
    _result: CommitmentResult | None = field(
        default=None, init=False, repr=False, compare=False
    )

    def resolve(self, result: CommitmentResult) -> None:
        """Record the outcome and wake any waiters. Called by the ledger."""
        self._result = result
        self._done.set()

    def wait(self, timeout: float | None = None) -> CommitmentResult | None:
        """Block until committed; return ``None`` on timeout."""
        if not self._done.wait(timeout):
            return None
        return self._result

    @property
    def committed(self) -> bool:
        """``True`` once the ledger has applied or reverted the transaction."""
        return self._done.is_set()


__all__ = [
    "Commitment",
    "CommitmentResult",
    "DIDRecord",
    "LedgerOperation",
    "REVERT_ALREADY_REGISTERED",
    "REVERT_DEACTIVATED",
    "REVERT_NOT_AUTHORIZED",
    "REVERT_NOT_REGISTERED",
]
