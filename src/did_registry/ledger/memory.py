"""InMemoryLedger — reference ledger backend for development and testing.

Behaves like the external ledger the registry is written against:

- a single commit lock orders every transaction, so each DID sees a
  linear history and ``last_updated`` strictly increases in commit order;
- ownership, existence and activity are checked when a transaction
  commits, not when it is submitted;
- with ``auto_commit=False`` transactions stay pending until
  :meth:`commit_pending` runs, which models finality delay and lets
  callers time out while the transaction later lands;
- :meth:`set_available` simulates the ledger going offline.
- idempotency keys of resolved transactions are remembered up to
  ``key_capacity`` entries, oldest forgotten first; keys of pending
  transactions are always kept.
"""
from __future__ import annotations

import dataclasses
import datetime
import itertools
import logging
import threading
from collections import OrderedDict
from typing import Any

from did_registry.errors import LedgerTimeoutError, LedgerUnavailableError
from did_registry.ledger.authorization import Authorizer, ControllerAuthorizer
from did_registry.ledger.client import LedgerClient
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

logger = logging.getLogger(__name__)

_TICK = datetime.timedelta(microseconds=1)
DEFAULT_KEY_CAPACITY = 4096


class InMemoryLedger(LedgerClient):
    """Thread-safe in-memory ledger.

    Parameters
    ----------
    authorizer:
        Ownership check applied at commit time. Defaults to
        :class:`~did_registry.ledger.authorization.ControllerAuthorizer`.
    auto_commit:
        If ``True`` (default) each transaction commits during
        :meth:`submit`. If ``False`` transactions wait for
        :meth:`commit_pending`.
    key_capacity:
        Maximum number of idempotency keys remembered once their
        transactions have resolved.

    Example
    -------
    ::

        ledger = InMemoryLedger()
        commitment = ledger.submit(
            LedgerOperation.REGISTER, "did:example:abc", {"document_hash": "H1"}, "0xAAA"
        )
        result = ledger.await_commitment(commitment, timeout=5)
        print(result.record.controller)  # "0xAAA"
    """

    def __init__(
        self,
        authorizer: Authorizer | None = None,
        auto_commit: bool = True,
        key_capacity: int = DEFAULT_KEY_CAPACITY,
    ) -> None:
        if key_capacity < 0:
            raise ValueError("key_capacity must be non-negative.")
        self._authorizer = authorizer if authorizer is not None else ControllerAuthorizer()
        self._auto_commit = auto_commit
        self._records: dict[str, DIDRecord] = {}
        self._pending: list[Commitment] = []
        self._by_key: OrderedDict[str, Commitment] = OrderedDict()
        self._key_capacity = key_capacity
        self._sequence = itertools.count(1)
        self._last_tick: datetime.datetime | None = None
        self._available = True
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # LedgerClient
    # ------------------------------------------------------------------

    def read_record(self, did_id: str) -> DIDRecord | None:
        self._ensure_available()
        with self._lock:
            return self._records.get(did_id)

    def submit(
        self,
        operation: LedgerOperation,
        did_id: str,
        args: dict[str, Any],
        caller: str,
        idempotency_key: str | None = None,
    ) -> Commitment:
        self._ensure_available()
        with self._lock:
            if idempotency_key is not None and idempotency_key in self._by_key:
                existing = self._by_key[idempotency_key]
                logger.debug(
                    "Duplicate submission for key %s resolved to %s",
                    idempotency_key,
                    existing.tx_id,
                )
                return existing
            commitment = Commitment(
                tx_id=f"0x{next(self._sequence):064x}",
                operation=operation,
                did_id=did_id,
                args=dict(args),
                caller=caller,
                idempotency_key=idempotency_key,
            )
            self._pending.append(commitment)
            if idempotency_key is not None:
                self._by_key[idempotency_key] = commitment

        if self._auto_commit:
            self.commit_pending()
        return commitment

    def await_commitment(
        self,
        commitment: Commitment,
        timeout: float | None = None,
    ) -> CommitmentResult:
        result = commitment.wait(timeout)
        if result is None:
            raise LedgerTimeoutError(commitment.tx_id, timeout)
        return result

    # ------------------------------------------------------------------
    # Simulation controls
    # ------------------------------------------------------------------

    def commit_pending(self) -> int:
        """Apply every pending transaction in submission order.

        Returns
        -------
        int
            The number of transactions applied or reverted.
        """
        with self._lock:
            batch, self._pending = self._pending, []
            for commitment in batch:
                commitment.resolve(self._apply(commitment))
            self._forget_resolved_keys()
        return len(batch)

    def set_available(self, available: bool) -> None:
        """Simulate the ledger going offline (``False``) or back online."""
        self._available = available

    def close(self) -> None:
        """Take the ledger offline and revert every pending transaction."""
        with self._lock:
            self._available = False
            batch, self._pending = self._pending, []
            for commitment in batch:
                commitment.resolve(CommitmentResult(success=False, reason="Ledger closed"))
            self._forget_resolved_keys()
        logger.debug("In-memory ledger closed with %d pending transactions", len(batch))

    def pending_count(self) -> int:
        """Return the number of submitted but uncommitted transactions."""
        with self._lock:
            return len(self._pending)

    def __len__(self) -> int:
        """Return the number of records ever registered (including deactivated)."""
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Internals (commit lock held)
    # ------------------------------------------------------------------

    def _ensure_available(self) -> None:
        if not self._available:
            raise LedgerUnavailableError("Ledger is unavailable.")

    def _forget_resolved_keys(self) -> None:
        while len(self._by_key) > self._key_capacity:
            oldest = next(iter(self._by_key.values()))
            if not oldest.committed:
                break
            self._by_key.popitem(last=False)

    def _tick(self) -> datetime.datetime:
        now = datetime.datetime.now(datetime.timezone.utc)
        if self._last_tick is not None and now <= self._last_tick:
            now = self._last_tick + _TICK
        self._last_tick = now
        return now

    def _revert(self, commitment: Commitment, reason: str) -> CommitmentResult:
        logger.warning(
            "Transaction %s (%s %s) reverted: %s",
            commitment.tx_id,
            commitment.operation.value,
            commitment.did_id,
            reason,
        )
        return CommitmentResult(success=False, reason=reason)

    def _apply(self, commitment: Commitment) -> CommitmentResult:
        did_id = commitment.did_id
        record = self._records.get(did_id)

        if commitment.operation is LedgerOperation.REGISTER:
            if record is not None:
                return self._revert(commitment, REVERT_ALREADY_REGISTERED)
            updated = DIDRecord(
                did_id=did_id,
                controller=commitment.caller,
                document_hash=str(commitment.args["document_hash"]),
                last_updated=self._tick(),
                active=True,
            )
        else:
            if record is None:
                return self._revert(commitment, REVERT_NOT_REGISTERED)
            if not self._authorizer.is_authorized(record, commitment.caller):
                return self._revert(commitment, REVERT_NOT_AUTHORIZED)
            if not record.active:
                return self._revert(commitment, REVERT_DEACTIVATED)

            if commitment.operation is LedgerOperation.UPDATE_DOCUMENT_HASH:
                changes: dict[str, Any] = {
                    "document_hash": str(commitment.args["document_hash"])
                }
            elif commitment.operation is LedgerOperation.CHANGE_CONTROLLER:
                changes = {"controller": str(commitment.args["new_controller"])}
            else:
                changes = {"active": False}
            updated = dataclasses.replace(record, last_updated=self._tick(), **changes)

        self._records[did_id] = updated
        logger.debug(
            "Transaction %s committed: %s %s",
            commitment.tx_id,
            commitment.operation.value,
            did_id,
        )
        return CommitmentResult(success=True, record=updated)


__all__ = ["InMemoryLedger"]
