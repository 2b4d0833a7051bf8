"""LedgerClient — contract for the external DID ledger.

The ledger is an ownership-checked key-value registry. It durably orders
writes per DID and rejects a transaction at commit time, against the
state it observes then, when the transaction is no longer valid. The
registry core never assumes a check it made before submitting still
holds when the transaction commits.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from did_registry.ledger.records import (
    Commitment,
    CommitmentResult,
    DIDRecord,
    LedgerOperation,
)


class LedgerClient(ABC):
    """Abstract base class for ledger backends."""

    @abstractmethod
    def read_record(self, did_id: str) -> DIDRecord | None:
        """Return the committed record for *did_id*, or ``None`` if absent.

        Raises
        ------
        LedgerUnavailableError
            If the ledger cannot be reached.
        """

    @abstractmethod
    def submit(
        self,
        operation: LedgerOperation,
        did_id: str,
        args: dict[str, Any],
        caller: str,
        idempotency_key: str | None = None,
    ) -> Commitment:
        """Submit a state transition and return its commitment handle.

        Parameters
        ----------
        operation:
            The transition to apply.
        did_id:
            The record the transition targets.
        args:
            Operation arguments: ``document_hash`` for register and
            update, ``new_controller`` for controller changes.
        caller:
            Address of the submitting party; the ledger authorizes against it.
        idempotency_key:
            When given, a second submission with the same key returns the
            first commitment instead of submitting again.

        Raises
        ------
        LedgerUnavailableError
            If the ledger cannot be reached. Nothing was submitted.
        """

    @abstractmethod
    def await_commitment(
        self,
        commitment: Commitment,
        timeout: float | None = None,
    ) -> CommitmentResult:
        """Wait for *commitment* to be applied or reverted.

        Raises
        ------
        LedgerTimeoutError
            If the commitment is not final within *timeout* seconds. The
            transaction may still be applied afterwards.
        """

    def close(self) -> None:
        """Release any connection held by the client. The default does nothing."""


__all__ = ["LedgerClient"]
