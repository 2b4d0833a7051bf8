"""DIDRegistry — the DID lifecycle state machine.

States per DID::

    Unregistered ──register──▶ Active ──deactivate──▶ Deactivated
                                 │  ▲
                                 └──┘ update hash / change controller

The registry keeps no state of its own. The ledger owns DID records and
the document store owns DID documents; the registry coordinates the two
so that the ledger's ``document_hash`` always equals the canonical hash
of the stored document.

Every mutation is pre-checked against the record read from the ledger so
that obvious failures return fast, but the authoritative decision is the
ledger's, taken when the transaction commits. A revert is mapped back to
the same error kind the pre-check would have raised.

Composite operations (create, register-with-document, document edits)
write to two collaborators and are not atomic. Their recovery rules:

- registration rejected with ``AlreadyRegistered``: the freshly stored
  document is removed, or the previous unanchored one restored;
- any other registration failure: the document stays in place, and
  :meth:`DIDRegistry.anchor_document` finishes the job later;
- document edit rejected, or ledger unreachable at submit: the previous
  document is restored;
- document edit timed out: the new document stays, because the hash
  update may still commit. :meth:`DIDRegistry.anchor_document` reconciles.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from did_registry.audit import AuditLog
from did_registry.config import RegistryConfig
from did_registry.crypto.canonical import hash_json
from did_registry.documents.models import (
    DIDDocument,
    ServiceEndpoint,
    VerificationMethod,
    parse_did,
)
from did_registry.documents.store import DocumentStore, strip_address_prefix
from did_registry.errors import (
    AlreadyRegisteredError,
    DeactivatedError,
    DIDRegistryError,
    LedgerTimeoutError,
    NotAuthorizedError,
    NotFoundError,
)
from did_registry.ledger.authorization import Authorizer, ControllerAuthorizer
from did_registry.ledger.client import LedgerClient
from did_registry.ledger.records import (
    REVERT_ALREADY_REGISTERED,
    REVERT_DEACTIVATED,
    REVERT_NOT_AUTHORIZED,
    REVERT_NOT_REGISTERED,
    DIDRecord,
    LedgerOperation,
)
from did_registry.locks import KeyedLock

logger = logging.getLogger(__name__)


class DIDRegistry:
    """Lifecycle operations for DIDs, backed by a ledger and a document store.

    Parameters
    ----------
    ledger:
        The ledger client that owns DID records.
    documents:
        The store that owns DID documents.
    authorizer:
        Ownership check used for pre-checks. Should match the ledger's.
        Defaults to :class:`~did_registry.ledger.authorization.ControllerAuthorizer`.
    config:
        DID method, network, and ledger timeout settings.
    audit:
        Optional audit log receiving one event per committed transition.

    Example
    -------
    ::

        registry = DIDRegistry(InMemoryLedger(), DocumentStore())
        registry.register("did:example:abc", "H1", "0xAAA")
        registry.update_document_hash("did:example:abc", "H2", "0xAAA")
        print(registry.get_info("did:example:abc").document_hash)  # "H2"
    """

    def __init__(
        self,
        ledger: LedgerClient,
        documents: DocumentStore,
        authorizer: Authorizer | None = None,
        config: RegistryConfig | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self._ledger = ledger
        self._documents = documents
        self._authorizer = authorizer if authorizer is not None else ControllerAuthorizer()
        self._config = config if config is not None else RegistryConfig()
        self._audit = audit
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Ledger transitions
    # ------------------------------------------------------------------

    def register(self, did_id: str, document_hash: str, caller_address: str) -> DIDRecord:
        """Register *did_id* with *caller_address* as its controller.

        Raises
        ------
        AlreadyRegisteredError
            If any record exists for *did_id*, including a deactivated one.
        ValueError
            If *did_id* is malformed or *document_hash* is empty.
        """
        parse_did(did_id)
        if not document_hash:
            raise ValueError("document_hash must not be empty.")
        if self._ledger.read_record(did_id) is not None:
            raise AlreadyRegisteredError(did_id)

        record = self._transact(
            LedgerOperation.REGISTER,
            did_id,
            {"document_hash": document_hash},
            caller_address,
            observed=None,
        )
        self._record_event("did_registered", did_id, caller_address, document_hash=document_hash)
        return record

    def update_document_hash(
        self, did_id: str, new_hash: str, caller_address: str
    ) -> DIDRecord:
        """Anchor a new document hash for *did_id*.

        Raises
        ------
        NotFoundError, NotAuthorizedError, DeactivatedError
            Checked in that order.
        """
        if not new_hash:
            raise ValueError("new_hash must not be empty.")
        observed = self._check_mutable(did_id, caller_address)
        record = self._transact(
            LedgerOperation.UPDATE_DOCUMENT_HASH,
            did_id,
            {"document_hash": new_hash},
            caller_address,
            observed=observed,
        )
        self._record_event("did_document_updated", did_id, caller_address, document_hash=new_hash)
        return record

    def change_controller(
        self, did_id: str, new_controller: str, caller_address: str
    ) -> DIDRecord:
        """Hand control of *did_id* to *new_controller*.

        Setting the controller it already has is accepted and still bumps
        ``last_updated``.

        Raises
        ------
        NotFoundError, NotAuthorizedError, DeactivatedError
            Checked in that order.
        """
        if not new_controller:
            raise ValueError("new_controller must not be empty.")
        observed = self._check_mutable(did_id, caller_address)
        record = self._transact(
            LedgerOperation.CHANGE_CONTROLLER,
            did_id,
            {"new_controller": new_controller},
            caller_address,
            observed=observed,
        )
        self._record_event(
            "did_controller_changed",
            did_id,
            caller_address,
            previous_controller=observed.controller,
            new_controller=new_controller,
        )
        return record

    def deactivate(self, did_id: str, caller_address: str) -> DIDRecord:
        """Deactivate *did_id*. Irreversible; the identifier is never reused.

        Raises
        ------
        NotFoundError, NotAuthorizedError, DeactivatedError
            Checked in that order.
        """
        observed = self._check_mutable(did_id, caller_address)
        record = self._transact(
            LedgerOperation.DEACTIVATE, did_id, {}, caller_address, observed=observed
        )
        self._record_event("did_deactivated", did_id, caller_address)
        return record

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_info(self, did_id: str) -> DIDRecord:
        """Return the ledger record for *did_id*.

        Raises
        ------
        NotFoundError
            If *did_id* was never registered.
        """
        record = self._ledger.read_record(did_id)
        if record is None:
            raise NotFoundError("DID", did_id)
        return record

    def is_active(self, did_id: str) -> bool:
        """Return ``True`` if *did_id* is registered and not deactivated.

        Unknown DIDs are reported as inactive rather than raising.
        """
        record = self._ledger.read_record(did_id)
        return record is not None and record.active

    def get_document(self, did_id: str) -> DIDDocument:
        """Return the stored DID document, including for deactivated DIDs.

        Raises
        ------
        NotFoundError
            If no document is stored for *did_id*.
        """
        return self._documents.get(did_id)

    def verify_document_integrity(self, did_id: str) -> bool:
        """Return ``True`` if the anchored hash matches the stored document.

        Raises
        ------
        NotFoundError
            If either the record or the document is missing.
        """
        record = self.get_info(did_id)
        document = self._documents.get(did_id)
        return record.document_hash == self._documents.hash(document)

    def did_for_address(self, address: str) -> str:
        """Return the DID :meth:`create_did` derives for *address*."""
        specific_id = strip_address_prefix(address)
        if not specific_id:
            raise ValueError("address must not be empty.")
        return f"did:{self._config.did_method}:{self._config.network}:{specific_id}"

    # ------------------------------------------------------------------
    # Composite operations
    # ------------------------------------------------------------------

    def create_did(
        self,
        caller_address: str,
        public_key_multibase: str | None = None,
    ) -> str:
        """Derive a DID from *caller_address*, create its document, register it.

        Parameters
        ----------
        caller_address:
            Address of the caller; becomes the controller and the source of
            the method-specific id.
        public_key_multibase:
            Optional Ed25519 key to publish as the ``#keys-1`` verification
            method, needed later to verify credentials the DID issues.

        Returns
        -------
        str
            The new DID.

        Raises
        ------
        AlreadyRegisteredError
            If the derived DID is already on the ledger.
        """
        did_id = self.did_for_address(caller_address)
        with self._locks.hold(did_id):
            if self._ledger.read_record(did_id) is not None:
                raise AlreadyRegisteredError(did_id)
            had_document = did_id in self._documents
            document = self._documents.create(did_id, caller_address, public_key_multibase)
            try:
                self.register(did_id, self._documents.hash(document), caller_address)
            except AlreadyRegisteredError:
                if not had_document:
                    self._documents.discard(did_id)
                raise
        logger.info("New DID created: %s", did_id)
        return did_id

    def register_with_document(
        self,
        did_id: str,
        document: DIDDocument,
        caller_address: str,
    ) -> DIDRecord:
        """Store *document* and register *did_id* with its canonical hash.

        Raises
        ------
        AlreadyRegisteredError
            If *did_id* is already on the ledger.
        ValueError
            If ``document.id`` does not equal *did_id*.
        """
        if document.id != did_id:
            raise ValueError(
                f"document.id {document.id!r} does not match the target DID {did_id!r}."
            )
        with self._locks.hold(did_id):
            if self._ledger.read_record(did_id) is not None:
                raise AlreadyRegisteredError(did_id)
            previous = self._documents.save(document)
            try:
                return self.register(did_id, self._documents.hash(document), caller_address)
            except AlreadyRegisteredError:
                self._restore(did_id, previous)
                raise

    def anchor_document(self, did_id: str, caller_address: str) -> DIDRecord:
        """Bring the ledger in line with the stored document for *did_id*.

        This is the retry path after an interrupted composite operation:

        - DID not on the ledger: register the document's hash;
        - ledger hash differs from the document: update it;
        - ledger hash already matches: nothing to do.

        Raises
        ------
        NotFoundError
            If no document is stored for *did_id*.
        """
        with self._locks.hold(did_id):
            document = self._documents.get(did_id)
            target_hash = self._documents.hash(document)
            record = self._ledger.read_record(did_id)
            if record is None:
                return self.register(did_id, target_hash, caller_address)
            if record.document_hash == target_hash:
                logger.debug("DID %s already anchored", did_id)
                return record
            return self.update_document_hash(did_id, target_hash, caller_address)

    def update_document(
        self,
        did_id: str,
        fields: dict[str, Any],
        caller_address: str,
    ) -> DIDDocument:
        """Merge *fields* into the document of *did_id* and anchor the new hash."""
        return self._mutate_document(
            did_id, caller_address, lambda: self._documents.update(did_id, fields)
        )

    def add_service(
        self,
        did_id: str,
        service: ServiceEndpoint | dict[str, Any],
        caller_address: str,
    ) -> DIDDocument:
        """Append a service endpoint and anchor the new hash."""
        return self._mutate_document(
            did_id, caller_address, lambda: self._documents.add_service(did_id, service)
        )

    def add_verification_method(
        self,
        did_id: str,
        method: VerificationMethod | dict[str, Any],
        caller_address: str,
    ) -> DIDDocument:
        """Append a verification method and anchor the new hash."""
        return self._mutate_document(
            did_id,
            caller_address,
            lambda: self._documents.add_verification_method(did_id, method),
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _mutate_document(
        self,
        did_id: str,
        caller_address: str,
        mutation: Callable[[], DIDDocument],
    ) -> DIDDocument:
        with self._locks.hold(did_id):
            self._check_mutable(did_id, caller_address)
            previous = self._documents.get(did_id)
            document = mutation()
            try:
                self.update_document_hash(did_id, self._documents.hash(document), caller_address)
            except LedgerTimeoutError:
                logger.warning(
                    "Hash update for %s timed out; document kept for reconciliation", did_id
                )
                raise
            except DIDRegistryError:
                self._documents.save(previous)
                logger.warning("Hash update for %s failed; previous document restored", did_id)
                raise
        self._record_event("did_document_changed", did_id, caller_address)
        return document

    def _restore(self, did_id: str, previous: DIDDocument | None) -> None:
        if previous is None:
            self._documents.discard(did_id)
        else:
            self._documents.save(previous)
        logger.warning("Registration of %s rejected; document store rolled back", did_id)

    def _check_mutable(self, did_id: str, caller_address: str) -> DIDRecord:
        record = self._ledger.read_record(did_id)
        if record is None:
            raise NotFoundError("DID", did_id)
        if not self._authorizer.is_authorized(record, caller_address):
            raise NotAuthorizedError(did_id, caller_address)
        if not record.active:
            raise DeactivatedError(did_id)
        return record

    def _transact(
        self,
        operation: LedgerOperation,
        did_id: str,
        args: dict[str, Any],
        caller_address: str,
        observed: DIDRecord | None,
    ) -> DIDRecord:
        key = self._idempotency_key(operation, did_id, args, caller_address, observed)
        commitment = self._ledger.submit(
            operation, did_id, args, caller_address, idempotency_key=key
        )
        try:
            result = self._ledger.await_commitment(
                commitment, timeout=self._config.ledger_timeout_seconds
            )
        except LedgerTimeoutError:
            logger.warning(
                "Gave up waiting for %s of %s (tx %s); it may still commit",
                operation.value,
                did_id,
                commitment.tx_id,
            )
            raise

        if not result.success or result.record is None:
            logger.warning(
                "Ledger rejected %s of %s: %s", operation.value, did_id, result.reason
            )
            raise self._error_for_revert(result.reason, did_id, caller_address)

        logger.info("Ledger committed %s of %s (tx %s)", operation.value, did_id, commitment.tx_id)
        return result.record

    @staticmethod
    def _idempotency_key(
        operation: LedgerOperation,
        did_id: str,
        args: dict[str, Any],
        caller_address: str,
        observed: DIDRecord | None,
    ) -> str:
        # The observed commit time scopes the key to one precondition, so
        # A->B->A->B controller changes are not mistaken for a retry.
        return hash_json(
            {
                "operation": operation.value,
                "didId": did_id,
                "target": args,
                "caller": caller_address.lower(),
                "observed": observed.last_updated.isoformat() if observed else None,
            }
        )

    @staticmethod
    def _error_for_revert(
        reason: str | None, did_id: str, caller_address: str
    ) -> DIDRegistryError:
        if reason == REVERT_ALREADY_REGISTERED:
            return AlreadyRegisteredError(did_id)
        if reason == REVERT_NOT_AUTHORIZED:
            return NotAuthorizedError(did_id, caller_address)
        if reason == REVERT_DEACTIVATED:
            return DeactivatedError(did_id)
        if reason == REVERT_NOT_REGISTERED:
            return NotFoundError("DID", did_id)
        return DIDRegistryError(f"Ledger reverted transaction for {did_id!r}: {reason}")

    def _record_event(self, event_type: str, did_id: str, actor: str, **details: object) -> None:
        if self._audit is not None:
            self._audit.log_event(event_type, did_id, actor=actor, **details)


__all__ = ["DIDRegistry"]
