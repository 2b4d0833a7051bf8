"""DocumentStore — off-ledger DID documents keyed by DID.

The store owns every :class:`~did_registry.documents.models.DIDDocument`.
It knows nothing about the ledger; the registry state machine keeps the
ledger's ``document_hash`` equal to :meth:`DocumentStore.hash` of the
stored document.

Mutations on one DID are serialized with a per-DID lock; different DIDs
never block each other.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any

from did_registry.crypto.canonical import hash_json
from did_registry.crypto.signing import ED25519_VERIFICATION_KEY_TYPE
from did_registry.documents.models import (
    DID_CONTEXT_V1,
    ED25519_2020_CONTEXT,
    DIDDocument,
    ServiceEndpoint,
    VerificationMethod,
)
from did_registry.errors import NotFoundError
from did_registry.locks import KeyedLock

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_SERVICE_URL: str = "https://codemtn.com/profile/"
DEFAULT_KEY_FRAGMENT: str = "keys-1"

# Fields a caller may never change through update().
_IMMUTABLE_FIELDS = frozenset({"id", "created", "updated"})


def _field_name_map() -> dict[str, str]:
    """Map both W3C aliases and Python names to model field names."""
    mapping: dict[str, str] = {}
    for name, info in DIDDocument.model_fields.items():
        mapping[name] = name
        if info.alias:
            mapping[info.alias] = name
    return mapping


_FIELD_NAMES = _field_name_map()


def strip_address_prefix(address: str) -> str:
    """Return *address* lowercased and without a leading ``0x``."""
    lowered = address.lower()
    return lowered[2:] if lowered.startswith("0x") else lowered


class DocumentStore:
    """Thread-safe in-memory store for DID documents.

    Parameters
    ----------
    profile_service_url:
        Base URL of the profile service advertised in default documents.
    key_fragment:
        Fragment used for the default verification method id
        (``<did>#<fragment>``).

    Example
    -------
    ::

        store = DocumentStore()
        doc = store.create("did:ethr:codemtn:abc", "0xABC")
        store.add_service(
            doc.id,
            ServiceEndpoint(id=f"{doc.id}#inbox", type="Inbox", endpoint="https://x.example"),
        )
        print(store.hash(store.get(doc.id)))
    """

    def __init__(
        self,
        profile_service_url: str = DEFAULT_PROFILE_SERVICE_URL,
        key_fragment: str = DEFAULT_KEY_FRAGMENT,
    ) -> None:
        self._profile_service_url = profile_service_url
        self._key_fragment = key_fragment
        self._documents: dict[str, DIDDocument] = {}
        self._guard = threading.Lock()
        self._locks = KeyedLock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        did_id: str,
        owner_address: str,
        public_key_multibase: str | None = None,
    ) -> DIDDocument:
        """Create the default document for *did_id*, or return the existing one.

        The call is idempotent: an established document is never replaced
        by a default one. This is what makes retrying an interrupted
        create-and-register safe.

        Parameters
        ----------
        did_id:
            The DID the document describes.
        owner_address:
            Address of the owner, used for the profile service endpoint.
        public_key_multibase:
            Optional Ed25519 public key. When given, it becomes the
            ``#keys-1`` verification method and is referenced from
            ``authentication`` and ``assertionMethod``.

        Returns
        -------
        DIDDocument
            The stored document.
        """
        with self._locks.hold(did_id):
            existing = self._lookup(did_id)
            if existing is not None:
                return existing

            key_id = f"{did_id}#{self._key_fragment}"
            methods: list[VerificationMethod] = []
            if public_key_multibase:
                methods.append(
                    VerificationMethod(
                        id=key_id,
                        type=ED25519_VERIFICATION_KEY_TYPE,
                        controller=did_id,
                        public_key_multibase=public_key_multibase,
                    )
                )
            references = [key_id] if methods else []
            now = datetime.now(timezone.utc)
            document = DIDDocument(
                context=[DID_CONTEXT_V1, ED25519_2020_CONTEXT],
                id=did_id,
                controller=did_id,
                verification_method=methods,
                authentication=references,
                assertion_method=list(references),
                service=[
                    ServiceEndpoint(
                        id=f"{did_id}#profile",
                        type="SocialNetworkProfile",
                        endpoint=self._profile_service_url
                        + strip_address_prefix(owner_address),
                    )
                ],
                created=now,
                updated=now,
            )
            self._store(document)
        logger.info("Created DID document for %s", did_id)
        return document

    def save(self, document: DIDDocument) -> DIDDocument | None:
        """Insert or replace the whole document stored under ``document.id``.

        Returns
        -------
        DIDDocument | None
            The document previously stored, or ``None``.
        """
        with self._locks.hold(document.id):
            previous = self._lookup(document.id)
            self._store(document)
        logger.debug("Saved DID document for %s", document.id)
        return previous

    def discard(self, did_id: str) -> DIDDocument | None:
        """Remove the document for *did_id* and return it, if present.

        Only for documents that were never anchored on the ledger, such as
        the leftover of a registration the ledger rejected.
        """
        with self._locks.hold(did_id):
            with self._guard:
                removed = self._documents.pop(did_id, None)
        if removed is not None:
            logger.info("Discarded unanchored DID document for %s", did_id)
        return removed

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, did_id: str) -> DIDDocument:
        """Return the document for *did_id*.

        Raises
        ------
        NotFoundError
            If no document is stored for *did_id*.
        """
        document = self._lookup(did_id)
        if document is None:
            raise NotFoundError("DID document", did_id)
        return document

    def list_dids(self) -> list[str]:
        """Return a sorted list of DIDs with a stored document."""
        with self._guard:
            return sorted(self._documents)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, did_id: str, fields: dict[str, Any]) -> DIDDocument:
        """Merge *fields* into the stored document and refresh ``updated``.

        Keys may use W3C names (``verificationMethod``) or Python names
        (``verification_method``). ``id``, ``created`` and ``updated`` are
        ignored if supplied.

        Raises
        ------
        NotFoundError
            If no document is stored for *did_id*.
        ValueError
            If a key is not a DID document field or the merged document
            fails validation.
        """
        mapped: dict[str, Any] = {}
        for key, value in fields.items():
            name = _FIELD_NAMES.get(key)
            if name is None:
                raise ValueError(f"Unknown DID document field {key!r}.")
            if name in _IMMUTABLE_FIELDS:
                logger.warning("Ignoring attempt to change %r of %s", key, did_id)
                continue
            mapped[name] = value

        with self._locks.hold(did_id):
            current = self.get(did_id)
            data = current.model_dump()
            data.update(mapped)
            data["updated"] = datetime.now(timezone.utc)
            document = DIDDocument.model_validate(data)
            self._store(document)
        logger.info("Updated DID document for %s", did_id)
        return document

    def add_service(
        self, did_id: str, service: ServiceEndpoint | dict[str, Any]
    ) -> DIDDocument:
        """Append a service endpoint to the document for *did_id*."""
        if isinstance(service, dict):
            service = ServiceEndpoint.model_validate(service)
        with self._locks.hold(did_id):
            current = self.get(did_id)
            return self.update(did_id, {"service": [*current.service, service]})

    def add_verification_method(
        self, did_id: str, method: VerificationMethod | dict[str, Any]
    ) -> DIDDocument:
        """Append a verification method to the document for *did_id*."""
        if isinstance(method, dict):
            method = VerificationMethod.model_validate(method)
        with self._locks.hold(did_id):
            current = self.get(did_id)
            return self.update(
                did_id, {"verification_method": [*current.verification_method, method]}
            )

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    @staticmethod
    def hash(document: DIDDocument) -> str:
        """Return the canonical SHA-256 hex hash of *document*."""
        return hash_json(document.to_dict())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lookup(self, did_id: str) -> DIDDocument | None:
        with self._guard:
            return self._documents.get(did_id)

    def _store(self, document: DIDDocument) -> None:
        with self._guard:
            self._documents[document.id] = document

    def __len__(self) -> int:
        with self._guard:
            return len(self._documents)

    def __contains__(self, did_id: object) -> bool:
        with self._guard:
            return did_id in self._documents


__all__ = [
    "DEFAULT_KEY_FRAGMENT",
    "DEFAULT_PROFILE_SERVICE_URL",
    "DocumentStore",
    "strip_address_prefix",
]
