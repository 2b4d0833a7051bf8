"""did_registry.documents — W3C DID documents and their off-ledger store."""
from __future__ import annotations

from did_registry.documents.models import (
    DID_CONTEXT_V1,
    DIDDocument,
    ServiceEndpoint,
    VerificationMethod,
    is_valid_did,
    parse_did,
)
from did_registry.documents.store import DocumentStore

__all__ = [
    "DID_CONTEXT_V1",
    "DIDDocument",
    "DocumentStore",
    "ServiceEndpoint",
    "VerificationMethod",
    "is_valid_did",
    "parse_did",
]
