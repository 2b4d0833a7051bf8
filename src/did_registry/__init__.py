"""did-registry — Decentralized identifier registry and verifiable credentials.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import did_registry
>>> did_registry.__version__
'0.1.0'

Quick start
-----------
::

    from did_registry import RegistryServices, Ed25519Signer

    signer = Ed25519Signer.generate()
    with RegistryServices.create(signer=signer) as services:
        did = services.registry.create_did("0xAAA", signer.public_key_multibase)
        credential_id = services.credentials.issue(
            did, did, "SelfAttestation", {"name": "Alice"}, signer
        )
        print(services.credentials.verify(credential_id).verified)  # True
"""
from __future__ import annotations

__version__: str = "0.1.0"

from did_registry.audit import AuditEvent, AuditLog
from did_registry.config import RegistryConfig
from did_registry.credentials import (
    CredentialEngine,
    CredentialProof,
    CredentialSubject,
    VerifiableCredential,
    VerificationResult,
)
from did_registry.crypto import Ed25519Signer, Signer, SigningAdapter
from did_registry.documents import DIDDocument, DocumentStore, ServiceEndpoint, VerificationMethod
from did_registry.errors import (
    AlreadyRegisteredError,
    DeactivatedError,
    DIDRegistryError,
    ErrorKind,
    ExpiredError,
    IssuerNotActiveError,
    LedgerTimeoutError,
    LedgerUnavailableError,
    NotAuthorizedError,
    NotFoundError,
    ProofInvalidError,
    SubjectNotActiveError,
)
from did_registry.ledger import (
    Authorizer,
    ControllerAuthorizer,
    DIDRecord,
    InMemoryLedger,
    LedgerClient,
    LedgerOperation,
)
from did_registry.registry import DIDRegistry
from did_registry.services import RegistryServices

__all__ = [
    "__version__",
    # Services
    "RegistryConfig",
    "RegistryServices",
    "AuditEvent",
    "AuditLog",
    # Registry and ledger
    "DIDRegistry",
    "DIDRecord",
    "LedgerClient",
    "LedgerOperation",
    "InMemoryLedger",
    "Authorizer",
    "ControllerAuthorizer",
    # Documents
    "DIDDocument",
    "DocumentStore",
    "ServiceEndpoint",
    "VerificationMethod",
    # Credentials
    "CredentialEngine",
    "CredentialProof",
    "CredentialSubject",
    "VerifiableCredential",
    "VerificationResult",
    # Crypto
    "Ed25519Signer",
    "Signer",
    "SigningAdapter",
    # Errors
    "ErrorKind",
    "DIDRegistryError",
    "NotFoundError",
    "AlreadyRegisteredError",
    "NotAuthorizedError",
    "DeactivatedError",
    "IssuerNotActiveError",
    "SubjectNotActiveError",
    "ExpiredError",
    "ProofInvalidError",
    "LedgerUnavailableError",
    "LedgerTimeoutError",
]
