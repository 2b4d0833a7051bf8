"""RegistryServices — the owned object graph behind the CLI and HTTP surface.

Nothing in the package keeps module-level state. :meth:`RegistryServices.create`
builds one ledger, one document store, one registry, and one credential
engine, all sharing a config and an audit log; :meth:`RegistryServices.close`
tears them down.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from did_registry.audit import AuditLog
from did_registry.config import RegistryConfig
from did_registry.credentials.engine import CredentialEngine
from did_registry.crypto.signing import Ed25519Signer, Signer, SigningAdapter
from did_registry.documents.store import DocumentStore
from did_registry.ledger.authorization import Authorizer, ControllerAuthorizer
from did_registry.ledger.client import LedgerClient
from did_registry.ledger.memory import InMemoryLedger
from did_registry.registry.did_registry import DIDRegistry

logger = logging.getLogger(__name__)


@dataclass
class RegistryServices:
    """Container for the collaborating services.

    Attributes
    ----------
    config:
        Settings every service was built from.
    ledger:
        Ledger client owning DID records.
    documents:
        Store owning DID documents.
    registry:
        Lifecycle state machine over ``ledger`` and ``documents``.
    credentials:
        Credential engine backed by ``registry``.
    signer:
        Operator signing key. Its public key is published in DIDs the HTTP
        surface creates, and it signs credentials issued over HTTP.
    audit:
        Shared audit log.
    """

    config: RegistryConfig
    ledger: LedgerClient
    documents: DocumentStore
    registry: DIDRegistry
    credentials: CredentialEngine
    signer: Signer
    audit: AuditLog
    closed: bool = False

    @classmethod
    def create(
        cls,
        config: RegistryConfig | None = None,
        ledger: LedgerClient | None = None,
        authorizer: Authorizer | None = None,
        signer: Signer | None = None,
    ) -> "RegistryServices":
        """Build the service graph.

        Parameters
        ----------
        config:
            Settings. Defaults to :meth:`RegistryConfig.from_env`.
        ledger:
            Ledger backend. Defaults to an :class:`InMemoryLedger` using
            *authorizer*.
        authorizer:
            Ownership check shared by the registry pre-checks and the
            default ledger.
        signer:
            Operator signer. Defaults to the configured seed, or a freshly
            generated key.
        """
        if config is None:
            config = RegistryConfig.from_env()
        if authorizer is None:
            authorizer = ControllerAuthorizer()
        if signer is None:
            if config.signing_key_hex:
                signer = Ed25519Signer.from_seed_hex(config.signing_key_hex)
            else:
                signer = Ed25519Signer.generate()
                logger.info("No signing key configured; generated an ephemeral operator key")

        audit = AuditLog(config.audit_log_path)
        if ledger is None:
            ledger = InMemoryLedger(authorizer=authorizer)
        documents = DocumentStore(
            profile_service_url=config.profile_service_url,
            key_fragment=config.key_fragment,
        )
        registry = DIDRegistry(
            ledger, documents, authorizer=authorizer, config=config, audit=audit
        )
        credentials = CredentialEngine(
            registry, adapter=SigningAdapter(), config=config, audit=audit
        )
        logger.info(
            "Registry services created for did:%s:%s", config.did_method, config.network
        )
        return cls(
            config=config,
            ledger=ledger,
            documents=documents,
            registry=registry,
            credentials=credentials,
            signer=signer,
            audit=audit,
        )

    def close(self) -> None:
        """Close the ledger client. Safe to call more than once."""
        if self.closed:
            return
        self.ledger.close()
        self.closed = True
        logger.info("Registry services closed")

    def __enter__(self) -> "RegistryServices":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["RegistryServices"]
