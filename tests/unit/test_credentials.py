"""Tests for did_registry.credentials — issuance and verification."""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

import pytest

from did_registry.audit import AuditLog
from did_registry.config import RegistryConfig
from did_registry.credentials import CredentialEngine, VerifiableCredential
from did_registry.credentials.models import build_signing_payload
from did_registry.crypto.signing import Ed25519Signer
from did_registry.documents import DocumentStore
from did_registry.errors import (
    ErrorKind,
    ExpiredError,
    IssuerNotActiveError,
    NotFoundError,
    ProofInvalidError,
    SubjectNotActiveError,
)
from did_registry.ledger import InMemoryLedger
from did_registry.registry import DIDRegistry

ISSUER_ADDRESS = "0xA1"
SUBJECT_ADDRESS = "0xB2"


@pytest.fixture()
def audit() -> AuditLog:
    return AuditLog()


@pytest.fixture()
def registry() -> DIDRegistry:
    return DIDRegistry(InMemoryLedger(), DocumentStore())


@pytest.fixture()
def engine(registry: DIDRegistry, audit: AuditLog) -> CredentialEngine:
    return CredentialEngine(registry, audit=audit)


@pytest.fixture()
def issuer_key() -> Ed25519Signer:
    return Ed25519Signer.from_seed(b"\x0a" * 32)


@pytest.fixture()
def issuer_did(registry: DIDRegistry, issuer_key: Ed25519Signer) -> str:
    return registry.create_did(ISSUER_ADDRESS, issuer_key.public_key_multibase)


@pytest.fixture()
def subject_did(registry: DIDRegistry) -> str:
    return registry.create_did(SUBJECT_ADDRESS, Ed25519Signer.generate().public_key_multibase)


@pytest.fixture()
def credential_id(
    engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
) -> str:
    return engine.issue(issuer_did, subject_did, "KYCVerification", {"level": 2}, issuer_key)


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


class TestIssue:
    def test_id_format(self, credential_id: str) -> None:
        assert re.fullmatch(r"vc:ethr:codemtn:kycverification:[0-9a-f]{16}", credential_id)

    def test_id_uses_configured_method_and_network(
        self, registry: DIDRegistry, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        engine = CredentialEngine(registry, config=RegistryConfig(did_method="web", network="test"))
        credential_id = engine.issue(issuer_did, subject_did, "Degree", {}, issuer_key)
        assert credential_id.startswith("vc:web:test:degree:")

    def test_stored_credential_shape(
        self, engine: CredentialEngine, credential_id: str, issuer_did: str, subject_did: str
    ) -> None:
        credential = engine.get(credential_id)
        assert credential.type == "KYCVerification"
        assert credential.issuer == issuer_did
        assert credential.credential_subject.id == subject_did
        assert credential.credential_subject.claims == {"level": 2}
        assert credential.proof.type == "Ed25519Signature2020"
        assert credential.proof.proof_purpose == "assertionMethod"
        assert credential.proof.verification_method == f"{issuer_did}#keys-1"
        assert credential.proof.signature_value.startswith("z")

    def test_serialized_names(self, engine: CredentialEngine, credential_id: str) -> None:
        data = engine.get(credential_id).to_dict()
        assert data["@context"] == ["https://www.w3.org/2018/credentials/v1"]
        assert data["type"] == "KYCVerification"
        assert data["credentialSubject"]["claims"] == {"level": 2}
        assert "issuanceDate" in data
        assert "expirationDate" not in data
        assert data["proof"]["signatureValue"]

    def test_json_round_trip(self, engine: CredentialEngine, credential_id: str) -> None:
        credential = engine.get(credential_id)
        restored = VerifiableCredential.from_json(credential.to_json())
        assert restored.signing_payload() == credential.signing_payload()

    def test_ids_are_unique(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        ids = {engine.issue(issuer_did, subject_did, "T", {}, issuer_key) for _ in range(25)}
        assert len(ids) == 25
        assert len(engine) == 25

    def test_unknown_issuer_rejected(
        self, engine: CredentialEngine, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        with pytest.raises(IssuerNotActiveError):
            engine.issue("did:example:nobody", subject_did, "T", {}, issuer_key)

    def test_deactivated_issuer_rejected(
        self,
        engine: CredentialEngine,
        registry: DIDRegistry,
        issuer_did: str,
        subject_did: str,
        issuer_key: Ed25519Signer,
    ) -> None:
        registry.deactivate(issuer_did, ISSUER_ADDRESS)
        with pytest.raises(IssuerNotActiveError):
            engine.issue(issuer_did, subject_did, "T", {}, issuer_key)

    def test_inactive_subject_rejected(
        self,
        engine: CredentialEngine,
        registry: DIDRegistry,
        issuer_did: str,
        subject_did: str,
        issuer_key: Ed25519Signer,
    ) -> None:
        registry.deactivate(subject_did, SUBJECT_ADDRESS)
        with pytest.raises(SubjectNotActiveError):
            engine.issue(issuer_did, subject_did, "T", {}, issuer_key)

    def test_empty_type_rejected(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        with pytest.raises(ValueError):
            engine.issue(issuer_did, subject_did, "", {}, issuer_key)

    def test_naive_expiration_is_utc(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        naive = datetime(2999, 1, 1)
        credential_id = engine.issue(issuer_did, subject_did, "T", {}, issuer_key, naive)
        assert engine.get(credential_id).expiration_date == naive.replace(tzinfo=timezone.utc)

    def test_get_unknown_raises(self, engine: CredentialEngine) -> None:
        with pytest.raises(NotFoundError):
            engine.get("vc:ethr:codemtn:t:0000000000000000")


class TestSigningPayload:
    def test_payload_is_canonical(self) -> None:
        issued = datetime(2024, 1, 1, tzinfo=timezone.utc)
        payload = build_signing_payload("did:example:i", "did:example:s", "T", {"b": 1, "a": 2}, issued)
        assert payload == (
            b'{"claims":{"a":2,"b":1},"issuer":"did:example:i","subject":"did:example:s",'
            b'"timestamp":"2024-01-01T00:00:00+00:00","type":"T"}'
        )

    def test_expiration_is_signed_when_present(self) -> None:
        issued = datetime(2024, 1, 1, tzinfo=timezone.utc)
        without = build_signing_payload("i", "s", "T", {}, issued)
        with_expiry = build_signing_payload("i", "s", "T", {}, issued, issued + timedelta(days=1))
        assert b"expirationDate" not in without
        assert b"expirationDate" in with_expiry


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class TestVerify:
    def test_valid_credential(
        self, engine: CredentialEngine, credential_id: str, issuer_did: str, subject_did: str
    ) -> None:
        result = engine.verify(credential_id, "did:example:verifier", "job-application")
        assert result.success and result.verified
        assert result.errors == []
        assert result.failure is None
        assert result.issuer == issuer_did
        assert result.subject == subject_did
        assert result.claims == {"level": 2}
        assert result.checks_passed == [
            "credential_exists",
            "issuer_active",
            "not_expired",
            "proof_valid",
        ]
        assert result.verifier_did == "did:example:verifier"
        assert result.presentation_context == "job-application"

    def test_unknown_credential(self, engine: CredentialEngine) -> None:
        result = engine.verify("vc:missing")
        assert not result.verified
        assert result.errors == ["Credential not found"]
        assert result.failure is ErrorKind.NOT_FOUND

    def test_deactivated_issuer_fails(
        self, engine: CredentialEngine, registry: DIDRegistry, credential_id: str, issuer_did: str
    ) -> None:
        registry.deactivate(issuer_did, ISSUER_ADDRESS)
        result = engine.verify(credential_id)
        assert not result.verified
        assert result.errors == ["Issuer DID is not active"]
        assert result.failure is ErrorKind.ISSUER_NOT_ACTIVE
        assert result.checks_passed == ["credential_exists"]

    def test_expired_credential_fails(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        expired = datetime.now(timezone.utc) - timedelta(seconds=1)
        credential_id = engine.issue(issuer_did, subject_did, "T", {}, issuer_key, expired)
        result = engine.verify(credential_id)
        assert result.verified is False
        assert result.errors == ["Credential has expired"]
        assert result.valid_until == expired

    def test_future_expiration_passes(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        later = datetime.now(timezone.utc) + timedelta(days=1)
        credential_id = engine.issue(issuer_did, subject_did, "T", {}, issuer_key, later)
        assert engine.verify(credential_id).verified

    def test_foreign_signing_key_fails(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str
    ) -> None:
        credential_id = engine.issue(issuer_did, subject_did, "T", {}, Ed25519Signer.generate())
        result = engine.verify(credential_id)
        assert result.success is True
        assert result.verified is False
        assert result.errors == ["Credential proof is invalid"]
        assert result.failure is ErrorKind.PROOF_INVALID

    def test_tampered_claims_fail(self, engine: CredentialEngine, credential_id: str) -> None:
        credential = engine.get(credential_id)
        tampered_subject = credential.credential_subject.model_copy(update={"claims": {"level": 3}})
        engine._credentials[credential_id] = credential.model_copy(
            update={"credential_subject": tampered_subject}
        )
        assert engine.verify(credential_id).errors == ["Credential proof is invalid"]

    def test_method_outside_issuer_document_fails(
        self,
        engine: CredentialEngine,
        issuer_did: str,
        subject_did: str,
        issuer_key: Ed25519Signer,
    ) -> None:
        credential_id = engine.issue(
            issuer_did, subject_did, "T", {}, issuer_key, verification_method=f"{subject_did}#keys-1"
        )
        assert not engine.verify(credential_id).verified

    def test_issuer_without_keys_fails(
        self, engine: CredentialEngine, registry: DIDRegistry, subject_did: str
    ) -> None:
        keyless = registry.create_did("0xC3")
        credential_id = engine.issue(keyless, subject_did, "T", {}, Ed25519Signer.generate())
        assert engine.verify(credential_id).errors == ["Credential proof is invalid"]

    def test_rotated_key_verifies_new_credentials(
        self,
        engine: CredentialEngine,
        registry: DIDRegistry,
        issuer_did: str,
        subject_did: str,
    ) -> None:
        new_key = Ed25519Signer.generate()
        registry.add_verification_method(
            issuer_did,
            {
                "id": f"{issuer_did}#keys-2",
                "type": "Ed25519VerificationKey2020",
                "controller": issuer_did,
                "publicKeyMultibase": new_key.public_key_multibase,
            },
            ISSUER_ADDRESS,
        )
        credential_id = engine.issue(
            issuer_did, subject_did, "T", {}, new_key, verification_method=f"{issuer_did}#keys-2"
        )
        assert engine.verify(credential_id).verified

    def test_unexpected_error_becomes_failed_result(
        self, engine: CredentialEngine, registry: DIDRegistry, credential_id: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(did_id: str) -> bool:
            raise RuntimeError("ledger exploded")

        monkeypatch.setattr(registry, "is_active", explode)
        result = engine.verify(credential_id)
        assert result.success is False
        assert result.verified is False
        assert result.errors == ["ledger exploded"]

    def test_result_to_dict(self, engine: CredentialEngine, credential_id: str) -> None:
        data = engine.verify(credential_id, "did:example:v", "ctx").to_dict()
        assert data["verified"] is True
        assert data["verifierDid"] == "did:example:v"
        assert data["presentationContext"] == "ctx"
        assert "errors" not in data


class TestRequireValid:
    def test_returns_credential_when_valid(self, engine: CredentialEngine, credential_id: str) -> None:
        assert engine.require_valid(credential_id).id == credential_id

    def test_raises_not_found(self, engine: CredentialEngine) -> None:
        with pytest.raises(NotFoundError):
            engine.require_valid("vc:missing")

    def test_raises_issuer_not_active(
        self, engine: CredentialEngine, registry: DIDRegistry, credential_id: str, issuer_did: str
    ) -> None:
        registry.deactivate(issuer_did, ISSUER_ADDRESS)
        with pytest.raises(IssuerNotActiveError):
            engine.require_valid(credential_id)

    def test_raises_expired(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str, issuer_key: Ed25519Signer
    ) -> None:
        past = datetime.now(timezone.utc) - timedelta(minutes=1)
        credential_id = engine.issue(issuer_did, subject_did, "T", {}, issuer_key, past)
        with pytest.raises(ExpiredError):
            engine.require_valid(credential_id)

    def test_raises_proof_invalid(
        self, engine: CredentialEngine, issuer_did: str, subject_did: str
    ) -> None:
        credential_id = engine.issue(issuer_did, subject_did, "T", {}, Ed25519Signer.generate())
        with pytest.raises(ProofInvalidError):
            engine.require_valid(credential_id)


class TestCredentialAudit:
    def test_issue_and_verify_are_audited(
        self, engine: CredentialEngine, audit: AuditLog, credential_id: str
    ) -> None:
        engine.verify(credential_id, "did:example:v", "ctx")
        events = [e for e in audit.drain_buffer() if e["event_type"].startswith("credential_")]
        assert [e["event_type"] for e in events] == ["credential_issued", "credential_verified"]
        assert events[1]["actor"] == "did:example:v"
        assert events[1]["details"]["verified"] is True
        assert events[1]["details"]["presentation_context"] == "ctx"
