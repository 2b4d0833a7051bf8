"""Tests for did_registry.server.routes — route handlers and error mapping."""
from __future__ import annotations

import pytest

from did_registry.config import RegistryConfig
from did_registry.crypto.signing import Ed25519Signer
from did_registry.errors import (
    AlreadyRegisteredError,
    DeactivatedError,
    DIDRegistryError,
    IssuerNotActiveError,
    LedgerTimeoutError,
    LedgerUnavailableError,
    NotAuthorizedError,
    NotFoundError,
    SubjectNotActiveError,
)
from did_registry.server.routes import RegistryRoutes, status_for_error
from did_registry.services import RegistryServices

OPERATOR = "0x00000000000000000000000000000000000000ff"
DID = "did:example:abc"


@pytest.fixture()
def services() -> RegistryServices:
    return RegistryServices.create(RegistryConfig(operator_address=OPERATOR))


@pytest.fixture()
def routes(services: RegistryServices) -> RegistryRoutes:
    return RegistryRoutes(services)


def _create(routes: RegistryRoutes, caller: str) -> str:
    status, data = routes.handle_create({"callerAddress": caller})
    assert status == 201
    return str(data["did"])


class TestErrorMapping:
    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (NotFoundError("DID", DID), 404),
            (NotAuthorizedError(DID, "0x1"), 403),
            (AlreadyRegisteredError(DID), 409),
            (DeactivatedError(DID), 409),
            (IssuerNotActiveError(DID), 422),
            (SubjectNotActiveError(DID), 422),
            (LedgerUnavailableError("down"), 503),
            (LedgerTimeoutError("0x1", 1.0), 504),
            (DIDRegistryError("reverted"), 500),
        ],
    )
    def test_status_for_error(self, error: DIDRegistryError, status: int) -> None:
        assert status_for_error(error) == status


class TestHealth:
    def test_health_counts(self, routes: RegistryRoutes) -> None:
        status, data = routes.handle_health()
        assert status == 200
        assert data["status"] == "ok"
        assert data["service"] == "did-registry"
        assert data["did_count"] == 0

        _create(routes, "0xAAA")
        assert routes.handle_health()[1]["did_count"] == 1


class TestDIDRoutes:
    def test_register_then_get(self, routes: RegistryRoutes) -> None:
        status, data = routes.handle_register({"didId": DID, "documentHash": "H1"})
        assert status == 201
        assert data["success"] is True
        assert data["message"] == f"DID {DID} registered successfully"

        status, info = routes.handle_get_did(DID)
        assert status == 200
        assert info["controller"] == OPERATOR
        assert info["documentHash"] == "H1"

    def test_register_duplicate_is_conflict(self, routes: RegistryRoutes) -> None:
        routes.handle_register({"didId": DID, "documentHash": "H1"})
        status, data = routes.handle_register({"didId": DID, "documentHash": "H2"})
        assert status == 409
        assert data["kind"] == "AlreadyRegistered"

    def test_register_missing_fields_is_422(self, routes: RegistryRoutes) -> None:
        status, data = routes.handle_register({"didId": DID})
        assert status == 422
        assert data["error"] == "Validation error"

    def test_register_malformed_did_is_422(self, routes: RegistryRoutes) -> None:
        status, _ = routes.handle_register({"didId": "nope", "documentHash": "H1"})
        assert status == 422

    def test_update_requires_controller(self, routes: RegistryRoutes) -> None:
        routes.handle_register({"didId": DID, "documentHash": "H1", "callerAddress": "0xAAA"})
        status, _ = routes.handle_update_document(
            {"didId": DID, "newDocumentHash": "H2", "callerAddress": "0xBBB"}
        )
        assert status == 403

        status, data = routes.handle_update_document(
            {"didId": DID, "newDocumentHash": "H2", "callerAddress": "0xAAA"}
        )
        assert status == 200
        assert data["documentHash"] == "H2"

    def test_change_controller(self, routes: RegistryRoutes) -> None:
        routes.handle_register({"didId": DID, "documentHash": "H1"})
        status, data = routes.handle_change_controller({"didId": DID, "newController": "0xBBB"})
        assert status == 200
        assert data["controller"] == "0xBBB"

    def test_deactivate_then_mutate_is_conflict(self, routes: RegistryRoutes) -> None:
        routes.handle_register({"didId": DID, "documentHash": "H1"})
        status, data = routes.handle_deactivate({"didId": DID})
        assert status == 200
        assert data["active"] is False

        status, active = routes.handle_is_active(DID)
        assert status == 200
        assert active == {"didId": DID, "active": False}

        status, _ = routes.handle_deactivate({"didId": DID})
        assert status == 409

    def test_unknown_did_is_404(self, routes: RegistryRoutes) -> None:
        assert routes.handle_get_did(DID)[0] == 404
        assert routes.handle_get_document(DID)[0] == 404
        assert routes.handle_update_document({"didId": DID, "newDocumentHash": "H"})[0] == 404

    def test_unknown_did_is_inactive(self, routes: RegistryRoutes) -> None:
        assert routes.handle_is_active(DID) == (200, {"didId": DID, "active": False})

    def test_create_publishes_operator_key(
        self, routes: RegistryRoutes, services: RegistryServices
    ) -> None:
        status, data = routes.handle_create({"callerAddress": "0xAAA"})
        assert status == 201
        assert data["did"] == "did:ethr:codemtn:aaa"
        method = data["document"]["verificationMethod"][0]
        assert method["publicKeyMultibase"] == services.signer.public_key_multibase

        status, document = routes.handle_get_document("did:ethr:codemtn:aaa")
        assert status == 200
        assert document == data["document"]

    def test_create_defaults_to_operator(self, routes: RegistryRoutes) -> None:
        status, data = routes.handle_create({})
        assert status == 201
        assert data["did"] == f"did:ethr:codemtn:{OPERATOR[2:]}"

    def test_create_twice_is_conflict(self, routes: RegistryRoutes) -> None:
        _create(routes, "0xAAA")
        assert routes.handle_create({"callerAddress": "0xAAA"})[0] == 409

    def test_register_with_document(self, routes: RegistryRoutes, services: RegistryServices) -> None:
        status, data = routes.handle_register_with_document(
            {"didId": DID, "document": {"id": DID, "alsoKnownAs": ["https://a.example"]}}
        )
        assert status == 201
        assert services.registry.verify_document_integrity(DID)

    def test_register_with_invalid_document_is_422(self, routes: RegistryRoutes) -> None:
        status, _ = routes.handle_register_with_document(
            {"didId": DID, "document": {"id": "did:example:other"}}
        )
        assert status == 422

    def test_ledger_outage_is_503(self, routes: RegistryRoutes, services: RegistryServices) -> None:
        services.ledger.set_available(False)  # type: ignore[attr-defined]
        status, data = routes.handle_get_did(DID)
        assert status == 503
        assert data["kind"] == "LedgerUnavailable"


class TestCredentialRoutes:
    def test_issue_verify_get(self, routes: RegistryRoutes) -> None:
        issuer = _create(routes, "0xAAA")
        subject = _create(routes, "0xBBB")

        status, credential = routes.handle_issue_credential(
            {
                "issuerDid": issuer,
                "subjectDid": subject,
                "credentialType": "KYCVerification",
                "claims": {"level": 1},
            }
        )
        assert status == 201
        credential_id = credential["id"]
        assert credential["credentialSubject"]["id"] == subject

        status, result = routes.handle_verify_credential(
            {"credentialId": credential_id, "verifierDid": subject, "presentationContext": "kyc"}
        )
        assert status == 200
        assert result["verified"] is True
        assert result["verifierDid"] == subject

        status, fetched = routes.handle_get_credential(credential_id)
        assert status == 200
        assert fetched == credential

    def test_issue_for_unknown_issuer_is_422(self, routes: RegistryRoutes) -> None:
        subject = _create(routes, "0xBBB")
        status, data = routes.handle_issue_credential(
            {"issuerDid": DID, "subjectDid": subject, "credentialType": "T"}
        )
        assert status == 422
        assert data["kind"] == "IssuerNotActive"

    def test_issue_for_issuer_with_foreign_key_is_422(
        self, routes: RegistryRoutes, services: RegistryServices
    ) -> None:
        foreign_key = Ed25519Signer.generate().public_key_multibase
        status, data = routes.handle_create(
            {"callerAddress": "0xAAA", "publicKeyMultibase": foreign_key}
        )
        assert status == 201
        subject = _create(routes, "0xBBB")

        status, data = routes.handle_issue_credential(
            {"issuerDid": data["did"], "subjectDid": subject, "credentialType": "T"}
        )
        assert status == 422
        assert "operator signing key" in data["detail"]
        assert len(services.credentials) == 0

    def test_issue_for_issuer_without_document_is_422(
        self, routes: RegistryRoutes, services: RegistryServices
    ) -> None:
        assert routes.handle_register({"didId": DID, "documentHash": "H1"})[0] == 201
        subject = _create(routes, "0xBBB")
        status, _ = routes.handle_issue_credential(
            {"issuerDid": DID, "subjectDid": subject, "credentialType": "T"}
        )
        assert status == 422
        assert len(services.credentials) == 0

    def test_issue_with_expiration(self, routes: RegistryRoutes) -> None:
        issuer = _create(routes, "0xAAA")
        status, credential = routes.handle_issue_credential(
            {
                "issuerDid": issuer,
                "subjectDid": issuer,
                "credentialType": "T",
                "expirationDate": "2000-01-01T00:00:00Z",
            }
        )
        assert status == 201
        status, result = routes.handle_verify_credential({"credentialId": credential["id"]})
        assert status == 200
        assert result["errors"] == ["Credential has expired"]

    def test_verify_unknown_is_200_with_error(self, routes: RegistryRoutes) -> None:
        status, result = routes.handle_verify_credential({"credentialId": "vc:missing"})
        assert status == 200
        assert result["verified"] is False
        assert result["errors"] == ["Credential not found"]

    def test_get_unknown_credential_is_404(self, routes: RegistryRoutes) -> None:
        assert routes.handle_get_credential("vc:missing")[0] == 404
