"""Route handlers for the did-registry HTTP server.

Each handler accepts parsed request data and returns a tuple of
(status_code, response_dict). The HTTP handler in app.py calls these
methods and serializes the results to JSON.

Error kinds map to status codes as follows:

==========================================  ======
Error                                       Status
==========================================  ======
NotFound                                    404
NotAuthorized                               403
AlreadyRegistered, Deactivated              409
IssuerNotActive, SubjectNotActive           422
request validation                          422
LedgerUnavailable                           503
LedgerTimeout                               504
anything else                               500
==========================================  ======
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from did_registry import __version__
from did_registry.documents.models import DIDDocument
from did_registry.errors import DIDRegistryError, ErrorKind, NotFoundError
from did_registry.server.models import (
    ChangeControllerRequest,
    CreateDIDRequest,
    DeactivateRequest,
    ErrorResponse,
    HealthResponse,
    IssueCredentialRequest,
    RegisterRequest,
    RegisterWithDocumentRequest,
    UpdateDocumentRequest,
    VerifyCredentialRequest,
)
from did_registry.services import RegistryServices

logger = logging.getLogger(__name__)

Response = tuple[int, dict[str, object]]
_RequestT = TypeVar("_RequestT", bound=BaseModel)

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.NOT_AUTHORIZED: 403,
    ErrorKind.ALREADY_REGISTERED: 409,
    ErrorKind.DEACTIVATED: 409,
    ErrorKind.ISSUER_NOT_ACTIVE: 422,
    ErrorKind.SUBJECT_NOT_ACTIVE: 422,
    ErrorKind.LEDGER_UNAVAILABLE: 503,
    ErrorKind.LEDGER_TIMEOUT: 504,
}


def status_for_error(exc: DIDRegistryError) -> int:
    """Return the HTTP status code for a registry error."""
    kind = getattr(exc, "kind", None)
    return _STATUS_BY_KIND.get(kind, 500) if kind is not None else 500


def _error(status: int, error: str, detail: str, kind: ErrorKind | None = None) -> Response:
    body = ErrorResponse(error=error, detail=detail, kind=kind.value if kind else None)
    return status, body.model_dump(exclude_none=True)


class RegistryRoutes:
    """Route handlers bound to one :class:`RegistryServices` graph.

    Parameters
    ----------
    services:
        The services every handler operates on.
    """

    def __init__(self, services: RegistryServices) -> None:
        self._services = services

    @property
    def services(self) -> RegistryServices:
        return self._services

    # ── DID lifecycle ─────────────────────────────────────────────────────────

    def handle_register(self, body: dict[str, object]) -> Response:
        """Handle POST /did/register."""
        return self._run(
            RegisterRequest,
            body,
            lambda r: self._message(
                self._services.registry.register(
                    r.did_id, r.document_hash, self._caller(r.caller_address)
                ).to_dict(),
                f"DID {r.did_id} registered successfully",
            ),
            success_status=201,
        )

    def handle_update_document(self, body: dict[str, object]) -> Response:
        """Handle PATCH /did/update-document."""
        return self._run(
            UpdateDocumentRequest,
            body,
            lambda r: self._message(
                self._services.registry.update_document_hash(
                    r.did_id, r.new_document_hash, self._caller(r.caller_address)
                ).to_dict(),
                f"DID document {r.did_id} updated successfully",
            ),
        )

    def handle_change_controller(self, body: dict[str, object]) -> Response:
        """Handle PATCH /did/change-controller."""
        return self._run(
            ChangeControllerRequest,
            body,
            lambda r: self._message(
                self._services.registry.change_controller(
                    r.did_id, r.new_controller, self._caller(r.caller_address)
                ).to_dict(),
                f"Controller for DID {r.did_id} changed successfully",
            ),
        )

    def handle_deactivate(self, body: dict[str, object]) -> Response:
        """Handle PATCH /did/deactivate."""
        return self._run(
            DeactivateRequest,
            body,
            lambda r: self._message(
                self._services.registry.deactivate(
                    r.did_id, self._caller(r.caller_address)
                ).to_dict(),
                f"DID {r.did_id} deactivated successfully",
            ),
        )

    def handle_create(self, body: dict[str, object]) -> Response:
        """Handle POST /did/create.

        Derives the DID from the caller address, publishes the operator's
        public key unless the request names one, and returns the document.
        """

        def create(request: CreateDIDRequest) -> dict[str, object]:
            registry = self._services.registry
            did_id = registry.create_did(
                self._caller(request.caller_address),
                request.public_key_multibase or self._services.signer.public_key_multibase,
            )
            return {
                "success": True,
                "did": did_id,
                "document": registry.get_document(did_id).to_dict(),
                "message": "DID created successfully",
            }

        return self._run(CreateDIDRequest, body, create, success_status=201)

    def handle_register_with_document(self, body: dict[str, object]) -> Response:
        """Handle POST /did/register-with-document."""

        def register(request: RegisterWithDocumentRequest) -> dict[str, object]:
            document = DIDDocument.from_dict(request.document)
            record = self._services.registry.register_with_document(
                request.did_id, document, self._caller(request.caller_address)
            )
            return self._message(
                record.to_dict(),
                f"DID {request.did_id} registered with document successfully",
            )

        return self._run(RegisterWithDocumentRequest, body, register, success_status=201)

    def handle_get_did(self, did_id: str) -> Response:
        """Handle GET /did/{id}."""
        return self._guard(lambda: self._services.registry.get_info(did_id).to_dict())

    def handle_is_active(self, did_id: str) -> Response:
        """Handle GET /did/{id}/active."""
        return self._guard(
            lambda: {"didId": did_id, "active": self._services.registry.is_active(did_id)}
        )

    def handle_get_document(self, did_id: str) -> Response:
        """Handle GET /did/{id}/document."""
        return self._guard(lambda: self._services.registry.get_document(did_id).to_dict())

    # ── Credentials ───────────────────────────────────────────────────────────

    def handle_issue_credential(self, body: dict[str, object]) -> Response:
        """Handle POST /credentials/issue.

        The credential is signed with the operator key and returned whole.
        An active issuer whose document does not publish the operator key
        under its default verification method is rejected with 422.
        """

        def issue(request: IssueCredentialRequest) -> dict[str, object]:
            engine = self._services.credentials
            if self._services.registry.is_active(request.issuer_did):
                self._require_operator_key(request.issuer_did)
            credential_id = engine.issue(
                issuer_did=request.issuer_did,
                subject_did=request.subject_did,
                credential_type=request.credential_type,
                claims=request.claims,
                signer=self._services.signer,
                expiration_date=request.expiration_date,
            )
            return engine.get(credential_id).to_dict()

        return self._run(IssueCredentialRequest, body, issue, success_status=201)

    def handle_verify_credential(self, body: dict[str, object]) -> Response:
        """Handle POST /credentials/verify. Failed checks still return 200."""
        return self._run(
            VerifyCredentialRequest,
            body,
            lambda r: self._services.credentials.verify(
                r.credential_id, r.verifier_did, r.presentation_context
            ).to_dict(),
        )

    def handle_get_credential(self, credential_id: str) -> Response:
        """Handle GET /credentials/{id}."""
        return self._guard(lambda: self._services.credentials.get(credential_id).to_dict())

    # ── Health ────────────────────────────────────────────────────────────────

    def handle_health(self) -> Response:
        """Handle GET /health."""
        response = HealthResponse(
            version=__version__,
            did_count=len(self._services.documents),
            credential_count=len(self._services.credentials),
        )
        return 200, response.model_dump()

    # ── Helpers ───────────────────────────────────────────────────────────────

    def _caller(self, caller_address: str | None) -> str:
        return caller_address or self._services.config.operator_address

    @staticmethod
    def _message(data: dict[str, object], message: str) -> dict[str, object]:
        return {"success": True, "message": message, **data}

    def _require_operator_key(self, issuer_did: str) -> None:
        method_id = f"{issuer_did}#{self._services.config.key_fragment}"
        try:
            document = self._services.registry.get_document(issuer_did)
        except NotFoundError:
            method = None
        else:
            method = document.resolve_verification_method(method_id)
        operator_key = self._services.signer.public_key_multibase
        if method is None or method.public_key_multibase != operator_key:
            raise ValueError(
                f"Issuer {issuer_did!r} does not publish the operator signing key as {method_id!r}."
            )

    def _run(
        self,
        model: type[_RequestT],
        body: dict[str, object],
        action: Callable[[_RequestT], dict[str, object]],
        success_status: int = 200,
    ) -> Response:
        try:
            request = model.model_validate(body)
        except ValidationError as exc:
            return _error(422, "Validation error", str(exc))
        return self._guard(lambda: action(request), success_status)

    @staticmethod
    def _guard(
        action: Callable[[], dict[str, object]],
        success_status: int = 200,
    ) -> Response:
        try:
            return success_status, action()
        except DIDRegistryError as exc:
            status = status_for_error(exc)
            kind = getattr(exc, "kind", None)
            if status >= 500:
                logger.error("Registry failure (%s): %s", kind, exc)
            return _error(status, type(exc).__name__, str(exc), kind)
        except ValueError as exc:
            return _error(422, "Validation error", str(exc))
        except Exception as exc:  # HTTP boundary: report as 500
            logger.error("Unexpected error handling request: %s", exc, exc_info=True)
            return _error(500, "Internal server error", str(exc))


__all__ = ["RegistryRoutes", "status_for_error"]
