"""Pydantic request/response models for the did-registry HTTP server.

Request bodies use camelCase keys. Every DID mutation accepts an optional
``callerAddress``; when absent the server acts as its configured operator.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

_CAMEL = {"populate_by_name": True}


class RegisterRequest(BaseModel):
    """Request body for POST /did/register."""

    model_config = _CAMEL

    did_id: str = Field(alias="didId", min_length=1)
    document_hash: str = Field(alias="documentHash", min_length=1)
    caller_address: Optional[str] = Field(default=None, alias="callerAddress")


class UpdateDocumentRequest(BaseModel):
    """Request body for PATCH /did/update-document."""

    model_config = _CAMEL

    did_id: str = Field(alias="didId", min_length=1)
    new_document_hash: str = Field(alias="newDocumentHash", min_length=1)
    caller_address: Optional[str] = Field(default=None, alias="callerAddress")


class ChangeControllerRequest(BaseModel):
    """Request body for PATCH /did/change-controller."""

    model_config = _CAMEL

    did_id: str = Field(alias="didId", min_length=1)
    new_controller: str = Field(alias="newController", min_length=1)
    caller_address: Optional[str] = Field(default=None, alias="callerAddress")


class DeactivateRequest(BaseModel):
    """Request body for PATCH /did/deactivate."""

    model_config = _CAMEL

    did_id: str = Field(alias="didId", min_length=1)
    caller_address: Optional[str] = Field(default=None, alias="callerAddress")


class CreateDIDRequest(BaseModel):
    """Request body for POST /did/create.

    ``publicKeyMultibase`` defaults to the operator's key, so credentials
    the operator issues for the new DID can be verified.
    """

    model_config = _CAMEL

    caller_address: Optional[str] = Field(default=None, alias="callerAddress")
    public_key_multibase: Optional[str] = Field(default=None, alias="publicKeyMultibase")


class RegisterWithDocumentRequest(BaseModel):
    """Request body for POST /did/register-with-document."""

    model_config = _CAMEL

    did_id: str = Field(alias="didId", min_length=1)
    document: dict[str, Any]
    caller_address: Optional[str] = Field(default=None, alias="callerAddress")


class IssueCredentialRequest(BaseModel):
    """Request body for POST /credentials/issue."""

    model_config = _CAMEL

    issuer_did: str = Field(alias="issuerDid", min_length=1)
    subject_did: str = Field(alias="subjectDid", min_length=1)
    credential_type: str = Field(alias="credentialType", min_length=1)
    claims: dict[str, Any] = Field(default_factory=dict)
    expiration_date: Optional[datetime] = Field(default=None, alias="expirationDate")


class VerifyCredentialRequest(BaseModel):
    """Request body for POST /credentials/verify."""

    model_config = _CAMEL

    credential_id: str = Field(alias="credentialId", min_length=1)
    verifier_did: str = Field(default="", alias="verifierDid")
    presentation_context: str = Field(default="", alias="presentationContext")


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    status: str = "ok"
    service: str = "did-registry"
    version: str = "0.1.0"
    did_count: int = 0
    credential_count: int = 0


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str = ""
    kind: Optional[str] = None


__all__ = [
    "ChangeControllerRequest",
    "CreateDIDRequest",
    "DeactivateRequest",
    "ErrorResponse",
    "HealthResponse",
    "IssueCredentialRequest",
    "RegisterRequest",
    "RegisterWithDocumentRequest",
    "UpdateDocumentRequest",
    "VerifyCredentialRequest",
]
