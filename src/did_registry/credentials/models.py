"""Verifiable credential model.

Follows the shape of the W3C Verifiable Credentials Data Model
(https://www.w3.org/TR/vc-data-model/) with a single ``type`` string and
a ``credentialSubject`` that keeps its claims under ``claims``.

The proof signs a canonical payload, not the whole credential::

    {"issuer": ..., "subject": ..., "type": ..., "claims": ...,
     "timestamp": <issuanceDate>, "expirationDate": <only when set>}
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from did_registry.crypto.canonical import canonical_json

CREDENTIALS_CONTEXT_V1: str = "https://www.w3.org/2018/credentials/v1"
PROOF_PURPOSE_ASSERTION: str = "assertionMethod"


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def build_signing_payload(
    issuer: str,
    subject: str,
    credential_type: str,
    claims: dict[str, Any],
    issued_at: datetime,
    expiration_date: datetime | None = None,
) -> bytes:
    """Return the canonical bytes a credential proof signs."""
    payload: dict[str, Any] = {
        "issuer": issuer,
        "subject": subject,
        "type": credential_type,
        "claims": claims,
        "timestamp": issued_at.isoformat(),
    }
    if expiration_date is not None:
        payload["expirationDate"] = expiration_date.isoformat()
    return canonical_json(payload)


class CredentialSubject(BaseModel):
    """The DID a credential is about, and the claims made about it."""

    model_config = {"frozen": True}

    id: str
    claims: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def validate_id_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("credentialSubject.id must not be empty.")
        return value


class CredentialProof(BaseModel):
    """Signature attesting that the issuer produced the credential."""

    model_config = {"populate_by_name": True, "frozen": True}

    type: str
    created: datetime
    proof_purpose: str = Field(default=PROOF_PURPOSE_ASSERTION, alias="proofPurpose")
    verification_method: str = Field(alias="verificationMethod")
    signature_value: str = Field(alias="signatureValue")


class VerifiableCredential(BaseModel):
    """An issued credential. Immutable once created.

    Parameters
    ----------
    context:
        JSON-LD context URIs (``@context``).
    id:
        Unique credential id, ``vc:<method>:<network>:<type>:<nonce>``.
    type:
        Credential type, e.g. ``"UniversityDegree"``.
    issuer:
        DID of the issuer.
    issuance_date:
        UTC time of issuance; signed as the payload ``timestamp``.
    expiration_date:
        Optional UTC time after which the credential is expired.
    credential_subject:
        Subject DID and claims.
    proof:
        The issuer's signature over the signing payload.
    """

    model_config = {"populate_by_name": True, "frozen": True}

    context: list[str] = Field(
        default_factory=lambda: [CREDENTIALS_CONTEXT_V1], alias="@context"
    )
    id: str
    type: str
    issuer: str
    issuance_date: datetime = Field(alias="issuanceDate")
    expiration_date: datetime | None = Field(default=None, alias="expirationDate")
    credential_subject: CredentialSubject = Field(alias="credentialSubject")
    proof: CredentialProof

    @field_validator("issuer", "type", "id")
    @classmethod
    def validate_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty.")
        return value

    @field_validator("issuance_date", "expiration_date")
    @classmethod
    def assume_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def is_expired(self, now: datetime | None = None) -> bool:
        """Return ``True`` if ``expiration_date`` is before *now*.

        A credential without an expiration date never expires.
        """
        if self.expiration_date is None:
            return False
        return self.expiration_date < (now or datetime.now(timezone.utc))

    def signing_payload(self) -> bytes:
        """Return the canonical bytes :attr:`proof` signs."""
        return build_signing_payload(
            issuer=self.issuer,
            subject=self.credential_subject.id,
            credential_type=self.type,
            claims=self.credential_subject.claims,
            issued_at=self.issuance_date,
            expiration_date=self.expiration_date,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the W3C camelCase property names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Serialize to an indented JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "VerifiableCredential":
        """Deserialize from a JSON string produced by :meth:`to_json`.

        Raises
        ------
        ValueError
            If the JSON is malformed or fails validation.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON: {exc}") from exc
        return cls.model_validate(data)


__all__ = [
    "CREDENTIALS_CONTEXT_V1",
    "PROOF_PURPOSE_ASSERTION",
    "CredentialProof",
    "CredentialSubject",
    "VerifiableCredential",
    "build_signing_payload",
]
