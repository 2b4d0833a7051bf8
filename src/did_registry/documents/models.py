"""DID document model following the W3C DID Core data model.

DID format
----------
::

    did:<method>:<method-specific-id>

Examples::

    did:ethr:codemtn:5b38da6a701c568545dcfcb03fcb875f56beddc4
    did:example:123456789abcdefghi

Specification reference
-----------------------
https://www.w3.org/TR/did-core/#data-model

Documents serialize with the W3C camelCase property names
(``verificationMethod``, ``serviceEndpoint``, ...). The same dictionary
form feeds :func:`~did_registry.crypto.canonical.hash_json`, so any field
change changes the anchored hash.
"""
from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

DID_CONTEXT_V1: str = "https://www.w3.org/ns/did/v1"
ED25519_2020_CONTEXT: str = "https://w3id.org/security/suites/ed25519-2020/v1"

_ID_CHAR = r"(?:[A-Za-z0-9._\-]|%[0-9A-Fa-f]{2})"
DID_PATTERN = re.compile(
    rf"^did:(?P<method>[a-z0-9]+):(?P<specific_id>(?:{_ID_CHAR}*:)*{_ID_CHAR}+)$"
)


def parse_did(did: str) -> tuple[str, str]:
    """Split a DID into ``(method, method_specific_id)``.

    Raises
    ------
    ValueError
        If *did* is not a syntactically valid DID.
    """
    match = DID_PATTERN.match(did)
    if not match:
        raise ValueError(
            f"Malformed DID {did!r}. Expected format: did:<method>:<method-specific-id>."
        )
    return match.group("method"), match.group("specific_id")


def is_valid_did(did: str) -> bool:
    """Return ``True`` if *did* is a syntactically valid DID."""
    return DID_PATTERN.match(did) is not None


# ------------------------------------------------------------------
# Verification method
# ------------------------------------------------------------------

ALLOWED_VERIFICATION_TYPES = frozenset(
    {
        "Ed25519VerificationKey2020",
        "JsonWebKey2020",
        "EcdsaSecp256k1VerificationKey2019",
    }
)


class VerificationMethod(BaseModel):
    """A public key attached to a DID document.

    Exactly the key encodings the W3C registry lists for the supported
    types are accepted: ``publicKeyMultibase``, ``publicKeyHex`` or
    ``publicKeyJwk``. At least one must be present.
    """

    model_config = {"populate_by_name": True, "frozen": True}

    id: str
    type: str
    controller: str
    public_key_multibase: str | None = Field(default=None, alias="publicKeyMultibase")
    public_key_hex: str | None = Field(default=None, alias="publicKeyHex")
    public_key_jwk: dict[str, Any] | None = Field(default=None, alias="publicKeyJwk")

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in ALLOWED_VERIFICATION_TYPES:
            raise ValueError(
                f"Unsupported verification method type {value!r}. "
                f"Allowed: {sorted(ALLOWED_VERIFICATION_TYPES)}"
            )
        return value

    @field_validator("id", "controller")
    @classmethod
    def validate_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty.")
        return value

    @model_validator(mode="after")
    def validate_key_material(self) -> "VerificationMethod":
        if not (self.public_key_multibase or self.public_key_hex or self.public_key_jwk):
            raise ValueError(
                "VerificationMethod needs publicKeyMultibase, publicKeyHex or publicKeyJwk."
            )
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a W3C-compatible plain dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------
# Service endpoint
# ------------------------------------------------------------------


class ServiceEndpoint(BaseModel):
    """A service endpoint advertised in a DID document."""

    model_config = {"populate_by_name": True, "frozen": True}

    id: str
    type: str
    endpoint: str = Field(alias="serviceEndpoint")
    description: str | None = None

    @field_validator("id", "type", "endpoint")
    @classmethod
    def validate_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty.")
        return value

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a W3C-compatible plain dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------
# DID Document (Pydantic v2)
# ------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DIDDocument(BaseModel):
    """A W3C DID Core document.

    Instances are immutable; the document store produces a new instance
    for every update.

    Parameters
    ----------
    context:
        JSON-LD context URIs (``@context``). A single string is accepted
        and wrapped in a list.
    id:
        The DID subject.
    controller:
        DID(s) allowed to change this document, if different from ``id``.
    verification_method:
        Public keys associated with the DID.
    authentication, assertion_method, key_agreement,
    capability_invocation, capability_delegation:
        Verification relationships, as lists of verification method ids.
    service:
        Service endpoints.
    created, updated:
        UTC timestamps maintained by the document store.
    """

    model_config = {"populate_by_name": True, "frozen": True}

    context: list[str] = Field(default_factory=lambda: [DID_CONTEXT_V1], alias="@context")
    id: str
    controller: str | list[str] | None = None
    also_known_as: list[str] = Field(default_factory=list, alias="alsoKnownAs")
    verification_method: list[VerificationMethod] = Field(
        default_factory=list, alias="verificationMethod"
    )
    authentication: list[str] = Field(default_factory=list)
    assertion_method: list[str] = Field(default_factory=list, alias="assertionMethod")
    key_agreement: list[str] = Field(default_factory=list, alias="keyAgreement")
    capability_invocation: list[str] = Field(
        default_factory=list, alias="capabilityInvocation"
    )
    capability_delegation: list[str] = Field(
        default_factory=list, alias="capabilityDelegation"
    )
    service: list[ServiceEndpoint] = Field(default_factory=list)
    created: datetime = Field(default_factory=_utcnow)
    updated: datetime = Field(default_factory=_utcnow)

    @field_validator("id")
    @classmethod
    def validate_did_format(cls, value: str) -> str:
        parse_did(value)  # raises ValueError on bad format
        return value

    @field_validator("context", mode="before")
    @classmethod
    def coerce_context(cls, value: object) -> object:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("context")
    @classmethod
    def validate_context_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("@context must contain at least one URI.")
        return value

    @model_validator(mode="after")
    def validate_unique_ids(self) -> "DIDDocument":
        method_ids = [vm.id for vm in self.verification_method]
        if len(method_ids) != len(set(method_ids)):
            raise ValueError("verificationMethod ids must be unique.")
        service_ids = [svc.id for svc in self.service]
        if len(service_ids) != len(set(service_ids)):
            raise ValueError("service ids must be unique.")
        return self

    @model_validator(mode="after")
    def validate_relationship_references(self) -> "DIDDocument":
        """Relationship entries must reference declared methods, when any are declared."""
        method_ids = {vm.id for vm in self.verification_method}
        if not method_ids:
            return self
        relationships = {
            "authentication": self.authentication,
            "assertionMethod": self.assertion_method,
            "keyAgreement": self.key_agreement,
            "capabilityInvocation": self.capability_invocation,
            "capabilityDelegation": self.capability_delegation,
        }
        for name, references in relationships.items():
            for reference in references:
                if reference not in method_ids:
                    raise ValueError(
                        f"{name} reference {reference!r} does not match "
                        "any declared verificationMethod id."
                    )
        return self

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def resolve_verification_method(self, method_id: str) -> VerificationMethod | None:
        """Return the VerificationMethod with the given id, or None."""
        for method in self.verification_method:
            if method.id == method_id:
                return method
        return None

    def method(self) -> str:
        """Return the DID method name of this document's id."""
        did_method, _ = parse_did(self.id)
        return did_method

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the W3C JSON representation as a plain dictionary."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Serialize this document to an indented JSON string."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DIDDocument":
        """Build a document from its W3C dictionary form.

        Raises
        ------
        ValueError
            If the data fails validation.
        """
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, json_str: str) -> "DIDDocument":
        """Deserialize a DIDDocument from a JSON string.

        Raises
        ------
        ValueError
            If the JSON is malformed or the document fails validation.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ValueError("A DID document must be a JSON object.")
        return cls.from_dict(data)


__all__ = [
    "ALLOWED_VERIFICATION_TYPES",
    "DID_CONTEXT_V1",
    "DID_PATTERN",
    "DIDDocument",
    "ED25519_2020_CONTEXT",
    "ServiceEndpoint",
    "VerificationMethod",
    "is_valid_did",
    "parse_did",
]
