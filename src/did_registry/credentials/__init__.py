"""did_registry.credentials — verifiable credential issuance and verification."""
from __future__ import annotations

from did_registry.credentials.engine import CredentialEngine
from did_registry.credentials.models import (
    CredentialProof,
    CredentialSubject,
    VerifiableCredential,
)
from did_registry.credentials.verification import VerificationResult

__all__ = [
    "CredentialEngine",
    "CredentialProof",
    "CredentialSubject",
    "VerifiableCredential",
    "VerificationResult",
]
