"""CredentialEngine — issues, stores, and verifies verifiable credentials.

Issuance requires both the issuer and the subject DID to be active. The
proof is produced by the issuer's own :class:`~did_registry.crypto.signing.Signer`
through the :class:`~did_registry.crypto.signing.SigningAdapter`; the
engine never holds private keys.

Verification runs these checks in order and stops at the first failure:

1. ``credential_exists``
2. ``issuer_active``     — the issuer may have been deactivated since issuance
3. ``not_expired``       — ``expiration_date < now`` means expired
4. ``proof_valid``       — signature checked against the issuer's DID document
"""
from __future__ import annotations

import logging
import secrets
import threading
from datetime import datetime, timezone
from typing import Any

from did_registry.audit import AuditLog
from did_registry.config import RegistryConfig
from did_registry.credentials.models import (
    PROOF_PURPOSE_ASSERTION,
    CredentialProof,
    CredentialSubject,
    VerifiableCredential,
    build_signing_payload,
)
from did_registry.credentials.verification import (
    MSG_EXPIRED,
    MSG_ISSUER_NOT_ACTIVE,
    MSG_NOT_FOUND,
    MSG_PROOF_INVALID,
    VerificationResult,
)
from did_registry.crypto.signing import Signer, SigningAdapter
from did_registry.errors import (
    DIDRegistryError,
    ErrorKind,
    ExpiredError,
    IssuerNotActiveError,
    NotFoundError,
    ProofInvalidError,
    SubjectNotActiveError,
)
from did_registry.registry.did_registry import DIDRegistry

logger = logging.getLogger(__name__)


class CredentialEngine:
    """Issue and verify credentials for DIDs held in a :class:`DIDRegistry`.

    Parameters
    ----------
    registry:
        Registry consulted for DID activity and issuer documents.
    adapter:
        Signing adapter. Defaults to :class:`SigningAdapter`.
    config:
        Supplies the DID method and network used in credential ids, and
        the default verification method fragment.
    audit:
        Optional audit log for issuance and verification events.

    Example
    -------
    ::

        engine = CredentialEngine(registry)
        credential_id = engine.issue(
            issuer_did, subject_did, "UniversityDegree", {"degree": "BSc"}, signer
        )
        result = engine.verify(credential_id, verifier_did, "job-application")
        print(result.verified)  # True
    """

    def __init__(
        self,
        registry: DIDRegistry,
        adapter: SigningAdapter | None = None,
        config: RegistryConfig | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self._registry = registry
        self._adapter = adapter if adapter is not None else SigningAdapter()
        self._config = config if config is not None else RegistryConfig()
        self._audit = audit
        self._credentials: dict[str, VerifiableCredential] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue(
        self,
        issuer_did: str,
        subject_did: str,
        credential_type: str,
        claims: dict[str, Any],
        signer: Signer,
        expiration_date: datetime | None = None,
        verification_method: str | None = None,
    ) -> str:
        """Issue and store a credential, returning its id.

        Parameters
        ----------
        issuer_did:
            DID of the issuer. Must be active.
        subject_did:
            DID the credential is about. Must be active.
        credential_type:
            Type name, e.g. ``"KYCVerification"``.
        claims:
            JSON-compatible claims about the subject.
        signer:
            The issuer's signing capability.
        expiration_date:
            Optional expiry. A naive datetime is taken as UTC.
        verification_method:
            Key reference in the issuer's document the proof names.
            Defaults to ``<issuer_did>#keys-1``.

        Raises
        ------
        IssuerNotActiveError
            If the issuer DID is unknown or deactivated.
        SubjectNotActiveError
            If the subject DID is unknown or deactivated.
        """
        if not credential_type:
            raise ValueError("credential_type must not be empty.")
        if not self._registry.is_active(issuer_did):
            raise IssuerNotActiveError(issuer_did)
        if not self._registry.is_active(subject_did):
            raise SubjectNotActiveError(subject_did)

        if expiration_date is not None and expiration_date.tzinfo is None:
            expiration_date = expiration_date.replace(tzinfo=timezone.utc)
        issued_at = datetime.now(timezone.utc)
        claims = dict(claims)
        payload = build_signing_payload(
            issuer=issuer_did,
            subject=subject_did,
            credential_type=credential_type,
            claims=claims,
            issued_at=issued_at,
            expiration_date=expiration_date,
        )
        proof = CredentialProof(
            type=self._adapter.signature_type,
            created=issued_at,
            proof_purpose=PROOF_PURPOSE_ASSERTION,
            verification_method=(
                verification_method or f"{issuer_did}#{self._config.key_fragment}"
            ),
            signature_value=self._adapter.sign(payload, signer),
        )

        with self._lock:
            credential_id = self._new_credential_id(credential_type)
            while credential_id in self._credentials:
                credential_id = self._new_credential_id(credential_type)
            credential = VerifiableCredential(
                id=credential_id,
                type=credential_type,
                issuer=issuer_did,
                issuance_date=issued_at,
                expiration_date=expiration_date,
                credential_subject=CredentialSubject(id=subject_did, claims=claims),
                proof=proof,
            )
            self._credentials[credential_id] = credential

        logger.info("Credential %s issued successfully", credential_id)
        if self._audit is not None:
            self._audit.log_event(
                "credential_issued",
                credential_id,
                actor=issuer_did,
                subject_did=subject_did,
                type=credential_type,
            )
        return credential_id

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def get(self, credential_id: str) -> VerifiableCredential:
        """Return the stored credential.

        Raises
        ------
        NotFoundError
            If no credential has this id.
        """
        with self._lock:
            credential = self._credentials.get(credential_id)
        if credential is None:
            raise NotFoundError("Credential", credential_id)
        return credential

    def __len__(self) -> int:
        with self._lock:
            return len(self._credentials)

    def __contains__(self, credential_id: object) -> bool:
        with self._lock:
            return credential_id in self._credentials

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(
        self,
        credential_id: str,
        verifier_did: str = "",
        presentation_context: str = "",
    ) -> VerificationResult:
        """Verify a stored credential. Never raises.

        Parameters
        ----------
        credential_id:
            Id returned by :meth:`issue`.
        verifier_did:
            DID of the party asking; recorded only.
        presentation_context:
            Free-form context of the presentation; recorded only.
        """
        try:
            result = self._verify(credential_id, verifier_did, presentation_context)
        except Exception as exc:  # verification failure is reported, never raised
            logger.error("Error verifying credential %s: %s", credential_id, exc)
            result = VerificationResult(
                success=False,
                verified=False,
                errors=[str(exc) or type(exc).__name__],
                failure=getattr(exc, "kind", None),
                verifier_did=verifier_did,
                presentation_context=presentation_context,
            )

        if self._audit is not None:
            self._audit.log_event(
                "credential_verified",
                credential_id,
                actor=verifier_did or "anonymous",
                verified=result.verified,
                errors=list(result.errors),
                presentation_context=presentation_context,
            )
        return result

    def require_valid(
        self,
        credential_id: str,
        verifier_did: str = "",
        presentation_context: str = "",
    ) -> VerifiableCredential:
        """Verify a credential and return it, raising on the first failed check.

        Raises
        ------
        NotFoundError, IssuerNotActiveError, ExpiredError, ProofInvalidError
            Matching the check that failed.
        DIDRegistryError
            If verification itself failed unexpectedly.
        """
        result = self.verify(credential_id, verifier_did, presentation_context)
        if result.verified:
            return self.get(credential_id)
        reason = "; ".join(result.errors)
        if result.failure is ErrorKind.NOT_FOUND:
            raise NotFoundError("Credential", credential_id)
        if result.failure is ErrorKind.ISSUER_NOT_ACTIVE:
            raise IssuerNotActiveError(result.issuer)
        if result.failure is ErrorKind.EXPIRED:
            raise ExpiredError(credential_id)
        if result.failure is ErrorKind.PROOF_INVALID:
            raise ProofInvalidError(credential_id)
        raise DIDRegistryError(f"Verification of {credential_id!r} failed: {reason}")

    def _verify(
        self,
        credential_id: str,
        verifier_did: str,
        presentation_context: str,
    ) -> VerificationResult:
        recorded = {"verifier_did": verifier_did, "presentation_context": presentation_context}

        with self._lock:
            credential = self._credentials.get(credential_id)
        if credential is None:
            return VerificationResult(
                success=False,
                verified=False,
                errors=[MSG_NOT_FOUND],
                failure=ErrorKind.NOT_FOUND,
                **recorded,
            )

        found = {
            "issuer": credential.issuer,
            "subject": credential.credential_subject.id,
            "claims": dict(credential.credential_subject.claims),
            "valid_until": credential.expiration_date,
            **recorded,
        }
        passed = ["credential_exists"]

        if not self._registry.is_active(credential.issuer):
            return VerificationResult(
                success=False,
                verified=False,
                errors=[MSG_ISSUER_NOT_ACTIVE],
                failure=ErrorKind.ISSUER_NOT_ACTIVE,
                checks_passed=passed,
                **found,
            )
        passed.append("issuer_active")

        if credential.is_expired():
            return VerificationResult(
                success=False,
                verified=False,
                errors=[MSG_EXPIRED],
                failure=ErrorKind.EXPIRED,
                checks_passed=passed,
                **found,
            )
        passed.append("not_expired")

        if not self._proof_valid(credential):
            logger.warning("Proof of credential %s failed verification", credential_id)
            return VerificationResult(
                success=True,
                verified=False,
                errors=[MSG_PROOF_INVALID],
                failure=ErrorKind.PROOF_INVALID,
                checks_passed=passed,
                **found,
            )
        passed.append("proof_valid")

        return VerificationResult(success=True, verified=True, checks_passed=passed, **found)

    def _proof_valid(self, credential: VerifiableCredential) -> bool:
        proof = credential.proof
        method_id = proof.verification_method
        # The key must be one the issuer itself publishes.
        if method_id.split("#", 1)[0] != credential.issuer:
            return False
        if proof.type != self._adapter.signature_type:
            return False
        try:
            document = self._registry.get_document(credential.issuer)
        except NotFoundError:
            return False
        method = document.resolve_verification_method(method_id)
        if method is None:
            return False
        return self._adapter.verify(
            credential.signing_payload(), proof.signature_value, method
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_credential_id(self, credential_type: str) -> str:
        return (
            f"vc:{self._config.did_method}:{self._config.network}:"
            f"{credential_type.lower()}:{secrets.token_hex(8)}"
        )


__all__ = ["CredentialEngine"]
