"""VerificationResult — the outcome of verifying a stored credential.

Verification failure is data, not control flow: the engine always
returns one of these, and never raises.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from did_registry.errors import ErrorKind

# Messages reported in ``errors``, one per failed check.
MSG_NOT_FOUND = "Credential not found"
MSG_ISSUER_NOT_ACTIVE = "Issuer DID is not active"
MSG_EXPIRED = "Credential has expired"
MSG_PROOF_INVALID = "Credential proof is invalid"


@dataclass(frozen=True)
class VerificationResult:
    """The outcome of :meth:`CredentialEngine.verify`.

    Parameters
    ----------
    success:
        ``True`` if every check ran. A credential whose signature does not
        verify still has ``success=True`` and ``verified=False``.
    verified:
        ``True`` only if every check passed.
    issuer, subject, claims:
        Copied from the credential when it was found.
    valid_until:
        The credential's expiration date, if any.
    errors:
        Human-readable messages for the failed check.
    failure:
        Error kind of the failed check, or ``None``.
    checks_passed:
        Names of the checks that passed, in order.
    verifier_did, presentation_context:
        Recorded from the request; not enforced.
    """

    success: bool
    verified: bool
    issuer: str = ""
    subject: str = ""
    claims: dict[str, Any] = field(default_factory=dict)
    valid_until: datetime | None = None
    errors: list[str] = field(default_factory=list)
    failure: ErrorKind | None = None
    checks_passed: list[str] = field(default_factory=list)
    verifier_did: str = ""
    presentation_context: str = ""

    def to_dict(self) -> dict[str, object]:
        """Serialize to the camelCase dictionary returned over HTTP."""
        data: dict[str, object] = {
            "success": self.success,
            "verified": self.verified,
            "issuer": self.issuer,
            "subject": self.subject,
            "claims": dict(self.claims),
            "checksPassed": list(self.checks_passed),
            "verifierDid": self.verifier_did,
            "presentationContext": self.presentation_context,
        }
        if self.valid_until is not None:
            data["validUntil"] = self.valid_until.isoformat()
        if self.errors:
            data["errors"] = list(self.errors)
        if self.failure is not None:
            data["failure"] = self.failure.value
        return data


__all__ = [
    "MSG_EXPIRED",
    "MSG_ISSUER_NOT_ACTIVE",
    "MSG_NOT_FOUND",
    "MSG_PROOF_INVALID",
    "VerificationResult",
]
