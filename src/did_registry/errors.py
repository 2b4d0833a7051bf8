"""Error kinds raised by the DID registry core.

Every failure the core surfaces to a caller is a subclass of
:class:`DIDRegistryError` and carries an :class:`ErrorKind`. Structural
errors (not found, already registered, not authorized, deactivated) are
terminal: retrying the same call cannot change the outcome. Only the two
ledger infrastructure errors are marked ``retryable``.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Enumeration of error categories understood by callers."""

    NOT_FOUND = "NotFound"
    ALREADY_REGISTERED = "AlreadyRegistered"
    NOT_AUTHORIZED = "NotAuthorized"
    DEACTIVATED = "Deactivated"
    ISSUER_NOT_ACTIVE = "IssuerNotActive"
    SUBJECT_NOT_ACTIVE = "SubjectNotActive"
    EXPIRED = "Expired"
    PROOF_INVALID = "ProofInvalid"
    LEDGER_UNAVAILABLE = "LedgerUnavailable"
    LEDGER_TIMEOUT = "LedgerTimeout"


class DIDRegistryError(Exception):
    """Base exception for all DID registry errors."""

    kind: ErrorKind
    retryable: bool = False


class NotFoundError(DIDRegistryError, KeyError):
    """Raised when a DID, document, or credential is unknown."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, what: str, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{what} {identifier!r} not found.")

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0])


class AlreadyRegisteredError(DIDRegistryError):
    """Raised when registering a DID that already has a ledger record."""

    kind = ErrorKind.ALREADY_REGISTERED

    def __init__(self, did_id: str) -> None:
        self.did_id = did_id
        super().__init__(
            f"DID {did_id!r} is already registered. "
            "Identifiers are never reused, even after deactivation."
        )


class NotAuthorizedError(DIDRegistryError):
    """Raised when the caller is not the current controller of a DID."""

    kind = ErrorKind.NOT_AUTHORIZED

    def __init__(self, did_id: str, caller: str) -> None:
        self.did_id = did_id
        self.caller = caller
        super().__init__(f"Caller {caller!r} is not authorized to modify DID {did_id!r}.")


class DeactivatedError(DIDRegistryError):
    """Raised when mutating a DID that has been deactivated."""

    kind = ErrorKind.DEACTIVATED

    def __init__(self, did_id: str) -> None:
        self.did_id = did_id
        super().__init__(f"DID {did_id!r} is deactivated.")


class IssuerNotActiveError(DIDRegistryError):
    """Raised when a credential issuer DID is unknown or deactivated."""

    kind = ErrorKind.ISSUER_NOT_ACTIVE

    def __init__(self, did_id: str) -> None:
        self.did_id = did_id
        super().__init__(f"Issuer DID {did_id} is not active")


class SubjectNotActiveError(DIDRegistryError):
    """Raised when a credential subject DID is unknown or deactivated."""

    kind = ErrorKind.SUBJECT_NOT_ACTIVE

    def __init__(self, did_id: str) -> None:
        self.did_id = did_id
        super().__init__(f"Subject DID {did_id} is not active")


class ExpiredError(DIDRegistryError):
    """Raised when a credential is past its expiration date."""

    kind = ErrorKind.EXPIRED

    def __init__(self, credential_id: str) -> None:
        self.credential_id = credential_id
        super().__init__(f"Credential {credential_id!r} has expired.")


class ProofInvalidError(DIDRegistryError):
    """Raised when a credential proof fails cryptographic verification."""

    kind = ErrorKind.PROOF_INVALID

    def __init__(self, credential_id: str, reason: str = "") -> None:
        self.credential_id = credential_id
        message = f"Proof for credential {credential_id!r} is invalid."
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class LedgerUnavailableError(DIDRegistryError):
    """Raised when the ledger cannot be reached."""

    kind = ErrorKind.LEDGER_UNAVAILABLE
    retryable = True


class LedgerTimeoutError(DIDRegistryError):
    """Raised when waiting for a ledger commitment exceeds the timeout.

    The submitted transaction may still commit later. Callers must
    reconcile with a fresh read before resubmitting.
    """

    kind = ErrorKind.LEDGER_TIMEOUT
    retryable = True

    def __init__(self, tx_id: str, timeout: float | None) -> None:
        self.tx_id = tx_id
        self.timeout = timeout
        super().__init__(
            f"Transaction {tx_id} was not committed within {timeout} seconds. "
            "It may still be applied; re-read the record before retrying."
        )


__all__ = [
    "AlreadyRegisteredError",
    "DIDRegistryError",
    "DeactivatedError",
    "ErrorKind",
    "ExpiredError",
    "IssuerNotActiveError",
    "LedgerTimeoutError",
    "LedgerUnavailableError",
    "NotAuthorizedError",
    "NotFoundError",
    "ProofInvalidError",
    "SubjectNotActiveError",
]
