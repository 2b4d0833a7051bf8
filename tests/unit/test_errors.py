"""Tests for did_registry.errors — error kinds and retryability."""
from __future__ import annotations

import pytest

from did_registry.errors import (
    AlreadyRegisteredError,
    DeactivatedError,
    DIDRegistryError,
    ErrorKind,
    ExpiredError,
    IssuerNotActiveError,
    LedgerTimeoutError,
    LedgerUnavailableError,
    NotAuthorizedError,
    NotFoundError,
    ProofInvalidError,
    SubjectNotActiveError,
)


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("error", "kind"),
        [
            (NotFoundError("DID", "did:example:abc"), ErrorKind.NOT_FOUND),
            (AlreadyRegisteredError("did:example:abc"), ErrorKind.ALREADY_REGISTERED),
            (NotAuthorizedError("did:example:abc", "0xBBB"), ErrorKind.NOT_AUTHORIZED),
            (DeactivatedError("did:example:abc"), ErrorKind.DEACTIVATED),
            (IssuerNotActiveError("did:example:abc"), ErrorKind.ISSUER_NOT_ACTIVE),
            (SubjectNotActiveError("did:example:abc"), ErrorKind.SUBJECT_NOT_ACTIVE),
            (ExpiredError("vc:1"), ErrorKind.EXPIRED),
            (ProofInvalidError("vc:1"), ErrorKind.PROOF_INVALID),
            (LedgerUnavailableError("down"), ErrorKind.LEDGER_UNAVAILABLE),
            (LedgerTimeoutError("0x01", 1.0), ErrorKind.LEDGER_TIMEOUT),
        ],
    )
    def test_each_error_carries_its_kind(self, error: DIDRegistryError, kind: ErrorKind) -> None:
        assert isinstance(error, DIDRegistryError)
        assert error.kind is kind

    def test_kind_values_are_external_names(self) -> None:
        assert ErrorKind.ALREADY_REGISTERED.value == "AlreadyRegistered"
        assert ErrorKind.LEDGER_TIMEOUT == "LedgerTimeout"


class TestRetryability:
    def test_structural_errors_are_terminal(self) -> None:
        for error in (
            NotFoundError("DID", "x"),
            AlreadyRegisteredError("x"),
            NotAuthorizedError("x", "0x1"),
            DeactivatedError("x"),
        ):
            assert error.retryable is False

    def test_ledger_errors_are_retryable(self) -> None:
        assert LedgerUnavailableError("down").retryable is True
        assert LedgerTimeoutError("0x01", 2.0).retryable is True


class TestMessages:
    def test_not_found_is_also_key_error(self) -> None:
        with pytest.raises(KeyError):
            raise NotFoundError("Credential", "vc:1")

    def test_not_found_message_is_not_quoted_twice(self) -> None:
        assert str(NotFoundError("DID", "did:example:abc")) == "DID 'did:example:abc' not found."

    def test_issuer_not_active_message(self) -> None:
        assert str(IssuerNotActiveError("did:example:abc")) == "Issuer DID did:example:abc is not active"

    def test_timeout_keeps_transaction_id(self) -> None:
        error = LedgerTimeoutError("0xabc", 0.5)
        assert error.tx_id == "0xabc"
        assert error.timeout == 0.5
        assert "0xabc" in str(error)

    def test_proof_invalid_appends_reason(self) -> None:
        assert "bad key" in str(ProofInvalidError("vc:1", "bad key"))
