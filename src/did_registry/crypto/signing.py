"""Hashing/signing adapter — Ed25519 signatures over canonical payloads.

The core never holds issuer keys itself. A :class:`Signer` is the
capability handed in by the caller's wallet: it knows its public key and
can sign bytes. :class:`SigningAdapter` turns payloads into signatures
and checks signatures against a DID document verification method.

Signatures travel as base58btc multibase strings (``z...``), the
``proofValue`` encoding of ``Ed25519Signature2020``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from did_registry.crypto.canonical import sha256_hex
from did_registry.crypto.multibase import (
    decode_ed25519_public_key,
    decode_multibase,
    encode_ed25519_public_key,
    encode_multibase,
)

logger = logging.getLogger(__name__)

ED25519_VERIFICATION_KEY_TYPE: str = "Ed25519VerificationKey2020"
ED25519_SIGNATURE_TYPE: str = "Ed25519Signature2020"


class Signer(ABC):
    """A signing capability supplied by an external wallet."""

    @property
    @abstractmethod
    def public_key_multibase(self) -> str:
        """The signer's public key in ``publicKeyMultibase`` form."""

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Return the raw signature over *data*."""


class Ed25519Signer(Signer):
    """In-process Ed25519 signer backed by the ``cryptography`` package.

    Parameters
    ----------
    private_key:
        The Ed25519 private key to sign with.

    Example
    -------
    ::

        signer = Ed25519Signer.generate()
        signature = signer.sign(b"payload")
        print(signer.public_key_multibase)  # "z6Mk..."
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        raw_public = private_key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)
        self._public_key_multibase = encode_ed25519_public_key(raw_public)

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        """Create a signer with a freshly generated keypair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Ed25519Signer":
        """Create a signer from a raw 32-byte private key seed.

        Raises
        ------
        ValueError
            If *seed* is not 32 bytes long.
        """
        if len(seed) != 32:
            raise ValueError(f"Ed25519 seeds are 32 bytes, got {len(seed)}.")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_seed_hex(cls, seed_hex: str) -> "Ed25519Signer":
        """Create a signer from a hex-encoded 32-byte seed."""
        try:
            seed = bytes.fromhex(seed_hex)
        except ValueError as exc:
            raise ValueError(f"Signing key is not valid hex: {exc}") from exc
        return cls.from_seed(seed)

    def seed_hex(self) -> str:
        """Return the raw private key seed as hex, for export to a wallet."""
        return self._private_key.private_bytes(
            Encoding.Raw, PrivateFormat.Raw, NoEncryption()
        ).hex()

    @property
    def public_key_multibase(self) -> str:
        return self._public_key_multibase

    def sign(self, data: bytes) -> bytes:
        return self._private_key.sign(data)


class SigningAdapter:
    """Hash, sign, and verify on behalf of the registry core.

    Verification methods are accepted duck-typed: anything exposing
    ``type`` and ``public_key_multibase`` attributes works, which covers
    :class:`~did_registry.documents.models.VerificationMethod`.
    """

    signature_type: str = ED25519_SIGNATURE_TYPE

    def hash(self, data: bytes) -> str:
        """Return the fixed-width SHA-256 hex digest of *data*."""
        return sha256_hex(data)

    def sign(self, payload: bytes, signer: Signer) -> str:
        """Sign *payload* and return the multibase-encoded signature."""
        return encode_multibase(signer.sign(payload))

    def verify(self, payload: bytes, signature: str, verification_method: Any) -> bool:
        """Check *signature* over *payload* against a verification method.

        Returns ``False`` rather than raising for unsupported key types,
        malformed keys, malformed signatures, and signature mismatches.
        """
        method_type = getattr(verification_method, "type", None)
        if method_type != ED25519_VERIFICATION_KEY_TYPE:
            logger.warning("Unsupported verification method type %r", method_type)
            return False

        key_multibase = getattr(verification_method, "public_key_multibase", None)
        if not key_multibase:
            logger.warning("Verification method has no publicKeyMultibase")
            return False

        try:
            raw_public = decode_ed25519_public_key(key_multibase)
            raw_signature = decode_multibase(signature)
        except ValueError as exc:
            logger.warning("Cannot decode key or signature: %s", exc)
            return False

        public_key = Ed25519PublicKey.from_public_bytes(raw_public)
        try:
            public_key.verify(raw_signature, payload)
        except (InvalidSignature, ValueError):
            return False
        return True


__all__ = [
    "ED25519_SIGNATURE_TYPE",
    "ED25519_VERIFICATION_KEY_TYPE",
    "Ed25519Signer",
    "Signer",
    "SigningAdapter",
]
