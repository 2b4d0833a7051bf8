"""did_registry.crypto — canonical hashing and Ed25519 signing."""
from __future__ import annotations

from did_registry.crypto.canonical import canonical_json, hash_json, sha256_hex
from did_registry.crypto.signing import (
    ED25519_SIGNATURE_TYPE,
    ED25519_VERIFICATION_KEY_TYPE,
    Ed25519Signer,
    Signer,
    SigningAdapter,
)

__all__ = [
    "ED25519_SIGNATURE_TYPE",
    "ED25519_VERIFICATION_KEY_TYPE",
    "Ed25519Signer",
    "Signer",
    "SigningAdapter",
    "canonical_json",
    "hash_json",
    "sha256_hex",
]
