"""Base58btc multibase codec for public keys and signatures.

Multibase strings carry a one-character prefix naming the base; ``z`` is
base58btc, the encoding used by ``Ed25519VerificationKey2020`` and
``Ed25519Signature2020``.
"""
from __future__ import annotations

_BASE58_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX: dict[str, int] = {char: index for index, char in enumerate(_BASE58_ALPHABET)}

# Multicodec prefix for Ed25519 public keys (varint-encoded 0xed01)
ED25519_PUB_MULTICODEC: bytes = b"\xed\x01"

MULTIBASE_BASE58BTC_PREFIX: str = "z"


def base58btc_encode(data: bytes) -> str:
    """Encode *data* to a base58btc string (no multibase prefix)."""
    n = int.from_bytes(data, "big")
    chars: list[str] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        chars.append(_BASE58_ALPHABET[remainder])
    # Leading zero bytes are encoded as '1'
    for byte in data:
        if byte != 0:
            break
        chars.append("1")
    return "".join(reversed(chars))


def base58btc_decode(encoded: str) -> bytes:
    """Decode a base58btc string back to bytes.

    Raises
    ------
    ValueError
        If *encoded* contains a character outside the base58btc alphabet.
    """
    n = 0
    for char in encoded:
        digit = _BASE58_INDEX.get(char)
        if digit is None:
            raise ValueError(f"Invalid base58btc character {char!r} in {encoded!r}")
        n = n * 58 + digit
    body = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + body


def encode_multibase(data: bytes) -> str:
    """Encode *data* as a ``z``-prefixed multibase string."""
    return MULTIBASE_BASE58BTC_PREFIX + base58btc_encode(data)


def decode_multibase(value: str) -> bytes:
    """Decode a ``z``-prefixed multibase string.

    Raises
    ------
    ValueError
        If the prefix is not ``z`` or the body is not valid base58btc.
    """
    if not value.startswith(MULTIBASE_BASE58BTC_PREFIX):
        raise ValueError(
            f"Unsupported multibase prefix in {value!r}; only base58btc ('z') is supported."
        )
    return base58btc_decode(value[1:])


def encode_ed25519_public_key(raw_public_key: bytes) -> str:
    """Return the ``publicKeyMultibase`` form of a raw 32-byte Ed25519 key."""
    if len(raw_public_key) != 32:
        raise ValueError(f"Ed25519 public keys are 32 bytes, got {len(raw_public_key)}.")
    return encode_multibase(ED25519_PUB_MULTICODEC + raw_public_key)


def decode_ed25519_public_key(public_key_multibase: str) -> bytes:
    """Return the raw 32-byte Ed25519 key from its ``publicKeyMultibase`` form.

    Raises
    ------
    ValueError
        If the value is not a multicodec-tagged Ed25519 public key.
    """
    decoded = decode_multibase(public_key_multibase)
    if not decoded.startswith(ED25519_PUB_MULTICODEC):
        raise ValueError("publicKeyMultibase does not carry the Ed25519 multicodec prefix.")
    raw = decoded[len(ED25519_PUB_MULTICODEC):]
    if len(raw) != 32:
        raise ValueError(f"Ed25519 public keys are 32 bytes, got {len(raw)}.")
    return raw


__all__ = [
    "ED25519_PUB_MULTICODEC",
    "MULTIBASE_BASE58BTC_PREFIX",
    "base58btc_decode",
    "base58btc_encode",
    "decode_ed25519_public_key",
    "decode_multibase",
    "encode_ed25519_public_key",
    "encode_multibase",
]
