"""Canonical JSON serialization and content hashing.

Hashes anchored on the ledger must match across independent
implementations, so the serialization is fixed: keys sorted at every
level, compact ``","``/``":"`` separators, UTF-8 without ASCII escaping,
and NaN/Infinity rejected.
"""
from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json(value: Any) -> bytes:
    """Serialize *value* to canonical JSON bytes.

    Parameters
    ----------
    value:
        Any JSON-compatible value (dicts, lists, strings, numbers, bools,
        ``None``).

    Returns
    -------
    bytes
        UTF-8 encoded canonical JSON.

    Raises
    ------
    ValueError
        If *value* contains NaN or infinite floats.
    TypeError
        If *value* contains objects JSON cannot encode.
    """
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def hash_json(value: Any) -> str:
    """Return the SHA-256 hex digest of the canonical JSON form of *value*."""
    return sha256_hex(canonical_json(value))


__all__ = ["canonical_json", "hash_json", "sha256_hex"]
