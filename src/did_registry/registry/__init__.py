"""did_registry.registry — the DID lifecycle state machine."""
from __future__ import annotations

from did_registry.registry.did_registry import DIDRegistry

__all__ = ["DIDRegistry"]
