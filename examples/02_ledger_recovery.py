#!/usr/bin/env python3
"""Example: Recovering from a ledger timeout

A registration that times out may still commit. The stored document is
kept, and ``anchor_document`` brings ledger and store back in line.

Usage:
    python examples/02_ledger_recovery.py
"""
from __future__ import annotations

from did_registry import (
    DIDRegistry,
    DocumentStore,
    InMemoryLedger,
    LedgerTimeoutError,
    RegistryConfig,
)


def main() -> None:
    ledger = InMemoryLedger(auto_commit=False)
    registry = DIDRegistry(
        ledger, DocumentStore(), config=RegistryConfig(ledger_timeout_seconds=0.1)
    )

    try:
        registry.create_did("0xA1")
    except LedgerTimeoutError as exc:
        print(f"Timed out: {exc}")

    did = registry.did_for_address("0xA1")
    print(f"Active before commit: {registry.is_active(did)}")

    ledger.commit_pending()
    print(f"Active after commit:  {registry.is_active(did)}")

    # A late or lost commit is reconciled from the stored document.
    record = registry.anchor_document(did, "0xA1")
    print(f"Anchored hash:        {record.document_hash}")
    print(f"Integrity check:      {registry.verify_document_integrity(did)}")


if __name__ == "__main__":
    main()
