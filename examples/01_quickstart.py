#!/usr/bin/env python3
"""Example: Quickstart

Creates two DIDs on an in-memory ledger, issues a credential from one to
the other, and verifies it.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install did-registry
"""
from __future__ import annotations

import did_registry
from did_registry import Ed25519Signer, RegistryConfig, RegistryServices


def main() -> None:
    print(f"did-registry version: {did_registry.__version__}")

    issuer_key = Ed25519Signer.generate()
    with RegistryServices.create(RegistryConfig(), signer=issuer_key) as services:
        # Step 1: Create the issuer and subject DIDs
        issuer = services.registry.create_did("0xA1", issuer_key.public_key_multibase)
        subject = services.registry.create_did("0xB2")
        print(f"Issuer DID:  {issuer}")
        print(f"Subject DID: {subject}")

        # Step 2: Issue a credential signed with the issuer's key
        credential_id = services.credentials.issue(
            issuer, subject, "KYCVerification", {"level": "basic"}, issuer_key
        )
        print(f"Credential:  {credential_id}")

        # Step 3: Verify it
        result = services.credentials.verify(credential_id, subject, "onboarding")
        print(f"Verified:    {result.verified} ({', '.join(result.checks_passed)})")

        # Step 4: Deactivate the issuer; the credential no longer verifies
        services.registry.deactivate(issuer, "0xA1")
        result = services.credentials.verify(credential_id)
        print(f"After deactivation: verified={result.verified} errors={result.errors}")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
