"""CLI entry point for did-registry.

Invoked as::

    did-registry [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m did_registry.cli.main

Commands
--------
version    Show version information
keygen     Generate an Ed25519 signing key
hash       Print the canonical hash of a DID document file
did-for    Print the DID derived from an address
demo       Run create, issue and verify against an in-memory ledger
serve      Run the HTTP server
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from did_registry import __version__
from did_registry.config import RegistryConfig
from did_registry.crypto.signing import Ed25519Signer
from did_registry.documents.models import DIDDocument
from did_registry.documents.store import DocumentStore, strip_address_prefix
from did_registry.errors import DIDRegistryError

console = Console()

_DEMO_ISSUER = "0x00000000000000000000000000000000000000a1"
_DEMO_SUBJECT = "0x00000000000000000000000000000000000000b2"


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="did-registry")
def cli() -> None:
    """Decentralized identifier registry and verifiable credentials"""


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    console.print(f"[bold]did-registry[/bold] v{__version__}")


# ------------------------------------------------------------------
# keygen
# ------------------------------------------------------------------


@cli.command(name="keygen")
def keygen_command() -> None:
    """Generate an Ed25519 keypair for signing credentials.

    The seed can be passed to the server through SIGNING_KEY_HEX.
    """
    signer = Ed25519Signer.generate()
    console.print(f"  Seed (hex):         {signer.seed_hex()}", soft_wrap=True)
    console.print(
        f"  Public (multibase): [bold]{signer.public_key_multibase}[/bold]", soft_wrap=True
    )


# ------------------------------------------------------------------
# hash
# ------------------------------------------------------------------


@cli.command(name="hash")
@click.argument("document_file", type=click.Path(exists=True, dir_okay=False))
def hash_command(document_file: str) -> None:
    """Print the canonical hash of the DID document in DOCUMENT_FILE."""
    try:
        document = DIDDocument.from_json(Path(document_file).read_text(encoding="utf-8"))
    except (ValueError, ValidationError) as exc:
        console.print(f"[red]Error:[/red] {document_file} is not a valid DID document: {exc}")
        sys.exit(1)

    click.echo(DocumentStore.hash(document))


# ------------------------------------------------------------------
# did-for
# ------------------------------------------------------------------


@cli.command(name="did-for")
@click.argument("address")
@click.option("--method", default=None, help="DID method (default: DID_METHOD or 'ethr').")
@click.option("--network", default=None, help="Network segment (default: DID_NETWORK or 'codemtn').")
def did_for_command(address: str, method: str | None, network: str | None) -> None:
    """Print the DID that `create` would derive for ADDRESS."""
    try:
        config = RegistryConfig.from_env(did_method=method, network=network)
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    specific_id = strip_address_prefix(address)
    if not specific_id:
        console.print("[red]Error:[/red] ADDRESS must not be empty.")
        sys.exit(1)
    click.echo(f"did:{config.did_method}:{config.network}:{specific_id}")


# ------------------------------------------------------------------
# demo
# ------------------------------------------------------------------


@cli.command(name="demo")
@click.option("--credential-type", default="KYCVerification", show_default=True)
@click.option(
    "--deactivate-issuer",
    is_flag=True,
    default=False,
    help="Deactivate the issuer before verifying, to show the failure path.",
)
def demo_command(credential_type: str, deactivate_issuer: bool) -> None:
    """Create two DIDs, issue a credential between them, and verify it."""
    from did_registry.services import RegistryServices

    issuer_key = Ed25519Signer.generate()
    subject_key = Ed25519Signer.generate()

    with RegistryServices.create(RegistryConfig(), signer=issuer_key) as services:
        registry = services.registry
        try:
            issuer_did = registry.create_did(_DEMO_ISSUER, issuer_key.public_key_multibase)
            subject_did = registry.create_did(_DEMO_SUBJECT, subject_key.public_key_multibase)
            credential_id = services.credentials.issue(
                issuer_did,
                subject_did,
                credential_type,
                {"level": "basic", "verified": True},
                issuer_key,
            )
            if deactivate_issuer:
                registry.deactivate(issuer_did, _DEMO_ISSUER)
        except DIDRegistryError as exc:
            console.print(f"[red]Error:[/red] {exc}")
            sys.exit(1)

        result = services.credentials.verify(credential_id, subject_did, "demo")

    table = Table(title="Credential Verification", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Issuer", issuer_did)
    table.add_row("Subject", subject_did)
    table.add_row("Credential", credential_id)
    table.add_row("Checks passed", ", ".join(result.checks_passed) or "(none)")
    table.add_row(
        "Verified", "[green]Yes[/green]" if result.verified else "[red]No[/red]"
    )
    if result.errors:
        table.add_row("Errors", "; ".join(result.errors))
    console.print(table)


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------


@cli.command(name="serve")
@click.option("--host", default="0.0.0.0", show_default=True, help="Bind address.")
@click.option("--port", default=8080, show_default=True, type=int, help="TCP port.")
@click.option("--network", default=None, help="Network segment for new DIDs.")
@click.option("--operator-address", default=None, help="Caller address used by default.")
@click.option(
    "--audit-log",
    type=click.Path(dir_okay=False),
    default=None,
    help="Append audit events to this JSONL file.",
)
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
)
def serve_command(
    host: str,
    port: int,
    network: str | None,
    operator_address: str | None,
    audit_log: str | None,
    log_level: str,
) -> None:
    """Run the did-registry HTTP server."""
    from did_registry.server.app import run_server
    from did_registry.services import RegistryServices

    logging.basicConfig(level=getattr(logging, log_level))
    try:
        config = RegistryConfig.from_env(
            network=network,
            operator_address=operator_address,
            audit_log_path=Path(audit_log) if audit_log else None,
        )
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)

    console.print(f"[bold]did-registry[/bold] serving on http://{host}:{port}")
    run_server(host=host, port=port, services=RegistryServices.create(config))


if __name__ == "__main__":
    cli()
