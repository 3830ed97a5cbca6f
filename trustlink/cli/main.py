"""Typer CLI for the TrustLink attestation registry.

Provides commands: init, register-issuer, remove-issuer, attest, revoke, get,
status, has-claim, list-subject, list-issuer, is-issuer, admin.
Main entrypoint for the TrustLink command-line interface.
"""

from __future__ import annotations

import typer
from rich.console import Console

from trustlink import __version__
from trustlink.cli.config import TrustLinkConfig, configure_logging, create_caller, create_registry
from trustlink.contracts.registry import TrustLinkRegistry
from trustlink.sdk.errors import TrustLinkError


app = typer.Typer(
    name="trustlink",
    help="TrustLink - Issuer Registry + Attestation Lifecycle",
    add_completion=False,
    rich_markup_mode="rich"
)
console = Console()


def version_callback(show_version: bool) -> None:
    """Show version and exit."""
    if show_version:
        console.print(f"TrustLink version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True
    )
) -> None:
    """TrustLink attestation registry CLI."""
    pass


def _load(as_caller: bool = True) -> tuple[TrustLinkRegistry, str | None]:
    """Load configuration and build the registry, optionally bound to the caller."""
    config = TrustLinkConfig()
    configure_logging(config)
    caller = create_caller(config) if as_caller else None
    return create_registry(config, caller), caller


def _fail(action: str, error: Exception) -> typer.Exit:
    """Print an error line and return the exit to raise."""
    name = type(error).__name__ if isinstance(error, TrustLinkError) else "Error"
    console.print(f"❌ Error {action}: [{name}] {error}", markup=False)
    return typer.Exit(1)


@app.command()
def init(
    admin: str | None = typer.Argument(None, help="Administrator address (defaults to the caller)")
) -> None:
    """Initialize the registry with an administrator."""
    try:
        registry, caller = _load()
        admin_addr = admin or caller
        registry.initialize(admin_addr)
    except (TrustLinkError, ValueError) as e:
        raise _fail("initializing registry", e)

    console.print("✅ Registry initialized!")
    console.print(f"Admin: [bold]{admin_addr}[/bold]")


@app.command()
def register_issuer(
    issuer: str = typer.Argument(..., help="Issuer address to authorize")
) -> None:
    """Authorize an issuer (admin only)."""
    try:
        registry, caller = _load()
        registry.register_issuer(caller, issuer)
    except (TrustLinkError, ValueError) as e:
        raise _fail("registering issuer", e)

    console.print("✅ Issuer registered successfully!")
    console.print(f"Issuer: [bold]{issuer}[/bold]")


@app.command()
def remove_issuer(
    issuer: str = typer.Argument(..., help="Issuer address to deauthorize")
) -> None:
    """Remove an issuer (admin only)."""
    try:
        registry, caller = _load()
        registry.remove_issuer(caller, issuer)
    except (TrustLinkError, ValueError) as e:
        raise _fail("removing issuer", e)

    console.print("✅ Issuer removed successfully!")
    console.print(f"Issuer: [bold]{issuer}[/bold]")


@app.command()
def attest(
    subject: str = typer.Argument(..., help="Subject address"),
    claim_type: str = typer.Argument(..., help="Claim type, e.g. KYC_PASSED"),
    expiration: int | None = typer.Option(None, "--expiration", "-e", help="Absolute expiration time (unix seconds)"),
    expires_in: int | None = typer.Option(None, "--expires-in", help="Expiration relative to now, in seconds")
) -> None:
    """Create a new attestation as the caller."""
    try:
        registry, caller = _load()
        resolved = _resolve_expiration(registry.clock.now(), expiration, expires_in)
        att_id = registry.create_attestation(caller, subject, claim_type, resolved)
    except (TrustLinkError, ValueError) as e:
        raise _fail("creating attestation", e)

    console.print("✅ Attestation created successfully!")
    console.print(f"Attestation ID: [bold]{att_id}[/bold]")
    console.print(f"Subject: {subject}")
    console.print(f"Claim type: {claim_type}")
    if resolved is not None:
        console.print(f"Expiration: {resolved}")


def _resolve_expiration(now: int, expiration: int | None, expires_in: int | None) -> int | None:
    """Combine absolute and relative expiration options."""
    if expiration is not None and expires_in is not None:
        raise ValueError("Use either --expiration or --expires-in, not both")
    if expires_in is not None:
        if expires_in <= 0:
            raise ValueError("--expires-in must be positive")
        return now + expires_in
    if expiration is not None and expiration < 0:
        raise ValueError("--expiration must be non-negative")
    return expiration


@app.command()
def revoke(
    attestation_id: str = typer.Argument(..., help="Attestation ID to revoke")
) -> None:
    """Revoke an attestation created by the caller."""
    try:
        registry, caller = _load()
        registry.revoke_attestation(caller, attestation_id)
    except (TrustLinkError, ValueError) as e:
        raise _fail("revoking attestation", e)

    console.print("✅ Attestation revoked successfully!")
    console.print(f"Attestation ID: [bold]{attestation_id}[/bold]")


@app.command()
def get(
    attestation_id: str = typer.Argument(..., help="Attestation ID to query")
) -> None:
    """Get attestation information by ID."""
    try:
        registry, _ = _load(as_caller=False)
        attestation = registry.get_attestation(attestation_id)
        status = attestation.get_status(registry.clock.now())
    except (TrustLinkError, ValueError) as e:
        raise _fail("retrieving attestation", e)

    console.print("✅ Attestation found!")
    console.print(f"ID: [bold]{attestation.id}[/bold]")
    console.print(f"Issuer: {attestation.issuer}")
    console.print(f"Subject: {attestation.subject}")
    console.print(f"Claim type: {attestation.claim_type}")
    console.print(f"Timestamp: {attestation.timestamp}")
    console.print(f"Expiration: {attestation.expiration if attestation.expiration is not None else 'never'}")
    console.print(f"Status: {status.value}")


@app.command()
def status(
    attestation_id: str = typer.Argument(..., help="Attestation ID to query")
) -> None:
    """Print the effective status of an attestation."""
    try:
        registry, _ = _load(as_caller=False)
        current = registry.get_attestation_status(attestation_id)
    except (TrustLinkError, ValueError) as e:
        raise _fail("retrieving status", e)

    console.print(current.value)


@app.command()
def has_claim(
    subject: str = typer.Argument(..., help="Subject address"),
    claim_type: str = typer.Argument(..., help="Claim type to check")
) -> None:
    """Check whether a subject holds a valid claim; exits 1 if not."""
    try:
        registry, _ = _load(as_caller=False)
        valid = registry.has_valid_claim(subject, claim_type)
    except (TrustLinkError, ValueError) as e:
        raise _fail("checking claim", e)

    if not valid:
        console.print(f"❌ {subject} has no valid {claim_type} claim", markup=False)
        raise typer.Exit(1)
    console.print(f"✅ {subject} holds a valid {claim_type} claim", markup=False)


@app.command()
def list_subject(
    subject: str = typer.Argument(..., help="Subject address"),
    start: int = typer.Option(0, "--start", "-s", min=0, help="First index to return"),
    limit: int = typer.Option(10, "--limit", "-l", min=0, help="Maximum number of IDs")
) -> None:
    """List attestation IDs about a subject."""
    try:
        registry, _ = _load(as_caller=False)
        ids = registry.get_subject_attestations(subject, start, limit)
    except (TrustLinkError, ValueError) as e:
        raise _fail("listing attestations", e)

    _print_ids(ids)


@app.command()
def list_issuer(
    issuer: str = typer.Argument(..., help="Issuer address"),
    start: int = typer.Option(0, "--start", "-s", min=0, help="First index to return"),
    limit: int = typer.Option(10, "--limit", "-l", min=0, help="Maximum number of IDs")
) -> None:
    """List attestation IDs created by an issuer."""
    try:
        registry, _ = _load(as_caller=False)
        ids = registry.get_issuer_attestations(issuer, start, limit)
    except (TrustLinkError, ValueError) as e:
        raise _fail("listing attestations", e)

    _print_ids(ids)


def _print_ids(ids: list[str]) -> None:
    """Print one attestation ID per line."""
    if not ids:
        console.print("No attestations found")
        return
    for att_id in ids:
        console.print(att_id)


@app.command()
def is_issuer(
    address: str = typer.Argument(..., help="Address to check")
) -> None:
    """Check whether an address is an authorized issuer; exits 1 if not."""
    try:
        registry, _ = _load(as_caller=False)
        authorized = registry.is_issuer(address)
    except (TrustLinkError, ValueError) as e:
        raise _fail("checking issuer", e)

    if not authorized:
        console.print(f"❌ {address} is not an authorized issuer", markup=False)
        raise typer.Exit(1)
    console.print(f"✅ {address} is an authorized issuer", markup=False)


@app.command()
def admin() -> None:
    """Print the administrator address."""
    try:
        registry, _ = _load(as_caller=False)
        admin_addr = registry.get_admin()
    except (TrustLinkError, ValueError) as e:
        raise _fail("retrieving admin", e)

    console.print(admin_addr)


if __name__ == "__main__":
    app()
