"""Main CLI application using Typer."""

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.table import Table

from domainscope.cli.formatters.json_fmt import format_json
from domainscope.cli.formatters.table import format_result, format_view
from domainscope.collectors.context import open_context
from domainscope.core.config import get_settings
from domainscope.core.exceptions import AcquisitionError, DomainscopeError
from domainscope.core.logging import setup_logging
from domainscope.models.base import ArtifactKind
from domainscope.models.fetch import FetchOptions, FetchResult
from domainscope.orchestration.revalidation import ArtifactService, ArtifactView
from domainscope.storage.memory import InMemoryArtifactStore
from domainscope.version import __version__

app = typer.Typer(
    name="domainscope",
    help="domainscope - domain intelligence acquisition",
    no_args_is_help=True,
)

console = Console()

FormatOption = Annotated[
    str,
    typer.Option("--format", help="Output format: table, json"),
]


def version_callback(value: bool) -> None:
    if value:
        console.print(f"domainscope version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """domainscope - what the internet says about a domain."""
    setup_logging()


async def _acquire(domain: str, kind: ArtifactKind) -> ArtifactView:
    async with open_context() as context:
        service = ArtifactService(InMemoryArtifactStore(), context)
        return await service.get(domain, kind)


def _show_artifact(domain: str, kind: ArtifactKind, format_type: str) -> None:
    """Acquire one artifact and display it."""
    with console.status(f"[bold green]Fetching {kind.value} for {domain}...[/bold green]"):
        view = asyncio.run(_acquire(domain, kind))

    if format_type == "json":
        format_json(console, view)
    else:
        format_view(console, view)

    if not view.available:
        raise typer.Exit(1)


@app.command()
def dns(
    domain: Annotated[str, typer.Argument(help="Domain name")],
    format_type: FormatOption = "table",
) -> None:
    """Look up A, AAAA, MX, TXT and NS records over DNS-over-HTTPS."""
    _show_artifact(domain, ArtifactKind.DNS, format_type)


@app.command()
def certs(
    domain: Annotated[str, typer.Argument(help="Domain name")],
    format_type: FormatOption = "table",
) -> None:
    """Show the TLS certificate chain served on port 443."""
    _show_artifact(domain, ArtifactKind.CERTIFICATES, format_type)


@app.command()
def whois(
    domain: Annotated[str, typer.Argument(help="Domain name")],
    format_type: FormatOption = "table",
) -> None:
    """Look up registration data over RDAP, falling back to WHOIS."""
    _show_artifact(domain, ArtifactKind.REGISTRATION, format_type)


@app.command()
def headers(
    domain: Annotated[str, typer.Argument(help="Domain name")],
    format_type: FormatOption = "table",
) -> None:
    """Show the HTTP response headers of the home page."""
    _show_artifact(domain, ArtifactKind.HEADERS, format_type)


@app.command()
def seo(
    domain: Annotated[str, typer.Argument(help="Domain name")],
    format_type: FormatOption = "table",
) -> None:
    """Show page meta tags, social preview and robots.txt."""
    _show_artifact(domain, ArtifactKind.SEO, format_type)


@app.command()
def hosting(
    domain: Annotated[str, typer.Argument(help="Domain name")],
    format_type: FormatOption = "table",
) -> None:
    """Detect the web host, email provider and DNS provider."""
    _show_artifact(domain, ArtifactKind.HOSTING, format_type)


async def _fetch(url: str, options: FetchOptions) -> FetchResult:
    async with open_context() as context:
        return await context.fetcher.fetch(url, options)


@app.command()
def fetch(
    url: Annotated[str, typer.Argument(help="URL to fetch")],
    method: Annotated[
        str,
        typer.Option("--method", "-X", help="HTTP method: GET, HEAD"),
    ] = "GET",
    allow_http: Annotated[
        bool,
        typer.Option("--allow-http", help="Permit plain http URLs"),
    ] = False,
    max_bytes: Annotated[
        Optional[int],
        typer.Option("--max-bytes", help="Body size ceiling"),
    ] = None,
    max_redirects: Annotated[
        Optional[int],
        typer.Option("--max-redirects", help="Redirect hop budget"),
    ] = None,
    truncate: Annotated[
        bool,
        typer.Option("--truncate", help="Truncate bodies over the ceiling instead of failing"),
    ] = False,
    format_type: FormatOption = "table",
) -> None:
    """Fetch a URL through the SSRF guard."""
    try:
        options = FetchOptions(
            method=method.upper(),  # type: ignore[arg-type]
            allow_http=allow_http,
            max_bytes=max_bytes,
            max_redirects=max_redirects,
            truncate_on_limit=truncate,
        )
    except ValueError as e:
        console.print(f"[red]Invalid options: {e}[/red]")
        raise typer.Exit(2) from None

    try:
        result = asyncio.run(_fetch(url, options))
    except AcquisitionError as e:
        console.print(f"[red]Fetch failed ({e.kind.value}): {e.message}[/red]")
        raise typer.Exit(1) from None
    except DomainscopeError as e:
        console.print(f"[red]Fetch failed: {e.message}[/red]")
        raise typer.Exit(1) from None

    if format_type == "json":
        format_json(console, result)
    else:
        format_result(console, result)


@app.command()
def config(
    show: Annotated[
        bool,
        typer.Option("--show", "-s", help="Show current configuration"),
    ] = False,
) -> None:
    """Show configuration settings."""
    if not show:
        console.print("Use [cyan]--show[/cyan] to print the active configuration.")
        return

    settings = get_settings()

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("User Agent", settings.user_agent)
    table.add_row("Fetch Timeout", f"{settings.fetch_timeout}s")
    table.add_row("Fetch Max Bytes", str(settings.fetch_max_bytes))
    table.add_row("Fetch Max Redirects", str(settings.fetch_max_redirects))
    table.add_row("DoH Providers", ", ".join(settings.doh_providers))
    table.add_row("DoH Timeout", f"{settings.doh_timeout}s")
    table.add_row("TLS Timeout", f"{settings.tls_timeout}s")
    table.add_row("WHOIS Timeout", f"{settings.whois_timeout}s")
    table.add_row("RDAP Bootstrap", settings.rdap_bootstrap_url)
    table.add_row("Coalesce Timeout", f"{settings.coalesce_timeout}s")
    table.add_row("Default Retry After", f"{settings.default_retry_after}s")
    table.add_row("Log Level", settings.log_level)
    table.add_row("Log Format", settings.log_format)

    console.print(table)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
