"""Table formatter for CLI output."""

from datetime import datetime
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from domainscope.models.certificates import CertificateChainResult
from domainscope.models.dns import DnsLookupResult
from domainscope.models.fetch import FetchResult
from domainscope.models.hosting import HostingResult
from domainscope.models.registration import RegistrationResponse
from domainscope.models.web import HeadersResult, SeoResult
from domainscope.orchestration.revalidation import ArtifactView


def _format_date(date_value: Any) -> str:
    """Safely format a date value to string."""
    if date_value is None:
        return "N/A"
    if isinstance(date_value, datetime):
        return str(date_value.date())
    return str(date_value)


def _truncate(value: str, limit: int = 60) -> str:
    return value[:limit] + "..." if len(value) > limit else value


def format_view(console: Console, view: ArtifactView) -> None:
    """Format a stored artifact read: freshness panel, then the data."""
    if not view.available:
        reason = view.error.kind.value if view.error else "unknown"
        console.print(
            Panel(
                f"[yellow]No data available[/yellow] for [cyan]{view.domain}[/cyan] ({reason})",
                title=view.kind.value,
            )
        )
        return

    freshness = "[yellow]stale, revalidating[/yellow]" if view.stale else "[green]fresh[/green]"
    console.print(
        Panel(
            f"Domain: [cyan]{view.domain}[/cyan]\n"
            f"Fetched: {view.fetched_at.isoformat() if view.fetched_at else 'N/A'}\n"
            f"Expires: {view.expires_at.isoformat() if view.expires_at else 'N/A'}\n"
            f"Status: {freshness}",
            title=view.kind.value,
        )
    )
    format_result(console, view.data)


def format_result(console: Console, result: Any) -> None:
    """Dispatch on the result type."""
    if isinstance(result, DnsLookupResult):
        format_dns(console, result)
    elif isinstance(result, CertificateChainResult):
        format_certificates(console, result)
    elif isinstance(result, RegistrationResponse):
        format_registration(console, result)
    elif isinstance(result, HeadersResult):
        format_headers(console, result)
    elif isinstance(result, SeoResult):
        format_seo(console, result)
    elif isinstance(result, HostingResult):
        format_hosting(console, result)
    elif isinstance(result, FetchResult):
        format_fetch(console, result)
    else:
        console.print(result)


def format_dns(console: Console, dns: DnsLookupResult) -> None:
    """Format DNS results."""
    table = Table(title=f"DNS Records (via {dns.resolver})", show_header=True)
    table.add_column("Type", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Value")
    table.add_column("TTL")
    table.add_column("Priority")

    for record in dns.records:
        value = _truncate(record.value)
        if record.is_cloudflare:
            value += " [orange1](cloudflare)[/orange1]"
        table.add_row(
            record.type.value,
            record.name,
            value,
            str(record.ttl),
            str(record.priority) if record.priority is not None else "",
        )

    console.print(table)

    if dns.dns_provider:
        console.print(f"DNS provider: [green]{dns.dns_provider.name}[/green]")
    if dns.email_provider:
        console.print(f"Email provider: [green]{dns.email_provider.name}[/green]")


def format_certificates(console: Console, certs: CertificateChainResult) -> None:
    """Format certificate chain."""
    table = Table(title="Certificate Chain", show_header=True)
    table.add_column("#", style="dim")
    table.add_column("Subject", style="cyan")
    table.add_column("Issuer", style="green")
    table.add_column("Valid From")
    table.add_column("Valid To")
    table.add_column("CA")

    for index, node in enumerate(certs.chain):
        table.add_row(
            str(index),
            node.subject,
            node.issuer,
            _format_date(node.valid_from),
            _format_date(node.valid_to),
            node.ca_provider.name if node.ca_provider else "",
        )

    console.print(table)

    if certs.chain and certs.chain[0].alt_names:
        names = certs.chain[0].alt_names
        more = f" (+{len(names) - 10} more)" if len(names) > 10 else ""
        console.print(f"SANs: {', '.join(names[:10])}{more}")


def format_registration(console: Console, registration: RegistrationResponse) -> None:
    """Format WHOIS/RDAP results."""
    table = Table(title="Registration", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Domain", registration.domain)
    table.add_row("Status", registration.status)
    if registration.unavailable_reason:
        table.add_row("Unavailable", registration.unavailable_reason)

    record = registration.record
    if record and record.is_registered:
        table.add_row("Source", record.source)
        if record.registrar:
            registrar = record.registrar
            if record.registrar_provider:
                registrar += f" ({record.registrar_provider.name})"
            table.add_row("Registrar", registrar)
        table.add_row("Created", _format_date(record.creation_date))
        table.add_row("Expires", _format_date(record.expiration_date))
        table.add_row("Updated", _format_date(record.updated_date))
        if record.nameservers:
            table.add_row("Nameservers", ", ".join(record.nameservers[:5]))
        if record.statuses:
            table.add_row("Statuses", ", ".join(record.statuses[:5]))
        table.add_row("Transfer Lock", "yes" if record.transfer_lock else "no")

    console.print(table)


def format_headers(console: Console, headers: HeadersResult) -> None:
    """Format HTTP response headers."""
    status = f"{headers.status} {headers.status_message or ''}".strip()
    table = Table(title=f"HTTP Headers ({status})", show_header=True)
    table.add_column("Header", style="cyan")
    table.add_column("Value")

    for header in headers.headers:
        table.add_row(header.name, _truncate(header.value, 80))

    console.print(table)
    if headers.final_url:
        console.print(f"Final URL: {headers.final_url}")


def format_seo(console: Console, seo: SeoResult) -> None:
    """Format page metadata and robots.txt."""
    table = Table(title="SEO", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Status", str(seo.status) if seo.status is not None else "N/A")
    if seo.final_url:
        table.add_row("Final URL", seo.final_url)
    if seo.error:
        table.add_row("Error", str(seo.error))
    if seo.preview:
        table.add_row("Title", seo.preview.title or "")
        table.add_row("Description", _truncate(seo.preview.description or "", 80))
        table.add_row("Image", seo.preview.image or "")
        table.add_row("Canonical", seo.preview.canonical_url)
    if seo.meta and seo.meta.general.robots:
        table.add_row("Robots Meta", seo.meta.general.robots)

    console.print(table)

    if seo.robots:
        robots = Table(title="robots.txt", show_header=True)
        robots.add_column("User Agents", style="cyan")
        robots.add_column("Rules")
        for group in seo.robots.groups:
            rules = "\n".join(f"{rule.type}: {rule.value}" for rule in group.rules[:10])
            if len(group.rules) > 10:
                rules += f"\n... ({len(group.rules) - 10} more)"
            robots.add_row(", ".join(group.user_agents), rules)
        console.print(robots)
        for sitemap in seo.robots.sitemaps:
            console.print(f"Sitemap: {sitemap}")


def format_hosting(console: Console, hosting: HostingResult) -> None:
    """Format detected providers."""
    table = Table(title="Hosting", show_header=True)
    table.add_column("Role", style="cyan")
    table.add_column("Provider", style="green")

    table.add_row("Web", hosting.hosting_provider.name if hosting.hosting_provider else "Unknown")
    table.add_row("Email", hosting.email_provider.name if hosting.email_provider else "None")
    table.add_row("DNS", hosting.dns_provider.name if hosting.dns_provider else "Unknown")
    table.add_row("IP", hosting.ip_address or "N/A")

    console.print(table)
    if not hosting.headers_available:
        console.print("[yellow]Home page headers unavailable; web host from DNS only[/yellow]")


def format_fetch(console: Console, result: FetchResult) -> None:
    """Format a single fetch."""
    table = Table(title="Fetch", show_header=True)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Final URL", result.final_url)
    table.add_row("Status", str(result.status))
    table.add_row("Content-Type", result.content_type or "N/A")
    table.add_row("Bytes", str(len(result.body)))
    table.add_row("Truncated", "yes" if result.truncated else "no")
    for hop in result.redirects:
        table.add_row(f"Redirect {hop.index}", f"{hop.status} -> {hop.url}")

    console.print(table)
