"""Terminal display — Rich-based formatting for relay output.

Renders review documents, the fallback order with provider availability,
effective configuration, and the environment check report.

Typical usage::

    from model_relay.display import render_review

    render_review(review_dict)
"""

from __future__ import annotations

from typing import Any

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from model_relay.config import Config, EnvironmentReport
from model_relay.errors import AllProvidersFailedError
from model_relay.types import ProviderAttempt

console = Console()

# Vendor → color mapping for visual distinction.
VENDOR_COLORS: dict[str, str] = {
    "gemini": "cyan",
    "groq": "yellow",
    "openai": "green",
    "ollama": "magenta",
}

DEFAULT_COLOR = "white"


def _get_color(vendor: str) -> str:
    """Get the display color for a vendor name."""
    return VENDOR_COLORS.get(vendor.lower(), DEFAULT_COLOR)


def _format_vendor(vendor: str) -> str:
    color = _get_color(vendor)
    return f"[{color}]{vendor}[/{color}]"


def _mask_key(key: str) -> str:
    """Show only the last four characters of a credential."""
    if len(key) <= 4:
        return "****"
    return f"****{key[-4:]}"


def render_review(review: dict[str, Any]) -> None:
    """Render a review result dict (as returned by ``review_pull_request``).

    Args:
        review: Review dict with ``summary``, ``comments``, ``patches``,
            ``testCases``, and ``status`` keys.
    """
    status = review.get("status", "default")
    subtitle = f"status: {status}"
    if review.get("rawResponse"):
        subtitle += " (raw model text)"
    console.print()
    console.print(
        Panel(Markdown(review.get("summary", "")), title="Summary", subtitle=subtitle, border_style="cyan")
    )

    comments = review.get("comments", [])
    if comments:
        table = Table(show_header=True, padding=(0, 1), title="Comments")
        table.add_column("File", style="bold")
        table.add_column("Line", justify="right")
        table.add_column("Comment")
        for c in comments:
            line = c.get("line")
            table.add_row(c["file"], str(line) if line is not None else "—", c["comment"])
        console.print(table)

    for patch in review.get("patches", []):
        console.print(Panel(patch["diff"], title=f"Patch: {patch['file']}", border_style="green"))

    test_cases = review.get("testCases", [])
    if test_cases:
        console.print("[bold]Suggested test cases[/bold]")
        for tc in test_cases:
            console.print(f"  • {tc}")
    console.print()


def render_providers(order: tuple[ProviderAttempt, ...], available: dict[str, Any]) -> None:
    """Render the fallback order with per-provider availability.

    Args:
        order: Fallback attempts in traversal order.
        available: Vendor name → registered flag, plus ``mock_mode``.
    """
    table = Table(show_header=True, padding=(0, 1))
    table.add_column("#", justify="right", style="dim")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Status")

    for i, attempt in enumerate(order, start=1):
        ready = available.get(attempt.provider.value, False)
        status = "[green]✓ ready[/green]" if ready else "[dim]— skipped (no credential)[/dim]"
        table.add_row(str(i), _format_vendor(attempt.provider.value), attempt.model, status)

    console.print()
    console.print(table)
    if available.get("mock_mode"):
        console.print("[yellow]Mock mode is on: no provider will be called.[/yellow]")
    console.print()


def render_config_show(config: Config) -> None:
    """Render effective configuration with credentials masked."""
    table = Table(show_header=False, padding=(0, 1))
    table.add_column("Setting", style="bold")
    table.add_column("Value")

    for vendor in ("gemini", "groq", "openai"):
        key = config.get_provider_key(vendor)
        table.add_row(f"{vendor} key", _mask_key(key) if key else "[dim]not set[/dim]")
    table.add_row("ollama host", config.ollama_host)
    table.add_row("mock mode", str(config.mock_mode).lower())
    for kind, model in sorted(config.models.items()):
        table.add_row(f"model ({kind})", model)
    order = " → ".join(f"{a.provider.value}:{a.model}" for a in config.fallback_order)
    table.add_row("fallback order", order)

    console.print()
    console.print(table)
    console.print()


def render_environment_report(report: EnvironmentReport) -> None:
    """Render the environment check with errors, warnings, and providers."""
    console.print()
    if report.providers:
        console.print(f"[green]Available AI providers ({len(report.providers)}):[/green]")
        for name in report.providers:
            console.print(f"  - {_format_vendor(name)}")
    if report.errors:
        console.print(f"[red bold]Errors ({len(report.errors)}):[/red bold]")
        for err in report.errors:
            console.print(f"  - {err}")
    if report.warnings:
        console.print(f"[yellow]Warnings ({len(report.warnings)}):[/yellow]")
        for warn in report.warnings:
            console.print(f"  - {warn}")
    console.print()
    if report.is_valid:
        console.print("[green]✓ Validation passed[/green]")
    else:
        console.print("[red]✗ Validation failed - check errors above[/red]")
    console.print()


def render_failures(error: AllProvidersFailedError) -> None:
    """Render each failed attempt of an exhausted fallback walk."""
    if not error.failures:
        console.print("[red bold]Error:[/red bold] No AI provider is configured.")
        return
    table = Table(show_header=True, padding=(0, 1), title="All providers failed")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Reason", style="red")
    for f in error.failures:
        table.add_row(_format_vendor(f.provider.value), f.model, f.reason)
    console.print(table)
