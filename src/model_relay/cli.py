"""CLI entry point for Model Relay.

Provides the ``model-relay`` command with subcommands for chatting, code
completion, pull-request review, provider status, and configuration.

Typical usage::

    model-relay chat "How do I reverse a list in Python?"
    model-relay complete app.py --line 42
    git diff main | model-relay review - --title "Fix login" --output json
    model-relay config check
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import click
from rich.console import Console

from model_relay import __version__
from model_relay.config import CONFIG_PATH, Config, load_config, validate_environment, write_config
from model_relay.display import (
    render_config_show,
    render_environment_report,
    render_failures,
    render_providers,
    render_review,
)
from model_relay.errors import AllProvidersFailedError, InputValidationError
from model_relay.router import FallbackRouter
from model_relay.service import ReviewRequest, answer_chat, complete_code, review_pull_request

console = Console(stderr=True)

EXIT_UPSTREAM = 1
EXIT_BAD_INPUT = 2


def _load_config_or_exit() -> Config:
    try:
        return load_config()
    except (ValueError, OSError) as exc:
        console.print(f"[red bold]Error:[/red bold] Invalid configuration: {exc}")
        sys.exit(EXIT_UPSTREAM)


def _run(
    cfg: Config,
    call: Callable[[FallbackRouter], Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    """Run one pipeline call inside a router and map errors to exit codes.

    Input validation failures exit 2; exhausted providers exit 1.
    """

    async def _go() -> dict[str, Any]:
        async with FallbackRouter(cfg) as router:
            return await call(router)

    try:
        return asyncio.run(_go())
    except InputValidationError as exc:
        console.print("[red bold]Validation failed:[/red bold]")
        for detail in exc.details:
            console.print(f"  - {detail}")
        sys.exit(EXIT_BAD_INPUT)
    except AllProvidersFailedError as exc:
        render_failures(exc)
        sys.exit(EXIT_UPSTREAM)


@click.group()
@click.version_option(version=__version__, prog_name="model-relay")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity (default: WARNING).",
)
def main(log_level: str) -> None:
    """Multi-provider LLM relay with automatic fallback.

    Tries each configured provider in a fixed order until one answers,
    and recovers structured review output from imperfect model text.
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("message")
def chat(message: str) -> None:
    """Ask a coding question."""
    cfg = _load_config_or_exit()
    result = _run(cfg, lambda router: answer_chat(router, cfg, message))
    click.echo(result["answer"])


@main.command()
@click.argument("file", type=click.File("r", encoding="utf-8"))
@click.option("--line", "cursor_line", default=0, type=int, help="Zero-based cursor line.")
def complete(file: Any, cursor_line: int) -> None:
    """Continue the code in FILE around a cursor line ('-' for stdin)."""
    cfg = _load_config_or_exit()
    content = file.read()
    result = _run(cfg, lambda router: complete_code(router, cfg, content, cursor_line))
    click.echo(result["completion"])


@main.command()
@click.argument("diff_file", type=click.File("r", encoding="utf-8"))
@click.option("--title", default="", help="Pull request title.")
@click.option("--description", default="", help="Pull request description.")
@click.option("--files", default="", help="Comma-separated list of changed files.")
@click.option(
    "--output",
    type=click.Choice(["terminal", "json"], case_sensitive=False),
    default="terminal",
    help="Output format (default: terminal).",
)
def review(diff_file: Any, title: str, description: str, files: str, output: str) -> None:
    """Review the pull request diff in DIFF_FILE ('-' for stdin)."""
    cfg = _load_config_or_exit()
    request = ReviewRequest(
        diffs=diff_file.read(),
        title=title,
        description=description,
        files_changed=[f.strip() for f in files.split(",") if f.strip()],
    )
    result = _run(cfg, lambda router: review_pull_request(router, cfg, request))
    if output == "json":
        click.echo(json.dumps(result, indent=2))
    else:
        render_review(result)


@main.command()
def providers() -> None:
    """Show the fallback order and which providers are ready."""
    cfg = _load_config_or_exit()

    async def _status() -> dict[str, Any]:
        async with FallbackRouter(cfg) as router:
            return await router.available_providers()

    render_providers(cfg.fallback_order, asyncio.run(_status()))


@main.group()
def config() -> None:
    """Manage configuration."""


@config.command()
def path() -> None:
    """Print the configuration file path."""
    click.echo(CONFIG_PATH)


@config.command("show")
def config_show() -> None:
    """Display effective configuration."""
    render_config_show(_load_config_or_exit())


@config.command()
def check() -> None:
    """Check provider credentials and mode flags.

    Exits 1 when the configuration cannot serve requests.
    """
    report = validate_environment(_load_config_or_exit())
    render_environment_report(report)
    if not report.is_valid:
        sys.exit(EXIT_UPSTREAM)


@config.command()
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file.")
def init(force: bool) -> None:
    """Write a config file with the default fallback order."""
    target = Path(CONFIG_PATH)
    if target.exists() and not force:
        console.print(f"[red bold]Error:[/red bold] {target} already exists. Use --force.")
        sys.exit(EXIT_UPSTREAM)
    write_config(Config(), target)
    console.print(f"[dim]Config written to {target}[/dim]")


if __name__ == "__main__":
    main()
