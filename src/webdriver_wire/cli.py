"""Command line interface for webdriver-wire."""

from __future__ import annotations

import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .blocking import BlockingSession, status as fetch_status
from .config import ClientConfig, load_config
from .errors import WebDriverError

app = typer.Typer(help="Minimal W3C WebDriver client")


def _console() -> Console:
    return Console()


def _load_config(
    config_path: Optional[Path], env_file: Optional[Path] = None, **overrides: Any
) -> ClientConfig:
    try:
        return load_config(config_path, env_file=env_file, **overrides)
    except ValueError as exc:
        _console().print(f"[red]Invalid configuration:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging (includes wire traffic)"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("webdriver-wire"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def status(
    url: Annotated[
        Optional[str],
        typer.Option("--url", help="Remote end URL; defaults to the configured server_url."),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
) -> None:
    """Ask the remote end whether it accepts new sessions."""

    config = _load_config(config_path)
    try:
        report = fetch_status(url, config=config)
    except WebDriverError as exc:
        _console().print(f"[red]Status request failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    style = "green" if report.ready else "yellow"
    label = "ready" if report.ready else "not ready"
    _console().print(f"[{style}]{label}[/{style}] {report.message}")
    if not report.ready:
        raise typer.Exit(code=2)


@app.command()
def capabilities(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option(
            "--env-file",
            help="Path to an .env file with default configuration values.",
        ),
    ] = None,
    url: Annotated[
        Optional[str],
        typer.Option("--url", help="Remote end URL."),
    ] = None,
    browser: Annotated[
        Optional[str],
        typer.Option("--browser", help="Requested browserName capability."),
    ] = None,
) -> None:
    """Open a session, print the capabilities the server negotiated, then close it."""

    overrides: dict[str, Any] = {}
    if url:
        overrides["server_url"] = url
    if browser:
        overrides["capabilities"] = {"browserName": browser}
    config = _load_config(config_path, env_file, **overrides)

    try:
        with BlockingSession.create(config=config) as session:
            table = Table(title=f"Session {session.session_id}")
            table.add_column("Capability", style="cyan")
            table.add_column("Value")
            for key, value in sorted(session.capabilities.items()):
                table.add_row(key, repr(value))
    except WebDriverError as exc:
        _console().print(f"[red]Session failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc
    _console().print(table)


if __name__ == "__main__":
    app()
