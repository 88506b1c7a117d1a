"""Typer CLI for confaudit."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from confaudit.config import DEFAULT_CONFIG_FILE, DEFAULT_CONFIG_TEMPLATE, ConfauditConfig
from confaudit.errors import AuditError

load_dotenv()

app = typer.Typer(
    name="confaudit",
    help="Report configuration files changed since the last audit across an account's repositories.",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def _setup_logging(log_dir: Path, debug: bool) -> None:
    # Always log to file
    file_handler = logging.FileHandler(log_dir / ".confaudit.log", mode="w")
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    confaudit_logger = logging.getLogger("confaudit")
    confaudit_logger.setLevel(logging.DEBUG)
    confaudit_logger.addHandler(file_handler)

    if debug:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter("%(name)s %(levelname)s %(message)s"))
        confaudit_logger.addHandler(stream_handler)


def _load_config(config_path: Path | None) -> ConfauditConfig:
    try:
        return ConfauditConfig.load(config_path)
    except AuditError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


@app.command()
def run(
    config_path: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to confaudit.toml")
    ] = None,
    debug: Annotated[
        bool, typer.Option("--debug", help="Also log to the terminal")
    ] = False,
) -> None:
    """Audit every repository once and advance the checkpoint."""
    from confaudit.pipeline import run_audit

    config = _load_config(config_path)
    _setup_logging(config.base_dir, debug)

    try:
        with console.status("[bold green]Auditing repositories..."):
            result = run_audit(config)
    except AuditError as exc:
        err_console.print(f"[bold red]Audit failed:[/bold red] {exc}")
        raise typer.Exit(1) from exc

    console.print(
        f"\n[bold green]Done![/bold green] Scanned {result.repositories_scanned} repositories, "
        f"{result.total_changes} changed files in {len(result.changed_repositories)} of them."
    )
    console.print(f"  {result.report_path}")


@app.command()
def repos(
    config_path: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to confaudit.toml")
    ] = None,
) -> None:
    """List the repositories an audit would scan."""
    from confaudit.pipeline import list_bitbucket_repositories

    config = _load_config(config_path)
    try:
        repositories = list_bitbucket_repositories(config)
    except AuditError as exc:
        err_console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    for repo in repositories:
        console.print(f"[bold]{repo.name}[/bold]  {repo.clone_url}")
    console.print(f"\n{len(repositories)} repositories")


@app.command()
def init(
    path: Annotated[
        Path, typer.Option("--path", "-p", help="Where to create confaudit.toml")
    ] = Path("."),
) -> None:
    """Create a confaudit.toml config file."""
    target = path / DEFAULT_CONFIG_FILE
    if target.exists():
        console.print(f"[yellow]{target} already exists.[/yellow]")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    console.print(f"[green]Created {target}[/green]")
