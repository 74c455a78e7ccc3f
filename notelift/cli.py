"""CLI entry point for notelift."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from notelift.config import NoteliftConfig, load_config
from notelift.config.loader import DEFAULT_CONFIG_TEMPLATE
from notelift.errors import NoteliftError
from notelift.migration import FileMigrationResult, MigrationOrchestrator, MigrationReport
from notelift.store import create_store, verify_urls

app = typer.Typer(
    name="notelift",
    help="Move the local images of a Markdown corpus to a remote image store.",
)

config_app = typer.Typer(help="Manage notelift configuration.")
app.add_typer(config_app, name="config")

images_app = typer.Typer(help="Inspect the remote image store.")
app.add_typer(images_app, name="images")

# Global state
_config: NoteliftConfig | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class _JsonFormatter(logging.Formatter):
    """One JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _setup_logging(cfg: NoteliftConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(show_path=False, rich_tracebacks=False)
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(_LOG_LEVELS[cfg.log_level])


def _get_config() -> NoteliftConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to notelift.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    _setup_logging(_config)


# ---------------------------------------------------------------------------
# Report rendering
# ---------------------------------------------------------------------------


def _display_summary(report: MigrationReport) -> None:
    title = "Dry Run: nothing uploaded or written" if report.dry_run else "Migration"
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Files scanned", str(report.files_scanned))
    table.add_row("Files that would change" if report.dry_run else "Files modified",
                  str(report.files_modified))
    table.add_row("File errors", str(report.file_errors))
    table.add_row("References found", str(report.references_found))
    if report.dry_run:
        table.add_row("References resolvable", str(report.references_resolvable))
    else:
        table.add_row("References replaced", str(report.references_replaced))
        table.add_row("Uploads performed", str(report.uploads_performed))
        table.add_row("Cache hits", str(report.cache_hits))
    table.add_row("References failed", str(report.references_failed))
    table.add_row("Placeholder links", str(report.placeholders_found))
    table.add_row("Duration", f"{report.duration:.2f}s")
    rprint(table)


def _display_problems(report: MigrationReport) -> None:
    """List every failed or unresolved reference, grouped by document."""
    for f in report.files:
        if not _has_problems(f):
            continue
        rprint(f"[bold]{escape(f.file_path)}[/bold]")
        if f.error:
            rprint(f"  [red]error:[/red] {escape(f.error)}")
        for ref in f.unresolved:
            rprint(f"  [yellow]unresolved:[/yellow] {escape(ref.raw_match)} (no file for {escape(repr(ref.path_token))})")
        for failed in f.failed_uploads:
            rprint(f"  [red]failed:[/red] {escape(failed.reference.raw_match)} ({escape(failed.reason)})")
        if f.replaced and not f.written:
            rprint(f"  [red]not written:[/red] {len(f.replaced)} uploaded reference(s) left in place")
        for link in f.placeholders:
            rprint(f"  [magenta]placeholder:[/magenta] {escape(link)}")


def _has_problems(f: FileMigrationResult) -> bool:
    return bool(
        f.error or f.unresolved or f.failed_uploads or f.placeholders
        or (f.replaced and not f.written)
    )


def _display_dry_run_plan(report: MigrationReport) -> None:
    table = Table(title="Images that would be uploaded")
    table.add_column("Document", style="cyan")
    table.add_column("Reference")
    table.add_column("File", style="green")
    for f in report.files:
        for item in f.resolvable:
            table.add_row(escape(f.file_path), escape(item.reference.raw_match), escape(str(item.resolved_path)))
    if table.row_count:
        rprint(table)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command()
def migrate(
    directory: str = typer.Argument(..., help="Corpus root directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Report what would change without uploading or writing"),
    workers: int | None = typer.Option(None, "--workers", "-w", min=1, help="Documents processed concurrently"),
    as_json: bool = typer.Option(False, "--json", help="Print the full report as JSON"),
) -> None:
    """Upload local images and rewrite documents to point at them."""
    cfg = _get_config()
    if workers is not None:
        cfg = cfg.model_copy(update={"max_workers": workers})

    try:
        store = None if dry_run else create_store(cfg.store)
        orchestrator = MigrationOrchestrator(cfg, store)
        report = asyncio.run(orchestrator.run(directory, dry_run=dry_run))
    except (ValueError, NoteliftError) as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(report.model_dump_json(indent=2))
    else:
        _display_summary(report)
        if report.dry_run:
            _display_dry_run_plan(report)
        _display_problems(report)

    if report.failed:
        rprint("[red]Aborted:[/red] upload failure threshold exceeded.")
        raise typer.Exit(1)


@app.command(name="fix-placeholders")
def fix_placeholders(
    directory: str = typer.Argument(..., help="Corpus root directory"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show what would be repaired"),
) -> None:
    """Restore placeholder image links to wiki embeds."""
    cfg = _get_config()
    try:
        report = MigrationOrchestrator(cfg).repair_placeholders(directory, dry_run=dry_run)
    except NoteliftError as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if not report.repaired and not report.errors:
        rprint("[green]No placeholder links found.[/green]")
        return

    title = "Dry Run: placeholder links that would be repaired" if dry_run else "Repaired placeholder links"
    table = Table(title=title)
    table.add_column("Document", style="cyan")
    table.add_column("Links", justify="right", style="green")
    for path, count in sorted(report.repaired.items()):
        table.add_row(escape(path), str(count))
    rprint(table)
    rprint(f"{report.links_repaired} link(s) in {report.files_modified} file(s)")

    for path, err in sorted(report.errors.items()):
        rprint(f"  [red]error:[/red] {escape(path)}: {escape(err)}")
    if report.errors:
        raise typer.Exit(1)


@images_app.command("list")
def images_list(
    page: int = typer.Option(1, "--page", min=1, help="Page number"),
    per_page: int = typer.Option(50, "--per-page", min=1, max=100, help="Images per page"),
) -> None:
    """List images already in the remote store."""
    cfg = _get_config()
    try:
        store = create_store(cfg.store)
        result = asyncio.run(store.list_images(page=page, per_page=per_page))
    except (ValueError, NoteliftError) as e:
        rprint(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if not result.images:
        rprint("[yellow]No images found.[/yellow]")
        return

    table = Table(title=f"Images (page {result.page}, {result.total_count} total)")
    table.add_column("ID", style="cyan")
    table.add_column("Filename", style="green")
    table.add_column("Uploaded")
    for img in result.images:
        table.add_row(
            str(img.get("id", "-")),
            escape(str(img.get("filename", "-"))),
            str(img.get("uploaded", "-")),
        )
    rprint(table)


@app.command()
def verify(
    urls: list[str] = typer.Argument(..., help="Image URLs to check"),
    timeout: float = typer.Option(10.0, "--timeout", help="Per-request timeout in seconds"),
) -> None:
    """Check that remote image URLs are reachable."""
    report = asyncio.run(verify_urls(urls, timeout=timeout))

    table = Table(title="URL Verification")
    table.add_column("URL", style="cyan")
    table.add_column("Status", justify="right")
    table.add_column("Result")
    for check in report.results:
        status = str(check.status) if check.status is not None else "-"
        result = "[green]ok[/green]" if check.accessible else f"[red]{escape(check.error or 'unreachable')}[/red]"
        table.add_row(escape(check.url), status, result)
    rprint(table)
    rprint(f"Success rate: {report.success_rate:.0%}")

    if report.inaccessible:
        raise typer.Exit(1)


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default notelift.yaml in current directory."""
    target = Path("notelift.yaml")
    if target.exists() and not force:
        rprint("[yellow]notelift.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(Panel(f"[green]Created[/green] {target}", border_style="green"))
