"""sharplint CLI - static analysis rules for C# code."""
import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.table import Table
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    BarColumn,
    TaskProgressColumn,
    TimeElapsedColumn,
)
from rich.markup import escape

from sharplint.utils.safe_console import SafeConsole
from sharplint.config import __version__, get_config
from sharplint.analyzer.cache import AnalysisCache
from sharplint.analyzer.engine import AnalysisEngine, discover_sources
from sharplint.analyzer.external_catalog import ExternalApiCatalog
from sharplint.analyzer.policy_registry import ExclusionPolicy
from sharplint.rules.base import Severity
from sharplint.rules.catalog import RULE_TYPES, build_rules

app = typer.Typer(
    name="sharplint",
    help="Static analysis rules for C# code",
    add_completion=False
)
console = SafeConsole()

# Cache management sub-command
cache_app = typer.Typer(name="cache", help="Manage the sharplint result cache")

OUTPUT_FORMATS = ("table", "json")

SEVERITY_STYLES = {
    Severity.ERROR: "bold red",
    Severity.WARNING: "yellow",
    Severity.INFO: "cyan",
    Severity.HIDDEN: "dim",
}


def _fail(message: str):
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


def _cache_root(paths: List[Path]) -> Path:
    first = paths[0]
    return first if first.is_dir() else first.parent


@app.command()
def audit(
    paths: Optional[List[str]] = typer.Argument(None, help="Files or directories to analyze (default: current directory)"),
    output_format: str = typer.Option("table", "--format", "-f", help="Output format (table, json)"),
    policy_file: Optional[str] = typer.Option(None, "--policy", help="Exclusion policy JSON file"),
    catalog_file: Optional[str] = typer.Option(None, "--catalog", help="External API catalog JSON file"),
    enable: Optional[List[str]] = typer.Option(None, "--enable", help="Enable a rule that is off by default (repeatable)"),
    disable: Optional[List[str]] = typer.Option(None, "--disable", help="Disable a rule (repeatable)"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Analyze every file even if a cached result exists"),
    fail_on_warning: bool = typer.Option(False, "--fail-on-warning", help="Exit with code 1 on any diagnostic"),
):
    """Analyze C# sources and report diagnostics."""
    config = get_config()

    if output_format not in OUTPUT_FORMATS:
        _fail(f"Unknown format: {escape(output_format)} (expected one of: {', '.join(OUTPUT_FORMATS)})")

    targets = [Path(p).resolve() for p in (paths or ["."])]
    for target in targets:
        if not target.exists():
            _fail(f"Path does not exist: {escape(str(target))}")

    try:
        policy = ExclusionPolicy.load(Path(policy_file) if policy_file else config.policy_path)
        rules = build_rules(
            policy,
            enable=config.enabled_rules + list(enable or []),
            disable=config.disabled_rules + list(disable or []),
        )
    except ValueError as e:
        _fail(escape(str(e)))

    catalog = ExternalApiCatalog(Path(catalog_file) if catalog_file else config.catalog_path)
    files = discover_sources(targets, config.excluded_dirs)

    cache = None
    if not no_cache:
        cache = AnalysisCache(_cache_root(targets), config.cache_dir)
    fingerprint = AnalysisCache.fingerprint(
        __version__, policy.to_dict(), catalog.catalog_path, [rule.rule_id for rule in rules]
    )
    engine = AnalysisEngine(rules, catalog=catalog, cache=cache, fingerprint=fingerprint)

    try:
        if output_format == "table":
            with Progress(
                SpinnerColumn(),
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TimeElapsedColumn(),
                console=console,
                transient=True
            ) as progress:
                task = progress.add_task("[cyan]Analyzing C# sources...", total=len(files))
                reports = engine.analyze_paths(files, on_file=lambda _report: progress.advance(task))
        else:
            reports = engine.analyze_paths(files)
    finally:
        if cache is not None:
            cache.close()

    diagnostics = [d for report in reports for d in report.diagnostics]

    if output_format == "json":
        typer.echo(json.dumps({
            'version': __version__,
            'files_analyzed': len(reports),
            'files_skipped': sum(1 for r in reports if r.error),
            'diagnostics': [d.to_dict() for d in diagnostics],
        }, indent=2))
    else:
        _print_table(diagnostics, reports)

    has_errors = any(d.severity is Severity.ERROR for d in diagnostics)
    if has_errors or (fail_on_warning and diagnostics):
        raise typer.Exit(1)


def _print_table(diagnostics, reports):
    if diagnostics:
        table = Table(title="Diagnostics")
        table.add_column("Rule", style="cyan", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Location", style="magenta", no_wrap=False)
        table.add_column("Message", no_wrap=False)

        for diagnostic in diagnostics:
            style = SEVERITY_STYLES.get(diagnostic.severity, "")
            table.add_row(
                diagnostic.rule_id,
                f"[{style}]{diagnostic.severity.value}[/{style}]",
                escape(str(diagnostic.location)),
                escape(diagnostic.message),
            )
        console.print(table)
    else:
        console.print("[bold green]✓ No diagnostics found[/bold green]")

    cached = sum(1 for r in reports if r.cached)
    skipped = sum(1 for r in reports if r.error)
    console.print(f"\n[bold yellow]Summary:[/bold yellow]")
    console.print(f"  Files analyzed: {len(reports)} ({cached} from cache)")
    if skipped:
        console.print(f"  Files skipped: {skipped}")
    console.print(f"  Diagnostics: {len(diagnostics)}")


@app.command()
def rules():
    """List the available rules."""
    table = Table(title="Rules", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Severity")
    table.add_column("Default", justify="center")
    table.add_column("Title", no_wrap=False)

    for rule_id, rule_type in RULE_TYPES.items():
        descriptor = rule_type.descriptor
        table.add_row(
            rule_id,
            descriptor.severity.value,
            "on" if descriptor.enabled_by_default else "off",
            escape(descriptor.title),
        )

    console.print(table)


# =========================================================================
# CACHE MANAGEMENT COMMANDS
# =========================================================================

@cache_app.command("clear")
def cache_clear(
    project_path: str = typer.Argument(".", help="Project root path"),
):
    """Clear the result cache for a project.

    This forces a full re-analysis on the next audit.
    """
    project_path = Path(project_path).resolve()

    if not project_path.exists():
        _fail(f"Project path does not exist: {escape(str(project_path))}")

    with AnalysisCache(project_path, get_config().cache_dir) as cache:
        cache.clear_cache()

    console.print(f"[green]✓ Cache cleared for {escape(str(project_path))}[/green]")


@cache_app.command("stats")
def cache_stats(
    project_path: str = typer.Argument(".", help="Project root path"),
):
    """Display cache statistics for a project."""
    project_path = Path(project_path).resolve()

    if not project_path.exists():
        _fail(f"Project path does not exist: {escape(str(project_path))}")

    with AnalysisCache(project_path, get_config().cache_dir) as cache:
        stats = cache.get_cache_stats()

    table = Table(title=f"Cache Statistics: {project_path}", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right", style="green")

    table.add_row("Total Files Cached", str(stats['total_files']))
    table.add_row("Files With Findings", str(stats['files_with_findings']))
    table.add_row("Configurations", str(stats['configurations']))

    console.print(table)


# Register cache sub-command
app.add_typer(cache_app)


@app.callback()
def main():
    """sharplint - static analysis rules for C# code."""
    pass


if __name__ == "__main__":
    app()
