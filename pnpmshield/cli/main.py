"""Main CLI application for pnpmshield."""

import json
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..audit.fleet import FleetAuditor
from ..config import get_settings
from ..errors import ConfigurationError, PnpmShieldError
from ..logging import get_logger
from ..models.migration import MigrationTrace
from ..models.signals import AuditFailure, FleetSummary
from ..models.policy import PolicyList
from ..policy.hook import ScriptPolicyHook
from ..policy.loader import POLICY_FILE_NAME, load_policy
from ..storage.backup import restore_snapshot
from ..storage.journal import Journal

app = typer.Typer(
    name="pnpmshield",
    help="Supply-chain audit and secure pnpm migration for a repository fleet",
    add_completion=False
)

# stdout belongs to read-package, so human output goes to stderr
console = Console(stderr=True)
logger = get_logger(__name__)

TIER_COLORS = {'HIGH': 'red', 'MEDIUM': 'yellow', 'LOW': 'green'}
OUTCOME_COLORS = {'OK': 'green', 'WARNING': 'yellow', 'FAILED': 'red'}


def _hook_policy(settings) -> PolicyList:
    """Policy for the installer hook; the file exported into the repository wins over defaults."""
    exported = Path.cwd() / POLICY_FILE_NAME
    if settings.policy_file is None and exported.is_file():
        return load_policy(exported)
    return load_policy(settings=settings)


def _repositories(repositories: Optional[List[str]]) -> List[str]:
    repos = list(repositories or get_settings().repositories)
    if not repos:
        console.print("[red]No repositories given and none configured (PNPMSHIELD_REPOSITORIES)[/red]")
        raise typer.Exit(1)
    return repos


@app.command()
def audit(
    repositories: Optional[List[str]] = typer.Argument(
        None, help="Repositories to audit (default: configured fleet)"
    ),
    update: bool = typer.Option(
        False, "--update/--no-update", help="Clone or pull each repository first"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose logging"
    ),
) -> None:
    """Classify every repository by supply-chain risk."""
    settings = get_settings()
    if verbose:
        settings.log_level = "DEBUG"

    repos = _repositories(repositories)
    console.print("[bold blue]pnpmshield[/bold blue] - Fleet Audit")
    console.print(f"Repositories: {len(repos)}")
    console.print()

    result = FleetAuditor(settings=settings, update_checkouts=update).run(repos)
    _display_audit_results(result.records, result.failures, result.summary)
    console.print(f"Report saved to: {result.report_path}")


@app.command()
def migrate(
    repository: str = typer.Argument(..., help="Repository to migrate"),
) -> None:
    """Migrate one repository to pnpm with lifecycle scripts disabled."""
    from ..orchestrator.migration import MigrationPipeline

    console.print("[bold blue]pnpmshield[/bold blue] - Secure Migration")
    console.print(f"Repository: {repository}")
    console.print()

    try:
        trace = MigrationPipeline().migrate(repository)
    except ConfigurationError as e:
        console.print(f"[red]Migration failed: {e}[/red]")
        raise typer.Exit(2)

    _display_trace(trace)
    if trace.aborted:
        raise typer.Exit(1)


@app.command("migrate-fleet")
def migrate_fleet(
    repositories: Optional[List[str]] = typer.Argument(
        None, help="Repositories to audit and migrate (default: configured fleet)"
    ),
) -> None:
    """Audit the fleet, then migrate it highest risk first."""
    from ..orchestrator.migration import MigrationPipeline

    settings = get_settings()
    repos = _repositories(repositories)

    console.print("[bold blue]pnpmshield[/bold blue] - Fleet Migration")
    console.print()

    try:
        pipeline = MigrationPipeline(settings=settings)
    except ConfigurationError as e:
        console.print(f"[red]Invalid policy: {e}[/red]")
        raise typer.Exit(2)

    result = FleetAuditor(settings=settings).run(repos)
    _display_audit_results(result.records, result.failures, result.summary)

    traces = pipeline.migrate_fleet(result.summary)
    for trace in traces:
        _display_trace(trace)

    aborted = [trace.repository for trace in traces if trace.aborted]
    if aborted:
        console.print(f"[red]Aborted migrations: {', '.join(aborted)}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Migrated {len(traces)} repositories[/green]")


@app.command("read-package")
def read_package() -> None:
    """Sanitize one package manifest read from stdin (installer hook)."""
    settings = get_settings()
    try:
        manifest = json.loads(sys.stdin.read())
        hook = ScriptPolicyHook(
            _hook_policy(settings),
            Journal(settings.audit_log_path),
            trusted_namespace=settings.trusted_namespace,
        )
        sanitized = hook.read_package(manifest)
    except (json.JSONDecodeError, UnicodeDecodeError, ConfigurationError) as e:
        typer.echo(f"pnpmshield: {e}", err=True)
        raise typer.Exit(2)

    typer.echo(json.dumps(sanitized))


@app.command("complete-install")
def complete_install() -> None:
    """Append the install completion marker to the audit log."""
    settings = get_settings()
    hook = ScriptPolicyHook(PolicyList(), Journal(settings.audit_log_path))
    entry = hook.after_all_resolved()
    typer.echo(entry.to_line(), err=True)


@app.command()
def restore(
    repository: str = typer.Argument(..., help="Repository to restore"),
    backup: Optional[Path] = typer.Option(
        None, "--backup", "-b", help="Backup directory (default: most recent)"
    ),
) -> None:
    """Restore lock files and scripts from a pre-migration backup."""
    settings = get_settings()
    if backup is None:
        candidates = sorted((settings.backups_dir / repository).glob("backup-*"))
        if not candidates:
            console.print(f"[red]No backups found for {repository}[/red]")
            raise typer.Exit(1)
        backup = candidates[-1]

    try:
        restored = restore_snapshot(settings.repository_path(repository), backup)
    except (OSError, PnpmShieldError) as e:
        console.print(f"[red]Restore failed: {e}[/red]")
        logger.error("Restore failed", repository=repository, error=str(e))
        raise typer.Exit(1)

    console.print(f"[green]Restored {', '.join(restored) or 'nothing'} from {backup}[/green]")


@app.command()
def policy(
    path: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Policy file to validate (default: configured policy)"
    ),
) -> None:
    """Validate and show the script policy."""
    try:
        policy_list = load_policy(path)
    except ConfigurationError as e:
        console.print(f"[red]Invalid policy: {e}[/red]")
        raise typer.Exit(2)

    table = Table(title="Script Policy")
    table.add_column("List", style="cyan")
    table.add_column("Pattern", style="white")
    for pattern in policy_list.deny:
        table.add_row("[red]deny[/red]", pattern)
    for pattern in policy_list.allow:
        table.add_row("[green]allow[/green]", pattern)
    console.print(table)


def _display_audit_results(records, failures: List[AuditFailure], summary: FleetSummary) -> None:
    """Display audit records and the fleet summary."""
    table = Table(title="Repository Risk")
    table.add_column("Repository", style="cyan")
    table.add_column("Tier", style="white")
    table.add_column("Package Manager", style="blue")
    table.add_column("Vulnerabilities", style="magenta")
    table.add_column("Lifecycle", style="white")
    table.add_column("Risk Package", style="white")

    by_name = {record.repository: record for record in records}
    for name in summary.prioritized_order:
        record = by_name[name]
        color = TIER_COLORS[record.tier]
        table.add_row(
            record.repository,
            f"[{color}]{record.tier}[/{color}]",
            record.package_manager,
            str(record.vulnerability_count),
            "yes" if record.lifecycle_flag else "no",
            "yes" if record.risk_package_flag else "no",
        )
    for failure in failures:
        table.add_row(failure.repository, "[red]failed[/red]", "-", "-", "-", failure.reason)

    console.print(table)

    counts = Table(title="Summary")
    counts.add_column("Tier", style="cyan")
    counts.add_column("Repositories", style="green")
    for tier, count in summary.counts().items():
        counts.add_row(tier, str(count))
    console.print(counts)


def _display_trace(trace: MigrationTrace) -> None:
    """Display the steps of one migration."""
    table = Table(title=f"Migration: {trace.repository} ({trace.run_id})")
    table.add_column("Step", style="cyan")
    table.add_column("Outcome", style="white")
    table.add_column("Detail", style="white")

    for step in trace.steps:
        color = OUTCOME_COLORS[step.outcome]
        detail = "\n".join([step.detail, *step.notes]) if step.notes else step.detail
        table.add_row(step.name, f"[{color}]{step.outcome}[/{color}]", detail)

    console.print(table)
    if trace.backup_dir:
        console.print(f"Backup: {trace.backup_dir}")


if __name__ == "__main__":
    app()
