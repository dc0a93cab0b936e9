"""CLI entry point for Registrar.

Commands:
- serve: run the REST API under uvicorn
- init-db: create the database tables
- seed: load the sample data set
- check-counters / repair-counters: detect and fix counter drift
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click
import uvicorn

from registrar import __version__
from registrar.config import ConfigError, Settings
from registrar.logging import setup_logging
from registrar.records import RecordsError, RecordStore
from registrar.records.counters import CounterReport
from registrar.seed import seed_database


def _load_settings(db_path: str | None) -> Settings:
    try:
        settings = Settings.from_env()
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    if db_path is not None:
        settings.db_path = db_path
    return settings


def _print_report(report: CounterReport) -> None:
    click.echo(f"  Checked {report.checked} counters")
    for drift in report.drifts:
        click.echo(
            f"  {drift.entity} {drift.entity_id} {drift.field}: "
            f"stored {drift.stored}, actual {drift.actual}"
        )


db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=str),
    default=None,
    help="SQLite database file (default: REGISTRAR_DB_PATH or registrar.db)",
)

verbose_option = click.option(
    "-v",
    "--verbose",
    is_flag=True,
    help="Enable verbose output",
)


@click.group()
@click.version_option(__version__)
def main() -> None:
    """Registrar - academic records service."""
    pass


@main.command()
@db_option
@click.option("--host", default=None, help="Bind address (default: REGISTRAR_HOST)")
@click.option("--port", type=int, default=None, help="Port (default: REGISTRAR_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for rotating log files",
)
def serve(
    db_path: str | None,
    host: str | None,
    port: int | None,
    reload: bool,
    log_dir: Path | None,
) -> None:
    """Run the REST API."""
    settings = _load_settings(db_path)
    setup_logging(log_dir=log_dir)

    # The app factory reads settings from the environment in the server process
    os.environ["REGISTRAR_DB_PATH"] = settings.db_path
    uvicorn.run(
        "registrar.api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
@db_option
def init_db(db_path: str | None) -> None:
    """Create database tables if they don't exist."""
    settings = _load_settings(db_path)
    store = RecordStore(settings.db_path)
    store.close()
    click.echo(f"Database ready at {settings.db_path}")


@main.command()
@db_option
@click.option("--keep", is_flag=True, help="Keep existing records instead of clearing them")
@verbose_option
def seed(db_path: str | None, keep: bool, verbose: bool) -> None:
    """Load the sample departments, classes, courses and students."""
    settings = _load_settings(db_path)
    setup_logging(level="DEBUG" if verbose else None, console=verbose)

    store = RecordStore(settings.db_path, write_retries=settings.write_retries)
    try:
        click.echo("Seeding database...")
        summary = seed_database(store, reset=not keep)
    except RecordsError as e:
        click.echo(f"Seed error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    click.echo(f"  Departments: {len(summary.departments)}")
    click.echo(f"  Classes: {len(summary.classes)}")
    click.echo(f"  Courses: {len(summary.courses)}")
    click.echo(f"  Students: {len(summary.students)}")


@main.command("check-counters")
@db_option
def check_counters(db_path: str | None) -> None:
    """Report counters that disagree with live references. Exits 1 on drift."""
    settings = _load_settings(db_path)
    store = RecordStore(settings.db_path)
    try:
        report = store.check_counters()
    finally:
        store.close()

    _print_report(report)
    if not report.consistent:
        click.echo(f"Counter drift detected in {len(report.drifts)} counter(s)", err=True)
        sys.exit(1)
    click.echo("All counters consistent")


@main.command("repair-counters")
@db_option
@verbose_option
def repair_counters(db_path: str | None, verbose: bool) -> None:
    """Recompute every counter from live references."""
    settings = _load_settings(db_path)
    setup_logging(level="DEBUG" if verbose else None, console=verbose)

    store = RecordStore(settings.db_path, write_retries=settings.write_retries)
    try:
        report = store.repair_counters()
    except RecordsError as e:
        click.echo(f"Repair error: {e}", err=True)
        sys.exit(1)
    finally:
        store.close()

    _print_report(report)
    click.echo(f"Repaired {len(report.drifts)} counter(s)")


if __name__ == "__main__":
    main()
