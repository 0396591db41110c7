"""Command line entry points for maintenance sweeps.

Usage:
    printorders gc --retention 3600
    printorders reconcile
"""

import asyncio

import click

from printorders.logging import configure_logging, setup_logging
from printorders.tasks.maintenance import run_garbage_collection, run_reconciliation


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL (debug, info, warning, ...).")
def cli(log_level: str | None) -> None:
    """Order and upload maintenance."""
    if log_level:
        configure_logging(log_level)
    else:
        setup_logging()


@cli.command("gc")
@click.option(
    "--retention",
    type=click.IntRange(min=0),
    default=None,
    help="Seconds an unattached temporary upload is kept (default: TEMP_FILE_RETENTION_SECONDS).",
)
def gc(retention: int | None) -> None:
    """Delete temporary uploads that were never attached to an order."""
    report = asyncio.run(run_garbage_collection(retention))
    click.echo(f"deleted={report.deleted_count} skipped={report.skipped_count} errors={len(report.errors)}")
    for error in report.errors:
        click.echo(f"  file {error.file_id}: {error.error}", err=True)
    if report.errors:
        raise SystemExit(1)


@cli.command("reconcile")
def reconcile() -> None:
    """Repair file/order association inconsistencies."""
    report = asyncio.run(run_reconciliation())
    click.echo(f"class_a_fixed={report.class_a_fixed} class_b_fixed={report.class_b_fixed}")


if __name__ == "__main__":
    cli()
