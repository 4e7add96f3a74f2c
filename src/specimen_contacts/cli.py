"""Command line entry points for source contact resolution."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from specimen_contacts.config import get_settings
from specimen_contacts.export.writer import ExportReport
from specimen_contacts.ingest.loader import SearchResultError, load_search_result
from specimen_contacts.ingest.models import SearchResult
from specimen_contacts.pipeline import build_source_table, resolve_source_contacts

app = typer.Typer(help="Resolve contacts for the sources behind a specimen record search")


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(message)s")


def _load(search_json: Path, records_csv: Optional[Path], attribution: Optional[Path]) -> SearchResult:
    try:
        result = load_search_result(search_json, records_csv=records_csv, attribution_path=attribution)
    except SearchResultError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc
    if result.issues:
        typer.secho("Loading issues detected:", fg=typer.colors.YELLOW)
        for issue in result.issues:
            typer.secho(f"- {issue}", fg=typer.colors.YELLOW)
    return result


@app.command()
def table(
    search_json: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved search response"),
    records_csv: Optional[Path] = typer.Option(None, exists=True, help="Record batch CSV overriding the response items"),
    attribution: Optional[Path] = typer.Option(None, exists=True, help="Attribution JSON overriding the response"),
    output: Optional[Path] = typer.Option(None, help="Write the table as CSV instead of printing it"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Print the per-source contact table."""
    configure_logging(verbose)
    result = _load(search_json, records_csv, attribution)
    source_table = build_source_table(result)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        source_table.to_csv(output, index=False)
        typer.secho(f"Contact table written to {output}", fg=typer.colors.GREEN)
    else:
        typer.echo(source_table.to_csv(index=False), nl=False)


@app.command()
def export(
    search_json: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved search response"),
    dest_dir: Path = typer.Argument(..., file_okay=False, help="Directory receiving one CSV per source"),
    records_csv: Optional[Path] = typer.Option(None, exists=True, help="Record batch CSV overriding the response items"),
    attribution: Optional[Path] = typer.Option(None, exists=True, help="Attribution JSON overriding the response"),
    max_workers: Optional[int] = typer.Option(None, min=1, help="Parallel export writers"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Write the contact table and one record file per contributing source."""
    configure_logging(verbose)
    settings = get_settings()
    result = _load(search_json, records_csv, attribution)
    report = resolve_source_contacts(result, dest_dir, settings=settings, max_workers=max_workers)

    dest_dir.mkdir(parents=True, exist_ok=True)
    table_path = dest_dir / settings.contact_table_filename
    report.table.to_csv(table_path, index=False)
    typer.secho(f"Contact table for {len(report.table)} sources written to {table_path}", fg=typer.colors.GREEN)

    exported = report.export or ExportReport()
    typer.secho(f"Exported records for {len(exported.written)} sources", fg=typer.colors.GREEN)
    for source_uuid, reason in {**exported.rejected, **exported.failures}.items():
        typer.secho(f"- {source_uuid}: {reason}", fg=typer.colors.RED)
    if not exported.ok:
        raise typer.Exit(code=1)


if __name__ == "__main__":  # pragma: no cover
    app()
