"""Resolve source contacts for a search result and partition its records per source."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from specimen_contacts.config import Settings, get_settings
from specimen_contacts.export.writer import ExportReport, export_source_records
from specimen_contacts.ingest.models import SearchResult
from specimen_contacts.processing.contacts import aggregate_contacts, flatten_contacts
from specimen_contacts.processing.table import compose_source_table
from specimen_contacts.processing.tally import tally_records


@dataclass
class ContactReport:
    table: pd.DataFrame
    export: Optional[ExportReport] = None


def build_source_table(result: SearchResult, settings: Optional[Settings] = None) -> pd.DataFrame:
    """Return one row per batch source with its record tally and numbered contacts."""
    settings = settings or get_settings()
    records = result.records_frame()
    tally = tally_records(records)
    rows = flatten_contacts(result.attribution)
    aggregated = aggregate_contacts(rows, cap=settings.contact_slot_cap)
    table = compose_source_table(
        aggregated,
        tally,
        attribution=result.attribution,
        include_undocumented=settings.include_undocumented_sources,
    )
    logging.info(
        "Composed contact table for %d sources from %d records and %d attribution entries",
        len(table),
        len(records),
        len(result.attribution),
    )
    return table


def resolve_source_contacts(
    result: SearchResult,
    directory: Optional[Path] = None,
    settings: Optional[Settings] = None,
    max_workers: Optional[int] = None,
) -> ContactReport:
    """Compose the source contact table and, when ``directory`` is given, write per-source exports."""
    settings = settings or get_settings()
    table = build_source_table(result, settings)
    if directory is None:
        return ContactReport(table=table)

    export = export_source_records(
        table,
        result.records_frame(),
        Path(directory),
        template=settings.export_filename_template,
        max_workers=max_workers or settings.export_workers,
    )
    return ContactReport(table=table, export=export)
