"""Per-source partitioning of a record batch into export files."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

import pandas as pd

from specimen_contacts.ingest.models import SOURCE_REFERENCE, normalize_source_id

DEFAULT_TEMPLATE = "records_{source_uuid}.csv"


class InvalidSourceError(ValueError):
    """Raised when a source identifier cannot name a distinct export file."""


class ExportError(RuntimeError):
    """Raised when an export unit cannot be written."""


@dataclass
class ExportUnit:
    source_uuid: str
    filename: str
    frame: pd.DataFrame


@dataclass
class ExportReport:
    """Outcome of one export run, keyed by source uuid."""

    written: Dict[str, Path] = field(default_factory=dict)
    rejected: Dict[str, str] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.rejected and not self.failures


def export_filename(source_uuid: object, template: str = DEFAULT_TEMPLATE) -> str:
    value = normalize_source_id(source_uuid)
    if value is None:
        raise InvalidSourceError("Empty source uuid would collapse exports into one shared file")
    if "/" in value or "\\" in value or value in {".", ".."}:
        raise InvalidSourceError(f"Source uuid {value!r} is not usable as a file name")
    return template.format(source_uuid=value)


def build_export_units(
    table: pd.DataFrame,
    records: pd.DataFrame,
    template: str = DEFAULT_TEMPLATE,
) -> Tuple[List[ExportUnit], Dict[str, str]]:
    """Select each table row's records without touching the filesystem.

    Rows whose uuid is degenerate, or whose file name was already claimed by an
    earlier row, are returned in the rejected mapping instead of being merged.
    """
    units: List[ExportUnit] = []
    rejected: Dict[str, str] = {}
    claimed: Dict[str, str] = {}
    references = records[SOURCE_REFERENCE].map(normalize_source_id) if SOURCE_REFERENCE in records.columns else None

    for position, source_uuid in enumerate(table["source_uuid"].tolist()):
        key = str(source_uuid) if source_uuid is not None and not pd.isna(source_uuid) else f"<row {position}>"
        try:
            filename = export_filename(source_uuid, template)
        except InvalidSourceError as exc:
            logging.error("Rejecting table row %d: %s", position, exc)
            rejected[key] = str(exc)
            continue
        if filename in claimed:
            reason = f"{filename} already claimed by source {claimed[filename]}"
            logging.error("Rejecting source %s: %s", key, reason)
            rejected[key] = reason
            continue
        claimed[filename] = key

        if references is None:
            frame = records.iloc[0:0]
        else:
            frame = records.loc[references == normalize_source_id(source_uuid)]
        units.append(ExportUnit(source_uuid=key, filename=filename, frame=frame.reset_index(drop=True)))
    return units, rejected


def write_export_unit(unit: ExportUnit, directory: Path) -> Path:
    path = directory / unit.filename
    try:
        directory.mkdir(parents=True, exist_ok=True)
        unit.frame.to_csv(path, index=False)
    except (OSError, ValueError) as exc:
        # Encoding errors surface as ValueError midway through the file.
        try:
            path.unlink(missing_ok=True)
        except OSError:
            logging.warning("Could not remove partial export %s", path)
        raise ExportError(f"Could not write {path}: {exc}") from exc
    return path


def export_source_records(
    table: pd.DataFrame,
    records: pd.DataFrame,
    directory: Path,
    template: str = DEFAULT_TEMPLATE,
    max_workers: int = 1,
) -> ExportReport:
    """Write one CSV per source in ``table``; a failing source does not stop the others."""
    units, rejected = build_export_units(table, records, template)
    report = ExportReport(rejected=rejected)

    if max_workers <= 1:
        for unit in units:
            try:
                report.written[unit.source_uuid] = write_export_unit(unit, directory)
            except ExportError as exc:
                logging.error("Failed to export %s: %s", unit.source_uuid, exc)
                report.failures[unit.source_uuid] = str(exc)
                continue
            logging.info("Exported %d records for %s", len(unit.frame), unit.source_uuid)
        return report

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        future_map = {executor.submit(write_export_unit, unit, directory): unit for unit in units}
        for future in as_completed(future_map):
            unit = future_map[future]
            try:
                report.written[unit.source_uuid] = future.result()
            except ExportError as exc:
                logging.error("Failed to export %s: %s", unit.source_uuid, exc)
                report.failures[unit.source_uuid] = str(exc)
                continue
            logging.info("Exported %d records for %s", len(unit.frame), unit.source_uuid)
    return report
