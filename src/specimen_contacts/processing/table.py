"""Composition of the per-source contact table."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from specimen_contacts.ingest.models import SourceMetadata
from specimen_contacts.processing.contacts import CONTACT_FIELDS, SOURCE_FIELDS, AggregatedSource

RECORD_TALLY = "record_tally"


@lru_cache(maxsize=None)
def contact_columns(width: int) -> Tuple[str, ...]:
    """Numbered contact columns for indices 1..width, grouped by index then field."""
    return tuple(f"{name}_{index}" for index in range(1, width + 1) for name in CONTACT_FIELDS)


def table_columns(width: int) -> List[str]:
    return [*SOURCE_FIELDS, RECORD_TALLY, *contact_columns(width)]


def compose_source_table(
    aggregated: List[AggregatedSource],
    tally: pd.Series,
    attribution: Optional[Iterable[SourceMetadata]] = None,
    include_undocumented: bool = True,
) -> pd.DataFrame:
    """Join aggregated contacts with record counts and keep only sources present in the batch.

    ``tally`` maps each batch source reference to its record count; its index is the
    authoritative set of sources in the batch. Attribution may list more sources than
    the batch holds (it describes the original query), and those rows are dropped.

    Batch sources with no aggregated contacts, either because attribution does not
    mention them or because none of their contacts has an email, are kept as rows
    with empty contact columns when ``include_undocumented`` is set. With empty
    attribution that means one contact-less row per batch source; the table is only
    empty in that case when ``include_undocumented`` is off.
    """
    rows: List[Dict[str, object]] = [source.to_row() for source in aggregated]
    table = pd.DataFrame(rows)
    for column in SOURCE_FIELDS:
        if column not in table.columns:
            table[column] = pd.Series(dtype="object")

    batch_sources = [str(source) for source in tally.index]
    documented = set(table["source_uuid"])
    missing = [source for source in batch_sources if source not in documented]
    if missing and include_undocumented:
        known = {source.source_uuid: source for source in attribution or []}
        extra = []
        for source_uuid in missing:
            metadata = known.get(source_uuid)
            if metadata is None:
                logging.warning("Source %s has records but no attribution entry", source_uuid)
            else:
                logging.warning("Source %s has no contact with an email address", source_uuid)
            extra.append(
                {
                    "source_uuid": source_uuid,
                    "source_name": metadata.source_name if metadata else None,
                    "source_url": metadata.source_url if metadata else None,
                }
            )
        table = pd.concat([table, pd.DataFrame(extra)], ignore_index=True)
    elif missing:
        logging.info("Omitting %d batch sources without contacts", len(missing))

    table[RECORD_TALLY] = table["source_uuid"].map(tally).fillna(0).astype("int64")
    table = table[table["source_uuid"].isin(batch_sources)].reset_index(drop=True)

    # Widest remaining source decides how many numbered contact columns exist.
    present = set(batch_sources)
    width = max((source.contact_count for source in aggregated if source.source_uuid in present), default=0)
    return table[table_columns(width)]
