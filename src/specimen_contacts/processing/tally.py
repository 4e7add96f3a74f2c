"""Per-source record counts."""
from __future__ import annotations

import pandas as pd

from specimen_contacts.ingest.models import SOURCE_REFERENCE, normalize_source_id


def tally_records(records: pd.DataFrame) -> pd.Series:
    """Count records per normalized source reference; an empty batch yields an empty series."""
    if records.empty or SOURCE_REFERENCE not in records.columns:
        return pd.Series(dtype="int64", name="record_tally")
    counts = records[SOURCE_REFERENCE].map(normalize_source_id).dropna().value_counts(sort=False)
    counts.index.name = SOURCE_REFERENCE
    return counts.rename("record_tally")
