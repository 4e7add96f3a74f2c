from __future__ import annotations

import logging

import pandas as pd

from specimen_contacts.ingest.models import SearchResult, SourceMetadata
from specimen_contacts.processing.contacts import aggregate_contacts, flatten_contacts
from specimen_contacts.processing.table import compose_source_table, contact_columns, table_columns
from specimen_contacts.processing.tally import tally_records


def _compose(result: SearchResult, include_undocumented: bool = True, cap: int = 10) -> pd.DataFrame:
    aggregated = aggregate_contacts(flatten_contacts(result.attribution), cap=cap)
    return compose_source_table(
        aggregated,
        tally_records(result.records_frame()),
        attribution=result.attribution,
        include_undocumented=include_undocumented,
    )


def test_tally_counts_per_source(search_result):
    tally = tally_records(search_result.records_frame())
    assert tally.to_dict() == {"U1": 3, "U3": 1}


def test_tally_empty_batch():
    assert tally_records(pd.DataFrame()).empty


def test_contact_columns_group_by_index():
    assert contact_columns(2) == (
        "contact_name_1",
        "contact_role_1",
        "contact_email_1",
        "contact_name_2",
        "contact_role_2",
        "contact_email_2",
    )
    assert table_columns(0) == ["source_uuid", "source_name", "source_url", "record_tally"]


def test_table_only_lists_batch_sources(search_result):
    table = _compose(search_result)
    assert sorted(table["source_uuid"]) == ["U1", "U3"]
    assert "U9" not in set(table["source_uuid"])


def test_table_tally_and_column_order(search_result):
    table = _compose(search_result)
    assert list(table.columns) == table_columns(2)
    tallies = dict(zip(table["source_uuid"], table["record_tally"]))
    assert tallies == {"U1": 3, "U3": 1}
    u3 = table[table["source_uuid"] == "U3"].iloc[0]
    assert u3["contact_email_1"] == "cy@example.org"
    assert pd.isna(u3["contact_email_2"])


def test_overflow_columns_follow_slot_columns():
    contacts = [{"first_name": f"P{idx}", "email": f"p{idx}@x"} for idx in range(1, 4)]
    result = SearchResult.from_parts([{"source_reference": "U1"}], [{"uuid": "U1", "contacts": contacts}])
    table = _compose(result, cap=2)
    assert list(table.columns) == table_columns(3)
    assert table.loc[0, "contact_email_3"] == "p3@x"


def test_undocumented_source_kept_with_warning(caplog):
    result = SearchResult.from_parts(
        [{"source_reference": "U2"}, {"source_reference": "U2"}],
        [],
    )
    with caplog.at_level(logging.WARNING):
        table = _compose(result)
    assert table["source_uuid"].tolist() == ["U2"]
    assert table["record_tally"].tolist() == [2]
    assert "U2" in caplog.text


def test_undocumented_source_omitted_when_disabled():
    result = SearchResult.from_parts([{"source_reference": "U2"}, {"source_reference": "U2"}], [])
    table = _compose(result, include_undocumented=False)
    assert table.empty


def test_contactless_source_keeps_identity_fields():
    result = SearchResult.from_parts(
        [{"source_reference": "U4"}],
        [SourceMetadata(source_uuid="U4", source_name="Quiet Herbarium", contacts=[])],
    )
    table = _compose(result)
    assert table.loc[0, "source_name"] == "Quiet Herbarium"
    assert table.loc[0, "record_tally"] == 1


def test_empty_attribution_and_batch():
    table = _compose(SearchResult())
    assert table.empty
    assert list(table.columns) == table_columns(0)


def test_tally_normalizes_padded_and_blank_references():
    records = pd.DataFrame({"source_reference": ["U1 ", " U1", "U1", "  ", None]})
    assert tally_records(records).to_dict() == {"U1": 3}
