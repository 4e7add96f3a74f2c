from __future__ import annotations

import pytest

from specimen_contacts.config import Settings
from specimen_contacts.ingest.models import SearchResult


def _records():
    rows = []
    for idx in range(3):
        rows.append({"uuid": f"r1-{idx}", "scientificname": "quercus alba", "source_reference": "U1"})
    rows.append({"uuid": "r3-0", "scientificname": "acer rubrum", "source_reference": "U3"})
    return rows


ATTRIBUTION = [
    {
        "uuid": "U1",
        "name": "Herbarium One",
        "url": "https://example.org/u1",
        "contacts": [
            {"first_name": "Ada", "last_name": "Moss", "role": "curator", "email": "ada@example.org"},
            {"first_name": "Ada", "last_name": "Moss", "role": "curator", "email": "ada@example.org"},
            {"first_name": "Ben", "role": "collections manager", "email": ""},
            {"last_name": "Fern", "role": None, "email": "fern@example.org"},
        ],
    },
    {
        "uuid": "U3",
        "name": "Museum Three",
        "url": "https://example.org/u3",
        "contacts": [{"first_name": "Cy", "last_name": "Lichen", "role": "data manager", "email": "cy@example.org"}],
    },
    {
        "uuid": "U9",
        "name": "Outside The Batch",
        "url": "https://example.org/u9",
        "contacts": [{"first_name": "Di", "email": "di@example.org"}],
    },
]


@pytest.fixture
def attribution_entries():
    return [dict(entry) for entry in ATTRIBUTION]


@pytest.fixture
def search_result(attribution_entries):
    return SearchResult.from_parts(_records(), attribution_entries)


@pytest.fixture
def settings():
    return Settings(
        contact_slot_cap=10,
        export_filename_template="records_{source_uuid}.csv",
        contact_table_filename="source_contacts.csv",
        include_undocumented_sources=True,
        export_workers=1,
    )
