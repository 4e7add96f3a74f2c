"""Flattening and regrouping of per-source contact lists."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pandas as pd

from specimen_contacts.ingest.models import SourceMetadata

SOURCE_FIELDS: List[str] = ["source_uuid", "source_name", "source_url"]
CONTACT_FIELDS: List[str] = ["contact_name", "contact_role", "contact_email"]
CONTACT_ROW_COLUMNS: List[str] = SOURCE_FIELDS + CONTACT_FIELDS


@dataclass
class ContactSlot:
    """One numbered contact position within a source."""

    index: int
    name: str
    role: Optional[str]
    email: str

    def columns(self) -> Dict[str, object]:
        return {
            f"contact_name_{self.index}": self.name,
            f"contact_role_{self.index}": self.role,
            f"contact_email_{self.index}": self.email,
        }


@dataclass
class AggregatedSource:
    """All retained contacts of one source, pivoted into numbered slots."""

    source_uuid: str
    source_name: Optional[str]
    source_url: Optional[str]
    contacts: List[ContactSlot] = field(default_factory=list)
    overflow: List[ContactSlot] = field(default_factory=list)

    @property
    def contact_count(self) -> int:
        return len(self.contacts) + len(self.overflow)

    def to_row(self) -> Dict[str, object]:
        row: Dict[str, object] = {
            "source_uuid": self.source_uuid,
            "source_name": self.source_name,
            "source_url": self.source_url,
        }
        for slot in [*self.contacts, *self.overflow]:
            row.update(slot.columns())
        return row


def flatten_contacts(attribution: Iterable[SourceMetadata]) -> pd.DataFrame:
    """Expand attribution into one row per (source, contact), keeping only contacts with an email.

    Names are composed before duplicates are dropped so that nameless copies of the
    same contact collapse into one row. The first occurrence wins; contact order
    is otherwise preserved.
    """
    rows: List[Dict[str, Optional[str]]] = []
    for source in attribution:
        for contact in source.contacts:
            if not contact.has_email:
                continue
            rows.append(
                {
                    "source_uuid": source.source_uuid,
                    "source_name": source.source_name,
                    "source_url": source.source_url,
                    "contact_name": contact.contact_name,
                    "contact_role": contact.role,
                    "contact_email": (contact.email or "").strip(),
                }
            )

    frame = pd.DataFrame(rows, columns=CONTACT_ROW_COLUMNS)
    return frame.drop_duplicates(subset=["source_uuid", *CONTACT_FIELDS], keep="first").reset_index(drop=True)


def aggregate_contacts(rows: pd.DataFrame, cap: int = 10) -> List[AggregatedSource]:
    """Group flattened contact rows by source and number them 1..K in row order.

    The first ``cap`` contacts fill the numbered slots; any further contacts are kept
    in ``overflow`` with their indices continuing past the cap. Sources without rows
    do not appear.
    """
    if cap < 1:
        raise ValueError("cap must be at least 1")

    aggregated: List[AggregatedSource] = []
    for source_uuid, group in rows.groupby("source_uuid", sort=False):
        first = group.iloc[0]
        source = AggregatedSource(
            source_uuid=str(source_uuid),
            source_name=first["source_name"],
            source_url=first["source_url"],
        )
        for position, contact in enumerate(group.itertuples(index=False), start=1):
            slot = ContactSlot(
                index=position,
                name=contact.contact_name,
                role=contact.contact_role,
                email=contact.contact_email,
            )
            if position <= cap:
                source.contacts.append(slot)
            else:
                source.overflow.append(slot)
        aggregated.append(source)
    return aggregated
