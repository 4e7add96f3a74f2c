"""Data models for search results and their attribution metadata."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

SOURCE_REFERENCE = "source_reference"


def normalize_source_id(value: Any) -> Optional[str]:
    """Canonical form of a source identifier: stripped text, or None when blank or missing."""
    if value is None:
        return None
    if not isinstance(value, str) and pd.api.types.is_scalar(value) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


class Contact(BaseModel):
    """A person listed against a contributing source."""

    model_config = ConfigDict(extra="ignore")

    role: Optional[str] = None
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def contact_name(self) -> str:
        parts = [(self.first_name or "").strip(), (self.last_name or "").strip()]
        return " ".join(part for part in parts if part)

    @property
    def has_email(self) -> bool:
        return bool((self.email or "").strip())


class SourceMetadata(BaseModel):
    """Attribution entry for one contributing source (recordset)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    source_uuid: str = Field(..., validation_alias=AliasChoices("source_uuid", "uuid"))
    source_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("source_name", "name"))
    source_url: Optional[str] = Field(default=None, validation_alias=AliasChoices("source_url", "url"))
    contacts: List[Contact] = Field(default_factory=list)

    @field_validator("source_uuid", mode="before")
    @classmethod
    def _strip_uuid(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


def parse_attribution(
    entries: Iterable[Union[SourceMetadata, Dict[str, Any]]],
) -> Tuple[List[SourceMetadata], List[str]]:
    """Validate attribution entries, skipping malformed ones, blank uuids and repeated uuids."""
    sources: List[SourceMetadata] = []
    issues: List[str] = []
    seen = set()
    for idx, entry in enumerate(entries):
        if isinstance(entry, SourceMetadata):
            source = entry
        else:
            try:
                source = SourceMetadata.model_validate(entry)
            except ValidationError as exc:
                issues.append(f"Attribution entry {idx} is malformed; skipped ({exc.error_count()} errors)")
                continue
        source_uuid = normalize_source_id(source.source_uuid)
        if source_uuid is None:
            issues.append(f"Attribution entry {idx} has an empty uuid; skipped")
            continue
        if source_uuid in seen:
            issues.append(f"Attribution entry {idx} repeats source {source_uuid}; skipped")
            continue
        seen.add(source_uuid)
        if source_uuid != source.source_uuid:
            source = source.model_copy(update={"source_uuid": source_uuid})
        sources.append(source)
    return sources, issues


class SearchResult(BaseModel):
    """A record batch paired with the attribution returned by the same search."""

    records: List[Dict[str, Any]] = Field(default_factory=list)
    attribution: List[SourceMetadata] = Field(default_factory=list)
    issues: List[str] = Field(default_factory=list)

    @classmethod
    def from_parts(
        cls,
        records: Union[pd.DataFrame, Iterable[Dict[str, Any]]],
        attribution: Iterable[Union[SourceMetadata, Dict[str, Any]]],
    ) -> "SearchResult":
        if isinstance(records, pd.DataFrame):
            rows = records.to_dict(orient="records")
        else:
            rows = [dict(row) for row in records]
        entries, issues = parse_attribution(attribution)
        for issue in issues:
            logging.warning(issue)
        return cls(records=rows, attribution=entries, issues=issues)

    def records_frame(self) -> pd.DataFrame:
        """Return the record batch as a DataFrame that always has a source_reference column."""
        frame = pd.DataFrame(self.records)
        if SOURCE_REFERENCE not in frame.columns:
            frame[SOURCE_REFERENCE] = pd.Series(dtype="object")
        return frame
