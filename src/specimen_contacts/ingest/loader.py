"""Loading search results, record batches and attribution from disk."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from .models import SOURCE_REFERENCE, SearchResult, SourceMetadata, normalize_source_id, parse_attribution

SOURCE_ALIASES: List[str] = ["source_reference", "recordset", "idigbio:recordset", "recordset_uuid"]


class SearchResultError(ValueError):
    """Raised when a search result file cannot be interpreted."""


def _match_column(columns: List[str], candidates: List[str]) -> Optional[str]:
    lower = {c.lower(): c for c in columns}
    for alias in candidates:
        if alias.lower() in lower:
            return lower[alias.lower()]
    return None


def _flatten_item(item: Dict[str, Any]) -> Dict[str, Any]:
    # iDigBio items split fields into raw `data` and normalized `indexTerms`.
    if "indexTerms" in item or "data" in item:
        flat: Dict[str, Any] = dict(item.get("data") or {})
        flat.update(item.get("indexTerms") or {})
        if "uuid" in item:
            flat.setdefault("uuid", item["uuid"])
    else:
        flat = dict(item)

    if SOURCE_REFERENCE not in flat:
        column = _match_column(list(flat), SOURCE_ALIASES)
        if column is not None:
            flat[SOURCE_REFERENCE] = flat.pop(column)
    return flat


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise SearchResultError(f"{path} is not valid JSON: {exc}") from exc


def load_attribution(path: Path) -> Tuple[List[SourceMetadata], List[str]]:
    payload = _read_json(path)
    if isinstance(payload, dict):
        payload = payload.get("attribution", [])
    if not isinstance(payload, list):
        raise SearchResultError(f"{path} does not contain a list of attribution entries")
    return parse_attribution(payload)


def load_records_csv(path: Path) -> Tuple[pd.DataFrame, List[str]]:
    """Load a record batch from CSV, normalizing the source reference column."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    issues: List[str] = []

    column = _match_column(df.columns.tolist(), SOURCE_ALIASES)
    if column is None:
        raise SearchResultError(f"{path} has no source reference column (tried {', '.join(SOURCE_ALIASES)})")
    if column != SOURCE_REFERENCE:
        df = df.rename(columns={column: SOURCE_REFERENCE})

    missing = df[SOURCE_REFERENCE].str.strip() == ""
    for idx in df.index[missing]:
        issues.append(f"Row {idx} missing source reference; skipped")
    df = df.loc[~missing].reset_index(drop=True)

    logging.info("Loaded %d records from %s", len(df), path)
    return df, issues


def load_search_result(
    path: Path,
    records_csv: Optional[Path] = None,
    attribution_path: Optional[Path] = None,
) -> SearchResult:
    """Load a saved search response; records or attribution may come from separate files."""
    payload: Dict[str, Any] = {}
    if path.suffix.lower() == ".json":
        raw = _read_json(path)
        if not isinstance(raw, dict):
            raise SearchResultError(f"{path} must hold an object with items and attribution")
        payload = raw
    elif records_csv is None:
        records_csv = path

    issues: List[str] = []

    if records_csv is not None:
        frame, record_issues = load_records_csv(records_csv)
        records = frame.to_dict(orient="records")
        issues.extend(record_issues)
    else:
        items = payload.get("items", payload.get("records", []))
        records = []
        for idx, item in enumerate(items):
            flat = _flatten_item(item)
            if normalize_source_id(flat.get(SOURCE_REFERENCE)) is None:
                issues.append(f"Item {idx} missing source reference; skipped")
                continue
            records.append(flat)

    if attribution_path is not None:
        attribution, attribution_issues = load_attribution(attribution_path)
    else:
        attribution, attribution_issues = parse_attribution(payload.get("attribution") or [])
    issues.extend(attribution_issues)

    for issue in issues:
        logging.warning(issue)

    return SearchResult(records=records, attribution=attribution, issues=issues)
