"""
Helpers shared by every extractor to build NormalizedJob records, plus the
run-wide time-window filter and deduplication.

Per-provider defaults for absent fields (location fallbacks, empty-string
departments) are set by each extractor, not here.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

from .models import NormalizedJob
from .utils import collapse_ws, now_utc, to_iso

MAX_TITLE_LEN = 140

# Epoch values above this are milliseconds (1e11 s is in the year 5138).
_EPOCH_MS_THRESHOLD = 10**11


# ---- keys -------------------------------------------------------------------
def make_job_key(source: str, slug: str, native_id: Any) -> str:
    """Stable dedupe key: the same provider posting always maps to the same key."""
    return f"{source}:{slug}:{native_id}"


def url_fingerprint(url: str) -> str:
    """Short stable id for postings that only have a URL."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]


# ---- field cleaning ---------------------------------------------------------
def non_empty(v: Any, fallback: str = "") -> str:
    s = collapse_ws(v)
    return s if s else fallback


def clean_title(v: Any) -> str:
    s = non_empty(v, "Unknown Title")
    return s[:MAX_TITLE_LEN]


def clean_company_name(name: Any, slug: Any = None) -> str:
    return non_empty(name) or non_empty(slug, "Unknown Company")


def clean_location(v: Any, fallback: str = "Unspecified") -> str:
    return non_empty(v, fallback)


def json_list_field(value: Any) -> str:
    """
    JSON text for list-ish provider fields, "" when the field is absent.
    A present-but-empty list still encodes as "[]".
    """
    if value is None:
        return ""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def wrap_single(value: Any) -> str:
    """JSON-encode a single optional value as a one-element list ("" when blank)."""
    s = collapse_ws(value)
    return json_list_field([s]) if s else ""


# ---- timestamps -------------------------------------------------------------
def compute_cutoff(hours_back: float, now: datetime | None = None) -> datetime | None:
    """Oldest timestamp still inside the window, or None when hours_back <= 0."""
    if hours_back <= 0:
        return None
    return (now or now_utc()) - timedelta(hours=hours_back)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse ISO-8601 strings ('Z', offsets, naive=UTC) and epoch numbers
    (seconds or milliseconds) into aware UTC datetimes. None if unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        secs = value / 1000.0 if abs(value) > _EPOCH_MS_THRESHOLD else float(value)
        try:
            return datetime.fromtimestamp(secs, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    s = str(value).strip()
    if not s:
        return None
    if s.isdigit():
        return parse_timestamp(int(s))
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt.astimezone(timezone.utc)


def iso_or_empty(value: Any) -> str:
    dt = parse_timestamp(value)
    if dt is not None:
        return to_iso(dt)
    return non_empty(value) if isinstance(value, str) else ""


def first_timestamp(raw: Mapping[str, Any], fields: Sequence[str]) -> datetime | None:
    """First parseable timestamp among `fields`, in order."""
    for name in fields:
        dt = parse_timestamp(raw.get(name))
        if dt is not None:
            return dt
    return None


def filter_recent(
    postings: Iterable[Mapping[str, Any]],
    cutoff: datetime | None,
    fields: Sequence[str] = (),
    *,
    timestamp_of: Callable[[Mapping[str, Any]], datetime | None] | None = None,
) -> list[Mapping[str, Any]]:
    """
    Keep postings at or after `cutoff`.

    The posting time is the first parseable value among `fields`, unless a
    `timestamp_of` function is given. No cutoff: everything passes. With a
    cutoff, postings without a parseable timestamp are dropped.
    """
    items = list(postings)
    if cutoff is None:
        return items
    kept = []
    for raw in items:
        ts = timestamp_of(raw) if timestamp_of else first_timestamp(raw, fields)
        if ts is not None and ts >= cutoff:
            kept.append(raw)
    return kept


# ---- dedupe -----------------------------------------------------------------
def dedupe(
    jobs: Iterable[NormalizedJob],
    key: Callable[[NormalizedJob], str] = lambda j: j.job_key,
) -> list[NormalizedJob]:
    """
    Collapse jobs sharing a key. Last seen wins; output order is not meaningful.
    """
    by_key: dict[str, NormalizedJob] = {}
    for job in jobs:
        by_key[key(job)] = job
    return list(by_key.values())
