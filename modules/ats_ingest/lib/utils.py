from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

_WS_RE = re.compile(r"\s+")


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return to_iso(now_utc())


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def collapse_ws(v: Any) -> str:
    """str() the value, trim it and squeeze inner whitespace runs to one space."""
    if v is None:
        return ""
    return _WS_RE.sub(" ", str(v)).strip()


def first_path_segment(url: str | None) -> str | None:
    """
    https://jobs.ashbyhq.com/acme/123 -> "acme"
    Returns None for unparsable URLs or an empty path.
    """
    if not url:
        return None
    try:
        parts = [p for p in urlsplit(str(url).strip()).path.split("/") if p]
    except ValueError:
        return None
    return parts[0] if parts else None


def host_of(url: str | None) -> str:
    if not url:
        return ""
    try:
        return (urlsplit(str(url).strip()).hostname or "").lower()
    except ValueError:
        return ""


def is_http_url(url: str | None) -> bool:
    """True for absolute http(s) URLs with a host."""
    if not url:
        return False
    try:
        p = urlsplit(str(url).strip())
    except ValueError:
        return False
    return p.scheme in ("http", "https") and bool(p.netloc)
