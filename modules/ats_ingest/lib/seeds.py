"""
Company sources: seed files (JSON arrays) and the remote get-companies
endpoint, plus the seed utilities used in front of a run (sharding, validation).

Seed entries come in many shapes:
    "airbnb"                                        (slug; ATS from SEED_ATS)
    {"name": "Acme", "greenhouse_company": "acme"}
    {"name": "Acme", "lever_company": "acme"}
    {"name": "Acme", "ats": "ashby", "careers_url": "https://jobs.ashbyhq.com/acme"}
    {"name": "Acme", "careers_url": "https://acme.com/careers"}   (generic)
"""

from __future__ import annotations

import json
import math
import os
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from .config import ConfigError, Settings
from .http_client import HttpClient
from .models import AtsType, Company, infer_ats_from_url
from .normalize import non_empty
from .utils import first_path_segment

# Provider-specific slug keys, tried in order.
_SLUG_KEYS: dict[AtsType, tuple[str, ...]] = {
    AtsType.GREENHOUSE: (
        "greenhouse_company",
        "greenhouse_slug",
        "greenhouse",
        "greenhouseSlug",
        "greenhouseCompany",
        "gh",
        "gh_slug",
    ),
    AtsType.LEVER: ("lever_company", "lever_slug", "lever"),
    AtsType.ASHBY: ("ashby_company", "ashby_slug", "ashby_org"),
}
_GENERIC_SLUG_KEYS = ("slug", "company")
_NAME_KEYS = ("name", "company_name", "companyName")
_URL_KEYS = ("careers_url", "workday_url", "url", "website")


def _first(entry: dict[str, Any], keys: Iterable[str]) -> str | None:
    for k in keys:
        v = non_empty(entry.get(k))
        if v:
            return v
    return None


def company_from_entry(entry: Any, default_ats: AtsType | None = None) -> Company | None:
    """
    Build a Company from one seed entry; None when the entry is unusable
    (not a string/object, or nothing to identify the company by).
    """
    if isinstance(entry, str):
        slug = entry.strip()
        if not slug:
            return None
        return Company(name=slug, ats=default_ats or AtsType.UNKNOWN, slug=slug)
    if not isinstance(entry, dict):
        return None

    careers_url = _first(entry, _URL_KEYS)
    declared = AtsType.parse(entry.get("ats")) if entry.get("ats") else None

    # ATS: declared > provider slug key > workday_url > careers URL host > generic > default
    ats = declared
    provider_slug = None
    for candidate, keys in _SLUG_KEYS.items():
        found = _first(entry, keys)
        if found and (ats is None or ats is candidate):
            ats = ats or candidate
            provider_slug = found
            break
    if ats is None and entry.get("workday_url"):
        ats = AtsType.WORKDAY
    if ats is None:
        ats = infer_ats_from_url(careers_url)
    if ats is None and careers_url:
        ats = AtsType.GENERIC
    if ats is None:
        ats = default_ats or AtsType.UNKNOWN
    if ats is AtsType.WORKDAY and non_empty(entry.get("workday_url")):
        careers_url = non_empty(entry.get("workday_url"))

    # slug: provider key > board URL path > generic keys
    slug = provider_slug
    if not slug and ats in _SLUG_KEYS and infer_ats_from_url(careers_url) is ats:
        slug = first_path_segment(careers_url)
    slug = slug or _first(entry, _GENERIC_SLUG_KEYS)

    name = _first(entry, _NAME_KEYS) or slug
    if not name and not careers_url:
        return None

    return Company(
        name=name or careers_url or "Unknown",
        ats=ats,
        slug=slug,
        careers_url=careers_url,
        domain=non_empty(entry.get("domain")) or None,
        country=non_empty(entry.get("country"), "US"),
    )


def companies_from_entries(entries: Iterable[Any], default_ats: AtsType | None = None) -> list[Company]:
    out = []
    for entry in entries:
        company = company_from_entry(entry, default_ats)
        if company is not None:
            out.append(company)
    return out


def read_seed_file(path: str | os.PathLike[str]) -> list[Any]:
    """Read a seed file; anything but a readable JSON array is a ConfigError."""
    p = Path(path)
    try:
        raw = p.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigError(f"Seed file not found: {p.resolve()}") from e
    except OSError as e:
        raise ConfigError(f"Seed file unreadable: {p}: {e}") from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Seed file is not valid JSON: {p}: {e}") from e
    if not isinstance(data, list):
        raise ConfigError(f"Seed file must be a JSON array: {p}")
    return data


def fetch_remote_companies(url: str, secret_key: str, client: HttpClient) -> list[Any]:
    """GET the company-source endpoint -> its 'companies' list."""
    data = client.get_json(url, headers={"x-scraper-key": secret_key}, label="fetch companies")
    companies = data.get("companies") if isinstance(data, dict) else data
    if not isinstance(companies, list):
        raise ConfigError(f"Company source returned no 'companies' array: {url}")
    return companies


def load_companies(settings: Settings, client: HttpClient) -> list[Company]:
    """
    Companies for this run: seed file when configured, else the remote source.
    A source that yields zero usable companies is a ConfigError.
    """
    if settings.seed_file:
        entries = read_seed_file(settings.seed_file)
        origin = settings.seed_file
    else:
        entries = fetch_remote_companies(settings.companies_url or "", settings.secret_key, client)
        origin = settings.companies_url
    companies = companies_from_entries(entries, settings.default_ats)
    if not companies:
        sample = json.dumps(entries[:3], default=str)[:300]
        raise ConfigError(f"No usable companies in {origin}; first entries: {sample}")
    return companies


# ---- seed utilities -----------------------------------------------------------
def shard_count(total: int, shard_size: int) -> int:
    return math.ceil(total / shard_size) if total else 0


def shard_entries(entries: list[Any], index: int, shard_size: int) -> list[Any]:
    """Entries [index*size, (index+1)*size). Out-of-range index raises ConfigError."""
    if shard_size <= 0:
        raise ConfigError("Shard size must be a positive integer.")
    if index < 0:
        raise ConfigError("Shard index must be a non-negative integer.")
    total = shard_count(len(entries), shard_size)
    if index >= total:
        raise ConfigError(
            f"Shard index {index} out of range. totalShards={total} "
            f"(companies={len(entries)}, shardSize={shard_size})"
        )
    start = index * shard_size
    return entries[start : start + shard_size]


def write_seed_file(path: str | os.PathLike[str], entries: list[Any]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")
    return p


def validate_seed(path: str | os.PathLike[str], default_ats: AtsType | None = None) -> list[Company]:
    """Parse a seed file and require at least one usable company."""
    entries = read_seed_file(path)
    companies = companies_from_entries(entries, default_ats)
    if not companies:
        raise ConfigError(f"Seed file has no usable companies: {path}")
    return companies
