from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..config import Settings
from ..http_client import HttpClient
from ..models import AtsType, Company
from .base import BaseExtractor

LOG = logging.getLogger(__name__)

# Global in-process registry: kind -> extractor class
_REGISTRY: dict[str, type[BaseExtractor]] = {}


def register(cls: type[BaseExtractor]) -> type[BaseExtractor]:
    """
    Class decorator or direct call to register an extractor class.
    Requires cls.kind to be a non-empty string.
    """
    kind = getattr(cls, "kind", "") or ""
    if not isinstance(kind, str) or not kind.strip():
        raise ValueError(f"Cannot register extractor {cls!r}: missing/empty 'kind'.")
    key = kind.strip().lower()
    if key in _REGISTRY and _REGISTRY[key] is not cls:
        # Allow idempotent re-registers of the same class; otherwise reject.
        raise ValueError(f"Extractor kind {key!r} already registered to {_REGISTRY[key]!r}.")
    _REGISTRY[key] = cls
    return cls


def get(kind: str) -> type[BaseExtractor]:
    """
    Look up an extractor class by kind (case-insensitive).
    Raises KeyError if not found.
    """
    key = (kind or "").strip().lower()
    if key not in _REGISTRY:
        raise KeyError(f"No extractor registered for kind {kind!r}.")
    return _REGISTRY[key]


def all_kinds() -> dict[str, type[BaseExtractor]]:
    """
    Return a shallow copy of the registry (useful for debugging/tests).
    """
    return dict(_REGISTRY)


def kind_for(ats: AtsType, settings: Settings | None = None) -> str:
    """Registry key for an ATS variant; Ashby picks its API flavour from settings."""
    if ats is AtsType.ASHBY:
        api = settings.ashby_api if settings else "posting-api"
        return f"ashby-{api}"
    return ats.value


def route(
    company: Company,
    client: HttpClient,
    settings: Settings | None = None,
    *,
    cutoff: datetime | None = None,
    get_extractor: Callable[[str], type[BaseExtractor]] | None = None,
) -> BaseExtractor:
    """
    Pick the extractor for `company` purely from company.ats.

    Unknown or unregistered kinds get the no-op extractor (zero jobs, one
    warning); routing never raises for bad company data.
    """
    lookup = get_extractor or get
    kind = kind_for(company.ats, settings)
    try:
        cls = lookup(kind)
    except KeyError:
        LOG.warning("%s: no extractor for ATS %r; producing no jobs", company.name, kind)
        cls = get(AtsType.UNKNOWN.value)
    return cls(client, settings, cutoff=cutoff)
