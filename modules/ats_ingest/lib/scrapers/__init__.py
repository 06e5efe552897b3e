# ats_ingest/scrapers/__init__.py
from __future__ import annotations

# Importing the provider modules registers their extractors.
from . import ashby, generic, greenhouse, lever, unknown, workday
from .base import BaseExtractor, ExtractError
from .registry import all_kinds, get, kind_for, register, route

__all__ = [
    "BaseExtractor",
    "ExtractError",
    "all_kinds",
    "ashby",
    "generic",
    "get",
    "greenhouse",
    "kind_for",
    "lever",
    "register",
    "route",
    "unknown",
    "workday",
]
