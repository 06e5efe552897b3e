# modules/ats_ingest/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings
from .engine import run_once
from .models import AtsType, Company, DeliveryReport, ExtractResult, NormalizedJob, RunReport

# Registers the built-in extractors.
from . import scrapers as _scrapers  # noqa: F401

__all__ = [
    "AtsType",
    "Company",
    "ConfigError",
    "DeliveryReport",
    "ExtractResult",
    "NormalizedJob",
    "RunReport",
    "Settings",
    "run_once",
]
