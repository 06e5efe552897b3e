from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .models import AtsType
from .normalize import compute_cutoff
from .utils import truthy


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


ASHBY_APIS = ("posting-api", "graphql")
MAX_BATCH_SIZE = 500

# kwarg name -> environment variable
_ENV_KEYS = {
    "seed_file": "SEED_FILE",
    "companies_url": "COMPANIES_URL",
    "ingest_url": "INGEST_JOBS_URL",
    "secret_key": "SCRAPER_SECRET_KEY",
    "request_delay_ms": "REQUEST_DELAY_MS",
    "max_retries": "MAX_RETRIES",
    "retry_base_delay_ms": "RETRY_BASE_DELAY_MS",
    "hours_back": "HOURS_BACK",
    "batch_size": "BATCH_SIZE",
    "default_ats": "SEED_ATS",
    "ashby_api": "ASHBY_API",
    "include_content": "INCLUDE_CONTENT",
    "page_timeout_s": "PAGE_TIMEOUT_S",
    "fetch_timeout_s": "FETCH_TIMEOUT_S",
    "sink_timeout_s": "SINK_TIMEOUT_S",
}


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class Settings:
    """
    Canonical configuration for one ingest run.

    Built once at process start (Settings.from_env_and_kwargs) and handed to the
    engine, extractors and sink. Nothing below this object reads the environment.
    """

    ingest_url: str
    secret_key: str
    seed_file: str | None = None
    companies_url: str | None = None

    # Pacing / retries
    request_delay_ms: int = 150
    max_retries: int = 3
    retry_base_delay_ms: int = 500

    # Time window (<= 0 disables filtering)
    hours_back: float = 24

    # Delivery
    batch_size: int = 100

    # Extraction
    default_ats: AtsType | None = None
    ashby_api: str = "posting-api"
    include_content: bool = False

    # Timeouts (seconds): page probes < provider APIs < sink POSTs
    page_timeout_s: float = 15.0
    fetch_timeout_s: float = 30.0
    sink_timeout_s: float = 180.0

    def cutoff(self, now: datetime | None = None) -> datetime | None:
        """Oldest timestamp still inside the window, or None when filtering is off."""
        return compute_cutoff(self.hours_back, now)

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(
        cls,
        kwargs: Mapping[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> Settings:
        """
        Build Settings from the environment, with kwargs taking precedence.

        Required: INGEST_JOBS_URL, SCRAPER_SECRET_KEY and one of SEED_FILE /
        COMPANIES_URL. Every missing one is named in the ConfigError.
        """
        env = os.environ if environ is None else environ
        kw = dict(kwargs or {})

        def _get(name: str) -> Any:
            val = kw.get(name)
            if val is None or (isinstance(val, str) and not val.strip()):
                val = env.get(_ENV_KEYS[name])
            if isinstance(val, str):
                val = val.strip()
                return val or None
            return val

        missing = []
        ingest_url = _get("ingest_url")
        secret_key = _get("secret_key")
        seed_file = _get("seed_file")
        companies_url = _get("companies_url")
        if not seed_file and not companies_url:
            missing.append("SEED_FILE (or COMPANIES_URL)")
        if not ingest_url:
            missing.append("INGEST_JOBS_URL")
        if not secret_key:
            missing.append("SCRAPER_SECRET_KEY")
        if missing:
            raise ConfigError(f"Missing env vars: {', '.join(missing)}")

        default_ats_raw = _get("default_ats")
        default_ats = None
        if default_ats_raw:
            default_ats = AtsType.parse(default_ats_raw)
            if default_ats is AtsType.UNKNOWN:
                raise ConfigError(f"SEED_ATS must name a known ATS (got {default_ats_raw!r}).")

        settings = cls(
            ingest_url=str(ingest_url),
            secret_key=str(secret_key),
            seed_file=str(seed_file) if seed_file else None,
            companies_url=str(companies_url) if companies_url else None,
            request_delay_ms=_as_int(_get("request_delay_ms"), 150, "REQUEST_DELAY_MS"),
            max_retries=_as_int(_get("max_retries"), 3, "MAX_RETRIES"),
            retry_base_delay_ms=_as_int(_get("retry_base_delay_ms"), 500, "RETRY_BASE_DELAY_MS"),
            hours_back=_as_float(_get("hours_back"), 24.0, "HOURS_BACK"),
            batch_size=_as_int(_get("batch_size"), 100, "BATCH_SIZE"),
            default_ats=default_ats,
            ashby_api=str(_get("ashby_api") or "posting-api").lower(),
            include_content=truthy(_get("include_content")),
            page_timeout_s=_as_float(_get("page_timeout_s"), 15.0, "PAGE_TIMEOUT_S"),
            fetch_timeout_s=_as_float(_get("fetch_timeout_s"), 30.0, "FETCH_TIMEOUT_S"),
            sink_timeout_s=_as_float(_get("sink_timeout_s"), 180.0, "SINK_TIMEOUT_S"),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _as_int(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer (got {value!r}).") from e


def _as_float(value: Any, default: float, name: str) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number (got {value!r}).") from e


def _validate_settings(s: Settings) -> None:
    if not s.ingest_url.lower().startswith(("http://", "https://")):
        raise ConfigError("INGEST_JOBS_URL must be an http(s) URL.")
    if s.companies_url and not s.companies_url.lower().startswith(("http://", "https://")):
        raise ConfigError("COMPANIES_URL must be an http(s) URL.")
    if s.request_delay_ms < 0:
        raise ConfigError("REQUEST_DELAY_MS must be >= 0.")
    if s.max_retries < 1:
        raise ConfigError("MAX_RETRIES must be >= 1.")
    if s.retry_base_delay_ms < 0:
        raise ConfigError("RETRY_BASE_DELAY_MS must be >= 0.")
    if not 1 <= s.batch_size <= MAX_BATCH_SIZE:
        raise ConfigError(f"BATCH_SIZE must be between 1 and {MAX_BATCH_SIZE}.")
    if s.ashby_api not in ASHBY_APIS:
        raise ConfigError(f"ASHBY_API must be one of {ASHBY_APIS} (got {s.ashby_api!r}).")
    for name in ("page_timeout_s", "fetch_timeout_s", "sink_timeout_s"):
        if getattr(s, name) <= 0:
            raise ConfigError(f"{_ENV_KEYS[name]} must be > 0.")
