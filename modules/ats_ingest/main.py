from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity
from .lib.models import RunReport


def run(**kwargs: Any) -> RunReport:
    """
    Entry point for the 'ats_ingest' module.

    Accepts kwargs (from the CLI), each overriding its env var:
      seed_file: str            (SEED_FILE)
      companies_url: str        (COMPANIES_URL)
      ingest_url: str           (INGEST_JOBS_URL)
      secret_key: str           (SCRAPER_SECRET_KEY)
      hours_back: int = 24      (HOURS_BACK; 0 disables the time filter)
      batch_size: int = 100     (BATCH_SIZE)
      request_delay_ms: int = 150
      ashby_api: str = "posting-api"

    Returns the RunReport; callers decide the exit code from report.ok.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "ats_ingest.main",
        "op": "start",
        "source": settings.seed_file or settings.companies_url,
        "hours_back": settings.hours_back,
        "batch_size": settings.batch_size,
        "ashby_api": settings.ashby_api,
    })

    return _run_engine(settings)
