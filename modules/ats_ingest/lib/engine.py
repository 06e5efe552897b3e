"""
Engine for one ingest run: load companies, extract each one sequentially,
dedupe across the run, deliver in batches, report.

Features:
  - Sequential company processing with a polite inter-company delay
  - Per-company failures degrade to zero jobs (never abort the run)
  - Per-batch delivery failures are counted (never abort delivery)
  - Dependency injection for testability (`client`, `sink`, `get_extractor`, `sleep`)
"""

from __future__ import annotations

import time
from collections.abc import Callable

from . import logging_bridge
from .config import Settings
from .delivery import JobSink, Sink, deliver
from .http_client import HttpClient
from .models import Company, NormalizedJob, RunReport
from .normalize import dedupe
from .scrapers.base import BaseExtractor
from .scrapers.registry import get as _default_get_extractor
from .scrapers.registry import route
from .seeds import load_companies


# =============================================================================
# EXTRACTION
# =============================================================================
def extract_all(
    companies: list[Company],
    settings: Settings,
    client: HttpClient,
    report: RunReport,
    *,
    get_extractor: Callable[[str], type[BaseExtractor]] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[NormalizedJob]:
    """Run every company through its extractor, in seed order; returns all jobs (pre-dedupe)."""
    cutoff = settings.cutoff()
    delay_s = settings.request_delay_ms / 1000.0
    accumulated: list[NormalizedJob] = []

    for idx, company in enumerate(companies):
        if idx and delay_s > 0:
            sleep(delay_s)

        extractor = route(company, client, settings, cutoff=cutoff, get_extractor=get_extractor or _default_get_extractor)
        result = extractor.run(company)

        report.fetched += result.fetched
        report.kept += len(result.jobs)
        if result.errors:
            report.company_errors += 1
        elif not result.jobs:
            report.skipped += 1
        accumulated.extend(result.jobs)

        logging_bridge.activity({
            "component": "ats_ingest.engine",
            "op": "company",
            "index": f"{idx + 1}/{len(companies)}",
            "company": company.label,
            "fetched": result.fetched,
            "kept": len(result.jobs),
            "errors": result.errors,
        })

    return accumulated


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    *,
    client: HttpClient | None = None,
    sink: Sink | None = None,
    companies: list[Company] | None = None,
    get_extractor: Callable[[str], type[BaseExtractor]] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunReport:
    """
    Run one complete cycle: companies -> extract -> dedupe -> deliver.

    Configuration errors (bad seed file, unreachable company source) propagate
    as ConfigError; everything after that is contained and counted.
    """
    start_ns = time.perf_counter_ns()
    owns_client = client is None
    client = client or HttpClient.from_settings(settings)

    try:
        if companies is None:
            companies = load_companies(settings, client)
        report = RunReport(companies=len(companies))

        cutoff = settings.cutoff()
        logging_bridge.activity({
            "component": "ats_ingest.engine",
            "op": "start",
            "companies": len(companies),
            "cutoff": cutoff.isoformat() if cutoff else None,
            "batch_size": settings.batch_size,
        })

        # ---------------------------------------------------------------------
        # EXTRACT (sequential) + DEDUPE (run-wide, last wins)
        # ---------------------------------------------------------------------
        accumulated = extract_all(companies, settings, client, report, get_extractor=get_extractor, sleep=sleep)
        unique = dedupe(accumulated)
        report.unique = len(unique)

        # ---------------------------------------------------------------------
        # DELIVER
        # ---------------------------------------------------------------------
        sink = sink or JobSink.from_settings(settings, client)
        report.delivery = deliver(unique, settings.batch_size, sink)
    finally:
        if owns_client:
            client.close()

    logging_bridge.activity({
        "component": "ats_ingest.engine",
        "op": "summary",
        **report.as_dict(),
        "total_us": int((time.perf_counter_ns() - start_ns) // 1000),
    })
    return report
