from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from typing import Any

import requests

from ..config import Settings
from ..http_client import HttpClient
from ..models import AtsType, Company, ExtractResult, NormalizedJob
from ..normalize import filter_recent, first_timestamp
from ..utils import now_iso

LOG = logging.getLogger(__name__)


class ExtractError(Exception):
    """Base exception for extraction failures (bad company record, bad payload shape)."""


class BaseExtractor(ABC):
    """
    Abstract extractor interface: one instance per (run, ATS kind).

    Contract:
      - extract(company) returns the company's NormalizedJob list and NEVER raises;
        any failure degrades to [] with the cause logged.
      - run(company) is the same but returns an ExtractResult carrying counts/errors.
      - Subclasses implement fetch() (raw provider postings) and map_posting().
      - Do NOT deliver, print, or mutate global state.
    """

    # Concrete subclasses MUST set this to a stable registry key, e.g. "greenhouse", "ashby-graphql"
    kind: str = ""
    ats: AtsType = AtsType.UNKNOWN
    # Provider fields holding the posting time, in fallback order.
    timestamp_fields: tuple[str, ...] = ()

    def __init__(
        self,
        client: HttpClient,
        settings: Settings | None = None,
        *,
        cutoff: datetime | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self.cutoff = cutoff

    # ---- settings shortcuts ----
    @property
    def include_content(self) -> bool:
        return bool(self._settings and self._settings.include_content)

    @property
    def fetch_timeout(self) -> float | None:
        return self._settings.fetch_timeout_s if self._settings else None

    @property
    def page_timeout(self) -> float | None:
        return self._settings.page_timeout_s if self._settings else None

    # ---- contract ----
    def run(self, company: Company) -> ExtractResult:
        result = ExtractResult(company=company)
        try:
            raw = list(self.fetch(company))
            result.fetched = len(raw)
            window = filter_recent(raw, self.cutoff, timestamp_of=self.posting_time)
            ingested_at = now_iso()
            jobs = []
            for posting in window:
                job = self.map_posting(company, posting, ingested_at)
                if job is not None:
                    jobs.append(job)
            result.jobs = jobs
        except Exception as e:
            result.jobs = []
            result.errors.append(f"{company.label}: {e!r}")
            LOG.warning("%s extraction failed: %s", company.label, e)
        return result

    def extract(self, company: Company) -> list[NormalizedJob]:
        return self.run(company).jobs

    @abstractmethod
    def fetch(self, company: Company) -> list[dict[str, Any]]:
        """Return the provider's raw postings for `company` (may raise)."""
        raise NotImplementedError

    @abstractmethod
    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        """Convert one raw posting; None drops it."""
        raise NotImplementedError

    def posting_time(self, raw: Mapping[str, Any]) -> datetime | None:
        return first_timestamp(raw, self.timestamp_fields)

    # ---- helpers for subclasses ----
    def require_slug(self, company: Company) -> str:
        slug = (company.slug or "").strip()
        if not slug:
            raise ExtractError(f"{company.name!r} has no {self.ats.value} slug")
        return slug

    def get_json_or_none(self, url: str, *, label: str, **kwargs: Any) -> Any:
        """GET JSON; a 404 means 'not on this ATS' and returns None instead of raising."""
        kwargs.setdefault("timeout", self.fetch_timeout)
        try:
            return self._client.get_json(url, label=label, **kwargs)
        except requests.HTTPError as e:
            if getattr(e.response, "status_code", None) == 404:
                LOG.info("%s: not found (404), skipping", label)
                return None
            raise


def dict_items(value: Any) -> list[dict[str, Any]]:
    """Keep only the dict entries of a list payload; anything else is []."""
    if not isinstance(value, list):
        return []
    return [x for x in value if isinstance(x, dict)]
