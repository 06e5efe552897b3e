# ats_ingest/scrapers/workday.py
from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urljoin

from ..models import AtsType, Company, NormalizedJob
from ..normalize import clean_company_name, clean_location, clean_title, make_job_key, non_empty
from ..utils import is_http_url, now_utc, to_iso
from .base import BaseExtractor, ExtractError, dict_items
from .registry import register

_POSTED_DAYS_RE = re.compile(r"(\d+)\+?\s+days?\s+ago", re.IGNORECASE)


def parse_posted_on(text: Any, now: datetime | None = None) -> datetime | None:
    """
    Workday's relative 'postedOn' labels -> approximate UTC datetime.

      "Posted Today" -> now, "Posted Yesterday" -> now-1d,
      "Posted 3 Days Ago" -> now-3d, "Posted 30+ Days Ago" -> now-30d
    """
    if not isinstance(text, str):
        return None
    s = text.strip().lower()
    now = now or now_utc()
    if s.endswith("today"):
        return now
    if s.endswith("yesterday"):
        return now - timedelta(days=1)
    m = _POSTED_DAYS_RE.search(s)
    if m:
        return now - timedelta(days=int(m.group(1)))
    return None


@register
class WorkdayExtractor(BaseExtractor):
    """
    Workday jobs feed: one GET of the company's careers URL returning
    {jobs: [...]} (CxS replies use {jobPostings: [...]}, accepted too).

    externalPath is site-relative ("/en-US/Site/job/...") and is resolved
    against the careers URL.
    """

    kind = "workday"
    ats = AtsType.WORKDAY

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        url = (company.careers_url or "").strip()
        if not is_http_url(url):
            raise ExtractError(f"{company.name!r} has no Workday careers URL")
        data = self._client.get_json(
            url,
            headers={"Accept": "application/json"},
            timeout=self.fetch_timeout,
            label=f"fetch workday {company.slug or company.name}",
        )
        if not isinstance(data, dict):
            return []
        jobs = data.get("jobs")
        if not isinstance(jobs, list):
            jobs = data.get("jobPostings")
        return dict_items(jobs)

    def posting_time(self, raw: Mapping[str, Any]) -> datetime | None:
        return parse_posted_on(raw.get("postedOn"))

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        path = non_empty(raw.get("externalPath"))
        if not path:
            return None
        url = urljoin(company.careers_url or "", path)
        if not is_http_url(url):
            return None

        bullets = raw.get("bulletFields")
        native_id = non_empty(bullets[0]) if isinstance(bullets, list) and bullets else ""
        slug = company.slug or company.name

        posted = parse_posted_on(raw.get("postedOn"))
        return NormalizedJob(
            job_key=make_job_key(self.ats.value, slug, native_id or path),
            company_name=clean_company_name(company.name, slug),
            company_slug=non_empty(slug, "unknown"),
            title=clean_title(raw.get("title")),
            location_name=clean_location(raw.get("primaryLocation") or raw.get("locationsText"), fallback="Unknown"),
            url=url,
            posted_at=to_iso(posted) if posted else "",
            ingested_at=ingested_at,
            source=self.ats.value,
        )
