# ats_ingest/scrapers/lever.py
from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from ..models import AtsType, Company, NormalizedJob
from ..normalize import (
    clean_company_name,
    clean_location,
    clean_title,
    iso_or_empty,
    make_job_key,
    non_empty,
    wrap_single,
)
from ..utils import is_http_url
from .base import BaseExtractor, dict_items
from .registry import register

LEVER_API = "https://api.lever.co/v0/postings"
LEVER_BOARD = "https://jobs.lever.co"


@register
class LeverExtractor(BaseExtractor):
    """
    Lever Postings API.

      GET api.lever.co/v0/postings/{slug}?mode=json  -> flat array of postings

    A non-array body is "no jobs", not an error. createdAt/updatedAt are
    epoch milliseconds.
    """

    kind = "lever"
    ats = AtsType.LEVER
    timestamp_fields = ("createdAt", "updatedAt")

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        slug = self.require_slug(company)
        data = self.get_json_or_none(
            f"{LEVER_API}/{quote(slug, safe='')}",
            params={"mode": "json"},
            label=f"fetch lever {slug}",
        )
        return dict_items(data)

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        posting_id = raw.get("id")
        if not posting_id:
            return None
        slug = company.slug or ""

        url = non_empty(raw.get("hostedUrl"))
        if not is_http_url(url):
            url = f"{LEVER_BOARD}/{slug}/{posting_id}"

        cats = raw.get("categories")
        cats = cats if isinstance(cats, dict) else {}

        content = None
        if self.include_content:
            content = raw.get("description") or None

        return NormalizedJob(
            job_key=make_job_key(self.ats.value, slug, posting_id),
            company_name=clean_company_name(company.name, slug),
            company_slug=non_empty(slug, "unknown"),
            title=clean_title(raw.get("text") or raw.get("title")),
            location_name=clean_location(cats.get("location")),
            url=url,
            content_html=content,
            departments=wrap_single(cats.get("department")),
            offices=wrap_single(cats.get("team")),
            posted_at=iso_or_empty(raw.get("createdAt")),
            updated_at=iso_or_empty(raw.get("updatedAt")),
            ingested_at=ingested_at,
            source=self.ats.value,
        )
