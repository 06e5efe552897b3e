# ats_ingest/scrapers/greenhouse.py
from __future__ import annotations

from collections.abc import Mapping
from html import unescape
from typing import Any
from urllib.parse import quote

from ..models import AtsType, Company, NormalizedJob
from ..normalize import (
    clean_company_name,
    clean_location,
    clean_title,
    iso_or_empty,
    json_list_field,
    make_job_key,
    non_empty,
)
from ..utils import is_http_url
from .base import BaseExtractor, dict_items
from .registry import register

GREENHOUSE_API = "https://boards-api.greenhouse.io/v1/boards"
GREENHOUSE_BOARD = "https://boards.greenhouse.io"


@register
class GreenhouseExtractor(BaseExtractor):
    """
    Greenhouse Job Board API (public, no auth, no pagination).

      GET boards-api.greenhouse.io/v1/boards/{slug}/jobs?content=true|false

    departments/offices keep Greenhouse's object arrays as JSON text; a missing
    key becomes "" (never null).
    """

    kind = "greenhouse"
    ats = AtsType.GREENHOUSE
    timestamp_fields = ("updated_at", "created_at")

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        slug = self.require_slug(company)
        data = self.get_json_or_none(
            f"{GREENHOUSE_API}/{quote(slug, safe='')}/jobs",
            params={"content": "true" if self.include_content else "false"},
            label=f"fetch greenhouse {slug}",
        )
        if not isinstance(data, dict):
            return []
        return dict_items(data.get("jobs"))

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        job_id = raw.get("id")
        if job_id is None:
            return None
        slug = company.slug or ""

        url = non_empty(raw.get("absolute_url"))
        if not is_http_url(url):
            url = f"{GREENHOUSE_BOARD}/{slug}/jobs/{job_id}"

        location = raw.get("location")
        location_name = location.get("name") if isinstance(location, dict) else None

        content = raw.get("content") if self.include_content else None
        return NormalizedJob(
            job_key=make_job_key(self.ats.value, slug, job_id),
            company_name=clean_company_name(company.name, slug),
            company_slug=non_empty(slug, "unknown"),
            title=clean_title(raw.get("title")),
            location_name=clean_location(location_name),
            url=url,
            # The API returns the body HTML-escaped.
            content_html=unescape(content) if isinstance(content, str) and content else None,
            departments=json_list_field(raw.get("departments")),
            offices=json_list_field(raw.get("offices")),
            posted_at=iso_or_empty(raw.get("created_at") or raw.get("first_published")),
            updated_at=iso_or_empty(raw.get("updated_at")),
            ingested_at=ingested_at,
            source=self.ats.value,
        )
