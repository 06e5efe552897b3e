# ats_ingest/scrapers/ashby.py
"""
Ashby job boards, two flavours:

  - AshbyGraphqlExtractor: the board's own non-user GraphQL endpoint, cursor
    paginated (first=200, after=endCursor), capped at MAX_PAGES pages.
  - AshbyPostingApiExtractor: the public posting API, one flat jobs[] list.

The org is the company slug, else the first path segment of its careers URL
(https://jobs.ashbyhq.com/<org>).
"""

from __future__ import annotations

import logging
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
from ..utils import first_path_segment, is_http_url
from .base import BaseExtractor, ExtractError, dict_items
from .registry import register

LOG = logging.getLogger(__name__)

ASHBY_GRAPHQL_URL = "https://jobs.ashbyhq.com/api/non-user-graphql"
ASHBY_POSTING_API = "https://api.ashbyhq.com/posting-api/job-board"
ASHBY_BOARD = "https://jobs.ashbyhq.com"

PAGE_SIZE = 200
# Bounds the cost of a board that keeps reporting hasNextPage.
MAX_PAGES = 25

JOB_POSTINGS_QUERY = """
query JobBoardPostings($organizationHostedJobsPageName: String!, $first: Int!, $after: String) {
  jobBoard: jobBoardWithTeams(organizationHostedJobsPageName: $organizationHostedJobsPageName) {
    jobPostings(first: $first, after: $after) {
      pageInfo { hasNextPage endCursor }
      nodes {
        id
        title
        locationName
        employmentType
        hostedUrl
        team { id name }
        createdAt
        updatedAt
      }
    }
  }
}
""".strip()


def ashby_org(company: Company) -> str:
    org = (company.slug or "").strip() or (first_path_segment(company.careers_url) or "")
    if not org:
        raise ExtractError(f"{company.name!r} has no Ashby org (slug or careers URL)")
    return org


def _page_of(data: Any) -> tuple[list[dict[str, Any]], bool, str | None]:
    """
    Pull (postings, has_next, end_cursor) out of a GraphQL reply.

    Accepts jobPostings as {nodes: [...]}, {edges: [{node}]}, or a bare list
    (boards that ignore pagination come back as one list).
    """
    if not isinstance(data, dict):
        return [], False, None
    if data.get("errors") and not data.get("data"):
        raise ExtractError(f"Ashby GraphQL errors: {data['errors']!r}"[:300])

    board = (data.get("data") or {}).get("jobBoard")
    if not isinstance(board, dict):
        return [], False, None

    postings = board.get("jobPostings")
    if isinstance(postings, list):
        return dict_items(postings), False, None
    if not isinstance(postings, dict):
        return [], False, None

    if isinstance(postings.get("nodes"), list):
        items = dict_items(postings["nodes"])
    else:
        items = [e["node"] for e in dict_items(postings.get("edges")) if isinstance(e.get("node"), dict)]

    info = postings.get("pageInfo") or {}
    has_next = bool(info.get("hasNextPage"))
    cursor = info.get("endCursor") or None
    return items, has_next, cursor


@register
class AshbyGraphqlExtractor(BaseExtractor):
    """POST jobs.ashbyhq.com/api/non-user-graphql, following pageInfo cursors."""

    kind = "ashby-graphql"
    ats = AtsType.ASHBY
    timestamp_fields = ("updatedAt", "createdAt")

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        org = ashby_org(company)
        out: list[dict[str, Any]] = []
        cursor: str | None = None

        for page in range(1, MAX_PAGES + 1):
            payload = {
                "operationName": "JobBoardPostings",
                "variables": {
                    "organizationHostedJobsPageName": org,
                    "first": PAGE_SIZE,
                    "after": cursor,
                },
                "query": JOB_POSTINGS_QUERY,
            }
            data = self._client.post_json(
                ASHBY_GRAPHQL_URL,
                payload,
                params={"op": "JobBoardPostings"},
                timeout=self.fetch_timeout,
                label=f"fetch ashby graphql {org} page {page}",
            )
            items, has_next, next_cursor = _page_of(data)
            out.extend(items)

            if not has_next or not next_cursor or next_cursor == cursor:
                break
            cursor = next_cursor
        else:
            LOG.warning("ashby %s: stopped after %d pages (page cap)", org, MAX_PAGES)

        return out

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        posting_id = raw.get("id")
        if not posting_id:
            return None
        org = ashby_org(company)
        team = raw.get("team") if isinstance(raw.get("team"), dict) else {}

        url = non_empty(raw.get("hostedUrl"))
        if not is_http_url(url):
            url = f"{ASHBY_BOARD}/{org}/{posting_id}"

        return NormalizedJob(
            job_key=make_job_key(self.ats.value, org, posting_id),
            company_name=clean_company_name(company.name, org),
            company_slug=org,
            title=clean_title(raw.get("title")),
            location_name=clean_location(raw.get("locationName"), fallback="Remote"),
            url=url,
            offices=wrap_single(team.get("name")),
            posted_at=iso_or_empty(raw.get("createdAt")),
            updated_at=iso_or_empty(raw.get("updatedAt")),
            ingested_at=ingested_at,
            source=self.ats.value,
        )


@register
class AshbyPostingApiExtractor(BaseExtractor):
    """GET api.ashbyhq.com/posting-api/job-board/{org} -> {jobs: [...]}."""

    kind = "ashby-posting-api"
    ats = AtsType.ASHBY
    timestamp_fields = ("updatedAt", "createdAt", "publishedAt")

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        org = ashby_org(company)
        params = {"includeCompensation": "false"}
        data = self.get_json_or_none(
            f"{ASHBY_POSTING_API}/{quote(org, safe='')}",
            params=params,
            label=f"fetch ashby {org}",
        )
        if not isinstance(data, dict):
            return []
        return dict_items(data.get("jobs"))

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        posting_id = raw.get("id")
        if not posting_id:
            return None
        org = ashby_org(company)

        url = non_empty(raw.get("applyUrl")) or non_empty(raw.get("jobUrl"))
        if not is_http_url(url):
            url = f"{ASHBY_BOARD}/{org}"

        location = raw.get("location")
        if isinstance(location, dict):
            location = location.get("name")

        content = None
        if self.include_content:
            content = raw.get("descriptionHtml") or None

        return NormalizedJob(
            job_key=make_job_key(self.ats.value, org, posting_id),
            company_name=clean_company_name(company.name, org),
            company_slug=org,
            title=clean_title(raw.get("title")),
            location_name=clean_location(location),
            url=url,
            content_html=content,
            departments=wrap_single(raw.get("department")),
            offices=wrap_single(raw.get("team")),
            posted_at=iso_or_empty(raw.get("publishedAt") or raw.get("createdAt")),
            updated_at=iso_or_empty(raw.get("updatedAt")),
            ingested_at=ingested_at,
            source=self.ats.value,
        )
