# ats_ingest/scrapers/generic.py
from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup  # pip install beautifulsoup4 html5lib

from ..config import Settings
from ..http_client import HttpClient
from ..models import AtsType, Company, NormalizedJob
from ..normalize import clean_company_name, clean_title, make_job_key, non_empty, url_fingerprint
from ..utils import collapse_ws, is_http_url
from .base import BaseExtractor, ExtractError
from .registry import register

# Link text that is site chrome, never a posting.
JUNK_TEXT_RE = re.compile(
    r"privacy|terms|cookie|log\s*-?in|sign\s*-?in|contact|about|language"
    # language switchers are the bare language name
    r"|^(english|deutsch|fran[cç]ais|espa[nñ]ol|italiano|portugu[eê]s|nederlands|日本語|中文)$",
    re.IGNORECASE,
)
JOB_HREF_MARKERS = ("job", "career", "apply")
MIN_TEXT_LEN = 5

JobLinkPolicy = Callable[[str, str], bool]


def is_job_link(text: str, href: str) -> bool:
    """
    Best-effort job-link heuristic, pure (no I/O):
      1) reject if the link text looks like site chrome (privacy, login, language...)
      2) accept only if href mentions job/career/apply AND text has >= 5 chars
    """
    text = collapse_ws(text)
    if JUNK_TEXT_RE.search(text):
        return False
    h = (href or "").lower()
    return any(m in h for m in JOB_HREF_MARKERS) and len(text) >= MIN_TEXT_LEN


def parse_job_links(html: str, base_url: str, policy: JobLinkPolicy = is_job_link) -> list[dict[str, str]]:
    """
    Return [{"title", "url"}] for anchors the policy accepts, resolved against
    base_url. Non-http(s) targets are dropped; one entry per URL.
    """
    soup = BeautifulSoup(html or "", "html5lib")
    out: list[dict[str, str]] = []
    seen: set[str] = set()

    for a in soup.find_all("a", href=True):
        href = (a.get("href") or "").strip()
        text = a.get_text(" ", strip=True)
        if not href or not policy(text, href):
            continue
        url, _frag = urldefrag(urljoin(base_url, href))
        if not is_http_url(url) or url in seen:
            continue
        seen.add(url)
        out.append({"title": collapse_ws(text), "url": url})
    return out


@register
class GenericExtractor(BaseExtractor):
    """
    Plain careers page: fetch HTML (no JS), classify anchors with a pluggable
    policy. No precision guarantee; postings carry no timestamps, so they only
    survive when time filtering is off.
    """

    kind = "generic"
    ats = AtsType.GENERIC

    def __init__(
        self,
        client: HttpClient,
        settings: Settings | None = None,
        *,
        cutoff=None,
        policy: JobLinkPolicy = is_job_link,
    ) -> None:
        super().__init__(client, settings, cutoff=cutoff)
        self.policy = policy

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        url = (company.careers_url or "").strip()
        if not is_http_url(url):
            raise ExtractError(f"{company.name!r} has no careers URL")
        html = self._client.get_text(url, timeout=self.page_timeout, label=f"fetch careers page {company.name}")
        return parse_job_links(html, url, self.policy)

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        url = raw.get("url") or ""
        if not is_http_url(url):
            return None
        slug = company.slug or company.domain or company.name
        return NormalizedJob(
            job_key=make_job_key(self.ats.value, slug, url_fingerprint(url)),
            company_name=clean_company_name(company.name, slug),
            company_slug=non_empty(slug, "unknown"),
            title=clean_title(raw.get("title")),
            location_name="",
            url=url,
            ingested_at=ingested_at,
            source=self.ats.value,
        )
