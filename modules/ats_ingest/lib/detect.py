"""
Careers-page discovery for a company domain.

detect() scans the domain's root page for the first careers/jobs/join link;
detect_ats() guesses which tracking system a careers page is served by.
Neither raises: failures mean "nothing found".
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .http_client import HttpClient
from .models import AtsType, infer_ats_from_url
from .utils import first_path_segment, host_of, is_http_url

LOG = logging.getLogger(__name__)

CAREERS_HREF_RE = re.compile(r"careers|jobs|join", re.IGNORECASE)

BROWSER_UA = "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120 Safari/537.36"

# Marker found in page HTML -> ATS. Order matters: first hit wins.
_HTML_MARKERS: tuple[tuple[str, AtsType], ...] = (
    ("jobs.ashbyhq.com", AtsType.ASHBY),
    ("boards.greenhouse.io", AtsType.GREENHOUSE),
    ("job-boards.greenhouse.io", AtsType.GREENHOUSE),
    ("jobs.lever.co", AtsType.LEVER),
    ("myworkdayjobs.com", AtsType.WORKDAY),
)


def normalize_base_url(domain_like: Any) -> str:
    """'acme.com' / {'domain': 'acme.com'} -> 'https://acme.com' (no trailing slash)."""
    if isinstance(domain_like, dict):
        domain_like = domain_like.get("domain") or domain_like.get("website") or domain_like.get("url")
    s = str(domain_like or "").strip()
    if not s:
        return ""
    if not re.match(r"^https?://", s, re.IGNORECASE):
        s = "https://" + s
    return s.rstrip("/")


def find_careers_link(html: str, base_url: str) -> str | None:
    """First anchor whose href mentions careers/jobs/join, made absolute."""
    soup = BeautifulSoup(html or "", "html5lib")
    for a in soup.find_all("a", href=True):
        href = (a.get("href") or "").strip()
        if href and CAREERS_HREF_RE.search(href):
            url = urljoin(base_url, href)
            if is_http_url(url):
                return url
    return None


def detect(domain_url: Any, client: HttpClient, *, timeout: float | None = 15.0) -> str | None:
    """
    Fetch the domain root (following redirects) and return the first likely
    careers URL, or None on fetch error, non-2xx, or no match.
    """
    base = normalize_base_url(domain_url)
    if not base:
        return None
    try:
        resp = client.request(
            "GET",
            base,
            timeout=timeout,
            allow_redirects=True,
            headers={"User-Agent": BROWSER_UA},
            label=f"detect careers {base}",
        )
    except Exception as e:
        LOG.info("detect %s: fetch failed: %s", base, e)
        return None
    if not 200 <= resp.status_code < 300:
        return None
    final_url = getattr(resp, "url", None) or base
    return find_careers_link(resp.text, final_url)


def detect_ats(html: str | None, final_url: str | None = "") -> AtsType:
    """Guess the ATS from the final URL host, then from board links in the HTML."""
    by_url = infer_ats_from_url(final_url)
    if by_url is not None:
        return by_url
    h = (html or "").lower()
    for marker, ats in _HTML_MARKERS:
        if marker in h:
            return ats
    return AtsType.GENERIC


def discover(domain: Any, client: HttpClient, *, timeout: float | None = 15.0) -> dict[str, Any] | None:
    """
    Seed entry for one domain: {name, domain, careers_url, ats[, slug]}, or None
    when no careers page is found. The careers page itself is fetched to
    identify its ATS; if that fetch fails the entry is kept as generic.
    """
    base = normalize_base_url(domain)
    careers_url = detect(base, client, timeout=timeout)
    if not careers_url:
        return None

    ats = infer_ats_from_url(careers_url)
    final_url = careers_url
    if ats is None:
        try:
            resp = client.request(
                "GET",
                careers_url,
                timeout=timeout,
                allow_redirects=True,
                headers={"User-Agent": BROWSER_UA},
                label=f"probe careers {careers_url}",
            )
            final_url = getattr(resp, "url", None) or careers_url
            ats = detect_ats(resp.text, final_url)
        except Exception as e:
            LOG.info("discover %s: careers page probe failed: %s", careers_url, e)
            ats = AtsType.GENERIC

    host = host_of(base)
    entry: dict[str, Any] = {
        "name": host.removeprefix("www.").split(".")[0] if host else base,
        "domain": host,
        "careers_url": final_url,
        "ats": ats.value,
    }
    if ats in (AtsType.GREENHOUSE, AtsType.LEVER, AtsType.ASHBY) and infer_ats_from_url(final_url) is ats:
        slug = first_path_segment(final_url)
        if slug:
            entry["slug"] = slug
    return entry
