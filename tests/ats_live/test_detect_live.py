# tests/ats_live/test_detect_live.py
from __future__ import annotations

import os

import pytest

from modules.ats_ingest.lib import detect
from modules.ats_ingest.lib.http_client import HttpClient


@pytest.mark.live
def test_discover_live():
    """
    Live: find a careers page from a company homepage. Sites redesign often,
    so only the shape of a hit is checked.
    """
    domain = os.getenv("DETECT_TEST_DOMAIN", "gitlab.com")
    client = HttpClient(timeout=15, max_attempts=1)
    try:
        entry = detect.discover(domain, client)
    finally:
        client.close()

    print(f"\n[discover {domain}] -> {entry}")
    if entry is not None:
        assert entry["careers_url"].startswith("http")
        assert entry["ats"] in {"greenhouse", "lever", "ashby", "workday", "generic"}
