# tests/test_normalize.py
from datetime import datetime, timedelta, timezone

import pytest

from modules.ats_ingest.lib import normalize as nz
from modules.ats_ingest.lib.utils import to_iso

UTC = timezone.utc
JAN1 = datetime(2025, 1, 1, tzinfo=UTC)


# ----------------------------------------------------------------------
# Keys & dedupe
# ----------------------------------------------------------------------
def test_job_key_is_deterministic():
    assert nz.make_job_key("greenhouse", "acme", 123) == "greenhouse:acme:123"
    assert nz.make_job_key("greenhouse", "acme", 123) == nz.make_job_key("greenhouse", "acme", 123)
    assert nz.url_fingerprint("https://acme.com/jobs/1") == nz.url_fingerprint("https://acme.com/jobs/1")
    assert len(nz.url_fingerprint("https://acme.com/jobs/1")) == 16


def test_dedupe_last_seen_wins(make_job):
    jobs = [make_job(1, title="Old"), make_job(2), make_job(1, title="New")]
    out = nz.dedupe(jobs)

    assert len(out) == 2
    by_key = {j.job_key: j for j in out}
    assert by_key["greenhouse:acme:1"].title == "New"


def test_dedupe_custom_key(make_job):
    jobs = [make_job(1, slug="a"), make_job(1, slug="b")]
    assert len(nz.dedupe(jobs)) == 2
    assert len(nz.dedupe(jobs, key=lambda j: j.title)) == 1


# ----------------------------------------------------------------------
# Field cleaning
# ----------------------------------------------------------------------
def test_clean_title_defaults_and_truncates():
    assert nz.clean_title(None) == "Unknown Title"
    assert nz.clean_title("  Staff   Engineer \n") == "Staff Engineer"
    assert len(nz.clean_title("x" * 500)) == nz.MAX_TITLE_LEN


def test_clean_company_name_and_location_fallbacks():
    assert nz.clean_company_name("", "acme") == "acme"
    assert nz.clean_company_name(None, None) == "Unknown Company"
    assert nz.clean_location("") == "Unspecified"
    assert nz.clean_location(None, fallback="Remote") == "Remote"


def test_json_list_field_keeps_empty_lists():
    assert nz.json_list_field(None) == ""
    assert nz.json_list_field([]) == "[]"
    assert nz.json_list_field([{"id": 1, "name": "Eng"}]) == '[{"id":1,"name":"Eng"}]'
    assert nz.wrap_single("Platform") == '["Platform"]'
    assert nz.wrap_single("  ") == ""


# ----------------------------------------------------------------------
# Timestamps
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "value",
    [
        "2025-01-01T00:00:00Z",
        "2025-01-01T01:00:00+01:00",
        "2025-01-01T00:00:00",
        1735689600,
        1735689600000,
        "1735689600000",
    ],
)
def test_parse_timestamp_variants(value):
    assert nz.parse_timestamp(value) == JAN1


@pytest.mark.parametrize("value", [None, "", "soon", True, {}])
def test_parse_timestamp_rejects_garbage(value):
    assert nz.parse_timestamp(value) is None


def test_iso_or_empty():
    assert nz.iso_or_empty(1735689600000) == "2025-01-01T00:00:00Z"
    assert nz.iso_or_empty(None) == ""


def test_first_timestamp_follows_field_order():
    raw = {"updated_at": "bogus", "created_at": "2025-01-01T00:00:00Z"}
    assert nz.first_timestamp(raw, ("updated_at", "created_at")) == JAN1


# ----------------------------------------------------------------------
# Time window
# ----------------------------------------------------------------------
def test_compute_cutoff(frozen_utc):
    assert nz.compute_cutoff(24) == JAN1 - timedelta(hours=24)
    assert nz.compute_cutoff(0) is None
    assert nz.compute_cutoff(-5) is None


def test_filter_recent_24h_window(frozen_utc):
    now = datetime.now(UTC)
    postings = [
        {"id": "old", "updated_at": to_iso(now - timedelta(hours=48))},
        {"id": "fresh", "updated_at": to_iso(now - timedelta(hours=1))},
        {"id": "undated"},
    ]
    kept = nz.filter_recent(postings, nz.compute_cutoff(24), ("updated_at",))
    assert [p["id"] for p in kept] == ["fresh"]


def test_filter_recent_without_cutoff_keeps_everything():
    postings = [{"id": 1}, {"id": 2, "updated_at": "2001-01-01T00:00:00Z"}]
    assert nz.filter_recent(postings, None, ("updated_at",)) == postings


def test_filter_recent_custom_timestamp_function():
    postings = [{"when": 1}, {"when": 2}]
    kept = nz.filter_recent(postings, JAN1, timestamp_of=lambda p: JAN1 if p["when"] == 2 else None)
    assert kept == [{"when": 2}]
