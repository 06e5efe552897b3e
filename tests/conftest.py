# tests/conftest.py
import json
import os
import tempfile
import types
from dataclasses import replace

import pytest
import requests
from freezegun import freeze_time

from modules.ats_ingest.lib.config import _ENV_KEYS, Settings
from modules.ats_ingest.lib.http_client import HttpClient
from modules.ats_ingest.lib.models import NormalizedJob

INGEST_URL = "https://sink.example.test/api/ingest-jobs"
SECRET = "test-secret-key"


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    tmp_logs = tempfile.mkdtemp(prefix="ats-pytest-logs-")
    monkeypatch.setenv("LOG_DIR", tmp_logs)
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")

    # The host's ingest config must never leak into a test run.
    for env_name in _ENV_KEYS.values():
        monkeypatch.delenv(env_name, raising=False)

    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# HTTP doubles
# ---------------------------------------------------------------------
class FakeResponse:
    """The slice of requests.Response the client touches."""

    def __init__(self, status_code=200, json_data=None, text=None, url=None):
        self.status_code = status_code
        if text is None:
            text = json.dumps(json_data) if json_data is not None else ""
        self.text = text
        self.url = url
        self.encoding = "utf-8"
        self.apparent_encoding = "utf-8"

    def json(self):
        return json.loads(self.text)

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error for {self.url}", response=self)


class FakeSession:
    """
    Minimal requests.Session stand-in.

    Routes are (METHOD, exact URL) -> queue of replies; each call pops the
    next reply and the last one repeats. A reply is a FakeResponse, an
    exception instance (raised), or a callable(**kwargs) -> FakeResponse.
    Unrouted requests fail the test.
    """

    def __init__(self):
        self.headers = {}
        self.calls = []
        self.closed = False
        self._routes = {}

    def add(self, method, url, *replies):
        self._routes[(method.upper(), url)] = list(replies)
        return self

    def calls_to(self, method, url=None):
        return [c for c in self.calls if c.method == method.upper() and (url is None or c.url == url)]

    def request(self, method, url, **kwargs):
        method = method.upper()
        self.calls.append(types.SimpleNamespace(method=method, url=url, kwargs=kwargs))
        queue = self._routes.get((method, url))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {url}")
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return reply(**kwargs)
        return reply

    def close(self):
        self.closed = True


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def sleeps():
    """Records requested sleeps instead of sleeping."""
    return []


@pytest.fixture
def http_client(fake_session, sleeps):
    return HttpClient(timeout=5, max_attempts=3, base_delay_ms=500, session=fake_session, sleep=sleeps.append)


# ---------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------
@pytest.fixture
def seed_file(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps([{"name": "Acme", "ats": "greenhouse", "greenhouse_company": "acme"}]),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def settings(seed_file):
    """
    Brand-new Settings per test: no time window, no inter-company delay.
    Tweak per test with dataclasses.replace(settings, ...).
    """
    return Settings(
        ingest_url=INGEST_URL,
        secret_key=SECRET,
        seed_file=str(seed_file),
        request_delay_ms=0,
        hours_back=0,
    )


@pytest.fixture
def settings_with(settings):
    def _with(**changes):
        return replace(settings, **changes)

    return _with


@pytest.fixture
def make_job():
    def _make(n, *, title=None, slug="acme", source="greenhouse"):
        return NormalizedJob(
            job_key=f"{source}:{slug}:{n}",
            company_name="Acme",
            company_slug=slug,
            title=title or f"Engineer {n}",
            location_name="Remote",
            url=f"https://boards.greenhouse.io/{slug}/jobs/{n}",
            source=source,
            ingested_at="2025-01-01T00:00:00Z",
        )

    return _make
