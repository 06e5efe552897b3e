# tests/test_delivery.py
import json
import math

import pytest
from conftest import INGEST_URL, SECRET, FakeResponse

from modules.ats_ingest.lib.delivery import JobSink, deliver, partition
from service import logging_utils


class RecordingSink:
    def __init__(self, fail_on=()):
        self.batches = []
        self.fail_on = set(fail_on)

    def send(self, batch):
        index = len(self.batches)
        self.batches.append(list(batch))
        if index in self.fail_on:
            raise RuntimeError(f"batch {index} rejected")


@pytest.mark.parametrize("n,size", [(0, 100), (1, 100), (100, 100), (250, 100), (7, 3), (501, 500)])
def test_partition_is_exact(make_job, n, size):
    jobs = [make_job(i) for i in range(n)]
    batches = list(partition(jobs, size))

    assert len(batches) == math.ceil(n / size)
    assert all(1 <= len(b) <= size for b in batches)
    assert [j for b in batches for j in b] == jobs


def test_partition_rejects_zero_batch_size(make_job):
    with pytest.raises(ValueError):
        list(partition([make_job(1)], 0))


def test_deliver_continues_after_failed_batch(make_job):
    jobs = [make_job(i) for i in range(250)]
    sink = RecordingSink(fail_on={1})

    report = deliver(jobs, 100, sink)

    assert [len(b) for b in sink.batches] == [100, 100, 50]
    assert report.batches == 3
    assert report.failed_batches == 1
    assert report.failed_jobs == 100
    assert report.sent == 150
    assert report.ok is False

    with open(logging_utils.get_error_log_path(), encoding="utf-8") as f:
        records = [json.loads(line) for line in f]
    assert records[-1]["op"] == "batch_failed"
    assert records[-1]["batch_index"] == 1


def test_deliver_nothing_sends_nothing():
    sink = RecordingSink()
    report = deliver([], 100, sink)
    assert sink.batches == []
    assert report.batches == 0
    assert report.ok is True


def test_job_sink_posts_authenticated_payload(http_client, fake_session, make_job):
    fake_session.add("POST", INGEST_URL, FakeResponse(200, {"ok": True, "upserted": 2}))
    sink = JobSink(INGEST_URL, SECRET, http_client)

    reply = sink.send([make_job(1), make_job(2)])

    assert reply == {"ok": True, "upserted": 2}
    (call,) = fake_session.calls
    assert call.kwargs["headers"]["x-scraper-key"] == SECRET
    assert call.kwargs["headers"]["Authorization"] == f"Bearer {SECRET}"
    assert call.kwargs["timeout"] == 180.0
    body = call.kwargs["json"]
    assert [j["job_key"] for j in body["jobs"]] == ["greenhouse:acme:1", "greenhouse:acme:2"]
    assert body["jobs"][0]["is_active"] is True
    assert body["jobs"][0]["departments"] == ""


def test_job_sink_retries_then_counts_failure(fake_session, make_job):
    from modules.ats_ingest.lib.http_client import HttpClient

    client = HttpClient(max_attempts=2, base_delay_ms=0, session=fake_session, sleep=lambda s: None)
    fake_session.add("POST", INGEST_URL, FakeResponse(503))

    report = deliver([make_job(1)], 100, JobSink(INGEST_URL, SECRET, client))

    assert len(fake_session.calls) == 2
    assert report.failed_batches == 1
    assert report.sent == 0
