from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from typing import Any, Protocol

from . import logging_bridge
from .config import Settings
from .http_client import HttpClient
from .models import DeliveryReport, NormalizedJob

LOG = logging.getLogger(__name__)


class Sink(Protocol):
    def send(self, batch: Sequence[NormalizedJob]) -> Any: ...


def partition(jobs: Sequence[NormalizedJob], batch_size: int) -> Iterator[list[NormalizedJob]]:
    """Contiguous batches of at most batch_size; together they cover `jobs` exactly once."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    for start in range(0, len(jobs), batch_size):
        yield list(jobs[start : start + batch_size])


class JobSink:
    """
    Ingest endpoint: POST {"jobs": [...]} authenticated with the shared secret
    (x-scraper-key + bearer). The endpoint upserts by job_key.
    """

    def __init__(self, url: str, secret_key: str, client: HttpClient, *, timeout: float = 180.0):
        self.url = url
        self._secret_key = secret_key
        self._client = client
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, client: HttpClient) -> JobSink:
        return cls(settings.ingest_url, settings.secret_key, client, timeout=settings.sink_timeout_s)

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-scraper-key": self._secret_key,
            "Authorization": f"Bearer {self._secret_key}",
        }

    def send(self, batch: Sequence[NormalizedJob]) -> Any:
        return self._client.post_json(
            self.url,
            {"jobs": [job.to_payload() for job in batch]},
            headers=self.headers(),
            timeout=self.timeout,
            label=f"POST ingest batch size={len(batch)}",
        )


def deliver(jobs: Sequence[NormalizedJob], batch_size: int, sink: Sink) -> DeliveryReport:
    """
    Send every batch in ascending order. A batch that still fails after the
    client's retries is counted and logged; the remaining batches are sent anyway.
    """
    report = DeliveryReport()
    for index, batch in enumerate(partition(jobs, batch_size)):
        report.batches += 1
        try:
            sink.send(batch)
        except Exception as e:
            report.failed_batches += 1
            report.failed_jobs += len(batch)
            logging_bridge.error({
                "component": "ats_ingest.delivery",
                "op": "batch_failed",
                "batch_index": index,
                "batch_size": len(batch),
                "error": repr(e),
            })
            continue
        report.sent += len(batch)
        LOG.info("batch %d: sent %d (total=%d)", index + 1, len(batch), report.sent)
    return report
