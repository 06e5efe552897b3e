from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .utils import host_of


class AtsType(str, Enum):
    """Closed set of tracking systems the router knows how to handle."""

    GREENHOUSE = "greenhouse"
    LEVER = "lever"
    ASHBY = "ashby"
    WORKDAY = "workday"
    GENERIC = "generic"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> AtsType:
        """Case-insensitive lookup; anything unrecognized (or missing) is UNKNOWN."""
        if isinstance(value, cls):
            return value
        key = str(value or "").strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return cls.UNKNOWN


# Host fragment -> ATS. Order matters: first hit wins.
_HOST_MARKERS: tuple[tuple[str, AtsType], ...] = (
    ("greenhouse.io", AtsType.GREENHOUSE),
    ("lever.co", AtsType.LEVER),
    ("ashbyhq.com", AtsType.ASHBY),
    ("myworkdayjobs.com", AtsType.WORKDAY),
)


def infer_ats_from_url(url: str | None) -> AtsType | None:
    """Return the ATS hosting `url`, or None when the host is not a known board."""
    host = host_of(url)
    if not host:
        return None
    for marker, ats in _HOST_MARKERS:
        if host == marker or host.endswith("." + marker):
            return ats
    return None


@dataclass(frozen=True)
class Company:
    """
    One seed company for a run. Immutable; built by seeds.company_from_entry().
    - slug: the identifier the company is registered under in its ATS
    - careers_url: board or careers page (Workday/Generic fetch it directly)
    """

    name: str
    ats: AtsType = AtsType.UNKNOWN
    slug: str | None = None
    careers_url: str | None = None
    domain: str | None = None
    country: str = "US"

    @property
    def label(self) -> str:
        # stable label like "greenhouse:acme", used in logs and reports
        return f"{self.ats.value}:{self.slug or self.name}"


@dataclass(frozen=True)
class NormalizedJob:
    """
    Canonical job record shipped to the sink.

    departments/offices are JSON text ("" when the provider had nothing), so the
    sink's text columns never receive null.
    """

    job_key: str
    company_name: str
    company_slug: str
    title: str
    location_name: str
    url: str
    source: str
    ingested_at: str
    content_html: str | None = None
    departments: str = ""
    offices: str = ""
    posted_at: str = ""
    updated_at: str = ""
    is_active: bool = True

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ExtractResult:
    """
    Result of extracting one company.
    - jobs: normalized jobs inside the time window
    - fetched: raw postings returned by the provider (before filtering)
    - errors: non-fatal issues; a non-empty list means the company degraded to zero jobs
    """

    company: Company
    jobs: list[NormalizedJob] = field(default_factory=list)
    fetched: int = 0
    errors: list[str] = field(default_factory=list)


@dataclass
class DeliveryReport:
    batches: int = 0
    sent: int = 0
    failed_batches: int = 0
    failed_jobs: int = 0

    @property
    def ok(self) -> bool:
        return self.failed_batches == 0


@dataclass
class RunReport:
    companies: int = 0
    fetched: int = 0
    kept: int = 0
    unique: int = 0
    skipped: int = 0
    company_errors: int = 0
    delivery: DeliveryReport = field(default_factory=DeliveryReport)

    @property
    def sent(self) -> int:
        return self.delivery.sent

    @property
    def failed_batches(self) -> int:
        return self.delivery.failed_batches

    @property
    def ok(self) -> bool:
        return self.delivery.ok

    def as_dict(self) -> dict[str, Any]:
        return {
            "companies": self.companies,
            "fetched": self.fetched,
            "kept": self.kept,
            "unique": self.unique,
            "skipped": self.skipped,
            "company_errors": self.company_errors,
            "batches": self.delivery.batches,
            "sent": self.delivery.sent,
            "failed_batches": self.delivery.failed_batches,
            "failed_jobs": self.delivery.failed_jobs,
        }
