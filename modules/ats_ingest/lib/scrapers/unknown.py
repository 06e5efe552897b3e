from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from ..models import AtsType, Company, NormalizedJob
from .base import BaseExtractor
from .registry import register

LOG = logging.getLogger(__name__)


@register
class UnknownExtractor(BaseExtractor):
    """
    No-op extractor for companies whose ATS is missing or unrecognized.

    Not an error path: the company simply contributes zero jobs.
    """

    kind = "unknown"
    ats = AtsType.UNKNOWN

    def fetch(self, company: Company) -> list[dict[str, Any]]:
        LOG.warning("%s: unknown ATS; skipping", company.name)
        return []

    def map_posting(self, company: Company, raw: Mapping[str, Any], ingested_at: str) -> NormalizedJob | None:
        return None
