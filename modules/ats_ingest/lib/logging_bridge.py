from __future__ import annotations

import logging
from typing import Any

from service import logging_utils as _svc_logging

_ACTIVITY_LOG = logging.getLogger("ats_ingest.activity")
_ERROR_LOG = logging.getLogger("ats_ingest.error")


def activity(record: dict[str, Any]) -> None:
    """
    Write an activity record to the JSONL activity log; also echo it at DEBUG.
    Falls back to stdlib logging as structured info if the file write fails.
    """
    payload = _svc_logging.redact(record)
    try:
        _svc_logging.write_activity_log(payload)
    except (OSError, TypeError, ValueError):
        _ACTIVITY_LOG.info(payload)
        return
    _ACTIVITY_LOG.debug(payload)


def error(record: dict[str, Any]) -> None:
    """
    Write an error record to the JSONL error log and to stdlib logging at ERROR.
    """
    payload = _svc_logging.redact(record)
    try:
        _svc_logging.write_error_log(payload)
    except (OSError, TypeError, ValueError):
        _ERROR_LOG.exception("error log write failed")
    _ERROR_LOG.error(payload)
