# service/logging_utils.py
from __future__ import annotations

import datetime as _dt
import json
import os
import socket
from collections.abc import Iterable
from typing import Any

# Substrings of keys whose values never reach disk (case-insensitive).
_DEFAULT_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "scraper-key",
    "scraper_key",
    "authorization",
    "cookie",
}

_REDACTED = "***REDACTED***"

_HOSTNAME = socket.gethostname()
_PID = os.getpid()


# ---- Public API --------------------------------------------------------------


def write_activity_log(record: dict[str, Any]) -> None:
    """
    Append one structured activity record to today's JSONL file.

    Raises on unrecoverable I/O/serialization errors; never mutates `record`.
    """
    _write_jsonl(_log_path_for_today(_activity_prefix()), record)


def write_error_log(record: dict[str, Any]) -> None:
    """Same as write_activity_log, into the parallel error file."""
    _write_jsonl(_log_path_for_today(_error_prefix()), record)


def get_activity_log_path() -> str:
    """Return the current day's activity log path (<prefix>-YYYY-MM-DD.jsonl)."""
    return _log_path_for_today(_activity_prefix())


def get_error_log_path() -> str:
    return _log_path_for_today(_error_prefix())


def redact(record: dict[str, Any], keys: set[str] | None = None) -> dict[str, Any]:
    """
    Deep copy of `record` with values of secret-looking KEYS replaced and
    bearer tokens inside strings scrubbed. Does not mutate input.
    """
    return _redact_deep(record, keys or _DEFAULT_REDACT_KEYS)


# ---- Internal helpers --------------------------------------------------------


# Read per call so tests (and the CLI) can point LOG_DIR elsewhere at runtime.
def _log_dir() -> str:
    return os.getenv("LOG_DIR", "./local/logs")


def _activity_prefix() -> str:
    return os.getenv("ACTIVITY_LOG_PREFIX", "activity")


def _error_prefix() -> str:
    return os.getenv("ERROR_LOG_PREFIX", "error")


def _log_path_for_today(prefix: str) -> str:
    today = _dt.date.today().isoformat()
    return os.path.join(_log_dir(), f"{prefix}-{today}.jsonl")


def _safe_bearer_scrub(value: str) -> str:
    """'Bearer abc123' -> 'Bearer ***REDACTED***' (scheme kept)."""
    if "bearer " not in value.lower():
        return value
    try:
        scheme, _ = value.split(" ", 1)
    except ValueError:
        return _REDACTED
    return f"{scheme} {_REDACTED}"


def _key_matches(name: str, patterns: Iterable[str]) -> bool:
    n = name.lower()
    return any(pat in n for pat in patterns)


def _redact_deep(value: Any, patterns: Iterable[str]) -> Any:
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            if isinstance(k, str) and _key_matches(k, patterns):
                out[k] = _REDACTED
            else:
                out[k] = _redact_deep(v, patterns)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact_deep(v, patterns) for v in value]
    if isinstance(value, str):
        return _safe_bearer_scrub(value)
    return value


def _write_jsonl(path: str, record: dict[str, Any]) -> None:
    """
    Redact, stamp host/pid/ts, serialize, then append a single line
    (O_APPEND keeps concurrent writers line-atomic on POSIX).
    """
    payload = _redact_deep(record, _DEFAULT_REDACT_KEYS)
    payload.setdefault("ts", _dt.datetime.now(_dt.timezone.utc).isoformat())
    payload["_meta"] = {"host": _HOSTNAME, "pid": _PID}

    # Serialize first so any serialization errors happen before file ops.
    data = (json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str) + "\n").encode("utf-8")

    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
    try:
        os.write(fd, data)
    finally:
        os.close(fd)
