# ats_ingest/http_client.py
from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import requests
import tenacity
from requests.adapters import HTTPAdapter

LOG = logging.getLogger(__name__)

# Statuses worth another attempt (rate limiting, upstream/CDN trouble).
RETRIABLE_STATUSES = frozenset({429, 500, 502, 503, 504, 520, 522, 523, 524})

# Transport failures worth another attempt. Malformed requests (MissingSchema,
# InvalidURL, InvalidHeader) are not in here and raise on the first call.
NETWORK_ERRORS = (requests.ConnectionError, requests.Timeout, requests.exceptions.ChunkedEncodingError)

DEFAULT_USER_AGENT = "ats-ingest/1.0 (+https://example.invalid)"


class RetryError(Exception):
    """Raised when every attempt of a labeled request failed transiently."""

    def __init__(self, label: str, attempts: int, status: int | None = None, message: str = ""):
        self.label = label
        self.attempts = attempts
        self.status = status
        super().__init__(f"{label} failed after {attempts} attempts (status={status or 'n/a'}): {message}")


def backoff_delay_ms(attempt: int, base_delay_ms: float, cap_ms: float = 5000) -> float:
    """Quadratic backoff: min(cap, base * attempt^2). attempt is 1-based."""
    return min(cap_ms, base_delay_ms * attempt * attempt)


def _status_of(exc: BaseException | None) -> int | None:
    resp = getattr(exc, "response", None)
    return getattr(resp, "status_code", None)


def is_transient(exc: BaseException) -> bool:
    """Network failures and RETRIABLE_STATUSES; everything else is permanent."""
    if isinstance(exc, requests.HTTPError):
        return _status_of(exc) in RETRIABLE_STATUSES
    return isinstance(exc, NETWORK_ERRORS)


def request_with_retry(
    request_fn: Callable[[], requests.Response],
    label: str,
    max_attempts: int = 3,
    base_delay_ms: float = 500,
    *,
    cap_ms: float = 5000,
    sleep: Callable[[float], None] = time.sleep,
) -> requests.Response:
    """
    Call `request_fn` until it yields a non-error response.

    - Network errors and RETRIABLE_STATUSES are retried (max_attempts total).
    - Any other status >= 400 raises requests.HTTPError right away.
    - Exhausted attempts raise RetryError chained to the last failure.

    One WARNING is logged per failed attempt.
    """
    attempts = max(1, int(max_attempts))

    def _attempt() -> requests.Response:
        resp = request_fn()
        if resp.status_code in RETRIABLE_STATUSES:
            raise requests.HTTPError(f"{resp.status_code} retriable status for {label}", response=resp)
        if resp.status_code >= 400:
            resp.raise_for_status()
        return resp

    def _wait(state: tenacity.RetryCallState) -> float:
        return backoff_delay_ms(state.attempt_number, base_delay_ms, cap_ms) / 1000.0

    def _log_failure(state: tenacity.RetryCallState) -> None:
        exc = state.outcome.exception()
        LOG.warning(
            "%s failed %d/%d status=%s msg=%s",
            label,
            state.attempt_number,
            attempts,
            _status_of(exc) or "n/a",
            exc,
        )

    retrying = tenacity.Retrying(
        stop=tenacity.stop_after_attempt(attempts),
        wait=_wait,
        retry=tenacity.retry_if_exception(is_transient),
        after=_log_failure,
        sleep=sleep,
    )
    try:
        return retrying(_attempt)
    except tenacity.RetryError as e:
        last_exc = e.last_attempt.exception()
        raise RetryError(label, attempts, _status_of(last_exc), str(last_exc)) from last_exc


class HttpClient:
    """Shared HTTP client: one pooled session, explicit timeouts, every call retried."""

    def __init__(
        self,
        timeout: float = 30.0,
        *,
        max_attempts: int = 3,
        base_delay_ms: float = 500,
        cap_ms: float = 5000,
        user_agent: str = DEFAULT_USER_AGENT,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.timeout = float(timeout)
        self.max_attempts = int(max_attempts)
        self.base_delay_ms = float(base_delay_ms)
        self.cap_ms = float(cap_ms)
        self._sleep = sleep

        if session is None:
            session = requests.Session()
            # Retries happen in request_with_retry; the adapter only pools.
            adapter = HTTPAdapter(max_retries=0, pool_connections=10, pool_maxsize=20)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self.session = session
        self.session.headers.update({"User-Agent": user_agent})

    @classmethod
    def from_settings(cls, settings: Any, **kwargs: Any) -> HttpClient:
        return cls(
            timeout=settings.fetch_timeout_s,
            max_attempts=settings.max_retries,
            base_delay_ms=settings.retry_base_delay_ms,
            **kwargs,
        )

    def request(
        self,
        method: str,
        url: str,
        *,
        label: str | None = None,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        def _send() -> requests.Response:
            return self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)

        return request_with_retry(
            _send,
            label or f"{method} {url}",
            self.max_attempts,
            self.base_delay_ms,
            cap_ms=self.cap_ms,
            sleep=self._sleep,
        )

    # ---- convenience ----
    def get_text(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        label: str | None = None,
        **kwargs: Any,
    ) -> str:
        """GET and return decoded text with gentle encoding hints."""
        resp = self.request("GET", url, params=params, headers=headers, timeout=timeout, label=label, **kwargs)
        if not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        return resp.text

    def get_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        label: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """GET and parse JSON with clearer errors if decoding fails."""
        resp = self.request("GET", url, params=params, headers=headers, timeout=timeout, label=label, **kwargs)
        return _decode_json(resp, url)

    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        label: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """POST a JSON body; returns the decoded reply, or None for an empty body."""
        resp = self.request("POST", url, json=payload, headers=headers, timeout=timeout, label=label, **kwargs)
        if not (resp.text or "").strip():
            return None
        return _decode_json(resp, url)

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)


def _decode_json(resp: requests.Response, url: str) -> Any:
    # Prefer requests' decoder; fall back to manual if Content-Type is misleading.
    try:
        return resp.json()
    except ValueError as e:
        try:
            return json.loads(resp.text)
        except ValueError:
            preview = (resp.text or "")[:200].replace("\n", " ")
            raise ValueError(f"JSON decode failed for {url!r}; body starts: {preview!r}") from e
