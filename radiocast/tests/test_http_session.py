from __future__ import annotations

import time

import pytest
import requests
from requests.adapters import HTTPAdapter

from radiocast.adapters.http_session import RETRY_STATUSES, build_retry, build_session, get_with_retry
from radiocast.domain.errors import ContextCancelledError, HttpStatusError, TransportError
from radiocast.services.fetchers import FetcherSet, KIndexFetcher
from radiocast.tests.fakes import make_settings
from radiocast.utils.context import RequestContext

URL = "https://example.test/k"


# -----------------------------
# Test doubles
# -----------------------------
class FakeResponse:
    def __init__(self, status_code: int, content: bytes = b"[]"):
        self.status_code = status_code
        self.content = content


class ScriptedSession:
    """Plays back statuses (or exceptions) in order; the last one repeats."""

    def __init__(self, *outcomes, delay: float = 0.0, on_call=None):
        self.outcomes = list(outcomes)
        self.delay = delay
        self.on_call = on_call
        self.calls = []

    def get(self, url, timeout=None, **kwargs):
        self.calls.append(timeout)
        if self.on_call is not None:
            self.on_call()
        if self.delay:
            time.sleep(min(self.delay, timeout))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return FakeResponse(outcome)


class StubAdapter(HTTPAdapter):
    """Answers every request with one status, without touching the network."""

    def __init__(self, status: int):
        super().__init__(max_retries=0)
        self.status = status
        self.sent = 0

    def send(self, request, **kwargs):
        self.sent += 1
        resp = requests.Response()
        resp.status_code = self.status
        resp._content = b""
        resp.request = request
        resp.url = request.url
        return resp


# -----------------------------
# Policy
# -----------------------------
def test_backoff_is_zero_before_first_retry_then_constant():
    retry = build_retry(3, 2.0)
    assert retry.get_backoff_time() == 0.0

    retry = retry.increment(method="GET", url=URL)
    assert retry.get_backoff_time() == 2.0

    retry = retry.increment(method="GET", url=URL)
    assert retry.get_backoff_time() == 2.0


@pytest.mark.parametrize("method, status, expected", [
    ("GET", 429, True),
    ("GET", 500, True),
    ("GET", 503, True),
    ("GET", 504, True),
    ("GET", 404, False),
    ("GET", 200, False),
    ("POST", 503, False),
])
def test_retry_only_get_on_429_and_5xx(method, status, expected):
    assert build_retry().is_retry(method, status) is expected


def test_build_retry_defaults():
    retry = build_retry()

    assert retry.total == 3
    assert retry.backoff_factor == 2.0
    assert set(retry.status_forcelist) == set(RETRY_STATUSES)


def test_session_adapter_does_not_retry_on_its_own():
    session = build_session()

    adapter = session.get_adapter("https://example.test/")
    assert adapter.max_retries.total == 0
    assert session.headers["User-Agent"].startswith("radiocast/")


# -----------------------------
# Retry loop
# -----------------------------
def test_retries_until_success():
    session = ScriptedSession(503, 502, 200)

    resp = get_with_retry(session, RequestContext(), URL, retry=build_retry(3, 0.01))

    assert resp.status_code == 200
    assert len(session.calls) == 3


def test_exhausted_retries_return_last_response():
    session = ScriptedSession(503)

    resp = get_with_retry(session, RequestContext(), URL, retry=build_retry(3, 0))

    assert resp.status_code == 503
    assert len(session.calls) == 4


def test_non_retryable_status_is_returned_at_once():
    session = ScriptedSession(404)

    assert get_with_retry(session, RequestContext(), URL, retry=build_retry(3, 0)).status_code == 404
    assert len(session.calls) == 1


def test_transport_errors_are_retried_then_raised():
    session = ScriptedSession(requests.ConnectionError("refused"))

    with pytest.raises(requests.ConnectionError):
        get_with_retry(session, RequestContext(), URL, retry=build_retry(2, 0))
    assert len(session.calls) == 3


def test_no_policy_means_single_attempt():
    session = ScriptedSession(503)

    assert get_with_retry(session, RequestContext(), URL).status_code == 503
    assert len(session.calls) == 1


def test_budget_bounds_all_attempts_and_pauses():
    session = ScriptedSession(503, delay=0.3)

    started = time.monotonic()
    resp = get_with_retry(session, RequestContext(), URL, retry=build_retry(3, 0.2), budget=1.0)
    elapsed = time.monotonic() - started

    assert resp.status_code == 503
    assert elapsed < 1.5
    assert len(session.calls) < 4
    assert all(t <= 1.0 for t in session.calls)


def test_parent_cancellation_during_pause_raises():
    ctx = RequestContext()
    session = ScriptedSession(503, on_call=ctx.cancel)

    with pytest.raises(ContextCancelledError):
        get_with_retry(session, ctx, URL, retry=build_retry(3, 5.0))
    assert len(session.calls) == 1


# -----------------------------
# Through the fetchers
# -----------------------------
def test_slow_failing_upstream_fails_within_fetch_timeout():
    session = ScriptedSession(503, delay=0.8)
    fetcher = KIndexFetcher(session=session, timeout_seconds=1.5, retry=build_retry(3, 0.2))

    started = time.monotonic()
    with pytest.raises(HttpStatusError) as ei:
        fetcher.fetch(RequestContext(), URL)
    elapsed = time.monotonic() - started

    assert ei.value.status_code == 503
    assert elapsed < 2.0
    assert len(session.calls) == 2


def test_final_503_surfaces_as_http_status_error_through_requests():
    session = build_session()
    adapter = StubAdapter(503)
    session.mount("https://", adapter)
    fetcher = KIndexFetcher(session=session, retry=build_retry(3, 0))

    with pytest.raises(HttpStatusError) as ei:
        fetcher.fetch(RequestContext(), URL)

    assert ei.value.status_code == 503
    assert adapter.sent == 4


def test_repeated_connection_errors_surface_as_transport_error():
    session = ScriptedSession(requests.ConnectionError("refused"))
    fetcher = KIndexFetcher(session=session, retry=build_retry(3, 0))

    with pytest.raises(TransportError):
        fetcher.fetch(RequestContext(), URL)
    assert len(session.calls) == 4


def test_fetcher_set_carries_configured_retry_policy():
    settings = make_settings(FETCH_RETRIES=5, FETCH_RETRY_WAIT_SECONDS=0.5)
    fs = FetcherSet.from_settings(settings, session=ScriptedSession(200))

    assert fs.k_index.retry.total == 5
    assert fs.sidc.retry.backoff_factor == 0.5
    assert fs.n0nbh.retry is fs.solar_cycle.retry
