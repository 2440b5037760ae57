from __future__ import annotations

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import MaxRetryError
from urllib3.util.retry import Retry

from radiocast.domain.errors import ContextCancelledError
from radiocast.utils.context import RequestContext
from radiocast.version import get_version

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


class FixedBackoffRetry(Retry):
    """Retry with a constant pause (backoff_factor seconds) between attempts."""

    def get_backoff_time(self) -> float:
        if not self.history:
            return 0.0
        return float(self.backoff_factor)


def build_retry(retries: int = 3, retry_wait_seconds: float = 2.0) -> FixedBackoffRetry:
    """Policy for GET: transport errors and 429/5xx, `retries` extra attempts."""
    return FixedBackoffRetry(
        total=retries,
        backoff_factor=retry_wait_seconds,
        status_forcelist=list(RETRY_STATUSES),
        allowed_methods=["GET"],
        raise_on_status=False,
        respect_retry_after_header=False,
    )


def build_session() -> requests.Session:
    """
    Session shared by the fetchers.

    The adapter itself never retries: get_with_retry() drives the policy so
    that the pauses and every attempt stay inside the caller's deadline.
    """
    session = requests.Session()

    adapter = HTTPAdapter(max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.headers.update({
        "User-Agent": f"radiocast/{get_version()}",
    })
    return session


def get_with_retry(
    session: requests.Session,
    ctx: RequestContext,
    url: str,
    *,
    retry: Optional[Retry] = None,
    budget: float = 30.0,
    **kwargs,
) -> requests.Response:
    """
    GET `url`, retrying per `retry`, all within `budget` seconds.

    When the budget or the retries run out the last response is returned
    (whatever its status) or the last requests exception re-raised.
    Raises ContextCancelledError only when `ctx` itself is cancelled.
    """
    call_ctx = ctx.child(budget)
    retry = retry if retry is not None else Retry(total=0)
    attempt = 0

    while True:
        ctx.check()
        attempt += 1
        resp, error = None, None
        try:
            resp = session.get(url, timeout=max(call_ctx.timeout(budget), 0.1), **kwargs)
        except requests.RequestException as e:
            if ctx.cancelled():
                raise ContextCancelledError(f"GET {url} cancelled") from e
            error = e

        if resp is not None and not retry.is_retry("GET", resp.status_code):
            return resp

        try:
            retry = retry.increment(method="GET", url=url, error=error)
            gave_up = call_ctx.wait(retry.get_backoff_time())
        except MaxRetryError:
            gave_up = True

        if gave_up:
            ctx.check()
            logger.warning("GET %s failed after %d attempt(s)", url, attempt)
            if error is not None:
                raise error
            return resp

        logger.info("GET %s attempt %d failed (%s), retrying", url, attempt, error or resp.status_code)
