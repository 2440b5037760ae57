from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass

from radiocast.domain.errors import ContextCancelledError, FetchError
from radiocast.domain.raw import SourceBundle
from radiocast.services.fetchers import FetcherSet
from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)

SOURCES = ("k_index", "solar_cycle", "n0nbh", "sidc")

# How often the waiting loop looks at the caller's context.
POLL_SECONDS = 0.1


@dataclass
class FetchCoordinator:
    """
    Runs the four fetchers in parallel and folds their results into one SourceBundle.
    A failing source is logged and left empty; only cancellation aborts the run.
    """
    fetchers: FetcherSet

    def run(self, ctx: RequestContext) -> SourceBundle:
        ctx.check()
        fetch_ctx = ctx.child()
        results: dict[str, object] = {}
        errors: dict[str, str] = {}

        executor = ThreadPoolExecutor(max_workers=len(SOURCES), thread_name_prefix="fetch")
        pending: dict[Future, str] = {}
        try:
            for name in SOURCES:
                fetcher = getattr(self.fetchers, name)
                url = self.fetchers.urls[name]
                pending[executor.submit(fetcher.fetch, fetch_ctx, url)] = name

            while pending:
                if ctx.cancelled():
                    fetch_ctx.cancel()
                    raise ContextCancelledError("fetch cancelled by caller")

                done, _ = wait(list(pending), timeout=POLL_SECONDS, return_when=FIRST_COMPLETED)
                for fut in done:
                    name = pending.pop(fut)
                    try:
                        results[name] = fut.result()
                        logger.info("Fetched %s", name)
                    except ContextCancelledError:
                        fetch_ctx.cancel()
                        raise
                    except FetchError as e:
                        errors[name] = e.code
                        logger.error("Fetch %s failed [%s]: %s", name, e.code, e)
                    except Exception as e:
                        errors[name] = "UNEXPECTED"
                        logger.exception("Fetch %s failed unexpectedly: %s", name, e)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        n0nbh = results.get("n0nbh")
        return SourceBundle(
            k_index=tuple(results.get("k_index") or ()),
            solar_cycle=tuple(results.get("solar_cycle") or ()),
            n0nbh=n0nbh,
            sidc=tuple(results.get("sidc") or ()),
            errors=errors,
        )
