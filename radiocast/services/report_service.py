from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from radiocast.adapters.helioviewer import Animator
from radiocast.domain.errors import (
    AnimationError,
    BusyError,
    ContextCancelledError,
    StorageError,
    StorageWriteError,
)
from radiocast.domain.models import PropagationObservation, observation_to_bytes
from radiocast.domain.raw import SourceBundle, record_to_json, records_to_json
from radiocast.repositories.storage import REPORT_INDEX, StorageBackend, folder_path
from radiocast.services.charts import build_all_charts
from radiocast.services.fetch_coordinator import FetchCoordinator
from radiocast.services.llm_service import LLMService, Prompts
from radiocast.services.mock_service import MockService
from radiocast.services.normalizer import normalize
from radiocast.services.template_composer import SUN_GIF_NAME, TemplateComposer, sun_gif_html
from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)

REQUIRED_FILES = (REPORT_INDEX, "normalized_data.json", "llm_response.md")

# Time kept back from the animation for charts, composing and storing.
ANIMATION_HEADROOM_SECONDS = 15.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _json_bytes(payload) -> bytes:
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


@dataclass(frozen=True)
class GenerationResult:
    folder_path: str
    timestamp: datetime
    data_points: int
    files: tuple[str, ...]

    @property
    def report_key(self) -> str:
        return f"{self.folder_path}/{REPORT_INDEX}"


@dataclass
class ReportService:
    """
    Runs one generation end to end: sources -> observation -> narrative ->
    charts -> HTML -> bundle in storage. One generation at a time per process;
    a concurrent call gets BusyError instead of waiting.
    """
    storage: StorageBackend
    composer: TemplateComposer
    coordinator: Optional[FetchCoordinator] = None
    llm: Optional[LLMService] = None
    mock: Optional[MockService] = None
    animator: Optional[Animator] = None
    clock: Callable[[], datetime] = utc_now
    llm_timeout_seconds: float = 60.0
    animation_timeout_seconds: float = 120.0
    animation_headroom_seconds: float = ANIMATION_HEADROOM_SECONDS
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @property
    def mock_mode(self) -> bool:
        return self.mock is not None

    def busy(self) -> bool:
        return self._lock.locked()

    def generate(self, ctx: Optional[RequestContext] = None) -> GenerationResult:
        if not self._lock.acquire(blocking=False):
            raise BusyError("a report generation is already running")
        try:
            return self._generate(ctx or RequestContext.background())
        finally:
            self._lock.release()

    def _generate(self, ctx: RequestContext) -> GenerationResult:
        ts = self.clock()
        path = folder_path(ts)
        logger.info("Generating report %s (mock=%s)", path, self.mock_mode)

        prompts: Optional[Prompts] = None
        if self.mock is not None:
            bundle = self.mock.load(ts)
            obs, raw, markdown_text, gif = bundle.observation, bundle.raw, bundle.markdown, bundle.sun_gif
        else:
            if self.coordinator is None or self.llm is None:
                raise RuntimeError("live mode needs a fetch coordinator and an LLM service")
            raw = self.coordinator.run(ctx)
            if raw.errors:
                logger.warning("Partial source data, failed sources: %s", raw.errors)
            obs = normalize(raw, ts)
            prompts = self.llm.build_prompts(obs, raw)
            markdown_text = self.llm.complete(prompts, ctx.child(self.llm_timeout_seconds))
            gif = self._build_animation(ctx, ts)

        ctx.check()
        charts = build_all_charts(obs, raw)
        html = self.composer.compose(
            markdown_text,
            charts,
            obs,
            sun_gif=sun_gif_html(path) if gif else "",
            generated_at=ts,
        )

        files = self._bundle(html, obs, markdown_text, raw, prompts, gif)
        stored = self._store(ctx, path, files)
        logger.info("Report %s stored (%d files)", path, len(stored))
        return GenerationResult(
            folder_path=path,
            timestamp=ts,
            data_points=obs.data_points(),
            files=tuple(stored),
        )

    def _build_animation(self, ctx: RequestContext, ts: datetime) -> Optional[bytes]:
        if self.animator is None:
            return None
        budget = self.animation_timeout_seconds
        left = ctx.remaining()
        if left is not None:
            budget = min(budget, left - self.animation_headroom_seconds)
            if budget <= 0:
                logger.warning("Sun animation skipped: only %.1fs left for the report", left)
                return None

        try:
            return self.animator.build(ctx.child(budget), ts)
        except ContextCancelledError:
            if ctx.cancelled():
                raise
            logger.warning("Sun animation skipped: not done within %.1fs", budget)
            return None
        except (AnimationError, OSError) as e:
            logger.warning("Sun animation skipped: %s", e)
            return None

    def _bundle(
        self,
        html: str,
        obs: PropagationObservation,
        markdown_text: str,
        raw: Optional[SourceBundle],
        prompts: Optional[Prompts],
        gif: Optional[bytes],
    ) -> dict[str, bytes]:
        files: dict[str, bytes] = {
            REPORT_INDEX: html.encode("utf-8"),
            "normalized_data.json": observation_to_bytes(obs),
            "llm_response.md": markdown_text.encode("utf-8"),
        }

        optional = {}
        if raw is not None:
            optional["noaa_k_index.json"] = lambda: _json_bytes(records_to_json(raw.k_index))
            optional["noaa_solar.json"] = lambda: _json_bytes(records_to_json(raw.solar_cycle))
            optional["n0nbh_data.json"] = lambda: _json_bytes(record_to_json(raw.n0nbh) if raw.n0nbh else None)
            optional["sidc_data.json"] = lambda: _json_bytes(records_to_json(raw.sidc))
        if prompts is not None:
            optional["llm_prompt.txt"] = lambda: prompts.user.encode("utf-8")
            optional["system_prompt.txt"] = lambda: prompts.system.encode("utf-8")

        for name, render in optional.items():
            try:
                files[name] = render()
            except (TypeError, ValueError) as e:
                logger.warning("Bundle file %s skipped: %s", name, e)

        if gif:
            files[SUN_GIF_NAME] = gif
        return files

    def _store(self, ctx: RequestContext, path: str, files: dict[str, bytes]) -> list[str]:
        missing = [name for name in REQUIRED_FILES if not files.get(name)]
        if missing:
            raise StorageWriteError(f"bundle is missing required files: {', '.join(missing)}")

        stored: list[str] = []
        self.storage.create_dir(path)
        for name, data in files.items():
            ctx.check()
            key = f"{path}/{name}"
            try:
                self.storage.store(key, data)
            except StorageError as e:
                if name in REQUIRED_FILES:
                    raise StorageWriteError(f"failed to store {key}: {e}") from e
                logger.warning("Optional file %s not stored: %s", key, e)
                continue
            stored.append(key)
        return stored
