from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from flask import Flask

from radiocast.adapters.helioviewer import Animator, create_animator
from radiocast.adapters.llm_openai import ChatClient, OpenAIChatClient
from radiocast.config.env_config import AppSettings, EnvConfig
from radiocast.domain.errors import StorageError
from radiocast.logging_setup import setup_logging
from radiocast.repositories.factory import create_storage
from radiocast.repositories.storage import StorageBackend
from radiocast.services.fetch_coordinator import FetchCoordinator
from radiocast.services.fetchers import FetcherSet
from radiocast.services.llm_service import LLMService
from radiocast.services.mock_service import MockService
from radiocast.services.report_service import ReportService, utc_now
from radiocast.services.template_composer import TemplateComposer
from radiocast.web.routes import create_blueprint

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"
STATIC_ASSETS = ("styles.css", "background.png")


def upload_static_assets(storage: StorageBackend, static_dir: Path = STATIC_DIR) -> int:
    """Copies the shared report assets to storage under static/. Missing files are skipped."""
    uploaded = 0
    for name in STATIC_ASSETS:
        path = static_dir / name
        if not path.is_file():
            logger.warning("Static asset %s not found, skipping upload", path)
            continue
        try:
            storage.store(f"static/{name}", path.read_bytes())
            uploaded += 1
        except StorageError as e:
            logger.warning("Uploading static asset %s failed: %s", name, e)
    return uploaded


def build_report_service(
    settings: AppSettings,
    storage: StorageBackend,
    *,
    llm: Optional[ChatClient] = None,
    fetchers: Optional[FetcherSet] = None,
    animation: Optional[Animator] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> ReportService:
    composer = TemplateComposer()
    if settings.mockup_mode:
        logger.info("Mockup mode: using bundled mock data from %s", settings.mocks_dir)
        return ReportService(
            storage=storage,
            composer=composer,
            mock=MockService(mocks_dir=settings.mocks_dir),
            clock=clock or utc_now,
        )

    chat = llm or OpenAIChatClient(
        api_key=settings.openai_api_key,
        model=settings.openai_model,
        timeout_seconds=settings.llm_timeout_seconds,
        max_tokens=settings.llm_max_tokens,
    )
    return ReportService(
        storage=storage,
        composer=composer,
        coordinator=FetchCoordinator(fetchers or FetcherSet.from_settings(settings)),
        llm=LLMService(chat=chat),
        animator=animation if animation is not None else create_animator(),
        clock=clock or utc_now,
        llm_timeout_seconds=settings.llm_timeout_seconds,
    )


def create_app(
    settings: Optional[AppSettings] = None,
    *,
    deployment: str = "local",
    storage: Optional[StorageBackend] = None,
    llm: Optional[ChatClient] = None,
    fetchers: Optional[FetcherSet] = None,
    animation: Optional[Animator] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Flask:
    if settings is None:
        settings = EnvConfig.from_env_or_default().load_settings()
        setup_logging(settings.log_level, settings.log_format)
    settings.validate(deployment)

    storage = storage or create_storage(deployment, settings)
    upload_static_assets(storage)

    report_service = build_report_service(
        settings,
        storage,
        llm=llm,
        fetchers=fetchers,
        animation=animation,
        clock=clock,
    )

    app = Flask(__name__)
    app.register_blueprint(create_blueprint(report_service, storage, settings))

    app.config["HOST"] = settings.host
    app.config["PORT"] = settings.port
    app.config["DEBUG"] = settings.environment == "development" and settings.log_level == "DEBUG"
    app.extensions["radiocast"] = {"storage": storage, "report_service": report_service, "settings": settings}

    logger.info(
        "radiocast app ready (deployment=%s, storage=%s, mock=%s)",
        deployment,
        storage.name,
        settings.mockup_mode,
    )
    return app
