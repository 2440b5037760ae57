from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from radiocast.app_factory import create_app
from radiocast.config.env_config import AppSettings, EnvConfig
from radiocast.domain.errors import RadiocastError
from radiocast.logging_setup import setup_logging
from radiocast.repositories.factory import DEPLOYMENTS
from radiocast.services.charts import CHART_BUILDERS, build_all_charts
from radiocast.services.mock_service import MockService
from radiocast.services.template_composer import TemplateComposer

logger = logging.getLogger("radiocast")

CHART_TEST_FILE = "chart_test.html"


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="radiocast", description="Daily HF/VHF propagation report service")
    p.add_argument("--deployment", "-deployment", choices=DEPLOYMENTS, default="local",
                   help="storage back-end: local directory tree or GCS bucket")
    p.add_argument("--test-charts", "-test-charts", action="store_true",
                   help="render every chart over the bundled dataset and exit")
    return p.parse_args(argv)


def write_chart_test(settings: AppSettings) -> Path:
    """Every chart over the mock observation, one section each."""
    mock = MockService(mocks_dir=settings.mocks_dir)
    now = datetime.now(timezone.utc)
    obs = mock.load_observation(now)
    raw = mock.load_sources()

    sections = [f"## {name}\n\n{{{{.{name}}}}}" for name in CHART_BUILDERS]
    markdown_text = "# Chart Test\n\n" + "\n\n".join(sections)
    html = TemplateComposer().compose(markdown_text, build_all_charts(obs, raw), obs, generated_at=now)

    out = settings.local_reports_dir / CHART_TEST_FILE
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(html, encoding="utf-8")
    return out


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        settings = EnvConfig.from_env_or_default().load_settings()
    except RadiocastError as e:
        print(f"radiocast: configuration error: {e}", file=sys.stderr)
        return 1
    setup_logging(settings.log_level, settings.log_format)

    if args.test_charts:
        try:
            out = write_chart_test(settings)
        except (RadiocastError, OSError) as e:
            logger.error("Chart test failed: %s", e)
            return 1
        logger.info("Chart test written to %s", out)
        return 0

    try:
        app = create_app(settings, deployment=args.deployment)
    except RadiocastError as e:
        logger.error("Startup failed [%s]: %s", e.code, e)
        return 1

    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"], threaded=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
