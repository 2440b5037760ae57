from __future__ import annotations

import dataclasses
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from radiocast.domain.errors import MockDataError
from radiocast.domain.models import PropagationObservation, observation_from_json
from radiocast.domain.raw import (
    KIndexRecord,
    N0NBHRecord,
    SIDCRecord,
    SolarCycleRecord,
    SourceBundle,
    record_from_json,
)

logger = logging.getLogger(__name__)

MOCKS_DIR = Path(__file__).resolve().parents[1] / "mocks" / "data"


@dataclass(frozen=True)
class MockBundle:
    observation: PropagationObservation
    raw: SourceBundle
    markdown: str
    sun_gif: Optional[bytes]


@dataclass
class MockService:
    """
    Mock mode: a previously captured bundle stands in for the fetchers,
    the normaliser, the LLM and the animation builder.
    """
    mocks_dir: Path = MOCKS_DIR

    def _read(self, name: str) -> bytes:
        path = self.mocks_dir / name
        try:
            return path.read_bytes()
        except OSError as e:
            raise MockDataError(f"failed to read mock file {path}: {e}") from e

    def _json(self, name: str):
        try:
            return json.loads(self._read(name).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MockDataError(f"failed to parse mock file {name}: {e}") from e

    def load_observation(self, now: datetime) -> PropagationObservation:
        try:
            obs = observation_from_json(self._json("normalized_data.json"))
        except (KeyError, TypeError, ValueError) as e:
            raise MockDataError(f"mock observation is malformed: {e}") from e
        return dataclasses.replace(obs, timestamp=now)

    def load_sources(self) -> SourceBundle:
        try:
            return SourceBundle(
                k_index=tuple(record_from_json(KIndexRecord, r) for r in self._json("noaa_k_index.json")),
                solar_cycle=tuple(record_from_json(SolarCycleRecord, r) for r in self._json("noaa_solar.json")),
                n0nbh=record_from_json(N0NBHRecord, self._json("n0nbh_data.json")),
                sidc=tuple(record_from_json(SIDCRecord, r) for r in self._json("sidc_data.json")),
            )
        except (TypeError, ValueError) as e:
            raise MockDataError(f"mock source data does not match the record types: {e}") from e

    def load_markdown(self) -> str:
        return self._read("llm_response.md").decode("utf-8")

    def load_sun_gif(self) -> Optional[bytes]:
        try:
            return self._read("sun_72h.gif")
        except MockDataError as e:
            logger.warning("Mock sun animation unavailable: %s", e)
            return None

    def load(self, now: datetime) -> MockBundle:
        logger.info("Loading mock bundle from %s", self.mocks_dir)
        return MockBundle(
            observation=self.load_observation(now),
            raw=self.load_sources(),
            markdown=self.load_markdown(),
            sun_gif=self.load_sun_gif(),
        )
