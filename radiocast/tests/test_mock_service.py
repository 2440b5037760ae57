from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from radiocast.domain.errors import MockDataError
from radiocast.services.mock_service import MOCKS_DIR, MockService
from radiocast.services.normalizer import normalize
from radiocast.tests.fakes import NOW


@pytest.fixture
def mocks_copy(tmp_path: Path) -> Path:
    target = tmp_path / "mocks"
    shutil.copytree(MOCKS_DIR, target)
    return target


def test_bundled_mock_data_loads():
    bundle = MockService().load(NOW)

    assert bundle.observation.timestamp == NOW
    assert bundle.observation.geomag.k_index == 2.33
    assert bundle.observation.solar.flux_10_7cm == 152.0
    assert bundle.markdown.lstrip().startswith("#")
    assert bundle.sun_gif.startswith(b"GIF8")
    assert len(bundle.raw.k_index) == 3
    assert bundle.raw.n0nbh is not None
    assert bundle.raw.n0nbh.bands


def test_mock_sources_normalise_cleanly():
    raw = MockService().load_sources()
    obs = normalize(raw, NOW)

    assert obs.geomag.k_index == 2.33
    assert {"80m", "40m", "20m", "6m"} <= set(obs.bands)


def test_missing_gif_is_tolerated(mocks_copy: Path):
    (mocks_copy / "sun_72h.gif").unlink()

    assert MockService(mocks_dir=mocks_copy).load(NOW).sun_gif is None


def test_missing_observation_is_an_error(mocks_copy: Path):
    (mocks_copy / "normalized_data.json").unlink()

    with pytest.raises(MockDataError):
        MockService(mocks_dir=mocks_copy).load(NOW)


def test_malformed_json_is_an_error(mocks_copy: Path):
    (mocks_copy / "noaa_solar.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(MockDataError):
        MockService(mocks_dir=mocks_copy).load_sources()


def test_unexpected_fields_are_an_error(mocks_copy: Path):
    (mocks_copy / "noaa_k_index.json").write_text('[{"time_tag": "x", "surprise": 1}]', encoding="utf-8")

    with pytest.raises(MockDataError):
        MockService(mocks_dir=mocks_copy).load_sources()
