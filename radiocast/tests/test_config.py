from __future__ import annotations

from pathlib import Path

import pytest

from radiocast.config.env_config import (
    DEFAULT_N0NBH_URL,
    DEFAULT_NOAA_K_INDEX_URL,
    DEFAULT_NOAA_SOLAR_URL,
    DEFAULT_SIDC_URL,
    EnvConfig,
)
from radiocast.domain.errors import ConfigError


def test_defaults_when_environment_is_empty():
    s = EnvConfig(env={}).load_settings()

    assert s.port == 8981
    assert s.host == "0.0.0.0"
    assert s.openai_model == "gpt-4.1"
    assert s.local_reports_dir == Path("./reports")
    assert s.mockup_mode is False
    assert s.noaa_k_index_url == DEFAULT_NOAA_K_INDEX_URL
    assert s.noaa_solar_url == DEFAULT_NOAA_SOLAR_URL
    assert s.n0nbh_url == DEFAULT_N0NBH_URL
    assert s.sidc_url == DEFAULT_SIDC_URL
    assert s.fetch_timeout_seconds == 30
    assert s.fetch_retries == 3
    assert s.fetch_retry_wait_seconds == 2.0
    assert s.llm_timeout_seconds == 60
    assert s.llm_max_tokens == 4000
    assert s.generate_timeout_seconds == 300
    assert s.log_level == "INFO"
    assert s.log_format == "text"
    assert s.mocks_dir.name == "data"


def test_environment_values_are_used():
    s = EnvConfig(env={
        "PORT": "9000",
        "OPENAI_MODEL": "gpt-4o",
        "GCS_BUCKET": "reports-bucket",
        "N0NBH_SOLAR_URL": "https://example.test/solar.xml",
        "LOG_LEVEL": "debug",
        "LOG_FORMAT": "JSON",
    }).load_settings()

    assert s.port == 9000
    assert s.openai_model == "gpt-4o"
    assert s.gcs_bucket == "reports-bucket"
    assert s.n0nbh_url == "https://example.test/solar.xml"
    assert s.log_level == "DEBUG"
    assert s.log_format == "json"


@pytest.mark.parametrize("raw, expected", [
    ("1", True), ("true", True), ("YES", True), ("on", True),
    ("0", False), ("false", False), ("No", False), ("off", False),
])
def test_boolean_spellings(raw, expected):
    assert EnvConfig(env={"MOCKUP_MODE": raw}).load_settings().mockup_mode is expected


def test_invalid_boolean_raises():
    with pytest.raises(ConfigError, match="MOCKUP_MODE"):
        EnvConfig(env={"MOCKUP_MODE": "maybe"}).load_settings()


def test_invalid_integer_names_the_variable():
    with pytest.raises(ConfigError, match="PORT"):
        EnvConfig(env={"PORT": "eighty"}).load_settings()


def test_invalid_log_format_raises():
    with pytest.raises(ConfigError, match="LOG_FORMAT"):
        EnvConfig(env={"LOG_FORMAT": "xml"}).load_settings()


def test_ini_values_fill_in_below_environment(tmp_path: Path):
    ini = tmp_path / "radiocast.ini"
    ini.write_text("[radiocast]\nport = 7000\nopenai_model = gpt-from-ini\n", encoding="utf-8")

    s = EnvConfig(env={"OPENAI_MODEL": "gpt-from-env"}, ini_path=ini).load_settings()

    assert s.port == 7000
    assert s.openai_model == "gpt-from-env"


def test_from_env_or_default_reads_app_ini(tmp_path: Path):
    ini = tmp_path / "radiocast.ini"
    ini.write_text("[radiocast]\ngcs_bucket = from-ini\n", encoding="utf-8")

    s = EnvConfig.from_env_or_default({"APP_INI": str(ini)}).load_settings()

    assert s.gcs_bucket == "from-ini"


def test_missing_ini_file_raises(tmp_path: Path):
    with pytest.raises(ConfigError):
        EnvConfig(env={}, ini_path=tmp_path / "missing.ini")


def test_validate_requires_openai_key_unless_mocked():
    with pytest.raises(ConfigError, match="OPENAI_API_KEY"):
        EnvConfig(env={}).load_settings().validate("local")

    EnvConfig(env={"MOCKUP_MODE": "true"}).load_settings().validate("local")


def test_validate_requires_bucket_for_gcs():
    s = EnvConfig(env={"OPENAI_API_KEY": "sk-test"}).load_settings()
    with pytest.raises(ConfigError, match="GCS_BUCKET"):
        s.validate("gcs")
    s.validate("local")
