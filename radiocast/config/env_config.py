########## env_config.py

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from radiocast.domain.errors import ConfigError

INI_SECTION = "radiocast"

DEFAULT_NOAA_K_INDEX_URL = "https://services.swpc.noaa.gov/products/noaa-planetary-k-index.json"
DEFAULT_NOAA_SOLAR_URL = "https://services.swpc.noaa.gov/json/solar-cycle/observed-solar-cycle-indices.json"
DEFAULT_N0NBH_URL = "https://www.hamqsl.com/solarxml.php"
DEFAULT_SIDC_URL = "https://www.sidc.be/SILSO/INFO/snmtotcsv.php"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class AppSettings:
    host: str
    port: int
    environment: str

    openai_api_key: str
    openai_model: str
    llm_timeout_seconds: int
    llm_max_tokens: int

    gcp_project_id: str
    gcs_bucket: str
    local_reports_dir: Path

    mockup_mode: bool
    mocks_dir: Path

    noaa_k_index_url: str
    noaa_solar_url: str
    n0nbh_url: str
    sidc_url: str
    fetch_timeout_seconds: int
    fetch_retries: int
    fetch_retry_wait_seconds: float

    generate_api_key: str
    generate_timeout_seconds: int

    log_level: str
    log_format: str

    def validate(self, deployment: str) -> None:
        if not self.mockup_mode and not self.openai_api_key:
            raise ConfigError("OPENAI_API_KEY is required (or set MOCKUP_MODE=true)")
        if deployment == "gcs" and not self.gcs_bucket:
            raise ConfigError("GCS_BUCKET is required for gcs deployment")
        if deployment not in {"local", "gcs"}:
            raise ConfigError(f"Unknown deployment mode: {deployment}")


class EnvConfig:
    """
    Adapter around the process environment plus an optional INI file.
    Lookup order: environment variable, [radiocast] INI key (lower-cased name), default.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None, ini_path: Optional[Path] = None):
        self._env = dict(os.environ if env is None else env)
        self._ini_path = ini_path
        self._cfg = ConfigParser()
        if ini_path is not None:
            read_ok = self._cfg.read(str(ini_path), encoding="utf-8-sig")
            if not read_ok:
                raise ConfigError(f"INI file not found or unreadable: {ini_path}")

    @staticmethod
    def from_env_or_default(env: Optional[Mapping[str, str]] = None) -> "EnvConfig":
        source = os.environ if env is None else env
        ini_raw = (source.get("APP_INI") or "").strip()
        return EnvConfig(env=source, ini_path=Path(ini_raw) if ini_raw else None)

    def _get(self, name: str, default: str = "") -> str:
        raw = self._env.get(name)
        if raw is not None and raw.strip():
            return raw.strip()
        if self._cfg.has_section(INI_SECTION):
            raw = (self._cfg.get(INI_SECTION, name.lower(), fallback="") or "").strip()
            if raw:
                return raw
        return default

    def _get_int(self, name: str, default: int) -> int:
        raw = self._get(name, str(default))
        try:
            return int(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from e

    def _get_float(self, name: str, default: float) -> float:
        raw = self._get(name, str(default))
        try:
            return float(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be a number, got {raw!r}") from e

    def _get_bool(self, name: str, default: bool) -> bool:
        raw = self._get(name, "true" if default else "false").lower()
        if raw in _TRUE:
            return True
        if raw in _FALSE:
            return False
        raise ConfigError(f"{name} must be a boolean, got {raw!r}")

    def load_settings(self) -> AppSettings:
        package_dir = Path(__file__).resolve().parents[1]

        log_format = self._get("LOG_FORMAT", "text").lower()
        if log_format not in {"json", "text"}:
            raise ConfigError(f"LOG_FORMAT must be json or text, got {log_format!r}")

        return AppSettings(
            host=self._get("HOST", "0.0.0.0"),
            port=self._get_int("PORT", 8981),
            environment=self._get("ENVIRONMENT", "development"),
            openai_api_key=self._get("OPENAI_API_KEY"),
            openai_model=self._get("OPENAI_MODEL", "gpt-4.1"),
            llm_timeout_seconds=self._get_int("LLM_TIMEOUT_SECONDS", 60),
            llm_max_tokens=self._get_int("LLM_MAX_TOKENS", 4000),
            gcp_project_id=self._get("GCP_PROJECT_ID"),
            gcs_bucket=self._get("GCS_BUCKET"),
            local_reports_dir=Path(os.path.expanduser(self._get("LOCAL_REPORTS_DIR", "./reports"))),
            mockup_mode=self._get_bool("MOCKUP_MODE", False),
            mocks_dir=Path(self._get("MOCKS_DIR", str(package_dir / "mocks" / "data"))),
            noaa_k_index_url=self._get("NOAA_K_INDEX_URL", DEFAULT_NOAA_K_INDEX_URL),
            noaa_solar_url=self._get("NOAA_SOLAR_URL", DEFAULT_NOAA_SOLAR_URL),
            n0nbh_url=self._get("N0NBH_SOLAR_URL", DEFAULT_N0NBH_URL),
            sidc_url=self._get("SIDC_RSS_URL", DEFAULT_SIDC_URL),
            fetch_timeout_seconds=self._get_int("FETCH_TIMEOUT_SECONDS", 30),
            fetch_retries=self._get_int("FETCH_RETRIES", 3),
            fetch_retry_wait_seconds=self._get_float("FETCH_RETRY_WAIT_SECONDS", 2.0),
            generate_api_key=self._get("GENERATE_API_KEY"),
            generate_timeout_seconds=self._get_int("GENERATE_TIMEOUT_SECONDS", 300),
            log_level=self._get("LOG_LEVEL", "info").upper(),
            log_format=log_format,
        )
