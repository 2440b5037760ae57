from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import requests
from urllib3.util.retry import Retry

from radiocast.adapters.http_session import build_retry, build_session, get_with_retry
from radiocast.domain.errors import (
    ContextCancelledError,
    EmptyResponseError,
    HttpStatusError,
    ParseError,
    TransportError,
)
from radiocast.domain.raw import (
    KIndexRecord,
    N0NBHBand,
    N0NBHRecord,
    SIDCRecord,
    SolarCycleRecord,
)
from radiocast.utils.context import RequestContext

logger = logging.getLogger(__name__)

QUIET_SUN_FLUX = 100.0
K_INDEX_WINDOW = 24
SIDC_TAIL_LINES = 100


@dataclass
class SourceFetcher:
    """
    Strategy interface: one upstream feed, one wire format.
    Subclasses implement parse(); transport and error mapping live here.
    """
    session: requests.Session
    timeout_seconds: float = 30.0
    retry: Optional[Retry] = None

    name = "source"
    accept = "*/*"

    def fetch(self, ctx: RequestContext, url: str):
        body = self._get(ctx, url)
        return self.parse(body)

    def parse(self, body: bytes):
        raise NotImplementedError

    def _get(self, ctx: RequestContext, url: str) -> bytes:
        logger.debug("GET %s (%s)", url, self.name)
        try:
            resp = get_with_retry(
                self.session,
                ctx,
                url,
                retry=self.retry,
                budget=self.timeout_seconds,
                headers={"Accept": self.accept},
            )
        except requests.RequestException as e:
            raise TransportError(self.name, str(e)) from e

        if ctx.cancelled():
            raise ContextCancelledError(f"{self.name} fetch cancelled")
        if resp.status_code != 200:
            raise HttpStatusError(self.name, resp.status_code)
        return resp.content or b""


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _load_json(source: str, body: bytes) -> Any:
    if not body.strip():
        raise EmptyResponseError(source, "empty body")
    try:
        return json.loads(body)
    except ValueError as e:
        raise ParseError(source, f"invalid JSON: {e}") from e


@dataclass
class KIndexFetcher(SourceFetcher):
    """Planetary Kp. Keeps the last 24 entries; estimated_kp becomes the canonical K."""
    name = "noaa_k_index"
    accept = "application/json"

    def parse(self, body: bytes) -> list[KIndexRecord]:
        data = _load_json(self.name, body)
        if not isinstance(data, list):
            raise ParseError(self.name, "expected a JSON array")

        records: list[KIndexRecord] = []
        rows = _table_rows(data) if data and _is_header(data[0]) else data
        for row in rows[-K_INDEX_WINDOW:]:
            if not isinstance(row, dict):
                raise ParseError(self.name, "expected objects in the array")
            estimated = _as_float(row.get("estimated_kp"), _as_float(row.get("Kp")))
            kp_raw = row.get("kp_index")
            records.append(
                KIndexRecord(
                    time_tag=str(row.get("time_tag") or ""),
                    kp_index=estimated,
                    estimated_kp=estimated,
                    kp_raw=int(_as_float(kp_raw, round(estimated))),
                    kp=str(row.get("kp") or ""),
                )
            )

        if not records:
            raise EmptyResponseError(self.name, "no K-index records")
        return records


def _is_header(row: Any) -> bool:
    return isinstance(row, list) and bool(row) and all(isinstance(c, str) for c in row) and "time_tag" in row


def _table_rows(data: list) -> list[dict]:
    """The products/ endpoints publish a header row followed by value rows."""
    header = data[0]
    return [dict(zip(header, row)) for row in data[1:] if isinstance(row, list)]


@dataclass
class SolarCycleFetcher(SourceFetcher):
    """Monthly F10.7 and SSN with the documented sentinel handling."""
    name = "noaa_solar"
    accept = "application/json"

    def parse(self, body: bytes) -> list[SolarCycleRecord]:
        data = _load_json(self.name, body)
        if not isinstance(data, list):
            raise ParseError(self.name, "expected a JSON array")

        by_tag: dict[str, SolarCycleRecord] = {}
        for row in data:
            if not isinstance(row, dict):
                raise ParseError(self.name, "expected objects in the array")
            flux = _as_float(row.get("f10.7"), -1.0)
            ssn = _as_float(row.get("ssn"), -1.0)
            if flux < 0 and ssn < 0:
                continue
            if flux < 0:
                flux = QUIET_SUN_FLUX
            if ssn < 0:
                ssn = 0.0

            time_tag = str(row.get("time-tag") or row.get("time_tag") or "")
            # later duplicates win
            by_tag[time_tag] = SolarCycleRecord(
                time_tag=time_tag,
                solar_flux=flux,
                sunspot_number=ssn,
                solar_flux_adjusted=_as_float(row.get("f10.7_adj"), flux),
                smoothed_ssn=_as_float(row.get("smoothed_ssn")),
            )

        if not by_tag:
            raise EmptyResponseError(self.name, "no usable solar-cycle records")
        return list(by_tag.values())


_N0NBH_FIELDS = {
    "source": "source",
    "updated": "updated",
    "solarflux": "solar_flux",
    "aindex": "a_index",
    "kindex": "k_index",
    "kindexnt": "k_index_nt",
    "xray": "xray",
    "sunspots": "sunspots",
    "heliumline": "helium_line",
    "protonflux": "proton_flux",
    "electonflux": "electron_flux",
    "aurora": "aurora",
    "normalization": "normalization",
    "latdegree": "lat_degree",
    "solarwind": "solar_wind",
    "magneticfield": "magnetic_field",
}


@dataclass
class N0NBHFetcher(SourceFetcher):
    """hamqsl.com solar XML: scalar conditions plus day/night band entries."""
    name = "n0nbh"
    accept = "application/xml"

    def parse(self, body: bytes) -> N0NBHRecord:
        if not body.strip():
            raise EmptyResponseError(self.name, "empty body")
        try:
            root = ET.fromstring(body)
        except ET.ParseError as e:
            raise ParseError(self.name, f"invalid XML: {e}") from e

        solardata = root if root.tag == "solardata" else root.find("solardata")
        if solardata is None:
            raise ParseError(self.name, "missing <solardata> element")

        values = {}
        for tag, attr in _N0NBH_FIELDS.items():
            el = solardata.find(tag)
            values[attr] = (el.text or "").strip() if el is not None else ""

        collapsed: dict[str, dict[str, str]] = {}
        for band in solardata.findall("calculatedconditions/band"):
            band_name = (band.get("name") or "").strip()
            if not band_name:
                continue
            slot = collapsed.setdefault(band_name, {"day": "", "night": ""})
            period = (band.get("time") or "").strip().lower()
            if period in slot:
                slot[period] = (band.text or "").strip()

        if not any(values.values()) and not collapsed:
            raise EmptyResponseError(self.name, "no solar data in document")

        bands = tuple(N0NBHBand(name=n, day=v["day"], night=v["night"]) for n, v in collapsed.items())
        return N0NBHRecord(bands=bands, **values)


@dataclass
class SIDCFetcher(SourceFetcher):
    """SILSO monthly sunspot CSV (semicolon separated)."""
    name = "sidc"
    accept = "text/csv, text/plain"
    tail_lines: int = SIDC_TAIL_LINES

    def parse(self, body: bytes) -> list[SIDCRecord]:
        try:
            text = body.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise ParseError(self.name, f"body is not UTF-8: {e}") from e

        lines = [ln.strip() for ln in text.splitlines()]
        lines = [ln for ln in lines if ln and not ln.startswith("#")]

        records: list[SIDCRecord] = []
        for line in lines[-self.tail_lines:]:
            parts = [p.strip() for p in line.split(";")]
            if len(parts) < 4:
                continue
            year, month, ssn = parts[0], parts[1], parts[3]
            published = _month_start(year, month)
            if published is None:
                logger.debug("sidc: skipping line with bad date: %r", line)
                continue
            records.append(
                SIDCRecord(
                    title=f"Monthly Sunspot Number: {ssn}",
                    description=f"Date: {year}-{month}, SSN: {ssn}",
                    published=published,
                    year=year,
                    month=month,
                    sunspot_value=ssn,
                )
            )

        if not records:
            raise EmptyResponseError(self.name, "no sunspot records")
        return records


def _month_start(year: str, month: str) -> Optional[datetime]:
    try:
        return datetime(int(year), int(month), 1, tzinfo=timezone.utc)
    except ValueError:
        return None


@dataclass
class FetcherSet:
    """The four fetchers and their URLs, as handed to the coordinator."""
    k_index: SourceFetcher
    solar_cycle: SourceFetcher
    n0nbh: SourceFetcher
    sidc: SourceFetcher
    urls: dict = field(default_factory=dict)

    @staticmethod
    def from_settings(settings, session: Optional[requests.Session] = None) -> "FetcherSet":
        session = session or build_session()
        retry = build_retry(settings.fetch_retries, settings.fetch_retry_wait_seconds)
        timeout = settings.fetch_timeout_seconds
        return FetcherSet(
            k_index=KIndexFetcher(session=session, timeout_seconds=timeout, retry=retry),
            solar_cycle=SolarCycleFetcher(session=session, timeout_seconds=timeout, retry=retry),
            n0nbh=N0NBHFetcher(session=session, timeout_seconds=timeout, retry=retry),
            sidc=SIDCFetcher(session=session, timeout_seconds=timeout, retry=retry),
            urls={
                "k_index": settings.noaa_k_index_url,
                "solar_cycle": settings.noaa_solar_url,
                "n0nbh": settings.n0nbh_url,
                "sidc": settings.sidc_url,
            },
        )
