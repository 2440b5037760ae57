from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from radiocast.domain.conditions import BAND_FAMILIES, BandConditionLevel
from radiocast.domain.models import (
    SOURCE_N0NBH,
    SOURCE_NOAA,
    SOURCE_SIDC,
    BandCondition,
    Forecast,
    GeomagData,
    KIndexPoint,
    PropagationObservation,
    SolarData,
    SolarPoint,
    SourceEvent,
)
from radiocast.domain.raw import KIndexRecord, N0NBHRecord, SolarCycleRecord, SourceBundle
from radiocast.utils.timeparse import parse_time

logger = logging.getLogger(__name__)

EVENT_WINDOW = timedelta(hours=24)
_NUMBER = re.compile(r"[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")


def _num(raw: str | None) -> float:
    """First number in an N0NBH text field, 0.0 when there is none."""
    m = _NUMBER.search(raw or "")
    return float(m.group(0)) if m else 0.0


def _tag(value, source: str) -> str:
    return source if value else ""


def _latest(records: Sequence, time_of) -> Optional[object]:
    """Newest record by parsed time; input order breaks ties and covers unparseable tags."""
    if not records:
        return None
    best_idx, best_ts = len(records) - 1, None
    for idx, rec in enumerate(records):
        ts = parse_time(time_of(rec))
        if ts is not None and (best_ts is None or ts >= best_ts):
            best_idx, best_ts = idx, ts
    return records[best_idx]


def _history_k(records: Sequence[KIndexRecord]) -> tuple[KIndexPoint, ...]:
    points = []
    for rec in records:
        ts = parse_time(rec.time_tag)
        if ts is None:
            logger.debug("dropping K-index entry with unparseable time %r", rec.time_tag)
            continue
        points.append(KIndexPoint(timestamp=ts, k_index=rec.kp_index, estimated_kp=rec.estimated_kp, source=rec.source))
    return tuple(sorted(points, key=lambda p: p.timestamp))


def _history_solar(records: Sequence[SolarCycleRecord]) -> tuple[SolarPoint, ...]:
    points = []
    for rec in records:
        ts = parse_time(rec.time_tag)
        if ts is None:
            logger.debug("dropping solar entry with unparseable time %r", rec.time_tag)
            continue
        points.append(
            SolarPoint(
                timestamp=ts,
                flux=rec.solar_flux,
                flux_adjusted=rec.solar_flux_adjusted,
                sunspot=rec.sunspot_number,
                source=rec.source,
            )
        )
    return tuple(sorted(points, key=lambda p: p.timestamp))


def _bands(n0nbh: Optional[N0NBHRecord]) -> dict[str, BandCondition]:
    bands: dict[str, BandCondition] = {}
    if n0nbh is None:
        return bands
    for entry in n0nbh.bands:
        targets = BAND_FAMILIES.get(entry.name.strip().lower())
        if not targets:
            logger.debug("ignoring unknown N0NBH band family %r", entry.name)
            continue
        day = BandConditionLevel.parse(entry.day)
        night = BandConditionLevel.parse(entry.night)
        if BandConditionLevel.UNKNOWN in (day, night):
            logger.warning("N0NBH band %s has incomplete conditions (day=%r night=%r)", entry.name, entry.day, entry.night)
            continue
        for band in targets:
            bands[band] = BandCondition(day_condition=day, night_condition=night)
    return bands


def _solar(latest: Optional[SolarCycleRecord], n0nbh: Optional[N0NBHRecord]) -> SolarData:
    flux, flux_source = 0.0, ""
    if latest is not None and latest.solar_flux > 0:
        flux, flux_source = latest.solar_flux, SOURCE_NOAA
    elif n0nbh is not None and _num(n0nbh.solar_flux) > 0:
        flux, flux_source = _num(n0nbh.solar_flux), SOURCE_N0NBH

    flux_adjusted = latest.solar_flux_adjusted if latest is not None else 0.0
    sunspots = int(round(latest.sunspot_number)) if latest is not None else 0

    n = n0nbh or N0NBHRecord()
    xray = n.xray
    wind = _num(n.solar_wind)
    proton = _num(n.proton_flux)

    return SolarData(
        flux_10_7cm=flux,
        flux_10_7cm_source=flux_source,
        flux_adjusted=flux_adjusted,
        flux_adjusted_source=_tag(flux_adjusted, SOURCE_NOAA),
        sunspot_number=sunspots,
        sunspot_number_source=_tag(sunspots, SOURCE_NOAA),
        xray_class=xray,
        xray_class_source=_tag(xray, SOURCE_N0NBH),
        solar_wind_speed_kms=wind,
        solar_wind_speed_kms_source=_tag(wind, SOURCE_N0NBH),
        proton_flux=proton,
        proton_flux_source=_tag(proton, SOURCE_N0NBH),
        electron_flux=n.electron_flux,
        electron_flux_source=_tag(n.electron_flux, SOURCE_N0NBH),
        helium_line=n.helium_line,
        helium_line_source=_tag(n.helium_line, SOURCE_N0NBH),
        aurora_level=n.aurora,
        aurora_level_source=_tag(n.aurora, SOURCE_N0NBH),
    )


def _geomag(latest_k: Optional[KIndexRecord], n0nbh: Optional[N0NBHRecord]) -> GeomagData:
    k_index = 0.0
    if latest_k is not None:
        k_index = latest_k.estimated_kp if latest_k.estimated_kp > 0 else float(latest_k.kp_raw)

    n = n0nbh or N0NBHRecord()
    a_index = _num(n.a_index)
    field_nt = _num(n.magnetic_field)

    return GeomagData(
        k_index=k_index,
        k_index_source=_tag(k_index, SOURCE_NOAA),
        a_index=a_index,
        a_index_source=_tag(a_index, SOURCE_N0NBH),
        magnetic_field_nt=field_nt,
        magnetic_field_nt_source=_tag(field_nt, SOURCE_N0NBH),
        lat_degree=n.lat_degree,
        lat_degree_source=_tag(n.lat_degree, SOURCE_N0NBH),
    )


def _events(bundle: SourceBundle, now: datetime) -> tuple[SourceEvent, ...]:
    cutoff = now - EVENT_WINDOW
    events = [
        SourceEvent(source=SOURCE_SIDC, type="Solar Event", description=rec.title, timestamp=rec.published)
        for rec in bundle.sidc
        if rec.published is not None and cutoff <= rec.published <= now
    ]
    return tuple(sorted(events, key=lambda e: e.timestamp))


def normalize(bundle: SourceBundle, now: datetime) -> PropagationObservation:
    """
    Merges the four record sets into one observation. Labels and forecast text
    stay empty: the report narrative owns every qualitative judgement.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    latest_solar = _latest(bundle.solar_cycle, lambda r: r.time_tag)
    latest_k = _latest(bundle.k_index, lambda r: r.time_tag)

    return PropagationObservation(
        timestamp=now,
        solar=_solar(latest_solar, bundle.n0nbh),
        geomag=_geomag(latest_k, bundle.n0nbh),
        bands=_bands(bundle.n0nbh),
        forecast=Forecast.empty(now),
        events=_events(bundle, now),
        history_k=_history_k(bundle.k_index),
        history_solar=_history_solar(bundle.solar_cycle),
    )
