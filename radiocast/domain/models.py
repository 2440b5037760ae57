######## models.py
########

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

from radiocast.domain.conditions import BAND_NAMES, BandConditionLevel
from radiocast.utils.timeparse import format_rfc3339, parse_time

SOURCE_NOAA = "NOAA SWPC"
SOURCE_N0NBH = "N0NBH"
SOURCE_SIDC = "SIDC"


@dataclass(frozen=True)
class SolarData:
    flux_10_7cm: float = 0.0
    flux_10_7cm_source: str = ""
    flux_adjusted: float = 0.0
    flux_adjusted_source: str = ""
    sunspot_number: int = 0
    sunspot_number_source: str = ""
    xray_class: str = ""
    xray_class_source: str = ""
    solar_wind_speed_kms: float = 0.0
    solar_wind_speed_kms_source: str = ""
    proton_flux: float = 0.0
    proton_flux_source: str = ""
    electron_flux: str = ""
    electron_flux_source: str = ""
    helium_line: str = ""
    helium_line_source: str = ""
    aurora_level: str = ""
    aurora_level_source: str = ""
    activity_label: str = ""


@dataclass(frozen=True)
class GeomagData:
    k_index: float = 0.0
    k_index_source: str = ""
    a_index: float = 0.0
    a_index_source: str = ""
    magnetic_field_nt: float = 0.0
    magnetic_field_nt_source: str = ""
    lat_degree: str = ""
    lat_degree_source: str = ""
    activity_label: str = ""
    conditions_label: str = ""


@dataclass(frozen=True)
class BandCondition:
    day_condition: BandConditionLevel
    night_condition: BandConditionLevel

    def condition_at(self, hour: int) -> BandConditionLevel:
        return self.day_condition if 6 <= hour < 18 else self.night_condition


@dataclass(frozen=True)
class DayForecast:
    date: datetime
    k_index_forecast: str = ""
    solar_activity: str = ""
    hf_conditions: str = ""
    vhf_conditions: str = ""
    best_bands: Tuple[str, ...] = ()
    worst_bands: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Forecast:
    today: DayForecast
    tomorrow: DayForecast
    day_after: DayForecast
    outlook: str = ""
    warnings: Tuple[str, ...] = ()

    @staticmethod
    def empty(start: datetime) -> "Forecast":
        return Forecast(
            today=DayForecast(date=start),
            tomorrow=DayForecast(date=start + timedelta(hours=24)),
            day_after=DayForecast(date=start + timedelta(hours=48)),
        )

    def days(self) -> Tuple[DayForecast, DayForecast, DayForecast]:
        return (self.today, self.tomorrow, self.day_after)


@dataclass(frozen=True)
class SourceEvent:
    source: str
    type: str
    description: str
    timestamp: datetime
    severity: str = ""
    impact: str = ""


@dataclass(frozen=True)
class KIndexPoint:
    timestamp: datetime
    k_index: float
    estimated_kp: float
    source: str


@dataclass(frozen=True)
class SolarPoint:
    timestamp: datetime
    flux: float
    flux_adjusted: float
    sunspot: float
    source: str


@dataclass(frozen=True)
class PropagationObservation:
    timestamp: datetime
    solar: SolarData
    geomag: GeomagData
    bands: Mapping[str, BandCondition]
    forecast: Forecast
    events: Tuple[SourceEvent, ...] = ()
    history_k: Tuple[KIndexPoint, ...] = ()
    history_solar: Tuple[SolarPoint, ...] = ()

    def __post_init__(self) -> None:
        # read-only view, so the band table cannot change after normalisation
        object.__setattr__(self, "bands", MappingProxyType(dict(self.bands)))

    def provenance(self) -> Iterator[tuple[str, object, str]]:
        """Yields (field path, value, source tag) for every source-tagged scalar."""
        for section_name, section in (("solar", self.solar), ("geomag", self.geomag)):
            names = {f.name for f in fields(section)}
            for name in sorted(names):
                tag = f"{name}_source"
                if tag in names:
                    yield f"{section_name}.{name}", getattr(section, name), getattr(section, tag)

    def data_points(self) -> int:
        return len(self.history_k) + len(self.history_solar) + len(self.events)


# -----------------------------
# JSON (normalized_data.json)
# -----------------------------
def _ts(dt: Optional[datetime]) -> str:
    return format_rfc3339(dt) if dt else ""


def _day_to_json(d: DayForecast) -> dict:
    return {
        "date": _ts(d.date),
        "k_index_forecast": d.k_index_forecast,
        "solar_activity": d.solar_activity,
        "hf_conditions": d.hf_conditions,
        "vhf_conditions": d.vhf_conditions,
        "best_bands": list(d.best_bands),
        "worst_bands": list(d.worst_bands),
    }


def observation_to_json(obs: PropagationObservation) -> dict:
    return {
        "timestamp": _ts(obs.timestamp),
        "solar": {f.name: getattr(obs.solar, f.name) for f in fields(obs.solar)},
        "geomag": {f.name: getattr(obs.geomag, f.name) for f in fields(obs.geomag)},
        "bands": {
            name: {"day_condition": obs.bands[name].day_condition.value, "night_condition": obs.bands[name].night_condition.value}
            for name in BAND_NAMES
            if name in obs.bands
        },
        "forecast": {
            "today": _day_to_json(obs.forecast.today),
            "tomorrow": _day_to_json(obs.forecast.tomorrow),
            "day_after": _day_to_json(obs.forecast.day_after),
            "outlook": obs.forecast.outlook,
            "warnings": list(obs.forecast.warnings),
        },
        "events": [
            {
                "source": e.source,
                "type": e.type,
                "severity": e.severity,
                "description": e.description,
                "timestamp": _ts(e.timestamp),
                "impact": e.impact,
            }
            for e in obs.events
        ],
        "history_k": [
            {"timestamp": _ts(p.timestamp), "k_index": p.k_index, "estimated_kp": p.estimated_kp, "source": p.source}
            for p in obs.history_k
        ],
        "history_solar": [
            {
                "timestamp": _ts(p.timestamp),
                "flux": p.flux,
                "flux_adjusted": p.flux_adjusted,
                "sunspot": p.sunspot,
                "source": p.source,
            }
            for p in obs.history_solar
        ],
    }


def observation_to_bytes(obs: PropagationObservation) -> bytes:
    return json.dumps(observation_to_json(obs), indent=2, ensure_ascii=False).encode("utf-8")


def _day_from_json(d: dict) -> DayForecast:
    return DayForecast(
        date=parse_time(d.get("date")),
        k_index_forecast=d.get("k_index_forecast", ""),
        solar_activity=d.get("solar_activity", ""),
        hf_conditions=d.get("hf_conditions", ""),
        vhf_conditions=d.get("vhf_conditions", ""),
        best_bands=tuple(d.get("best_bands") or ()),
        worst_bands=tuple(d.get("worst_bands") or ()),
    )


def observation_from_json(data: dict) -> PropagationObservation:
    f = data.get("forecast") or {}
    return PropagationObservation(
        timestamp=parse_time(data.get("timestamp")),
        solar=SolarData(**(data.get("solar") or {})),
        geomag=GeomagData(**(data.get("geomag") or {})),
        bands={
            name: BandCondition(
                day_condition=BandConditionLevel.parse(b.get("day_condition")),
                night_condition=BandConditionLevel.parse(b.get("night_condition")),
            )
            for name, b in (data.get("bands") or {}).items()
        },
        forecast=Forecast(
            today=_day_from_json(f.get("today") or {}),
            tomorrow=_day_from_json(f.get("tomorrow") or {}),
            day_after=_day_from_json(f.get("day_after") or {}),
            outlook=f.get("outlook", ""),
            warnings=tuple(f.get("warnings") or ()),
        ),
        events=tuple(
            SourceEvent(
                source=e.get("source", ""),
                type=e.get("type", ""),
                severity=e.get("severity", ""),
                description=e.get("description", ""),
                timestamp=parse_time(e.get("timestamp")),
                impact=e.get("impact", ""),
            )
            for e in data.get("events") or []
        ),
        history_k=tuple(
            KIndexPoint(parse_time(p["timestamp"]), p["k_index"], p["estimated_kp"], p.get("source", ""))
            for p in data.get("history_k") or []
        ),
        history_solar=tuple(
            SolarPoint(parse_time(p["timestamp"]), p["flux"], p["flux_adjusted"], p["sunspot"], p.get("source", ""))
            for p in data.get("history_solar") or []
        ),
    )
