######## raw.py
######## Record types exactly as each upstream feed delivers them.

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class KIndexRecord:
    time_tag: str
    kp_index: float             # estimated_kp, the canonical K
    estimated_kp: float
    kp_raw: int                 # integer kp_index as published
    kp: str
    source: str = "NOAA SWPC"


@dataclass(frozen=True)
class SolarCycleRecord:
    time_tag: str
    solar_flux: float           # f10.7
    sunspot_number: float       # ssn
    solar_flux_adjusted: float  # f10.7_adj
    smoothed_ssn: float = 0.0
    source: str = "NOAA SWPC"


@dataclass(frozen=True)
class N0NBHBand:
    name: str
    day: str = ""
    night: str = ""


@dataclass(frozen=True)
class N0NBHRecord:
    source: str = ""
    updated: str = ""
    solar_flux: str = ""
    a_index: str = ""
    k_index: str = ""
    k_index_nt: str = ""
    xray: str = ""
    sunspots: str = ""
    helium_line: str = ""
    proton_flux: str = ""
    electron_flux: str = ""
    aurora: str = ""
    normalization: str = ""
    lat_degree: str = ""
    solar_wind: str = ""
    magnetic_field: str = ""
    bands: tuple[N0NBHBand, ...] = ()


@dataclass(frozen=True)
class SIDCRecord:
    title: str
    description: str
    published: Optional[datetime]
    year: str = ""
    month: str = ""
    sunspot_value: str = ""
    link: str = ""


@dataclass(frozen=True)
class SourceBundle:
    """What the fetch coordinator hands to the normaliser. Failed sources are empty / None."""
    k_index: tuple[KIndexRecord, ...] = ()
    solar_cycle: tuple[SolarCycleRecord, ...] = ()
    n0nbh: Optional[N0NBHRecord] = None
    sidc: tuple[SIDCRecord, ...] = ()
    errors: dict = field(default_factory=dict)

    def has_core_source(self) -> bool:
        return bool(self.k_index or self.solar_cycle or self.n0nbh is not None)


def record_to_json(record) -> dict:
    d = asdict(record)
    for k, v in d.items():
        if isinstance(v, datetime):
            d[k] = v.isoformat()
    return d


def records_to_json(records) -> list[dict]:
    return [record_to_json(r) for r in records]


def record_from_json(cls, data: dict):
    """Inverse of record_to_json for the flat record types above."""
    if cls is N0NBHRecord:
        bands = tuple(N0NBHBand(**b) for b in data.get("bands") or [])
        return N0NBHRecord(**{**data, "bands": bands})
    if cls is SIDCRecord:
        published = data.get("published")
        return SIDCRecord(**{**data, "published": datetime.fromisoformat(published) if published else None})
    return cls(**data)
