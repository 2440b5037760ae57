from __future__ import annotations

from enum import Enum


class BandConditionLevel(str, Enum):
    CLOSED = "Closed"
    POOR = "Poor"
    FAIR = "Fair"
    GOOD = "Good"
    EXCELLENT = "Excellent"
    UNKNOWN = ""

    @classmethod
    def parse(cls, raw: str | None) -> "BandConditionLevel":
        key = (raw or "").strip().lower()
        for level in cls:
            if level.value.lower() == key and level is not cls.UNKNOWN:
                return level
        return cls.UNKNOWN


# The five reportable levels, worst to best.
KNOWN_LEVELS = (
    BandConditionLevel.CLOSED,
    BandConditionLevel.POOR,
    BandConditionLevel.FAIR,
    BandConditionLevel.GOOD,
    BandConditionLevel.EXCELLENT,
)

# Unknown shares Closed's slot: 0 reads as "closed" in the matrix and "no data" in tables.
CONDITION_VALUES = {
    BandConditionLevel.CLOSED: 0,
    BandConditionLevel.POOR: 1,
    BandConditionLevel.FAIR: 2,
    BandConditionLevel.GOOD: 3,
    BandConditionLevel.EXCELLENT: 4,
    BandConditionLevel.UNKNOWN: 0,
}

CONDITION_COLORS = {
    BandConditionLevel.CLOSED: "#343a40",
    BandConditionLevel.POOR: "#dc3545",
    BandConditionLevel.FAIR: "#ffc107",
    BandConditionLevel.GOOD: "#007bff",
    BandConditionLevel.EXCELLENT: "#28a745",
    BandConditionLevel.UNKNOWN: "#343a40",
}


def condition_to_value(raw: str | BandConditionLevel | None) -> int:
    """Total mapping onto 0..4. Unknown input maps to 0."""
    level = raw if isinstance(raw, BandConditionLevel) else BandConditionLevel.parse(raw)
    return CONDITION_VALUES[level]


def condition_color(raw: str | BandConditionLevel | None) -> str:
    level = raw if isinstance(raw, BandConditionLevel) else BandConditionLevel.parse(raw)
    return CONDITION_COLORS[level]


# Display order of bands, used by the normaliser, the prompt and the charts.
BAND_NAMES = ("80m", "40m", "20m", "17m", "15m", "12m", "10m", "6m", "VHF+")

# N0NBH reports bands in families; each family fans out to these bands.
BAND_FAMILIES = {
    "80m-40m": ("80m", "40m"),
    "30m-20m": ("20m",),
    "17m-15m": ("17m", "15m"),
    "12m-10m": ("12m", "10m"),
    "6m": ("6m",),
}
