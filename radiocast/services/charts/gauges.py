from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional

from radiocast.domain.models import PropagationObservation
from radiocast.services.charts.snippet import ChartSnippet, render_snippet, require_observation

K_INDEX_COLORS = [[0.22, "#28a745"], [0.44, "#ffc107"], [0.67, "#fd7e14"], [0.89, "#dc3545"], [1.0, "#6f42c1"]]
SOLAR_FLUX_COLORS = [[0.2, "#dc3545"], [0.4, "#fd7e14"], [0.7, "#ffc107"], [1.0, "#28a745"]]
SUNSPOT_COLORS = [[0.1, "#6c757d"], [0.25, "#dc3545"], [0.5, "#fd7e14"], [0.75, "#ffc107"], [1.0, "#28a745"]]
SOLAR_WIND_COLORS = [[0.25, "#28a745"], [0.5, "#ffc107"], [0.75, "#fd7e14"], [1.0, "#dc3545"]]
XRAY_COLORS = [[0.2, "#28a745"], [0.4, "#ffc107"], [0.6, "#fd7e14"], [0.8, "#dc3545"], [1.0, "#6f42c1"]]
ELECTRON_FLUX_COLORS = [[0.4, "#67e0e3"], [0.7, "#37a2da"], [0.9, "#ffdb5c"], [1.0, "#ff9f7f"]]

_FIRST_INT = re.compile(r"\d+")
_FIRST_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_XRAY = re.compile(r"^\s*([ABCMX])\s*(\d+(?:\.\d+)?)?", re.IGNORECASE)

# Class letter -> (multiplier, offset) onto the 0..10 gauge scale.
_XRAY_SCALE = {"A": (0.1, 0.0), "B": (0.1, 1.0), "C": (0.1, 2.0), "M": (0.1, 3.0), "X": (0.5, 4.0)}


def xray_to_value(xray_class: str | None) -> float:
    """Maps an X-ray class such as 'C2.3' onto the 0..10 gauge scale; 0 when unparseable."""
    m = _XRAY.match(xray_class or "")
    if not m:
        return 0.0
    mult, offset = _XRAY_SCALE[m.group(1).upper()]
    magnitude = float(m.group(2)) if m.group(2) else 1.0
    return round(min(magnitude * mult + offset, 10.0), 2)


def parse_flux_value(raw: str | None) -> int:
    """First integer in a free-text flux field ('1240 e/cm2' -> 1240)."""
    m = _FIRST_INT.search(raw or "")
    return int(m.group(0)) if m else 0


def parse_first_number(raw: str | None) -> float:
    m = _FIRST_NUMBER.search(raw or "")
    return float(m.group(0)) if m else 0.0


@dataclass(frozen=True)
class GaugeSpec:
    chart_id: str
    title: str
    series_name: str
    minimum: float
    maximum: float
    colors: list
    value_of: Callable[[PropagationObservation], float]
    unit: str = ""
    decimals: int = 1
    split_number: int = 10

    def option(self, value: float) -> dict:
        label = f"{value:.{self.decimals}f}" + (f" {self.unit}" if self.unit else "")
        return {
            "tooltip": {"formatter": "{a} <br/>{b} : {c}"},
            "series": [
                {
                    "name": self.series_name,
                    "type": "gauge",
                    "min": self.minimum,
                    "max": self.maximum,
                    "splitNumber": self.split_number,
                    "radius": "80%",
                    "axisLine": {"lineStyle": {"width": 20, "color": self.colors}},
                    "pointer": {"itemStyle": {"color": "auto"}},
                    "axisTick": {"distance": -20, "length": 8, "lineStyle": {"color": "#fff", "width": 2}},
                    "splitLine": {"distance": -20, "length": 20, "lineStyle": {"color": "#fff", "width": 3}},
                    "axisLabel": {"color": "inherit", "fontSize": 12, "distance": 30},
                    "detail": {
                        "valueAnimation": True,
                        "formatter": label,
                        "color": "inherit",
                        "fontSize": 14,
                        "fontWeight": "bold",
                        "offsetCenter": [0, "60%"],
                    },
                    "data": [{"value": value, "name": self.series_name}],
                }
            ],
        }

    def build(self, obs: Optional[PropagationObservation], raw=None, *, id_prefix: str = "") -> ChartSnippet:
        obs = require_observation(obs)
        value = float(self.value_of(obs))
        return render_snippet(id_prefix + self.chart_id, self.title, self.option(value), height=250)


K_INDEX_GAUGE = GaugeSpec(
    chart_id="chart-k-index-gauge",
    title="K-index",
    series_name="K-index",
    minimum=0,
    maximum=9,
    colors=K_INDEX_COLORS,
    value_of=lambda o: o.geomag.k_index,
    split_number=9,
)

SOLAR_FLUX_GAUGE = GaugeSpec(
    chart_id="chart-solar-flux-gauge",
    title="Solar Flux (10.7 cm)",
    series_name="Solar Flux",
    minimum=50,
    maximum=300,
    colors=SOLAR_FLUX_COLORS,
    value_of=lambda o: o.solar.flux_10_7cm,
    unit="sfu",
    decimals=0,
)

SUNSPOT_GAUGE = GaugeSpec(
    chart_id="chart-sunspot-gauge",
    title="Sunspot Number",
    series_name="Sunspots",
    minimum=0,
    maximum=200,
    colors=SUNSPOT_COLORS,
    value_of=lambda o: o.solar.sunspot_number,
    decimals=0,
)

SOLAR_WIND_GAUGE = GaugeSpec(
    chart_id="chart-solar-wind-gauge",
    title="Solar Wind Speed",
    series_name="Solar Wind",
    minimum=200,
    maximum=800,
    colors=SOLAR_WIND_COLORS,
    value_of=lambda o: o.solar.solar_wind_speed_kms,
    unit="km/s",
    decimals=0,
    split_number=6,
)

XRAY_GAUGE = GaugeSpec(
    chart_id="chart-xray-gauge",
    title="X-ray Flux",
    series_name="X-ray",
    minimum=0,
    maximum=10,
    colors=XRAY_COLORS,
    value_of=lambda o: xray_to_value(o.solar.xray_class),
)

ELECTRON_FLUX_GAUGE = GaugeSpec(
    chart_id="chart-electron-flux-gauge",
    title="Electron Flux",
    series_name="Electron Flux",
    minimum=0,
    maximum=5000,
    colors=ELECTRON_FLUX_COLORS,
    value_of=lambda o: parse_flux_value(o.solar.electron_flux),
    decimals=0,
)

AURORA_GAUGE = GaugeSpec(
    chart_id="chart-aurora-gauge",
    title="Aurora Activity",
    series_name="Aurora",
    minimum=0,
    maximum=9,
    colors=K_INDEX_COLORS,
    value_of=lambda o: parse_first_number(o.solar.aurora_level),
    split_number=9,
)

PANEL_ID_PREFIX = "panel-"

GAUGES = (
    K_INDEX_GAUGE,
    SOLAR_FLUX_GAUGE,
    SUNSPOT_GAUGE,
    SOLAR_WIND_GAUGE,
    XRAY_GAUGE,
    ELECTRON_FLUX_GAUGE,
    AURORA_GAUGE,
)


def build_gauge_panel(obs: Optional[PropagationObservation], raw=None) -> ChartSnippet:
    """
    All seven gauges in one grid. Their div ids carry PANEL_ID_PREFIX so the panel
    and the single-gauge placeholders can sit on the same page.
    """
    obs = require_observation(obs)
    parts = [g.build(obs, id_prefix=PANEL_ID_PREFIX) for g in GAUGES]
    items = "".join(f'<div class="gauge-item"><h4>{p.title}</h4>{p.div_html}</div>' for p in parts)
    return ChartSnippet(
        id="chart-gauge-panel",
        title="Space Weather Dashboard",
        div_html=f'<div id="chart-gauge-panel" class="gauge-grid">{items}</div>',
        script_html="".join(p.script_html for p in parts),
    )
