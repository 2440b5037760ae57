from __future__ import annotations

from typing import Optional

from radiocast.domain.conditions import BAND_NAMES, CONDITION_COLORS, KNOWN_LEVELS, BandConditionLevel, condition_to_value
from radiocast.domain.models import PropagationObservation
from radiocast.services.charts.snippet import ChartSnippet, render_snippet, require_observation

HOURS = [f"{h:02d}" for h in range(24)]

_TOOLTIP_JS = (
    "option.tooltip.formatter=function(p){"
    "return p.seriesName+' | '+option.yAxis.data[p.data[1]]+' @ '+option.xAxis.data[p.data[0]]+':00 UTC';};"
)


def band_matrix(obs: PropagationObservation) -> dict[BandConditionLevel, list[list[int]]]:
    """[hour, band row] cells grouped by condition. Missing bands count as Closed."""
    cells: dict[BandConditionLevel, list[list[int]]] = {level: [] for level in KNOWN_LEVELS}
    for row, band in enumerate(BAND_NAMES):
        bc = obs.bands.get(band)
        for hour in range(24):
            level = bc.condition_at(hour) if bc is not None else BandConditionLevel.UNKNOWN
            cells[KNOWN_LEVELS[condition_to_value(level)]].append([hour, row])
    return cells


def build_band_conditions(obs: Optional[PropagationObservation], raw=None) -> ChartSnippet:
    obs = require_observation(obs)
    cells = band_matrix(obs)

    series = [
        {
            "name": level.value,
            "type": "scatter",
            "symbol": "circle",
            "symbolSize": 14,
            "itemStyle": {"color": CONDITION_COLORS[level], "borderColor": "#ffffff", "borderWidth": 1},
            "data": cells[level],
        }
        for level in reversed(KNOWN_LEVELS)
    ]

    option = {
        "tooltip": {"position": "top"},
        "legend": {"data": [level.value for level in reversed(KNOWN_LEVELS)], "bottom": 0},
        "grid": {"left": 60, "right": 20, "top": 20, "bottom": 70},
        "xAxis": {"type": "category", "data": HOURS, "name": "UTC Hour", "nameLocation": "middle", "nameGap": 28,
                  "boundaryGap": True, "splitLine": {"show": False}},
        "yAxis": {"type": "category", "data": list(BAND_NAMES), "inverse": True, "boundaryGap": True},
        "series": series,
    }
    return render_snippet("chart-band-conditions", "HF Band Conditions (24h)", option, height=420, setup_js=_TOOLTIP_JS)
