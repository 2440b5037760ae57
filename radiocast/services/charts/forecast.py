from __future__ import annotations

import re
from typing import Optional

from radiocast.domain.models import PropagationObservation
from radiocast.services.charts.snippet import ChartSnippet, render_snippet, require_observation

DEFAULT_K_FORECAST = 2.0

_RANGE = re.compile(r"(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)")
_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def parse_k_forecast(raw: str | None) -> float:
    """
    "3.7" -> 3.7, "3.2-4.2" -> 3.7 (midpoint), "Kp 5 expected" -> 5.0.
    Anything without a number gives DEFAULT_K_FORECAST.
    """
    text = raw or ""
    m = _RANGE.search(text)
    if m:
        return round((float(m.group(1)) + float(m.group(2))) / 2, 2)
    m = _NUMBER.search(text)
    if m:
        return float(m.group(0))
    return DEFAULT_K_FORECAST


def k_index_color(k: float) -> str:
    if k >= 5:
        return "#800080"
    if k >= 4:
        return "#dc3545"
    if k >= 3:
        return "#fd7e14"
    if k >= 2:
        return "#ffc107"
    return "#28a745"


def build_forecast(obs: Optional[PropagationObservation], raw=None) -> ChartSnippet:
    obs = require_observation(obs)
    days = (("Today", obs.forecast.today), ("Tomorrow", obs.forecast.tomorrow), ("Day After", obs.forecast.day_after))

    labels, bars = [], []
    for label, day in days:
        value = parse_k_forecast(day.k_index_forecast)
        date = day.date.strftime("%b %d") if day.date else ""
        labels.append(f"{label}\n{date}".strip())
        bars.append({"value": value, "itemStyle": {"color": k_index_color(value)}})

    option = {
        "tooltip": {"trigger": "axis"},
        "grid": {"left": 50, "right": 20, "top": 30, "bottom": 50},
        "xAxis": {"type": "category", "data": labels},
        "yAxis": {"type": "value", "name": "K-index", "min": 0, "max": 9},
        "series": [
            {
                "name": "K-index forecast",
                "type": "bar",
                "barWidth": "45%",
                "label": {"show": True, "position": "top"},
                "data": bars,
            }
        ],
    }
    return render_snippet("chart-forecast", "3-Day K-index Forecast", option)
