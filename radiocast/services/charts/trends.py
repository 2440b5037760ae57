from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from radiocast.domain.models import PropagationObservation
from radiocast.services.charts.snippet import ChartSnippet, render_snippet, require_observation

SOLAR_TREND_MONTHS = 12
FALLBACK_FLUX_FACTORS = (0.8, 0.9, 0.85, 0.95, 0.92, 1.0)
FALLBACK_SSN_FACTORS = (0.7, 0.8, 0.75, 0.9, 0.85, 1.0)
EMA_PERIOD = 5


def ema(values: Sequence[float], period: int = EMA_PERIOD) -> list[float]:
    """Exponential moving average seeded with the first value, k = 2 / (period + 1)."""
    if not values:
        return []
    k = 2.0 / (period + 1)
    out = [float(values[0])]
    for v in values[1:]:
        out.append(round(v * k + out[-1] * (1 - k), 3))
    return out


def _month_back(ts: datetime, months: int) -> datetime:
    total = ts.year * 12 + (ts.month - 1) - months
    return ts.replace(year=total // 12, month=total % 12 + 1, day=1)


def _k_series(obs: PropagationObservation) -> tuple[list[str], list[float]]:
    if obs.history_k:
        return (
            [p.timestamp.strftime("%m-%d %H:%M") for p in obs.history_k],
            [p.k_index for p in obs.history_k],
        )
    now = obs.timestamp
    stamps = [now - timedelta(hours=h) for h in (72, 48, 24, 0)]
    return [t.strftime("%m-%d %H:%M") for t in stamps], [0.0, 0.0, 0.0, obs.geomag.k_index]


def build_k_index_trend(obs: Optional[PropagationObservation], raw=None) -> ChartSnippet:
    obs = require_observation(obs)
    labels, values = _k_series(obs)

    option = {
        "tooltip": {"trigger": "axis"},
        "legend": {"data": ["K-index", "EMA(5)"], "bottom": 0},
        "grid": {"left": 50, "right": 20, "top": 30, "bottom": 60},
        "xAxis": {"type": "category", "data": labels, "boundaryGap": False},
        "yAxis": {"type": "value", "name": "K-index", "min": 0, "max": 9},
        "series": [
            {"name": "K-index", "type": "line", "data": values, "symbol": "circle", "itemStyle": {"color": "#37a2da"}},
            {"name": "EMA(5)", "type": "line", "data": ema(values), "smooth": True, "symbol": "none",
             "lineStyle": {"type": "dashed", "color": "#fd7e14"}},
        ],
    }
    return render_snippet("chart-k-index-trend", "K-index Trend", option)


def build_propagation_timeline(obs: Optional[PropagationObservation], raw=None) -> ChartSnippet:
    obs = require_observation(obs)
    flux = obs.solar.flux_10_7cm

    if obs.history_k:
        labels = [p.timestamp.strftime("%m-%d %H:%M") for p in obs.history_k]
        k_values = [p.k_index for p in obs.history_k]
    else:
        start = obs.timestamp - timedelta(hours=5)
        labels = [(start + timedelta(hours=i)).strftime("%m-%d %H:%M") for i in range(6)]
        k_values = [2 + 0.5 * i for i in range(6)]

    option = {
        "tooltip": {"trigger": "axis"},
        "legend": {"data": ["K-index", "Solar Flux"], "bottom": 0},
        "grid": {"left": 50, "right": 60, "top": 30, "bottom": 60},
        "xAxis": {"type": "category", "data": labels},
        "yAxis": [
            {"type": "value", "name": "K-index", "min": 0, "max": 9},
            {"type": "value", "name": "SFU", "min": 50, "max": 300, "position": "right"},
        ],
        "series": [
            {"name": "K-index", "type": "bar", "data": k_values, "itemStyle": {"color": "#dc3545"}},
            {"name": "Solar Flux", "type": "line", "yAxisIndex": 1, "data": [flux] * len(labels),
             "itemStyle": {"color": "#ffc107"}},
        ],
    }
    return render_snippet("chart-propagation-timeline", "Propagation Timeline", option)


def _solar_series(obs: PropagationObservation) -> tuple[list[str], list[float], list[float]]:
    if obs.history_solar:
        points = obs.history_solar[-SOLAR_TREND_MONTHS:]
        return (
            [p.timestamp.strftime("%b %Y") for p in points],
            [p.flux for p in points],
            [p.sunspot for p in points],
        )
    n = len(FALLBACK_FLUX_FACTORS)
    labels = [_month_back(obs.timestamp, n - 1 - i).strftime("%b %Y") for i in range(n)]
    flux = [round(obs.solar.flux_10_7cm * f, 1) for f in FALLBACK_FLUX_FACTORS]
    ssn = [round(obs.solar.sunspot_number * f, 1) for f in FALLBACK_SSN_FACTORS]
    return labels, flux, ssn


def build_historical_solar_trend(obs: Optional[PropagationObservation], raw=None) -> ChartSnippet:
    obs = require_observation(obs)
    labels, flux, ssn = _solar_series(obs)

    option = {
        "tooltip": {"trigger": "axis"},
        "legend": {"data": ["Solar Flux (F10.7)", "Sunspot Number"], "bottom": 0},
        "grid": {"left": 55, "right": 55, "top": 30, "bottom": 60},
        "xAxis": {"type": "category", "data": labels},
        "yAxis": [
            {"type": "value", "name": "SFU", "min": 80, "max": 250},
            {"type": "value", "name": "SSN", "min": 0, "max": 200, "position": "right"},
        ],
        "series": [
            {"name": "Solar Flux (F10.7)", "type": "line", "data": flux, "smooth": True, "itemStyle": {"color": "#fd7e14"}},
            {"name": "Sunspot Number", "type": "line", "yAxisIndex": 1, "data": ssn, "smooth": True,
             "itemStyle": {"color": "#6f42c1"}},
        ],
    }
    return render_snippet("chart-historical-solar-trend", "Solar Activity Trend", option)
