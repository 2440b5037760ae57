from __future__ import annotations

import dataclasses
import json
import re

import pytest

from radiocast.domain.conditions import BAND_NAMES, BandConditionLevel, condition_to_value
from radiocast.domain.errors import InvalidInputError
from radiocast.domain.models import BandCondition, Forecast
from radiocast.domain.raw import SourceBundle
from radiocast.services.charts import CHART_BUILDERS, build_all_charts, parse_k_forecast
from radiocast.services.charts.bands import band_matrix
from radiocast.services.charts.forecast import build_forecast
from radiocast.services.charts.gauges import build_gauge_panel, parse_flux_value, xray_to_value
from radiocast.services.charts.snippet import render_snippet
from radiocast.services.charts.trends import build_historical_solar_trend, build_k_index_trend, ema
from radiocast.services.normalizer import normalize
from radiocast.tests.fakes import NOW, quiet_bundle


def quiet_observation():
    return normalize(quiet_bundle(), NOW)


def option_of(script_html: str) -> dict:
    m = re.search(r"var option=(\{.*?\});", script_html)
    assert m, script_html
    return json.loads(m.group(1).replace("<\\/", "</"))


# -----------------------------
# Forecast parsing
# -----------------------------
@pytest.mark.parametrize("raw, expected", [
    ("3.0", 3.0),
    ("3.7", 3.7),
    ("3.2-4.2", 3.7),
    ("2-4", 3.0),
    ("Kp 5 expected", 5.0),
    ("", 2.0),
    (None, 2.0),
    ("garbage", 2.0),
])
def test_parse_k_forecast(raw, expected):
    assert parse_k_forecast(raw) == pytest.approx(expected)


def test_forecast_chart_uses_range_midpoint():
    obs = quiet_observation()
    forecast = Forecast.empty(NOW)
    forecast = dataclasses.replace(
        forecast,
        today=dataclasses.replace(forecast.today, k_index_forecast="2.7-4.7"),
        tomorrow=dataclasses.replace(forecast.tomorrow, k_index_forecast="3"),
    )
    snippet = build_forecast(dataclasses.replace(obs, forecast=forecast))

    values = [bar["value"] for bar in option_of(snippet.script_html)["series"][0]["data"]]
    assert values == [pytest.approx(3.7), 3.0, 2.0]


# -----------------------------
# Condition mapping
# -----------------------------
@pytest.mark.parametrize("raw, expected", [
    ("Closed", 0), ("Poor", 1), ("Fair", 2), ("Good", 3), ("Excellent", 4),
    ("good", 3), ("", 0), (None, 0), ("Superb", 0),
    (BandConditionLevel.EXCELLENT, 4), (BandConditionLevel.UNKNOWN, 0),
])
def test_condition_to_value_is_total(raw, expected):
    assert condition_to_value(raw) == expected


def test_band_matrix_switches_between_day_and_night():
    obs = dataclasses.replace(
        quiet_observation(),
        bands={"40m": BandCondition(BandConditionLevel.GOOD, BandConditionLevel.EXCELLENT)},
    )
    cells = band_matrix(obs)
    row = BAND_NAMES.index("40m")

    good_hours = sorted(h for h, r in cells[BandConditionLevel.GOOD] if r == row)
    excellent_hours = sorted(h for h, r in cells[BandConditionLevel.EXCELLENT] if r == row)
    assert good_hours == list(range(6, 18))
    assert excellent_hours == list(range(0, 6)) + list(range(18, 24))

    # bands without data are drawn as closed
    closed_rows = {r for _, r in cells[BandConditionLevel.CLOSED]}
    assert BAND_NAMES.index("6m") in closed_rows
    assert sum(len(v) for v in cells.values()) == 24 * len(BAND_NAMES)


# -----------------------------
# Builders
# -----------------------------
@pytest.mark.parametrize("name", sorted(CHART_BUILDERS))
def test_every_builder_rejects_missing_observation(name):
    with pytest.raises(InvalidInputError):
        CHART_BUILDERS[name](None, None)


def test_build_all_charts_without_observation_gives_empty_strings():
    charts = build_all_charts(None)

    assert set(charts) == set(CHART_BUILDERS)
    assert all(html == "" for html in charts.values())


def test_build_all_charts_renders_every_placeholder():
    charts = build_all_charts(quiet_observation(), quiet_bundle())

    for name, html in charts.items():
        assert html, name
        assert "<script>" in html
        assert "echarts.init" in html


def test_snippet_has_stable_id_and_resize_handler():
    s = render_snippet("chart-x", "Title", {"series": [{"name": "</script>"}]}, height=123)

    assert 'id="chart-x"' in s.div_html
    assert "height:123px" in s.div_html
    assert "getElementById('chart-x')" in s.script_html
    assert "window.addEventListener('resize'" in s.script_html
    assert "</script>" not in s.script_html[:-len("</script>")]
    assert s.combined_html.startswith('<div class="chart-container"><h3>Title</h3>')


def test_gauge_panel_contains_all_gauges():
    panel = build_gauge_panel(quiet_observation())

    assert panel.div_html.count('class="gauge-item"') == 7
    assert panel.script_html.count("<script>") == 7
    assert 'id="panel-chart-k-index-gauge"' in panel.div_html
    assert "getElementById('panel-chart-k-index-gauge')" in panel.script_html
    assert 'id="chart-k-index-gauge"' not in panel.div_html


def test_all_placeholders_together_have_unique_element_ids():
    bundle = quiet_bundle()
    charts = build_all_charts(normalize(bundle, NOW), bundle)

    ids = re.findall(r'id="([^"]+)"', "".join(charts.values()))
    assert ids
    assert len(ids) == len(set(ids))


@pytest.mark.parametrize("xray, expected", [
    ("A1.0", 0.1), ("B5.0", 1.5), ("C2.3", 2.23), ("M1", 3.1), ("X2.0", 5.0), ("X20", 10.0), ("", 0.0), ("n/a", 0.0),
])
def test_xray_to_value(xray, expected):
    assert xray_to_value(xray) == pytest.approx(expected)


def test_parse_flux_value():
    assert parse_flux_value("1240 e/cm2") == 1240
    assert parse_flux_value("") == 0


def test_k_index_trend_uses_history_and_ema():
    snippet = build_k_index_trend(quiet_observation())
    option = option_of(snippet.script_html)

    assert option["series"][0]["data"] == [2.0, 1.33, 1.0]
    assert option["series"][1]["data"] == ema([2.0, 1.33, 1.0])


def test_k_index_trend_without_history_falls_back():
    obs = normalize(SourceBundle(), NOW)
    option = option_of(build_k_index_trend(obs).script_html)

    assert option["series"][0]["data"] == [0.0, 0.0, 0.0, 0.0]
    assert len(option["xAxis"]["data"]) == 4


def test_solar_trend_fallback_series_without_history():
    obs = dataclasses.replace(quiet_observation(), history_solar=())
    option = option_of(build_historical_solar_trend(obs).script_html)

    assert len(option["xAxis"]["data"]) == 6
    assert option["series"][0]["data"][-1] == 90.0
    assert option["xAxis"]["data"][-1] == "Sep 2025"


def test_ema_is_seeded_with_first_value():
    assert ema([]) == []
    assert ema([4.0]) == [4.0]
    assert ema([3.0, 3.0, 3.0]) == [3.0, 3.0, 3.0]
