from __future__ import annotations

import logging
from typing import Callable, Optional

from radiocast.domain.errors import InvalidInputError
from radiocast.domain.models import PropagationObservation
from radiocast.domain.raw import SourceBundle
from radiocast.services.charts import gauges
from radiocast.services.charts.bands import build_band_conditions
from radiocast.services.charts.forecast import build_forecast
from radiocast.services.charts.snippet import ChartSnippet
from radiocast.services.charts.trends import (
    build_historical_solar_trend,
    build_k_index_trend,
    build_propagation_timeline,
)

logger = logging.getLogger(__name__)

ChartBuilder = Callable[[Optional[PropagationObservation], Optional[SourceBundle]], ChartSnippet]

# Placeholder name (as in {{.Name}}) -> builder.
CHART_BUILDERS: dict[str, ChartBuilder] = {
    "GaugePanel": gauges.build_gauge_panel,
    "KIndexGauge": gauges.K_INDEX_GAUGE.build,
    "SolarFluxGauge": gauges.SOLAR_FLUX_GAUGE.build,
    "SunspotGauge": gauges.SUNSPOT_GAUGE.build,
    "SolarWindGauge": gauges.SOLAR_WIND_GAUGE.build,
    "XrayGauge": gauges.XRAY_GAUGE.build,
    "ElectronFluxGauge": gauges.ELECTRON_FLUX_GAUGE.build,
    "AuroraGauge": gauges.AURORA_GAUGE.build,
    "SolarActivityChart": build_historical_solar_trend,
    "KIndexTrendChart": build_k_index_trend,
    "PropagationTimelineChart": build_propagation_timeline,
    "BandConditionsChart": build_band_conditions,
    "ForecastChart": build_forecast,
}


def build_all_charts(obs: Optional[PropagationObservation], raw: Optional[SourceBundle] = None) -> dict[str, str]:
    """Placeholder name -> HTML. A builder that rejects its input contributes an empty string."""
    charts: dict[str, str] = {}
    for name, builder in CHART_BUILDERS.items():
        try:
            charts[name] = builder(obs, raw).combined_html
        except InvalidInputError as e:
            logger.warning("Chart %s skipped: %s", name, e)
            charts[name] = ""
    return charts
