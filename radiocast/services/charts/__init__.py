from .forecast import parse_k_forecast
from .registry import CHART_BUILDERS, build_all_charts
from .snippet import ECHARTS_CDN, ChartSnippet

__all__ = [
    "CHART_BUILDERS",
    "ECHARTS_CDN",
    "ChartSnippet",
    "build_all_charts",
    "parse_k_forecast",
]
