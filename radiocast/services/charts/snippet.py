from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from radiocast.domain.errors import InvalidInputError
from radiocast.domain.models import PropagationObservation

ECHARTS_CDN = "https://cdn.jsdelivr.net/npm/echarts@5.4.3/dist/echarts.min.js"


@dataclass(frozen=True)
class ChartSnippet:
    id: str
    title: str
    div_html: str
    script_html: str

    @property
    def combined_html(self) -> str:
        return f'<div class="chart-container"><h3>{self.title}</h3>{self.div_html}</div>\n{self.script_html}'


def require_observation(obs: Optional[PropagationObservation]) -> PropagationObservation:
    if obs is None:
        raise InvalidInputError("observation is required")
    return obs


def option_json(option: dict[str, Any]) -> str:
    # "</" would close the surrounding <script> element early.
    return json.dumps(option, separators=(",", ":"), ensure_ascii=False).replace("</", "<\\/")


def render_snippet(chart_id: str, title: str, option: dict[str, Any], *, height: int = 300, setup_js: str = "") -> ChartSnippet:
    """
    One <div> with a stable id plus one <script> that draws into it and follows window resizes.
    `setup_js` runs after `option` is defined; it is how JS callbacks (formatters) get attached.
    """
    div = f'<div id="{chart_id}" class="echart" style="width:100%;height:{height}px;"></div>'
    script = (
        "<script>(function(){"
        f"var el=document.getElementById('{chart_id}');if(!el)return;"
        "var c=echarts.init(el);"
        f"var option={option_json(option)};"
        f"{setup_js}"
        "c.setOption(option);"
        "window.addEventListener('resize',function(){c.resize();});"
        "})();</script>"
    )
    return ChartSnippet(id=chart_id, title=title, div_html=div, script_html=script)
