from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional

import markdown
from jinja2 import Environment, PackageLoader, select_autoescape
from markupsafe import Markup

from radiocast.domain.models import PropagationObservation
from radiocast.services.charts.snippet import ECHARTS_CDN
from radiocast.version import get_version

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*\.(\w+)\s*\}\}")
_WRAPPED_PLACEHOLDER = re.compile(r"<p>\s*(\{\{\s*\.\w+\s*\}\})\s*</p>")
_BAND_HEADING = re.compile(r"<h[1-6][^>]*>[^<]*Band-by-Band Analysis[^<]*</h[1-6]>", re.IGNORECASE)

SUN_GIF_NAME = "sun_72h.gif"


def markdown_to_html(text: str) -> str:
    """Markdown -> HTML. Raw HTML coming from the model is escaped, not passed through."""
    md = markdown.Markdown(extensions=["tables", "fenced_code", "sane_lists"])
    md.preprocessors.deregister("html_block")
    md.inlinePatterns.deregister("html")
    return md.convert(text or "")


def fill_placeholders(html: str, values: Mapping[str, str]) -> str:
    """Replaces {{.Name}} markers that have a value; unknown markers are left intact."""
    def unwrap(m: re.Match) -> str:
        name = PLACEHOLDER.fullmatch(m.group(1)).group(1)
        return m.group(1) if name in values else m.group(0)

    def substitute(m: re.Match) -> str:
        return values.get(m.group(1), m.group(0))

    html = _WRAPPED_PLACEHOLDER.sub(unwrap, html)
    return PLACEHOLDER.sub(substitute, html)


def tag_band_table(html: str) -> str:
    heading = _BAND_HEADING.search(html)
    if not heading:
        return html
    idx = html.find("<table>", heading.end())
    if idx == -1:
        return html
    return html[:idx] + '<table class="band-analysis-table">' + html[idx + len("<table>"):]


def sun_gif_html(folder_path: str) -> str:
    src = f"/files/{folder_path.strip('/')}/{SUN_GIF_NAME}" if folder_path else SUN_GIF_NAME
    return (
        '<div class="chart-section"><div class="chart-container">'
        "<h3>Sun Images for Past 72 Hours</h3>"
        f'<img src="{src}" alt="Sun last 72h" style="max-width:100%;height:auto;border-radius:8px;" />'
        "<br/><i>Images copyrighted by the SDO/NASA and Helioviewer project</i>"
        "</div></div>"
    )


@dataclass
class TemplateComposer:
    """
    Two passes: Markdown -> HTML with chart placeholders filled, then the page shell.
    Chart fragments are trusted and inserted as-is.
    """
    env: Environment = field(
        default_factory=lambda: Environment(
            loader=PackageLoader("radiocast", "templates"),
            autoescape=select_autoescape(["html"]),
        )
    )
    shell_template: str = "report.html"
    version: str = field(default_factory=get_version)

    def render_content(self, markdown_text: str, charts: Mapping[str, str], sun_gif: str = "") -> str:
        values = dict(charts)
        values["SunGif"] = sun_gif
        html = markdown_to_html(markdown_text)
        html = tag_band_table(html)
        return fill_placeholders(html, values)

    def compose(
        self,
        markdown_text: str,
        charts: Mapping[str, str],
        obs: Optional[PropagationObservation],
        *,
        sun_gif: str = "",
        generated_at: Optional[datetime] = None,
    ) -> str:
        content = self.render_content(markdown_text, charts, sun_gif)
        generated_at = generated_at or datetime.now(timezone.utc)
        report_date = obs.timestamp if obs is not None else generated_at

        template = self.env.get_template(self.shell_template)
        html = template.render(
            date=report_date.strftime("%Y-%m-%d"),
            generated_at=generated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
            version=self.version,
            content=Markup(content),
            echarts_cdn=ECHARTS_CDN,
        )
        logger.info("Composed report HTML (%d characters)", len(html))
        return html
