from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Iterable, Optional

from radiocast.domain.conditions import BAND_NAMES
from radiocast.domain.models import PropagationObservation
from radiocast.domain.raw import SourceBundle, record_to_json, records_to_json
from radiocast.utils.timeparse import parse_time

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_PATH = Path(__file__).resolve().parents[1] / "templates" / "system_prompt.txt"

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert radio propagation analyst and amateur radio operator. "
    "Generate a comprehensive daily radio propagation report in markdown format based on the "
    "provided solar and space weather data. Focus on practical advice for amateur radio operators. "
    "Include a section that places the chart placeholders {{.GaugePanel}}, {{.BandConditionsChart}}, "
    "{{.ForecastChart}} and {{.SunGif}} each on its own line."
)


def load_system_prompt(paths: Iterable[Path] = (SYSTEM_PROMPT_PATH,)) -> str:
    for path in paths:
        try:
            text = Path(path).read_text(encoding="utf-8").strip()
        except OSError:
            continue
        if text:
            return text
    logger.warning("System prompt file not found; using built-in prompt")
    return DEFAULT_SYSTEM_PROMPT


def _cond(obs: PropagationObservation, band: str) -> tuple[str, str]:
    bc = obs.bands.get(band)
    if bc is None:
        return "n/a", "n/a"
    return bc.day_condition.value, bc.night_condition.value


def build_user_prompt(obs: PropagationObservation) -> str:
    s, g, f = obs.solar, obs.geomag, obs.forecast

    lines = [
        f"## Current Solar and Geomagnetic Data (as of {obs.timestamp:%Y-%m-%d %H:%M} UTC)",
        "",
        "### Solar Activity:",
        f"- Solar Flux Index (10.7cm): {s.flux_10_7cm:.1f} sfu (source: {s.flux_10_7cm_source or 'n/a'})",
        f"- Adjusted Solar Flux: {s.flux_adjusted:.1f} sfu",
        f"- Sunspot Number: {s.sunspot_number}",
        f"- X-ray Class: {s.xray_class or 'n/a'}",
        f"- Solar Wind Speed: {s.solar_wind_speed_kms:.1f} km/s",
        f"- Proton Flux: {s.proton_flux:.2e} particles/cm²/s",
        f"- Electron Flux: {s.electron_flux or 'n/a'}",
        f"- Helium Line: {s.helium_line or 'n/a'}",
        f"- Aurora Level: {s.aurora_level or 'n/a'}",
        "",
        "### Geomagnetic Activity:",
        f"- Planetary K-index: {g.k_index:.1f}",
        f"- A-index: {g.a_index:.1f}",
        f"- Magnetic Field (Bz): {g.magnetic_field_nt:.1f} nT",
        f"- Aurora Latitude: {g.lat_degree or 'n/a'}",
        "",
        "### HF Band Conditions:",
    ]
    for band in BAND_NAMES:
        day, night = _cond(obs, band)
        lines.append(f"- {band}: Day={day}, Night={night}")

    lines += ["", "### 3-Day Forecast:"]
    for label, day in (("Today", f.today), ("Tomorrow", f.tomorrow), ("Day After", f.day_after)):
        lines.append(f"- {label} ({day.date:%Y-%m-%d}): {day.hf_conditions or 'to be assessed'} (K-index: {day.k_index_forecast or 'to be assessed'})")
    lines.append(f"- General Outlook: {f.outlook or 'to be assessed'}")

    if obs.history_k:
        recent = ", ".join(f"{p.timestamp:%m-%d %H:%M}={p.k_index:.2f}" for p in obs.history_k[-8:])
        lines += ["", "### Recent K-index Readings:", f"- {recent}"]

    if obs.events:
        lines += ["", "### Recent Solar/Space Weather Events:"]
        for e in obs.events:
            lines.append(f"- {e.type} ({e.source}): {e.description} [{e.severity or 'unrated'} severity]")

    if f.warnings:
        lines += ["", "### Current Warnings:"]
        lines += [f"- {w}" for w in f.warnings]

    return "\n".join(lines)


def filter_k_index_recent(records, now, hours: int = 24):
    """K-index records of the last `hours`, sampled on the 3-hour marks."""
    cutoff = now - timedelta(hours=hours)
    out = []
    for rec in records:
        ts = parse_time(rec.time_tag)
        if ts is None or ts < cutoff:
            continue
        if ts.hour % 3 == 0 and ts.minute == 0:
            out.append(rec)
    return out


def _json_block(title: str, payload) -> list[str]:
    return [f"### {title}:", "```json", json.dumps(payload, indent=2, ensure_ascii=False), "```", ""]


def build_raw_data_prompt(obs: PropagationObservation, raw: Optional[SourceBundle]) -> str:
    """Normalised summary followed by the raw source records, trimmed to keep the prompt small."""
    prompt = build_user_prompt(obs)
    if raw is None:
        return prompt

    lines = ["", "", f"## Raw Solar and Space Weather Data (as of {obs.timestamp:%Y-%m-%d %H:%M} UTC)", ""]
    if raw.k_index:
        lines += _json_block(
            "NOAA K-Index Data (Last 24 Hours, 3-Hour Intervals)",
            records_to_json(filter_k_index_recent(raw.k_index, obs.timestamp)),
        )
    if raw.solar_cycle:
        lines += _json_block("NOAA Solar Data (Latest 7 Entries)", records_to_json(raw.solar_cycle[-7:]))
    if raw.n0nbh is not None:
        lines += _json_block("N0NBH Real-time Data (Current Conditions)", record_to_json(raw.n0nbh))
    if raw.sidc:
        cutoff = obs.timestamp - timedelta(days=30)
        recent = [r for r in raw.sidc if r.published is not None and r.published >= cutoff]
        if recent:
            lines += _json_block("SIDC Sunspot Records (Last 30 Days)", records_to_json(recent))

    return prompt + "\n".join(lines).rstrip() + "\n"
