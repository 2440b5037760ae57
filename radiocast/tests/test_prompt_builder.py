from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from radiocast.domain.raw import KIndexRecord, SIDCRecord, SourceBundle
from radiocast.services.llm_service import LLMService
from radiocast.services.normalizer import normalize
from radiocast.services.prompt_builder import (
    DEFAULT_SYSTEM_PROMPT,
    build_raw_data_prompt,
    build_user_prompt,
    filter_k_index_recent,
    load_system_prompt,
)
from radiocast.tests.fakes import NOW, FakeChat, quiet_bundle


def test_user_prompt_sections():
    prompt = build_user_prompt(normalize(quiet_bundle(), NOW))

    assert prompt.startswith("## Current Solar and Geomagnetic Data (as of 2025-09-17 14:30 UTC)")
    assert "- Solar Flux Index (10.7cm): 90.0 sfu (source: NOAA SWPC)" in prompt
    assert "- Planetary K-index: 1.0" in prompt
    assert "- 40m: Day=Good, Night=Excellent" in prompt
    assert "- VHF+: Day=n/a, Night=n/a" in prompt
    assert "### Recent K-index Readings:" in prompt
    assert "### Recent Solar/Space Weather Events:" not in prompt


def test_user_prompt_lists_events():
    bundle = SourceBundle(sidc=(SIDCRecord(title="M2 flare", description="", published=NOW - timedelta(hours=2)),))
    prompt = build_user_prompt(normalize(bundle, NOW))

    assert "- Solar Event (SIDC): M2 flare [unrated severity]" in prompt


def test_filter_k_index_recent_keeps_three_hour_marks():
    records = [
        KIndexRecord(time_tag="2025-09-16T12:00:00", kp_index=1, estimated_kp=1, kp_raw=1, kp=""),
        KIndexRecord(time_tag="2025-09-17T03:00:00", kp_index=2, estimated_kp=2, kp_raw=2, kp=""),
        KIndexRecord(time_tag="2025-09-17T04:00:00", kp_index=3, estimated_kp=3, kp_raw=3, kp=""),
        KIndexRecord(time_tag="2025-09-17T12:00:00", kp_index=4, estimated_kp=4, kp_raw=4, kp=""),
        KIndexRecord(time_tag="bad", kp_index=5, estimated_kp=5, kp_raw=5, kp=""),
    ]
    kept = filter_k_index_recent(records, NOW)

    assert [r.time_tag for r in kept] == ["2025-09-17T03:00:00", "2025-09-17T12:00:00"]


def test_raw_prompt_appends_source_blocks():
    bundle = quiet_bundle()
    prompt = build_raw_data_prompt(normalize(bundle, NOW), bundle)

    assert "## Raw Solar and Space Weather Data" in prompt
    assert "### NOAA K-Index Data (Last 24 Hours, 3-Hour Intervals):" in prompt
    assert "### NOAA Solar Data (Latest 7 Entries):" in prompt
    assert "### N0NBH Real-time Data (Current Conditions):" in prompt
    assert '"solar_flux": "90"' in prompt
    # the only SIDC record is older than 30 days
    assert "SIDC Sunspot Records" not in prompt


def test_raw_prompt_without_sources_is_summary_only():
    obs = normalize(quiet_bundle(), NOW)

    assert build_raw_data_prompt(obs, None) == build_user_prompt(obs)


def test_load_system_prompt_falls_back(tmp_path: Path):
    empty = tmp_path / "empty.txt"
    empty.write_text("  \n", encoding="utf-8")

    assert load_system_prompt([tmp_path / "missing.txt", empty]) == DEFAULT_SYSTEM_PROMPT


def test_bundled_system_prompt_names_placeholders():
    text = load_system_prompt()

    for name in ("GaugePanel", "SunGif", "BandConditionsChart", "ForecastChart"):
        assert "{{." + name + "}}" in text


def test_llm_service_returns_narrative_verbatim():
    chat = FakeChat(text="  # As-is  \n")
    service = LLMService(chat=chat)

    assert service.generate(normalize(quiet_bundle(), NOW)) == "  # As-is  \n"
    system, user = chat.calls[0]
    assert system == load_system_prompt()
    assert user.startswith("## Current Solar and Geomagnetic Data")
