from __future__ import annotations

from typing import List, Optional

import pytest

import config


def build_simfile_text(
    *,
    title: str = "Test Song",
    offset: Optional[str] = "0.000",
    bpms: Optional[str] = "0.000=120.000",
    charts: Optional[List[str]] = None,
    difficulty: str = "Easy",
) -> str:
    """Assemble a minimal .sm document. Each entry of charts is a raw note grid body."""
    lines = [f"#TITLE:{title};"]
    if offset is not None:
        lines.append(f"#OFFSET:{offset};")
    if bpms is not None:
        lines.append(f"#BPMS:{bpms};")
    for note_grid in charts or []:
        lines.extend(
            [
                "#NOTES:",
                "     dance-single:",
                "     :",
                f"     {difficulty}:",
                "     1:",
                "     0.000,0.000,0.000,0.000,0.000:",
                note_grid.strip("\n"),
                ";",
            ]
        )
    return "\n".join(lines) + "\n"


@pytest.fixture
def simfile_text_factory():
    return build_simfile_text


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    for env_name in (
        "STEPCHART_CONFIG_PATH",
        "STEPCHART_COLUMN_COUNT",
        "STEPCHART_PLAYBACK_RATE",
        "STEPCHART_BEATS_PER_MEASURE",
        "STEPCHART_TIMING_SCALE",
        "STEPCHART_LOG_LEVEL",
    ):
        monkeypatch.delenv(env_name, raising=False)
    monkeypatch.setattr(config, "_default_config_candidates", lambda: [tmp_path / "stepchart_config.json"])
    config.get_config.cache_clear()
    yield
    config.get_config.cache_clear()
