# -*- coding: utf-8 -*-
########################
# chart_engine.py
########################
# Purpose:
# - Load-once facade over parsing, tempo resolution and conversion for one simfile.
# - Caches TimedNote streams per (chart index, playback rate).
#
########################
# Key Logic:
# - The simfile is parsed and its tempo map resolved exactly once, at construction.
# - Rate changes re-run only the conversion step. Results are cached and reused.
# - Missing chart data is a first class outcome (ChartNotFoundError).
#
########################
# Interfaces:
# Public exceptions:
# - class ChartNotFoundError(Exception)
# - class ChartLoadError(Exception)
#
# Public classes:
# - class ChartEngine
#   - __init__(simfile: Simfile, *, config: Optional[AppConfig] = None, payload_lookup=None)
#   - from_text(simfile_text: str, *, config=None, payload_lookup=None) -> ChartEngine
#   - from_path(simfile_path: pathlib.Path, *, config=None, payload_lookup=None) -> ChartEngine
#   - simfile() -> Simfile
#   - segments() -> tuple[ResolvedTempoSegment, ...]
#   - chart_index_for_difficulty(difficulty: str) -> int
#   - timing_data(*, chart_index: int = 0, rate: Optional[float] = None) -> TimingData[TimedNote]
#   - score(records, *, ts: Optional[float] = None) -> float
#
# Inputs:
# - Simfile text or path and an optional AppConfig.
#
# Outputs:
# - TimingData[TimedNote] per chart and rate, scores for OffsetRecords.
#
########################
# Smoke Tests:
#   - python chart_engine.py
########################

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple, Union

import judge
import note_scheduler
import sm_store
import timing_model
from chart_models import Simfile
from config import AppConfig
from gameplay_models import OffsetRecord, TimedNote, TimingData


logger = logging.getLogger(__name__)


class ChartNotFoundError(Exception):
    """Raised when the simfile has no chart for the requested index or difficulty."""


class ChartLoadError(Exception):
    """Raised when a simfile exists but cannot be read."""


class ChartEngine:
    def __init__(
        self,
        simfile: Simfile,
        *,
        config: Optional[AppConfig] = None,
        payload_lookup: Optional[note_scheduler.PayloadLookup] = None,
    ) -> None:
        self._config = config if config is not None else AppConfig()
        self._simfile = simfile
        self._payload_lookup = payload_lookup
        self._segments = timing_model.resolve_tempo_map(
            simfile.metadata.bpms,
            simfile.metadata.offset_ms(),
            beats_per_measure=self._config.timing.beats_per_measure,
            denominator_limit=self._config.chart.bpm_denominator_limit,
        )
        self._timing_cache: Dict[Tuple[int, float], TimingData[TimedNote]] = {}

    @classmethod
    def from_text(
        cls,
        simfile_text: str,
        *,
        config: Optional[AppConfig] = None,
        payload_lookup: Optional[note_scheduler.PayloadLookup] = None,
    ) -> "ChartEngine":
        resolved_config = config if config is not None else AppConfig()
        simfile = sm_store.parse_simfile(
            simfile_text,
            notes_header_lines=resolved_config.chart.notes_header_lines,
        )
        return cls(simfile, config=resolved_config, payload_lookup=payload_lookup)

    @classmethod
    def from_path(
        cls,
        simfile_path: Path,
        *,
        config: Optional[AppConfig] = None,
        payload_lookup: Optional[note_scheduler.PayloadLookup] = None,
    ) -> "ChartEngine":
        resolved_config = config if config is not None else AppConfig()
        try:
            simfile = sm_store.load_simfile(
                Path(simfile_path),
                notes_header_lines=resolved_config.chart.notes_header_lines,
            )
        except sm_store.SimfileError as exc:
            raise ChartLoadError(f"Failed to load simfile {simfile_path}: {exc}") from exc
        return cls(simfile, config=resolved_config, payload_lookup=payload_lookup)

    def simfile(self) -> Simfile:
        return self._simfile

    def segments(self) -> Tuple[timing_model.ResolvedTempoSegment, ...]:
        return self._segments

    def chart_index_for_difficulty(self, difficulty: str) -> int:
        normalized_difficulty = sm_store.normalize_difficulty(difficulty)
        for chart_index, step_chart in enumerate(self._simfile.charts()):
            if step_chart.difficulty == normalized_difficulty:
                return chart_index
        raise ChartNotFoundError(f"No chart for difficulty={normalized_difficulty!r}")

    def timing_data(self, *, chart_index: int = 0, rate: Optional[float] = None) -> TimingData[TimedNote]:
        resolved_rate = float(rate) if rate is not None else float(self._config.timing.playback_rate)
        if not math.isfinite(resolved_rate) or resolved_rate <= 0.0:
            raise ValueError(f"playback rate must be positive and finite, got {rate!r}")

        step_charts = self._simfile.step_charts
        if not 0 <= int(chart_index) < len(step_charts):
            raise ChartNotFoundError(f"No chart at index {chart_index}; simfile has {len(step_charts)}")

        cache_key = (int(chart_index), resolved_rate)
        cached = self._timing_cache.get(cache_key)
        if cached is not None:
            return cached

        timing_data = note_scheduler.build_timing_data(
            step_charts[int(chart_index)],
            self._segments,
            rate=resolved_rate,
            payload_lookup=self._payload_lookup,
            column_count=self._config.chart.column_count,
            beats_per_measure=self._config.timing.beats_per_measure,
        )
        logger.debug("Converted chart %d at rate %.3f: %d note(s)", chart_index, resolved_rate, len(timing_data))
        self._timing_cache[cache_key] = timing_data
        return timing_data

    def score(
        self,
        records: Union[TimingData[OffsetRecord], Iterable[OffsetRecord]],
        *,
        ts: Optional[float] = None,
    ) -> float:
        resolved_ts = float(ts) if ts is not None else float(self._config.scoring.timing_scale)
        return judge.calculate_score(records, resolved_ts)


_SMOKE_SIMFILE = """#TITLE:Smoke;
#OFFSET:0.000;
#BPMS:0.000=120.000;
#NOTES:
     dance-single:
     :
     Easy:
     1:
     0.000,0.000,0.000,0.000,0.000:
1000
0100
0010
0001
,
1001
;
"""


def _assert(condition: bool, message: str) -> None:
    if not condition:
        raise AssertionError(message)


def _run_chunk_tests() -> None:
    engine = ChartEngine.from_text(_SMOKE_SIMFILE)

    timing_data = engine.timing_data()
    _assert(len(timing_data) == 6, "Expected six timed notes")
    _assert([note.time_ms for note in timing_data.column(0)] == [0, 2000], "Unexpected column 0 times")
    _assert(engine.timing_data() is timing_data, "Expected cached timing data for the same rate")

    _assert(engine.chart_index_for_difficulty("easy") == 0, "Expected easy chart at index 0")
    try:
        engine.chart_index_for_difficulty("hard")
    except ChartNotFoundError:
        pass
    else:
        raise AssertionError("Expected ChartNotFoundError for missing difficulty")

    try:
        ChartEngine.from_path(Path("missing_simfile_for_smoke_test.sm"))
    except ChartLoadError:
        pass
    else:
        raise AssertionError("Expected ChartLoadError for missing file")


def main() -> int:
    """Chunk test entrypoint."""
    try:
        _run_chunk_tests()
    except Exception as exc:
        print("Chart engine chunk tests: FAIL")
        print(str(exc))
        return 2

    print("Chart engine chunk tests: PASS")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
