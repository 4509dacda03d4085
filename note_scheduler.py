# -*- coding: utf-8 -*-
########################
# note_scheduler.py
########################
# Purpose:
# - Convert parsed chart rows into absolute-time TimedNotes, partitioned per column.
# - Walks rows in chart order alongside the resolved tempo segments (linear scan, no search).
#
# Design notes:
# - No I/O. Pure function of (chart, segments, rate). Calling twice gives equal output.
# - Per-column order is ascending time because chart order is ascending (measure, position).
# - Notes whose column is outside the playfield are dropped, never fatal.
# - Row time is truncated toward zero to whole milliseconds.
# - The returned TimingData is frozen so cached results cannot be altered by consumers.
#
########################
# Interfaces:
# Public type aliases:
# - PayloadLookup = Callable[[int, float, Fraction, NoteType, int], Any]
#   (measure_index, reserved 0.0, position, note_type, column) -> opaque payload
#
# Public functions:
# - build_timing_data(step_chart, segments, *, rate=1.0, payload_lookup=None, column_count=4,
#                     beats_per_measure=4) -> TimingData[TimedNote]
# - build_simfile_timing(simfile, *, rate=1.0, payload_lookup=None, column_count=4,
#                        beats_per_measure=4, denominator_limit=192) -> list[TimingData[TimedNote]]
#
# Inputs:
# - StepChart measures and ResolvedTempoSegment tuple from timing_model.py.
#
# Outputs:
# - TimingData[TimedNote] for rendering and input layers.
#
########################

from __future__ import annotations

from fractions import Fraction
import logging
import math
from typing import Any, Callable, List, Optional, Sequence

from chart_models import NoteType, Simfile, StepChart
from gameplay_models import DEFAULT_COLUMN_COUNT, TimedNote, TimingData
from timing_model import (
    DEFAULT_BEATS_PER_MEASURE,
    DEFAULT_BPM_DENOMINATOR_LIMIT,
    ResolvedTempoSegment,
    TempoCursor,
    resolve_tempo_map,
    time_at_position,
)


logger = logging.getLogger(__name__)

PayloadLookup = Callable[[int, float, Fraction, NoteType, int], Any]


def build_timing_data(
    step_chart: StepChart,
    segments: Sequence[ResolvedTempoSegment],
    *,
    rate: float = 1.0,
    payload_lookup: Optional[PayloadLookup] = None,
    column_count: int = DEFAULT_COLUMN_COUNT,
    beats_per_measure: int = DEFAULT_BEATS_PER_MEASURE,
) -> TimingData[TimedNote]:
    if not math.isfinite(float(rate)) or float(rate) <= 0.0:
        raise ValueError(f"playback rate must be positive and finite, got {rate!r}")

    timing_data: TimingData[TimedNote] = TimingData(column_count)
    if not segments:
        return timing_data.freeze()

    cursor = TempoCursor(segments)
    dropped_count = 0

    for measure_index, measure in enumerate(step_chart.measures):
        for position, row in measure:
            segment = cursor.advance_to(measure_index, position)
            row_time_ms = int(
                time_at_position(
                    segment,
                    measure_index,
                    position,
                    rate=rate,
                    beats_per_measure=beats_per_measure,
                )
            )
            for note_type, column in row:
                if not 0 <= column < timing_data.column_count:
                    dropped_count += 1
                    continue
                payload = None
                if payload_lookup is not None:
                    payload = payload_lookup(measure_index, 0.0, position, note_type, column)
                timing_data.add(
                    TimedNote(time_ms=row_time_ms, note_type=note_type, column=column, payload=payload),
                    column,
                )

    if dropped_count:
        logger.debug(
            "Dropped %d note(s) outside columns 0..%d",
            dropped_count,
            timing_data.column_count - 1,
        )
    return timing_data.freeze()


def build_simfile_timing(
    simfile: Simfile,
    *,
    rate: float = 1.0,
    payload_lookup: Optional[PayloadLookup] = None,
    column_count: int = DEFAULT_COLUMN_COUNT,
    beats_per_measure: int = DEFAULT_BEATS_PER_MEASURE,
    denominator_limit: int = DEFAULT_BPM_DENOMINATOR_LIMIT,
) -> List[TimingData[TimedNote]]:
    """Resolve the shared tempo map once and convert every chart in the simfile."""
    segments = resolve_tempo_map(
        simfile.metadata.bpms,
        simfile.metadata.offset_ms(),
        beats_per_measure=beats_per_measure,
        denominator_limit=denominator_limit,
    )
    return [
        build_timing_data(
            step_chart,
            segments,
            rate=rate,
            payload_lookup=payload_lookup,
            column_count=column_count,
            beats_per_measure=beats_per_measure,
        )
        for step_chart in simfile.charts()
    ]


def _run_unit_tests() -> None:
    from chart_models import Row

    step_chart = StepChart(
        measures=(
            ((Fraction(0), Row(((NoteType.TAP, 0),))), (Fraction(1, 2), Row(((NoteType.MINE, 3), (NoteType.TAP, 7))))),
            ((Fraction(0), Row(((NoteType.HOLD, 1),))),),
        )
    )
    segments = resolve_tempo_map([(0.0, 120.0)], 0.0)
    timing_data = build_timing_data(step_chart, segments)

    assert [note.time_ms for note in timing_data.column(0)] == [0]
    assert [note.time_ms for note in timing_data.column(3)] == [1000]
    assert [note.time_ms for note in timing_data.column(1)] == [2000]
    assert len(timing_data) == 3

    half_speed = build_timing_data(step_chart, segments, rate=0.5)
    assert [note.time_ms for note in half_speed.column(1)] == [4000]

    assert len(build_timing_data(step_chart, ())) == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("note_scheduler.py: ok")
