# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Accuracy scoring engine.
# - Maps each note's signed timing offset (or a missed hit) to points on a smooth decay curve
#   and normalizes the achieved total by the maximum achievable total.
#
# Design notes:
# - No I/O. Pure scoring logic.
# - Every NoteType is handled explicitly. Adding a member without scoring it raises.
# - Scoring is a sum of independent per-note terms, so incremental and batch results agree.
# - A chart with zero achievable points has no defined score: division raises ZeroDivisionError.
#
########################
# Interfaces:
# Public constants:
# - PEAK_POINTS = 2.0, MISS_POINTS = -8.0, BASE_DEVIATION_MS = 95.0
#
# Public functions:
# - wife(offset_ms: Optional[float], note_type: NoteType, ts: float = 1.0) -> float
# - max_points(note_type: NoteType) -> float
# - calculate_score(records: TimingData[OffsetRecord] | Iterable[OffsetRecord], ts: float = 1.0) -> float
#
# Public dataclasses:
# - ScoreAccumulator(timing_scale: float = 1.0, current_points: float = 0.0, max_points: float = 0.0, note_count: int = 0)
#   - add(record: OffsetRecord) -> float
#   - extend(records: Iterable[OffsetRecord]) -> None
#   - score() -> float
#
# Inputs:
# - OffsetRecord(offset_ms, note_type) supplied by the gameplay layer, one per judged note.
#
# Outputs:
# - Normalized score. 1.0 is perfect, -4.0 is every scorable note missed.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Union

from chart_models import NoteType
from gameplay_models import OffsetRecord, TimingData


PEAK_POINTS = 2.0
MISS_POINTS = -8.0
BASE_DEVIATION_MS = 95.0

_TIMED_NOTE_TYPES = frozenset({NoteType.TAP, NoteType.HOLD, NoteType.ROLL, NoteType.LIFT})
_UNSCORED_NOTE_TYPES = frozenset({NoteType.FAKE, NoteType.HOLD_END})


def _validate_timing_scale(ts: float) -> float:
    value = float(ts)
    if not value > 0.0:
        raise ValueError(f"timing scale must be positive, got {ts!r}")
    return value


def wife(offset_ms: Optional[float], note_type: NoteType, ts: float = 1.0) -> float:
    """Points for one note.

    Timed notes score 2.0 at a zero offset and fall toward -8.0 as |offset| grows;
    ts widens (> 1) or narrows (< 1) the curve without moving its peak. A timed note
    that was never hit scores -8.0. Fakes and hold ends score 0.0. A mine scores
    -8.0 when hit and 0.0 when avoided.
    """
    timing_scale = _validate_timing_scale(ts)

    if note_type in _TIMED_NOTE_TYPES:
        if offset_ms is None:
            return MISS_POINTS
        offset_value = float(offset_ms)
        avedeviation = BASE_DEVIATION_MS * timing_scale
        y = 1.0 - 2.0 ** (-(offset_value * offset_value) / (avedeviation * avedeviation))
        y = y * y
        return (PEAK_POINTS - MISS_POINTS) * (1.0 - y) + MISS_POINTS
    if note_type in _UNSCORED_NOTE_TYPES:
        return 0.0
    if note_type is NoteType.MINE:
        return MISS_POINTS if offset_ms is not None else 0.0
    raise ValueError(f"Unhandled note type: {note_type!r}")


def max_points(note_type: NoteType) -> float:
    if note_type in _TIMED_NOTE_TYPES:
        return PEAK_POINTS
    if note_type in _UNSCORED_NOTE_TYPES or note_type is NoteType.MINE:
        return 0.0
    raise ValueError(f"Unhandled note type: {note_type!r}")


@dataclass
class ScoreAccumulator:
    timing_scale: float = 1.0
    current_points: float = 0.0
    max_points: float = 0.0
    note_count: int = 0

    def __post_init__(self) -> None:
        self.timing_scale = _validate_timing_scale(self.timing_scale)

    def add(self, record: OffsetRecord) -> float:
        points = wife(record.offset_ms, record.note_type, self.timing_scale)
        self.current_points += points
        self.max_points += max_points(record.note_type)
        self.note_count += 1
        return points

    def extend(self, records: Iterable[OffsetRecord]) -> None:
        for record in records:
            self.add(record)

    def score(self) -> float:
        return self.current_points / self.max_points


def calculate_score(
    records: Union[TimingData[OffsetRecord], Iterable[OffsetRecord]],
    ts: float = 1.0,
) -> float:
    accumulator = ScoreAccumulator(timing_scale=ts)
    if isinstance(records, TimingData):
        accumulator.extend(records.notes())
    else:
        accumulator.extend(records)
    return accumulator.score()


def _run_unit_tests() -> None:
    for offset in range(0, 180):
        assert wife(offset, NoteType.TAP) == wife(-offset, NoteType.TAP)
        assert wife(offset, NoteType.TAP) > wife(offset + 1, NoteType.TAP)

    for ts in (0.5, 1.0, 2.0):
        assert wife(0, NoteType.TAP, ts) == 2.0

    assert wife(None, NoteType.TAP) == -8.0
    assert wife(15, NoteType.FAKE) == 0.0
    assert wife(3, NoteType.MINE) == -8.0
    assert wife(None, NoteType.MINE) == 0.0

    assert calculate_score([OffsetRecord(offset_ms=0, note_type=NoteType.TAP)]) == 1.0
    assert calculate_score([OffsetRecord(offset_ms=None, note_type=NoteType.TAP)]) == -4.0


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
