# -*- coding: utf-8 -*-
########################
# timing_model.py
########################
# Purpose:
# - Resolve a chart's raw tempo changes into absolute-time tempo segments.
# - Map (measure index, row position) to absolute milliseconds through the active segment.
#
# Design notes:
# - No I/O. Pure and deterministic.
# - Tempo change positions arrive as floats and are converted once into (int measure, Fraction)
#   with a bounded denominator. Everything after that compares exactly.
# - One measure spans 60000 * beats_per_measure ms at 1 BPM (240000 ms in 4/4).
#   A single beats_per_measure applies to the whole chart.
# - An empty tempo list resolves to no segments. It is not an error.
#
########################
# Interfaces:
# Public dataclasses:
# - ResolvedTempoSegment(measure_index: int, fractional_position: Fraction, tempo: float, start_ms: float)
#
# Public classes:
# - class TempoCursor
#   - __init__(segments: Sequence[ResolvedTempoSegment])
#   - current() -> ResolvedTempoSegment
#   - lookahead() -> Optional[ResolvedTempoSegment]
#   - should_advance(measure_index: int, position: Fraction) -> bool
#   - advance_to(measure_index: int, position: Fraction) -> ResolvedTempoSegment
#
# Public functions:
# - ms_per_measure_at_one_bpm(beats_per_measure: int = 4) -> int
# - decompose_measure_position(measure_position: float, *, denominator_limit: int = 192) -> tuple[int, Fraction]
# - resolve_tempo_map(bpms, offset_ms=0.0, *, beats_per_measure=4, denominator_limit=192) -> tuple[ResolvedTempoSegment, ...]
# - time_at_position(segment, measure_index, position, *, rate=1.0, beats_per_measure=4) -> float
#
# Inputs:
# - Raw (measure_position, bpm) pairs from ChartMetadata.bpms and the offset in ms.
#
# Outputs:
# - Ordered ResolvedTempoSegment tuple consumed by note_scheduler.py.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
import logging
import math
from typing import Optional, Sequence, Tuple


logger = logging.getLogger(__name__)

DEFAULT_BEATS_PER_MEASURE = 4
# Finest row subdivision StepMania writes (192nds).
DEFAULT_BPM_DENOMINATOR_LIMIT = 192


@dataclass(frozen=True)
class ResolvedTempoSegment:
    measure_index: int
    fractional_position: Fraction
    tempo: float
    start_ms: float

    def position_key(self) -> Tuple[int, Fraction]:
        return (self.measure_index, self.fractional_position)


def ms_per_measure_at_one_bpm(beats_per_measure: int = DEFAULT_BEATS_PER_MEASURE) -> int:
    if int(beats_per_measure) <= 0:
        raise ValueError(f"beats_per_measure must be positive, got {beats_per_measure}")
    return 60_000 * int(beats_per_measure)


def decompose_measure_position(
    measure_position: float,
    *,
    denominator_limit: int = DEFAULT_BPM_DENOMINATOR_LIMIT,
) -> Tuple[int, Fraction]:
    """Split a float measure position into (measure index, remainder in [0, 1)).

    The whole float is first approximated by the closest Fraction whose denominator does not
    exceed denominator_limit, then floored. So 0.333333 becomes 1/3 and matches a row at n/k
    exactly, and 0.9999999 becomes (1, 0) rather than a remainder of 1. Positions finer than
    1/denominator_limit are rounded to the nearest representable value.
    """
    if not math.isfinite(float(measure_position)):
        raise ValueError(f"measure position must be finite, got {measure_position!r}")
    approximation = Fraction(float(measure_position)).limit_denominator(int(denominator_limit))
    measure_index = math.floor(approximation)
    return int(measure_index), approximation - measure_index


def _elapsed_ms(positional_delta: Fraction, tempo: float, beats_per_measure: int) -> float:
    return float(positional_delta * ms_per_measure_at_one_bpm(beats_per_measure)) / float(tempo)


def resolve_tempo_map(
    bpms: Sequence[Tuple[float, float]],
    offset_ms: float = 0.0,
    *,
    beats_per_measure: int = DEFAULT_BEATS_PER_MEASURE,
    denominator_limit: int = DEFAULT_BPM_DENOMINATOR_LIMIT,
) -> Tuple[ResolvedTempoSegment, ...]:
    if not bpms:
        logger.info("Empty tempo map; chart resolves to no timed notes")
        return ()

    segments = []
    for measure_position, tempo in bpms:
        if float(tempo) <= 0.0:
            raise ValueError(f"tempo must be positive, got {tempo!r}")
        measure_index, fractional_position = decompose_measure_position(
            measure_position, denominator_limit=denominator_limit
        )

        if not segments:
            start_ms = float(offset_ms)
        else:
            previous = segments[-1]
            if (measure_index, fractional_position) <= previous.position_key():
                logger.warning(
                    "Tempo change at %s is not after the previous change at %s",
                    measure_position,
                    float(previous.measure_index + previous.fractional_position),
                )
            delta = (measure_index - previous.measure_index) + (fractional_position - previous.fractional_position)
            start_ms = previous.start_ms + _elapsed_ms(delta, previous.tempo, beats_per_measure)

        segments.append(
            ResolvedTempoSegment(
                measure_index=measure_index,
                fractional_position=fractional_position,
                tempo=float(tempo),
                start_ms=float(start_ms),
            )
        )
    return tuple(segments)


def time_at_position(
    segment: ResolvedTempoSegment,
    measure_index: int,
    position: Fraction,
    *,
    rate: float = 1.0,
    beats_per_measure: int = DEFAULT_BEATS_PER_MEASURE,
) -> float:
    if not math.isfinite(float(rate)) or float(rate) <= 0.0:
        raise ValueError(f"playback rate must be positive and finite, got {rate!r}")
    delta = (int(measure_index) - segment.measure_index) + (Fraction(position) - segment.fractional_position)
    return (segment.start_ms + _elapsed_ms(delta, segment.tempo, beats_per_measure)) / float(rate)


class TempoCursor:
    """Two-state walk over resolved segments: segment i active, segment i + 1 pending.

    Callers must query positions in non-decreasing order.
    """

    def __init__(self, segments: Sequence[ResolvedTempoSegment]) -> None:
        if not segments:
            raise ValueError("TempoCursor requires at least one segment")
        self._segments = tuple(segments)
        self._index = 0

    def current(self) -> ResolvedTempoSegment:
        return self._segments[self._index]

    def lookahead(self) -> Optional[ResolvedTempoSegment]:
        next_index = self._index + 1
        if next_index < len(self._segments):
            return self._segments[next_index]
        return None

    def should_advance(self, measure_index: int, position: Fraction) -> bool:
        pending = self.lookahead()
        if pending is None:
            return False
        if int(measure_index) > pending.measure_index:
            return True
        fraction_part = Fraction(position) - math.floor(Fraction(position))
        return int(measure_index) == pending.measure_index and pending.fractional_position <= fraction_part

    def advance_to(self, measure_index: int, position: Fraction) -> ResolvedTempoSegment:
        # Several tempo changes may fall between two rows.
        while self.should_advance(measure_index, position):
            self._index += 1
        return self.current()


def _run_unit_tests() -> None:
    segments = resolve_tempo_map([(0.0, 120.0), (2.0, 240.0)], 0.0)
    assert segments[0].start_ms == 0.0
    assert segments[1].start_ms == 4000.0

    index, remainder = decompose_measure_position(1.3333333)
    assert (index, remainder) == (1, Fraction(1, 3))

    cursor = TempoCursor(segments)
    assert cursor.advance_to(1, Fraction(3, 4)).tempo == 120.0
    assert cursor.advance_to(2, Fraction(0)).tempo == 240.0
    assert time_at_position(cursor.current(), 3, Fraction(0)) == 5000.0

    assert resolve_tempo_map([], 0.0) == ()


if __name__ == "__main__":
    _run_unit_tests()
    print("timing_model.py: ok")
