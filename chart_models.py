# -*- coding: utf-8 -*-
########################
# chart_models.py
########################
# Purpose:
# - Parsed chart data models: exact row positions, note types, measures and metadata.
# - Produced once by sm_store.py and treated as immutable afterwards.
#
# Design notes:
# - Positions are fractions.Fraction in [0, 1). Never store a row position as float.
# - NoteType is a closed enum. Scoring dispatch in judge.py covers every member.
# - No I/O here. Pure data definitions.
#
########################
# Interfaces:
# Public enums:
# - class NoteType(enum.Enum): TAP | HOLD | HOLD_END | ROLL | MINE | LIFT | FAKE
#   - from_symbol(symbol: str) -> Optional[NoteType]
#
# Public dataclasses:
# - Row(notes: tuple[tuple[NoteType, int], ...])
# - ChartMetadata(title: Optional[str], offset: Optional[float], bpms: tuple[tuple[float, float], ...], bpm: Optional[float])
# - StepChart(measures: tuple[Measure, ...], steps_type, description, difficulty, meter)
# - Simfile(metadata: ChartMetadata, step_charts: tuple[StepChart, ...])
#
# Public helpers:
# - position_for_row(row_index: int, row_count: int) -> Fraction
#
# Type aliases:
# - Position = fractions.Fraction
# - Measure = tuple[tuple[Position, Row], ...]
#
########################

from __future__ import annotations

from dataclasses import dataclass
import enum
from fractions import Fraction
from typing import Iterator, Optional, Tuple


Position = Fraction


class NoteType(enum.Enum):
    TAP = "tap"
    HOLD = "hold"
    HOLD_END = "hold_end"
    ROLL = "roll"
    MINE = "mine"
    LIFT = "lift"
    FAKE = "fake"

    @classmethod
    def from_symbol(cls, symbol: str) -> Optional["NoteType"]:
        """Map one note grid character to a note type.

        '0' and any unknown character map to None so newer symbols are skipped.
        """
        return _SYMBOL_TO_NOTE_TYPE.get(str(symbol))


_SYMBOL_TO_NOTE_TYPE = {
    "1": NoteType.TAP,
    "2": NoteType.HOLD,
    "3": NoteType.HOLD_END,
    "4": NoteType.ROLL,
    "M": NoteType.MINE,
    "L": NoteType.LIFT,
    "F": NoteType.FAKE,
}


@dataclass(frozen=True)
class Row:
    notes: Tuple[Tuple[NoteType, int], ...] = ()

    def __iter__(self) -> Iterator[Tuple[NoteType, int]]:
        return iter(self.notes)

    def __len__(self) -> int:
        return len(self.notes)


Measure = Tuple[Tuple[Position, Row], ...]


def position_for_row(row_index: int, row_count: int) -> Position:
    if row_count <= 0:
        raise ValueError(f"row_count must be positive, got {row_count}")
    if not 0 <= row_index < row_count:
        raise ValueError(f"row_index {row_index} outside measure of {row_count} rows")
    return Fraction(int(row_index), int(row_count))


@dataclass(frozen=True)
class ChartMetadata:
    title: Optional[str] = None
    # Seconds notes are shifted earlier (negated #OFFSET). None when absent or malformed.
    offset: Optional[float] = None
    bpms: Tuple[Tuple[float, float], ...] = ()
    # Display only. Timing always uses bpms.
    bpm: Optional[float] = None

    def offset_ms(self) -> float:
        return float(self.offset or 0.0) * 1000.0


@dataclass(frozen=True)
class StepChart:
    measures: Tuple[Measure, ...] = ()
    steps_type: Optional[str] = None
    description: Optional[str] = None
    difficulty: Optional[str] = None
    meter: Optional[int] = None

    def note_count(self) -> int:
        return sum(len(row) for measure in self.measures for _position, row in measure)


@dataclass(frozen=True)
class Simfile:
    metadata: ChartMetadata
    step_charts: Tuple[StepChart, ...] = ()

    def charts(self) -> Iterator[StepChart]:
        return iter(self.step_charts)
