# -*- coding: utf-8 -*-
########################
# gameplay_models.py
########################
# Purpose:
# - Timed gameplay data models exchanged between the converter, renderers and the scoring engine.
# - Defines TimedNote, OffsetRecord and the column-partitioned TimingData container.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - TimedNote and OffsetRecord are frozen. TimingData is filled once by its producer, then frozen.
#
########################
# Interfaces:
# Public dataclasses:
# - TimedNote(time_ms: int, note_type: NoteType, column: int, payload: Any = None)
# - OffsetRecord(offset_ms: Optional[int], note_type: NoteType)
#
# Public classes:
# - class TimingData(Generic[T])
#   - __init__(column_count: int = 4)
#   - column_count -> int
#   - add(item: T, column: int) -> None  (TypeError once frozen)
#   - freeze() -> TimingData[T]
#   - is_frozen() -> bool
#   - column(column: int) -> list[T]
#   - columns() -> Iterator[list[T]]
#   - notes() -> Iterator[T]
#
# Inputs/Outputs:
# - TimingData[TimedNote] from note_scheduler.py, read by rendering and input layers.
# - TimingData[OffsetRecord] or any OffsetRecord iterable, read by judge.py.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, Iterator, List, Optional, TypeVar

from chart_models import NoteType


DEFAULT_COLUMN_COUNT = 4


@dataclass(frozen=True)
class TimedNote:
    time_ms: int
    note_type: NoteType
    column: int
    # Opaque rendering descriptor from the caller's payload lookup.
    payload: Any = None


@dataclass(frozen=True)
class OffsetRecord:
    # Hit time minus due time in ms. None means the note was never hit.
    offset_ms: Optional[int]
    note_type: NoteType


T = TypeVar("T")


class TimingData(Generic[T]):
    def __init__(self, column_count: int = DEFAULT_COLUMN_COUNT) -> None:
        if int(column_count) <= 0:
            raise ValueError(f"column_count must be positive, got {column_count}")
        self._columns: List[List[T]] = [[] for _ in range(int(column_count))]
        self._frozen = False

    @property
    def column_count(self) -> int:
        return len(self._columns)

    def add(self, item: T, column: int) -> None:
        if self._frozen:
            raise TypeError("TimingData is frozen; build a new instance instead")
        if not 0 <= int(column) < len(self._columns):
            raise IndexError(f"column {column} outside 0..{len(self._columns) - 1}")
        self._columns[int(column)].append(item)

    def freeze(self) -> "TimingData[T]":
        self._frozen = True
        return self

    def is_frozen(self) -> bool:
        return self._frozen

    def column(self, column: int) -> List[T]:
        return list(self._columns[int(column)])

    def columns(self) -> Iterator[List[T]]:
        return (list(items) for items in self._columns)

    def notes(self) -> Iterator[T]:
        for items in self._columns:
            yield from items

    def __len__(self) -> int:
        return sum(len(items) for items in self._columns)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimingData):
            return NotImplemented
        return self._columns == other._columns

    def __repr__(self) -> str:
        sizes = ", ".join(str(len(items)) for items in self._columns)
        return f"TimingData(columns=[{sizes}])"
