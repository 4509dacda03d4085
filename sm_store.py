# -*- coding: utf-8 -*-
########################
# sm_store.py
########################
# Purpose:
# - Parse StepMania .sm text into chart_models.Simfile.
# - Extract #TITLE, #OFFSET, #BPMS and every #NOTES block; ignore all other tags.
#
# Design notes:
# - Parsing chart content never raises. Malformed OFFSET or BPMS leaves the field unset or empty.
# - Only load_simfile touches the filesystem and it raises SimfileReadError on I/O problems.
# - Row positions are exact Fractions, see chart_models.position_for_row.
#
########################
# Interfaces:
# Public exceptions:
# - class SimfileError(Exception)
# - class SimfileReadError(SimfileError)
#
# Public functions:
# - normalize_difficulty(difficulty: str) -> str
# - parse_simfile(simfile_text: str, *, notes_header_lines: int = 5) -> chart_models.Simfile
# - load_simfile(simfile_path: pathlib.Path, *, notes_header_lines: int = 5) -> chart_models.Simfile
#
# Inputs:
# - Raw simfile text made of '#TAG:VALUE;' fields. VALUE may span lines.
#
# Outputs:
# - Simfile with shared ChartMetadata and one StepChart per #NOTES block.
#
########################

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import List, Optional, Tuple

from chart_models import ChartMetadata, Measure, NoteType, Row, Simfile, StepChart, position_for_row


logger = logging.getLogger(__name__)

DEFAULT_NOTES_HEADER_LINES = 5


class SimfileError(Exception):
    """Base error for simfile access."""


class SimfileReadError(SimfileError):
    """Raised when the simfile cannot be read or decoded."""


_ALLOWED_DIFFICULTIES = {
    "beginner",
    "easy",
    "medium",
    "hard",
    "challenge",
    "edit",
}


def normalize_difficulty(difficulty: str) -> str:
    difficulty_text = str(difficulty or "").strip().lower()
    if difficulty_text not in _ALLOWED_DIFFICULTIES:
        raise ValueError(
            f"Unsupported difficulty: {difficulty!r}. Allowed: {sorted(_ALLOWED_DIFFICULTIES)}"
        )
    return difficulty_text


def _read_text_utf8(file_path: Path) -> str:
    try:
        return file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise SimfileReadError(f"Simfile is not valid UTF-8: {file_path}") from exc
    except OSError as exc:
        raise SimfileReadError(f"Failed to read simfile: {file_path}") from exc


def _split_tags(simfile_text: str) -> List[Tuple[str, str]]:
    """Split on '#' into (TAG, raw value) pairs.

    Text before the first '#' and chunks without a ':' produce an empty or unknown
    tag, which the caller ignores.
    """
    fields: List[Tuple[str, str]] = []
    for chunk in str(simfile_text).split("#"):
        tag_text, _separator, value_text = chunk.partition(":")
        fields.append((tag_text.strip().upper(), value_text))
    return fields


def _terminated_body(value_text: str) -> Optional[str]:
    body_text, separator, _rest = value_text.partition(";")
    if not separator:
        return None
    return body_text


def _parse_finite_float(text: str) -> float:
    value = float(text.strip())
    if not math.isfinite(value):
        raise ValueError(f"non-finite value: {text!r}")
    return value


def _parse_offset(value_text: str) -> Optional[float]:
    body = _terminated_body(value_text)
    if body is None:
        logger.warning("Ignoring unterminated #OFFSET value %r", value_text)
        return None
    try:
        # Positive #OFFSET means notes start later; store the shift to apply earlier.
        return -1.0 * _parse_finite_float(body)
    except ValueError:
        logger.warning("Ignoring malformed #OFFSET value %r", body)
        return None


def _parse_bpms(value_text: str) -> List[Tuple[float, float]]:
    body = _terminated_body(value_text)
    if body is None:
        logger.warning("Ignoring unterminated #BPMS value %r", value_text)
        return []

    segments: List[Tuple[float, float]] = []
    for item in body.split(","):
        item_text = item.strip()
        position_text, separator, bpm_text = item_text.partition("=")
        if not separator:
            logger.warning("Ignoring malformed #BPMS value, bad pair %r", item_text)
            return []
        try:
            position_value = _parse_finite_float(position_text)
            bpm_value = _parse_finite_float(bpm_text)
        except ValueError:
            logger.warning("Ignoring malformed #BPMS value, non-numeric pair %r", item_text)
            return []
        if bpm_value <= 0.0:
            logger.warning("Ignoring malformed #BPMS value, tempo must be > 0: %r", item_text)
            return []
        segments.append((position_value, bpm_value))
    return segments


def _parse_row(row_text: str) -> Row:
    notes: List[Tuple[NoteType, int]] = []
    for column_index, symbol in enumerate(row_text):
        note_type = NoteType.from_symbol(symbol)
        if note_type is not None:
            notes.append((note_type, column_index))
    return Row(notes=tuple(notes))


def _build_measure(row_texts: List[str]) -> Measure:
    row_count = len(row_texts)
    return tuple(
        (position_for_row(row_index, row_count), _parse_row(row_text))
        for row_index, row_text in enumerate(row_texts)
    )


def _split_measures(note_lines: List[str]) -> List[Measure]:
    measures: List[Measure] = []
    current_measure_rows: List[str] = []

    def finalize_current_measure() -> None:
        nonlocal current_measure_rows
        measures.append(_build_measure(current_measure_rows))
        current_measure_rows = []

    for raw_line in note_lines:
        line_text = str(raw_line).strip()
        if "//" in line_text:
            line_text = line_text.split("//", 1)[0].strip()
        if not line_text:
            continue

        if line_text == ",":
            finalize_current_measure()
            continue

        if line_text.endswith(","):
            row_part = line_text[:-1].strip()
            if row_part:
                current_measure_rows.append(row_part)
            finalize_current_measure()
            continue

        current_measure_rows.append(line_text)

    if current_measure_rows:
        finalize_current_measure()

    return measures


def _header_field(header_values: List[str], index: int) -> Optional[str]:
    if index >= len(header_values):
        return None
    return header_values[index] or None


def _parse_meter(meter_text: Optional[str]) -> Optional[int]:
    if meter_text is None:
        return None
    try:
        return int(meter_text)
    except ValueError:
        return None


def _parse_notes_block(value_text: str, *, notes_header_lines: int) -> StepChart:
    body = _terminated_body(value_text)
    if body is None:
        body = value_text

    lines = body.strip().splitlines()
    header_lines = lines[:notes_header_lines]
    note_lines = lines[notes_header_lines:]

    # Header: steps type, description, difficulty, meter, radar values.
    header_values = [line.strip().rstrip(":").strip() for line in header_lines]
    difficulty_text = _header_field(header_values, 2)

    return StepChart(
        measures=tuple(_split_measures(note_lines)),
        steps_type=_header_field(header_values, 0),
        description=_header_field(header_values, 1),
        difficulty=difficulty_text.lower() if difficulty_text else None,
        meter=_parse_meter(_header_field(header_values, 3)),
    )


def parse_simfile(simfile_text: str, *, notes_header_lines: int = DEFAULT_NOTES_HEADER_LINES) -> Simfile:
    if notes_header_lines < 0:
        raise ValueError(f"notes_header_lines must be >= 0, got {notes_header_lines}")

    title: Optional[str] = None
    offset: Optional[float] = None
    bpms: List[Tuple[float, float]] = []
    step_charts: List[StepChart] = []

    for tag_name, value_text in _split_tags(simfile_text):
        if tag_name == "TITLE":
            body = _terminated_body(value_text)
            title = body if body is not None else value_text
        elif tag_name == "OFFSET":
            offset = _parse_offset(value_text)
        elif tag_name == "BPMS":
            bpms = _parse_bpms(value_text)
        elif tag_name == "NOTES":
            step_charts.append(_parse_notes_block(value_text, notes_header_lines=notes_header_lines))

    metadata = ChartMetadata(
        title=title,
        offset=offset,
        bpms=tuple(bpms),
        bpm=bpms[-1][1] if bpms else None,
    )
    return Simfile(metadata=metadata, step_charts=tuple(step_charts))


def load_simfile(simfile_path: Path, *, notes_header_lines: int = DEFAULT_NOTES_HEADER_LINES) -> Simfile:
    simfile_text = _read_text_utf8(Path(simfile_path))
    simfile = parse_simfile(simfile_text, notes_header_lines=notes_header_lines)
    logger.debug(
        "Loaded %s: %d chart(s), %d tempo change(s)",
        simfile_path,
        len(simfile.step_charts),
        len(simfile.metadata.bpms),
    )
    return simfile
