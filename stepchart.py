"""
stepchart.py

Command line entrypoint. Loads a simfile, converts one chart into per-column timed notes
and optionally scores a list of per-note offsets.

Integration
- Loads config (file, environment, then command line flags)
- Configures logging
- Builds a ChartEngine and prints one JSON document

Offsets file format
[
  {"offset": 12, "note_type": "tap"},
  {"offset": null, "note_type": "hold"},
  {"offset": null, "note_type": "mine"}
]
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from chart_engine import ChartEngine, ChartLoadError, ChartNotFoundError
from chart_models import NoteType
from config import AppConfig, get_config, to_json
from gameplay_models import OffsetRecord, TimedNote, TimingData


logger = logging.getLogger(__name__)


def _parse_note_type(value: Any) -> NoteType:
    try:
        return NoteType(str(value or "").strip().lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in NoteType)
        raise ValueError(f"Unknown note_type {value!r}. Allowed: {allowed}") from exc


def _load_offset_records(offsets_path: Path) -> List[OffsetRecord]:
    try:
        raw_text = offsets_path.read_text(encoding="utf-8")
    except OSError as exception:
        raise OSError(f"Failed to read offsets file: {offsets_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Offsets file is not valid JSON: {offsets_path}. Error: {exception}") from exception

    if not isinstance(parsed, list):
        raise ValueError(f"Offsets file root must be a JSON list: {offsets_path}")

    records: List[OffsetRecord] = []
    for item in parsed:
        if not isinstance(item, dict):
            raise ValueError(f"Offsets entries must be JSON objects, got {item!r}")
        offset_value = item.get("offset")
        records.append(
            OffsetRecord(
                offset_ms=int(offset_value) if offset_value is not None else None,
                note_type=_parse_note_type(item.get("note_type", "tap")),
            )
        )
    return records


def _timing_data_to_payload(timing_data: TimingData[TimedNote]) -> List[List[Dict[str, Any]]]:
    return [
        [{"time_ms": note.time_ms, "note_type": note.note_type.value} for note in column]
        for column in timing_data.columns()
    ]


def _apply_argument_overrides(app_config: AppConfig, parsed_args: argparse.Namespace) -> AppConfig:
    config_dict = app_config.model_dump()
    if parsed_args.rate is not None:
        config_dict["timing"]["playback_rate"] = float(parsed_args.rate)
    if parsed_args.timing_scale is not None:
        config_dict["scoring"]["timing_scale"] = float(parsed_args.timing_scale)
    if parsed_args.log_level:
        config_dict["logging"]["level"] = str(parsed_args.log_level)
    # Re-validate so command line values obey the same bounds as file values.
    return AppConfig.model_validate(config_dict)


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert a StepMania simfile into timed notes and score offsets.")
    parser.add_argument("simfile", nargs="?", type=Path, help="Path to a .sm file.")
    selection = parser.add_mutually_exclusive_group()
    selection.add_argument("--chart-index", type=int, default=None, help="Chart index within the simfile (default 0).")
    selection.add_argument("--difficulty", default=None, help="Pick the first chart with this difficulty.")
    parser.add_argument("--rate", type=float, default=None, help="Playback rate (overrides config).")
    parser.add_argument("--offsets", type=Path, default=None, help="JSON list of per-note offsets to score.")
    parser.add_argument("--timing-scale", type=float, default=None, help="Scoring tolerance multiplier (overrides config).")
    parser.add_argument("--log-level", default=None, help="Logging level (overrides config).")
    parser.add_argument("--show-config", action="store_true", help="Print the effective config and exit.")
    return parser


def run(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    parser = build_argument_parser()
    parsed_args = parser.parse_args(argv)

    app_config, _config_path = get_config()
    app_config = _apply_argument_overrides(app_config, parsed_args)

    logging.basicConfig(
        level=getattr(logging, app_config.logging.level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if parsed_args.show_config:
        return {"ok": True, "config": json.loads(to_json(app_config))}

    if parsed_args.simfile is None:
        parser.error("simfile is required unless --show-config is given")

    engine = ChartEngine.from_path(parsed_args.simfile, config=app_config)

    chart_index = 0
    if parsed_args.difficulty:
        chart_index = engine.chart_index_for_difficulty(parsed_args.difficulty)
    elif parsed_args.chart_index is not None:
        chart_index = int(parsed_args.chart_index)

    timing_data = engine.timing_data(chart_index=chart_index)
    metadata = engine.simfile().metadata

    output_payload: Dict[str, Any] = {
        "ok": True,
        "title": metadata.title,
        "bpm": metadata.bpm,
        "chart_index": chart_index,
        "rate": app_config.timing.playback_rate,
        "segments": [
            {
                "measure_index": segment.measure_index,
                "fractional_position": str(segment.fractional_position),
                "tempo": segment.tempo,
                "start_ms": segment.start_ms,
            }
            for segment in engine.segments()
        ],
        "columns": _timing_data_to_payload(timing_data),
    }

    if parsed_args.offsets is not None:
        records = _load_offset_records(parsed_args.offsets)
        logger.info("Scoring %d offset record(s)", len(records))
        output_payload["score"] = engine.score(records)

    return output_payload


def main(argv: Optional[List[str]] = None) -> int:
    try:
        output_payload = run(argv)
    except (ChartLoadError, ChartNotFoundError, OSError, ValueError, ZeroDivisionError) as exception:
        error_payload = {"ok": False, "error": str(exception) or type(exception).__name__}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
