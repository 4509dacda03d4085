"""
config.py

Typed configuration loading and validation for stepchart.

Design goals
- Load at most one UTF-8 JSON config file
- Validate with pydantic (defaults included)
- Support environment variable overrides
- No other I/O beyond reading the config file (no directory creation)

Config file location
- If STEPCHART_CONFIG_PATH is set, that file is used.
- Otherwise these paths are searched in order and the first one that exists is used:
  1) ./stepchart_config.json (current working directory)
  2) <user config dir>/Stepchart/Stepchart/stepchart_config.json
- When no file exists the defaults below apply.

Example config file (stepchart_config.json)
{
  "chart": {
    "column_count": 4,
    "notes_header_lines": 5,
    "bpm_denominator_limit": 192
  },
  "timing": {
    "playback_rate": 1.0,
    "beats_per_measure": 4
  },
  "scoring": {
    "timing_scale": 1.0
  },
  "logging": {
    "level": "WARNING"
  }
}
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from platformdirs import user_config_dir
from pydantic import BaseModel, Field, ValidationError, field_validator


class ChartConfig(BaseModel):
    column_count: int = Field(default=4, ge=1, description="Playfield columns. Notes outside are dropped.")
    notes_header_lines: int = Field(default=5, ge=0, description="Header lines skipped at the top of each #NOTES body.")
    bpm_denominator_limit: int = Field(
        default=192,
        ge=1,
        description="Largest denominator used when converting float tempo positions to fractions.",
    )


class TimingConfig(BaseModel):
    playback_rate: float = Field(
        default=1.0,
        gt=0.0,
        allow_inf_nan=False,
        description="Timeline scale. Below 1 slows, above 1 speeds up.",
    )
    beats_per_measure: int = Field(default=4, ge=1, description="Beats per measure for the whole chart.")


class ScoringConfig(BaseModel):
    timing_scale: float = Field(
        default=1.0,
        gt=0.0,
        allow_inf_nan=False,
        description="Multiplier on the scoring curve tolerance.",
    )


class LoggingConfig(BaseModel):
    level: str = Field(default="WARNING", description="DEBUG, INFO, WARNING, ERROR or CRITICAL")

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        normalized = (value or "").strip().upper()
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if normalized not in allowed:
            raise ValueError("level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized


class AppConfig(BaseModel):
    chart: ChartConfig = Field(default_factory=ChartConfig)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _default_config_candidates() -> List[Path]:
    config_directory = Path(user_config_dir("Stepchart", "Stepchart"))
    return [
        Path.cwd() / "stepchart_config.json",
        config_directory / "stepchart_config.json",
    ]


def _resolve_config_path() -> Optional[Path]:
    explicit_path_text = os.environ.get("STEPCHART_CONFIG_PATH", "").strip()
    if explicit_path_text:
        return Path(explicit_path_text)

    for candidate_path in _default_config_candidates():
        if candidate_path.exists():
            return candidate_path

    return None


def _read_json_file_utf8(config_path: Path) -> Dict[str, Any]:
    try:
        raw_text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise
    except OSError as exception:
        raise OSError(f"Failed to read config file: {config_path}. Error: {exception}") from exception

    try:
        parsed = json.loads(raw_text)
    except json.JSONDecodeError as exception:
        raise ValueError(f"Config file is not valid JSON: {config_path}. Error: {exception}") from exception

    if not isinstance(parsed, dict):
        raise ValueError(f"Config file root must be a JSON object: {config_path}")

    return parsed


def _apply_environment_overrides(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Environment overrides are optional and win over the config file.

    Override variables:
    - STEPCHART_COLUMN_COUNT
    - STEPCHART_PLAYBACK_RATE
    - STEPCHART_BEATS_PER_MEASURE
    - STEPCHART_TIMING_SCALE
    - STEPCHART_LOG_LEVEL
    """
    def ensure_nested(config_root: Dict[str, Any], section_name: str) -> Dict[str, Any]:
        section = config_root.get(section_name)
        if isinstance(section, dict):
            section = dict(section)
        else:
            section = {}
        config_root[section_name] = section
        return section

    updated_config = dict(config_dict)

    chart_section = ensure_nested(updated_config, "chart")
    timing_section = ensure_nested(updated_config, "timing")
    scoring_section = ensure_nested(updated_config, "scoring")
    logging_section = ensure_nested(updated_config, "logging")

    def override_string(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "")
        if value_text.strip():
            target_dict[key_name] = value_text.strip()

    def override_int(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = int(value_text)
        except ValueError:
            return

    def override_float(env_name: str, target_dict: Dict[str, Any], key_name: str) -> None:
        value_text = os.environ.get(env_name, "").strip()
        if not value_text:
            return
        try:
            target_dict[key_name] = float(value_text)
        except ValueError:
            return

    override_int("STEPCHART_COLUMN_COUNT", chart_section, "column_count")
    override_float("STEPCHART_PLAYBACK_RATE", timing_section, "playback_rate")
    override_int("STEPCHART_BEATS_PER_MEASURE", timing_section, "beats_per_measure")
    override_float("STEPCHART_TIMING_SCALE", scoring_section, "timing_scale")
    override_string("STEPCHART_LOG_LEVEL", logging_section, "level")

    return updated_config


def load_config(config_path: Optional[Path] = None) -> Tuple[AppConfig, Optional[Path]]:
    resolved_path = config_path if config_path is not None else _resolve_config_path()
    json_dict: Dict[str, Any] = {}
    if resolved_path is not None:
        json_dict = _read_json_file_utf8(resolved_path)
    json_dict = _apply_environment_overrides(json_dict)

    try:
        config = AppConfig.model_validate(json_dict)
    except ValidationError as exception:
        source_text = str(resolved_path) if resolved_path is not None else "defaults and environment"
        raise ValueError(f"Config validation failed for {source_text}:\n{exception}") from exception

    return config, resolved_path


@lru_cache(maxsize=1)
def get_config() -> Tuple[AppConfig, Optional[Path]]:
    return load_config()


def to_json(config: AppConfig) -> str:
    return json.dumps(config.model_dump(), ensure_ascii=False, indent=2)


def main() -> int:
    try:
        config, resolved_path = load_config()
    except Exception as exception:
        error_payload = {"ok": False, "error": str(exception)}
        print(json.dumps(error_payload, ensure_ascii=False, indent=2))
        return 2

    output_payload = {
        "ok": True,
        "config_path": str(resolved_path) if resolved_path is not None else None,
        "config": json.loads(to_json(config)),
    }
    print(json.dumps(output_payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
