"""Tests for configuration loading."""

import json

import pytest

import config


def test_defaults_without_file():
    app_config, resolved_path = config.load_config()
    assert resolved_path is None
    assert app_config.chart.column_count == 4
    assert app_config.chart.notes_header_lines == 5
    assert app_config.chart.bpm_denominator_limit == 192
    assert app_config.timing.playback_rate == 1.0
    assert app_config.timing.beats_per_measure == 4
    assert app_config.scoring.timing_scale == 1.0
    assert app_config.logging.level == "WARNING"


def test_file_values(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.json"
    config_path.write_text(json.dumps({"timing": {"playback_rate": 1.5}, "logging": {"level": "debug"}}), encoding="utf-8")
    monkeypatch.setenv("STEPCHART_CONFIG_PATH", str(config_path))
    app_config, resolved_path = config.load_config()
    assert resolved_path == config_path
    assert app_config.timing.playback_rate == 1.5
    assert app_config.logging.level == "DEBUG"


def test_default_candidate_is_found(tmp_path):
    (tmp_path / "stepchart_config.json").write_text(json.dumps({"scoring": {"timing_scale": 0.8}}), encoding="utf-8")
    app_config, resolved_path = config.load_config()
    assert resolved_path == tmp_path / "stepchart_config.json"
    assert app_config.scoring.timing_scale == 0.8


def test_environment_overrides_win(tmp_path, monkeypatch):
    config_path = tmp_path / "custom.json"
    config_path.write_text(json.dumps({"timing": {"playback_rate": 1.5}}), encoding="utf-8")
    monkeypatch.setenv("STEPCHART_CONFIG_PATH", str(config_path))
    monkeypatch.setenv("STEPCHART_PLAYBACK_RATE", "0.75")
    monkeypatch.setenv("STEPCHART_COLUMN_COUNT", "6")
    monkeypatch.setenv("STEPCHART_TIMING_SCALE", "not a number")
    app_config, _resolved_path = config.load_config()
    assert app_config.timing.playback_rate == 0.75
    assert app_config.chart.column_count == 6
    assert app_config.scoring.timing_scale == 1.0


@pytest.mark.parametrize(
    "payload",
    [
        {"timing": {"playback_rate": 0}},
        {"scoring": {"timing_scale": -1}},
        {"chart": {"column_count": 0}},
        {"logging": {"level": "LOUD"}},
    ],
)
def test_invalid_values_rejected(tmp_path, payload):
    config_path = tmp_path / "bad.json"
    config_path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError):
        config.load_config(config_path)


def test_invalid_json_rejected(tmp_path):
    config_path = tmp_path / "bad.json"
    config_path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError):
        config.load_config(config_path)


def test_explicit_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.load_config(tmp_path / "missing.json")


def test_get_config_is_cached():
    assert config.get_config() is config.get_config()


def test_to_json_round_trips():
    app_config, _resolved_path = config.load_config()
    assert config.AppConfig.model_validate(json.loads(config.to_json(app_config))) == app_config


@pytest.mark.parametrize(
    "payload",
    [
        {"timing": {"playback_rate": "inf"}},
        {"timing": {"playback_rate": "nan"}},
        {"scoring": {"timing_scale": "inf"}},
    ],
)
def test_non_finite_values_rejected(tmp_path, payload):
    config_path = tmp_path / "bad.json"
    config_path.write_text(json.dumps(payload), encoding="utf-8")
    with pytest.raises(ValueError):
        config.load_config(config_path)


def test_non_finite_environment_override_rejected(monkeypatch):
    monkeypatch.setenv("STEPCHART_PLAYBACK_RATE", "inf")
    with pytest.raises(ValueError):
        config.load_config()
