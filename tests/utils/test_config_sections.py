"""Tests for Config-backed configuration sections."""

from __future__ import annotations

import pytest

from qibla_compass.utils.config import Config
from qibla_compass.utils.config_sections import (
    load_display_config,
    load_mock_location_config,
    load_mock_sensor_config,
    load_telemetry_config,
)


def test_sections_follow_config(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(Config, "MOCK_LATITUDE", 21.0)
    monkeypatch.setattr(Config, "MOCK_SENSOR_MODE", "static")
    monkeypatch.setattr(Config, "TELEMETRY_ENABLED", True)
    monkeypatch.setattr(Config, "DISPLAY_INTERVAL_SEC", 1.0)

    assert load_mock_location_config().latitude == 21.0
    assert load_mock_sensor_config().mode == "static"
    assert load_telemetry_config().enabled is True
    assert load_display_config().interval_sec == 1.0


def test_sections_fall_back_to_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delattr(Config, "MOCK_NOISE_UT")
    monkeypatch.delattr(Config, "MOCK_LOCATION_FAILS")

    assert load_mock_sensor_config().noise_ut == 0.3
    assert load_mock_location_config().fail_fix is False
