"""Tests for the console runner."""

from __future__ import annotations

import pytest

from qibla_compass import main as main_module


@pytest.fixture(autouse=True)
def no_signal_handler(monkeypatch: pytest.MonkeyPatch):
    class StubCtrlHandler:
        should_stop = False

        def wait(self, timeout):
            return False

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return None

    monkeypatch.setattr(main_module, "CtrlCHandler", StubCtrlHandler)


def test_build_configs_applies_overrides():
    args = main_module.parse_args(
        ["--lat", "10", "--lon", "20", "--mode", "static", "--heading", "45", "--location-fails"]
    )
    location, sensor, telemetry = main_module.build_configs(args)

    assert (location.latitude, location.longitude) == (10.0, 20.0)
    assert location.fail_fix is True
    assert sensor.mode == "static"
    assert sensor.heading_deg == 45.0
    assert telemetry.enabled is False


def test_main_runs_for_duration(capsys):
    exit_code = main_module.main(["--mode", "static", "--duration", "0"])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "[COMPASS] Stopped" in out


def test_main_reports_missing_sensor(capsys):
    exit_code = main_module.main(["--no-sensor"])

    out = capsys.readouterr().out
    assert exit_code == 1
    assert "Error: sensor unavailable" in out
