"""Tests for mfiplug.cli."""

from __future__ import annotations

import asyncio
import contextlib
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from aioresponses import aioresponses
from typer.testing import CliRunner

from mfiplug.cli import _watch_async, app
from mfiplug.config import DeviceConfig
from mfiplug.session import ValidationResult

runner = CliRunner()

CONFIG = DeviceConfig("10.0.0.20", "admin", "secret", "Lamp", "Heater")
LOGIN_URL = "http://10.0.0.20/login.cgi"
SENSORS_URL = "http://10.0.0.20/sensors"

MOCK_SENSORS: dict[str, Any] = {
    "sensors": [
        {"voltage": 120, "current": 1.5, "power": 180, "output": 1},
        {"voltage": 120, "current": 0, "power": 0, "output": 0},
    ]
}


@pytest.fixture
def config_file(tmp_path, monkeypatch) -> Path:
    path = tmp_path / "device.json"
    monkeypatch.setattr("mfiplug._constants.CONFIG_FILE", path)
    return path


@pytest.fixture
def saved_config(config_file) -> Path:
    CONFIG.save(config_file)
    return config_file


class TestNoCommand:
    def test_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "configure" in result.output


class TestConfigure:
    def test_saves_valid_config(self, config_file):
        with patch("mfiplug.cli.plugin.validate", AsyncMock(return_value=ValidationResult(True))):
            result = runner.invoke(
                app,
                ["configure"],
                input="10.0.0.20\nadmin\nsecret\nLamp\nHeater\n",
            )

        assert result.exit_code == 0, result.output
        assert "Configuration saved" in result.output
        assert json.loads(config_file.read_text())["outlet1Name"] == "Lamp"

    def test_rejects_invalid_credentials(self, config_file):
        invalid = ValidationResult(False, ["Invalid credentials."])
        with patch("mfiplug.cli.plugin.validate", AsyncMock(return_value=invalid)):
            result = runner.invoke(
                app,
                ["configure"],
                input="10.0.0.20\nadmin\nwrong\nLamp\nHeater\n",
            )

        assert result.exit_code == 1
        assert "Invalid credentials." in result.output
        assert not config_file.exists()


class TestValidate:
    def test_no_config(self, config_file):
        result = runner.invoke(app, ["validate"])
        assert result.exit_code == 1
        assert "No saved configuration" in result.output

    def test_ok(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            result = runner.invoke(app, ["validate"])

        assert result.exit_code == 0
        assert "10.0.0.20: OK" in result.output

    def test_unreachable(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=500)
            result = runner.invoke(app, ["validate"])

        assert result.exit_code == 1
        assert "Could not contact server" in result.output


class TestStatus:
    def test_plain_output(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            m.get(SENSORS_URL, payload=MOCK_SENSORS)
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 0, result.output
        assert "Lamp" in result.output
        assert "Heater" in result.output
        assert "Power: 180W" in result.output
        assert "Current: 1.50A" in result.output
        assert "Output: ON" in result.output
        assert "Output: OFF" in result.output

    def test_json_output(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            m.get(SENSORS_URL, payload=MOCK_SENSORS)
            result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["Lamp"] == {"voltage": 120, "current": 1.5, "power": 180, "output": True}
        assert data["Heater"]["output"] is False

    def test_no_readings(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            m.get(SENSORS_URL, status=500)
            result = runner.invoke(app, ["status"])

        assert result.exit_code == 1
        assert "No readings from device" in result.output


class TestSet:
    def test_switches_outlet(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            m.put(f"{SENSORS_URL}/2", status=200)
            result = runner.invoke(app, ["set", "2", "on"])

        assert result.exit_code == 0, result.output
        assert "Heater is ON." in result.output

    def test_rejected(self, saved_config):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            m.put(f"{SENSORS_URL}/1", status=500)
            result = runner.invoke(app, ["set", "1", "off"])

        assert result.exit_code == 1
        assert "did not accept" in result.output

    def test_invalid_outlet(self, saved_config):
        result = runner.invoke(app, ["set", "3", "on"])
        assert result.exit_code == 1
        assert "Invalid outlet 3" in result.output

    def test_invalid_state(self, saved_config):
        result = runner.invoke(app, ["set", "1", "maybe"])
        assert result.exit_code == 1
        assert "Expected: on | off" in result.output


class TestWatch:
    def test_no_config(self, config_file):
        result = runner.invoke(app, ["watch"])
        assert result.exit_code == 1

    async def test_prints_initial_values(self, capsys):
        with aioresponses() as m:
            m.post(LOGIN_URL, status=302)
            m.get(SENSORS_URL, payload=MOCK_SENSORS)
            task = asyncio.create_task(_watch_async(CONFIG))
            await asyncio.sleep(0.2)
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        out = capsys.readouterr().out
        assert "Watching 10.0.0.20" in out
        assert "Lamp Power: 180W" in out
        assert "Heater Output: OFF" in out
