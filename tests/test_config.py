"""Tests for mfiplug.config."""

import json

import pytest

from mfiplug.config import DeviceConfig


class TestFromDict:
    def test_camel_case_keys(self):
        config = DeviceConfig.from_dict(
            {
                "ipAddress": "10.0.0.20",
                "username": "admin",
                "password": "secret",
                "outlet1Name": "Lamp",
                "outlet2Name": "Heater",
            }
        )
        assert config == DeviceConfig("10.0.0.20", "admin", "secret", "Lamp", "Heater")

    def test_port_name_aliases(self):
        config = DeviceConfig.from_dict(
            {
                "ipAddress": "10.0.0.20",
                "username": "admin",
                "password": "secret",
                "port1Name": "Lamp",
                "port2Name": "Heater",
            }
        )
        assert config.outlet1_name == "Lamp"
        assert config.outlet2_name == "Heater"

    def test_field_names(self):
        config = DeviceConfig.from_dict(
            {"ip_address": "10.0.0.20", "username": "admin", "password": "secret"}
        )
        assert config.outlet1_name == "Outlet 1"

    def test_unknown_keys_ignored(self):
        config = DeviceConfig.from_dict(
            {"ipAddress": "h", "username": "u", "password": "p", "colour": "red"}
        )
        assert config.ip_address == "h"

    def test_missing_required(self):
        with pytest.raises(ValueError, match="ip_address, password"):
            DeviceConfig.from_dict({"username": "admin"})


class TestDeviceConfig:
    def test_base_url(self):
        assert DeviceConfig("10.0.0.20", "u", "p").base_url == "http://10.0.0.20"

    def test_outlet_name(self):
        config = DeviceConfig("h", "u", "p", "Lamp", "Heater")
        assert config.outlet_name(1) == "Lamp"
        assert config.outlet_name(2) == "Heater"
        with pytest.raises(ValueError):
            config.outlet_name(3)

    def test_immutable(self):
        config = DeviceConfig("h", "u", "p")
        with pytest.raises(AttributeError):
            config.ip_address = "other"  # type: ignore[misc]

    def test_repr_hides_password(self):
        assert "secret" not in repr(DeviceConfig("h", "u", "secret"))

    def test_to_dict_round_trip(self):
        config = DeviceConfig("h", "u", "p", "A", "B")
        assert DeviceConfig.from_dict(config.to_dict()) == config


class TestPersistence:
    def test_no_config_file(self, tmp_path, monkeypatch):
        monkeypatch.setattr("mfiplug._constants.CONFIG_FILE", tmp_path / "missing.json")
        with pytest.raises(FileNotFoundError, match="No saved configuration"):
            DeviceConfig.from_saved()

    def test_save_and_permissions(self, tmp_path, monkeypatch):
        path = tmp_path / "config" / "device.json"
        monkeypatch.setattr("mfiplug._constants.CONFIG_FILE", path)

        DeviceConfig("10.0.0.20", "admin", "secret", "Lamp", "Heater").save()

        data = json.loads(path.read_text())
        assert data["ipAddress"] == "10.0.0.20"
        assert data["outlet2Name"] == "Heater"
        assert (path.stat().st_mode & 0o777) == 0o600

    def test_loads_saved(self, tmp_path, monkeypatch):
        path = tmp_path / "device.json"
        path.write_text(json.dumps({"ipAddress": "h", "username": "u", "password": "p"}))
        monkeypatch.setattr("mfiplug._constants.CONFIG_FILE", path)
        assert DeviceConfig.from_saved().ip_address == "h"

    def test_explicit_path(self, tmp_path):
        path = tmp_path / "other.json"
        DeviceConfig("h", "u", "p").save(path)
        assert DeviceConfig.from_saved(path) == DeviceConfig("h", "u", "p")
