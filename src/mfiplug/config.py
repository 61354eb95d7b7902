"""Device configuration supplied by the hub's setup wizard."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from pathlib import Path

from mfiplug import _constants

# Setup parameter key -> dataclass field.  ``port1Name``/``port2Name`` are the
# keys older hub configurations were saved with.
_KEY_ALIASES: dict[str, str] = {
    "ipAddress": "ip_address",
    "username": "username",
    "password": "password",
    "outlet1Name": "outlet1_name",
    "outlet2Name": "outlet2_name",
    "port1Name": "outlet1_name",
    "port2Name": "outlet2_name",
}


@dataclass(frozen=True)
class DeviceConfig:
    """Connection settings and outlet labels for one power strip."""

    ip_address: str
    username: str
    password: str
    outlet1_name: str = "Outlet 1"
    outlet2_name: str = "Outlet 2"

    @property
    def base_url(self) -> str:
        """Root URL of the device's management API."""
        return f"http://{self.ip_address}"

    def outlet_name(self, which: int) -> str:
        """Display name of outlet 1 or 2."""
        if which == 1:
            return self.outlet1_name
        if which == 2:
            return self.outlet2_name
        raise ValueError(f"Invalid outlet {which}. Must be 1 or 2.")

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> DeviceConfig:
        """Build a config from setup parameters.

        Accepts the hub's camelCase keys (``ipAddress``, ``outlet1Name``)
        as well as the dataclass field names.

        Raises :class:`ValueError` if the address or credentials are missing.
        """
        fields: dict[str, str] = {}
        for key, value in data.items():
            name = _KEY_ALIASES.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                fields.setdefault(name, str(value))
        missing = [f for f in ("ip_address", "username", "password") if not fields.get(f)]
        if missing:
            raise ValueError(f"Missing required setup parameter(s): {', '.join(missing)}")
        return cls(**fields)

    def to_dict(self) -> dict[str, str]:
        """Setup parameters in the hub's camelCase form."""
        return {
            "ipAddress": self.ip_address,
            "username": self.username,
            "password": self.password,
            "outlet1Name": self.outlet1_name,
            "outlet2Name": self.outlet2_name,
        }

    # ------------------------------------------------------------------
    # Persistence (CLI)
    # ------------------------------------------------------------------

    @classmethod
    def from_saved(cls, path: Path | None = None) -> DeviceConfig:
        """Load a previously saved configuration.

        Raises :class:`FileNotFoundError` if no configuration file exists.
        """
        path = path or _constants.CONFIG_FILE
        if not path.exists():
            raise FileNotFoundError(
                f"No saved configuration at {path}. Run `mfiplug configure` first."
            )
        return cls.from_dict(json.loads(path.read_text()))

    def save(self, path: Path | None = None) -> Path:
        """Persist to ``~/.config/mfiplug/device.json`` (owner-only, it holds the password)."""
        path = path or _constants.CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))
        path.chmod(0o600)
        return path

    def __repr__(self) -> str:
        redacted = {**asdict(self), "password": "***"}
        args = ", ".join(f"{k}={v!r}" for k, v in redacted.items())
        return f"DeviceConfig({args})"
