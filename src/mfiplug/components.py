"""Sensor, control and setup-parameter definitions exposed to the hub."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from mfiplug._constants import (
    OUTLET1_CURRENT_ID,
    OUTLET1_OUTPUT_ID,
    OUTLET1_POWER_ID,
    OUTLET1_VOLTAGE_ID,
    OUTLET2_CURRENT_ID,
    OUTLET2_OUTPUT_ID,
    OUTLET2_POWER_ID,
    OUTLET2_VOLTAGE_ID,
)

if TYPE_CHECKING:
    from mfiplug.config import DeviceConfig


class ValueType(str, Enum):
    """Value kinds understood by the hub (units for sensors, input type for setup)."""

    IP_ADDRESS = "ipAddress"
    TEXT = "text"
    PASSWORD = "password"
    VOLTAGE = "voltage"
    CURRENT = "current"
    POWER = "power"


class DeviceType(str, Enum):
    """What the hub should render a component as."""

    OTHER = "other"
    OUTLET = "outlet"


@dataclass
class Component:
    """A sensor or control reported for one outlet.

    Maps between the hub-facing component id (``OUTLET1_POWER``), the key in
    the device's ``/sensors`` payload (``power``) and a display label.
    """

    id: str
    """Hub component id (``OUTLET1_VOLTAGE``)."""

    outlet: int
    """Outlet number, 1 or 2."""

    field: str
    """Key in a ``/sensors`` entry (``voltage``, ``current``, ``power``, ``output``)."""

    label: str
    """Suffix appended to the outlet name (``Voltage``)."""

    units: ValueType | None = None
    """Sensor units; ``None`` for the boolean output control."""

    device_type: DeviceType = DeviceType.OTHER

    symbol: str = ""
    """Suffix for display (``V``, ``A``, ``W``)."""

    @property
    def is_control(self) -> bool:
        """Whether the hub can write this component."""
        return self.units is None

    @property
    def control_type(self) -> str:
        return "boolean" if self.is_control else "value"

    def display_name(self, config: DeviceConfig) -> str:
        """Label shown in the hub, e.g. ``Lamp Voltage``."""
        return f"{config.outlet_name(self.outlet)} {self.label}"

    def describe(self, config: DeviceConfig) -> dict[str, object]:
        """Metadata record handed to the hub at registration."""
        meta: dict[str, object] = {
            "id": self.id,
            "name": self.display_name(config),
            "controlType": self.control_type,
            "deviceType": self.device_type.value,
            "monitor": True,
        }
        if self.units is not None:
            meta["units"] = self.units.value
        return meta

    def format_value(self, raw: object) -> str:
        """Format a reported value for human display."""
        if raw is None:
            return "--"
        if self.is_control:
            return "ON" if raw else "OFF"
        if isinstance(raw, float):
            return f"{raw:.2f}{self.symbol}"
        return f"{raw}{self.symbol}"


@dataclass
class SetupParameter:
    """One field of the hub's device setup form."""

    name: str
    label: str
    required: bool
    value_type: ValueType


def _outlet_components(
    outlet: int, voltage_id: str, current_id: str, power_id: str, output_id: str
) -> list[Component]:
    return [
        Component(voltage_id, outlet, "voltage", "Voltage", ValueType.VOLTAGE, symbol="V"),
        Component(current_id, outlet, "current", "Current", ValueType.CURRENT, symbol="A"),
        Component(power_id, outlet, "power", "Power", ValueType.POWER, symbol="W"),
        Component(output_id, outlet, "output", "Output", device_type=DeviceType.OUTLET),
    ]


COMPONENTS: list[Component] = [
    *_outlet_components(
        1, OUTLET1_VOLTAGE_ID, OUTLET1_CURRENT_ID, OUTLET1_POWER_ID, OUTLET1_OUTPUT_ID
    ),
    *_outlet_components(
        2, OUTLET2_VOLTAGE_ID, OUTLET2_CURRENT_ID, OUTLET2_POWER_ID, OUTLET2_OUTPUT_ID
    ),
]

SETUP_PARAMETERS: list[SetupParameter] = [
    SetupParameter("ipAddress", "IP Address", True, ValueType.IP_ADDRESS),
    SetupParameter("username", "Username", True, ValueType.TEXT),
    SetupParameter("password", "Password", True, ValueType.PASSWORD),
    SetupParameter("outlet1Name", "Outlet 1 Name", True, ValueType.TEXT),
    SetupParameter("outlet2Name", "Outlet 2 Name", True, ValueType.TEXT),
]

OUTPUT_IDS: dict[int, str] = {1: OUTLET1_OUTPUT_ID, 2: OUTLET2_OUTPUT_ID}

_by_id: dict[str, Component] = {c.id: c for c in COMPONENTS}


def resolve(component_id: str) -> Component | None:
    """Look up a Component by hub id."""
    return _by_id.get(component_id)


def sensors() -> list[Component]:
    return [c for c in COMPONENTS if not c.is_control]


def controls() -> list[Component]:
    return [c for c in COMPONENTS if c.is_control]


def for_outlet(outlet: int) -> list[Component]:
    """Components of one outlet, sensors first."""
    return [c for c in COMPONENTS if c.outlet == outlet]
