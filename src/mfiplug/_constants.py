"""Internal constants for the mFi outlet HTTP API."""

from __future__ import annotations

import os
from pathlib import Path

LOGIN_PATH = "/login.cgi"
SENSORS_PATH = "/sensors"

SESSION_COOKIE = "AIROS_SESSIONID"

# Marker the device puts in the 200 body of a rejected login
INVALID_CREDENTIALS = "Invalid credentials."
UNREACHABLE_MESSAGE = "Could not contact server"

# Seconds between poll ticks. Hub docs call this the five-minute poll.
POLL_INTERVAL = 60

POLL_JOB_PREFIX = "PollUbiquiti_"

PLUGIN_NAME = "mFi® In-Wall Outlet"

OUTLET1_VOLTAGE_ID = "OUTLET1_VOLTAGE"
OUTLET1_CURRENT_ID = "OUTLET1_CURRENT"
OUTLET1_POWER_ID = "OUTLET1_POWER"
OUTLET1_OUTPUT_ID = "OUTLET1_OUTPUT"
OUTLET2_VOLTAGE_ID = "OUTLET2_VOLTAGE"
OUTLET2_CURRENT_ID = "OUTLET2_CURRENT"
OUTLET2_POWER_ID = "OUTLET2_POWER"
OUTLET2_OUTPUT_ID = "OUTLET2_OUTPUT"

CONFIG_DIR = Path.home() / ".config" / "mfiplug"
CONFIG_FILE = Path(os.environ.get("MFIPLUG_CONFIG", CONFIG_DIR / "device.json"))

FORM_HEADERS: dict[str, str] = {
    "Content-Type": "application/x-www-form-urlencoded",
}
