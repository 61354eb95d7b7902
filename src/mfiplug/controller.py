"""Polling and command dispatch for one mFi outlet strip.

:class:`OutletController` is created by :meth:`OutletPlugin.create_instance`
and driven by the hub::

    controller = plugin.create_instance("strip-1", config, services)
    await controller.start()
    await controller.set_component_values({"controls": {"OUTLET1_OUTPUT": {"value": True}}})
    controller.shutdown()

Every operation logs in afresh before talking to the device.  Device
failures are reported through the injected logging service and never
raised to the hub.
"""

from __future__ import annotations

import asyncio
import logging
import traceback
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import aiohttp

from mfiplug import components
from mfiplug._constants import (
    FORM_HEADERS,
    OUTLET1_OUTPUT_ID,
    OUTLET2_OUTPUT_ID,
    POLL_INTERVAL,
    POLL_JOB_PREFIX,
    SENSORS_PATH,
)
from mfiplug.config import DeviceConfig
from mfiplug.host import DeviceFramework, DeviceHandle, LoggingService, Scheduler
from mfiplug.session import AuthError, LoginResult, login, new_session_id

logger = logging.getLogger(__name__)

OUTLETS = (1, 2)


class PollError(RuntimeError):
    """The ``/sensors`` request failed or returned an unusable payload."""


class CommandError(RuntimeError):
    """An outlet write was not accepted by the device."""


@dataclass(frozen=True)
class OutletSnapshot:
    """Most recent reading of one outlet.  ``None`` until the first poll."""

    voltage: float | None = None
    current: float | None = None
    power: float | None = None
    is_on: bool | None = None

    @classmethod
    def from_sensor(cls, entry: dict[str, Any]) -> OutletSnapshot:
        """Parse one element of the device's ``sensors`` array."""
        return cls(
            voltage=entry["voltage"],
            current=entry["current"],
            power=entry["power"],
            is_on=entry["output"] == 1,
        )

    def value_of(self, field: str) -> object:
        """Value for a ``/sensors`` key (``output`` maps to :attr:`is_on`)."""
        if field == "output":
            return self.is_on
        return getattr(self, field)


def coerce_output(value: object) -> bool:
    """Interpret a hub control value: ``True`` or ``"true"`` means on."""
    return value is True or value == "true"


class OutletController:
    """Owns one device's configuration and exposes its two outlets to the hub.

    Authenticated operations (login followed by a request) are serialized per
    controller so two logins never interleave.  Exposed values follow
    last-writer-wins between polls and commands.
    """

    def __init__(
        self,
        device_id: str,
        config: DeviceConfig,
        scheduler: Scheduler,
        logging_service: LoggingService,
        framework: DeviceFramework,
    ) -> None:
        self.id = device_id
        self.config = config
        self.scheduler = scheduler
        self.logging_service = logging_service
        self.job: Any = None
        self._snapshots: dict[int, OutletSnapshot] = {n: OutletSnapshot() for n in OUTLETS}
        self._lock = asyncio.Lock()
        self.device: DeviceHandle = framework.register(
            device_id,
            sensors={c.id: c.describe(config) for c in components.sensors()},
            controls={c.id: c.describe(config) for c in components.controls()},
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self.job is not None

    @property
    def job_name(self) -> str:
        return f"{POLL_JOB_PREFIX}{self.id}"

    def snapshot(self, which: int) -> OutletSnapshot:
        """Latest reading of outlet 1 or 2."""
        _check_outlet(which)
        return self._snapshots[which]

    @property
    def snapshots(self) -> dict[int, OutletSnapshot]:
        """Latest readings of both outlets, keyed by outlet number."""
        return dict(self._snapshots)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Schedule the poll job and read the current values immediately."""
        if self.job is None:
            self.job = self.scheduler.schedule_job(
                self.job_name, POLL_INTERVAL, _poll_tick, self
            )
            logger.debug("Scheduled %s every %ss", self.job_name, POLL_INTERVAL)
        await self.refresh()

    def shutdown(self) -> None:
        """Cancel the poll job.  Safe to call more than once.

        A request already in flight is not cancelled and may still update
        the exposed values.
        """
        if self.job is not None:
            self.scheduler.cancel(self.job)
            self.job = None

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Log in and overwrite both outlet snapshots from ``/sensors``.

        On any failure the previous snapshots are kept and one error is
        logged; the next scheduled tick tries again.
        """
        async with self._lock, aiohttp.ClientSession() as http:
            try:
                session = await login(self.config, new_session_id(), http)
            except AuthError as e:
                self.logging_service.error(
                    f"Could not log in to ubiquiti socket {self.id}: {e}"
                )
                return
            try:
                snapshots = await self._fetch_sensors(http, session)
            except PollError as e:
                self.logging_service.error(str(e))
                return
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                self.logging_service.error(
                    f"Error querying ubiquiti socket {self.id}: {e}",
                    traceback.format_exc(),
                )
                return

        self._snapshots = snapshots
        for which, snap in snapshots.items():
            self._publish(which, snap)

    async def _fetch_sensors(
        self, http: aiohttp.ClientSession, session: LoginResult
    ) -> dict[int, OutletSnapshot]:
        url = f"{self.config.base_url}{SENSORS_PATH}"
        logger.debug("GET %s", url)
        async with http.get(url, cookies=session.cookie_jar) as resp:
            if resp.status != 200:
                raise PollError(
                    f"Could not query ubiquiti socket {self.id}, "
                    f"response code was {resp.status}"
                )
            body = await resp.json(content_type=None)
        try:
            entries = body["sensors"]
            return {n: OutletSnapshot.from_sensor(entries[n - 1]) for n in OUTLETS}
        except (KeyError, IndexError, TypeError) as e:
            raise PollError(
                f"Unexpected sensor payload from ubiquiti socket {self.id}: {e!r}"
            ) from e

    def _publish(self, which: int, snap: OutletSnapshot) -> None:
        for component in components.for_outlet(which):
            value = snap.value_of(component.field)
            if component.is_control:
                self.device.update_control_value(component.id, value)
            else:
                self.device.update_sensor_value(component.id, value)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def set_component_values(self, request: dict[str, Any]) -> None:
        """Apply an inbound command set ``{"controls": {id: {"value": v}}}``.

        Only one outlet is switched per call; when both outputs are present
        outlet 1 wins.  The snapshot and the exposed control are updated
        before the device confirms the write and keep that state if it fails.
        """
        controls = request.get("controls") or {}
        if OUTLET1_OUTPUT_ID in controls:
            which, control_id = 1, OUTLET1_OUTPUT_ID
        elif OUTLET2_OUTPUT_ID in controls:
            which, control_id = 2, OUTLET2_OUTPUT_ID
        else:
            return
        value = controls[control_id].get("value")
        self.logging_service.info(f"Setting outlet {which} to {value}")
        on = coerce_output(value)
        self._snapshots[which] = _with_output(self._snapshots[which], on)
        self.device.update_control_value(control_id, on)
        await self.set_outlet_value(which, value)

    async def set_outlet_value(self, which: int, value: bool | str) -> None:
        """Switch outlet *which* on or off.

        *value* may be a bool or the strings ``"true"``/``"false"``.  On
        success the outlet's output control is set to the requested state;
        failures are logged.

        Raises:
            ValueError: If *which* is not 1 or 2.
        """
        _check_outlet(which)
        on = coerce_output(value)
        async with self._lock, aiohttp.ClientSession() as http:
            try:
                session = await login(self.config, new_session_id(), http)
                await self._put_output(http, session, which, on)
            except (AuthError, CommandError) as e:
                self.logging_service.error(
                    f"Could not set outlet {which} on ubiquiti socket {self.id}: {e}"
                )
                return
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                self.logging_service.error(
                    f"Error setting outlet {which} on ubiquiti socket {self.id}: {e}",
                    traceback.format_exc(),
                )
                return

        self._snapshots[which] = _with_output(self._snapshots[which], on)
        self.device.update_control_value(components.OUTPUT_IDS[which], on)

    async def _put_output(
        self, http: aiohttp.ClientSession, session: LoginResult, which: int, on: bool
    ) -> None:
        url = f"{self.config.base_url}{SENSORS_PATH}/{which}"
        logger.debug("PUT %s output=%d", url, int(on))
        async with http.put(
            url,
            data={"output": 1 if on else 0},
            headers=FORM_HEADERS,
            cookies=session.cookie_jar,
        ) as resp:
            if resp.status >= 400:
                raise CommandError(f"response code was {resp.status}")


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


async def _poll_tick(when: datetime, controller: OutletController) -> None:
    await controller.refresh()


def _check_outlet(which: int) -> None:
    if which not in OUTLETS:
        raise ValueError(f"Invalid outlet {which}. Must be 1 or 2.")


def _with_output(snap: OutletSnapshot, on: bool) -> OutletSnapshot:
    return OutletSnapshot(snap.voltage, snap.current, snap.power, on)
