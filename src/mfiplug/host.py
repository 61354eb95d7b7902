"""Host services the outlet controller is composed with.

A hub supplies its own scheduler, logging service and device framework.
The protocols below describe what the controller needs from each; the
concrete classes are small in-process implementations used by the CLI and
by embedders that have no hub of their own.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

logger = logging.getLogger(__name__)

JobCallback = Callable[[datetime, Any], Awaitable[None] | None]
UpdateCallback = Callable[[str, str, object], None]


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class Scheduler(Protocol):
    def schedule_job(
        self, name: str, interval: float, callback: JobCallback, context: Any
    ) -> Any: ...

    def cancel(self, job: Any) -> None: ...


class LoggingService(Protocol):
    def info(self, message: str) -> None: ...

    def error(self, message: str, stack: str | None = None) -> None: ...


class DeviceHandle(Protocol):
    def update_sensor_value(self, component_id: str, value: object) -> None: ...

    def update_control_value(self, component_id: str, value: object) -> None: ...


class DeviceFramework(Protocol):
    def register(
        self,
        device_id: str,
        sensors: dict[str, dict[str, object]],
        controls: dict[str, dict[str, object]],
    ) -> DeviceHandle: ...


class Services(Protocol):
    def resolve(self, name: str) -> Any: ...


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


@dataclass
class Job:
    """A repeating job registered with :class:`AsyncioScheduler`."""

    name: str
    interval: float
    task: asyncio.Task[None] = field(repr=False)

    @property
    def done(self) -> bool:
        return self.task.done()


class AsyncioScheduler:
    """Runs each job as a background task on the running event loop.

    The first invocation happens one *interval* after scheduling.  A tick
    that raises is logged and the job keeps running.
    Names need not be unique; each handle tracks its own task.
    """

    def __init__(self) -> None:
        self._jobs: list[Job] = []

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs)

    def schedule_job(
        self, name: str, interval: float, callback: JobCallback, context: Any
    ) -> Job:
        task = asyncio.get_running_loop().create_task(
            self._run(name, interval, callback, context), name=name
        )
        job = Job(name, interval, task)
        self._jobs.append(job)
        return job

    def cancel(self, job: Job) -> None:
        job.task.cancel()
        self._jobs = [j for j in self._jobs if j is not job]

    async def close(self) -> None:
        """Cancel every job and wait for the tasks to finish."""
        jobs, self._jobs = self._jobs, []
        for job in jobs:
            job.task.cancel()
        for job in jobs:
            with contextlib.suppress(asyncio.CancelledError):
                await job.task

    @staticmethod
    async def _run(name: str, interval: float, callback: JobCallback, context: Any) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                result = callback(datetime.now(), context)
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Scheduled job %s failed", name)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class LoggerService:
    """:class:`LoggingService` backed by a stdlib logger."""

    def __init__(self, name: str = "mfiplug") -> None:
        self.logger = logging.getLogger(name)

    def info(self, message: str) -> None:
        self.logger.info(message)

    def error(self, message: str, stack: str | None = None) -> None:
        if stack:
            self.logger.error("%s\n%s", message, stack)
        else:
            self.logger.error(message)


# ---------------------------------------------------------------------------
# Device framework
# ---------------------------------------------------------------------------


@dataclass
class DeviceRecord:
    """Registered metadata and latest values of one device."""

    device_id: str
    sensors: dict[str, dict[str, object]]
    controls: dict[str, dict[str, object]]
    values: dict[str, object] = field(default_factory=dict)
    on_update: UpdateCallback | None = field(default=None, repr=False)

    def update_sensor_value(self, component_id: str, value: object) -> None:
        self._set(component_id, value)

    def update_control_value(self, component_id: str, value: object) -> None:
        self._set(component_id, value)

    def _set(self, component_id: str, value: object) -> None:
        if component_id not in self.sensors and component_id not in self.controls:
            raise KeyError(f"Unknown component '{component_id}' for device {self.device_id}.")
        previous = self.values.get(component_id)
        self.values[component_id] = value
        if self.on_update is not None and previous != value:
            self.on_update(self.device_id, component_id, value)


class DeviceRegistry:
    """In-memory :class:`DeviceFramework`.

    *on_update* is called with ``(device_id, component_id, value)`` whenever
    a registered value changes.
    """

    def __init__(self, on_update: UpdateCallback | None = None) -> None:
        self._devices: dict[str, DeviceRecord] = {}
        self._on_update = on_update

    def register(
        self,
        device_id: str,
        sensors: dict[str, dict[str, object]],
        controls: dict[str, dict[str, object]],
    ) -> DeviceRecord:
        record = DeviceRecord(device_id, dict(sensors), dict(controls), on_update=self._on_update)
        self._devices[device_id] = record
        return record

    def __getitem__(self, device_id: str) -> DeviceRecord:
        return self._devices[device_id]

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices


# ---------------------------------------------------------------------------
# Service lookup
# ---------------------------------------------------------------------------


class ServiceRegistry:
    """Name-based service lookup handed to :meth:`OutletPlugin.create_instance`.

    Unregistered ``scheduler``, ``loggingService`` and ``deviceFramework``
    names resolve to the in-process defaults, created once.
    """

    def __init__(self, **services: Any) -> None:
        self._services: dict[str, Any] = dict(services)

    def register(self, name: str, service: Any) -> None:
        self._services[name] = service

    def resolve(self, name: str) -> Any:
        if name not in self._services:
            factory = _DEFAULT_SERVICES.get(name)
            if factory is None:
                raise KeyError(f"No service registered as '{name}'.")
            self._services[name] = factory()
        return self._services[name]


_DEFAULT_SERVICES: dict[str, Callable[[], Any]] = {
    "scheduler": AsyncioScheduler,
    "loggingService": LoggerService,
    "deviceFramework": DeviceRegistry,
}
