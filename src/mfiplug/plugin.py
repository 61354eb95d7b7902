"""Hub-facing plugin entry point."""

from __future__ import annotations

from collections.abc import Mapping

from mfiplug import session
from mfiplug._constants import PLUGIN_NAME
from mfiplug.components import SETUP_PARAMETERS, SetupParameter
from mfiplug.config import DeviceConfig
from mfiplug.controller import OutletController
from mfiplug.host import Services
from mfiplug.session import ValidationResult


class OutletPlugin:
    """Describes the mFi outlet integration to the hub.

    The hub renders :attr:`setup_parameters` as its device form, calls
    :meth:`validate` with the submitted values, then :meth:`create_instance`
    for each configured device.
    """

    name = PLUGIN_NAME

    @property
    def setup_parameters(self) -> list[SetupParameter]:
        return list(SETUP_PARAMETERS)

    async def validate(self, config: DeviceConfig | Mapping[str, object]) -> ValidationResult:
        """Probe the device with the submitted credentials.

        Missing setup parameters are reported as a validation error rather
        than raised.
        """
        try:
            device_config = _as_config(config)
        except ValueError as e:
            return ValidationResult(valid=False, errors=[str(e)])
        return await session.validate(device_config)

    def create_instance(
        self,
        device_id: str,
        config: DeviceConfig | Mapping[str, object],
        services: Services,
    ) -> OutletController:
        """Build the controller for one device, wired to the hub's services."""
        return OutletController(
            device_id,
            _as_config(config),
            scheduler=services.resolve("scheduler"),
            logging_service=services.resolve("loggingService"),
            framework=services.resolve("deviceFramework"),
        )


def _as_config(config: DeviceConfig | Mapping[str, object]) -> DeviceConfig:
    if isinstance(config, DeviceConfig):
        return config
    return DeviceConfig.from_dict(config)
