"""Hub plugin and CLI for Ubiquiti mFi two-outlet power strips."""

from mfiplug.config import DeviceConfig
from mfiplug.controller import OutletController, OutletSnapshot
from mfiplug.host import AsyncioScheduler, DeviceRegistry, LoggerService, ServiceRegistry
from mfiplug.plugin import OutletPlugin
from mfiplug.session import (
    AuthError,
    InvalidCredentialsError,
    UnreachableError,
    ValidationResult,
    login,
    validate,
)

__all__ = [
    "AsyncioScheduler",
    "AuthError",
    "DeviceConfig",
    "DeviceRegistry",
    "InvalidCredentialsError",
    "LoggerService",
    "OutletController",
    "OutletPlugin",
    "OutletSnapshot",
    "ServiceRegistry",
    "UnreachableError",
    "ValidationResult",
    "login",
    "validate",
]
