"""Platform capabilities the launcher gateway runs on."""

from display_launcher.platform.adb import AdbConfig, AdbError, AdbPlatform
from display_launcher.platform.base import AppPlatform, PlatformError

__all__ = [
    "AdbConfig",
    "AdbError",
    "AdbPlatform",
    "AppPlatform",
    "PlatformError",
]
