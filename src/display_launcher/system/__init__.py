"""Service supervision components.

Restart policy, embedded server handle, shutdown handling and the launcher
service that ties them together.
"""

from display_launcher.system.launcher_service import LauncherService
from display_launcher.system.restart_policy import RestartBudget, RestartPolicy
from display_launcher.system.server import ServerHandle, ServerStartError, UvicornServerHandle
from display_launcher.system.shutdown_handler import ShutdownHandler

__all__ = [
    "LauncherService",
    "RestartBudget",
    "RestartPolicy",
    "ServerHandle",
    "ServerStartError",
    "UvicornServerHandle",
    "ShutdownHandler",
]
