"""Platform capability interface.

The gateway never talks to the device directly. Everything it needs from the
operating system (the installed-package registry, launch entry resolution,
labels and activity dispatch) goes through an ``AppPlatform`` injected at
construction time.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from display_launcher.models.intent import InstalledPackage, Intent


class PlatformError(Exception):
    """Raised when the underlying platform cannot complete a call."""


class AppPlatform(ABC):
    """Application registry and activity dispatch capability.

    Implementations must implement:
    - list_installed_applications(): Enumerate packages with system flags
    - resolve_launch_intent(): Default launcher entry point for a package
    - get_application_label(): Human-readable label
    - dispatch_intent(): Fire-and-forget activity start
    """

    @abstractmethod
    async def list_installed_applications(self) -> List[InstalledPackage]:
        """Enumerate installed packages.

        Returns:
            Installed packages, in registry order
        """

    @abstractmethod
    async def resolve_launch_intent(self, package_name: str) -> Optional[Intent]:
        """Resolve the default launch entry point.

        Args:
            package_name: Package identifier

        Returns:
            Launch intent, or None if the package has no launcher activity
        """

    @abstractmethod
    async def get_application_label(self, package_name: str) -> str:
        """Get the display label of a package.

        Args:
            package_name: Package identifier

        Returns:
            Label text
        """

    @abstractmethod
    async def dispatch_intent(self, intent: Intent) -> bool:
        """Start the activity described by ``intent``.

        The platform gives no completion signal; the result only says whether
        the request was accepted.

        Args:
            intent: Intent to dispatch

        Returns:
            True if the platform accepted the intent
        """

    async def discard_artifact(self, path: Path) -> None:
        """Release any platform-side copy of a staged install artifact.

        Called once the local artifact at ``path`` is discarded. Platforms
        that install straight from the local file have nothing to release.

        Args:
            path: Local path of the staged artifact
        """
        return None
