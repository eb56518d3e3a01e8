"""App directory and launch gateway.

Translates control requests into platform intents. Every operation is
fail-closed: platform errors are logged and turned into a False result, so
nothing raised by the device layer reaches the HTTP layer.

Example:
    >>> launcher = AppLauncher(AdbPlatform(), host_package="com.example.launcher")
    >>> apps = await launcher.list_applications()
    >>> await launcher.launch(apps[0].package_name)
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from display_launcher.gateway.filters import AppFilterPolicy
from display_launcher.gateway.staging import ArtifactStager
from display_launcher.models.app import ApplicationRecord
from display_launcher.models.intent import (
    ACTION_DELETE,
    ACTION_MAIN,
    ACTION_VIEW,
    APK_MIME_TYPE,
    Intent,
    IntentFlag,
)
from display_launcher.platform.base import AppPlatform

logger = logging.getLogger(__name__)


class AppLauncher:
    """Gateway between control requests and the platform."""

    def __init__(
        self,
        platform: AppPlatform,
        host_package: Optional[str] = None,
        filter_policy: Optional[AppFilterPolicy] = None,
        stager: Optional[ArtifactStager] = None,
    ) -> None:
        """Initialize launcher gateway.

        Args:
            platform: Platform capability
            host_package: Package of the launcher itself, hidden from listings
            filter_policy: Directory filter policy (strict if omitted)
            stager: Install artifact stager
        """
        self.platform = platform
        self.host_package = host_package
        self.filter_policy = filter_policy or AppFilterPolicy.strict()
        self.stager = stager or ArtifactStager()

    async def list_applications(self) -> List[ApplicationRecord]:
        """List installed applications, filtered and sorted by name.

        Entries whose lookups fail are dropped; an enumeration failure yields
        an empty list.
        """
        try:
            installed = await self.platform.list_installed_applications()
        except Exception as e:
            logger.error(f"Failed to enumerate installed applications: {e}", exc_info=True)
            return []

        policy = self.filter_policy
        records = []
        for package in installed:
            if package.package_name == self.host_package:
                continue
            if policy.exclude_system_apps and package.is_system:
                continue

            try:
                if policy.require_launch_entry:
                    entry = await self.platform.resolve_launch_intent(package.package_name)
                    if entry is None:
                        continue
                label = await self.platform.get_application_label(package.package_name)
            except Exception as e:
                logger.debug(f"Skipping {package.package_name}: {e}")
                continue

            records.append(
                ApplicationRecord(
                    name=label,
                    package_name=package.package_name,
                    is_system_app=package.is_system,
                )
            )

        records.sort(key=lambda record: policy.sort_key(record.name))
        return records

    async def launch(self, package_name: str) -> bool:
        """Launch a package through its default entry point.

        Args:
            package_name: Package to launch

        Returns:
            True if the launch was dispatched
        """
        return await self.launch_with_intent(package_name)

    async def launch_with_intent(
        self,
        package_name: str,
        action: Optional[str] = None,
        data: Optional[str] = None,
        extras: Optional[Dict[str, str]] = None,
    ) -> bool:
        """Launch a package, optionally with a custom intent.

        A custom intent is built when ``action`` is given, except for a bare
        MAIN action with no data, which uses the default entry point.

        Args:
            package_name: Target package
            action: Intent action
            data: Data URI
            extras: String extras

        Returns:
            True if the launch was dispatched
        """
        try:
            if action is not None and not (action == ACTION_MAIN and data is None):
                intent = Intent(action=action, data=data, package=package_name)
                intent = intent.with_extras(extras)
            else:
                entry = await self.platform.resolve_launch_intent(package_name)
                if entry is None:
                    logger.warning(f"No launch entry point for {package_name}")
                    return False
                intent = entry.with_extras(extras)

            intent.add_flags(IntentFlag.ACTIVITY_NEW_TASK)
            success = await self.platform.dispatch_intent(intent)
        except Exception as e:
            logger.error(f"Error launching {package_name}: {e}", exc_info=True)
            return False

        if success:
            logger.info(f"Launched {package_name}")
        else:
            logger.warning(f"Launch of {package_name} was not accepted")
        return success

    async def request_uninstall(self, package_name: str) -> bool:
        """Open the platform's uninstall confirmation for a package.

        Returns:
            True if the confirmation request was dispatched
        """
        intent = Intent(action=ACTION_DELETE, data=f"package:{package_name}")
        intent.add_flags(IntentFlag.ACTIVITY_NEW_TASK)
        try:
            success = await self.platform.dispatch_intent(intent)
        except Exception as e:
            logger.error(f"Error requesting uninstall of {package_name}: {e}", exc_info=True)
            return False

        logger.info(f"Uninstall request for {package_name} dispatched: {success}")
        return success

    async def stage_and_request_install(self, apk_path: Path) -> bool:
        """Open the platform's install confirmation for a staged archive.

        The archive, and any copy the platform made of it, is deleted shortly
        after a successful dispatch and immediately after a failed one.

        Args:
            apk_path: Path of the staged package archive

        Returns:
            True if the install request was dispatched
        """
        apk_path = Path(apk_path)
        if not apk_path.is_file():
            logger.error(f"Install artifact not found: {apk_path}")
            return False

        intent = Intent(
            action=ACTION_VIEW,
            data=apk_path.resolve().as_uri(),
            mime_type=APK_MIME_TYPE,
        )
        intent.add_flags(IntentFlag.GRANT_READ_URI_PERMISSION | IntentFlag.ACTIVITY_NEW_TASK)

        try:
            success = await self.platform.dispatch_intent(intent)
        except Exception as e:
            logger.error(f"Error requesting install of {apk_path.name}: {e}", exc_info=True)
            success = False

        if success:
            logger.info(f"Install request for {apk_path.name} dispatched")
            self.stager.schedule_discard(apk_path, on_discard=self._discard_platform_copy)
        else:
            self.stager.discard(apk_path)
            await self._discard_platform_copy(apk_path)
        return success

    async def _discard_platform_copy(self, apk_path: Path) -> None:
        try:
            await self.platform.discard_artifact(apk_path)
        except Exception as e:
            logger.warning(f"Could not release platform copy of {apk_path.name}: {e}")

    def sweep_stale_artifacts(self) -> int:
        """Remove staged artifacts past the retention window.

        Returns:
            Number of artifacts removed
        """
        try:
            return self.stager.sweep()
        except Exception as e:
            logger.warning(f"Artifact sweep failed: {e}")
            return 0
