"""Android device platform over ADB (Android Debug Bridge).

Talks to a connected device through the ``adb`` executable. The device's
package manager and activity manager are reached with ``pm``, ``cmd package``
and ``am`` shell commands.

Example:
    >>> platform = AdbPlatform(AdbConfig(serial="emulator-5554"))
    >>> packages = await platform.list_installed_applications()
    >>> intent = await platform.resolve_launch_intent("org.videolan.vlc")
    >>> await platform.dispatch_intent(intent)
"""

import asyncio
import logging
import posixpath
import shlex
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Dict, List, Optional, Set
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, Field

from display_launcher.models.intent import (
    ACTION_MAIN,
    CATEGORY_LAUNCHER,
    InstalledPackage,
    Intent,
    IntentFlag,
)
from display_launcher.platform.base import AppPlatform, PlatformError

logger = logging.getLogger(__name__)


class AdbError(PlatformError):
    """Raised when an adb command cannot be run."""


class AdbConfig(BaseModel):
    """Connection settings for the adb platform."""

    adb_path: str = Field(default="adb", description="Path to the adb executable")
    serial: Optional[str] = Field(default=None, description="Device serial (adb -s)")
    command_timeout_sec: float = Field(default=15.0, ge=1.0, le=300.0)
    remote_staging_dir: str = Field(
        default="/data/local/tmp",
        description="Device directory that pushed install artifacts are copied to",
    )
    labels: Dict[str, str] = Field(
        default_factory=dict,
        description="Display labels by package name",
    )


@dataclass
class AdbResult:
    """Completed adb invocation."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def parse_package_list(output: str) -> List[str]:
    """Parse ``pm list packages`` output into package names."""
    packages = []
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("package:"):
            packages.append(line.split(":", 1)[1])
    return packages


def parse_resolved_activity(output: str) -> Optional[str]:
    """Return the ``package/activity`` component from resolve-activity output."""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if not lines:
        return None
    component = lines[-1]
    if "/" not in component or " " in component:
        return None
    return component


def label_from_package(package_name: str) -> str:
    """Fallback label: last dotted segment, capitalized."""
    segment = package_name.rsplit(".", 1)[-1]
    return segment[:1].upper() + segment[1:] if segment else package_name


def build_am_start_args(intent: Intent) -> List[str]:
    """Translate an intent into ``am start`` arguments."""
    args = ["shell", "am", "start"]
    if intent.action:
        args += ["-a", intent.action]
    if intent.data:
        args += ["-d", intent.data]
    if intent.mime_type:
        args += ["-t", intent.mime_type]
    for category in intent.categories:
        args += ["-c", category]
    if intent.component:
        args += ["-n", intent.component]
    elif intent.package:
        args += ["-p", intent.package]
    if intent.flags:
        args += ["-f", hex(int(intent.flags))]
    for key, value in intent.extras.items():
        args += ["--es", key, value]
    return args


class AdbPlatform(AppPlatform):
    """Application platform backed by a device reached through adb."""

    def __init__(self, config: Optional[AdbConfig] = None) -> None:
        """Initialize adb platform.

        Args:
            config: Connection settings (defaults if omitted)
        """
        self.config = config or AdbConfig()

    async def _adb(self, *args: str) -> AdbResult:
        """Run an adb command.

        Raises:
            AdbError: If adb is missing or the command times out
        """
        cmd = [self.config.adb_path]
        if self.config.serial:
            cmd += ["-s", self.config.serial]
        if args and args[0] == "shell":
            # adb shell joins its arguments and hands them to the device shell
            args = (args[0], *(shlex.quote(arg) for arg in args[1:]))
        cmd += list(args)

        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AdbError(f"adb executable not found: {self.config.adb_path}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.config.command_timeout_sec
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise AdbError(f"adb command timed out: {' '.join(args)}") from e

        return AdbResult(
            returncode=process.returncode,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
        )

    async def _shell_checked(self, *args: str) -> str:
        result = await self._adb("shell", *args)
        if not result.success:
            raise AdbError(
                f"'{' '.join(args)}' failed ({result.returncode}): {result.stderr.strip()}"
            )
        return result.stdout

    async def list_installed_applications(self) -> List[InstalledPackage]:
        all_packages = parse_package_list(await self._shell_checked("pm", "list", "packages"))
        system_packages: Set[str] = set(
            parse_package_list(await self._shell_checked("pm", "list", "packages", "-s"))
        )
        return [
            InstalledPackage(package_name=name, is_system=name in system_packages)
            for name in all_packages
        ]

    async def resolve_launch_intent(self, package_name: str) -> Optional[Intent]:
        result = await self._adb(
            "shell", "cmd", "package", "resolve-activity", "--brief",
            "-a", ACTION_MAIN, "-c", CATEGORY_LAUNCHER, package_name,
        )
        if not result.success:
            return None

        component = parse_resolved_activity(result.stdout)
        if component is None or component.split("/", 1)[0] != package_name:
            return None

        return Intent(
            action=ACTION_MAIN,
            categories=[CATEGORY_LAUNCHER],
            package=package_name,
            component=component,
        )

    async def get_application_label(self, package_name: str) -> str:
        # adb has no label query without pulling the APK
        return self.config.labels.get(package_name) or label_from_package(package_name)

    async def dispatch_intent(self, intent: Intent) -> bool:
        intent = await self._push_local_data(intent)

        result = await self._adb(*build_am_start_args(intent))
        output = result.stdout + result.stderr
        if not result.success or "Error" in output:
            logger.warning(f"Activity manager rejected intent: {output.strip()}")
            return False
        return True

    async def _push_local_data(self, intent: Intent) -> Intent:
        """Copy a local ``file://`` data target onto the device.

        Returns:
            The intent, with its data URI rewritten to the device copy
        """
        if not intent.data or not intent.data.startswith("file://"):
            return intent

        local_path = Path(unquote(urlparse(intent.data).path))
        if not local_path.is_file():
            return intent

        remote_path = self._remote_path(local_path)
        result = await self._adb("push", str(local_path), remote_path)
        if not result.success:
            raise AdbError(f"Failed to push {local_path}: {result.stderr.strip()}")

        logger.info(f"Pushed {local_path.name} to {remote_path}")
        return replace(intent, data=f"file://{remote_path}")

    def _remote_path(self, local_path: Path) -> str:
        return posixpath.join(self.config.remote_staging_dir, local_path.name)

    async def discard_artifact(self, path: Path) -> None:
        """Delete the device copy of a pushed install artifact."""
        remote_path = self._remote_path(Path(path))
        result = await self._adb("shell", "rm", "-f", remote_path)
        if not result.success:
            logger.warning(f"Could not delete {remote_path}: {result.stderr.strip()}")
            return
        logger.debug(f"Deleted device copy {remote_path}")
