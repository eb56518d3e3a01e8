"""Pytest configuration and shared fixtures."""

from pathlib import Path
from typing import Dict, List, Optional

import pytest

from display_launcher.gateway.filters import AppFilterPolicy
from display_launcher.gateway.launcher import AppLauncher
from display_launcher.gateway.staging import ArtifactStager, StagingConfig
from display_launcher.models.intent import (
    ACTION_MAIN,
    CATEGORY_LAUNCHER,
    InstalledPackage,
    Intent,
)
from display_launcher.platform.base import AppPlatform, PlatformError

HOST_PACKAGE = "com.example.displaylauncher"


class FakePlatform(AppPlatform):
    """In-memory platform that records dispatched intents."""

    def __init__(self) -> None:
        self.packages: List[InstalledPackage] = []
        self.labels: Dict[str, str] = {}
        self.launchable: set = set()
        self.broken_labels: set = set()
        self.dispatched: List[Intent] = []
        self.accept_dispatch = True
        self.dispatch_error: Optional[Exception] = None
        self.list_error: Optional[Exception] = None
        self.discarded: List[Path] = []

    def add_package(
        self,
        package_name: str,
        label: str,
        is_system: bool = False,
        launchable: bool = True,
    ) -> None:
        self.packages.append(InstalledPackage(package_name=package_name, is_system=is_system))
        self.labels[package_name] = label
        if launchable:
            self.launchable.add(package_name)

    async def list_installed_applications(self) -> List[InstalledPackage]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.packages)

    async def resolve_launch_intent(self, package_name: str) -> Optional[Intent]:
        if package_name not in self.launchable:
            return None
        return Intent(
            action=ACTION_MAIN,
            categories=[CATEGORY_LAUNCHER],
            package=package_name,
            component=f"{package_name}/.MainActivity",
        )

    async def get_application_label(self, package_name: str) -> str:
        if package_name in self.broken_labels:
            raise PlatformError(f"No label for {package_name}")
        return self.labels.get(package_name, package_name)

    async def dispatch_intent(self, intent: Intent) -> bool:
        if self.dispatch_error is not None:
            raise self.dispatch_error
        self.dispatched.append(intent)
        return self.accept_dispatch

    async def discard_artifact(self, path: Path) -> None:
        self.discarded.append(path)


@pytest.fixture
def host_package() -> str:
    """Provide the package name of the launcher itself."""
    return HOST_PACKAGE


@pytest.fixture
def fake_platform() -> FakePlatform:
    """Provide a platform with a small mix of user and system apps."""
    platform = FakePlatform()
    platform.add_package("org.videolan.vlc", "VLC")
    platform.add_package("com.spotify.music", "Spotify")
    platform.add_package("com.example.app", "example App")
    platform.add_package("com.android.settings", "Settings", is_system=True)
    platform.add_package("com.android.providers.media", "Media Storage",
                         is_system=True, launchable=False)
    platform.add_package("com.example.widgetonly", "Widget Pack", launchable=False)
    platform.add_package(HOST_PACKAGE, "Display Launcher")
    return platform


@pytest.fixture
def staging_config(tmp_path) -> StagingConfig:
    """Provide staging settings rooted in a temporary directory."""
    return StagingConfig(directory=tmp_path / "apk", cleanup_delay_sec=0.05)


@pytest.fixture
def stager(staging_config) -> ArtifactStager:
    """Provide an artifact stager."""
    return ArtifactStager(staging_config)


@pytest.fixture
def launcher(fake_platform, stager) -> AppLauncher:
    """Provide a gateway with the strict filter policy."""
    return AppLauncher(
        fake_platform,
        host_package=HOST_PACKAGE,
        filter_policy=AppFilterPolicy.strict(),
        stager=stager,
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
