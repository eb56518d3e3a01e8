"""App directory and launch gateway."""

from display_launcher.gateway.filters import AppFilterPolicy
from display_launcher.gateway.launcher import AppLauncher
from display_launcher.gateway.staging import ArtifactStager, StagingConfig

__all__ = [
    "AppFilterPolicy",
    "AppLauncher",
    "ArtifactStager",
    "StagingConfig",
]
