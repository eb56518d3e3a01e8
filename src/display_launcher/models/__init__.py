"""Shared data models for the display launcher."""

from display_launcher.models.app import ApiResponse, ApplicationRecord, LaunchRequest
from display_launcher.models.intent import (
    ACTION_DELETE,
    ACTION_MAIN,
    ACTION_VIEW,
    APK_MIME_TYPE,
    CATEGORY_LAUNCHER,
    InstalledPackage,
    Intent,
    IntentFlag,
)

__all__ = [
    "ApiResponse",
    "ApplicationRecord",
    "LaunchRequest",
    "ACTION_DELETE",
    "ACTION_MAIN",
    "ACTION_VIEW",
    "APK_MIME_TYPE",
    "CATEGORY_LAUNCHER",
    "InstalledPackage",
    "Intent",
    "IntentFlag",
]
