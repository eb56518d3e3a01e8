"""Platform intent command types."""

from dataclasses import dataclass, field, replace
from enum import IntFlag
from typing import Dict, List, Optional

ACTION_MAIN = "android.intent.action.MAIN"
ACTION_VIEW = "android.intent.action.VIEW"
ACTION_DELETE = "android.intent.action.DELETE"

CATEGORY_LAUNCHER = "android.intent.category.LAUNCHER"

APK_MIME_TYPE = "application/vnd.android.package-archive"


class IntentFlag(IntFlag):
    """Launch flags understood by the activity manager."""

    NONE = 0
    GRANT_READ_URI_PERMISSION = 0x00000001
    ACTIVITY_NEW_TASK = 0x10000000


@dataclass
class Intent:
    """A one-way request to start an activity on the device."""

    action: Optional[str] = None
    data: Optional[str] = None
    mime_type: Optional[str] = None
    package: Optional[str] = None
    component: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    extras: Dict[str, str] = field(default_factory=dict)
    flags: IntentFlag = IntentFlag.NONE

    def add_flags(self, flags: IntentFlag) -> "Intent":
        self.flags |= flags
        return self

    def with_extras(self, extras: Optional[Dict[str, str]]) -> "Intent":
        """Return a copy with ``extras`` merged over the existing ones."""
        merged = dict(self.extras)
        if extras:
            merged.update(extras)
        return replace(self, extras=merged, categories=list(self.categories))


@dataclass(frozen=True)
class InstalledPackage:
    """Registry entry for an installed package."""

    package_name: str
    is_system: bool = False
