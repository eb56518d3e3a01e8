"""Application directory filter policy."""

from pydantic import BaseModel, Field


class AppFilterPolicy(BaseModel):
    """Which installed packages appear in the directory and how they sort.

    The host package is always excluded regardless of policy.
    """

    exclude_system_apps: bool = Field(
        default=True,
        description="Drop packages owned by the system image",
    )
    require_launch_entry: bool = Field(
        default=True,
        description="Drop packages with no launcher activity",
    )
    case_insensitive_sort: bool = Field(
        default=True,
        description="Sort by lower-cased name",
    )

    @classmethod
    def lenient(cls) -> "AppFilterPolicy":
        """Every package except the host."""
        return cls(exclude_system_apps=False, require_launch_entry=False)

    @classmethod
    def strict(cls) -> "AppFilterPolicy":
        """Only user-installed packages that can be launched."""
        return cls(exclude_system_apps=True, require_launch_entry=True)

    def sort_key(self, name: str) -> str:
        return name.lower() if self.case_insensitive_sort else name
