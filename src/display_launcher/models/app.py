"""Application directory and control API models."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ApplicationRecord(BaseModel):
    """One installed application as shown in the directory.

    Serialized with the camelCase names the control page expects.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Display label")
    package_name: str = Field(..., alias="packageName", description="Unique package identifier")
    is_system_app: bool = Field(default=False, alias="isSystemApp")


class LaunchRequest(BaseModel):
    """Body of the launch, launch-intent and uninstall routes.

    Every field is optional at decode time so that a missing package name
    can be reported as an application-level failure instead of a 422.
    Numbers are accepted where strings are expected.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    package_name: Optional[str] = Field(default=None, alias="packageName")
    action: Optional[str] = None
    data: Optional[str] = Field(default=None, description="Data URI")
    extras: Optional[Dict[str, str]] = None


class ApiResponse(BaseModel):
    """Result envelope for control operations."""

    success: bool
    message: str
