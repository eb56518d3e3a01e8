"""HTTP control panel for the launcher."""

from display_launcher.web_interface.app import create_app

__all__ = ["create_app"]
