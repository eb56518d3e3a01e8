"""Display launcher control service.

Lists, launches, installs and uninstalls applications on an Android device
and exposes those operations through a small HTTP control panel.
"""

__version__ = "1.0.0"
