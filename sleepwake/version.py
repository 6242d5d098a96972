"""
SleepWake Version Information
Central version management for the SleepWake project.
"""

# Semantic Versioning: MAJOR.MINOR.PATCH
VERSION = "1.0.0"

# Application metadata
APP_NAME = "SleepWake"
APP_DESCRIPTION = "Scheduled sleep fade-out and wake-up volume ramp for a local media player"


def get_version() -> str:
    """Get the current version string."""
    return VERSION


def get_app_info() -> str:
    """Get application name and version.

    Returns:
        str: Application name and version in format "AppName vX.Y.Z"
    """
    return f"{APP_NAME} v{get_version()}"
