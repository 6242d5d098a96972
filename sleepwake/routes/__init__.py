"""
SleepWake Route Blueprints
Modular Flask blueprints for the settings and status API.
"""

from .health import health_bp
from .settings import settings_bp
from .status import status_bp

__all__ = [
    "health_bp",
    "settings_bp",
    "status_bp",
]
