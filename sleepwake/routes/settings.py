"""
⚙️ Settings Routes Blueprint
Read and save the sleep/wake schedule settings.
"""

import logging

from flask import Blueprint, request

from ..services.service_manager import get_service
from .helpers import api_error_handler, service_response

settings_bp = Blueprint("settings", __name__)
logger = logging.getLogger("sleepwake.routes.settings")

SETTINGS_FIELDS = frozenset((
    "sleep_enabled", "sleep_time", "sleep_time_saturday", "sleep_time_sunday",
    "volume_decrease", "minutes_fade",
    "wake_enabled", "wake_time", "wake_time_saturday", "wake_time_sunday",
    "start_volume", "playlist", "volume_increase", "minutes_ramp",
    "player_url", "player_timeout", "timezone",
))


@settings_bp.route("/api/settings", methods=["GET"])
@api_error_handler
def get_settings():
    """Return the last-saved settings, or their defaults."""
    return service_response(get_service("schedule").get_settings())


@settings_bp.route("/api/settings", methods=["POST"])
@api_error_handler
def save_settings():
    """Validate and save settings (JSON body or form); reschedules changed events."""
    if request.is_json:
        form_data = request.get_json(silent=True) or {}
    else:
        form_data = request.form.to_dict()

    result = get_service("schedule").save_settings(form_data)
    if not result.success:
        logger.info("Settings rejected: %s", result.message)
    return service_response(result, validation_fields=SETTINGS_FIELDS)
