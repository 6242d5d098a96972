"""
📊 Status Routes Blueprint
Engine status and manual sleep/wake triggers.
"""

from flask import Blueprint

from ..constants import SLEEP_EVENT, WAKE_EVENT
from ..services.service_manager import get_service
from .helpers import api_error_handler, service_response

status_bp = Blueprint("status", __name__)


@status_bp.route("/api/status")
@api_error_handler
def status():
    """Activity state, active run and next fire time per event."""
    return service_response(get_service("schedule").get_status())


@status_bp.route("/api/sleep/trigger", methods=["POST"])
@api_error_handler
def trigger_sleep():
    return service_response(get_service("schedule").trigger(SLEEP_EVENT))


@status_bp.route("/api/wake/trigger", methods=["POST"])
@api_error_handler
def trigger_wake():
    return service_response(get_service("schedule").trigger(WAKE_EVENT))
