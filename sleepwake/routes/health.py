"""
🩺 Health Routes Blueprint
Liveness check and per-service health.
"""

from flask import Blueprint, jsonify

from ..services.service_manager import get_service_manager
from ..version import VERSION
from .helpers import api_error_handler, service_response

health_bp = Blueprint("health", __name__)


@health_bp.route("/healthz")
def healthz():
    """Basic health check endpoint."""
    return jsonify({"ok": True, "version": str(VERSION)})


@health_bp.route("/api/services/health")
@api_error_handler
def services_health():
    """Health of the schedule engine and the playback service."""
    return service_response(get_service_manager().health_check_all())
