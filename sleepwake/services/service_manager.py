"""
🔧 Service Manager - Central Service Coordination
===============================================

Manages all services and provides a unified interface for the Flask application.
"""

import logging
from typing import Any, Dict, Optional

from . import ServiceResult
from .player_service import PlayerService
from .schedule_service import ScheduleService

DEGRADED_STATES = {"degraded", "warning", "error", "failed", "unhealthy"}


class ServiceManager:
    """Central manager for all application services."""

    def __init__(self, schedule: Optional[ScheduleService] = None, player: Optional[PlayerService] = None):
        self.logger = logging.getLogger("sleepwake.service_manager")

        self.schedule = schedule or ScheduleService()
        self.player = player or PlayerService()

        self.services = {
            "schedule": self.schedule,
            "player": self.player,
        }

        self._initialize_all()

    def _initialize_all(self) -> None:
        self.logger.info("🚀 Initializing service manager...")
        for name, service in self.services.items():
            result = service.initialize()
            if result.success:
                self.logger.debug(f"✅ {name} service initialized")
            else:
                self.logger.error(f"❌ {name} service initialization failed: {result.message}")

    def get_service(self, name: str) -> Optional[Any]:
        """Get a specific service by name."""
        return self.services.get(name)

    def health_check_all(self) -> ServiceResult:
        """Perform health check on all services."""
        results: Dict[str, Any] = {}
        overall_healthy = True

        for name, service in self.services.items():
            try:
                health = service.health_check()
            except Exception as e:
                self.logger.error(f"Health check for {name} crashed: {e}")
                health = ServiceResult(success=False, message=str(e), error_code="HEALTH_CHECK_FAILED")

            if health.success and isinstance(health.data, dict):
                status_payload: Dict[str, Any] = health.data
            else:
                status_payload = {"status": "error", "error": health.message}

            status_value = str(status_payload.get("status", "")).lower()
            service_healthy = health.success and status_value not in DEGRADED_STATES
            results[name] = {
                "healthy": service_healthy,
                "status": status_payload,
            }
            if not service_healthy:
                overall_healthy = False

        return ServiceResult(
            success=True,
            data={
                "overall_healthy": overall_healthy,
                "services": results,
                "total_services": len(self.services),
                "healthy_services": sum(1 for r in results.values() if r["healthy"]),
            },
            message="Health check completed for all services"
        )


# Global service manager instance
_service_manager: Optional[ServiceManager] = None


def get_service_manager() -> ServiceManager:
    """Get the global service manager instance."""
    global _service_manager
    if _service_manager is None:
        _service_manager = ServiceManager()
    return _service_manager


def set_service_manager(manager: Optional[ServiceManager]) -> None:
    global _service_manager
    _service_manager = manager


def get_service(name: str) -> Optional[Any]:
    """Get a specific service by name."""
    return get_service_manager().get_service(name)
