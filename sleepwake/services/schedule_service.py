"""
🌙 Schedule Service - Business Logic for Sleep/Wake Settings and Status
======================================================================

Reads and saves the schedule settings, reports engine status and fires
events manually. Saving goes through the thread-safe config layer so the
engine's change listener reschedules the affected events.
"""

from typing import Any, Dict, Optional

from . import BaseService, ServiceResult
from ..constants import (EVENT_NAMES, PLAYER_CONFIG_KEYS, SLEEP_CONFIG_KEYS,
                         SLEEP_EVENT, WAKE_CONFIG_KEYS)
from ..core.engine import SleepWakeEngine, get_engine
from ..utils.thread_safety import (ThreadSafeConfigManager,
                                   get_thread_safe_config_manager)
from ..utils.validation import ValidationError, validate_settings

SETTINGS_KEYS = tuple(sorted(SLEEP_CONFIG_KEYS | WAKE_CONFIG_KEYS | PLAYER_CONFIG_KEYS | {"timezone"}))


class ScheduleService(BaseService):
    """Service for the sleep/wake schedule."""

    def __init__(
        self,
        engine: Optional[SleepWakeEngine] = None,
        config_manager: Optional[ThreadSafeConfigManager] = None,
    ):
        super().__init__("schedule")
        self._engine = engine
        self._config_manager = config_manager

    @property
    def engine(self) -> SleepWakeEngine:
        return self._engine or get_engine()

    @property
    def config_manager(self) -> ThreadSafeConfigManager:
        return self._config_manager or get_thread_safe_config_manager()

    def get_settings(self) -> ServiceResult:
        """Return the last-saved settings (or their defaults)."""
        try:
            config = self.config_manager.load_config()
            settings = {key: config.get(key) for key in SETTINGS_KEYS}
            return self._success_result(data=settings, message="Settings retrieved successfully")
        except Exception as e:
            return self._handle_error(e, "get_settings")

    def save_settings(self, form_data: Dict[str, Any]) -> ServiceResult:
        """Validate and persist a (partial) settings update.

        Invalid input is reported with ``error_code`` set to the offending field.
        """
        try:
            validated = validate_settings(form_data or {})
        except ValidationError as e:
            return self._error_result(
                f"Invalid {e.field_name}: {e.message}",
                error_code=e.field_name
            )

        if not validated:
            return self._error_result("No settings provided", error_code="NO_SETTINGS")

        try:
            with self.config_manager.config_transaction() as transaction:
                config = transaction.load()
                config.update(validated)
                if not transaction.save(config):
                    return self._error_result("Failed to save settings", error_code="SAVE_FAILED")
        except Exception as e:
            return self._handle_error(e, "save_settings")

        self.logger.info("💾 Settings saved: %s", ", ".join(sorted(validated)))
        settings_result = self.get_settings()
        return self._success_result(
            data=settings_result.data if settings_result.success else validated,
            message="Settings saved successfully"
        )

    def get_status(self) -> ServiceResult:
        try:
            return self._success_result(data=self.engine.get_status(), message="Status retrieved successfully")
        except Exception as e:
            return self._handle_error(e, "get_status")

    def trigger(self, event: str) -> ServiceResult:
        """Fire ``event`` immediately, outside its schedule."""
        if event not in EVENT_NAMES:
            return self._error_result(f"Unknown event '{event}'", error_code="UNKNOWN_EVENT")
        try:
            run = self.engine.trigger(event)
        except Exception as e:
            return self._handle_error(e, "trigger")

        if run is None:
            # Only a sleep fire can be dropped
            return self._error_result(
                "Sleep not started: a wake-up is in progress",
                error_code="SCHEDULING_CONFLICT",
                data=self.engine.coordinator.get_status(),
            )
        return self._success_result(
            data=run.to_dict(),
            message=f"{'Sleep fade-out' if event == SLEEP_EVENT else 'Wake-up'} started"
        )

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        running = self.engine.running
        return self._success_result(
            data={
                "status": "healthy" if running else "degraded",
                "service": self.name,
                "engine_running": running,
                "state": self.engine.coordinator.state.value,
            }
        )
