"""Scheduling engine wiring config, timers, coordinator and player together.

- Arms one timer per enabled event from the current config snapshot
- Re-arms an event after it fires (timers are one-shot)
- Reacts to config saves via the thread-safe config change listener and
  reschedules only the events whose settings changed
"""
from __future__ import annotations

import datetime as _dt
import logging
import threading
from typing import Any, Callable, Dict, Optional

from ..api.player import PlayerClient
from ..constants import (DEFAULT_PLAYER_URL, EVENT_NAMES, PLAYER_CONFIG_KEYS,
                         SLEEP_CONFIG_KEYS, SLEEP_EVENT, WAKE_CONFIG_KEYS,
                         WAKE_EVENT)
from ..utils.logger import log_shutdown
from ..utils.thread_safety import (ThreadSafeConfigManager,
                                   get_thread_safe_config_manager)
from ..utils.timezone import invalidate_timezone_cache
from .coordinator import SleepWakeCoordinator
from .event_scheduler import EventScheduler, TimerFactory
from .ramp import RampConfig, RampRun
from .time_of_day import (ScheduleConfig, format_time_until,
                          resolve_next_for_schedule)

_logger = logging.getLogger("sleepwake.engine")

_EVENT_KEYS = {
    SLEEP_EVENT: SLEEP_CONFIG_KEYS,
    WAKE_EVENT: WAKE_CONFIG_KEYS,
}


def build_player(config: Dict[str, Any]) -> PlayerClient:
    return PlayerClient(
        base_url=config.get("player_url") or DEFAULT_PLAYER_URL,
        timeout=config.get("player_timeout"),
    )


class SleepWakeEngine:
    def __init__(
        self,
        config_manager: Optional[ThreadSafeConfigManager] = None,
        player: Optional[PlayerClient] = None,
        clock: Optional[Callable[[], _dt.datetime]] = None,
        timer_factory: Optional[TimerFactory] = None,
        join_timeout: Optional[float] = None,
    ):
        self._config_manager = config_manager
        self._player_injected = player is not None
        self._lock = threading.RLock()
        self._running = False
        self._config: Dict[str, Any] = {}
        self.scheduler = EventScheduler(clock=clock, timer_factory=timer_factory)
        self.coordinator = SleepWakeCoordinator(
            player or PlayerClient(),
            on_wake_preempt=self._rearm_sleep_after_wake,
            join_timeout=join_timeout,
        )
        self.scheduler.register(SLEEP_EVENT, self._schedule_source(SLEEP_EVENT), self._fire_sleep)
        self.scheduler.register(WAKE_EVENT, self._schedule_source(WAKE_EVENT), self._fire_wake)

    @property
    def config_manager(self) -> ThreadSafeConfigManager:
        if self._config_manager is None:
            self._config_manager = get_thread_safe_config_manager()
        return self._config_manager

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
        self._apply_config(self.config_manager.load_config())
        for name in EVENT_NAMES:
            self.scheduler.reschedule(name)
        self.config_manager.add_change_listener(self._on_config_changed)
        _logger.info("⏰ SleepWake engine started")

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._running = False
        self.config_manager.remove_change_listener(self._on_config_changed)
        self.scheduler.cancel_all()
        self.coordinator.shutdown()
        log_shutdown(_logger, "SleepWake engine")

    # ------------------------------------------------------------------ #
    # Config
    # ------------------------------------------------------------------ #

    def _snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._config)

    def _apply_config(self, config: Dict[str, Any]) -> None:
        with self._lock:
            self._config = dict(config)
        if not self._player_injected:
            self.coordinator.set_player(build_player(config))

    def _on_config_changed(self, new_config: Dict[str, Any]) -> None:
        with self._lock:
            old_config = self._config
            self._config = dict(new_config)
            running = self._running
        changed = {
            key for key in set(old_config) | set(new_config)
            if not key.startswith("_") and old_config.get(key) != new_config.get(key)
        }
        if not changed:
            return
        _logger.debug("Config keys changed: %s", ", ".join(sorted(changed)))

        if changed & PLAYER_CONFIG_KEYS and not self._player_injected:
            self.coordinator.set_player(build_player(new_config))
            _logger.info("🔌 Player client rebuilt for %s", new_config.get("player_url"))

        if not running:
            return
        timezone_changed = "timezone" in changed
        if timezone_changed:
            invalidate_timezone_cache()
        for name, keys in _EVENT_KEYS.items():
            if timezone_changed or changed & keys:
                self.scheduler.reschedule(name)

    def _schedule_source(self, event: str):
        def source(now: _dt.datetime) -> Optional[_dt.datetime]:
            config = self._snapshot()
            if not config.get(f"{event}_enabled", True):
                return None
            schedule = ScheduleConfig.from_config(config, event)
            return resolve_next_for_schedule(schedule, now)
        return source

    # ------------------------------------------------------------------ #
    # Fire handlers
    # ------------------------------------------------------------------ #

    def _fire_sleep(self) -> None:
        if not self._running:
            _logger.debug("Sleep fire ignored: engine stopped")
            return
        try:
            self.coordinator.on_sleep_fire(RampConfig.for_sleep(self._snapshot()))
        finally:
            if self._running:
                self.scheduler.reschedule(SLEEP_EVENT)

    def _fire_wake(self) -> None:
        if not self._running:
            _logger.debug("Wake fire ignored: engine stopped")
            return
        try:
            self.coordinator.on_wake_fire(RampConfig.for_wake(self._snapshot()))
        finally:
            if self._running:
                self.scheduler.reschedule(WAKE_EVENT)

    def _rearm_sleep_after_wake(self) -> None:
        if self._running:
            self.scheduler.reschedule(SLEEP_EVENT)

    def trigger(self, event: str) -> Optional[RampRun]:
        """Fire ``event`` now without touching its timer."""
        config = self._snapshot() or self.config_manager.load_config()
        if event == SLEEP_EVENT:
            return self.coordinator.on_sleep_fire(RampConfig.for_sleep(config))
        if event == WAKE_EVENT:
            return self.coordinator.on_wake_fire(RampConfig.for_wake(config))
        raise ValueError(f"Unknown event '{event}'")

    # ------------------------------------------------------------------ #
    # Status
    # ------------------------------------------------------------------ #

    def get_status(self) -> Dict[str, Any]:
        now = self.scheduler.now()
        config = self._snapshot()
        events = {}
        for name in EVENT_NAMES:
            target = self.scheduler.next_fire(name)
            events[name] = {
                "enabled": bool(config.get(f"{name}_enabled", True)),
                "next_fire": target.isoformat() if target else None,
                "time_until": format_time_until(target, now),
            }
        return {
            "running": self._running,
            "now": now.isoformat(),
            "events": events,
            **self.coordinator.get_status(),
        }


# Singleton pattern
_engine_instance: Optional[SleepWakeEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> SleepWakeEngine:
    global _engine_instance
    if _engine_instance is None:
        with _engine_lock:
            if _engine_instance is None:
                _engine_instance = SleepWakeEngine()
    return _engine_instance


def set_engine(engine: Optional[SleepWakeEngine]) -> None:
    """Replace the process-wide engine (tests)."""
    global _engine_instance
    with _engine_lock:
        _engine_instance = engine


def stop_engine() -> None:
    if _engine_instance is not None:
        _engine_instance.stop()
