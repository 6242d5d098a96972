#!/usr/bin/env python3
"""
⏲️ One-shot, rearmable timers for the named daily events.

Each name owns at most one pending ``TimerHandle``. Timers never repeat: the
fire handler is expected to call ``reschedule`` for the next occurrence.
A re-arm never resolves to a target at or before the one that last fired,
even when the timer thread wakes ahead of the wall clock.
"""

import datetime
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from ..utils.logger import log_structured
from ..utils.timezone import now_local
from .time_of_day import InvalidTimeFormat, format_time_until, seconds_until

logger = logging.getLogger("sleepwake.event_scheduler")

FireCallback = Callable[[], None]
# Returns the next target after ``now``, or None when the event is disabled
ScheduleSource = Callable[[datetime.datetime], Optional[datetime.datetime]]


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def _thread_timer(delay: float, callback: Callable[[], None]) -> Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


@dataclass
class TimerHandle:
    """The single pending timer for one event name."""

    name: str
    target: datetime.datetime
    on_fire: FireCallback
    timer: Any = None
    token: object = field(default_factory=object)


class EventScheduler:
    """Arms, cancels and re-arms one timer per event name.

    Args:
        clock: Returns "now"; defaults to the configured local time
        timer_factory: ``(delay_seconds, callback) -> timer`` with start/cancel
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self._clock = clock or now_local
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.RLock()
        self._handles: Dict[str, TimerHandle] = {}
        self._sources: Dict[str, ScheduleSource] = {}
        self._handlers: Dict[str, FireCallback] = {}
        self._last_fired: Dict[str, datetime.datetime] = {}

    def now(self) -> datetime.datetime:
        return self._clock()

    def register(self, name: str, source: ScheduleSource, on_fire: FireCallback) -> None:
        """Tell ``reschedule`` how to compute targets and what to run for ``name``."""
        with self._lock:
            self._sources[name] = source
            self._handlers[name] = on_fire

    def arm(self, name: str, target: datetime.datetime, on_fire: FireCallback) -> TimerHandle:
        """Cancel any pending timer for ``name`` and fire ``on_fire`` at ``target``."""
        with self._lock:
            self._cancel_locked(name)
            now = self._clock()
            delay = seconds_until(target, now)
            handle = TimerHandle(name=name, target=target, on_fire=on_fire)
            handle.timer = self._timer_factory(delay, lambda: self._fire(handle))
            self._handles[name] = handle
            handle.timer.start()

        log_structured(
            logger,
            logging.INFO,
            f"⏰ {name} armed for {target.isoformat()} ({format_time_until(target, now)})",
            event=name,
            delay_s=round(delay, 1),
        )
        return handle

    def _cancel_locked(self, name: str) -> bool:
        handle = self._handles.pop(name, None)
        if handle is None:
            return False
        if handle.timer is not None:
            handle.timer.cancel()
        return True

    def cancel(self, name: str) -> bool:
        """Cancel the pending timer for ``name``; returns False if none was pending."""
        with self._lock:
            cancelled = self._cancel_locked(name)
        if cancelled:
            logger.info("🚫 %s timer cancelled", name)
        return cancelled

    def reschedule(self, name: str) -> Optional[datetime.datetime]:
        """Cancel ``name`` and arm it for the next occurrence from its source.

        Returns the new target, or None when the event stays unarmed (disabled
        or an unparseable time-of-day).
        """
        with self._lock:
            self._cancel_locked(name)
            source = self._sources.get(name)
            handler = self._handlers.get(name)
            if source is None or handler is None:
                raise KeyError(f"No schedule registered for event '{name}'")
            try:
                target = source(self._resolve_from(name))
            except InvalidTimeFormat as exc:
                logger.warning("⚠️ %s not scheduled: %s", name, exc)
                return None
            if target is None:
                logger.info("💤 %s disabled, timer not armed", name)
                return None
            self.arm(name, target, handler)
            return target

    def _resolve_from(self, name: str) -> datetime.datetime:
        now = self._clock()
        fired = self._last_fired.get(name)
        if fired is not None and fired > now:
            return fired
        return now

    def cancel_all(self) -> None:
        with self._lock:
            names = list(self._handles)
            for name in names:
                self._cancel_locked(name)
        if names:
            logger.info("🚫 Cancelled timers: %s", ", ".join(sorted(names)))

    def next_fire(self, name: str) -> Optional[datetime.datetime]:
        with self._lock:
            handle = self._handles.get(name)
            return handle.target if handle else None

    def pending(self) -> Dict[str, datetime.datetime]:
        with self._lock:
            return {name: handle.target for name, handle in self._handles.items()}

    def _fire(self, handle: TimerHandle) -> None:
        with self._lock:
            # A re-armed or cancelled handle may still fire if its timer had already elapsed
            if self._handles.get(handle.name) is not handle:
                logger.debug("Ignoring stale %s timer", handle.name)
                return
            del self._handles[handle.name]
            self._last_fired[handle.name] = handle.target

        logger.info("🔔 %s timer fired", handle.name)
        try:
            handle.on_fire()
        except Exception:
            logger.exception("❌ Unhandled error in %s fire handler", handle.name)
