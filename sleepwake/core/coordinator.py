#!/usr/bin/env python3
"""
🌙☀️ Sleep/Wake coordinator - the state machine arbitrating the two ramps.

States: IDLE, SLEEPING, WAKING. Transitions happen only in this module and
only under ``self._lock``. Each activity runs in a daemon worker thread; a new
worker joins the previous one before touching the player, so at most one ramp
loop talks to the player at any time.

Rules:
- sleep fire while WAKING is dropped (logged only)
- sleep fire while IDLE/SLEEPING (re)starts the fade-out
- wake fire in any state pre-empts the active run and (re)starts the wake
- every run ends in IDLE, including failures
"""

import enum
import logging
import threading
import time
from typing import Callable, Dict, Optional

from ..api.player import PlayerClient, PlayerError
from ..constants import SLEEP_EVENT, WAKE_EVENT
from ..utils.logger import log_structured
from .ramp import FADE_OUT, RAMP_IN, RampConfig, RampController, RampRun, RampStatus

logger = logging.getLogger("sleepwake.coordinator")


class ActivityState(str, enum.Enum):
    IDLE = "idle"
    SLEEPING = "sleeping"
    WAKING = "waking"


class SleepWakeCoordinator:
    """Owns ``ActivityState`` and the active ``RampRun``.

    Args:
        player: Client used by every run
        on_wake_preempt: Called on each wake fire before the transition, used
            to re-arm the pending sleep timer. Errors are logged, not raised.
        join_timeout: Max seconds a new worker waits for the previous one
    """

    def __init__(
        self,
        player: PlayerClient,
        on_wake_preempt: Optional[Callable[[], None]] = None,
        join_timeout: Optional[float] = None,
    ):
        self._player = player
        self._controller = RampController(player)
        self._on_wake_preempt = on_wake_preempt
        self._join_timeout = join_timeout
        self._lock = threading.RLock()
        self._state = ActivityState.IDLE
        self._active_run: Optional[RampRun] = None
        self._worker: Optional[threading.Thread] = None
        self._last_results: Dict[str, dict] = {}

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> ActivityState:
        with self._lock:
            return self._state

    @property
    def active_run(self) -> Optional[RampRun]:
        with self._lock:
            return self._active_run

    def set_player(self, player: PlayerClient) -> None:
        """Swap the player used by future runs (config change)."""
        with self._lock:
            self._player = player
            self._controller = RampController(player)

    def get_status(self) -> dict:
        with self._lock:
            return {
                "state": self._state.value,
                "active_run": self._active_run.to_dict() if self._active_run else None,
                "last_results": dict(self._last_results),
            }

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until the current worker finishes; True if it did."""
        with self._lock:
            worker = self._worker
        if worker is None or worker is threading.current_thread():
            return True
        worker.join(timeout)
        return not worker.is_alive()

    # ------------------------------------------------------------------ #
    # Fire handlers
    # ------------------------------------------------------------------ #

    def on_sleep_fire(self, config: RampConfig) -> Optional[RampRun]:
        """Start the fade-out unless a wake is in progress.

        Returns the new run, or None when the fire was dropped.
        """
        with self._lock:
            if self._state is ActivityState.WAKING:
                log_structured(
                    logger,
                    logging.WARNING,
                    "⏭️ Sleep fire dropped: wake-up in progress",
                    event=SLEEP_EVENT,
                    policy="scheduling_conflict",
                )
                return None

            if self._state is ActivityState.SLEEPING:
                logger.info("🔁 Sleep fired while sleeping - restarting fade-out")
            run = RampRun(
                activity=SLEEP_EVENT,
                direction=FADE_OUT,
                steps=config.steps,
                interval=config.step_interval,
            )
            self._start_locked(ActivityState.SLEEPING, run, lambda: self._sleep_sequence(run))

        log_structured(
            logger,
            logging.INFO,
            "🌙 Sleep fade-out started",
            steps=run.steps,
            interval_s=round(run.interval, 2),
        )
        return run

    def on_wake_fire(self, config: RampConfig) -> RampRun:
        """Pre-empt whatever is running and start the wake sequence.

        The pending sleep timer is re-armed through ``on_wake_preempt`` rather
        than left cancelled, so the next night's fade-out stays scheduled.
        """
        if self._on_wake_preempt is not None:
            try:
                self._on_wake_preempt()
            except Exception:
                logger.exception("❌ Wake pre-emption hook failed")

        with self._lock:
            if self._state is ActivityState.SLEEPING:
                logger.info("⏰ Interrupting sleep fade-out to start wake-up")
            elif self._state is ActivityState.WAKING:
                logger.info("🔁 Wake fired while waking - restarting wake sequence")
            run = RampRun(
                activity=WAKE_EVENT,
                direction=RAMP_IN,
                steps=config.steps,
                interval=config.step_interval,
            )
            self._start_locked(ActivityState.WAKING, run, lambda: self._wake_sequence(run, config))

        log_structured(
            logger,
            logging.INFO,
            "☀️ Wake-up started",
            start_volume=config.start_volume,
            playlist=config.playlist or None,
            steps=run.steps,
            interval_s=round(run.interval, 2),
        )
        return run

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel the active run and reset to IDLE."""
        with self._lock:
            if self._active_run is not None:
                self._active_run.cancel()
            self._active_run = None
            self._state = ActivityState.IDLE
            worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
            if worker.is_alive():
                logger.warning("⚠️ Ramp worker still busy after %.1fs shutdown wait", timeout or 0)
        logger.info("🛑 Coordinator reset to idle")

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _start_locked(self, state: ActivityState, run: RampRun, body: Callable[[], RampStatus]) -> None:
        if self._active_run is not None:
            self._active_run.cancel()
        previous = self._worker
        self._active_run = run
        self._state = state
        worker = threading.Thread(
            target=self._run_worker,
            args=(run, previous, body),
            name=f"{run.activity.capitalize()}RampWorker",
            daemon=True,
        )
        self._worker = worker
        worker.start()

    def _owns(self, run: RampRun) -> bool:
        with self._lock:
            return self._active_run is run and not run.is_cancelled()

    def _run_worker(self, run: RampRun, previous: Optional[threading.Thread], body: Callable[[], RampStatus]) -> None:
        if previous is not None and previous.is_alive():
            previous.join(self._join_timeout)
            if previous.is_alive():
                logger.warning("⚠️ Previous ramp worker still running; %s starts anyway", run.activity)

        status = RampStatus.FAILED
        try:
            status = body()
        except Exception:
            logger.exception("❌ Unexpected error in %s sequence", run.activity)
        finally:
            self._finish(run, status)

    def _finish(self, run: RampRun, status: RampStatus) -> None:
        with self._lock:
            self._last_results[run.activity] = {
                "status": status.value,
                "steps_done": run.step,
                "steps": run.steps,
                "finished_at": time.time(),
            }
            if self._active_run is not run:
                logger.debug("%s run superseded; state left to its successor", run.activity)
                return
            self._active_run = None
            self._state = ActivityState.IDLE
        logger.info("💤 %s finished (%s); coordinator idle", run.activity, status.value)

    def _sleep_sequence(self, run: RampRun) -> RampStatus:
        status = self._controller.run(run)
        if status is RampStatus.CANCELLED or not self._owns(run):
            return RampStatus.CANCELLED

        try:
            self._player.stop()
            logger.info("⏹️ Playback stopped after fade-out")
        except PlayerError as exc:
            logger.error("❌ Could not stop playback after fade-out: %s", exc)
        return status

    def _wake_sequence(self, run: RampRun, config: RampConfig) -> RampStatus:
        if run.is_cancelled():
            return RampStatus.CANCELLED
        try:
            if config.start_volume is not None:
                self._player.set_volume(config.start_volume)
            if run.is_cancelled():
                return RampStatus.CANCELLED
            if config.playlist:
                self._player.play_playlist(config.playlist)
                logger.info("🎵 Playlist '%s' started", config.playlist)
            else:
                logger.warning("⚠️ No playlist configured; ramping volume only")
        except PlayerError as exc:
            logger.error("❌ Wake-up aborted before ramp: %s", exc)
            return RampStatus.FAILED
        return self._controller.run(run)
