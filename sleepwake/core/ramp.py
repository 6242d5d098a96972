#!/usr/bin/env python3
"""
🎚️ Interruptible volume ramps for fade-out (sleep) and ramp-in (wake).

A ramp is ``steps`` volume changes of ±1, one per ``interval`` seconds. Each
step reads the current volume first, so a manual change mid-ramp blends into
the trajectory instead of being overwritten.
"""

import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..api.player import PlayerClient, PlayerError, clamp_volume

logger = logging.getLogger("sleepwake.ramp")

FADE_OUT = -1
RAMP_IN = 1


class RampStatus(str, enum.Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class RampConfig:
    """Shape of one ramp.

    ``start_volume`` and ``playlist`` only apply to the wake ramp.
    """

    steps: int
    total_duration: float
    start_volume: Optional[int] = None
    playlist: str = ""

    def __post_init__(self):
        if self.steps < 1:
            object.__setattr__(self, "steps", 1)

    @property
    def step_interval(self) -> float:
        """Seconds between two consecutive steps."""
        return max(0.0, self.total_duration) / self.steps

    @classmethod
    def for_sleep(cls, config: dict) -> "RampConfig":
        return cls(
            steps=int(config.get("volume_decrease", 1)),
            total_duration=float(config.get("minutes_fade", 0)) * 60.0,
        )

    @classmethod
    def for_wake(cls, config: dict) -> "RampConfig":
        return cls(
            steps=int(config.get("volume_increase", 1)),
            total_duration=float(config.get("minutes_ramp", 0)) * 60.0,
            start_volume=int(config.get("start_volume", 0)),
            playlist=str(config.get("playlist") or ""),
        )


@dataclass
class RampRun:
    """One in-flight ramp, owned by the coordinator until it ends."""

    activity: str
    direction: int
    steps: int
    interval: float
    step: int = 0
    cancel_event: threading.Event = field(default_factory=threading.Event)
    started_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.steps < 1:
            self.steps = 1

    def cancel(self) -> None:
        self.cancel_event.set()

    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; returns True if cancelled meanwhile."""
        return self.cancel_event.wait(seconds)

    def to_dict(self) -> dict:
        return {
            "activity": self.activity,
            "direction": self.direction,
            "step": self.step,
            "steps": self.steps,
            "interval_s": self.interval,
            "cancelled": self.is_cancelled(),
        }


StepCallback = Callable[[RampRun, int], None]


class RampController:
    """Executes ramp runs against a player."""

    def __init__(self, player: PlayerClient):
        self.player = player

    def run(self, run: RampRun, on_step: Optional[StepCallback] = None) -> RampStatus:
        """Run ``run`` to a terminal status on the calling thread.

        Per step: check cancellation, read volume, clamp ``current +
        direction`` to 0..100, write it, then wait one interval unless this was
        the last step. A read or write failure ends the run as FAILED.
        """
        for index in range(run.steps):
            if run.is_cancelled():
                logger.info("⏹️ %s ramp cancelled before step %d/%d", run.activity, index + 1, run.steps)
                return RampStatus.CANCELLED

            try:
                current = self.player.get_volume()
                target = clamp_volume(current + run.direction)
                self.player.set_volume(target)
            except PlayerError as exc:
                logger.error("❌ %s ramp failed at step %d/%d: %s", run.activity, index + 1, run.steps, exc)
                return RampStatus.FAILED

            run.step = index + 1
            logger.debug("%s ramp step %d/%d: %d -> %d", run.activity, run.step, run.steps, current, target)
            if on_step is not None:
                on_step(run, target)

            if run.step < run.steps and run.wait(run.interval):
                logger.info("⏹️ %s ramp cancelled after step %d/%d", run.activity, run.step, run.steps)
                return RampStatus.CANCELLED

        logger.info("✅ %s ramp completed (%d steps)", run.activity, run.steps)
        return RampStatus.COMPLETED
