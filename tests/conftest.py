"""Shared pytest fixtures for the SleepWake test suite."""

from __future__ import annotations

import datetime
import os
import tempfile

import pytest

# Isolate config and logs before any sleepwake module is imported
_TEST_ROOT = tempfile.mkdtemp(prefix="sleepwake-tests-")
os.environ["SLEEPWAKE_CONFIG_DIR"] = os.path.join(_TEST_ROOT, "config")
os.environ["SLEEPWAKE_LOG_DIR"] = os.path.join(_TEST_ROOT, "logs")
os.environ["SLEEPWAKE_ENV"] = "test"
os.environ["SLEEPWAKE_SYSTEM_INFO"] = "0"
os.environ["SLEEPWAKE_DISABLE_DAILY_LOGS"] = "1"
os.environ.pop("SLEEPWAKE_TIMEZONE", None)

from sleepwake.config import ConfigManager  # noqa: E402
from sleepwake.utils.thread_safety import ThreadSafeConfigManager  # noqa: E402
from tests.fakes import FakePlayer, ManualTimerFactory  # noqa: E402


@pytest.fixture
def player() -> FakePlayer:
    return FakePlayer(volume=40)


@pytest.fixture
def timers() -> ManualTimerFactory:
    return ManualTimerFactory()


@pytest.fixture
def config_manager(tmp_path) -> ThreadSafeConfigManager:
    """Thread-safe config manager backed by an empty temp directory."""
    return ThreadSafeConfigManager(ConfigManager(config_dir=str(tmp_path)), cache_ttl=0.0)


@pytest.fixture
def monday_evening() -> datetime.datetime:
    # Monday 2024-01-15 21:59, clear of any DST transition
    return datetime.datetime(2024, 1, 15, 21, 59)


@pytest.fixture
def app(player, timers):
    """App wired to a fake player and manual timers, with a clean config dir."""
    from sleepwake.app import create_app
    from sleepwake.config import config_manager as base_manager
    from sleepwake.core.engine import SleepWakeEngine, set_engine
    from sleepwake.services.player_service import PlayerService
    from sleepwake.services.schedule_service import ScheduleService
    from sleepwake.services.service_manager import ServiceManager, set_service_manager
    from sleepwake.utils.thread_safety import invalidate_config_cache
    from sleepwake.utils.timezone import invalidate_timezone_cache

    base_manager.config_dir.mkdir(parents=True, exist_ok=True)
    for config_file in base_manager.config_dir.glob("*.json"):
        config_file.unlink()
    invalidate_config_cache()
    invalidate_timezone_cache()

    engine = SleepWakeEngine(player=player, timer_factory=timers, join_timeout=5.0)
    flask_app = create_app(start_engine=True, engine=engine)
    flask_app.config.update({"TESTING": True})
    set_service_manager(ServiceManager(
        schedule=ScheduleService(engine=engine),
        player=PlayerService(player_factory=lambda: player),
    ))

    yield flask_app

    engine.stop()
    set_engine(None)
    set_service_manager(None)
    invalidate_timezone_cache()


@pytest.fixture
def client(app):
    with app.test_client() as c:
        yield c
