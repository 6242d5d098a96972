#!/usr/bin/env python3
"""
🏗️ Service Layer Test Suite
===========================

Exercises the schedule and player services directly, without Flask.
"""

from unittest.mock import Mock

import pytest

from sleepwake.config import ConfigManager
from sleepwake.core.engine import SleepWakeEngine
from sleepwake.services.player_service import PlayerService
from sleepwake.services.schedule_service import SETTINGS_KEYS, ScheduleService
from sleepwake.services.service_manager import ServiceManager


@pytest.fixture
def engine(config_manager, player, timers):
    engine = SleepWakeEngine(config_manager=config_manager, player=player, timer_factory=timers, join_timeout=5.0)
    engine.start()
    yield engine
    engine.stop()


@pytest.fixture
def schedule(engine, config_manager):
    service = ScheduleService(engine=engine, config_manager=config_manager)
    service.initialize()
    return service


class TestScheduleService:
    def test_get_settings_lists_known_keys_only(self, schedule):
        result = schedule.get_settings()

        assert result.success
        assert set(result.data) == set(SETTINGS_KEYS)

    def test_save_merges_partial_update(self, schedule, config_manager):
        result = schedule.save_settings({"wake_time": "06:15"})

        assert result.success
        assert result.data["wake_time"] == "06:15"
        assert config_manager.load_config(use_cache=False)["sleep_time"] == "22:00"

    def test_validation_error_code_is_field(self, schedule):
        result = schedule.save_settings({"minutes_fade": "-5"})

        assert not result.success
        assert result.error_code == "minutes_fade"

    def test_empty_update_rejected(self, schedule):
        result = schedule.save_settings({"unrelated": 1})
        assert result.error_code == "NO_SETTINGS"

    def test_save_failure_reported(self, schedule, monkeypatch):
        monkeypatch.setattr(ConfigManager, "save_config", lambda self, config, config_name=None: False)

        result = schedule.save_settings({"playlist": "x"})

        assert not result.success
        assert result.error_code == "SAVE_FAILED"

    def test_trigger_unknown_event(self, schedule):
        assert schedule.trigger("nap").error_code == "UNKNOWN_EVENT"

    def test_trigger_sleep_dropped_while_waking(self, schedule, engine, config_manager, player):
        schedule.save_settings({"volume_increase": 5, "playlist": "Wake"})
        assert schedule.trigger("wake").success

        result = schedule.trigger("sleep")

        assert not result.success
        assert result.error_code == "SCHEDULING_CONFLICT"

    def test_health_reflects_engine(self, schedule, engine):
        assert schedule.health_check().data["status"] == "healthy"

        engine.stop()

        health = schedule.health_check().data
        assert health["status"] == "degraded"
        assert health["engine_running"] is False


class TestPlayerService:
    def test_get_volume(self, player):
        service = PlayerService(player_factory=lambda: player)
        result = service.get_volume()

        assert result.success
        assert result.data == {"volume": 40, "player_url": player.base_url}

    def test_get_volume_error_code(self, player):
        player.fail_on["get_volume"] = 0
        result = PlayerService(player_factory=lambda: player).get_volume()

        assert not result.success
        assert result.error_code == "PLAYER_UNREACHABLE"

    def test_health_requires_initialize(self, player):
        service = PlayerService(player_factory=lambda: player)
        assert service.health_check().error_code == "NOT_INITIALIZED"


class TestServiceManager:
    def test_health_check_all(self, schedule, player):
        manager = ServiceManager(schedule=schedule, player=PlayerService(player_factory=lambda: player))

        result = manager.health_check_all()

        assert result.success
        assert result.data["total_services"] == 2
        assert result.data["healthy_services"] == 2
        assert result.data["overall_healthy"] is True

    def test_crashing_health_check_marks_unhealthy(self, schedule, player):
        player_service = PlayerService(player_factory=lambda: player)
        manager = ServiceManager(schedule=schedule, player=player_service)
        player_service.health_check = Mock(side_effect=RuntimeError("boom"))

        result = manager.health_check_all()

        assert result.data["services"]["player"]["healthy"] is False
        assert result.data["overall_healthy"] is False
