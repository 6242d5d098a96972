"""
Centralized configuration management for SleepWake
Handles environment-specific configs and validation with thread safety
"""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .config_schema import migrate_legacy_config, validate_config_dict
from .constants import (DEFAULT_PLAYER_TIMEOUT_SECONDS, DEFAULT_PLAYER_URL,
                        DEFAULT_RAMP_MINUTES, DEFAULT_RAMP_STEPS,
                        DEFAULT_SLEEP_TIME, DEFAULT_START_VOLUME,
                        DEFAULT_WAKE_TIME)
from .core.time_of_day import InvalidTimeFormat, parse_time_of_day

load_dotenv(dotenv_path=Path.home() / ".sleepwake" / ".env")
load_dotenv()

logger = logging.getLogger("sleepwake.config")


def _default_config_dir() -> Path:
    env_dir = os.getenv("SLEEPWAKE_CONFIG_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".sleepwake" / "config"


def _without_runtime(config: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in config.items() if not k.startswith("_")}


class ConfigManager:
    """Manages configuration loading and validation"""

    def __init__(self, config_dir: Optional[str] = None):
        self.config_dir = Path(config_dir) if config_dir else _default_config_dir()
        self.environment = self._detect_environment()

    def _detect_environment(self) -> str:
        """Auto-detect environment based on platform and environment variables"""
        env_var = os.getenv("SLEEPWAKE_ENV")
        if env_var:
            return env_var

        import platform
        is_player_box = (
            (platform.machine().startswith('arm') and platform.system() == 'Linux') or
            'raspberrypi' in platform.node().lower() or
            'volumio' in platform.node().lower() or
            os.getenv('SLEEPWAKE_RASPBERRY_PI') == '1'
        )
        return "production" if is_player_box else "development"

    def _read_json(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("⚠️ Could not load %s: %s", path.name, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("⚠️ Ignoring %s: top-level value is not an object", path.name)
            return {}
        return data

    def load_config(self, config_name: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration based on environment

        ``default_config.json`` is read first and ``<environment>.json``
        overrides it key by key.

        Args:
            config_name: Specific config file name (without .json)
                        If None, uses environment-based config

        Returns:
            Validated configuration dictionary
        """
        if config_name is None:
            config_name = self.environment

        config_file = self.config_dir / f"{config_name}.json"
        default_config = self._read_json(self.config_dir / "default_config.json")
        env_config = self._read_json(config_file)

        config = {**default_config, **env_config}
        config.setdefault("environment", self.environment)

        config["_runtime"] = {
            "environment": self.environment,
            "config_file": str(config_file),
            "config_dir": str(self.config_dir),
        }

        return self.validate_config(config)

    def validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and clean configuration.

        Uses the Pydantic schema; falls back to per-key repair so a single bad
        value on disk never stops the scheduler from starting.
        """
        migrated_config = _without_runtime(migrate_legacy_config(config))
        try:
            validated_model, warnings = validate_config_dict(migrated_config)
        except ValueError as e:
            logger.error(f"❌ Configuration schema validation failed: {e}")
            logger.warning("Falling back to legacy validation (invalid values replaced by defaults)")
            validated_dict = self._legacy_validate_config(migrated_config)
        else:
            for warning in warnings:
                logger.warning(f"Config validation warning: {warning}")
            validated_dict = validated_model.to_dict()
            logger.debug("✅ Configuration validated against Pydantic schema")

        if "_runtime" in config:
            validated_dict["_runtime"] = config["_runtime"]
        return validated_dict

    def _legacy_validate_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Repair invalid values one by one, then re-run schema validation."""
        defaults = {
            "sleep_enabled": True,
            "sleep_time": DEFAULT_SLEEP_TIME,
            "volume_decrease": DEFAULT_RAMP_STEPS,
            "minutes_fade": DEFAULT_RAMP_MINUTES,
            "wake_enabled": True,
            "wake_time": DEFAULT_WAKE_TIME,
            "start_volume": DEFAULT_START_VOLUME,
            "playlist": "",
            "volume_increase": DEFAULT_RAMP_STEPS,
            "minutes_ramp": DEFAULT_RAMP_MINUTES,
            "player_url": DEFAULT_PLAYER_URL,
            "player_timeout": DEFAULT_PLAYER_TIMEOUT_SECONDS,
            "debug": False,
            "log_level": "INFO",
            "timezone": "",
        }
        repaired = copy.deepcopy(config)
        for key, default_value in defaults.items():
            if key not in repaired:
                repaired[key] = copy.deepcopy(default_value)

        for key in ("sleep_time", "wake_time"):
            try:
                parse_time_of_day(repaired[key])
            except InvalidTimeFormat:
                repaired[key] = defaults[key]
        for key in ("sleep_time_saturday", "sleep_time_sunday", "wake_time_saturday", "wake_time_sunday"):
            value = repaired.get(key)
            if value is None:
                continue
            try:
                parse_time_of_day(value)
            except InvalidTimeFormat:
                repaired[key] = None

        try:
            repaired["start_volume"] = max(0, min(100, int(repaired["start_volume"])))
        except (ValueError, TypeError):
            repaired["start_volume"] = DEFAULT_START_VOLUME
        for key in ("volume_decrease", "volume_increase"):
            try:
                repaired[key] = max(1, min(100, int(repaired[key])))
            except (ValueError, TypeError):
                repaired[key] = DEFAULT_RAMP_STEPS
        for key in ("minutes_fade", "minutes_ramp"):
            try:
                minutes = float(repaired[key])
                repaired[key] = minutes if 0 < minutes <= 600 else DEFAULT_RAMP_MINUTES
            except (ValueError, TypeError):
                repaired[key] = DEFAULT_RAMP_MINUTES

        try:
            validated_model, _ = validate_config_dict(repaired)
        except ValueError as e:
            logger.error("❌ Config still invalid after repair, using defaults: %s", e)
            validated_model, _ = validate_config_dict({"environment": repaired.get("environment", self.environment)})

        return validated_model.to_dict()

    def save_config(self, config: Dict[str, Any], config_name: Optional[str] = None) -> bool:
        """
        Save configuration to file

        Args:
            config: Configuration to save
            config_name: Config file name (without .json)

        Returns:
            True if saved successfully
        """
        if config_name is None:
            config_name = self.environment

        config_file = self.config_dir / f"{config_name}.json"

        try:
            validated_model, _ = validate_config_dict(_without_runtime(migrate_legacy_config(config)))
        except ValueError as e:
            logger.error("❌ Refusing to save invalid configuration: %s", e)
            return False

        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = config_file.with_suffix(".json.tmp")
            with open(tmp_file, 'w', encoding='utf-8') as f:
                json.dump(validated_model.to_json_safe(), f, indent=2)
            os.replace(tmp_file, config_file)
            return True
        except OSError as e:
            logger.error("❌ Could not write %s: %s", config_file, e)
            return False

    def get_environment(self) -> str:
        """Get current environment"""
        return self.environment

    def list_available_configs(self) -> list[str]:
        """List all available configuration files"""
        if not self.config_dir.exists():
            return []
        return sorted(config_file.stem for config_file in self.config_dir.glob("*.json"))


# Global config manager instance
config_manager = ConfigManager()

# Initialize thread-safe config system
from .utils.thread_safety import initialize_thread_safe_config, load_config_safe  # noqa: E402

initialize_thread_safe_config(config_manager)


def load_config() -> Dict[str, Any]:
    """Load current environment configuration (THREAD-SAFE)"""
    return load_config_safe()
