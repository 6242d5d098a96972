"""
Pydantic models for SleepWake configuration validation

Type-safe configuration schema with automatic validation, preventing runtime
errors from malformed config files.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .constants import (DEFAULT_PLAYER_TIMEOUT_SECONDS, DEFAULT_PLAYER_URL,
                        DEFAULT_RAMP_MINUTES, DEFAULT_RAMP_STEPS,
                        DEFAULT_SLEEP_TIME, DEFAULT_START_VOLUME,
                        DEFAULT_WAKE_TIME)
from .core.time_of_day import InvalidTimeFormat, parse_time_of_day

# Keys written by the original Volumio plugin → current schema keys
LEGACY_KEY_MAP = {
    "sleepTime": "sleep_time",
    "Mon_Fri_sleepTime": "sleep_time",
    "Sat_sleepTime": "sleep_time_saturday",
    "Sun_sleepTime": "sleep_time_sunday",
    "wakeTime": "wake_time",
    "Mon_Fri_wakeTime": "wake_time",
    "Sat_wakeTime": "wake_time_saturday",
    "Sun_wakeTime": "wake_time_sunday",
    "startVolume": "start_volume",
    "volumeDecrease": "volume_decrease",
    "minutesFade": "minutes_fade",
    "volumeIncrease": "volume_increase",
    "minutesRamp": "minutes_ramp",
}


def _check_time_value(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    try:
        parse_time_of_day(v)
    except InvalidTimeFormat as e:
        raise ValueError(str(e))
    return v


class SleepWakeConfig(BaseModel):
    """Complete SleepWake configuration schema.

    Example:
        >>> validated = SleepWakeConfig(**{"sleep_time": "23:15"})
        >>> validated.volume_decrease
        10
    """

    # Sleep (fade-out) settings
    sleep_enabled: bool = Field(default=True, description="Arm the nightly fade-out")
    sleep_time: str = Field(default=DEFAULT_SLEEP_TIME, description="Fade-out start, HH:MM or ISO date-time")
    sleep_time_saturday: Optional[str] = Field(default=None, description="Saturday override for sleep_time")
    sleep_time_sunday: Optional[str] = Field(default=None, description="Sunday override for sleep_time")
    volume_decrease: int = Field(default=DEFAULT_RAMP_STEPS, ge=1, le=100, description="Fade-out step count")
    minutes_fade: float = Field(default=DEFAULT_RAMP_MINUTES, gt=0, le=600, description="Fade-out length in minutes")

    # Wake (ramp-in) settings
    wake_enabled: bool = Field(default=True, description="Arm the morning wake-up")
    wake_time: str = Field(default=DEFAULT_WAKE_TIME, description="Wake-up start, HH:MM or ISO date-time")
    wake_time_saturday: Optional[str] = Field(default=None, description="Saturday override for wake_time")
    wake_time_sunday: Optional[str] = Field(default=None, description="Sunday override for wake_time")
    start_volume: int = Field(default=DEFAULT_START_VOLUME, ge=0, le=100, description="Volume set before the playlist starts")
    playlist: str = Field(default="", description="Playlist name started on wake")
    volume_increase: int = Field(default=DEFAULT_RAMP_STEPS, ge=1, le=100, description="Ramp-in step count")
    minutes_ramp: float = Field(default=DEFAULT_RAMP_MINUTES, gt=0, le=600, description="Ramp-in length in minutes")

    # Player service
    player_url: str = Field(default=DEFAULT_PLAYER_URL, description="Base URL of the playback service")
    player_timeout: float = Field(default=DEFAULT_PLAYER_TIMEOUT_SECONDS, gt=0, le=120, description="Per-request timeout in seconds")

    # Runtime settings
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$", description="Logging level")
    timezone: str = Field(default="", description="IANA timezone; empty uses host local time")

    model_config = {
        "extra": "allow",
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator('sleep_time', 'wake_time')
    @classmethod
    def validate_required_time(cls, v: str) -> str:
        return _check_time_value(v)

    @field_validator('sleep_time_saturday', 'sleep_time_sunday', 'wake_time_saturday', 'wake_time_sunday', mode='before')
    @classmethod
    def validate_override_time(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return _check_time_value(v)

    @field_validator('player_url')
    @classmethod
    def validate_player_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"player_url must start with http:// or https://, got '{v}'")
        return v.rstrip("/")

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        if not v:
            return v
        try:
            ZoneInfo(v)
            return v
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Invalid timezone: {v}. Must be a valid IANA timezone (e.g., 'Europe/Zagreb')")

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=False, mode='json')

    def to_json_safe(self) -> Dict[str, Any]:
        """Dictionary for persisting: runtime metadata removed."""
        data = self.to_dict()
        return {k: v for k, v in data.items() if not k.startswith("_")}


def validate_config_dict(config_dict: Dict[str, Any]) -> tuple[SleepWakeConfig, list[str]]:
    """Validate a config dictionary against the schema.

    Returns:
        Tuple of (validated_config, warnings_list)

    Raises:
        ValueError: If config is invalid with detailed error messages
    """
    warnings = []
    try:
        validated = SleepWakeConfig(**config_dict)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {str(e)}")

    if validated.sleep_enabled and validated.wake_enabled and validated.sleep_time == validated.wake_time:
        warnings.append("sleep_time equals wake_time; the wake-up will pre-empt the fade-out every day")
    if validated.wake_enabled and not validated.playlist:
        warnings.append("wake is enabled without a playlist; only the volume ramp will run")
    return validated, warnings


def migrate_legacy_config(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Rename keys written by the original plugin to the current schema.

    Current keys win when both spellings are present.
    """
    migrated = dict(config_dict)
    for legacy_key, key in LEGACY_KEY_MAP.items():
        if legacy_key not in migrated:
            continue
        value = migrated.pop(legacy_key)
        migrated.setdefault(key, value)
    return migrated
