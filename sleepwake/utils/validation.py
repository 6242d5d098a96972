#!/usr/bin/env python3
"""
🛡️ Input Validation Module for SleepWake
Validates settings submitted from the UI before they are saved:
- Time-of-day values (HH:MM or ISO date-time)
- Volume levels (0-100)
- Ramp step counts and durations
- Playlist names
- Player URL and request timeout
- IANA timezone
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Union

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.time_of_day import InvalidTimeFormat, parse_time_of_day


@dataclass
class ValidationResult:
    """Result of input validation with value and error details."""
    is_valid: bool
    value: Any = None
    error: str = ""
    field_name: str = ""


class InputValidator:
    """Centralized input validation for all SleepWake settings."""

    MIN_VOLUME = 0
    MAX_VOLUME = 100
    MIN_STEPS = 1
    MAX_STEPS = 100
    MAX_MINUTES = 600
    MAX_PLAYLIST_LENGTH = 200
    MAX_TIMEOUT_SECONDS = 120

    PLAYLIST_PATTERN = re.compile(r'^[^\x00-\x1F]*$', re.UNICODE)
    URL_PATTERN = re.compile(r'^https?://[^\s/]+(:\d+)?(/\S*)?$')

    @classmethod
    def validate_volume(cls, value: Union[str, int, None], field_name: str = "volume") -> ValidationResult:
        """Validate volume input (0-100)."""
        if value is None or value == "":
            return ValidationResult(False, None, f"{field_name} is required", field_name)
        try:
            volume = int(value)
        except (ValueError, TypeError):
            return ValidationResult(
                False, None,
                f"{field_name} must be a valid number between {cls.MIN_VOLUME} and {cls.MAX_VOLUME}",
                field_name
            )
        if volume < cls.MIN_VOLUME or volume > cls.MAX_VOLUME:
            return ValidationResult(
                False, None,
                f"{field_name} must be between {cls.MIN_VOLUME} and {cls.MAX_VOLUME}",
                field_name
            )
        return ValidationResult(True, volume, "", field_name)

    @classmethod
    def validate_time(cls, value: Union[str, None], field_name: str = "time", required: bool = True) -> ValidationResult:
        """Validate a time-of-day: ``HH:MM`` (24-hour) or an ISO date-time.

        Optional fields accept an empty value, stored as None.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                return ValidationResult(False, None, f"{field_name} is required", field_name)
            return ValidationResult(True, None, "", field_name)

        if not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} must be a string", field_name)

        value = value.strip()
        try:
            parse_time_of_day(value)
        except InvalidTimeFormat:
            return ValidationResult(
                False, None,
                f"{field_name} must be in HH:MM format (24-hour) or an ISO date-time",
                field_name
            )
        return ValidationResult(True, value, "", field_name)

    @classmethod
    def validate_steps(cls, value: Union[str, int, None], field_name: str = "steps") -> ValidationResult:
        if value is None or value == "":
            return ValidationResult(False, None, f"{field_name} is required", field_name)
        try:
            steps = int(value)
        except (ValueError, TypeError):
            return ValidationResult(False, None, f"{field_name} must be a whole number", field_name)
        if steps < cls.MIN_STEPS or steps > cls.MAX_STEPS:
            return ValidationResult(
                False, None,
                f"{field_name} must be between {cls.MIN_STEPS} and {cls.MAX_STEPS}",
                field_name
            )
        return ValidationResult(True, steps, "", field_name)

    @classmethod
    def validate_minutes(cls, value: Union[str, int, float, None], field_name: str = "minutes") -> ValidationResult:
        """Validate a ramp duration in minutes (fractions allowed)."""
        if value is None or value == "":
            return ValidationResult(False, None, f"{field_name} is required", field_name)
        try:
            minutes = float(value)
        except (ValueError, TypeError):
            return ValidationResult(False, None, f"{field_name} must be a number of minutes", field_name)
        if minutes <= 0 or minutes > cls.MAX_MINUTES:
            return ValidationResult(
                False, None,
                f"{field_name} must be greater than 0 and at most {cls.MAX_MINUTES} minutes",
                field_name
            )
        return ValidationResult(True, minutes, "", field_name)

    @classmethod
    def validate_playlist(cls, value: Union[str, None], field_name: str = "playlist") -> ValidationResult:
        """Validate a playlist name; empty means "no playlist"."""
        if value is None:
            return ValidationResult(True, "", "", field_name)
        if not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} must be a string", field_name)
        value = value.strip()
        if len(value) > cls.MAX_PLAYLIST_LENGTH:
            return ValidationResult(
                False, None,
                f"{field_name} is too long (max {cls.MAX_PLAYLIST_LENGTH} characters)",
                field_name
            )
        if not cls.PLAYLIST_PATTERN.match(value):
            return ValidationResult(False, None, f"{field_name} contains invalid characters", field_name)
        return ValidationResult(True, value, "", field_name)

    @classmethod
    def validate_url(cls, value: Union[str, None], field_name: str = "player_url") -> ValidationResult:
        if not value or not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} is required", field_name)
        value = value.strip().rstrip("/")
        if not cls.URL_PATTERN.match(value):
            return ValidationResult(False, None, f"{field_name} must be an http(s) URL", field_name)
        return ValidationResult(True, value, "", field_name)

    @classmethod
    def validate_timeout(cls, value: Union[str, int, float, None], field_name: str = "player_timeout") -> ValidationResult:
        """Validate a per-request player timeout in seconds."""
        if value is None or value == "":
            return ValidationResult(False, None, f"{field_name} is required", field_name)
        try:
            seconds = float(value)
        except (ValueError, TypeError):
            return ValidationResult(False, None, f"{field_name} must be a number of seconds", field_name)
        if seconds <= 0 or seconds > cls.MAX_TIMEOUT_SECONDS:
            return ValidationResult(
                False, None,
                f"{field_name} must be greater than 0 and at most {cls.MAX_TIMEOUT_SECONDS} seconds",
                field_name
            )
        return ValidationResult(True, seconds, "", field_name)

    @classmethod
    def validate_timezone(cls, value: Union[str, None], field_name: str = "timezone") -> ValidationResult:
        """Validate an IANA timezone name; empty means host local time."""
        if value is None:
            return ValidationResult(True, "", "", field_name)
        if not isinstance(value, str):
            return ValidationResult(False, None, f"{field_name} must be a string", field_name)
        value = value.strip()
        if not value:
            return ValidationResult(True, "", "", field_name)
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            return ValidationResult(
                False, None,
                f"{field_name} must be a valid IANA timezone (e.g., 'Europe/Zagreb')",
                field_name
            )
        return ValidationResult(True, value, "", field_name)

    @classmethod
    def validate_boolean(cls, value: Union[str, bool, None], field_name: str = "enabled") -> ValidationResult:
        """Validate boolean input (form checkboxes send 'on')."""
        if value is None:
            return ValidationResult(True, False, "", field_name)

        if isinstance(value, bool):
            return ValidationResult(True, value, "", field_name)

        if isinstance(value, str):
            lower_value = value.lower().strip()
            if lower_value in ('true', '1', 'on', 'yes', 'enabled'):
                return ValidationResult(True, True, "", field_name)
            if lower_value in ('false', '0', 'off', 'no', 'disabled', ''):
                return ValidationResult(True, False, "", field_name)
            return ValidationResult(False, None, f"{field_name} must be true or false", field_name)

        return ValidationResult(True, bool(value), "", field_name)


class ValidationError(Exception):
    """Custom exception for validation errors."""

    def __init__(self, field_name: str, message: str):
        self.field_name = field_name
        self.message = message
        super().__init__(f"{field_name}: {message}")


_REQUIRED_TIME_FIELDS = ("sleep_time", "wake_time")
_OPTIONAL_TIME_FIELDS = ("sleep_time_saturday", "sleep_time_sunday", "wake_time_saturday", "wake_time_sunday")
_STEP_FIELDS = ("volume_decrease", "volume_increase")
_MINUTE_FIELDS = ("minutes_fade", "minutes_ramp")
_BOOLEAN_FIELDS = ("sleep_enabled", "wake_enabled")


def _raise_if_invalid(result: ValidationResult) -> Any:
    if not result.is_valid:
        raise ValidationError(result.field_name, result.error)
    return result.value


def validate_settings(form_data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a (partial) settings update.

    Only keys present in ``form_data`` are validated and returned; unknown
    keys are ignored.

    Raises:
        ValidationError: on the first invalid field
    """
    validated: Dict[str, Any] = {}

    for field in _REQUIRED_TIME_FIELDS:
        if field in form_data:
            validated[field] = _raise_if_invalid(InputValidator.validate_time(form_data[field], field))
    for field in _OPTIONAL_TIME_FIELDS:
        if field in form_data:
            validated[field] = _raise_if_invalid(
                InputValidator.validate_time(form_data[field], field, required=False)
            )
    for field in _STEP_FIELDS:
        if field in form_data:
            validated[field] = _raise_if_invalid(InputValidator.validate_steps(form_data[field], field))
    for field in _MINUTE_FIELDS:
        if field in form_data:
            validated[field] = _raise_if_invalid(InputValidator.validate_minutes(form_data[field], field))
    for field in _BOOLEAN_FIELDS:
        if field in form_data:
            validated[field] = _raise_if_invalid(InputValidator.validate_boolean(form_data[field], field))

    if "start_volume" in form_data:
        validated["start_volume"] = _raise_if_invalid(
            InputValidator.validate_volume(form_data["start_volume"], "start_volume")
        )
    if "playlist" in form_data:
        validated["playlist"] = _raise_if_invalid(InputValidator.validate_playlist(form_data["playlist"]))
    if "player_url" in form_data:
        validated["player_url"] = _raise_if_invalid(InputValidator.validate_url(form_data["player_url"]))
    if "player_timeout" in form_data:
        validated["player_timeout"] = _raise_if_invalid(InputValidator.validate_timeout(form_data["player_timeout"]))
    if "timezone" in form_data:
        validated["timezone"] = _raise_if_invalid(InputValidator.validate_timezone(form_data["timezone"]))

    return validated
