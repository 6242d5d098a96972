#!/usr/bin/env python3
"""Centralised timezone utilities.

An empty ``timezone`` setting means host local time: ``now_local`` then returns
a naive datetime and the host's own DST rules apply.
"""

from __future__ import annotations

import datetime
import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .thread_safety import load_config_safe

_LOGGER = logging.getLogger("sleepwake.timezone")


def _extract_timezone(config: Dict[str, Any] | None) -> str | None:
    if not config:
        return None
    tz_value = config.get("timezone")
    if isinstance(tz_value, str):
        tz_value = tz_value.strip()
        if tz_value:
            return tz_value
    return None


def _resolve_timezone_name() -> str:
    env_tz = os.getenv("SLEEPWAKE_TIMEZONE")
    if env_tz:
        return env_tz.strip()
    try:
        config = load_config_safe()
    except RuntimeError as exc:
        _LOGGER.debug("Config not initialised for timezone resolution: %s", exc)
        return ""
    return _extract_timezone(config) or ""


@lru_cache(maxsize=1)
def get_timezone_name() -> str:
    """Return the configured timezone name with caching ("" for host local)."""
    return _resolve_timezone_name()


@lru_cache(maxsize=8)
def _zoneinfo_cached(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def get_local_timezone() -> Optional[ZoneInfo]:
    """Return the configured ZoneInfo, or None to use host local time."""
    tz_name = get_timezone_name()
    if not tz_name:
        return None
    try:
        return _zoneinfo_cached(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        _LOGGER.warning("Unknown timezone '%s' - falling back to host local time", tz_name)
        return None


def now_local() -> datetime.datetime:
    """Current time in the configured zone (naive when using host local time)."""
    tz = get_local_timezone()
    if tz is None:
        return datetime.datetime.now()
    return datetime.datetime.now(tz)


def invalidate_timezone_cache() -> None:
    """Clear cached timezone information (called on config change)."""
    get_timezone_name.cache_clear()
