#!/usr/bin/env python3
"""
🔊 Playback service client (Volumio REST API)

Four synchronous operations: read volume, set volume, stop, play a playlist.
Every failure is surfaced as a single ``PlayerError`` and never retried here.
"""

import enum
import logging
from typing import Any, Dict, Optional

import requests

from ..constants import DEFAULT_PLAYER_URL, MAX_VOLUME, MIN_VOLUME
from .http import get_http_session

logger = logging.getLogger("sleepwake.player")

STATE_PATH = "/api/v1/getState"
COMMANDS_PATH = "/api/v1/commands/"


class PlayerErrorKind(str, enum.Enum):
    UNREACHABLE = "unreachable"
    BAD_RESPONSE = "bad_response"


class PlayerError(Exception):
    """A playback service call failed."""

    def __init__(self, kind: PlayerErrorKind, message: str):
        self.kind = kind
        self.message = message
        super().__init__(f"{kind.value}: {message}")


def clamp_volume(value: int) -> int:
    return max(MIN_VOLUME, min(MAX_VOLUME, int(value)))


class PlayerClient:
    """Thin client for the local playback service.

    Args:
        base_url: Service root, e.g. ``http://localhost:3000``
        session: Shared ``requests.Session``; the module session when omitted
        timeout: Per-request timeout in seconds, None for the session default
    """

    def __init__(
        self,
        base_url: str = DEFAULT_PLAYER_URL,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._session = session
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = get_http_session()
        return self._session

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PlayerError(PlayerErrorKind.UNREACHABLE, f"{path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise PlayerError(
                PlayerErrorKind.BAD_RESPONSE,
                f"{path} returned HTTP {response.status_code}",
            )
        return response

    def _command(self, cmd: str, **params: Any) -> bool:
        self._get(COMMANDS_PATH, params={"cmd": cmd, **params})
        logger.debug("player.command", extra={"cmd": cmd, "params": params})
        return True

    def get_volume(self) -> int:
        """Return the current volume (0-100).

        Raises:
            PlayerError: transport failure, HTTP error, or a state without a
                usable integer ``volume`` field.
        """
        response = self._get(STATE_PATH)
        try:
            state = response.json()
        except ValueError as exc:
            raise PlayerError(PlayerErrorKind.BAD_RESPONSE, "getState returned invalid JSON") from exc
        if not isinstance(state, dict) or "volume" not in state:
            raise PlayerError(PlayerErrorKind.BAD_RESPONSE, "getState response has no volume field")

        raw = state["volume"]
        if isinstance(raw, bool):
            raise PlayerError(PlayerErrorKind.BAD_RESPONSE, f"volume is not an integer: {raw!r}")
        try:
            volume = int(raw)
        except (TypeError, ValueError) as exc:
            raise PlayerError(PlayerErrorKind.BAD_RESPONSE, f"volume is not an integer: {raw!r}") from exc
        return clamp_volume(volume)

    def set_volume(self, volume: int) -> bool:
        return self._command("volume", volume=clamp_volume(volume))

    def stop(self) -> bool:
        return self._command("stop")

    def play_playlist(self, name: str) -> bool:
        return self._command("playplaylist", name=name)

    def ping(self) -> bool:
        """True when the service answers a state request."""
        try:
            self.get_volume()
            return True
        except PlayerError as exc:
            logger.debug("Player ping failed: %s", exc)
            return False


__all__ = ["PlayerClient", "PlayerError", "PlayerErrorKind", "clamp_volume"]
