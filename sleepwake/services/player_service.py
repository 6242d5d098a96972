"""
🔊 Player Service - Reachability and current volume of the playback service
"""

from typing import Callable, Optional

from . import BaseService, ServiceResult
from ..api.player import PlayerClient, PlayerError
from ..core.engine import build_player
from ..utils.thread_safety import load_config_safe


class PlayerService(BaseService):
    """Service wrapping the player client for status and health reporting."""

    def __init__(self, player_factory: Optional[Callable[[], PlayerClient]] = None):
        super().__init__("player")
        self._player_factory = player_factory or (lambda: build_player(load_config_safe()))

    def get_volume(self) -> ServiceResult:
        player = self._player_factory()
        try:
            volume = player.get_volume()
        except PlayerError as e:
            self.logger.warning("🔇 Player not available: %s", e)
            return self._error_result(
                f"Player not available: {e.message}",
                error_code=f"PLAYER_{e.kind.name}",
                data={"player_url": player.base_url},
            )
        return self._success_result(
            data={"volume": volume, "player_url": player.base_url},
            message="Volume retrieved successfully"
        )

    def health_check(self) -> ServiceResult:
        base = super().health_check()
        if not base.success:
            return base
        player = self._player_factory()
        reachable = player.ping()
        return self._success_result(
            data={
                "status": "healthy" if reachable else "degraded",
                "service": self.name,
                "reachable": reachable,
                "player_url": player.base_url,
            }
        )
