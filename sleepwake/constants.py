"""Central constants for SleepWake.

Only put small, stable primitives here – avoid runtime/config dependent values.
"""

# Event names owned by the scheduler
SLEEP_EVENT = "sleep"
WAKE_EVENT = "wake"
EVENT_NAMES = (SLEEP_EVENT, WAKE_EVENT)

# Volume bounds accepted by the playback service
MIN_VOLUME = 0
MAX_VOLUME = 100

# Defaults for a fresh install (10 steps x 2 minutes per step)
DEFAULT_SLEEP_TIME = "22:00"
DEFAULT_WAKE_TIME = "07:00"
DEFAULT_START_VOLUME = 20
DEFAULT_RAMP_STEPS = 10
DEFAULT_RAMP_MINUTES = 20
DEFAULT_PLAYER_URL = "http://localhost:3000"
DEFAULT_PLAYER_TIMEOUT_SECONDS = 10.0

# Config keys that affect each event's schedule or ramp shape
SLEEP_CONFIG_KEYS = frozenset((
    "sleep_enabled",
    "sleep_time",
    "sleep_time_saturday",
    "sleep_time_sunday",
    "volume_decrease",
    "minutes_fade",
))
WAKE_CONFIG_KEYS = frozenset((
    "wake_enabled",
    "wake_time",
    "wake_time_saturday",
    "wake_time_sunday",
    "start_volume",
    "playlist",
    "volume_increase",
    "minutes_ramp",
))
PLAYER_CONFIG_KEYS = frozenset(("player_url", "player_timeout"))
