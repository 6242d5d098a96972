"""
SleepWake Main Application
Flask application factory serving the settings and status API
"""

import atexit
import logging
import os
from typing import Optional

from flask import Flask
from flask_compress import Compress

from .config import config_manager, load_config
from .core.engine import SleepWakeEngine, get_engine, set_engine, stop_engine
from .routes import health_bp, settings_bp, status_bp
from .routes.errors import register_error_handlers
from .services.player_service import PlayerService
from .services.schedule_service import ScheduleService
from .services.service_manager import ServiceManager, set_service_manager
from .utils.logger import setup_logger, setup_logging
from .version import get_app_info

logger = logging.getLogger("sleepwake.app")

_atexit_registered = False


def _configure_compression(app: Flask) -> None:
    app.config.setdefault('COMPRESS_REGISTER', True)
    app.config.setdefault('COMPRESS_ALGORITHM', os.getenv('SLEEPWAKE_COMPRESS_ALGO', 'gzip'))
    app.config.setdefault('COMPRESS_MIMETYPES', ('application/json',))
    try:
        app.config['COMPRESS_LEVEL'] = max(1, min(9, int(os.getenv('SLEEPWAKE_COMPRESS_LEVEL', '6'))))
    except ValueError:
        app.config['COMPRESS_LEVEL'] = 6
    try:
        app.config['COMPRESS_MIN_SIZE'] = max(256, int(os.getenv('SLEEPWAKE_COMPRESS_MIN_BYTES', '1024')))
    except ValueError:
        app.config['COMPRESS_MIN_SIZE'] = 1024
    Compress().init_app(app)


def create_app(*, start_engine: bool = True, engine: Optional[SleepWakeEngine] = None) -> Flask:
    """Return a freshly constructed Flask application.

    Args:
        start_engine: Arm the timers now (disable in tests or for a read-only API)
        engine: Engine to use instead of the process-wide default
    """
    global _atexit_registered

    setup_logging()
    setup_logger("sleepwake")

    app = Flask(__name__)
    app.config['JSON_SORT_KEYS'] = False
    _configure_compression(app)

    if engine is not None:
        set_engine(engine)
    engine = get_engine()

    manager = ServiceManager(schedule=ScheduleService(engine=engine), player=PlayerService())
    set_service_manager(manager)
    app.extensions['sleepwake.engine'] = engine
    app.extensions['sleepwake.services'] = manager

    app.register_blueprint(settings_bp)
    app.register_blueprint(status_bp)
    app.register_blueprint(health_bp)
    register_error_handlers(app)

    if start_engine:
        engine.start()
        if not _atexit_registered:
            atexit.register(stop_engine)
            _atexit_registered = True

    config = load_config()
    logger.info(f"🎵 {get_app_info()} ready (environment={config.get('environment')}, "
                f"config_dir={config_manager.config_dir})")
    return app
