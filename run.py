#!/usr/bin/env python3
"""
SleepWake Runner - Starts the settings API and the sleep/wake engine
"""

import os

from waitress import serve

from sleepwake.app import create_app
from sleepwake.config import load_config
from sleepwake.utils.logger import log_startup, setup_logger


def main() -> None:
    logger = setup_logger("sleepwake")
    log_startup("sleepwake")
    config = load_config()

    default_port = 5000 if config.get("environment") == "production" else 5001
    port = int(os.environ.get("PORT", default_port))
    host = os.environ.get("SLEEPWAKE_HOST", "0.0.0.0")
    debug_mode = bool(config.get("debug", False))

    logger.info(f"🚀 Starting SleepWake on {host}:{port}")
    logger.info(f"🌍 Environment: {config.get('environment', 'unknown')}")
    logger.info(f"🔧 Debug mode: {debug_mode}")

    app = create_app()

    if debug_mode:
        app.run(host=host, port=port, debug=debug_mode, use_reloader=False)
    else:
        threads = int(os.environ.get("SLEEPWAKE_WAITRESS_THREADS", "4"))
        backlog = int(os.environ.get("SLEEPWAKE_WAITRESS_BACKLOG", "64"))
        logger.info(f"🍽️ Using Waitress WSGI server (threads={threads}, backlog={backlog})")
        serve(app, host=host, port=port, threads=threads, backlog=backlog)


if __name__ == "__main__":
    main()
