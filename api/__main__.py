"""
Entrypoint for running the API in development.
In production run create_app() under a WSGI server (gunicorn/uwsgi) instead.
"""
import atexit
import logging
import os
import signal
import sys

from . import create_app
from .extensions import STORAGE

logger = logging.getLogger("api")

# Respect APP_ENV for configuration selection (handled in get_config())
app = create_app()


def _log_uncaught(exc_type, exc, tb):
    # an exception nobody handled: log it and let the process die
    logger.critical("Uncaught exception, shutting down", exc_info=(exc_type, exc, tb))


def _shutdown(*_args):
    logger.info("Shutting down, closing database connections")
    app.extensions[STORAGE].dispose()


def _on_signal(signum, _frame):
    _shutdown()
    sys.exit(0)


sys.excepthook = _log_uncaught
atexit.register(_shutdown)

if __name__ == "__main__":
    signal.signal(signal.SIGTERM, _on_signal)
    signal.signal(signal.SIGINT, _on_signal)
    host = os.getenv("FLASK_RUN_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_RUN_PORT", "8000"))
    debug = bool(os.getenv("FLASK_DEBUG", str(app.config.get("DEBUG", True))).lower() in ("1", "true", "yes"))
    app.run(host=host, port=port, debug=debug)
