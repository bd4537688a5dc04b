"""Logging setup: one stdout handler, every line tagged with the request id."""

from __future__ import annotations

import logging
import sys

from flask import g, has_request_context

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach g.request_id (or "-") to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = "-"
        if has_request_context():
            request_id = getattr(g, "request_id", None) or "-"
        record.request_id = request_id
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger. Safe to call more than once."""
    normalized_level = getattr(logging, str(level).upper(), logging.INFO)
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        if getattr(existing, "_auth_api_handler", False):
            root_logger.removeHandler(existing)
    handler._auth_api_handler = True
    root_logger.setLevel(normalized_level)
    root_logger.addHandler(handler)
