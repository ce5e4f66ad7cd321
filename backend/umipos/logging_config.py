# Overview: Process-wide logging setup for the API and background workers.

from __future__ import annotations

import logging
import sys

from flask import Flask

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(app: Flask) -> None:
    """
    Route the package loggers and the Flask app logger to stdout.

    Safe to call once per created app: handlers are replaced, not stacked,
    so the test suite can build several apps in one process.
    """
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))

    package_logger = logging.getLogger("umipos")
    package_logger.setLevel(level)
    package_logger.handlers = [handler]

    app.logger.setLevel(level)
