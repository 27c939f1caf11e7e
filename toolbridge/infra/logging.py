"""Structured logging configuration."""

import logging
import sys
from pythonjsonlogger import jsonlogger
from toolbridge.infra.config import config

NOISY_LOGGERS = {
    "uvicorn": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "websockets": logging.WARNING,
    "openai": logging.WARNING,
}


def setup_logging(level=None):
    """
    Attach a JSON handler to the "toolbridge" logger.

    Every module logs through logging.getLogger(__name__), so one handler on
    the package logger covers the catalog, the provider connections and the
    HTTP surface. Structured context passed via extra= becomes JSON keys.
    """
    logger = logging.getLogger("toolbridge")
    logger.setLevel(level or (logging.DEBUG if config.DEBUG else logging.INFO))

    # Remove existing handlers
    logger.handlers = []

    formatter = jsonlogger.JsonFormatter(
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        rename_fields={"levelname": "level", "name": "logger"},
        static_fields={"service": "toolbridge", "env": config.APP_ENV},
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    for name, noisy_level in NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(noisy_level)

    return logger


# Initialize logging
app_logger = setup_logging()
