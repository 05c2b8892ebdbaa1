"""Logging setup helpers for sc-archive."""

from __future__ import annotations

import logging

LOGGER_NAME = "sc_archive"

# Third-party loggers that are chatty at DEBUG level.
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(debug: bool = False) -> None:
    level = logging.DEBUG if debug else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    # httpx logs full request URLs, client id included, at INFO.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name or LOGGER_NAME)
