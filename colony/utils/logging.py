"""Logging setup for the colony CLI and API server."""

from __future__ import annotations

import logging
import sys
from typing import Iterable

from colony.utils.event_log import SimEvent

# Library loggers that flood INFO with per-request lines while the API polls.
NOISY_LOGGERS = ("uvicorn.access", "httpx", "watchfiles")


class ColonyFormatter(logging.Formatter):
    """Drops the ``colony.`` package prefix so the module column stays narrow."""

    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.removeprefix("colony.")
        return super().format(record)


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger for colony output.

    Below DEBUG the request-level chatter from the HTTP stack is raised
    to WARNING so tick and task messages stay readable.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(ColonyFormatter(
        fmt="%(asctime)s [%(levelname)-5s] %(shortname)-22s | %(message)s",
        datefmt="%H:%M:%S",
    ))

    root = logging.getLogger()
    root.setLevel(numeric_level)
    root.handlers.clear()
    root.addHandler(handler)

    quiet = logging.WARNING if numeric_level > logging.DEBUG else logging.NOTSET
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)


def log_events(log: logging.Logger, events: Iterable[SimEvent]) -> None:
    """Echo engine events at DEBUG, one line each."""
    if not log.isEnabledFor(logging.DEBUG):
        return
    for event in events:
        log.debug("[tick %d] %-16s %s", event.tick, event.category, event.message)
