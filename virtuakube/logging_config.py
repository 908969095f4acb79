"""Logging setup for processes that host universes.

Two formats, picked by ``settings.log_format``:

- ``text``: human readable, one line per record.
- ``json``: one JSON object per record for log shippers.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from virtuakube.config import settings

# Attributes every LogRecord has; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class VirtuakubeJSONFormatter(logging.Formatter):
    """Format records as single-line JSON."""

    def __init__(self, universe_id: str | None = None):
        super().__init__()
        self.universe_id = universe_id

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": "virtuakube",
        }
        if self.universe_id:
            payload["universe"] = self.universe_id

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class VirtuakubeTextFormatter(logging.Formatter):
    """Human readable formatter, prefixed with a short universe id."""

    def __init__(self, universe_id: str | None = None):
        super().__init__(
            fmt="%(asctime)s %(levelname)-7s [%(universe)s] %(name)s: %(message)s"
        )
        self.universe_id = universe_id

    def format(self, record: logging.LogRecord) -> str:
        record.universe = (self.universe_id or "-")[:16]
        return super().format(record)


def setup_logging(universe_id: str | None = None) -> None:
    """Install a stderr handler on the root logger.

    Replaces handlers installed by a previous call so repeated setup does
    not duplicate output.
    """
    if settings.log_format == "json":
        formatter: logging.Formatter = VirtuakubeJSONFormatter(universe_id)
    else:
        formatter = VirtuakubeTextFormatter(universe_id)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)
    handler._virtuakube = True

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_virtuakube", False):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())
