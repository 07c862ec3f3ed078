"""
Root-logger setup for the planner's command line.

Library modules only ever do ``logger = logging.getLogger(__name__)`` and log;
the CLI calls ``configure_logging(config.logging)`` once per invocation, after
the config file is loaded and before a session is built.

Log lines go to stderr, never stdout, so ``plan --json`` can be piped
straight into another tool.  An optional ``log_file`` receives the same lines.

With ``json_format = true`` under ``[logging]`` each line is one object::

    {"ts": "2026-10-19T09:30:00Z", "level": "WARNING",
     "logger": "budget_planner.allocation.allocator",
     "msg": "Allocation total misses target by 200.00 after 1 passes"}

Keys passed through ``extra=`` are added alongside ``msg``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from budget_planner.config import LoggingConfig

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attribute names on a bare record; any other attribute was set via extra=.
_STANDARD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class JsonLineFormatter(logging.Formatter):
    """Render a record as a single JSON object (``ts``/``level``/``logger``/``msg``)."""

    def format(self, record: logging.LogRecord) -> str:
        line: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            line["exc"] = self.formatException(record.exc_info)
        line.update(
            (name, value)
            for name, value in record.__dict__.items()
            if name not in _STANDARD_FIELDS and not name.startswith("_")
        )
        return json.dumps(line, default=str)


def build_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JsonLineFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def configure_logging(config: "LoggingConfig") -> None:
    """Point the root logger at stderr (and ``config.log_file`` if set).

    Replaces any handlers installed earlier, so calling it twice in one
    process (as the CLI tests do) does not double every line.

    Args:
        config: The ``[logging]`` section of ``AppConfig``.
    """
    level = getattr(logging, config.level.upper(), logging.INFO)
    formatter = build_formatter(config.json_format)

    targets: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        targets.append(logging.FileHandler(log_path, encoding="utf-8"))

    for handler in targets:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=targets, force=True)
