"""
Progress and diagnostics sinks for dictionary learning runs.

The learner reports objective values, sparsity levels and warnings through a
``ProgressSink``; sinks only observe and never change the course of a run.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, TextIO

from .jsonlog import log

logger = logging.getLogger(__name__)


class LoggingSink:
    """Forward events to a standard library logger (default sink)."""

    def __init__(self, name: Optional[str] = None, level: int = logging.DEBUG):
        self.logger = logging.getLogger(name) if name else logger
        self.level = level

    def record(self, event: str, **fields: Any) -> None:
        if event in ("inactive_atoms", "regression_failure"):
            level = logging.WARNING
        else:
            level = self.level
        if self.logger.isEnabledFor(level):
            details = ", ".join(f"{k}={v}" for k, v in fields.items())
            self.logger.log(level, "%s: %s", event, details)


class JsonLogSink:
    """One JSON record per event, written to ``stream`` (stdout by default)."""

    def __init__(self, stream: Optional[TextIO] = None, skip: tuple = ("newton_iteration",)):
        self.stream = stream
        self.skip = set(skip)

    def record(self, event: str, **fields: Any) -> None:
        if event in self.skip:
            return
        log(event, stream=self.stream, **fields)


class HistorySink:
    """Keep every event's fields in memory, grouped by event name."""

    def __init__(self):
        self.history: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    def record(self, event: str, **fields: Any) -> None:
        self.history[event].append(dict(fields))

    def values(self, event: str, field: str) -> List[Any]:
        """All recorded values of ``field`` for ``event``, in order."""
        return [rec[field] for rec in self.history.get(event, []) if field in rec]

    def clear(self) -> None:
        self.history.clear()
