"""
Structured logging for companyresolver.

One process-wide logger writes human-readable lines to stderr and, when a log
directory is configured, a daily file. Keyword context is appended as JSON.
The logger also keeps fetch and resolution counters, which the CLI prints as a
summary so failing search mirrors are easy to spot.
"""

import copy
import json
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _empty_metrics() -> Dict:
    return {
        "search_queries": 0,
        "fetches_attempted": 0,
        "fetches_successful": 0,
        "fetches_failed": 0,
        "blocked_pages": 0,
        "errors_by_type": {},
        "source_success_rate": {},
        "resolutions_by_confidence": {},
    }


class StructuredLogger:
    """
    Wraps a stdlib logger with JSON context and fetch/resolution counters.

    Counter updates take a lock: search queries are fetched on worker threads.
    """

    def __init__(
        self,
        name: str = "companyresolver",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Args:
            name: Logger name
            level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for the daily log file (logs/ when omitted)
            enable_file: Write a log file (always at DEBUG)
            enable_console: Write to stderr
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(_level(level))
        self.logger.handlers.clear()
        self.logger.propagate = False

        self._lock = threading.Lock()
        self.metrics = _empty_metrics()

        if enable_console:
            self._attach(logging.StreamHandler(sys.stderr), _level(level), CONSOLE_FORMAT)

        if enable_file:
            log_dir = Path(log_dir) if log_dir is not None else Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)
            log_file = log_dir / f"companyresolver_{datetime.now():%Y%m%d}.log"
            self._attach(logging.FileHandler(log_file, encoding="utf-8"), logging.DEBUG, FILE_FORMAT)

    def _attach(self, handler: logging.Handler, level: int, fmt: str) -> None:
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
        self.logger.addHandler(handler)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        self._log(logging.CRITICAL, message, kwargs)

    # Counters

    def _count(self, bucket: str, key: str) -> None:
        table = self.metrics[bucket]
        table[key] = table.get(key, 0) + 1

    def _source(self, source: str) -> Dict[str, int]:
        return self.metrics["source_success_rate"].setdefault(source, {"attempts": 0, "successes": 0})

    def record_search_query(self):
        with self._lock:
            self.metrics["search_queries"] += 1

    def record_fetch_attempt(self, source: str):
        """Count a request against a mirror or page host."""
        with self._lock:
            self.metrics["fetches_attempted"] += 1
            self._source(source)["attempts"] += 1

    def record_fetch_success(self, source: str):
        with self._lock:
            self.metrics["fetches_successful"] += 1
            self._source(source)["successes"] += 1

    def record_fetch_failure(self, source: str, error_type: str):
        with self._lock:
            self.metrics["fetches_failed"] += 1
            self._count("errors_by_type", error_type)

    def record_blocked(self, source: str):
        """Count a page discarded as a bot wall."""
        with self._lock:
            self.metrics["blocked_pages"] += 1
        self.debug("Discarded blocked page", source=source)

    def record_resolution(self, confidence: str):
        with self._lock:
            self._count("resolutions_by_confidence", confidence)

    def get_metrics(self) -> dict:
        """Snapshot of the counters, with a success_rate per source."""
        with self._lock:
            snapshot = copy.deepcopy(self.metrics)
        for stats in snapshot["source_success_rate"].values():
            if stats["attempts"]:
                stats["success_rate"] = round(stats["successes"] / stats["attempts"], 3)
        return snapshot

    def log_metrics_summary(self):
        m = self.get_metrics()
        attempts = m["fetches_attempted"]
        successes = m["fetches_successful"]
        pct = round(successes / attempts * 100, 1) if attempts else 0

        self.info("=== Resolution Session Metrics ===")
        self.info(f"Search queries: {m['search_queries']}")
        self.info(f"Fetches: {successes}/{attempts} ({pct}% success)")
        self.info(f"Blocked pages: {m['blocked_pages']}")

        for source, stats in sorted(m["source_success_rate"].items()):
            self.info(
                f"  source {source}: {stats['successes']}/{stats['attempts']} "
                f"({stats.get('success_rate', 0) * 100:.1f}%)"
            )
        for error_type, count in sorted(m["errors_by_type"].items()):
            self.info(f"  {error_type}: {count}")
        if m["resolutions_by_confidence"]:
            self.info(f"Resolutions: {json.dumps(m['resolutions_by_confidence'], sort_keys=True)}")


_global_logger: Optional[StructuredLogger] = None
_global_lock = threading.Lock()


def get_logger(name: str = "companyresolver", level: str = "INFO", **kwargs) -> StructuredLogger:
    """
    Return the process-wide logger, creating it on first use.

    Arguments only apply to that first call. File output stays off unless a
    log_dir is passed, so library callers never get a logs/ directory.
    """
    global _global_logger

    if _global_logger is None:
        with _global_lock:
            if _global_logger is None:
                kwargs.setdefault("enable_file", kwargs.get("log_dir") is not None)
                _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Drop the process-wide logger; the next get_logger() builds a new one."""
    global _global_logger
    with _global_lock:
        _global_logger = None
