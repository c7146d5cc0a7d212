"""
Structured logging system for sicsync.

Provides centralized logging with console and file outputs, plus run
metrics (lookups, updates, rejected codes, deactivations) that are
reported when an enrichment run is summarized.
"""

import json
import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring enrichment runs.
    """

    def __init__(
        self,
        name: str = "sicsync",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()
        self._console_handler: Optional[logging.Handler] = None

        # Counters are bumped from pipeline worker threads
        self._lock = threading.Lock()
        self.metrics = self._empty_metrics()

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)
            self._console_handler = console_handler

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"sicsync_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    @staticmethod
    def _empty_metrics() -> dict:
        return {
            "lookups": 0,
            "lookup_failures": 0,
            "records_updated": 0,
            "records_untouched": 0,
            "codes_rejected": 0,
            "deactivated": 0,
            "errors_by_type": {},
        }

    def set_level(self, level: str):
        """Change the log level after the global instance was created."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        if self._console_handler is not None:
            self._console_handler.setLevel(numeric)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        """Internal logging method with context."""
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_lookup(self):
        """Increment registry lookup counter."""
        with self._lock:
            self.metrics["lookups"] += 1

    def record_lookup_failure(self, error_type: str):
        """Record a lookup that ended in a TransportFailure."""
        with self._lock:
            self.metrics["lookup_failures"] += 1
        self.record_error(error_type)

    def record_update(self):
        with self._lock:
            self.metrics["records_updated"] += 1

    def record_untouched(self):
        with self._lock:
            self.metrics["records_untouched"] += 1

    def record_codes_rejected(self, count: int):
        with self._lock:
            self.metrics["codes_rejected"] += count

    def record_deactivation(self):
        with self._lock:
            self.metrics["deactivated"] += 1

    def record_error(self, error_type: str):
        """Count an error by its kind."""
        with self._lock:
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a snapshot of current metrics."""
        with self._lock:
            metrics_copy = dict(self.metrics)
            metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])

        lookups = metrics_copy["lookups"]
        if lookups > 0:
            metrics_copy["lookup_success_rate"] = round(
                (lookups - metrics_copy["lookup_failures"]) / lookups, 3
            )
        return metrics_copy

    def reset_metrics(self):
        with self._lock:
            self.metrics = self._empty_metrics()

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Enrichment Run Metrics ===")
        self.info(f"Lookups: {metrics['lookups']} ({metrics['lookup_failures']} failed)")
        self.info(
            f"Records: {metrics['records_updated']} updated, "
            f"{metrics['records_untouched']} untouched"
        )
        self.info(f"Rejected SIC codes: {metrics['codes_rejected']}")
        self.info(f"Deactivated: {metrics['deactivated']}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "sicsync",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
