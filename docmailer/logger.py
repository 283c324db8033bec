"""
Structured logging for docmailer.

Provides centralized logging with console and file outputs, and counters
for lookups and email deliveries so the service can report its health.
"""

import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks lookup and delivery metrics.
    """

    def __init__(
        self,
        name: str = "docmailer",
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

        self.metrics = {
            "lookups": 0,
            "matches": 0,
            "matches_by_source": {},
            "rejections_by_reason": {},
            "emails_sent": 0,
            "emails_failed": 0,
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"docmailer_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # file gets everything
            file_handler.setFormatter(logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(file_handler)

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

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking

    def record_lookup(self, matched: bool, source: Optional[str] = None, reason: Optional[str] = None):
        """Record the outcome of one document lookup."""
        self.metrics["lookups"] += 1
        if matched:
            self.metrics["matches"] += 1
            if source:
                by_source = self.metrics["matches_by_source"]
                by_source[source] = by_source.get(source, 0) + 1
        elif reason:
            by_reason = self.metrics["rejections_by_reason"]
            by_reason[reason] = by_reason.get(reason, 0) + 1

    def record_email_sent(self):
        self.metrics["emails_sent"] += 1

    def record_email_failure(self, error_type: str):
        self.metrics["emails_failed"] += 1
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return current metrics with derived rates."""
        metrics_copy = dict(self.metrics)
        lookups = metrics_copy["lookups"]
        metrics_copy["match_rate"] = round(metrics_copy["matches"] / lookups, 3) if lookups else 0.0
        attempts = metrics_copy["emails_sent"] + metrics_copy["emails_failed"]
        metrics_copy["delivery_rate"] = round(metrics_copy["emails_sent"] / attempts, 3) if attempts else 0.0
        return metrics_copy

    def log_metrics_summary(self):
        metrics = self.get_metrics()

        self.info("=== Dispatch Session Metrics ===")
        self.info(
            f"Lookups: {metrics['matches']}/{metrics['lookups']} matched "
            f"({metrics['match_rate'] * 100:.1f}%)"
        )
        self.info(
            f"Emails: {metrics['emails_sent']} sent, {metrics['emails_failed']} failed "
            f"({metrics['delivery_rate'] * 100:.1f}% delivered)"
        )

        if metrics["rejections_by_reason"]:
            self.info("Rejections:")
            for reason, count in metrics["rejections_by_reason"].items():
                self.info(f"  {reason}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "docmailer",
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
