"""
Telemetry service for structured logging.

This module provides structured JSON logging for the session bridge,
audit events for session lifecycle changes, and lightweight metrics
recorded as debug log entries.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, Dict


class JSONFormatter(logging.Formatter):
    """
    Log formatter that outputs one JSON object per record.

    Each log entry contains:
    - timestamp: ISO 8601 formatted UTC timestamp
    - level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - message: The log message
    - logger: Name of the logger that produced the entry

    Additional fields can be included via the 'extra_data' attribute
    on the log record.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format a log record as a JSON string.

        Args:
            record: The log record to format

        Returns:
            JSON-formatted string containing the log entry
        """
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.module:
            log_data["module"] = record.module
        if record.funcName and record.funcName != "<module>":
            log_data["function"] = record.funcName
        if record.lineno:
            log_data["line"] = record.lineno

        if hasattr(record, "extra_data") and record.extra_data:
            log_data.update(record.extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_trace"] = record.stack_info

        return json.dumps(log_data, default=str)


class TelemetryService:
    """
    Centralized logging and metrics for the session bridge.

    Args:
        settings: Application settings; only log_level is read
        configure_root: Replace the root logger's handlers with a JSON
            stdout handler
    """

    def __init__(self, settings: Optional[Any] = None, configure_root: bool = True):
        self.settings = settings
        self._logger = logging.getLogger("telemetry")
        if configure_root:
            self._setup_logging()

    def _setup_logging(self) -> None:
        """Configure the root logger with a JSON stdout handler."""
        log_level_str = "INFO"
        if self.settings and hasattr(self.settings, "log_level"):
            log_level_str = self.settings.log_level

        log_level = getattr(logging, log_level_str.upper(), logging.INFO)

        root_logger = logging.getLogger()
        root_logger.setLevel(log_level)

        # Remove existing handlers to avoid duplicate logs
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(log_level)
        stdout_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(stdout_handler)

        self._logger.info("Telemetry service initialized", extra={
            "extra_data": {"log_level": log_level_str}
        })

    def get_logger(self, name: str) -> logging.Logger:
        return logging.getLogger(name)

    def log_audit_event(
        self,
        event_type: str,
        resource_type: str,
        resource_id: Optional[str],
        action: str,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log an audit event for a security-relevant session change.

        Args:
            event_type: Type of audit event (e.g., "session")
            resource_type: Type of resource being acted upon
            resource_id: Non-secret identifier of the resource
            action: Action being performed (e.g., "create", "regenerate", "destroy")
            details: Additional details about the event
        """
        audit_data = {
            "audit_event": True,
            "event_type": event_type,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "action": action,
        }

        if details:
            audit_data["details"] = details

        self._logger.info(
            f"Audit: {event_type} - {action} on {resource_type}",
            extra={"extra_data": audit_data}
        )

    def record_metric(
        self,
        name: str,
        value: float,
        tags: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Record a custom metric as a debug log entry.

        Args:
            name: Name of the metric
            value: Metric value
            tags: Optional tags for metric dimensions
        """
        metric_data = {
            "metric_name": name,
            "metric_value": value,
        }

        if tags:
            metric_data["tags"] = tags

        self._logger.debug(
            f"Metric: {name}={value}",
            extra={"extra_data": metric_data}
        )


# Global telemetry service instance
_telemetry_service: Optional[TelemetryService] = None


def get_telemetry_service() -> Optional[TelemetryService]:
    """
    Get the global telemetry service instance.

    Returns:
        The telemetry service instance, or None if not initialized
    """
    return _telemetry_service


def initialize_telemetry(settings: Optional[Any] = None, configure_root: bool = True) -> TelemetryService:
    """
    Initialize the global telemetry service.

    Args:
        settings: Application settings for configuration
        configure_root: Install the JSON handler on the root logger

    Returns:
        The initialized telemetry service
    """
    global _telemetry_service
    _telemetry_service = TelemetryService(settings, configure_root=configure_root)
    return _telemetry_service


def reset_telemetry() -> None:
    """Drop the global telemetry service. Used by tests."""
    global _telemetry_service
    _telemetry_service = None
