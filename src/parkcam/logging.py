"""Structured JSON logging for the parkcam agent.

Provides audit-friendly logging with contextual fields for poll, capture,
upload and notify events. Secrets (client secret, tokens) are never logged.

Usage:
    from parkcam.logging import setup_logging, get_logger

    setup_logging("INFO", location_id="300ThirdStreet")
    log = get_logger("parkcam.loop")
    log.info("cycle_started", extra={"cycle": 3})
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from functools import lru_cache
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pythonjsonlogger import jsonlogger

from parkcam import __version__

# Location identifier added to every record once set
_location_id: str | None = None


class ParkcamJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds agent context to all log records."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add standard fields to every log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        log_record["agent_version"] = __version__
        if _location_id:
            log_record["location_id"] = _location_id

        if "message" not in log_record and record.getMessage():
            log_record["message"] = record.getMessage()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time as ISO 8601."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    location_id: str | None = None,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure root logger with JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating file handler
        location_id: Camera location added to every record
        max_bytes: Max size per log file for rotation
        backup_count: Number of backup files to keep
    """
    global _location_id
    if location_id:
        _location_id = location_id

    formatter = ParkcamJsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # JSON to stderr so stdout stays free for CLI output
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


@lru_cache(maxsize=32)
def get_logger(name: str) -> logging.Logger:
    """Get a named logger.

    Args:
        name: Logger name (e.g., 'parkcam.loop', 'parkcam.storage')

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def loop_logger() -> logging.Logger:
    """Get logger for poll loop events."""
    return get_logger("parkcam.loop")


def coordinator_logger() -> logging.Logger:
    """Get logger for coordinator traffic."""
    return get_logger("parkcam.coordinator")


def storage_logger() -> logging.Logger:
    """Get logger for Cloud Storage calls."""
    return get_logger("parkcam.storage")


def capture_logger() -> logging.Logger:
    """Get logger for camera events."""
    return get_logger("parkcam.capture")


def auth_logger() -> logging.Logger:
    """Get logger for credential events."""
    return get_logger("parkcam.auth")


# --- Audit Event Functions ---


def log_poll_result(logger: logging.Logger, cycle: int, requested: bool) -> None:
    """Log the coordinator's answer for one cycle."""
    logger.info(
        "Poll result received",
        extra={"event": "poll_result", "cycle": cycle, "new_pic_requested": requested},
    )


def log_capture_taken(
    logger: logging.Logger,
    path: Path,
    file_size: int,
    test_mode: bool,
) -> None:
    """Log a successful capture.

    Args:
        logger: Logger instance
        path: Local image path
        file_size: Size of the image in bytes
        test_mode: True when the camera command was skipped
    """
    logger.info(
        "Capture taken",
        extra={
            "event": "capture_taken",
            "path": str(path),
            "file_size": file_size,
            "test_mode": test_mode,
        },
    )


def log_upload_success(
    logger: logging.Logger,
    bucket: str,
    object_name: str,
    media_link: str,
) -> None:
    """Log an object created with media."""
    logger.info(
        "Upload successful",
        extra={
            "event": "upload_success",
            "bucket": bucket,
            "object_name": object_name,
            "media_link": media_link,
        },
    )


def log_visibility_set(
    logger: logging.Logger,
    bucket: str,
    object_name: str,
    attempts: int,
) -> None:
    """Log a successful public-read ACL insert."""
    logger.info(
        "Object made public",
        extra={
            "event": "visibility_set",
            "bucket": bucket,
            "object_name": object_name,
            "attempts": attempts,
        },
    )


def log_notify_sent(logger: logging.Logger, url: str, image_url: str, response_body: str) -> None:
    """Log a delivered coordinator update and the body it answered with."""
    logger.info(
        "Coordinator updated",
        extra={
            "event": "notify_sent",
            "url": url,
            "image_url": image_url,
            "response_body": response_body,
        },
    )


def log_notify_failed(logger: logging.Logger, url: str, error: str) -> None:
    """Log a coordinator update that could not be delivered."""
    logger.warning(
        "Coordinator update failed",
        extra={"event": "notify_failed", "url": url, "error": error},
    )


def log_state_change(
    logger: logging.Logger,
    old_state: str,
    new_state: str,
    cycle: int | None = None,
) -> None:
    """Log a poll loop state transition.

    Args:
        logger: Logger instance
        old_state: Previous state
        new_state: New state
        cycle: Loop iteration the transition belongs to
    """
    extra = {
        "event": "state_change",
        "old_state": old_state,
        "new_state": new_state,
    }
    if cycle is not None:
        extra["cycle"] = cycle
    logger.debug("State changed", extra=extra)


def log_fatal_error(logger: logging.Logger, error: BaseException) -> None:
    """Log the error that is about to terminate the process."""
    logger.critical(
        "Dying with error",
        extra={
            "event": "fatal_error",
            "error_type": type(error).__name__,
            "error": str(error),
        },
    )
