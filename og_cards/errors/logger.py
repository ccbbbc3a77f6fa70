"""Structured error logging for fatal generation failures."""

import json
import logging
import logging.handlers
import traceback
import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from og_cards.config import Settings, get_settings
from og_cards.errors.exceptions import (
    CaptureFailure,
    CaptureFailures,
    LaunchFailure,
    OgGenerationError,
    ReadinessTimeout,
    ServerStartFailure,
    TargetUnavailable,
)


class ErrorSeverity(Enum):
    """Error severity levels."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_log_level(self) -> int:
        """Convert severity to Python logging level."""
        mapping = {
            ErrorSeverity.WARNING: logging.WARNING,
            ErrorSeverity.ERROR: logging.ERROR,
            ErrorSeverity.CRITICAL: logging.CRITICAL,
        }
        return mapping[self]

    @classmethod
    def for_exception(cls, exception: BaseException) -> "ErrorSeverity":
        """
        Rate a fatal exception.

        A browser that cannot start, or an error outside the pipeline's own
        taxonomy, is critical. A keep-going run that still wrote some images is
        a warning. Everything else is an error.
        """
        if isinstance(exception, LaunchFailure) or not isinstance(exception, OgGenerationError):
            return cls.CRITICAL
        if isinstance(exception, CaptureFailures) and exception.summary.succeeded > 0:
            return cls.WARNING
        return cls.ERROR


class ErrorCategory(Enum):
    """Error categories for classification."""

    TARGET = "target"
    READINESS = "readiness"
    SERVER_START = "server_start"
    BROWSER = "browser"
    CAPTURE = "capture"
    SYSTEM = "system"

    @classmethod
    def for_exception(cls, exception: BaseException) -> "ErrorCategory":
        """Classify an exception raised by the pipeline."""
        # Subclasses first: ReadinessTimeout and ServerStartFailure are TargetUnavailable
        if isinstance(exception, ReadinessTimeout):
            return cls.READINESS
        if isinstance(exception, ServerStartFailure):
            return cls.SERVER_START
        if isinstance(exception, TargetUnavailable):
            return cls.TARGET
        if isinstance(exception, LaunchFailure):
            return cls.BROWSER
        if isinstance(exception, (CaptureFailure, CaptureFailures)):
            return cls.CAPTURE
        return cls.SYSTEM


class StructuredError(BaseModel):
    """Structured error model for consistent logging."""

    error_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    identifier: str | None = None
    url: str | None = None
    error_code: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    traceback: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "error_id": self.error_id,
            "timestamp": self.timestamp.isoformat(),
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "identifier": self.identifier,
            "url": self.url,
            "error_code": self.error_code,
            "metadata": self.metadata,
            "traceback": self.traceback,
        }


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        if hasattr(record, "structured_error"):
            log_data = record.structured_error
        else:
            log_data = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "message": record.getMessage(),
                "module": record.module,
                "function": record.funcName,
                "line": record.lineno,
            }
        return json.dumps(log_data)


class StructuredLogger:
    """Logger that appends structured errors to a rotating file."""

    def __init__(self, name: str, config: Settings | None = None) -> None:
        """Initialize structured logger."""
        self.name = name
        self.config = config or get_settings()
        self.logger = self._setup_logger()

    def _setup_logger(self) -> logging.Logger:
        """Set up the logger with a rotating file handler."""
        logger = logging.getLogger(f"structured.{self.name}")
        logger.setLevel(getattr(logging, self.config.logging.level.upper()))
        logger.propagate = False

        # Remove existing handlers to avoid duplicates
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

        log_dir = self.config.logging.log_dir
        log_dir.mkdir(exist_ok=True, parents=True)

        handler = logging.handlers.RotatingFileHandler(
            log_dir / f"{self.name}.log",
            maxBytes=self.config.logging.max_bytes,
            backupCount=self.config.logging.backup_count,
        )

        if self.config.logging.format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )

        logger.addHandler(handler)
        return logger

    def log_error(self, error: StructuredError) -> None:
        """Log a structured error."""
        level = error.severity.to_log_level()

        if self.config.logging.format == "json":
            extra = {"structured_error": error.to_dict()}
            self.logger.log(level, error.message, extra=extra)
        else:
            message = (
                f"[{error.severity.value.upper()}] {error.message} | "
                f"Category: {error.category.value}"
            )
            if error.identifier:
                message += f" | Job: {error.identifier}"
            if error.url:
                message += f" | URL: {error.url}"
            if error.error_code:
                message += f" | Code: {error.error_code}"
            if error.metadata:
                message += f" | Metadata: {json.dumps(error.metadata)}"

            self.logger.log(level, message)

    def create_error_from_exception(
        self,
        exception: BaseException,
        metadata: dict[str, Any] | None = None,
    ) -> StructuredError:
        """Create a structured error from an exception, pulling context off known types."""
        details: dict[str, Any] = dict(metadata or {})
        if isinstance(exception, ReadinessTimeout):
            details["elapsed_seconds"] = round(exception.elapsed, 3)
        if isinstance(exception, ServerStartFailure):
            details["exit_code"] = exception.exit_code
        if isinstance(exception, CaptureFailures):
            details["failed"] = [r.identifier for r in exception.summary.results if not r.ok]

        return StructuredError(
            message=str(exception),
            category=ErrorCategory.for_exception(exception),
            severity=ErrorSeverity.for_exception(exception),
            identifier=getattr(exception, "identifier", None),
            url=getattr(exception, "url", None),
            error_code=exception.__class__.__name__,
            metadata=details,
            traceback="".join(traceback.format_exception(exception)),
        )

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            self.logger.removeHandler(handler)
            handler.close()
