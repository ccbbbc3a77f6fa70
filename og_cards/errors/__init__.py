"""Error types and structured error logging."""

from og_cards.errors.exceptions import (
    CaptureFailure,
    CaptureFailures,
    DuplicateIdentifier,
    EmptyFilterFallback,
    LaunchFailure,
    OgGenerationError,
    ReadinessTimeout,
    SelectionWarning,
    ServerStartFailure,
    TargetUnavailable,
)

__all__ = [
    "CaptureFailure",
    "CaptureFailures",
    "DuplicateIdentifier",
    "EmptyFilterFallback",
    "LaunchFailure",
    "OgGenerationError",
    "ReadinessTimeout",
    "SelectionWarning",
    "ServerStartFailure",
    "TargetUnavailable",
]
