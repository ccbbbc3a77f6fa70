"""Exception and warning types raised during social card generation."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from og_cards.models.job import CaptureSummary


class OgGenerationError(Exception):
    """Base class for fatal generation errors."""


class TargetUnavailable(OgGenerationError):
    """No template server could be found or started."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class ReadinessTimeout(TargetUnavailable):
    """The template server never answered successfully within the timeout."""

    def __init__(self, url: str, elapsed: float) -> None:
        super().__init__(
            f"Timed out waiting for template server at {url} after {elapsed:.1f}s", url
        )
        self.elapsed = elapsed


class ServerStartFailure(TargetUnavailable):
    """The spawned template server exited before becoming ready."""

    def __init__(self, url: str, exit_code: int | None) -> None:
        super().__init__(
            f"Template server for {url} exited early (code {exit_code})", url
        )
        self.exit_code = exit_code


class LaunchFailure(OgGenerationError):
    """The headless browser could not be started."""


class CaptureFailure(OgGenerationError):
    """Navigation or screenshot failed for a single render job."""

    def __init__(self, identifier: str, url: str, reason: str) -> None:
        super().__init__(f"Failed to capture '{identifier}' from {url}: {reason}")
        self.identifier = identifier
        self.url = url
        self.reason = reason


class CaptureFailures(OgGenerationError):
    """One or more captures failed while running with fail_fast disabled."""

    def __init__(self, summary: "CaptureSummary") -> None:
        failed = ", ".join(r.identifier for r in summary.results if not r.ok)
        super().__init__(
            f"{summary.failed} of {summary.total} capture(s) failed: {failed}"
        )
        self.summary = summary


class SelectionWarning(UserWarning):
    """Non-fatal problem found while selecting render jobs."""


class DuplicateIdentifier(SelectionWarning):
    def __init__(self, identifier: str) -> None:
        super().__init__(f"Skipping duplicate OG slug: {identifier}")
        self.identifier = identifier


class EmptyFilterFallback(SelectionWarning):
    def __init__(self, only: list[str]) -> None:
        super().__init__(
            f"No OG specs matched OG_ONLY filter ({', '.join(only)}). "
            "Falling back to complete set."
        )
        self.only = list(only)
