"""Main script to generate social card images for every doc."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from pydantic import BaseModel, Field

from og_cards.browser import BrowserSession
from og_cards.capture import CaptureOrchestrator
from og_cards.config import Settings
from og_cards.errors.exceptions import CaptureFailures, OgGenerationError
from og_cards.errors.logger import StructuredLogger
from og_cards.models.job import CaptureSummary
from og_cards.server.locator import TemplateServerLocator
from og_cards.specs.base import BaseSpecProvider
from og_cards.specs.docs import DocsSpecProvider
from og_cards.specs.selection import select_jobs

logger = logging.getLogger(__name__)

BrowserOpener = Callable[[], Awaitable[BrowserSession]]


class GenerationReport(BaseModel):
    """What a generation run did."""

    identifiers: list[str] = Field(default_factory=list, description="Selected job identifiers")
    warnings: list[str] = Field(default_factory=list, description="Non-fatal selection warnings")
    base_url: str | None = Field(default=None, description="Template server that was used")
    owned_server: bool = Field(default=False, description="Whether the server was started by us")
    summary: CaptureSummary | None = None

    @property
    def success(self) -> bool:
        return self.summary is None or self.summary.failed == 0


async def generate_og_images(
    settings: Settings | None = None,
    provider: BaseSpecProvider | None = None,
    locator: TemplateServerLocator | None = None,
    open_browser: BrowserOpener | None = None,
) -> GenerationReport:
    """
    Render one PNG per selected job.

    The browser session and an owned template server are released on every
    exit path.

    Args:
        settings: Run configuration (defaults to environment-derived settings)
        provider: Source of render jobs (defaults to the docs directory)
        locator: Template server locator (defaults to one built from settings)
        open_browser: Factory for the browser session

    Returns:
        Report of the run

    Raises:
        TargetUnavailable: If no template server could be reached or started
        LaunchFailure: If the browser could not start
        CaptureFailure: On the first capture failure when fail_fast is on
        CaptureFailures: When fail_fast is off and any capture failed
    """
    settings = settings or Settings()
    output_dir = settings.capture.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)

    provider = provider or DocsSpecProvider(settings.docs)
    selection = select_jobs(provider, settings.capture.only)
    report = GenerationReport(
        identifiers=selection.identifiers,
        warnings=[str(warning) for warning in selection.warnings],
    )

    if not selection.jobs:
        logger.warning("No OG specs detected. Nothing to do.")
        return report

    locator = locator or TemplateServerLocator(settings.server, settings.capture.template_route)
    open_browser = open_browser or BrowserSession.open

    try:
        target = await locator.acquire()
    finally:
        await locator.aclose()

    report.base_url = target.base_url
    report.owned_server = target.owned

    try:
        logger.info(f"Using OG template at {target.template_url(settings.capture.template_route)}")
        session = await open_browser()
        try:
            orchestrator = CaptureOrchestrator(session, target, settings.capture)
            report.summary = await orchestrator.run(selection.jobs, output_dir)
        finally:
            await session.close()
    finally:
        await target.close()

    if not report.success:
        raise CaptureFailures(report.summary)

    logger.info("OG generation complete.")
    return report


def record_failure(settings: Settings, error: BaseException) -> None:
    """
    Append a fatal error to the structured error log.

    A log directory that cannot be written is reported and otherwise ignored,
    so the original error still reaches the user.
    """
    try:
        structured = StructuredLogger("og_cards", settings)
    except OSError as e:
        logger.warning(f"Could not write structured error log to {settings.logging.log_dir}: {e}")
        return

    metadata = {
        "output_dir": str(settings.capture.output_dir),
        "only": settings.capture.only,
        "fail_fast": settings.capture.fail_fast,
    }
    try:
        structured.log_error(structured.create_error_from_exception(error, metadata=metadata))
    finally:
        structured.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate social card images for the docs")
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for generated PNG files (default: public/og)"
    )
    parser.add_argument(
        "--only",
        nargs="+",
        help="Only render these identifiers"
    )
    parser.add_argument(
        "--base-url",
        help="Use this template server instead of discovering or starting one"
    )
    parser.add_argument(
        "--docs-dir",
        type=Path,
        help="Directory of .md/.mdx docs"
    )
    parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Capture every image even if some fail"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Build settings once, with command-line flags taking precedence over the environment."""
    settings = Settings()
    if args.output_dir is not None:
        settings.capture.output_dir = args.output_dir
    if args.only:
        settings.capture.only = [slug for value in args.only for slug in value.split(",") if slug]
    if args.base_url:
        settings.server.base_url = args.base_url
    if args.docs_dir is not None:
        settings.docs.docs_dir = args.docs_dir
    if args.keep_going:
        settings.capture.fail_fast = False
    return settings


async def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    settings = settings_from_args(args)

    try:
        report = await generate_og_images(settings)
    except OgGenerationError as e:
        logger.error(f"OG generation failed: {e}")
        record_failure(settings, e)
        print(f"\n❌ OG generation failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected error during OG generation")
        record_failure(settings, e)
        print(f"\n❌ Fatal error: {e}", file=sys.stderr)
        return 1

    if report.summary is None:
        print("\nNo OG images to generate.")
        return 0

    summary = report.summary
    print("\n✅ OG generation completed successfully!")
    print(f"   Images: {summary.succeeded}/{summary.total} written to {settings.capture.output_dir}")
    print(f"   Template server: {report.base_url}{' (temporary)' if report.owned_server else ''}")
    print(f"   Execution time: {summary.execution_time_seconds:.2f}s")
    if report.warnings:
        print(f"\n⚠️  {len(report.warnings)} warning(s):")
        for warning in report.warnings:
            print(f"   - {warning}")
    return 0


def cli() -> None:
    """Console script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("OG generation interrupted by user")
        sys.exit(130)


if __name__ == "__main__":
    cli()
