"""Concurrent screenshot capture of render jobs against the template server."""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Protocol

import httpx
from playwright.async_api import Error as PlaywrightError

from og_cards.config import CaptureConfig
from og_cards.errors.exceptions import CaptureFailure
from og_cards.models.job import CaptureResult, CaptureSummary, RenderJob
from og_cards.server.locator import RenderTargetHandle

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    """Anything that hands out scoped pages, normally a BrowserSession."""

    def page(self, viewport: dict[str, int], device_scale_factor: float = 1.0) -> Any: ...


def build_template_url(base_url: str, route: str, job: RenderJob) -> str:
    """
    Build the template URL for a job.

    One query parameter per non-empty field; empty fields are omitted so the
    template falls back to its own defaults.
    """
    url = httpx.URL(base_url).join(route)
    for key, value in job.query_params().items():
        url = url.copy_set_param(key, value)
    return str(url)


class CaptureOrchestrator:
    """Captures every job concurrently from one browser session and one target."""

    def __init__(
        self,
        session: PageSource,
        target: RenderTargetHandle,
        config: CaptureConfig | None = None,
    ) -> None:
        """
        Initialize orchestrator with its shared resources.

        Args:
            session: Browser session pages are opened from
            target: Template server the pages navigate to
            config: Viewport, route and failure policy
        """
        self.session = session
        self.target = target
        self.config = config or CaptureConfig()

    async def run(self, jobs: list[RenderJob], output_dir: Path) -> CaptureSummary:
        """
        Capture all jobs at once.

        Args:
            jobs: Jobs to capture; identifiers must be unique
            output_dir: Directory receiving ``<identifier>.png`` files

        Returns:
            Summary of the run

        Raises:
            CaptureFailure: With fail_fast enabled, the first failure; in-flight
                siblings are cancelled and their pages closed before it propagates
        """
        start_time = time.time()
        logger.info(f"Generating {len(jobs)} OG image(s)...")

        if not jobs:
            return CaptureSummary(total=0, succeeded=0, failed=0, execution_time_seconds=0.0)

        tasks = [
            asyncio.create_task(self._run_single(job, output_dir), name=f"capture:{job.identifier}")
            for job in jobs
        ]

        try:
            results = await asyncio.gather(*tasks)
        except BaseException as e:
            if isinstance(e, CaptureFailure):
                logger.error(f"Capture failed fast: {e}")
            # Cancel remaining tasks and let their pages close
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        execution_time = time.time() - start_time
        failures = [result for result in results if not result.ok]

        summary = CaptureSummary(
            total=len(jobs),
            succeeded=len(results) - len(failures),
            failed=len(failures),
            execution_time_seconds=execution_time,
            results=list(results),
            errors=[result.error for result in failures if result.error],
        )

        logger.info(
            f"Capture completed: {summary.succeeded}/{summary.total} images written, "
            f"{execution_time:.2f}s"
        )
        return summary

    async def _run_single(self, job: RenderJob, output_dir: Path) -> CaptureResult:
        """Capture one job, applying the failure policy."""
        try:
            return await self.capture(job, output_dir)
        except CaptureFailure as e:
            if self.config.fail_fast:
                raise
            logger.error(str(e))
            return CaptureResult(identifier=job.identifier, error=str(e))

    async def capture(self, job: RenderJob, output_dir: Path) -> CaptureResult:
        """
        Open a page, navigate to the template, screenshot it, close the page.

        Raises:
            CaptureFailure: If navigation or the screenshot fails
        """
        url = build_template_url(self.target.base_url, self.config.template_route, job)
        file_path = output_dir / job.output_filename

        try:
            async with self.session.page(
                self.config.viewport, self.config.device_scale_factor
            ) as page:
                await page.goto(
                    url,
                    wait_until="load",
                    timeout=self.config.navigation_timeout * 1000,
                )
                await page.screenshot(path=str(file_path), type="png", full_page=True)
        except (PlaywrightError, OSError) as e:
            raise CaptureFailure(job.identifier, url, str(e)) from e

        logger.info(f"OG image generated: {file_path}")
        return CaptureResult(identifier=job.identifier, path=file_path)
