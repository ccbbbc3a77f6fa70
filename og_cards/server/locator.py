"""Locate, reuse or start the server hosting the social card template."""

import asyncio
import logging
import os
import shutil
import time
from pathlib import Path

import httpx

from og_cards.config import ServerConfig
from og_cards.errors.exceptions import TargetUnavailable
from og_cards.server.probe import ReadinessProbe, ServerProcess

logger = logging.getLogger(__name__)

LOG_PREFIX = "[og-dev]"


def join_url(base_url: str, route: str) -> str:
    """Resolve ``route`` against ``base_url`` the way a browser would."""
    return str(httpx.URL(base_url).join(route))


class RenderTargetHandle:
    """
    Base URL of the template server, plus the process behind it when we started it.

    Only owned handles (ephemeral servers) stop anything on ``close()``; a handle
    for an explicit or discovered server just forgets the URL.
    """

    def __init__(
        self,
        base_url: str,
        process: ServerProcess | None = None,
        scratch_dirs: list[Path] | None = None,
        shutdown_timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.process = process
        self.scratch_dirs = list(scratch_dirs or [])
        self.shutdown_timeout = shutdown_timeout
        self._forwarders: list[asyncio.Task] = []
        self._closed = False

    @property
    def owned(self) -> bool:
        return self.process is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def template_url(self, route: str) -> str:
        return join_url(self.base_url, route)

    def forward_output(self) -> None:
        """Start background tasks that copy the process's output into the log."""
        if self.process is None:
            return
        for stream, level in ((self.process.stdout, logging.INFO), (self.process.stderr, logging.WARNING)):
            if stream is not None:
                self._forwarders.append(asyncio.create_task(_forward_lines(stream, level)))

    async def close(self) -> None:
        """Terminate the owned process, stop forwarding, remove scratch dirs. Runs once."""
        if self._closed:
            return
        self._closed = True

        if self.process is None:
            return

        try:
            await self._stop_process()
        finally:
            for task in self._forwarders:
                task.cancel()
            await asyncio.gather(*self._forwarders, return_exceptions=True)
            self._forwarders.clear()

            for path in self.scratch_dirs:
                shutil.rmtree(path, ignore_errors=True)

    async def _stop_process(self) -> None:
        process = self.process
        if process.returncode is not None:
            logger.debug(f"Template server already exited with code {process.returncode}")
            return

        logger.info(f"Stopping template server at {self.base_url}")
        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=self.shutdown_timeout)
        except TimeoutError:
            logger.warning(
                f"Template server ignored SIGTERM for {self.shutdown_timeout}s, killing it"
            )
            try:
                process.kill()
            except ProcessLookupError:
                return
            await process.wait()

    async def __aenter__(self) -> "RenderTargetHandle":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


async def _forward_lines(stream: asyncio.StreamReader, level: int) -> None:
    while line := await stream.readline():
        text = line.decode(errors="replace").rstrip()
        if text:
            logger.log(level, f"{LOG_PREFIX} {text}")


class TemplateServerLocator:
    """Resolves the template server: explicit URL, running dev server, or a fresh one."""

    def __init__(
        self,
        config: ServerConfig | None = None,
        template_route: str = "/og/template",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the locator.

        Args:
            config: Discovery and launch settings
            template_route: Path of the template page, used for every probe
            client: HTTP client for probes; one is created (and owned) if omitted
        """
        self.config = config or ServerConfig()
        self.template_route = template_route
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=10.0, follow_redirects=True)
        self.probe = ReadinessProbe(
            self.client,
            poll_interval=self.config.poll_interval,
            timeout=self.config.ready_timeout,
            request_timeout=self.config.request_timeout,
        )

    async def acquire(self) -> RenderTargetHandle:
        """
        Return a handle to a server that can render the template.

        Raises:
            TargetUnavailable: If no server could be reached or started;
                ReadinessTimeout and ServerStartFailure are raised as subclasses
        """
        explicit = self.config.explicit_base_url
        if explicit:
            logger.info(f"Using configured template server at {explicit}")
            return RenderTargetHandle(explicit)

        existing = await self.discover()
        if existing is not None:
            logger.info(f"Reusing existing dev server at {existing}")
            return RenderTargetHandle(existing)

        return await self.launch()

    async def discover(self) -> str | None:
        """Return the first candidate base URL whose template route answers, if any."""
        # Candidates are in preference order
        for candidate in self.config.discovery_candidates:
            url = join_url(candidate, self.template_route)
            if await self.probe.check(url, request_timeout=self.config.probe_timeout):
                return candidate
            logger.debug(f"No template server at {candidate}")
        return None

    async def launch(self) -> RenderTargetHandle:
        """Start an ephemeral server and wait until its template route answers."""
        base_url = self.config.ephemeral_base_url
        command = self.config.render_command()
        working_dir = self.config.working_dir.resolve()
        cache_dir = (working_dir / self.config.cache_dir).resolve()
        dist_dir = working_dir / f".next-og-dist-{time.time_ns()}"

        logger.info(f"Starting temporary template server on {base_url}...")
        shutil.rmtree(cache_dir, ignore_errors=True)

        env = {
            **os.environ,
            "BROWSER": "none",
            "NEXT_CACHE_DIR": str(cache_dir),
            "NEXT_DIST_DIR": str(dist_dir),
        }

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(working_dir),
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise TargetUnavailable(
                f"Could not start template server ({' '.join(command)}): {e}", base_url
            ) from e

        handle = RenderTargetHandle(
            base_url,
            process=process,
            scratch_dirs=[cache_dir, dist_dir],
            shutdown_timeout=self.config.shutdown_timeout,
        )
        handle.forward_output()

        try:
            await self.probe.wait_until_ready(handle.template_url(self.template_route), process)
        except BaseException:
            await handle.close()
            raise

        return handle

    async def aclose(self) -> None:
        """Close the HTTP client if this locator created it."""
        if self._owns_client:
            await self.client.aclose()
