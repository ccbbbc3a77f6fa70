"""HTTP readiness probing for the template server."""

import asyncio
import logging
from typing import Protocol

import httpx

from og_cards.errors.exceptions import ReadinessTimeout, ServerStartFailure

logger = logging.getLogger(__name__)


class ServerProcess(Protocol):
    """The slice of ``asyncio.subprocess.Process`` the locator relies on."""

    returncode: int | None
    stdout: asyncio.StreamReader | None
    stderr: asyncio.StreamReader | None

    async def wait(self) -> int: ...

    def terminate(self) -> None: ...

    def kill(self) -> None: ...


class ReadinessProbe:
    """Checks whether a template URL answers with a successful status."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        poll_interval: float = 0.5,
        timeout: float = 45.0,
        request_timeout: float = 5.0,
    ) -> None:
        """
        Initialize the probe.

        Args:
            client: Shared HTTP client used for every probe request
            poll_interval: Delay between attempts while waiting, in seconds
            timeout: Upper bound for ``wait_until_ready``, in seconds
            request_timeout: Default bound for a single request, in seconds
        """
        self.client = client
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.request_timeout = request_timeout

    async def check(self, url: str, request_timeout: float | None = None) -> bool:
        """
        Issue one GET against ``url``, following redirects.

        Args:
            url: Template URL to probe
            request_timeout: Per-request timeout; defaults to ``self.request_timeout``

        Returns:
            True on a 2xx response, False on any other status or network error
        """
        if request_timeout is None:
            request_timeout = self.request_timeout
        try:
            response = await self.client.get(
                url, timeout=request_timeout, follow_redirects=True
            )
        except httpx.HTTPError as e:
            logger.debug(f"Probe of {url} failed: {e}")
            return False
        return response.is_success

    async def wait_until_ready(self, url: str, process: ServerProcess | None = None) -> None:
        """
        Poll until ``url`` answers successfully.

        Args:
            url: Template URL to poll
            process: Server process to watch; its exit ends the wait early,
                even while a request is in flight

        Raises:
            ReadinessTimeout: If no successful response arrives within the timeout
            ServerStartFailure: If ``process`` exits before becoming ready
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        exited = asyncio.create_task(process.wait()) if process is not None else None

        try:
            await asyncio.wait_for(self._poll(url, exited), timeout=self.timeout)
        except TimeoutError:
            raise ReadinessTimeout(url, loop.time() - started) from None
        finally:
            if exited is not None and not exited.done():
                exited.cancel()

        logger.debug(f"Template server ready at {url} after {loop.time() - started:.2f}s")

    async def _poll(self, url: str, exited: asyncio.Task | None) -> None:
        while True:
            if exited is not None and exited.done():
                raise ServerStartFailure(url, exited.result())

            if exited is None:
                if await self.check(url):
                    return
                await asyncio.sleep(self.poll_interval)
                continue

            if await self._check_unless_exited(url, exited):
                return
            if not exited.done():
                # Sleep, but wake up as soon as the process dies
                await asyncio.wait({exited}, timeout=self.poll_interval)

    async def _check_unless_exited(self, url: str, exited: asyncio.Task) -> bool:
        """Run one check, abandoning it if the process exits first."""
        attempt = asyncio.create_task(self.check(url))
        try:
            await asyncio.wait({attempt, exited}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not attempt.done():
                attempt.cancel()
                await asyncio.gather(attempt, return_exceptions=True)
        return not attempt.cancelled() and attempt.result()
