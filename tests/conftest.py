"""Shared fixtures: fake server processes, fake browser sessions and mock HTTP clients."""

import asyncio
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
import pytest
from playwright.async_api import Error as PlaywrightError

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake"

OG_ENV_VARS = [
    "OG_ONLY",
    "OG_BASE_URL",
    "OG_OUTPUT_DIR",
    "OG_DEVICE_SCALE",
    "OG_SERVER_PORT",
    "OG_READY_TIMEOUT",
    "OG_FAIL_FAST",
    "OG_DOCS_DIR",
    "NEXT_DEFAULT_DEV_BASE_URL",
    "NODE_ENV",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_DIR",
    "LOG_MAX_BYTES",
    "LOG_BACKUP_COUNT",
    "ENV_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment out of configuration under test."""
    for name in OG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, exit_code: int | None = None, output: list[bytes] | None = None):
        self.pid = 4242
        self.returncode = None
        self.terminate_calls = 0
        self.kill_calls = 0
        self._exited = asyncio.Event()
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        for line in output or []:
            self.stdout.feed_data(line)
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        if exit_code is not None:
            self.finish(exit_code)

    def finish(self, code: int) -> None:
        self.returncode = code
        self._exited.set()

    def terminate(self) -> None:
        self.terminate_calls += 1
        self.finish(-15)

    def kill(self) -> None:
        self.kill_calls += 1
        self.finish(-9)

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode


class FakePage:
    """Records navigation and writes a tiny PNG on screenshot."""

    def __init__(self, fail_on: tuple[str, ...] = (), hang_on: tuple[str, ...] = ()):
        self.fail_on = fail_on
        self.hang_on = hang_on
        self.urls: list[str] = []
        self.goto_kwargs: dict = {}
        self.screenshot_kwargs: dict = {}
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def goto(self, url: str, **kwargs) -> None:
        self.urls.append(url)
        self.goto_kwargs = kwargs
        if any(marker in url for marker in self.hang_on):
            await asyncio.sleep(60)
        if any(marker in url for marker in self.fail_on):
            raise PlaywrightError("net::ERR_CONNECTION_REFUSED")

    async def screenshot(self, path: str, **kwargs) -> bytes:
        self.screenshot_kwargs = kwargs
        Path(path).write_bytes(PNG_BYTES)
        return PNG_BYTES

    async def close(self) -> None:
        self.close_calls += 1


class FakeSession:
    """Stand-in for BrowserSession that hands out FakePages."""

    def __init__(self, fail_on: tuple[str, ...] = (), hang_on: tuple[str, ...] = ()):
        self.fail_on = fail_on
        self.hang_on = hang_on
        self.pages: list[FakePage] = []
        self.page_args: list[tuple[dict, float]] = []
        self.close_calls = 0

    @asynccontextmanager
    async def page(self, viewport: dict[str, int], device_scale_factor: float = 1.0):
        page = FakePage(self.fail_on, self.hang_on)
        self.pages.append(page)
        self.page_args.append((viewport, device_scale_factor))
        try:
            yield page
        finally:
            await page.close()

    async def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def fake_process_cls():
    return FakeProcess


@pytest.fixture
def fake_session_cls():
    return FakeSession


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    """
    Build an AsyncClient whose responses come from a status map.

    Hosts (``host:port``) missing from the map refuse the connection.
    Every request URL is recorded on ``client.requested``.
    """

    def factory(statuses: dict[str, int] | None = None) -> httpx.AsyncClient:
        statuses = statuses or {}
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requested.append(str(request.url))
            host = f"{request.url.host}:{request.url.port}"
            if host not in statuses:
                raise httpx.ConnectError("Connection refused", request=request)
            return httpx.Response(statuses[host], text="ok")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client.requested = requested
        return client

    return factory
