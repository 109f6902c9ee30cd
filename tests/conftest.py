"""Shared fixtures for docharvest tests."""

import asyncio
import json
import socket
import threading
from collections.abc import Generator
from contextlib import closing
from pathlib import Path

import pytest
from aiohttp import web

from docharvest.config import DocSource
from tests.mock_server import PAGES, create_app, garden_config

GARDEN_BASE = "https://garden.example"


# =============================================================================
# Source configuration fixtures
# =============================================================================


@pytest.fixture
def garden_source() -> DocSource:
    """The Garden source configuration, for a site at GARDEN_BASE.

    Returns:
        Validated DocSource.
    """
    return DocSource.model_validate(garden_config(GARDEN_BASE))


@pytest.fixture
def garden_pages() -> dict[str, str]:
    """The Garden site as absolute URL -> HTML.

    Returns:
        Mapping suitable for FakeRequestManager.
    """
    return {f"{GARDEN_BASE}{path}": html for path, html in PAGES.items()}


@pytest.fixture
def configs_dir(tmp_path: Path) -> Path:
    """A configs directory holding garden.json for GARDEN_BASE.

    Returns:
        Path to the directory.
    """
    directory = tmp_path / "configs"
    directory.mkdir()
    (directory / "garden.json").write_text(
        json.dumps(garden_config(GARDEN_BASE)), encoding="utf-8"
    )
    return directory


# =============================================================================
# aiohttp test server fixtures
# =============================================================================


def find_free_port() -> int:
    """Find a free port on localhost.

    Returns:
        An available port number.
    """
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(("", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


class AioHttpTestServer:
    """Wrapper to run aiohttp server in a background thread."""

    def __init__(self, app: web.Application, port: int) -> None:
        self.app = app
        self.port = port
        self.host = "127.0.0.1"
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runner: web.AppRunner | None = None
        self._thread: threading.Thread | None = None
        self._started = threading.Event()

    @property
    def url(self) -> str:
        """Get the base URL of the server."""
        return f"http://{self.host}:{self.port}"

    def start(self) -> None:
        """Start the server in a background thread."""
        self._thread = threading.Thread(target=self._run_server, daemon=True)
        self._thread.start()
        self._started.wait(timeout=5.0)

    def _run_server(self) -> None:
        """Run the server in an asyncio event loop."""
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)

        async def start() -> None:
            self._runner = web.AppRunner(self.app)
            await self._runner.setup()
            site = web.TCPSite(self._runner, self.host, self.port)
            await site.start()

        self._loop.run_until_complete(start())
        self._started.set()
        self._loop.run_forever()

    def stop(self) -> None:
        """Stop the server and clean up resources."""
        if self._loop and self._runner:
            # Schedule cleanup in the event loop
            future = asyncio.run_coroutine_threadsafe(
                self._runner.cleanup(), self._loop
            )
            try:
                future.result(timeout=2.0)
            except Exception:
                pass  # Best effort cleanup

        if self._loop:
            self._loop.call_soon_threadsafe(self._loop.stop)

        if self._thread:
            self._thread.join(timeout=2.0)


@pytest.fixture
def garden_server() -> Generator[AioHttpTestServer, None, None]:
    """Create and start an aiohttp test server running the Garden docs site.

    Yields:
        AioHttpTestServer instance with the Garden app running.
    """
    app = create_app()
    port = find_free_port()
    server = AioHttpTestServer(app, port)
    server.start()
    yield server
    server.stop()


@pytest.fixture
def server_url(garden_server: AioHttpTestServer) -> str:
    """Get the base URL of the test server.

    Returns:
        The base URL string (e.g., "http://127.0.0.1:8080").
    """
    return garden_server.url


@pytest.fixture
def served_garden_source(server_url: str) -> DocSource:
    """The Garden source configuration pointing at the test server.

    Returns:
        Validated DocSource.
    """
    return DocSource.model_validate(garden_config(server_url))
