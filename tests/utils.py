"""Test utilities for crawl driver tests.

This module provides an in-memory page source with controllable latency
and fetch hooks, plus helpers for building entries and pages by hand.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any

from docharvest.common.exceptions import HTMLResponseAssumptionException
from docharvest.common.request_manager import Response
from docharvest.data_types import Entry, EntrySource, EntryType

SCRAPED_AT = datetime(2026, 1, 1, tzinfo=timezone.utc)


class FakeRequestManager:
    """In-memory page source.

    Serves HTML from a dict and records every fetch. Unknown URLs fail with
    HTTP 404. Each fetch sleeps for ``latency`` seconds so that concurrent
    fetches overlap.

    Example:
        manager = FakeRequestManager({"https://x/index.html": "<a ...>"})
        driver = CrawlDriver(source, request_manager=manager)
        await driver.run(setup_signal_handlers=False)
        assert manager.requested == [...]
    """

    def __init__(
        self,
        pages: dict[str, str],
        latency: float = 0.0,
        on_fetch: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self.pages = pages
        self.latency = latency
        self.on_fetch = on_fetch
        self.requested: list[str] = []
        self.events: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def resolve_request(self, url: str) -> Response:
        self.requested.append(url)
        self.events.append(("start", url))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.on_fetch is not None:
                await self.on_fetch(url)
            await asyncio.sleep(self.latency)
            if url not in self.pages:
                raise HTMLResponseAssumptionException(status_code=404, url=url)
            return Response(
                status_code=200,
                headers={"content-type": "text/html"},
                content=self.pages[url].encode("utf-8"),
                url=url,
            )
        finally:
            self.in_flight -= 1
            self.events.append(("end", url))

    async def close(self) -> None:
        self.closed = True


def make_entry(entry_id: str, **overrides: Any) -> Entry:
    """Build a minimal entry with the given id.

    Args:
        entry_id: Dotted id; its last segment becomes the name.
        **overrides: Field values to replace.

    Returns:
        The entry.
    """
    fields: dict[str, Any] = {
        "id": entry_id,
        "type": EntryType.FUNCTION,
        "namespace": entry_id.split(".")[:-1],
        "name": entry_id.split(".")[-1],
        "title": entry_id,
        "description": [],
        "source": EntrySource(
            name="Test",
            url="https://docs.example/page.html",
            normalized_url="https://docs.example/page.html",
        ),
        "examples": [],
        "scraped_at": SCRAPED_AT,
    }
    fields.update(overrides)
    return Entry(**fields)


def links_page(*hrefs: str, entries: tuple[str, ...] = ()) -> str:
    """Build a page with navigation links and function entries.

    Each entry is given by its dotted id; the last segment is its name.
    """
    links = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    entry_html = "".join(
        '<div class="entry"><span class="kind">function</span> '
        f'<span class="anchor">{entry_id}</span>'
        f'<code class="name">{entry_id.rsplit(".", 1)[-1]}</code></div>'
        for entry_id in entries
    )
    return (
        f'<html><body><nav class="toc">{links}</nav>{entry_html}'
        "</body></html>"
    )


def collect_run_status() -> tuple[
    Callable[[str, str, Exception | None], Awaitable[None]],
    list[tuple[str, str, Exception | None]],
]:
    """Create an on_run_complete callback that records its arguments.

    Returns:
        A tuple of (async_callback_function, calls_list).
    """
    calls: list[tuple[str, str, Exception | None]] = []

    async def callback(
        name: str, status: str, error: Exception | None
    ) -> None:
        calls.append((name, status, error))

    return callback, calls
