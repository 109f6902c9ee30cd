"""Breadth-first crawl driver.

This module contains CrawlDriver, which walks a documentation site from its
index page and extracts entries from every page it reaches.

The crawl proceeds in batches:

1. Up to ``max_concurrent`` URLs are taken from the head of the queue
2. They are fetched and extracted concurrently; the batch is a barrier
3. Discovered links that have not been visited are appended to the queue
4. A checkpoint is written if the checkpoint interval has elapsed
5. The driver sleeps for ``delay`` seconds before the next batch

The crawl ends when the queue is empty or the stop event is set. A crawl
that ends normally links entries into a hierarchy and writes a final
checkpoint; a stopped crawl writes a checkpoint with the partial results so
that it can be resumed later.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docharvest.checkpoint import load_checkpoint, save_checkpoint
from docharvest.common.exceptions import (
    IndexPageUnavailableException,
    PageUnavailableException,
)
from docharvest.common.lxml_page_element import parse_html
from docharvest.common.request_manager import (
    AsyncRequestManager,
    RequestManager,
)
from docharvest.config import DocSource
from docharvest.data_types import Entry
from docharvest.driver.frontier import Frontier
from docharvest.extraction import extract_links, extract_page
from docharvest.hierarchy import establish_hierarchy

logger = logging.getLogger(__name__)

DEFAULT_CHECKPOINT_FILE = Path("crawler-checkpoint.json")


@dataclass(frozen=True)
class CrawlOptions:
    """Tuning knobs for a crawl. Durations are in seconds.

    Attributes:
        delay: Pause after each processed batch.
        max_concurrent: Batch size, and so the bound on in-flight fetches.
        max_depth: Discovery depth beyond which URLs are dropped.
        checkpoint_interval: Minimum time between automatic checkpoints.
        checkpoint_file: Where every checkpoint is written.
        resume_from: Checkpoint to restore before crawling.
    """

    delay: float = 0.0
    max_concurrent: int = 5
    max_depth: int | None = None
    checkpoint_interval: float = 30.0
    checkpoint_file: Path = DEFAULT_CHECKPOINT_FILE
    resume_from: Path | None = None

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.delay < 0:
            raise ValueError("delay must not be negative")


class CrawlDriver:
    """Crawls one documentation source.

    Example usage:
        driver = CrawlDriver(source, CrawlOptions(max_concurrent=4))
        entries = await driver.run()
    """

    def __init__(
        self,
        source: DocSource,
        options: CrawlOptions | None = None,
        request_manager: RequestManager | None = None,
        stop_event: asyncio.Event | None = None,
        on_run_start: Callable[[str], Awaitable[None]] | None = None,
        on_run_complete: Callable[
            [str, str, Exception | None], Awaitable[None]
        ]
        | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            source: Validated source configuration.
            options: Crawl options. Defaults to CrawlOptions().
            request_manager: Page source. If None, an AsyncRequestManager is
                created and closed when run() finishes.
            stop_event: Optional asyncio.Event for graceful shutdown. When
                set, the driver finishes the batch in flight, writes a
                checkpoint and returns.
            on_run_start: Optional async callback invoked when the run
                starts. Receives the source name.
            on_run_complete: Optional async callback invoked when the run
                ends. Receives the source name, status ("completed" |
                "stopped" | "error") and error (Exception | None).

        Raises:
            CheckpointCorruptException: If ``options.resume_from`` exists
                but cannot be read as a checkpoint.
        """
        self.source = source
        self.options = options or CrawlOptions()

        self.frontier = Frontier()
        if self.options.resume_from is not None:
            self._resume(Path(self.options.resume_from))

        # Set up request manager - either use provided one or create default
        if request_manager is not None:
            self.request_manager = request_manager
            self._owns_request_manager = False
        else:
            self.request_manager = AsyncRequestManager()
            self._owns_request_manager = True

        self.stop_event = stop_event or asyncio.Event()
        self.on_run_start = on_run_start
        self.on_run_complete = on_run_complete

        self._last_checkpoint = time.monotonic()

    def _resume(self, path: Path) -> None:
        checkpoint = load_checkpoint(path)
        if checkpoint is None:
            logger.info(f"No checkpoint found at {path}, starting fresh")
            return

        if checkpoint.source.name != self.source.name:
            logger.warning(
                f"Checkpoint {path} was written for source "
                f"{checkpoint.source.name!r}, resuming {self.source.name!r}",
                extra={"checkpoint_source": checkpoint.source.name},
            )

        self.frontier = Frontier.from_checkpoint(checkpoint)
        logger.info(
            f"Resumed from {path}: {len(self.frontier.visited)} visited, "
            f"{len(self.frontier.queue)} queued, "
            f"{len(self.frontier.entries)} entries"
        )

    @property
    def entries(self) -> list[Entry]:
        return self.frontier.entries

    def stop(self) -> None:
        """Ask the driver to stop after the batch in flight."""
        self.stop_event.set()

    def _setup_signal_handlers(self) -> None:
        """Register signal handlers for graceful shutdown.

        Registers handlers for SIGINT (Ctrl+C) and SIGTERM that set the
        stop event, so the crawl checkpoints its progress and returns.

        Note: Only works on Unix-like systems. On Windows, only SIGINT
        is supported.
        """
        import signal

        def handle_signal(signum: int, frame: Any) -> None:
            sig_name = signal.Signals(signum).name
            logger.info(f"Received {sig_name}, initiating graceful shutdown...")
            self.stop()

        self._previous_signal_handlers = {
            signum: signal.signal(signum, handle_signal)
            for signum in (signal.SIGINT, signal.SIGTERM)
        }

    def _restore_signal_handlers(self) -> None:
        """Put back the handlers that were installed before run()."""
        import signal

        for signum, handler in self._previous_signal_handlers.items():
            # None means the handler was not installed from Python.
            signal.signal(
                signum, handler if handler is not None else signal.SIG_DFL
            )
        self._previous_signal_handlers = {}

    def write_checkpoint(self) -> None:
        """Write the current frontier to the checkpoint file."""
        save_checkpoint(
            self.frontier.to_checkpoint(self.source),
            self.options.checkpoint_file,
        )
        self._last_checkpoint = time.monotonic()

    def _checkpoint_due(self) -> bool:
        return (
            time.monotonic() - self._last_checkpoint
            >= self.options.checkpoint_interval
        )

    async def _seed(self) -> None:
        """Fill the empty queue with the links on the index page.

        Raises:
            IndexPageUnavailableException: If the index page cannot be
                fetched or parsed.
        """
        index_url = self.source.index_url
        logger.info(f"Seeding crawl from {index_url}")

        try:
            response = await self.request_manager.resolve_request(index_url)
            page = parse_html(response.content, index_url)
        except PageUnavailableException as e:
            raise IndexPageUnavailableException(index_url, e) from e

        links = extract_links(page, self.source)
        self.frontier.extend_queue(links)
        logger.info(f"Seeded {len(self.frontier.queue)} URLs from index page")

    async def _process_url(self, url: str, depth: int) -> None:
        """Fetch one URL and fold its entries and links into the frontier.

        Failures to fetch or parse the page are logged and the URL stays
        visited; it is never retried.
        """
        if self.frontier.is_visited(url):
            logger.debug(f"Already visited {url}")
            return
        if self.options.max_depth is not None and depth > self.options.max_depth:
            logger.debug(f"Skipping {url}: depth {depth} exceeds max depth")
            return

        self.frontier.mark_visited(url)

        try:
            response = await self.request_manager.resolve_request(url)
            page = parse_html(response.content, url)
        except PageUnavailableException as e:
            logger.warning(
                f"Skipping {url}: {e}",
                extra={"url": url, "error_type": type(e).__name__},
            )
            return

        extraction = extract_page(page, self.source)
        self.frontier.add_entries(extraction.entries)
        self.frontier.extend_queue(extraction.links)

        logger.debug(
            f"Processed {url}: {len(extraction.entries)} entries, "
            f"{len(extraction.links)} links",
            extra={"url": url},
        )

    async def _crawl(self) -> None:
        """Process batches until the queue drains or a stop is requested."""
        while self.frontier.queue and not self.stop_event.is_set():
            batch = self.frontier.take_batch(self.options.max_concurrent)
            logger.info(
                f"Processing batch of {len(batch)} "
                f"({len(self.frontier.queue)} queued, "
                f"{len(self.frontier.visited)} visited, "
                f"{len(self.frontier.entries)} entries)"
            )

            # Queued URLs are processed at depth 0.
            await asyncio.gather(*(self._process_url(url, 0) for url in batch))

            if self._checkpoint_due():
                self.write_checkpoint()

            if self.options.delay > 0:
                await asyncio.sleep(self.options.delay)

    async def run(self, setup_signal_handlers: bool = True) -> list[Entry]:
        """Run the crawl.

        Args:
            setup_signal_handlers: If True, register SIGINT/SIGTERM handlers
                for graceful shutdown. Set to False when running in a context
                that manages its own signal handling (e.g., tests).

        Returns:
            The collected entries. Entries from a completed crawl are linked
            into a hierarchy; entries from a stopped crawl are not.
            A stopped crawl always writes a checkpoint, even when the stop
            was requested before run() started.

        Raises:
            IndexPageUnavailableException: If seeding was needed and the
                index page could not be fetched or parsed.
        """
        if setup_signal_handlers:
            self._setup_signal_handlers()

        if self.on_run_start:
            await self.on_run_start(self.source.name)

        status = "completed"
        error: Exception | None = None

        try:
            # Check for early stop before doing any work
            if self.stop_event.is_set():
                status = "stopped"
                self.write_checkpoint()
                return list(self.frontier.entries)

            if not self.frontier.queue:
                await self._seed()

            self._last_checkpoint = time.monotonic()
            await self._crawl()

            if self.stop_event.is_set():
                status = "stopped"
                self.write_checkpoint()
                logger.info(
                    f"Crawl stopped, progress saved to "
                    f"{self.options.checkpoint_file}"
                )
                return list(self.frontier.entries)

            self.frontier.entries = establish_hierarchy(self.frontier.entries)
            self.write_checkpoint()
            logger.info(
                f"Crawl of {self.source.name} complete: "
                f"{len(self.frontier.entries)} entries from "
                f"{len(self.frontier.visited)} pages"
            )
            return list(self.frontier.entries)

        except Exception as e:
            # Capture error for on_run_complete
            status = "error"
            error = e
            raise
        finally:
            if setup_signal_handlers:
                self._restore_signal_handlers()

            # Close request manager if we own it
            if self._owns_request_manager:
                await self.request_manager.close()

            if self.on_run_complete:
                await self.on_run_complete(self.source.name, status, error)
