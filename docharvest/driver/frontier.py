"""The crawl frontier: visited URLs, the FIFO queue and collected entries."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass, field

from docharvest.checkpoint import Checkpoint
from docharvest.common.urls import normalize_url
from docharvest.config import DocSource
from docharvest.data_types import Entry


@dataclass
class Frontier:
    """Mutable crawl state owned by a single driver.

    Attributes:
        visited: Normalized URLs that have been attempted. Only grows.
        queue: URLs waiting to be processed, in discovery order. May hold
            duplicates; they are filtered when dequeued.
        entries: Extracted entries, in crawl order. Append-only.
    """

    visited: set[str] = field(default_factory=set)
    queue: deque[str] = field(default_factory=deque)
    entries: list[Entry] = field(default_factory=list)

    def take_batch(self, size: int) -> list[str]:
        """Remove and return up to ``size`` URLs from the head of the queue."""
        return [self.queue.popleft() for _ in range(min(size, len(self.queue)))]

    def extend_queue(self, urls: Iterable[str]) -> None:
        """Append URLs that have not been visited yet."""
        self.queue.extend(url for url in urls if not self.is_visited(url))

    def is_visited(self, url: str) -> bool:
        return normalize_url(url) in self.visited

    def mark_visited(self, url: str) -> None:
        self.visited.add(normalize_url(url))

    def add_entries(self, entries: Iterable[Entry]) -> None:
        self.entries.extend(entries)

    @classmethod
    def from_checkpoint(cls, checkpoint: Checkpoint) -> Frontier:
        return cls(
            visited=set(checkpoint.visited),
            queue=deque(checkpoint.queue),
            entries=list(checkpoint.entries),
        )

    def to_checkpoint(self, source: DocSource) -> Checkpoint:
        return Checkpoint(
            visited=sorted(self.visited),
            queue=list(self.queue),
            entries=list(self.entries),
            source=source,
        )
