"""Tests for checkpoint files and the crawl frontier."""

import json
from collections import deque
from pathlib import Path

import pytest

from docharvest.checkpoint import Checkpoint, load_checkpoint, save_checkpoint
from docharvest.common.exceptions import CheckpointCorruptException
from docharvest.config import DocSource
from docharvest.driver.frontier import Frontier
from tests.utils import make_entry


@pytest.fixture
def frontier() -> Frontier:
    return Frontier(
        visited={"https://d.example/b.html", "https://d.example/a.html"},
        queue=deque(["https://d.example/c.html", "https://d.example/d.html"]),
        entries=[make_entry("pkg.a"), make_entry("pkg.a.b")],
    )


class TestSaveAndLoad:
    """Tests for writing and reading checkpoint files."""

    def test_round_trip(
        self, tmp_path: Path, frontier: Frontier, garden_source: DocSource
    ) -> None:
        """A saved checkpoint loads back to the same state."""
        path = tmp_path / "crawl.json"
        checkpoint = frontier.to_checkpoint(garden_source)

        save_checkpoint(checkpoint, path)
        loaded = load_checkpoint(path)

        assert loaded == checkpoint
        assert loaded.source == garden_source
        assert loaded.source.patterns.signature_clean.pattern == r"^def\s+(.*)$"

    def test_file_shape(
        self, tmp_path: Path, frontier: Frontier, garden_source: DocSource
    ) -> None:
        """The file holds visited, queue, entries and source keys."""
        path = tmp_path / "crawl.json"

        save_checkpoint(frontier.to_checkpoint(garden_source), path)
        data = json.loads(path.read_text())

        assert set(data) == {"visited", "queue", "entries", "source"}
        assert data["visited"] == [
            "https://d.example/a.html",
            "https://d.example/b.html",
        ]
        assert data["queue"] == [
            "https://d.example/c.html",
            "https://d.example/d.html",
        ]
        assert data["entries"][0]["id"] == "pkg.a"
        assert data["entries"][0]["scrapedAt"].startswith("2026-01-01")
        assert data["source"]["indexUrl"] == garden_source.index_url

    def test_no_temp_file_left(
        self, tmp_path: Path, frontier: Frontier, garden_source: DocSource
    ) -> None:
        """The temporary file is renamed over the target."""
        path = tmp_path / "crawl.json"

        save_checkpoint(frontier.to_checkpoint(garden_source), path)

        assert path.exists()
        assert not (tmp_path / "crawl.json.tmp").exists()

    def test_overwrites_existing(
        self, tmp_path: Path, frontier: Frontier, garden_source: DocSource
    ) -> None:
        """Saving again replaces the previous checkpoint."""
        path = tmp_path / "crawl.json"
        save_checkpoint(frontier.to_checkpoint(garden_source), path)

        frontier.queue.clear()
        save_checkpoint(frontier.to_checkpoint(garden_source), path)

        assert load_checkpoint(path).queue == []

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing checkpoint loads as None."""
        assert load_checkpoint(tmp_path / "absent.json") is None

    @pytest.mark.parametrize(
        "content",
        [
            "{truncated",
            '{"visited": [], "queue": []}',
            '{"visited": "nope", "queue": [], "entries": [], "source": {}}',
        ],
    )
    def test_corrupt_file(self, tmp_path: Path, content: str) -> None:
        """Unreadable checkpoints raise CheckpointCorruptException."""
        path = tmp_path / "bad.json"
        path.write_text(content)

        with pytest.raises(CheckpointCorruptException) as exc_info:
            load_checkpoint(path)

        assert exc_info.value.path == str(path)


class TestFrontier:
    """Tests for frontier bookkeeping."""

    def test_take_batch(self, frontier: Frontier) -> None:
        """Batches come from the head of the queue and are removed."""
        assert frontier.take_batch(1) == ["https://d.example/c.html"]
        assert frontier.take_batch(5) == ["https://d.example/d.html"]
        assert frontier.take_batch(5) == []

    def test_extend_queue_skips_visited(self, frontier: Frontier) -> None:
        """Visited URLs are not queued again; unvisited duplicates are."""
        frontier.extend_queue(
            [
                "https://d.example/a.html",
                "https://d.example/c.html",
                "https://d.example/e.html",
            ]
        )

        assert list(frontier.queue) == [
            "https://d.example/c.html",
            "https://d.example/d.html",
            "https://d.example/c.html",
            "https://d.example/e.html",
        ]

    def test_visited_is_fragment_insensitive(self, frontier: Frontier) -> None:
        """URLs are compared after fragment removal."""
        frontier.mark_visited("https://d.example/e.html#section")

        assert frontier.is_visited("https://d.example/e.html")
        assert frontier.is_visited("https://d.example/a.html#top")

    def test_from_checkpoint(
        self, frontier: Frontier, garden_source: DocSource
    ) -> None:
        """Restoring a checkpoint replaces all three collections."""
        checkpoint = Checkpoint(
            visited=["https://d.example/x.html"],
            queue=["https://d.example/y.html"],
            entries=[make_entry("x")],
            source=garden_source,
        )

        restored = Frontier.from_checkpoint(checkpoint)

        assert restored.visited == {"https://d.example/x.html"}
        assert list(restored.queue) == ["https://d.example/y.html"]
        assert [entry.id for entry in restored.entries] == ["x"]
