"""Crawl checkpoints.

A checkpoint is a JSON snapshot of a crawl's frontier and results::

    {
        "visited": ["https://docs.example.com/a.html", ...],
        "queue": ["https://docs.example.com/b.html", ...],
        "entries": [{"id": "pkg.Foo", "type": "class", ...}, ...],
        "source": {"name": "Example", "baseUrl": ..., ...}
    }

Checkpoints are written to a temporary sibling file and renamed over the
target, so an interrupted write never leaves a truncated checkpoint behind.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from docharvest.common.exceptions import CheckpointCorruptException
from docharvest.config import DocSource
from docharvest.data_types import Entry

logger = logging.getLogger(__name__)


class Checkpoint(BaseModel):
    """Serialized crawl state."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    visited: list[str]
    queue: list[str]
    entries: list[Entry]
    source: DocSource


def save_checkpoint(checkpoint: Checkpoint, path: Path) -> None:
    """Write a checkpoint atomically.

    Args:
        checkpoint: State to write.
        path: Destination file. Parent directories must exist.
    """
    path = Path(path)
    tmp_path = path.with_name(f"{path.name}.tmp")
    tmp_path.write_text(
        checkpoint.model_dump_json(by_alias=True, exclude_none=True, indent=2),
        encoding="utf-8",
    )
    tmp_path.replace(path)

    logger.info(
        f"Checkpoint saved to {path}: {len(checkpoint.visited)} visited, "
        f"{len(checkpoint.queue)} queued, {len(checkpoint.entries)} entries"
    )


def load_checkpoint(path: Path) -> Checkpoint | None:
    """Read a checkpoint.

    Args:
        path: Checkpoint file.

    Returns:
        The checkpoint, or None if the file does not exist.

    Raises:
        CheckpointCorruptException: If the file exists but is not a valid
            checkpoint.
    """
    path = Path(path)
    if not path.is_file():
        return None

    try:
        return Checkpoint.model_validate_json(path.read_bytes())
    except ValidationError as e:
        raise CheckpointCorruptException(
            str(path), f"{e.error_count()} validation error(s)"
        ) from e
