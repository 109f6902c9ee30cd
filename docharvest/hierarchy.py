"""Parent/child linking of entries by dotted id."""

from __future__ import annotations

from docharvest.data_types import Entry


def parent_id(entry_id: str) -> str | None:
    """Return the id one level up, or None for a top-level id.

    >>> parent_id("a.b.c")
    'a.b'
    >>> parent_id("a") is None
    True
    """
    if "." not in entry_id:
        return None
    return entry_id.rsplit(".", 1)[0]


def establish_hierarchy(entries: list[Entry]) -> list[Entry]:
    """Link entries to their parents.

    An entry's parent is the entry whose id is its own id minus the last
    dotted segment. When several entries share an id, the first one is the
    parent. Entries whose parent id is not present stay top-level.

    The input entries are left untouched; copies are returned with
    ``parent`` and ``children`` computed from scratch, so running this again
    on its own output gives the same result.

    Args:
        entries: Entries in crawl order.

    Returns:
        Linked copies, in the same order.
    """
    linked = [
        entry.model_copy(update={"parent": None, "children": None})
        for entry in entries
    ]

    by_id: dict[str, Entry] = {}
    for entry in linked:
        by_id.setdefault(entry.id, entry)

    for entry in linked:
        entry_parent_id = parent_id(entry.id)
        if entry_parent_id is None:
            continue
        parent = by_id.get(entry_parent_id)
        if parent is None:
            continue

        entry.parent = entry_parent_id
        if parent.children is None:
            parent.children = []
        parent.children.append(entry.id)

    return linked
