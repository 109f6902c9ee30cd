"""The query interface the extraction engine reads pages through.

Extraction functions only ever see a PageElement: a parsed element that
knows the URL of the page it came from and can run descendant CSS queries.
Keeping the engine behind this protocol means it never touches lxml (or the
network) directly, and tests can hand it any parsed fixture.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Link:
    """An anchor found on a page.

    Attributes:
        url: Absolute URL of the href, fragment removed.
        text: Trimmed anchor text.
        selector: Selector the anchor was matched by.
    """

    url: str
    text: str
    selector: str


class PageElement(Protocol):
    """A parsed element scoped to the page it was found on.

    Queries never match the element itself, only its descendants. Each
    query states how many matches it expects; extraction passes
    ``min_count=0`` for every selector a source may leave unmatched, and a
    violated expectation raises HTMLStructuralAssumptionException.
    """

    @property
    def url(self) -> str:
        """URL the page was requested under."""
        ...

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[PageElement]:
        """Descendants matching ``selector``, in document order.

        ``description`` names what is being looked for and only appears in
        error messages.
        """
        ...

    def text_content(self) -> str: ...

    def get_attribute(self, name: str) -> str | None: ...

    def class_list(self) -> list[str]: ...

    def find_links(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[Link]:
        """Anchors matching ``selector`` that carry an href.

        Count expectations apply to the matched elements, before anchors
        without an href are dropped.
        """
        ...
