"""lxml-backed PageElement and the parser that produces it."""

from __future__ import annotations

import logging

from lxml import etree, html

from docharvest.common.checked_html import CheckedHtmlElement
from docharvest.common.exceptions import UnparseablePageException
from docharvest.common.page_element import Link
from docharvest.common.urls import normalize_url, resolve_url

logger = logging.getLogger(__name__)


def parse_html(content: bytes | str, url: str) -> LxmlPageElement:
    """Parse a response body into the root element of a page.

    The body is always parsed as a whole document, so page-level queries
    run from ``<html>`` even when the server returned a bare fragment.

    Args:
        content: Response body. Pass bytes so lxml can honour a declared
            charset.
        url: URL the body was requested under.

    Returns:
        The page's root element.

    Raises:
        UnparseablePageException: If the body is empty or lxml rejects it.
    """
    try:
        root = html.document_fromstring(content, base_url=url)
    except (etree.LxmlError, ValueError) as e:
        raise UnparseablePageException(url, str(e)) from e
    return LxmlPageElement(CheckedHtmlElement(root, url), url)


class LxmlPageElement:
    """PageElement over a CheckedHtmlElement.

    Every element produced by a query carries the URL of its page, so
    relative hrefs found anywhere on the page resolve the same way.
    """

    def __init__(self, element: CheckedHtmlElement, url: str = "") -> None:
        self._element = element
        self._url = url

    @property
    def url(self) -> str:
        return self._url

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[LxmlPageElement]:
        return [
            LxmlPageElement(match, self._url)
            for match in self._element.checked_css(
                selector, description, min_count, max_count
            )
        ]

    def text_content(self) -> str:
        return self._element.text_content()

    def get_attribute(self, name: str) -> str | None:
        return self._element.get(name)

    def class_list(self) -> list[str]:
        return (self._element.get("class") or "").split()

    def find_links(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[Link]:
        links: list[Link] = []
        for anchor in self.query_css(
            selector, description, min_count, max_count
        ):
            href = anchor.get_attribute("href")
            if not href:
                continue
            try:
                url = normalize_url(resolve_url(self._url, href))
            except ValueError as e:
                logger.debug(
                    f"Dropping link {href!r} on {self._url}: {e}",
                    extra={"url": self._url, "href": href},
                )
                continue
            links.append(
                Link(
                    url=url,
                    text=anchor.text_content().strip(),
                    selector=selector,
                )
            )
        return links
