"""CSS queries over lxml elements with match-count checks.

CheckedHtmlElement wraps an lxml HtmlElement; its checked_css() compares the
number of matches with what the caller expects and raises
HTMLStructuralAssumptionException on a mismatch, naming the selector and
the page.

CSS selectors are evaluated against descendants only, never the element
itself, so ``element.checked_css("a", ...)`` inside an ``<a>`` finds nested
anchors rather than the element you are already holding.
"""

from __future__ import annotations

from functools import lru_cache

from cssselect import HTMLTranslator, SelectorError
from lxml.html import HtmlElement

from docharvest.common.exceptions import (
    HTMLStructuralAssumptionException,
)

_translator = HTMLTranslator()


@lru_cache(maxsize=512)
def css_to_xpath(selector: str) -> str:
    """Translate a CSS selector into a descendant-scoped XPath expression.

    Args:
        selector: CSS selector expression (selector groups allowed).

    Returns:
        XPath expression relative to the context element.

    Raises:
        cssselect.SelectorError: If the selector cannot be parsed.
    """
    return _translator.css_to_xpath(selector, prefix="descendant::")


def validate_css_selector(selector: str) -> str:
    """Check that a CSS selector can be translated.

    Used by the configuration models so that broken selectors are rejected
    when a source is loaded rather than halfway through a crawl.

    Raises:
        ValueError: If the selector is empty or cannot be parsed.
    """
    if not selector.strip():
        raise ValueError("selector must not be empty")
    try:
        css_to_xpath(selector)
    except SelectorError as e:
        raise ValueError(f"invalid CSS selector {selector!r}: {e}") from e
    return selector


class CheckedHtmlElement:
    """An lxml element whose CSS queries check their match counts.

    ``request_url`` is only used in error messages. Attribute access falls
    through to the wrapped element.
    """

    def __init__(self, element: HtmlElement, request_url: str = "") -> None:
        self._element = element
        self._request_url = request_url

    def checked_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]:
        """Execute CSS selector query with count validation.

        Args:
            selector: CSS selector expression.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 1).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching CheckedHtmlElements in document order. Each
            element is wrapped to support nested checked queries.

        Raises:
            HTMLStructuralAssumptionException: If the selector is invalid or
                the count doesn't match expectations.

        Example::

            tree = CheckedHtmlElement(lxml.html.fromstring(html))
            entries = tree.checked_css("dl.py > dt", "entries", min_count=0)
            for entry in entries:
                names = entry.checked_css(".sig-name", "name", max_count=1)
        """
        try:
            results = self._element.xpath(css_to_xpath(selector))
        except SelectorError as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                request_url=self._request_url,
            ) from e

        wrapped = [
            CheckedHtmlElement(result, self._request_url)
            for result in results
            if isinstance(result, HtmlElement)
        ]

        actual_count = len(wrapped)
        if actual_count < min_count or (
            max_count is not None and actual_count > max_count
        ):
            raise HTMLStructuralAssumptionException(
                selector=selector,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=actual_count,
                request_url=self._request_url,
            )

        return wrapped

    def __getattr__(self, name: str):
        return getattr(self._element, name)
