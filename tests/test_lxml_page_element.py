"""Tests for LxmlPageElement and CheckedHtmlElement.

Tests parsing, descendant-only CSS scoping, count checks and link handling.
"""

import pytest
from lxml import html

from docharvest.common.checked_html import (
    CheckedHtmlElement,
    css_to_xpath,
    validate_css_selector,
)
from docharvest.common.exceptions import (
    HTMLStructuralAssumptionException,
    UnparseablePageException,
)
from docharvest.common.lxml_page_element import LxmlPageElement, parse_html
from docharvest.common.page_element import Link


@pytest.fixture
def simple_page():
    """Simple HTML page for testing."""
    html_content = """
    <html>
    <body>
        <div id="main" class="content  wide">
            <h1>Test Page</h1>
            <ul>
                <li class="row">Item 1</li>
                <li class="row">Item 2</li>
            </ul>
        </div>
    </body>
    </html>
    """
    doc = html.fromstring(html_content)
    checked = CheckedHtmlElement(doc, "https://example.com/page")
    return LxmlPageElement(checked, "https://example.com/page")


@pytest.fixture
def links_page():
    """HTML page with links for testing."""
    return parse_html(
        """
        <html>
        <body>
            <nav>
                <a href="/page1#intro" class="nav-link"> Page 1 </a>
                <a href="page2" class="nav-link">Page 2</a>
                <a href="https://external.com/page3">External</a>
                <a>No href</a>
                <a href="">Empty href</a>
            </nav>
        </body>
        </html>
        """,
        "https://example.com/docs/index.html",
    )


class TestParseHtml:
    """Tests for parse_html."""

    def test_fragment_parsed_as_document(self) -> None:
        """A bare fragment still gives a document root to query from."""
        page = parse_html("<p>hello</p>", "https://example.com/")

        (paragraph,) = page.query_css("p", "paragraph")
        assert paragraph.text_content() == "hello"
        assert page.url == "https://example.com/"

    def test_bytes_accepted(self) -> None:
        """Response bodies can be passed as bytes."""
        page = parse_html(
            '<html><head><meta charset="utf-8"></head>'
            "<body><p>café</p></body></html>".encode(),
            "https://example.com/",
        )

        (paragraph,) = page.query_css("p", "paragraph")
        assert paragraph.text_content() == "café"

    @pytest.mark.parametrize("content", ["", "   ", b""])
    def test_empty_body_unparseable(self, content) -> None:
        """Empty bodies are reported as unparseable pages."""
        with pytest.raises(UnparseablePageException) as exc_info:
            parse_html(content, "https://example.com/empty")

        assert exc_info.value.url == "https://example.com/empty"


class TestQueryCss:
    """Tests for checked CSS queries."""

    def test_returns_wrapped_elements(self, simple_page) -> None:
        """Matches are LxmlPageElements carrying the page URL."""
        rows = simple_page.query_css("li.row", "rows")

        assert [row.text_content() for row in rows] == ["Item 1", "Item 2"]
        assert all(isinstance(row, LxmlPageElement) for row in rows)
        assert rows[0].url == "https://example.com/page"

    def test_descendants_only(self, simple_page) -> None:
        """An element never matches its own selector."""
        (main,) = simple_page.query_css("div#main", "main")

        assert main.query_css("div", "nested divs", min_count=0) == []
        assert len(main.query_css("li", "items")) == 2

    def test_selector_groups(self, simple_page) -> None:
        """Comma-separated selectors match in document order."""
        matches = simple_page.query_css("li.row, h1", "headings and rows")

        assert [m.text_content() for m in matches] == [
            "Test Page",
            "Item 1",
            "Item 2",
        ]

    def test_min_count_violation(self, simple_page) -> None:
        """Too few matches raise with the selector in context."""
        with pytest.raises(HTMLStructuralAssumptionException) as exc_info:
            simple_page.query_css("table", "tables")

        assert exc_info.value.selector == "table"
        assert exc_info.value.actual_count == 0
        assert exc_info.value.request_url == "https://example.com/page"

    def test_max_count_violation(self, simple_page) -> None:
        """Too many matches raise."""
        with pytest.raises(HTMLStructuralAssumptionException):
            simple_page.query_css("li", "items", max_count=1)

    def test_invalid_selector(self, simple_page) -> None:
        """Unparseable selectors raise a structural exception."""
        with pytest.raises(HTMLStructuralAssumptionException):
            simple_page.query_css("li[", "broken", min_count=0)


class TestAttributes:
    """Tests for attribute access."""

    def test_get_attribute(self, simple_page) -> None:
        """Attributes are returned as strings, missing ones as None."""
        (main,) = simple_page.query_css("div", "main")

        assert main.get_attribute("id") == "main"
        assert main.get_attribute("data-missing") is None

    def test_class_list(self, simple_page) -> None:
        """Class names are split on whitespace."""
        (main,) = simple_page.query_css("div", "main")
        (heading,) = simple_page.query_css("h1", "heading")

        assert main.class_list() == ["content", "wide"]
        assert heading.class_list() == []


class TestFindLinks:
    """Tests for link discovery."""

    def test_links_resolved_and_normalized(self, links_page) -> None:
        """hrefs are resolved against the page URL and lose fragments."""
        links = links_page.find_links("nav a", "nav links")

        assert links == [
            Link(url="https://example.com/page1", text="Page 1", selector="nav a"),
            Link(
                url="https://example.com/docs/page2",
                text="Page 2",
                selector="nav a",
            ),
            Link(
                url="https://external.com/page3",
                text="External",
                selector="nav a",
            ),
        ]

    def test_no_links_allowed_with_min_count_zero(self, links_page) -> None:
        """min_count=0 makes a missing link list acceptable."""
        assert links_page.find_links("footer a", "footer", min_count=0) == []


class TestSelectorValidation:
    """Tests for load-time selector validation."""

    def test_valid_selector_returned(self) -> None:
        """Valid selectors pass through unchanged."""
        assert validate_css_selector("dl.py > dt") == "dl.py > dt"

    @pytest.mark.parametrize("selector", ["", "   ", "div[", "div >"])
    def test_invalid_selector_rejected(self, selector: str) -> None:
        """Empty and unparseable selectors raise ValueError."""
        with pytest.raises(ValueError):
            validate_css_selector(selector)

    def test_translation_is_descendant_scoped(self) -> None:
        """Translated XPath starts from the descendant axis."""
        assert css_to_xpath("p").startswith("descendant::")
