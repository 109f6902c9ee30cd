"""Schema-driven extraction engine.

Turns one parsed page plus a DocSource into entries and outbound links.
Everything here is a pure function of its inputs: no I/O, no shared state.

Every optional selector in the source configuration gates one extraction
step; when the selector is absent the step is skipped silently. Regex
"cleanup" patterns always read capture group 1 and fall back to the
uncleaned text when they do not match, except for the name patterns, where
a miss skips the entry (or parameter) altogether.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from typing_extensions import assert_never

from docharvest.common.page_element import PageElement
from docharvest.common.urls import normalize_url, resolve_url
from docharvest.config import (
    DocSource,
    ExampleConfig,
    ParameterConfig,
    Patterns,
)
from docharvest.data_types import (
    Entry,
    EntrySource,
    EntryType,
    Example,
    Method,
    Parameter,
    Property,
    ReturnType,
)

logger = logging.getLogger(__name__)

REST_MARKER = "*"
_OPTIONAL_MARKER_TAIL = re.compile(r"[=?].*\Z", re.DOTALL)
_LEADING_REST_MARKERS = re.compile(r"^\*+")


@dataclass(frozen=True)
class PageExtraction:
    """Everything extracted from one page."""

    entries: list[Entry]
    links: list[str]


# =============================================================================
# Text helpers
# =============================================================================


def first_group(pattern: re.Pattern[str], text: str) -> str | None:
    """Search ``text`` and return capture group 1.

    A pattern without groups, a group that did not participate, or an empty
    capture all count as no match.
    """
    if pattern.groups < 1:
        return None
    match = pattern.search(text)
    if match is None:
        return None
    return match.group(1) or None


def _query(
    scope: PageElement, selector: str, description: str
) -> list[PageElement]:
    return scope.query_css(selector, description, min_count=0)


def _joined_text(scope: PageElement, selector: str, description: str) -> str:
    """Concatenated text of every match, trimmed."""
    return "".join(
        element.text_content() for element in _query(scope, selector, description)
    ).strip()


def _has_match(scope: PageElement, selector: str | None) -> bool | None:
    if selector is None:
        return None
    return bool(_query(scope, selector, "presence marker"))


def extract_text(
    scope: PageElement, selectors: str | Sequence[str]
) -> list[str]:
    """Collect trimmed, non-empty texts for an ordered list of selectors.

    Every selector contributes every match, in selector order and then
    document order. This is not first-match-wins: a primary selector and a
    fallback selector both add their text when both match.
    """
    if isinstance(selectors, str):
        selectors = [selectors]

    texts: list[str] = []
    for selector in selectors:
        for element in _query(scope, selector, "text block"):
            text = element.text_content().strip()
            if text:
                texts.append(text)
    return texts


# =============================================================================
# Page level
# =============================================================================


def extract_links(page: PageElement, source: DocSource) -> list[str]:
    """Collect crawlable links from a page.

    Navigation links, then sub-navigation links (if configured), then
    content links; each resolved against the page URL with its fragment
    removed. Duplicates are dropped, keeping the first occurrence.
    """
    selectors = source.selectors
    link_selectors = [selectors.navigation_links]
    if selectors.sub_navigation_links is not None:
        link_selectors.append(selectors.sub_navigation_links)
    link_selectors.append(selectors.content_links)

    urls: list[str] = []
    for selector in link_selectors:
        urls.extend(
            link.url
            for link in page.find_links(selector, "crawl links", min_count=0)
        )
    return list(dict.fromkeys(urls))


def extract_namespace(page: PageElement, source: DocSource) -> list[str]:
    """Read the page-level namespace, outermost scope first."""
    if source.selectors.namespace is None:
        return []
    return extract_text(page, source.selectors.namespace)


def determine_type(element: PageElement, patterns: Patterns) -> EntryType | None:
    """Classify an element by its full text.

    Patterns are tried in the fixed priority order class, method, function,
    module, property; the first that matches wins.
    """
    text = element.text_content()
    candidates = (
        (EntryType.CLASS, patterns.is_class),
        (EntryType.METHOD, patterns.is_method),
        (EntryType.FUNCTION, patterns.is_function),
        (EntryType.MODULE, patterns.is_module),
        (EntryType.PROPERTY, patterns.is_property),
    )
    for entry_type, pattern in candidates:
        if pattern.search(text):
            return entry_type
    return None


def extract_entries(
    page: PageElement,
    source: DocSource,
    scraped_at: datetime | None = None,
) -> list[Entry]:
    """Extract every entry on a page.

    Args:
        page: Root element of the parsed page.
        source: Source configuration.
        scraped_at: Timestamp stamped on every entry; now (UTC) by default.

    Returns:
        Entries in document order. Elements that cannot be classified or
        named are skipped.
    """
    if scraped_at is None:
        scraped_at = datetime.now(timezone.utc)

    namespace = extract_namespace(page, source)
    entries: list[Entry] = []
    for element in _query(page, source.selectors.content_links, "entries"):
        entry = extract_entry(element, source, namespace, scraped_at)
        if entry is not None:
            entries.append(entry)
    return entries


def extract_page(
    page: PageElement,
    source: DocSource,
    scraped_at: datetime | None = None,
) -> PageExtraction:
    """Extract entries and outbound links from a page."""
    return PageExtraction(
        entries=extract_entries(page, source, scraped_at),
        links=extract_links(page, source),
    )


# =============================================================================
# Entry level
# =============================================================================


def extract_entry(
    element: PageElement,
    source: DocSource,
    namespace: list[str],
    scraped_at: datetime,
) -> Entry | None:
    """Build an Entry from one content element.

    Args:
        element: Element matched by the ``content_links`` selector.
        source: Source configuration.
        namespace: Namespace inherited from the page.
        scraped_at: Timestamp for the entry.

    Returns:
        The entry, or None when the element matches no type pattern or its
        name cannot be extracted.
    """
    selectors = source.selectors

    entry_type = determine_type(element, source.patterns)
    if entry_type is None:
        return None

    name = _extract_name(element, source)
    if name is None:
        return None

    url = _entry_url(element)

    titles = extract_text(element, selectors.title)

    methods: list[Method] | None = None
    properties: list[Property] | None = None
    if entry_type is EntryType.CLASS:
        methods = extract_methods(element, source) or None
        properties = extract_properties(element, source) or None

    return Entry(
        id=_extract_id(element, source, namespace, name),
        type=entry_type,
        namespace=namespace,
        name=name,
        title=titles[0] if titles else "",
        description=extract_text(element, selectors.description),
        signature=_extract_signature(element, source),
        source=EntrySource(
            name=source.name,
            url=url,
            normalized_url=normalize_url(url),
            version=source.version,
        ),
        examples=extract_examples(element, source),
        parameters=extract_parameters(element, source) or None,
        returns=extract_returns(element, source),
        methods=methods,
        properties=properties,
        scraped_at=scraped_at,
    )


def _entry_url(element: PageElement) -> str:
    href = element.get_attribute("href")
    if not href:
        return element.url
    try:
        url = resolve_url(element.url, href)
        normalize_url(url)
    except ValueError as e:
        logger.debug(
            f"Unresolvable entry href {href!r}, using page URL: {e}",
            extra={"url": element.url, "href": href},
        )
        return element.url
    return url


def _extract_name(element: PageElement, source: DocSource) -> str | None:
    name_elements = _query(element, source.selectors.name, "entry name")
    name_text = (
        name_elements[0].text_content().strip()
        if name_elements
        else element.text_content().strip()
    )

    name = first_group(source.patterns.name_extract, name_text)
    if name is None:
        logger.warning(
            f"Could not extract name from {name_text!r} using pattern "
            f"{source.patterns.name_extract.pattern!r}",
            extra={"url": element.url},
        )
    return name


def _extract_id(
    element: PageElement,
    source: DocSource,
    namespace: list[str],
    name: str,
) -> str:
    dotted = ".".join([*namespace, name])
    if source.selectors.id is None:
        return dotted

    id_elements = _query(element, source.selectors.id, "entry id")
    id_text = id_elements[0].text_content().strip() if id_elements else ""

    if source.patterns.id_extract is not None:
        return first_group(source.patterns.id_extract, id_text) or dotted
    return id_text or dotted


def _extract_signature(element: PageElement, source: DocSource) -> str | None:
    if source.selectors.signature is None:
        return None

    if not _query(element, source.selectors.signature, "signature"):
        return None
    signature = _joined_text(element, source.selectors.signature, "signature")

    if source.patterns.signature_clean is not None:
        signature = (
            first_group(source.patterns.signature_clean, signature)
            or signature
        )
    return signature


# =============================================================================
# Sub-extraction
# =============================================================================


def extract_examples(scope: PageElement, source: DocSource) -> list[Example]:
    """Collect code examples from every configured descriptor.

    Descriptors are independent: each contributes one example per matched
    element.
    """
    examples: list[Example] = []
    for descriptor in source.selectors.examples:
        match descriptor:
            case str():
                for element in _query(scope, descriptor, "code example"):
                    examples.append(
                        Example(
                            code=element.text_content().strip(),
                            language=source.default_language,
                        )
                    )
            case ExampleConfig():
                for element in _query(
                    scope, descriptor.selector, "code example"
                ):
                    examples.append(
                        Example(
                            code=element.text_content().strip(),
                            language=_example_language(
                                element, descriptor, source.default_language
                            ),
                        )
                    )
            case _:
                assert_never(descriptor)
    return examples


def _example_language(
    element: PageElement, descriptor: ExampleConfig, default_language: str
) -> str:
    # Precedence, lowest first: descriptor/default, attribute, class name.
    language = descriptor.language or default_language

    if descriptor.language_attr:
        attr_language = element.get_attribute(descriptor.language_attr)
        if attr_language:
            language = attr_language

    if descriptor.language_class is not None:
        for class_name in element.class_list():
            class_language = first_group(descriptor.language_class, class_name)
            if class_language:
                language = class_language
                break

    return language


def extract_parameters(scope: PageElement, source: DocSource) -> list[Parameter]:
    """Extract parameters from the first signature-like element in scope.

    Returns an empty list when parameters are not configured or the scope
    has no element matching ``parameter_scope``.
    """
    descriptors = source.selectors.parameters
    if not descriptors:
        return []

    signatures = _query(
        scope, source.selectors.parameter_scope, "parameter scope"
    )
    if not signatures:
        return []
    signature = signatures[0]

    parameters: list[Parameter] = []
    for descriptor in descriptors:
        match descriptor:
            case str():
                for element in _query(signature, descriptor, "parameter"):
                    name = element.text_content().strip()
                    if name:
                        parameters.append(
                            Parameter(
                                name=name,
                                is_rest=name.startswith(REST_MARKER),
                            )
                        )
            case ParameterConfig():
                for element in _query(
                    signature, descriptor.selector, "parameter"
                ):
                    parameter = _extract_parameter(element, descriptor)
                    if parameter is not None:
                        parameters.append(parameter)
            case _:
                assert_never(descriptor)
    return parameters


def _extract_parameter(
    element: PageElement, config: ParameterConfig
) -> Parameter | None:
    if config.name_selector is not None:
        name = _joined_text(element, config.name_selector, "parameter name")
    else:
        name = element.text_content().strip()

    if config.name_pattern is not None:
        matched_name = first_group(config.name_pattern, name)
        if matched_name is None:
            logger.debug(
                f"Skipping parameter {name!r}: no match for "
                f"{config.name_pattern.pattern!r}",
                extra={"url": element.url},
            )
            return None
        name = matched_name

    if config.rest_pattern is not None:
        is_rest = bool(config.rest_pattern.search(name))
    else:
        is_rest = name.startswith(REST_MARKER)

    param_type: str | None = None
    if config.type_selector is not None:
        param_type = (
            _joined_text(element, config.type_selector, "parameter type")
            or None
        )
        if param_type and config.type_pattern is not None:
            param_type = first_group(config.type_pattern, param_type) or param_type

    default: str | None = None
    if config.default_selector is not None:
        default = (
            _joined_text(element, config.default_selector, "parameter default")
            or None
        )
        if default and config.default_pattern is not None:
            default = first_group(config.default_pattern, default) or default

    description = ""
    if config.description_selector is not None:
        description = _joined_text(
            element, config.description_selector, "parameter description"
        )

    # A default always makes the parameter optional; the pattern can only
    # add optionality, never remove it.
    optional = default is not None
    if config.optional_pattern is not None:
        optional = optional or bool(config.optional_pattern.search(name))

    name = _OPTIONAL_MARKER_TAIL.sub("", name).strip()
    if is_rest:
        name = _LEADING_REST_MARKERS.sub("", name)
    if not name:
        return None

    return Parameter(
        name=name,
        type=param_type,
        description=description,
        optional=optional,
        default=default,
        is_rest=is_rest,
    )


def extract_returns(scope: PageElement, source: DocSource) -> ReturnType | None:
    """Read the first ``returns`` match in scope; empty text means none."""
    if source.selectors.returns is None:
        return None

    matches = _query(scope, source.selectors.returns, "return type")
    if not matches:
        return None
    return_text = matches[0].text_content().strip()
    if not return_text:
        return None
    return ReturnType(type=return_text)


def extract_methods(scope: PageElement, source: DocSource) -> list[Method]:
    """Extract methods from each configured method container in scope.

    Containers without a name are skipped. Parameters and returns are
    extracted the same way as for top-level entries, scoped to the
    container.
    """
    selectors = source.selectors.methods
    if selectors is None:
        return []

    methods: list[Method] = []
    for container in _query(scope, selectors.container, "method container"):
        name = _joined_text(container, selectors.name, "method name")
        if not name:
            continue

        methods.append(
            Method(
                name=name,
                description=extract_text(container, selectors.description),
                signature=_joined_text(
                    container, selectors.signature, "method signature"
                )
                if selectors.signature is not None
                else None,
                parameters=extract_parameters(container, source) or None,
                returns=extract_returns(container, source),
                is_static=_has_match(container, selectors.is_static),
                is_private=_has_match(container, selectors.is_private),
                decorators=extract_text(container, selectors.decorators)
                if selectors.decorators is not None
                else None,
            )
        )
    return methods


def extract_properties(scope: PageElement, source: DocSource) -> list[Property]:
    """Extract properties from each configured property container in scope."""
    selectors = source.selectors.properties
    if selectors is None:
        return []

    properties: list[Property] = []
    for container in _query(scope, selectors.container, "property container"):
        name = _joined_text(container, selectors.name, "property name")
        if not name:
            continue

        properties.append(
            Property(
                name=name,
                description=extract_text(container, selectors.description)
                if selectors.description is not None
                else [],
                type=_joined_text(container, selectors.type, "property type")
                if selectors.type is not None
                else None,
                default_value=_joined_text(
                    container, selectors.default_value, "property default"
                )
                if selectors.default_value is not None
                else None,
                is_static=_has_match(container, selectors.is_static),
                is_private=_has_match(container, selectors.is_private),
                decorators=extract_text(container, selectors.decorators)
                if selectors.decorators is not None
                else None,
            )
        )
    return properties
