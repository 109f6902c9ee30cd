"""Declarative documentation-source configuration.

A DocSource describes where a documentation site keeps its navigation, its
entry anchors and the pieces of each entry (names, descriptions, examples,
parameters, returns, methods, properties), plus the regular expressions
used to classify entries and clean up extracted text. The crawler contains
no site-specific code; everything site-specific lives in one of these.

Sources are stored as JSON under ``configs/<name>.json`` with camelCase
keys::

    {
        "name": "Python",
        "baseUrl": "https://docs.python.org/3/",
        "indexUrl": "https://docs.python.org/3/library/index.html",
        "defaultLanguage": "python",
        "selectors": {"navigationLinks": ".toctree-wrapper a", ...},
        "patterns": {"isClass": "/^class\\\\s/", ...}
    }

Pattern fields accept a bare pattern string or a delimited literal
``/source/flags``. Selector fields are checked with cssselect at load time.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    PlainValidator,
    ValidationError,
)
from pydantic.alias_generators import to_camel

from docharvest.common.checked_html import validate_css_selector
from docharvest.common.exceptions import (
    ConfigNotFoundException,
    ConfigValidationException,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIGS_DIR = Path("configs")

_PATTERN_LITERAL = re.compile(r"^/(?P<source>.*)/(?P<flags>[a-z]*)$", re.DOTALL)
_PATTERN_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}
# Global, unicode, sticky and indices flags have no meaning for a single
# re.search() call.
_IGNORED_PATTERN_FLAGS = frozenset("guyd")


def compile_pattern(value: Any) -> re.Pattern[str]:
    """Compile a pattern field value.

    Args:
        value: A compiled pattern, a bare pattern string, or a delimited
            literal such as ``/^class\\s+(\\w+)/i``.

    Returns:
        The compiled pattern.

    Raises:
        ValueError: If the value is not a string, uses an unsupported flag,
            or is not a valid regular expression.
    """
    if isinstance(value, re.Pattern):
        return value
    if not isinstance(value, str):
        raise ValueError("pattern must be a string")

    source = value
    flags = 0
    literal = _PATTERN_LITERAL.match(value)
    if literal:
        source = literal.group("source")
        for flag in literal.group("flags"):
            if flag in _PATTERN_FLAGS:
                flags |= _PATTERN_FLAGS[flag]
            elif flag not in _IGNORED_PATTERN_FLAGS:
                raise ValueError(f"unsupported pattern flag {flag!r}")

    try:
        return re.compile(source, flags)
    except re.error as e:
        raise ValueError(f"invalid pattern {value!r}: {e}") from e


def pattern_to_literal(pattern: re.Pattern[str]) -> str:
    """Serialize a compiled pattern back to its ``/source/flags`` literal."""
    flags = "".join(
        letter
        for letter, flag in _PATTERN_FLAGS.items()
        if pattern.flags & flag
    )
    return f"/{pattern.pattern}/{flags}"


def _as_list(value: Any) -> Any:
    if isinstance(value, str):
        return [value]
    return value


Pattern = Annotated[
    re.Pattern,
    PlainValidator(compile_pattern),
    PlainSerializer(pattern_to_literal, return_type=str),
]
CssSelector = Annotated[str, AfterValidator(validate_css_selector)]
SelectorList = Annotated[list[CssSelector], BeforeValidator(_as_list)]


class _ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ExampleConfig(_ConfigModel):
    """Rich example descriptor.

    The language of each matched element starts at ``language`` (or the
    source's default language), is overridden by the ``language_attr``
    attribute when present and non-empty, and finally by the first class
    name that ``language_class`` matches (capture group 1).
    """

    selector: CssSelector
    language: str | None = None
    language_attr: str | None = None
    language_class: Pattern | None = None


class ParameterConfig(_ConfigModel):
    """Rich parameter descriptor.

    Sub-selectors are evaluated inside each element matched by
    ``selector``; patterns clean up what they find (capture group 1).
    """

    selector: CssSelector
    name_selector: CssSelector | None = None
    type_selector: CssSelector | None = None
    description_selector: CssSelector | None = None
    default_selector: CssSelector | None = None
    optional_pattern: Pattern | None = None
    name_pattern: Pattern | None = None
    type_pattern: Pattern | None = None
    default_pattern: Pattern | None = None
    rest_pattern: Pattern | None = None


# A descriptor is either a bare selector or the rich form.
ExampleDescriptor = CssSelector | ExampleConfig
ParameterDescriptor = CssSelector | ParameterConfig


class MethodSelectors(_ConfigModel):
    """Selectors for methods inside a class entry."""

    container: CssSelector
    name: CssSelector
    description: SelectorList = Field(default_factory=list)
    signature: CssSelector | None = None
    is_static: CssSelector | None = None
    is_private: CssSelector | None = None
    decorators: CssSelector | None = None


class PropertySelectors(_ConfigModel):
    """Selectors for properties inside a class entry."""

    container: CssSelector
    name: CssSelector
    description: SelectorList | None = None
    type: CssSelector | None = None
    default_value: CssSelector | None = None
    is_static: CssSelector | None = None
    is_private: CssSelector | None = None
    decorators: CssSelector | None = None


class Selectors(_ConfigModel):
    """CSS selectors locating navigation and entry content.

    Optional selectors that are absent switch the matching extraction step
    off entirely.
    """

    navigation_links: CssSelector
    sub_navigation_links: CssSelector | None = None
    content_links: CssSelector
    title: CssSelector
    name: CssSelector
    id: CssSelector | None = None
    description: SelectorList = Field(default_factory=list)
    examples: list[ExampleDescriptor] = Field(default_factory=list)
    parameters: list[ParameterDescriptor] | None = None
    # Parameters are read from the first match of this inside an entry.
    parameter_scope: CssSelector = "dt.sig"
    returns: CssSelector | None = None
    namespace: CssSelector | None = None
    signature: CssSelector | None = None
    methods: MethodSelectors | None = None
    properties: PropertySelectors | None = None


class Patterns(_ConfigModel):
    """Regular expressions for classifying entries and extracting text."""

    is_class: Pattern
    is_method: Pattern
    is_function: Pattern
    is_module: Pattern
    is_property: Pattern
    name_extract: Pattern
    id_extract: Pattern | None = None
    signature_clean: Pattern | None = None


class DocSource(_ConfigModel):
    """A validated, immutable documentation-source configuration."""

    name: str
    base_url: str
    index_url: str
    version: str | None = None
    default_language: str
    selectors: Selectors
    patterns: Patterns

    def to_json_dict(self) -> dict[str, Any]:
        """Dump in the same camelCase form the config files use."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def config_path_for(
    source_name: str, configs_dir: Path = DEFAULT_CONFIGS_DIR
) -> Path:
    return Path(configs_dir) / f"{source_name}.json"


def load_source(
    source_name: str, configs_dir: Path = DEFAULT_CONFIGS_DIR
) -> DocSource:
    """Load and validate the configuration for a source.

    Args:
        source_name: Short source name, e.g. ``"python"``.
        configs_dir: Directory holding ``<source_name>.json`` files.

    Returns:
        The validated DocSource.

    Raises:
        ConfigNotFoundException: If the config file does not exist.
        ConfigValidationException: If the file is not valid JSON or does not
            match the schema.
    """
    config_path = config_path_for(source_name, configs_dir)
    if not config_path.is_file():
        raise ConfigNotFoundException(source_name, str(config_path))

    logger.debug(f"Loading source config {config_path}")
    try:
        return DocSource.model_validate_json(
            config_path.read_text(encoding="utf-8")
        )
    except ValidationError as e:
        raise ConfigValidationException(
            errors=[dict(err) for err in e.errors()],
            source_name=source_name,
            config_path=str(config_path),
        ) from e


def list_sources(configs_dir: Path = DEFAULT_CONFIGS_DIR) -> list[str]:
    """Return the names of all sources with a config file, sorted."""
    configs_dir = Path(configs_dir)
    if not configs_dir.is_dir():
        return []
    return sorted(path.stem for path in configs_dir.glob("*.json"))
