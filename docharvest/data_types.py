"""Data types for extracted documentation entries.

An Entry is one structured documentation record (a class, method,
function, module or property) produced by the extraction engine. Entries and
their sub-records are pydantic models so that a crawl's output and its
checkpoints serialize to, and validate from, the same camelCase JSON shape.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class EntryType(str, Enum):
    """Kind of documentation entry.

    The order of the members is the classification priority: an element
    matching several patterns is given the first type that matches.
    """

    CLASS = "class"
    METHOD = "method"
    FUNCTION = "function"
    MODULE = "module"
    PROPERTY = "property"


class DocModel(BaseModel):
    """Base class for output records: camelCase JSON, snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_json_dict(self) -> dict[str, Any]:
        """Dump for JSON output, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Parameter(DocModel):
    """A parameter of a function, method or class constructor.

    ``optional`` is true whenever a default value was found.
    """

    name: str
    type: str | None = None
    description: str = ""
    optional: bool = False
    default: str | None = None
    is_rest: bool = False


class ReturnType(DocModel):
    type: str | None = None
    description: str | None = None


class Example(DocModel):
    """A code example; ``language`` is always resolved to a concrete value."""

    code: str
    language: str
    description: str | None = None


class Method(DocModel):
    """A method found inside a class entry.

    The optional flags and lists are only set when the source configures
    the matching selector.
    """

    name: str
    description: list[str]
    signature: str | None = None
    parameters: list[Parameter] | None = None
    returns: ReturnType | None = None
    is_static: bool | None = None
    is_private: bool | None = None
    decorators: list[str] | None = None


class Property(DocModel):
    """A property found inside a class entry."""

    name: str
    description: list[str]
    type: str | None = None
    default_value: str | None = None
    is_static: bool | None = None
    is_private: bool | None = None
    decorators: list[str] | None = None


class EntrySource(DocModel):
    """Where an entry came from.

    Attributes:
        name: Name of the source configuration.
        url: Absolute URL of the entry, fragment included.
        normalized_url: ``url`` without its fragment.
        version: Documentation version from the source configuration.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    name: str
    url: str
    normalized_url: str
    version: str | None = None


class Entry(DocModel):
    """One structured documentation record.

    Attributes:
        id: Dot-delimited hierarchical identifier.
        type: Entry kind, fixed at extraction time.
        namespace: Enclosing scope names, outermost first.
        name: Entry name extracted with the source's name pattern.
        title: First text collected by the title selector.
        description: Collected description paragraphs.
        signature: Cleaned signature text, if configured and found.
        source: Provenance of the entry.
        examples: Code examples, possibly empty.
        parameters: Parameters, if any were found.
        returns: Return information, if found.
        methods: Methods of a class entry, if any were found.
        properties: Properties of a class entry, if any were found.
        scraped_at: When the entry was extracted (UTC).
        parent: Id of the parent entry, set by the hierarchy builder.
        children: Ids of child entries, set by the hierarchy builder.
    """

    id: str
    type: EntryType
    namespace: list[str]
    name: str
    title: str
    description: list[str]
    signature: str | None = None
    source: EntrySource
    examples: list[Example]
    parameters: list[Parameter] | None = None
    returns: ReturnType | None = None
    methods: list[Method] | None = None
    properties: list[Property] | None = None
    scraped_at: datetime
    parent: str | None = None
    children: list[str] | None = None
