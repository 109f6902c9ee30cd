"""Exception types for crawl and extraction errors.

This module defines the exception hierarchy used across docharvest. Errors
fall into two families:

- Recoverable: a page could not be fetched or parsed. The driver logs these
  and moves on; the page simply contributes no entries or links.
- Fatal: the crawl cannot continue (index page unavailable, corrupt
  checkpoint, missing or invalid source configuration).
"""

from typing import Any


class ScraperAssumptionException(Exception):
    """Base class for violated assumptions about a documentation site.

    A source configuration encodes assumptions about how a site is laid
    out. When those assumptions are violated, raise a subclass with enough
    context to diagnose the problem.
    """

    def __init__(
        self,
        message: str,
        request_url: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the assumption violation.
            request_url: The URL (or config path) that triggered this error.
            context: Optional dict of additional context (selector, counts, etc).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLStructuralAssumptionException(ScraperAssumptionException):
    """Raised when a CSS selector cannot be evaluated or matches the wrong count.

    Attributes:
        selector: The CSS selector that was used.
        description: What the selector was meant to find.
        expected_min: Minimum number of elements expected.
        expected_max: Maximum number of elements expected (None = unlimited).
        actual_count: Number of elements actually found.
    """

    def __init__(
        self,
        selector: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        request_url: str,
    ) -> None:
        self.selector = selector
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        if expected_max is None:
            expected_str = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected_str = f"exactly {expected_min}"
        else:
            expected_str = f"between {expected_min} and {expected_max}"

        message = (
            f"HTML structure mismatch: Expected {expected_str} "
            f"elements for '{description}', but found {actual_count}"
        )

        context = {
            "selector": selector,
            "expected_min": expected_min,
            "expected_max": expected_max
            if expected_max is not None
            else "unlimited",
            "actual_count": actual_count,
        }

        super().__init__(message, request_url, context)


class ConfigValidationException(ScraperAssumptionException):
    """Raised when a source configuration does not match the DocSource schema.

    Attributes:
        errors: List of pydantic validation errors.
        source_name: Short name of the source being loaded.
    """

    def __init__(
        self,
        errors: list[dict[str, Any]],
        source_name: str,
        config_path: str,
    ) -> None:
        self.errors = errors
        self.source_name = source_name

        error_summary = ", ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in errors
        )
        message = (
            f"Invalid configuration for source '{source_name}': "
            f"{error_summary}"
        )

        context = {
            "source": source_name,
            "error_count": len(errors),
        }

        super().__init__(message, config_path, context)


class ConfigNotFoundException(Exception):
    """Raised when no configuration file exists for a source name."""

    def __init__(self, source_name: str, config_path: str) -> None:
        self.source_name = source_name
        self.config_path = config_path
        super().__init__(
            f"No configuration for source '{source_name}' at {config_path}"
        )


# =============================================================================
# Page availability
# =============================================================================


class PageUnavailableException(Exception):
    """Base class for the definitive "this page is unavailable" signal.

    Raised by the page source when a URL cannot be turned into a parsed
    document: network failures, non-success responses, empty bodies. The
    driver treats these as recoverable for every page except the index.

    Attributes:
        url: The URL that could not be loaded.
        message: Human-readable error message.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        self.message = message
        super().__init__(message)


class HTMLResponseAssumptionException(PageUnavailableException):
    """Raised when the HTTP response has a non-success status code.

    Attributes:
        status_code: The actual HTTP status code received.
    """

    def __init__(self, status_code: int, url: str) -> None:
        self.status_code = status_code
        super().__init__(url, f"HTTP {status_code} from {url}")


class RequestTimeoutException(PageUnavailableException):
    """Raised when a request times out.

    Attributes:
        timeout_seconds: The timeout duration in seconds, if known.
    """

    def __init__(self, url: str, timeout_seconds: float | None) -> None:
        self.timeout_seconds = timeout_seconds
        if timeout_seconds is None:
            message = f"Request to {url} timed out"
        else:
            message = f"Request to {url} timed out after {timeout_seconds}s"
        super().__init__(url, message)


class RequestTransportException(PageUnavailableException):
    """Raised when the connection fails before a response arrives."""

    def __init__(self, url: str, reason: str) -> None:
        self.reason = reason
        super().__init__(url, f"Request to {url} failed: {reason}")


class UnparseablePageException(PageUnavailableException):
    """Raised when a response body cannot be parsed as an HTML document."""

    def __init__(self, url: str, reason: str) -> None:
        self.reason = reason
        super().__init__(url, f"Could not parse {url}: {reason}")


# =============================================================================
# Fatal crawl errors
# =============================================================================


class IndexPageUnavailableException(Exception):
    """Raised when the index page cannot be fetched while seeding the crawl.

    The crawl has no starting set without it, so this always aborts.
    """

    def __init__(self, url: str, cause: PageUnavailableException) -> None:
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to fetch index page {url}: {cause.message}")


class CheckpointCorruptException(Exception):
    """Raised when a checkpoint file exists but cannot be restored.

    Restoring must not silently discard partial progress, so callers
    should stop rather than start a fresh crawl over the old checkpoint.
    """

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to restore checkpoint {path}: {reason}")
