"""URL helpers shared by the extraction engine and the crawl driver."""

from urllib.parse import urldefrag, urljoin


def normalize_url(url: str) -> str:
    """Strip the fragment from a URL.

    The normalized form is the deduplication key for visited tracking.
    Normalizing twice gives the same result as normalizing once.

    Examples:
        >>> normalize_url("https://docs.example.com/api.html#Widget.run")
        'https://docs.example.com/api.html'
        >>> normalize_url("https://docs.example.com/api.html")
        'https://docs.example.com/api.html'
    """
    return urldefrag(url).url


def resolve_url(base_url: str, href: str) -> str:
    """Resolve an href against the URL of the page it appeared on.

    The fragment is kept; callers that need a deduplication key should pass
    the result through normalize_url(). Raises ValueError for hrefs that
    urllib cannot split, such as a malformed IPv6 host.
    """
    return urljoin(base_url, href.strip())
