"""Extract tool - collect in-scope resource and link URLs from a parsed page."""

import logging
from urllib.parse import urldefrag, urljoin, urlparse

from .read_tool import ParsedPage

logger = logging.getLogger(__name__)


# (css selector, attribute holding the URL)
RESOURCE_MAPPING = frozenset({
    ("img[src]", "src"),
    ("link[href]", "href"),
    ("script[src]", "src"),
})
LINK_MAPPING = frozenset({
    ("a[href]", "href"),
})


def scope_prefix(root_url: str) -> str:
    """The root URL's directory: root resolved against '.'."""
    return urljoin(root_url, ".")


def _absolute_url(base: str, ref: str) -> str | None:
    """Resolve ref against base. None for empty, non-http(s) or malformed refs."""
    ref = ref.strip()
    if not ref:
        return None
    try:
        url, _ = urldefrag(urljoin(base, ref))
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return url


def extract_urls_in_scope(
    page: ParsedPage,
    mapping: frozenset[tuple[str, str]],
    scope: str,
) -> set[str]:
    """Absolute URLs selected by mapping whose lower-cased form starts with scope."""
    prefix = scope.lower()
    base = page.base_url
    urls: set[str] = set()
    for css, attr in mapping:
        for tag in page.document.select(css):
            value = tag.get(attr)
            if not isinstance(value, str):
                continue
            url = _absolute_url(base, value)
            if url is None:
                continue
            if url.lower().startswith(prefix):
                urls.add(url)
            else:
                logger.debug("Out of scope: %s", url)
    return urls


def extract_tool(page: ParsedPage, scope: str) -> tuple[set[str], set[str]]:
    """
    Split a page's references into (resources, links), both limited to scope.
    Resources come from img/link/script tags and are downloaded as files;
    links come from anchors and are crawled as pages.
    """
    resources = extract_urls_in_scope(page, RESOURCE_MAPPING, scope)
    links = extract_urls_in_scope(page, LINK_MAPPING, scope)
    return resources, links
