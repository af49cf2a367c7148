"""URL helpers for search templates, pagination and link resolution."""

import re
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlparse, urlunparse

QUERY_PLACEHOLDER = "{query}"
SEARCH_PARAM = "q"
_SEARCH_PARAM_RE = re.compile(r"\bq=")


def set_query_param(url: str, key: str, value: str) -> str:
    """Add or replace a query parameter, keeping the others in order."""
    parsed = urlparse(url)
    updated: list[tuple[str, str]] = []
    replaced = False
    for k, v in parse_qsl(parsed.query, keep_blank_values=True):
        if k == key:
            if not replaced:
                updated.append((k, value))
                replaced = True
            continue
        updated.append((k, v))
    if not replaced:
        updated.append((key, value))
    return urlunparse(parsed._replace(query=urlencode(updated)))


def build_search_url(template: str, query: str) -> str:
    """Substitute a search query into a competitor's search URL.

    A {query} placeholder is replaced with the URL-encoded query. Without a
    placeholder the q parameter carries the query: an empty q is filled, a
    non-empty q is kept as configured, and a missing q is appended.

    Args:
        template: Configured search URL.
        query: Free-text product query.

    Returns:
        Absolute search URL.
    """
    query = query.strip()
    if QUERY_PLACEHOLDER in template:
        return template.replace(QUERY_PLACEHOLDER, quote(query, safe=""))

    if _SEARCH_PARAM_RE.search(template):
        current = dict(parse_qsl(urlparse(template).query, keep_blank_values=True))
        if current.get(SEARCH_PARAM):
            return template

    return set_query_param(template, SEARCH_PARAM, query)


def absolutize(link: str | None, base_url: str) -> str | None:
    """Resolve a possibly relative link against a competitor's base URL."""
    if not link:
        return None
    if link.startswith(("http://", "https://")):
        return link
    return urljoin(base_url.rstrip("/") + "/", link)
