"""Web search over DuckDuckGo Lite.

Never raises: on failure or an empty result page a single placeholder
result is returned, so callers always receive a list of the same shape.
"""

import html
import logging
import re
import urllib.parse

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

LITE_URL = "https://lite.duckduckgo.com/lite/"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

NO_RESULTS_TITLE = "No results found"
SEARCH_ERROR_TITLE = "Search Error"
NO_DESCRIPTION = "No description available"

_LINK_PATTERN = re.compile(
    r"<a[^>]+class=['\"]result-link['\"][^>]*>.*?</a>",
    re.IGNORECASE | re.DOTALL,
)
_HREF_PATTERN = re.compile(r"href=['\"]([^'\"]+)['\"]", re.IGNORECASE)
_SNIPPET_PATTERN = re.compile(
    r"<td[^>]+class=['\"]result-snippet['\"][^>]*>(.*?)</td>",
    re.IGNORECASE | re.DOTALL,
)

_AD_MARKERS = (
    "duckduckgo.com/l/",
    "duckduckgo.com/y.js",
    "ad_domain=",
    "bing.com/aclick",
    "doubleclick.net",
    "googleadservices",
)


class WebSearchResult(BaseModel):
    """A single web search hit."""

    title: str
    snippet: str
    url: str = ""


def _strip_tags(fragment: str) -> str:
    text = re.sub(r"<[^>]+>", " ", fragment)
    text = html.unescape(text)
    return re.sub(r"\s+", " ", text).strip()


def _unwrap_redirect(href: str) -> str:
    """Extract the target URL from a DuckDuckGo redirect link.

    Returns an empty string for hrefs that cannot be parsed as URLs.
    """
    href = html.unescape(href)
    try:
        parsed = urllib.parse.urlparse(href)
    except ValueError as e:
        logger.debug(f"Ignoring malformed result link {href!r}: {e}")
        return ""
    target = urllib.parse.parse_qs(parsed.query).get("uddg")
    if target:
        return target[0]
    if href.startswith("//"):
        return f"https:{href}"
    return href


def _is_ad_url(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in _AD_MARKERS)


def parse_lite_results(page: str, max_results: int) -> list[WebSearchResult]:
    """Parse result links and snippets from a DuckDuckGo Lite page.

    Links and snippets appear in document order, one snippet per result.

    Args:
        page: Raw HTML.
        max_results: Maximum results to return.

    Returns:
        Parsed results, de-duplicated by URL.
    """
    links = _LINK_PATTERN.findall(page)
    snippets = _SNIPPET_PATTERN.findall(page)

    results: list[WebSearchResult] = []
    seen_urls: set[str] = set()
    for i, anchor in enumerate(links):
        if len(results) >= max_results:
            break
        href_match = _HREF_PATTERN.search(anchor)
        url = _unwrap_redirect(href_match.group(1)) if href_match else ""
        title = _strip_tags(anchor)
        if not url or not title or _is_ad_url(url) or url in seen_urls:
            continue

        snippet = _strip_tags(snippets[i]) if i < len(snippets) else ""
        seen_urls.add(url)
        results.append(
            WebSearchResult(
                title=title[:200],
                snippet=snippet[:500] or NO_DESCRIPTION,
                url=url,
            )
        )
    return results


class WebSearchClient:
    """Async DuckDuckGo Lite search client."""

    def __init__(self, http_client: httpx.AsyncClient, timeout: float = 15.0) -> None:
        self._http = http_client
        self._timeout = timeout

    async def search(self, query: str, max_results: int = 5) -> list[WebSearchResult]:
        """Search the web.

        Args:
            query: Search query.
            max_results: Maximum number of results.

        Returns:
            Up to max_results results, or a single placeholder result when
            nothing was found or the request failed.
        """
        logger.info(f"Searching the web for: {query}")
        try:
            response = await self._http.get(
                LITE_URL,
                params={"q": query},
                headers={"User-Agent": USER_AGENT, "Accept": "text/html"},
                timeout=self._timeout,
            )
            response.raise_for_status()
            results = parse_lite_results(response.text, max_results)
        except httpx.HTTPError as e:
            logger.error(f"Web search failed for {query!r}: {e}")
            return [
                WebSearchResult(
                    title=SEARCH_ERROR_TITLE,
                    snippet=f"Unable to perform web search: {e}. Please try again later.",
                )
            ]

        logger.info(f"Found {len(results)} web results")
        if not results:
            return [
                WebSearchResult(
                    title=NO_RESULTS_TITLE,
                    snippet=f'Unable to find search results for "{query}". Please try rephrasing your query.',
                )
            ]
        return results
