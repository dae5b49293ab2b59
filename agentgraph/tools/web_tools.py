"""
Web tools over aiohttp: plain page fetch and a DuckDuckGo HTML search that
returns result snippets. Both use a timeout and return error text instead
of raising.
"""

import asyncio
import html
import logging
import re
from urllib.parse import urlparse

import aiohttp

from agentgraph.shared.config import ToolConfig
from agentgraph.tools.base import FunctionTool
from agentgraph.tools.tool_schemas import WebFetchArgs, WebSearchArgs

logger = logging.getLogger(__name__)

SEARCH_URL = "https://duckduckgo.com/html/"
NO_RESULTS = "No search results found"

_SNIPPET_RE = re.compile(r'<a[^>]*class="result__snippet"[^>]*>(.*?)</a>', re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")


class WebFetchTool:
    """Fetch a page's text."""

    def __init__(self, timeout_seconds: float = 10.0, max_chars: int = 10_000):
        self.timeout = timeout_seconds
        self.max_chars = max_chars

    async def fetch(self, url: str) -> str:
        if urlparse(url).scheme not in ("http", "https"):
            return f"Only http(s) URLs are supported: {url}"

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(url, timeout=aiohttp.ClientTimeout(total=self.timeout)) as resp:
                    if resp.status != 200:
                        return f"HTTP {resp.status} fetching {url}"
                    text = await resp.text()
        except aiohttp.ClientError as e:
            logger.error(f"web_fetch error: {e}")
            return f"Fetch failed for {url}: {e}"
        except asyncio.TimeoutError:
            return f"Fetch timed out after {self.timeout}s: {url}"

        # Truncate to prevent token overflow
        return text[:self.max_chars]

    def as_tool(self) -> FunctionTool:
        return FunctionTool(
            "web_fetch",
            f"Fetch the text of a web page (first {self.max_chars} characters).",
            self.fetch,
            WebFetchArgs,
        )


def extract_snippets(page: str, limit: int) -> list[str]:
    snippets = []
    for match in _SNIPPET_RE.finditer(page):
        text = html.unescape(_TAG_RE.sub("", match.group(1))).strip()
        if text:
            snippets.append(text)
        if len(snippets) >= limit:
            break
    return snippets


class WebSearchTool:
    """Search the web and return the top result snippets."""

    def __init__(self, timeout_seconds: float = 10.0, max_results: int = 5, search_url: str = SEARCH_URL):
        self.timeout = timeout_seconds
        self.max_results = max_results
        self.search_url = search_url

    async def search(self, query: str = "") -> str:
        query = (query or "").strip()
        if not query:
            return "Missing required 'query' argument for web_search"

        logger.info(f"web_search: {query!r}")
        try:
            async with aiohttp.ClientSession(headers={"User-Agent": "Mozilla/5.0 (agentgraph)"}) as session:
                async with session.get(
                    self.search_url,
                    params={"q": query},
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as resp:
                    if resp.status != 200:
                        return f"HTTP {resp.status} searching for {query!r}"
                    page = await resp.text()
        except aiohttp.ClientError as e:
            logger.error(f"web_search error: {e}")
            return f"Search failed for {query!r}: {e}"
        except asyncio.TimeoutError:
            return f"Search timed out after {self.timeout}s: {query!r}"

        snippets = extract_snippets(page, self.max_results)
        if not snippets:
            return NO_RESULTS
        return "\n".join(f"{i}. {s}" for i, s in enumerate(snippets, 1))

    def as_tool(self) -> FunctionTool:
        return FunctionTool(
            "web_search",
            "Search the web for current information such as news, weather or other time-sensitive facts.",
            self.search,
            WebSearchArgs,
        )


def create_web_fetch_tool(config: ToolConfig) -> FunctionTool:
    return WebFetchTool(config.fetch_timeout_seconds, config.fetch_max_chars).as_tool()


def create_web_search_tool(config: ToolConfig) -> FunctionTool:
    return WebSearchTool(config.fetch_timeout_seconds).as_tool()
