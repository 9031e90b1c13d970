"""Tools that reach outside the vault: single page fetches and web research."""

from __future__ import annotations

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncIterator
from urllib.parse import quote, unquote

import httpx

from ...chat.message_model import MessageKind, ResearchResult
from .base import BaseTool, ToolContext
from .errors import ErrorCode, ToolError
from .tool_registry import ToolName

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
TRUNCATION_MARKER = "\n\n[truncated]"
RESEARCH_LINK_LIMIT = 10
RESEARCH_FETCH_LIMIT = 5
RESEARCH_SNIPPET_CHARS = 3000
_RESULT_LINK = re.compile(r"/url\?q=(https?://[^&\"]+)")
_WHITESPACE = re.compile(r"\s+")
_SCHEME = re.compile(r"^https?://")


@asynccontextmanager
async def _http(context: ToolContext) -> AsyncIterator[httpx.AsyncClient]:
    if context.http_client is not None:
        yield context.http_client
        return
    async with httpx.AsyncClient(follow_redirects=True, timeout=DEFAULT_TIMEOUT) as client:
        yield client


class FetchUrlTool(BaseTool):
    """Plain GET returning the decoded body, truncated for the model."""

    name = ToolName.FETCH_URL

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        url = arguments["url"]
        try:
            async with _http(context) as client:
                response = await client.get(url)
                text = response.text
        except Exception as exc:
            raise ToolError(
                error_code=ErrorCode.NETWORK_ERROR,
                message=f"Error fetching {url}: {_describe(exc)}",
            ) from exc
        limit = context.fetch_char_limit
        body = text[:limit] + TRUNCATION_MARKER if len(text) > limit else text
        context.tool_log(f"fetch_url {url}")
        return f"Fetched {url}:\n\n{body}"


class ResearchTool(BaseTool):
    """Search through a text-extraction proxy and read the top results."""

    name = ToolName.RESEARCH

    async def execute(self, context: ToolContext, arguments: dict[str, str]) -> str:
        query = arguments["query"]
        try:
            async with _http(context) as client:
                links = await self._search(client, context.research_proxy_url, query)
                results = [
                    await self._read(client, context.research_proxy_url, link)
                    for link in links[:RESEARCH_FETCH_LIMIT]
                ]
        except Exception as exc:
            raise ToolError(
                error_code=ErrorCode.NETWORK_ERROR,
                message=f"Research failed: {_describe(exc)}",
            ) from exc

        context.post(
            f'Research results for "{query}":',
            MessageKind.RESEARCH,
            research_results=tuple(results),
        )
        context.tool_log(f"research query={query}")
        body = "\n---\n".join(f"- {result.url}\n  {result.snippet}" for result in results)
        return f'Research results for "{query}":\n\n{body}'

    async def _search(self, client: httpx.AsyncClient, proxy: str, query: str) -> list[str]:
        search_url = f"{proxy}http://www.google.com/search?q={quote(query, safe='')}&num=10"
        response = await client.get(search_url)
        if not response.is_success:
            raise RuntimeError("Search fetch failed")
        links: list[str] = []
        for match in _RESULT_LINK.finditer(response.text):
            if len(links) >= RESEARCH_LINK_LIMIT:
                break
            link = unquote(match.group(1))
            if link not in links:
                links.append(link)
        LOGGER.debug("Research query %r yielded %d links", query, len(links))
        return links

    async def _read(self, client: httpx.AsyncClient, proxy: str, url: str) -> ResearchResult:
        proxied = f"{proxy}http://{_SCHEME.sub('', url)}"
        try:
            response = await client.get(proxied)
        except Exception as exc:
            LOGGER.info("Research fetch for %s failed: %s", url, exc)
            return ResearchResult(url=url, snippet="[error fetching content]")
        if not response.is_success:
            return ResearchResult(url=url, snippet="[failed to fetch content]")
        snippet = _WHITESPACE.sub(" ", response.text).strip()[:RESEARCH_SNIPPET_CHARS]
        return ResearchResult(url=url, snippet=snippet)


def _describe(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


__all__ = ["FetchUrlTool", "ResearchTool"]
