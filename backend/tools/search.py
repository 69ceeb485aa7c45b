"""
Aizen Tool - Internet Search

Answers a free-text query with a concise factual string. With SearXNG
enabled, top web results are fetched and condensed by the model; otherwise
the model answers as if retrieving from a knowledge base.

No retry. Any failure becomes a ToolResult carrying the search sentinel;
nothing is raised to the caller.
"""

import asyncio
import logging
from typing import Any, Dict, List

import httpx

from errors import ExternalServiceError, ToolError, handle_async_tool_errors
from tools.registry import ToolFailure, ToolResult

logger = logging.getLogger(__name__)

TOOL_NAME = "internet_search"

SEARCH_NO_INFORMATION = "The path of inquiry led to stillness; no specific information was found on this matter."
SEARCH_ERROR = "A disturbance in the flow of knowledge prevented the search. My apologies."

# Marker the model is told to emit when it has nothing to say
NO_INFORMATION_MARKER = "NO_INFORMATION"

SEARCH_SYSTEM_PROMPT = (
    "You are a helpful assistant. Provide a concise and factual answer to the query, "
    "as if you are retrieving it from a knowledge base or search engine. "
    f"If you have no specific information, reply with exactly {NO_INFORMATION_MARKER}."
)

DESCRIPTION = (
    "Find information on current events, facts, details about specific places "
    "(e.g. \"tell me about Paris\"), technical topics such as computer science and "
    "engineering, or anything else that needs up-to-date knowledge. Returns a concise answer. "
    "Only one search may be made per turn."
)


def _search_failed(exc: Exception) -> ToolResult:
    return ToolResult.failed(TOOL_NAME, ToolFailure.TOOL_ERROR, SEARCH_ERROR, str(exc))


def _no_information() -> ToolResult:
    return ToolResult.failed(TOOL_NAME, ToolFailure.NO_INFORMATION, SEARCH_NO_INFORMATION)


def fetch_searx_results(query: str, searxng_url: str, timeout_s: float, limit: int) -> List[Dict[str, str]]:
    """Fetch JSON search results from SearXNG."""
    url = f"{searxng_url.rstrip('/')}/search"
    try:
        with httpx.Client(timeout=timeout_s, follow_redirects=True) as client:
            response = client.get(url, params={"q": query, "format": "json", "categories": "general"})
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as exc:
        raise ExternalServiceError(
            "Search service error",
            details=f"SearXNG returned status {exc.response.status_code}",
            service="searxng",
            status_code=exc.response.status_code,
        )
    except httpx.TimeoutException:
        raise ExternalServiceError(
            "Search service timed out",
            details="The search request took too long.",
            service="searxng",
        )
    except httpx.RequestError:
        raise ExternalServiceError(
            "Search service unavailable",
            details="Could not connect to the search service",
            service="searxng",
        )

    results = []
    for item in data.get("results", [])[:limit]:
        results.append({
            "title": (item.get("title") or "").strip(),
            "url": (item.get("url") or "").strip(),
            "content": (item.get("content") or "").strip()[:300],
        })
    return results


def _format_results(results: List[Dict[str, str]]) -> str:
    lines = []
    for i, r in enumerate(results, 1):
        lines.append(f"[{i}] {r['title']} ({r['url']})\n{r['content']}")
    return "\n\n".join(lines)


class InternetSearch:
    """Search tool bound to a model caller and runtime config."""

    def __init__(self, model_caller: Any, config: Any):
        self.model = model_caller
        self.config = config

    @handle_async_tool_errors(TOOL_NAME, on_error=_search_failed)
    async def execute(self, query: str) -> ToolResult:
        query = (query or "").strip()
        if not query:
            raise ToolError("Empty search query", tool=TOOL_NAME)

        prompt = f'Query: "{query}"'
        if self.config.searxng_enabled:
            results = await asyncio.to_thread(
                fetch_searx_results,
                query,
                self.config.searxng_url,
                self.config.searxng_timeout_s,
                self.config.searxng_max_results,
            )
            if not results:
                logger.info(f"SearXNG returned no results for {query!r}")
                return _no_information()
            prompt = f"{prompt}\n\nWeb results:\n{_format_results(results)}\n\nAnswer using only these results."

        answer = await self.model.complete_text(SEARCH_SYSTEM_PROMPT, prompt)
        if not answer or answer.strip().upper().startswith(NO_INFORMATION_MARKER):
            return _no_information()
        return ToolResult.ok(TOOL_NAME, answer)
