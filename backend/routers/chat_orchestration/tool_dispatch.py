"""
Aizen Tool Dispatcher - Tool parsing and execution for one turn

Handles:
- Parsing tool calls from an LLM response (native and inline JSON fallback)
- Executing them through the registry
- The per-turn search limit: the second search call gets the
  LIMIT_REACHED sentinel instead of running

A dispatcher is created per turn; it is not shared between turns.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from services.json_repair import parse_json_object
from tools.registry import ToolFailure, ToolRegistry, ToolResult

logger = logging.getLogger(__name__)

SEARCH_LIMIT_SENTINEL = "Only one search may be made per turn; answer with what is already known."


class ToolDispatcher:
    """Coordinates tool parsing and execution within a single turn."""

    def __init__(self, registry: ToolRegistry, search_limit: int = 1):
        self.registry = registry
        self.search_limit = search_limit
        self.searches_made = 0
        self.tools_used: List[str] = []

    def parse_tool_calls(self, response: Dict[str, Any]) -> Optional[List[Dict]]:
        """Native tool_calls first, then a single inline JSON call in the content."""
        message = response.get("message", {})
        tool_calls = message.get("tool_calls")
        if tool_calls:
            logger.debug(f"Found {len(tool_calls)} native tool calls")
            return tool_calls

        content = message.get("content") or ""
        if not re.search(r'\{\s*["\']name["\']\s*:\s*["\'](\w+)["\']', content):
            return None

        parsed = parse_json_object(content)
        if not parsed or parsed.get("name") not in self.registry.get_all_tools():
            return None
        logger.debug(f"Parsed inline tool call: {parsed['name']}")
        return [
            {
                "function": {
                    "name": parsed["name"],
                    "arguments": parsed.get("arguments", parsed.get("parameters", {})),
                }
            }
        ]

    async def dispatch(self, tool_call: Dict[str, Any]) -> ToolResult:
        """Run one tool call. Never raises."""
        fn = tool_call.get("function", tool_call)
        name = fn.get("name", "")
        args = fn.get("arguments") or {}
        if isinstance(args, str):
            try:
                args = json.loads(args)
            except json.JSONDecodeError:
                args = {}
        if not isinstance(args, dict):
            args = {}

        tool = self.registry.get_tool(name)
        if tool and tool.is_search:
            if self.searches_made >= self.search_limit:
                logger.info(f"Search limit reached; refusing extra {name} call")
                return ToolResult.failed(name, ToolFailure.LIMIT_REACHED, SEARCH_LIMIT_SENTINEL)
            self.searches_made += 1

        result = await self.registry.execute(name, args)
        self.tools_used.append(name)
        return result
