"""
Tool Registry - Unified tool dispatch for Aizen.

Each tool is a self-contained definition registered on a ToolRegistry
instance. The registry is built once per application (see build_registry)
and injected into the composer and orchestrator; there is no module-level
registry.

Tool executors return a ToolResult: either a success payload or a typed
failure reason. The fixed persona sentinel strings only appear when a
result is turned into content via ToolResult.to_text().
"""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from logging_config import log_tool

logger = logging.getLogger(__name__)

GENERIC_TOOL_SENTINEL = "A disturbance interrupted that tool; it could not complete its work."


class ToolFailure(Enum):
    """Why a tool produced no substantive answer."""

    NO_INFORMATION = "no_information"
    TOOL_ERROR = "tool_error"
    LIMIT_REACHED = "limit_reached"


@dataclass
class ToolResult:
    """Tagged result from tool execution."""

    tool: str
    success: bool
    content: Optional[str] = None
    failure: Optional[ToolFailure] = None
    sentinel: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, tool: str, content: str) -> "ToolResult":
        return cls(tool=tool, success=True, content=content)

    @classmethod
    def failed(
        cls,
        tool: str,
        failure: ToolFailure,
        sentinel: str,
        error: Optional[str] = None,
    ) -> "ToolResult":
        return cls(tool=tool, success=False, failure=failure, sentinel=sentinel, error=error)

    def to_text(self) -> str:
        """Wire form: the answer, or the fixed sentinel for the failure."""
        if self.success and self.content:
            return self.content
        return self.sentinel or GENERIC_TOOL_SENTINEL


ToolExecutor = Callable[..., Awaitable[ToolResult]]


@dataclass
class ToolDefinition:
    """Definition of a tool for the registry."""

    name: str
    description: str
    parameters: Dict[str, Any]
    required_params: List[str]
    executor: ToolExecutor
    friendly_name: str = ""  # Human-readable name used in the persona prompt
    is_search: bool = False  # Counts against the per-turn search limit


class ToolRegistry:
    """
    Registry of callable tools.

    Usage:
        registry = ToolRegistry()
        registry.register(ToolDefinition(...))

        tools_schema = registry.get_tools_schema()
        result = await registry.execute("get_time", {"region": "Asia/Tokyo"})
    """

    def __init__(self):
        self._tools: Dict[str, ToolDefinition] = {}

    def register(self, tool: ToolDefinition) -> None:
        """Register a tool definition."""
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def get_all_tools(self) -> Dict[str, ToolDefinition]:
        return self._tools.copy()

    def get_tools_schema(self) -> List[Dict[str, Any]]:
        """Generate OpenAI-compatible tools schema for function calling."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": {
                        "type": "object",
                        "properties": tool.parameters,
                        "required": tool.required_params,
                    },
                },
            }
            for tool in self._tools.values()
        ]

    def generate_tools_section(self) -> str:
        """Tool list for the persona prompt, from the registered definitions."""
        lines = ["TOOLS AVAILABLE TO YOU:"]
        for i, tool in enumerate(self._tools.values(), 1):
            label = tool.friendly_name or tool.name
            lines.append(f"{i}. {tool.name} ({label}): {tool.description}")
        return "\n".join(lines)

    async def execute(self, name: str, args: Dict[str, Any]) -> ToolResult:
        """
        Execute a tool by name with given arguments.

        Never raises: unknown tools and executor exceptions become a
        TOOL_ERROR result.
        """
        tool = self._tools.get(name)
        if not tool:
            logger.warning(f"Unknown tool requested: {name}")
            return ToolResult.failed(name, ToolFailure.TOOL_ERROR, GENERIC_TOOL_SENTINEL, f"Unknown tool: {name}")

        # Filter kwargs to only those the executor accepts
        sig = inspect.signature(tool.executor)
        has_var_kw = any(p.kind == inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values())
        if has_var_kw:
            filtered = dict(args)
        else:
            accepted = set(sig.parameters.keys())
            filtered = {k: v for k, v in args.items() if k in accepted}

        log_tool(logger, name, "start", **{k: repr(v)[:60] for k, v in filtered.items()})
        try:
            result = await tool.executor(**filtered)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            result = ToolResult.failed(name, ToolFailure.TOOL_ERROR, GENERIC_TOOL_SENTINEL, str(e))

        outcome = "ok" if result.success else result.failure.value
        log_tool(logger, name, "end", outcome=outcome)
        return result


def build_registry(model_caller: Any, config: Any, clock: Optional[Any] = None) -> ToolRegistry:
    """Register the three core tools (search, calculator, clock) on a fresh registry."""
    from tools import calculator, clock as clock_module, search

    registry = ToolRegistry()
    clock = clock or clock_module.Clock(default_timezone=config.timezone)

    registry.register(
        ToolDefinition(
            name=search.TOOL_NAME,
            friendly_name="Internet Search",
            description=search.DESCRIPTION,
            parameters={
                "query": {"type": "string", "description": "The search query or question to find information about."},
            },
            required_params=["query"],
            executor=search.InternetSearch(model_caller, config).execute,
            is_search=True,
        )
    )

    registry.register(
        ToolDefinition(
            name=calculator.TOOL_NAME,
            friendly_name="Calculator",
            description=calculator.DESCRIPTION,
            parameters={
                "expression": {
                    "type": "string",
                    "description": "The mathematical expression or question, e.g. \"15 + 7\" or \"solve 2x + 5 = 11\".",
                },
            },
            required_params=["expression"],
            executor=calculator.Calculator(model_caller).execute,
        )
    )

    registry.register(
        ToolDefinition(
            name=clock_module.TOOL_NAME,
            friendly_name="Clock",
            description=clock_module.DESCRIPTION,
            parameters={
                "region": {"type": "string", "description": "Optional IANA timezone or city, e.g. \"Asia/Tokyo\"."},
            },
            required_params=[],
            executor=clock.execute,
        )
    )

    logger.info(f"Tool registry built: {list(registry.get_all_tools())}")
    return registry
