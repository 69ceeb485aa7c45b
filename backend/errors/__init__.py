"""
Aizen error handling.

Codes, the AizenError hierarchy, HTTP error bodies and the decorators that
turn tool exceptions into sentinel results.

    from errors import ToolError, handle_async_tool_errors

    @handle_async_tool_errors("internet_search", on_error=_search_failed)
    async def internet_search(query):
        if not query.strip():
            raise ToolError("Empty query", tool="internet_search")
        ...
"""

from .codes import ErrorCode
from .exceptions import (
    AizenError,
    ConfigurationError,
    ExternalServiceError,
    LLMError,
    SessionBusyError,
    ToolError,
    ValidationError,
)
from .handlers import handle_async_tool_errors, log_error
from .response import error_response, http_status_for

__all__ = [
    "ErrorCode",
    "AizenError",
    "ConfigurationError",
    "ExternalServiceError",
    "LLMError",
    "SessionBusyError",
    "ToolError",
    "ValidationError",
    "error_response",
    "http_status_for",
    "handle_async_tool_errors",
    "log_error",
]
