"""
Decorators that keep tool failures from escaping as exceptions.

A decorated tool logs whatever it raised and returns ``on_error(exc)``
instead; tools pass an on_error that builds their sentinel ToolResult.
Without one, the standard error_response dict is returned.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import AizenError
from .response import error_response

F = TypeVar("F", bound=Callable[..., Any])


def _describe(tool_name: str, exc: Exception) -> str:
    if isinstance(exc, AizenError):
        return f"[{tool_name}] {exc.code.value}: {exc.message}"
    return f"[{tool_name}] Unexpected error: {exc}"


def _resolve(tool_name: str, logger: Optional[logging.Logger], on_error: Optional[Callable[[Exception], Any]]):
    log = logger or logging.getLogger(f"aizen.{tool_name}")
    build = on_error or (lambda exc: error_response(exc, tool=tool_name))
    return log, build


def handle_async_tool_errors(
    tool_name: str,
    logger: Optional[logging.Logger] = None,
    on_error: Optional[Callable[[Exception], Any]] = None,
):
    """Wrap a coroutine function so any exception becomes ``on_error(exc)``.

    Example:
        >>> @handle_async_tool_errors("get_time", on_error=_clock_failed)
        ... async def get_time(region=None):
        ...     ...
    """
    log, build = _resolve(tool_name, logger, on_error)

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await func(*args, **kwargs)
            except Exception as exc:
                log.error(_describe(tool_name, exc), exc_info=True)
                return build(exc)

        return wrapper  # type: ignore

    return decorator


def log_error(logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True) -> None:
    """One error line: ``[context] CODE: message`` for Aizen errors, else the text."""
    text = f"{error.code.value}: {error.message}" if isinstance(error, AizenError) else str(error)
    if context:
        text = f"[{context}] {text}"
    logger.error(text, exc_info=include_traceback)
