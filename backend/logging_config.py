"""
Aizen console logging.

setup_logging() installs a single stdout handler with ColorFormatter. The
log_* helpers print one line per pipeline event (message in, branch, tool,
model call, response out) so a turn can be followed in the console:

    12:04:31 [INFO] >>> MESSAGE What is the capital of France? [history=1 tone=Guiding]
    12:04:31 [INFO] --- BRANCH composed
    12:04:32 [INFO] <<< RESPONSE parts=1 tools=[none]

Set AIZEN_LOG_LEVEL to change the level and NO_COLOR to drop ANSI codes.
"""

import logging
import os
import sys
from typing import Iterable, Optional

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"

EVENT_COLORS = {
    "message": "\033[96m",
    "response": "\033[92m",
    "branch": "\033[95m",
    "tool": "\033[93m",
    "llm": "\033[94m",
}

LEVEL_COLORS = {
    logging.DEBUG: "\033[90m",
    logging.INFO: RESET,
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[91m",
    logging.CRITICAL: "\033[91m" + BOLD,
}

_NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")


def _colors_enabled() -> bool:
    return "NO_COLOR" not in os.environ


def _paint(color: str, text: str) -> str:
    if not _colors_enabled():
        return text
    return f"{color}{text}{RESET}"


class ColorFormatter(logging.Formatter):
    """HH:MM:SS [LEVL] message, with the level tag colored."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = _paint(DIM, self.formatTime(record, "%H:%M:%S"))
        level = _paint(LEVEL_COLORS.get(record.levelno, RESET), record.levelname[:4])
        line = f"{timestamp} [{level}] {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: Optional[int] = None) -> None:
    """Route all logging through one colored stdout handler."""
    if level is None:
        level = logging.getLevelName(os.environ.get("AIZEN_LOG_LEVEL", "INFO").upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter())
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# PIPELINE EVENTS
# =============================================================================


def _context(context: dict) -> str:
    return " ".join(f"{key}={value}" for key, value in context.items())


def _event(logger: logging.Logger, kind: str, marker: str, label: str, text: str = "") -> None:
    tag = _paint(EVENT_COLORS[kind], f"{marker} {label}")
    logger.info(f"{tag} {text}".rstrip())


def log_message_in(logger: logging.Logger, message: str, **context) -> None:
    """A user message entering the pipeline (preview capped at 80 chars)."""
    preview = message if len(message) <= 80 else message[:80] + "..."
    _event(logger, "message", ">>>", "MESSAGE", f"{preview} [{_context(context)}]")


def log_message_out(logger: logging.Logger, responses: int = 0, tools_used: Optional[Iterable[str]] = None) -> None:
    tools = ", ".join(tools_used or []) or "none"
    _event(logger, "response", "<<<", "RESPONSE", f"parts={responses} tools=[{tools}]")


def log_branch(logger: logging.Logger, branch: str, **context) -> None:
    _event(logger, "branch", "---", "BRANCH", f"{branch} {_context(context)}")


def log_tool(logger: logging.Logger, tool_name: str, state: str, **context) -> None:
    """Tool start/end; state is 'start' or 'end'."""
    marker = ">>>" if state == "start" else "<<<"
    _event(logger, "tool", marker, "TOOL", f"{tool_name} {_context(context)}")


def log_llm(logger: logging.Logger, state: str, model: str = "", duration: float = 0) -> None:
    if state == "start":
        _event(logger, "llm", ">>>", "LLM", f"calling {model}")
    else:
        _event(logger, "llm", "<<<", "LLM", f"{model} completed in {duration:.1f}s")
