"""
Aizen Chat Actions - the interface boundary

Each action returns a plain dict and never raises:
- handle_chat_message → {"responses": [...]} or {"error": "..."}
- handle_generate_haiku → {"haiku": "..."} or {"error": "..."}
- handle_format_error → {"aizenErrorMessage": "..."}

The credential is checked before anything else, so a missing or placeholder
key never reaches the network. Other failures are handed to the error
formatter; if that fails too, a fixed string is used.
"""

import logging
from typing import Any, Dict, List, Optional

from errors import ConfigurationError, log_error
from logging_config import log_message_in

from .flows import ErrorFormatter, HaikuGenerator
from .orchestrator import TurnOrchestrator

logger = logging.getLogger(__name__)

API_KEY_ERROR_MESSAGE = (
    "The GOOGLE_API_KEY is missing or invalid. Please ensure it is correctly set in your .env file "
    "and restart the server."
)
GENERIC_AI_ERROR_MESSAGE = (
    "Aizen is currently unable to process this request due to an internal disturbance. Please try again later."
)
HAIKU_ERROR_MESSAGE = "The path to poetry is sometimes clouded. A disturbance occurred. Please try again."

UNKNOWN_CHAT_ERROR = "An unknown error occurred."
UNKNOWN_HAIKU_ERROR = "Haiku inspiration is fleeting."

_API_KEY_MARKERS = ("GOOGLE_API_KEY", "GEMINI_API_KEY", "API key")


def mentions_api_key(error: Exception) -> bool:
    if isinstance(error, ConfigurationError):
        return True
    text = str(error)
    return any(marker in text for marker in _API_KEY_MARKERS)


class ChatActions:
    """Turn submission, haiku and error formatting behind one credential check."""

    def __init__(
        self,
        config,
        orchestrator: TurnOrchestrator,
        haiku: HaikuGenerator,
        error_formatter: ErrorFormatter,
    ):
        self.config = config
        self.orchestrator = orchestrator
        self.haiku = haiku
        self.error_formatter = error_formatter

    async def handle_chat_message(
        self,
        message: str,
        chat_history: Optional[List[Any]] = None,
        preferences=None,
    ) -> Dict[str, Any]:
        if self.config.is_api_key_invalid():
            logger.error("Chat message rejected: GOOGLE_API_KEY is not set or is a placeholder")
            return {"error": API_KEY_ERROR_MESSAGE}

        tone = getattr(getattr(preferences, "tone", None), "value", "default")
        log_message_in(logger, message, history=len(chat_history or []), tone=tone)
        try:
            responses = await self.orchestrator.run_turn(message, chat_history or [], preferences)
            return {"responses": responses}
        except Exception as e:
            log_error(logger, e, context="Chat")
            if mentions_api_key(e):
                return {"error": API_KEY_ERROR_MESSAGE}
            return {"error": await self._format_or(str(e) or UNKNOWN_CHAT_ERROR, GENERIC_AI_ERROR_MESSAGE)}

    async def handle_generate_haiku(self, theme: str) -> Dict[str, str]:
        if self.config.is_api_key_invalid():
            logger.error("Haiku request rejected: GOOGLE_API_KEY is not set or is a placeholder")
            return {"error": API_KEY_ERROR_MESSAGE}

        try:
            return {"haiku": await self.haiku.generate(theme)}
        except Exception as e:
            log_error(logger, e, context="Haiku")
            if mentions_api_key(e):
                return {"error": API_KEY_ERROR_MESSAGE}
            return {"error": await self._format_or(str(e) or UNKNOWN_HAIKU_ERROR, HAIKU_ERROR_MESSAGE)}

    async def handle_format_error(self, raw_error: str) -> Dict[str, str]:
        if self.config.is_api_key_invalid():
            logger.error("Error formatting skipped: GOOGLE_API_KEY is not set or is a placeholder")
            return {"aizenErrorMessage": API_KEY_ERROR_MESSAGE}

        try:
            return {"aizenErrorMessage": await self.error_formatter.format(raw_error)}
        except Exception as e:
            log_error(logger, e, context="ErrorFormatter", include_traceback=False)
            if mentions_api_key(e):
                return {"aizenErrorMessage": API_KEY_ERROR_MESSAGE}
            return {"aizenErrorMessage": GENERIC_AI_ERROR_MESSAGE}

    async def _format_or(self, raw_error: str, fallback: str) -> str:
        """One formatting attempt; the fixed fallback if it fails."""
        try:
            return await self.error_formatter.format(raw_error)
        except Exception as e:
            log_error(logger, e, context="ErrorFormatter", include_traceback=False)
            return fallback
