"""
Secondary model flows: haiku composition and in-character error messages.
"""

import logging

from errors import LLMError
from routers.chat_prompts import (
    ERROR_FORMAT_SYSTEM_PROMPT,
    HAIKU_SYSTEM_PROMPT,
    PersonaPromptBuilder,
    cleanup_response_text,
)

logger = logging.getLogger(__name__)


class HaikuGenerator:
    def __init__(self, model_caller, prompts: PersonaPromptBuilder):
        self.model = model_caller
        self.prompts = prompts

    async def generate(self, theme: str) -> str:
        """A 5-7-5 haiku on the theme. Empty output raises LLMError."""
        text = await self.model.complete_text(HAIKU_SYSTEM_PROMPT, self.prompts.haiku_prompt(theme))
        text = cleanup_response_text(text)
        if not text:
            raise LLMError("Model returned an empty haiku", error_type="invalid")
        return text


class ErrorFormatter:
    """Turns a raw technical error into a short in-character message."""

    def __init__(self, model_caller, prompts: PersonaPromptBuilder):
        self.model = model_caller
        self.prompts = prompts

    async def format(self, raw_error: str) -> str:
        text = await self.model.complete_text(ERROR_FORMAT_SYSTEM_PROMPT, self.prompts.error_prompt(raw_error))
        text = cleanup_response_text(text)
        if not text:
            raise LLMError("Model returned an empty error message", error_type="invalid")
        return text
