"""
Aizen Turn Orchestrator - one user message in, ordered response strings out

Branches, decided by the capability assessment:
- time:     clock tool, wrapped in a persona sentence (1 response)
- lookup:   acknowledgement, then the search result or its sentinel (2 responses)
- composed: persona composer with tools (1 response)

Malformed composer output becomes the fixed fallback string. Provider and
transport errors propagate to the interface boundary.
"""

import logging
from typing import Any, List, Optional

from errors import LLMError, log_error
from logging_config import log_branch, log_message_out
from routers.chat_prompts import COMPOSER_FALLBACK, PersonaPromptBuilder
from tools import clock, search
from tools.registry import ToolRegistry

from .assessor import Assessor
from .composer import ResponseComposer
from .tool_dispatch import ToolDispatcher

logger = logging.getLogger(__name__)


class TurnOrchestrator:
    """Runs a single conversational turn."""

    def __init__(
        self,
        assessor: Assessor,
        composer: ResponseComposer,
        registry: ToolRegistry,
        prompts: PersonaPromptBuilder,
    ):
        self.assessor = assessor
        self.composer = composer
        self.registry = registry
        self.prompts = prompts

    async def run_turn(self, message: str, history: Optional[List[Any]] = None, preferences=None) -> List[str]:
        assessment = await self.assessor.assess(message)

        if assessment.is_time_intent:
            log_branch(logger, "time", region=assessment.region or "default")
            responses = [await self._time_response(assessment.region)]
            log_message_out(logger, responses=len(responses), tools_used=[clock.TOOL_NAME])
            return responses

        if not assessment.can_answer_directly:
            log_branch(logger, "lookup", rationale=repr((assessment.rationale or assessment.error or "")[:60]))
            result = await self.registry.execute(search.TOOL_NAME, {"query": message})
            responses = [self.prompts.acknowledgement(preferences), result.to_text()]
            log_message_out(logger, responses=len(responses), tools_used=[search.TOOL_NAME])
            return responses

        log_branch(logger, "composed")
        dispatcher = ToolDispatcher(self.registry)
        try:
            text = await self.composer.compose(message, history, preferences, dispatcher=dispatcher)
        except LLMError as e:
            if not e.is_malformed_output:
                raise
            log_error(logger, e, context="Composer", include_traceback=False)
            text = ""
        responses = [text or COMPOSER_FALLBACK]
        log_message_out(logger, responses=len(responses), tools_used=dispatcher.tools_used)
        return responses

    async def _time_response(self, region: Optional[str]) -> str:
        args = {"region": region} if region else {}
        result = await self.registry.execute(clock.TOOL_NAME, args)
        return self.prompts.time_sentence(result.to_text(), succeeded=result.success)
