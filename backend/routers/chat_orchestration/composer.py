"""
Aizen Response Composer - persona answer with a bounded tool loop

1. Build the persona system prompt from preferences
2. Forward the bounded history (user/assistant turns only)
3. Call the model with the tool schemas; run requested tools and call again,
   up to max_tool_rounds model calls. The last round is sent without tools
   so the model has to answer.

Tool failures come back to the model as their sentinel text.
"""

import logging
from typing import Any, Dict, List, Optional

from errors import LLMError
from routers.chat_prompts import PersonaPromptBuilder, cleanup_response_text
from tools.registry import ToolRegistry

from .tool_dispatch import ToolDispatcher

logger = logging.getLogger(__name__)

FORWARDED_ROLES = ("user", "assistant")


def _entry(turn: Any) -> Optional[Dict[str, str]]:
    """History item (dict or ChatTurn) → {role, content}, or None if not forwarded."""
    if isinstance(turn, dict):
        role, content = turn.get("role"), turn.get("content")
    else:
        role, content = getattr(turn, "role", None), getattr(turn, "content", None)
    role = getattr(role, "value", role)
    if role not in FORWARDED_ROLES or not isinstance(content, str):
        return None
    return {"role": role, "content": content}


def bound_history(history: Optional[List[Any]], limit: int) -> List[Dict[str, str]]:
    """Most recent `limit` user/assistant turns, oldest first."""
    entries = [e for e in (_entry(t) for t in (history or [])) if e]
    if limit <= 0:
        return []
    return entries[-limit:]


class ResponseComposer:
    """Produces one persona response string for a turn."""

    def __init__(self, model_caller, registry: ToolRegistry, prompts: PersonaPromptBuilder, config):
        self.model = model_caller
        self.registry = registry
        self.prompts = prompts
        self.config = config

    def build_messages(self, message: str, history: Optional[List[Any]], preferences=None) -> List[Dict[str, Any]]:
        entries = bound_history(history, self.config.max_history_length)
        # The UI sends history that already ends with the message being answered
        if entries and entries[-1]["role"] == "user" and entries[-1]["content"] == message:
            entries = entries[:-1]
        return [
            {"role": "system", "content": self.prompts.system_prompt(preferences)},
            *entries,
            {"role": "user", "content": message},
        ]

    async def compose(
        self,
        message: str,
        history: Optional[List[Any]] = None,
        preferences=None,
        dispatcher: Optional[ToolDispatcher] = None,
    ) -> str:
        """
        Raises:
            LLMError: provider failure, or error_type="invalid" on empty output
        """
        dispatcher = dispatcher or ToolDispatcher(self.registry)
        messages = self.build_messages(message, history, preferences)
        tools_schema = self.registry.get_tools_schema()
        max_rounds = max(1, self.config.max_tool_rounds)

        for round_num in range(max_rounds):
            final_round = round_num == max_rounds - 1
            response = await self.model.chat(messages, tools=None if final_round else tools_schema)
            tool_calls = None if final_round else dispatcher.parse_tool_calls(response)

            if not tool_calls:
                text = cleanup_response_text(response.get("message", {}).get("content"))
                if not text:
                    raise LLMError("Model returned an empty response", error_type="invalid")
                return text

            logger.debug(f"Round {round_num + 1}: {len(tool_calls)} tool call(s)")
            messages.append({"role": "assistant", "content": "", "tool_calls": tool_calls})
            for i, tool_call in enumerate(tool_calls):
                result = await dispatcher.dispatch(tool_call)
                messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": tool_call.get("id", f"call_{i}"),
                        "content": result.to_text(),
                    }
                )

        # Unreachable: the final round never carries tool calls
        raise LLMError("Tool loop ended without a response", error_type="invalid")
