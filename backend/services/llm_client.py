"""
LLM Client - the OpenAI SDK pointed at an OpenAI-compatible endpoint
(Gemini's compatibility layer by default).

The rest of the backend speaks a small dict format:

    request messages:  {"role", "content"} plus, for tool turns,
                       assistant "tool_calls" and {"role": "tool", "tool_call_id"}
    response:          {"message": {"role": "assistant", "content": "...",
                                    "tool_calls": [{"id", "function": {"name", "arguments": {...}}}]}}

Tool-call arguments are dicts internally and JSON strings on the wire.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from openai import OpenAI

logger = logging.getLogger(__name__)


def _arguments_to_wire(arguments: Any) -> str:
    if isinstance(arguments, str):
        return arguments or "{}"
    return json.dumps(arguments or {})


def _arguments_from_wire(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Discarding unparseable tool arguments: {raw[:120]!r}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


def _to_openai_message(msg: Dict[str, Any]) -> Dict[str, Any]:
    role = msg.get("role", "user")
    content = msg.get("content", "")

    if role == "tool":
        return {
            "role": "tool",
            "tool_call_id": msg.get("tool_call_id", "call_0"),
            "content": content if isinstance(content, str) else json.dumps(content),
        }

    if role == "assistant" and msg.get("tool_calls"):
        calls = []
        for i, call in enumerate(msg["tool_calls"]):
            fn = call.get("function", call)
            calls.append(
                {
                    "id": call.get("id", f"call_{i}"),
                    "type": "function",
                    "function": {"name": fn.get("name", ""), "arguments": _arguments_to_wire(fn.get("arguments"))},
                }
            )
        # content must be null alongside tool_calls
        return {"role": "assistant", "content": content or None, "tool_calls": calls}

    return {"role": role, "content": content}


def _from_openai_message(message: Any) -> Dict[str, Any]:
    result: Dict[str, Any] = {"role": "assistant", "content": (message.content or "").strip()}
    calls = [
        {"id": call.id, "function": {"name": call.function.name, "arguments": _arguments_from_wire(call.function.arguments)}}
        for call in (message.tool_calls or [])
    ]
    if calls:
        result["tool_calls"] = calls
    return result


class LLMClient:
    """Synchronous chat-completions client; ModelCaller runs it in an executor."""

    def __init__(self, api_key: str, base_url: str, timeout: float = 60.0):
        self.base_url = base_url
        # max_retries=0: exactly one round trip per call
        self._openai = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout, max_retries=0)

    def chat(
        self,
        model: str = "",
        messages: Optional[List[Dict]] = None,
        tools: Optional[List[Dict]] = None,
        options: Optional[Dict] = None,
        format: Optional[str] = None,
    ) -> Dict[str, Any]:
        """One chat completion.

        Args:
            options: temperature and max_tokens
            format: "json" requests a JSON object response
        """
        options = options or {}
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": [_to_openai_message(m) for m in (messages or [])],
        }
        for key in ("temperature", "max_tokens"):
            if key in options:
                kwargs[key] = options[key]
        if tools:
            kwargs["tools"] = tools
        if format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        response = self._openai.chat.completions.create(**kwargs)
        if not response.choices:
            return {"message": {"role": "assistant", "content": ""}}
        return {"message": _from_openai_message(response.choices[0].message)}
