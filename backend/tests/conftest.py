"""
Shared pytest fixtures for the Aizen backend tests.

The LLM client is always a MagicMock whose .chat() returns dicts in the
LLMClient.chat() format, so no test touches the network.
"""

from typing import List, Optional
from unittest.mock import MagicMock

import pytest

from config import RuntimeConfig
from routers.chat_orchestration.assessor import CapabilityAssessment
from routers.chat_orchestration.model_calls import ModelCaller


def _llm_response(content: str, tool_calls=None):
    """Build a canned LLM response dict matching LLMClient.chat() format."""
    msg = {"role": "assistant", "content": content}
    if tool_calls:
        msg["tool_calls"] = tool_calls
    return {"message": msg}


def _tool_call(name: str, arguments: dict, call_id: str = "call_0"):
    """Build a single tool call dict."""
    return {"id": call_id, "function": {"name": name, "arguments": arguments}}


class StubAssessor:
    """Deterministic assessor: returns the same assessment for every message."""

    def __init__(self, can_answer_directly: bool = True, is_time_intent: bool = False, region: Optional[str] = None):
        self.assessment = CapabilityAssessment(
            can_answer_directly=can_answer_directly,
            is_time_intent=is_time_intent,
            region=region,
            rationale="stub",
        )
        self.messages: List[str] = []

    async def assess(self, message: str) -> CapabilityAssessment:
        self.messages.append(message)
        return self.assessment


@pytest.fixture
def llm_response():
    return _llm_response


@pytest.fixture
def tool_call():
    return _tool_call


@pytest.fixture
def config(tmp_path):
    """Runtime config with a usable key and temp storage."""
    return RuntimeConfig(
        api_key="test-key",
        model_chat="test-chat",
        model_assessor="test-assessor",
        llm_timeout=5,
        max_history_length=10,
        max_message_length=4000,
        max_tool_rounds=3,
        timezone="UTC",
        data_dir=str(tmp_path / "sessions"),
        searxng_enabled=False,
    )


@pytest.fixture
def fake_llm_client():
    client = MagicMock()
    client.chat.return_value = _llm_response("Hello from the dojo.")
    return client


@pytest.fixture
def model_caller(config, fake_llm_client):
    return ModelCaller(config, client=fake_llm_client)


@pytest.fixture
def stub_assessor():
    """Factory fixture: stub_assessor(can_answer_directly=..., is_time_intent=...)."""
    return StubAssessor
