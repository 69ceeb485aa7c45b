"""
Tests for the OpenAI-compatible client wrapper and JSON recovery.

The OpenAI SDK class is patched; responses are SimpleNamespace objects
shaped like chat completion results.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest

from services.json_repair import first_json_object, parse_json_object, parse_json_response, repair_json
from services.llm_client import LLMClient


def _completion(content="", tool_calls=None):
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _sdk_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


@pytest.fixture
def sdk():
    with patch("services.llm_client.OpenAI") as openai_cls:
        yield openai_cls.return_value


class TestLLMClient:
    def test_sdk_configured_without_retries(self):
        with patch("services.llm_client.OpenAI") as openai_cls:
            LLMClient(api_key="k", base_url="https://example.test/v1/", timeout=12)
        openai_cls.assert_called_once_with(base_url="https://example.test/v1/", api_key="k", timeout=12, max_retries=0)

    def test_plain_completion(self, sdk):
        sdk.chat.completions.create.return_value = _completion("  Greetings.  ")
        result = LLMClient("k", "https://x/").chat(
            model="gemini-test",
            messages=[{"role": "user", "content": "hi"}],
            options={"temperature": 0.2, "max_tokens": 50},
        )
        assert result == {"message": {"role": "assistant", "content": "Greetings."}}
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 50
        assert "tools" not in kwargs
        assert "response_format" not in kwargs

    def test_json_mode(self, sdk):
        sdk.chat.completions.create.return_value = _completion('{"canAnswer": true}')
        LLMClient("k", "https://x/").chat(model="m", messages=[], format="json")
        assert sdk.chat.completions.create.call_args.kwargs["response_format"] == {"type": "json_object"}

    def test_tool_calls_parsed(self, sdk):
        sdk.chat.completions.create.return_value = _completion(
            None,
            tool_calls=[
                _sdk_tool_call("c1", "perform_calculation", '{"expression": "2+2"}'),
                _sdk_tool_call("c2", "get_time", "not json"),
            ],
        )
        message = LLMClient("k", "https://x/").chat(model="m", messages=[], tools=[{"type": "function"}])["message"]
        assert message["content"] == ""
        assert message["tool_calls"] == [
            {"id": "c1", "function": {"name": "perform_calculation", "arguments": {"expression": "2+2"}}},
            {"id": "c2", "function": {"name": "get_time", "arguments": {}}},
        ]

    def test_tool_round_trip_messages(self, sdk):
        sdk.chat.completions.create.return_value = _completion("4")
        LLMClient("k", "https://x/").chat(
            model="m",
            messages=[
                {"role": "assistant", "content": "", "tool_calls": [{"id": "c1", "function": {"name": "perform_calculation", "arguments": {"expression": "2+2"}}}]},
                {"role": "tool", "tool_call_id": "c1", "content": "4"},
            ],
        )
        sent = sdk.chat.completions.create.call_args.kwargs["messages"]
        assert sent[0]["content"] is None
        assert sent[0]["tool_calls"][0]["type"] == "function"
        assert sent[0]["tool_calls"][0]["function"]["arguments"] == '{"expression": "2+2"}'
        assert sent[1] == {"role": "tool", "tool_call_id": "c1", "content": "4"}

    def test_no_choices(self, sdk):
        sdk.chat.completions.create.return_value = SimpleNamespace(choices=[])
        assert LLMClient("k", "https://x/").chat(model="m", messages=[])["message"]["content"] == ""


class TestJsonRepair:
    def test_first_object_ignores_braces_in_strings(self):
        assert first_json_object('noise {"a": "}{", "b": 1} tail') == '{"a": "}{", "b": 1}'

    def test_no_object(self):
        assert first_json_object("plain words") is None
        assert parse_json_object("plain words") is None

    def test_repairs(self):
        assert parse_json_object("{'canAnswer': True, 'reasoning': None,}") == {"canAnswer": True, "reasoning": None}

    def test_truncated_object_closed(self):
        assert repair_json('{"a": [1, 2') == '{"a": [1, 2]}'
        assert parse_json_object('{"canAnswer": false') == {"canAnswer": False}

    def test_response_with_think_and_fence(self):
        text = '<think>{"draft": 1}</think>\n```json\n{"canAnswer": true}\n```'
        assert parse_json_response(text) == {"canAnswer": True}

    def test_non_object_rejected(self):
        assert parse_json_response("[1, 2, 3]") is None
