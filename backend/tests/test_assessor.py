"""
Tests for the capability assessor.

The model is reached through a ModelCaller wrapping a MagicMock client, so
JSON parsing and error handling run for real.
"""

import asyncio

import pytest

from routers.chat_orchestration.assessor import (
    LLMCapabilityAssessor,
    detect_time_intent,
    extract_region,
)


class TestTimeIntent:
    @pytest.mark.parametrize(
        "message",
        [
            "What time is it?",
            "what's the time",
            "Can you tell me the current time please",
            "What time is it in Tokyo?",
            "Tell me the time",
        ],
    )
    def test_detected(self, message):
        assert detect_time_intent(message)

    @pytest.mark.parametrize(
        "message",
        [
            "What is the capital of France?",
            "I spent some time in Kyoto last year",
            "How do I manage my time better?",
            "What is the time complexity of merge sort?",
            "What is the current time complexity of binary search?",
            "What is the time difference between Tokyo and London?",
            "What time is it good to visit Kyoto?",
        ],
    )
    def test_not_detected(self, message):
        assert not detect_time_intent(message)

    def test_region_extraction(self):
        assert extract_region("What time is it in Tokyo?") == "Tokyo"
        assert extract_region("what's the time in New York right now") == "New York"
        assert extract_region("What time is it?") is None


class TestLLMCapabilityAssessor:
    def test_time_intent_skips_model(self, config, model_caller, fake_llm_client):
        result = asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("What time is it?"))
        assert result.is_time_intent
        assert result.can_answer_directly
        fake_llm_client.chat.assert_not_called()

    def test_time_complexity_question_goes_to_model(self, config, model_caller, fake_llm_client, llm_response):
        fake_llm_client.chat.return_value = llm_response('{"canAnswer": true, "isTimeIntent": false}')
        result = asyncio.run(
            LLMCapabilityAssessor(model_caller, config).assess("What is the time complexity of merge sort?")
        )
        assert result.is_time_intent is False
        assert result.can_answer_directly is True
        fake_llm_client.chat.assert_called_once()

    def test_can_answer(self, config, model_caller, fake_llm_client, llm_response):
        fake_llm_client.chat.return_value = llm_response('{"canAnswer": true, "reasoning": "common fact"}')
        result = asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("What is the capital of France?"))
        assert result.can_answer_directly is True
        assert result.is_time_intent is False
        assert result.rationale == "common fact"

    def test_cannot_answer(self, config, model_caller, fake_llm_client, llm_response):
        fake_llm_client.chat.return_value = llm_response('```json\n{"canAnswer": false, "reasoning": "recent"}\n```')
        result = asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("Who won yesterday's match?"))
        assert result.can_answer_directly is False

    def test_uses_assessor_model_in_json_mode(self, config, model_caller, fake_llm_client, llm_response):
        fake_llm_client.chat.return_value = llm_response('{"canAnswer": true}')
        asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("Explain recursion"))
        kwargs = fake_llm_client.chat.call_args.kwargs
        assert kwargs["model"] == "test-assessor"
        assert kwargs["format"] == "json"

    def test_string_booleans_accepted(self, config, model_caller, fake_llm_client, llm_response):
        fake_llm_client.chat.return_value = llm_response('{"canAnswer": "false"}')
        result = asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("Obscure thing"))
        assert result.can_answer_directly is False
        assert result.error is None

    def test_unparseable_output_defaults_to_lookup(self, config, model_caller, fake_llm_client, llm_response):
        fake_llm_client.chat.return_value = llm_response("I think I can answer that.")
        result = asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("Explain recursion"))
        assert result.can_answer_directly is False
        assert result.error == "unparseable"

    def test_provider_failure_defaults_to_lookup(self, config, model_caller, fake_llm_client):
        fake_llm_client.chat.side_effect = RuntimeError("503 Service Unavailable")
        result = asyncio.run(LLMCapabilityAssessor(model_caller, config).assess("Explain recursion"))
        assert result.can_answer_directly is False
        assert "503" in result.error
