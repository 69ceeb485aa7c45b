"""
Tests for persona prompts and the chat data model.
"""

import pytest
from pydantic import ValidationError

from routers.chat_orchestration.models import (
    AnswerLength,
    ChatRequest,
    ChatTurn,
    PhilosophicalInterest,
    Role,
    TTSSettings,
    Tone,
    TurnKind,
    UserPreferences,
)
from routers.chat_prompts import (
    ACK_CONCISE,
    ACK_DEFAULT,
    ACK_FORMAL,
    PersonaPromptBuilder,
    cleanup_response_text,
)


class TestPersonaPromptBuilder:
    def test_defaults_without_preferences(self):
        prompt = PersonaPromptBuilder().system_prompt(None)
        assert "You are Aizen" in prompt
        assert "Tone: Guiding" in prompt
        assert "Answer length: Moderate" in prompt
        assert "Interest in Bushido philosophy: Moderate" in prompt

    def test_tools_section_included(self):
        prompt = PersonaPromptBuilder(tools_section="TOOLS AVAILABLE TO YOU:\n1. get_time").system_prompt()
        assert "1. get_time" in prompt
        assert "at most ONCE per turn" in prompt

    def test_every_preference_combination_renders(self):
        builder = PersonaPromptBuilder()
        for tone in Tone:
            for length in AnswerLength:
                for interest in PhilosophicalInterest:
                    prefs = UserPreferences(tone=tone, answer_length=length, philosophical_interest=interest)
                    prompt = builder.system_prompt(prefs)
                    assert f"Tone: {tone.value}" in prompt
                    assert f"Answer length: {length.value}" in prompt
                    assert f"Bushido philosophy: {interest.value}" in prompt

    def test_acknowledgements(self):
        builder = PersonaPromptBuilder()
        assert builder.acknowledgement(UserPreferences(tone="Concise")) == ACK_CONCISE
        assert builder.acknowledgement(UserPreferences(answerLength="Brief")) == ACK_CONCISE
        assert builder.acknowledgement(UserPreferences(tone="Formal")) == ACK_FORMAL
        assert builder.acknowledgement(UserPreferences(tone="Guiding")) == ACK_DEFAULT

    def test_time_sentence(self):
        builder = PersonaPromptBuilder()
        assert builder.time_sentence("9:30:00 PM (UTC)") == "The present moment reads 9:30:00 PM (UTC)."
        assert builder.time_sentence("obscured", succeeded=False) == "obscured"

    def test_haiku_prompt(self):
        assert "Compose a haiku on the theme: falling leaves." in PersonaPromptBuilder().haiku_prompt("falling leaves")


class TestCleanupResponseText:
    def test_strips_think_blocks(self):
        assert cleanup_response_text("<think>plan</think>Answer") == "Answer"
        assert cleanup_response_text("Answer</think>") == "Answer"

    def test_strips_inline_tool_json(self):
        text = 'Let me see. {"name": "get_time", "arguments": {}}'
        assert cleanup_response_text(text) == "Let me see."

    def test_empty(self):
        assert cleanup_response_text(None) == ""
        assert cleanup_response_text("   ") == ""


class TestUserPreferences:
    def test_defaults(self):
        prefs = UserPreferences()
        assert prefs.tone == Tone.GUIDING
        assert prefs.answer_length == AnswerLength.MODERATE
        assert prefs.philosophical_interest == PhilosophicalInterest.MODERATE

    def test_legacy_alias(self):
        prefs = UserPreferences.model_validate({"tone": "Formal", "answerLength": "Brief", "bushidoInterest": "High"})
        assert prefs.philosophical_interest == PhilosophicalInterest.HIGH

    def test_wire_form_uses_camel_case(self):
        assert UserPreferences().to_wire() == {
            "tone": "Guiding",
            "answerLength": "Moderate",
            "philosophicalInterest": "Moderate",
        }

    def test_rejects_unknown_values(self):
        with pytest.raises(ValidationError):
            UserPreferences(tone="Loud")


class TestChatTurn:
    def test_frozen(self):
        turn = ChatTurn(role=Role.USER, content="hi")
        with pytest.raises(ValidationError):
            turn.content = "changed"

    def test_wire_round_trip(self):
        turn = ChatTurn(role=Role.ASSISTANT, content="haiku", kind=TurnKind.HAIKU)
        wire = turn.to_wire()
        assert wire["role"] == "assistant"
        assert wire["kind"] == "haiku"
        assert "createdAt" in wire
        assert ChatTurn.model_validate(wire) == turn

    def test_unique_ids(self):
        assert ChatTurn(role=Role.USER, content="a").id != ChatTurn(role=Role.USER, content="a").id


class TestRequests:
    def test_chat_request_camel_case(self):
        body = ChatRequest.model_validate(
            {"message": "hi", "chatHistory": [{"role": "user", "content": "hi"}], "preferences": None}
        )
        assert body.chat_history[0].content == "hi"
        assert body.preferences is None

    def test_tts_defaults(self):
        assert TTSSettings().to_wire() == {"enabled": False, "voiceURI": None}
