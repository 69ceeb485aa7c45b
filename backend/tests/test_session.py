"""
Tests for ConversationSession and SessionManager.

ChatActions is replaced by AsyncMock-backed fakes; persistence uses a real
LocalStore in a temp directory.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from errors import ErrorCode, SessionBusyError, ValidationError
from routers.chat_orchestration.models import Role, SpeechEventRequest, TurnKind, UserPreferences
from routers.chat_orchestration.session import ConversationSession, SessionManager
from routers.chat_prompts import CLEARED_GREETING, GREETING, THINKING_STATUS
from services.local_store import CHAT_HISTORY_KEY, QUIZ_COMPLETED_KEY, LocalStore
from services.speech import RECOGNITION_ERROR_MESSAGES


@pytest.fixture
def store(tmp_path):
    return LocalStore(tmp_path / "sessions")


@pytest.fixture
def actions():
    fake = MagicMock()
    fake.handle_chat_message = AsyncMock(return_value={"responses": ["Paris."]})
    fake.handle_generate_haiku = AsyncMock(return_value={"haiku": "Line one\nline two\nline three"})
    return fake


def _session(store, actions, config, session_id="abc"):
    session = ConversationSession(session_id, store, actions, config)
    session.load()
    return session


class TestLoad:
    def test_new_session_waits_for_onboarding(self, store, actions, config):
        session = _session(store, actions, config)
        assert session.messages == []
        assert session.onboarding_completed is False
        assert session.preferences is None

    def test_greets_when_onboarded_and_empty(self, store, actions, config):
        store.set_item("abc", QUIZ_COMPLETED_KEY, True)
        session = _session(store, actions, config)
        assert [t.content for t in session.messages] == [GREETING]

    def test_restores_history(self, store, actions, config):
        first = _session(store, actions, config)
        first.dismiss_onboarding()
        asyncio.run(first.submit("Hello"))

        again = _session(store, actions, config)
        assert [t.role for t in again.messages] == [Role.ASSISTANT, Role.USER, Role.ASSISTANT]
        assert again.messages[1].content == "Hello"

    def test_malformed_stored_turn_skipped(self, store, actions, config):
        store.set_item("abc", CHAT_HISTORY_KEY, [{"role": "user", "content": "ok"}, {"nonsense": True}])
        session = _session(store, actions, config)
        assert [t.content for t in session.messages] == ["ok"]


class TestSubmit:
    def test_appends_user_and_assistant_turns(self, store, actions, config):
        session = _session(store, actions, config)
        snapshot = asyncio.run(session.submit("  What is the capital of France?  "))

        assert [m["role"] for m in snapshot["messages"]] == ["user", "assistant"]
        assert snapshot["messages"][0]["content"] == "What is the capital of France?"
        assert snapshot["busy"] is False
        assert snapshot["status"] is None
        assert snapshot["speak"] == []

    def test_history_passed_includes_new_message(self, store, actions, config):
        session = _session(store, actions, config)
        asyncio.run(session.submit("Hi"))
        message, history, prefs = actions.handle_chat_message.call_args[0]
        assert message == "Hi"
        assert history[-1].content == "Hi"
        assert prefs is None

    def test_two_responses_become_two_turns(self, store, actions, config):
        actions.handle_chat_message.return_value = {"responses": ["Let me check that for you.", "Found it."]}
        session = _session(store, actions, config)
        asyncio.run(session.submit("Obscure question"))
        assert [t.content for t in session.messages[-2:]] == ["Let me check that for you.", "Found it."]

    def test_error_turn(self, store, actions, config):
        actions.handle_chat_message.return_value = {"error": "A moment's pause."}
        session = _session(store, actions, config)
        asyncio.run(session.submit("Hi"))
        assert session.messages[-1].role == Role.ERROR
        assert session.busy is False

    def test_blank_message_rejected(self, store, actions, config):
        session = _session(store, actions, config)
        with pytest.raises(ValidationError):
            asyncio.run(session.submit("   "))
        actions.handle_chat_message.assert_not_called()

    def test_too_long_message_rejected(self, store, actions, config):
        config.max_message_length = 10
        session = _session(store, actions, config)
        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(session.submit("x" * 11))
        assert exc_info.value.code == ErrorCode.VALIDATION_OUT_OF_RANGE
        assert session.messages == []

    def test_busy_rejects_second_message(self, store, actions, config):
        session = _session(store, actions, config)
        seen = {}

        async def slow_turn(message, history, prefs):
            seen["status"] = session.snapshot()["status"]["content"]
            with pytest.raises(SessionBusyError):
                await session.submit("second")
            return {"responses": ["done"]}

        actions.handle_chat_message.side_effect = slow_turn
        asyncio.run(session.submit("first"))

        assert seen["status"] == THINKING_STATUS
        assert [t.content for t in session.messages] == ["first", "done"]
        assert session.busy is False

    def test_busy_cleared_after_exception(self, store, actions, config):
        actions.handle_chat_message.side_effect = RuntimeError("unexpected")
        session = _session(store, actions, config)
        with pytest.raises(RuntimeError):
            asyncio.run(session.submit("Hi"))
        assert session.busy is False
        assert session.status is None

    def test_status_never_stored(self, store, actions, config):
        session = _session(store, actions, config)
        asyncio.run(session.submit("Hi"))
        stored = store.get_item("abc", CHAT_HISTORY_KEY)
        assert all(turn["role"] != "system-status" for turn in stored)


class TestSpeech:
    def test_responses_queued_when_tts_enabled(self, store, actions, config):
        actions.handle_chat_message.return_value = {"responses": ["One.", "Two."]}
        session = _session(store, actions, config)
        session.update_tts(enabled=True, voice_uri="Google UK English Female")

        snapshot = asyncio.run(session.submit("Hi"))

        assert snapshot["speak"] == [
            {"text": "One.", "voiceURI": "Google UK English Female"},
            {"text": "Two.", "voiceURI": "Google UK English Female"},
        ]

    def test_error_spoken(self, store, actions, config):
        actions.handle_chat_message.return_value = {"error": "A disturbance."}
        session = _session(store, actions, config)
        session.update_tts(enabled=True)
        snapshot = asyncio.run(session.submit("Hi"))
        assert snapshot["speak"] == [{"text": "A disturbance.", "voiceURI": None}]

    def test_tts_partial_update_persists(self, store, actions, config):
        session = _session(store, actions, config)
        session.update_tts(voice_uri="voice-1")
        session.update_tts(enabled=True)
        reloaded = _session(store, actions, config)
        assert reloaded.tts.enabled is True
        assert reloaded.tts.voice_uri == "voice-1"

    def test_speech_capture_composes_input(self, store, actions, config):
        session = _session(store, actions, config)
        started = session.speech_event(SpeechEventRequest(type="start", baseText="Tell me"))
        assert started["listening"] is True
        assert started["commands"] == ["start"]

        state = session.speech_event(
            SpeechEventRequest.model_validate(
                {
                    "type": "result",
                    "results": [{"transcript": "about", "isFinal": True}, {"transcript": "honor", "isFinal": False}],
                }
            )
        )
        assert state["input"] == "Tell me about honor"
        assert state["commands"] == []

        stopped = session.speech_event(SpeechEventRequest(type="stop"))
        assert stopped["listening"] is False
        assert stopped["commands"] == ["stop"]

    def test_speech_error_is_described(self, store, actions, config):
        session = _session(store, actions, config)
        session.speech_event(SpeechEventRequest(type="start"))
        state = session.speech_event(SpeechEventRequest(type="error", code="not-allowed"))
        assert state["listening"] is False
        assert state["error"] == RECOGNITION_ERROR_MESSAGES["not-allowed"]


class TestHaiku:
    def test_haiku_turn(self, store, actions, config):
        session = _session(store, actions, config)
        asyncio.run(session.generate_haiku("autumn"))
        assert session.messages[-1].kind == TurnKind.HAIKU
        actions.handle_generate_haiku.assert_awaited_once_with("autumn")

    def test_haiku_error_turn(self, store, actions, config):
        actions.handle_generate_haiku.return_value = {"error": "The path to poetry is sometimes clouded."}
        session = _session(store, actions, config)
        asyncio.run(session.generate_haiku("autumn"))
        assert session.messages[-1].role == Role.ERROR
        assert session.messages[-1].kind == TurnKind.PLAIN

    def test_haiku_status(self, store, actions, config):
        session = _session(store, actions, config)
        seen = {}

        async def capture(theme):
            seen["status"] = session.status.content
            return {"haiku": "a\nb\nc"}

        actions.handle_generate_haiku.side_effect = capture
        asyncio.run(session.generate_haiku("cherry blossoms"))
        assert seen["status"] == 'Aizen contemplates a haiku on "cherry blossoms"...'


class TestPreferencesAndOnboarding:
    def test_save_preferences_round_trip(self, store, actions, config):
        session = _session(store, actions, config)
        session.save_preferences(UserPreferences(tone="Concise", answerLength="Detailed", philosophicalInterest="Low"))

        reloaded = _session(store, actions, config)
        assert reloaded.preferences == session.preferences
        assert reloaded.onboarding_completed is True
        assert [t.content for t in reloaded.messages] == [GREETING]

    def test_save_keeps_real_history(self, store, actions, config):
        session = _session(store, actions, config)
        session.dismiss_onboarding()
        asyncio.run(session.submit("Hi"))
        session.save_preferences(UserPreferences())
        assert len(session.messages) == 3

    def test_save_resets_lone_greeting(self, store, actions, config):
        session = _session(store, actions, config)
        session.dismiss_onboarding()
        old_id = session.messages[0].id
        session.save_preferences(UserPreferences())
        assert len(session.messages) == 1
        assert session.messages[0].id != old_id

    def test_clear(self, store, actions, config):
        session = _session(store, actions, config)
        session.dismiss_onboarding()
        asyncio.run(session.submit("Hi"))
        session.clear()
        assert [t.content for t in session.messages] == [CLEARED_GREETING]
        assert [t["content"] for t in store.get_item("abc", CHAT_HISTORY_KEY)] == [CLEARED_GREETING]


class TestSessionManager:
    def test_caches_sessions(self, store, actions, config):
        manager = SessionManager(store, actions, config)
        assert manager.get("abc") is manager.get("abc")
        assert len(manager) == 1

    def test_cache_is_bounded(self, store, actions, config):
        config.max_cached_sessions = 2
        manager = SessionManager(store, actions, config)
        first = manager.get("s1")
        manager.get("s2")
        manager.get("s1")
        manager.get("s3")
        assert len(manager) == 2
        assert manager.get("s1") is first

    def test_busy_session_is_not_evicted(self, store, actions, config):
        config.max_cached_sessions = 1
        manager = SessionManager(store, actions, config)
        busy = manager.get("s1")
        busy.busy = True
        manager.get("s2")
        assert manager.get("s1") is busy

    @pytest.mark.parametrize("bad_id", ["", "../etc/passwd", "a" * 65, "has space"])
    def test_invalid_ids(self, store, actions, config, bad_id):
        manager = SessionManager(store, actions, config)
        with pytest.raises(ValidationError) as exc_info:
            manager.get(bad_id)
        assert exc_info.value.code == ErrorCode.VALIDATION_INVALID_FORMAT
