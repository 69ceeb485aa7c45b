"""
Aizen Conversation Session - conversation state management

One ConversationSession per conversation id holds the ordered turns,
preferences, TTS settings, onboarding flag and the busy/status state, and
persists everything through LocalStore. The "thinking" status turn is kept
apart from the stored history and only exposed while a turn is in flight.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from errors import ErrorCode, SessionBusyError, ValidationError
from routers.chat_prompts import CLEARED_GREETING, GREETING, THINKING_STATUS, haiku_status
from services.local_store import (
    CHAT_HISTORY_KEY,
    QUIZ_COMPLETED_KEY,
    TTS_SETTINGS_KEY,
    USER_PREFERENCES_KEY,
    LocalStore,
    is_valid_session_id,
)
from services.speech import (
    QueuedSpeechEngine,
    RecognitionResult,
    RelayedRecognitionEngine,
    SpeechCapture,
    SpeechPlayback,
    Voice,
)

from .actions import ChatActions
from .models import ChatTurn, Role, SpeechEventRequest, TTSSettings, TurnKind, UserPreferences

logger = logging.getLogger(__name__)


class ConversationSession:
    """State and operations for a single conversation."""

    def __init__(self, session_id: str, store: LocalStore, actions: ChatActions, config):
        self.session_id = session_id
        self.store = store
        self.actions = actions
        self.config = config

        self.messages: List[ChatTurn] = []
        self.preferences: Optional[UserPreferences] = None
        self.tts = TTSSettings()
        self.onboarding_completed = False
        self.busy = False
        self.status: Optional[ChatTurn] = None

        self.speech_engine = QueuedSpeechEngine()
        self.playback = SpeechPlayback(self.speech_engine)
        self.recognition = RelayedRecognitionEngine()
        self.capture = SpeechCapture(self.recognition)

    # -- persistence --------------------------------------------------------

    def load(self) -> None:
        """Restore persisted state; greet if onboarding is done and history is empty."""
        self.onboarding_completed = bool(self.store.get_item(self.session_id, QUIZ_COMPLETED_KEY, False))

        raw_prefs = self.store.get_item(self.session_id, USER_PREFERENCES_KEY)
        self.preferences = None
        if raw_prefs:
            try:
                self.preferences = UserPreferences.model_validate(raw_prefs)
            except PydanticValidationError as e:
                logger.warning(f"Discarding stored preferences for {self.session_id}: {e.error_count()} error(s)")

        raw_tts = self.store.get_item(self.session_id, TTS_SETTINGS_KEY)
        self.tts = TTSSettings()
        if raw_tts:
            try:
                self.tts = TTSSettings.model_validate(raw_tts)
            except PydanticValidationError:
                logger.warning(f"Discarding stored TTS settings for {self.session_id}")
        self._sync_playback()

        self.messages = []
        for raw in self.store.get_item(self.session_id, CHAT_HISTORY_KEY, []) or []:
            try:
                self.messages.append(ChatTurn.model_validate(raw))
            except PydanticValidationError:
                logger.warning(f"Skipping malformed stored turn in {self.session_id}")

        if self.onboarding_completed and not self.messages:
            self._append(ChatTurn(role=Role.ASSISTANT, content=GREETING))

    def _save_history(self) -> None:
        self.store.set_item(self.session_id, CHAT_HISTORY_KEY, [t.to_wire() for t in self.messages])

    def _append(self, turn: ChatTurn) -> None:
        self.messages.append(turn)
        self._save_history()

    # -- busy discipline -----------------------------------------------------

    def _begin(self, status_text: str) -> None:
        if self.busy:
            raise SessionBusyError(self.session_id)
        self.busy = True
        self.status = ChatTurn(role=Role.SYSTEM_STATUS, content=status_text)

    def _end(self) -> None:
        self.busy = False
        self.status = None

    # -- speech --------------------------------------------------------------

    def _sync_playback(self) -> None:
        # The browser owns the real voice list; the saved voice is the one we know of
        self.speech_engine.voices = [Voice(voice_uri=self.tts.voice_uri)] if self.tts.voice_uri else []
        self.playback.set_enabled(self.tts.enabled)
        self.playback.set_voice(self.tts.voice_uri)
        self.playback.refresh_voices()

    def _speak(self, text: str) -> List[Dict[str, Optional[str]]]:
        if not self.playback.speak(text):
            return []
        return self.speech_engine.drain()

    def speech_event(self, event: SpeechEventRequest) -> Dict[str, Any]:
        """Apply one recognition event; returns the capture state and any
        start/stop commands for the browser."""
        if event.type == "start":
            self.capture.start(event.base_text)
        elif event.type == "stop":
            self.capture.stop()
        elif event.type == "result":
            results = [RecognitionResult(r.transcript, r.is_final) for r in event.results]
            self.capture.handle_result(results, event.result_index)
        elif event.type == "error":
            self.capture.handle_error(event.code or "")
        else:
            self.capture.handle_end()

        return {
            "listening": self.capture.listening,
            "input": self.capture.compose_input(),
            "error": self.capture.error,
            "commands": self.recognition.drain(),
        }

    # -- operations ----------------------------------------------------------

    async def submit(self, message: str) -> Dict[str, Any]:
        """Run one turn; returns the snapshot plus utterances to speak.

        Raises:
            ValidationError: blank or over-long message
            SessionBusyError: a turn is already in flight
        """
        text = (message or "").strip()
        if not text:
            raise ValidationError("Message is empty", parameter="message")
        limit = self.config.max_message_length
        if len(text) > limit:
            raise ValidationError(
                "Message is too long",
                code=ErrorCode.VALIDATION_OUT_OF_RANGE,
                details=f"Messages are limited to {limit} characters.",
                parameter="message",
                expected=f"<= {limit} characters",
                received=f"{len(text)} characters",
            )

        self._begin(THINKING_STATUS)
        spoken: List[Dict[str, Optional[str]]] = []
        try:
            self._append(ChatTurn(role=Role.USER, content=text))
            result = await self.actions.handle_chat_message(text, list(self.messages), self.preferences)
            if "responses" in result:
                for response in result["responses"]:
                    self._append(ChatTurn(role=Role.ASSISTANT, content=response))
                    spoken.extend(self._speak(response))
            else:
                self._append(ChatTurn(role=Role.ERROR, content=result["error"]))
                spoken.extend(self._speak(result["error"]))
        finally:
            self._end()

        return {**self.snapshot(), "speak": spoken}

    async def generate_haiku(self, theme: str) -> Dict[str, Any]:
        theme = (theme or "").strip()
        if not theme:
            raise ValidationError("Haiku theme is empty", parameter="theme")

        self._begin(haiku_status(theme))
        spoken: List[Dict[str, Optional[str]]] = []
        try:
            result = await self.actions.handle_generate_haiku(theme)
            if result.get("haiku"):
                self._append(ChatTurn(role=Role.ASSISTANT, content=result["haiku"], kind=TurnKind.HAIKU))
                spoken.extend(self._speak(result["haiku"]))
            else:
                self._append(ChatTurn(role=Role.ERROR, content=result["error"]))
                spoken.extend(self._speak(result["error"]))
        finally:
            self._end()

        return {**self.snapshot(), "speak": spoken}

    def save_preferences(self, preferences: UserPreferences) -> None:
        self.preferences = preferences
        self.onboarding_completed = True
        self.store.set_item(self.session_id, USER_PREFERENCES_KEY, preferences.to_wire())
        self.store.set_item(self.session_id, QUIZ_COMPLETED_KEY, True)

        only_greeting = (
            len(self.messages) == 1
            and self.messages[0].role == Role.ASSISTANT
            and self.messages[0].content.startswith("Greetings.")
        )
        if not self.messages or only_greeting:
            self.messages = []
            self._append(ChatTurn(role=Role.ASSISTANT, content=GREETING))

    def dismiss_onboarding(self) -> None:
        self.onboarding_completed = True
        self.store.set_item(self.session_id, QUIZ_COMPLETED_KEY, True)
        if not self.messages:
            self._append(ChatTurn(role=Role.ASSISTANT, content=GREETING))

    def clear(self) -> None:
        self.messages = []
        self.store.remove_item(self.session_id, CHAT_HISTORY_KEY)
        self._append(ChatTurn(role=Role.ASSISTANT, content=CLEARED_GREETING))

    def update_tts(self, **changes: Any) -> TTSSettings:
        """Partial update; only ``enabled`` and ``voice_uri`` keys that are passed apply."""
        data = self.tts.model_dump()
        if changes.get("enabled") is not None:
            data["enabled"] = bool(changes["enabled"])
        if "voice_uri" in changes:
            data["voice_uri"] = changes["voice_uri"] or None
        self.tts = TTSSettings.model_validate(data)
        if not self.tts.enabled:
            self.playback.cancel()
        self._sync_playback()
        self.store.set_item(self.session_id, TTS_SETTINGS_KEY, self.tts.to_wire())
        return self.tts

    def snapshot(self) -> Dict[str, Any]:
        return {
            "messages": [t.to_wire() for t in self.messages],
            "preferences": self.preferences.to_wire() if self.preferences else None,
            "tts": self.tts.to_wire(),
            "onboardingCompleted": self.onboarding_completed,
            "busy": self.busy,
            "status": self.status.to_wire() if self.status else None,
        }


class SessionManager:
    """Creates and caches one ConversationSession per id.

    The cache is LRU-bounded by config.max_cached_sessions. Evicted sessions
    are reloaded from the store on next use; a busy session is never evicted.
    """

    def __init__(self, store: LocalStore, actions: ChatActions, config):
        self.store = store
        self.actions = actions
        self.config = config
        self._sessions: "OrderedDict[str, ConversationSession]" = OrderedDict()

    def get(self, session_id: str) -> ConversationSession:
        """
        Raises:
            ValidationError: id is not [A-Za-z0-9_-]{1,64}
        """
        if not is_valid_session_id(session_id):
            raise ValidationError(
                "Invalid session id",
                code=ErrorCode.VALIDATION_INVALID_FORMAT,
                parameter="session_id",
                expected="1-64 characters of letters, digits, '-' or '_'",
                received=session_id[:80],
            )
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
            return session

        session = ConversationSession(session_id, self.store, self.actions, self.config)
        session.load()
        self._sessions[session_id] = session
        self._evict_idle()
        return session

    def _evict_idle(self) -> None:
        limit = self.config.max_cached_sessions
        for session_id in list(self._sessions):
            if len(self._sessions) <= limit:
                break
            if not self._sessions[session_id].busy:
                del self._sessions[session_id]
                logger.debug(f"Evicted idle session {session_id}")

    def __len__(self) -> int:
        return len(self._sessions)
