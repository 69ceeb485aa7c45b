"""
Aizen chat data model.

ChatTurn is frozen: a conversation only ever grows by appending turns and
shrinks only when the whole history is cleared. Field aliases match the
camelCase keys the browser UI sends and stores.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM_STATUS = "system-status"
    ERROR = "error"


class TurnKind(str, Enum):
    PLAIN = "plain"
    HAIKU = "haiku"


class Tone(str, Enum):
    FORMAL = "Formal"
    GUIDING = "Guiding"
    CONCISE = "Concise"


class AnswerLength(str, Enum):
    DETAILED = "Detailed"
    MODERATE = "Moderate"
    BRIEF = "Brief"


class PhilosophicalInterest(str, Enum):
    HIGH = "High"
    MODERATE = "Moderate"
    LOW = "Low"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ChatTurn(BaseModel):
    """One entry in a conversation."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, use_enum_values=False)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    content: str
    created_at: datetime = Field(default_factory=_now, alias="createdAt")
    kind: TurnKind = TurnKind.PLAIN

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class UserPreferences(BaseModel):
    """Onboarding answers that shape the persona prompt."""

    model_config = ConfigDict(populate_by_name=True)

    tone: Tone = Tone.GUIDING
    answer_length: AnswerLength = Field(
        AnswerLength.MODERATE,
        validation_alias=AliasChoices("answerLength", "answer_length"),
        serialization_alias="answerLength",
    )
    philosophical_interest: PhilosophicalInterest = Field(
        PhilosophicalInterest.MODERATE,
        validation_alias=AliasChoices("philosophicalInterest", "bushidoInterest", "philosophical_interest"),
        serialization_alias="philosophicalInterest",
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class TTSSettings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    voice_uri: Optional[str] = Field(None, alias="voiceURI")

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# Request bodies


class HistoryEntry(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    chat_history: List[HistoryEntry] = Field(default_factory=list, alias="chatHistory")
    preferences: Optional[UserPreferences] = None


class HaikuRequest(BaseModel):
    theme: str


class FormatErrorRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error_message: str = Field(alias="errorMessage")


class SubmitMessageRequest(BaseModel):
    message: str


class TTSUpdateRequest(BaseModel):
    """Partial update: only fields present in the body are applied."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: Optional[bool] = None
    voice_uri: Optional[str] = Field(None, alias="voiceURI")


class SpeechResultItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    transcript: str = ""
    is_final: bool = Field(False, alias="isFinal")


class SpeechEventRequest(BaseModel):
    """One event from the browser's speech recognition, or a start/stop request."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["start", "stop", "result", "error", "end"]
    base_text: str = Field("", alias="baseText")
    results: List[SpeechResultItem] = Field(default_factory=list)
    result_index: int = Field(0, alias="resultIndex", ge=0)
    code: Optional[str] = None
