"""
Aizen Sessions Router
Server-side conversation sessions

Each session is persisted as one JSON file under AIZEN_DATA_DIR (see
services/local_store.py). Errors raised here (invalid id, busy session,
over-long message) are AizenError subclasses; main.py turns them into
HTTP responses.
"""

import logging

from fastapi import APIRouter, Request

from routers.chat_orchestration.models import (
    HaikuRequest,
    SpeechEventRequest,
    SubmitMessageRequest,
    TTSUpdateRequest,
    UserPreferences,
)
from routers.chat_orchestration.session import ConversationSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _session(request: Request, session_id: str) -> ConversationSession:
    return request.app.state.sessions.get(session_id)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, request: Request):
    """Current snapshot: messages, preferences, tts, onboarding, busy, status."""
    return _session(request, session_id).snapshot()


@router.post("/sessions/{session_id}/messages")
async def submit_message(session_id: str, body: SubmitMessageRequest, request: Request):
    session = _session(request, session_id)
    return await session.submit(body.message)


@router.post("/sessions/{session_id}/haiku")
async def session_haiku(session_id: str, body: HaikuRequest, request: Request):
    session = _session(request, session_id)
    return await session.generate_haiku(body.theme)


@router.put("/sessions/{session_id}/preferences")
async def save_preferences(session_id: str, body: UserPreferences, request: Request):
    session = _session(request, session_id)
    session.save_preferences(body)
    logger.info(
        f"Preferences saved for {session_id}: tone={body.tone.value} "
        f"length={body.answer_length.value} interest={body.philosophical_interest.value}"
    )
    return session.snapshot()


@router.post("/sessions/{session_id}/onboarding/dismiss")
async def dismiss_onboarding(session_id: str, request: Request):
    session = _session(request, session_id)
    session.dismiss_onboarding()
    return session.snapshot()


@router.delete("/sessions/{session_id}/messages")
async def clear_messages(session_id: str, request: Request):
    """Clear the conversation and leave the fresh-start greeting."""
    session = _session(request, session_id)
    session.clear()
    return session.snapshot()


@router.put("/sessions/{session_id}/tts")
async def update_tts(session_id: str, body: TTSUpdateRequest, request: Request):
    session = _session(request, session_id)
    changes = body.model_dump(include=body.model_fields_set)
    tts = session.update_tts(**changes)
    return tts.to_wire()


@router.post("/sessions/{session_id}/speech")
async def speech_event(session_id: str, body: SpeechEventRequest, request: Request):
    """Relay a browser speech-recognition event; returns the composed input text."""
    return _session(request, session_id).speech_event(body)
