"""
Aizen Chat Router - stateless turn submission, haiku and error formatting

The browser keeps its own history and sends it with each message; these
endpoints are thin wrappers over ChatActions and always answer 200 with
either a result key or an "error" key.
"""

import logging

from fastapi import APIRouter, Request

from routers.chat_orchestration.models import ChatRequest, FormatErrorRequest, HaikuRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/chat")
async def chat_message(body: ChatRequest, request: Request):
    """Run one turn: {"responses": [...]} or {"error": "..."}."""
    actions = request.app.state.actions
    history = [entry.model_dump() for entry in body.chat_history]
    return await actions.handle_chat_message(body.message, history, body.preferences)


@router.post("/haiku")
async def generate_haiku(body: HaikuRequest, request: Request):
    return await request.app.state.actions.handle_generate_haiku(body.theme)


@router.post("/errors/format")
async def format_error(body: FormatErrorRequest, request: Request):
    return await request.app.state.actions.handle_format_error(body.error_message)
