"""
Aizen Status Router - health, runtime settings and speech error text
"""

from fastapi import APIRouter, Request

from services.speech import describe_recognition_error

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    config = request.app.state.config
    configured = not config.is_api_key_invalid()
    return {
        "status": "healthy" if configured else "degraded",
        "configured": configured,
        "model": config.model_chat,
    }


@router.get("/config")
async def get_config(request: Request):
    """Current runtime settings (the key itself is never included)."""
    return request.app.state.config.to_dict()


@router.get("/speech/errors/{code}")
async def speech_error(code: str):
    """User-facing text for a browser speech recognition error code."""
    return {"code": code, "message": describe_recognition_error(code)}
