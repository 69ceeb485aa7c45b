"""
Aizen - a persona chat assistant guided by Bushido
FastAPI Backend with LLM + Tools
"""

from contextlib import asynccontextmanager
from pathlib import Path
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from routers import chat, sessions, status
from routers.chat_orchestration import (
    ChatActions,
    ErrorFormatter,
    HaikuGenerator,
    LLMCapabilityAssessor,
    ModelCaller,
    ResponseComposer,
    SessionManager,
    TurnOrchestrator,
)
from routers.chat_prompts import PersonaPromptBuilder
from errors import AizenError, error_response, http_status_for
from logging_config import setup_logging
from config import RuntimeConfig, runtime_config
from services.local_store import LocalStore
from tools.registry import build_registry

setup_logging()
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent


def build_services(app: FastAPI, config: RuntimeConfig, model_caller=None) -> None:
    """Wire the turn pipeline and session manager onto app.state."""
    model = model_caller or ModelCaller(config)
    registry = build_registry(model, config)
    prompts = PersonaPromptBuilder(tools_section=registry.generate_tools_section())

    orchestrator = TurnOrchestrator(
        assessor=LLMCapabilityAssessor(model, config, prompts),
        composer=ResponseComposer(model, registry, prompts, config),
        registry=registry,
        prompts=prompts,
    )
    actions = ChatActions(
        config,
        orchestrator,
        haiku=HaikuGenerator(model, prompts),
        error_formatter=ErrorFormatter(model, prompts),
    )

    data_dir = Path(config.data_dir)
    if not data_dir.is_absolute():
        data_dir = BASE_DIR / data_dir

    app.state.config = config
    app.state.registry = registry
    app.state.actions = actions
    app.state.sessions = SessionManager(LocalStore(data_dir), actions, config)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    build_services(app, runtime_config)
    if runtime_config.is_api_key_invalid():
        logger.warning("GOOGLE_API_KEY is missing or a placeholder; chat requests will return the configuration message")
    logger.info(f"Aizen ready (model={runtime_config.model_chat}, timezone={runtime_config.timezone})")
    yield
    logger.info("Aizen signing off")


app = FastAPI(
    title="Aizen",
    description="A calm assistant on the path of Bushido",
    version="1.0.0",
    lifespan=lifespan,
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


async def aizen_error_handler(request: Request, exc: AizenError):
    if http_status_for(exc) >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=http_status_for(exc), content=error_response(exc, include_context=False))


app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=runtime_config.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AizenError, aizen_error_handler)

# API Routers
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(sessions.router, prefix="/api", tags=["sessions"])
app.include_router(status.router, prefix="/api", tags=["status"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
