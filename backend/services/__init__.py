"""
Aizen Services - Shared infrastructure services.

- llm_client: OpenAI SDK client for the OpenAI-compatible provider endpoint
- json_repair: recover JSON objects from model output
- local_store: per-session JSON key-value persistence
- speech: speech capture / playback state machines
"""

from .llm_client import LLMClient
from .local_store import LocalStore

__all__ = ["LLMClient", "LocalStore"]
