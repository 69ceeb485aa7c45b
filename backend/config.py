"""
Runtime Configuration for Aizen.

Provides a RuntimeConfig dataclass whose fields default from environment
variables and can be adjusted at runtime without a restart.

Usage:
    from config import runtime_config
    model = runtime_config.model_chat
    runtime_config.update(temperature=0.4)
"""

import os
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Tuple
from threading import Lock

logger = logging.getLogger(__name__)

# Placeholder shipped in the sample .env; treated the same as a missing key
API_KEY_PLACEHOLDER = "YOUR_API_KEY_HERE"

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

_URL_FIELDS = {"llm_base_url", "searxng_url"}


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


@dataclass
class RuntimeConfig:
    """
    Configuration for runtime-adjustable parameters.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Provider credentials and endpoint
    api_key: str = field(default_factory=lambda: _first_env("GOOGLE_API_KEY", "GEMINI_API_KEY", default=""))
    llm_base_url: str = field(
        default_factory=lambda: os.environ.get("LLM_BASE_URL", GEMINI_OPENAI_BASE_URL).strip() or GEMINI_OPENAI_BASE_URL
    )

    # Model names
    model_chat: str = field(default_factory=lambda: _first_env("LLM_CHAT_MODEL", default="gemini-2.0-flash"))
    model_assessor: str = field(
        default_factory=lambda: _first_env("LLM_ASSESSOR_MODEL", "LLM_CHAT_MODEL", default="gemini-2.0-flash")
    )

    # Model parameters
    temperature: float = field(default_factory=lambda: float(os.environ.get("LLM_TEMPERATURE", "0.7")))
    max_output_tokens: int = field(default_factory=lambda: int(os.environ.get("LLM_MAX_TOKENS", "1024")))
    llm_timeout: int = field(default_factory=lambda: int(os.environ.get("LLM_TIMEOUT", "60")))

    # Conversation limits
    max_history_length: int = field(
        default_factory=lambda: int(os.environ.get("MAX_HISTORY_LENGTH", "10"))
    )  # Turns forwarded to the composer; full history stays stored
    max_message_length: int = field(default_factory=lambda: int(os.environ.get("MAX_MESSAGE_LENGTH", "4000")))
    max_tool_rounds: int = field(default_factory=lambda: int(os.environ.get("MAX_TOOL_ROUNDS", "3")))
    max_cached_sessions: int = field(
        default_factory=lambda: int(os.environ.get("MAX_CACHED_SESSIONS", "256"))
    )  # Idle sessions beyond this are evicted from memory and reloaded from disk

    # Clock tool
    timezone: str = field(default_factory=lambda: os.environ.get("AIZEN_TIMEZONE", "UTC").strip() or "UTC")

    # Local persisted state (one JSON file per session)
    data_dir: str = field(default_factory=lambda: os.environ.get("AIZEN_DATA_DIR", "data/sessions"))

    # Optional SearXNG backing for the search tool
    searxng_enabled: bool = field(
        default_factory=lambda: os.environ.get("SEARXNG_ENABLED", "false").lower() == "true"
    )
    searxng_url: str = field(
        default_factory=lambda: os.environ.get("SEARXNG_URL", "http://searxng:8080").strip() or "http://searxng:8080"
    )
    searxng_timeout_s: float = field(default_factory=lambda: float(os.environ.get("SEARXNG_TIMEOUT_S", "10")))
    searxng_max_results: int = field(default_factory=lambda: int(os.environ.get("SEARXNG_MAX_RESULTS", "5")))

    # CORS origins for the browser UI (comma-separated)
    cors_origins: str = field(
        default_factory=lambda: os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://localhost:9002")
    )

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    # Validation ranges for numeric config values
    _VALIDATION_RANGES: Dict[str, tuple] = field(default_factory=lambda: {
        "temperature": (0.0, 2.0),
        "max_output_tokens": (64, 32768),
        "llm_timeout": (1, 600),
        "max_history_length": (1, 200),
        "max_message_length": (1, 100000),
        "max_tool_rounds": (1, 10),
        "max_cached_sessions": (1, 100000),
        "searxng_timeout_s": (1.0, 60.0),
        "searxng_max_results": (1, 25),
    }, repr=False, compare=False)

    def is_api_key_invalid(self) -> bool:
        """True when the provider key is missing, blank, or still the placeholder."""
        key = (self.api_key or "").strip()
        return not key or key == API_KEY_PLACEHOLDER

    def _check(self, key: str, value: Any) -> Tuple[bool, Any]:
        """(accepted, cleaned value) for one proposed update."""
        if key.startswith("_") or not hasattr(self, key):
            return False, value
        if key in _URL_FIELDS:
            if not isinstance(value, str) or not value.strip().startswith(("http://", "https://")):
                logger.warning(f"Config rejected {key}={value!r} (not an http(s) URL)")
                return False, value
            return True, value.strip()
        bounds = self._VALIDATION_RANGES.get(key)
        if bounds and not (bounds[0] <= value <= bounds[1]):
            logger.warning(f"Config rejected {key}={value} (must be {bounds[0]}-{bounds[1]})")
            return False, value
        return True, value

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Apply runtime changes, e.g. ``update(temperature=0.4, max_tool_rounds=2)``.

        Unknown keys, private fields, out-of-range numbers and non-http URLs
        are skipped and reported under "ignored".
        """
        updated, ignored = [], []
        with self._lock:
            for key, value in kwargs.items():
                accepted, value = self._check(key, value)
                if not accepted:
                    ignored.append(key)
                    continue
                previous = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                logger.info("Config updated: api_key" if key == "api_key" else f"Config updated: {key} = {value} (was {previous})")
            self._update_count += 1
            count = self._update_count

        return {"updated": updated, "ignored": ignored, "update_count": count}

    def get_cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def get_llm_params(self) -> Dict[str, Any]:
        """Generation options passed to every chat completion."""
        return {"temperature": self.temperature, "max_tokens": self.max_output_tokens}

    def to_dict(self) -> Dict[str, Any]:
        """Public settings; private fields and the key itself are left out."""
        exported = {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_") and f.name != "api_key"}
        exported["api_key_configured"] = not self.is_api_key_invalid()
        return exported


runtime_config = RuntimeConfig()
