"""
Error codes for Aizen, grouped by the layer that raises them.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Stable string codes carried in HTTP error bodies and logs."""

    # Credential missing or still the placeholder; raised before any network call
    CONFIG_API_KEY_INVALID = "CONFIG_API_KEY_INVALID"

    # Request input
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
    VALIDATION_OUT_OF_RANGE = "VALIDATION_OUT_OF_RANGE"

    # Model calls
    LLM_UNAVAILABLE = "LLM_UNAVAILABLE"
    LLM_TIMEOUT = "LLM_TIMEOUT"
    LLM_PARSE_FAILED = "LLM_PARSE_FAILED"
    LLM_RESPONSE_INVALID = "LLM_RESPONSE_INVALID"

    # Tools (folded into sentinel results, never shown raw)
    TOOL_FAILED = "TOOL_FAILED"

    # Upstream services
    EXTERNAL_SEARXNG_FAILED = "EXTERNAL_SEARXNG_FAILED"
    EXTERNAL_NETWORK_ERROR = "EXTERNAL_NETWORK_ERROR"

    # Conversation state
    SESSION_BUSY = "SESSION_BUSY"

    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
