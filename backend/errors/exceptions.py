"""
Exception hierarchy for Aizen.

Every error carries an ErrorCode, a message, optional user-facing details,
a recoverable flag and a free-form context dict for logs. Subclasses pick
their code from the class attribute or from a narrower keyword
(``error_type`` for model errors, ``service`` for upstream failures).
"""

from typing import Any, Dict, Optional

from .codes import ErrorCode


def _present(**items: Any) -> Dict[str, Any]:
    """Keyword items whose value is set."""
    return {key: value for key, value in items.items() if value is not None}


class AizenError(Exception):
    """Base class for every error the backend raises on purpose."""

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.context = context or None
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

    def __str__(self) -> str:
        return f"{self.message} - {self.details}" if self.details else self.message

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class ConfigurationError(AizenError):
    """Provider credential is missing or still the placeholder value."""

    code = ErrorCode.CONFIG_API_KEY_INVALID


class ValidationError(AizenError):
    """Rejected request input (blank message, over-long message, bad id)."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        **context: Any,
    ):
        context.update(_present(parameter=parameter, expected=expected, received=received))
        super().__init__(message, details, **context)


class LLMError(AizenError):
    """A model call failed or answered with something unusable.

    error_type: "timeout", "parse" (unparseable structure) or "invalid"
    (empty or otherwise unusable text). Anything else means the provider
    itself failed.
    """

    code = ErrorCode.LLM_UNAVAILABLE

    _TYPE_CODES = {
        "timeout": ErrorCode.LLM_TIMEOUT,
        "parse": ErrorCode.LLM_PARSE_FAILED,
        "invalid": ErrorCode.LLM_RESPONSE_INVALID,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        model: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        context.update(_present(model=model))
        code = self._TYPE_CODES.get(error_type, ErrorCode.LLM_UNAVAILABLE)
        super().__init__(message, details, code=code, **context)

    @property
    def is_malformed_output(self) -> bool:
        """True when the model answered but the answer was unusable."""
        return self.code in (ErrorCode.LLM_PARSE_FAILED, ErrorCode.LLM_RESPONSE_INVALID)


class ToolError(AizenError):
    """Raised inside a tool; the tool decorator turns it into a sentinel result."""

    code = ErrorCode.TOOL_FAILED
    recoverable = True

    def __init__(self, message: str, details: Optional[str] = None, tool: Optional[str] = None, **context: Any):
        context.update(_present(tool=tool))
        super().__init__(message, details, **context)


class ExternalServiceError(AizenError):
    """An upstream service (SearXNG) failed."""

    code = ErrorCode.EXTERNAL_NETWORK_ERROR
    recoverable = True

    _SERVICE_CODES = {
        "searxng": ErrorCode.EXTERNAL_SEARXNG_FAILED,
    }

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        service: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        context.update(_present(service=service, status_code=status_code))
        code = self._SERVICE_CODES.get(service, ErrorCode.EXTERNAL_NETWORK_ERROR)
        super().__init__(message, details, code=code, **context)


class SessionBusyError(AizenError):
    """A turn is already in flight for this conversation."""

    code = ErrorCode.SESSION_BUSY
    recoverable = True

    def __init__(self, session_id: str, **context: Any):
        super().__init__(
            "Conversation is busy",
            details="Wait for the current turn to finish before sending another message.",
            session_id=session_id,
            **context,
        )
