"""
Error response bodies and HTTP status mapping.

main.py turns an AizenError raised out of a route into
``JSONResponse(http_status_for(err), error_response(err, include_context=False))``.
"""

from typing import Optional

from .codes import ErrorCode
from .exceptions import AizenError

_HTTP_STATUS = {
    ErrorCode.SESSION_BUSY: 409,
    ErrorCode.VALIDATION_MISSING_PARAM: 400,
    ErrorCode.VALIDATION_INVALID_FORMAT: 400,
    ErrorCode.VALIDATION_OUT_OF_RANGE: 400,
    ErrorCode.CONFIG_API_KEY_INVALID: 503,
    ErrorCode.LLM_TIMEOUT: 504,
}


def error_response(error: Exception, tool: Optional[str] = None, include_context: bool = True) -> dict:
    """``{"success": False, "error": {...}}`` for any exception.

    Non-Aizen exceptions are reported as INTERNAL_UNEXPECTED. Pass
    include_context=False for bodies that leave the process.

    >>> error_response(SessionBusyError("abc"), include_context=False)["error"]["code"]
    'SESSION_BUSY'
    """
    if isinstance(error, AizenError):
        body = error.to_dict()
        if not include_context:
            body["context"] = None
    else:
        body = {
            "code": ErrorCode.INTERNAL_UNEXPECTED.value,
            "message": str(error),
            "details": None,
            "recoverable": False,
            "context": None,
        }
    body["tool"] = tool
    return {"success": False, "error": body}


def http_status_for(error: Exception) -> int:
    """HTTP status for an error raised out of a route handler."""
    if isinstance(error, AizenError):
        return _HTTP_STATUS.get(error.code, 500)
    return 500
