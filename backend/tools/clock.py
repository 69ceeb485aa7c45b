"""
Aizen Tool - Current Time

Formats the current time for the configured timezone or a named IANA
region. If the primary formatting fails, an ISO-8601 rendering is tried
before giving up with the clock sentinel.
"""

import logging
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from errors import handle_async_tool_errors
from tools.registry import ToolFailure, ToolResult

logger = logging.getLogger(__name__)

TOOL_NAME = "get_time"

CLOCK_ERROR = "The flow of moments became momentarily obscured; I could not determine the current time."

DESCRIPTION = (
    "Return the current time. Optionally pass an IANA timezone region such as "
    "\"Asia/Tokyo\" when the user asks about a specific place."
)

TIME_FORMAT = "%I:%M:%S %p"

# Common city names users ask about, mapped to their IANA zone
CITY_TIMEZONES = {
    "tokyo": "Asia/Tokyo",
    "kyoto": "Asia/Tokyo",
    "osaka": "Asia/Tokyo",
    "london": "Europe/London",
    "paris": "Europe/Paris",
    "berlin": "Europe/Berlin",
    "new york": "America/New_York",
    "los angeles": "America/Los_Angeles",
    "san francisco": "America/Los_Angeles",
    "chicago": "America/Chicago",
    "toronto": "America/Toronto",
    "sydney": "Australia/Sydney",
    "singapore": "Asia/Singapore",
    "beijing": "Asia/Shanghai",
    "shanghai": "Asia/Shanghai",
    "seoul": "Asia/Seoul",
    "mumbai": "Asia/Kolkata",
    "delhi": "Asia/Kolkata",
    "dubai": "Asia/Dubai",
    "moscow": "Europe/Moscow",
}


def resolve_timezone(region: Optional[str], default: str) -> ZoneInfo:
    """Region name or city → ZoneInfo, falling back to the default zone."""
    if region:
        key = CITY_TIMEZONES.get(region.strip().lower(), region.strip())
        try:
            return ZoneInfo(key)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown timezone region {region!r}; using {default}")
    try:
        return ZoneInfo(default)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Configured timezone {default!r} not found; using UTC")
        return ZoneInfo("UTC")


def _clock_failed(exc: Exception) -> ToolResult:
    return ToolResult.failed(TOOL_NAME, ToolFailure.TOOL_ERROR, CLOCK_ERROR, str(exc))


class Clock:
    """Clock tool. ``now_fn`` takes a tzinfo and returns an aware datetime."""

    def __init__(self, default_timezone: str = "UTC", now_fn: Optional[Callable[[ZoneInfo], datetime]] = None):
        self.default_timezone = default_timezone
        self._now = now_fn or (lambda tz: datetime.now(tz))

    @handle_async_tool_errors(TOOL_NAME, on_error=_clock_failed)
    async def execute(self, region: Optional[str] = None) -> ToolResult:
        tz = resolve_timezone(region, self.default_timezone)
        now = self._now(tz)
        try:
            text = f"{now.strftime(TIME_FORMAT).lstrip('0')} ({tz.key})"
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Primary time formatting failed ({e}); trying ISO format")
            try:
                text = now.isoformat(timespec="seconds")
            except (ValueError, TypeError, AttributeError) as e2:
                return ToolResult.failed(TOOL_NAME, ToolFailure.TOOL_ERROR, CLOCK_ERROR, str(e2))
        return ToolResult.ok(TOOL_NAME, text)
