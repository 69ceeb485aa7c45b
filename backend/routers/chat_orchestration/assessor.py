"""
Aizen Capability Assessor - can this turn be answered without a lookup?

Two stages:
1. Deterministic time-intent detection on the message. A match skips the
   model entirely.
2. One JSON classification call. Any failure (provider error, timeout,
   unparseable output) yields the conservative default: cannot answer
   directly, so the turn goes down the lookup path.

The assessor only sees the latest user message, never the history.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from errors import log_error
from routers.chat_prompts import ASSESSOR_SYSTEM_PROMPT, PersonaPromptBuilder

logger = logging.getLogger(__name__)

# "time" must close the clause, optionally followed by "now" or "in <place>",
# so "the time complexity of ..." is left to the model.
_TIME_CLAUSE_END = r"(?:\s+(?:now|right\s+now|in\s+[A-Za-z][A-Za-z_/ ]*?))?(?:,?\s+please)?\s*[?.!]*\s*$"

TIME_INTENT_PATTERNS = [
    re.compile(r"\bwhat\s+time\s+is\s+it" + _TIME_CLAUSE_END, re.IGNORECASE),
    re.compile(r"\bwhat(?:'s|\s+is)\s+the\s+(?:current\s+)?time" + _TIME_CLAUSE_END, re.IGNORECASE),
    re.compile(r"\bcurrent\s+time" + _TIME_CLAUSE_END, re.IGNORECASE),
    re.compile(r"\btell\s+me\s+the\s+time" + _TIME_CLAUSE_END, re.IGNORECASE),
]

_REGION_RE = re.compile(r"\btime\s+(?:is\s+it\s+)?in\s+([A-Za-z][A-Za-z_/ ]*?)\s*(?:right now|now)?[?.!]*$", re.IGNORECASE)


@dataclass
class CapabilityAssessment:
    """Result from the capability assessor."""

    can_answer_directly: bool = False
    is_time_intent: bool = False
    rationale: Optional[str] = None
    region: Optional[str] = None
    latency_ms: float = 0.0
    error: Optional[str] = None


class Assessor(Protocol):
    async def assess(self, message: str) -> CapabilityAssessment: ...


def detect_time_intent(message: str) -> bool:
    return any(p.search(message) for p in TIME_INTENT_PATTERNS)


def extract_region(message: str) -> Optional[str]:
    """'What time is it in Tokyo?' → 'Tokyo'."""
    match = _REGION_RE.search(message.strip())
    if not match:
        return None
    region = match.group(1).strip()
    return region or None


def _as_bool(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return None


class LLMCapabilityAssessor:
    """Assessor backed by a single JSON classification call."""

    def __init__(self, model_caller, config, prompts: Optional[PersonaPromptBuilder] = None):
        self.model = model_caller
        self.config = config
        self.prompts = prompts or PersonaPromptBuilder()

    async def assess(self, message: str) -> CapabilityAssessment:
        if detect_time_intent(message):
            return CapabilityAssessment(
                can_answer_directly=True,
                is_time_intent=True,
                rationale="time intent",
                region=extract_region(message),
            )

        start = time.time()
        try:
            parsed = await self.model.complete_json(
                ASSESSOR_SYSTEM_PROMPT,
                self.prompts.assessor_prompt(message),
                model=self.config.model_assessor,
            )
        except Exception as e:
            log_error(logger, e, context="Assessor", include_traceback=False)
            return CapabilityAssessment(
                can_answer_directly=False,
                latency_ms=(time.time() - start) * 1000,
                error=str(e),
            )

        latency_ms = (time.time() - start) * 1000
        can_answer = _as_bool(parsed.get("canAnswer")) if isinstance(parsed, dict) else None
        if can_answer is None:
            logger.warning(f"Assessor returned no usable structure: {str(parsed)[:120]!r}")
            return CapabilityAssessment(can_answer_directly=False, latency_ms=latency_ms, error="unparseable")

        is_time = bool(_as_bool(parsed.get("isTimeIntent")))
        return CapabilityAssessment(
            can_answer_directly=can_answer or is_time,
            is_time_intent=is_time,
            rationale=parsed.get("reasoning"),
            region=extract_region(message) if is_time else None,
            latency_ms=latency_ms,
        )
