"""
JSON recovery for model output.

The assessor asks for a small JSON object and the composer may emit an inline
tool call as JSON in plain text. Models wrap these in code fences or think
blocks, write Python literals, or leave trailing commas; the helpers here
recover the first object when that is reasonably possible.
"""

import json
import logging
import re
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

_LITERALS = (
    (re.compile(r"\bNone\b"), "null"),
    (re.compile(r"\bTrue\b"), "true"),
    (re.compile(r"\bFalse\b"), "false"),
)
_SINGLE_QUOTED_KEY_RE = re.compile(r"'([A-Za-z_]\w*)'\s*:")
_SINGLE_QUOTED_VALUE_RE = re.compile(r":\s*'([^'\"]*)'")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def first_json_object(text: str) -> Optional[str]:
    """Substring of the first brace-balanced {...} in text.

    An object cut off by truncation is returned up to the end of the text.
    Braces inside JSON strings are skipped.
    """
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        c = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
            continue
        if c == '"':
            in_string = True
        elif c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return text[start:]


def repair_json(candidate: str) -> str:
    """Best-effort fixes for near-JSON; the result may still be invalid."""
    fixed = candidate
    for pattern, replacement in _LITERALS:
        fixed = pattern.sub(replacement, fixed)
    fixed = _SINGLE_QUOTED_KEY_RE.sub(r'"\1":', fixed)
    fixed = _SINGLE_QUOTED_VALUE_RE.sub(r': "\1"', fixed)
    fixed = _TRAILING_COMMA_RE.sub(r"\1", fixed)

    missing_brackets = fixed.count("[") - fixed.count("]")
    missing_braces = fixed.count("{") - fixed.count("}")
    if missing_brackets > 0 or missing_braces > 0:
        fixed += "]" * max(missing_brackets, 0) + "}" * max(missing_braces, 0)

    if fixed != candidate:
        logger.debug("Applied JSON repairs")
    return fixed


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object in text, repairing if needed. None on failure."""
    candidate = first_json_object(text)
    if candidate is None:
        return None

    for attempt in (candidate, repair_json(candidate)):
        try:
            parsed = json.loads(attempt)
        except json.JSONDecodeError:
            continue
        return parsed if isinstance(parsed, dict) else None

    logger.warning(f"Could not parse JSON object from model output: {candidate[:80]!r}")
    return None


def parse_json_response(text: str) -> Optional[Dict[str, Any]]:
    """Full pipeline for a JSON-mode answer: drop think blocks and fences, then parse."""
    if not text:
        return None
    cleaned = _THINK_RE.sub("", text)
    fence = _FENCE_RE.search(cleaned)
    if fence:
        cleaned = fence.group(1)
    parsed = parse_json_object(cleaned)
    if parsed is None:
        logger.warning("No JSON object found in model response")
    return parsed
