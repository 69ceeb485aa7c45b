"""
Aizen Chat Orchestration - turn pipeline components

Components:
- ModelCaller: timeout-bounded LLM round trips
- LLMCapabilityAssessor: decides time / lookup / composed branch
- ResponseComposer: persona answer with a bounded tool loop
- ToolDispatcher: tool call parsing, per-turn search limit
- TurnOrchestrator: runs one turn end to end
- HaikuGenerator, ErrorFormatter: secondary flows
- ChatActions: interface boundary, never raises
- ConversationSession, SessionManager: per-conversation state

Turn flow:
    message → assessor ─┬─ time     → clock tool → 1 response
                        ├─ lookup   → acknowledgement + search → 2 responses
                        └─ composed → composer (+ tools) → 1 response

The assessor falls back to the lookup branch whenever it cannot decide.
"""

from .model_calls import ModelCaller
from .assessor import Assessor, CapabilityAssessment, LLMCapabilityAssessor
from .tool_dispatch import ToolDispatcher
from .composer import ResponseComposer
from .orchestrator import TurnOrchestrator
from .flows import ErrorFormatter, HaikuGenerator
from .actions import ChatActions
from .session import ConversationSession, SessionManager

__all__ = [
    "ModelCaller",
    "Assessor",
    "CapabilityAssessment",
    "LLMCapabilityAssessor",
    "ToolDispatcher",
    "ResponseComposer",
    "TurnOrchestrator",
    "ErrorFormatter",
    "HaikuGenerator",
    "ChatActions",
    "ConversationSession",
    "SessionManager",
]
