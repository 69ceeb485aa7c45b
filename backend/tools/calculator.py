"""
Aizen Tool - Mathematical Calculation

Plain arithmetic is evaluated locally with an AST walker (no eval, no
attribute access). Anything the walker cannot handle, such as word problems
or equations to solve, is handed to the model.
"""

import ast
import logging
import math
import operator
import re
from typing import Any, Dict

from errors import ToolError, handle_async_tool_errors
from tools.registry import ToolFailure, ToolResult

logger = logging.getLogger(__name__)

TOOL_NAME = "perform_calculation"

CALC_NO_RESULT = "The numbers became momentarily clouded; the calculation could not be completed as expected."
CALC_ERROR = "My abacus seems to be malfunctioning; I could not perform the calculation."

CALC_SYSTEM_PROMPT = (
    "You are an advanced calculator. Provide the result of the calculation. "
    "If it is an equation, solve for the variable. If it is a conceptual math question, "
    "give a concise answer. If the expression is invalid or cannot be calculated, briefly state why. "
    "Respond with only the answer or the brief explanation."
)

DESCRIPTION = (
    "Evaluate a mathematical expression or answer a math question: arithmetic, percentages, "
    "roots, algebra (e.g. \"2+2\", \"18% of 250\", \"square root of 81\", \"solve 3x - 7 = 14\"). "
    "Pass the full expression or question."
)

MAX_EXPONENT = 1000
MAX_RESULT_BITS = 10_000

SAFE_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.FloorDiv: operator.floordiv,
}
SAFE_UNARY_OPS = {ast.UAdd: lambda v: v, ast.USub: lambda v: -v}
SAFE_NAMES: Dict[str, Any] = {
    "pi": math.pi,
    "e": math.e,
    "abs": abs,
    "round": round,
    **{name: getattr(math, name) for name in ("sqrt", "log", "log10", "sin", "cos", "tan", "exp", "ceil", "floor")},
}

_PREFIX_RE = re.compile(r"^\s*(what\s+is|what's|whats|calculate|compute|evaluate)\s+", re.IGNORECASE)
_PERCENT_OF_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*of\s*(\d+(?:\.\d+)?)", re.IGNORECASE)
_SQRT_OF_RE = re.compile(r"(?:the\s+)?square\s+root\s+of\s+(\d+(?:\.\d+)?)", re.IGNORECASE)
_WORD_OPS = [
    (re.compile(r"\bplus\b", re.IGNORECASE), "+"),
    (re.compile(r"\bminus\b", re.IGNORECASE), "-"),
    (re.compile(r"\b(times|multiplied\s+by)\b", re.IGNORECASE), "*"),
    (re.compile(r"\bdivided\s+by\b", re.IGNORECASE), "/"),
]


def normalize_expression(text: str) -> str:
    """Rewrite common natural phrasings into a Python arithmetic expression."""
    expr = _PREFIX_RE.sub("", text.strip())
    expr = expr.rstrip("?=. ").strip()
    expr = _PERCENT_OF_RE.sub(r"(\1/100*\2)", expr)
    expr = _SQRT_OF_RE.sub(r"sqrt(\1)", expr)
    for pattern, symbol in _WORD_OPS:
        expr = pattern.sub(symbol, expr)
    expr = expr.replace("×", "*").replace("÷", "/").replace("^", "**")
    expr = re.sub(r"(?<=\d)\s*x\s*(?=\d)", "*", expr)
    return expr


def _check_power(base: Any, exponent: Any) -> None:
    if abs(exponent) > MAX_EXPONENT:
        raise ValueError("Exponent too large")
    # nested powers such as (9**999)**999 stay under the exponent cap
    if isinstance(base, int) and isinstance(exponent, int) and exponent > 0:
        if abs(base).bit_length() * exponent > MAX_RESULT_BITS:
            raise ValueError("Result too large")


def safe_eval_expr(expr: str) -> Any:
    """Evaluate an arithmetic expression; raises ValueError/SyntaxError when not plain math."""
    tree = ast.parse(expr, mode="eval")

    def _eval(node: ast.AST) -> Any:
        if isinstance(node, ast.Expression):
            return _eval(node.body)
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return node.value
        if isinstance(node, ast.BinOp) and type(node.op) in SAFE_BIN_OPS:
            left, right = _eval(node.left), _eval(node.right)
            if isinstance(node.op, ast.Pow):
                _check_power(left, right)
            return SAFE_BIN_OPS[type(node.op)](left, right)
        if isinstance(node, ast.UnaryOp) and type(node.op) in SAFE_UNARY_OPS:
            return SAFE_UNARY_OPS[type(node.op)](_eval(node.operand))
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and not node.keywords:
            func = SAFE_NAMES.get(node.func.id)
            if not callable(func):
                raise ValueError(f"Function not allowed: {node.func.id}")
            return func(*[_eval(arg) for arg in node.args])
        if isinstance(node, ast.Name) and node.id in SAFE_NAMES and not callable(SAFE_NAMES[node.id]):
            return SAFE_NAMES[node.id]
        raise ValueError("Disallowed expression")

    return _eval(tree)


def format_number(value: Any) -> str:
    if isinstance(value, float):
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return f"{value:.10g}"
    return str(value)


def _calculation_failed(exc: Exception) -> ToolResult:
    return ToolResult.failed(TOOL_NAME, ToolFailure.TOOL_ERROR, CALC_ERROR, str(exc))


class Calculator:
    """Calculator tool; model_caller handles non-arithmetic questions."""

    def __init__(self, model_caller: Any):
        self.model = model_caller

    @handle_async_tool_errors(TOOL_NAME, on_error=_calculation_failed)
    async def execute(self, expression: str) -> ToolResult:
        expression = (expression or "").strip()
        if not expression:
            raise ToolError("Empty expression", tool=TOOL_NAME)

        normalized = normalize_expression(expression)
        try:
            value = safe_eval_expr(normalized)
        except ZeroDivisionError:
            return ToolResult.ok(TOOL_NAME, f"{expression} is undefined: division by zero.")
        except (ValueError, SyntaxError, TypeError, OverflowError) as e:
            logger.debug(f"Local evaluation declined {normalized!r}: {e}")
        else:
            return ToolResult.ok(TOOL_NAME, f"{normalized} = {format_number(value)}")

        answer = await self.model.complete_text(CALC_SYSTEM_PROMPT, f"Solve: {expression}", temperature=0.0)
        if not answer:
            return ToolResult.failed(TOOL_NAME, ToolFailure.NO_INFORMATION, CALC_NO_RESULT)
        return ToolResult.ok(TOOL_NAME, answer)
