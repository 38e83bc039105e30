"""Formula evaluation for effect calculations.

A calculation is free text such as ``"strengthMod + 2"`` or
``"ceil(wizardLevel / 2) + proficiencyBonus"``. Evaluation happens in two
steps:

1. Every word token is resolved against the character: attributes,
   ability modifiers (``<attribute>Mod``), skills, damage multipliers,
   class levels (``<class>Level`` / ``<class>Levels``) and the total
   ``level``. Resolving a stat forces it to be computed first, which is
   how the scheduler follows dependency edges. Unknown tokens are left
   untouched.
2. The substituted text is evaluated as arithmetic by a small whitelisting
   AST interpreter. Nothing but numbers, the four operators, ``//``,
   ``%``, powers, parentheses and a fixed set of math functions is
   accepted.

If step 2 fails the substituted text is returned unevaluated, so a
typo in one formula never aborts a recompute pass.

Example:
    >>> evaluate_expression("(10 + 2) * 1.5")
    18.0
    >>> evaluate_expression("floor(7 / 2)")
    3
"""

from __future__ import annotations

import ast
import math
import re
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable

from statforge.core.exceptions import FormulaError
from statforge.core.logging import get_logger
from statforge.engine.nodes import AttributeNode, StatKey, StatNode, is_number
from statforge.models.enums import StatKind


if TYPE_CHECKING:
    from statforge.engine.context import EvaluationContext


logger = get_logger(__name__)

TOKEN_PATTERN = re.compile(r"\b[A-Za-z0-9_]+\b")
CLASS_LEVEL_PATTERN = re.compile(r"^(?P<name>\w+?)levels?$", re.IGNORECASE)
TOTAL_LEVEL_TOKEN = "level"


# =============================================================================
# Safe arithmetic
# =============================================================================


def _finite_only(fn: Callable[[float], Any]) -> Callable[[float], Any]:
    """Wrap a rounding function so NaN and infinities pass through."""

    def wrapper(value: float, *args: Any) -> Any:
        if not math.isfinite(value):
            return value
        return fn(value, *args)

    wrapper.__name__ = fn.__name__
    return wrapper


def _sign(value: float) -> float:
    if math.isnan(value):
        return value
    return (value > 0) - (value < 0)


FUNCTIONS: dict[str, Callable[..., Any]] = {
    "abs": abs,
    "ceil": _finite_only(math.ceil),
    "floor": _finite_only(math.floor),
    "round": _finite_only(round),
    "trunc": _finite_only(math.trunc),
    "min": min,
    "max": max,
    "sqrt": math.sqrt,
    "pow": math.pow,
    "log": math.log,
    "exp": math.exp,
    "sign": _sign,
}

CONSTANTS: dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
    "tau": math.tau,
    "nan": math.nan,
    "inf": math.inf,
}

_ALLOWED_NODES: tuple[type[ast.AST], ...] = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Call,
    ast.Name,
    ast.Load,
    ast.Constant,
    ast.Add,
    ast.Sub,
    ast.Mult,
    ast.Div,
    ast.FloorDiv,
    ast.Mod,
    ast.Pow,
    ast.UAdd,
    ast.USub,
)


@lru_cache(maxsize=1024)
def parse_expression(expression: str) -> ast.Expression:
    """Parse an arithmetic expression into a validated AST.

    ``^`` is accepted as the power operator. Parsed trees are cached by
    expression text.

    Raises:
        FormulaError: If the text is not a supported arithmetic expression.
    """
    source = expression.strip().replace("^", "**")
    if not source:
        raise FormulaError("Empty expression", expression=expression)
    try:
        tree = ast.parse(source, mode="eval")
    except (SyntaxError, ValueError) as exc:
        raise FormulaError("Invalid expression syntax", expression=expression) from exc
    except (RecursionError, MemoryError) as exc:
        raise FormulaError("Expression nested too deeply", expression=expression) from exc

    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise FormulaError(
                f"Unsupported syntax: {type(node).__name__}",
                expression=expression,
            )
        if isinstance(node, ast.Call) and (
            not isinstance(node.func, ast.Name) or node.keywords
        ):
            raise FormulaError("Unsupported function call", expression=expression)
    return tree


def _divide(left: float, right: float, op: ast.operator) -> float:
    if right == 0:
        return math.nan
    if isinstance(op, ast.Div):
        return left / right
    if isinstance(op, ast.FloorDiv):
        return left // right
    return left % right


def _eval(node: ast.AST) -> Any:
    if isinstance(node, ast.Expression):
        return _eval(node.body)
    if isinstance(node, ast.Constant):
        if not is_number(node.value):
            raise FormulaError(f"Unsupported literal {node.value!r}")
        return node.value
    if isinstance(node, ast.UnaryOp):
        operand = _eval(node.operand)
        return -operand if isinstance(node.op, ast.USub) else +operand
    if isinstance(node, ast.BinOp):
        left, right = _eval(node.left), _eval(node.right)
        if isinstance(node.op, ast.Add):
            return left + right
        if isinstance(node.op, ast.Sub):
            return left - right
        if isinstance(node.op, ast.Mult):
            return left * right
        if isinstance(node.op, (ast.Div, ast.FloorDiv, ast.Mod)):
            return _divide(left, right, node.op)
        if isinstance(node.op, ast.Pow):
            return math.pow(left, right)
    if isinstance(node, ast.Name):
        name = node.id.lower()
        if name in CONSTANTS:
            return CONSTANTS[name]
        raise FormulaError(f"Unresolved name {node.id!r}")
    if isinstance(node, ast.Call):
        name = node.func.id.lower()  # type: ignore[attr-defined]
        if name not in FUNCTIONS:
            raise FormulaError(f"Unknown function {node.func.id!r}")  # type: ignore[attr-defined]
        return FUNCTIONS[name](*(_eval(arg) for arg in node.args))
    raise FormulaError(f"Unsupported node {type(node).__name__}")


def evaluate_expression(expression: str) -> float:
    """Evaluate an arithmetic expression without side effects.

    Division (true, floor or modulo) by zero yields NaN.

    Args:
        expression: Arithmetic text containing no unresolved identifiers.

    Returns:
        The numeric value.

    Raises:
        FormulaError: If the expression cannot be evaluated to a number.
    """
    tree = parse_expression(expression)
    try:
        value = _eval(tree)
    except FormulaError as exc:
        raise FormulaError(exc.message, expression=expression) from exc
    except (ArithmeticError, ValueError, TypeError, RecursionError) as exc:
        raise FormulaError(f"Evaluation failed: {exc}", expression=expression) from exc
    if not is_number(value):
        raise FormulaError("Expression did not produce a number", expression=expression)
    return value


def format_number(value: float) -> str:
    """Render a number for substitution back into formula text."""
    if math.isnan(value):
        return "nan"
    if math.isinf(value):
        return "inf" if value > 0 else "(-inf)"
    text = repr(value)
    return f"({text})" if value < 0 else text


# =============================================================================
# Token resolution
# =============================================================================


class FormulaEvaluator:
    """Evaluates effect calculations against one character's node arena.

    Args:
        context: The evaluation context of the current pass.
        ensure: Callback that computes a node (if needed) and returns it.
            The scheduler passes its own ``compute_stat`` here, which makes
            evaluation re-entrant.
    """

    def __init__(
        self,
        context: EvaluationContext,
        ensure: Callable[[StatKey], StatNode],
    ) -> None:
        self.context = context
        self._ensure = ensure
        self._suffix = context.settings.modifier_suffix.lower()

    def evaluate(self, calculation: str) -> float | str:
        """Resolve tokens in ``calculation`` and evaluate the arithmetic.

        Returns:
            The number, or the substituted text when it cannot be evaluated.
        """
        substituted = TOKEN_PATTERN.sub(lambda m: self.resolve_token(m.group(0)), calculation)
        try:
            return evaluate_expression(substituted)
        except FormulaError as exc:
            logger.debug(
                "Formula left unevaluated",
                calculation=calculation,
                substituted=substituted,
                reason=exc.message,
            )
            return substituted

    def resolve_token(self, token: str) -> str:
        """Replacement text for one token, or the token itself."""
        context = self.context

        attribute = context.find(StatKind.ATTRIBUTE, token)
        if attribute is not None:
            return format_number(self._ensure(attribute.key).result)

        lowered = token.lower()
        if lowered.endswith(self._suffix) and len(lowered) > len(self._suffix):
            base = context.find(StatKind.ATTRIBUTE, token[: -len(self._suffix)])
            if isinstance(base, AttributeNode):
                self._ensure(base.key)
                modifier = base.modifier
                return format_number(math.nan if modifier is None else modifier)

        for kind in (StatKind.SKILL, StatKind.DAMAGE_MULTIPLIER):
            node = context.find(kind, token)
            if node is not None:
                return format_number(self._ensure(node.key).result)

        match = CLASS_LEVEL_PATTERN.match(token)
        if match:
            level = context.class_level(match.group("name"))
            return token if level is None else format_number(level)

        if lowered == TOTAL_LEVEL_TOKEN:
            return format_number(context.total_level)

        return token


__all__ = [
    "FUNCTIONS",
    "CONSTANTS",
    "TOKEN_PATTERN",
    "CLASS_LEVEL_PATTERN",
    "parse_expression",
    "evaluate_expression",
    "format_number",
    "FormulaEvaluator",
]
