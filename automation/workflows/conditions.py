"""
Condition Evaluator

Parses and evaluates step guard conditions. The grammar is deliberately tiny:

    condition := "true" | "false" | operand "==" '"' literal '"'

The operand is resolved with the variable resolver (strict: an unresolved
reference is an error) and trimmed, then compared with the literal by exact
string equality. Anything else is a ConditionEvaluationError.
"""

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..errors import ConditionEvaluationError
from .resolver import VariableResolver

_EQUALITY_PATTERN = re.compile(
    r'^(?P<operand>.*?)\s*==\s*"(?P<literal>(?:[^"\\]|\\.)*)"$', re.DOTALL
)
_ESCAPE_PATTERN = re.compile(r"\\(.)", re.DOTALL)


@dataclass(frozen=True)
class Literal:
    value: bool


@dataclass(frozen=True)
class Equality:
    operand: str
    literal: str


Condition = Union[Literal, Equality]


def parse(expr: str) -> Condition:
    """
    Parse a condition expression.

    Raises:
        ConditionEvaluationError: If the expression is outside the grammar
    """
    if not isinstance(expr, str):
        raise ConditionEvaluationError(
            f"Condition must be a string, got {type(expr).__name__}"
        )

    text = expr.strip()
    if text == "true":
        return Literal(True)
    if text == "false":
        return Literal(False)

    match = _EQUALITY_PATTERN.match(text)
    if not match:
        raise ConditionEvaluationError(f"Unsupported condition expression: {expr!r}")

    operand = match.group("operand").strip()
    if not operand or "==" in operand:
        raise ConditionEvaluationError(f"Unsupported condition expression: {expr!r}")

    literal = _ESCAPE_PATTERN.sub(r"\1", match.group("literal"))
    return Equality(operand=operand, literal=literal)


class ConditionEvaluator:
    """Evaluates step conditions against current outputs and input."""

    def __init__(self, resolver: Optional[VariableResolver] = None):
        self.resolver = resolver or VariableResolver()

    def evaluate(
        self,
        expr: str,
        outputs: Mapping[str, Any],
        input: Any = None,
    ) -> bool:
        """
        Evaluate a condition.

        Args:
            expr: Condition expression
            outputs: Bound step outputs
            input: Execution input

        Returns:
            Whether the guarded step should run

        Raises:
            ConditionEvaluationError: If the expression is unsupported or a
                reference in it cannot be resolved
        """
        condition = parse(expr)
        if isinstance(condition, Literal):
            return condition.value

        value = self.resolver.resolve_string(
            condition.operand, outputs, input, strict=True
        )
        return value.strip() == condition.literal
