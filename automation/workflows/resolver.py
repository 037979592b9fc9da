"""
Variable Resolver

Substitutes ${name} and ${name.field} references in step input templates.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, List, Mapping, Tuple, Union

from ..errors import UnresolvedReferenceError

# ${ path } where path has no braces
REFERENCE_PATTERN = re.compile(r"\$\{([^{}]*)\}")

_MISSING = object()


@dataclass(frozen=True)
class TextToken:
    """Literal text between references."""

    text: str


@dataclass(frozen=True)
class ReferenceToken:
    """A ${path} reference. ``raw`` is the exact source text."""

    path: str
    raw: str


Token = Union[TextToken, ReferenceToken]


def tokenize(text: str) -> List[Token]:
    """
    Split a string into literal text and ${...} reference tokens.

    Args:
        text: Template string

    Returns:
        Tokens in source order; concatenating their text reproduces the input
    """
    tokens: List[Token] = []
    position = 0
    for match in REFERENCE_PATTERN.finditer(text):
        if match.start() > position:
            tokens.append(TextToken(text[position : match.start()]))
        tokens.append(ReferenceToken(path=match.group(1).strip(), raw=match.group(0)))
        position = match.end()
    if position < len(text):
        tokens.append(TextToken(text[position:]))
    return tokens


def to_text(value: Any) -> str:
    """String form of a resolved value, as substituted into templates."""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, bool)) or value is None:
        try:
            return json.dumps(value, separators=(",", ":"), default=str)
        except (TypeError, ValueError):
            # Non-string keys or circular values
            return str(value)
    return str(value)


class VariableResolver:
    """
    Best-effort ${...} templating over step outputs and the execution input.

    A reference is looked up by its first segment in ``outputs``, then in
    ``input``; remaining segments walk dict keys and list indices. References
    that cannot be resolved are left in place unless ``strict`` is requested.
    """

    def lookup(
        self,
        path: str,
        outputs: Mapping[str, Any],
        input: Any = None,
    ) -> Tuple[bool, Any]:
        """
        Look up a dotted path.

        Args:
            path: Dotted reference path (e.g., "r1.status")
            outputs: Bound step outputs
            input: Execution input

        Returns:
            (found, value) tuple
        """
        segments = [part.strip() for part in path.split(".")]
        if not segments or not segments[0]:
            return False, None

        head, rest = segments[0], segments[1:]
        value = _MISSING
        if isinstance(outputs, Mapping) and head in outputs:
            value = outputs[head]
        elif isinstance(input, Mapping) and head in input:
            value = input[head]

        for part in rest:
            if value is _MISSING or value is None:
                break
            value = _step_into(value, part)

        if value is _MISSING or value is None:
            return False, None
        return True, value

    def resolve_string(
        self,
        text: str,
        outputs: Mapping[str, Any],
        input: Any = None,
        strict: bool = False,
    ) -> str:
        """
        Resolve every ${path} in a single string.

        Raises:
            UnresolvedReferenceError: If strict and a reference has no value
        """
        parts = []
        for token in tokenize(text):
            if isinstance(token, TextToken):
                parts.append(token.text)
                continue
            found, value = self.lookup(token.path, outputs, input)
            if found:
                parts.append(to_text(value))
            elif strict:
                raise UnresolvedReferenceError(token.path)
            else:
                parts.append(token.raw)
        return "".join(parts)

    def resolve(
        self,
        template: Any,
        outputs: Mapping[str, Any],
        input: Any = None,
    ) -> Any:
        """
        Resolve all string leaves of a template.

        Args:
            template: Nested dicts/lists/strings/scalars
            outputs: Bound step outputs
            input: Execution input

        Returns:
            A new structure; the template is not modified
        """
        if isinstance(template, str):
            return self.resolve_string(template, outputs, input)
        if isinstance(template, dict):
            return {
                key: self.resolve(value, outputs, input)
                for key, value in template.items()
            }
        if isinstance(template, (list, tuple)):
            return [self.resolve(item, outputs, input) for item in template]
        return template


def _step_into(value: Any, part: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(part, _MISSING)
    if isinstance(value, (list, tuple)):
        try:
            return value[int(part)]
        except (ValueError, IndexError):
            return _MISSING
    if isinstance(value, (str, bytes, int, float, bool)) or part.startswith("_"):
        return _MISSING
    # Attribute access for objects such as dataclasses and pydantic models
    attr = getattr(value, part, _MISSING)
    return _MISSING if callable(attr) else attr
