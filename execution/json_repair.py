"""
JSON Repair Engine
==================
Best-effort normalizer for nearly-valid JSON returned by the outline
provider. Only syntax is repaired; content is never guessed.

Stages, each attempted only when the previous one fails:
1. Strip a wrapping code fence and parse directly
2. Cut a truncated document back to its last complete element and close it
3. Token-level repairs on the brace-delimited body, outside string literals
   (bare keys, single quotes, trailing commas, missing closers)
4. Give up with MalformedOutputError

Deterministic and side-effect free.

Architecture: Chain of Responsibility over pure string transforms
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from core.exceptions import MalformedOutputError

# Documents shorter than this are not treated as truncated
TRUNCATION_MIN_LENGTH = 100

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}", "]"}

_FENCE_START = re.compile(r"^```(?:json|JSON)?\s*")
_FENCE_END = re.compile(r"\s*```$")
_IDENTIFIER = re.compile(r"[A-Za-z_$][\w$]*")


# =============================================================================
# BRACKET SCANNER
# =============================================================================


@dataclass
class _ScanResult:
    """Bracket state of a document, ignoring anything inside strings."""

    stack: list[str]
    in_string: bool
    last_boundary: Optional[int]
    boundary_stack: list[str]

    @property
    def balanced(self) -> bool:
        return not self.stack and not self.in_string


def _scan(text: str) -> _ScanResult:
    """
    Walk the text once tracking open brackets outside string literals.

    A boundary is a cut point after which the prefix holds only complete
    elements: right after a closing bracket, or right before a separating
    comma.
    """
    stack: list[str] = []
    in_string = False
    escaped = False
    last_boundary: Optional[int] = None
    boundary_stack: list[str] = []

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if stack and _OPENERS[stack[-1]] == ch:
                stack.pop()
            if stack:
                last_boundary, boundary_stack = i + 1, list(stack)
        elif ch == "," and stack:
            last_boundary, boundary_stack = i, list(stack)

    return _ScanResult(stack, in_string, last_boundary, boundary_stack)


def _closers_for(stack: list[str]) -> str:
    return "".join(_OPENERS[opener] for opener in reversed(stack))


# =============================================================================
# STAGES
# =============================================================================


def _strip_fence(text: str) -> str:
    cleaned = text.strip()
    cleaned = _FENCE_START.sub("", cleaned)
    return _FENCE_END.sub("", cleaned)


def _repair_truncation(text: str) -> Optional[str]:
    """Cut back to the last complete element and close what is still open."""
    if len(text) < TRUNCATION_MIN_LENGTH:
        return None

    scan = _scan(text)
    if scan.balanced or scan.last_boundary is None:
        return None

    return text[: scan.last_boundary] + _closers_for(scan.boundary_stack)


def _string_end(text: str, start: int, quote: str) -> tuple[int, bool]:
    """Index just past the string opened at `start`, and whether it was closed."""
    escaped = False
    for i in range(start + 1, len(text)):
        ch = text[i]
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == quote:
            return i + 1, True
    return len(text), False


def _double_quoted(inner: str, closed: bool) -> str:
    converted = inner.replace("\\'", "'").replace('"', '\\"')
    return f'"{converted}"' if closed else f'"{converted}'


def _normalize_tokens(body: str) -> str:
    """
    Rewrite the body token by token, leaving double-quoted strings untouched.

    Single-quoted strings become double-quoted, bare object keys are quoted,
    and a comma directly before a closing bracket or the end is dropped.
    """
    out: list[str] = []
    previous = ""
    comma_at: Optional[int] = None
    i = 0

    while i < len(body):
        ch = body[i]
        # Only a word right after an opening brace or comma can be a bare key
        match = _IDENTIFIER.match(body, i) if previous in ("{", ",") else None

        if ch == '"':
            end, _ = _string_end(body, i, '"')
            token = body[i:end]
        elif ch == "'":
            end, closed = _string_end(body, i, "'")
            token = _double_quoted(body[i + 1 : end - 1 if closed else end], closed)
        elif match:
            end = match.end()
            is_key = body[end:].lstrip().startswith(":")
            token = f'"{match.group()}"' if is_key else match.group()
        else:
            end = i + 1
            token = ch
            if ch in _CLOSERS and previous == ",":
                del out[comma_at]
            elif ch == ",":
                comma_at = len(out)

        out.append(token)
        if not token.isspace():
            previous = token if token in ("{", ",", "}", "]", "[", ":") else "value"
        i = end

    if previous == ",":
        del out[comma_at]
    return "".join(out)


def _repair_syntax(text: str) -> Optional[str]:
    """Apply textual repairs to the brace-delimited body."""
    start = text.find("{")
    if start == -1:
        return None

    end = text.rfind("}")
    body = text[start : end + 1] if end > start else text[start:]
    body = _normalize_tokens(body)

    scan = _scan(body)
    if scan.in_string:
        body += '"'
    body += _closers_for(scan.stack)
    return body


# =============================================================================
# PUBLIC API
# =============================================================================


def parse_structured(raw_text: Optional[str]) -> Any:
    """
    Parse provider output into a structured value, repairing syntax if needed.

    Args:
        raw_text: Text expected to hold a JSON document

    Returns:
        Parsed JSON value

    Raises:
        MalformedOutputError: If no stage produces parseable JSON
    """
    if not raw_text or not raw_text.strip():
        raise MalformedOutputError("Empty response", response_text=raw_text, expected_format="json")

    text = _strip_fence(raw_text)

    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        last_error: Exception = e

    for stage, repair in (("truncation", _repair_truncation), ("syntax", _repair_syntax)):
        candidate = repair(text)
        if candidate is None:
            continue
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        logger.debug(f"Repaired structured output | stage={stage} | length={len(raw_text)}")
        return value

    raise MalformedOutputError(
        f"Unrecoverable JSON: {last_error}",
        response_text=raw_text,
        expected_format="json",
        cause=last_error,
    )


__all__ = ["parse_structured", "TRUNCATION_MIN_LENGTH"]
