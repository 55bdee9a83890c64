"""
Extraction of JSON payloads from reasoning-client text.

Model output may wrap the payload in a ```json fence or surround a bare
object/array with prose. Anything that does not yield valid JSON raises
InvalidGeneratedStructureError.
"""

import json
import logging
import re
from typing import Any, Iterator, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from helpers.errors import InvalidGeneratedStructureError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)

_CLOSERS = {"{": "}", "[": "]"}


def _match_end(text: str, start: int) -> Optional[int]:
    """
    Index of the bracket closing the opener at `start`, ignoring brackets inside strings.

    Returns -1 on a mismatched closer and None when the opener is never closed.
    """
    stack = [_CLOSERS[text[start]]]
    in_string = False
    escaped = False
    for pos in range(start + 1, len(text)):
        c = text[pos]
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
        elif c in _CLOSERS:
            stack.append(_CLOSERS[c])
        elif c in ("}", "]"):
            if c != stack[-1]:
                return -1
            stack.pop()
            if not stack:
                return pos
    return None


def _balanced_regions(text: str) -> Iterator[str]:
    """
    Top-level balanced {...} / [...] regions, in order.

    Scanning stops at an opener that is never closed: everything after it
    is a fragment of that truncated structure.
    """
    start = 0
    while start < len(text):
        if text[start] not in _CLOSERS:
            start += 1
            continue
        end = _match_end(text, start)
        if end is None:
            return
        if end < 0:
            start += 1
            continue
        yield text[start:end + 1]
        start = end + 1


def _first_candidate(text: str) -> Optional[str]:
    """The fenced block when there is one, otherwise the first balanced region."""
    fence = FENCE_RE.search(text)
    if fence:
        return fence.group(1).strip()
    return next(_balanced_regions(text), None)


def extract_json(text: str) -> Any:
    """
    Extract and parse the JSON payload from model output.

    Only one candidate is parsed: the first fenced block, or the first
    balanced region when the text has no fence.

    Args:
        text: Raw reasoning-client response

    Returns:
        Parsed JSON (dict or list)

    Raises:
        InvalidGeneratedStructureError: No candidate found or it does not
            parse as JSON
    """
    if not text or not text.strip():
        raise InvalidGeneratedStructureError("Invalid generated structure: empty response", text or "")

    candidate = _first_candidate(text)
    if not candidate:
        raise InvalidGeneratedStructureError("Invalid generated structure: no JSON found in response", text)

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug(f"[LLM] Candidate JSON rejected: {e}")
        raise InvalidGeneratedStructureError(f"Invalid generated structure: {e.msg}", text) from e


def extract_model(text: str, model_cls: Type[T]) -> T:
    """Extract JSON from model output and validate it into a pydantic model."""
    data = extract_json(text)
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        raise InvalidGeneratedStructureError(
            f"Invalid generated structure for {model_cls.__name__}: {e.error_count()} validation errors",
            text,
        ) from e
