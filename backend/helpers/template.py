"""
Template processor for {{dotted.path}} placeholders.

Unresolved placeholders are left verbatim so a missing value stays visible
in the rendered output instead of collapsing to an empty string.
"""

import json
import re
from typing import Any, List, Mapping

PLACEHOLDER_RE = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")

_MISSING = object()


def _lookup(context: Any, path: str) -> Any:
    """Walk a dotted path through mappings, sequences and attributes."""
    current = context
    for segment in path.split("."):
        if current is None:
            return _MISSING
        if isinstance(current, Mapping):
            current = current.get(segment, _MISSING)
        elif isinstance(current, (list, tuple)):
            if not segment.lstrip("-").isdigit():
                return _MISSING
            index = int(segment)
            if -len(current) <= index < len(current):
                current = current[index]
            else:
                return _MISSING
        else:
            current = getattr(current, segment, _MISSING)
        if current is _MISSING:
            return _MISSING
    return current


def _render(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)


def resolve_template(template: str, context: Any) -> str:
    """
    Replace every {{a.b.c}} in the template with its value from context.

    Args:
        template: Text containing placeholders
        context: Mapping or object the dotted paths are resolved against

    Returns:
        Rendered text; placeholders whose path hits a missing or None value
        are returned untouched
    """
    if not template:
        return template

    def _replace(match: re.Match) -> str:
        value = _lookup(context, match.group(1))
        if value is _MISSING or value is None:
            return match.group(0)
        return _render(value)

    return PLACEHOLDER_RE.sub(_replace, template)


def resolve_structure(value: Any, context: Any) -> Any:
    """
    Resolve placeholders throughout a JSON-like value.

    Keys and string values are rendered one at a time, so a substituted
    value always stays inside the string it was placed in.
    """
    if isinstance(value, str):
        return resolve_template(value, context)
    if isinstance(value, dict):
        return {
            resolve_template(k, context) if isinstance(k, str) else k: resolve_structure(v, context)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [resolve_structure(item, context) for item in value]
    return value


def find_placeholders(template: str) -> List[str]:
    """Dotted paths referenced by the template, in order of appearance."""
    return [m.group(1) for m in PLACEHOLDER_RE.finditer(template or "")]


def find_unresolved(template: str, context: Any) -> List[str]:
    """Dotted paths that would be left untouched when rendering against context."""
    unresolved = []
    for path in find_placeholders(template):
        value = _lookup(context, path)
        if value is _MISSING or value is None:
            unresolved.append(path)
    return unresolved
