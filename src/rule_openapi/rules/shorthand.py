"""Shorthand rule expansion.

The rule dialect accepts compact forms besides full rule objects:

    "string|min:3|optional"            -> {"type": "string", "min": 3, "optional": True}
    "number[]"                         -> {"type": "array", "items": "number"}
    ["string", "number"]               -> {"type": "multi", "rules": [...]}
    {"$$type": "object", "a": "string"} -> {"type": "object", "props": {"a": "string"}}

Expansion is shallow: nested rules are expanded when the models validate them.
"""

from collections.abc import Mapping
from typing import Any


def expand_shorthand(value: Any) -> Any:
    """Turn any shorthand form into a rule mapping; other values pass through."""
    if isinstance(value, str):
        return parse_shorthand(value)
    if isinstance(value, (list, tuple)):
        return {"type": "multi", "rules": list(value)}
    if isinstance(value, Mapping) and "$$type" in value:
        return _expand_nested_object(value)
    return value


def parse_shorthand(text: str) -> dict[str, Any]:
    """Parse a "kind|key:value|flag" string into a rule mapping."""
    segments = [s.strip() for s in text.split("|") if s.strip()]
    if not segments:
        raise ValueError("empty rule shorthand")

    kind = segments[0]
    rule: dict[str, Any] = {}
    for segment in segments[1:]:
        key, sep, raw = segment.partition(":")
        rule[key.strip()] = _coerce(raw.strip()) if sep else True

    if kind.endswith("[]"):
        # the flags apply to the array, the item keeps the bare kind
        return {"type": "array", "items": kind[:-2], **rule}
    return {"type": kind, **rule}


def _expand_nested_object(value: Mapping) -> dict[str, Any]:
    head = parse_shorthand(value["$$type"])
    props = {k: v for k, v in value.items() if not k.startswith("$$")}
    result = {**head, "props": props}
    if "$$oa" in value:
        result["$$oa"] = value["$$oa"]
    return result


def _coerce(raw: str) -> Any:
    if raw == "true":
        return True
    if raw == "false":
        return False
    for cast in (int, float):
        try:
            return cast(raw)
        except ValueError:
            continue
    return raw
