"""Documentation metadata merging and the tag registry."""

from typing import Any

from pydantic import BaseModel, Field

from rule_openapi.routes.models import OpenApiDoc, TagSpec

SCALAR_FIELDS = ("summary", "description", "operation_id", "security", "external_docs", "deprecated")


class TagRegistry:
    """Global tags of one document; the first definition of a name wins."""

    def __init__(self):
        self._tags: dict[str, dict[str, Any]] = {}
        self._defined: set[str] = set()

    def register(self, tag: str | TagSpec) -> str:
        if isinstance(tag, str):
            self._tags.setdefault(tag, {"name": tag})
            return tag

        if tag.name not in self._defined:
            self._tags[tag.name] = tag.model_dump(exclude_none=True)
            self._defined.add(tag.name)
        return tag.name

    def sorted_tags(self) -> list[dict[str, Any]]:
        return [self._tags[name] for name in sorted(self._tags)]


class MergedDoc(BaseModel):
    summary: str | None = None
    description: str | None = None
    operation_id: str | None = None
    security: list[dict[str, Any]] | None = None
    external_docs: dict[str, Any] | None = None
    deprecated: bool | None = None
    tags: list[str] = Field(default_factory=list)
    responses: dict[str, Any] = Field(default_factory=dict)
    components: list[dict[str, Any]] = Field(default_factory=list)
    extensions: dict[str, Any] = Field(default_factory=dict)


def merge_docs(registry: TagRegistry, *levels: OpenApiDoc | None) -> MergedDoc:
    """Merge documentation overrides, lowest precedence first.

    Scalars: the last level that sets one wins. Tags are unioned in order,
    responses are merged per status code, components are kept per level so
    the caller can apply them in order.
    """
    merged = MergedDoc()
    for level in levels:
        if level is None:
            continue
        for name in SCALAR_FIELDS:
            value = getattr(level, name)
            if value is not None:
                setattr(merged, name, value)
        for tag in level.tags or []:
            name = registry.register(tag)
            if name not in merged.tags:
                merged.tags.append(name)
        if level.responses:
            merged.responses.update(level.responses)
        if level.components:
            merged.components.append(level.components)
        for key, value in (level.model_extra or {}).items():
            if key.startswith("x-"):
                merged.extensions[key] = value
    return merged
