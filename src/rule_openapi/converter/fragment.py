"""Schema fragments produced by the rule converter.

A fragment keeps its public OpenAPI keywords apart from the bookkeeping the
generator needs (the optional marker and the rule's documentation metadata),
so nothing internal ever has to be stripped from the rendered document.

Rendering depends on the target version: OpenAPI 3.0 schemas carry a single
``example`` instead of ``examples``, and a 3.0 ``$ref`` may not have siblings.
"""

from typing import Any, Union

from pydantic import BaseModel, Field

from rule_openapi.config import DEFAULT_VERSION
from rule_openapi.rules.base import RuleMeta

COMPOSITION_KEYWORDS = ("oneOf", "anyOf", "allOf")


class Fragment(BaseModel):
    """A value description: keywords plus nested fragments."""

    keywords: dict[str, Any] = Field(default_factory=dict)
    properties: dict[str, "SchemaNode"] | None = None
    items: Union["SchemaNode", None] = None
    additional_properties: Union["SchemaNode", None] = None
    compositions: dict[str, list["SchemaNode"]] = Field(default_factory=dict)
    optional: bool = False
    meta: RuleMeta | None = None

    @property
    def type(self) -> str | None:
        return self.keywords.get("type")

    def to_dict(self, version: str = DEFAULT_VERSION) -> dict[str, Any]:
        """Render the public OpenAPI schema object for ``version``."""
        out = {k: v for k, v in self.keywords.items() if v is not None}
        if version == "3.0" and "examples" in out:
            examples = out.pop("examples")
            if examples:
                out["example"] = examples[0]
        if self.properties is not None:
            out["properties"] = {name: node.to_dict(version) for name, node in self.properties.items()}
        if self.items is not None:
            out["items"] = self.items.to_dict(version)
        if self.additional_properties is not None:
            out["additionalProperties"] = self.additional_properties.to_dict(version)
        for keyword in COMPOSITION_KEYWORDS:
            if keyword in self.compositions:
                out[keyword] = [node.to_dict(version) for node in self.compositions[keyword]]
        out.update(_render_meta(self.meta, title_key="title"))
        return out


class Reference(BaseModel):
    """A pointer to a named component."""

    ref: str
    optional: bool = False
    meta: RuleMeta | None = None

    def to_dict(self, version: str = DEFAULT_VERSION) -> dict[str, Any]:
        if version == "3.0":
            # 3.0 ignores $ref siblings, the metadata moves onto a wrapping allOf
            meta = _render_meta(self.meta, title_key="title")
            if meta:
                return {"allOf": [{"$ref": self.ref}], **meta}
            return {"$ref": self.ref}

        out: dict[str, Any] = {"$ref": self.ref}
        out.update(_render_meta(self.meta, title_key="summary"))
        return out


SchemaNode = Union[Fragment, Reference]

Fragment.model_rebuild()


def _render_meta(meta: RuleMeta | None, title_key: str) -> dict[str, Any]:
    if meta is None:
        return {}
    rendered = {
        "description": meta.description,
        title_key: meta.summary,
        "deprecated": meta.deprecated,
    }
    return {k: v for k, v in rendered.items() if v is not None}
