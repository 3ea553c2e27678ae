"""Component store — named, reusable schema fragments.

Nested objects are registered under dot-joined names that follow the
nesting: ``Root.field`` for an object field, the parent name again for the
object items of an array, and ``Root.field.<n>`` for object members of a
oneOf/anyOf/allOf composition.
"""

import logging
from typing import Any, Mapping

from rule_openapi.config import DEFAULT_VERSION
from rule_openapi.converter.fragment import COMPOSITION_KEYWORDS, Fragment, Reference, SchemaNode
from rule_openapi.errors import UnresolvedReferenceError

logger = logging.getLogger(__name__)

SCHEMAS_PREFIX = "#/components/schemas/"


class ComponentStore:
    """Holds generated schema components, keyed by name."""

    def __init__(self):
        self.schemas: dict[str, Fragment] = {}
        self.declared: dict[str, dict[str, Any]] = {}
        self.collisions = 0

    def register_object(
        self,
        name: str,
        fields: Mapping[str, SchemaNode],
        default: Any = None,
    ) -> Reference:
        """Store an object component built from field fragments and return its reference.

        A field is required unless its fragment carries the optional marker.
        Registering an existing name overwrites it and logs a warning.
        """
        required: list[str] = []
        properties: dict[str, SchemaNode] = {}
        for field_name, node in fields.items():
            if not node.optional:
                required.append(field_name)
            properties[field_name] = self._componentize(f"{name}.{field_name}", node)

        if name in self.schemas:
            self.collisions += 1
            logger.warning("Generator - schema %s already exist and will be overwrite", name)

        self.schemas[name] = Fragment(
            keywords={"type": "object", "required": required or None, "default": default},
            properties=properties,
        )
        return Reference(ref=SCHEMAS_PREFIX + name)

    def _componentize(self, name: str, node: SchemaNode) -> SchemaNode:
        if isinstance(node, Reference):
            return node

        if node.type == "object" and node.properties is not None:
            ref = self.register_object(name, node.properties, node.keywords.get("default"))
            return Reference(ref=ref.ref, optional=node.optional, meta=node.meta)

        if node.type == "array" and node.items is not None:
            return node.model_copy(update={"items": self._componentize(name, node.items)})

        if node.compositions:
            position = 0
            compositions: dict[str, list[SchemaNode]] = {}
            for keyword in COMPOSITION_KEYWORDS:
                if keyword not in node.compositions:
                    continue
                members = []
                for member in node.compositions[keyword]:
                    if isinstance(member, Fragment) and member.type == "object":
                        member = self._componentize(f"{name}.{position}", member)
                        position += 1
                    members.append(member)
                compositions[keyword] = members
            return node.model_copy(update={"compositions": compositions})

        return node

    def get(self, name: str) -> Fragment | None:
        return self.schemas.get(name)

    def resolve(self, ref: str) -> Fragment:
        """Return the component a ``#/components/schemas/...`` reference points at."""
        if not ref.startswith(SCHEMAS_PREFIX):
            raise UnresolvedReferenceError(ref)
        component = self.schemas.get(ref[len(SCHEMAS_PREFIX):])
        if component is None:
            raise UnresolvedReferenceError(ref)
        return component

    def required_fields(self, ref: str) -> list[str]:
        return self.resolve(ref).keywords.get("required") or []

    def names(self) -> list[str]:
        return list(self.schemas)

    def declare(self, components: Mapping[str, Mapping[str, Any]]) -> None:
        """Merge hand-written components (per section); later declarations win."""
        for section, entries in clean_components(components).items():
            if entries:
                self.declared.setdefault(section, {}).update(entries)

    def reset(self) -> None:
        self.schemas.clear()
        self.declared.clear()
        self.collisions = 0

    def as_components(self, version: str = DEFAULT_VERSION) -> dict[str, dict[str, Any]]:
        """Render the stored schemas as an OpenAPI ``components`` section.

        Declared components win over generated schemas of the same name.
        """
        components: dict[str, dict[str, Any]] = {}
        if self.schemas:
            components["schemas"] = {name: fragment.to_dict(version) for name, fragment in self.schemas.items()}
        for section, entries in self.declared.items():
            components.setdefault(section, {}).update(entries)
        return components


def clean_components(components: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Copy a components section, dropping entries disabled with ``False``."""
    return {
        section: {name: value for name, value in (entries or {}).items() if value is not False}
        for section, entries in (components or {}).items()
    }


def merge_components(
    base: Mapping[str, Mapping[str, Any]],
    extra: Mapping[str, Mapping[str, Any]],
) -> dict[str, dict[str, Any]]:
    """Merge two components sections; entries of ``base`` win on name clashes."""
    merged = {section: dict(entries) for section, entries in base.items()}
    for section, entries in extra.items():
        if entries:
            merged[section] = {**entries, **merged.get(section, {})}
    return merged
