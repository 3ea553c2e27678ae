"""Routes file loader.

Reads a YAML (or JSON) description of services, routes, aliases and actions
and resolves it into the flat alias list the generator consumes:

    settings: {...}                # optional GeneratorSettings
    actions:
      users.get:
        params: {id: "string"}
    services:
      - name: api
        server: {url: "http://localhost:3000"}
        routes:
          - path: /api
            bodyParsers: {json: true}
            aliases:
              "GET /users/{id}": users.get
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from rule_openapi.config import GeneratorSettings
from rule_openapi.routes.models import ActionDef, Alias, RouteDef, ServiceDef


class RoutesFile(BaseModel):
    aliases: list[Alias] = Field(default_factory=list)
    settings: GeneratorSettings | None = None


def load_routes(file_path: Path) -> RoutesFile:
    """Parse a routes file into aliases (and optional generator settings)."""
    doc = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    if not isinstance(doc, dict):
        raise ValueError(f"{file_path}: expected a mapping at the top level")
    return parse_routes(doc)


def parse_routes(doc: dict[str, Any]) -> RoutesFile:
    actions = {
        name: ActionDef.model_validate({"name": name, **(body or {})})
        for name, body in (doc.get("actions") or {}).items()
    }

    aliases: list[Alias] = []
    for service_data in doc.get("services") or []:
        service = ServiceDef.model_validate(_without(service_data, "routes"))
        for route_data in service_data.get("routes") or []:
            route = RouteDef.model_validate(_without(route_data, "aliases"))
            for alias_data in _alias_entries(route_data.get("aliases")):
                aliases.append(_build_alias(alias_data, route, service, actions))

    settings = doc.get("settings")
    return RoutesFile(
        aliases=aliases,
        settings=GeneratorSettings.model_validate(settings) if settings is not None else None,
    )


def join_path(*parts: str) -> str:
    """Join URL segments with single slashes."""
    joined = "/".join(p.strip("/") for p in parts if p and p.strip("/"))
    return "/" + joined


def _alias_entries(aliases: Any) -> list[dict[str, Any]]:
    """Accept both a list of alias mappings and the ``"METHOD /path": action`` form."""
    if not aliases:
        return []
    if isinstance(aliases, list):
        return [dict(a) for a in aliases]

    entries = []
    for key, value in aliases.items():
        method, _, path = key.strip().partition(" ")
        if not path:
            method, path = "*", method
        entry = dict(value) if isinstance(value, dict) else {"action": value}
        entry.setdefault("method", method)
        entry.setdefault("path", path.strip())
        entries.append(entry)
    return entries


def _build_alias(
    data: dict[str, Any],
    route: RouteDef,
    service: ServiceDef,
    actions: dict[str, ActionDef],
) -> Alias:
    methods = data.pop("methods", None) or data.pop("method", None) or "*"
    action = data.get("action")
    return Alias.model_validate({
        **data,
        "methods": methods,
        "path": join_path(route.path, data.get("path", "")),
        "actionDef": actions.get(action) if action else None,
        "route": route,
        "service": service,
    })


def _without(data: dict[str, Any], key: str) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k != key}
