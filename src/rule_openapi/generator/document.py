"""Document assembler — builds one OpenAPI document from a list of aliases."""

import copy
import logging
import re
from typing import Any, Iterable, Mapping

from rule_openapi.config import (
    AUTO_ALIAS_MARKER,
    DEFAULT_VERSION,
    SUPPORTED_VERSIONS,
    UNRESOLVED_ACTION_NAME,
    GeneratorSettings,
)
from rule_openapi.converter.rules import RuleConverter
from rule_openapi.errors import UnsupportedVersionError
from rule_openapi.generator.components import ComponentStore, clean_components, merge_components
from rule_openapi.generator.merger import TagRegistry, merge_docs
from rule_openapi.generator.parameters import ParameterExtractor
from rule_openapi.routes.models import Alias

logger = logging.getLogger(__name__)

DEFAULT_RESPONSES = {"200": {"description": ""}}


def normalize_path(path: str) -> str:
    """Collapse duplicate slashes, drop the trailing one and turn ``:param`` into ``{param}``."""
    path = re.sub(r"/{2,}", "/", "/" + path.lstrip("/"))
    if len(path) > 1:
        path = path.rstrip("/")
    return re.sub(r"/:([^/]+)", r"/{\1}", path)


def render_summary(template: str, variables: Mapping[str, str]) -> str:
    for name, value in variables.items():
        template = template.replace("{{" + name + "}}", value or "")
    return template.strip()


class OpenApiGenerator:
    """Assembles documents; owns the component store shared by its calls.

    The store is reset at the start of every ``generate()`` call unless
    ``settings.persist_components`` is set, in which case components keep
    accumulating across calls.
    """

    def __init__(self, settings: GeneratorSettings | None = None, converter: RuleConverter | None = None):
        self.settings = settings or GeneratorSettings()
        self.converter = converter or RuleConverter()
        self.store = ComponentStore()
        self.extractor = ParameterExtractor(self.converter, self.store, self.settings)

    def generate(self, version: str = DEFAULT_VERSION, aliases: Iterable[Alias] = ()) -> dict[str, Any]:
        """Build the document for ``version`` (``"3.0"`` or ``"3.1"``)."""
        if version not in SUPPORTED_VERSIONS:
            raise UnsupportedVersionError(f"unsupported OpenAPI version {version!r}, expected one of {SUPPORTED_VERSIONS}")
        if not self.settings.persist_components:
            self.store.reset()

        document = self._seed_document(version)
        tags = TagRegistry()
        claimed: dict[tuple[str, str], str | None] = {}

        for alias in sorted(aliases, key=lambda a: normalize_path(a.path)):
            path = normalize_path(alias.path)
            methods = alias.expanded_methods()
            if not methods:
                continue
            path_item = document["paths"].setdefault(path, {})

            if alias.joker and alias.action_def and alias.action_def.openapi:
                doc = alias.action_def.openapi
                if doc.description is not None:
                    path_item["description"] = doc.description
                if doc.summary is not None:
                    path_item["summary"] = doc.summary

            for method in methods:
                self._add_operation(document, tags, claimed, path_item, path, method, alias, version)

        document["tags"] = tags.sorted_tags()
        document["components"] = merge_components(document["components"], self.store.as_components(version))
        return document

    def _seed_document(self, version: str) -> dict[str, Any]:
        base = copy.deepcopy(self.settings.base_document)
        if "openapi" in base:
            logger.warning("setting manually the openapi version is not supported")
            del base["openapi"]
        # responses are per operation, never document-wide
        base.pop("responses", None)

        document = {"openapi": f"{version}.0", **base}
        document["servers"] = []
        document["tags"] = []
        document["paths"] = dict(base.get("paths") or {})
        document["components"] = clean_components(base.get("components"))
        return document

    def _add_operation(
        self,
        document: dict[str, Any],
        tags: TagRegistry,
        claimed: dict[tuple[str, str], str | None],
        path_item: dict[str, Any],
        path: str,
        method: str,
        alias: Alias,
        version: str,
    ) -> None:
        server = alias.server.model_dump(exclude_none=True) if alias.server else None

        existing = path_item.get(method)
        if existing is not None:
            servers = existing.get("servers") or []
            if servers and server and all(s.get("url") != server["url"] for s in servers):
                servers.append(server)
                self._add_server(document, server)
                return

            logger.warning(
                "%s %s is already register by action %s skip",
                method.upper(), path, claimed.get((path, method)) or "<unamedAction>",
            )
            return

        claimed[(path, method)] = alias.action

        service_doc = alias.service.openapi if alias.service else None
        action_doc = alias.action_def.openapi if alias.action_def else None
        merged = merge_docs(tags, service_doc, alias.route.openapi, action_doc, alias.openapi)
        for components in merged.components:
            self.store.declare(components)

        extracted = self.extractor.extract(method, path, alias, version)

        operation: dict[str, Any] = {
            "summary": self._summary(merged.summary, alias),
            "description": None if alias.joker else merged.description,
            "operationId": merged.operation_id,
            "servers": [],
            "externalDocs": merged.external_docs,
            "security": merged.security,
            "deprecated": merged.deprecated,
            "tags": merged.tags,
            "parameters": extracted.parameters,
            "requestBody": extracted.request_body,
            "responses": merged.responses or copy.deepcopy(DEFAULT_RESPONSES),
            **merged.extensions,
        }
        operation = {k: v for k, v in operation.items() if v is not None}

        if server:
            operation["servers"].append(server)
            self._add_server(document, server)

        path_item[method] = operation

    def _summary(self, summary: str | None, alias: Alias) -> str:
        variables = {
            "summary": summary or "",
            "action": alias.action or UNRESOLVED_ACTION_NAME,
            "autoAlias": AUTO_ALIAS_MARKER if alias.route.auto_aliases else "",
        }
        template = self.settings.summary_template
        if callable(template):
            return template(variables)
        return render_summary(template, variables)

    @staticmethod
    def _add_server(document: dict[str, Any], server: dict[str, Any]) -> None:
        if not any(s.get("url") == server["url"] for s in document["servers"]):
            document["servers"].append(dict(server))
