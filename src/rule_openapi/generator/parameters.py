"""Parameter extraction — path, query and body description of one alias."""

import logging
import re
from typing import Any, Mapping

from pydantic import BaseModel, Field

from rule_openapi.config import ALLOWING_BODY_METHODS, BODY_PARSERS_CONTENT_TYPE, DEFAULT_VERSION, GeneratorSettings
from rule_openapi.converter.fragment import Reference
from rule_openapi.converter.rules import RuleConverter
from rule_openapi.errors import MissingActionError, MultipartRootSchemaError
from rule_openapi.generator.components import ComponentStore
from rule_openapi.routes.models import Alias
from rule_openapi.rules.base import ObjectRule, RuleSchema

logger = logging.getLogger(__name__)

PATH_PARAM_RE = re.compile(r"{(\w+)}")
BINARY_SCHEMA = {"type": "string", "format": "binary"}


class ExtractedParameters(BaseModel):
    parameters: list[dict[str, Any]] = Field(default_factory=list)
    request_body: dict[str, Any] | None = None


def extract_params_from_url(url: str) -> list[dict[str, Any]]:
    """One required string parameter per ``{name}`` placeholder, in order."""
    return [
        {"name": name, "in": "path", "required": True, "schema": {"type": "string"}}
        for name in PATH_PARAM_RE.findall(url)
    ]


class ParameterExtractor:
    """Derives the parameters and request body of one alias."""

    def __init__(self, converter: RuleConverter, store: ComponentStore, settings: GeneratorSettings):
        self.converter = converter
        self.store = store
        self.settings = settings

    def extract(
        self,
        method: str,
        full_path: str,
        alias: Alias,
        version: str = DEFAULT_VERSION,
    ) -> ExtractedParameters:
        """Path, query and body description of ``alias``, rendered for ``version``."""
        method = method.lower()
        doc = alias.openapi

        if doc is not None and doc.path_parameters is not None:
            path_parameters = [{**p, "in": "path", "required": True} for p in doc.path_parameters]
        else:
            path_parameters = extract_params_from_url(full_path)

        result = ExtractedParameters(parameters=list(path_parameters))
        excluded = [p["name"] for p in path_parameters]

        if alias.type in ("multipart", "stream"):
            if doc is not None and doc.request_body is not None:
                result.request_body = doc.request_body
            else:
                result.request_body = self.file_upload_body(alias, excluded, version)
            return result

        schema = alias.params
        has_overrides = doc is not None and (doc.query_parameters is not None or doc.request_body is not None)
        if not has_overrides and not (schema is not None and alias.action):
            return result
        schema = schema if schema is not None else RuleSchema()

        query_rules, body_rules = self._split_fields(method, schema)

        if doc is not None and doc.query_parameters is not None:
            result.parameters.extend({**p, "in": "query"} for p in doc.query_parameters)
        else:
            self._add_query_parameters(result, query_rules, schema.rules, excluded, version)

        if doc is not None and doc.request_body is not None:
            result.request_body = doc.request_body
        elif schema.is_root and body_rules is None:
            result.request_body = self._root_body(alias, schema, version)
        elif body_rules:
            if not alias.action:
                raise MissingActionError(f"{method.upper()} {full_path}: cannot name a body without action")
            result.request_body = self._json_body(alias, schema, body_rules, excluded, version)
        return result

    def create_body_schema(
        self,
        root_name: str,
        rules: Mapping[str, Any],
        excluded: list[str],
        siblings: Mapping[str, Any] | None = None,
    ) -> Reference:
        """Register the body fields as one component named after the action."""
        fragments = self.converter.convert_schema(rules, siblings)
        fields = {name: fragment for name, fragment in fragments.items() if name not in excluded}
        return self.store.register_object(root_name, fields)

    def file_upload_body(self, alias: Alias, excluded: list[str], version: str = DEFAULT_VERSION) -> dict[str, Any]:
        """Synthesize the body of a multipart upload or raw stream alias."""
        content_type = BODY_PARSERS_CONTENT_TYPE.get(alias.type or "multipart", BODY_PARSERS_CONTENT_TYPE["multipart"])[0]

        if alias.type == "stream":
            schema: dict[str, Any] = dict(BINARY_SCHEMA)
        else:
            params = alias.params
            if params is not None and params.is_root:
                raise MultipartRootSchemaError(f"{alias.path}: root rule schemas are not supported on multipart")

            files_limit = alias.files_limit if alias.files_limit is not None else alias.route.files_limit
            file_field = self.settings.multipart_file_field
            if files_limit == 1:
                file_schema = dict(BINARY_SCHEMA)
            else:
                file_schema = {"type": "array", "items": dict(BINARY_SCHEMA)}
                if files_limit is not None:
                    file_schema["maxItems"] = files_limit

            all_of = [{
                "type": "object",
                "properties": {file_field: file_schema},
                "required": [file_field],
            }]
            # the upload itself is not validated, the params only document the extra fields
            if alias.action and params is not None:
                all_of.append(self.create_body_schema(alias.action, params.rules, excluded).to_dict(version))
            schema = {"allOf": all_of}

        return {"required": True, "content": {content_type: {"schema": schema}}}

    def content_types(self, alias: Alias) -> list[str]:
        types: list[str] = []
        for parser, enabled in alias.route.body_parsers.items():
            if enabled:
                types.extend(BODY_PARSERS_CONTENT_TYPE.get(parser, []))
        return list(dict.fromkeys(types)) or [self.settings.default_content_type]

    # -- helpers ---------------------------------------------------------------

    def _split_fields(self, method: str, schema: RuleSchema) -> tuple[dict[str, Any], dict[str, Any] | None]:
        """Place every top-level field in query or body.

        For a root schema placed in the body, the body part is ``None``: the
        whole root rule becomes the body.
        """
        default_in_body = method in ALLOWING_BODY_METHODS

        if schema.is_root:
            root = schema.root
            placement = root.meta.in_ if root.meta else None
            if (placement == "body") if placement else default_in_body:
                return {}, None
            if isinstance(root, ObjectRule) and root.field_rules is not None:
                return dict(root.field_rules), {}
            logger.warning("root schema of type %s cannot be sent as query parameters, skipped", root.type)
            return {}, {}

        query: dict[str, Any] = {}
        body: dict[str, Any] = {}
        for name, rule in schema.rules.items():
            placement = rule.meta.in_ if rule.meta else None
            in_body = placement == "body" if placement else default_in_body
            (body if in_body else query)[name] = rule
        return query, body

    def _add_query_parameters(
        self,
        result: ExtractedParameters,
        rules: Mapping[str, Any],
        siblings: Mapping[str, Any],
        excluded: list[str],
        version: str,
    ) -> None:
        for name, rule in rules.items():
            fragment = self.converter.convert(rule, siblings=siblings or rules)
            if fragment is None:
                continue

            parameter: dict[str, Any] = {
                "name": name,
                "in": "query",
                "required": not fragment.optional,
                "schema": fragment.to_dict(version),
            }
            if fragment.type == "object":
                parameter["style"] = "deepObject"
                parameter["explode"] = True
            if fragment.meta is not None:
                if fragment.meta.description is not None:
                    parameter["description"] = fragment.meta.description
                if fragment.meta.deprecated is not None:
                    parameter["deprecated"] = fragment.meta.deprecated

            if name not in excluded:
                result.parameters.append(parameter)
                continue

            # the field documents a path parameter
            result.parameters = [
                {**parameter, "in": "path", "required": True} if p["name"] == name else p
                for p in result.parameters
            ]

    def _json_body(
        self,
        alias: Alias,
        schema: RuleSchema,
        body_rules: Mapping[str, Any],
        excluded: list[str],
        version: str,
    ) -> dict[str, Any]:
        ref = self.create_body_schema(alias.action, body_rules, excluded, siblings=schema.rules)
        required = len(self.store.required_fields(ref.ref)) > 0
        return self._request_body(alias, schema, ref.to_dict(version), required)

    def _root_body(self, alias: Alias, schema: RuleSchema, version: str) -> dict[str, Any] | None:
        fragment = self.converter.convert_root(schema)
        if fragment is None:
            return None
        return self._request_body(alias, schema, fragment.to_dict(version), not fragment.optional)

    def _request_body(self, alias: Alias, schema: RuleSchema, body_schema: dict, required: bool) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if schema.meta is not None and schema.meta.description is not None:
            body["description"] = schema.meta.description
        body["required"] = required
        body["content"] = {content_type: {"schema": body_schema} for content_type in self.content_types(alias)}
        return body
