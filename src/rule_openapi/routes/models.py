"""Route models consumed by the document generator.

The routing layer hands the generator fully resolved aliases: one alias is
one (methods, path) pair, optionally bound to an action and its rule schema,
together with the documentation overrides of its route and service.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from rule_openapi.config import HTTP_METHODS, WILDCARD_METHODS
from rule_openapi.rules.base import RuleSchema

logger = logging.getLogger(__name__)


class ServerSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    url: str
    description: str | None = None


class TagSpec(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    description: str | None = None


class OpenApiDoc(BaseModel):
    """Documentation override attached to a service, route, action or alias.

    Unknown keys are kept; the ones starting with ``x-`` end up on the
    generated operation.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    summary: str | None = None
    description: str | None = None
    operation_id: str | None = Field(None, alias="operationId")
    tags: list[str | TagSpec] | None = None
    responses: dict[str, Any] | None = None
    security: list[dict[str, Any]] | None = None
    external_docs: dict[str, Any] | None = Field(None, alias="externalDocs")
    deprecated: bool | None = None
    components: dict[str, Any] | None = None


class AliasDoc(OpenApiDoc):
    """Alias-level override; may also replace the extracted parameters."""

    path_parameters: list[dict[str, Any]] | None = Field(None, alias="pathParameters")
    query_parameters: list[dict[str, Any]] | None = Field(None, alias="queryParameters")
    request_body: dict[str, Any] | None = Field(None, alias="requestBody")


class ServiceDef(BaseModel):
    """The gateway service exposing the routes."""

    name: str
    openapi: OpenApiDoc | None = None
    server: ServerSpec | None = None


class RouteDef(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = ""
    openapi: OpenApiDoc | None = None
    body_parsers: dict[str, Any] = Field(default_factory=dict, alias="bodyParsers")
    files_limit: int | None = Field(None, alias="filesLimit")
    auto_aliases: bool = Field(False, alias="autoAliases")


class ActionDef(BaseModel):
    """A callable action and the rule schema of its input."""

    name: str
    params: RuleSchema | None = None
    openapi: OpenApiDoc | None = None

    @field_validator("params", mode="before")
    @classmethod
    def parse_params(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return RuleSchema.parse(value)
        return value


class Alias(BaseModel):
    """One registered route entry as seen by the generator."""

    model_config = ConfigDict(populate_by_name=True)

    methods: list[str]
    path: str
    action: str | None = None
    action_def: ActionDef | None = Field(None, alias="actionDef")
    type: Literal["multipart", "stream"] | None = None
    openapi: AliasDoc | None = None
    files_limit: int | None = Field(None, alias="filesLimit")
    joker: bool = False
    route: RouteDef = Field(default_factory=RouteDef)
    service: ServiceDef | None = None

    @field_validator("methods", mode="before")
    @classmethod
    def split_methods(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [m.strip() for m in value.split(",") if m.strip()]
        return value

    @property
    def params(self) -> RuleSchema | None:
        return self.action_def.params if self.action_def else None

    @property
    def server(self) -> ServerSpec | None:
        return self.service.server if self.service else None

    def expanded_methods(self) -> list[str]:
        """Lower-case HTTP methods, with ``*``/``ALL`` expanded to every method.

        Names that are not HTTP methods are dropped with a warning.
        """
        methods: list[str] = []
        for method in self.methods:
            method = method.lower()
            if method in WILDCARD_METHODS:
                names = HTTP_METHODS
            elif method in HTTP_METHODS:
                names = (method,)
            else:
                logger.warning("unsupported HTTP method %s on %s skip", method.upper(), self.path)
                continue
            methods.extend(m for m in names if m not in methods)
        return methods
