"""Generator settings and shared constants."""

import copy
from pathlib import Path
from typing import Any, Callable, Mapping, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")
ALLOWING_BODY_METHODS = ("post", "put", "patch")
WILDCARD_METHODS = ("*", "all")

SUPPORTED_VERSIONS = ("3.0", "3.1")
DEFAULT_VERSION = "3.1"

BODY_PARSERS_CONTENT_TYPE: dict[str, list[str]] = {
    "json": ["application/json"],
    "urlencoded": ["application/x-www-form-urlencoded"],
    "text": ["text/plain"],
    "multipart": ["multipart/form-data"],
    "stream": ["application/octet-stream"],
    "raw": ["application/octet-stream"],
}

DEFAULT_CONTENT_TYPE = "application/json"
DEFAULT_MULTI_PART_FIELD_NAME = "file"
DEFAULT_SUMMARY_TEMPLATE = "{{summary}}\n({{action}}){{autoAlias}}"
UNRESOLVED_ACTION_NAME = "<unresolvedAction>"
AUTO_ALIAS_MARKER = "[autoAlias]"

DEFAULT_BASE_DOCUMENT: dict[str, Any] = {
    "info": {
        "title": "API documentation",
        "version": "0.0.1",
    },
    "paths": {},
    "components": {},
}

SummaryTemplate = Union[str, Callable[[Mapping[str, str]], str]]


class GeneratorSettings(BaseModel):
    """Settings shared by every route handled by one generator."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    summary_template: SummaryTemplate = DEFAULT_SUMMARY_TEMPLATE
    multipart_file_field: str = DEFAULT_MULTI_PART_FIELD_NAME
    default_content_type: str = DEFAULT_CONTENT_TYPE
    persist_components: bool = False
    base_document: dict[str, Any] = Field(default_factory=lambda: copy.deepcopy(DEFAULT_BASE_DOCUMENT))

    @classmethod
    def from_file(cls, file_path: Path) -> "GeneratorSettings":
        """Load settings from a YAML (or JSON) file."""
        data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
        return cls.model_validate(data)
