import pytest

from rule_openapi.config import GeneratorSettings
from rule_openapi.converter.rules import RuleConverter
from rule_openapi.errors import MissingActionError, MultipartRootSchemaError
from rule_openapi.generator.components import ComponentStore
from rule_openapi.generator.parameters import ParameterExtractor, extract_params_from_url
from rule_openapi.routes.models import ActionDef, Alias, AliasDoc, RouteDef


def _extractor(**settings):
    store = ComponentStore()
    return ParameterExtractor(RuleConverter(), store, GeneratorSettings(**settings)), store


def _alias(method, path, action=None, params=None, **kwargs):
    action_def = ActionDef(name=action or "anonymous", params=params) if params is not None else None
    return Alias(methods=[method], path=path, action=action, action_def=action_def, **kwargs)


class TestPathParameters:
    def test_placeholders_in_order(self):
        params = extract_params_from_url("/users/{id}/posts/{postId}")
        assert [p["name"] for p in params] == ["id", "postId"]
        assert params[0] == {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}}

    def test_no_placeholder(self):
        assert extract_params_from_url("/users") == []

    def test_explicit_path_parameters(self):
        extractor, _ = _extractor()
        alias = _alias("get", "/items/{slug}", openapi=AliasDoc(pathParameters=[
            {"name": "slug", "schema": {"type": "string", "format": "slug"}},
        ]))

        result = extractor.extract("get", "/items/{slug}", alias)
        assert result.parameters == [
            {"name": "slug", "schema": {"type": "string", "format": "slug"}, "in": "path", "required": True},
        ]

    def test_route_without_action_has_only_path_parameters(self):
        extractor, _ = _extractor()
        result = extractor.extract("get", "/users/{id}", _alias("get", "/users/{id}"))
        assert [p["name"] for p in result.parameters] == ["id"]
        assert result.request_body is None


class TestQueryParameters:
    def test_get_fields_become_query_parameters(self):
        extractor, store = _extractor()
        alias = _alias("get", "/users/{id}", "users.get", {"name": "string|optional"})

        result = extractor.extract("get", "/users/{id}", alias)
        assert result.parameters == [
            {"name": "id", "in": "path", "required": True, "schema": {"type": "string"}},
            {"name": "name", "in": "query", "required": False, "schema": {"type": "string"}},
        ]
        assert result.request_body is None
        assert store.names() == []

    def test_object_parameter_is_deep_object(self):
        extractor, _ = _extractor()
        alias = _alias("get", "/users", "users.list", {"filter": {"$$type": "object", "q": "string"}})

        (param,) = extractor.extract("get", "/users", alias).parameters
        assert param["style"] == "deepObject"
        assert param["explode"] is True
        assert param["schema"]["properties"] == {"q": {"type": "string"}}

    def test_meta_is_copied(self):
        extractor, _ = _extractor()
        alias = _alias("get", "/users", "users.list", {
            "page": {"type": "number", "$$oa": {"description": "Page number", "deprecated": True}},
        })

        (param,) = extractor.extract("get", "/users", alias).parameters
        assert param["description"] == "Page number"
        assert param["deprecated"] is True

    def test_field_documents_path_parameter(self):
        extractor, _ = _extractor()
        alias = _alias("get", "/users/{id}", "users.get", {"id": "number"})

        result = extractor.extract("get", "/users/{id}", alias)
        assert result.parameters == [
            {"name": "id", "in": "path", "required": True, "schema": {"type": "number"}},
        ]

    def test_query_override_follows_path_parameters(self):
        extractor, _ = _extractor()
        alias = _alias("get", "/users/{id}", "users.get", {"name": "string"}, openapi=AliasDoc(queryParameters=[
            {"name": "q", "schema": {"type": "string"}},
        ]))

        result = extractor.extract("get", "/users/{id}", alias)
        assert [(p["name"], p["in"]) for p in result.parameters] == [("id", "path"), ("q", "query")]


class TestJsonBody:
    def test_body_component(self):
        extractor, store = _extractor()
        alias = _alias("post", "/users", "users.create", {"name": "string", "age": "number|optional"})

        result = extractor.extract("post", "/users", alias)
        assert result.parameters == []
        assert result.request_body == {
            "required": True,
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/users.create"}}},
        }
        assert store.get("users.create").to_dict()["required"] == ["name"]

    def test_all_optional_body_is_not_required(self):
        extractor, _ = _extractor()
        alias = _alias("put", "/users", "users.update", {"age": "number|optional"})
        assert extractor.extract("put", "/users", alias).request_body["required"] is False

    def test_path_fields_are_excluded_from_body(self):
        extractor, store = _extractor()
        alias = _alias("post", "/users/{id}", "users.rename", {"id": "string", "name": "string"})

        extractor.extract("post", "/users/{id}", alias)
        assert list(store.get("users.rename").properties) == ["name"]

    def test_field_placement_override(self):
        extractor, store = _extractor()
        alias = _alias("post", "/users", "users.create", {
            "dryRun": {"type": "boolean", "$$oa": {"in": "query"}},
            "name": "string",
        })

        result = extractor.extract("post", "/users", alias)
        assert [p["name"] for p in result.parameters] == ["dryRun"]
        assert list(store.get("users.create").properties) == ["name"]

    def test_body_description(self):
        extractor, _ = _extractor()
        alias = _alias("post", "/users", "users.create", {"name": "string", "$$oa": {"description": "New user"}})
        assert extractor.extract("post", "/users", alias).request_body["description"] == "New user"

    def test_content_types_from_body_parsers(self):
        extractor, _ = _extractor()
        route = RouteDef(bodyParsers={"json": True, "urlencoded": {"extended": True}, "text": False})
        alias = _alias("post", "/users", "users.create", {"name": "string"}, route=route)

        content = extractor.extract("post", "/users", alias).request_body["content"]
        assert list(content) == ["application/json", "application/x-www-form-urlencoded"]

    def test_default_content_type(self):
        extractor, _ = _extractor(default_content_type="text/plain")
        alias = _alias("post", "/users", "users.create", {"name": "string"})
        assert list(extractor.extract("post", "/users", alias).request_body["content"]) == ["text/plain"]

    def test_body_override_is_used_verbatim(self):
        extractor, store = _extractor()
        body = {"content": {"text/csv": {"schema": {"type": "string"}}}}
        alias = _alias("post", "/import", "data.import", {"rows": "string"}, openapi=AliasDoc(requestBody=body))

        assert extractor.extract("post", "/import", alias).request_body == body
        assert store.names() == []

    def test_body_without_action(self):
        extractor, _ = _extractor()
        alias = _alias("post", "/users", None, {"name": "string"}, openapi=AliasDoc(queryParameters=[]))
        with pytest.raises(MissingActionError):
            extractor.extract("post", "/users", alias)


class TestRootSchema:
    def test_root_rule_is_the_body(self):
        extractor, store = _extractor()
        alias = _alias("post", "/echo", "echo", {"$$root": True, "type": "string", "min": 1})

        result = extractor.extract("post", "/echo", alias)
        assert result.request_body == {
            "required": True,
            "content": {"application/json": {"schema": {"type": "string", "minLength": 1}}},
        }
        assert store.names() == []

    def test_optional_root_body(self):
        extractor, _ = _extractor()
        alias = _alias("post", "/echo", "echo", {"$$root": True, "type": "string", "optional": True})
        assert extractor.extract("post", "/echo", alias).request_body["required"] is False

    def test_object_root_in_query(self):
        extractor, _ = _extractor()
        alias = _alias("get", "/search", "search", {"$$root": True, "type": "object", "props": {"q": "string"}})

        result = extractor.extract("get", "/search", alias)
        assert [(p["name"], p["in"]) for p in result.parameters] == [("q", "query")]
        assert result.request_body is None

    def test_scalar_root_in_query_is_skipped(self, caplog):
        extractor, _ = _extractor()
        alias = _alias("get", "/search", "search", {"$$root": True, "type": "string"})

        result = extractor.extract("get", "/search", alias)
        assert result.parameters == []
        assert result.request_body is None
        assert "cannot be sent as query parameters" in caplog.text


class TestFileUpload:
    def test_multipart_body(self):
        extractor, store = _extractor()
        alias = _alias("post", "/upload", "files.upload", {"label": "string|optional"}, type="multipart")

        result = extractor.extract("post", "/upload", alias)
        schema = result.request_body["content"]["multipart/form-data"]["schema"]
        assert result.request_body["required"] is True
        assert schema["allOf"][0] == {
            "type": "object",
            "properties": {"file": {"type": "array", "items": {"type": "string", "format": "binary"}}},
            "required": ["file"],
        }
        assert schema["allOf"][1] == {"$ref": "#/components/schemas/files.upload"}
        assert store.names() == ["files.upload"]

    def test_single_file(self):
        extractor, _ = _extractor(multipart_file_field="avatar")
        alias = _alias("post", "/upload", "files.upload", {"label": "string"}, type="multipart", files_limit=1)

        schema = extractor.extract("post", "/upload", alias).request_body["content"]["multipart/form-data"]["schema"]
        assert schema["allOf"][0]["properties"] == {"avatar": {"type": "string", "format": "binary"}}

    def test_route_files_limit(self):
        extractor, _ = _extractor()
        alias = _alias("post", "/upload", type="multipart", route=RouteDef(filesLimit=3))

        schema = extractor.extract("post", "/upload", alias).request_body["content"]["multipart/form-data"]["schema"]
        assert schema["allOf"][0]["properties"]["file"]["maxItems"] == 3
        assert len(schema["allOf"]) == 1

    def test_multipart_root_schema_rejected(self):
        extractor, _ = _extractor()
        alias = _alias("post", "/upload", "files.upload", {"$$root": True, "type": "string"}, type="multipart")
        with pytest.raises(MultipartRootSchemaError):
            extractor.extract("post", "/upload", alias)

    def test_stream(self):
        extractor, store = _extractor()
        alias = _alias("put", "/blobs/{id}", "blobs.put", {"id": "string"}, type="stream")

        result = extractor.extract("put", "/blobs/{id}", alias)
        assert [p["name"] for p in result.parameters] == ["id"]
        assert result.request_body == {
            "required": True,
            "content": {"application/octet-stream": {"schema": {"type": "string", "format": "binary"}}},
        }
        assert store.names() == []
