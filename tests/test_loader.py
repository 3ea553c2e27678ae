from pathlib import Path

import pytest

from rule_openapi.config import GeneratorSettings
from rule_openapi.routes.loader import join_path, load_routes, parse_routes
from rule_openapi.rules.base import ObjectRule

FIXTURES = Path(__file__).parent / "fixtures"


class TestLoadRoutes:
    def test_load_fixture(self):
        routes = load_routes(FIXTURES / "routes.yaml")

        assert [(a.methods, a.path) for a in routes.aliases] == [
            (["GET"], "/api/users"),
            (["GET"], "/api/users/:id"),
            (["POST"], "/api/users"),
            (["POST"], "/api/upload"),
        ]
        assert routes.settings.base_document["info"]["title"] == "Users API"

    def test_alias_resolution(self):
        routes = load_routes(FIXTURES / "routes.yaml")
        listing, _, _, upload = routes.aliases

        assert listing.action == "users.list"
        assert isinstance(listing.params.rules["filter"], ObjectRule)
        assert listing.route.body_parsers == {"json": True}
        assert listing.server.url == "http://localhost:3000"
        assert listing.service.openapi.security == [{"bearer": []}]

        assert upload.type == "multipart"
        assert upload.files_limit == 1
        assert upload.action_def.name == "files.upload"

    def test_not_a_mapping(self, tmp_path):
        routes_file = tmp_path / "routes.yaml"
        routes_file.write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_routes(routes_file)


class TestParseRoutes:
    def test_alias_list_form(self):
        routes = parse_routes({
            "actions": {"ping": {}},
            "services": [{
                "name": "health",
                "routes": [{
                    "path": "/health/",
                    "aliases": [{"methods": "GET,HEAD", "path": "/ping", "action": "ping"}],
                }],
            }],
        })

        (alias,) = routes.aliases
        assert alias.methods == ["GET", "HEAD"]
        assert alias.path == "/health/ping"
        assert alias.action_def.name == "ping"
        assert alias.params is None
        assert routes.settings is None

    def test_path_without_method_matches_every_method(self):
        routes = parse_routes({"services": [{"name": "s", "routes": [{"path": "/", "aliases": {"/ping": "ping"}}]}]})

        (alias,) = routes.aliases
        assert alias.methods == ["*"]
        assert alias.action == "ping"
        assert alias.action_def is None

    def test_settings(self):
        routes = parse_routes({"settings": {"multipart_file_field": "attachment", "persist_components": True}})
        assert routes.settings.multipart_file_field == "attachment"
        assert routes.settings.persist_components is True


class TestJoinPath:
    @pytest.mark.parametrize("parts, expected", [
        (("/api", "/users"), "/api/users"),
        (("/api/", "users/"), "/api/users"),
        (("", "/users"), "/users"),
        (("/", ""), "/"),
    ])
    def test_join(self, parts, expected):
        assert join_path(*parts) == expected


class TestSettingsFile:
    def test_from_file(self, tmp_path):
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text("default_content_type: text/plain\nsummary_template: '{{action}}'\n")

        settings = GeneratorSettings.from_file(settings_file)
        assert settings.default_content_type == "text/plain"
        assert settings.summary_template == "{{action}}"
        assert settings.base_document["info"]["title"] == "API documentation"

    def test_empty_file(self, tmp_path):
        settings_file = tmp_path / "settings.yaml"
        settings_file.write_text("")
        assert GeneratorSettings.from_file(settings_file).multipart_file_field == "file"
