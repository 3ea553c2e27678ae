"""CLI entry point for rule-openapi."""

import json
import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from rule_openapi.config import DEFAULT_VERSION, SUPPORTED_VERSIONS, GeneratorSettings
from rule_openapi.errors import RuleOpenApiError
from rule_openapi.generator.document import OpenApiGenerator
from rule_openapi.routes.loader import load_routes


class _NoAliasDumper(yaml.SafeDumper):
    def ignore_aliases(self, data):
        return True


def _dump(document: dict, fmt: str) -> str:
    if fmt == "yaml":
        return yaml.dump(document, Dumper=_NoAliasDumper, sort_keys=False, allow_unicode=True)
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Show debug logs.")
def main(verbose: bool):
    """rule-openapi — generate OpenAPI documents from validation rules."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("routes_path", type=click.Path(exists=True, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the document.")
@click.option("--version", "version", default=DEFAULT_VERSION, type=click.Choice(SUPPORTED_VERSIONS), help="OpenAPI version.")
@click.option("--settings", "settings_path", default=None, type=click.Path(exists=True, path_type=Path), help="Generator settings file (YAML).")
@click.option("--format", "fmt", default=None, type=click.Choice(["json", "yaml"]), help="Output format, guessed from the output suffix by default.")
def generate(routes_path: Path, output: Path, version: str, settings_path: Path | None, fmt: str | None):
    """Generate an OpenAPI document from a routes file."""
    click.echo(f"Loading routes from {routes_path}...")
    try:
        routes = load_routes(routes_path)
        settings = GeneratorSettings.from_file(settings_path) if settings_path else routes.settings
        click.echo(f"Found {len(routes.aliases)} aliases.")

        document = OpenApiGenerator(settings=settings).generate(version, routes.aliases)
    except (RuleOpenApiError, ValidationError, ValueError, yaml.YAMLError) as e:
        raise click.ClickException(str(e)) from e

    if fmt is None:
        fmt = "yaml" if output.suffix in (".yaml", ".yml") else "json"

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(_dump(document, fmt), encoding="utf-8")
    click.echo(f"Document with {len(document['paths'])} paths saved to {output}")
