"""Cynthia plugin runtime CLI.

Default mode is stdio: the host launches the plugin process and talks to
it over stdin/stdout.

Usage:
    cynthia-plugin                            # Stdio mode (default)
    cynthia-plugin --renderer pkg.mod:render  # Stdio with a content renderer
    cynthia-plugin --log-level DEBUG          # Forward debug logs to the host

    cynthia-plugin classify '<json>'          # Show how a request is classified
    cynthia-plugin schema response            # JSON schema of the response envelope
    cynthia-plugin config                     # Show effective configuration
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import IO, Any

import click

from . import PLUGIN_COMPAT, __version__
from .config import ENV_PREFIX, ConfigError, PluginConfig
from .protocol.errors import RequestParseError
from .protocol.requests import ContentRenderRequest, TestRequest, UnknownRequest, classify
from .protocol.responses import Response

# Output format options
FORMAT_TABLE = "table"
FORMAT_JSON = "json"

_SCHEMAS = {
    "response": Response,
    "test-request": TestRequest,
    "content-render-request": ContentRenderRequest,
}


def _load_config(**overrides: object) -> PluginConfig:
    try:
        return PluginConfig.from_env(**overrides)
    except ConfigError as e:
        raise click.UsageError(str(e)) from e


@click.group(invoke_without_command=True)
@click.option("--log-level", default=None, help="Log level forwarded to the host console")
@click.option("--renderer", default=None, help="Content renderer as 'package.module:callable'")
@click.option("--max-concurrency", type=int, default=None, help="Requests handled at once")
@click.version_option(__version__, prog_name="cynthia-plugin")
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    renderer: str | None,
    max_concurrency: int | None,
) -> None:
    """Cynthia plugin runtime - answers host requests over stdio.

    Requests are read from stdin as JSON lines, responses are written to
    stdout as `parse:` lines.
    """
    # If a subcommand is invoked, let it handle everything
    if ctx.invoked_subcommand is not None:
        return

    config = _load_config(
        log_level=log_level,
        renderer=renderer,
        max_concurrency=max_concurrency,
    )
    _run_stdio(config)


def _set_binary_mode(streams: tuple[IO[Any], ...] | None = None) -> None:
    # On Windows, ensure binary mode for stdin/stdout
    if sys.platform == "win32":
        import msvcrt

        for stream in streams or (sys.stdin, sys.stdout):
            msvcrt.setmode(stream.fileno(), os.O_BINARY)


def _run_stdio(config: PluginConfig) -> None:
    """Run stdio mode (default)."""
    from .transport.stdio_adapter import run_stdio_adapter

    _set_binary_mode()

    # stdout carries the protocol, so startup chatter goes to stderr
    click.echo("Starting Cynthia plugin runtime in stdio mode", err=True)

    try:
        asyncio.run(run_stdio_adapter(config))
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\nShutting down", err=True)


# =============================================================================
# Inspection Commands
# =============================================================================


@main.command("classify")
@click.argument("request_json")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice([FORMAT_TABLE, FORMAT_JSON]),
    default=FORMAT_TABLE,
    help="Output format",
)
def classify_request(request_json: str, output_format: str) -> None:
    """Classify a request without answering it.

    Examples:

        cynthia-plugin classify '{"id": 7, "body": {"for": "Test", "test": "x"}}'

        cynthia-plugin classify --format json '{"id": 1, "body": {"for": "New"}}'
    """
    try:
        request = classify(request_json)
    except RequestParseError as e:
        click.echo(f"Parse error: {e}", err=True)
        sys.exit(1)

    result = {
        "id": request.id,
        "kind": request.kind.value,
        "reason": request.reason if isinstance(request, UnknownRequest) else None,
    }

    if output_format == FORMAT_JSON:
        click.echo(json.dumps(result, indent=2))
        return

    click.echo(f"Id:       {result['id']}")
    click.echo(f"Kind:     {result['kind']}")
    if result["reason"]:
        click.echo(f"Reason:   {result['reason']}")


@main.command("schema")
@click.argument("name", type=click.Choice(sorted(_SCHEMAS)), default="response")
def show_schema(name: str) -> None:
    """Print the JSON schema of a protocol envelope.

    Examples:

        cynthia-plugin schema response
        cynthia-plugin schema content-render-request
    """
    schema = _SCHEMAS[name].model_json_schema(by_alias=True)
    click.echo(json.dumps(schema, indent=2))


@main.command("config")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def show_config(output_json: bool) -> None:
    """Show effective configuration.

    Examples:

        cynthia-plugin config
        cynthia-plugin config --json
    """
    config = _load_config()
    data = {
        "version": __version__,
        "plugin_compat": PLUGIN_COMPAT,
        **config.model_dump(),
        "env_overrides": sorted(k for k in os.environ if k.startswith(ENV_PREFIX)),
    }

    if output_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("Cynthia Plugin Runtime Configuration")
    click.echo("-" * 40)
    click.echo(f"Version:            {data['version']}")
    click.echo(f"Plugin compat:      {data['plugin_compat']}")
    click.echo(f"Log level:          {config.log_level}")
    click.echo(f"Response prefix:    {config.response_prefix!r}")
    click.echo(f"Max concurrency:    {config.max_concurrency}")
    click.echo(f"Renderer:           {config.renderer or 'none'}")


if __name__ == "__main__":
    main()
