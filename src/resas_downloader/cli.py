"""Command-line interface for resas-downloader.

Provides these commands:
- ``resas-downloader prefectures``: List prefectures
- ``resas-downloader cities``: List the cities of a prefecture
- ``resas-downloader get``: Fetch any endpoint as raw JSON
- ``resas-downloader download``: Write all cities to a Parquet file
- ``resas-downloader test``: Test API key and connectivity
- ``resas-downloader serve``: Start the MCP server
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from typing import TYPE_CHECKING, Any, Literal, cast

import click
from loguru import logger

from resas_downloader.errors import ResasAPIError

if TYPE_CHECKING:
    from resas_downloader.client import ResasClient
    from resas_downloader.models import City, CityTable, Prefecture


def _handle_api_error(e: Exception, prefix: str = "Error") -> None:
    """Print an API error message to stderr and exit with code 1."""
    click.echo(f"{prefix}: {e}", err=True)
    raise SystemExit(1) from None


def _make_client(ctx: click.Context) -> ResasClient:
    from resas_downloader.client import ResasClient, RetryPolicy

    opts = ctx.obj
    policy = RetryPolicy(attempts=opts["attempts"], interval=opts["interval"])
    return ResasClient(api_key=opts["token"], retry_policy=policy)


def _parse_params(raw: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for item in raw:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got '{item}'", param_hint="--param")
        params[key] = value
    return params


_format_option = click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format.",
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option(
    "--token",
    envvar="RESAS_API_KEY",
    default=None,
    help="RESAS API key (default: $RESAS_API_KEY).",
)
@click.option(
    "--attempts",
    type=click.IntRange(min=1),
    default=3,
    show_default=True,
    help="Total attempts per request.",
)
@click.option(
    "--interval",
    type=click.FloatRange(min=0),
    default=60.0,
    show_default=True,
    help="Seconds between retries.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    token: str | None,
    attempts: int,
    interval: float,
) -> None:
    """RESAS API client and downloader for Japanese regional statistics."""
    level = "DEBUG" if verbose else "INFO"
    logger.remove()
    logger.add(sys.stderr, level=level, format="{time:HH:mm:ss} | {level:<7} | {message}")
    ctx.obj = {"token": token, "attempts": attempts, "interval": interval}


@cli.command()
@_format_option
@click.pass_context
def prefectures(ctx: click.Context, fmt: str) -> None:
    """List all prefectures.

    Examples:

        resas-downloader prefectures

        resas-downloader prefectures --format json
    """

    async def _run() -> list[Prefecture]:
        async with _make_client(ctx) as client:
            return await client.get_prefectures()

    try:
        result = asyncio.run(_run())
    except ResasAPIError as e:
        _handle_api_error(e)

    if fmt == "json":
        click.echo(
            json.dumps([p.model_dump() for p in result], ensure_ascii=False, indent=2)
        )
        return

    click.echo(f"{'Code':<6} Name")
    click.echo("-" * 20)
    for p in result:
        click.echo(f"{p.pref_code:<6} {p.pref_name}")


@cli.command()
@click.argument("pref_code", type=int)
@_format_option
@click.pass_context
def cities(ctx: click.Context, pref_code: int, fmt: str) -> None:
    """List the cities of a prefecture.

    Examples:

        resas-downloader cities 13

        resas-downloader cities 1 --format json
    """

    async def _run() -> list[City]:
        async with _make_client(ctx) as client:
            return await client.get_cities(pref_code)

    try:
        result = asyncio.run(_run())
    except ResasAPIError as e:
        _handle_api_error(e)

    if fmt == "json":
        click.echo(
            json.dumps([c.model_dump() for c in result], ensure_ascii=False, indent=2)
        )
        return

    if not result:
        click.echo(f"No cities found for prefecture {pref_code}")
        return

    click.echo(f"{'City Code':<10} {'Flag':<5} Name")
    click.echo("-" * 40)
    for c in result:
        click.echo(f"{c.city_code:<10} {c.big_city_flag:<5} {c.city_name}")


@cli.command()
@click.argument("path")
@click.option(
    "--param",
    "-p",
    "params",
    multiple=True,
    help="Query parameter as KEY=VALUE (repeatable).",
)
@click.option("--no-retry", is_flag=True, help="Make a single attempt only.")
@click.pass_context
def get(ctx: click.Context, path: str, params: tuple[str, ...], no_retry: bool) -> None:
    """Fetch any RESAS endpoint and print the JSON response.

    Examples:

        resas-downloader get api/v1/prefectures

        resas-downloader get api/v1/cities -p prefCode=13
    """
    parameters = _parse_params(params)

    async def _run() -> Any:
        async with _make_client(ctx) as client:
            return await client.get_json(path, parameters or None, with_retry=not no_retry)

    try:
        data = asyncio.run(_run())
    except ResasAPIError as e:
        _handle_api_error(e)

    click.echo(json.dumps(data, ensure_ascii=False, indent=2))


@cli.command()
@click.argument("output_path", type=click.Path(dir_okay=False))
@click.pass_context
def download(ctx: click.Context, output_path: str) -> None:
    """Download every city of every prefecture into a Parquet file.

    Examples:

        resas-downloader download cities.parquet
    """
    from resas_downloader.downloader import download_cities

    async def _run() -> CityTable:
        async with _make_client(ctx) as client:
            return await download_cities(client, output_path)

    try:
        table = asyncio.run(_run())
    except (ResasAPIError, ImportError, OSError) as e:
        _handle_api_error(e)

    click.echo(f"Saved {len(table)} cities to {output_path}")


@cli.command("test")
@click.pass_context
def test_connection(ctx: click.Context) -> None:
    """Test API key and connectivity to RESAS.

    Verifies that your RESAS_API_KEY is set and working by making
    a lightweight API call.

    Examples:

        resas-downloader test
    """
    from resas_downloader import __version__

    click.echo(f"resas-downloader v{__version__}\n")

    # 1. Check API key
    api_key = ctx.obj["token"] or os.environ.get("RESAS_API_KEY", "")
    if not api_key:
        click.echo("[FAIL] RESAS_API_KEY is not set", err=True)
        click.echo(
            "  Get an API key from: https://opendata.resas-portal.go.jp/",
            err=True,
        )
        click.echo(
            "  Then set it with: export RESAS_API_KEY=your_api_key",
            err=True,
        )
        sys.exit(1)
    click.echo(f"[OK]   RESAS_API_KEY is set ({api_key[:4]}...{api_key[-4:]})")

    # 2. Test API connectivity
    click.echo("\nTesting API connectivity...")

    async def _test() -> str:
        async with _make_client(ctx) as client:
            result = await client.get_prefectures()
            if result:
                return f"Found {len(result)} prefectures (e.g. {result[0].pref_name})"
            return "API responded but returned no prefectures"

    try:
        message = asyncio.run(_test())
        click.echo(f"[OK]   {message}")
    except ResasAPIError as e:
        _handle_api_error(e, prefix="[FAIL] API error")

    click.echo("\nAll checks passed.")


@cli.command()
def version() -> None:
    """Show version information."""
    from resas_downloader import __version__

    click.echo(f"resas-downloader {__version__}")


@cli.command()
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse"]),
    default="stdio",
    help="MCP transport protocol.",
)
def serve(transport: str) -> None:
    """Start the RESAS MCP server.

    For Claude Desktop, add this to your config:

        {"mcpServers": {"resas": {"command": "uvx", "args": ["resas-downloader", "serve"]}}}
    """
    from resas_downloader.server import mcp

    logger.info(f"Starting RESAS MCP server ({transport} transport)")
    mcp.run(transport=cast('Literal["stdio", "sse"]', transport))


if __name__ == "__main__":
    cli()
