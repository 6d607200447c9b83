"""MCP server exposing RESAS tools to LLMs via FastMCP.

This module defines the MCP (Model Context Protocol) server that allows
AI assistants to look up Japanese prefectures and municipalities and to
query any RESAS endpoint.

Usage with Claude Desktop (add to ``claude_desktop_config.json``)::

    {
      "mcpServers": {
        "resas": {
          "command": "uvx",
          "args": ["resas-downloader", "serve"]
        }
      }
    }
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Annotated, Any

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

from fastmcp import FastMCP
from pydantic import Field

from resas_downloader.client import ResasClient

# Lazily initialized client with lock for concurrent-safe access
_client: ResasClient | None = None
_client_lock = asyncio.Lock()


async def _get_client() -> ResasClient:
    """Return the shared ResasClient, creating it on first call."""
    global _client
    if _client is not None:
        return _client
    async with _client_lock:
        if _client is None:
            _client = ResasClient()
    return _client


@asynccontextmanager
async def _lifespan(server: FastMCP[dict[str, Any]]) -> AsyncIterator[dict[str, Any]]:
    """Close the shared client's HTTP pool on shutdown."""
    yield {}
    if _client is not None:
        await _client.close()


mcp = FastMCP(
    name="RESAS",
    lifespan=_lifespan,
    instructions=(
        "RESAS MCP server provides tools for the RESAS API "
        "(地域経済分析システム), Japan's regional economy and society "
        "statistics portal.\n\n"
        "Key tools:\n"
        "- list_prefectures: All 47 prefectures with their codes\n"
        "- list_cities: Municipalities of a prefecture\n"
        "- resas_get: Any RESAS endpoint as raw JSON\n\n"
        "Note: A RESAS API key is required (RESAS_API_KEY). Get one at:\n"
        "https://opendata.resas-portal.go.jp/"
    ),
)


@mcp.tool()
async def list_prefectures() -> list[dict[str, Any]]:
    """List all prefectures with their prefecture codes.

    Use a prefCode with list_cities or as a parameter to resas_get.
    """
    client = await _get_client()
    prefectures = await client.get_prefectures()
    return [{"pref_code": p.pref_code, "pref_name": p.pref_name} for p in prefectures]


@mcp.tool()
async def list_cities(
    pref_code: Annotated[
        int,
        Field(description="Prefecture code (1-47). Example: 13 for Tokyo", ge=1, le=47),
    ],
) -> list[dict[str, Any]]:
    """List the municipalities of a prefecture.

    big_city_flag: 0 ordinary city, 1 ward of a designated city,
    2 designated city, 3 Tokyo special ward.
    """
    client = await _get_client()
    cities = await client.get_cities(pref_code)
    return [c.model_dump() for c in cities]


@mcp.tool()
async def resas_get(
    path: Annotated[
        str,
        Field(description="Endpoint path. Example: 'api/v1/population/composition/perYear'"),
    ],
    parameters: Annotated[
        dict[str, str] | None,
        Field(description="Query parameters. Example: {'prefCode': '13', 'cityCode': '-'}"),
    ] = None,
) -> Any:
    """Fetch any RESAS endpoint and return its JSON response.

    Transient server errors are retried automatically.
    """
    client = await _get_client()
    return await client.get_json(path, parameters)
