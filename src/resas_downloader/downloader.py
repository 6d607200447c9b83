"""Download every RESAS municipality into a flat table.

Walks the prefecture list, fetches the cities of each prefecture in turn
and joins them with the prefecture name. Requests are paced by the
client's rate limiter.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from resas_downloader.client import ResasClient
from resas_downloader.errors import ResasAPIError
from resas_downloader.models import CityRow, CityTable


async def fetch_city_table(client: ResasClient) -> CityTable:
    """Fetch all cities of all prefectures.

    Raises:
        ResasAPIError: If any request fails, or no city rows are returned.
    """
    prefectures = await client.get_prefectures()

    rows: list[CityRow] = []
    for pref in prefectures:
        cities = await client.get_cities(pref.pref_code)
        rows.extend(CityRow.from_city(city, pref) for city in cities)
        logger.info(f"Fetched prefecture: {pref.pref_name}")

    if not rows:
        raise ResasAPIError("No city data returned")

    return CityTable(rows=rows)


async def download_cities(client: ResasClient, output_path: str | Path) -> CityTable:
    """Fetch the city table and write it to ``output_path`` as Parquet."""
    table = await fetch_city_table(client)
    path = table.write_parquet(output_path)
    logger.info(f"Saved {len(table)} cities to {path}")
    return table
