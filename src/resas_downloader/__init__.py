"""resas-downloader: RESAS API client, downloader and MCP server.

Quick start::

    import asyncio
    from resas_downloader import City, ResasClient, RetryPolicy

    async def main():
        async with ResasClient(api_key="YOUR_API_KEY") as client:
            # Prefectures through the convenience helper
            prefectures = await client.get_prefectures()
            print(prefectures[0].pref_name)

            # Any endpoint, decoded into the schema type of your choice
            response = await client.get(
                "api/v1/cities", City, {"prefCode": prefectures[0].pref_code}
            )
            print(response.result)

    asyncio.run(main())
"""

from resas_downloader.client import RESAS_ENDPOINT, ResasClient, RetryPolicy
from resas_downloader.errors import (
    ResasAPIError,
    ResasDecodeError,
    ResasStatusError,
    ResasTransportError,
    RetryExhaustedError,
)
from resas_downloader.models import (
    City,
    CityRow,
    CityTable,
    Prefecture,
    ResasResponse,
)

__all__ = [
    "RESAS_ENDPOINT",
    "City",
    "CityRow",
    "CityTable",
    "Prefecture",
    "ResasAPIError",
    "ResasClient",
    "ResasDecodeError",
    "ResasResponse",
    "ResasStatusError",
    "ResasTransportError",
    "RetryExhaustedError",
    "RetryPolicy",
]

__version__ = "0.1.0"
