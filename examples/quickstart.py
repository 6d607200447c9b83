"""Quick start example for resas-downloader.

Before running, set your RESAS API key:
    export RESAS_API_KEY=your_api_key_here

Usage:
    uv run python examples/quickstart.py
"""

import asyncio
import os

from resas_downloader import City, Prefecture, ResasClient, RetryPolicy


async def main() -> None:
    api_key = os.environ.get("RESAS_API_KEY")
    if not api_key:
        print("Set RESAS_API_KEY environment variable first.")
        print("Get one at: https://opendata.resas-portal.go.jp/")
        return

    policy = RetryPolicy(attempts=3, interval=5.0, backoff=2.0)
    async with ResasClient(api_key, policy) as client:
        # 1. Generic fetch, decoded into the Prefecture schema
        print("=== Prefectures ===")
        response = await client.get("api/v1/prefectures", Prefecture)
        for p in response.result[:5]:
            print(f"  {p.pref_code:>2}  {p.pref_name}")

        if not response.result:
            print("  No prefectures returned.")
            return

        # 2. Cities of the first prefecture, with a query parameter
        pref = response.result[0]
        print(f"\n=== Cities of {pref.pref_name} ===")
        cities = await client.get("api/v1/cities", City, {"prefCode": pref.pref_code})
        print(f"  Total: {len(cities.result)}")
        for c in cities.result[:5]:
            print(f"    {c.city_code}  {c.city_name}  (flag={c.big_city_flag})")

        # 3. Any other endpoint as raw JSON, single attempt
        print("\n=== Raw JSON ===")
        data = await client.get_json(
            "api/v1/population/composition/perYear",
            {"prefCode": pref.pref_code, "cityCode": "-"},
            with_retry=False,
        )
        print(f"  Keys: {list(data.get('result', {}).keys())}")


if __name__ == "__main__":
    asyncio.run(main())
