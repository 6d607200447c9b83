"""Shared test fixtures for resas-downloader."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from resas_downloader.client import ResasClient, RetryPolicy
from resas_downloader.models import City, CityRow, CityTable, Prefecture

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture()
def prefectures_payload() -> dict[str, Any]:
    """Body of a successful api/v1/prefectures response."""
    return {
        "message": None,
        "result": [
            {"prefCode": 1, "prefName": "北海道"},
            {"prefCode": 13, "prefName": "東京都"},
        ],
    }


@pytest.fixture()
def cities_payload() -> dict[str, Any]:
    """Body of a successful api/v1/cities?prefCode=13 response."""
    return {
        "message": None,
        "result": [
            {"prefCode": 13, "cityCode": "13101", "cityName": "千代田区", "bigCityFlag": "3"},
            {"prefCode": 13, "cityCode": "13201", "cityName": "八王子市", "bigCityFlag": "0"},
        ],
    }


@pytest.fixture()
def sample_prefecture() -> Prefecture:
    return Prefecture(pref_code=13, pref_name="東京都")


@pytest.fixture()
def sample_cities() -> list[City]:
    return [
        City(pref_code=13, city_code="13101", city_name="千代田区", big_city_flag="3"),
        City(pref_code=13, city_code="13201", city_name="八王子市", big_city_flag="0"),
    ]


@pytest.fixture()
def sample_city_table() -> CityTable:
    return CityTable(
        rows=[
            CityRow(
                prefecture_code="1",
                prefecture_name="北海道",
                city_code="01100",
                city_name="札幌市",
                big_city_flag="2",
            ),
            CityRow(
                prefecture_code="13",
                prefecture_name="東京都",
                city_code="13101",
                city_name="千代田区",
                big_city_flag="3",
            ),
        ]
    )


@pytest.fixture()
def fast_policy() -> RetryPolicy:
    """Retry policy that never sleeps."""
    return RetryPolicy(attempts=3, interval=0)


@pytest.fixture()
def make_client(fast_policy: RetryPolicy) -> Callable[..., ResasClient]:
    """Build a ResasClient whose HTTP traffic is answered by ``handler``."""

    def _make(handler: Handler, policy: RetryPolicy | None = None) -> ResasClient:
        return ResasClient(
            api_key="test-key",
            retry_policy=policy or fast_policy,
            rate_limit=0,
            transport=httpx.MockTransport(handler),
        )

    return _make
