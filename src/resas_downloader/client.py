"""High-level async RESAS API client.

This is the primary public interface of resas-downloader. Every RESAS
request flows through :meth:`ResasClient.get`, which attaches the API key,
retries transient failures according to a :class:`RetryPolicy`, and decodes
the response into the schema type chosen by the caller.

Example::

    import asyncio
    from resas_downloader import Prefecture, ResasClient, RetryPolicy

    async def main():
        async with ResasClient("YOUR_API_KEY", RetryPolicy.default()) as client:
            response = await client.get("api/v1/prefectures", Prefecture)
            for pref in response.result:
                print(pref.pref_code, pref.pref_name)

    asyncio.run(main())

RESAS response conventions:
    - Successful payloads are wrapped in ``{"message": ..., "result": ...}``.
    - Errors are often reported with HTTP 200 and a ``statusCode`` key in
      the body (``{"statusCode": "403", "message": "Forbidden."}``), and
      some endpoints answer with a bare code such as ``"400"``.
"""

from __future__ import annotations

import asyncio
import os
import time
from collections.abc import Mapping
from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from resas_downloader.errors import (
    ResasAPIError,
    ResasDecodeError,
    ResasStatusError,
    ResasTransportError,
    RetryExhaustedError,
)
from resas_downloader.models import City, Prefecture, ResasResponse

T = TypeVar("T")

# RESAS API base URL
RESAS_ENDPOINT = "https://opendata.resas-portal.go.jp"

PATH_PREFECTURES = "api/v1/prefectures"
PATH_CITIES = "api/v1/cities"

# Header carrying the API key
_API_KEY_HEADER = "X-API-KEY"

_DEFAULT_TIMEOUT = 30.0

# Requests per second (one request every 200 ms)
_DEFAULT_RATE_LIMIT = 5.0


def _status_code_of(raw: Any) -> int | None:
    """Interpret a body-level status code (``"403"``, ``403``); None if not one."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


class RetryPolicy(BaseModel):
    """How many times, and how far apart, failed requests are attempted.

    Attributes:
        retriable_codes: Status codes treated as transient.
        interval: Seconds to wait before the first retry.
        attempts: Total number of attempts, the first one included.
        backoff: Multiplier applied to the delay on each further retry
            (``1.0`` keeps the delay fixed).
    """

    retriable_codes: frozenset[int] = frozenset({500, 502})
    interval: float = Field(default=60.0, ge=0)
    attempts: int = Field(default=3, ge=1)
    backoff: float = Field(default=1.0, ge=1.0)

    model_config = {"frozen": True}

    @classmethod
    def default(cls) -> RetryPolicy:
        """Three attempts, one minute apart, retrying on 500 and 502."""
        return cls()

    def is_retriable(self, status_code: int) -> bool:
        return status_code in self.retriable_codes

    def delay_for(self, attempt: int) -> float:
        """Seconds to sleep after the ``attempt``-th failed attempt (1-based)."""
        return self.interval * self.backoff ** (attempt - 1)


class _RateLimiter:
    """Simple rate limiter for API requests."""

    def __init__(self, rate: float) -> None:
        self._interval = 1.0 / rate if rate > 0 else 0.0
        self._last_request: float = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Wait if necessary to maintain the rate limit."""
        if self._interval <= 0:
            return
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self._last_request
            if elapsed < self._interval:
                await asyncio.sleep(self._interval - elapsed)
            self._last_request = time.monotonic()


class ResasClient:
    """Async client for the RESAS API."""

    def __init__(
        self,
        api_key: str | None = None,
        retry_policy: RetryPolicy | None = None,
        *,
        timeout: float = _DEFAULT_TIMEOUT,
        rate_limit: float = _DEFAULT_RATE_LIMIT,
        base_url: str = RESAS_ENDPOINT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or os.environ.get("RESAS_API_KEY")
        if not self._api_key:
            logger.warning("No api_key provided. Set api_key or RESAS_API_KEY env var.")

        self._retry_policy = retry_policy or RetryPolicy.default()
        self._timeout = timeout
        self._limiter = _RateLimiter(rate_limit)
        self._base_url = base_url.rstrip("/")

        headers = {"Accept": "application/json"}
        if self._api_key:
            headers[_API_KEY_HEADER] = self._api_key

        self._http = httpx.AsyncClient(
            timeout=self._timeout,
            headers=headers,
            transport=transport,
        )

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ResasClient:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def _build_url(self, path: str) -> str:
        return f"{self._base_url}/{path.lstrip('/')}"

    async def _send_request(
        self, url: str, params: Mapping[str, Any] | str | None
    ) -> Any:
        """Perform a single attempt and return the decoded JSON body.

        The body is parsed before the status is checked, so a gateway error
        page (HTML or empty body on a 502) raises a non-retryable
        :class:`ResasDecodeError` and is not retried.
        """
        await self._limiter.wait()
        logger.debug(f"GET {url} params={params}")
        try:
            resp = await self._http.get(url, params=params)
        except httpx.TransportError as e:
            raise ResasTransportError(f"Request to {url} failed: {e!r}") from e
        except httpx.DecodingError as e:
            raise ResasDecodeError(f"Could not decode response from {url}: {e}") from e
        except httpx.HTTPError as e:
            raise ResasAPIError(f"Request to {url} failed: {e!r}") from e

        try:
            data = resp.json()
        except ValueError as e:
            raise ResasDecodeError(
                f"Invalid JSON in response from {url} (HTTP {resp.status_code})",
                status_code=resp.status_code,
            ) from e

        status = resp.status_code
        if self._retry_policy.is_retriable(status):
            raise ResasStatusError(
                f"Status code {status}", status_code=status, retryable=True
            )
        if not resp.is_success:
            raise ResasStatusError(f"HTTP {status} from {url}", status_code=status)

        self._check_api_status(data)
        return data

    def _check_api_status(self, data: Any) -> None:
        """Check a RESAS response body for application-level errors.

        RESAS returns HTTP 200 even for errors like an invalid API key.
        The real status is the body's ``statusCode`` or, for some errors,
        the whole body.
        """
        if isinstance(data, dict):
            if "statusCode" not in data:
                return
            raw = data["statusCode"]
            message = data.get("message")
        else:
            raw = data
            message = None

        status = _status_code_of(raw)
        if status is None:
            if isinstance(data, dict):
                raise ResasStatusError(f"Unrecognized statusCode {raw!r}: {message}")
            return

        if self._retry_policy.is_retriable(status):
            raise ResasStatusError(
                f"{status} {message}", status_code=status, retryable=True
            )
        if 200 <= status < 300:
            return
        raise ResasStatusError(f"{status} {message}", status_code=status)

    async def _request_with_retry(
        self, url: str, params: Mapping[str, Any] | str | None
    ) -> Any:
        policy = self._retry_policy
        last_exc: ResasAPIError | None = None

        for attempt in range(1, policy.attempts + 1):
            try:
                return await self._send_request(url, params)
            except ResasAPIError as e:
                if not e.retryable:
                    raise
                last_exc = e

            if attempt < policy.attempts:
                delay = policy.delay_for(attempt)
                logger.warning(
                    f"Retry {attempt}/{policy.attempts - 1} after {delay}s: {last_exc}"
                )
                await asyncio.sleep(delay)

        assert last_exc is not None
        raise RetryExhaustedError(
            f"Retried {policy.attempts} times but couldn't recover: {last_exc}",
            attempts=policy.attempts,
            status_code=last_exc.status_code,
        ) from last_exc

    async def get_json(
        self,
        path: str,
        parameters: Mapping[str, Any] | str | None = None,
        with_retry: bool = True,
    ) -> Any:
        """Fetch ``path`` and return the decoded JSON body without validation.

        Args:
            path: Endpoint path relative to the base URL (``api/v1/cities``).
            parameters: Query parameters, as a mapping or an encoded string
                (``"prefCode=13"``).
            with_retry: Retry transient failures per the retry policy.
                When false, a single attempt is made.

        Raises:
            ResasAPIError: On transport, status or decode failure, or when
                retries are exhausted.
        """
        url = self._build_url(path)
        if with_retry:
            return await self._request_with_retry(url, parameters)
        return await self._send_request(url, parameters)

    async def get(
        self,
        path: str,
        model: type[T],
        parameters: Mapping[str, Any] | str | None = None,
        with_retry: bool = True,
    ) -> ResasResponse[T]:
        """Fetch ``path`` and decode the response envelope's records as ``model``.

        Args:
            path: Endpoint path relative to the base URL (``api/v1/prefectures``).
            model: Schema type of each record in ``result``.
            parameters: Query parameters, as a mapping or an encoded string.
            with_retry: Retry transient failures per the retry policy.

        Returns:
            The response envelope with ``result`` decoded into ``model`` records.

        Raises:
            ResasDecodeError: If the body does not match ``model``.
            ResasAPIError: On any other failure.
        """
        data = await self.get_json(path, parameters, with_retry)
        try:
            return ResasResponse[model].model_validate(data)  # type: ignore[valid-type]
        except ValidationError as e:
            name = getattr(model, "__name__", str(model))
            raise ResasDecodeError(
                f"Response from {path} does not match {name}: {e}"
            ) from e

    async def get_prefectures(self) -> list[Prefecture]:
        """Fetch all 47 prefectures."""
        response = await self.get(PATH_PREFECTURES, Prefecture)
        logger.info(f"Found {len(response.result)} prefectures")
        return response.result

    async def get_cities(self, pref_code: int) -> list[City]:
        """Fetch the municipalities of one prefecture."""
        response = await self.get(PATH_CITIES, City, {"prefCode": pref_code})
        logger.debug(f"Found {len(response.result)} cities for prefCode={pref_code}")
        return response.result
