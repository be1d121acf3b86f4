"""HTTP fetching of hash ranges with fixed-delay retry."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterator

import httpx
import structlog

from ..config import RetryPolicy
from ..config.models import DEFAULT_API_BASE_URL
from ..exceptions import FetchError


@dataclass(slots=True)
class RangeResponse:
    """Live streamed body of one range; the caller must close it."""

    prefix: str
    url: str
    status_code: int
    raw: httpx.Response = field(repr=False)

    def iter_lines(self) -> Iterator[str]:
        return self.raw.iter_lines()

    def close(self) -> None:
        self.raw.close()

    def __enter__(self) -> "RangeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class RangeFetcher:
    """Fetch ``<base_url>/<prefix>`` until it answers 200 or the budget runs out."""

    def __init__(
        self,
        api_base_url: str = DEFAULT_API_BASE_URL,
        retry: RetryPolicy | None = None,
        timeout: float = 20.0,
        user_agent: str | None = None,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.api_base_url = api_base_url.rstrip("/") + "/"
        self.retry = retry or RetryPolicy(attempts=10, delay=0.5)
        self.logger = logger or structlog.get_logger("leak_checker.fetcher")
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.Client(
            follow_redirects=True,
            timeout=timeout,
            headers={"User-Agent": user_agent} if user_agent else None,
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "RangeFetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def url_for(self, prefix: str) -> str:
        return self.api_base_url + prefix

    def fetch(self, prefix: str) -> RangeResponse:
        url = self.url_for(prefix)
        last_error: Exception | None = None
        for attempt in range(1, self.retry.attempts + 1):
            try:
                request = self._client.build_request("GET", url)
                response = self._client.send(request, stream=True)
            except httpx.HTTPError as exc:
                last_error = exc
            else:
                if response.status_code == httpx.codes.OK:
                    return RangeResponse(
                        prefix=prefix,
                        url=str(response.url),
                        status_code=response.status_code,
                        raw=response,
                    )
                response.close()
                last_error = httpx.HTTPStatusError(
                    f"Unexpected status {response.status_code}",
                    request=request,
                    response=response,
                )
            self.logger.warning(
                "fetch_attempt_failed",
                prefix=prefix,
                attempt=attempt,
                error=str(last_error),
            )
            if attempt < self.retry.attempts:
                self._sleep(self.retry.delay)

        raise FetchError(
            prefix,
            self.retry.attempts,
            f"failed to fetch range {prefix} after {self.retry.attempts} attempts: {last_error}",
        ) from last_error


__all__ = ["RangeFetcher", "RangeResponse"]
