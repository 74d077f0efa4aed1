"""HTTP fetching with exponential backoff."""

import asyncio
from collections.abc import Awaitable, Callable

import httpx
from rich.console import Console

console = Console()

Sleep = Callable[[float], Awaitable[None]]


class FetchError(Exception):
    """Raised when a URL could not be fetched after every retry."""

    def __init__(self, url: str, attempts: int, cause: Exception):
        super().__init__(f"{url}: {cause}")
        self.url = url
        self.attempts = attempts
        self.cause = cause


def backoff_delay(attempt: int, base: float = 1.0, cap: float = 10.0) -> float:
    """Delay before retry number ``attempt + 1``: base doubled per attempt, capped."""
    return min(base * (2**attempt), cap)


async def fetch_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    retries: int = 3,
    timeout: float = 30.0,
    backoff_base: float = 1.0,
    backoff_cap: float = 10.0,
    verbose: bool = False,
    sleep: Sleep = asyncio.sleep,
) -> tuple[httpx.Response, int]:
    """GET a URL, retrying transport errors.

    Returns the response and the number of attempts it took. Any HTTP status is
    returned as-is; only network-level failures (including timeouts) are
    retried. Raises ``FetchError`` once ``retries`` retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            response = await client.get(url, timeout=timeout)
            return response, attempt + 1
        except httpx.TransportError as e:
            if attempt >= retries:
                raise FetchError(url, attempt + 1, e) from e

            delay = backoff_delay(attempt, backoff_base, backoff_cap)
            if verbose:
                console.print(
                    f"[dim]Retry {attempt + 1}/{retries} for {url} after {delay:.1f}s ({e})[/dim]"
                )
            await sleep(delay)
            attempt += 1
