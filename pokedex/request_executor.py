"""
Resilient request execution for the PokeAPI data layer.

Every network call goes through RequestExecutor.execute, which applies a
per-attempt deadline and retries failures with capped exponential backoff.
Connection pooling follows the usual aiohttp pattern: one lazily created
ClientSession backed by a TCPConnector, reused for the executor's lifetime.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from config.settings import (
    CONNECTION_KEEPALIVE_TIMEOUT,
    CONNECTION_POOL_LIMIT,
    CONNECTION_POOL_LIMIT_PER_HOST,
    USER_AGENT,
    ApiSettings,
    validate_settings,
)
from pokedex.decorators import retry_on_error

logger = logging.getLogger("pokedex.executor")


class RequestError(Exception):
    """
    Raised when a request fails.

    Attributes:
        url: The requested URL.
        status: HTTP status for non-2xx responses, None for transport errors.
        attempt: The 1-based attempt that produced this error.
    """

    def __init__(
        self,
        message: str,
        url: str,
        status: Optional[int] = None,
        attempt: Optional[int] = None,
    ):
        super().__init__(message)
        self.url = url
        self.status = status
        self.attempt = attempt


class RequestExecutor:
    """
    Executes GET requests with a timeout and retry-with-backoff policy.

    Behaviour per call to `execute`:
    - Each attempt has its own deadline of `settings.timeout_ms`.
    - Only 2xx responses count as success; anything else raises for that
      attempt.
    - Between failed attempts (never after the last) the executor waits
      `min(base * 2^(attempt-1), max)`.
    - After `settings.retry_attempts` failures the last RequestError is
      raised to the caller.
    """

    def __init__(
        self,
        settings: ApiSettings,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize the executor.

        Args:
            settings: Validated API settings.
            session: Optional pre-built session. An injected session is used
                as-is and is not closed by `close()`.
        """
        self.settings = validate_settings(settings)
        self.session = session
        self._owns_session = session is None
        self._session_lock = asyncio.Lock()

        self.attempts = 0
        self.failures = 0

    async def __aenter__(self) -> "RequestExecutor":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def get_session(self) -> aiohttp.ClientSession:
        """
        Get or create the aiohttp session with connection pooling configuration.

        Returns:
            Active aiohttp ClientSession.
        """
        async with self._session_lock:
            if self.session is None or self.session.closed:
                connector = aiohttp.TCPConnector(
                    limit=CONNECTION_POOL_LIMIT,
                    limit_per_host=CONNECTION_POOL_LIMIT_PER_HOST,
                    ttl_dns_cache=300,
                    keepalive_timeout=CONNECTION_KEEPALIVE_TIMEOUT,
                )

                self.session = aiohttp.ClientSession(
                    connector=connector,
                    headers={"User-Agent": USER_AGENT},
                )
                self._owns_session = True

                logger.info(
                    "Created aiohttp session with connection pooling",
                    extra={
                        "total_limit": CONNECTION_POOL_LIMIT,
                        "per_host_limit": CONNECTION_POOL_LIMIT_PER_HOST,
                    },
                )

        return self.session

    async def close(self) -> None:
        """Close the aiohttp session if this executor created it."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
            logger.info(
                f"API session closed (attempts: {self.attempts}, failures: {self.failures})"
            )

    async def execute(self, url: str) -> Any:
        """
        Fetch a URL and return its decoded JSON body.

        Args:
            url: Absolute URL to GET.

        Returns:
            The decoded JSON payload.

        Raises:
            RequestError: The last failure once all attempts are exhausted.
            ValueError: A 2xx body that is not valid JSON. Not retried.
        """
        if self.settings.enable_api_logging:
            logger.info(f"🌐 API Call: {url}", extra={"url": url})

        attempt = 0

        async def _attempt() -> Any:
            nonlocal attempt
            attempt += 1
            self.attempts += 1
            data = await self._attempt_once(url, attempt)
            if self.settings.debug_api_calls:
                logger.debug(
                    f"✅ API Success (attempt {attempt}): {url}",
                    extra={"url": url, "attempt": attempt},
                )
            return data

        retrying = retry_on_error(
            max_retries=self.settings.retry_attempts,
            exceptions=(RequestError,),
            base_delay=self.settings.retry_base_delay_ms / 1000,
            max_delay=self.settings.retry_max_delay_ms / 1000,
            on_failure=lambda n, e: self._on_attempt_failure(url, n, e),
        )(_attempt)

        return await retrying()

    async def _attempt_once(self, url: str, attempt: int) -> Any:
        """Single GET with its own deadline; transport errors become RequestError."""
        session = await self.get_session()
        timeout = aiohttp.ClientTimeout(total=self.settings.timeout_ms / 1000)

        try:
            async with session.get(url, timeout=timeout) as resp:
                if not 200 <= resp.status < 300:
                    raise RequestError(
                        f"HTTP error! status: {resp.status}",
                        url,
                        status=resp.status,
                        attempt=attempt,
                    )
                return await resp.json()
        except aiohttp.ContentTypeError as e:
            # The attempt itself succeeded; only the body is unusable
            raise ValueError(f"Response from {url} is not JSON: {e.message}") from e
        except asyncio.TimeoutError as e:
            raise RequestError(
                f"Request timed out after {self.settings.timeout_ms}ms",
                url,
                attempt=attempt,
            ) from e
        except aiohttp.ClientError as e:
            raise RequestError(str(e) or type(e).__name__, url, attempt=attempt) from e

    def _on_attempt_failure(self, url: str, attempt: int, error: Exception) -> None:
        self.failures += 1
        if self.settings.debug_api_calls:
            logger.debug(
                f"❌ API Error (attempt {attempt}/{self.settings.retry_attempts}): {url}",
                extra={"url": url, "attempt": attempt, "error": str(error)},
            )
