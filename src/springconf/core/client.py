"""Async HTTP client for a Spring Cloud Config server."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Any, Optional, Type
from urllib.parse import quote, unquote, urlsplit

import httpx

from .errors import (
    ClientError,
    ConfigServerError,
    FetchTimeoutError,
    MalformedResponseError,
    NetworkError,
    RetryExhaustedError,
    ServerError,
    ServiceUnavailableError,
    redact_credentials,
    strip_credentials,
)
from .retry import OnRetryFn, RetryEvent, RetryPolicy, SleepFn
from .types import ConfigurationResponse

DEFAULT_TIMEOUT_MS = 10000

_STATUS_HINTS = {
    401: "Authentication failed. Check the configured credentials.",
    403: "Access forbidden. Insufficient permissions.",
    500: "Config server internal error. Check server logs.",
    503: "Config server unavailable. Service may be starting up.",
}


class ConfigServerClient:
    """Client for fetching configuration from a Spring Cloud Config server.

    Usable as an async context manager; the underlying ``httpx.AsyncClient``
    is closed on exit.

    Credentials embedded in ``config_server_url`` are never sent as part of
    the address. They are used for basic auth when no explicit username and
    password are given, and every address that appears in an error or log
    message is redacted.
    """

    def __init__(
        self,
        config_server_url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout_ms: Optional[float] = DEFAULT_TIMEOUT_MS,
        *,
        debug: bool = False,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            config_server_url: Base URL of the config server.
            username: Optional username for basic auth.
            password: Optional password for basic auth.
            timeout_ms: Per-attempt timeout in milliseconds.
            debug: Log each request and response summary at DEBUG level.
            logger: Logger for diagnostics.
            transport: Optional httpx transport, e.g. ``httpx.MockTransport``.
        """
        self.display_url = redact_credentials(config_server_url) or ""
        self.timeout_ms = DEFAULT_TIMEOUT_MS if timeout_ms is None else timeout_ms
        self.debug = debug
        self._logger = logger or logging.getLogger(__name__)

        if not (username and password):
            parts = urlsplit(config_server_url)
            if parts.username and parts.password:
                username, password = unquote(parts.username), unquote(parts.password)

        self._client = httpx.AsyncClient(
            base_url=strip_credentials(config_server_url),
            headers={"Accept": "application/json"},
            auth=httpx.BasicAuth(username, password) if username and password else None,
            timeout=self.timeout_ms / 1000.0,
            transport=transport,
        )

    async def __aenter__(self) -> "ConfigServerClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def build_path(application: str, profile: str, label: Optional[str] = None) -> str:
        """Request path for an application/profile/label triple.

        Slashes in labels use the config server's ``(_)`` escape.
        """
        path = f"/{quote(application, safe=',')}/{quote(profile, safe=',')}"
        if label:
            path += "/" + quote(label.replace("/", "(_)"), safe=",()")
        return path

    async def fetch_once(
        self,
        application: str,
        profile: str,
        label: Optional[str] = None,
    ) -> ConfigurationResponse:
        """Fetch configuration with a single request.

        Args:
            application: Application name.
            profile: Profile name(s), comma separated.
            label: Optional label/branch.

        Returns:
            The parsed configuration response.

        Raises:
            ConfigServerError: A subclass describing the failure.
        """
        path = self.build_path(application, profile, label)
        url = f"{self.display_url.rstrip('/')}{path}"

        if self.debug:
            self._logger.debug("Fetching: %s", url)

        try:
            # whole-attempt deadline; httpx timeouts apply per phase
            response = await asyncio.wait_for(
                self._client.get(path), self.timeout_ms / 1000.0
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise FetchTimeoutError(
                "Request timeout: config server did not respond within "
                f"{self.timeout_ms:g}ms",
                application=application,
                profile=profile,
                url=url,
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(
                self._network_message(e),
                application=application,
                profile=profile,
                url=url,
            ) from e

        if response.status_code >= 400:
            raise self._status_error(response, application, profile, url)

        try:
            data = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedResponseError(
                "Malformed response: body is not valid JSON",
                status_code=response.status_code,
                application=application,
                profile=profile,
                url=url,
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Malformed response: expected a JSON object, got {type(data).__name__}",
                status_code=response.status_code,
                application=application,
                profile=profile,
                url=url,
            )

        config = ConfigurationResponse.from_dict(data)
        if self.debug:
            self._logger.debug("Response: %d property sources", len(config.sources))
        return config

    async def fetch_with_retry(
        self,
        application: str,
        profile: str,
        label: Optional[str] = None,
        policy: Optional[RetryPolicy] = None,
        *,
        on_retry: Optional[OnRetryFn] = None,
        sleep_fn: Optional[SleepFn] = None,
    ) -> ConfigurationResponse:
        """Fetch configuration, retrying transient failures.

        Network errors, timeouts and HTTP 503 are retried with exponential
        backoff. Any other failure is raised immediately.

        Args:
            application: Application name.
            profile: Profile name(s).
            label: Optional label/branch.
            policy: Retry policy; defaults to ``RetryPolicy()``.
            on_retry: Called with a RetryEvent before each backoff delay.
            sleep_fn: Awaitable sleep taking seconds; defaults to asyncio.sleep.

        Returns:
            The parsed configuration response.

        Raises:
            RetryExhaustedError: Every attempt failed with a retryable error.
            ConfigServerError: A non-retryable failure.
        """
        policy = policy or RetryPolicy()
        sleeper = sleep_fn or asyncio.sleep
        attempts = policy.attempts
        started = time.monotonic()
        index = 0

        while True:
            try:
                config = await self.fetch_once(application, profile, label)
            except ConfigServerError as e:
                if not e.retryable:
                    raise
                if index + 1 >= attempts:
                    raise RetryExhaustedError(attempts, e) from e

                delay_ms = policy.delay_ms(index)
                self._logger.warning(
                    "Attempt %d/%d failed: %s. Retrying in %gms...",
                    index + 1,
                    attempts,
                    e.message,
                    delay_ms,
                )
                if on_retry is not None:
                    on_retry(
                        RetryEvent(
                            application=application,
                            profile=profile,
                            failure_attempt=index + 1,
                            max_attempts=attempts,
                            delay_ms=delay_ms,
                            error_type=type(e).__name__,
                            error_message=e.message,
                        )
                    )
                await sleeper(delay_ms / 1000.0)
                index += 1
                continue

            if index > 0:
                self._logger.info(
                    "Succeeded after %d attempt(s) (%dms)",
                    index + 1,
                    int((time.monotonic() - started) * 1000),
                )
            return config

    def _network_message(self, exc: httpx.TransportError) -> str:
        detail = redact_credentials(str(exc)) or type(exc).__name__
        if isinstance(exc, httpx.ConnectError) and "refused" in detail.lower():
            return f"Connection refused: cannot connect to config server at {self.display_url}"
        return f"Network error: {detail} (config server at {self.display_url})"

    @staticmethod
    def _status_error(
        response: httpx.Response,
        application: str,
        profile: str,
        url: str,
    ) -> ConfigServerError:
        status = response.status_code
        message = f"HTTP {status}: {response.reason_phrase}"
        if status == 404:
            message += f" - Configuration not found for {application}/{profile}"
        elif status in _STATUS_HINTS:
            message += f" - {_STATUS_HINTS[status]}"

        if status == 503:
            error_cls: Type[ConfigServerError] = ServiceUnavailableError
        elif status < 500:
            error_cls = ClientError
        else:
            error_cls = ServerError
        return error_cls(
            message,
            status_code=status,
            application=application,
            profile=profile,
            url=url,
        )
