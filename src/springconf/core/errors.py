"""Error hierarchy for configuration resolution."""

from __future__ import annotations

import re
from typing import Optional

_CREDENTIALS_RE = re.compile(r"://[^/@\s:]+:[^/@\s]*@")

REDACTED_CREDENTIALS = "***:***"


def redact_credentials(text: Optional[str]) -> Optional[str]:
    """Replace any ``user:pass@`` authority segment with ``***:***@``.

    Args:
        text: Free text that may contain URLs.

    Returns:
        The text with embedded credentials masked, or None for None.
    """
    if text is None:
        return None
    return _CREDENTIALS_RE.sub(f"://{REDACTED_CREDENTIALS}@", text)


def strip_credentials(url: str) -> str:
    """Remove an embedded ``user:pass@`` segment from a URL entirely."""
    return _CREDENTIALS_RE.sub("://", url)


class ConfigServerError(RuntimeError):
    """Raised when configuration cannot be resolved.

    Attributes:
        message: Human readable message, credentials redacted.
        status_code: HTTP status, if a response was received.
        application: Application that was requested.
        profile: Profile that was requested.
        url: Target address, credentials redacted.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        application: Optional[str] = None,
        profile: Optional[str] = None,
        url: Optional[str] = None,
    ):
        self.message = redact_credentials(message) or ""
        self.status_code = status_code
        self.application = application
        self.profile = profile
        self.url = redact_credentials(url)
        super().__init__(self.message)


class ValidationError(ConfigServerError):
    """Raised for missing or malformed inputs, before any network call."""


class NetworkError(ConfigServerError):
    """Raised when no response was received from the config server."""

    retryable = True


class FetchTimeoutError(ConfigServerError):
    """Raised when an attempt exceeded its timeout."""

    retryable = True


class ServiceUnavailableError(ConfigServerError):
    """Raised for HTTP 503."""

    retryable = True


class ClientError(ConfigServerError):
    """Raised for HTTP 4xx."""


class ServerError(ConfigServerError):
    """Raised for HTTP 5xx other than 503."""


class MalformedResponseError(ConfigServerError):
    """Raised when a successful response does not carry a JSON object."""


class RetryExhaustedError(ConfigServerError):
    """Raised when every attempt failed with a retryable error.

    Attributes:
        attempts: Number of attempts made.
        last_error: The error raised by the final attempt.
    """

    def __init__(self, attempts: int, last_error: ConfigServerError):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Failed to fetch configuration after {attempts} attempts: {last_error.message}",
            status_code=last_error.status_code,
            application=last_error.application,
            profile=last_error.profile,
            url=last_error.url,
        )
