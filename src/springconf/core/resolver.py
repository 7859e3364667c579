"""Resolution of configuration into a flat, persistable state.

This is the boundary a host orchestrator talks to: ``resolve`` on create,
``diff`` to decide whether inputs changed and ``update`` to re-resolve.
"""

from __future__ import annotations

import dataclasses
import hashlib
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import httpx

from .client import DEFAULT_TIMEOUT_MS, ConfigServerClient
from .errors import ValidationError, redact_credentials
from .filters import filter_sources
from .merge import merge_sources, normalize_sources
from .retry import OnRetryFn, RetryPolicy, SleepFn
from .secrets import SecretPolicy
from .types import FlatProperties, ProvenanceIndex

LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})


@dataclass(frozen=True)
class ResolveInputs:
    """Inputs of a single resolution.

    Attributes:
        config_server_url: Base URL of the config server.
        application: Application name.
        profile: Profile name(s), comma separated.
        label: Optional label/branch.
        username: Optional basic auth username.
        password: Optional basic auth password.
        property_sources: Keep only fragments whose name contains one of
            these (case-insensitive).
        secret_sources: Treat every property supplied by fragments whose
            name contains one of these as a secret.
        timeout_ms: Per-attempt request timeout.
        debug: Log request and filtering details.
        auto_detect_secrets: Detect secrets from key names.
        enforce_https: Fail instead of warn on plain HTTP to remote hosts.
        retry: Retry policy for the fetch.
    """

    config_server_url: str
    application: str
    profile: str
    label: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    property_sources: Optional[Tuple[str, ...]] = None
    secret_sources: Optional[Tuple[str, ...]] = None
    timeout_ms: float = DEFAULT_TIMEOUT_MS
    debug: bool = False
    auto_detect_secrets: bool = True
    enforce_https: bool = False
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        for name in ("property_sources", "secret_sources"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, tuple):
                if isinstance(value, str):
                    value = (value,)
                object.__setattr__(self, name, tuple(value))

    @property
    def secret_policy(self) -> SecretPolicy:
        return SecretPolicy.from_flags(self.auto_detect_secrets, self.secret_sources)


@dataclass
class ResolvedState:
    """Flat, primitive-only state produced by a resolution.

    The password is never stored; ``credentials_fingerprint`` lets ``diff``
    notice credential changes.
    """

    config_server_url: str
    application: str
    profile: str
    label: Optional[str]
    username: Optional[str]
    credentials_fingerprint: str
    property_sources: Optional[List[str]]
    secret_sources: Optional[List[str]]
    timeout_ms: float
    debug: bool
    auto_detect_secrets: bool
    enforce_https: bool
    config_name: str
    config_profiles: List[str]
    config_label: Optional[str]
    config_version: Optional[str]
    property_source_names: List[str] = field(default_factory=list)
    property_source_map: Dict[str, FlatProperties] = field(default_factory=dict)
    properties: FlatProperties = field(default_factory=dict)
    property_to_sources_map: ProvenanceIndex = field(default_factory=dict)

    @property
    def secret_policy(self) -> SecretPolicy:
        return SecretPolicy.from_flags(self.auto_detect_secrets, self.secret_sources)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ResolvedState":
        names = {f.name for f in dataclasses.fields(ResolvedState)}
        unknown = set(data) - names
        if unknown:
            raise ValueError(f"Unknown state fields: {', '.join(sorted(unknown))}")
        return ResolvedState(**dict(data))


def credentials_fingerprint(config_server_url: str, password: Optional[str]) -> str:
    """SHA-256 over the raw URL and password, for change detection only."""
    h = hashlib.sha256()
    h.update(config_server_url.encode("utf-8"))
    h.update(b"\0")
    h.update((password or "").encode("utf-8"))
    return h.hexdigest()


def resource_id(inputs: ResolveInputs) -> str:
    rid = f"{inputs.application}-{inputs.profile}"
    if inputs.label:
        rid += f"-{inputs.label}"
    return rid


def validate_inputs(inputs: ResolveInputs) -> None:
    """Check required fields and the URL format.

    Raises:
        ValidationError: If a required field is empty or the URL is not an
            absolute HTTP/HTTPS URL.
    """
    for name in ("config_server_url", "application", "profile"):
        if not getattr(inputs, name):
            raise ValidationError(f"{name} is required")

    try:
        parts = urlsplit(inputs.config_server_url)
        # .port raises ValueError for a non-numeric or out-of-range port
        valid = (
            parts.scheme in ("http", "https")
            and bool(parts.hostname)
            and parts.port != 0
        )
    except ValueError:
        valid = False
    if not valid:
        raise ValidationError(
            f"Invalid config_server_url: {inputs.config_server_url}. "
            "Must be a valid HTTP/HTTPS URL.",
            url=inputs.config_server_url,
        )


def validate_https(
    url: str,
    enforce_https: bool = False,
    *,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Warn, or fail when ``enforce_https`` is set, on plain HTTP to a remote host.

    HTTP to localhost is always allowed for local development.
    """
    parts = urlsplit(url)
    if parts.scheme != "http" or parts.hostname in LOCAL_HOSTS:
        return

    message = (
        f"Using HTTP URL: {redact_credentials(url)}. "
        "HTTPS is strongly recommended for production environments."
    )
    if enforce_https:
        raise ValidationError(f"{message} Set enforce_https to false to allow HTTP.", url=url)
    (logger or logging.getLogger(__name__)).warning("[Security Warning] %s", message)


def _optional_list(values: Optional[Sequence[str]]) -> Optional[List[str]]:
    return None if values is None else list(values)


async def resolve(
    inputs: ResolveInputs,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    logger: Optional[logging.Logger] = None,
    sleep_fn: Optional[SleepFn] = None,
    on_retry: Optional[OnRetryFn] = None,
) -> ResolvedState:
    """Fetch, filter, normalize and merge configuration.

    Args:
        inputs: Resolution inputs.
        transport: Optional httpx transport for the fetch.
        logger: Logger for diagnostics.
        sleep_fn: Awaitable sleep used between retries.
        on_retry: Called before each retry.

    Returns:
        The persistable state.

    Raises:
        ConfigServerError: Validation or fetch failure. Nothing partial is
            returned.
    """
    log = logger or logging.getLogger(__name__)
    validate_inputs(inputs)
    validate_https(inputs.config_server_url, inputs.enforce_https, logger=log)

    started = time.monotonic()
    label = f"/{inputs.label}" if inputs.label else ""
    log.info("Fetching configuration for %s/%s%s...", inputs.application, inputs.profile, label)

    async with ConfigServerClient(
        inputs.config_server_url,
        inputs.username,
        inputs.password,
        inputs.timeout_ms,
        debug=inputs.debug,
        logger=log,
        transport=transport,
    ) as client:
        response = await client.fetch_with_retry(
            inputs.application,
            inputs.profile,
            inputs.label,
            inputs.retry,
            on_retry=on_retry,
            sleep_fn=sleep_fn,
        )

    sources = normalize_sources(
        filter_sources(response.sources, inputs.property_sources, logger=log)
    )
    if inputs.debug:
        log.debug(
            "Property sources after filtering: %s", ", ".join(ps.name for ps in sources)
        )
    properties, provenance = merge_sources(sources)

    log.info(
        "Successfully fetched %d properties in %dms",
        len(properties),
        int((time.monotonic() - started) * 1000),
    )

    return ResolvedState(
        config_server_url=redact_credentials(inputs.config_server_url) or "",
        application=inputs.application,
        profile=inputs.profile,
        label=inputs.label,
        username=inputs.username,
        credentials_fingerprint=credentials_fingerprint(
            inputs.config_server_url, inputs.password
        ),
        property_sources=_optional_list(inputs.property_sources),
        secret_sources=_optional_list(inputs.secret_sources),
        timeout_ms=inputs.timeout_ms,
        debug=inputs.debug,
        auto_detect_secrets=inputs.auto_detect_secrets,
        enforce_https=inputs.enforce_https,
        config_name=response.name,
        config_profiles=list(response.profiles),
        config_label=response.label,
        config_version=response.version,
        property_source_names=[ps.name for ps in sources],
        property_source_map={ps.name: dict(ps.entries) for ps in sources},
        properties=properties,
        property_to_sources_map=provenance,
    )


def diff(old: ResolvedState, new: ResolveInputs) -> bool:
    """Return True when ``new`` differs from the inputs recorded in ``old``."""
    return (
        old.config_server_url != redact_credentials(new.config_server_url)
        or old.credentials_fingerprint
        != credentials_fingerprint(new.config_server_url, new.password)
        or old.application != new.application
        or old.profile != new.profile
        or old.label != new.label
        or old.username != new.username
        or old.property_sources != _optional_list(new.property_sources)
        or old.secret_sources != _optional_list(new.secret_sources)
        or old.timeout_ms != new.timeout_ms
        or old.debug != new.debug
        or old.auto_detect_secrets != new.auto_detect_secrets
        or old.enforce_https != new.enforce_https
    )


async def update(
    _id: str,
    old: ResolvedState,
    new: ResolveInputs,
    **kwargs: Any,
) -> ResolvedState:
    """Re-resolve with the new inputs; the id and old state are not consulted."""
    return await resolve(new, **kwargs)
