"""springconf - Spring Cloud Config client library.

Fetch configuration from a Spring Cloud Config server with retries, merge
its property sources with provenance tracking, classify secrets and reduce
values to a flat, persistable state.
"""

from .core.environment import Environment
from .core.config import Config, Property
from .core.client import ConfigServerClient
from .core.errors import ConfigServerError, RetryExhaustedError, ValidationError
from .core.resolver import ResolvedState, ResolveInputs, diff, resolve, update
from .core.retry import RetryPolicy

__all__ = [
    "Environment",
    "Config",
    "Property",
    "ConfigServerClient",
    "ConfigServerError",
    "RetryExhaustedError",
    "ValidationError",
    "ResolvedState",
    "ResolveInputs",
    "diff",
    "resolve",
    "update",
    "RetryPolicy",
]
