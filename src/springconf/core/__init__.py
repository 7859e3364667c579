from .environment import Environment
from .config import Config, Property
from .client import ConfigServerClient
from .errors import ConfigServerError, RetryExhaustedError, ValidationError
from .resolver import ResolvedState, ResolveInputs, diff, resolve, update
from .retry import RetryPolicy

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
