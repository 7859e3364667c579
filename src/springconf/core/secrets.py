"""Classification of resolved properties as sensitive."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Pattern, Sequence, Tuple

from .filters import matches_any

SECRET_KEY_PATTERN: Pattern[str] = re.compile(
    r"password|secret|token|credential|auth|api[_-]?key|key$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SecretPolicy:
    """Rules deciding which properties are secrets.

    Attributes:
        key_pattern: Keys matching this pattern are secrets. None disables
            key-name detection.
        secret_source_substrings: Every property supplied by a source whose
            name contains one of these (case-insensitive) is a secret.
    """

    key_pattern: Optional[Pattern[str]] = SECRET_KEY_PATTERN
    secret_source_substrings: Tuple[str, ...] = ()

    @staticmethod
    def from_flags(
        auto_detect_secrets: bool = True,
        secret_sources: Optional[Sequence[str]] = None,
    ) -> "SecretPolicy":
        return SecretPolicy(
            key_pattern=SECRET_KEY_PATTERN if auto_detect_secrets else None,
            secret_source_substrings=tuple(secret_sources or ()),
        )

    @property
    def enabled(self) -> bool:
        return self.key_pattern is not None or bool(self.secret_source_substrings)


def is_likely_secret(key: str, pattern: Optional[Pattern[str]] = SECRET_KEY_PATTERN) -> bool:
    """Check a key name against the secret pattern (None never matches)."""
    if pattern is None:
        return False
    return pattern.search(key) is not None


def is_from_secret_source(
    key: str,
    provenance: Mapping[str, Sequence[str]],
    substrings: Sequence[str],
) -> bool:
    """True if any source that supplied ``key`` matches a secret substring."""
    if not substrings:
        return False
    return any(matches_any(name, substrings) for name in provenance.get(key, ()))


def classify(
    key: str,
    provenance: Mapping[str, Sequence[str]],
    policy: SecretPolicy,
    override: Optional[bool] = None,
) -> bool:
    """Decide whether ``key`` holds a secret.

    An explicit ``override`` always wins. Otherwise the key is a secret when
    its name matches the policy pattern or when it was supplied by any
    configured secret source.

    Args:
        key: Property key.
        provenance: Key to contributing source names.
        policy: Detection rules.
        override: Caller decision that short-circuits detection.

    Returns:
        True if the property must be treated as sensitive.
    """
    if override is not None:
        return override
    if is_likely_secret(key, policy.key_pattern):
        return True
    return is_from_secret_source(key, provenance, policy.secret_source_substrings)


def collect_secrets(
    properties: Mapping[str, Any],
    provenance: Mapping[str, Sequence[str]],
    policy: SecretPolicy,
) -> Dict[str, Any]:
    """Return the subset of ``properties`` classified as secrets."""
    if not policy.enabled:
        return {}
    return {
        key: value
        for key, value in properties.items()
        if classify(key, provenance, policy)
    }
