from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .merge import select_source_properties
from .resolver import ResolvedState
from .secrets import SecretPolicy, classify, collect_secrets
from .types import NormalizedValue

MASK = "***"


def as_text(value: NormalizedValue) -> Optional[str]:
    """String form of a normalized value; booleans in lower case."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Property:
    """A single property looked up from a resolved configuration."""

    key: str
    value: Optional[str]
    secret: bool

    def __repr__(self) -> str:
        shown = MASK if self.secret and self.value is not None else repr(self.value)
        return f"Property(key={self.key!r}, value={shown}, secret={self.secret})"


@dataclass
class Config:
    state: ResolvedState
    policy: Optional[SecretPolicy] = None
    _secrets: Optional[Dict[str, Any]] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.policy is None:
            self.policy = self.state.secret_policy

    def values(self) -> Dict[str, Any]:
        return dict(self.state.properties)

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self.state.properties.get(key, default)

    def provenance(self, key: str) -> List[str]:
        return list(self.state.property_to_sources_map.get(key, []))

    def source_names(self) -> List[str]:
        return list(self.state.property_source_names)

    def is_secret(self, key: str, override: Optional[bool] = None) -> bool:
        return classify(key, self.state.property_to_sources_map, self.policy, override)

    def get_property(self, key: str, mark_as_secret: Optional[bool] = None) -> Property:
        """Look up a property and decide whether it is a secret.

        ``mark_as_secret`` overrides key-pattern and source-based detection.
        """
        return Property(
            key=key,
            value=as_text(self.state.properties.get(key)),
            secret=self.is_secret(key, mark_as_secret),
        )

    def get_source_properties(
        self, source_names: Optional[Sequence[str]] = None
    ) -> Dict[str, Any]:
        """Merge the properties of the sources whose name matches ``source_names``.

        With no names every source is merged, which equals ``values()``.
        """
        return select_source_properties(
            self.state.property_source_names,
            self.state.property_source_map,
            source_names,
        )

    def get_all_secrets(self) -> Dict[str, Optional[str]]:
        if self._secrets is None:
            self._secrets = collect_secrets(
                self.state.properties, self.state.property_to_sources_map, self.policy
            )
        return {key: as_text(value) for key, value in self._secrets.items()}

    def masked_values(self) -> Dict[str, Any]:
        """All properties with secret values replaced by a mask."""
        secrets = self.get_all_secrets()
        return {
            key: MASK if key in secrets else value
            for key, value in self.state.properties.items()
        }
