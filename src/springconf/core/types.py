"""Type definitions for the springconf resolution engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

NormalizedValue = Union[str, int, float, bool, None]

FlatProperties = Dict[str, NormalizedValue]

# key -> names of every fragment that supplied it, in source order
ProvenanceIndex = Dict[str, List[str]]


@dataclass(frozen=True)
class PropertySource:
    """A named fragment of configuration returned by the config server.

    Attributes:
        name: Fragment name, e.g. ``vault:secret/app`` or a git file URL.
        entries: Key to raw value mapping. Order is not significant.
    """

    name: str
    entries: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ConfigurationResponse:
    """Response of ``GET {base}/{application}/{profile}[/{label}]``.

    Attributes:
        name: Application name echoed by the server.
        profiles: Active profiles.
        label: Label/branch used, if any.
        version: Version identifier, e.g. a git commit.
        state: Server state information.
        sources: Property sources; later ones override earlier ones.
    """

    name: str
    profiles: Tuple[str, ...] = ()
    label: Optional[str] = None
    version: Optional[str] = None
    state: Optional[str] = None
    sources: Tuple[PropertySource, ...] = ()

    @staticmethod
    def from_dict(data: Mapping[str, Any]) -> "ConfigurationResponse":
        """Build a response from decoded JSON.

        Missing or null ``propertySources`` yield no sources, fragments
        without a name are skipped and fragments whose ``source`` is not an
        object contribute no entries.
        """
        sources: List[PropertySource] = []
        for raw in data.get("propertySources") or []:
            if not isinstance(raw, Mapping) or not isinstance(raw.get("name"), str):
                continue
            entries = raw.get("source")
            if not isinstance(entries, Mapping):
                entries = {}
            sources.append(
                PropertySource(
                    name=raw["name"],
                    entries={str(k): v for k, v in entries.items()},
                )
            )

        profiles = data.get("profiles") or []
        if isinstance(profiles, str):
            profiles = [profiles]

        return ConfigurationResponse(
            name=str(data.get("name") or ""),
            profiles=tuple(str(p) for p in profiles),
            label=_optional_str(data.get("label")),
            version=_optional_str(data.get("version")),
            state=_optional_str(data.get("state")),
            sources=tuple(sources),
        )


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
