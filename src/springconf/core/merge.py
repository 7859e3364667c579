"""Merging logic for ordered property sources."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .filters import matches_any
from .normalize import normalize_entries
from .types import FlatProperties, PropertySource, ProvenanceIndex


def merge_sources(
    sources: Sequence[PropertySource],
) -> Tuple[Dict[str, Any], ProvenanceIndex]:
    """Merge property sources into a single configuration.

    Sources are merged in order with later sources overriding
    earlier ones for the same keys.

    Args:
        sources: Ordered property sources.

    Returns:
        Tuple of (effective_config, provenance) where:
        - effective_config is the merged configuration dictionary
        - provenance maps each key to every source name that supplied it
    """
    effective: Dict[str, Any] = {}
    provenance: ProvenanceIndex = {}

    for ps in sources:
        for key, value in ps.entries.items():
            # last source wins
            effective[key] = value
            provenance.setdefault(key, []).append(ps.name)

    return effective, provenance


def flatten(sources: Sequence[PropertySource]) -> Dict[str, Any]:
    """Merged key/value map; the last source containing a key wins."""
    return merge_sources(sources)[0]


def build_provenance(sources: Sequence[PropertySource]) -> ProvenanceIndex:
    """Map every key to the names of all sources that contain it, in order."""
    return merge_sources(sources)[1]


def normalize_sources(sources: Sequence[PropertySource]) -> List[PropertySource]:
    """Copy sources with every entry value normalized to a primitive."""
    return [
        PropertySource(name=ps.name, entries=normalize_entries(ps.entries))
        for ps in sources
    ]


def select_source_properties(
    source_names: Sequence[str],
    source_map: Mapping[str, Mapping[str, Any]],
    name_substrings: Optional[Sequence[str]] = None,
) -> FlatProperties:
    """Merge the per-source maps whose names match ``name_substrings``.

    Args:
        source_names: Source names in precedence order.
        source_map: Source name to its (normalized) entries.
        name_substrings: Optional case-insensitive name filter; None merges
            every source.

    Returns:
        Merged entries of the selected sources, later sources winning.
    """
    result: FlatProperties = {}
    for name in source_names:
        if name_substrings is not None and not matches_any(name, name_substrings):
            continue
        result.update(source_map.get(name) or {})
    return result
