"""Filtering of property sources by fragment name."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .types import PropertySource


def matches_any(name: str, substrings: Optional[Iterable[str]]) -> bool:
    """Check if ``name`` contains any of ``substrings``, ignoring case.

    Args:
        name: Fragment name to test.
        substrings: Candidate substrings (None or empty never matches).

    Returns:
        True if at least one substring occurs in the name.
    """
    if not substrings:
        return False
    lowered = name.casefold()
    return any(s.casefold() in lowered for s in substrings)


def filter_sources(
    sources: Sequence[PropertySource],
    name_substrings: Optional[Sequence[str]] = None,
    *,
    logger: Optional[logging.Logger] = None,
) -> List[PropertySource]:
    """Keep the sources whose name matches any of ``name_substrings``.

    With no filter every source is returned. Relative order is preserved.
    Excluding every source is a valid outcome but is reported as a warning.

    Args:
        sources: Ordered property sources.
        name_substrings: Optional fragment name filter.
        logger: Logger for diagnostics; defaults to this module's logger.

    Returns:
        The retained sources in their original order.
    """
    if not name_substrings:
        return list(sources)

    kept = [ps for ps in sources if matches_any(ps.name, name_substrings)]
    if not kept:
        log = logger or logging.getLogger(__name__)
        log.warning(
            "Property source filter [%s] matched 0 sources. Available: [%s]",
            ", ".join(name_substrings),
            ", ".join(ps.name for ps in sources),
        )
    return kept
