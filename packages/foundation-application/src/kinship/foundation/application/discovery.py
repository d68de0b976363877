"""Entry-point-based auto-discovery utilities.

Loads contributions that installed packages declare under the
``kinship.*`` entry point groups, using the standard
``importlib.metadata.entry_points()`` mechanism.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Any

logger = logging.getLogger(__name__)

GROUP_ROUTERS = "kinship.routers"
GROUP_MIDDLEWARE = "kinship.middleware"
GROUP_LIFESPAN = "kinship.lifespan"
GROUP_ERROR_HANDLERS = "kinship.error_handlers"


@dataclass(frozen=True, slots=True)
class DiscoveredContribution:
    """A single discovered entry point contribution.

    Attributes:
        name: Entry point name (e.g., ``"chores"``).
        group: Entry point group (e.g., ``"kinship.routers"``).
        value: The loaded Python object.
    """

    name: str
    group: str
    value: Any


def discover(
    group: str,
    *,
    exclude_names: frozenset[str] = frozenset(),
) -> list[DiscoveredContribution]:
    """Discover and load all entry points for a given group.

    Entry points that fail to load are logged and skipped (fail-soft), so a
    broken optional package does not take the whole application down.

    Args:
        group: The entry point group name (e.g., ``"kinship.routers"``).
        exclude_names: Set of entry point names to skip.

    Returns:
        List of successfully loaded contributions, sorted by name.
    """
    contributions: list[DiscoveredContribution] = []

    for ep in sorted(entry_points(group=group), key=lambda ep: ep.name):
        if ep.name in exclude_names:
            logger.debug("entry_point_excluded", extra={"group": group, "name": ep.name})
            continue
        try:
            loaded = ep.load()
        except Exception:
            logger.exception("entry_point_load_failed", extra={"group": group, "name": ep.name})
            continue
        contributions.append(DiscoveredContribution(name=ep.name, group=group, value=loaded))
        logger.debug("entry_point_loaded", extra={"group": group, "name": ep.name})

    logger.info(
        "entry_points_discovered",
        extra={"group": group, "count": len(contributions)},
    )
    return contributions
