"""
Canonical Name Resolver — hierarchical path names for locations.

Non-location entities get a flat ``"{Type}/{Name}"``. A location's path is
its parent's path plus ``/{Name}``, the parent being the entity named by the
last active Location entry, or by the first active AccessLink entry when no
Location is active. With neither, a location listing the entity in its
``contains`` hint is the parent. Locations without a parent are roots:
``"Location/{Name}"``.

Containment cycles are broken: every member of a cycle falls back to its flat
name, and the cycle is logged. Results are memoized per resolver so shared
ancestors are resolved once.
"""

import logging
from typing import Dict, Iterable, List, Optional

from lore_kernel.models.entity import Attribute, Entity, EntityType
from lore_kernel.models.temporal import Instant

logger = logging.getLogger(__name__)

ROOT_SEGMENT = EntityType.LOCATION.value


def flat_name(entity: Entity) -> str:
    return f"{entity.entity_type.value}/{entity.name}"


class CanonicalNameResolver:
    """Resolves canonical names over one entity set."""

    def __init__(self, entities: Iterable[Entity], active_on: Optional[Instant] = None):
        self.active_on = active_on
        self._by_key: Dict[str, Entity] = {e.key: e for e in entities}
        self._memo: Dict[str, str] = {}

        # Child key -> containing location, first declared container wins
        self._contained_in: Dict[str, str] = {}
        for container in self._by_key.values():
            if container.entity_type != EntityType.LOCATION:
                continue
            for child in container.contains:
                self._contained_in.setdefault(child.strip().casefold(), container.name)

    def parent_name(self, entity: Entity) -> Optional[str]:
        location = entity.active_value(Attribute.LOCATION, self.active_on)
        if location:
            return location
        links = entity.active_values(Attribute.ACCESS_LINK, self.active_on)
        if links:
            return links[0]
        return self._contained_in.get(entity.key)

    def resolve(self, entity: Entity) -> str:
        if entity.entity_type != EntityType.LOCATION:
            return flat_name(entity)
        if entity.key in self._memo:
            return self._memo[entity.key]

        # Walk up the containment chain until a root, a memoized ancestor,
        # a non-location parent or a cycle ends it.
        chain: List[Entity] = []
        positions: Dict[str, int] = {}
        current = entity
        while True:
            positions[current.key] = len(chain)
            chain.append(current)

            parent_name = self.parent_name(current)
            if parent_name is None:
                base = ROOT_SEGMENT
                break

            parent = self._by_key.get(parent_name.strip().casefold())
            if parent is None or parent.entity_type != EntityType.LOCATION:
                base = f"{ROOT_SEGMENT}/{parent_name.strip()}"
                break

            if parent.key in self._memo:
                base = self._memo[parent.key]
                break

            if parent.key in positions:
                start = positions[parent.key]
                cycle = chain[start:]
                logger.warning(
                    "Containment cycle %s, using flat canonical names",
                    " -> ".join([m.name for m in cycle] + [parent.name]),
                )
                for member in cycle:
                    self._memo[member.key] = flat_name(member)
                chain = chain[:start]
                base = self._memo[parent.key]
                break

            current = parent

        for member in reversed(chain):
            base = f"{base}/{member.name}"
            self._memo[member.key] = base

        return self._memo[entity.key]

    def assign_all(self) -> None:
        """Set canonical_name on every entity of the set."""
        for entity in self._by_key.values():
            entity.canonical_name = self.resolve(entity)
