"""
Entity Store — merges ordered declaration sources into Entity records.

Behavioral Contract:
- Sources are merged in the order given, lowest precedence first. Precedence
  is never inferred from source ids.
- A name seen again (case-insensitively) denotes the same entity: names,
  overrides and every history are unioned, never replaced.
- Entities are never deleted. Removal is a Status = Removed history entry.
- A malformed attribute line is skipped with a warning, never fatal.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterator, List, Optional

from lore_kernel.canonical.resolver import CanonicalNameResolver
from lore_kernel.entity_store.parser import (
    ParsedAttribute,
    ParsedDeclaration,
    ParsedSource,
    parse_source,
)
from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.declaration import DeclarationSource
from lore_kernel.models.entity import Attribute, Entity, EntityType
from lore_kernel.models.store import LoadReport
from lore_kernel.models.temporal import Instant

logger = logging.getLogger(__name__)


def apply_attribute(entity: Entity, parsed: ParsedAttribute) -> None:
    """Append one parsed attribute to the matching history of an entity."""
    attribute = parsed.attribute
    entry = parsed.entry

    if attribute is None:
        entity.append_override(parsed.tag, entry)
    elif attribute == Attribute.GENERIC_NAME:
        if entry.value.casefold() not in {g.casefold() for g in entity.generic_names}:
            entity.generic_names.append(entry.value)
        entity.add_name(entry.value)
    elif attribute == Attribute.CONTAINS:
        for child in entry.value.split(","):
            child = child.strip()
            if child and child.casefold() not in {c.casefold() for c in entity.contains}:
                entity.contains.append(child)
    else:
        entity.append(attribute, entry)


class EntityStore:
    """
    In-memory entity store keyed by case-folded primary name.

    Construction (load / merge) is single-threaded. Once finalized the store
    is only read, by the Name Index and the resolvers.
    """

    def __init__(self, config: Optional[RegistryConfig] = None):
        self.config = config or RegistryConfig()
        self.active_on: Optional[Instant] = None
        self._entities: Dict[str, Entity] = {}

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self._entities.values())

    def __contains__(self, name: str) -> bool:
        return name.strip().casefold() in self._entities

    @property
    def entities(self) -> List[Entity]:
        return list(self._entities.values())

    # --- Loading ---

    def load(
        self,
        sources: List[DeclarationSource],
        max_workers: Optional[int] = None,
        active_on: Optional[Instant] = None,
    ) -> LoadReport:
        """
        Parse and merge sources, then finalize the store.

        With max_workers > 1 the sources are parsed concurrently; the merge
        always runs sequentially in the order of ``sources``.
        """
        if max_workers and max_workers > 1 and len(sources) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                parsed_sources = list(
                    pool.map(lambda s: parse_source(s, self.config), sources)
                )
        else:
            parsed_sources = [parse_source(s, self.config) for s in sources]

        report = LoadReport()
        for parsed in parsed_sources:
            self.merge_source(parsed, report)

        self.finalize(active_on)
        logger.info(
            "Loaded %d sources: %d entities created, %d declarations merged, "
            "%d lines skipped",
            len(report.sources), report.entities_created,
            report.declarations_merged, len(report.skipped_lines),
        )
        return report

    def merge_source(self, parsed: ParsedSource, report: Optional[LoadReport] = None) -> LoadReport:
        """Merge one parsed source. Call finalize() once all sources are in."""
        report = report or LoadReport()
        report.sources.append(parsed.source_id)
        report.skipped_lines.extend(parsed.skipped_lines)
        report.skipped_sections.extend(parsed.skipped_sections)

        for declaration in parsed.declarations:
            if self.merge_declaration(declaration):
                report.entities_created += 1
            else:
                report.declarations_merged += 1
        return report

    def merge_declaration(self, declaration: ParsedDeclaration) -> bool:
        """Merge a declaration. Returns True when it created a new entity."""
        key = declaration.name.casefold()
        entity = self._entities.get(key)
        created = entity is None

        if created:
            entity = Entity(name=declaration.name, entity_type=declaration.entity_type)
            self._entities[key] = entity
        elif entity.entity_type != declaration.entity_type:
            logger.warning(
                "%s declared as %s in %s but already known as %s, keeping %s",
                declaration.name, declaration.entity_type.value,
                declaration.source_id, entity.entity_type.value,
                entity.entity_type.value,
            )

        if declaration.source_id not in entity.sources:
            entity.sources.append(declaration.source_id)

        for parsed in declaration.attributes:
            apply_attribute(entity, parsed)
        return created

    def finalize(self, active_on: Optional[Instant] = None) -> None:
        """Sort every history, derive active projections and canonical names."""
        self.active_on = active_on
        for entity in self._entities.values():
            entity.sort_histories()
            entity.refresh_active(active_on)
        self.refresh_canonical_names()

    def refresh_canonical_names(self) -> None:
        CanonicalNameResolver(self.entities, active_on=self.active_on).assign_all()

    # --- Queries ---

    def get(self, name: str) -> Optional[Entity]:
        """Entity by primary name, case-insensitively."""
        return self._entities.get(name.strip().casefold())

    def find_by_name(self, name: str) -> Optional[Entity]:
        """
        Literal lookup by primary name, then by any alias or generic name.

        Returns None when the name is unknown or belongs to several entities.
        """
        entity = self.get(name)
        if entity is not None:
            return entity
        matches = [e for e in self._entities.values() if e.has_name(name)]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            logger.debug(
                "Name %r is shared by %d entities", name, len(matches)
            )
        return None

    def get_entities_by_type(self, entity_type: EntityType) -> List[Entity]:
        return [e for e in self._entities.values() if e.entity_type == entity_type]

    def get_state_snapshot(self, active_on: Optional[Instant] = None) -> dict:
        """Serializable view of every entity as of ``active_on``."""
        return {e.name: e.snapshot(active_on) for e in self._entities.values()}
