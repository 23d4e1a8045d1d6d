"""
Event Overlay Merger — replays dated change records onto entity histories.

Behavioral Contract:
- Records are applied in ascending date order (stable for equal dates).
- A target is found by literal name/alias first, then by the Fuzzy Resolver.
  A Player owner is mapped back to its Player / PlayerCharacter entity.
- Entities are never created here. A record whose target cannot be found is
  skipped with a warning; the rest of the batch continues.
- Values without an explicit validity range are dated from the record's date.
- Touched entities get their histories re-sorted and active projections
  recomputed, so the most recently dated value wins wherever it came from.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from lore_kernel.entity_store.parser import MalformedAttribute, build_attribute
from lore_kernel.entity_store.store import EntityStore, apply_attribute
from lore_kernel.models.entity import Entity
from lore_kernel.models.events import (
    AppliedRecord,
    ChangeRecord,
    OverlayReport,
    SkippedRecord,
)
from lore_kernel.models.identity import EntityRef, OwnerType, Player
from lore_kernel.models.resolution import ConfidenceTier
from lore_kernel.models.temporal import as_instant
from lore_kernel.resolver.fuzzy import FuzzyResolver

logger = logging.getLogger(__name__)


class EventOverlayMerger:
    """Applies change records to an already loaded Entity Store."""

    def __init__(
        self,
        store: EntityStore,
        resolver: FuzzyResolver,
        players: Optional[Iterable[Player]] = None,
    ):
        self.store = store
        self.resolver = resolver
        self._players: Dict[str, Player] = {
            p.name.casefold(): p for p in (players or [])
        }

    def apply(self, records: Iterable[ChangeRecord]) -> OverlayReport:
        report = OverlayReport()
        touched: Dict[str, Entity] = {}

        for record in sorted(records, key=lambda r: as_instant(r.date)):
            entity, confidence = self.resolve_target(record.target)
            if entity is None:
                reason = f"no entity matches {record.target!r}"
                logger.warning(
                    "Skipping change record of %s: %s", record.date.date(), reason
                )
                report.skipped.append(
                    SkippedRecord(date=record.date, target=record.target, reason=reason)
                )
                continue

            appended = 0
            for change in record.tags:
                try:
                    parsed = build_attribute(
                        change.tag, change.value, self.store.config,
                        default_from=as_instant(record.date),
                    )
                except MalformedAttribute as e:
                    report.skipped_tags.append(
                        f"{record.date.date()} {entity.name}: {change.tag}: {change.value!r} ({e})"
                    )
                    logger.warning(
                        "Skipping tag %r of change record for %s: %s",
                        change.tag, entity.name, e,
                    )
                    continue
                apply_attribute(entity, parsed)
                appended += 1

            if appended:
                touched[entity.key] = entity
            report.applied.append(
                AppliedRecord(
                    date=record.date,
                    target=record.target,
                    entity_name=entity.name,
                    confidence=confidence,
                    entries_appended=appended,
                )
            )

        for entity in touched.values():
            entity.sort_histories()
            entity.refresh_active(self.store.active_on)
        if touched:
            self.store.refresh_canonical_names()

        report.touched_entities = [e.name for e in touched.values()]
        logger.info(
            "Overlay applied %d records (%d skipped), %d entities touched",
            len(report.applied), len(report.skipped), len(touched),
        )
        return report

    def resolve_target(self, target: str) -> Tuple[Optional[Entity], Optional[ConfidenceTier]]:
        """
        Entity for a change record target and the confidence of the match.
        A literal name/alias hit has no confidence tier.
        """
        entity = self.store.find_by_name(target)
        if entity is not None:
            return entity, None

        result = self.resolver.resolve(target)
        if not result.resolved:
            return None, None
        return self._entity_for(result.owner), result.confidence

    def _entity_for(self, owner: EntityRef) -> Optional[Entity]:
        if not owner.is_player:
            return self.store.get(owner.name)

        # A Player record: find the Player / PlayerCharacter entity sharing a name
        player = self._players.get(owner.name.casefold())
        names: List[str] = player.identity_names() if player else [owner.name]
        matches = [
            e for e in self.store
            if e.owner_type == OwnerType.PLAYER and any(e.has_name(n) for n in names)
        ]
        if len(matches) == 1:
            return matches[0]
        if len(matches) > 1:
            logger.warning(
                "Player %s maps to %d entities, not applying", owner.name, len(matches)
            )
        return None
