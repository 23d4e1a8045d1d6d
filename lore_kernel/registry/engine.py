"""
Registry — wires the store, name index, resolver and overlay together.

Lifecycle:
  load_sources → (add_players) → build_index → resolve / apply_events

Every stage is constructed fully and then only read, so a built registry can
serve concurrent resolve() calls. Loading and overlaying must not run
concurrently with anything else.
"""

import logging
from typing import Iterable, List, Optional

from lore_kernel.entity_store.store import EntityStore
from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.declaration import DeclarationSource
from lore_kernel.models.entity import Entity, EntityType
from lore_kernel.models.events import ChangeRecord, OverlayReport
from lore_kernel.models.identity import OwnerType, Player
from lore_kernel.models.resolution import ResolutionResult
from lore_kernel.models.store import LoadReport
from lore_kernel.models.temporal import Instant
from lore_kernel.name_index.index import NameIndex
from lore_kernel.overlay.merger import EventOverlayMerger
from lore_kernel.resolver.fuzzy import FuzzyResolver

logger = logging.getLogger(__name__)


class Registry:
    """Entity registry with name resolution, as of an optional instant."""

    def __init__(
        self,
        config: Optional[RegistryConfig] = None,
        active_on: Optional[Instant] = None,
    ):
        self.config = config or RegistryConfig()
        self.active_on = active_on
        self.store = EntityStore(self.config)
        self.players: List[Player] = []
        self._index: Optional[NameIndex] = None
        self._resolver: Optional[FuzzyResolver] = None

    @property
    def index(self) -> NameIndex:
        if self._index is None:
            self.build_index()
        return self._index

    @property
    def resolver(self) -> FuzzyResolver:
        if self._resolver is None:
            self.build_index()
        return self._resolver

    def load_sources(
        self, sources: List[DeclarationSource], max_workers: Optional[int] = None
    ) -> LoadReport:
        """Merge sources (lowest precedence first) and invalidate the index."""
        report = self.store.load(sources, max_workers=max_workers, active_on=self.active_on)
        self._invalidate()
        return report

    def add_players(self, players: Iterable[Player]) -> None:
        known = {p.name.casefold() for p in self.players}
        for player in players:
            if player.name.casefold() in known:
                continue
            known.add(player.name.casefold())
            self.players.append(player)
        self._invalidate()

    def build_index(self) -> NameIndex:
        """(Re)build the name index and a fresh resolver over it."""
        self._index = NameIndex(
            self.store.entities, self.players, config=self.config, active_on=self.active_on
        )
        self._resolver = FuzzyResolver(self._index, self.config)
        return self._index

    def _invalidate(self) -> None:
        self._index = None
        self._resolver = None

    def resolve(self, query: str, owner_type: Optional[OwnerType] = None) -> ResolutionResult:
        return self.resolver.resolve(query, owner_type)

    def apply_events(self, records: Iterable[ChangeRecord]) -> OverlayReport:
        """Overlay change records, then rebuild the index for names they added."""
        merger = EventOverlayMerger(self.store, self.resolver, self.players)
        report = merger.apply(records)
        if report.touched_entities:
            self.build_index()
        return report

    def get(self, name: str) -> Optional[Entity]:
        return self.store.get(name)

    def entities(
        self,
        active_on: Optional[Instant] = None,
        entity_type: Optional[EntityType] = None,
    ) -> List[dict]:
        """Snapshots of every entity (optionally of one type) as of ``active_on``."""
        return [
            e.snapshot(active_on if active_on is not None else self.active_on)
            for e in self.store
            if entity_type is None or e.entity_type == entity_type
        ]
