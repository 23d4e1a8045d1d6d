"""
Name Index — reverse lookup from every known name to its owner.

Keys are full names, active aliases and generic names (FULL_NAME_OR_ALIAS
priority) plus whitespace tokens of multi-word names (TOKEN priority).

Collision rules:
- A higher-priority write replaces a lower-priority entry.
- A lower-priority write never touches a higher-priority entry.
- A same-priority write by a different owner marks the entry ambiguous and
  records every distinct owner.

Players and the Player / PlayerCharacter entities that share a name with them
are one logical owner, represented by the Player record.

The index is built once and only read afterwards. Lookup is an exact,
case-insensitive key match; fuzzy logic lives in the resolver.
"""

import logging
from typing import Dict, Iterable, List, Optional

from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.entity import Entity
from lore_kernel.models.identity import EntityRef, Identity, OwnerType, Player
from lore_kernel.models.index import NameIndexEntry, NamePriority
from lore_kernel.models.temporal import Instant

logger = logging.getLogger(__name__)

_PUNCTUATION = ".,;:!?()[]{}\"'„”«»"


def normalize_key(name: str) -> str:
    """Case-folded key with runs of whitespace collapsed."""
    return " ".join(name.split()).casefold()


def tokenize(name: str, min_length: int) -> List[str]:
    """Whitespace tokens of a multi-word name, at least ``min_length`` long."""
    parts = name.split()
    if len(parts) < 2:
        return []
    tokens = []
    for part in parts:
        token = part.strip(_PUNCTUATION)
        if len(token) >= min_length:
            tokens.append(token)
    return tokens


class NameIndex:
    """Immutable-after-build name → owner index."""

    def __init__(
        self,
        entities: Iterable[Entity],
        players: Optional[Iterable[Player]] = None,
        config: Optional[RegistryConfig] = None,
        active_on: Optional[Instant] = None,
    ):
        self.config = config or RegistryConfig()
        self.active_on = active_on
        self._entries: Dict[str, NameIndexEntry] = {}
        self._build(list(entities), list(players or []))

    # --- Construction ---

    def _build(self, entities: List[Entity], players: List[Player]) -> None:
        player_refs = self._link_players(entities, players)

        identities: List[Identity] = [*players, *entities]
        for identity in identities:
            owner = player_refs.get(identity.ref(), identity.ref())
            for name in identity.identity_names(self.active_on):
                self._write(name, owner, NamePriority.FULL_NAME_OR_ALIAS)
                for token in tokenize(name, self.config.min_token_length):
                    self._write(token, owner, NamePriority.TOKEN)

        ambiguous = sum(1 for e in self._entries.values() if e.ambiguous)
        logger.info(
            "Name index built: %d keys, %d ambiguous", len(self._entries), ambiguous
        )

    def _link_players(
        self, entities: List[Entity], players: List[Player]
    ) -> Dict[EntityRef, EntityRef]:
        """Map Player-kind entities to the Player record sharing one of their names."""
        links: Dict[EntityRef, EntityRef] = {}
        for player in players:
            player_names = {n.casefold() for n in player.identity_names()}
            for entity in entities:
                if entity.owner_type != OwnerType.PLAYER:
                    continue
                entity_names = {n.casefold() for n in entity.names}
                if player_names & entity_names:
                    links.setdefault(entity.ref(), player.ref())
        return links

    def _write(self, name: str, owner: EntityRef, priority: NamePriority) -> None:
        key = normalize_key(name)
        if not key:
            return

        existing = self._entries.get(key)
        if existing is None or priority > existing.priority:
            self._entries[key] = NameIndexEntry(
                key=key,
                owner=owner,
                owner_type=owner.owner_type,
                priority=priority,
                owners=[owner],
            )
        elif priority == existing.priority and owner not in existing.owners:
            self._entries[key] = existing.model_copy(
                update={"ambiguous": True, "owners": [*existing.owners, owner]}
            )

    # --- Lookup ---

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return normalize_key(key) in self._entries

    def lookup(self, key: str, owner_type: Optional[OwnerType] = None) -> Optional[NameIndexEntry]:
        """
        Exact, case-insensitive lookup. With ``owner_type`` an entry owned by
        another kind is a miss.
        """
        entry = self._entries.get(normalize_key(key))
        if entry is None:
            return None
        if owner_type is not None and entry.owner_type != owner_type:
            return None
        return entry

    def keys(self) -> List[str]:
        return sorted(self._entries)

    def entries(self) -> List[NameIndexEntry]:
        return [self._entries[k] for k in self.keys()]
