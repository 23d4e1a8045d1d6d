"""Identity — the capability shared by store entities and external player records."""

from enum import Enum
from typing import List, Protocol

from pydantic import BaseModel, ConfigDict


class OwnerType(str, Enum):
    """Logical kind of a name owner. Players and player characters share one kind."""
    PLAYER = "Player"
    NPC = "NPC"
    ORGANIZATION = "Organization"
    LOCATION = "Location"
    ITEM = "Item"


class EntityRef(BaseModel):
    """Hashable reference to a name owner (an entity or a player record)."""

    model_config = ConfigDict(frozen=True)

    name: str
    owner_type: OwnerType
    is_player: bool = False             # True when the owner is an external Player record


class Identity(Protocol):
    """Anything the Name Index can own names for."""

    name: str

    @property
    def owner_type(self) -> OwnerType: ...

    def identity_names(self, active_on=None) -> List[str]: ...

    def ref(self) -> EntityRef: ...


class Player(BaseModel):
    """
    Identity record supplied from outside the entity store.

    A player usually also exists as a Player / PlayerCharacter entity; the
    Name Index merges the two when they share a name.
    """

    name: str
    aliases: List[str] = []

    @property
    def owner_type(self) -> OwnerType:
        return OwnerType.PLAYER

    def identity_names(self, active_on=None) -> List[str]:
        names: List[str] = []
        seen = set()
        for n in [self.name, *self.aliases]:
            n = n.strip()
            if n and n.casefold() not in seen:
                seen.add(n.casefold())
                names.append(n)
        return names

    def ref(self) -> EntityRef:
        return EntityRef(name=self.name, owner_type=OwnerType.PLAYER, is_player=True)
