"""Entity — a uniquely named, typed world record with temporally scoped attributes."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, model_validator

from lore_kernel.models.identity import EntityRef, OwnerType
from lore_kernel.models.temporal import (
    Instant,
    TimeScoped,
    active_entries,
    last_active,
    sort_history,
)


class EntityType(str, Enum):
    NPC = "NPC"
    ORGANIZATION = "Organization"
    LOCATION = "Location"
    PLAYER = "Player"
    PLAYER_CHARACTER = "PlayerCharacter"
    ITEM = "Item"


class EntityStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    REMOVED = "Removed"


class Attribute(str, Enum):
    """Attribute keys with special behaviour. Anything else lands in overrides."""
    LOCATION = "location"
    ACCESS_LINK = "access_link"
    TYPE_OVERRIDE = "type_override"
    OWNER = "owner"
    GROUP = "group"
    ALIAS = "alias"
    GENERIC_NAME = "generic_name"
    STATUS = "status"
    QUANTITY = "quantity"
    CONTAINS = "contains"


# Temporal properties and the Entity field holding their history
HISTORY_FIELDS: Dict[Attribute, str] = {
    Attribute.LOCATION: "location_history",
    Attribute.ACCESS_LINK: "access_link_history",
    Attribute.TYPE_OVERRIDE: "type_override_history",
    Attribute.OWNER: "owner_history",
    Attribute.GROUP: "group_history",
    Attribute.STATUS: "status_history",
    Attribute.QUANTITY: "quantity_history",
    Attribute.ALIAS: "aliases",
}

MULTI_VALUED = {Attribute.ACCESS_LINK, Attribute.GROUP, Attribute.ALIAS}

_OWNER_TYPES: Dict[EntityType, OwnerType] = {
    EntityType.NPC: OwnerType.NPC,
    EntityType.ORGANIZATION: OwnerType.ORGANIZATION,
    EntityType.LOCATION: OwnerType.LOCATION,
    EntityType.PLAYER: OwnerType.PLAYER,
    EntityType.PLAYER_CHARACTER: OwnerType.PLAYER,
    EntityType.ITEM: OwnerType.ITEM,
}


def owner_type_for(entity_type: EntityType) -> OwnerType:
    return _OWNER_TYPES[entity_type]


class Entity(BaseModel):
    """
    The unit of identity.

    Histories are append-only. The active projections at the bottom are
    derived from them by refresh_active() and never written directly.
    """

    name: str                                   # Identity key, compared case-insensitively
    entity_type: EntityType
    names: List[str] = []                       # Name + aliases + generic names
    aliases: List[TimeScoped[str]] = []
    generic_names: List[str] = []
    contains: List[str] = []                    # Containment hint only, not authoritative
    sources: List[str] = []                     # Declaration sources that contributed
    canonical_name: Optional[str] = None

    location_history: List[TimeScoped[str]] = []
    access_link_history: List[TimeScoped[str]] = []
    type_override_history: List[TimeScoped[str]] = []
    owner_history: List[TimeScoped[str]] = []
    group_history: List[TimeScoped[str]] = []
    status_history: List[TimeScoped[EntityStatus]] = []
    quantity_history: List[TimeScoped[int]] = []
    overrides: Dict[str, List[TimeScoped[str]]] = {}

    # Active projections
    location: Optional[str] = None
    access_links: List[str] = []
    type_override: Optional[str] = None
    owner: Optional[str] = None
    groups: List[str] = []
    status: EntityStatus = EntityStatus.ACTIVE
    quantity: Optional[int] = None

    @model_validator(mode="after")
    def _ensure_primary_name(self):
        if not self.has_name(self.name):
            self.names.insert(0, self.name)
        return self

    # --- Identity ---

    @property
    def key(self) -> str:
        return self.name.casefold()

    @property
    def owner_type(self) -> OwnerType:
        return owner_type_for(self.entity_type)

    def ref(self) -> EntityRef:
        return EntityRef(name=self.name, owner_type=self.owner_type)

    def has_name(self, name: str) -> bool:
        folded = name.strip().casefold()
        return any(n.casefold() == folded for n in self.names)

    def add_name(self, name: str) -> None:
        name = name.strip()
        if name and not self.has_name(name):
            self.names.append(name)

    def identity_names(self, active_on: Optional[Instant] = None) -> List[str]:
        """Name, active aliases and generic names, without duplicates."""
        names = [self.name]
        for n in self.active_aliases(active_on) + self.generic_names:
            if n.casefold() not in {x.casefold() for x in names}:
                names.append(n)
        return names

    # --- Histories ---

    def history(self, prop: Attribute) -> List[TimeScoped]:
        return getattr(self, HISTORY_FIELDS[prop])

    def append(self, prop: Attribute, entry: TimeScoped) -> None:
        """Append a history entry. Aliases also become names."""
        self.history(prop).append(entry)
        if prop == Attribute.ALIAS:
            self.add_name(entry.value)

    def append_override(self, tag: str, entry: TimeScoped[str]) -> None:
        self.overrides.setdefault(tag, []).append(entry)

    def sort_histories(self) -> None:
        for field_name in HISTORY_FIELDS.values():
            setattr(self, field_name, sort_history(getattr(self, field_name)))
        for tag, history in self.overrides.items():
            self.overrides[tag] = sort_history(history)

    # --- Active projections ---

    def active_value(self, prop: Attribute, active_on: Optional[Instant] = None) -> Any:
        entry = last_active(self.history(prop), active_on)
        return entry.value if entry else None

    def active_values(self, prop: Attribute, active_on: Optional[Instant] = None) -> List[Any]:
        """Distinct active values, in history order."""
        values: List[Any] = []
        for entry in active_entries(self.history(prop), active_on):
            if entry.value not in values:
                values.append(entry.value)
        return values

    def active_status(self, active_on: Optional[Instant] = None) -> EntityStatus:
        return self.active_value(Attribute.STATUS, active_on) or EntityStatus.ACTIVE

    def active_aliases(self, active_on: Optional[Instant] = None) -> List[str]:
        return self.active_values(Attribute.ALIAS, active_on)

    def active_override(self, tag: str, active_on: Optional[Instant] = None) -> Optional[str]:
        entry = last_active(self.overrides.get(tag, []), active_on)
        return entry.value if entry else None

    def active_overrides(self, active_on: Optional[Instant] = None) -> Dict[str, str]:
        result = {}
        for tag in self.overrides:
            value = self.active_override(tag, active_on)
            if value is not None:
                result[tag] = value
        return result

    def refresh_active(self, active_on: Optional[Instant] = None) -> None:
        """Recompute the active projections from the (sorted) histories."""
        self.location = self.active_value(Attribute.LOCATION, active_on)
        self.access_links = self.active_values(Attribute.ACCESS_LINK, active_on)
        self.type_override = self.active_value(Attribute.TYPE_OVERRIDE, active_on)
        self.owner = self.active_value(Attribute.OWNER, active_on)
        self.groups = self.active_values(Attribute.GROUP, active_on)
        self.status = self.active_status(active_on)
        self.quantity = self.active_value(Attribute.QUANTITY, active_on)

    def snapshot(self, active_on: Optional[Instant] = None) -> dict:
        """JSON-ready view of the entity as of ``active_on``."""
        return {
            "name": self.name,
            "type": self.entity_type.value,
            "canonical_name": self.canonical_name,
            "names": list(self.names),
            "aliases": self.active_aliases(active_on),
            "location": self.active_value(Attribute.LOCATION, active_on),
            "access_links": self.active_values(Attribute.ACCESS_LINK, active_on),
            "type_override": self.active_value(Attribute.TYPE_OVERRIDE, active_on),
            "owner": self.active_value(Attribute.OWNER, active_on),
            "groups": self.active_values(Attribute.GROUP, active_on),
            "status": self.active_status(active_on).value,
            "quantity": self.active_value(Attribute.QUANTITY, active_on),
            "overrides": self.active_overrides(active_on),
            "contains": list(self.contains),
        }
