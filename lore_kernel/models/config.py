"""Registry configuration — every tunable of the resolution engine."""

from typing import Dict, List, Tuple

from pydantic import BaseModel, Field, field_validator

from lore_kernel.models.entity import Attribute, EntityType


# Polish nominal and adjectival endings. Order does not matter, the resolver
# always tries the longest matching suffix first.
DEFAULT_INFLECTION_SUFFIXES: List[str] = [
    "owie", "ach", "ami", "owi", "ego", "emu", "iem", "ów", "om", "em",
    "ie", "ą", "ę", "a", "u", "y", "i", "e", "o",
]

# (inflected ending, base ending): stem consonant alternations
DEFAULT_STEM_ALTERNATIONS: List[Tuple[str, str]] = [
    ("ście", "st"),
    ("dzie", "d"),
    ("rze", "r"),
    ("cie", "t"),
    ("dze", "g"),
    ("sze", "ch"),
    ("le", "ł"),
    ("ce", "k"),
    ("ji", "ja"),
    ("ii", "ia"),
    ("ni", "ń"),
]

DEFAULT_SECTION_TYPES: Dict[str, EntityType] = {
    "npc": EntityType.NPC,
    "npcs": EntityType.NPC,
    "postacie": EntityType.NPC,
    "organization": EntityType.ORGANIZATION,
    "organizations": EntityType.ORGANIZATION,
    "organizacje": EntityType.ORGANIZATION,
    "location": EntityType.LOCATION,
    "locations": EntityType.LOCATION,
    "lokacje": EntityType.LOCATION,
    "player": EntityType.PLAYER,
    "players": EntityType.PLAYER,
    "gracze": EntityType.PLAYER,
    "player characters": EntityType.PLAYER_CHARACTER,
    "postacie graczy": EntityType.PLAYER_CHARACTER,
    "item": EntityType.ITEM,
    "items": EntityType.ITEM,
    "przedmioty": EntityType.ITEM,
}

DEFAULT_ATTRIBUTE_TAGS: Dict[str, Attribute] = {
    "location": Attribute.LOCATION,
    "lokacja": Attribute.LOCATION,
    "lokalizacja": Attribute.LOCATION,
    "access": Attribute.ACCESS_LINK,
    "access link": Attribute.ACCESS_LINK,
    "access-link": Attribute.ACCESS_LINK,
    "dostęp": Attribute.ACCESS_LINK,
    "type": Attribute.TYPE_OVERRIDE,
    "type override": Attribute.TYPE_OVERRIDE,
    "typ": Attribute.TYPE_OVERRIDE,
    "owner": Attribute.OWNER,
    "właściciel": Attribute.OWNER,
    "group": Attribute.GROUP,
    "grupa": Attribute.GROUP,
    "alias": Attribute.ALIAS,
    "generic name": Attribute.GENERIC_NAME,
    "generic-name": Attribute.GENERIC_NAME,
    "nazwa ogólna": Attribute.GENERIC_NAME,
    "status": Attribute.STATUS,
    "quantity": Attribute.QUANTITY,
    "ilość": Attribute.QUANTITY,
    "contains": Attribute.CONTAINS,
    "zawiera": Attribute.CONTAINS,
}


class RegistryConfig(BaseModel):
    """Configuration for parsing, indexing and resolution."""

    min_token_length: int = Field(ge=1, default=3)
    min_stem_length: int = Field(ge=1, default=3)
    inflection_suffixes: List[str] = DEFAULT_INFLECTION_SUFFIXES
    stem_alternations: List[Tuple[str, str]] = DEFAULT_STEM_ALTERNATIONS

    fuzzy_short_key_length: int = 5         # Keys shorter than this use the short-key distance
    fuzzy_short_key_max_distance: int = 1
    fuzzy_length_divisor: int = Field(ge=1, default=3)

    section_types: Dict[str, EntityType] = DEFAULT_SECTION_TYPES
    attribute_tags: Dict[str, Attribute] = DEFAULT_ATTRIBUTE_TAGS

    cache_resolutions: bool = True

    @field_validator("section_types", "attribute_tags")
    @classmethod
    def _fold_keys(cls, v):
        return {k.strip().casefold(): item for k, item in v.items()}

    def section_type(self, label: str):
        """EntityType for a section label, or None when the label is not an entity section."""
        return self.section_types.get(label.strip().casefold())

    def attribute_for(self, tag: str):
        """Attribute for a raw tag, or None when the tag is a generic override."""
        return self.attribute_tags.get(tag.strip().casefold())

    def fuzzy_threshold(self, key_length: int) -> int:
        """Maximum accepted edit distance for a key of the given length."""
        if key_length < self.fuzzy_short_key_length:
            return self.fuzzy_short_key_max_distance
        return key_length // self.fuzzy_length_divisor
