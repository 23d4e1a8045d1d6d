"""Name Index entries."""

from enum import IntEnum
from typing import List

from pydantic import BaseModel, ConfigDict

from lore_kernel.models.identity import EntityRef, OwnerType


class NamePriority(IntEnum):
    TOKEN = 1
    FULL_NAME_OR_ALIAS = 2


class NameIndexEntry(BaseModel):
    """Reverse-lookup entry for one case-folded name key."""

    model_config = ConfigDict(frozen=True)

    key: str
    owner: EntityRef
    owner_type: OwnerType
    priority: NamePriority
    ambiguous: bool = False
    owners: List[EntityRef] = []            # Every distinct owner claiming the key at this priority
