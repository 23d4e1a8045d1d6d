"""Lore Kernel data models."""

from lore_kernel.models.config import RegistryConfig
from lore_kernel.models.declaration import (
    AttributeLine,
    DeclarationSection,
    DeclarationSource,
    EntityDeclaration,
)
from lore_kernel.models.entity import Attribute, Entity, EntityStatus, EntityType
from lore_kernel.models.events import (
    AppliedRecord,
    ChangeRecord,
    ChangeTag,
    OverlayReport,
    SkippedRecord,
)
from lore_kernel.models.identity import EntityRef, Identity, OwnerType, Player
from lore_kernel.models.index import NameIndexEntry, NamePriority
from lore_kernel.models.resolution import ConfidenceTier, ResolutionResult
from lore_kernel.models.store import LoadReport
from lore_kernel.models.temporal import TimeScoped

__all__ = [
    "AppliedRecord",
    "Attribute",
    "AttributeLine",
    "ChangeRecord",
    "ChangeTag",
    "ConfidenceTier",
    "DeclarationSection",
    "DeclarationSource",
    "Entity",
    "EntityDeclaration",
    "EntityRef",
    "EntityStatus",
    "EntityType",
    "Identity",
    "LoadReport",
    "NameIndexEntry",
    "NamePriority",
    "OverlayReport",
    "OwnerType",
    "Player",
    "RegistryConfig",
    "ResolutionResult",
    "SkippedRecord",
    "TimeScoped",
]
