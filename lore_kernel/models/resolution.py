"""Resolution Result — outcome of resolving one free-text query."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from lore_kernel.models.identity import EntityRef


class ConfidenceTier(str, Enum):
    EXACT = "exact"
    MORPHOLOGICAL = "morphological"
    FUZZY = "fuzzy"


class ResolutionResult(BaseModel):
    """A resolved owner with its confidence tier, or Unresolved (owner is None)."""

    query: str
    owner: Optional[EntityRef] = None
    confidence: Optional[ConfidenceTier] = None
    matched_key: Optional[str] = None
    distance: Optional[int] = None          # Edit distance, fuzzy stage only
    alternatives: List[EntityRef] = []      # Other owners tied at the winning distance

    @property
    def resolved(self) -> bool:
        return self.owner is not None
