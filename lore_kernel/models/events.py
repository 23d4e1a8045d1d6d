"""Change records and the outcome of overlaying them onto the store."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from lore_kernel.models.resolution import ConfidenceTier


class ChangeTag(BaseModel):
    tag: str
    value: str


class ChangeRecord(BaseModel):
    """A dated change to one entity, e.g. parsed from a session log."""

    date: datetime
    target: str
    tags: List[ChangeTag] = []

    @field_validator("date", mode="before")
    @classmethod
    def _date_to_datetime(cls, v):
        if isinstance(v, date) and not isinstance(v, datetime):
            return datetime(v.year, v.month, v.day)
        return v


class SkippedRecord(BaseModel):
    date: datetime
    target: str
    reason: str


class AppliedRecord(BaseModel):
    date: datetime
    target: str
    entity_name: str
    confidence: Optional[ConfidenceTier] = None     # None for a literal name/alias hit
    entries_appended: int = 0


class OverlayReport(BaseModel):
    applied: List[AppliedRecord] = []
    skipped: List[SkippedRecord] = []
    skipped_tags: List[str] = []
    touched_entities: List[str] = []

    @property
    def entries_appended(self) -> int:
        return sum(r.entries_appended for r in self.applied)
