"""Load Report — outcome of merging declaration sources into the store."""

from typing import List

from pydantic import BaseModel


class LoadReport(BaseModel):
    sources: List[str] = []
    entities_created: int = 0
    declarations_merged: int = 0            # Declarations folded into an existing entity
    skipped_lines: List[str] = []
    skipped_sections: List[str] = []
