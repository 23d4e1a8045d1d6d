"""Declaration sources — already-structured input for the Entity Store."""

from typing import List

from pydantic import BaseModel


class AttributeLine(BaseModel):
    """One ``tag: value`` line, with indented continuation lines if any."""

    text: str
    continuation: List[str] = []


class EntityDeclaration(BaseModel):
    name: str
    lines: List[AttributeLine] = []


class DeclarationSection(BaseModel):
    """Entities grouped under a section label (e.g. "NPC", "Lokacje")."""

    label: str
    declarations: List[EntityDeclaration] = []


class DeclarationSource(BaseModel):
    """
    One declaration file. Sources are merged in the order the caller
    supplies them, lowest precedence first.
    """

    source_id: str
    sections: List[DeclarationSection] = []
