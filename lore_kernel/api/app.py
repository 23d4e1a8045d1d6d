"""
Lore Kernel API — FastAPI endpoints.

Exposes the registry for:
- Loading declaration sources and player records
- Entity inspection, as of an optional date
- Name resolution and index inspection
- Overlaying dated change records
"""

from datetime import date
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from lore_kernel.models.declaration import DeclarationSource
from lore_kernel.models.entity import Attribute, EntityType
from lore_kernel.models.events import ChangeRecord
from lore_kernel.models.identity import OwnerType, Player
from lore_kernel.registry.engine import Registry


# --- Request/Response Models ---

class SourcesLoadRequest(BaseModel):
    sources: List[DeclarationSource]
    max_workers: Optional[int] = None


class PlayersAddRequest(BaseModel):
    players: List[Player]


class EventsApplyRequest(BaseModel):
    records: List[ChangeRecord]


class ResolveResponse(BaseModel):
    query: str
    resolved: bool
    owner: Optional[dict] = None
    confidence: Optional[str] = None
    matched_key: Optional[str] = None
    distance: Optional[int] = None
    alternatives: list = []


# --- Application Factory ---

def create_app(registry: Optional[Registry] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Lore Kernel API",
        description="Entity identity and temporal state resolution",
        version="0.1.0",
    )

    reg = registry or Registry()
    app.state.registry = reg

    # === LOADING ===

    @app.post("/sources")
    def load_sources(req: SourcesLoadRequest):
        """Merge declaration sources, lowest precedence first."""
        report = reg.load_sources(req.sources, max_workers=req.max_workers)
        return report.model_dump(mode="json")

    @app.post("/players")
    def add_players(req: PlayersAddRequest):
        """Register player identity records."""
        reg.add_players(req.players)
        return {"status": "added", "players": len(reg.players)}

    @app.post("/events")
    def apply_events(req: EventsApplyRequest):
        """Overlay dated change records onto entity histories."""
        report = reg.apply_events(req.records)
        data = report.model_dump(mode="json")
        data["entries_appended"] = report.entries_appended
        return data

    # === ENTITIES ===

    @app.get("/entities")
    def list_entities(type: Optional[EntityType] = None, active_on: Optional[date] = None):
        """Entity snapshots, optionally of one type, as of ``active_on``."""
        return reg.entities(active_on=active_on, entity_type=type)

    @app.get("/entities/{name}")
    def get_entity(name: str, active_on: Optional[date] = None):
        entity = reg.get(name)
        if not entity:
            raise HTTPException(404, "Entity not found")
        return entity.snapshot(active_on if active_on is not None else reg.active_on)

    @app.get("/entities/{name}/history/{prop}")
    def get_history(name: str, prop: str):
        """Full history of a tracked property or a generic override tag."""
        entity = reg.get(name)
        if not entity:
            raise HTTPException(404, "Entity not found")
        attribute = reg.config.attribute_for(prop)
        if attribute is None:
            try:
                attribute = Attribute(prop)
            except ValueError:
                attribute = None
        if attribute is not None:
            try:
                history = entity.history(attribute)
            except KeyError:
                raise HTTPException(400, f"{attribute.value} has no history")
        elif prop.casefold() in entity.overrides:
            history = entity.overrides[prop.casefold()]
        else:
            raise HTTPException(404, "History not found")
        return [e.model_dump(mode="json") for e in history]

    # === RESOLUTION ===

    @app.get("/resolve")
    def resolve(q: str, owner_type: Optional[OwnerType] = None):
        """Resolve a free-text reference. Unresolved is not an error."""
        result = reg.resolve(q, owner_type)
        return ResolveResponse(
            query=result.query,
            resolved=result.resolved,
            owner=result.owner.model_dump(mode="json") if result.owner else None,
            confidence=result.confidence.value if result.confidence else None,
            matched_key=result.matched_key,
            distance=result.distance,
            alternatives=[a.model_dump(mode="json") for a in result.alternatives],
        )

    @app.get("/index/{key}")
    def get_index_entry(key: str):
        entry = reg.index.lookup(key)
        if not entry:
            raise HTTPException(404, "Key not indexed")
        return entry.model_dump(mode="json")

    # === CONFIG ===

    @app.get("/config")
    def get_config():
        """Current registry configuration."""
        return reg.config.model_dump(mode="json")

    return app
