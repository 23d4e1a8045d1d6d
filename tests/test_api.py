"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from lore_kernel.api.app import create_app
from lore_kernel.models.config import RegistryConfig
from lore_kernel.registry.engine import Registry


SOURCES = {
    "sources": [
        {
            "source_id": "core",
            "sections": [
                {
                    "label": "Lokacje",
                    "declarations": [
                        {"name": "Erathia"},
                        {"name": "Zamek Steadwick", "lines": [{"text": "lokacja: Erathia"}]},
                    ],
                },
                {
                    "label": "NPC",
                    "declarations": [
                        {
                            "name": "Sandro",
                            "lines": [
                                {"text": "alias: Mroczny Mag"},
                                {"text": "opis: Nekromanta", "continuation": ["z Deyji"]},
                            ],
                        },
                        {"name": "Korm Blackhand", "lines": [{"text": "status: Active"}]},
                    ],
                },
            ],
        },
        {
            "source_id": "expansion",
            "sections": [
                {
                    "label": "NPC",
                    "declarations": [
                        {"name": "Sandro", "lines": [{"text": "alias: Lich z Deyji (2024-01:)"}]},
                    ],
                },
            ],
        },
    ]
}


@pytest.fixture
def client():
    """Create a test client with a fresh registry."""
    app = create_app(registry=Registry(RegistryConfig()))
    return TestClient(app)


@pytest.fixture
def loaded_client(client):
    response = client.post("/sources", json=SOURCES)
    assert response.status_code == 200
    return client


class TestLoadingEndpoints:
    def test_load_sources(self, client):
        response = client.post("/sources", json=SOURCES)
        assert response.status_code == 200
        data = response.json()
        assert data["sources"] == ["core", "expansion"]
        assert data["entities_created"] == 4
        assert data["declarations_merged"] == 1

    def test_malformed_lines_reported(self, client):
        response = client.post("/sources", json={
            "sources": [{
                "source_id": "broken",
                "sections": [{
                    "label": "NPC",
                    "declarations": [{"name": "Xeron", "lines": [{"text": "nonsense"}]}],
                }],
            }],
        })
        assert response.status_code == 200
        assert len(response.json()["skipped_lines"]) == 1

    def test_invalid_body_rejected(self, client):
        response = client.post("/sources", json={"sources": [{"sections": []}]})
        assert response.status_code == 422

    def test_add_players(self, client):
        response = client.post("/players", json={
            "players": [{"name": "Kasia", "aliases": ["Kat"]}],
        })
        assert response.status_code == 200
        assert response.json()["players"] == 1


class TestEntityEndpoints:
    def test_list_entities(self, loaded_client):
        response = loaded_client.get("/entities")
        assert response.status_code == 200
        assert len(response.json()) == 4

    def test_list_by_type(self, loaded_client):
        response = loaded_client.get("/entities", params={"type": "Location"})
        names = {e["name"] for e in response.json()}
        assert names == {"Erathia", "Zamek Steadwick"}

    def test_get_entity(self, loaded_client):
        response = loaded_client.get("/entities/Zamek Steadwick")
        assert response.status_code == 200
        data = response.json()
        assert data["canonical_name"] == "Location/Erathia/Zamek Steadwick"
        assert data["location"] == "Erathia"

    def test_get_entity_as_of_date(self, loaded_client):
        before = loaded_client.get("/entities/sandro", params={"active_on": "2023-06-01"})
        after = loaded_client.get("/entities/sandro", params={"active_on": "2024-06-01"})
        assert before.json()["aliases"] == ["Mroczny Mag"]
        assert after.json()["aliases"] == ["Mroczny Mag", "Lich z Deyji"]
        assert before.json()["overrides"] == {"opis": "Nekromanta\nz Deyji"}

    def test_unknown_entity(self, loaded_client):
        response = loaded_client.get("/entities/Nobody")
        assert response.status_code == 404

    def test_history(self, loaded_client):
        response = loaded_client.get("/entities/Sandro/history/alias")
        assert response.status_code == 200
        history = response.json()
        assert [e["value"] for e in history] == ["Mroczny Mag", "Lich z Deyji"]
        assert history[0]["valid_from"] is None
        assert history[1]["valid_from"].startswith("2024-01-01")

    def test_override_history(self, loaded_client):
        response = loaded_client.get("/entities/Sandro/history/opis")
        assert response.status_code == 200
        assert response.json()[0]["value"] == "Nekromanta\nz Deyji"

    def test_attribute_without_history(self, loaded_client):
        response = loaded_client.get("/entities/Sandro/history/generic_name")
        assert response.status_code == 400

    def test_unknown_history(self, loaded_client):
        response = loaded_client.get("/entities/Sandro/history/nastrój")
        assert response.status_code == 404


class TestResolutionEndpoints:
    def test_resolve_inflected(self, loaded_client):
        response = loaded_client.get("/resolve", params={"q": "Sandrem"})
        assert response.status_code == 200
        data = response.json()
        assert data["resolved"] is True
        assert data["owner"]["name"] == "Sandro"
        assert data["confidence"] == "morphological"

    def test_resolve_unresolved_is_not_an_error(self, loaded_client):
        response = loaded_client.get("/resolve", params={"q": "Nikt"})
        assert response.status_code == 200
        assert response.json()["resolved"] is False
        assert response.json()["owner"] is None

    def test_resolve_with_owner_type(self, loaded_client):
        response = loaded_client.get(
            "/resolve", params={"q": "Erathia", "owner_type": "NPC"}
        )
        assert response.json()["resolved"] is False

    def test_index_entry(self, loaded_client):
        response = loaded_client.get("/index/KORM")
        assert response.status_code == 200
        data = response.json()
        assert data["owner"]["name"] == "Korm Blackhand"
        assert data["priority"] == 1

    def test_index_miss(self, loaded_client):
        assert loaded_client.get("/index/nikt").status_code == 404


class TestEventEndpoints:
    def test_apply_events(self, loaded_client):
        response = loaded_client.post("/events", json={
            "records": [{
                "date": "2026-02-01T00:00:00",
                "target": "Korm",
                "tags": [{"tag": "status", "value": "Removed"}],
            }],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["entries_appended"] == 1
        assert data["applied"][0]["confidence"] == "exact"

        before = loaded_client.get("/entities/Korm Blackhand", params={"active_on": "2025-12-01"})
        after = loaded_client.get("/entities/Korm Blackhand", params={"active_on": "2026-03-01"})
        assert before.json()["status"] == "Active"
        assert after.json()["status"] == "Removed"

    def test_unknown_target_skipped(self, loaded_client):
        response = loaded_client.post("/events", json={
            "records": [{"date": "2026-02-01T00:00:00", "target": "Nikt", "tags": []}],
        })
        assert response.status_code == 200
        assert len(response.json()["skipped"]) == 1


class TestConfigEndpoint:
    def test_get_config(self, client):
        response = client.get("/config")
        assert response.status_code == 200
        data = response.json()
        assert data["min_token_length"] == 3
        assert data["section_types"]["lokacje"] == "Location"
