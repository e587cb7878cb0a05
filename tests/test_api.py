"""Tests for the HTTP and WebSocket routes."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from radioactivity.config import Settings
from radioactivity.domain.errors import ConfigurationError
from radioactivity.foundation.signing import incident_hash
from radioactivity.main import create_app

from tests.test_incident import _valid_incident


@pytest.fixture
def client() -> TestClient:
    cfg = Settings(decay_profile="count", sweep_interval_seconds=0, database_url="")
    with TestClient(create_app(cfg)) as c:
        yield c


class TestIncidentRoute:
    def test_batch_with_invalid_item(self, client: TestClient) -> None:
        resp = client.post("/api/incidents", json=[
            _valid_incident(entity_id="E1", energy=100),
            _valid_incident(entity_id="E1", energy=-5),
            _valid_incident(entity_id="E1", energy=50),
        ])
        assert resp.status_code == 200
        body = resp.json()
        assert body["accepted"] == 2
        assert body["rejected"] == 1
        assert [o["status"] for o in body["outcomes"]] == ["accepted", "rejected", "accepted"]

        score = client.get("/api/scores/E1").json()
        assert score["value"] == pytest.approx(150.0)

    def test_single_object_is_batch_of_one(self, client: TestClient) -> None:
        resp = client.post("/api/incidents", json=_valid_incident())
        assert resp.json()["accepted"] == 1

    def test_emitter_payload(self, client: TestClient) -> None:
        resp = client.post("/api/incidents", json=[{"fn": "f", "et": "node", "id": "3", "e": 4}])
        assert resp.json()["outcomes"][0]["entity_id"] == "node:3"

    def test_malformed_json_is_400(self, client: TestClient) -> None:
        resp = client.post(
            "/api/incidents",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400

    def test_scalar_body_is_422(self, client: TestClient) -> None:
        resp = client.post("/api/incidents", json=42)
        assert resp.status_code == 422

    def test_salted_app_refuses_unsigned_payloads(self) -> None:
        cfg = Settings(
            decay_profile="count",
            sweep_interval_seconds=0,
            database_url="",
            hash_salt="s3cret",
        )
        signed = {"fn": "f", "et": "node", "id": "3", "e": 4}
        signed["h"] = incident_hash("f", "node", "3", 4, "s3cret")
        with TestClient(create_app(cfg)) as c:
            body = c.post("/api/incidents", json=[
                {"entity_id": "node:1", "energy": 1e6, "timestamp": 0},
                signed,
            ]).json()
        assert [o["status"] for o in body["outcomes"]] == ["rejected", "accepted"]


class TestScoreRoutes:
    def test_unknown_entity_is_404(self, client: TestClient) -> None:
        assert client.get("/api/scores/node:404").status_code == 404

    def test_score_shape(self, client: TestClient) -> None:
        client.post("/api/incidents", json=[_valid_incident(entity_id="node:1", energy=3)])
        body = client.get("/api/scores/node:1").json()
        assert body["entity_id"] == "node:1"
        assert body["value"] == 3.0
        assert body["lifecycle"] == "active"
        assert datetime.fromisoformat(body["last_update"]).tzinfo is not None

    def test_listing_orders_by_value(self, client: TestClient) -> None:
        client.post("/api/incidents", json=[
            _valid_incident(entity_id="a", energy=1),
            _valid_incident(entity_id="b", energy=9),
            _valid_incident(entity_id="c", energy=5),
        ])
        body = client.get("/api/scores", params={"limit": 2}).json()
        assert body["count"] == 2
        assert [s["entity_id"] for s in body["scores"]] == ["b", "c"]


class TestIncidentWebSocket:
    def test_single_and_batch_messages(self, client: TestClient) -> None:
        with client.websocket_connect("/ws/incident") as ws:
            ws.send_json(_valid_incident(entity_id="w", energy=2))
            single = ws.receive_json()
            assert single["status"] == "accepted"
            assert single["score"] == 2.0

            ws.send_json([_valid_incident(entity_id="w", energy=1), {"energy": 1}])
            batch = ws.receive_json()
            assert batch["accepted"] == 1
            assert batch["rejected"] == 1

            ws.send_text("{oops")
            assert ws.receive_json()["status"] == "error"


class TestHealth:
    def test_health_reports_store_and_adapters(self, client: TestClient) -> None:
        client.post("/api/incidents", json=[_valid_incident()])
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["stored_scores"] == 1
        assert body["sweeper_running"] is False
        assert body["adapters"][0]["adapter_name"] == "emitter"


class TestStartupConfiguration:
    def test_unknown_decay_profile_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError):
            create_app(Settings(decay_profile="nope"))

    def test_non_positive_half_life_is_fatal(self) -> None:
        with pytest.raises(ConfigurationError):
            create_app(Settings(half_life_seconds=0))

    def test_sql_store_selected_from_url(self, tmp_path) -> None:
        cfg = Settings(
            database_url=f"sqlite:///{tmp_path / 'api.db'}",
            decay_profile="count",
            sweep_interval_seconds=0,
        )
        with TestClient(create_app(cfg)) as c:
            c.post("/api/incidents", json=[_valid_incident(entity_id="sql:1", energy=6)])
            assert c.get("/api/scores/sql:1").json()["value"] == 6.0
