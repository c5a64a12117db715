"""Tests for the FastAPI API endpoints."""

import pytest
from fastapi.testclient import TestClient

from guardian_engine.api.app import create_app
from guardian_engine.core.config import GuardianSettings
from guardian_engine.models.defense import ActiveDefenseConfig
from guardian_engine.orchestrator.factory import GuardianAgentFactory


@pytest.fixture
def client():
    """Create a test client with a fresh factory."""
    factory = GuardianAgentFactory(defense_config=ActiveDefenseConfig(entropy_threshold=0.0))
    app = create_app(factory=factory, settings=GuardianSettings())
    return TestClient(app)


def _upload_body(document_id="doc_1", document_type="Commercial Invoice", **shipment):
    return {
        "type": "DOCUMENT_UPLOAD",
        "payload": {
            "document_id": document_id,
            "document_type": document_type,
            "shipment": shipment or None,
        },
    }


class TestShipmentLifecycle:
    def test_spawn(self, client):
        response = client.post("/shipments/s1/spawn")
        assert response.status_code == 200
        data = response.json()
        assert data["agent_id"] == "guardian_s1"
        assert data["fact_count"] == 0
        assert data["sub_agents"] == [
            "sanctions_sentry", "logistics_lingo_interpreter", "chain_of_custody_auditor",
        ]

    def test_state_requires_live_shipment(self, client):
        response = client.get("/shipments/s1/state")
        assert response.status_code == 404

    def test_state_after_event(self, client):
        client.post("/shipments/s1/events", json=_upload_body(destination="Germany"))
        response = client.get("/shipments/s1/state")

        assert response.status_code == 200
        state = response.json()
        assert state["shipment_id"] == "s1"
        assert "eudr_specialist" in state["sub_agents"]
        assert len(state["session_history"]) == 1

    def test_persist_and_destroy(self, client):
        client.post("/shipments/s1/spawn")
        assert client.post("/shipments/s1/persist").json() == {"persisted": True}
        assert client.delete("/shipments/s1").status_code == 200
        assert client.delete("/shipments/s1").status_code == 404
        assert client.post("/shipments/s1/persist").status_code == 404


class TestEventEndpoints:
    def test_document_upload(self, client):
        response = client.post("/shipments/s1/events", json=_upload_body(origin="Brazil", destination="China"))

        assert response.status_code == 200
        data = response.json()
        assert data["success"]
        assert "cn_import_specialist" in data["data"]["sub_agents"]["activated"]
        assert all(alert["id"].startswith("alert_") for alert in data["alerts"])

    def test_user_message(self, client):
        response = client.post("/shipments/s1/events", json={
            "type": "USER_MESSAGE",
            "payload": {"message": "Explain CIF please"},
        })
        assert response.status_code == 200
        assert "Cost, Insurance and Freight" in response.json()["response"]

    def test_invalid_event_is_rejected(self, client):
        response = client.post("/shipments/s1/events", json={"type": "TELEPORT", "payload": {}})
        assert response.status_code == 422

    def test_route_update(self, client):
        client.post("/shipments/s1/events", json=_upload_body(destination="China"))
        state = client.get("/shipments/s1/state").json()
        china = next(
            f for f in state["memory"]["knowledge_graph"]["facts"]
            if f["predicate"] == "destination_country"
        )

        response = client.post("/shipments/s1/events", json={
            "type": "ROUTE_UPDATE",
            "payload": {"fact_id": china["id"], "destination": "Switzerland"},
        })

        data = response.json()
        assert data["data"]["sub_agents"]["retired"] == ["cn_import_specialist"]


class TestConsistencyEndpoint:
    def test_manual_check(self, client):
        client.post("/shipments/s1/events", json=_upload_body(document_type="Bill of Lading"))
        response = client.post("/shipments/s1/consistency-check", json={
            "roadmap": ["Bill of Lading", "Certificate of Origin"],
        })

        assert response.status_code == 200
        data = response.json()
        assert not data["success"]
        gaps = data["data"]["validation"]["gaps"]
        assert [g["expected"] for g in gaps] == ["Certificate of Origin"]


class TestCapabilityAndPolicyEndpoints:
    def test_capabilities(self, client):
        response = client.get("/capabilities")
        assert response.status_code == 200
        ids = [c["id"] for c in response.json()]
        assert ids == ["regulatory_check", "document_reconciliation", "conflict_scanner", "blockchain_anchor"]

    def test_defense_config_roundtrip(self, client):
        response = client.put("/defense/config", json={
            "entropy_threshold": 0.1,
            "global_risk_profiles": [
                {"name": "soy", "match_keywords": ["soy"], "gravity_score": 0.8},
            ],
        })
        assert response.status_code == 200

        config = client.get("/defense/config").json()
        assert config["entropy_threshold"] == 0.1
        assert config["global_risk_profiles"][0]["name"] == "soy"

    def test_defense_config_validation(self, client):
        response = client.put("/defense/config", json={"entropy_threshold": 1.5})
        assert response.status_code == 422

    def test_health(self, client):
        client.post("/shipments/s1/spawn")
        response = client.get("/health")
        assert response.json() == {"status": "ok", "live_shipments": 1}
