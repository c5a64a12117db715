"""Tests for core data models, settings and logging."""

import json
import logging
from datetime import datetime

import pytest
from pydantic import ValidationError

from guardian_engine.core.config import GuardianSettings
from guardian_engine.core.logging import JSONFormatter
from guardian_engine.models import (
    ActiveDefenseConfig,
    AgentAlert,
    AlertSeverity,
    DocumentUploadEvent,
    EventResult,
    Fact,
    FactClaim,
    KnowledgeGraph,
    OrchestratorSnapshot,
    RiskProfile,
    RouteUpdateEvent,
    SessionHistoryEntry,
    UserMessageEvent,
    parse_event,
)


class TestEvents:
    def test_parse_document_upload(self):
        event = parse_event({
            "id": "evt_1",
            "type": "DOCUMENT_UPLOAD",
            "payload": {
                "document_id": "doc_1",
                "document_type": "Commercial Invoice",
                "shipment": {"origin": "Brazil", "destination": "Germany", "attributes": ["Organic"]},
            },
        })
        assert isinstance(event, DocumentUploadEvent)
        assert event.payload.shipment.destination == "Germany"
        assert event.payload.shipment.attributes == ["Organic"]

    def test_parse_route_update_and_message(self):
        route = parse_event({"id": "evt_2", "type": "ROUTE_UPDATE", "payload": {"fact_id": "f1"}})
        message = parse_event({"id": "evt_3", "type": "USER_MESSAGE", "payload": {"message": "hi"}})
        assert isinstance(route, RouteUpdateEvent)
        assert isinstance(message, UserMessageEvent)

    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_event({"id": "evt_4", "type": "FAX_RECEIVED", "payload": {}})

    def test_message_payload_requires_text(self):
        with pytest.raises(ValidationError):
            parse_event({"id": "evt_5", "type": "USER_MESSAGE", "payload": {}})

    def test_events_are_immutable(self):
        event = parse_event({"id": "evt_6", "type": "USER_MESSAGE", "payload": {"message": "hi"}})
        with pytest.raises(ValidationError):
            event.id = "other"

    def test_claim_confidence_bounds(self):
        with pytest.raises(ValidationError):
            FactClaim(predicate="origin_country", object="Peru", confidence=1.5)


class TestFacts:
    def test_fact_validity(self):
        fact = Fact(
            id="f1", type="shipment_fact", subject="consignment",
            predicate="origin_country", object="Peru", timestamp=datetime.utcnow(),
        )
        assert fact.is_valid
        invalidated = fact.model_copy(update={"invalidated_by": "f0"})
        assert not invalidated.is_valid
        assert fact.is_valid

    def test_empty_graph_starts_at_version_one(self):
        assert KnowledgeGraph().version == 1


class TestSnapshot:
    def test_json_roundtrip(self):
        event = parse_event({"id": "evt_1", "type": "USER_MESSAGE", "payload": {"message": "What is FOB?"}})
        snapshot = OrchestratorSnapshot(
            agent_id="guardian_s1",
            shipment_id="s1",
            session_history=[SessionHistoryEntry(
                event=event,
                result=EventResult(
                    response="ok",
                    alerts=[AgentAlert(id="alert_1", severity=AlertSeverity.INFO, message="note")],
                ),
                timestamp=datetime.utcnow(),
            )],
        )

        restored = OrchestratorSnapshot.model_validate_json(snapshot.model_dump_json())

        assert restored.model_dump() == snapshot.model_dump()
        assert isinstance(restored.session_history[0].event, UserMessageEvent)


class TestRiskProfile:
    def test_gravity_bounds(self):
        with pytest.raises(ValidationError):
            RiskProfile(match_keywords=["soy"], gravity_score=1.2)

    def test_defaults(self):
        profile = RiskProfile(match_keywords=["soy"], gravity_score=0.5)
        assert profile.activation.always
        assert not profile.audit_config.silent_audit
        assert profile.audit_config.human_intervention_threshold == 0.9


class TestSettings:
    def test_defaults(self):
        settings = GuardianSettings()
        config = settings.active_defense_config()
        assert isinstance(config, ActiveDefenseConfig)
        assert config.entropy_threshold == 0.05
        assert settings.sweeper_config().heartbeat_interval_seconds == 300

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("GUARDIAN_ENTROPY_THRESHOLD", "0.2")
        monkeypatch.setenv("GUARDIAN_SWEEP_SCHEDULE", "0 * * * *")
        monkeypatch.setenv(
            "GUARDIAN_RISK_PROFILES",
            '[{"name": "soy", "match_keywords": ["soy"], "gravity_score": 0.8}]',
        )

        settings = GuardianSettings()

        assert settings.entropy_threshold == 0.2
        assert settings.sweeper_config().schedule == "0 * * * *"
        assert settings.active_defense_config().global_risk_profiles[0].name == "soy"


class TestJSONFormatter:
    def test_formats_record_with_extra_fields(self):
        record = logging.LogRecord(
            name="guardian_engine.test", level=logging.INFO, pathname=__file__,
            lineno=1, msg="Processed %s", args=("evt_1",), exc_info=None,
        )
        record.shipment_id = "s1"

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Processed evt_1"
        assert data["level"] == "INFO"
        assert data["shipment_id"] == "s1"
