"""Tests for Active Defense."""

import asyncio
import random
from datetime import datetime

from guardian_engine.defense.active_defense import ActiveDefense
from guardian_engine.models.defense import (
    ActiveDefenseConfig,
    AuditConfig,
    ProfileActivation,
    RiskProfile,
)
from guardian_engine.models.events import (
    DocumentUploadEvent,
    DocumentUploadPayload,
    ShipmentContext,
)
from guardian_engine.models.results import AlertSeverity
from guardian_engine.orchestrator.collaborators import InMemoryReviewQueue


class _FixedRandom(random.Random):
    def __init__(self, value: float):
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


def _make_upload(product: str = "Soybean meal", event_id: str = "evt_1") -> DocumentUploadEvent:
    return DocumentUploadEvent(
        id=event_id,
        payload=DocumentUploadPayload(
            document_id="doc_1",
            document_type="Commercial Invoice",
            shipment=ShipmentContext(origin="Brazil", destination="Germany", product=product),
        ),
    )


def _make_profile(gravity: float, silent: bool = False, threshold: float = 0.9, **activation) -> RiskProfile:
    return RiskProfile(
        name="soy_watch",
        match_keywords=["soy"],
        gravity_score=gravity,
        audit_config=AuditConfig(silent_audit=silent, human_intervention_threshold=threshold),
        activation=ProfileActivation(**activation) if activation else ProfileActivation(),
    )


def _make_defense(profiles=(), entropy: float = 0.0, draw: float = 0.5, queue=None) -> ActiveDefense:
    return ActiveDefense(
        ActiveDefenseConfig(entropy_threshold=entropy, global_risk_profiles=list(profiles)),
        rng=_FixedRandom(draw),
        review_queue=queue,
    )


class TestEntropyAudit:
    def test_threshold_one_always_audits(self):
        defense = _make_defense(entropy=1.0, draw=0.999)
        outcome = defense.evaluate(_make_upload())

        assert len(outcome.alerts) == 1
        alert = outcome.alerts[0]
        assert alert.severity == AlertSeverity.INFO
        assert alert.message.startswith("Entropy Audit:")
        assert alert.tags == ["entropy_audit"]

    def test_threshold_zero_never_audits(self):
        defense = _make_defense(entropy=0.0, draw=0.0)
        assert defense.evaluate(_make_upload()).alerts == []

    def test_draw_below_threshold(self):
        assert len(_make_defense(entropy=0.05, draw=0.01).evaluate(_make_upload()).alerts) == 1
        assert _make_defense(entropy=0.05, draw=0.05).evaluate(_make_upload()).alerts == []


class TestRiskProfiles:
    def test_high_gravity_raises_warning(self):
        defense = _make_defense([_make_profile(0.8)])
        outcome = defense.evaluate(_make_upload())

        assert len(outcome.alerts) == 1
        alert = outcome.alerts[0]
        assert alert.severity == AlertSeverity.WARNING
        assert "0.80" in alert.message
        assert "soy_watch" in alert.message
        assert alert.tags == ["risk_profile"]

    def test_gravity_at_alert_line_is_quiet(self):
        defense = _make_defense([_make_profile(0.7)])
        assert defense.evaluate(_make_upload()).alerts == []

    def test_no_keyword_match(self):
        defense = _make_defense([_make_profile(0.95)])
        outcome = defense.evaluate(_make_upload(product="Arabica coffee"))
        assert outcome.alerts == []
        assert outcome.review_requests == []

    def test_keyword_match_is_case_insensitive(self):
        defense = _make_defense([_make_profile(0.8)])
        assert len(defense.evaluate(_make_upload(product="SOYA lecithin")).alerts) == 1

    def test_silent_profile_records_thought_only(self):
        defense = _make_defense([_make_profile(0.8, silent=True)])
        outcome = defense.evaluate(_make_upload())

        assert outcome.alerts == []
        assert len(outcome.thoughts) == 1
        assert outcome.thoughts[0].startswith("Silent audit:")

    def test_review_request_at_intervention_threshold(self):
        defense = _make_defense([_make_profile(0.9, threshold=0.9)])
        outcome = defense.evaluate(_make_upload(event_id="evt_42"), shipment_id="s1")

        assert len(outcome.review_requests) == 1
        request = outcome.review_requests[0]
        assert request.event_id == "evt_42"
        assert request.shipment_id == "s1"
        assert request.matched_keywords == ["soy"]
        assert not request.silent

    def test_below_intervention_threshold_no_review(self):
        defense = _make_defense([_make_profile(0.8, threshold=0.9)])
        assert defense.evaluate(_make_upload()).review_requests == []

    def test_silent_profile_still_requests_review(self):
        defense = _make_defense([_make_profile(0.95, silent=True)])
        outcome = defense.evaluate(_make_upload())
        assert outcome.alerts == []
        assert outcome.review_requests[0].silent

    def test_submit_reviews_to_queue(self):
        queue = InMemoryReviewQueue()
        defense = _make_defense([_make_profile(0.95)], queue=queue)
        outcome = defense.evaluate(_make_upload())

        asyncio.run(defense.submit_reviews(outcome.review_requests))

        assert [r.profile_name for r in queue.pending] == ["soy_watch"]

    def test_submit_reviews_without_queue_is_noop(self):
        defense = _make_defense([_make_profile(0.95)])
        outcome = defense.evaluate(_make_upload())
        asyncio.run(defense.submit_reviews(outcome.review_requests))

    def test_update_config(self):
        defense = _make_defense()
        defense.update_config(ActiveDefenseConfig(
            entropy_threshold=0.0, global_risk_profiles=[_make_profile(0.8)],
        ))
        assert len(defense.evaluate(_make_upload()).alerts) == 1


class TestProfileActivation:
    def test_scheduled_profile_applies_inside_window(self):
        profile = _make_profile(0.8, always=False, schedule="0 9 * * *")
        defense = _make_defense([profile])

        inside = defense.evaluate(_make_upload(), now=datetime(2026, 3, 2, 9, 0))
        outside = defense.evaluate(_make_upload(), now=datetime(2026, 3, 2, 10, 30))

        assert len(inside.alerts) == 1
        assert outside.alerts == []

    def test_unscheduled_inactive_profile_never_applies(self):
        defense = _make_defense([_make_profile(0.8, always=False)])
        assert defense.evaluate(_make_upload()).alerts == []

    def test_invalid_schedule_is_inactive(self):
        defense = _make_defense([_make_profile(0.8, always=False, schedule="not a cron")])
        assert defense.evaluate(_make_upload()).alerts == []
