"""
Active Defense — audit triggers layered onto every document and route event.

Two independent heuristics:
  Entropy audit: a uniform draw below `entropy_threshold` raises an info
    alert regardless of content, giving a baseline random-audit rate.
  Risk profiles: keyword matches against the serialized payload, weighted by
    gravity. Policy data, not code.

Behavioral Contract:
- Gravity > 0.7 on a non-silent profile raises a warning naming the score
- Silent profiles record a thought, never a user-visible alert
- Gravity >= the profile's human_intervention_threshold produces a ReviewRequest
- Profiles with activation.always=False apply only when their cron schedule matches
"""

import random
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from croniter import croniter
from pydantic import BaseModel

from guardian_engine.core.logging import get_logger
from guardian_engine.models.defense import ActiveDefenseConfig, ReviewRequest, RiskProfile
from guardian_engine.models.events import AgentEvent
from guardian_engine.models.results import AgentAlert, AlertSeverity
from guardian_engine.orchestrator.collaborators import ReviewQueue

logger = get_logger(__name__)

ALERT_GRAVITY = 0.7


class DefenseOutcome(BaseModel):
    alerts: List[AgentAlert] = []
    thoughts: List[str] = []
    review_requests: List[ReviewRequest] = []


def _is_profile_active(profile: RiskProfile, current_time: datetime) -> bool:
    """Determine if a risk profile applies at this time."""
    activation = profile.activation
    if activation.always:
        return True
    if activation.schedule:
        try:
            return croniter.match(activation.schedule, current_time)
        except (ValueError, KeyError):
            logger.warning("Invalid schedule %r on risk profile %s", activation.schedule, profile.name)
            return False
    return False


class ActiveDefense:
    """Evaluates events against the entropy floor and the risk profiles."""

    def __init__(
        self,
        config: Optional[ActiveDefenseConfig] = None,
        rng: Optional[random.Random] = None,
        review_queue: Optional[ReviewQueue] = None,
    ):
        self.config = config or ActiveDefenseConfig()
        self.rng = rng or random.Random()
        self.review_queue = review_queue

    def update_config(self, config: ActiveDefenseConfig) -> None:
        self.config = config

    def evaluate(
        self,
        event: AgentEvent,
        now: Optional[datetime] = None,
        shipment_id: Optional[str] = None,
    ) -> DefenseOutcome:
        if now is None:
            now = datetime.utcnow()
        outcome = DefenseOutcome()

        if self.rng.random() < self.config.entropy_threshold:
            outcome.alerts.append(AgentAlert(
                severity=AlertSeverity.INFO,
                message=(
                    "Entropy Audit: this event was randomly selected for a spot-check "
                    f"(audit rate {self.config.entropy_threshold:.0%})."
                ),
                suggested_action="Perform a manual spot-check of this document against the original.",
                tags=["entropy_audit"],
                source="active_defense",
            ))

        payload_text = event.payload.model_dump_json().lower()

        for index, profile in enumerate(self.config.global_risk_profiles):
            if not _is_profile_active(profile, now):
                continue
            matched = [k for k in profile.match_keywords if k.lower() in payload_text]
            if not matched:
                continue

            name = profile.name or f"profile_{index}"
            silent = profile.audit_config.silent_audit

            if profile.gravity_score > ALERT_GRAVITY:
                if silent:
                    outcome.thoughts.append(
                        f"Silent audit: risk profile {name} matched {matched} "
                        f"(gravity {profile.gravity_score:.2f})"
                    )
                    logger.info("Silent audit on event %s: profile %s", event.id, name)
                else:
                    outcome.alerts.append(AgentAlert(
                        severity=AlertSeverity.WARNING,
                        message=(
                            f"Risk profile {name} matched {', '.join(matched)} "
                            f"(gravity score {profile.gravity_score:.2f})"
                        ),
                        suggested_action="Review the flagged content before proceeding.",
                        tags=["risk_profile"],
                        source="active_defense",
                    ))

            if profile.gravity_score >= profile.audit_config.human_intervention_threshold:
                outcome.review_requests.append(ReviewRequest(
                    id=f"rev_{uuid4().hex[:12]}",
                    shipment_id=shipment_id,
                    event_id=event.id,
                    profile_name=name,
                    gravity_score=profile.gravity_score,
                    matched_keywords=matched,
                    silent=silent,
                    created_at=now,
                ))

        return outcome

    async def submit_reviews(self, requests: List[ReviewRequest]) -> None:
        """Hand review requests to the queue; a missing queue is a no-op."""
        if self.review_queue is None:
            return
        for request in requests:
            await self.review_queue.submit(request)
