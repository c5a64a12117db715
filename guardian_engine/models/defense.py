"""Active Defense configuration — risk profiles as policy data."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class AuditConfig(BaseModel):
    silent_audit: bool = False
    human_intervention_threshold: float = Field(ge=0, le=1, default=0.9)


class ProfileActivation(BaseModel):
    """Temporal authority — when this risk profile applies."""

    always: bool = True
    schedule: Optional[str] = None          # Cron expression


class RiskProfile(BaseModel):
    """Keyword-matched risk profile applied to every qualifying event."""

    name: str = ""
    match_keywords: List[str]               # e.g., ["soy", "soya"]
    gravity_score: float = Field(ge=0, le=1)
    audit_config: AuditConfig = AuditConfig()
    activation: ProfileActivation = ProfileActivation()


class ActiveDefenseConfig(BaseModel):
    entropy_threshold: float = Field(ge=0, le=1, default=0.05)
    global_risk_profiles: List[RiskProfile] = []


class ReviewRequest(BaseModel):
    """Handed to the review queue when a match crosses the intervention threshold."""

    id: str
    shipment_id: Optional[str] = None
    event_id: str
    profile_name: str
    gravity_score: float
    matched_keywords: List[str]
    silent: bool
    created_at: datetime
