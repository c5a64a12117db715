"""Event Results — what the orchestrator hands back to the caller."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from guardian_engine.models.knowledge import Fact, FactRelationship


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


SEVERITY_RANK = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.INFO: 2,
}


class AgentAlert(BaseModel):
    """A finding raised by a sub-agent, a skill or the defense heuristics."""

    id: Optional[str] = None                # Assigned by the orchestrator if absent
    severity: AlertSeverity
    message: str
    suggested_action: Optional[str] = None
    related_fact_ids: List[str] = []
    tags: List[str] = []                    # e.g., "entropy_audit", "conflict"
    conflicts_with: List[str] = []          # Alert ids this one contradicts
    source: Optional[str] = None            # Sub-agent or module that raised it


class RequiredDocument(BaseModel):
    """A document a sub-agent expects for this shipment."""

    name: str
    description: str = ""
    category: str = "Other"                 # "Customs" | "Regulatory" | "Food Safety" | "Quality" | "Other"
    agency: str = ""
    agency_link: str = ""
    reason: Optional[str] = None
    mandatory: bool = True
    required_by: List[str] = []              # sub-agent ids, or "document_analysis"


class ActivityStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class ActivityEntry(BaseModel):
    """One line of the audit trail for an event."""

    agent_id: str
    agent_name: str
    status: ActivityStatus
    summary: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    document_id: Optional[str] = None
    skills_used: List[str] = []
    documents_identified: List[str] = []
    alerts: List[dict] = []                 # {"severity", "message"} digests


class ShortTermUpdate(BaseModel):
    """Partial short-term memory. Unset fields are left alone on merge."""

    current_thought: Optional[str] = None
    pending_decisions: Optional[List[dict]] = None
    active_context: Optional[dict] = None
    conversation_buffer: List[dict] = []
    sticky_note_buffer: Dict[str, List[str]] = {}


class MemoryUpdates(BaseModel):
    """Memory deltas returned by a sub-agent."""

    short_term: Optional[ShortTermUpdate] = None
    new_facts: List[Fact] = []
    new_relationships: List[FactRelationship] = []


class EventResult(BaseModel):
    """Unified outcome of one event."""

    success: bool = True
    response: str = ""
    alerts: List[AgentAlert] = []
    activity_log: List[ActivityEntry] = []
    required_documents: List[RequiredDocument] = []
    memory_updates: Optional[MemoryUpdates] = None
    data: dict = {}
