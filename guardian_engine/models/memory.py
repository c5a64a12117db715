"""Agent Memory and the persisted orchestrator snapshot."""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from guardian_engine.models.events import (
    DocumentUploadEvent,
    RouteUpdateEvent,
    UserMessageEvent,
)
from guardian_engine.models.knowledge import KnowledgeGraph
from guardian_engine.models.results import EventResult, RequiredDocument
from guardian_engine.models.validation import ValidationHistoryEntry


class AgentStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"


class AgentMessage(BaseModel):
    id: str
    sender: str                             # "user" | "agent"
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    type: str = "text"                      # "text" | "alert" | "success"
    related_doc_id: Optional[str] = None


class ShortTermMemory(BaseModel):
    """Scratch space rebuilt and merged on every event."""

    current_thought: str = "Initializing Guardian Agent..."
    pending_decisions: List[dict] = []
    active_context: dict = {}
    conversation_buffer: List[AgentMessage] = []
    sticky_note_buffer: Dict[str, List[str]] = {}  # Inter-agent tips keyed by recipient id


class AgentMemory(BaseModel):
    short_term: ShortTermMemory = ShortTermMemory()
    knowledge_graph: KnowledgeGraph = KnowledgeGraph()


class SessionHistoryEntry(BaseModel):
    """One processed event. Results are stored without memory deltas."""

    event: Union[DocumentUploadEvent, RouteUpdateEvent, UserMessageEvent] = Field(
        discriminator="type"
    )
    result: EventResult
    timestamp: datetime


class OrchestratorSnapshot(BaseModel):
    """Everything needed to rehydrate a Guardian Agent for one shipment."""

    agent_id: str
    shipment_id: str
    memory: AgentMemory = AgentMemory()
    sub_agents: List[str] = []              # Diagnostic only; re-derived from facts on hydration
    skills: List[str] = []
    session_history: List[SessionHistoryEntry] = []
    roadmap: List[RequiredDocument] = []
    last_ingested_fact_ids: List[str] = []
    validation_history: List[ValidationHistoryEntry] = []
    last_active: datetime = Field(default_factory=datetime.utcnow)
    status: AgentStatus = AgentStatus.IDLE


class StoredSnapshot(BaseModel):
    """Row shape of the external persistent store."""

    state: OrchestratorSnapshot
    updated_at: datetime
    content_hash: Optional[str] = None
