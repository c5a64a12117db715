"""Guardian Engine data models."""

from guardian_engine.models.defense import (
    ActiveDefenseConfig,
    AuditConfig,
    ProfileActivation,
    ReviewRequest,
    RiskProfile,
)
from guardian_engine.models.events import (
    AgentEvent,
    DocumentAnalysis,
    DocumentUploadEvent,
    DocumentUploadPayload,
    EventType,
    FactClaim,
    RouteUpdateEvent,
    RouteUpdatePayload,
    ShipmentContext,
    UserMessageEvent,
    UserMessagePayload,
    parse_event,
)
from guardian_engine.models.knowledge import (
    Fact,
    FactRelationship,
    KnowledgeGraph,
    RelationshipType,
)
from guardian_engine.models.memory import (
    AgentMemory,
    AgentMessage,
    AgentStatus,
    OrchestratorSnapshot,
    SessionHistoryEntry,
    ShortTermMemory,
    StoredSnapshot,
)
from guardian_engine.models.results import (
    ActivityEntry,
    ActivityStatus,
    AgentAlert,
    AlertSeverity,
    EventResult,
    MemoryUpdates,
    RequiredDocument,
    ShortTermUpdate,
)
from guardian_engine.models.skills import SkillCategory, SkillResult
from guardian_engine.models.sweeper import SweeperConfig
from guardian_engine.models.validation import (
    ConsistencyConflict,
    ConsistencyGap,
    ValidationHistoryEntry,
    ValidationResult,
    ValidationStatus,
    ValidationTrigger,
)

__all__ = [
    "ActiveDefenseConfig",
    "ActivityEntry",
    "ActivityStatus",
    "AgentAlert",
    "AgentEvent",
    "AgentMemory",
    "AgentMessage",
    "AgentStatus",
    "AlertSeverity",
    "AuditConfig",
    "ConsistencyConflict",
    "ConsistencyGap",
    "DocumentAnalysis",
    "DocumentUploadEvent",
    "DocumentUploadPayload",
    "EventResult",
    "EventType",
    "Fact",
    "FactClaim",
    "FactRelationship",
    "KnowledgeGraph",
    "MemoryUpdates",
    "OrchestratorSnapshot",
    "ProfileActivation",
    "RelationshipType",
    "RequiredDocument",
    "ReviewRequest",
    "RiskProfile",
    "RouteUpdateEvent",
    "RouteUpdatePayload",
    "SessionHistoryEntry",
    "ShipmentContext",
    "ShortTermMemory",
    "ShortTermUpdate",
    "SkillCategory",
    "SkillResult",
    "StoredSnapshot",
    "SweeperConfig",
    "UserMessageEvent",
    "UserMessagePayload",
    "ValidationHistoryEntry",
    "ValidationResult",
    "ValidationStatus",
    "ValidationTrigger",
    "parse_event",
]
