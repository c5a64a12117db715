"""
Sub-agent interface.

A sub-agent is a named bundle of interest hosted by the Guardian Agent. It
never decides its own lifetime: the factory catalog holds the activation
predicate, and the Summoner applies it to the current facts.
"""

from typing import List, Optional, Protocol

from pydantic import BaseModel

from guardian_engine.models.events import AgentEvent
from guardian_engine.models.memory import AgentMemory
from guardian_engine.models.results import AgentAlert, MemoryUpdates, RequiredDocument
from guardian_engine.skills.registry import CapabilityRegistry


class SubAgentResult(BaseModel):
    """What one sub-agent hands back for one event."""

    success: bool = True
    response: str = ""
    alerts: List[AgentAlert] = []
    required_documents: List[RequiredDocument] = []
    memory_updates: Optional[MemoryUpdates] = None
    skills_used: List[str] = []
    data: dict = {}


class SubAgent(Protocol):
    id: str
    name: str
    description: str

    def can_handle(self, event: AgentEvent) -> bool: ...

    async def process(
        self,
        event: AgentEvent,
        memory: AgentMemory,
        registry: CapabilityRegistry,
    ) -> SubAgentResult: ...


def latest_value(memory: AgentMemory, predicate: str, subject: Optional[str] = None) -> Optional[str]:
    """Object of the most recent live fact with this predicate, if any."""
    for fact in reversed(memory.knowledge_graph.facts):
        if not fact.is_valid or fact.predicate != predicate:
            continue
        if subject is not None and fact.subject != subject:
            continue
        return fact.object
    return None


def sticky_notes(memory: AgentMemory, agent_id: str) -> List[str]:
    """Notes other sub-agents left for this one since it last ran."""
    return list(memory.short_term.sticky_note_buffer.get(agent_id, []))
