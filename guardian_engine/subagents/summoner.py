"""
Sub-Agent Lifecycle Manager ("Summoner").

Membership is derived from facts, never stored as on/off flags:
    facts → flatten_context → factory.required_ids → diff against active set.

Runs after core event handling, so facts the current event just added
already count.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from guardian_engine.core.logging import get_logger
from guardian_engine.knowledge_graph.store import FactStore
from guardian_engine.subagents.base import SubAgent
from guardian_engine.subagents.context import SummonContext, flatten_context
from guardian_engine.subagents.factory import SubAgentFactory

logger = get_logger(__name__)

__all__ = ["Summoner", "SummonContext", "SyncResult", "flatten_context"]


class SyncResult(BaseModel):
    activated: List[str] = []
    retired: List[str] = []


class Summoner:
    """Keeps the active sub-agent set equal to what the current facts require."""

    def __init__(self, factory: Optional[SubAgentFactory] = None):
        self.factory = factory or SubAgentFactory()
        self._active: Dict[str, SubAgent] = {}

    @property
    def active_ids(self) -> List[str]:
        """Active ids in registration order."""
        return list(self._active)

    @property
    def active_agents(self) -> List[SubAgent]:
        return list(self._active.values())

    def synchronize(self, store: FactStore) -> SyncResult:
        context = flatten_context(store.get_all_facts())
        required = self.factory.required_ids(context)

        retired = [agent_id for agent_id in self._active if agent_id not in required]

        # Rebuilt in catalog order; surviving instances are kept as-is
        active: Dict[str, SubAgent] = {}
        activated = []
        for agent_id in required:
            agent = self._active.get(agent_id)
            if agent is None:
                agent = self.factory.create(agent_id)
                if agent is None:
                    continue
                activated.append(agent_id)
            active[agent_id] = agent
        self._active = active

        if activated or retired:
            logger.info("Sub-agents activated=%s retired=%s", activated, retired)
        return SyncResult(activated=activated, retired=retired)
