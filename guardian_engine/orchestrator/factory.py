"""
Guardian Agent Factory — one orchestrator per shipment, hydrated on demand.

Behavioral Contract:
- Instances are cached by shipment id
- Hydration is single-flight: concurrent callers share one in-flight task
- A store failure on hydrate falls back to a fresh instance
- A store failure on persist is logged; the in-memory instance stays authoritative
"""

import asyncio
import random
from typing import Callable, Dict, List, Optional, Sequence, Union
from uuid import uuid4

from guardian_engine.core.logging import get_logger
from guardian_engine.models.defense import ActiveDefenseConfig
from guardian_engine.models.events import (
    AgentEvent,
    DocumentAnalysis,
    DocumentUploadEvent,
    DocumentUploadPayload,
    FactClaim,
    RouteUpdateEvent,
    RouteUpdatePayload,
    ShipmentContext,
    UserMessageEvent,
    UserMessagePayload,
)
from guardian_engine.models.memory import OrchestratorSnapshot
from guardian_engine.models.results import EventResult, RequiredDocument
from guardian_engine.models.validation import ValidationTrigger
from guardian_engine.orchestrator.collaborators import AnchorService, ReviewQueue
from guardian_engine.orchestrator.guardian import GuardianAgent
from guardian_engine.persistence.store import InMemorySnapshotStore, SnapshotStore
from guardian_engine.skills.catalog import build_default_registry
from guardian_engine.skills.registry import CapabilityRegistry
from guardian_engine.subagents.factory import SubAgentFactory

logger = get_logger(__name__)


def _event_id() -> str:
    return f"evt_{uuid4().hex[:12]}"


class GuardianAgentFactory:
    """Keyed registry of Guardian Agents backed by a snapshot store."""

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        registry: Optional[CapabilityRegistry] = None,
        defense_config: Optional[ActiveDefenseConfig] = None,
        sub_agent_factory: Optional[SubAgentFactory] = None,
        review_queue: Optional[ReviewQueue] = None,
        anchor_service: Optional[AnchorService] = None,
        rng_factory: Optional[Callable[[str], random.Random]] = None,
    ):
        self.store = store if store is not None else InMemorySnapshotStore()
        self.registry = registry or build_default_registry(anchor_service)
        self.defense_config = defense_config or ActiveDefenseConfig()
        self.sub_agent_factory = sub_agent_factory or SubAgentFactory()
        self.review_queue = review_queue
        self.rng_factory = rng_factory
        self._instances: Dict[str, GuardianAgent] = {}
        self._inflight: Dict[str, asyncio.Task] = {}

    def get(self, shipment_id: str) -> Optional[GuardianAgent]:
        return self._instances.get(shipment_id)

    def shipment_ids(self) -> List[str]:
        return list(self._instances)

    def _build(self, shipment_id: str, snapshot: Optional[OrchestratorSnapshot] = None) -> GuardianAgent:
        return GuardianAgent(
            shipment_id,
            registry=self.registry,
            defense_config=self.defense_config,
            sub_agent_factory=self.sub_agent_factory,
            rng=self.rng_factory(shipment_id) if self.rng_factory else None,
            review_queue=self.review_queue,
            snapshot=snapshot,
        )

    async def spawn_or_hydrate(self, shipment_id: str) -> GuardianAgent:
        """Return the cached instance, hydrating or spawning it on first use."""
        agent = self._instances.get(shipment_id)
        if agent is not None:
            return agent

        task = self._inflight.get(shipment_id)
        if task is None:
            task = asyncio.ensure_future(self._hydrate(shipment_id))
            self._inflight[shipment_id] = task
            task.add_done_callback(lambda _: self._inflight.pop(shipment_id, None))
        return await asyncio.shield(task)

    async def _hydrate(self, shipment_id: str) -> GuardianAgent:
        stored = None
        try:
            stored = await self.store.get(shipment_id)
        except Exception:
            logger.exception("Hydrate failed for %s; spawning a fresh instance", shipment_id)

        agent = None
        if stored is not None:
            try:
                agent = self._build(shipment_id, snapshot=stored.state)
            except Exception:
                logger.exception("Stored snapshot for %s is unusable; spawning a fresh instance", shipment_id)

        if agent is None:
            agent = self._build(shipment_id)
            logger.info("Spawned Guardian for %s", shipment_id)
        else:
            logger.info("Hydrated Guardian for %s", shipment_id)

        self._instances[shipment_id] = agent
        return agent

    async def persist(self, shipment_id: str) -> bool:
        agent = self._instances.get(shipment_id)
        if agent is None:
            logger.warning("Cannot persist %s: no live instance", shipment_id)
            return False
        snapshot = await agent.snapshot()
        try:
            await self.store.upsert(shipment_id, snapshot)
        except Exception:
            logger.exception("Persist failed for %s; in-memory state remains authoritative", shipment_id)
            return False
        return True

    def destroy(self, shipment_id: str) -> bool:
        """Drop the cached instance. Stored snapshots are left alone."""
        return self._instances.pop(shipment_id, None) is not None

    def destroy_all(self) -> int:
        count = len(self._instances)
        self._instances.clear()
        return count

    def update_risk_config(self, config: ActiveDefenseConfig) -> None:
        self.defense_config = config
        for agent in self._instances.values():
            agent.update_risk_config(config)

    async def process_event(self, shipment_id: str, event: AgentEvent) -> EventResult:
        agent = await self.spawn_or_hydrate(shipment_id)
        result = await agent.process_event(event)
        await self.persist(shipment_id)
        return result

    async def run_consistency_check(
        self,
        shipment_id: str,
        uploaded_document_ids: Optional[Sequence[str]] = None,
        trigger: ValidationTrigger = ValidationTrigger.MANUAL,
        document_type: Optional[str] = None,
        roadmap: Optional[Sequence[Union[RequiredDocument, str]]] = None,
    ) -> EventResult:
        """Uploaded ids default to the documents the orchestrator has seen."""
        agent = await self.spawn_or_hydrate(shipment_id)
        if uploaded_document_ids is None:
            uploaded_document_ids = agent.uploaded_document_ids()
        result = await agent.run_consistency_check(
            uploaded_document_ids, trigger, document_type, roadmap=roadmap,
        )
        await self.persist(shipment_id)
        return result

    # --- Event helpers ---

    async def process_document_upload(
        self,
        shipment_id: str,
        document_id: str,
        document_type: Optional[str] = None,
        content_hash: Optional[str] = None,
        shipment: Optional[ShipmentContext] = None,
        analysis: Optional[DocumentAnalysis] = None,
        extracted_facts: Optional[List[FactClaim]] = None,
    ) -> EventResult:
        event = DocumentUploadEvent(
            id=_event_id(),
            payload=DocumentUploadPayload(
                document_id=document_id,
                document_type=document_type,
                content_hash=content_hash,
                shipment=shipment,
                analysis=analysis,
                extracted_facts=extracted_facts or [],
            ),
        )
        return await self.process_event(shipment_id, event)

    async def process_route_update(
        self,
        shipment_id: str,
        fact_id: Optional[str] = None,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> EventResult:
        event = RouteUpdateEvent(
            id=_event_id(),
            payload=RouteUpdatePayload(fact_id=fact_id, origin=origin, destination=destination),
        )
        return await self.process_event(shipment_id, event)

    async def process_user_message(self, shipment_id: str, message: str) -> EventResult:
        event = UserMessageEvent(id=_event_id(), payload=UserMessagePayload(message=message))
        return await self.process_event(shipment_id, event)
