"""
Guardian Agent — the per-shipment event orchestrator.

One instance per shipment, long-lived across many events:
    idle → processing → idle

Per-event pipeline (strictly ordered):
  1. Mark processing, checkpoint state
  2. Core handling (document upload / route update / user message)
  3. Summoner synchronize; retired sub-agents leave the roadmap
  4. Active defense (document upload / route update only)
  5. Sequential dispatch to active sub-agents that can handle the event
  6. Memory merge in dispatch order; dispatched recipients consume their sticky notes
  7. Required-document dedupe, roadmap accumulation
  8. Alert id assignment
  9. Conflict pass over the alerts
 10. Response composition
 11. History entry, back to idle

Behavioral Contract:
- One event in flight per instance (asyncio.Lock)
- A failing sub-agent becomes an error activity entry; dispatch continues
- Any other failure restores the checkpoint and returns success=False
- Sub-agent membership is re-derived from facts, never restored from a snapshot
"""

import asyncio
import random
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel

from guardian_engine.core.logging import get_logger
from guardian_engine.defense.active_defense import ActiveDefense
from guardian_engine.knowledge_graph.store import FactStore
from guardian_engine.models.defense import ActiveDefenseConfig, ReviewRequest
from guardian_engine.models.events import (
    AgentEvent,
    DocumentUploadEvent,
    RouteUpdateEvent,
    UserMessageEvent,
)
from guardian_engine.models.knowledge import Fact, KnowledgeGraph
from guardian_engine.models.memory import (
    AgentMemory,
    AgentMessage,
    AgentStatus,
    OrchestratorSnapshot,
    SessionHistoryEntry,
    ShortTermMemory,
)
from guardian_engine.models.results import (
    ActivityEntry,
    ActivityStatus,
    AgentAlert,
    AlertSeverity,
    EventResult,
    MemoryUpdates,
    RequiredDocument,
)
from guardian_engine.models.validation import (
    ValidationHistoryEntry,
    ValidationStatus,
    ValidationTrigger,
)
from guardian_engine.orchestrator.collaborators import AnchorService, ReviewQueue
from guardian_engine.skills.catalog import build_default_registry
from guardian_engine.skills.registry import CapabilityRegistry
from guardian_engine.subagents.base import SubAgent, SubAgentResult
from guardian_engine.subagents.factory import SubAgentFactory
from guardian_engine.subagents.summoner import Summoner
from guardian_engine.validation.consistency import (
    build_validation_result,
    validate_backward,
    validate_forward,
    validate_full_chain,
)

logger = get_logger(__name__)

FAILURE_RESPONSE = "Critical orchestrator failure. The event was not applied."
USER_MESSAGE_RESPONSE = "Message received. Agents are processing."

# ShipmentContext field -> fact predicate
SHIPMENT_PREDICATES = {
    "origin": "origin_country",
    "destination": "destination_country",
    "product": "product_name",
    "hs_code": "hs_code",
    "container_type": "container_type",
    "packaging": "packaging",
}


def _fact_id() -> str:
    return f"fact_{uuid4().hex[:12]}"


def merge_required_documents(documents: Sequence[RequiredDocument]) -> List[RequiredDocument]:
    """
    Deduplicate by case-insensitive name, keeping the first occurrence.
    A document is mandatory if any duplicate says so, and is required by
    every requester of its duplicates.
    """
    merged: dict = {}
    for doc in documents:
        key = doc.name.strip().lower()
        if key not in merged:
            merged[key] = doc.model_copy(update={"required_by": list(doc.required_by)})
            continue
        current = merged[key]
        requesters = current.required_by + [r for r in doc.required_by if r not in current.required_by]
        merged[key] = current.model_copy(update={
            "mandatory": current.mandatory or doc.mandatory,
            "required_by": requesters,
        })
    return list(merged.values())


def drop_requesters(documents: Sequence[RequiredDocument], retired: Sequence[str]) -> List[RequiredDocument]:
    """
    Remove retired requesters from each document. A document left with no
    requester leaves the roadmap; untagged documents are kept.
    """
    retired = set(retired)
    kept = []
    for doc in documents:
        if not retired.intersection(doc.required_by):
            kept.append(doc)
            continue
        requesters = [r for r in doc.required_by if r not in retired]
        if requesters:
            kept.append(doc.model_copy(update={"required_by": requesters}))
    return kept


class _Checkpoint(BaseModel):
    """Mutable per-event state; history is append-only, so only its length is kept."""

    knowledge_graph: KnowledgeGraph
    short_term: ShortTermMemory
    roadmap: List[RequiredDocument]
    last_ingested_fact_ids: List[str]
    history_length: int
    last_active: datetime


class _CoreOutcome(BaseModel):
    response: str = ""
    alerts: List[AgentAlert] = []
    activity: List[ActivityEntry] = []
    required_documents: List[RequiredDocument] = []


class GuardianAgent:
    """Stateful orchestrator for one shipment."""

    def __init__(
        self,
        shipment_id: str,
        registry: Optional[CapabilityRegistry] = None,
        defense_config: Optional[ActiveDefenseConfig] = None,
        sub_agent_factory: Optional[SubAgentFactory] = None,
        rng: Optional[random.Random] = None,
        review_queue: Optional[ReviewQueue] = None,
        anchor_service: Optional[AnchorService] = None,
        snapshot: Optional[OrchestratorSnapshot] = None,
    ):
        self.shipment_id = shipment_id
        self.agent_id = f"guardian_{shipment_id}"
        self.registry = registry or build_default_registry(anchor_service)
        self.defense = ActiveDefense(defense_config, rng=rng, review_queue=review_queue)
        self.summoner = Summoner(sub_agent_factory)
        self._lock = asyncio.Lock()

        self.store = FactStore()
        self.short_term = ShortTermMemory()
        self.session_history: List[SessionHistoryEntry] = []
        self.roadmap: List[RequiredDocument] = []
        self.last_ingested_fact_ids: List[str] = []
        self.validation_history: List[ValidationHistoryEntry] = []
        self.last_active = datetime.utcnow()
        self.status = AgentStatus.IDLE

        if snapshot is not None:
            self._restore(snapshot)
            logger.info(
                "Guardian %s hydrated: %d facts, %d history entries",
                self.agent_id, len(self.store.get_all_facts(include_invalidated=True)),
                len(self.session_history),
            )
        self.summoner.synchronize(self.store)
        self._prune_roadmap()

    # --- State ---

    @property
    def active_sub_agent_ids(self) -> List[str]:
        return self.summoner.active_ids

    def get_state(self) -> OrchestratorSnapshot:
        """Full snapshot of this orchestrator."""
        return OrchestratorSnapshot(
            agent_id=self.agent_id,
            shipment_id=self.shipment_id,
            memory=AgentMemory(
                short_term=self.short_term.model_copy(deep=True),
                knowledge_graph=self.store.serialize(),
            ),
            sub_agents=self.summoner.active_ids,
            skills=self.registry.ids(),
            session_history=list(self.session_history),
            roadmap=list(self.roadmap),
            last_ingested_fact_ids=list(self.last_ingested_fact_ids),
            validation_history=list(self.validation_history),
            last_active=self.last_active,
            status=self.status,
        ).model_copy(deep=True)

    async def snapshot(self) -> OrchestratorSnapshot:
        """Snapshot taken between events."""
        async with self._lock:
            return self.get_state()

    def _restore(self, snapshot: OrchestratorSnapshot) -> None:
        snapshot = snapshot.model_copy(deep=True)
        self.agent_id = snapshot.agent_id or self.agent_id
        self.store = FactStore.deserialize(snapshot.memory.knowledge_graph)
        self.short_term = snapshot.memory.short_term
        self.session_history = snapshot.session_history
        self.roadmap = snapshot.roadmap
        self.last_ingested_fact_ids = snapshot.last_ingested_fact_ids
        self.validation_history = snapshot.validation_history
        self.last_active = snapshot.last_active
        self.status = AgentStatus.IDLE

    def _checkpoint(self) -> _Checkpoint:
        return _Checkpoint(
            knowledge_graph=self.store.serialize(),
            short_term=self.short_term.model_copy(deep=True),
            roadmap=list(self.roadmap),
            last_ingested_fact_ids=list(self.last_ingested_fact_ids),
            history_length=len(self.session_history),
            last_active=self.last_active,
        )

    def _rollback(self, checkpoint: _Checkpoint) -> None:
        self.store = FactStore.deserialize(checkpoint.knowledge_graph)
        self.short_term = checkpoint.short_term
        self.roadmap = checkpoint.roadmap
        self.last_ingested_fact_ids = checkpoint.last_ingested_fact_ids
        del self.session_history[checkpoint.history_length:]
        self.last_active = checkpoint.last_active

    def _prune_roadmap(self) -> None:
        """Drop roadmap entries owed only to sub-agents that are not active."""
        active = set(self.summoner.active_ids)
        inactive = [agent_id for agent_id in self.summoner.factory.ids() if agent_id not in active]
        self.roadmap = drop_requesters(self.roadmap, inactive)

    def update_risk_config(self, config: ActiveDefenseConfig) -> None:
        self.defense.update_config(config)

    def uploaded_document_ids(self) -> List[str]:
        """Document type (or id, if untyped) of every live uploaded document."""
        documents = []
        for existence in self.store.find("existence"):
            types = self.store.find("document_type", subject=existence.subject)
            name = types[-1].object if types else existence.subject
            if name not in documents:
                documents.append(name)
        return documents

    def _memory(self) -> AgentMemory:
        return AgentMemory(
            short_term=self.short_term.model_copy(deep=True),
            knowledge_graph=self.store.serialize(),
        )

    # --- Event processing ---

    async def process_event(self, event: AgentEvent) -> EventResult:
        async with self._lock:
            checkpoint = self._checkpoint()
            self.status = AgentStatus.PROCESSING
            self.last_active = datetime.utcnow()
            reviews: List[ReviewRequest] = []
            try:
                result, reviews = await self._run_pipeline(event)
            except Exception as e:
                logger.exception("Pipeline failed for event %s on %s", event.id, self.shipment_id)
                self._rollback(checkpoint)
                self.summoner.synchronize(self.store)
                result = EventResult(
                    success=False,
                    response=FAILURE_RESPONSE,
                    data={"error": type(e).__name__},
                )
            finally:
                self.status = AgentStatus.IDLE

        if reviews:
            try:
                await self.defense.submit_reviews(reviews)
            except Exception:
                logger.exception("Review queue rejected %d request(s)", len(reviews))
        return result

    async def _run_pipeline(self, event: AgentEvent) -> Tuple[EventResult, List[ReviewRequest]]:
        logger.info("Processing %s event %s for %s", event.type, event.id, self.shipment_id)
        facts_before = {f.id for f in self.store.get_all_facts(include_invalidated=True)}
        relationships_before = len(self.store.get_all_relationships())
        data: dict = {}

        # 2. Core handling
        if isinstance(event, DocumentUploadEvent):
            core = await self._handle_document_upload(event)
        elif isinstance(event, RouteUpdateEvent):
            core = self._handle_route_update(event)
        elif isinstance(event, UserMessageEvent):
            core = self._handle_user_message(event)
        else:
            raise TypeError(f"Unhandled event type: {type(event).__name__}")

        alerts = list(core.alerts)
        activity = list(core.activity)
        documents = list(core.required_documents)

        # 3. Summon
        sync = self.summoner.synchronize(self.store)
        data["sub_agents"] = {
            "active": self.summoner.active_ids,
            "activated": sync.activated,
            "retired": sync.retired,
        }
        if sync.retired:
            self.roadmap = drop_requesters(self.roadmap, sync.retired)

        # 4. Active defense
        reviews: List[ReviewRequest] = []
        if isinstance(event, (DocumentUploadEvent, RouteUpdateEvent)):
            outcome = self.defense.evaluate(event, shipment_id=self.shipment_id)
            alerts.extend(outcome.alerts)
            if outcome.thoughts:
                self.short_term.current_thought = outcome.thoughts[-1]
            reviews = outcome.review_requests
            if reviews:
                data["review_requests"] = [r.id for r in reviews]

        # 5. Dispatch
        outputs = await self._dispatch(event, activity)

        # 6. Merge; a dispatched recipient has read its sticky notes
        for agent, _ in outputs:
            self.short_term.sticky_note_buffer.pop(agent.id, None)
        for agent, output in outputs:
            if output.memory_updates:
                self._merge_memory(output.memory_updates)
            for alert in output.alerts:
                alerts.append(alert if alert.source else alert.model_copy(update={"source": agent.id}))
            for doc in output.required_documents:
                documents.append(doc if doc.required_by else doc.model_copy(update={"required_by": [agent.id]}))

        # 7. Required documents
        required = merge_required_documents(documents)
        self.roadmap = merge_required_documents(self.roadmap + required)

        # 8. Alert ids
        for alert in alerts:
            if not alert.id:
                alert.id = f"alert_{uuid4().hex[:12]}"

        # 9. Conflict pass
        if len(alerts) >= 2:
            alerts = await self._resolve_conflicts(alerts)

        # 10. Response
        response = core.response
        findings = [f"- **{agent.name}**: {output.response}" for agent, output in outputs if output.response]
        if findings:
            header = "**Specialist Findings:**" if response else "**Action Report:**"
            response = f"{response}\n\n{header}\n" if response else f"{header}\n"
            response += "\n".join(findings)

        if isinstance(event, UserMessageEvent):
            self.short_term.conversation_buffer.append(AgentMessage(
                id=f"msg_{uuid4().hex[:12]}",
                sender="agent",
                content=response,
            ))

        all_facts = self.store.get_all_facts(include_invalidated=True)
        result = EventResult(
            success=True,
            response=response,
            alerts=alerts,
            activity_log=activity,
            required_documents=required,
            memory_updates=MemoryUpdates(
                new_facts=[f for f in all_facts if f.id not in facts_before],
                new_relationships=self.store.get_all_relationships()[relationships_before:],
            ),
            data=data,
        )

        # 11. History
        self.session_history.append(SessionHistoryEntry(
            event=event,
            result=result.model_copy(update={"memory_updates": None}),
            timestamp=datetime.utcnow(),
        ))
        logger.info(
            "Event %s done: %d alert(s), %d sub-agent(s) dispatched",
            event.id, len(alerts), len(outputs),
        )
        return result, reviews

    async def _dispatch(
        self, event: AgentEvent, activity: List[ActivityEntry]
    ) -> List[Tuple[SubAgent, SubAgentResult]]:
        """Run each capable sub-agent in registration order on its own memory copy."""
        memory = self._memory()
        document_id = event.payload.document_id if isinstance(event, DocumentUploadEvent) else None
        outputs = []

        for agent in self.summoner.active_agents:
            if not agent.can_handle(event):
                continue
            try:
                output = await agent.process(event, memory.model_copy(deep=True), self.registry)
            except Exception as e:
                logger.exception("Sub-agent %s failed on event %s", agent.id, event.id)
                activity.append(ActivityEntry(
                    agent_id=agent.id,
                    agent_name=agent.name,
                    status=ActivityStatus.ERROR,
                    summary=f"Processing failed: {e}",
                    document_id=document_id,
                ))
                continue

            outputs.append((agent, output))
            activity.append(ActivityEntry(
                agent_id=agent.id,
                agent_name=agent.name,
                status=ActivityStatus.SUCCESS if output.success else ActivityStatus.ERROR,
                summary=(output.response.splitlines() or ["No findings."])[0][:200],
                document_id=document_id,
                skills_used=output.skills_used,
                documents_identified=[d.name for d in output.required_documents],
                alerts=[{"severity": a.severity.value, "message": a.message} for a in output.alerts],
            ))
        return outputs

    def _merge_memory(self, updates: MemoryUpdates) -> None:
        short = updates.short_term
        if short is not None:
            if short.current_thought:
                self.short_term.current_thought = short.current_thought
            if short.pending_decisions:
                self.short_term.pending_decisions = list(short.pending_decisions)
            if short.active_context:
                self.short_term.active_context.update(short.active_context)
            for message in short.conversation_buffer:
                self.short_term.conversation_buffer.append(AgentMessage.model_validate(message))
            for recipient, notes in short.sticky_note_buffer.items():
                pending = self.short_term.sticky_note_buffer.setdefault(recipient, [])
                pending.extend(note for note in notes if note not in pending)

        for fact in updates.new_facts:
            self.store.add_fact(fact)
        for relationship in updates.new_relationships:
            self.store.add_relationship(relationship)

    async def _resolve_conflicts(self, alerts: List[AgentAlert]) -> List[AgentAlert]:
        if not self.registry.has("conflict_scanner"):
            return alerts
        scan = await self.registry.execute("conflict_scanner", {"alerts": alerts})
        scanned = scan.data.get("alerts")
        if scan.status in ("skipped", "error") or scanned is None:
            return alerts
        if {a.id for a in scanned} != {a.id for a in alerts}:
            logger.warning("Conflict scan changed the alert set; keeping the original alerts")
            return alerts
        return list(scanned)

    # --- Core handlers ---

    async def _handle_document_upload(self, event: DocumentUploadEvent) -> _CoreOutcome:
        payload = event.payload
        document_id = payload.document_id or event.id
        existing_facts = self.store.get_all_facts()
        outcome = _CoreOutcome()

        existence = self.store.add_fact(Fact(
            id=_fact_id(),
            type="document_fact",
            subject=document_id,
            predicate="existence",
            object="confirmed",
            source=document_id,
            timestamp=event.timestamp,
        ))
        new_facts = [existence]

        def derive(predicate, value, fact_type, subject="consignment", confidence=1.0):
            fact = Fact(
                id=_fact_id(),
                type=fact_type,
                subject=subject,
                predicate=predicate,
                object=str(value),
                confidence=confidence,
                source=document_id,
                timestamp=event.timestamp,
            )
            self.store.add_fact(fact, depends_on=[existence.id])
            new_facts.append(fact)

        if payload.document_type:
            derive("document_type", payload.document_type, "document_fact", subject=document_id)

        if payload.shipment:
            for field, predicate in SHIPMENT_PREDICATES.items():
                value = getattr(payload.shipment, field)
                if value:
                    derive(predicate, value, "shipment_fact")
            for attribute in payload.shipment.attributes:
                name = "_".join(attribute.strip().lower().split())
                if name:
                    derive(f"is_{name}", "true", "shipment_fact")

        for claim in payload.extracted_facts:
            derive(claim.predicate, claim.object, claim.type, subject=claim.subject, confidence=claim.confidence)

        self.last_ingested_fact_ids = [f.id for f in new_facts]
        outcome.response = f"Document {payload.document_type or document_id} registered with {len(new_facts)} fact(s)."

        if self.registry.has("document_reconciliation"):
            check = await self.registry.execute("document_reconciliation", {
                "new_facts": new_facts,
                "existing_facts": existing_facts,
            })
            for conflict in check.data.get("conflicts", []):
                outcome.alerts.append(AgentAlert(
                    severity=conflict["severity"],
                    message=(
                        f"Data conflict: {conflict['field']} mismatch - "
                        f"\"{conflict['previous_value']}\" vs \"{conflict['current_value']}\""
                    ),
                    suggested_action="Re-examine documents for tampering or clerical errors.",
                    related_fact_ids=[
                        fid for fid in (conflict["previous_fact_id"], conflict["current_fact_id"]) if fid
                    ],
                    tags=["consistency"],
                    source="document_reconciliation",
                ))
            outcome.activity.append(ActivityEntry(
                agent_id="document_reconciliation",
                agent_name="Document Reconciliation",
                status=ActivityStatus.ERROR if check.status == "error" else ActivityStatus.SUCCESS,
                summary=check.message,
                document_id=document_id,
                skills_used=["document_reconciliation"],
            ))

        analysis = payload.analysis
        if analysis is not None:
            if analysis.route_mismatch:
                outcome.alerts.append(AgentAlert(
                    severity=AlertSeverity.WARNING,
                    message=f"Document {document_id} does not match the registered route.",
                    suggested_action="Confirm the route or upload the correct document.",
                    related_fact_ids=[existence.id],
                    source="document_analysis",
                ))
            for name in analysis.recommended_documents:
                outcome.required_documents.append(RequiredDocument(
                    name=name,
                    reason="Recommended by document analysis",
                    mandatory=False,
                    required_by=["document_analysis"],
                ))

        return outcome

    def _handle_route_update(self, event: RouteUpdateEvent) -> _CoreOutcome:
        payload = event.payload
        outcome = _CoreOutcome()
        invalidated: List[str] = []

        if payload.fact_id:
            invalidated = self.store.invalidate_fact(payload.fact_id)
            if invalidated:
                outcome.alerts.append(AgentAlert(
                    severity=AlertSeverity.WARNING,
                    message=f"Route change invalidated {len(invalidated)} fact(s).",
                    suggested_action="Re-verify documents that relied on the previous route.",
                    related_fact_ids=invalidated,
                    tags=["route_change"],
                    source="guardian",
                ))
            else:
                logger.warning("Route update %s invalidated nothing (fact %s)", event.id, payload.fact_id)

        added = 0
        for value, predicate in ((payload.origin, "origin_country"), (payload.destination, "destination_country")):
            if not value:
                continue
            self.store.add_fact(Fact(
                id=_fact_id(),
                type="route_fact",
                subject="consignment",
                predicate=predicate,
                object=value,
                source="route_update",
                timestamp=event.timestamp,
            ))
            added += 1

        outcome.response = f"Route updated. {len(invalidated)} fact(s) invalidated, {added} new fact(s) recorded."
        return outcome

    def _handle_user_message(self, event: UserMessageEvent) -> _CoreOutcome:
        self.short_term.conversation_buffer.append(AgentMessage(
            id=event.id,
            sender="user",
            content=event.payload.message,
            timestamp=event.timestamp,
        ))
        return _CoreOutcome(response=USER_MESSAGE_RESPONSE)

    # --- Consistency ---

    async def run_consistency_check(
        self,
        uploaded_document_ids: Sequence[str],
        trigger: ValidationTrigger = ValidationTrigger.MANUAL,
        document_type: Optional[str] = None,
        roadmap: Optional[Sequence[Union[RequiredDocument, str]]] = None,
    ) -> EventResult:
        """Re-validate the whole fact history; independent of any live event."""
        trigger = ValidationTrigger(trigger)
        async with self._lock:
            facts = self.store.get_all_facts()
            new_ids = set(self.last_ingested_fact_ids)
            new_facts = [f for f in facts if f.id in new_ids]
            existing = [f for f in facts if f.id not in new_ids]

            backward = validate_backward(new_facts, existing)
            forward = validate_forward(
                facts, list(uploaded_document_ids),
                self.roadmap if roadmap is None else roadmap,
            )
            chain = validate_full_chain(
                self.store.get_all_facts(include_invalidated=True),
                self.store.get_all_relationships(),
            )
            validation = build_validation_result(
                document_type, trigger, backward, forward, chain,
                checked_fields=sorted({f.predicate for f in new_facts}),
            )

            alerts = []
            for conflict in validation.conflicts:
                alerts.append(AgentAlert(
                    id=f"alert_{uuid4().hex[:12]}",
                    severity=conflict.severity,
                    message=(
                        f"Data conflict: {conflict.field} changed from "
                        f"\"{conflict.previous_value}\" to \"{conflict.current_value}\""
                    ),
                    suggested_action="Re-examine documents for tampering or clerical errors.",
                    related_fact_ids=[
                        fid for fid in (conflict.previous_fact_id, conflict.current_fact_id) if fid
                    ],
                    tags=["consistency"],
                    source="consistency_validator",
                ))
            for gap in validation.gaps:
                alerts.append(AgentAlert(
                    id=f"alert_{uuid4().hex[:12]}",
                    severity=gap.severity,
                    message=f"Missing: {gap.expected} - {gap.reason}",
                    suggested_action=f"Upload the {gap.expected}.",
                    tags=["gap"],
                    source="consistency_validator",
                ))
            for issue in validation.chain_issues:
                alerts.append(AgentAlert(
                    id=f"alert_{uuid4().hex[:12]}",
                    severity=AlertSeverity.WARNING,
                    message=f"Chain issue: {issue}",
                    suggested_action="Review the fact history for this shipment.",
                    tags=["chain"],
                    source="consistency_validator",
                ))

            if validation.status == ValidationStatus.VALID and not validation.chain_issues:
                summary = "All consistency checks passed."
            else:
                summary = (
                    f"{len(validation.conflicts)} conflict(s), {len(validation.gaps)} gap(s), "
                    f"{len(validation.chain_issues)} chain issue(s) found."
                )

            self.validation_history.append(ValidationHistoryEntry(
                id=f"val_{uuid4().hex[:12]}",
                timestamp=validation.checked_at,
                document_type=validation.document_type,
                event_type=trigger,
                backward_valid=validation.backward_valid,
                forward_valid=validation.forward_valid,
                conflict_count=len(validation.conflicts),
                gap_count=len(validation.gaps),
                status=validation.status,
                summary=summary,
            ))
            self.last_active = datetime.utcnow()
            logger.info("Consistency check (%s) for %s: %s", trigger.value, self.shipment_id, summary)

            return EventResult(
                success=validation.status == ValidationStatus.VALID,
                response=summary,
                alerts=alerts,
                activity_log=[ActivityEntry(
                    agent_id="consistency_validator",
                    agent_name="Consistency Validator",
                    status=ActivityStatus.SUCCESS,
                    summary=summary,
                )],
                data={"validation": validation.model_dump(mode="json")},
            )
