"""
Shipped sub-agents.

Each specialist is driven by small rule tables and reports through the
standard channels: skill calls, memory deltas, sticky notes, knowledge
deltas and required documents.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional
from uuid import uuid4

from guardian_engine.core.logging import get_logger
from guardian_engine.models.events import (
    AgentEvent,
    DocumentUploadEvent,
    RouteUpdateEvent,
    UserMessageEvent,
)
from guardian_engine.models.knowledge import Fact, FactRelationship, RelationshipType
from guardian_engine.models.memory import AgentMemory
from guardian_engine.models.results import (
    AgentAlert,
    AlertSeverity,
    MemoryUpdates,
    ShortTermUpdate,
)
from guardian_engine.skills.registry import CapabilityRegistry
from guardian_engine.skills.rules import required_docs
from guardian_engine.subagents.base import SubAgentResult, latest_value, sticky_notes

logger = get_logger(__name__)

_TRUTHY = ("true", "yes", "1")


def _flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() in _TRUTHY


async def _regime_check(
    registry: CapabilityRegistry,
    memory: AgentMemory,
    regulation: str,
    label: str,
    suggested_action: str,
) -> SubAgentResult:
    """Run `regulatory_check` for one regime and turn the verdict into findings."""
    context = {
        "regulation": regulation,
        "origin": latest_value(memory, "origin_country"),
        "destination": latest_value(memory, "destination_country"),
        "product": latest_value(memory, "product_name") or "",
        "geolocation": latest_value(memory, "geolocation_coordinates"),
        "deforestation_free": _flag(latest_value(memory, "deforestation_free")),
        "fsvp": _flag(latest_value(memory, "fsvp_on_file")) or False,
    }
    result = await registry.execute("regulatory_check", context)

    alerts = []
    if result.status == "skipped":
        response = f"{label} verification skipped: regulatory check capability not available."
    elif result.status == "error":
        response = f"{label} verification could not complete."
        alerts.append(AgentAlert(
            severity=AlertSeverity.WARNING,
            message=f"{label} check error",
            suggested_action="Check system logs.",
        ))
    elif result.status == "Fail":
        response = f"{label}: {result.message}"
        alerts.append(AgentAlert(
            severity=AlertSeverity.CRITICAL,
            message=result.message or f"{label} compliance check failed",
            suggested_action=suggested_action,
        ))
    else:
        response = f"{label}: {result.message}"

    return SubAgentResult(
        response=response,
        alerts=alerts,
        required_documents=result.required_documents or required_docs(regulation),
        skills_used=["regulatory_check"],
        data={"regulatory_status": result.status},
    )


class SanctionsSentry:
    """Screens the parties named in the shipment against a watchlist."""

    id = "sanctions_sentry"
    name = "Sanctions Sentry"
    description = "Screens exporters, vessels, and banks against OFAC, UN, and EU watchlists."

    # lowercase entity -> list name
    watchlist: Dict[str, str] = {
        "sovcomflot": "OFAC SDN",
        "rosneft": "EU Sectoral Sanctions",
    }

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, (DocumentUploadEvent, UserMessageEvent))

    async def process(self, event, memory, registry) -> SubAgentResult:
        parties = [
            value for value in (
                latest_value(memory, "exporter_name"),
                latest_value(memory, "seller_name"),
                latest_value(memory, "vessel_name"),
            ) if value
        ]
        if not parties:
            return SubAgentResult(response="Sanctions screening pending: no parties identified yet.")

        matches = [
            (party, listing)
            for party in parties
            for entity, listing in self.watchlist.items()
            if entity in party.lower()
        ]
        if not matches:
            return SubAgentResult(
                response=f"Clean scan: {', '.join(parties)} not flagged on current watchlists.",
            )

        alerts = [
            AgentAlert(
                severity=AlertSeverity.CRITICAL,
                message=f"Sanctions match detected for entity: {party} ({listing})",
                suggested_action="Immediate stop. Perform manual Enhanced Due Diligence (EDD).",
            )
            for party, listing in matches
        ]
        return SubAgentResult(
            response=f"Potential watchlist matches: {', '.join(p for p, _ in matches)}.",
            alerts=alerts,
        )


class LogisticsLingoInterpreter:
    """Reads transport wording: dirty B/L clauses on upload, trade jargon in chat."""

    id = "logistics_lingo_interpreter"
    name = "Logistics Lingo Interpreter"
    description = "Scans transport documents for dirty clauses and explains shipping terms."

    DIRTY_CLAUSES = (
        "damaged", "torn", "wet", "stained", "leaking",
        "shipper's load and count", "said to contain", "transshipment",
    )

    GLOSSARY = {
        "fob": "Free On Board: seller clears export and loads the vessel; risk passes on board.",
        "cif": "Cost, Insurance and Freight: seller pays carriage and minimum insurance to the port of destination.",
        "exw": "Ex Works: buyer collects at the seller's premises and bears all further risk.",
        "ddp": "Delivered Duty Paid: seller delivers cleared for import with duties paid.",
        "b/l": "Bill of Lading: carrier's receipt, contract of carriage and document of title.",
        "demurrage": "Charge for holding a container at the terminal beyond the free time.",
        "eta": "Estimated Time of Arrival.",
    }

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, (DocumentUploadEvent, UserMessageEvent))

    async def process(self, event, memory, registry) -> SubAgentResult:
        if isinstance(event, UserMessageEvent):
            return self._explain(event.payload.message)

        clauses = latest_value(memory, "bill_of_lading_clauses")
        if not clauses:
            return SubAgentResult()

        found = [c for c in self.DIRTY_CLAUSES if c in clauses.lower()]
        if not found:
            return SubAgentResult(response="Transport document clauses are clean.")
        return SubAgentResult(
            response=f"Adverse clauses on the transport document: {', '.join(found)}.",
            alerts=[AgentAlert(
                severity=AlertSeverity.CRITICAL,
                message='Adverse "dirty" clauses detected on the Bill of Lading.',
                suggested_action="Request a clean B/L from the carrier before presenting to the bank.",
            )],
        )

    def _explain(self, message: str) -> SubAgentResult:
        words = set(re.findall(r"[a-z/]+", message.lower()))
        explained = [text for term, text in self.GLOSSARY.items() if term in words]
        if not explained:
            return SubAgentResult()
        reply = "\n".join(explained)
        return SubAgentResult(
            response=reply,
            memory_updates=MemoryUpdates(short_term=ShortTermUpdate(
                conversation_buffer=[{
                    "id": f"msg_{uuid4().hex[:12]}",
                    "sender": "agent",
                    "content": reply,
                }],
            )),
        )


class ChainOfCustodyAuditor:
    """Anchors every uploaded document's content hash and records the receipt as a fact."""

    id = "chain_of_custody_auditor"
    name = "Chain of Custody Auditor"
    description = "Anchors document hashes so the custody chain can be proven later."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, DocumentUploadEvent)

    async def process(self, event, memory, registry) -> SubAgentResult:
        result = await self._anchor(event, memory, registry)
        notes = sticky_notes(memory, self.id)
        if notes:
            result.response += "\nNotes from other specialists:\n" + "\n".join(f"- {note}" for note in notes)
            result.data["sticky_notes"] = notes
        return result

    async def _anchor(self, event, memory, registry) -> SubAgentResult:
        payload = event.payload
        if not payload.content_hash:
            return SubAgentResult(response="No content hash supplied; custody anchoring skipped.")

        result = await registry.execute("blockchain_anchor", {
            "content_hash": payload.content_hash,
            "metadata": {"document_id": payload.document_id, "document_type": payload.document_type},
        })
        if not result.success:
            return SubAgentResult(
                response=f"Custody anchoring did not complete ({result.status}).",
                alerts=[AgentAlert(
                    severity=AlertSeverity.WARNING,
                    message=f"Document hash could not be anchored: {result.message}",
                    suggested_action="Retry anchoring before the document is shared downstream.",
                )],
                skills_used=["blockchain_anchor"],
            )

        document_id = payload.document_id or event.id
        anchor_fact = Fact(
            id=f"fact_{uuid4().hex[:12]}",
            type="anchor_fact",
            subject=document_id,
            predicate="anchored_transaction",
            object=result.data["transaction_id"],
            source=self.id,
            timestamp=datetime.utcnow(),
        )
        relationships = []
        existence = next(
            (f for f in reversed(memory.knowledge_graph.facts)
             if f.is_valid and f.subject == document_id and f.predicate == "existence"),
            None,
        )
        if existence:
            relationships.append(FactRelationship(
                id=f"rel_{uuid4().hex[:12]}",
                from_fact_id=anchor_fact.id,
                to_fact_id=existence.id,
                relationship_type=RelationshipType.DEPENDS_ON,
            ))

        return SubAgentResult(
            response=f"Document hash anchored: {result.data['explorer_url']}",
            memory_updates=MemoryUpdates(new_facts=[anchor_fact], new_relationships=relationships),
            skills_used=["blockchain_anchor"],
            data={"anchor": result.data},
        )


class EUDRSpecialist:
    id = "eudr_specialist"
    name = "EU Deforestation Regulation Specialist"
    description = "Checks geolocation and deforestation-free evidence for EU imports."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, (DocumentUploadEvent, RouteUpdateEvent))

    async def process(self, event, memory, registry) -> SubAgentResult:
        return await _regime_check(
            registry, memory, "EUDR", "EUDR",
            "Ensure geolocation data is provided and verified.",
        )


class FSMASpecialist:
    id = "fsma_specialist"
    name = "FSMA Specialist"
    description = "Checks FDA Food Safety Modernization Act import requirements."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, (DocumentUploadEvent, RouteUpdateEvent))

    async def process(self, event, memory, registry) -> SubAgentResult:
        return await _regime_check(
            registry, memory, "FSMA", "FSMA",
            "Obtain the importer's FSVP records before arrival.",
        )


class CNImportSpecialist:
    id = "cn_import_specialist"
    name = "China Import Specialist"
    description = "Checks GACC registration and entry inspection requirements for China."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, (DocumentUploadEvent, RouteUpdateEvent))

    async def process(self, event, memory, registry) -> SubAgentResult:
        result = await _regime_check(
            registry, memory, "GACC", "China GACC",
            "Register the overseas manufacturer with GACC.",
        )
        if not latest_value(memory, "gacc_registration"):
            result.alerts.append(AgentAlert(
                severity=AlertSeverity.WARNING,
                message="No GACC manufacturer registration number on file.",
                suggested_action="Request the GACC registration number from the manufacturer.",
            ))
        return result


class CHImportSpecialist:
    id = "ch_import_specialist"
    name = "Swiss Import Specialist"
    description = "Checks Swiss import permits and preferential origin proof."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, (DocumentUploadEvent, RouteUpdateEvent))

    async def process(self, event, memory, registry) -> SubAgentResult:
        return await _regime_check(
            registry, memory, "SWISS", "Swiss import",
            "Apply for the Swiss general import licence before shipment.",
        )


class OrganicSentinel:
    id = "organic_sentinel"
    name = "Organic Sentinel"
    description = "Verifies organic certification for goods sold as organic."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, DocumentUploadEvent)

    async def process(self, event, memory, registry) -> SubAgentResult:
        alerts = []
        analysis = event.payload.analysis
        certification = analysis.certification if analysis else {}
        if certification.get("organic") is False:
            alerts.append(AgentAlert(
                severity=AlertSeverity.WARNING,
                message="Document does not support the organic claim for this shipment.",
                suggested_action="Obtain a valid organic certificate or drop the organic claim.",
            ))
        return SubAgentResult(
            response="Organic claim requires a certificate and a transaction certificate.",
            alerts=alerts,
            required_documents=required_docs("ORGANIC"),
            memory_updates=MemoryUpdates(short_term=ShortTermUpdate(
                sticky_note_buffer={
                    "chain_of_custody_auditor": ["Verify the organic transaction certificate chain."],
                },
            )),
        )


class IUUFisheryWatcher:
    id = "iuu_fishery_watcher"
    name = "IUU Fishery Watcher"
    description = "Checks catch documentation for seafood (HS chapter 03)."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, DocumentUploadEvent)

    async def process(self, event, memory, registry) -> SubAgentResult:
        alerts = []
        if not latest_value(memory, "catch_certificate_number"):
            alerts.append(AgentAlert(
                severity=AlertSeverity.WARNING,
                message="Seafood shipment without a catch certificate number.",
                suggested_action="Request the IUU catch certificate from the flag state.",
            ))
        return SubAgentResult(
            response="Seafood requires IUU catch documentation.",
            alerts=alerts,
            required_documents=required_docs("IUU"),
        )


class HalalKosherGuardian:
    id = "halal_kosher_guardian"
    name = "Halal/Kosher Guardian"
    description = "Tracks religious certification for goods claimed Halal or Kosher."

    def can_handle(self, event: AgentEvent) -> bool:
        return isinstance(event, DocumentUploadEvent)

    async def process(self, event, memory, registry) -> SubAgentResult:
        claims: List[str] = []
        documents = []
        if _flag(latest_value(memory, "is_halal")):
            claims.append("Halal")
            documents.extend(required_docs("HALAL"))
        if _flag(latest_value(memory, "is_kosher")):
            claims.append("Kosher")
            documents.extend(required_docs("KOSHER"))
        return SubAgentResult(
            response=f"Religious certification required: {', '.join(claims)}.",
            required_documents=documents,
            memory_updates=MemoryUpdates(short_term=ShortTermUpdate(
                active_context={"religious_certifications": claims},
            )),
        )
