"""
Guardian Engine API — FastAPI endpoints.

Exposes the orchestrator factory to the UI:
- Shipment lifecycle (spawn/hydrate, persist, destroy)
- Event processing
- Consistency checks
- Capability and risk-policy inspection
"""

from typing import List, Optional
from uuid import uuid4

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, ValidationError

from guardian_engine.core.config import GuardianSettings, get_settings
from guardian_engine.core.logging import get_logger, setup_logging
from guardian_engine.models.defense import ActiveDefenseConfig, RiskProfile
from guardian_engine.models.events import parse_event
from guardian_engine.models.validation import ValidationTrigger
from guardian_engine.orchestrator.factory import GuardianAgentFactory
from guardian_engine.persistence.store import SQLiteSnapshotStore

logger = get_logger(__name__)


# --- Request/Response Models ---

class ConsistencyCheckRequest(BaseModel):
    uploaded_document_ids: Optional[List[str]] = None
    trigger: ValidationTrigger = ValidationTrigger.MANUAL
    document_type: Optional[str] = None
    roadmap: Optional[List[str]] = None


class RiskConfigRequest(BaseModel):
    entropy_threshold: float = Field(ge=0, le=1, default=0.05)
    global_risk_profiles: List[RiskProfile] = []


# --- Application Factory ---

def create_app(
    factory: Optional[GuardianAgentFactory] = None,
    settings: Optional[GuardianSettings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.json_logs)

    app = FastAPI(
        title="Guardian Engine API",
        description="Per-shipment Guardian orchestration engine",
        version="0.1.0",
    )

    gf = factory or GuardianAgentFactory(
        store=SQLiteSnapshotStore(settings.snapshot_db_path),
        defense_config=settings.active_defense_config(),
    )
    app.state.factory = gf
    app.state.settings = settings

    def _agent_or_404(shipment_id: str):
        agent = gf.get(shipment_id)
        if agent is None:
            raise HTTPException(404, "Shipment not loaded")
        return agent

    # === SHIPMENT LIFECYCLE ===

    @app.post("/shipments/{shipment_id}/spawn")
    async def spawn(shipment_id: str):
        """Spawn or hydrate the Guardian for a shipment."""
        agent = await gf.spawn_or_hydrate(shipment_id)
        return {
            "shipment_id": shipment_id,
            "agent_id": agent.agent_id,
            "sub_agents": agent.active_sub_agent_ids,
            "fact_count": len(agent.store.get_all_facts()),
        }

    @app.get("/shipments/{shipment_id}/state")
    async def get_state(shipment_id: str):
        agent = _agent_or_404(shipment_id)
        snapshot = await agent.snapshot()
        return snapshot.model_dump(mode="json")

    @app.post("/shipments/{shipment_id}/persist")
    async def persist(shipment_id: str):
        _agent_or_404(shipment_id)
        return {"persisted": await gf.persist(shipment_id)}

    @app.delete("/shipments/{shipment_id}")
    def destroy(shipment_id: str):
        if not gf.destroy(shipment_id):
            raise HTTPException(404, "Shipment not loaded")
        return {"destroyed": shipment_id}

    # === EVENTS ===

    @app.post("/shipments/{shipment_id}/events")
    async def process_event(shipment_id: str, body: dict):
        """Process one event. The body is an event discriminated on `type`."""
        body = dict(body)
        body.setdefault("id", f"evt_{uuid4().hex[:12]}")
        try:
            event = parse_event(body)
        except ValidationError as e:
            raise HTTPException(422, f"Invalid event: {e}")
        result = await gf.process_event(shipment_id, event)
        return result.model_dump(mode="json")

    @app.post("/shipments/{shipment_id}/consistency-check")
    async def consistency_check(shipment_id: str, req: ConsistencyCheckRequest):
        result = await gf.run_consistency_check(
            shipment_id,
            req.uploaded_document_ids,
            trigger=req.trigger,
            document_type=req.document_type,
            roadmap=req.roadmap,
        )
        return result.model_dump(mode="json")

    # === CAPABILITIES & POLICY ===

    @app.get("/capabilities")
    def list_capabilities():
        return [
            {
                "id": skill.id,
                "name": skill.name,
                "category": getattr(skill.category, "value", skill.category),
                "description": skill.description,
            }
            for skill in gf.registry.list()
        ]

    @app.get("/defense/config")
    def get_risk_config():
        return gf.defense_config.model_dump(mode="json")

    @app.put("/defense/config")
    def update_risk_config(req: RiskConfigRequest):
        """Replace the risk policy for every live and future shipment."""
        config = ActiveDefenseConfig(
            entropy_threshold=req.entropy_threshold,
            global_risk_profiles=req.global_risk_profiles,
        )
        gf.update_risk_config(config)
        logger.info("Risk policy updated: %d profile(s)", len(config.global_risk_profiles))
        return config.model_dump(mode="json")

    @app.get("/health")
    def health():
        return {"status": "ok", "live_shipments": len(gf.shipment_ids())}

    return app


# Default app instance for uvicorn
app = create_app()
