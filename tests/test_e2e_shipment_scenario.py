"""
End-to-end scenario: a coffee shipment from Brazil re-routed from China to
Switzerland, with a conflicting bill of lading, an audit hit and a restart.
"""

import asyncio
import random

from guardian_engine.models.defense import ActiveDefenseConfig, AuditConfig, RiskProfile
from guardian_engine.models.events import DocumentAnalysis, FactClaim, ShipmentContext
from guardian_engine.models.validation import ValidationTrigger
from guardian_engine.orchestrator.collaborators import InMemoryReviewQueue
from guardian_engine.orchestrator.factory import GuardianAgentFactory
from guardian_engine.persistence.store import SQLiteSnapshotStore
from guardian_engine.validation.sweeper import ConsistencySweeper


class _FixedRandom(random.Random):
    def __init__(self, value: float):
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


def _make_factory(store, queue) -> GuardianAgentFactory:
    profile = RiskProfile(
        name="transshipment_watch",
        match_keywords=["transshipment"],
        gravity_score=0.95,
        audit_config=AuditConfig(human_intervention_threshold=0.9),
    )
    return GuardianAgentFactory(
        store=store,
        defense_config=ActiveDefenseConfig(entropy_threshold=0.0, global_risk_profiles=[profile]),
        review_queue=queue,
        rng_factory=lambda shipment_id: _FixedRandom(0.5),
    )


class TestShipmentScenario:
    def test_full_lifecycle(self):
        store = SQLiteSnapshotStore(":memory:")
        queue = InMemoryReviewQueue()
        factory = _make_factory(store, queue)

        async def scenario():
            # 1. Invoice for a China-bound coffee shipment
            invoice = await factory.process_document_upload(
                "shp_001", "doc_invoice", "Commercial Invoice",
                content_hash="sha256:invoice",
                shipment=ShipmentContext(
                    origin="Switzerland", destination="China", product="Coffee", hs_code="0901.11",
                ),
                extracted_facts=[FactClaim(predicate="seller_name", object="Alpine Roasters AG")],
            )
            assert invoice.success
            agent = factory.get("shp_001")
            assert "cn_import_specialist" in agent.active_sub_agent_ids
            assert agent.store.find("anchored_transaction", subject="doc_invoice")

            # 2. Bill of lading disagrees on origin and carries a dirty clause
            bill = await factory.process_document_upload(
                "shp_001", "doc_bol", "Bill of Lading",
                shipment=ShipmentContext(origin="Germany"),
                extracted_facts=[FactClaim(
                    predicate="bill_of_lading_clauses",
                    object="Said to contain 300 bags; transshipment via Rotterdam",
                )],
                analysis=DocumentAnalysis(recommended_documents=["Certificate of Origin"]),
            )
            conflicts = [a for a in bill.alerts if "consistency" in a.tags]
            assert len(conflicts) == 1
            assert any(a.source == "logistics_lingo_interpreter" for a in bill.alerts)
            assert any(a.source == "active_defense" for a in bill.alerts)
            assert len(queue.pending) == 1

            # 3. Re-route to Switzerland
            china = agent.store.find("destination_country")[0]
            route = await factory.process_route_update("shp_001", fact_id=china.id, destination="Switzerland")
            assert route.data["sub_agents"]["retired"] == ["cn_import_specialist"]
            assert "ch_import_specialist" in route.data["sub_agents"]["activated"]
            assert any("route_change" in a.tags for a in route.alerts)

            # 4. Manual consistency check
            check = await factory.run_consistency_check("shp_001")
            assert not check.success
            validation = check.data["validation"]
            assert len(validation["conflicts"]) == 1
            assert any(g["expected"] == "Certificate of Origin" for g in validation["gaps"])

            # 5. Scheduled sweep
            sweeper = ConsistencySweeper(factory)
            swept = await sweeper.sweep_once()
            assert set(swept) == {"shp_001"}

            # 6. Restart: drop the instance and rehydrate from SQLite
            before = agent.get_state()
            factory.destroy("shp_001")
            restored = await factory.spawn_or_hydrate("shp_001")
            return before, restored

        before, restored = asyncio.run(scenario())

        assert restored.active_sub_agent_ids == before.sub_agents
        assert "ch_import_specialist" in restored.active_sub_agent_ids
        assert "cn_import_specialist" not in restored.active_sub_agent_ids
        assert len(restored.session_history) == 3
        assert [v.event_type for v in restored.validation_history] == [
            ValidationTrigger.MANUAL, ValidationTrigger.SCHEDULED,
        ]
        assert restored.store.serialize().model_dump() == before.memory.knowledge_graph.model_dump()
        store.close()
