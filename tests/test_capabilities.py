"""Tests for the Capability Registry and the shipped skills."""

import asyncio
from datetime import datetime

from guardian_engine.models.knowledge import Fact
from guardian_engine.models.results import AgentAlert, AlertSeverity
from guardian_engine.models.skills import SkillCategory, SkillResult
from guardian_engine.orchestrator.collaborators import LedgerAnchorService
from guardian_engine.skills.catalog import (
    BlockchainAnchorSkill,
    ConflictScannerSkill,
    DocumentReconciliationSkill,
    RegulatoryCheckSkill,
    build_default_registry,
)
from guardian_engine.skills.registry import CapabilityRegistry
from guardian_engine.skills.rules import canonical_country, is_eu, required_docs, same_country


class _ExplodingSkill:
    id = "exploding"
    name = "Exploding"
    category = SkillCategory.META
    description = "Always raises."

    async def execute(self, context: dict) -> SkillResult:
        raise RuntimeError("boom")


class _EchoSkill:
    category = SkillCategory.TRADE
    description = "Echoes its context."

    def __init__(self, skill_id: str, name: str = "Echo"):
        self.id = skill_id
        self.name = name

    async def execute(self, context: dict) -> SkillResult:
        return SkillResult(success=True, status="Pass", data=dict(context))


def _alert(message: str, severity: AlertSeverity, fact_ids=(), alert_id=None) -> AgentAlert:
    return AgentAlert(
        id=alert_id,
        severity=severity,
        message=message,
        related_fact_ids=list(fact_ids),
    )


def _fact(fact_id: str, predicate: str, obj: str) -> Fact:
    return Fact(
        id=fact_id,
        type="shipment_fact",
        subject="consignment",
        predicate=predicate,
        object=obj,
        source="doc",
        timestamp=datetime.utcnow(),
    )


class TestCapabilityRegistry:
    def test_default_registry_order(self):
        registry = build_default_registry()
        assert registry.ids() == [
            "regulatory_check",
            "document_reconciliation",
            "conflict_scanner",
            "blockchain_anchor",
        ]

    def test_by_category(self):
        grouped = build_default_registry().by_category()
        assert grouped["regulatory"] == ["regulatory_check"]
        assert grouped["integrity"] == ["document_reconciliation", "blockchain_anchor"]
        assert grouped["meta"] == ["conflict_scanner"]

    def test_missing_skill_is_skipped(self):
        registry = CapabilityRegistry([])
        result = asyncio.run(registry.execute("regulatory_check", {}))
        assert not result.success
        assert result.status == "skipped"
        assert not registry.has("regulatory_check")
        assert registry.get("regulatory_check") is None

    def test_failing_skill_becomes_error_result(self):
        registry = CapabilityRegistry([_ExplodingSkill()])
        result = asyncio.run(registry.execute("exploding", {}))
        assert not result.success
        assert result.status == "error"
        assert "boom" in result.message

    def test_duplicate_id_keeps_first(self):
        registry = CapabilityRegistry([_EchoSkill("echo", "First"), _EchoSkill("echo", "Second")])
        assert registry.ids() == ["echo"]
        assert registry.get("echo").name == "First"

    def test_execute_passes_context(self):
        registry = CapabilityRegistry([_EchoSkill("echo")])
        result = asyncio.run(registry.execute("echo", {"hs_code": "0901"}))
        assert result.data == {"hs_code": "0901"}


class TestCountryRules:
    def test_aliases(self):
        assert canonical_country("United States") == "USA"
        assert canonical_country(" PRC ") == "China"
        assert canonical_country(None) is None

    def test_eu_membership(self):
        assert is_eu("Germany")
        assert is_eu("the Netherlands")
        assert not is_eu("Switzerland")
        assert not is_eu(None)

    def test_same_country(self):
        assert same_country("us", "USA")
        assert not same_country("", "USA")

    def test_required_docs_are_copies(self):
        docs = required_docs("ORGANIC")
        docs[0].reason = "annotated"
        assert required_docs("ORGANIC")[0].reason is None
        assert required_docs("UNKNOWN") == []


class TestRegulatoryCheck:
    def setup_method(self):
        self.skill = RegulatoryCheckSkill()

    def test_eu_import_without_geolocation_fails(self):
        result = asyncio.run(self.skill.execute({
            "regulation": "EUDR",
            "origin": "Brazil",
            "destination": "Germany",
            "product": "Coffee",
        }))
        assert result.status == "Fail"
        assert "EUDR: Missing Geolocation." in result.message
        assert result.data["rules_checked"] == 1
        assert {d.name for d in result.required_documents} == {
            "EUDR Geolocation Statement", "Due Diligence Statement",
        }

    def test_eu_import_with_geolocation_passes(self):
        result = asyncio.run(self.skill.execute({
            "regulation": "EUDR",
            "destination": "France",
            "geolocation": "-3.1, -60.0",
            "deforestation_free": True,
        }))
        assert result.status == "Pass"
        assert result.data["violations"] == []

    def test_not_deforestation_free_fails(self):
        result = asyncio.run(self.skill.execute({
            "destination": "Spain",
            "geolocation": "-3.1, -60.0",
            "deforestation_free": False,
        }))
        assert "not deforestation-free" in result.message

    def test_usa_without_fsvp_fails(self):
        result = asyncio.run(self.skill.execute({"regulation": "FSMA", "destination": "USA"}))
        assert result.status == "Fail"
        assert "FSMA: Missing FSVP records." in result.message

    def test_usa_with_fsvp_passes(self):
        result = asyncio.run(self.skill.execute({"destination": "United States", "fsvp": True}))
        assert result.status == "Pass"

    def test_no_matching_rule_passes(self):
        result = asyncio.run(self.skill.execute({"destination": "Japan"}))
        assert result.status == "Pass"
        assert result.data["rules_checked"] == 0

    def test_regulation_filter(self):
        result = asyncio.run(self.skill.execute({"regulation": "FSMA", "destination": "Germany"}))
        assert result.data["rules_checked"] == 0


class TestDocumentReconciliation:
    def test_clean(self):
        result = asyncio.run(DocumentReconciliationSkill().execute({
            "new_facts": [_fact("f2", "origin_country", "Brazil")],
            "existing_facts": [_fact("f1", "origin_country", "brazil")],
        }))
        assert result.status == "Clean"
        assert result.data["conflicts"] == []

    def test_conflict(self):
        result = asyncio.run(DocumentReconciliationSkill().execute({
            "new_facts": [_fact("f2", "origin_country", "Germany")],
            "existing_facts": [_fact("f1", "origin_country", "Switzerland")],
        }))
        assert result.status == "Conflict"
        conflict = result.data["conflicts"][0]
        assert conflict["previous_value"] == "Switzerland"
        assert conflict["current_fact_id"] == "f2"


class TestConflictScanner:
    def test_contradicting_alerts_are_tagged(self):
        alerts = [
            _alert("Origin looks fine", AlertSeverity.INFO, ["f1"], "a1"),
            _alert("Origin mismatch", AlertSeverity.CRITICAL, ["f1"], "a2"),
        ]
        result = asyncio.run(ConflictScannerSkill().execute({"alerts": alerts}))

        scanned = {a.id: a for a in result.data["alerts"]}
        assert result.data["conflict_pairs"] == 1
        assert "conflict" in scanned["a1"].tags
        assert scanned["a1"].conflicts_with == ["a2"]
        assert scanned["a2"].conflicts_with == ["a1"]

    def test_same_message_different_severity_conflicts(self):
        alerts = [
            _alert("Check GACC registration", AlertSeverity.WARNING, alert_id="a1"),
            _alert("check  gacc registration", AlertSeverity.CRITICAL, alert_id="a2"),
        ]
        result = asyncio.run(ConflictScannerSkill().execute({"alerts": alerts}))
        assert result.status == "Conflict"

    def test_same_severity_is_not_a_conflict(self):
        alerts = [
            _alert("A", AlertSeverity.WARNING, ["f1"], "a1"),
            _alert("B", AlertSeverity.WARNING, ["f1"], "a2"),
        ]
        result = asyncio.run(ConflictScannerSkill().execute({"alerts": alerts}))
        assert result.status == "Clean"
        assert all("conflict" not in a.tags for a in result.data["alerts"])

    def test_orders_by_severity_and_never_drops(self):
        alerts = [
            _alert("info", AlertSeverity.INFO, alert_id="a1"),
            _alert("warn", AlertSeverity.WARNING, alert_id="a2"),
            _alert("crit", AlertSeverity.CRITICAL, alert_id="a3"),
            _alert("warn 2", AlertSeverity.WARNING, alert_id="a4"),
        ]
        result = asyncio.run(ConflictScannerSkill().execute({"alerts": alerts}))
        assert [a.id for a in result.data["alerts"]] == ["a3", "a2", "a4", "a1"]

    def test_input_alerts_are_not_mutated(self):
        alerts = [
            _alert("x", AlertSeverity.INFO, ["f1"], "a1"),
            _alert("y", AlertSeverity.CRITICAL, ["f1"], "a2"),
        ]
        asyncio.run(ConflictScannerSkill().execute({"alerts": alerts}))
        assert alerts[0].tags == []


class TestBlockchainAnchor:
    def test_anchor_records_receipt(self):
        service = LedgerAnchorService()
        skill = BlockchainAnchorSkill(service)

        result = asyncio.run(skill.execute({"content_hash": "abc123"}))

        assert result.success
        assert result.status == "Anchored"
        assert result.data["content_hash"] == "abc123"
        assert result.data["explorer_url"].endswith(result.data["transaction_id"])
        assert len(service.receipts) == 1

    def test_anchor_is_deterministic_per_hash(self):
        service = LedgerAnchorService()
        first = asyncio.run(service.anchor("abc123"))
        second = asyncio.run(service.anchor("abc123"))
        assert first.transaction_id == second.transaction_id

    def test_missing_hash_fails(self):
        result = asyncio.run(BlockchainAnchorSkill(LedgerAnchorService()).execute({}))
        assert not result.success
        assert result.status == "Fail"
