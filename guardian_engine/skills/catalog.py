"""
Default capability catalog.

Each skill is stateless: everything it needs arrives in the context dict.
"""

from collections import defaultdict
from typing import Dict, List, Optional

from guardian_engine.core.logging import get_logger
from guardian_engine.models.knowledge import Fact
from guardian_engine.models.results import SEVERITY_RANK, AgentAlert
from guardian_engine.models.skills import SkillCategory, SkillResult
from guardian_engine.orchestrator.collaborators import AnchorService, LedgerAnchorService
from guardian_engine.skills.registry import CapabilityRegistry
from guardian_engine.skills.rules import (
    COMPLIANCE_RULES,
    is_eu,
    required_docs,
    same_country,
)
from guardian_engine.validation.consistency import validate_backward

logger = get_logger(__name__)


class RegulatoryCheckSkill:
    id = "regulatory_check"
    name = "Regulatory Compliance Check"
    category = SkillCategory.REGULATORY
    description = "Validates a route and product against the destination regime's rule table."

    def _applicable_rules(self, context: dict) -> List[dict]:
        destination = context.get("destination")
        origin = context.get("origin")
        product = (context.get("product") or "").lower()
        regulation = context.get("regulation")

        rules = []
        for rule in COMPLIANCE_RULES:
            if rule["destination"] == "EU":
                dest_match = is_eu(destination)
            else:
                dest_match = rule["destination"] == "any" or same_country(destination, rule["destination"])
            origin_match = rule["origin"] == "any" or same_country(origin, rule["origin"])
            prod_match = (
                rule["product_category"] == "General"
                or rule["product_category"].lower() in product
            )
            reg_match = not regulation or regulation.upper() == rule["regulation"]
            if dest_match and origin_match and prod_match and reg_match:
                rules.append(rule)
        return rules

    async def execute(self, context: dict) -> SkillResult:
        rules = self._applicable_rules(context)
        if not rules:
            return SkillResult(
                success=True,
                status="Pass",
                message="No specific regulatory blocking rules found.",
                score=0.9,
                data={"rules_checked": 0, "violations": []},
            )

        violations = []
        documents = []
        for rule in rules:
            documents.extend(required_docs(rule["required_documents"]))
            if rule["rule_id"] == "rule_eudr_eu_import":
                if not context.get("geolocation"):
                    violations.append(f"{rule['regulation']}: Missing Geolocation.")
                if context.get("deforestation_free") is False:
                    violations.append(f"{rule['regulation']}: Product is not deforestation-free.")
            elif rule["rule_id"] == "rule_fsma_usa_import":
                if not context.get("fsvp"):
                    violations.append(f"{rule['regulation']}: Missing FSVP records.")

        if violations:
            return SkillResult(
                success=True,
                status="Fail",
                message=" ".join(violations),
                score=0.0,
                data={"rules_checked": len(rules), "violations": violations},
                required_documents=documents,
            )
        return SkillResult(
            success=True,
            status="Pass",
            message=f"Passed {len(rules)} regulatory rule(s).",
            score=0.95,
            data={"rules_checked": len(rules), "violations": []},
            required_documents=documents,
        )


class DocumentReconciliationSkill:
    id = "document_reconciliation"
    name = "Document Reconciliation"
    category = SkillCategory.INTEGRITY
    description = "Compares freshly ingested facts against everything previously known."

    async def execute(self, context: dict) -> SkillResult:
        new_facts: List[Fact] = context.get("new_facts", [])
        existing_facts: List[Fact] = context.get("existing_facts", [])
        check = validate_backward(new_facts, existing_facts)
        if check.valid:
            return SkillResult(
                success=True,
                status="Clean",
                message="All extracted values align with existing shipment data.",
                score=1.0,
                data={"conflicts": []},
            )
        return SkillResult(
            success=True,
            status="Conflict",
            message=f"{len(check.conflicts)} conflict(s) detected.",
            score=0.0,
            data={"conflicts": [c.model_dump() for c in check.conflicts]},
        )


def _normalize_message(message: str) -> str:
    return " ".join(message.lower().split())


class ConflictScannerSkill:
    """
    Cross-references alerts for contradictory findings.

    Two alerts contradict when they concern the same fact (or say the same
    thing) at different severities. Alerts are annotated and re-ordered,
    never removed.
    """

    id = "conflict_scanner"
    name = "Consistency Conflict Scanner"
    category = SkillCategory.META
    description = "Tags alerts that disagree about the same fact and orders them by severity."

    async def execute(self, context: dict) -> SkillResult:
        alerts: List[AgentAlert] = [a.model_copy(deep=True) for a in context.get("alerts", [])]

        by_key: Dict[str, List[int]] = defaultdict(list)
        for index, alert in enumerate(alerts):
            for fact_id in alert.related_fact_ids:
                by_key[f"fact:{fact_id}"].append(index)
            by_key[f"msg:{_normalize_message(alert.message)}"].append(index)

        pairs = set()
        for indexes in by_key.values():
            for i in indexes:
                for j in indexes:
                    if i < j and alerts[i].severity != alerts[j].severity:
                        pairs.add((i, j))

        for i, j in sorted(pairs):
            for a, b in ((i, j), (j, i)):
                if "conflict" not in alerts[a].tags:
                    alerts[a].tags.append("conflict")
                if alerts[b].id and alerts[b].id not in alerts[a].conflicts_with:
                    alerts[a].conflicts_with.append(alerts[b].id)

        ordered = sorted(alerts, key=lambda a: SEVERITY_RANK[a.severity])

        return SkillResult(
            success=True,
            status="Conflict" if pairs else "Clean",
            message=f"{len(pairs)} contradictory alert pair(s) found." if pairs else "No contradictory findings.",
            score=0.0 if pairs else 1.0,
            data={"alerts": ordered, "conflict_pairs": len(pairs)},
        )


class BlockchainAnchorSkill:
    id = "blockchain_anchor"
    name = "Blockchain Anchor"
    category = SkillCategory.INTEGRITY
    description = "Anchors a document content hash on the ledger."

    def __init__(self, anchor_service: AnchorService):
        self.anchor_service = anchor_service

    async def execute(self, context: dict) -> SkillResult:
        content_hash = context.get("content_hash")
        if not content_hash:
            return SkillResult(
                success=False,
                status="Fail",
                message="No content hash supplied; nothing to anchor.",
            )
        receipt = await self.anchor_service.anchor(content_hash, context.get("metadata"))
        logger.info("Anchored %s as %s", content_hash, receipt.transaction_id)
        return SkillResult(
            success=True,
            status="Anchored",
            message=f"Content hash anchored: {receipt.explorer_url}",
            score=1.0,
            data=receipt.model_dump(mode="json"),
        )


def build_default_registry(anchor_service: Optional[AnchorService] = None) -> CapabilityRegistry:
    """The shipped capability catalog."""
    return CapabilityRegistry([
        RegulatoryCheckSkill(),
        DocumentReconciliationSkill(),
        ConflictScannerSkill(),
        BlockchainAnchorSkill(anchor_service or LedgerAnchorService()),
    ])
