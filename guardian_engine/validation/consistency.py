"""
Consistency Validator — backward, forward and full-chain checks over a
shipment's fact history.

Pure functions: no store access, no clock beyond the result timestamp.
Callable on a schedule as well as right after an event.

  Backward: did a new document contradict an earlier one?
  Forward:  are the documents the roadmap expects accounted for?
  Chain:    is the derivation graph structurally sound?
"""

import re
from typing import Dict, Iterable, List, Optional, Sequence, Union

from guardian_engine.knowledge_graph.store import propagation_source, propagation_target
from guardian_engine.models.knowledge import Fact, FactRelationship
from guardian_engine.models.results import RequiredDocument
from guardian_engine.models.validation import (
    BackwardCheck,
    ChainCheck,
    ConsistencyConflict,
    ConsistencyGap,
    ForwardCheck,
    ValidationResult,
    ValidationStatus,
    ValidationTrigger,
)

CRITICAL_FIELDS = ("hs_code", "origin_country", "destination_country")

# Consignment predicates that may hold only one live value at a time
SINGLE_VALUED_FIELDS = {
    "origin_country": "origins",
    "destination_country": "destinations",
    "product_name": "products",
    "seller_name": "sellers",
    "hs_code": "HS codes",
}

RoadmapItem = Union[RequiredDocument, str]


def normalize_field_value(value: str, field: str) -> str:
    """Canonical form used when comparing two values of the same field."""
    if field == "hs_code":
        return re.sub(r"[^0-9]", "", value)[:6]
    return value.strip().lower()


def _conflict_severity(field: str) -> str:
    return "critical" if field in CRITICAL_FIELDS else "warning"


def validate_backward(
    new_facts: Sequence[Fact],
    existing_facts: Sequence[Fact],
) -> BackwardCheck:
    """
    Compare each new fact with the latest prior fact for the same subject
    and predicate. One conflict per contradicted new fact.
    """
    conflicts: List[ConsistencyConflict] = []
    new_ids = {f.id for f in new_facts}

    for new_fact in new_facts:
        prior = [
            f for f in existing_facts
            if f.subject == new_fact.subject
            and f.predicate == new_fact.predicate
            and f.id not in new_ids
        ]
        if not prior:
            continue
        latest = prior[-1]
        field = new_fact.predicate
        if normalize_field_value(latest.object, field) == normalize_field_value(new_fact.object, field):
            continue
        conflicts.append(ConsistencyConflict(
            field=field,
            previous_value=latest.object,
            current_value=new_fact.object,
            previous_source=latest.source,
            current_source=new_fact.source,
            severity=_conflict_severity(field),
            previous_fact_id=latest.id,
            current_fact_id=new_fact.id,
        ))

    return BackwardCheck(conflicts=conflicts, valid=not conflicts)


def _normalize_doc_name(name: str) -> str:
    return " ".join(re.sub(r"[^a-z0-9]+", " ", name.lower()).split())


def _slug(name: str) -> str:
    return _normalize_doc_name(name).replace(" ", "_")


def document_matches(expected: str, uploaded: str) -> bool:
    """Case-insensitive name match; either name may contain the other."""
    e = _normalize_doc_name(expected)
    u = _normalize_doc_name(uploaded)
    if not e or not u:
        return False
    if e == u:
        return True
    shorter = min(e, u, key=len)
    return len(shorter) >= 3 and (e in u or u in e)


def _has_document(uploaded: Iterable[str], *keywords: str) -> bool:
    names = [_normalize_doc_name(d) for d in uploaded]
    return any(k in name for name in names for k in keywords)


def _builtin_expectations(
    facts: Sequence[Fact], uploaded: Sequence[str]
) -> List[ConsistencyGap]:
    """Document pairings every shipment needs regardless of its roadmap."""
    gaps = []
    has_invoice = _has_document(uploaded, "invoice")

    if has_invoice and not _has_document(uploaded, "packing"):
        gaps.append(ConsistencyGap(
            field="packing_list",
            expected="Packing List",
            reason="Invoice uploaded but no Packing List found - required for customs",
            severity="critical",
        ))
    if has_invoice and not _has_document(uploaded, "lading", "bill"):
        gaps.append(ConsistencyGap(
            field="bill_of_lading",
            expected="Bill of Lading",
            reason="Invoice uploaded but no B/L found - required for shipment",
            severity="critical",
        ))

    hs_code = next((f.object for f in reversed(facts) if f.predicate == "hs_code"), None)
    if hs_code and normalize_field_value(hs_code, "hs_code").startswith("03"):
        if not _has_document(uploaded, "health", "catch"):
            gaps.append(ConsistencyGap(
                field="health_certificate",
                expected="Health Certificate (IUU)",
                reason="Seafood product (HS 03) requires catch/health certificate",
                severity="critical",
            ))
    return gaps


def validate_forward(
    current_facts: Sequence[Fact],
    uploaded_document_ids: Sequence[str],
    roadmap: Sequence[RoadmapItem] = (),
) -> ForwardCheck:
    """One gap per expected document that no uploaded id accounts for."""
    gaps: List[ConsistencyGap] = []

    for item in roadmap:
        if isinstance(item, str):
            item = RequiredDocument(name=item)
        if any(document_matches(item.name, uploaded) for uploaded in uploaded_document_ids):
            continue
        gaps.append(ConsistencyGap(
            field=_slug(item.name),
            expected=item.name,
            reason=item.reason or f"{item.name} is expected for this shipment but has not been uploaded",
            severity="critical" if item.mandatory else "warning",
        ))

    gaps.extend(_builtin_expectations(current_facts, uploaded_document_ids))

    # Keep the first gap per field
    unique: Dict[str, ConsistencyGap] = {}
    for gap in gaps:
        if gap.field in unique:
            continue
        if any(document_matches(gap.expected, g.expected) for g in unique.values()):
            continue
        unique[gap.field] = gap

    result = list(unique.values())
    return ForwardCheck(gaps=result, valid=not result)


def _find_cycle(edges: Dict[str, List[str]]) -> Optional[List[str]]:
    """Return one cycle in the propagation graph, if any."""
    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[str, int] = {}
    path: List[str] = []

    def visit(node: str) -> Optional[List[str]]:
        color[node] = GREY
        path.append(node)
        for nxt in edges.get(node, []):
            state = color.get(nxt, WHITE)
            if state == GREY:
                return path[path.index(nxt):] + [nxt]
            if state == WHITE:
                found = visit(nxt)
                if found:
                    return found
        path.pop()
        color[node] = BLACK
        return None

    for node in list(edges):
        if color.get(node, WHITE) == WHITE:
            found = visit(node)
            if found:
                return found
    return None


def validate_full_chain(
    facts: Sequence[Fact],
    relationships: Sequence[FactRelationship] = (),
) -> ChainCheck:
    """
    Structural integrity of the fact history.

    `facts` should include invalidated facts so orphans can be detected.
    """
    issues: List[str] = []
    by_id = {f.id: f for f in facts}
    edges: Dict[str, List[str]] = {}

    for rel in relationships:
        missing = [fid for fid in (rel.from_fact_id, rel.to_fact_id) if fid not in by_id]
        if missing:
            issues.append(f"Dangling relationship {rel.id}: fact {missing[0]} not found")
            continue

        source_id = propagation_source(rel)
        target_id = propagation_target(rel)
        edges.setdefault(source_id, []).append(target_id)

        source, target = by_id[source_id], by_id[target_id]
        if target.is_valid and not source.is_valid:
            issues.append(
                f"Orphaned fact {target.id} ({target.predicate}) derives from "
                f"invalidated fact {source.id}"
            )

    cycle = _find_cycle(edges)
    if cycle:
        issues.append(f"Dependency cycle detected: {' -> '.join(cycle)}")

    live = [f for f in facts if f.is_valid]
    for field, label in SINGLE_VALUED_FIELDS.items():
        values: List[str] = []
        for f in live:
            if f.predicate != field:
                continue
            normalized = normalize_field_value(f.object, field)
            if normalized not in values:
                values.append(normalized)
        if len(values) > 1:
            issues.append(f"Inconsistent {label} detected: {', '.join(values)}")

    return ChainCheck(issues=issues, valid=not issues)


def build_validation_result(
    document_type: Optional[str],
    trigger: ValidationTrigger,
    backward: BackwardCheck,
    forward: ForwardCheck,
    chain: Optional[ChainCheck] = None,
    checked_fields: Sequence[str] = (),
) -> ValidationResult:
    """Combine the three checks. Flagged iff backward or forward failed."""
    valid = backward.valid and forward.valid
    return ValidationResult(
        document_type=document_type or "N/A",
        event_type=trigger,
        backward_valid=backward.valid,
        forward_valid=forward.valid,
        conflicts=backward.conflicts,
        gaps=forward.gaps,
        chain_issues=chain.issues if chain else [],
        status=ValidationStatus.VALID if valid else ValidationStatus.FLAGGED,
        checked_fields=list(checked_fields),
    )
