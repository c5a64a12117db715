"""
Fact Store — the append-only, versioned knowledge graph of one shipment.

Updated by: Document ingestion, route changes, sub-agent memory deltas
Queried by: Summoner, sub-agents, Consistency Validator

Behavioral Contract:
- Facts are never removed. Correction is invalidation plus a new fact.
- Invalidation cascades breadth-first along derivation edges.
- The propagation relation is acyclic; an edge closing a cycle is rejected.
- Dangling edges are kept and logged.
"""

from collections import deque
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from guardian_engine.core.errors import DependencyCycleError
from guardian_engine.core.logging import get_logger
from guardian_engine.models.knowledge import (
    Fact,
    FactRelationship,
    KnowledgeGraph,
    RelationshipType,
)

logger = get_logger(__name__)


def propagation_targets(
    relationships: Iterable[FactRelationship], fact_id: str
) -> List[str]:
    """Facts that lose validity when `fact_id` is invalidated."""
    targets = []
    for rel in relationships:
        if rel.relationship_type == RelationshipType.DEPENDS_ON and rel.to_fact_id == fact_id:
            targets.append(rel.from_fact_id)
        elif rel.relationship_type == RelationshipType.VALIDATES and rel.from_fact_id == fact_id:
            targets.append(rel.to_fact_id)
    return targets


def propagation_source(rel: FactRelationship) -> str:
    if rel.relationship_type == RelationshipType.VALIDATES:
        return rel.from_fact_id
    return rel.to_fact_id


def propagation_target(rel: FactRelationship) -> str:
    if rel.relationship_type == RelationshipType.VALIDATES:
        return rel.to_fact_id
    return rel.from_fact_id


class FactStore:
    """
    In-memory fact store for one shipment.
    Persisted by serializing into the orchestrator snapshot.
    """

    def __init__(
        self,
        facts: Optional[List[Fact]] = None,
        relationships: Optional[List[FactRelationship]] = None,
        version: int = 1,
    ):
        self._facts: Dict[str, Fact] = {f.id: f for f in (facts or [])}
        self._relationships: List[FactRelationship] = list(relationships or [])
        self._version = version

    @property
    def version(self) -> int:
        return self._version

    def add_fact(self, fact: Fact, depends_on: Optional[List[str]] = None) -> Fact:
        """
        Add a fact. No edges are implied; pass `depends_on` to record the
        facts this one was derived from.
        """
        if fact.id in self._facts:
            logger.warning("Fact %s already present; keeping the original", fact.id)
            return self._facts[fact.id]

        self._facts[fact.id] = fact
        self._version += 1

        for source_id in depends_on or []:
            self.add_relationship(FactRelationship(
                id=f"rel_{uuid4().hex[:12]}",
                from_fact_id=fact.id,
                to_fact_id=source_id,
                relationship_type=RelationshipType.DEPENDS_ON,
            ))
        return fact

    def add_relationship(self, relationship: FactRelationship) -> None:
        """Record a derivation edge. Raises DependencyCycleError on a cycle."""
        for endpoint in (relationship.from_fact_id, relationship.to_fact_id):
            if endpoint not in self._facts:
                logger.warning(
                    "Relationship %s references unknown fact %s; keeping dangling edge",
                    relationship.id, endpoint,
                )

        source = propagation_source(relationship)
        target = propagation_target(relationship)
        if source == target or self._reaches(target, source):
            raise DependencyCycleError(
                f"Relationship {relationship.id} ({relationship.from_fact_id} "
                f"{relationship.relationship_type.value} {relationship.to_fact_id}) "
                f"would create a dependency cycle"
            )

        self._relationships.append(relationship)
        self._version += 1

    def _reaches(self, start: str, goal: str) -> bool:
        """True if invalidating `start` would eventually reach `goal`."""
        seen = {start}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            for nxt in propagation_targets(self._relationships, current):
                if nxt == goal:
                    return True
                if nxt not in seen:
                    seen.add(nxt)
                    queue.append(nxt)
        return False

    def get_fact(self, fact_id: str) -> Optional[Fact]:
        """Get a specific fact by ID, invalidated or not."""
        return self._facts.get(fact_id)

    def get_all_facts(self, include_invalidated: bool = False) -> List[Fact]:
        """Facts in insertion order. Invalidated facts are excluded by default."""
        if include_invalidated:
            return list(self._facts.values())
        return [f for f in self._facts.values() if f.is_valid]

    def get_all_relationships(self) -> List[FactRelationship]:
        return list(self._relationships)

    def find(self, predicate: str, subject: Optional[str] = None) -> List[Fact]:
        """Live facts with the given predicate (and subject, if given)."""
        return [
            f for f in self.get_all_facts()
            if f.predicate == predicate and (subject is None or f.subject == subject)
        ]

    def invalidate_fact(self, fact_id: str) -> List[str]:
        """
        Invalidate a fact and everything derived from it.

        Returns the ids newly invalidated by this call, trigger first.
        Already-invalidated facts are skipped.
        """
        trigger = self._facts.get(fact_id)
        if trigger is None:
            logger.warning("Cannot invalidate unknown fact %s", fact_id)
            return []
        if not trigger.is_valid:
            return []

        invalidated: List[str] = []
        visited = {fact_id}
        queue = deque([fact_id])

        while queue:
            current_id = queue.popleft()
            current = self._facts.get(current_id)
            if current is None or not current.is_valid:
                continue

            self._facts[current_id] = current.model_copy(
                update={"invalidated_by": fact_id}
            )
            invalidated.append(current_id)

            for dependent_id in propagation_targets(self._relationships, current_id):
                if dependent_id not in visited:
                    visited.add(dependent_id)
                    queue.append(dependent_id)

        self._version += 1
        logger.info("Invalidated %d fact(s) starting at %s", len(invalidated), fact_id)
        return invalidated

    def detect_conflicts(self, new_fact: Fact) -> List[Fact]:
        """Live facts with the same subject and predicate but a different object."""
        return [
            existing for existing in self.get_all_facts()
            if existing.subject == new_fact.subject
            and existing.predicate == new_fact.predicate
            and existing.object != new_fact.object
            and existing.id != new_fact.id
        ]

    def serialize(self) -> KnowledgeGraph:
        """Get a serializable snapshot of the graph."""
        return KnowledgeGraph(
            facts=list(self._facts.values()),
            relationships=list(self._relationships),
            version=self._version,
        )

    @classmethod
    def deserialize(cls, graph: KnowledgeGraph) -> "FactStore":
        """Rebuild a store from a snapshot. Edges are trusted as stored."""
        return cls(
            facts=list(graph.facts),
            relationships=list(graph.relationships),
            version=graph.version,
        )
