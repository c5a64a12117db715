"""Knowledge Graph — typed facts and their derivation relationships."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RelationshipType(str, Enum):
    DEPENDS_ON = "depends_on"   # from depends on to: invalidating `to` invalidates `from`
    VALIDATES = "validates"     # from validates to: invalidating `from` invalidates `to`


class Fact(BaseModel):
    """An atomic, timestamped subject-predicate-object claim."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: str                               # e.g., "document_fact", "shipment_fact"
    subject: str                            # e.g., "consignment"
    predicate: str                          # e.g., "origin_country"
    object: str                             # e.g., "Switzerland"
    confidence: float = Field(ge=0, le=1, default=1.0)
    source: str = "system"
    timestamp: datetime
    invalidated_by: Optional[str] = None    # Fact id whose invalidation reached this one

    @property
    def is_valid(self) -> bool:
        return self.invalidated_by is None


class FactRelationship(BaseModel):
    """A derivation edge between two facts."""

    model_config = ConfigDict(frozen=True)

    id: str
    from_fact_id: str
    to_fact_id: str
    relationship_type: RelationshipType = RelationshipType.DEPENDS_ON
    confidence: float = Field(ge=0, le=1, default=1.0)


class KnowledgeGraph(BaseModel):
    """Serialized form of one shipment's fact store."""

    facts: List[Fact] = []
    relationships: List[FactRelationship] = []
    version: int = 1
