"""Consistency Validation — backward conflicts, forward gaps, chain issues."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class ValidationTrigger(str, Enum):
    UPLOAD = "upload"
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class ValidationStatus(str, Enum):
    VALID = "valid"
    FLAGGED = "flagged"


class ConsistencyConflict(BaseModel):
    """A new fact contradicting a prior fact about the same subject."""

    field: str
    previous_value: str
    current_value: str
    previous_source: str = ""
    current_source: str = ""
    severity: str = "warning"               # "critical" | "warning"
    previous_fact_id: Optional[str] = None
    current_fact_id: Optional[str] = None


class ConsistencyGap(BaseModel):
    """An expected document that has not been uploaded."""

    field: str
    expected: str
    reason: str
    severity: str = "warning"


class BackwardCheck(BaseModel):
    conflicts: List[ConsistencyConflict] = []
    valid: bool = True


class ForwardCheck(BaseModel):
    gaps: List[ConsistencyGap] = []
    valid: bool = True


class ChainCheck(BaseModel):
    issues: List[str] = []
    valid: bool = True


class ValidationResult(BaseModel):
    document_type: str = "N/A"
    event_type: ValidationTrigger
    backward_valid: bool
    forward_valid: bool
    conflicts: List[ConsistencyConflict] = []
    gaps: List[ConsistencyGap] = []
    chain_issues: List[str] = []
    status: ValidationStatus
    checked_fields: List[str] = []
    checked_at: datetime = Field(default_factory=datetime.utcnow)


class ValidationHistoryEntry(BaseModel):
    id: str
    timestamp: datetime
    document_type: Optional[str] = None
    event_type: ValidationTrigger
    backward_valid: bool
    forward_valid: bool
    conflict_count: int
    gap_count: int
    status: ValidationStatus
    summary: str
