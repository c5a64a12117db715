"""Skill results and categories."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from guardian_engine.models.results import RequiredDocument


class SkillCategory(str, Enum):
    REGULATORY = "regulatory"
    INTEGRITY = "integrity"
    TRADE = "trade"
    META = "meta"


class SkillResult(BaseModel):
    """Outcome of one skill invocation."""

    success: bool
    status: str                             # e.g., "Pass", "Fail", "Conflict", "skipped", "error"
    message: str = ""
    score: Optional[float] = Field(ge=0, le=1, default=None)
    data: dict = {}
    required_documents: List[RequiredDocument] = []
