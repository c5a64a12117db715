"""
Capability Registry — named, stateless skills available to sub-agents.

Built once from a catalog and immutable afterwards. A missing skill is a
skipped feature, never a crash.
"""

from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Protocol

from guardian_engine.core.logging import get_logger
from guardian_engine.models.skills import SkillResult

logger = get_logger(__name__)


class Skill(Protocol):
    """Protocol for a capability — pluggable domain logic."""

    id: str
    name: str
    category: str
    description: str

    async def execute(self, context: dict) -> SkillResult: ...


class CapabilityRegistry:
    """Immutable id → skill map."""

    def __init__(self, skills: Iterable[Skill] = ()):
        table: Dict[str, Skill] = {}
        for skill in skills:
            if skill.id in table:
                logger.warning("Duplicate skill id %s; keeping the first registration", skill.id)
                continue
            table[skill.id] = skill
        self._skills = MappingProxyType(table)
        logger.info("Capability registry built: %s", self.by_category())

    def get(self, skill_id: str) -> Optional[Skill]:
        return self._skills.get(skill_id)

    def has(self, skill_id: str) -> bool:
        return skill_id in self._skills

    def list(self) -> List[Skill]:
        return list(self._skills.values())

    def ids(self) -> List[str]:
        return list(self._skills.keys())

    def by_category(self) -> Dict[str, List[str]]:
        """Skill ids grouped by category, for diagnostics."""
        grouped: Dict[str, List[str]] = {}
        for skill in self._skills.values():
            category = getattr(skill.category, "value", skill.category)
            grouped.setdefault(category, []).append(skill.id)
        return grouped

    async def execute(self, skill_id: str, context: dict) -> SkillResult:
        """
        Run a skill by id. Absent skills come back as `skipped`, failing
        skills as `error`; neither raises.
        """
        skill = self._skills.get(skill_id)
        if skill is None:
            return SkillResult(
                success=False,
                status="skipped",
                message=f"Skill {skill_id} not registered",
            )
        try:
            return await skill.execute(context)
        except Exception as e:
            logger.exception("Skill %s failed", skill_id)
            return SkillResult(
                success=False,
                status="error",
                message=str(e) or type(e).__name__,
            )
