"""
Sub-Agent Factory — the static catalog of sub-agents and their activation
predicates.

`required_ids` is a pure function of the flattened shipment context;
catalog order is registration order.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Type

from guardian_engine.core.logging import get_logger
from guardian_engine.skills.rules import is_eu, same_country
from guardian_engine.subagents.base import SubAgent
from guardian_engine.subagents.context import SummonContext
from guardian_engine.subagents.specialists import (
    ChainOfCustodyAuditor,
    CHImportSpecialist,
    CNImportSpecialist,
    EUDRSpecialist,
    FSMASpecialist,
    HalalKosherGuardian,
    IUUFisheryWatcher,
    LogisticsLingoInterpreter,
    OrganicSentinel,
    SanctionsSentry,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubAgentSpec:
    id: str
    agent_class: Type
    should_activate: Callable[[SummonContext], bool]


def _always(ctx: SummonContext) -> bool:
    return True


DEFAULT_CATALOG: List[SubAgentSpec] = [
    SubAgentSpec("sanctions_sentry", SanctionsSentry, _always),
    SubAgentSpec("logistics_lingo_interpreter", LogisticsLingoInterpreter, _always),
    SubAgentSpec("chain_of_custody_auditor", ChainOfCustodyAuditor, _always),
    SubAgentSpec("eudr_specialist", EUDRSpecialist, lambda ctx: is_eu(ctx.destination)),
    SubAgentSpec("fsma_specialist", FSMASpecialist, lambda ctx: same_country(ctx.destination, "USA")),
    SubAgentSpec("cn_import_specialist", CNImportSpecialist, lambda ctx: same_country(ctx.destination, "China")),
    SubAgentSpec("ch_import_specialist", CHImportSpecialist, lambda ctx: same_country(ctx.destination, "Switzerland")),
    SubAgentSpec("organic_sentinel", OrganicSentinel, lambda ctx: ctx.has_attribute("organic")),
    SubAgentSpec(
        "iuu_fishery_watcher", IUUFisheryWatcher,
        lambda ctx: (ctx.hs_code or "").replace(".", "").strip().startswith("03"),
    ),
    SubAgentSpec(
        "halal_kosher_guardian", HalalKosherGuardian,
        lambda ctx: ctx.has_attribute("halal") or ctx.has_attribute("kosher"),
    ),
]


class SubAgentFactory:
    """Builds sub-agents by id and decides which ones a context requires."""

    def __init__(self, catalog: Optional[Sequence[SubAgentSpec]] = None):
        self._specs: Dict[str, SubAgentSpec] = {}
        for spec in catalog if catalog is not None else DEFAULT_CATALOG:
            if spec.id in self._specs:
                logger.warning("Duplicate sub-agent id %s in catalog; keeping the first", spec.id)
                continue
            self._specs[spec.id] = spec

    def ids(self) -> List[str]:
        return list(self._specs)

    def required_ids(self, context: SummonContext) -> List[str]:
        """Ids whose activation predicate holds, in catalog order."""
        required = []
        for spec in self._specs.values():
            try:
                if spec.should_activate(context):
                    required.append(spec.id)
            except Exception:
                logger.exception("Activation check failed for sub-agent %s", spec.id)
        return required

    def create(self, agent_id: str) -> Optional[SubAgent]:
        spec = self._specs.get(agent_id)
        if spec is None:
            logger.warning("Unknown sub-agent id: %s", agent_id)
            return None
        return spec.agent_class()
