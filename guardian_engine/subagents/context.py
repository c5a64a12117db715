"""Flattened shipment context used to decide sub-agent membership."""

from typing import FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from guardian_engine.models.knowledge import Fact

# predicate -> context field
CONTEXT_PREDICATES = {
    "destination_country": "destination",
    "origin_country": "origin",
    "hs_code": "hs_code",
    "product_name": "product",
    "container_type": "container_type",
    "packaging": "packaging",
}

ATTRIBUTE_PREFIX = "is_"
_TRUTHY = ("true", "yes", "1")


class SummonContext(BaseModel):
    """The allow-listed view of the fact set the activation predicates see."""

    model_config = ConfigDict(frozen=True)

    destination: Optional[str] = None
    origin: Optional[str] = None
    hs_code: Optional[str] = None
    product: Optional[str] = None
    container_type: Optional[str] = None
    packaging: Optional[str] = None
    attributes: FrozenSet[str] = frozenset()   # lowercase, e.g. {"organic", "halal"}

    def has_attribute(self, name: str) -> bool:
        return name.lower() in self.attributes


def flatten_context(facts: Iterable[Fact]) -> SummonContext:
    """
    Collapse live facts into a SummonContext.

    Only allow-listed predicates are read; for each, the last live fact wins.
    `is_<attribute>` facts with a truthy object set the attribute.
    """
    values = {}
    flags = {}
    for fact in facts:
        if not fact.is_valid:
            continue
        field = CONTEXT_PREDICATES.get(fact.predicate)
        if field:
            values[field] = fact.object
        elif fact.predicate.startswith(ATTRIBUTE_PREFIX):
            name = fact.predicate[len(ATTRIBUTE_PREFIX):].lower()
            flags[name] = fact.object.strip().lower() in _TRUTHY

    return SummonContext(
        **values,
        attributes=frozenset(name for name, on in flags.items() if on),
    )
