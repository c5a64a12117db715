"""Agent Events — immutable inputs to the Guardian pipeline.

One payload type per event kind; `AgentEvent` is a union discriminated on
`type` so request bodies validate straight into the right class.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EventType(str, Enum):
    DOCUMENT_UPLOAD = "DOCUMENT_UPLOAD"
    ROUTE_UPDATE = "ROUTE_UPDATE"
    USER_MESSAGE = "USER_MESSAGE"


class ShipmentContext(BaseModel):
    """Shipment fields a document may carry."""

    model_config = ConfigDict(frozen=True)

    origin: Optional[str] = None
    destination: Optional[str] = None
    product: Optional[str] = None
    hs_code: Optional[str] = None
    attributes: List[str] = []              # e.g., ["Organic", "Halal"]
    container_type: Optional[str] = None    # e.g., "reefer"
    packaging: Optional[str] = None


class DocumentAnalysis(BaseModel):
    """Output of the external document-analysis service. Treated as opaque."""

    model_config = ConfigDict(frozen=True, extra="allow")

    security_findings: List[dict] = []
    products: List[dict] = []
    certification: dict = {}
    route_mismatch: bool = False
    recommended_documents: List[str] = []


class FactClaim(BaseModel):
    """A claim extracted from a document, not yet a fact."""

    model_config = ConfigDict(frozen=True)

    subject: str = "consignment"
    predicate: str
    object: str
    confidence: float = Field(ge=0, le=1, default=1.0)
    type: str = "extracted_fact"


class DocumentUploadPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: Optional[str] = None
    document_type: Optional[str] = None
    content_hash: Optional[str] = None
    shipment: Optional[ShipmentContext] = None
    analysis: Optional[DocumentAnalysis] = None
    extracted_facts: List[FactClaim] = []


class RouteUpdatePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    fact_id: Optional[str] = None           # Fact invalidated by the route change
    origin: Optional[str] = None
    destination: Optional[str] = None


class UserMessagePayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class DocumentUploadEvent(_EventBase):
    type: Literal["DOCUMENT_UPLOAD"] = "DOCUMENT_UPLOAD"
    payload: DocumentUploadPayload


class RouteUpdateEvent(_EventBase):
    type: Literal["ROUTE_UPDATE"] = "ROUTE_UPDATE"
    payload: RouteUpdatePayload


class UserMessageEvent(_EventBase):
    type: Literal["USER_MESSAGE"] = "USER_MESSAGE"
    payload: UserMessagePayload


AgentEvent = Annotated[
    Union[DocumentUploadEvent, RouteUpdateEvent, UserMessageEvent],
    Field(discriminator="type"),
]

_event_adapter = TypeAdapter(AgentEvent)


def parse_event(data: dict) -> Union[DocumentUploadEvent, RouteUpdateEvent, UserMessageEvent]:
    """Validate a raw event dict into its concrete event class."""
    return _event_adapter.validate_python(data)
