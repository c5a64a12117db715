"""
Optional collaborators injected into the orchestrator at construction time.

The core calls them through these protocols and treats a missing
collaborator as a no-op.
"""

import hashlib
from datetime import datetime
from typing import List, Optional, Protocol

from pydantic import BaseModel

from guardian_engine.core.logging import get_logger
from guardian_engine.models.defense import ReviewRequest

logger = get_logger(__name__)


class ReviewQueue(Protocol):
    """Human review queue for high-gravity audit matches."""

    async def submit(self, request: ReviewRequest) -> None: ...


class InMemoryReviewQueue:
    """Review queue kept in process, for tests and single-node deployments."""

    def __init__(self):
        self._requests: List[ReviewRequest] = []

    async def submit(self, request: ReviewRequest) -> None:
        self._requests.append(request)
        logger.info(
            "Review requested for event %s (profile %s, gravity %.2f)",
            request.event_id, request.profile_name, request.gravity_score,
        )

    @property
    def pending(self) -> List[ReviewRequest]:
        return list(self._requests)


class AnchorReceipt(BaseModel):
    content_hash: str
    transaction_id: str
    explorer_url: str
    anchored_at: datetime


class AnchorService(Protocol):
    """Blockchain anchoring of content hashes."""

    async def anchor(self, content_hash: str, metadata: Optional[dict] = None) -> AnchorReceipt: ...


class LedgerAnchorService:
    """
    In-process anchor that derives a deterministic transaction reference
    from the content hash. Stands in for the network ledger until one is wired.
    """

    def __init__(self, explorer_base_url: str = "https://explorer.iota.org/mainnet/message"):
        self.explorer_base_url = explorer_base_url.rstrip("/")
        self._receipts: List[AnchorReceipt] = []

    async def anchor(self, content_hash: str, metadata: Optional[dict] = None) -> AnchorReceipt:
        transaction_id = hashlib.sha256(f"anchor:{content_hash}".encode()).hexdigest()
        receipt = AnchorReceipt(
            content_hash=content_hash,
            transaction_id=transaction_id,
            explorer_url=f"{self.explorer_base_url}/{transaction_id}",
            anchored_at=datetime.utcnow(),
        )
        self._receipts.append(receipt)
        return receipt

    @property
    def receipts(self) -> List[AnchorReceipt]:
        return list(self._receipts)
