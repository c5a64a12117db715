"""
Snapshot Store — durable home of orchestrator snapshots, keyed by shipment id.

Behavioral Contract:
- get returns None for an unknown shipment
- upsert replaces the stored state and stamps updated_at
- Backend failures surface as SnapshotStoreError; the factory decides what
  to do about them
"""

import hashlib
import json
import sqlite3
from datetime import datetime
from typing import Dict, Optional, Protocol

from pydantic import ValidationError

from guardian_engine.core.errors import SnapshotStoreError
from guardian_engine.core.logging import get_logger
from guardian_engine.models.memory import OrchestratorSnapshot, StoredSnapshot

logger = get_logger(__name__)


def snapshot_hash(snapshot: OrchestratorSnapshot) -> str:
    """sha256 over the canonical JSON form of a snapshot."""
    payload = json.dumps(snapshot.model_dump(mode="json"), sort_keys=True, default=str)
    return hashlib.sha256(payload.encode()).hexdigest()


class SnapshotStore(Protocol):
    async def get(self, shipment_id: str) -> Optional[StoredSnapshot]: ...

    async def upsert(self, shipment_id: str, snapshot: OrchestratorSnapshot) -> StoredSnapshot: ...


class InMemorySnapshotStore:
    """Dict-backed store for tests and single-process use."""

    def __init__(self):
        self._rows: Dict[str, StoredSnapshot] = {}

    async def get(self, shipment_id: str) -> Optional[StoredSnapshot]:
        row = self._rows.get(shipment_id)
        return row.model_copy(deep=True) if row else None

    async def upsert(self, shipment_id: str, snapshot: OrchestratorSnapshot) -> StoredSnapshot:
        row = StoredSnapshot(
            state=snapshot.model_copy(deep=True),
            updated_at=datetime.utcnow(),
            content_hash=snapshot_hash(snapshot),
        )
        self._rows[shipment_id] = row
        return row

    def __len__(self) -> int:
        return len(self._rows)


class SQLiteSnapshotStore:
    """
    SQLite-backed snapshot store.
    One row per shipment; the snapshot is stored as JSON with its content hash.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                shipment_id TEXT PRIMARY KEY,
                agent_id TEXT NOT NULL,
                state_json TEXT NOT NULL,
                content_hash TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                created_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
        """)
        self._conn.commit()

    async def get(self, shipment_id: str) -> Optional[StoredSnapshot]:
        try:
            row = self._conn.execute(
                "SELECT state_json, content_hash, updated_at FROM snapshots WHERE shipment_id = ?",
                (shipment_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise SnapshotStoreError(f"Failed to read snapshot for {shipment_id}: {e}") from e

        if row is None:
            return None
        try:
            state = OrchestratorSnapshot.model_validate_json(row["state_json"])
        except ValidationError as e:
            raise SnapshotStoreError(f"Corrupt snapshot for {shipment_id}: {e}") from e

        if snapshot_hash(state) != row["content_hash"]:
            logger.warning("Snapshot hash mismatch for shipment %s", shipment_id)

        return StoredSnapshot(
            state=state,
            updated_at=datetime.fromisoformat(row["updated_at"]),
            content_hash=row["content_hash"],
        )

    async def upsert(self, shipment_id: str, snapshot: OrchestratorSnapshot) -> StoredSnapshot:
        updated_at = datetime.utcnow()
        content_hash = snapshot_hash(snapshot)
        try:
            self._conn.execute(
                """
                INSERT INTO snapshots (shipment_id, agent_id, state_json, content_hash, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(shipment_id) DO UPDATE SET
                    agent_id = excluded.agent_id,
                    state_json = excluded.state_json,
                    content_hash = excluded.content_hash,
                    updated_at = excluded.updated_at
                """,
                (
                    shipment_id,
                    snapshot.agent_id,
                    snapshot.model_dump_json(),
                    content_hash,
                    updated_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise SnapshotStoreError(f"Failed to persist snapshot for {shipment_id}: {e}") from e

        return StoredSnapshot(state=snapshot, updated_at=updated_at, content_hash=content_hash)

    def close(self) -> None:
        self._conn.close()
