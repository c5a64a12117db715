"""Consistency Sweeper configuration."""

from typing import Optional

from pydantic import BaseModel


class SweeperConfig(BaseModel):
    """Configuration for the scheduled consistency sweep."""

    heartbeat_interval_seconds: int = 300
    schedule: Optional[str] = None          # Cron expression; overrides the heartbeat when set
