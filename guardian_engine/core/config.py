"""
Guardian Engine configuration.

Settings are loaded from environment variables prefixed with ``GUARDIAN_``
(or a local ``.env`` file) and converted into the runtime config models the
orchestrator and sweeper consume.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from guardian_engine.models.defense import ActiveDefenseConfig, RiskProfile
from guardian_engine.models.sweeper import SweeperConfig


class GuardianSettings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GUARDIAN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Active defense
    entropy_threshold: float = Field(ge=0, le=1, default=0.05)
    risk_profiles: List[RiskProfile] = Field(default_factory=list)

    # Persistence
    snapshot_db_path: str = ":memory:"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    # Scheduled consistency sweep
    sweep_interval_seconds: int = 300
    sweep_schedule: Optional[str] = None

    def active_defense_config(self) -> ActiveDefenseConfig:
        return ActiveDefenseConfig(
            entropy_threshold=self.entropy_threshold,
            global_risk_profiles=list(self.risk_profiles),
        )

    def sweeper_config(self) -> SweeperConfig:
        return SweeperConfig(
            heartbeat_interval_seconds=self.sweep_interval_seconds,
            schedule=self.sweep_schedule,
        )


@lru_cache
def get_settings() -> GuardianSettings:
    """Get cached settings instance."""
    return GuardianSettings()
