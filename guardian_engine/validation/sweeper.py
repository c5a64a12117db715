"""
Consistency Sweeper — scheduled re-validation of every live shipment.

Runs the consistency check with trigger=scheduled, either on a fixed
heartbeat or on a cron schedule. One shipment failing never stops the sweep.
"""

import asyncio
from datetime import datetime
from typing import Dict, Optional

from croniter import croniter

from guardian_engine.core.logging import get_logger
from guardian_engine.models.results import EventResult
from guardian_engine.models.sweeper import SweeperConfig
from guardian_engine.models.validation import ValidationTrigger

logger = get_logger(__name__)


class ConsistencySweeper:
    def __init__(self, factory, config: Optional[SweeperConfig] = None):
        self.factory = factory
        self.config = config or SweeperConfig()
        self._running = False
        self.sweep_count = 0

    @property
    def running(self) -> bool:
        return self._running

    async def sweep_once(self) -> Dict[str, EventResult]:
        """Check every live orchestrator once. Returns results by shipment id."""
        results: Dict[str, EventResult] = {}
        for shipment_id in self.factory.shipment_ids():
            try:
                results[shipment_id] = await self.factory.run_consistency_check(
                    shipment_id, trigger=ValidationTrigger.SCHEDULED,
                )
            except Exception:
                logger.exception("Scheduled consistency check failed for %s", shipment_id)
        self.sweep_count += 1
        flagged = [sid for sid, r in results.items() if not r.success]
        logger.info("Sweep %d: %d shipment(s) checked, %d flagged", self.sweep_count, len(results), len(flagged))
        return results

    def seconds_until_next(self, now: Optional[datetime] = None) -> float:
        """Delay before the next sweep: cron schedule if set, else the heartbeat."""
        if self.config.schedule:
            if now is None:
                now = datetime.utcnow()
            try:
                next_fire = croniter(self.config.schedule, now).get_next(datetime)
                return max((next_fire - now).total_seconds(), 0.0)
            except (ValueError, KeyError):
                logger.warning("Invalid sweep schedule %r; using heartbeat", self.config.schedule)
        return float(self.config.heartbeat_interval_seconds)

    async def run_async(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Sweep until stop_event is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                await self.sweep_once()
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.seconds_until_next(),
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
