"""
Hold Expiry Scheduler

Drives ExpiryReaper on a fixed interval, independent of request traffic.
Started from the API lifespan (HOLD_EXPIRY_ENABLED) or by run_cron.py.

Heartbeat metrics are kept for the /health endpoint so a stalled reaper is
visible.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from flashhold.core.config import settings
from flashhold.core.utils import utcnow
from flashhold.services.hold_expiry import ExpiryReaper, expiry_reaper

logger = logging.getLogger(__name__)


class HoldExpiryScheduler:
    def __init__(self, reaper: ExpiryReaper = expiry_reaper, interval_seconds: Optional[int] = None):
        self.reaper = reaper
        self.interval_seconds = interval_seconds or settings.HOLD_EXPIRY_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None
        self.heartbeat: Dict[str, Any] = {
            "last_run": None,
            "last_success": None,
            "runs": 0,
            "holds_processed": 0,
            "units_released": 0,
            "errors": 0,
        }

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self):
        """One sweep with heartbeat bookkeeping. Never raises."""
        self.heartbeat["last_run"] = utcnow().isoformat()
        self.heartbeat["runs"] += 1

        try:
            stats = await self.reaper.run_once()
        except Exception as e:
            self.heartbeat["errors"] += 1
            logger.error(f"Hold expiry run failed: {e}", exc_info=True)
            return None

        self.heartbeat["last_success"] = utcnow().isoformat()
        self.heartbeat["holds_processed"] += stats.expired + stats.marked_used
        self.heartbeat["units_released"] += stats.units_released
        self.heartbeat["errors"] += stats.errors
        return stats

    async def _loop(self) -> None:
        logger.info(f"Hold expiry scheduler started (interval: {self.interval_seconds} seconds)")
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    async def start(self) -> None:
        if self.running:
            logger.warning("Hold expiry scheduler already running")
            return
        self._task = asyncio.create_task(self._loop(), name="hold-expiry-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logger.info("Hold expiry scheduler cancelled")
        self._task = None

    def get_status(self) -> Dict[str, Any]:
        return {
            "enabled": settings.HOLD_EXPIRY_ENABLED,
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            **self.heartbeat,
        }


hold_expiry_scheduler = HoldExpiryScheduler()
