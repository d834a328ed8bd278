"""Scheduled batch moderation with a single-flight guard.

# ─── HOW THE JOB RUNS ────────────────────────────────────────────────
#
#   start() ──create_task──→ _loop():  run_once() ─sleep(interval)─→ run_once() ...
#   POST /moderation/run  ───────────→ run_batch(limit)
#   python -m reelcritic.cli moderate ─→ run_batch(limit)
#
# run_batch() and run_once() share one ``_is_running`` flag.  A call that
# arrives while a batch is in flight returns BatchResult(skipped=True)
# straight away, without touching the store, so a slow batch can never
# be overlapped by the next scheduler tick or a manual trigger.  The
# flag is process-local; several processes sharing one database would
# need a lock in the store instead.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio

import structlog

from reelcritic.models.moderation import BatchResult
from reelcritic.services.moderation_service import ModerationService

logger = structlog.get_logger(logger_name=__name__)


class ModerationJob:
    """Runs ModerationService.batch_moderate() on demand and on an interval."""

    def __init__(
        self,
        moderation: ModerationService,
        batch_size: int = 50,
        interval_seconds: float = 300.0,
        item_delay_seconds: float = 1.0,
    ) -> None:
        self._moderation = moderation
        self._batch_size = batch_size
        self._interval_seconds = interval_seconds
        self._item_delay_seconds = item_delay_seconds
        self._is_running = False
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._is_running

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_batch(self, limit: int | None = None) -> BatchResult:
        """Moderate up to *limit* reviews (default: the configured batch size)."""
        if self._is_running:
            logger.info("moderation_batch_skipped", reason="batch already running")
            return BatchResult(skipped=True)

        self._is_running = True
        try:
            return await self._moderation.batch_moderate(
                limit=limit if limit is not None else self._batch_size,
                delay_seconds=self._item_delay_seconds,
            )
        finally:
            self._is_running = False

    async def run_once(self) -> BatchResult:
        return await self.run_batch()

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except Exception as exc:
                # A failed tick must not kill the scheduler; the next one retries.
                logger.error("moderation_tick_failed", error_type=type(exc).__name__, error=str(exc))
            await asyncio.sleep(self._interval_seconds)

    def start(self) -> None:
        """Launch the periodic loop; the first batch runs immediately."""
        if self.is_scheduled:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info("moderation_scheduler_started", interval_seconds=self._interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("moderation_scheduler_stopped")
