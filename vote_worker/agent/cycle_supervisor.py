"""
Cycle supervision.

The supervisor owns the worker state, guarantees that at most one cycle runs
at a time in this process (single-flight), keeps cumulative statistics for
live cycles, and drives the periodic background loop.
"""
import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from vote_worker.agent.cycle_orchestrator import CycleOptions, CycleOrchestrator
from vote_worker.config.worker_settings import WorkerRuntimeConfig
from vote_worker.data_models.vote_results import CycleSummary
from vote_worker.data_models.worker_state import WorkerState
from vote_worker.exceptions import CycleInProgressError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CycleSupervisor:
    """Single-flight cycle runner with stats and a background loop."""

    def __init__(self, orchestrator: CycleOrchestrator, config: WorkerRuntimeConfig):
        self.orchestrator = orchestrator
        self.config = config
        self.state = WorkerState(interval_ms=config.interval_ms)
        self._loop_task: Optional[asyncio.Task] = None

    def _options(self, dry_run: bool) -> CycleOptions:
        return CycleOptions(
            dry_run=dry_run,
            max_concurrency=self.config.max_concurrency,
            throttle_delay_seconds=self.config.throttle_delay_seconds,
        )

    def _acquire(self) -> None:
        # Check-and-set with no await in between
        if self.state.cycle_in_progress:
            raise CycleInProgressError()
        self.state.cycle_in_progress = True

    def _release(self) -> None:
        self.state.cycle_in_progress = False

    async def execute_cycle(self) -> CycleSummary:
        """
        Run one live cycle (honoring the configured dry-run flag) and update stats.

        Raises:
            CycleInProgressError: If another cycle is running
            Exception: Whatever aborted the cycle, after recording it in state
        """
        self._acquire()
        try:
            summary = await self.orchestrator.run_cycle(self._options(self.config.dry_run))
        except Exception as e:
            self.state.last_cycle_error = str(e)
            self.state.last_cycle_at = _utcnow()
            raise
        finally:
            self._release()

        self.state.last_cycle_summary = summary
        self.state.last_cycle_at = _utcnow()
        self.state.last_cycle_error = None
        self.state.total_cycles_run += 1
        self.state.total_votes_executed += summary.executed
        self.state.total_votes_failed += summary.failed
        return summary

    async def execute_dry_run(self) -> CycleSummary:
        """Run a forced dry-run cycle. Totals and the last-cycle slot are left untouched."""
        self._acquire()
        try:
            return await self.orchestrator.run_cycle(self._options(True))
        finally:
            self._release()

    async def _attempt_cycle(self) -> None:
        try:
            await self.execute_cycle()
        except CycleInProgressError:
            logger.info("Skipping scheduled cycle: a cycle is already in progress")
        except Exception as e:
            logger.error(f"Background cycle failed: {e}", exc_info=True)

    async def _background_loop(self, run_immediately: bool) -> None:
        if run_immediately:
            await self._attempt_cycle()

        interval = self.config.interval_seconds
        while True:
            self.state.next_cycle_at = _utcnow() + timedelta(seconds=interval)
            await asyncio.sleep(interval)
            await self._attempt_cycle()

    def start_background_loop(self, run_immediately: bool = False) -> asyncio.Task:
        """
        Schedule a cycle attempt every interval until stop() is called.

        Args:
            run_immediately: Run one cycle right away before the first wait
        """
        if self._loop_task is None or self._loop_task.done():
            self._loop_task = asyncio.create_task(self._background_loop(run_immediately))
            logger.info(f"Background loop started (every {self.config.interval_ms}ms)")
        return self._loop_task

    async def stop(self) -> None:
        task, self._loop_task = self._loop_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        self.state.next_cycle_at = None
        logger.info("Background loop stopped")

    def mark_started(self) -> None:
        self.state.is_running = True
        self.state.started_at = _utcnow()

    def mark_stopped(self) -> None:
        self.state.is_running = False

    def health(self) -> Dict[str, Any]:
        started_at = self.state.started_at
        uptime = int((_utcnow() - started_at).total_seconds()) if started_at else 0
        return {
            "status": "ok" if self.state.is_running else "starting",
            "uptime": uptime,
            "lastCycleAt": self.state.last_cycle_at.isoformat() if self.state.last_cycle_at else None,
            "cycleInProgress": self.state.cycle_in_progress,
        }

    def status(self) -> Dict[str, Any]:
        """Full state plus the public config block."""
        payload = self.state.model_dump(mode="json", by_alias=True)
        payload["config"] = self.config.public_view()
        return payload
