"""Fleet keep-alive reconciliation."""

import asyncio
import logging
from datetime import datetime

from herder.config.schema import ReconcilerConfig
from herder.fleet.client import WorkerClient
from herder.fleet.directory import WorkerDirectory
from herder.fleet.errors import WorkerUnreachable
from herder.fleet.state import FleetState, WorkerEntry, WorkerRecord

logger = logging.getLogger(__name__)


class ReconciliationLoop:
    """
    Keeps every enabled worker busy.

    Each tick compares what the directory says should be running with what
    the workers report, and restarts the ones that are idle or unreachable:

    - status ok, running: record liveness, clear ``critical``
    - status ok, idle: keep-alive start; a failure only sets ``last_error``
    - unreachable: keep-alive start; a failure marks the worker ``critical``,
      which sticks until a later status fetch succeeds

    The loop never raises. Every per-worker problem ends up in the worker's
    record.
    """

    def __init__(
        self,
        state: FleetState,
        directory: WorkerDirectory,
        client: WorkerClient,
        config: ReconcilerConfig,
    ):
        """
        Initialize reconciliation loop.

        Args:
            state: Shared fleet state
            directory: Source of fleet membership
            client: Worker HTTP client
            config: Loop configuration
        """
        self.state = state
        self.directory = directory
        self.client = client
        self.config = config
        self.enabled = config.enabled

    def set_enabled(self, enabled: bool) -> None:
        if enabled != self.enabled:
            logger.info(f"Fleet reconciliation {'enabled' if enabled else 'paused'}")
        self.enabled = enabled

    async def tick(self) -> None:
        """Run one reconciliation pass over the fleet."""
        if not self.enabled:
            return

        try:
            entries = await self.directory.list_workers()
        except Exception as e:
            logger.warning(f"Worker directory unavailable, skipping tick: {e}")
            return

        for entry in entries:
            record = self.state.get_worker(entry.id)
            if record is not None and not entry.enabled:
                record.enabled = False  # mirrored only, the worker is not contacted

        enabled = [entry for entry in entries if entry.enabled]
        if not enabled:
            return

        results = await asyncio.gather(
            *(self._reconcile_bounded(entry) for entry in enabled),
            return_exceptions=True,
        )
        for entry, result in zip(enabled, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error reconciling {entry.id}: {result!r}")

    async def _reconcile_bounded(self, entry: WorkerEntry) -> None:
        record = self.state.ensure_worker(entry)
        try:
            await asyncio.wait_for(self.reconcile_worker(record), timeout=self.config.unit_timeout)
        except asyncio.TimeoutError:
            record.last_error = f"reconciliation timed out after {self.config.unit_timeout}s"
            logger.warning(f"Worker {record.id}: {record.last_error}")

    async def reconcile_worker(self, record: WorkerRecord) -> None:
        """Check one worker and restart it if needed."""
        record.last_checked = datetime.now()
        try:
            status = await self.client.get_status(record.endpoint)
        except WorkerUnreachable as e:
            record.running = None
            await self._restart_unreachable(record, str(e))
            return

        record.last_seen = datetime.now()
        record.running = status.running
        if record.critical:
            logger.info(f"Worker {record.id} is reachable again")
        record.critical = False
        record.last_error = None

        if status.running or self._owned_by_job(record):
            return

        try:
            await self._keepalive_start(record)
        except WorkerUnreachable as e:
            record.last_error = str(e)
            logger.warning(f"Worker {record.id} idle and restart failed: {e}")
            return

        record.restart_count += 1
        record.running = True
        logger.info(f"Worker {record.id} was idle, restarted (restarts: {record.restart_count})")

    async def _restart_unreachable(self, record: WorkerRecord, reason: str) -> None:
        if self._owned_by_job(record):
            record.last_error = reason
            return

        try:
            await self._keepalive_start(record)
        except WorkerUnreachable as e:
            record.critical = True
            record.last_error = str(e)
            logger.warning(f"Worker {record.id} unreachable and restart failed, marked critical: {e}")
            return

        record.restart_count += 1
        record.running = True
        record.last_seen = datetime.now()
        # critical stays as is until a status fetch succeeds again
        record.last_error = reason
        logger.info(
            f"Worker {record.id} was unreachable ({reason}), restarted "
            f"(restarts: {record.restart_count})"
        )

    async def _keepalive_start(self, record: WorkerRecord) -> None:
        async with self.state.worker_lock(record.id):
            await self.client.start(
                record.endpoint,
                target=self.config.keepalive_target,
                resource_ref=self.config.keepalive_resource,
                mode=self.config.keepalive_mode,
            )

    def _owned_by_job(self, record: WorkerRecord) -> bool:
        return self.config.yield_to_jobs and record.id in self.state.active_assignments()
