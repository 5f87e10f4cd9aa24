"""Goal tracking for jobs running on the fleet."""

import asyncio
import logging
from datetime import datetime
from typing import Iterable, Optional

from herder.config.schema import MonitorConfig
from herder.fleet.client import WorkerClient, WorkerStatus
from herder.fleet.directory import WorkerDirectory
from herder.fleet.errors import (
    InvalidTarget,
    JobNotFound,
    MetricUnavailable,
    WorkerUnreachable,
)
from herder.fleet.metrics import MetricSource
from herder.fleet.state import (
    AssignmentStatus,
    FleetState,
    JobRecord,
    JobStatus,
    WorkerAssignment,
    make_job_id,
)

logger = logging.getLogger(__name__)


class JobMonitor:
    """
    Creates jobs, watches their progress and finishes them.

    Per tick and per running job:

    1. read the metric; if it is unavailable, skip the job until next tick
    2. refresh the status and counters of every assigned worker that is
       still enabled; disabled ones are never contacted
    3. goal reached: COMPLETED, stop the workers
    4. nobody running: restart them while attempts remain
    5. the attempt that spends the last of ``max_restarts`` also ends the
       job with RESTART_EXHAUSTED

    Terminal jobs are never touched again. Stopping a job marks it terminal
    before any worker is contacted, so a concurrent tick can't revive it.
    """

    def __init__(
        self,
        state: FleetState,
        directory: WorkerDirectory,
        metrics: MetricSource,
        client: WorkerClient,
        config: MonitorConfig,
    ):
        """
        Initialize job monitor.

        Args:
            state: Shared fleet state
            directory: Source of fleet membership (for default assignment)
            metrics: Where current counter values come from
            client: Worker HTTP client
            config: Monitor configuration
        """
        self.state = state
        self.directory = directory
        self.metrics = metrics
        self.client = client
        self.config = config
        self._dispatches: set[asyncio.Task] = set()
        self._dispatching: set[str] = set()

    # Control surface

    async def create_job(
        self,
        resource_id: str,
        delta: int,
        worker_ids: Optional[Iterable[str]] = None,
    ) -> JobRecord:
        """
        Create and launch a job that drives ``resource_id`` up by ``delta``.

        Reads the current metric value once; the initial worker starts run in
        the background.

        Args:
            resource_id: Resource the workers act on
            delta: Requested increase over the current value
            worker_ids: Workers to assign (default: every enabled worker)

        Returns:
            Snapshot of the new job

        Raises:
            InvalidTarget: If ``delta`` would not put the goal above the start value
            MetricUnavailable: If the start value can't be read
        """
        if not resource_id:
            raise InvalidTarget("resource_id must not be empty")
        if delta <= 0:
            raise InvalidTarget(f"goal must exceed the current value (delta={delta})")

        entries = {entry.id: entry for entry in await self.directory.list_workers()}
        if worker_ids is None:
            selected = [entry for entry in entries.values() if entry.enabled]
        else:
            wanted = list(dict.fromkeys(worker_ids))
            unknown = [wid for wid in wanted if wid not in entries]
            if unknown:
                raise InvalidTarget(f"unknown workers: {', '.join(unknown)}")
            selected = [entries[wid] for wid in wanted]

        start_value = await self.metrics.read(resource_id)
        goal_value = start_value + delta

        now = datetime.now()
        job = JobRecord(
            job_id=make_job_id(resource_id, now.timestamp()),
            resource_id=resource_id,
            start_value=start_value,
            goal_value=goal_value,
            current_value=start_value,
            assignments={
                entry.id: WorkerAssignment(worker_id=entry.id, endpoint=entry.endpoint)
                for entry in selected
            },
            created_at=now,
        )
        self.state.add_job(job)
        logger.info(
            f"Job {job.job_id} created: {resource_id} {start_value} -> {goal_value} "
            f"on {len(job.assignments)} workers"
        )

        if not job.assignments:
            job.degraded = True
            job.last_error = "no workers assigned"
        else:
            self._dispatching.add(job.job_id)
            task = asyncio.create_task(self._dispatch_initial(job))
            self._dispatches.add(task)
            task.add_done_callback(self._dispatches.discard)

        return self.state.snapshot_job(job.job_id)

    async def stop_job(self, job_id: str) -> JobRecord:
        """
        Stop a running job. Stopping a finished job changes nothing.

        Raises:
            JobNotFound: If no such job exists
        """
        job = self._require(job_id)
        if not job.is_running:
            return self.state.snapshot_job(job_id)

        self._finish(job, JobStatus.STOPPED)
        await self._stop_workers(job)
        return self.state.snapshot_job(job_id)

    async def stop_all_jobs(self) -> list[JobRecord]:
        """Stop every running job. Returns snapshots of the jobs stopped."""
        jobs = self.state.running_jobs()
        for job in jobs:
            self._finish(job, JobStatus.STOPPED)
        await asyncio.gather(*(self._stop_workers(job) for job in jobs))
        return [self.state.snapshot_job(job.job_id) for job in jobs]

    def get_job(self, job_id: str) -> JobRecord:
        self._require(job_id)
        return self.state.snapshot_job(job_id)

    def list_jobs(self) -> list[JobRecord]:
        return self.state.snapshot_jobs()

    async def flush(self) -> None:
        """Wait for pending initial dispatches."""
        if self._dispatches:
            await asyncio.gather(*list(self._dispatches), return_exceptions=True)

    # Loop

    async def tick(self) -> None:
        """Check every running job once."""
        jobs = self.state.running_jobs()
        if not jobs:
            return

        results = await asyncio.gather(
            *(self._check_bounded(job) for job in jobs),
            return_exceptions=True,
        )
        for job, result in zip(jobs, results):
            if isinstance(result, BaseException):
                logger.error(f"Unexpected error checking job {job.job_id}: {result!r}")

    async def _check_bounded(self, job: JobRecord) -> None:
        try:
            await asyncio.wait_for(self.check_job(job), timeout=self.config.job_timeout)
        except asyncio.TimeoutError:
            if job.is_running:
                job.last_error = f"check timed out after {self.config.job_timeout}s"
            logger.warning(f"Job {job.job_id}: check timed out")

    async def check_job(self, job: JobRecord) -> None:
        """Advance one job's state machine by one step."""
        try:
            reading = await self.metrics.read(job.resource_id)
        except MetricUnavailable as e:
            if job.is_running:
                job.metric_misses += 1
                job.last_error = str(e)
            logger.warning(f"Job {job.job_id}: {e}, retrying next tick")
            return

        if not job.is_running:
            return
        if reading < job.current_value:
            logger.debug(
                f"Job {job.job_id}: metric went down ({reading} < {job.current_value}), ignoring"
            )
        job.current_value = max(job.current_value, reading)

        assignments = await self._enabled_assignments(job)
        statuses = await asyncio.gather(*(self._fetch_status(a) for a in assignments))
        if not job.is_running:
            return

        for assignment, status in zip(assignments, statuses):
            self._apply_status(assignment, status)

        if job.current_value >= job.goal_value:
            self._finish(job, JobStatus.COMPLETED)
            await self._stop_workers(job, assignments)
            return

        if any(a.status == AssignmentStatus.RUNNING for a in assignments):
            job.degraded = False
            return

        if job.job_id in self._dispatching:
            return  # Initial starts still in flight

        if job.restart_attempts < self.config.max_restarts:
            job.restart_attempts += 1
            accepted = await self._start_workers(job, assignments)
            if not job.is_running:
                return
            job.degraded = accepted == 0
            logger.info(
                f"Job {job.job_id}: no worker running, restart {job.restart_attempts}/"
                f"{self.config.max_restarts} accepted by {accepted}/{len(assignments)}"
            )

        if job.restart_attempts >= self.config.max_restarts:
            self._finish(job, JobStatus.RESTART_EXHAUSTED)
            await self._stop_workers(job, assignments)

    # Helpers

    def _require(self, job_id: str) -> JobRecord:
        job = self.state.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def _finish(self, job: JobRecord, status: JobStatus) -> None:
        job.status = status
        job.is_running = False
        job.completed_at = datetime.now()
        logger.info(
            f"Job {job.job_id} {status.value}: {job.current_value}/{job.goal_value} "
            f"(progress {job.progress}, restarts {job.restart_attempts})"
        )

    async def _fetch_status(self, assignment: WorkerAssignment) -> Optional[WorkerStatus]:
        try:
            return await self.client.get_status(assignment.endpoint)
        except WorkerUnreachable as e:
            logger.debug(f"Worker {assignment.worker_id} status failed: {e}")
            return None

    @staticmethod
    def _apply_status(assignment: WorkerAssignment, status: Optional[WorkerStatus]) -> None:
        if status is None:
            assignment.status = AssignmentStatus.FAILED
            return
        assignment.status = AssignmentStatus.RUNNING if status.running else AssignmentStatus.STOPPED
        # Counters are cumulative on the worker; a worker restart must not shrink them.
        assignment.success = max(assignment.success, status.success_count)
        assignment.requests = max(assignment.requests, status.request_count)
        assignment.last_error = None

    async def _enabled_assignments(self, job: JobRecord) -> list[WorkerAssignment]:
        """
        Assignments whose worker is currently enabled in the directory.

        Disabled or removed workers are marked DISABLED on a running job and
        never contacted. If the directory can't be read, the last known
        picture is used.
        """
        try:
            entries = {entry.id: entry for entry in await self.directory.list_workers()}
        except Exception as e:
            logger.warning(f"Job {job.job_id}: worker directory unavailable, using last known: {e}")
            return [
                a for a in job.assignments.values() if a.status != AssignmentStatus.DISABLED
            ]

        selected = []
        for worker_id, assignment in job.assignments.items():
            entry = entries.get(worker_id)
            if entry is None or not entry.enabled:
                if job.is_running and assignment.status != AssignmentStatus.DISABLED:
                    logger.info(f"Job {job.job_id}: worker {worker_id} disabled, leaving it alone")
                    assignment.status = AssignmentStatus.DISABLED
                    assignment.last_error = "worker disabled"
                continue
            if job.is_running:
                assignment.endpoint = entry.endpoint
            selected.append(assignment)
        return selected

    async def _start_one(self, job: JobRecord, assignment: WorkerAssignment) -> bool:
        try:
            async with self.state.worker_lock(assignment.worker_id):
                if not job.is_running:
                    return False
                await self.client.start(
                    assignment.endpoint,
                    target=job.goal_value,
                    resource_ref=job.resource_id,
                    mode=self.config.job_mode,
                )
        except WorkerUnreachable as e:
            logger.warning(f"Job {job.job_id}: start on {assignment.worker_id} failed: {e}")
            if job.is_running:
                assignment.status = AssignmentStatus.FAILED
                assignment.last_error = str(e)
            return False
        if job.is_running:
            assignment.status = AssignmentStatus.RUNNING
            assignment.last_error = None
        return True

    async def _start_workers(
        self, job: JobRecord, assignments: Optional[list[WorkerAssignment]] = None
    ) -> int:
        if assignments is None:
            assignments = await self._enabled_assignments(job)
        results = await asyncio.gather(*(self._start_one(job, a) for a in assignments))
        return sum(1 for ok in results if ok)

    async def _dispatch_initial(self, job: JobRecord) -> None:
        try:
            accepted = await self._start_workers(job)
        finally:
            self._dispatching.discard(job.job_id)
        if job.is_running and accepted == 0:
            job.degraded = True
            job.last_error = "no worker accepted the initial start"
        logger.info(f"Job {job.job_id}: initial start accepted by {accepted}/{len(job.assignments)}")

    async def _stop_one(self, job: JobRecord, assignment: WorkerAssignment) -> None:
        try:
            async with self.state.worker_lock(assignment.worker_id):
                await self.client.stop(assignment.endpoint)
        except WorkerUnreachable as e:
            logger.warning(f"Job {job.job_id}: stop on {assignment.worker_id} failed: {e}")

    async def _stop_workers(
        self, job: JobRecord, assignments: Optional[list[WorkerAssignment]] = None
    ) -> None:
        """Best-effort stop of every enabled assigned worker; failures are only logged."""
        if assignments is None:
            assignments = await self._enabled_assignments(job)
        await asyncio.gather(*(self._stop_one(job, a) for a in assignments))
