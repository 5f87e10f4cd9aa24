"""Shared fleet state: worker records, job records and their registry.

``FleetState`` is created once by the controller and handed to both loops.
Field ownership is partitioned:

- ``WorkerRecord`` fields are written only by the reconciliation loop.
- ``JobRecord`` fields, including the per-job worker sub-status kept in
  ``JobRecord.assignments``, are written only by the job monitor.

Commands sent to one worker endpoint are serialized through
``FleetState.worker_lock`` so a keep-alive start can't interleave with a job
stop for the same worker. Readers get copies via the ``snapshot`` helpers.
"""

import asyncio
import copy
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class JobStatus(Enum):
    """Job lifecycle status."""

    RUNNING = "running"
    COMPLETED = "completed"  # Goal reached
    STOPPED = "stopped"  # Stopped on request
    RESTART_EXHAUSTED = "restart_exhausted"  # Auto-restart budget used up, goal unmet

    @property
    def terminal(self) -> bool:
        return self is not JobStatus.RUNNING


class AssignmentStatus(Enum):
    """Per-job status of one assigned worker."""

    PENDING = "pending"  # Initial start not acknowledged yet
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"
    DISABLED = "disabled"  # Worker disabled in the directory; left alone


@dataclass
class WorkerEntry:
    """A fleet member as reported by a worker directory."""

    id: str
    endpoint: str
    enabled: bool = True


@dataclass
class WorkerRecord:
    """Observed state of one worker, maintained by the reconciliation loop."""

    id: str
    endpoint: str
    enabled: bool = True
    last_seen: Optional[datetime] = None
    last_checked: Optional[datetime] = None
    running: Optional[bool] = None
    restart_count: int = 0
    critical: bool = False
    last_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "endpoint": self.endpoint,
            "enabled": self.enabled,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
            "last_checked": self.last_checked.isoformat() if self.last_checked else None,
            "running": self.running,
            "restart_count": self.restart_count,
            "critical": self.critical,
            "last_error": self.last_error,
        }


@dataclass
class WorkerAssignment:
    """A worker's participation in one job."""

    worker_id: str
    endpoint: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    success: int = 0
    requests: int = 0
    last_error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "worker_id": self.worker_id,
            "endpoint": self.endpoint,
            "status": self.status.value,
            "success": self.success,
            "requests": self.requests,
            "last_error": self.last_error,
        }


@dataclass
class JobRecord:
    """One accumulation goal for a resource."""

    job_id: str
    resource_id: str
    start_value: int
    goal_value: int
    current_value: int
    assignments: Dict[str, WorkerAssignment] = field(default_factory=dict)
    status: JobStatus = JobStatus.RUNNING
    is_running: bool = True
    restart_attempts: int = 0
    degraded: bool = False
    metric_misses: int = 0
    last_error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def progress(self) -> int:
        """Counter gained since the job was created, never negative."""
        return max(0, self.current_value - self.start_value)

    @property
    def remaining(self) -> int:
        return max(0, self.goal_value - self.current_value)

    @property
    def total_success(self) -> int:
        return sum(a.success for a in self.assignments.values())

    @property
    def total_requests(self) -> int:
        return sum(a.requests for a in self.assignments.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "resource_id": self.resource_id,
            "status": self.status.value,
            "is_running": self.is_running,
            "start_value": self.start_value,
            "goal_value": self.goal_value,
            "current_value": self.current_value,
            "progress": self.progress,
            "remaining": self.remaining,
            "total_success": self.total_success,
            "total_requests": self.total_requests,
            "restart_attempts": self.restart_attempts,
            "degraded": self.degraded,
            "metric_misses": self.metric_misses,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "workers": [a.to_dict() for a in self.assignments.values()],
        }


def make_job_id(resource_id: str, created_at: Optional[float] = None) -> str:
    """Build a job id from the resource and creation time.

    The random suffix keeps ids distinct when the same resource is submitted
    twice within one millisecond.
    """
    millis = int((created_at if created_at is not None else time.time()) * 1000)
    return f"{resource_id}-{millis}-{uuid.uuid4().hex[:6]}"


class FleetState:
    """Worker records, job registry and per-worker command locks."""

    def __init__(self):
        self._workers: Dict[str, WorkerRecord] = {}
        self._jobs: Dict[str, JobRecord] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    # Workers

    def ensure_worker(self, entry: WorkerEntry) -> WorkerRecord:
        """Get the record for a directory entry, creating it on first contact.

        Endpoint and enabled flag follow the directory.
        """
        record = self._workers.get(entry.id)
        if record is None:
            record = WorkerRecord(id=entry.id, endpoint=entry.endpoint, enabled=entry.enabled)
            self._workers[entry.id] = record
        else:
            record.endpoint = entry.endpoint
            record.enabled = entry.enabled
        return record

    def get_worker(self, worker_id: str) -> Optional[WorkerRecord]:
        return self._workers.get(worker_id)

    def worker_lock(self, worker_id: str) -> asyncio.Lock:
        """Lock serializing commands sent to one worker."""
        if worker_id not in self._locks:
            self._locks[worker_id] = asyncio.Lock()
        return self._locks[worker_id]

    def snapshot_worker(self, worker_id: str) -> Optional[WorkerRecord]:
        record = self._workers.get(worker_id)
        return copy.copy(record) if record else None

    def snapshot_workers(self) -> List[WorkerRecord]:
        return [copy.copy(r) for r in sorted(self._workers.values(), key=lambda r: r.id)]

    # Jobs

    def add_job(self, job: JobRecord) -> None:
        if job.job_id in self._jobs:
            raise ValueError(f"Job {job.job_id} already registered")
        self._jobs[job.job_id] = job

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        return self._jobs.get(job_id)

    def running_jobs(self) -> List[JobRecord]:
        return [job for job in self._jobs.values() if job.is_running]

    def snapshot_job(self, job_id: str) -> Optional[JobRecord]:
        job = self._jobs.get(job_id)
        return copy.deepcopy(job) if job else None

    def snapshot_jobs(self) -> List[JobRecord]:
        return [copy.deepcopy(job) for job in self._jobs.values()]

    def active_assignments(self) -> set[str]:
        """Ids of workers assigned to at least one running job."""
        return {
            worker_id
            for job in self._jobs.values()
            if job.is_running
            for worker_id in job.assignments
        }
