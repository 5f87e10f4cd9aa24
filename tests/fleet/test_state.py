"""Tests for shared fleet state."""

import pytest

from herder.fleet.state import (
    AssignmentStatus,
    FleetState,
    JobRecord,
    JobStatus,
    WorkerAssignment,
    WorkerEntry,
    make_job_id,
)


def _job(job_id: str = "job-1", **kwargs) -> JobRecord:
    fields = {
        "job_id": job_id,
        "resource_id": "video123",
        "start_value": 1000,
        "goal_value": 6000,
        "current_value": 1000,
    }
    fields.update(kwargs)
    return JobRecord(**fields)


def test_progress_never_negative():
    """Progress is clamped at zero even if current is below start."""
    job = _job(current_value=900)

    assert job.progress == 0
    assert job.remaining == 5100


def test_progress_and_remaining():
    job = _job(current_value=4500)

    assert job.progress == 3500
    assert job.remaining == 1500


def test_totals_aggregate_assignments():
    job = _job(
        assignments={
            "w1": WorkerAssignment("w1", "http://w1", success=10, requests=12),
            "w2": WorkerAssignment("w2", "http://w2", success=5, requests=9),
        }
    )

    assert job.total_success == 15
    assert job.total_requests == 21


def test_job_to_dict():
    job = _job(assignments={"w1": WorkerAssignment("w1", "http://w1")})
    data = job.to_dict()

    assert data["status"] == "running"
    assert data["progress"] == 0
    assert data["completed_at"] is None
    assert data["workers"] == [
        {
            "worker_id": "w1",
            "endpoint": "http://w1",
            "status": "pending",
            "success": 0,
            "requests": 0,
            "last_error": None,
        }
    ]


def test_job_status_terminal():
    assert JobStatus.RUNNING.terminal is False
    assert JobStatus.COMPLETED.terminal is True
    assert JobStatus.STOPPED.terminal is True
    assert JobStatus.RESTART_EXHAUSTED.terminal is True


def test_make_job_id_contains_resource_and_time():
    job_id = make_job_id("video123", created_at=1700000000.5)

    assert job_id.startswith("video123-1700000000500-")


def test_make_job_id_unique_for_same_instant():
    ids = {make_job_id("video123", created_at=1700000000.0) for _ in range(50)}

    assert len(ids) == 50


def test_ensure_worker_creates_then_updates():
    state = FleetState()

    record = state.ensure_worker(WorkerEntry("w1", "http://w1"))
    record.restart_count = 4

    again = state.ensure_worker(WorkerEntry("w1", "http://w1-new"))

    assert again is record
    assert again.endpoint == "http://w1-new"
    assert again.restart_count == 4


def test_worker_snapshot_is_a_copy():
    state = FleetState()
    state.ensure_worker(WorkerEntry("w1", "http://w1"))

    snapshot = state.snapshot_worker("w1")
    snapshot.critical = True

    assert state.get_worker("w1").critical is False
    assert state.snapshot_worker("missing") is None


def test_snapshot_workers_sorted():
    state = FleetState()
    state.ensure_worker(WorkerEntry("b", "http://b"))
    state.ensure_worker(WorkerEntry("a", "http://a"))

    assert [r.id for r in state.snapshot_workers()] == ["a", "b"]


def test_job_snapshot_is_deep_copy():
    state = FleetState()
    state.add_job(_job(assignments={"w1": WorkerAssignment("w1", "http://w1")}))

    snapshot = state.snapshot_job("job-1")
    snapshot.assignments["w1"].status = AssignmentStatus.FAILED

    assert state.get_job("job-1").assignments["w1"].status == AssignmentStatus.PENDING


def test_add_job_rejects_duplicate_id():
    state = FleetState()
    state.add_job(_job())

    with pytest.raises(ValueError):
        state.add_job(_job())


def test_running_jobs_and_active_assignments():
    state = FleetState()
    state.add_job(_job("a", assignments={"w1": WorkerAssignment("w1", "http://w1")}))
    state.add_job(
        _job(
            "b",
            assignments={"w2": WorkerAssignment("w2", "http://w2")},
            status=JobStatus.COMPLETED,
            is_running=False,
        )
    )

    assert [job.job_id for job in state.running_jobs()] == ["a"]
    assert state.active_assignments() == {"w1"}


def test_worker_lock_is_per_worker():
    state = FleetState()

    assert state.worker_lock("w1") is state.worker_lock("w1")
    assert state.worker_lock("w1") is not state.worker_lock("w2")
