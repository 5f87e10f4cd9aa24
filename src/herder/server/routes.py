"""API routes for the herder control server."""

from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from herder import __version__
from herder.fleet.controller import FleetController
from herder.fleet.errors import (
    DirectoryError,
    InvalidTarget,
    JobNotFound,
    MetricUnavailable,
    RegistrationError,
    WorkerNotFound,
)


class CreateJobRequest(BaseModel):
    """Request body for job creation."""

    resource_id: str = Field(min_length=1)
    delta: int
    workers: list[str] | None = None


class ReconciliationRequest(BaseModel):
    """Request body for toggling fleet reconciliation."""

    enabled: bool


class WorkerEnabledRequest(BaseModel):
    """Request body for enabling or disabling one worker."""

    enabled: bool


class RegistrationKeyRequest(BaseModel):
    """Request body for replacing the registration key."""

    new_key: str | None = None


class RegisterInstanceRequest(BaseModel):
    """Request body for instance self-registration."""

    key: str
    id: str = Field(min_length=1)
    endpoint: str = Field(min_length=1)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    loops_running: bool
    reconciliation_enabled: bool


class FleetResponse(BaseModel):
    """Fleet status response."""

    reconciliation_enabled: bool
    workers: list[dict[str, Any]]


class KeyResponse(BaseModel):
    """Registration key response."""

    success: bool = True
    key: str


def create_router(controller: FleetController) -> APIRouter:
    """Create API router bound to a fleet controller.

    Args:
        controller: Fleet controller the routes act on

    Returns:
        Configured API router
    """
    router = APIRouter()

    def _job_or_404(job_id: str) -> dict[str, Any]:
        try:
            return controller.get_job(job_id).to_dict()
        except JobNotFound as e:
            raise HTTPException(status_code=404, detail=str(e)) from e

    @router.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            version=__version__,
            loops_running=controller.running,
            reconciliation_enabled=controller.reconciliation_enabled,
        )

    @router.post("/api/jobs", status_code=201)
    async def create_job(request: CreateJobRequest) -> dict[str, Any]:
        """Create a job that drives a resource's counter up by ``delta``."""
        try:
            job = await controller.create_job(request.resource_id, request.delta, request.workers)
        except InvalidTarget as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        except MetricUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e)) from e
        except DirectoryError as e:
            raise HTTPException(status_code=503, detail=f"worker directory unavailable: {e}") from e
        return job.to_dict()

    @router.get("/api/jobs")
    async def list_jobs() -> list[dict[str, Any]]:
        """List all jobs, running and finished."""
        return [job.to_dict() for job in controller.list_jobs()]

    # Declared before /api/jobs/{job_id}/stop so "stop-all" is never taken as a job id
    @router.post("/api/jobs/stop-all")
    async def stop_all_jobs() -> list[dict[str, Any]]:
        """Stop every running job."""
        return [job.to_dict() for job in await controller.stop_all_jobs()]

    @router.get("/api/jobs/{job_id}")
    async def get_job(job_id: str) -> dict[str, Any]:
        """Get a job snapshot. Finished jobs are returned as-is."""
        return _job_or_404(job_id)

    @router.post("/api/jobs/{job_id}/stop")
    async def stop_job(job_id: str) -> dict[str, Any]:
        """Stop a job. Stopping a finished job is a no-op."""
        try:
            job = await controller.stop_job(job_id)
        except JobNotFound as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return job.to_dict()

    @router.get("/api/fleet", response_model=FleetResponse)
    async def fleet_status() -> FleetResponse:
        """Observed state of every worker the reconciliation loop has contacted."""
        return FleetResponse(
            reconciliation_enabled=controller.reconciliation_enabled,
            workers=[record.to_dict() for record in controller.get_fleet_status()],
        )

    @router.put("/api/fleet/reconciliation")
    async def set_reconciliation(request: ReconciliationRequest) -> dict[str, bool]:
        """Pause or resume fleet keep-alive."""
        controller.set_reconciliation_enabled(request.enabled)
        return {"enabled": controller.reconciliation_enabled}

    @router.put("/api/fleet/workers/{worker_id}")
    async def set_worker_enabled(worker_id: str, request: WorkerEnabledRequest) -> dict[str, Any]:
        """Enable or disable one worker. Disabled workers are left alone by both loops."""
        try:
            await controller.set_worker_enabled(worker_id, request.enabled)
        except WorkerNotFound as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except DirectoryError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return {"id": worker_id, "enabled": request.enabled}

    @router.delete("/api/fleet/workers/{worker_id}")
    async def remove_worker(worker_id: str) -> dict[str, Any]:
        """Drop a worker from the directory."""
        try:
            await controller.remove_worker(worker_id)
        except WorkerNotFound as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except DirectoryError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return {"id": worker_id, "removed": True}

    @router.get("/api/registration-key", response_model=KeyResponse)
    async def get_registration_key() -> KeyResponse:
        """Current registration key."""
        return KeyResponse(key=controller.registration.key)

    @router.post("/api/registration-key", response_model=KeyResponse)
    async def set_registration_key(request: RegistrationKeyRequest) -> KeyResponse:
        """Store the given key, or generate a new one when none is given."""
        try:
            key = controller.registration.set_key(request.new_key)
        except RegistrationError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return KeyResponse(key=key)

    @router.post("/api/instances/register", status_code=201)
    async def register_instance(request: RegisterInstanceRequest) -> dict[str, Any]:
        """Enroll a worker instance that knows the registration key."""
        try:
            entry = await controller.register_worker(request.key, request.id, request.endpoint)
        except RegistrationError as e:
            raise HTTPException(status_code=403, detail=str(e)) from e
        except DirectoryError as e:
            raise HTTPException(status_code=409, detail=str(e)) from e
        return {"id": entry.id, "endpoint": entry.endpoint, "enabled": entry.enabled}

    return router
