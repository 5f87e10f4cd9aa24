"""Composition root and public control surface for the fleet."""

import logging
from typing import Iterable, Optional

from herder.config.schema import HerderConfig
from herder.fleet.client import WorkerClient
from herder.fleet.directory import ConfigWorkerDirectory, JsonFileWorkerDirectory, WorkerDirectory
from herder.fleet.errors import DirectoryError, WorkerNotFound
from herder.fleet.metrics import HttpMetricSource, MetricSource
from herder.fleet.monitor import JobMonitor
from herder.fleet.reconciler import ReconciliationLoop
from herder.fleet.registration import RegistrationKeyStore
from herder.fleet.state import FleetState, JobRecord, WorkerEntry, WorkerRecord
from herder.fleet.ticker import Ticker

logger = logging.getLogger(__name__)


class FleetController:
    """
    Owns the fleet state and both loops.

    Responsibilities:
    - Wiring directory, metric source and worker client into the loops
    - Starting and stopping the tickers in the right order
    - Exposing the control surface (jobs, fleet status, worker enablement,
      reconciliation toggle)

    None of the control methods run a reconciliation pass; they return after
    at most one round of worker calls.
    """

    def __init__(
        self,
        config: HerderConfig,
        directory: WorkerDirectory,
        metrics: MetricSource,
        client: WorkerClient,
        registration: Optional[RegistrationKeyStore] = None,
    ):
        """
        Initialize controller.

        Args:
            config: Herder configuration
            directory: Source of fleet membership
            metrics: Metric source for job progress
            client: Worker HTTP client
            registration: Registration key store (built from config if None)
        """
        self.config = config
        self.directory = directory
        self.metrics = metrics
        self.client = client
        self.registration = registration or RegistrationKeyStore(
            key=config.registration.key,
            key_file=config.registration.key_file,
        )

        self.state = FleetState()
        self.reconciler = ReconciliationLoop(self.state, directory, client, config.reconciler)
        self.monitor = JobMonitor(self.state, directory, metrics, client, config.monitor)

        self._reconcile_ticker = Ticker(
            "reconciliation", config.reconciler.interval, self.reconciler.tick
        )
        self._monitor_ticker = Ticker("job-monitor", config.monitor.interval, self.monitor.tick)

    @classmethod
    def from_config(cls, config: HerderConfig) -> "FleetController":
        """Build a controller with the HTTP-backed collaborators named in config."""
        directory: WorkerDirectory
        if config.directory.method == "file":
            directory = JsonFileWorkerDirectory(config.directory.path)
        else:
            directory = ConfigWorkerDirectory(config.workers)

        client = WorkerClient(
            status_timeout=config.client.status_timeout,
            command_timeout=config.client.command_timeout,
            auth_token=config.client.auth_token,
        )
        metrics = HttpMetricSource(
            url_template=config.metrics.url_template,
            value_field=config.metrics.value_field,
            timeout=config.metrics.timeout,
            headers=config.metrics.headers,
        )
        return cls(config, directory, metrics, client)

    # Lifecycle

    @property
    def running(self) -> bool:
        return self._reconcile_ticker.running or self._monitor_ticker.running

    async def start(self) -> None:
        """Start both loops."""
        await self._reconcile_ticker.start()
        await self._monitor_ticker.start()

    async def stop(self) -> None:
        """Stop scheduling, let in-flight ticks and dispatches finish."""
        await self._monitor_ticker.stop()
        await self._reconcile_ticker.stop()
        await self.monitor.flush()

    async def close(self) -> None:
        """Stop both loops and close HTTP clients."""
        await self.stop()
        await self.client.close()
        close_metrics = getattr(self.metrics, "close", None)
        if close_metrics is not None:
            await close_metrics()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # Jobs

    async def create_job(
        self, resource_id: str, delta: int, worker_ids: Optional[Iterable[str]] = None
    ) -> JobRecord:
        return await self.monitor.create_job(resource_id, delta, worker_ids)

    async def stop_job(self, job_id: str) -> JobRecord:
        return await self.monitor.stop_job(job_id)

    async def stop_all_jobs(self) -> list[JobRecord]:
        return await self.monitor.stop_all_jobs()

    def get_job(self, job_id: str) -> JobRecord:
        return self.monitor.get_job(job_id)

    def list_jobs(self) -> list[JobRecord]:
        return self.monitor.list_jobs()

    # Fleet

    def get_fleet_status(self) -> list[WorkerRecord]:
        return self.state.snapshot_workers()

    @property
    def reconciliation_enabled(self) -> bool:
        return self.reconciler.enabled

    def set_reconciliation_enabled(self, enabled: bool) -> None:
        self.reconciler.set_enabled(enabled)

    async def register_worker(self, key: str, worker_id: str, endpoint: str) -> WorkerEntry:
        """
        Enroll an instance that presented the registration key.

        Raises:
            RegistrationError: If the key is wrong
            DirectoryError: If the directory can't take new members
        """
        self.registration.require(key)
        register = getattr(self.directory, "register", None)
        if register is None:
            raise DirectoryError("Worker directory does not accept registrations")
        return await register(worker_id, endpoint)

    async def set_worker_enabled(self, worker_id: str, enabled: bool) -> None:
        """
        Enable or disable a worker in the directory.

        Both loops pick the change up on their next tick; a disabled worker is
        no longer contacted.

        Raises:
            WorkerNotFound: If the directory has no such worker
            DirectoryError: If the directory is read-only or can't be written
        """
        set_enabled = getattr(self.directory, "set_enabled", None)
        if set_enabled is None:
            raise DirectoryError("Worker directory is read-only")
        await set_enabled(worker_id, enabled)

    async def remove_worker(self, worker_id: str) -> None:
        """
        Drop a worker from the directory.

        Raises:
            WorkerNotFound: If the directory has no such worker
            DirectoryError: If the directory doesn't support removal
        """
        remove = getattr(self.directory, "remove", None)
        if remove is None:
            raise DirectoryError("Worker directory does not support removal")
        if not await remove(worker_id):
            raise WorkerNotFound(worker_id)
