"""Fleet supervision: keep-alive reconciliation and goal-directed jobs."""

from herder.fleet.client import WorkerClient, WorkerStatus
from herder.fleet.controller import FleetController
from herder.fleet.directory import ConfigWorkerDirectory, JsonFileWorkerDirectory, WorkerDirectory
from herder.fleet.errors import (
    DirectoryError,
    HerderError,
    InvalidTarget,
    JobNotFound,
    MetricUnavailable,
    RegistrationError,
    WorkerUnreachable,
)
from herder.fleet.metrics import HttpMetricSource, MetricSource
from herder.fleet.monitor import JobMonitor
from herder.fleet.reconciler import ReconciliationLoop
from herder.fleet.registration import RegistrationKeyStore
from herder.fleet.state import (
    AssignmentStatus,
    FleetState,
    JobRecord,
    JobStatus,
    WorkerAssignment,
    WorkerEntry,
    WorkerRecord,
)
from herder.fleet.ticker import Ticker

__all__ = [
    "FleetController",
    "FleetState",
    "ReconciliationLoop",
    "JobMonitor",
    "Ticker",
    "WorkerClient",
    "WorkerStatus",
    "WorkerDirectory",
    "ConfigWorkerDirectory",
    "JsonFileWorkerDirectory",
    "MetricSource",
    "HttpMetricSource",
    "RegistrationKeyStore",
    "WorkerEntry",
    "WorkerRecord",
    "WorkerAssignment",
    "JobRecord",
    "JobStatus",
    "AssignmentStatus",
    "HerderError",
    "WorkerUnreachable",
    "MetricUnavailable",
    "InvalidTarget",
    "JobNotFound",
    "DirectoryError",
    "RegistrationError",
]
