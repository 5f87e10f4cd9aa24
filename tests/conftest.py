"""Pytest configuration and shared fixtures."""

import asyncio
from typing import Any

import pytest

from herder.config.schema import HerderConfig, WorkerConfig
from herder.fleet.client import WorkerStatus
from herder.fleet.directory import ConfigWorkerDirectory
from herder.fleet.errors import MetricUnavailable, WorkerUnreachable


class FakeWorkerClient:
    """In-memory stand-in for WorkerClient that records every call.

    ``statuses`` maps endpoint -> WorkerStatus or an exception to raise.
    Endpoints without an entry report running.
    """

    def __init__(self):
        self.statuses: dict[str, Any] = {}
        self.start_errors: dict[str, Exception] = {}
        self.stop_errors: dict[str, Exception] = {}
        self.delays: dict[str, float] = {}
        self.calls: list[tuple] = []
        self.closed = False

    def unreachable(self, endpoint: str, reason: str = "connection refused") -> WorkerUnreachable:
        return WorkerUnreachable(endpoint, reason)

    async def _maybe_delay(self, endpoint: str) -> None:
        if endpoint in self.delays:
            await asyncio.sleep(self.delays[endpoint])

    async def get_status(self, endpoint, timeout=None):
        self.calls.append(("status", endpoint))
        await self._maybe_delay(endpoint)
        result = self.statuses.get(endpoint, WorkerStatus(running=True))
        if isinstance(result, Exception):
            raise result
        return result

    async def start(self, endpoint, target, resource_ref, mode, timeout=None):
        self.calls.append(("start", endpoint, target, resource_ref, mode))
        await self._maybe_delay(endpoint)
        if endpoint in self.start_errors:
            raise self.start_errors[endpoint]

    async def stop(self, endpoint, timeout=None):
        self.calls.append(("stop", endpoint))
        if endpoint in self.stop_errors:
            raise self.stop_errors[endpoint]

    async def close(self):
        self.closed = True

    def calls_to(self, kind: str, endpoint: str | None = None) -> list[tuple]:
        return [
            call
            for call in self.calls
            if call[0] == kind and (endpoint is None or call[1] == endpoint)
        ]


class FakeMetricSource:
    """Metric source returning preset values.

    A value may be an int, an exception to raise, or a list consumed one
    reading at a time (the last element repeats).
    """

    def __init__(self, values: dict[str, Any] | None = None):
        self.values: dict[str, Any] = dict(values or {})
        self.reads: list[str] = []

    async def read(self, resource_id: str) -> int:
        self.reads.append(resource_id)
        if resource_id not in self.values:
            raise MetricUnavailable(resource_id, "unknown resource")
        value = self.values[resource_id]
        if isinstance(value, list):
            value = value.pop(0) if len(value) > 1 else value[0]
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def default_config() -> HerderConfig:
    """Provide a default configuration for tests."""
    return HerderConfig()


@pytest.fixture
def worker_configs() -> list[WorkerConfig]:
    """Two enabled workers and one disabled."""
    return [
        WorkerConfig(id="w1", endpoint="http://w1"),
        WorkerConfig(id="w2", endpoint="http://w2"),
        WorkerConfig(id="w3", endpoint="http://w3", enabled=False),
    ]


@pytest.fixture
def fleet_config(worker_configs) -> HerderConfig:
    """Configuration with a small fleet and fast timeouts."""
    config = HerderConfig(workers=worker_configs)
    config.reconciler.unit_timeout = 2.0
    config.monitor.job_timeout = 2.0
    config.monitor.max_restarts = 3
    return config


@pytest.fixture
def directory(worker_configs) -> ConfigWorkerDirectory:
    return ConfigWorkerDirectory(worker_configs)


@pytest.fixture
def fake_client() -> FakeWorkerClient:
    return FakeWorkerClient()


@pytest.fixture
def fake_metrics() -> FakeMetricSource:
    return FakeMetricSource({"video123": 1000})
