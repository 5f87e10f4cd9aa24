"""Pydantic models for herder.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Control API server configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8700, description="Server port", ge=1, le=65535)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8700"],
        description="Allowed CORS origins (use ['*'] for development only)",
    )


class WorkerConfig(BaseModel):
    """Configuration for a single worker instance in the fleet."""

    id: str = Field(description="Stable identifier for this worker (e.g., 'w1', 'eu-box-3')")
    endpoint: str = Field(description="Base URL of the worker, e.g. 'http://10.0.0.5:3000'")
    enabled: bool = Field(default=True, description="Whether this worker is supervised")


class DirectoryConfig(BaseModel):
    """Where fleet membership comes from."""

    method: Literal["explicit", "file"] = Field(
        default="explicit",
        description="'explicit' uses the workers list in this file, 'file' reads a JSON instance list",
    )
    path: str = Field(
        default="~/.herder/instances.json",
        description="JSON instance list used when method is 'file'",
    )


class WorkerClientConfig(BaseModel):
    """HTTP settings for talking to workers."""

    status_timeout: float = Field(default=5.0, description="Timeout for GET /status", gt=0)
    command_timeout: float = Field(
        default=15.0, description="Timeout for POST /start and POST /stop", gt=0
    )
    auth_token: str | None = Field(
        default=None, description="Bearer token passed through to workers, if they require one"
    )


class ReconcilerConfig(BaseModel):
    """Fleet keep-alive loop configuration."""

    enabled: bool = Field(default=True, description="Start with reconciliation enabled")
    interval: float = Field(default=30.0, description="Seconds between ticks", gt=0)
    unit_timeout: float = Field(
        default=40.0,
        description="Upper bound for one worker's status check plus restart",
        gt=0,
    )
    keepalive_target: int = Field(
        default=1_000_000_000,
        description="Target sent with keep-alive starts (large, the fleet just stays busy)",
        ge=1,
    )
    keepalive_resource: str = Field(
        default="keepalive", description="Placeholder resource sent with keep-alive starts"
    )
    keepalive_mode: str = Field(default="keepalive", description="Mode label for keep-alive starts")
    yield_to_jobs: bool = Field(
        default=True,
        description="Leave workers assigned to a running job to the job monitor's restart budget",
    )


class MonitorConfig(BaseModel):
    """Job monitor configuration."""

    interval: float = Field(default=15.0, description="Seconds between ticks", gt=0)
    max_restarts: int = Field(
        default=10, description="Auto-restart attempts per job before giving up", ge=0
    )
    job_timeout: float = Field(
        default=60.0, description="Upper bound for one job's check within a tick", gt=0
    )
    job_mode: str = Field(default="job", description="Mode label for goal-directed starts")


class MetricSourceConfig(BaseModel):
    """HTTP metric source configuration."""

    url_template: str = Field(
        default="http://localhost:8800/metrics/{resource_id}",
        description="URL to read, '{resource_id}' is substituted",
    )
    value_field: str = Field(
        default="value",
        description="Dotted path of the numeric field in the JSON response",
    )
    timeout: float = Field(default=5.0, description="Request timeout in seconds", gt=0)
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra request headers for the metric endpoint"
    )


class RegistrationConfig(BaseModel):
    """Worker self-registration."""

    key: str | None = Field(
        default=None, description="Initial registration key (generated when unset)"
    )
    key_file: str | None = Field(
        default=None, description="File the current registration key is persisted to"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Root log level"
    )


class HerderConfig(BaseModel):
    """Root configuration schema for herder."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    workers: list[WorkerConfig] = Field(
        default_factory=list,
        description="Fleet members, used when directory.method is 'explicit'",
    )
    directory: DirectoryConfig = Field(default_factory=DirectoryConfig)
    client: WorkerClientConfig = Field(default_factory=WorkerClientConfig)
    reconciler: ReconcilerConfig = Field(default_factory=ReconcilerConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    metrics: MetricSourceConfig = Field(default_factory=MetricSourceConfig)
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
