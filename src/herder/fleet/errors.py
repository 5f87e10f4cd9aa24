"""Error taxonomy for fleet supervision."""


class HerderError(Exception):
    """Base class for herder errors."""


class WorkerUnreachable(HerderError):
    """A worker could not be reached or returned something we can't trust.

    Covers transport errors, timeouts, non-2xx responses and bodies that do
    not match the expected schema.
    """

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"{endpoint}: {reason}")


class MetricUnavailable(HerderError):
    """The metric source has no usable value for a resource right now."""

    def __init__(self, resource_id: str, reason: str):
        self.resource_id = resource_id
        self.reason = reason
        super().__init__(f"metric for {resource_id!r} unavailable: {reason}")


class InvalidTarget(HerderError):
    """A job was requested whose goal would not exceed its start value."""


class JobNotFound(HerderError, KeyError):
    """No job with the given id exists."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"job {job_id!r} not found")

    def __str__(self) -> str:
        return self.args[0]


class DirectoryError(HerderError):
    """The worker directory could not be read or written."""


class RegistrationError(HerderError):
    """A worker presented a bad registration key."""


class WorkerNotFound(DirectoryError, KeyError):
    """The directory has no worker with the given id."""

    def __init__(self, worker_id: str):
        self.worker_id = worker_id
        super().__init__(f"worker {worker_id!r} not found")

    def __str__(self) -> str:
        return self.args[0]
