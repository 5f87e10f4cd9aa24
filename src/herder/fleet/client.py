"""HTTP client for worker instances."""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from herder.fleet.errors import WorkerUnreachable


class StatusPayload(BaseModel):
    """Body of ``GET /status`` as sent by workers."""

    model_config = ConfigDict(extra="ignore")

    running: bool
    success: int = 0
    requests: int = 0


@dataclass
class WorkerStatus:
    """What a worker reported about itself."""

    running: bool
    success_count: int = 0
    request_count: int = 0


class WorkerClient:
    """
    Issues start/stop/status calls against worker endpoints.

    Every failure mode (transport error, timeout, non-2xx, malformed body)
    surfaces as ``WorkerUnreachable``. There are no retries here; the loops
    decide what to do next tick.
    """

    def __init__(
        self,
        status_timeout: float = 5.0,
        command_timeout: float = 15.0,
        auth_token: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize worker client.

        Args:
            status_timeout: Default timeout in seconds for status checks
            command_timeout: Default timeout in seconds for start/stop
            auth_token: Optional bearer token passed to workers
            client: Optional pre-built httpx client (mainly for tests)
        """
        self.status_timeout = status_timeout
        self.command_timeout = command_timeout
        self.auth_token = auth_token
        self._client = client or httpx.AsyncClient()

    def _headers(self) -> dict[str, str]:
        headers = {}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    @staticmethod
    def _url(endpoint: str, path: str) -> str:
        return f"{endpoint.rstrip('/')}/{path}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        path: str,
        timeout: float,
        payload: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                self._url(endpoint, path),
                json=payload,
                headers=self._headers(),
                timeout=timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise WorkerUnreachable(endpoint, f"{path} timed out after {timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise WorkerUnreachable(
                endpoint, f"{path} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise WorkerUnreachable(endpoint, f"{path} failed: {e!r}") from e
        return response

    async def start(
        self,
        endpoint: str,
        target: int,
        resource_ref: str,
        mode: str,
        timeout: Optional[float] = None,
    ) -> None:
        """
        Ask a worker to start working toward a target.

        Args:
            endpoint: Worker base URL
            target: Counter value the worker should drive toward
            resource_ref: Resource the work is aimed at
            mode: Free-form label passed through to the worker
            timeout: Override for the default command timeout
        """
        payload = {"target": target, "resourceRef": resource_ref, "mode": mode}
        await self._request(
            "POST", endpoint, "start", timeout or self.command_timeout, payload
        )

    async def stop(self, endpoint: str, timeout: Optional[float] = None) -> None:
        """Ask a worker to stop."""
        await self._request("POST", endpoint, "stop", timeout or self.command_timeout, {})

    async def get_status(self, endpoint: str, timeout: Optional[float] = None) -> WorkerStatus:
        """
        Fetch a worker's self-reported status.

        Returns:
            Parsed worker status

        Raises:
            WorkerUnreachable: On any transport, HTTP or schema failure
        """
        response = await self._request("GET", endpoint, "status", timeout or self.status_timeout)
        try:
            body = StatusPayload.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise WorkerUnreachable(endpoint, f"unparseable status: {e}") from e

        return WorkerStatus(
            running=body.running,
            success_count=body.success,
            request_count=body.requests,
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
