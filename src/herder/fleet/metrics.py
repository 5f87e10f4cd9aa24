"""Metric sources supplying the current counter value for a resource."""

import logging
from typing import Any, Optional, Protocol

import httpx

from herder.fleet.errors import MetricUnavailable

logger = logging.getLogger(__name__)


class MetricSource(Protocol):
    """Anything that can read the current counter for a resource.

    ``read`` raises ``MetricUnavailable`` when the value is unknown right now.
    It never returns a made-up zero.
    """

    async def read(self, resource_id: str) -> int: ...


def _extract(document: Any, dotted_path: str) -> Any:
    value = document
    for part in dotted_path.split("."):
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            raise KeyError(dotted_path)
    return value


def _to_int(value: Any) -> int:
    # bool is an int subclass, but "true" is not a counter
    if isinstance(value, bool):
        raise ValueError(f"not a number: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        cleaned = value.replace(",", "").replace("_", "").strip()
        return int(float(cleaned))
    raise ValueError(f"not a number: {value!r}")


class HttpMetricSource:
    """
    Reads a counter from a JSON HTTP endpoint.

    The URL is built from a template containing ``{resource_id}``; the value
    is taken from a dotted field path in the response (``"stats.views"``).
    """

    def __init__(
        self,
        url_template: str,
        value_field: str = "value",
        timeout: float = 5.0,
        headers: Optional[dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url_template = url_template
        self.value_field = value_field
        self.timeout = timeout
        self.headers = headers or {}
        self._client = client or httpx.AsyncClient()

    async def read(self, resource_id: str) -> int:
        url = self.url_template.format(resource_id=resource_id)
        try:
            response = await self._client.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPError as e:
            raise MetricUnavailable(resource_id, f"request failed: {e!r}") from e
        except ValueError as e:
            raise MetricUnavailable(resource_id, "response is not JSON") from e

        try:
            value = _to_int(_extract(document, self.value_field))
        except (KeyError, ValueError, OverflowError) as e:
            raise MetricUnavailable(
                resource_id, f"no numeric '{self.value_field}' in response"
            ) from e

        logger.debug(f"Metric for {resource_id}: {value}")
        return value

    async def close(self) -> None:
        await self._client.aclose()
