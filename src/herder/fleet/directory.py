"""Worker directories: where fleet membership comes from."""

import asyncio
import json
import logging
from pathlib import Path
from typing import Protocol, Union

from herder.config.schema import WorkerConfig
from herder.fleet.errors import DirectoryError, WorkerNotFound
from herder.fleet.state import WorkerEntry

logger = logging.getLogger(__name__)


class WorkerDirectory(Protocol):
    """Source of truth for fleet membership.

    A worker missing from the list is simply not supervised; that is not a
    failure.
    """

    async def list_workers(self) -> list[WorkerEntry]: ...


class ConfigWorkerDirectory:
    """Directory backed by the ``workers`` list of the YAML config.

    The enabled flag can be flipped at runtime; changes live in memory only.
    """

    def __init__(self, workers: list[WorkerConfig]):
        self._entries = {
            w.id: WorkerEntry(id=w.id, endpoint=w.endpoint, enabled=w.enabled) for w in workers
        }

    async def list_workers(self) -> list[WorkerEntry]:
        return [WorkerEntry(e.id, e.endpoint, e.enabled) for e in self._entries.values()]

    async def set_enabled(self, worker_id: str, enabled: bool) -> None:
        if worker_id not in self._entries:
            raise WorkerNotFound(worker_id)
        self._entries[worker_id].enabled = enabled
        logger.info(f"Worker {worker_id} {'enabled' if enabled else 'disabled'}")


class JsonFileWorkerDirectory:
    """
    Directory backed by a JSON file holding a list of instances.

    File format::

        [{"id": "w1", "endpoint": "http://10.0.0.5:3000", "enabled": true}, ...]

    The file is re-read on every ``list_workers`` call so edits made by other
    tools are picked up on the next tick.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path).expanduser()
        self._write_lock = asyncio.Lock()

    def _load(self) -> list[WorkerEntry]:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text() or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise DirectoryError(f"Cannot read instance list {self.path}: {e}") from e

        if not isinstance(data, list):
            raise DirectoryError(f"Instance list {self.path} must be a JSON array")

        entries = []
        for item in data:
            try:
                entries.append(
                    WorkerEntry(
                        id=str(item["id"]),
                        endpoint=str(item["endpoint"]),
                        enabled=bool(item.get("enabled", True)),
                    )
                )
            except (KeyError, TypeError, AttributeError):
                logger.warning(f"Skipping malformed instance entry in {self.path}: {item!r}")
        return entries

    def _save(self, entries: list[WorkerEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [{"id": e.id, "endpoint": e.endpoint, "enabled": e.enabled} for e in entries]
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp.write_text(json.dumps(data, indent=2))
            tmp.replace(self.path)
        except OSError as e:
            raise DirectoryError(f"Cannot write instance list {self.path}: {e}") from e

    async def list_workers(self) -> list[WorkerEntry]:
        return await asyncio.to_thread(self._load)

    async def register(self, worker_id: str, endpoint: str, enabled: bool = True) -> WorkerEntry:
        """Add an instance, or update its endpoint if the id is already known."""
        async with self._write_lock:
            entries = await asyncio.to_thread(self._load)
            for entry in entries:
                if entry.id == worker_id:
                    entry.endpoint = endpoint
                    entry.enabled = enabled
                    break
            else:
                entries.append(WorkerEntry(id=worker_id, endpoint=endpoint, enabled=enabled))
            await asyncio.to_thread(self._save, entries)
        logger.info(f"Registered instance {worker_id} at {endpoint}")
        return WorkerEntry(id=worker_id, endpoint=endpoint, enabled=enabled)

    async def remove(self, worker_id: str) -> bool:
        async with self._write_lock:
            entries = await asyncio.to_thread(self._load)
            kept = [e for e in entries if e.id != worker_id]
            if len(kept) == len(entries):
                return False
            await asyncio.to_thread(self._save, kept)
        logger.info(f"Removed instance {worker_id}")
        return True

    async def set_enabled(self, worker_id: str, enabled: bool) -> None:
        async with self._write_lock:
            entries = await asyncio.to_thread(self._load)
            for entry in entries:
                if entry.id == worker_id:
                    entry.enabled = enabled
                    break
            else:
                raise WorkerNotFound(worker_id)
            await asyncio.to_thread(self._save, entries)
        logger.info(f"Instance {worker_id} {'enabled' if enabled else 'disabled'}")
