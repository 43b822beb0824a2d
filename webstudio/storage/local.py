"""
Local storage implementations for development and tests.

These are in-memory or filesystem-based implementations
that work without any external services.
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any

from webstudio.core.utils import utc_now_iso
from webstudio.storage.base import ListStorage, QueueStorage, StorageProvider, seed_filter


def _matches(record: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    for key, value in filters.items():
        if record.get(key) != value:
            return False
    return True


# =============================================================================
# In-Memory List Storage
# =============================================================================


class InMemoryListStorage(ListStorage):
    """
    In-memory list store.

    Ids are assigned per list, starting at 1. ``fail_on`` lets tests make a
    given operation fail, e.g. ``{("update", "Containers")}``.
    """

    def __init__(self, fail_on: set[tuple[str, str]] | None = None):
        self._lists: dict[str, dict[int, dict[str, Any]]] = {}
        self._next_id: dict[str, int] = {}
        self.fail_on: set[tuple[str, str]] = fail_on or set()
        self.calls: list[tuple[str, str, int | None]] = []

    def _check(self, operation: str, list_name: str, item_id: int | None = None) -> None:
        self.calls.append((operation, list_name, item_id))
        if (operation, list_name) in self.fail_on:
            raise ConnectionError(f"{operation} on {list_name} failed")

    async def seed(self, list_name: str, records: list[dict[str, Any]]) -> int:
        """Insert records not yet present (keeps explicit ``Id`` values, bypasses ``fail_on``)."""
        items = self._lists.setdefault(list_name, {})
        fresh = seed_filter(list(items.values()), records)
        for record in fresh:
            item_id = int(record.get("Id") or self._allocate(list_name))
            items[item_id] = {**record, "Id": item_id}
            self._next_id[list_name] = max(self._next_id.get(list_name, 1), item_id + 1)
        return len(fresh)

    def _allocate(self, list_name: str) -> int:
        item_id = self._next_id.get(list_name, 1)
        self._next_id[list_name] = item_id + 1
        return item_id

    def get(self, list_name: str, item_id: int) -> dict[str, Any] | None:
        return self._lists.get(list_name, {}).get(int(item_id))

    def records(self, list_name: str) -> list[dict[str, Any]]:
        return [dict(r) for r in self._lists.get(list_name, {}).values()]

    def calls_for(self, operation: str, list_name: str) -> list[tuple[str, str, int | None]]:
        return [c for c in self.calls if c[0] == operation and c[1] == list_name]

    async def list_items(
        self,
        list_name: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        self._check("list", list_name)
        records = self._lists.get(list_name, {}).values()
        return [dict(r) for r in records if _matches(r, filters)]

    async def add_item(self, list_name: str, data: dict[str, Any]) -> dict[str, Any]:
        self._check("add", list_name)
        item_id = self._allocate(list_name)
        record = {**data, "Id": item_id, "Created": utc_now_iso(), "Modified": utc_now_iso()}
        self._lists.setdefault(list_name, {})[item_id] = record
        return dict(record)

    async def update_item(self, list_name: str, item_id: int, data: dict[str, Any]) -> None:
        self._check("update", list_name, int(item_id))
        items = self._lists.setdefault(list_name, {})
        if int(item_id) not in items:
            raise KeyError(f"Item {item_id} not found in {list_name}")
        items[int(item_id)].update(data)
        items[int(item_id)]["Modified"] = utc_now_iso()

    async def delete_item(self, list_name: str, item_id: int) -> None:
        self._check("delete", list_name, int(item_id))
        self._lists.get(list_name, {}).pop(int(item_id), None)


# =============================================================================
# JSON Directory List Storage
# =============================================================================


class JsonFileListStorage(ListStorage):
    """Store each list as one JSON file (``<base_path>/<list_name>.json``)."""

    def __init__(self, base_path: str = "./data/lists"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _list_path(self, list_name: str) -> Path:
        return self.base_path / f"{list_name}.json"

    def _read(self, list_name: str) -> list[dict[str, Any]]:
        path = self._list_path(list_name)
        if not path.exists():
            return []
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, list_name: str, records: list[dict[str, Any]]) -> None:
        path = self._list_path(list_name)
        path.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")

    async def list_items(
        self,
        list_name: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        return [r for r in self._read(list_name) if _matches(r, filters)]

    async def add_item(self, list_name: str, data: dict[str, Any]) -> dict[str, Any]:
        records = self._read(list_name)
        item_id = max((int(r["Id"]) for r in records), default=0) + 1
        record = {**data, "Id": item_id, "Created": utc_now_iso(), "Modified": utc_now_iso()}
        records.append(record)
        self._write(list_name, records)
        return record

    async def update_item(self, list_name: str, item_id: int, data: dict[str, Any]) -> None:
        records = self._read(list_name)
        for record in records:
            if int(record["Id"]) == int(item_id):
                record.update(data)
                record["Modified"] = utc_now_iso()
                self._write(list_name, records)
                return
        raise KeyError(f"Item {item_id} not found in {list_name}")

    async def delete_item(self, list_name: str, item_id: int) -> None:
        records = [r for r in self._read(list_name) if int(r["Id"]) != int(item_id)]
        self._write(list_name, records)

    async def seed(self, list_name: str, records: list[dict[str, Any]]) -> int:
        """Write records not yet present, keeping explicit ``Id`` values."""
        stored = self._read(list_name)
        fresh = seed_filter(stored, records)
        if not fresh:
            return 0
        existing = {int(r["Id"]): r for r in stored}
        next_id = max(existing, default=0) + 1
        for record in fresh:
            item_id = int(record.get("Id") or next_id)
            existing[item_id] = {**record, "Id": item_id}
            next_id = max(next_id, item_id + 1)
        self._write(list_name, [existing[k] for k in sorted(existing)])
        return len(fresh)


# =============================================================================
# In-Memory Queue Storage
# =============================================================================


class InMemoryQueueStorage(QueueStorage):
    """In-memory queue for development."""

    def __init__(self):
        self._queues: dict[str, list[tuple[str, dict[str, Any]]]] = {}
        self._pending: dict[str, dict[str, dict[str, Any]]] = {}

    async def enqueue(self, queue_name: str, message: dict[str, Any]) -> str:
        if queue_name not in self._queues:
            self._queues[queue_name] = []

        message_id = str(uuid.uuid4())
        self._queues[queue_name].append((message_id, message))
        return message_id

    async def dequeue(self, queue_name: str) -> dict[str, Any] | None:
        if queue_name not in self._queues or not self._queues[queue_name]:
            return None

        message_id, message = self._queues[queue_name].pop(0)

        # Track pending for ack
        if queue_name not in self._pending:
            self._pending[queue_name] = {}
        self._pending[queue_name][message_id] = message

        return {"_message_id": message_id, **message}

    async def ack(self, queue_name: str, message_id: str) -> None:
        if queue_name in self._pending and message_id in self._pending[queue_name]:
            del self._pending[queue_name][message_id]

    async def size(self, queue_name: str) -> int:
        return len(self._queues.get(queue_name, []))


# =============================================================================
# Factory
# =============================================================================


def create_local_storage(backend: str = "memory", data_dir: str = "./data") -> StorageProvider:
    """Create a StorageProvider with local implementations."""
    if backend == "json":
        lists: ListStorage = JsonFileListStorage(f"{data_dir}/lists")
    else:
        lists = InMemoryListStorage()
    return StorageProvider(lists=lists, queue=InMemoryQueueStorage())
