"""
Persistence outbox.

Local state is authoritative the moment a command returns. Every remote
write is recorded as an intent on a queue and applied later by the
``OutboxWorker``, which retries with exponential backoff. An intent that
still fails after the last attempt is logged, reported and dropped: the
local copy stays as it is, and a fresh load will show what the backing
store actually holds.

Intent shape::

    {"op": "update", "list": "Containers", "item_id": 12, "data": {...}}
    {"op": "upsert", "list": "TranslationDictionary", "match": {"Title": "7"}, "data": {...}}
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential,
)

from webstudio.core.utils import is_numeric_id
from webstudio.integrations.sentry import capture_exception
from webstudio.storage.base import ListStorage, QueueStorage

logger = logging.getLogger(__name__)


OP_ADD = "add"
OP_UPDATE = "update"
OP_DELETE = "delete"
OP_UPSERT = "upsert"


# =============================================================================
# Outbox (producer side)
# =============================================================================


class Outbox:
    """Records persistence intents. Never touches the backing store itself."""

    def __init__(self, queue: QueueStorage, queue_name: str = "persistence"):
        self.queue = queue
        self.queue_name = queue_name

    async def _enqueue(self, intent: dict[str, Any]) -> str:
        message_id = await self.queue.enqueue(self.queue_name, intent)
        logger.debug(f"Queued {intent['op']} on {intent['list']} ({message_id})")
        return message_id

    async def enqueue_add(self, list_name: str, data: dict[str, Any]) -> str:
        return await self._enqueue({"op": OP_ADD, "list": list_name, "data": data})

    async def enqueue_update(
        self,
        list_name: str,
        item_id: str | int,
        data: dict[str, Any],
    ) -> str | None:
        if not is_numeric_id(item_id):
            logger.warning(f"Skipping remote update of {list_name} item {item_id!r}: not a list id")
            return None
        return await self._enqueue(
            {"op": OP_UPDATE, "list": list_name, "item_id": int(item_id), "data": data}
        )

    async def enqueue_delete(self, list_name: str, item_id: str | int) -> str | None:
        if not is_numeric_id(item_id):
            logger.warning(f"Skipping remote delete of {list_name} item {item_id!r}: not a list id")
            return None
        return await self._enqueue({"op": OP_DELETE, "list": list_name, "item_id": int(item_id)})

    async def enqueue_upsert(
        self,
        list_name: str,
        match: dict[str, Any],
        data: dict[str, Any],
    ) -> str:
        """Update the first record whose columns equal ``match``, or add one."""
        return await self._enqueue(
            {"op": OP_UPSERT, "list": list_name, "match": match, "data": data}
        )

    async def pending(self) -> int:
        return await self.queue.size(self.queue_name)


# =============================================================================
# Worker (consumer side)
# =============================================================================


@dataclass
class DrainReport:
    """What one ``drain()`` pass did."""

    applied: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.applied + self.failed


class OutboxWorker:
    """
    Applies queued intents to a ``ListStorage``.

    Each intent gets ``max_attempts`` tries with exponential backoff between
    ``backoff_min`` and ``backoff_max`` seconds. Failures after the last try
    are acked so the queue never wedges on one bad record.
    """

    def __init__(
        self,
        lists: ListStorage,
        queue: QueueStorage,
        queue_name: str = "persistence",
        max_attempts: int = 3,
        backoff_min: float = 1.0,
        backoff_max: float = 10.0,
    ):
        self.lists = lists
        self.queue = queue
        self.queue_name = queue_name
        self.max_attempts = max_attempts
        self.backoff_min = backoff_min
        self.backoff_max = backoff_max
        self._stopping = asyncio.Event()

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=1, min=self.backoff_min, max=self.backoff_max),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _apply(self, intent: dict[str, Any]) -> None:
        op = intent.get("op")
        list_name = intent["list"]
        data = intent.get("data") or {}

        if op == OP_ADD:
            await self.lists.add_item(list_name, data)
        elif op == OP_UPDATE:
            await self.lists.update_item(list_name, intent["item_id"], data)
        elif op == OP_DELETE:
            await self.lists.delete_item(list_name, intent["item_id"])
        elif op == OP_UPSERT:
            existing = await self.lists.list_items(list_name, filters=intent.get("match"))
            if existing:
                await self.lists.update_item(list_name, int(existing[0]["Id"]), data)
            else:
                await self.lists.add_item(list_name, {**(intent.get("match") or {}), **data})
        else:
            raise ValueError(f"Unknown outbox operation: {op!r}")

    async def process(self, intent: dict[str, Any]) -> bool:
        """Apply one intent with retries. Returns False when it was given up on."""
        try:
            async for attempt in self._retrying():
                with attempt:
                    await self._apply(intent)
        except Exception as e:
            logger.error(
                f"Giving up on {intent.get('op')} of {intent.get('list')} "
                f"item {intent.get('item_id', intent.get('match'))}: {e}"
            )
            capture_exception(e, intent=intent)
            return False
        return True

    async def drain(self) -> DrainReport:
        """Apply everything currently queued, in order."""
        report = DrainReport()
        while True:
            message = await self.queue.dequeue(self.queue_name)
            if message is None:
                break
            message_id = message.pop("_message_id", None)
            if await self.process(message):
                report.applied += 1
            else:
                report.failed += 1
                report.errors.append(f"{message.get('op')} {message.get('list')}")
            if message_id:
                await self.queue.ack(self.queue_name, message_id)

        if report.total:
            logger.info(f"Outbox drained: {report.applied} applied, {report.failed} failed")
        return report

    async def run_forever(self, poll_interval: float = 0.5) -> None:
        """Drain in a loop until ``stop()`` is called."""
        logger.info(f"Outbox worker started on queue {self.queue_name!r}")
        while not self._stopping.is_set():
            await self.drain()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                pass
        # Flush what was queued before the stop
        await self.drain()
        logger.info("Outbox worker stopped")

    def stop(self) -> None:
        self._stopping.set()
