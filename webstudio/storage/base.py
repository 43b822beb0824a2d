"""
Storage abstraction layer.

All remote persistence goes through these interfaces. The backing store is
a set of named lists (SharePoint-style): each list holds flat records with
an integer ``Id`` and string/JSON columns. Swapping the implementation
(in-memory, JSON directory, a REST client) does not change application code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel


def seed_filter(
    existing: list[dict[str, Any]],
    records: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    Drop seed records the list already holds.

    A record with an ``Id`` is present when that id exists. A record without
    one (global settings, dictionary entries) is present when a record with
    the same ``Title`` exists. Stored data always wins over the seed.
    """
    ids = {int(r["Id"]) for r in existing if r.get("Id") is not None}
    titles = {r.get("Title") for r in existing if r.get("Title") is not None}

    fresh = []
    for record in records:
        if record.get("Id") is not None:
            if int(record["Id"]) in ids:
                continue
            ids.add(int(record["Id"]))
        elif record.get("Title") is not None:
            if record["Title"] in titles:
                continue
            titles.add(record["Title"])
        fresh.append(record)
    return fresh


# =============================================================================
# Storage Interfaces
# =============================================================================


class ListStorage(ABC):
    """
    The backing list store.

    Every call may fail independently; callers treat failures as logged
    side effects, never as a reason to undo local state.
    """

    @abstractmethod
    async def list_items(
        self,
        list_name: str,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        """Return all records of a list, optionally filtered by column equality."""
        pass

    @abstractmethod
    async def add_item(self, list_name: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a record and return it with its assigned ``Id``."""
        pass

    @abstractmethod
    async def update_item(self, list_name: str, item_id: int, data: dict[str, Any]) -> None:
        """Overwrite the given columns of a record."""
        pass

    @abstractmethod
    async def delete_item(self, list_name: str, item_id: int) -> None:
        """Delete a record."""
        pass

    async def seed(self, list_name: str, records: list[dict[str, Any]]) -> int:
        """
        Insert seed records that the list does not hold yet.

        Returns how many were written. See ``seed_filter`` for what counts
        as already present.
        """
        fresh = seed_filter(await self.list_items(list_name), records)
        for record in fresh:
            await self.add_item(list_name, {k: v for k, v in record.items() if k != "Id"})
        return len(fresh)


class QueueStorage(ABC):
    """
    Message queue for persistence intents.

    Local Implementation: In-memory queue
    """

    @abstractmethod
    async def enqueue(self, queue_name: str, message: dict[str, Any]) -> str:
        """Add a message to queue, return message ID."""
        pass

    @abstractmethod
    async def dequeue(self, queue_name: str) -> dict[str, Any] | None:
        """Get next message from queue."""
        pass

    @abstractmethod
    async def ack(self, queue_name: str, message_id: str) -> None:
        """Acknowledge message processing complete."""
        pass

    @abstractmethod
    async def size(self, queue_name: str) -> int:
        """Number of messages waiting (not counting unacked ones)."""
        pass


# =============================================================================
# Storage Provider (dependency injection container)
# =============================================================================


class StorageProvider(BaseModel):
    """
    Container for all storage backends.

    Initialize once at startup with appropriate implementations.
    """

    model_config = {"arbitrary_types_allowed": True}

    lists: ListStorage
    queue: QueueStorage


# =============================================================================
# List Names
# =============================================================================


class Lists:
    """Backing list names."""

    PAGES = "SmartPages"
    CONTAINERS = "Containers"
    NAVIGATION = "TopNavigation"
    NEWS = "News"
    EVENTS = "Events"
    DOCUMENTS = "Documents"
    CONTAINER_ITEMS = "ContainerItems"
    SLIDER_ITEMS = "ImageSlider"
    CONTACTS = "Contacts"
    CONTACT_QUERIES = "ContactQueries"
    GLOBAL_SETTINGS = "GlobalSettings"
    TRANSLATIONS = "TranslationDictionary"


class GlobalSettingKeys:
    """``Title`` values of the records in the GlobalSettings list."""

    SITE_CONFIG = "SITE_CONFIG"
    TRANSLATION_SOURCES = "TRANSLATION_SOURCES"
