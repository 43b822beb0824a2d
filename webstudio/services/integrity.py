"""
Referential integrity of container ``taggedItems``.

Containers reference content items by id only. When an item is deleted, or
when a load brings in references to items that no longer exist, the
dangling ids are filtered out of every affected container. Only the
containers that actually change are replaced (unchanged pages and
containers keep their identity) and each changed container is re-sent to
the backing store as a whole record.

The sweep itself is a pure function over pages; ``ReferentialIntegrity``
binds it to a ``StudioState`` and the persistence outbox.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable

from webstudio.core.models import Container, EntityKind, Page
from webstudio.storage.base import Lists
from webstudio.storage.records import container_to_record

if TYPE_CHECKING:
    from webstudio.services.state import StudioState

logger = logging.getLogger(__name__)


# =============================================================================
# Pure sweep
# =============================================================================


@dataclass(frozen=True)
class CleanedContainer:
    """A container whose tagged items were filtered."""

    page_id: str
    container: Container
    removed: tuple[str, ...]


def sweep_pages(
    pages: list[Page],
    keep: Callable[[str], bool],
) -> tuple[list[Page], list[CleanedContainer]]:
    """
    Filter every container's tagged items through ``keep``.

    Returns the new page list and the containers that changed. A container
    changes only when at least one id was dropped, so running the sweep
    again on its own output is a no-op.
    """
    new_pages: list[Page] = []
    cleaned: list[CleanedContainer] = []

    for page in pages:
        containers: list[Container] = []
        page_changed = False

        for container in page.containers:
            tagged = container.settings.tagged_items
            if not tagged:
                containers.append(container)
                continue

            kept = [item_id for item_id in tagged if keep(item_id)]
            if len(kept) == len(tagged):
                containers.append(container)
                continue

            settings = container.settings.model_copy(update={"tagged_items": kept})
            updated = container.model_copy(update={"settings": settings})
            containers.append(updated)
            cleaned.append(
                CleanedContainer(
                    page_id=page.id,
                    container=updated,
                    removed=tuple(item_id for item_id in tagged if not keep(item_id)),
                )
            )
            page_changed = True

        new_pages.append(page.model_copy(update={"containers": containers}) if page_changed else page)

    return new_pages, cleaned


def collect_valid_ids(collections: dict[EntityKind, Iterable[object]]) -> set[str]:
    """Ids of every entity a container is allowed to tag."""
    valid: set[str] = set()
    for items in collections.values():
        valid.update(str(item.id) for item in items)
    return valid


# =============================================================================
# State-bound engine
# =============================================================================


class ReferentialIntegrity:
    """Runs sweeps against the live state and queues the container writes."""

    def __init__(self, state: StudioState):
        self.state = state

    async def remove_item_from_containers(self, item_id: str) -> list[CleanedContainer]:
        """Drop ``item_id`` from every container that tags it."""
        item_id = str(item_id)
        return await self._sweep(lambda tagged_id: tagged_id != item_id, trigger=f"delete:{item_id}")

    async def validate_container_tagged_items(self) -> list[CleanedContainer]:
        """Drop every tagged id that names no existing entity."""
        valid = collect_valid_ids(self.state.referenceable())
        return await self._sweep(lambda tagged_id: tagged_id in valid, trigger="validate")

    async def _sweep(self, keep: Callable[[str], bool], trigger: str) -> list[CleanedContainer]:
        pages, cleaned = sweep_pages(self.state.pages, keep)
        if not cleaned:
            return []

        # Commit locally before any remote work
        self.state.replace_pages(pages)

        for entry in cleaned:
            container = entry.container
            logger.info(
                f"Removed {list(entry.removed)} from taggedItems of container "
                f"{container.id} on page {entry.page_id} ({trigger})"
            )
            try:
                await self.state.outbox.enqueue_update(
                    Lists.CONTAINERS, container.id, container_to_record(container)
                )
            except Exception as e:
                logger.error(f"Failed to queue update for container {container.id}: {e}")
            await self.state.emit(
                "container.tagged_items_cleaned",
                container.id,
                {"page_id": entry.page_id, "removed": list(entry.removed), "trigger": trigger},
            )

        return cleaned
