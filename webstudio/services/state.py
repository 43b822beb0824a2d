"""
Studio state manager.

``StudioState`` owns every entity collection the console edits and the flat
translation dictionary. It is the single writer: command methods mutate
local state synchronously, by replacing objects rather than editing them
in place, and then queue the matching remote write on the outbox. Readers
holding an earlier list or model therefore only ever see a complete
before- or after-snapshot.

There is no rollback. If a remote write later fails, the local value stays.

Construct one instance at startup and pass it to whatever needs it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

from webstudio.config import Settings, get_settings
from webstudio.core.events import Event, EventBus
from webstudio.core.models import (
    ContactQuery,
    Container,
    EntityKind,
    FooterConfig,
    NavItem,
    Page,
    SiteConfig,
    TranslationItem,
)
from webstudio.core.utils import utc_now_iso
from webstudio.services.integrity import ReferentialIntegrity
from webstudio.services.outbox import Outbox
from webstudio.storage import records
from webstudio.storage.base import GlobalSettingKeys, Lists, StorageProvider

logger = logging.getLogger(__name__)


class StateError(Exception):
    """A command referenced something that is not in the state."""


# =============================================================================
# Collections
# =============================================================================


@dataclass(frozen=True)
class Collection:
    """How one entity kind is stored locally and remotely."""

    attr: str
    list_name: str
    to_record: Callable[[Any], dict[str, Any]]
    from_record: Callable[[dict[str, Any]], Any]


COLLECTIONS: dict[EntityKind, Collection] = {
    EntityKind.NEWS: Collection(
        "news", Lists.NEWS, records.news_to_record, records.news_from_record
    ),
    EntityKind.EVENTS: Collection(
        "events", Lists.EVENTS, records.event_to_record, records.event_from_record
    ),
    EntityKind.DOCUMENTS: Collection(
        "documents", Lists.DOCUMENTS, records.document_to_record, records.document_from_record
    ),
    EntityKind.CONTAINER_ITEMS: Collection(
        "container_items",
        Lists.CONTAINER_ITEMS,
        records.container_item_to_record,
        records.container_item_from_record,
    ),
    EntityKind.CONTACTS: Collection(
        "contacts", Lists.CONTACTS, records.contact_to_record, records.contact_from_record
    ),
    EntityKind.SLIDER_ITEMS: Collection(
        "slider_items",
        Lists.SLIDER_ITEMS,
        records.slider_item_to_record,
        records.slider_item_from_record,
    ),
}


def _replace_by_id(items: list[Any], updated: Any) -> list[Any] | None:
    """New list with ``updated`` swapped in, or None when its id is absent."""
    found = False
    result = []
    for item in items:
        if item.id == updated.id:
            result.append(updated)
            found = True
        else:
            result.append(item)
    return result if found else None


# =============================================================================
# State
# =============================================================================


class StudioState:
    """
    All editable content plus the translation dictionary.

    Example:
        state = StudioState(storage, bus=EventBus())
        await ContentLoader(state).load()
        await state.delete_entity(EntityKind.EVENTS, "12")
    """

    def __init__(
        self,
        storage: StorageProvider,
        bus: EventBus | None = None,
        settings: Settings | None = None,
    ):
        self.storage = storage
        self.bus = bus
        self.settings = settings or get_settings()
        self.outbox = Outbox(storage.queue, self.settings.outbox_queue)
        self.integrity = ReferentialIntegrity(self)

        self.pages: list[Page] = []
        self.site_config = SiteConfig()
        self.news: list = []
        self.events: list = []
        self.documents: list = []
        self.container_items: list = []
        self.contacts: list = []
        self.slider_items: list = []
        self.contact_queries: list[ContactQuery] = []
        self.translation_items: list[TranslationItem] = []
        self.translation_sources: list[str] = list(self.settings.translation_sources_list)

    # =========================================================================
    # Reads
    # =========================================================================

    @property
    def navigation(self) -> list[NavItem]:
        return self.site_config.navigation

    @property
    def footer(self) -> FooterConfig:
        return self.site_config.footer

    def items(self, kind: EntityKind) -> list[Any]:
        if kind == EntityKind.PAGES:
            return self.pages
        return getattr(self, COLLECTIONS[kind].attr)

    def get_entity(self, kind: EntityKind, item_id: str) -> Any | None:
        for item in self.items(kind):
            if item.id == item_id:
                return item
        return None

    def get_page(self, page_id: str) -> Page | None:
        return self.get_entity(EntityKind.PAGES, page_id)

    def get_translation_item(self, item_id: str) -> TranslationItem | None:
        for entry in self.translation_items:
            if entry.id == item_id:
                return entry
        return None

    def referenceable(self) -> dict[EntityKind, list[Any]]:
        """Every collection a container may tag, pages included."""
        return {kind: self.items(kind) for kind in EntityKind}

    # =========================================================================
    # Events
    # =========================================================================

    async def emit(self, event_type: str, subject_id: str, payload: dict[str, Any] | None = None) -> None:
        if self.bus is None:
            return
        await self.bus.publish(Event(event_type=event_type, subject_id=subject_id, payload=payload or {}))

    # =========================================================================
    # Bulk replacement (loader, integrity sweeps)
    # =========================================================================

    def replace_pages(self, pages: list[Page]) -> None:
        self.pages = pages

    def replace_all(
        self,
        *,
        pages: list[Page] | None = None,
        site_config: SiteConfig | None = None,
        collections: dict[EntityKind, list[Any]] | None = None,
        contact_queries: list[ContactQuery] | None = None,
        translation_items: list[TranslationItem] | None = None,
        translation_sources: list[str] | None = None,
    ) -> None:
        """Swap in freshly loaded data. Arguments left as None keep their current value."""
        if pages is not None:
            self.pages = pages
        if site_config is not None:
            self.site_config = site_config
        for kind, items in (collections or {}).items():
            setattr(self, COLLECTIONS[kind].attr, list(items))
        if contact_queries is not None:
            self.contact_queries = contact_queries
        if translation_items is not None:
            self.translation_items = translation_items
        if translation_sources is not None:
            self.translation_sources = translation_sources

    # =========================================================================
    # Content entities
    # =========================================================================

    async def add_entity(self, kind: EntityKind, item: BaseModel) -> Any | None:
        """
        Create an entity remotely, then add it locally under its new id.

        Creation is the one write that is awaited: the backing list assigns
        the id. Returns None (and changes nothing) when the create fails.
        """
        collection = COLLECTIONS[kind]
        try:
            created = await self.storage.lists.add_item(collection.list_name, collection.to_record(item))
        except Exception as e:
            logger.error(f"Error creating {kind.value} item: {e}")
            return None

        now = utc_now_iso()
        saved = item.model_copy(
            update={
                "id": str(created["Id"]),
                "created_date": created.get("Created") or now,
                "modified_date": created.get("Modified") or now,
            }
        )
        setattr(self, collection.attr, [saved, *getattr(self, collection.attr)])
        await self.emit(f"{kind.value}.created", saved.id)
        return saved

    async def update_entity(self, kind: EntityKind, item: BaseModel) -> Any:
        collection = COLLECTIONS[kind]
        saved = item.model_copy(update={"modified_date": utc_now_iso()})
        items = _replace_by_id(getattr(self, collection.attr), saved)
        if items is None:
            raise StateError(f"No {kind.value} item with id {saved.id!r}")
        setattr(self, collection.attr, items)

        await self.outbox.enqueue_update(collection.list_name, saved.id, collection.to_record(saved))
        await self.emit(f"{kind.value}.updated", saved.id)
        return saved

    async def delete_entity(self, kind: EntityKind, item_id: str) -> None:
        """Remove an entity and every container reference to it."""
        collection = COLLECTIONS[kind]
        current = getattr(self, collection.attr)
        remaining = [item for item in current if item.id != item_id]
        if len(remaining) == len(current):
            raise StateError(f"No {kind.value} item with id {item_id!r}")
        setattr(self, collection.attr, remaining)

        await self.integrity.remove_item_from_containers(item_id)
        await self.outbox.enqueue_delete(collection.list_name, item_id)
        await self.emit(f"{kind.value}.deleted", item_id)

    # =========================================================================
    # Navigation, pages and containers
    # =========================================================================

    async def update_nav_item(self, item: NavItem) -> NavItem:
        saved = item.model_copy(update={"modified": utc_now_iso()})
        navigation = _replace_by_id(self.site_config.navigation, saved)
        if navigation is None:
            raise StateError(f"No navigation item with id {saved.id!r}")
        self.site_config = self.site_config.model_copy(update={"navigation": navigation})

        await self.outbox.enqueue_update(Lists.NAVIGATION, saved.id, records.nav_to_record(saved))
        await self.emit("navigation.updated", saved.id)
        return saved

    async def update_page(self, page: Page) -> Page:
        saved = page.model_copy(update={"modified_date": utc_now_iso()})
        pages = _replace_by_id(self.pages, saved)
        if pages is None:
            raise StateError(f"No page with id {saved.id!r}")
        self.pages = pages

        await self.outbox.enqueue_update(Lists.PAGES, saved.id, records.page_to_record(saved))
        await self.emit("page.updated", saved.id)
        return saved

    async def update_container(self, page_id: str, container: Container) -> Container:
        page = self.get_page(page_id)
        if page is None:
            raise StateError(f"No page with id {page_id!r}")
        containers = _replace_by_id(page.containers, container)
        if containers is None:
            raise StateError(f"No container {container.id!r} on page {page_id!r}")
        self.pages = _replace_by_id(self.pages, page.model_copy(update={"containers": containers}))

        await self.outbox.enqueue_update(
            Lists.CONTAINERS, container.id, records.container_to_record(container)
        )
        await self.emit("container.updated", container.id, {"page_id": page_id})
        return container

    # =========================================================================
    # Site configuration
    # =========================================================================

    def update_footer_config(self, footer: FooterConfig) -> None:
        """Replace the footer locally. Persist with ``save_global_settings``."""
        self.site_config = self.site_config.model_copy(update={"footer": footer})

    async def save_global_settings(self) -> None:
        """Queue the site configuration (footer included) as one SITE_CONFIG record."""
        setting = records.site_config_to_setting(self.site_config)
        await self.outbox.enqueue_upsert(
            Lists.GLOBAL_SETTINGS,
            {"Title": GlobalSettingKeys.SITE_CONFIG},
            {"ConfigData": setting["ConfigData"]},
        )
        await self.emit("settings.saved", GlobalSettingKeys.SITE_CONFIG)

    async def set_translation_sources(self, sources: list[str]) -> None:
        self.translation_sources = list(sources)
        await self.outbox.enqueue_upsert(
            Lists.GLOBAL_SETTINGS,
            {"Title": GlobalSettingKeys.TRANSLATION_SOURCES},
            {"ConfigData": json.dumps(self.translation_sources)},
        )
        await self.emit("settings.saved", GlobalSettingKeys.TRANSLATION_SOURCES)

    # =========================================================================
    # Translation dictionary
    # =========================================================================

    async def update_translation_item(
        self,
        item_id: str,
        source_list: str,
        original: str,
        lang: str,
        value: str,
    ) -> TranslationItem:
        """
        Upsert one language of a dictionary entry.

        Entries are created on first save and never deleted, even when the
        entity they describe goes away.
        """
        now = utc_now_iso()
        existing = self.get_translation_item(item_id)
        if existing is None:
            entry = TranslationItem(
                id=item_id,
                source_list=source_list,
                original=original,
                translations={lang: value},
                last_updated=now,
            )
            self.translation_items = [*self.translation_items, entry]
        else:
            entry = existing.model_copy(
                update={
                    "original": original,
                    "translations": {**existing.translations, lang: value},
                    "last_updated": now,
                }
            )
            self.translation_items = _replace_by_id(self.translation_items, entry)

        await self.outbox.enqueue_upsert(
            Lists.TRANSLATIONS,
            {"Title": item_id},
            records.translation_item_to_record(entry),
        )
        await self.emit("translation.saved", item_id, {"source_list": source_list, "lang": lang})
        return entry

    async def sync_translations(self) -> int:
        """
        Queue an upsert of every dictionary entry.

        Used after bulk edits or when the backing list was reset; entries
        are matched on ``Title`` so repeated syncs never duplicate rows.
        """
        for entry in self.translation_items:
            await self.outbox.enqueue_upsert(
                Lists.TRANSLATIONS,
                {"Title": entry.id},
                records.translation_item_to_record(entry),
            )
        logger.info(f"Queued sync of {len(self.translation_items)} translation entries")
        await self.emit("translation.synced", "all", {"count": len(self.translation_items)})
        return len(self.translation_items)
