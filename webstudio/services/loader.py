"""
Bulk loader.

Fetches every backing list in parallel and swaps the decoded data into the
state in one step. Each fetch stands alone: a list that fails to load is
logged and treated as empty, and whatever the other lists returned is used.
Once everything is in memory the tagged-item validation sweep runs.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable

from webstudio.services.state import COLLECTIONS, StudioState
from webstudio.storage import records
from webstudio.storage.base import GlobalSettingKeys, Lists

logger = logging.getLogger(__name__)


@dataclass
class LoadReport:
    counts: dict[str, int] = field(default_factory=dict)
    failed_lists: list[str] = field(default_factory=list)
    cleaned_containers: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "counts": self.counts,
            "failed_lists": self.failed_lists,
            "cleaned_containers": self.cleaned_containers,
        }


def _sort_key(record: dict[str, Any]) -> int:
    try:
        return int(record.get("SortOrder") or 0)
    except (TypeError, ValueError):
        return 0


class ContentLoader:
    """Loads the whole console state from ``state.storage.lists``."""

    LISTS = [
        Lists.PAGES,
        Lists.CONTAINERS,
        Lists.NAVIGATION,
        Lists.NEWS,
        Lists.EVENTS,
        Lists.DOCUMENTS,
        Lists.CONTAINER_ITEMS,
        Lists.SLIDER_ITEMS,
        Lists.CONTACTS,
        Lists.CONTACT_QUERIES,
        Lists.GLOBAL_SETTINGS,
        Lists.TRANSLATIONS,
    ]

    def __init__(self, state: StudioState):
        self.state = state

    async def _fetch(self, list_name: str, report: LoadReport) -> list[dict[str, Any]]:
        try:
            return await self.state.storage.lists.list_items(list_name)
        except Exception as e:
            logger.error(f"Error fetching {list_name}: {e}")
            report.failed_lists.append(list_name)
            return []

    def _decode(self, list_name: str, rows: list[dict[str, Any]], decode: Callable[[dict[str, Any]], Any]) -> list[Any]:
        decoded = []
        for record in rows:
            try:
                decoded.append(decode(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable {list_name} record {record.get('Id')}: {e}")
        return decoded

    async def load(self) -> LoadReport:
        report = LoadReport()
        results = await asyncio.gather(*(self._fetch(name, report) for name in self.LISTS))
        fetched = dict(zip(self.LISTS, results))

        # Containers grouped under their page, in sort order
        by_page: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for record in fetched[Lists.CONTAINERS]:
            page_id = records.lookup_id(record, "Page")
            if page_id:
                by_page[page_id].append(record)
        for group in by_page.values():
            group.sort(key=_sort_key)

        pages = self._decode(
            Lists.PAGES,
            fetched[Lists.PAGES],
            lambda record: records.page_from_record(record, by_page.get(str(record["Id"]), [])),
        )
        navigation = self._decode(Lists.NAVIGATION, fetched[Lists.NAVIGATION], records.nav_from_record)
        navigation.sort(key=lambda item: item.order)

        collections = {
            kind: self._decode(collection.list_name, fetched[collection.list_name], collection.from_record)
            for kind, collection in COLLECTIONS.items()
        }
        queries = self._decode(
            Lists.CONTACT_QUERIES, fetched[Lists.CONTACT_QUERIES], records.contact_query_from_record
        )
        translations = self._decode(
            Lists.TRANSLATIONS, fetched[Lists.TRANSLATIONS], records.translation_item_from_record
        )

        settings = fetched[Lists.GLOBAL_SETTINGS]
        site_config = records.site_config_from_settings(
            settings, self.state.site_config.model_copy(update={"navigation": navigation})
        )
        sources = records.find_setting(settings, GlobalSettingKeys.TRANSLATION_SOURCES)
        if sources is not None and not isinstance(sources, list):
            logger.warning(f"Ignoring {GlobalSettingKeys.TRANSLATION_SOURCES}: expected a list")
            sources = None

        self.state.replace_all(
            pages=pages,
            site_config=site_config,
            collections=collections,
            contact_queries=queries,
            translation_items=translations,
            translation_sources=[str(s) for s in sources] if sources is not None else None,
        )

        report.counts = {
            "pages": len(pages),
            "containers": sum(len(page.containers) for page in pages),
            "navigation": len(navigation),
            **{kind.value: len(items) for kind, items in collections.items()},
            "contact_queries": len(queries),
            "translation_items": len(translations),
        }
        logger.info(f"Loaded content: {report.counts}")

        cleaned = await self.state.integrity.validate_container_tagged_items()
        report.cleaned_containers = len(cleaned)

        await self.state.emit("data.loaded", "all", report.to_dict())
        return report
