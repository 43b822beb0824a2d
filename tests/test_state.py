"""Tests for state commands, the event bus and the JSON-directory store."""

import json

import pytest

from webstudio.core.events import Event, EventBus
from webstudio.core.models import EntityKind, EventItem, FooterConfig, NewsItem, TranslationItem
from webstudio.services.state import StateError, StudioState
from webstudio.storage import InMemoryListStorage, InMemoryQueueStorage, JsonFileListStorage, Lists, StorageProvider


class TestEntityCommands:
    @pytest.mark.asyncio
    async def test_add_entity_takes_the_store_id(self, state, lists, bus):
        state.news = [NewsItem(id="7", title="Existing")]

        saved = await state.add_entity(EntityKind.NEWS, NewsItem(id="", title="Fresh"))

        assert saved.id == "1"  # first id the empty store hands out
        assert [n.title for n in state.news] == ["Fresh", "Existing"]
        assert lists.get(Lists.NEWS, 1)["Title"] == "Fresh"
        assert bus.get_history(event_type="news.created")

    @pytest.mark.asyncio
    async def test_failed_add_changes_nothing(self, settings):
        lists = InMemoryListStorage(fail_on={("add", Lists.EVENTS)})
        state = StudioState(StorageProvider(lists=lists, queue=InMemoryQueueStorage()), settings=settings)

        assert await state.add_entity(EntityKind.EVENTS, EventItem(id="", title="Meetup")) is None
        assert state.events == []

    @pytest.mark.asyncio
    async def test_update_entity_stamps_and_queues(self, state, worker, lists):
        await lists.seed(Lists.NEWS, [{"Id": 3, "Title": "Old"}])
        state.news = [NewsItem(id="3", title="Old")]

        saved = await state.update_entity(EntityKind.NEWS, NewsItem(id="3", title="New"))
        await worker.drain()

        assert saved.modified_date is not None
        assert state.news[0].title == "New"
        assert lists.get(Lists.NEWS, 3)["Title"] == "New"

    @pytest.mark.asyncio
    async def test_update_unknown_entity(self, state):
        with pytest.raises(StateError):
            await state.update_entity(EntityKind.NEWS, NewsItem(id="9", title="Ghost"))

    @pytest.mark.asyncio
    async def test_draft_ids_stay_local(self, state, worker):
        state.news = [NewsItem(id="news_draft", title="Draft")]

        await state.update_entity(EntityKind.NEWS, NewsItem(id="news_draft", title="Still draft"))

        assert state.news[0].title == "Still draft"
        assert await state.outbox.pending() == 0


class TestSiteSettings:
    @pytest.mark.asyncio
    async def test_footer_is_saved_with_site_config(self, state, worker, lists):
        state.update_footer_config(FooterConfig(sub_footer_text="Made here"))
        await state.save_global_settings()
        await state.save_global_settings()
        await worker.drain()

        stored = [r for r in lists.records(Lists.GLOBAL_SETTINGS) if r["Title"] == "SITE_CONFIG"]
        assert len(stored) == 1
        assert json.loads(stored[0]["ConfigData"])["footer"]["sub_footer_text"] == "Made here"


class TestEventBus:
    @pytest.mark.asyncio
    async def test_pattern_subscription(self):
        bus = EventBus()
        seen = []

        async def handler(event):
            seen.append(event.event_type)

        subscription = bus.subscribe("*.deleted", handler)
        await bus.publish(Event(event_type="news.deleted", subject_id="1"))
        await bus.publish(Event(event_type="news.updated", subject_id="1"))
        bus.unsubscribe(subscription)
        await bus.publish(Event(event_type="events.deleted", subject_id="2"))

        assert seen == ["news.deleted"]
        assert len(bus.get_history()) == 3

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        seen = []

        async def broken(event):
            raise RuntimeError("boom")

        async def handler(event):
            seen.append(event.subject_id)

        bus.subscribe("*", broken)
        bus.subscribe("*", handler)
        await bus.publish(Event(event_type="data.loaded", subject_id="all"))

        assert seen == ["all"]


class TestJsonFileListStorage:
    @pytest.mark.asyncio
    async def test_crud(self, tmp_path):
        store = JsonFileListStorage(str(tmp_path))
        await store.seed(Lists.NEWS, [{"Id": 4, "Title": "Seeded"}])

        added = await store.add_item(Lists.NEWS, {"Title": "Added"})
        await store.update_item(Lists.NEWS, 4, {"Title": "Changed"})
        await store.delete_item(Lists.NEWS, added["Id"])

        assert added["Id"] == 5
        records = await store.list_items(Lists.NEWS)
        assert [(r["Id"], r["Title"]) for r in records] == [(4, "Changed")]
        assert (tmp_path / "News.json").exists()

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, tmp_path):
        store = JsonFileListStorage(str(tmp_path))
        with pytest.raises(KeyError):
            await store.update_item(Lists.NEWS, 1, {"Title": "x"})


class TestTranslationSync:
    @pytest.mark.asyncio
    async def test_sync_upserts_every_entry_once(self, state, worker, lists, bus):
        await lists.seed(Lists.TRANSLATIONS, [{"Id": 5, "Title": "1", "SourceList": "News", "DE": "Alt"}])
        state.translation_items = [
            TranslationItem(id="1", source_list="News", original="Office", translations={"de": "Büro"}),
            TranslationItem(id="footer_sub", source_list="GlobalSettings", original="Sub", translations={"fr": "Bas"}),
        ]

        assert await state.sync_translations() == 2
        await state.sync_translations()
        await worker.drain()

        stored = {r["Title"]: r for r in lists.records(Lists.TRANSLATIONS)}
        assert set(stored) == {"1", "footer_sub"}
        assert stored["1"]["Id"] == 5
        assert stored["1"]["DE"] == "Büro"
        assert stored["footer_sub"]["FR"] == "Bas"
        assert bus.get_history(event_type="translation.synced")
