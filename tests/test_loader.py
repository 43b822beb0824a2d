"""Tests for the bulk loader and the YAML seed loader."""

import json

import pytest

from conftest import SEED_DIR
from webstudio.config_loader import ConfigLoader, encode_record, load_seed
from webstudio.core.models import EntityKind
from webstudio.services.loader import ContentLoader
from webstudio.services.reconciler import build_rows
from webstudio.services.state import StudioState
from webstudio.storage import InMemoryListStorage, InMemoryQueueStorage, JsonFileListStorage, Lists, StorageProvider


async def seed_basic(lists):
    await lists.seed(Lists.PAGES, [{"Id": 1, "Title": "Home", "MultilingualTitle": json.dumps({"en": "Home"})}])
    await lists.seed(
        Lists.CONTAINERS,
        [
            {
                "Id": 21,
                "PageId": 1,
                "ContainerType": "CARD_GRID",
                "SortOrder": 2,
                "Settings": json.dumps({"taggedItems": ["1", "ghost_7", "2"], "source": "News"}),
            },
            {"Id": 20, "PageId": 1, "ContainerType": "HERO", "SortOrder": 1, "Title": "Hero"},
        ],
    )
    await lists.seed(Lists.NEWS, [{"Id": 1, "Title": "One"}, {"Id": 2, "Title": "Two"}])


class TestContentLoader:
    @pytest.mark.asyncio
    async def test_ghost_id_is_removed_with_one_update(self, state, lists, worker):
        await seed_basic(lists)

        report = await ContentLoader(state).load()
        await worker.drain()

        container = state.get_page("1").get_container("21")
        assert container.tagged_items == ["1", "2"]
        assert report.cleaned_containers == 1
        assert lists.calls_for("update", Lists.CONTAINERS) == [("update", Lists.CONTAINERS, 21)]
        assert json.loads(lists.get(Lists.CONTAINERS, 21)["Settings"])["taggedItems"] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_reload_after_cleanup_changes_nothing(self, state, lists, worker):
        await seed_basic(lists)
        await ContentLoader(state).load()
        await worker.drain()

        report = await ContentLoader(state).load()
        await worker.drain()

        assert report.cleaned_containers == 0
        assert len(lists.calls_for("update", Lists.CONTAINERS)) == 1

    @pytest.mark.asyncio
    async def test_containers_grouped_and_sorted(self, state, lists):
        await seed_basic(lists)

        await ContentLoader(state).load()

        assert [c.id for c in state.get_page("1").containers] == ["20", "21"]

    @pytest.mark.asyncio
    async def test_failed_list_loads_as_empty(self, settings):
        lists = InMemoryListStorage(fail_on={("list", Lists.EVENTS)})
        await seed_basic(lists)
        state = StudioState(StorageProvider(lists=lists, queue=InMemoryQueueStorage()), settings=settings)

        report = await ContentLoader(state).load()

        assert report.failed_lists == [Lists.EVENTS]
        assert state.events == []
        assert len(state.news) == 2

    @pytest.mark.asyncio
    async def test_translation_sources_setting_overrides_default(self, state, lists):
        await lists.seed(
            Lists.GLOBAL_SETTINGS,
            [{"Id": 1, "Title": "TRANSLATION_SOURCES", "ConfigData": json.dumps(["News", "Events"])}],
        )

        await ContentLoader(state).load()

        assert state.translation_sources == ["News", "Events"]

    @pytest.mark.asyncio
    async def test_non_list_sources_setting_is_ignored(self, state, lists, settings):
        await lists.seed(
            Lists.GLOBAL_SETTINGS,
            [{"Id": 1, "Title": "TRANSLATION_SOURCES", "ConfigData": json.dumps({"News": True})}],
        )

        await ContentLoader(state).load()

        assert state.translation_sources == settings.translation_sources_list

    @pytest.mark.asyncio
    async def test_publishes_loaded_event(self, state, bus):
        await ContentLoader(state).load()
        assert bus.get_history(event_type="data.loaded")


class TestSeedLoader:
    def test_encode_record_dumps_json_columns(self):
        encoded = encode_record({"Title": "x", "Translations": {"de": {"title": "y"}}, "SortOrder": 1})

        assert json.loads(encoded["Translations"]) == {"de": {"title": "y"}}
        assert encoded["SortOrder"] == 1

    def test_unknown_files_are_skipped(self, tmp_path):
        (tmp_path / "News.yaml").write_text("- Id: 1\n  Title: Hello\n", encoding="utf-8")
        (tmp_path / "Bogus.yaml").write_text("- Id: 1\n", encoding="utf-8")

        lists = ConfigLoader(tmp_path).read_all()

        assert list(lists) == [Lists.NEWS]

    @pytest.mark.asyncio
    async def test_bundled_seed_loads_end_to_end(self, state, lists):
        counts = await load_seed(lists, SEED_DIR)
        report = await ContentLoader(state).load()

        assert counts[Lists.NEWS] == 2
        assert report.counts["pages"] == 2
        # The news container tags a deleted item ("7") in the seed
        assert report.cleaned_containers == 1
        assert state.footer.copyright["de"] == "© 2026 Beispiel AG"
        assert len(state.items(EntityKind.NEWS)) == 2

        rows = {r.id: r for r in build_rows("News", state)}
        # Embedded German wins over the dictionary, dictionary French survives
        assert rows["1"].translations == {"de": "Neues Büro eröffnet", "fr": "Nouveau bureau"}

    @pytest.mark.asyncio
    async def test_reseeding_keeps_stored_data(self, lists):
        await load_seed(lists, SEED_DIR)
        await lists.update_item(Lists.NEWS, 1, {"Title": "Edited by user"})

        counts = await load_seed(lists, SEED_DIR)

        assert counts[Lists.NEWS] == 0
        assert lists.get(Lists.NEWS, 1)["Title"] == "Edited by user"
        titles = sorted(r["Title"] for r in lists.records(Lists.GLOBAL_SETTINGS))
        assert titles == ["SITE_CONFIG", "TRANSLATION_SOURCES"]
        assert len(lists.records(Lists.TRANSLATIONS)) == 1

    @pytest.mark.asyncio
    async def test_reseeding_json_store_keeps_stored_data(self, tmp_path):
        store = JsonFileListStorage(str(tmp_path))
        await load_seed(store, SEED_DIR)
        await store.update_item(Lists.NEWS, 1, {"Title": "Edited by user"})

        await load_seed(store, SEED_DIR)

        news = {r["Id"]: r["Title"] for r in await store.list_items(Lists.NEWS)}
        assert news[1] == "Edited by user"
        settings = await store.list_items(Lists.GLOBAL_SETTINGS)
        assert sorted(r["Title"] for r in settings) == ["SITE_CONFIG", "TRANSLATION_SOURCES"]
