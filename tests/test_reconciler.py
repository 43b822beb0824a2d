"""
Tests for translation reconciliation.

Rows merge the entity's embedded translations with the flat dictionary:
a union where the entity wins. Saving writes to both.
"""

import json

import pytest

from conftest import make_container, make_page
from webstudio.core.models import (
    ContactItem,
    ContactQuery,
    EventItem,
    FooterColumn,
    FooterConfig,
    FooterLink,
    NavItem,
    NewsItem,
    ReadMore,
    SourceList,
    TranslationItem,
)
from webstudio.services.reconciler import (
    UNSET_MARKER,
    CopyrightTarget,
    EntityTarget,
    FooterLinkTarget,
    SubFooterTarget,
    TranslationReconciler,
    build_rows,
    fields_for_source,
    filter_rows,
    primary_value,
    resolve_last_updated,
)
from webstudio.storage import Lists


@pytest.fixture
def reconciler(state):
    return TranslationReconciler(state)


@pytest.fixture
def footer():
    return FooterConfig(
        columns=[
            FooterColumn(
                id="c1",
                title="Company",
                translations={"de": "Unternehmen"},
                links=[FooterLink(id="l1", label="About", url="/about", translations={"fr": "À propos"})],
            )
        ],
        sub_footer_text="Made in Zurich",
        translations={"de": {"subFooterText": "Gemacht in Zürich"}},
        copyright={"en": "© Example", "de": "© Beispiel"},
        modified="2026-01-01T00:00:00+00:00",
    )


# =============================================================================
# Merging
# =============================================================================


class TestMerge:
    def test_entity_wins_and_cache_fills_gaps(self, state):
        state.news = [NewsItem(id="1", title="Office", translations={"de": {"title": "Titel DE"}})]
        state.translation_items = [
            TranslationItem(id="1", source_list="News", translations={"de": "Old DE", "fr": "Titre FR"})
        ]

        rows = build_rows("News", state)

        assert rows[0].translations == {"de": "Titel DE", "fr": "Titre FR"}

    def test_union_keeps_both_sides(self, state):
        state.events = [EventItem(id="2", title="Meetup", translations={"es": {"title": "Encuentro"}})]
        cache = [TranslationItem(id="2", source_list="Events", translations={"fr": "Rencontre"})]

        rows = build_rows("Events", state, cache)

        assert rows[0].translations == {"es": "Encuentro", "fr": "Rencontre"}

    def test_without_cache_entry_uses_embedded_only(self, state):
        state.news = [NewsItem(id="1", title="Office", translations={"de": {"description": "only body"}})]

        rows = build_rows("News", state)

        # No title-equivalent in the embedded object, nothing to show
        assert rows[0].translations == {}
        assert state.translation_items == []

    def test_original_comes_from_live_entity(self, state):
        state.news = [NewsItem(id="1", title="Renamed")]
        state.translation_items = [TranslationItem(id="1", source_list="News", original="Old name")]

        assert build_rows("News", state)[0].original == "Renamed"

    def test_flat_translations_are_used_directly(self, state):
        state.site_config = state.site_config.model_copy(
            update={"navigation": [NavItem(id="5", title="Home", translations={"de": "Start", "fr": ""})]}
        )

        row = build_rows("TopNavigation", state)[0]

        assert row.translations == {"de": "Start"}

    def test_contacts_use_full_name(self, state):
        state.contacts = [
            ContactItem(id="9", full_name="Anna Muster", translations={"de": {"fullName": "Anna M."}})
        ]

        row = build_rows("Contacts", state)[0]

        assert row.original == "Anna Muster"
        assert row.translations == {"de": "Anna M."}
        assert row.target == EntityTarget(row.target.entity_kind, "9")

    def test_unknown_source_yields_no_rows(self, state):
        state.news = [NewsItem(id="1", title="x")]
        assert build_rows("NoSuchList", state) == []
        assert build_rows("Images", state) == []


class TestSourceRows:
    def test_page_original_prefers_english_then_german(self, state):
        state.pages = [make_page("1", title={"de": "Startseite"}), make_page("2", title={})]

        rows = build_rows("SmartPages", state)

        assert [r.original for r in rows] == ["Startseite", ""]

    def test_containers_skip_untitled(self, state):
        untitled = make_container("12")
        untitled = untitled.model_copy(update={"content": {}, "title": ""})
        titled_only = make_container("11").model_copy(update={"content": {}, "title": "Plain"})
        state.pages = [make_page("1", make_container("10"), titled_only, untitled)]

        rows = build_rows("Containers", state)

        assert [(r.id, r.original) for r in rows] == [("10", "Container 10"), ("11", "Plain")]

    def test_contact_queries_fall_back_to_label(self, state):
        state.contact_queries = [ContactQuery(id="1", email=""), ContactQuery(id="2", email="a@b.c")]

        rows = build_rows("ContactQueries", state)

        assert [r.original for r in rows] == ["Contact Query", "a@b.c"]

    def test_footer_rows(self, state, footer):
        state.update_footer_config(footer)

        rows = {r.id: r for r in build_rows("GlobalSettings", state)}

        assert list(rows) == ["footer_col_c1", "footer_link_l1", "footer_sub", "footer_copyright"]
        assert rows["footer_col_c1"].translations == {"de": "Unternehmen"}
        assert rows["footer_link_l1"].target == FooterLinkTarget("c1", "l1")
        assert rows["footer_sub"].translations == {"de": "Gemacht in Zürich"}
        assert rows["footer_copyright"].original == "© Example"
        assert rows["footer_copyright"].translations == {"en": "© Example", "de": "© Beispiel"}

    def test_footer_without_sub_text_or_copyright(self, state):
        state.update_footer_config(FooterConfig())
        assert build_rows("GlobalSettings", state) == []


# =============================================================================
# Timestamps and search
# =============================================================================


class TestLastUpdated:
    def test_later_entity_timestamp_wins(self):
        assert resolve_last_updated("2026-05-02T00:00:00Z", "2026-05-01T00:00:00Z") == "2026-05-02T00:00:00Z"

    def test_later_cache_timestamp_wins(self):
        assert resolve_last_updated("2026-05-01T00:00:00Z", "2026-05-02T00:00:00Z") == "2026-05-02T00:00:00Z"

    def test_tie_goes_to_cache(self):
        assert resolve_last_updated("2026-05-01T00:00:00Z", "2026-05-01T00:00:00+00:00") == "2026-05-01T00:00:00+00:00"

    def test_unparseable_with_both_present_uses_cache(self):
        assert resolve_last_updated("not a date", "2026-05-01T00:00:00Z") == "2026-05-01T00:00:00Z"
        assert resolve_last_updated("2026-05-01T00:00:00Z", "garbage") == "garbage"

    def test_single_side(self):
        assert resolve_last_updated("2026-05-01", None) == "2026-05-01"
        assert resolve_last_updated(None, "whenever") == "whenever"

    def test_neither(self):
        assert resolve_last_updated(None, None) == UNSET_MARKER

    def test_row_uses_entity_modified_date(self, state):
        state.news = [NewsItem(id="1", title="x", modified_date="2026-06-01T00:00:00Z")]
        state.translation_items = [
            TranslationItem(id="1", source_list="News", last_updated="2026-01-01T00:00:00Z")
        ]
        assert build_rows("News", state)[0].last_updated == "2026-06-01T00:00:00Z"


class TestFilter:
    def test_matches_id_and_original_case_insensitively(self, state):
        state.news = [
            NewsItem(id="1", title="Office opening"),
            NewsItem(id="22", title="Report"),
            NewsItem(id="3", title="OFFICE party"),
        ]
        rows = build_rows("News", state)

        assert [r.id for r in filter_rows(rows, "office")] == ["1", "3"]
        assert [r.id for r in filter_rows(rows, "22")] == ["22"]
        assert filter_rows(rows, "") == rows


# =============================================================================
# Saving
# =============================================================================


class TestSave:
    @pytest.mark.asyncio
    async def test_save_news_writes_entity_and_dictionary(self, state, reconciler, storage):
        state.news = [NewsItem(id="1", title="Office", translations={"de": {"readMoreText": "Mehr"}})]
        row = build_rows("News", state)[0]

        entry = await reconciler.save_translation(row, "de", {"title": "Büro", "description": "<p>Neu</p>"})

        news = state.get_entity(row.target.entity_kind, "1")
        assert news.translations["de"] == {"readMoreText": "Mehr", "title": "Büro", "description": "<p>Neu</p>"}
        assert entry.translations == {"de": "Büro"}
        assert entry.original == "Office"
        assert state.get_translation_item("1") is entry
        assert await storage.queue.size("persistence") == 2

    @pytest.mark.asyncio
    async def test_save_page_title(self, state, reconciler):
        state.pages = [make_page("1", title={"en": "Home"})]
        row = build_rows("SmartPages", state)[0]

        await reconciler.save_translation(row, "fr", {"title": "Accueil"})

        assert state.get_page("1").title == {"en": "Home", "fr": "Accueil"}

    @pytest.mark.asyncio
    async def test_save_container_content(self, state, reconciler):
        container = make_container("10").model_copy(
            update={"content": {"title": {"en": "Welcome"}, "heading": "Plain heading"}}
        )
        state.pages = [make_page("1", container)]
        row = build_rows("Containers", state)[0]

        await reconciler.save_translation(row, "de", {"title": "Willkommen", "heading": "Überschrift", "subheading": "Neu"})

        content = state.get_page("1").containers[0].content
        assert content["title"] == {"en": "Welcome", "de": "Willkommen"}
        assert content["heading"] == {"en": "Plain heading", "de": "Überschrift"}
        assert content["subheading"] == {"de": "Neu"}

    @pytest.mark.asyncio
    async def test_save_nav_item(self, state, reconciler):
        state.site_config = state.site_config.model_copy(
            update={"navigation": [NavItem(id="5", title="Home", translations={"de": "Start"})]}
        )
        row = build_rows("TopNavigation", state)[0]

        await reconciler.save_translation(row, "es", {"title": "Inicio"})

        assert state.navigation[0].translations == {"de": "Start", "es": "Inicio"}
        assert state.navigation[0].modified is not None

    @pytest.mark.asyncio
    async def test_contact_query_only_updates_dictionary(self, state, reconciler):
        state.contact_queries = [ContactQuery(id="1", email="a@b.c")]
        row = build_rows("ContactQueries", state)[0]

        await reconciler.save_translation(row, "de", {"title": "Anfrage"})

        assert state.contact_queries[0] == ContactQuery(id="1", email="a@b.c")
        assert state.get_translation_item("1").translations == {"de": "Anfrage"}

    @pytest.mark.asyncio
    async def test_dictionary_entry_is_updated_not_duplicated(self, state, reconciler):
        state.news = [NewsItem(id="1", title="Office")]
        row = build_rows("News", state)[0]

        await reconciler.save_translation(row, "de", {"title": "Büro"})
        await reconciler.save_translation(build_rows("News", state)[0], "fr", {"title": "Bureau"})

        assert len(state.translation_items) == 1
        assert state.translation_items[0].translations == {"de": "Büro", "fr": "Bureau"}


class TestFooterDispatch:
    @pytest.mark.asyncio
    async def test_each_footer_kind_writes_its_own_path(self, state, reconciler, footer):
        state.update_footer_config(footer)
        rows = {r.id: r for r in build_rows("GlobalSettings", state)}

        await reconciler.save_translation(rows["footer_col_c1"], "fr", {"title": "Entreprise"})
        await reconciler.save_translation(rows["footer_link_l1"], "de", {"title": "Über uns"})
        await reconciler.save_translation(rows["footer_sub"], "fr", {"title": "Fait à Zurich"})
        await reconciler.save_translation(rows["footer_copyright"], "es", {"title": "© Ejemplo"})

        saved = state.footer
        column = saved.columns[0]
        assert column.translations == {"de": "Unternehmen", "fr": "Entreprise"}
        assert column.modified is not None
        assert column.links[0].translations == {"fr": "À propos", "de": "Über uns"}
        assert saved.translations["fr"] == {"subFooterText": "Fait à Zurich"}
        assert saved.translations["de"] == {"subFooterText": "Gemacht in Zürich"}
        assert saved.copyright == {"en": "© Example", "de": "© Beispiel", "es": "© Ejemplo"}
        assert isinstance(rows["footer_sub"].target, SubFooterTarget)
        assert isinstance(rows["footer_copyright"].target, CopyrightTarget)

    @pytest.mark.asyncio
    async def test_footer_is_persisted_as_site_config(self, state, reconciler, footer, worker, lists):
        state.update_footer_config(footer)
        row = build_rows("GlobalSettings", state)[0]

        await reconciler.save_translation(row, "es", {"title": "Empresa"})
        await worker.drain()

        settings = await lists.list_items(Lists.GLOBAL_SETTINGS, filters={"Title": "SITE_CONFIG"})
        assert len(settings) == 1
        stored = json.loads(settings[0]["ConfigData"])
        assert stored["footer"]["columns"][0]["translations"]["es"] == "Empresa"
        assert "navigation" not in stored

        dictionary = await lists.list_items(Lists.TRANSLATIONS, filters={"Title": "footer_col_c1"})
        assert dictionary[0]["ES"] == "Empresa"
        assert dictionary[0]["SourceList"] == "GlobalSettings"


class TestPrimaryValue:
    def test_title_first(self):
        assert primary_value({"description": "d", "title": "t", "label": "l"}) == "t"

    def test_label_second(self):
        assert primary_value({"url": "u", "label": "l"}) == "l"

    def test_first_field_otherwise(self):
        assert primary_value({"location": "Ort", "description": "Text"}) == "Ort"

    def test_nothing(self):
        assert primary_value({}) is None

    @pytest.mark.asyncio
    async def test_event_location_only_goes_to_dictionary(self, state, reconciler):
        state.events = [EventItem(id="4", title="Meetup")]
        row = build_rows("Events", state)[0]

        await reconciler.save_translation(row, "de", {"location": "Dachterrasse"})

        assert state.get_translation_item("4").translations == {"de": "Dachterrasse"}


# =============================================================================
# Editor form and suggestions
# =============================================================================


class TestEditForm:
    def test_news_form(self, state, reconciler):
        state.news = [
            NewsItem(
                id="1",
                title="Office",
                description="<p>Body</p>",
                read_more=ReadMore(enabled=True, text="Read on"),
                translations={"de": {"title": "Büro", "readMoreText": "Weiterlesen"}},
            )
        ]
        row = build_rows("News", state)[0]

        form = reconciler.edit_form(row, "de")

        assert list(form) == [f.key for f in fields_for_source("News")]
        assert form["title"] == {"original": "Office", "translation": "Büro"}
        assert form["description"] == {"original": "<p>Body</p>", "translation": ""}
        assert form["readMoreText"] == {"original": "Read on", "translation": "Weiterlesen"}

    def test_dictionary_value_fills_title_when_entity_has_none(self, state, reconciler):
        state.news = [NewsItem(id="1", title="Office")]
        state.translation_items = [TranslationItem(id="1", source_list="News", translations={"fr": "Bureau"})]
        row = build_rows("News", state)[0]

        form = reconciler.edit_form(row, "fr")

        assert form["title"]["translation"] == "Bureau"
        assert form["description"]["translation"] == ""

    def test_default_fields(self):
        assert [f.key for f in fields_for_source(SourceList.GLOBAL_SETTINGS.value)] == ["title"]
        assert [f.key for f in fields_for_source("Anything")] == ["title"]


class TestSuggest:
    @pytest.mark.asyncio
    async def test_transforms_each_non_empty_original(self, state, reconciler):
        state.events = [EventItem(id="4", title="Meetup", location="Roof")]
        row = build_rows("Events", state)[0]
        seen = []

        async def transform(text, language):
            seen.append(language)
            if text == "Roof":
                raise RuntimeError("quota exceeded")
            return f"{text} ({language})"

        suggestions = await reconciler.suggest(row, "de", transform)

        assert suggestions == {"title": "Meetup (German)"}
        assert seen == ["German", "German"]
