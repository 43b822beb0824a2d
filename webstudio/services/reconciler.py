"""
Translation reconciler.

The console shows one "translate everything" table per source list. Each
row merges two places a translation can live:

1. The entity itself: news, events and most content carry an embedded
   ``translations[lang]`` object; pages and container content hold
   MultilingualText directly; navigation and footer items hold a flat
   ``{lang: text}`` map.
2. The flat translation dictionary (``StudioState.translation_items``),
   a denormalized index keyed by the same ids.

Merging is a union and the entity wins on collisions, since the dictionary
can lag behind. Saving an edit writes to the owning entity and always
upserts the dictionary entry too.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, ClassVar, Union

from webstudio.core.models import (
    Container,
    EntityKind,
    FooterConfig,
    SourceList,
    TranslationItem,
)
from webstudio.core.utils import parse_timestamp, utc_now_iso
from webstudio.i18n.languages import DEFAULT_LANGUAGE, get_language_name, get_localized_text
from webstudio.services.state import StateError, StudioState

logger = logging.getLogger(__name__)


# Shown when neither the entity nor the dictionary knows a modification time
UNSET_MARKER = "-"

FOOTER_SUB_ID = "footer_sub"
FOOTER_COPYRIGHT_ID = "footer_copyright"

# Async text transform used for suggestions: (text, target language name) -> text
TextTransform = Callable[[str, str], Awaitable[str]]


# =============================================================================
# Row targets
# =============================================================================
#
# Every row knows exactly which thing it edits. Saving matches on the
# target type, so each kind has one write path.


@dataclass(frozen=True)
class NavTarget:
    kind: ClassVar[str] = "NavItem"
    item_id: str


@dataclass(frozen=True)
class PageTarget:
    kind: ClassVar[str] = "Page"
    page_id: str


@dataclass(frozen=True)
class ContainerTarget:
    kind: ClassVar[str] = "Container"
    page_id: str
    container_id: str


@dataclass(frozen=True)
class EntityTarget:
    """News, events, documents, container items and contacts."""

    kind: ClassVar[str] = "Entity"
    entity_kind: EntityKind
    item_id: str


@dataclass(frozen=True)
class FooterColumnTarget:
    kind: ClassVar[str] = "FooterColumn"
    column_id: str


@dataclass(frozen=True)
class FooterLinkTarget:
    kind: ClassVar[str] = "FooterLink"
    column_id: str
    link_id: str


@dataclass(frozen=True)
class SubFooterTarget:
    kind: ClassVar[str] = "SubFooterText"


@dataclass(frozen=True)
class CopyrightTarget:
    kind: ClassVar[str] = "FooterCopyright"


@dataclass(frozen=True)
class ContactQueryTarget:
    kind: ClassVar[str] = "ContactQuery"
    query_id: str


RowTarget = Union[
    NavTarget,
    PageTarget,
    ContainerTarget,
    EntityTarget,
    FooterColumnTarget,
    FooterLinkTarget,
    SubFooterTarget,
    CopyrightTarget,
    ContactQueryTarget,
]

_FOOTER_TARGETS = (FooterColumnTarget, FooterLinkTarget, SubFooterTarget, CopyrightTarget)


# =============================================================================
# Rows
# =============================================================================


@dataclass
class SourceRow:
    """One live entity as seen by a source list, before merging."""

    id: str
    original: str
    target: RowTarget
    entity: Any = None
    embedded: dict[str, Any] = field(default_factory=dict)
    modified: str | None = None
    title_key: str = "title"


@dataclass
class TranslationRow:
    """A merged, display-ready row."""

    id: str
    source_list: str
    original: str
    translations: dict[str, str]
    last_updated: str
    target: RowTarget
    entity: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source_list": self.source_list,
            "original": self.original,
            "translations": self.translations,
            "last_updated": self.last_updated,
            "kind": self.target.kind,
        }


@dataclass(frozen=True)
class FieldSpec:
    """One editable field in the translation form."""

    key: str
    label: str
    type: str = "text"  # text | rich


_FIELDS: dict[str, list[FieldSpec]] = {
    SourceList.NEWS.value: [
        FieldSpec("title", "Title"),
        FieldSpec("description", "Description", "rich"),
        FieldSpec("readMoreText", "Read More Text"),
    ],
    SourceList.EVENTS.value: [
        FieldSpec("title", "Title"),
        FieldSpec("description", "Description", "rich"),
        FieldSpec("location", "Location"),
        FieldSpec("readMoreText", "Read More Text"),
    ],
    SourceList.SMART_PAGES.value: [FieldSpec("title", "Page Title")],
    SourceList.CONTAINERS.value: [
        FieldSpec("title", "Title"),
        FieldSpec("heading", "Heading"),
        FieldSpec("subheading", "Subheading"),
    ],
    SourceList.DOCUMENTS.value: [
        FieldSpec("title", "Document Title"),
        FieldSpec("description", "Description", "rich"),
    ],
    SourceList.TOP_NAVIGATION.value: [FieldSpec("title", "Navigation Title")],
    SourceList.CONTAINER_ITEMS.value: [
        FieldSpec("title", "Title"),
        FieldSpec("description", "Description", "rich"),
    ],
    SourceList.CONTACTS.value: [
        FieldSpec("fullName", "Full Name"),
        FieldSpec("jobTitle", "Job Title"),
        FieldSpec("company", "Company"),
        FieldSpec("description", "Description", "rich"),
    ],
}

_DEFAULT_FIELDS = [FieldSpec("title", "Translation")]


def fields_for_source(source: str) -> list[FieldSpec]:
    return _FIELDS.get(source, _DEFAULT_FIELDS)


# =============================================================================
# Build step
# =============================================================================


def _entity_rows(items: list[Any], kind: EntityKind, title_key: str = "title") -> list[SourceRow]:
    rows = []
    for item in items:
        original = item.full_name if kind == EntityKind.CONTACTS else item.title
        rows.append(
            SourceRow(
                id=item.id,
                original=original,
                target=EntityTarget(kind, item.id),
                entity=item,
                embedded=item.translations,
                modified=entity_timestamp(item),
                title_key=title_key,
            )
        )
    return rows


def _container_rows(state: StudioState) -> list[SourceRow]:
    rows = []
    for page in state.pages:
        for container in page.containers:
            title = container.content.get("title")
            if isinstance(title, dict) and title.get(DEFAULT_LANGUAGE):
                original = title[DEFAULT_LANGUAGE]
            elif container.title:
                original = container.title
            else:
                continue
            rows.append(
                SourceRow(
                    id=container.id,
                    original=original,
                    target=ContainerTarget(page.id, container.id),
                    entity=container,
                    embedded=title if isinstance(title, dict) else {},
                )
            )
    return rows


def _footer_rows(footer: FooterConfig) -> list[SourceRow]:
    rows = []
    for column in footer.columns:
        rows.append(
            SourceRow(
                id=f"footer_col_{column.id}",
                original=column.title,
                target=FooterColumnTarget(column.id),
                entity=column,
                embedded=column.translations,
                modified=column.modified,
            )
        )
        for link in column.links:
            rows.append(
                SourceRow(
                    id=f"footer_link_{link.id}",
                    original=link.label,
                    target=FooterLinkTarget(column.id, link.id),
                    entity=link,
                    embedded=link.translations,
                    modified=link.modified,
                )
            )

    if footer.sub_footer_text:
        rows.append(
            SourceRow(
                id=FOOTER_SUB_ID,
                original=footer.sub_footer_text,
                target=SubFooterTarget(),
                entity=footer,
                embedded=footer.translations,
                modified=footer.modified,
            )
        )

    if footer.copyright:
        rows.append(
            SourceRow(
                id=FOOTER_COPYRIGHT_ID,
                original=footer.copyright.get(DEFAULT_LANGUAGE, ""),
                target=CopyrightTarget(),
                entity=footer,
                embedded=footer.copyright,
                modified=footer.modified,
            )
        )
    return rows


def source_rows(source: str, state: StudioState) -> list[SourceRow]:
    """The live entities behind one source list, in display order."""
    if source == SourceList.TOP_NAVIGATION:
        return [
            SourceRow(
                id=item.id,
                original=item.title,
                target=NavTarget(item.id),
                entity=item,
                embedded=item.translations,
                modified=item.modified,
            )
            for item in state.navigation
        ]
    if source == SourceList.SMART_PAGES:
        return [
            SourceRow(
                id=page.id,
                original=page.title.get("en") or page.title.get("de") or "",
                target=PageTarget(page.id),
                entity=page,
                embedded=page.title,
                modified=page.modified_date,
            )
            for page in state.pages
        ]
    if source == SourceList.NEWS:
        return _entity_rows(state.news, EntityKind.NEWS)
    if source == SourceList.EVENTS:
        return _entity_rows(state.events, EntityKind.EVENTS)
    if source == SourceList.DOCUMENTS:
        return _entity_rows(state.documents, EntityKind.DOCUMENTS)
    if source == SourceList.CONTAINER_ITEMS:
        return _entity_rows(state.container_items, EntityKind.CONTAINER_ITEMS)
    if source == SourceList.CONTACTS:
        return _entity_rows(state.contacts, EntityKind.CONTACTS, title_key="fullName")
    if source == SourceList.CONTAINERS:
        return _container_rows(state)
    if source == SourceList.CONTACT_QUERIES:
        return [
            SourceRow(
                id=query.id,
                original=query.email or "Contact Query",
                target=ContactQueryTarget(query.id),
                entity=query,
                modified=query.created,
            )
            for query in state.contact_queries
        ]
    if source == SourceList.GLOBAL_SETTINGS:
        return _footer_rows(state.footer)
    return []


def extract_embedded(row: SourceRow) -> dict[str, str]:
    """
    Flatten embedded translations to ``{lang: text}``.

    Strings are taken as they are. Objects contribute their title-equivalent
    field (``subFooterText`` for the sub-footer row). Empty picks are skipped.
    """
    extracted: dict[str, str] = {}
    for lang, value in (row.embedded or {}).items():
        if isinstance(value, str):
            picked = value
        elif isinstance(value, dict):
            picked = value.get(row.title_key)
            if not picked and isinstance(row.target, SubFooterTarget):
                picked = value.get("subFooterText")
        else:
            picked = None
        if isinstance(picked, str) and picked:
            extracted[lang] = picked
    return extracted


def entity_timestamp(entity: Any) -> str | None:
    """``modified``, else ``modified_date``, else ``last_updated``."""
    for attr in ("modified", "modified_date", "last_updated"):
        value = getattr(entity, attr, None)
        if value:
            return value
    return None


def resolve_last_updated(source_date: str | None, cache_date: str | None) -> str:
    """
    Pick the timestamp to show for a row.

    With both present, the entity's wins only when both parse and it is
    strictly later; otherwise the dictionary's is shown. With one present,
    that one. With neither, ``UNSET_MARKER``.
    """
    if source_date and cache_date:
        source_dt = parse_timestamp(source_date)
        cache_dt = parse_timestamp(cache_date)
        if source_dt and cache_dt and source_dt > cache_dt:
            return source_date
        return cache_date
    return source_date or cache_date or UNSET_MARKER


def build_rows(
    source: str,
    state: StudioState,
    cache: list[TranslationItem] | None = None,
) -> list[TranslationRow]:
    """Merge the live entities of ``source`` with the translation dictionary."""
    entries = state.translation_items if cache is None else cache
    by_id = {entry.id: entry for entry in entries}

    rows = []
    for src in source_rows(source, state):
        extracted = extract_embedded(src)
        existing = by_id.get(src.id)
        if existing is None:
            translations = extracted
            cache_date = None
        else:
            translations = {**existing.translations, **extracted}
            cache_date = existing.last_updated

        rows.append(
            TranslationRow(
                id=src.id,
                source_list=source,
                original=src.original,
                translations=translations,
                last_updated=resolve_last_updated(src.modified, cache_date),
                target=src.target,
                entity=src.entity,
            )
        )
    return rows


def filter_rows(rows: list[TranslationRow], query: str = "") -> list[TranslationRow]:
    """Case-insensitive substring match on id and original text."""
    if not query:
        return rows
    needle = query.lower()
    return [
        row for row in rows
        if needle in (row.original or "").lower() or needle in (row.id or "").lower()
    ]


def primary_value(values: dict[str, str]) -> str | None:
    """The value written to the dictionary: title, else label, else the first field."""
    if values.get("title"):
        return values["title"]
    if values.get("label"):
        return values["label"]
    for value in values.values():
        return value
    return None


# =============================================================================
# Edit step
# =============================================================================


_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def _attr_name(key: str) -> str:
    return _CAMEL.sub("_", key).lower()


def _with_lang(mapping: dict[str, Any], lang: str, value: Any) -> dict[str, Any]:
    return {**mapping, lang: value}


class TranslationReconciler:
    """Row building and saving against one ``StudioState``."""

    def __init__(self, state: StudioState):
        self.state = state

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def rows(self, source: str, query: str = "") -> list[TranslationRow]:
        return filter_rows(build_rows(source, self.state), query)

    def find_row(self, source: str, row_id: str) -> TranslationRow | None:
        for row in build_rows(source, self.state):
            if row.id == row_id:
                return row
        return None

    def edit_form(self, row: TranslationRow, lang: str) -> dict[str, dict[str, str]]:
        """Initial ``{field: {original, translation}}`` for the editor of one row."""
        form = {}
        for index, form_field in enumerate(fields_for_source(row.source_list)):
            original = self._original_field(row, form_field.key)
            translation = self._translated_field(row, form_field.key, lang)
            if translation is None:
                # Nothing on the entity for this language; use the merged map
                translation = row.translations.get(lang, "") if index == 0 else ""
            form[form_field.key] = {"original": original, "translation": translation}
        return form

    def _original_field(self, row: TranslationRow, key: str) -> str:
        entity = row.entity
        if entity is None:
            return row.original
        if key == "readMoreText" and hasattr(entity, "read_more"):
            return entity.read_more.text
        if isinstance(entity, Container):
            value = entity.content.get(key)
            if value is None and key == "title":
                return row.original
            return get_localized_text(value, DEFAULT_LANGUAGE)

        value = getattr(entity, _attr_name(key), None)
        if isinstance(value, dict):
            return get_localized_text(value, DEFAULT_LANGUAGE)
        if isinstance(value, str) and value:
            return value
        return row.original if key in ("title", "fullName") else ""

    def _translated_field(self, row: TranslationRow, key: str, lang: str) -> str | None:
        """The entity's current translation of one field, or None when it has none for ``lang``."""
        target = row.target
        entity = row.entity

        if isinstance(target, PageTarget):
            return entity.title.get(lang) if key == "title" and lang in entity.title else None
        if isinstance(target, ContainerTarget):
            value = entity.content.get(key)
            return value.get(lang) if isinstance(value, dict) and lang in value else None
        if isinstance(target, CopyrightTarget):
            return entity.copyright.get(lang) if lang in entity.copyright else None
        if isinstance(target, SubFooterTarget):
            value = entity.translations.get(lang)
            return value.get("subFooterText", "") if isinstance(value, dict) else None

        translations = getattr(entity, "translations", None) or {}
        value = translations.get(lang)
        if value is None:
            return None
        if isinstance(value, str):
            return value if key == "title" else ""
        return value.get(key, "")

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    async def save_translation(
        self,
        row: TranslationRow,
        lang: str,
        values: dict[str, str],
    ) -> TranslationItem | None:
        """
        Write ``values`` for ``lang`` to the owning entity and the dictionary.

        Remote writes are queued; local state is updated either way.
        """
        target = row.target

        if isinstance(target, EntityTarget):
            await self._save_embedded(target, lang, values)
        elif isinstance(target, PageTarget):
            await self._save_page(target, lang, values)
        elif isinstance(target, ContainerTarget):
            await self._save_container(target, lang, values)
        elif isinstance(target, NavTarget):
            await self._save_nav(target, lang, values)
        elif isinstance(target, _FOOTER_TARGETS):
            await self._save_footer(target, lang, values)
        elif isinstance(target, ContactQueryTarget):
            # Queries are read-only; only the dictionary entry is written
            pass
        else:
            raise TypeError(f"Unhandled row target: {target!r}")

        value = primary_value(values)
        if value is None:
            return None
        return await self.state.update_translation_item(row.id, row.source_list, row.original, lang, value)

    async def _save_embedded(self, target: EntityTarget, lang: str, values: dict[str, str]) -> None:
        entity = self.state.get_entity(target.entity_kind, target.item_id)
        if entity is None:
            raise StateError(f"No {target.entity_kind.value} item with id {target.item_id!r}")
        current = entity.translations.get(lang)
        lang_values = {**(current if isinstance(current, dict) else {}), **values}
        translations = _with_lang(entity.translations, lang, lang_values)
        await self.state.update_entity(
            target.entity_kind, entity.model_copy(update={"translations": translations})
        )

    async def _save_page(self, target: PageTarget, lang: str, values: dict[str, str]) -> None:
        page = self.state.get_page(target.page_id)
        if page is None:
            raise StateError(f"No page with id {target.page_id!r}")
        if values.get("title"):
            page = page.model_copy(update={"title": _with_lang(page.title, lang, values["title"])})
        await self.state.update_page(page)

    async def _save_container(self, target: ContainerTarget, lang: str, values: dict[str, str]) -> None:
        page = self.state.get_page(target.page_id)
        container = page.get_container(target.container_id) if page else None
        if container is None:
            raise StateError(f"No container {target.container_id!r} on page {target.page_id!r}")

        content = dict(container.content)
        for key, value in values.items():
            existing = content.get(key)
            if isinstance(existing, dict):
                content[key] = _with_lang(existing, lang, value)
            elif isinstance(existing, str) and existing:
                content[key] = {DEFAULT_LANGUAGE: existing, lang: value}
            else:
                content[key] = {lang: value}
        await self.state.update_container(target.page_id, container.model_copy(update={"content": content}))

    async def _save_nav(self, target: NavTarget, lang: str, values: dict[str, str]) -> None:
        item = next((n for n in self.state.navigation if n.id == target.item_id), None)
        if item is None:
            raise StateError(f"No navigation item with id {target.item_id!r}")
        if values.get("title"):
            item = item.model_copy(update={"translations": _with_lang(item.translations, lang, values["title"])})
        await self.state.update_nav_item(item)

    async def _save_footer(self, target: RowTarget, lang: str, values: dict[str, str]) -> None:
        footer = self.state.footer
        value = values.get("title") or primary_value(values) or ""
        now = utc_now_iso()

        if isinstance(target, FooterColumnTarget):
            columns = [
                column.model_copy(
                    update={"translations": _with_lang(column.translations, lang, value), "modified": now}
                )
                if column.id == target.column_id
                else column
                for column in footer.columns
            ]
            footer = footer.model_copy(update={"columns": columns})
        elif isinstance(target, FooterLinkTarget):
            columns = []
            for column in footer.columns:
                if column.id == target.column_id:
                    links = [
                        link.model_copy(
                            update={"translations": _with_lang(link.translations, lang, value), "modified": now}
                        )
                        if link.id == target.link_id
                        else link
                        for link in column.links
                    ]
                    column = column.model_copy(update={"links": links})
                columns.append(column)
            footer = footer.model_copy(update={"columns": columns})
        elif isinstance(target, SubFooterTarget):
            current = footer.translations.get(lang) or {}
            translations = _with_lang(footer.translations, lang, {**current, "subFooterText": value})
            footer = footer.model_copy(update={"translations": translations, "modified": now})
        elif isinstance(target, CopyrightTarget):
            footer = footer.model_copy(
                update={"copyright": _with_lang(footer.copyright, lang, value), "modified": now}
            )

        self.state.update_footer_config(footer)
        await self.state.save_global_settings()

    # -------------------------------------------------------------------------
    # Suggestions
    # -------------------------------------------------------------------------

    async def suggest(self, row: TranslationRow, lang: str, transform: TextTransform) -> dict[str, str]:
        """
        Run ``transform`` over every non-empty original field of a row.

        A field whose transform fails is left out of the result.
        """
        language = get_language_name(lang)
        suggestions: dict[str, str] = {}
        for key, values in self.edit_form(row, lang).items():
            original = values["original"]
            if not original:
                continue
            try:
                suggestion = await transform(original, language)
            except Exception as e:
                logger.warning(f"Suggestion for {row.id}.{key} failed: {e}")
                continue
            if suggestion:
                suggestions[key] = suggestion
        return suggestions
