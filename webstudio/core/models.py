"""
Core data models for the webstudio console.

These models represent the content entities the console edits: pages and
their layout containers, news, events, documents, navigation, footer,
contacts, slider items and container items. Most of them carry an embedded
``translations`` map with per-language overrides. ``TranslationItem`` is the
flat, denormalized dictionary entry used by the cross-type translation view.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# Language code -> text. Absent keys fall back to "en", then "".
MultilingualText = dict[str, str]

# Language code -> partial object keyed like the entity's own fields
# (e.g. {"de": {"title": "...", "description": "..."}})
EmbeddedTranslations = dict[str, dict[str, Any]]


# =============================================================================
# Enums
# =============================================================================


class SourceList(str, Enum):
    """Which entity collection a translatable row belongs to."""

    TOP_NAVIGATION = "TopNavigation"
    SMART_PAGES = "SmartPages"
    NEWS = "News"
    EVENTS = "Events"
    DOCUMENTS = "Documents"
    CONTAINERS = "Containers"
    GLOBAL_SETTINGS = "GlobalSettings"
    CONTACT_QUERIES = "ContactQueries"
    TRANSLATION_DICTIONARY = "TranslationDictionary"
    IMAGES = "Images"
    CONTAINER_ITEMS = "ContainerItems"
    CONTACTS = "Contacts"


DEFAULT_TRANSLATION_SOURCES: list[str] = [source.value for source in SourceList]


class ContainerType(str, Enum):
    """Layout kinds a container can take on a page."""

    HERO = "HERO"
    IMAGE_TEXT = "IMAGE_TEXT"
    SLIDER = "SLIDER"
    CARD_GRID = "CARD_GRID"
    CONTACT_FORM = "CONTACT_FORM"
    DATA_GRID = "DATA_GRID"
    TABLE = "TABLE"
    MAP = "MAP"


class PublishStatus(str, Enum):
    DRAFT = "Draft"
    PUBLISHED = "Published"


class EntityKind(str, Enum):
    """Entity stores a container may reference through ``taggedItems``."""

    NEWS = "news"
    EVENTS = "events"
    DOCUMENTS = "documents"
    CONTAINER_ITEMS = "container_items"
    CONTACTS = "contacts"
    SLIDER_ITEMS = "slider_items"
    PAGES = "pages"


# =============================================================================
# Shared pieces
# =============================================================================


class ReadMore(BaseModel):
    """Optional "read more" link shown under news and events."""

    enabled: bool = False
    text: str = ""
    url: str = ""


class SeoConfig(BaseModel):
    title: str = ""
    description: str = ""
    keywords: str = ""


# =============================================================================
# Navigation
# =============================================================================


class NavItem(BaseModel):
    """
    A top navigation entry.

    Translations are flat (language -> title), unlike news and events.
    """

    id: str
    title: str
    parent_id: str = "root"
    type: str = "Page"  # "Page" or "External"
    url: str | None = None
    page_id: str | None = None
    is_visible: bool = True
    open_in_new_tab: bool = False
    order: int = 0
    status: PublishStatus | None = None
    translations: dict[str, str] = Field(default_factory=dict)
    modified: str | None = None


# =============================================================================
# Content lists
# =============================================================================


class NewsItem(BaseModel):
    id: str
    title: str
    status: PublishStatus = PublishStatus.DRAFT
    publish_date: str | None = None
    description: str = ""
    image_url: str = ""
    image_name: str = ""
    read_more: ReadMore = Field(default_factory=ReadMore)
    seo: SeoConfig = Field(default_factory=SeoConfig)

    # lang -> {title, description, readMoreText}
    translations: EmbeddedTranslations = Field(default_factory=dict)

    created_by: str | None = None
    modified_by: str | None = None
    created_date: str | None = None
    modified_date: str | None = None


class EventItem(BaseModel):
    id: str
    title: str
    status: PublishStatus = PublishStatus.DRAFT
    start_date: str | None = None
    end_date: str | None = None
    location: str = ""
    category: str = "General"
    description: str = ""
    image_url: str = ""
    image_name: str = ""
    read_more: ReadMore = Field(default_factory=ReadMore)
    seo: SeoConfig = Field(default_factory=SeoConfig)

    # lang -> {title, description, readMoreText, category, location}
    translations: EmbeddedTranslations = Field(default_factory=dict)

    created_by: str | None = None
    modified_by: str | None = None
    created_date: str | None = None
    modified_date: str | None = None


class DocumentItem(BaseModel):
    id: str
    title: str
    name: str | None = None  # File name, separate from the title metadata
    status: PublishStatus = PublishStatus.DRAFT
    date: str | None = None
    type: str = "PDF"
    year: str = ""
    description: str = ""
    url: str | None = None
    item_rank: int = 5
    sort_order: int = 0
    translations: EmbeddedTranslations = Field(default_factory=dict)
    created_by: str | None = None
    modified_by: str | None = None
    created_date: str | None = None
    modified_date: str | None = None


class ContainerItem(BaseModel):
    """A card shown inside card-grid style containers."""

    id: str
    title: str
    status: PublishStatus = PublishStatus.DRAFT
    sort_order: int = 0
    description: str = ""
    image_url: str = ""
    image_name: str = ""
    translations: EmbeddedTranslations = Field(default_factory=dict)
    created_date: str | None = None
    modified_date: str | None = None


class ContactItem(BaseModel):
    id: str
    full_name: str
    first_name: str = ""
    last_name: str = ""
    status: PublishStatus = PublishStatus.DRAFT
    sort_order: int = 0
    job_title: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""
    description: str = ""
    image_url: str = ""
    image_name: str = ""

    # lang -> {fullName, firstName, lastName, jobTitle, company, description}
    translations: EmbeddedTranslations = Field(default_factory=dict)

    created_date: str | None = None
    modified_date: str | None = None


class SliderItem(BaseModel):
    id: str
    title: str
    subtitle: str = ""
    description: str = ""
    image_url: str = ""
    image_name: str = ""
    cta_text: str = ""
    cta_url: str = ""
    sort_order: int = 0
    status: PublishStatus = PublishStatus.DRAFT
    translations: EmbeddedTranslations = Field(default_factory=dict)
    created_date: str | None = None
    modified_date: str | None = None


class ContactQueryField(BaseModel):
    id: str
    label: str
    value: str = ""
    type: str = "text"


class ContactQuery(BaseModel):
    """A submission from a page's contact form."""

    id: str
    page_id: str = ""
    page_name: str = "Unknown Page"
    container_id: str = ""
    created: str | None = None
    status: str = "New"  # New, Read, Replied
    email: str = "Anonymous"
    first_name: str | None = None
    last_name: str | None = None
    fields: list[ContactQueryField] = Field(default_factory=list)


# =============================================================================
# Pages and containers
# =============================================================================


class ContainerSettings(BaseModel):
    """
    Layout settings of a container.

    Only the keys the console itself reasons about are typed; everything
    else a layout editor stores is kept as extra fields and round-trips
    untouched. ``tagged_items`` holds weak references (ids) into the
    entity stores.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    tagged_items: list[str] | None = Field(default=None, alias="taggedItems")
    source: str | None = None
    container_title: str | None = Field(default=None, alias="containerTitle")
    title: str | None = None
    btn_enabled: bool = Field(default=False, alias="btnEnabled")
    btn_name: str = Field(default="", alias="btnName")
    btn_url: str = Field(default="", alias="btnUrl")

    def to_record(self) -> dict[str, Any]:
        """Serialize with the camelCase keys stored in the backing list."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Container(BaseModel):
    """
    A layout block on a page.

    ``content`` values are mostly MultilingualText (e.g. content["title"]["de"]).
    """

    id: str
    page_id: str
    type: ContainerType = ContainerType.HERO
    order: int = 0
    settings: ContainerSettings = Field(default_factory=ContainerSettings)
    content: dict[str, Any] = Field(default_factory=dict)
    title: str = ""
    is_visible: bool = True

    @property
    def tagged_items(self) -> list[str]:
        return list(self.settings.tagged_items or [])


class Page(BaseModel):
    id: str
    title: MultilingualText = Field(default_factory=dict)
    slug: str = "/"
    status: PublishStatus = PublishStatus.DRAFT
    created_by: str = "System"
    modified_by: str = "System"
    modified_date: str | None = None
    description: str = ""
    is_home_page: bool = False
    seo: SeoConfig | None = None
    containers: list[Container] = Field(default_factory=list)

    def get_container(self, container_id: str) -> Container | None:
        for container in self.containers:
            if container.id == container_id:
                return container
        return None


# =============================================================================
# Site configuration (footer lives here)
# =============================================================================


class FooterLink(BaseModel):
    id: str
    label: str
    url: str = ""
    translations: dict[str, str] = Field(default_factory=dict)
    modified: str | None = None


class FooterColumn(BaseModel):
    id: str
    title: str
    links: list[FooterLink] = Field(default_factory=list)
    translations: dict[str, str] = Field(default_factory=dict)
    modified: str | None = None


class FooterConfig(BaseModel):
    """
    Footer configuration, persisted as part of the SITE_CONFIG global setting.

    The copyright is MultilingualText directly; the sub-footer text keeps its
    overrides under ``translations[lang]["subFooterText"]``.
    """

    model_config = ConfigDict(extra="allow")

    template: str = "Table"
    columns: list[FooterColumn] = Field(default_factory=list)
    sub_footer_text: str = ""
    copyright: MultilingualText = Field(default_factory=dict)
    translations: EmbeddedTranslations = Field(default_factory=dict)
    modified: str | None = None


class SiteConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = "My Enterprise Site"
    languages: list[str] = Field(default_factory=lambda: ["en", "de", "fr", "es"])
    default_language: str = "en"
    navigation: list[NavItem] = Field(default_factory=list)
    footer: FooterConfig = Field(default_factory=FooterConfig)


# =============================================================================
# Translation dictionary
# =============================================================================


class TranslationItem(BaseModel):
    """
    One entry of the flat translation dictionary.

    ``id`` is the owning entity's id, or a synthesized composite id for
    sub-entities (``footer_link_<id>``). This is a secondary index: it is
    created lazily on the first save and never deleted.
    """

    id: str
    source_list: str
    original: str = ""
    translations: dict[str, str] = Field(default_factory=dict)
    last_updated: str | None = None
