"""
Record codec: entity models <-> backing list records.

The backing lists store flat records with PascalCase columns and JSON
strings for nested data (``Translations``, ``Settings``, ``ContainerContent``).
Decoding is tolerant: a malformed JSON column becomes an empty object and the
record is still loaded.
"""

from __future__ import annotations

import html
import json
import logging
from typing import Any

from webstudio.core.models import (
    ContactItem,
    ContactQuery,
    ContactQueryField,
    Container,
    ContainerItem,
    ContainerSettings,
    ContainerType,
    DocumentItem,
    EventItem,
    NavItem,
    NewsItem,
    Page,
    PublishStatus,
    ReadMore,
    SeoConfig,
    SiteConfig,
    SliderItem,
    TranslationItem,
)
from webstudio.core.utils import safe_json_loads, utc_now_iso

logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================


def _str(value: Any, default: str = "") -> str:
    return default if value is None else str(value)


def lookup_id(record: dict[str, Any], lookup: str) -> str | None:
    """Read a lookup column, stored either as ``{"Id": 3}`` or ``<lookup>Id``."""
    nested = record.get(lookup)
    if isinstance(nested, dict) and nested.get("Id") is not None:
        return str(nested["Id"])
    flat = record.get(f"{lookup}Id")
    return str(flat) if flat not in (None, "") else None


def _status(value: Any) -> PublishStatus:
    try:
        return PublishStatus(value)
    except ValueError:
        return PublishStatus.DRAFT


def _container_type(value: Any) -> ContainerType:
    try:
        return ContainerType(value)
    except ValueError:
        logger.warning(f"Unknown container type {value!r}, using HERO")
        return ContainerType.HERO


def _url(value: Any) -> str:
    # Hyperlink columns come back as {"Url": ..., "Description": ...}
    if isinstance(value, dict):
        return _str(value.get("Url"))
    return _str(value)


def _embedded_translations(raw: Any, label: str) -> dict[str, dict[str, Any]]:
    parsed = safe_json_loads(raw, {}, label)
    if not isinstance(parsed, dict):
        return {}
    result: dict[str, dict[str, Any]] = {}
    for lang, value in parsed.items():
        if not isinstance(value, dict):
            continue
        value = dict(value)
        if isinstance(value.get("description"), str):
            value["description"] = html.unescape(value["description"])
        result[lang] = value
    return result


def _flat_translations(raw: Any, label: str) -> dict[str, str]:
    parsed = safe_json_loads(raw, {}, label)
    if not isinstance(parsed, dict):
        return {}
    return {lang: value for lang, value in parsed.items() if isinstance(value, str)}


def _seo(raw: Any, label: str) -> SeoConfig:
    parsed = safe_json_loads(raw, {}, label)
    if not isinstance(parsed, dict):
        return SeoConfig()
    return SeoConfig(**{k: _str(v) for k, v in parsed.items() if k in SeoConfig.model_fields})


def _read_more(record: dict[str, Any]) -> ReadMore:
    return ReadMore(
        enabled=bool(record.get("ReadMoreEnabled") or False),
        text=_str(record.get("ReadMoreText")),
        url=_str(record.get("ReadMoreURL")),
    )


# =============================================================================
# Pages and containers
# =============================================================================


def container_from_record(record: dict[str, Any]) -> Container:
    settings = safe_json_loads(record.get("Settings"), {}, f"settings of container {record.get('Id')}")
    if not isinstance(settings, dict):
        settings = {}

    # Dedicated button columns are the source of truth
    if record.get("BtnEnabled") is not None:
        settings["btnEnabled"] = record["BtnEnabled"]
    if record.get("BtnName"):
        settings["btnName"] = record["BtnName"]
    if record.get("BtnUrl"):
        settings["btnUrl"] = record["BtnUrl"]

    tagged = settings.get("taggedItems")
    if tagged is not None and not isinstance(tagged, list):
        settings["taggedItems"] = []
    elif isinstance(tagged, list):
        settings["taggedItems"] = [str(item_id) for item_id in tagged]

    content = safe_json_loads(
        record.get("ContainerContent"), {}, f"content of container {record.get('Id')}"
    )
    if not isinstance(content, dict):
        content = {}
    if isinstance(content.get("translations"), dict):
        for value in content["translations"].values():
            if isinstance(value, dict) and isinstance(value.get("description"), str):
                value["description"] = html.unescape(value["description"])

    return Container(
        id=str(record["Id"]),
        page_id=lookup_id(record, "Page") or "",
        type=_container_type(record.get("ContainerType")),
        order=record.get("SortOrder") or 0,
        is_visible=record.get("IsVisible") is not False,
        settings=ContainerSettings.model_validate(settings),
        content=content,
        title=_str(record.get("Title")),
    )


def container_to_record(container: Container) -> dict[str, Any]:
    """
    The whole container record.

    The backing list models containers as update-whole-record entities, so
    every container write carries the full payload, not a delta.
    """
    settings = container.settings
    title = (
        container.title
        or settings.container_title
        or settings.title
        or container.type.value
    )
    return {
        "PageId": int(container.page_id) if container.page_id.isdigit() else container.page_id,
        "ContainerType": container.type.value,
        "SortOrder": container.order,
        "Settings": json.dumps(settings.to_record()),
        "ContainerContent": json.dumps(container.content or {}),
        "IsVisible": container.is_visible,
        "Title": title,
        "BtnEnabled": settings.btn_enabled or False,
        "BtnName": settings.btn_name or "",
        "BtnUrl": settings.btn_url or "",
    }


def page_from_record(record: dict[str, Any], container_records: list[dict[str, Any]]) -> Page:
    title = safe_json_loads(record.get("MultilingualTitle"), None, f"title of page {record.get('Id')}")
    if not isinstance(title, dict):
        title = {"en": _str(record.get("Title"))}
    seo = record.get("SEOConfig")
    return Page(
        id=str(record["Id"]),
        title={lang: _str(value) for lang, value in title.items()},
        slug=record.get("Slug") or "/",
        status=_status(record.get("PageStatus")),
        modified_date=record.get("Modified") or utc_now_iso(),
        description=html.unescape(_str(record.get("Description"))),
        is_home_page=bool(record.get("IsHomePage") or False),
        seo=_seo(seo, "page SEO") if seo else None,
        containers=[container_from_record(c) for c in container_records],
    )


def page_to_record(page: Page) -> dict[str, Any]:
    return {
        "Title": page.title.get("en", ""),
        "MultilingualTitle": json.dumps(page.title),
        "Slug": page.slug,
        "PageStatus": page.status.value,
        "Description": page.description,
        "IsHomePage": page.is_home_page,
        "SEOConfig": json.dumps(page.seo.model_dump()) if page.seo else "",
    }


# =============================================================================
# Navigation
# =============================================================================


def nav_from_record(record: dict[str, Any]) -> NavItem:
    return NavItem(
        id=str(record["Id"]),
        parent_id=lookup_id(record, "Parent") or "root",
        title=_str(record.get("Title")),
        type=record.get("NavType") or "Page",
        page_id=lookup_id(record, "SmartPage"),
        url=record.get("ExternalURL"),
        is_visible=record.get("IsVisible") is not False,
        open_in_new_tab=bool(record.get("OpenInNewTab") or False),
        order=record.get("SortOrder") or 0,
        translations=_flat_translations(record.get("Translations"), f"translations of nav item {record.get('Id')}"),
        modified=record.get("Modified"),
    )


def nav_to_record(item: NavItem) -> dict[str, Any]:
    return {
        "Title": item.title,
        "NavType": item.type,
        "ExternalURL": item.url or "",
        "SmartPageId": int(item.page_id) if item.page_id and item.page_id.isdigit() else None,
        "ParentId": int(item.parent_id) if item.parent_id.isdigit() else None,
        "IsVisible": item.is_visible,
        "OpenInNewTab": item.open_in_new_tab,
        "SortOrder": item.order,
        "Translations": json.dumps(item.translations),
    }


# =============================================================================
# Content lists
# =============================================================================


def news_from_record(record: dict[str, Any]) -> NewsItem:
    return NewsItem(
        id=str(record["Id"]),
        title=_str(record.get("Title")),
        status=_status(record.get("Status")),
        publish_date=record.get("PublishDate") or utc_now_iso(),
        description=html.unescape(_str(record.get("Description"))),
        image_url=_url(record.get("ImageUrl")),
        image_name=_str(record.get("ImageName")),
        read_more=_read_more(record),
        seo=_seo(record.get("SEOConfig"), "news SEO"),
        translations=_embedded_translations(record.get("Translations"), f"translations of news {record.get('Id')}"),
        created_date=record.get("Created"),
        modified_date=record.get("Modified") or record.get("Created"),
    )


def news_to_record(item: NewsItem) -> dict[str, Any]:
    return {
        "Title": item.title,
        "Status": item.status.value,
        "PublishDate": item.publish_date,
        "Description": item.description,
        "ReadMoreURL": item.read_more.url,
        "ReadMoreText": item.read_more.text,
        "ReadMoreEnabled": item.read_more.enabled,
        "SEOConfig": json.dumps(item.seo.model_dump()),
        "Translations": json.dumps(item.translations),
        "ImageUrl": {"Url": item.image_url, "Description": item.image_name},
        "ImageName": item.image_name,
    }


def event_from_record(record: dict[str, Any]) -> EventItem:
    return EventItem(
        id=str(record["Id"]),
        title=_str(record.get("Title")),
        status=_status(record.get("Status")),
        start_date=record.get("StartDate") or utc_now_iso(),
        end_date=_str(record.get("EndDate")),
        location=_str(record.get("Location")),
        category=record.get("Category") or "General",
        description=html.unescape(_str(record.get("Description"))),
        image_url=_url(record.get("ImageUrl")),
        image_name=_str(record.get("ImageName")),
        read_more=_read_more(record),
        seo=_seo(record.get("SEOConfig"), "event SEO"),
        translations=_embedded_translations(record.get("Translations"), f"translations of event {record.get('Id')}"),
        created_date=record.get("Created"),
        modified_date=record.get("Modified") or record.get("Created"),
    )


def event_to_record(item: EventItem) -> dict[str, Any]:
    return {
        "Title": item.title,
        "StartDate": item.start_date,
        "EndDate": item.end_date,
        "Location": item.location,
        "Description": item.description,
        "Category": item.category,
        "Translations": json.dumps(item.translations),
        "Status": item.status.value,
        "ImageUrl": {"Url": item.image_url, "Description": item.image_name},
        "ImageName": item.image_name,
        "ReadMoreURL": item.read_more.url,
        "ReadMoreText": item.read_more.text,
        "ReadMoreEnabled": item.read_more.enabled,
        "SEOConfig": json.dumps(item.seo.model_dump()),
    }


def document_from_record(record: dict[str, Any]) -> DocumentItem:
    return DocumentItem(
        id=str(record["Id"]),
        title=_str(record.get("Title")),
        name=record.get("Name"),
        status=_status(record.get("DocStatus")),
        date=record.get("Modified") or utc_now_iso(),
        type=record.get("DocType") or "PDF",
        year=_str(record.get("DocumentYear")),
        description=html.unescape(_str(record.get("DocumentDescriptions"))),
        item_rank=record.get("ItemRank") or 5,
        sort_order=record.get("SortOrder") or 0,
        url=record.get("FileRef"),
        translations=_embedded_translations(record.get("Translations"), f"translations of document {record.get('Id')}"),
        created_date=record.get("Created"),
        modified_date=record.get("Modified") or record.get("Created"),
    )


def document_to_record(item: DocumentItem) -> dict[str, Any]:
    return {
        "Title": item.title,
        "DocStatus": item.status.value,
        "DocumentYear": item.year,
        "DocumentDescriptions": item.description,
        "ItemRank": item.item_rank,
        "DocType": item.type,
        "SortOrder": item.sort_order,
        "Translations": json.dumps(item.translations),
    }


def container_item_from_record(record: dict[str, Any]) -> ContainerItem:
    return ContainerItem(
        id=str(record["Id"]),
        title=_str(record.get("Title")),
        status=_status(record.get("Status")),
        sort_order=record.get("SortOrder") or 0,
        description=html.unescape(_str(record.get("Description"))),
        image_url=_url(record.get("ImageUrl")),
        image_name=_str(record.get("ImageName")),
        translations=_embedded_translations(
            record.get("Translations"), f"translations of container item {record.get('Id')}"
        ),
        created_date=record.get("Created"),
        modified_date=record.get("Modified") or record.get("Created"),
    )


def container_item_to_record(item: ContainerItem) -> dict[str, Any]:
    return {
        "Title": item.title,
        "Status": item.status.value,
        "SortOrder": item.sort_order,
        "Description": item.description,
        "ImageUrl": {"Url": item.image_url, "Description": item.image_name},
        "ImageName": item.image_name,
        "Translations": json.dumps(item.translations),
    }


def contact_from_record(record: dict[str, Any]) -> ContactItem:
    return ContactItem(
        id=str(record["Id"]),
        full_name=_str(record.get("Title")),
        first_name=_str(record.get("FirstName")),
        last_name=_str(record.get("LastName")),
        status=_status(record.get("Status")),
        sort_order=record.get("SortOrder") or 0,
        job_title=_str(record.get("JobTitle")),
        company=_str(record.get("Company")),
        email=_str(record.get("Email")),
        phone=_str(record.get("Phone")),
        description=html.unescape(_str(record.get("Description"))),
        image_url=_url(record.get("ImageUrl")),
        image_name=_str(record.get("ImageName")),
        translations=_embedded_translations(record.get("Translations"), f"translations of contact {record.get('Id')}"),
        created_date=record.get("Created"),
        modified_date=record.get("Modified") or record.get("Created"),
    )


def contact_to_record(item: ContactItem) -> dict[str, Any]:
    return {
        "Title": item.full_name,
        "FirstName": item.first_name,
        "LastName": item.last_name,
        "Status": item.status.value,
        "SortOrder": item.sort_order,
        "JobTitle": item.job_title,
        "Company": item.company,
        "Email": item.email,
        "Phone": item.phone,
        "Description": item.description,
        "ImageUrl": {"Url": item.image_url, "Description": item.image_name},
        "ImageName": item.image_name,
        "Translations": json.dumps(item.translations),
    }


def slider_item_from_record(record: dict[str, Any]) -> SliderItem:
    return SliderItem(
        id=str(record["Id"]),
        title=_str(record.get("Title")),
        subtitle=_str(record.get("Subtitle")),
        description=_str(record.get("Description")),
        status=_status(record.get("Status")),
        sort_order=record.get("SortOrder") or 0,
        cta_text=_str(record.get("CtaText")),
        cta_url=_str(record.get("CtaUrl")),
        image_url=_url(record.get("ImageUrl")),
        image_name=_str(record.get("ImageName")),
        translations=_embedded_translations(record.get("Translations"), f"translations of slider item {record.get('Id')}"),
        created_date=record.get("Created"),
        modified_date=record.get("Modified") or record.get("Created"),
    )


def slider_item_to_record(item: SliderItem) -> dict[str, Any]:
    return {
        "Title": item.title,
        "Subtitle": item.subtitle,
        "Description": item.description,
        "Status": item.status.value,
        "SortOrder": item.sort_order,
        "CtaText": item.cta_text,
        "CtaUrl": item.cta_url,
        "ImageUrl": {"Url": item.image_url, "Description": item.image_name},
        "ImageName": item.image_name,
        "Translations": json.dumps(item.translations),
    }


def contact_query_from_record(record: dict[str, Any]) -> ContactQuery:
    form = safe_json_loads(record.get("FormData"), {}, f"form data of contact query {record.get('Id')}")
    if not isinstance(form, dict):
        form = {}
    source_page = record.get("SourcePage") if isinstance(record.get("SourcePage"), dict) else {}
    fields = [
        ContactQueryField(
            id=_str(f.get("id")),
            label=_str(f.get("label")),
            value=_str(f.get("value")),
            type=_str(f.get("type"), "text"),
        )
        for f in form.get("fields") or []
        if isinstance(f, dict)
    ]
    return ContactQuery(
        id=str(record["Id"]),
        page_id=lookup_id(record, "SourcePage") or _str(form.get("pageId")),
        page_name=source_page.get("Title") or form.get("pageName") or "Unknown Page",
        container_id=_str(form.get("containerId")),
        created=record.get("Created") or form.get("created") or utc_now_iso(),
        status=record.get("QueryStatus") or "New",
        email=form.get("email") or record.get("Title") or "Anonymous",
        first_name=form.get("firstName"),
        last_name=form.get("lastName"),
        fields=fields,
    )


# =============================================================================
# Translation dictionary and global settings
# =============================================================================


def translation_item_from_record(record: dict[str, Any]) -> TranslationItem:
    key = _str(record.get("Title"))
    return TranslationItem(
        id=key,
        source_list=record.get("SourceList") or "General",
        original=_str(record.get("Original")) or key,
        # Empty columns mean "not translated", not an empty translation
        translations={
            lang: value
            for lang, value in (
                ("en", _str(record.get("EN"))),
                ("de", _str(record.get("DE"))),
                ("fr", _str(record.get("FR"))),
                ("es", _str(record.get("ES"))),
            )
            if value
        },
        last_updated=record.get("Modified") or utc_now_iso(),
    )


def translation_item_to_record(item: TranslationItem) -> dict[str, Any]:
    return {
        "Title": item.id,
        "SourceList": item.source_list,
        "Original": item.original,
        "EN": item.translations.get("en", ""),
        "DE": item.translations.get("de", ""),
        "FR": item.translations.get("fr", ""),
        "ES": item.translations.get("es", ""),
    }


def find_setting(records: list[dict[str, Any]], key: str) -> Any:
    """Decoded ``ConfigData`` of the GlobalSettings record titled ``key`` (None if absent)."""
    for record in records:
        if record.get("Title") == key and record.get("ConfigData"):
            return safe_json_loads(record["ConfigData"], None, key)
    return None


def site_config_from_settings(records: list[dict[str, Any]], current: SiteConfig) -> SiteConfig:
    """Overlay the stored SITE_CONFIG onto ``current`` (stored keys win)."""
    parsed = find_setting(records, "SITE_CONFIG")
    if not isinstance(parsed, dict):
        return current
    merged = {**current.model_dump(), **parsed}
    try:
        return SiteConfig.model_validate(merged)
    except ValueError as e:
        logger.error(f"Error parsing site config: {e}")
        return current


def site_config_to_setting(site: SiteConfig) -> dict[str, Any]:
    data = site.model_dump(mode="json", exclude={"navigation"})
    return {"Title": "SITE_CONFIG", "ConfigData": json.dumps(data)}
