"""
Supported languages and localized-text lookups.

The console edits content in the site languages below. English is the
default language: every lookup falls back to it, then to an empty string
(or to a caller-supplied fallback for dictionary lookups).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel


class Language(str, Enum):
    """Site languages."""

    EN = "en"  # English (default)
    DE = "de"  # German
    FR = "fr"  # French
    ES = "es"  # Spanish


DEFAULT_LANGUAGE = Language.EN.value

# Human-readable names
LANGUAGE_NAMES: dict[str, str] = {
    "en": "English",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
}

SUPPORTED_LANGUAGES = [lang.value for lang in Language]


def get_language_name(code: str) -> str:
    """Get human-readable language name."""
    return LANGUAGE_NAMES.get(code.lower(), code)


def normalize_language_code(code: str) -> str:
    """Normalize language code to standard form."""
    code = str(code).lower().strip()

    variants = {
        "english": "en",
        "german": "de",
        "deutsch": "de",
        "french": "fr",
        "français": "fr",
        "spanish": "es",
        "español": "es",
    }

    return variants.get(code, code)


# =============================================================================
# Lookups
# =============================================================================


def get_localized_text(text: Mapping[str, str] | str | None, lang: str) -> str:
    """
    Resolve MultilingualText for ``lang``.

    Plain strings are returned as-is. Missing or empty values fall back to
    English, then to "". Never raises and never returns None.
    """
    if isinstance(text, str):
        return text
    if not text:
        return ""
    return text.get(lang) or text.get(DEFAULT_LANGUAGE) or ""


def _as_mapping(item: Any) -> Mapping[str, Any]:
    if isinstance(item, BaseModel):
        return item.model_dump()
    return item


def get_item_translation(item: Any, lang: str, field: str) -> str:
    """
    Read one translated field of an entity.

    Order: ``translations[lang]``, then ``translations["en"]``, then the
    entity's own field. Flat string translations only answer for "title".
    """
    if not item:
        return ""
    data = _as_mapping(item)
    translations = data.get("translations") or {}

    for code in (lang, DEFAULT_LANGUAGE):
        value = translations.get(code)
        if not value:
            continue
        if isinstance(value, str):
            if field == "title":
                return value
        elif value.get(field):
            return value[field]

    own = data.get(field)
    return own if isinstance(own, str) else ""


def get_global_translation(
    item_id: str,
    translation_items: list[Any],
    lang: str,
    fallback: str,
) -> str:
    """Look a row up in the flat translation dictionary."""
    for entry in translation_items or []:
        entry = _as_mapping(entry)
        if entry.get("id") == item_id:
            translations = entry.get("translations") or {}
            return translations.get(lang) or translations.get(DEFAULT_LANGUAGE) or fallback
    return fallback
