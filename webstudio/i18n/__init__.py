"""
Internationalization - site languages and localized lookups.

Usage:
    from webstudio.i18n import get_localized_text

    get_localized_text({"en": "Home", "de": "Startseite"}, "fr")  # -> "Home"
"""

from webstudio.i18n.languages import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    Language,
    get_global_translation,
    get_item_translation,
    get_language_name,
    get_localized_text,
    normalize_language_code,
)

__all__ = [
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "Language",
    "get_global_translation",
    "get_item_translation",
    "get_language_name",
    "get_localized_text",
    "normalize_language_code",
]
