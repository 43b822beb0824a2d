"""
Shared utility functions for the webstudio console.

This module contains common utilities used across the codebase.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def generate_id(prefix: str = "") -> str:
    """
    Generate a unique ID with optional prefix.

    Args:
        prefix: Optional prefix (e.g., "news", "ctr", "tmp")

    Returns:
        A unique ID like "news_a1b2c3d4e5f6"
    """
    uid = str(uuid.uuid4())[:12]
    return f"{prefix}_{uid}" if prefix else uid


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (the format stored on records)."""
    return utc_now().isoformat()


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a stored timestamp.

    Accepts datetimes and ISO-8601 strings (a trailing "Z" is understood).
    Naive values are treated as UTC. Returns None for anything unparseable
    instead of raising.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def safe_json_loads(raw: Any, default: Any, label: str = "value") -> Any:
    """
    Decode a JSON column, substituting ``default`` when it is missing or malformed.

    Stored settings, content and translations are JSON strings in the backing
    lists. A bad value is never fatal: it is logged and replaced.
    """
    if raw is None or raw == "":
        return default
    if not isinstance(raw, str):
        # Already decoded (e.g. the JSON file backend)
        return raw
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.error(f"Error parsing {label}: {e}")
        return default
    if decoded is None:
        return default
    return decoded


def is_numeric_id(item_id: str | int | None) -> bool:
    """Backing lists only know integer ids; locally created drafts may not have one yet."""
    if item_id is None:
        return False
    try:
        int(str(item_id))
    except ValueError:
        return False
    return True
