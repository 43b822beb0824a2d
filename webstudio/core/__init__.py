"""
Core module - data models and infrastructure.

This module contains:
- models: Content entities, containers, site configuration, translation dictionary entries
- events: Event system for pub/sub communication
- utils: Shared utility functions
"""

from webstudio.core.models import (
    Container,
    ContainerSettings,
    ContainerType,
    EntityKind,
    FooterConfig,
    NavItem,
    NewsItem,
    Page,
    SiteConfig,
    SourceList,
    TranslationItem,
)

from webstudio.core.events import (
    Event,
    EventBus,
)

from webstudio.core.utils import (
    generate_id,
    parse_timestamp,
    safe_json_loads,
    utc_now,
)

__all__ = [
    # Models
    "Container",
    "ContainerSettings",
    "ContainerType",
    "EntityKind",
    "FooterConfig",
    "NavItem",
    "NewsItem",
    "Page",
    "SiteConfig",
    "SourceList",
    "TranslationItem",
    # Events
    "Event",
    "EventBus",
    # Utils
    "generate_id",
    "parse_timestamp",
    "safe_json_loads",
    "utc_now",
]
