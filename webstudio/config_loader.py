"""
Seed data loader.

Reads YAML seed files and writes them into a ``ListStorage``, so a fresh
in-memory or JSON-directory store starts with sample content.

Layout of the seed directory::

    config/seed/
        site.yaml            # SITE_CONFIG and TRANSLATION_SOURCES settings
        SmartPages.yaml      # one file per backing list, named after it
        Containers.yaml
        News.yaml
        ...

Each list file holds a YAML list of records using the backing-list column
names. Columns the lists store as JSON strings may be written as plain
YAML mappings; they are encoded here.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from webstudio.storage.base import GlobalSettingKeys, ListStorage, Lists

logger = logging.getLogger(__name__)


# Columns stored as JSON strings in the backing lists
JSON_COLUMNS = {
    "Translations",
    "Settings",
    "ContainerContent",
    "SEOConfig",
    "MultilingualTitle",
    "ConfigData",
    "FormData",
}

KNOWN_LISTS = {
    value for name, value in vars(Lists).items() if not name.startswith("_") and isinstance(value, str)
}


def encode_record(record: dict[str, Any]) -> dict[str, Any]:
    """Dump structured values of JSON columns to strings."""
    encoded = dict(record)
    for column in JSON_COLUMNS & encoded.keys():
        value = encoded[column]
        if isinstance(value, (dict, list)):
            encoded[column] = json.dumps(value, ensure_ascii=False)
    return encoded


class ConfigLoader:
    """
    Loads seed files from a directory.

    Unknown file names are skipped with a warning rather than creating
    lists the console never reads.
    """

    def __init__(self, seed_dir: Path | str | None = None):
        # Default to config/seed relative to the repository root
        if seed_dir is None:
            seed_dir = Path(__file__).parent.parent / "config" / "seed"
        self.seed_dir = Path(seed_dir)

    def _read_yaml(self, path: Path) -> Any:
        with open(path, encoding="utf-8") as f:
            return yaml.safe_load(f)

    def read_site(self) -> list[dict[str, Any]]:
        """GlobalSettings records built from ``site.yaml``."""
        path = self.seed_dir / "site.yaml"
        if not path.exists():
            return []
        data = self._read_yaml(path) or {}

        settings = []
        if data.get("site"):
            settings.append({"Title": GlobalSettingKeys.SITE_CONFIG, "ConfigData": data["site"]})
        if data.get("translation_sources"):
            settings.append(
                {"Title": GlobalSettingKeys.TRANSLATION_SOURCES, "ConfigData": data["translation_sources"]}
            )
        return [encode_record(record) for record in settings]

    def read_all(self) -> dict[str, list[dict[str, Any]]]:
        """Every seed list, keyed by backing list name."""
        lists: dict[str, list[dict[str, Any]]] = {}
        if not self.seed_dir.exists():
            logger.warning(f"Seed directory {self.seed_dir} does not exist")
            return lists

        paths = sorted([*self.seed_dir.glob("*.yaml"), *self.seed_dir.glob("*.yml")])
        for path in paths:
            if path.stem == "site":
                continue
            if path.stem not in KNOWN_LISTS:
                logger.warning(f"Skipping seed file {path.name}: no list named {path.stem!r}")
                continue
            data = self._read_yaml(path) or []
            if not isinstance(data, list):
                logger.warning(f"Skipping seed file {path.name}: expected a list of records")
                continue
            lists[path.stem] = [encode_record(record) for record in data if isinstance(record, dict)]

        site = self.read_site()
        if site:
            lists.setdefault(Lists.GLOBAL_SETTINGS, []).extend(site)
        return lists

    async def seed(self, storage: ListStorage) -> dict[str, int]:
        """
        Write every seed list into ``storage``.

        Returns:
            Dict with the number of records written per list
        """
        counts = {}
        for list_name, records in self.read_all().items():
            counts[list_name] = await storage.seed(list_name, records)
        logger.info(f"Seeded {sum(counts.values())} records into {len(counts)} lists")
        return counts


async def load_seed(storage: ListStorage, seed_dir: Path | str | None = None) -> dict[str, int]:
    """Convenience function to seed a store from a directory."""
    return await ConfigLoader(seed_dir).seed(storage)
