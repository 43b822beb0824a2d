"""
webstudio - Main entry point.

    python -m webstudio.main serve     # run the HTTP API
    python -m webstudio.main demo      # walk through a load / translate / delete cycle
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from webstudio.api.app import run_app
from webstudio.config import Settings, get_settings
from webstudio.config_loader import load_seed
from webstudio.core.events import EventBus
from webstudio.core.models import EntityKind, SourceList
from webstudio.services.loader import ContentLoader
from webstudio.services.outbox import OutboxWorker
from webstudio.services.reconciler import TranslationReconciler
from webstudio.services.state import StudioState
from webstudio.storage import create_local_storage


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def demo(settings: Settings) -> None:
    """
    Run a demonstration against the bundled seed data.

    Loads the seed into an in-memory store, shows the merged News rows,
    saves a German translation, deletes a news item that a container tags,
    and drains the persistence outbox.
    """
    print("=" * 60)
    print("WEBSTUDIO DEMO")
    print("=" * 60)
    print()

    storage = create_local_storage("memory")
    counts = await load_seed(storage.lists, settings.seed_dir or None)
    print(f"  ✓ Seeded {sum(counts.values())} records into {len(counts)} lists")

    bus = EventBus()
    state = StudioState(storage, bus=bus, settings=settings)
    report = await ContentLoader(state).load()
    print(f"  ✓ Loaded {report.counts['pages']} pages, {report.counts['news']} news items")
    print(f"  ✓ Integrity sweep cleaned {report.cleaned_containers} container(s)")
    print()

    reconciler = TranslationReconciler(state)
    print("News translations:")
    for row in reconciler.rows(SourceList.NEWS.value):
        print(f"  • {row.id}: {row.original} {row.translations} ({row.last_updated})")
    print()

    row = reconciler.rows(SourceList.NEWS.value)[0]
    await reconciler.save_translation(row, "fr", {"title": "Nouveau bureau ouvert"})
    print(f"  ✓ Saved French title for news {row.id}")

    await state.delete_entity(EntityKind.NEWS, "2")
    print("  ✓ Deleted news 2")
    for page in state.pages:
        for container in page.containers:
            if container.tagged_items:
                print(f"    container {container.id} tags {container.tagged_items}")
    print()

    worker = OutboxWorker(
        storage.lists,
        storage.queue,
        queue_name=settings.outbox_queue,
        max_attempts=settings.outbox_max_attempts,
        backoff_min=settings.outbox_backoff_min,
        backoff_max=settings.outbox_backoff_max,
    )
    drained = await worker.drain()
    print(f"  ✓ Outbox: {drained.applied} writes applied, {drained.failed} failed")
    print()

    events = bus.get_history(limit=10)
    print(f"Event history ({len(events)} events):")
    for event in events:
        print(f"  • {event.event_type} {event.subject_id}")
    print("=" * 60)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(prog="webstudio")
    parser.add_argument("command", choices=["serve", "demo"], nargs="?", default="demo")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings)

    if args.command == "serve":
        run_app(settings)
    else:
        asyncio.run(demo(settings))


if __name__ == "__main__":
    main()
