"""Shared fixtures: an in-memory store, a state manager over it and an outbox worker."""

from pathlib import Path

import pytest

from webstudio.config import Settings
from webstudio.core.events import EventBus
from webstudio.core.models import Container, ContainerSettings, ContainerType, Page
from webstudio.services.outbox import OutboxWorker
from webstudio.services.state import StudioState
from webstudio.storage import InMemoryListStorage, InMemoryQueueStorage, StorageProvider


SEED_DIR = Path(__file__).parent.parent / "config" / "seed"


@pytest.fixture
def settings():
    """Settings with no backoff delay and no background worker."""
    return Settings(
        outbox_backoff_min=0,
        outbox_backoff_max=0,
        outbox_poll_interval=0,
        seed_dir="",
        sentry_dsn="",
        storage_backend="memory",
    )


@pytest.fixture
def lists():
    return InMemoryListStorage()


@pytest.fixture
def storage(lists):
    return StorageProvider(lists=lists, queue=InMemoryQueueStorage())


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def state(storage, bus, settings):
    return StudioState(storage, bus=bus, settings=settings)


@pytest.fixture
def worker(storage, settings):
    return OutboxWorker(
        storage.lists,
        storage.queue,
        queue_name=settings.outbox_queue,
        max_attempts=settings.outbox_max_attempts,
        backoff_min=0,
        backoff_max=0,
    )


def make_container(container_id, page_id="1", tagged=None, **settings):
    return Container(
        id=container_id,
        page_id=page_id,
        type=ContainerType.CARD_GRID,
        settings=ContainerSettings(tagged_items=tagged, **settings),
        content={"title": {"en": f"Container {container_id}"}},
        title=f"Container {container_id}",
    )


def make_page(page_id, *containers, title=None):
    return Page(id=page_id, title=title if title is not None else {"en": f"Page {page_id}"}, containers=list(containers))
