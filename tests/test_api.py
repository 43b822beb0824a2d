"""HTTP tests for the console API, run against the bundled seed data."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import SEED_DIR
from webstudio.api.app import create_app
from webstudio.config import Settings
from webstudio.storage import InMemoryListStorage, InMemoryQueueStorage, Lists, StorageProvider


@pytest.fixture
def lists():
    return InMemoryListStorage()


@pytest.fixture
def client(lists):
    settings = Settings(
        seed_dir=str(SEED_DIR),
        outbox_poll_interval=0,
        outbox_backoff_min=0,
        outbox_backoff_max=0,
        sentry_dsn="",
    )
    storage = StorageProvider(lists=lists, queue=InMemoryQueueStorage())
    with TestClient(create_app(settings, storage)) as client:
        yield client


def tagged(client, page_id, container_id):
    pages = {p["id"]: p for p in client.get("/pages").json()}
    for container in pages[page_id]["containers"]:
        if container["id"] == container_id:
            return container["settings"].get("taggedItems")
    raise AssertionError(f"container {container_id} not on page {page_id}")


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestTranslations:
    def test_sources_come_from_global_settings(self, client):
        data = client.get("/translations/sources").json()

        assert data["sources"][0] == "TopNavigation"
        assert {"code": "de", "name": "German"} in data["languages"]

    def test_replace_sources(self, client, lists):
        response = client.put("/translations/sources", json={"sources": ["News", "Events"]})
        client.post("/outbox/drain")

        assert response.json()["sources"] == ["News", "Events"]
        stored = [r for r in lists.records(Lists.GLOBAL_SETTINGS) if r["Title"] == "TRANSLATION_SOURCES"]
        assert json.loads(stored[0]["ConfigData"]) == ["News", "Events"]

    def test_news_rows(self, client):
        data = client.get("/translations/News").json()
        rows = {row["id"]: row for row in data["rows"]}

        assert rows["1"]["original"] == "New office opens"
        assert rows["1"]["translations"]["de"] == "Neues Büro eröffnet"
        assert rows["1"]["translations"]["fr"] == "Nouveau bureau"
        assert rows["2"]["translations"] == {}

    def test_rows_filter(self, client):
        rows = client.get("/translations/News", params={"q": "annual"}).json()["rows"]
        assert [row["id"] for row in rows] == ["2"]

    def test_edit_form(self, client):
        data = client.get("/translations/News/1/de").json()

        assert data["fields"]["title"] == {"original": "New office opens", "translation": "Neues Büro eröffnet"}

    def test_save_translation(self, client, lists):
        response = client.put("/translations/News/2/de", json={"values": {"title": "Jahresbericht"}})
        client.post("/outbox/drain")

        assert response.status_code == 200
        assert response.json()["translations"]["de"] == "Jahresbericht"
        stored = json.loads(lists.get(Lists.NEWS, 2)["Translations"])
        assert stored["de"]["title"] == "Jahresbericht"

    def test_unsupported_language(self, client):
        response = client.put("/translations/News/1/xx", json={"values": {"title": "?"}})
        assert response.status_code == 400

    def test_empty_values(self, client):
        response = client.put("/translations/News/1/de", json={"values": {}})
        assert response.status_code == 400

    def test_missing_row(self, client):
        response = client.put("/translations/News/99/de", json={"values": {"title": "?"}})
        assert response.status_code == 404


class TestIntegrity:
    def test_seed_ghost_was_swept_at_startup(self, client):
        assert tagged(client, "2", "3") == ["1", "2"]

    def test_delete_cascades_into_containers(self, client, lists):
        response = client.delete("/news/2")
        drained = client.post("/outbox/drain").json()

        assert response.status_code == 200
        assert tagged(client, "2", "3") == ["1"]
        assert drained["failed"] == 0
        assert lists.get(Lists.NEWS, 2) is None
        assert json.loads(lists.get(Lists.CONTAINERS, 3)["Settings"])["taggedItems"] == ["1"]

    def test_delete_unknown_item(self, client):
        assert client.delete("/news/99").status_code == 404

    def test_delete_unknown_kind(self, client):
        assert client.delete("/widgets/1").status_code == 404

    def test_validate_is_idempotent(self, client):
        data = client.post("/integrity/validate").json()
        assert data == {"cleaned": 0, "containers": []}

    def test_reload(self, client):
        report = client.post("/load").json()

        assert report["counts"]["pages"] == 2
        assert report["failed_lists"] == []


class TestTranslationSync:
    def test_sync_translations(self, client, lists):
        response = client.post("/translations/sync")
        client.post("/outbox/drain")

        assert response.json() == {"queued": 1}
        stored = lists.records(Lists.TRANSLATIONS)
        assert [r["Title"] for r in stored] == ["1"]
        assert stored[0]["FR"] == "Nouveau bureau"
