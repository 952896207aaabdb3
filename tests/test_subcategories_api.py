from datetime import datetime, timezone

from fastapi.testclient import TestClient

from conftest import API_KEY, InMemoryRecordStore, InMemorySubcategoryStore
from main import create_app


def test_subcategories_page_newest_first(client):
    first = client.get("/api/v1/subcategories", params={"limit": 2}).json()

    assert [item["id"] for item in first["items"]] == [5, 4]
    assert first["nextCursor"] == "2024-05-01T12:04:00Z_4"

    seen = [item["id"] for item in first["items"]]
    cursor = first["nextCursor"]
    while cursor is not None:
        page = client.get("/api/v1/subcategories", params={"limit": 2, "cursor": cursor}).json()
        seen.extend(item["id"] for item in page["items"])
        cursor = page["nextCursor"]

    assert seen == [5, 4, 3, 2, 1]


def test_subcategories_with_equal_timestamps_are_all_listed(settings):
    created_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    store = InMemorySubcategoryStore(
        [
            {"id": i, "name": f"tied-{i}", "category": None, "subcategory": None, "created_at": created_at}
            for i in (1, 2, 3)
        ]
    )
    client = TestClient(create_app(settings, record_store=InMemoryRecordStore(), subcategory_store=store), headers={"x-api-key": API_KEY})

    seen = []
    cursors = []
    cursor = None
    while True:
        params = {"limit": 1} if cursor is None else {"limit": 1, "cursor": cursor}
        page = client.get("/api/v1/subcategories", params=params).json()
        seen.extend(item["id"] for item in page["items"])
        cursor = page["nextCursor"]
        if cursor is None:
            break
        cursors.append(cursor)

    assert seen == [3, 2, 1]
    assert cursors == ["2024-05-01T12:00:00Z_3", "2024-05-01T12:00:00Z_2"]


def test_subcategories_cursor_accepts_offset_timestamps(client):
    # 14:04+02:00 is the same instant as 12:04Z.
    body = client.get("/api/v1/subcategories", params={"limit": 2, "cursor": "2024-05-01T14:04:00+02:00_4"}).json()
    assert [item["id"] for item in body["items"]] == [3, 2]


def test_subcategories_limit_is_capped(client, subcategory_store, settings):
    body = client.get("/api/v1/subcategories", params={"limit": 10_000}).json()
    assert len(body["items"]) == 5
    assert body["nextCursor"] is None
    assert settings.subcategories_page_max == 100


def test_subcategories_search(client):
    body = client.get("/api/v1/subcategories", params={"q": "SUB-3"}).json()
    assert [item["name"] for item in body["items"]] == ["sub-3"]


def test_subcategories_bad_cursor(client):
    bad_cursors = ("not-a-time", "yesterday_4", "2024-05-01T12:04:00Z_x", "2024-05-01T12:04:00Z_9223372036854775808")
    for cursor in bad_cursors:
        r = client.get("/api/v1/subcategories", params={"cursor": cursor})
        assert r.status_code == 400, cursor
        assert "cursor" in r.json()["error"]


def test_create_subcategory(client):
    r = client.post("/api/v1/subcategories", json={"name": " fresh "})
    assert r.status_code == 201
    assert r.json()["name"] == "fresh"

    conflict = client.post("/api/v1/subcategories", json={"name": "sub-1"})
    assert conflict.status_code == 409
    assert conflict.json() == {"error": "Subcategory name already exists"}
    assert client.post("/api/v1/subcategories", json={"name": ""}).status_code == 400
    assert client.post("/api/v1/subcategories", json={"name": "ok", "extra": True}).status_code == 400
