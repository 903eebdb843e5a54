import json
from dataclasses import dataclass

import pytest

from app.core.config import Settings
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.services.floor_store import (
    ManifestFloorStore,
    RelationalFloorStore,
    build_floor_store,
)
from app.services.object_storage import InMemoryStorageClient

from tests.conftest import make_settings

MANIFEST_KEY = "floors/manifest.json"


def two_floors():
    return [
        {"name": "L1", "url": "http://x/a.png"},
        {"name": "L2", "url": "http://x/b.png"},
    ]


def put_manifest(storage, floors):
    storage.put_object(MANIFEST_KEY, json.dumps({"floors": floors}).encode(), "application/json")


def read_manifest(storage):
    return json.loads(storage.get_object(MANIFEST_KEY).body)


# --- реляционный режим ---

async def test_relational_publish_then_list(relational_store):
    published = await relational_store.publish_all(two_floors())
    assert [(f.name, f.sort_order) for f in published] == [("L1", 0), ("L2", 1)]
    assert all(isinstance(f.id, int) for f in published)

    listed = await relational_store.list_floors()
    assert [f.to_json() for f in listed] == [f.to_json() for f in published]
    assert all(f.created_at for f in listed)


async def test_relational_publish_replaces_previous_set(relational_store):
    await relational_store.publish_all(two_floors())
    await relational_store.publish_all([{"name": "Only", "url": "http://x/c.png"}])
    assert [f.name for f in await relational_store.list_floors()] == ["Only"]


async def test_relational_list_orders_by_sort_order(relational_store):
    await relational_store.publish_all([
        {"name": "Top", "url": "u", "sortOrder": 2},
        {"name": "Ground", "url": "u", "sortOrder": 0},
        {"name": "Mezzanine", "url": "u", "sortOrder": 2},
    ])
    assert [f.name for f in await relational_store.list_floors()] == ["Ground", "Top", "Mezzanine"]


async def test_relational_invalid_publish_keeps_floors(relational_store):
    await relational_store.publish_all(two_floors())
    with pytest.raises(ValidationError):
        await relational_store.publish_all([{"name": "ok", "url": "u"}, {"name": "broken"}])
    with pytest.raises(ValidationError):
        await relational_store.publish_all([])
    assert [f.name for f in await relational_store.list_floors()] == ["L1", "L2"]


async def test_relational_failed_insert_rolls_back_delete(relational_store):
    await relational_store.publish_all(two_floors())
    # object() не сериализуется в JSON, ошибка случится уже после DELETE
    with pytest.raises(Exception):
        await relational_store.publish_all([{"url": "u", "points": [object()]}])
    assert [f.name for f in await relational_store.list_floors()] == ["L1", "L2"]


async def test_relational_delete(relational_store):
    published = await relational_store.publish_all(two_floors())
    result = await relational_store.delete_by_id(str(published[0].id))
    assert result["floor"]["name"] == "L1"
    assert result["floor"]["url"] == "http://x/a.png"
    assert [f.name for f in await relational_store.list_floors()] == ["L2"]


async def test_relational_delete_missing_is_not_found(relational_store):
    await relational_store.publish_all(two_floors())
    with pytest.raises(NotFoundError):
        await relational_store.delete_by_id("9999")
    assert len(await relational_store.list_floors()) == 2


@pytest.mark.parametrize("floor_id", ["abc", "1.5", "floor-1", ""])
async def test_relational_delete_rejects_non_integer_before_db_access(floor_id):
    def session_factory():
        raise AssertionError("database must not be touched")

    store = RelationalFloorStore(session_factory)
    with pytest.raises(ValidationError) as exc_info:
        await store.delete_by_id(floor_id)
    assert exc_info.value.message == "Invalid floor id"


# --- режим манифеста ---

async def test_manifest_missing_document_is_empty(memory_storage):
    store = ManifestFloorStore(memory_storage)
    assert await store.list_floors() == []


async def test_manifest_publish_writes_whole_document(memory_storage):
    store = ManifestFloorStore(memory_storage)
    published = await store.publish_all(two_floors())
    assert [f.id for f in published] == ["floor-1", "floor-2"]

    document = read_manifest(memory_storage)
    assert document["updatedAt"].endswith("Z")
    assert [f["name"] for f in document["floors"]] == ["L1", "L2"]
    assert memory_storage.objects[MANIFEST_KEY][1] == "application/json"

    listed = await store.list_floors()
    assert [f.to_json() for f in listed] == [f.to_json() for f in published]


async def test_manifest_list_normalizes_legacy_entries(memory_storage):
    put_manifest(memory_storage, [
        {"id": 7, "url": "http://x/b.png", "sortOrder": 1, "northOffset": "NaN"},
        {"name": "Basement", "imageData": "data:image/png;base64,AA", "sortOrder": 0},
        {"name": "no image"},
    ])
    floors = await ManifestFloorStore(memory_storage).list_floors()
    assert [f.name for f in floors] == ["Basement", "Floor 1"]
    assert floors[1].id == "7"
    assert floors[1].north_offset == 0.0


async def test_manifest_non_list_floors_is_empty(memory_storage):
    memory_storage.put_object(MANIFEST_KEY, b'{"floors": {"a": 1}}', "application/json")
    assert await ManifestFloorStore(memory_storage).list_floors() == []


async def test_manifest_invalid_publish_writes_nothing(memory_storage):
    store = ManifestFloorStore(memory_storage)
    with pytest.raises(ValidationError):
        await store.publish_all([{"name": "L1", "url": "u"}, {"name": "L2"}])
    assert MANIFEST_KEY not in memory_storage.objects


async def test_manifest_delete_filters_by_string_id(memory_storage):
    put_manifest(memory_storage, [
        {"id": 1, "name": "A", "url": "a"},
        {"id": "2", "name": "B", "url": "b"},
    ])
    store = ManifestFloorStore(memory_storage)
    result = await store.delete_by_id("1")
    assert [f["name"] for f in result["floors"]] == ["B"]
    assert [f["id"] for f in read_manifest(memory_storage)["floors"]] == ["2"]


async def test_manifest_delete_missing_is_not_found(memory_storage):
    put_manifest(memory_storage, [{"id": "floor-1", "url": "a"}])
    before = memory_storage.objects[MANIFEST_KEY]
    with pytest.raises(NotFoundError):
        await ManifestFloorStore(memory_storage).delete_by_id("floor-9")
    assert memory_storage.objects[MANIFEST_KEY] == before


async def test_manifest_delete_without_document_is_not_found(memory_storage):
    with pytest.raises(NotFoundError):
        await ManifestFloorStore(memory_storage).delete_by_id("floor-1")


@dataclass
class RacingStorageClient(InMemoryStorageClient):
    """Перед условной записью «другой запрос» успевает дописать этаж в манифест."""

    races: int = 0
    conditional_puts: int = 0

    def put_object(self, key, body, content_type, **kwargs):
        if kwargs.get("if_match") or kwargs.get("if_none_match"):
            self.conditional_puts += 1
        if self.races and (kwargs.get("if_match") or kwargs.get("if_none_match")):
            self.races -= 1
            current = json.loads(self.get_object(key).body)
            current["floors"].append({"id": f"late-{self.races}", "url": "late"})
            super().put_object(key, json.dumps(current).encode(), content_type)
        return super().put_object(key, body, content_type, **kwargs)


async def test_manifest_delete_retries_after_concurrent_write():
    storage = RacingStorageClient(races=1)
    put_manifest(storage, [{"id": "a", "url": "a"}, {"id": "b", "url": "b"}])
    store = ManifestFloorStore(storage, write_attempts=3)

    result = await store.delete_by_id("a")

    ids = [f["id"] for f in read_manifest(storage)["floors"]]
    assert ids == ["b", "late-0"]
    assert [f["id"] for f in result["floors"]] == ["b", "late-0"]
    assert storage.conditional_puts == 2


async def test_manifest_delete_gives_up_after_attempts():
    storage = RacingStorageClient(races=5)
    put_manifest(storage, [{"id": "a", "url": "a"}])
    store = ManifestFloorStore(storage, write_attempts=2)
    with pytest.raises(ConflictError):
        await store.delete_by_id("a")
    assert "a" in [f["id"] for f in read_manifest(storage)["floors"]]


async def test_manifest_delete_without_conditional_writes():
    storage = RacingStorageClient(races=1)
    put_manifest(storage, [{"id": "a", "url": "a"}, {"id": "b", "url": "b"}])
    store = ManifestFloorStore(storage, conditional_writes=False)
    await store.delete_by_id("a")
    assert storage.conditional_puts == 0
    assert [f["id"] for f in read_manifest(storage)["floors"]] == ["b"]


# --- выбор режима ---

def test_build_floor_store_selects_manifest_with_full_credentials(memory_storage):
    store = build_floor_store(make_settings(s3=True, S3_MANIFEST_KEY="custom.json"), lambda: None, memory_storage)
    assert isinstance(store, ManifestFloorStore)
    assert store.manifest_key == "custom.json"


def test_build_floor_store_falls_back_to_database(memory_storage):
    store = build_floor_store(make_settings(s3=True, S3_BUCKET=None), lambda: None, memory_storage)
    assert isinstance(store, RelationalFloorStore)


def test_s3_configured_requires_every_credential():
    assert make_settings(s3=True).s3_configured
    for missing in ("S3_ACCESS_KEY", "S3_SECRET_KEY", "S3_REGION", "S3_BUCKET"):
        assert not make_settings(s3=True, **{missing: ""}).s3_configured
    assert isinstance(make_settings(), Settings)


async def test_manifest_delete_matches_synthesized_id(memory_storage):
    put_manifest(memory_storage, [{"name": "A", "url": "a"}, {"name": "B", "url": "b"}])
    store = ManifestFloorStore(memory_storage)
    assert [f.id for f in await store.list_floors()] == ["floor-1", "floor-2"]
    result = await store.delete_by_id("floor-2")
    assert [f["name"] for f in result["floors"]] == ["A"]


async def test_manifest_delete_keeps_synthesized_ids_stable(memory_storage):
    put_manifest(memory_storage, [
        {"name": "A", "url": "a"},
        {"name": "B", "url": "b"},
        {"name": "C", "url": "c"},
    ])
    store = ManifestFloorStore(memory_storage)

    result = await store.delete_by_id("floor-1")
    assert [(f["id"], f["name"]) for f in result["floors"]] == [("floor-2", "B"), ("floor-3", "C")]
    stored = read_manifest(memory_storage)["floors"]
    assert [(f["id"], f["sortOrder"]) for f in stored] == [("floor-2", 1), ("floor-3", 2)]

    # повторный DELETE того же id не задевает соседний этаж
    with pytest.raises(NotFoundError):
        await store.delete_by_id("floor-1")
    assert [f.name for f in await store.list_floors()] == ["B", "C"]
