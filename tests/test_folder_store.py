"""Folder store operations against an in-memory MongoDB."""
from datetime import datetime, timezone

import pytest
from bson import ObjectId

from filedrive.services.folder_store import FolderStore
from filedrive.utils.exceptions import ConflictError, InvariantViolation

OWNER = str(ObjectId())


async def make_chain(store: FolderStore, *names: str) -> list[dict]:
    folders = []
    parent_id = None
    for name in names:
        folder = await store.create(OWNER, name, parent_id)
        folders.append(folder)
        parent_id = str(folder["_id"])
    return folders


async def test_create_then_find_round_trip(store: FolderStore):
    parent = await store.create(OWNER, "Parent")
    child = await store.create(OWNER, "Child", str(parent["_id"]))

    found = await store.find_by_id(str(child["_id"]))

    assert found["name"] == "Child"
    assert str(found["owner_id"]) == OWNER
    assert found["parent_id"] == str(parent["_id"])
    assert found["share_expires_at"] is None


async def test_find_by_id_ignores_malformed_ids(store: FolderStore):
    assert await store.find_by_id("not-an-object-id") is None
    assert await store.find_by_id(str(ObjectId())) is None


async def test_duplicate_sibling_name_hits_unique_index(store: FolderStore):
    await store.create(OWNER, "Docs")
    with pytest.raises(ConflictError):
        await store.create(OWNER, "Docs")


async def test_same_name_allowed_under_different_parents(store: FolderStore):
    a = await store.create(OWNER, "A")
    b = await store.create(OWNER, "B")
    await store.create(OWNER, "Shared name", str(a["_id"]))
    await store.create(OWNER, "Shared name", str(b["_id"]))

    assert await store.find_by_owner_parent_name(OWNER, str(a["_id"]), "Shared name")
    assert await store.find_by_owner_parent_name(OWNER, str(b["_id"]), "Shared name")


async def test_walk_to_root_is_root_first(store: FolderStore):
    chain = await make_chain(store, "A", "B", "C")

    walked = await store.walk_to_root(str(chain[-1]["_id"]))

    assert [f["name"] for f in walked] == ["A", "B", "C"]


async def test_walk_to_root_unknown_folder_is_empty(store: FolderStore):
    assert await store.walk_to_root(str(ObjectId())) == []


async def test_walk_to_root_stops_at_missing_parent(store: FolderStore):
    folder = await store.create(OWNER, "Dangling", str(ObjectId()))
    walked = await store.walk_to_root(str(folder["_id"]))
    assert [f["name"] for f in walked] == ["Dangling"]


async def test_walk_to_root_detects_cycles(store: FolderStore):
    a, b = await make_chain(store, "A", "B")
    await store.folders.update_one(
        {"_id": a["_id"]}, {"$set": {"parent_id": str(b["_id"])}}
    )

    with pytest.raises(InvariantViolation):
        await store.walk_to_root(str(b["_id"]))


async def test_walk_to_root_is_bounded(mongo_db):
    shallow_store = FolderStore(mongo_db, max_depth=3)
    chain = []
    parent_id = None
    for name in ["1", "2", "3", "4"]:
        folder = await shallow_store.create(OWNER, name, parent_id)
        chain.append(folder)
        parent_id = str(folder["_id"])

    assert len(await shallow_store.walk_to_root(str(chain[2]["_id"]))) == 3
    with pytest.raises(InvariantViolation):
        await shallow_store.walk_to_root(str(chain[3]["_id"]))


async def test_update_share_and_name(store: FolderStore):
    folder = await store.create(OWNER, "Old")
    expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

    shared = await store.update_share(folder["_id"], expires)
    renamed = await store.update_name(folder["_id"], "New")

    assert shared["share_expires_at"] is not None
    assert renamed["name"] == "New"
    assert renamed["share_expires_at"] is not None


async def test_rename_onto_sibling_name_hits_unique_index(store: FolderStore):
    await store.create(OWNER, "A")
    b = await store.create(OWNER, "B")

    with pytest.raises(ConflictError, match="already exists"):
        await store.update_name(b["_id"], "A")

    assert (await store.find_by_id(b["_id"]))["name"] == "B"


async def test_delete_cascade_removes_descendants_and_files(store: FolderStore):
    top, mid, leaf = await make_chain(store, "Top", "Mid", "Leaf")
    keep = await store.create(OWNER, "Keep")
    owner_oid = ObjectId(OWNER)
    await store.files.insert_many(
        [
            {"name": "a.txt", "folder_id": str(mid["_id"]), "owner_id": owner_oid},
            {"name": "b.txt", "folder_id": str(leaf["_id"]), "owner_id": owner_oid},
            {"name": "c.txt", "folder_id": str(keep["_id"]), "owner_id": owner_oid},
        ]
    )

    folders_deleted, files_deleted = await store.delete_cascade(str(top["_id"]), OWNER)

    assert (folders_deleted, files_deleted) == (3, 2)
    remaining = await store.find_all_by_owner(OWNER)
    assert [f["name"] for f in remaining] == ["Keep"]
    assert [f["name"] for f in await store.find_files(str(keep["_id"]))] == ["c.txt"]
