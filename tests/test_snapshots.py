"""Tests for on-disk snapshot storage."""

import json

import pytest

from workflows_batch.engine.snapshots import SnapshotStore, serialize_snapshot


@pytest.mark.asyncio
async def test_save_and_load(snapshot_dir):
    store = SnapshotStore(snapshot_dir)
    document = {"resultData": {"runData": {"Set": []}}, "note": "café"}

    path = await store.save("12", serialize_snapshot(document))

    assert path == snapshot_dir / "12-snapshot.json"
    assert path.is_file()
    assert await store.load("12") == document
    assert path.read_text(encoding="utf-8") == json.dumps(document, indent=2, ensure_ascii=False)
    assert list(snapshot_dir.iterdir()) == [path]


@pytest.mark.asyncio
async def test_missing_snapshot(snapshot_dir):
    store = SnapshotStore(snapshot_dir)

    assert await store.load("404") is None
    assert not store.path_for("404").is_file()


@pytest.mark.asyncio
async def test_save_replaces_previous_snapshot(snapshot_dir):
    store = SnapshotStore(snapshot_dir)

    await store.save("1", serialize_snapshot({"a": 1, "b": 2}))
    await store.save("1", serialize_snapshot({"a": 1}))

    assert await store.load("1") == {"a": 1}


@pytest.mark.asyncio
async def test_corrupted_snapshot_raises(snapshot_dir):
    (snapshot_dir / "1-snapshot.json").write_text("{broken")

    with pytest.raises(json.JSONDecodeError):
        await SnapshotStore(snapshot_dir).load("1")


@pytest.mark.parametrize("workflow_id", ["../escape", "team/42", ""])
def test_unsafe_ids_have_no_snapshot_path(snapshot_dir, workflow_id):
    with pytest.raises(ValueError, match="Unsafe workflow id"):
        SnapshotStore(snapshot_dir).path_for(workflow_id)
