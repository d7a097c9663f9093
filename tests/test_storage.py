"""
Tests for durable JSON storage.
"""

import asyncio

import pytest

from replybot.errors import PersistenceFailure
from replybot.storage.store import JsonFileStore, MemoryStore


class TestJsonFileStore:
    """Tests for the file-backed store."""

    @pytest.mark.asyncio
    async def test_write_then_read(self, tmp_path):
        store = JsonFileStore(tmp_path / "data")

        await store.write_json("stats.json", {"totalReplies": 3})

        assert await store.read_json("stats.json") == {"totalReplies": 3}
        assert [p.name for p in (tmp_path / "data").iterdir()] == ["stats.json"]

    @pytest.mark.asyncio
    async def test_concurrent_writes_to_one_key(self, tmp_path):
        store = JsonFileStore(tmp_path)

        await asyncio.gather(*(
            store.write_json("stats.json", {"totalReplies": i}) for i in range(60)
        ))

        saved = await store.read_json("stats.json")
        assert 0 <= saved["totalReplies"] < 60
        assert [p.name for p in tmp_path.iterdir()] == ["stats.json"]

    @pytest.mark.asyncio
    async def test_failed_write_leaves_no_temp_file(self, tmp_path):
        store = JsonFileStore(tmp_path)

        with pytest.raises(PersistenceFailure):
            await store.write_json("bad.json", {"x": object()})

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_missing_key_reads_none(self, tmp_path):
        assert await JsonFileStore(tmp_path).read_json("nothing.json") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["", "../escape.json", ".hidden", "a/b.json"])
    async def test_rejects_unsafe_keys(self, tmp_path, key):
        with pytest.raises(PersistenceFailure):
            await JsonFileStore(tmp_path).write_json(key, {})

    @pytest.mark.asyncio
    async def test_unserializable_value_is_persistence_failure(self, tmp_path):
        with pytest.raises(PersistenceFailure):
            await JsonFileStore(tmp_path).write_json("bad.json", {"x": object()})

    @pytest.mark.asyncio
    async def test_corrupt_file_is_persistence_failure(self, tmp_path):
        (tmp_path / "stats.json").write_text("{oops")
        with pytest.raises(PersistenceFailure):
            await JsonFileStore(tmp_path).read_json("stats.json")


class TestMemoryStore:
    """Tests for the in-process store."""

    @pytest.mark.asyncio
    async def test_values_are_copied(self):
        store = MemoryStore()
        value = {"n": 1}
        await store.write_json("k", value)
        value["n"] = 2

        assert await store.read_json("k") == {"n": 1}
