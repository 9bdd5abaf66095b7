"""Tests for stepwise_sdk.memory (InMemoryStore and SQLiteMemoryStore)."""

from __future__ import annotations

import asyncio

import pytest

from stepwise_sdk import (
    InMemoryStore,
    MemoryScope,
    Message,
    MessageRole,
    SQLiteMemoryStore,
    ToolCall,
    ToolResult,
)


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryStore()
    return SQLiteMemoryStore(str(tmp_path / "threads.db"))


class TestStoreContract:
    @pytest.mark.asyncio
    async def test_unknown_thread_reads_empty(self, any_store):
        assert await any_store.read(MemoryScope("nobody", "nothing")) == ()

    @pytest.mark.asyncio
    async def test_append_assigns_increasing_ordinals(self, any_store, scope):
        first = await any_store.append(scope, Message.user("one"))
        second = await any_store.append(scope, Message.assistant("two"))
        assert second.ordinal > first.ordinal

        thread = await any_store.read(scope)
        assert [m.content for m in thread] == ["one", "two"]
        assert [m.ordinal for m in thread] == [first.ordinal, second.ordinal]

    @pytest.mark.asyncio
    async def test_threads_are_isolated(self, any_store):
        a = MemoryScope("user", "a")
        b = MemoryScope("user", "b")
        await any_store.append(a, Message.user("in a"))
        await any_store.append(b, Message.user("in b"))
        assert [m.content for m in await any_store.read(a)] == ["in a"]
        assert sorted(await any_store.threads("user")) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_append_many_is_contiguous(self, any_store, scope):
        await any_store.append(scope, Message.user("start"))
        stored = await any_store.append_many(
            scope,
            [
                Message.tool(ToolResult("c1", "t", output={"n": 1})),
                Message.tool(ToolResult("c2", "t", output={"n": 2})),
            ],
        )
        assert [m.ordinal for m in stored] == [stored[0].ordinal, stored[0].ordinal + 1]

    @pytest.mark.asyncio
    async def test_append_many_empty(self, any_store, scope):
        assert await any_store.append_many(scope, []) == []

    @pytest.mark.asyncio
    async def test_snapshot_is_immutable(self, any_store, scope):
        await any_store.append(scope, Message.user("one"))
        snapshot = await any_store.read(scope)
        await any_store.append(scope, Message.user("two"))
        assert len(snapshot) == 1
        assert isinstance(snapshot, tuple)

    @pytest.mark.asyncio
    async def test_concurrent_appends_keep_ordinals_unique(self, any_store, scope):
        await asyncio.gather(*(any_store.append(scope, Message.user(str(i))) for i in range(20)))
        ordinals = [m.ordinal for m in await any_store.read(scope)]
        assert len(ordinals) == 20
        assert ordinals == sorted(set(ordinals))


class TestSQLiteMemoryStore:
    @pytest.mark.asyncio
    async def test_tool_payloads_survive_persistence(self, tmp_path, scope):
        store = SQLiteMemoryStore(str(tmp_path / "threads.db"))
        call = ToolCall("c1", "save-file", {"filename": "hello.txt", "content": "hi"})
        await store.append(scope, Message.assistant("saving", (call,)))
        await store.append(scope, Message.tool(ToolResult("c1", "save-file", output={"success": True})))

        reopened = SQLiteMemoryStore(str(tmp_path / "threads.db"))
        dispatch, result = await reopened.read(scope)
        assert dispatch.role is MessageRole.ASSISTANT
        assert dispatch.tool_calls == (call,)
        assert result.tool_result.output == {"success": True}
        assert result.tool_result.call_id == "c1"

    @pytest.mark.asyncio
    async def test_keep_open_in_memory_database(self, scope):
        store = SQLiteMemoryStore(":memory:", keep_open=True)
        try:
            await store.append(scope, Message.user("hello"))
            thread = await store.read(scope)
            assert thread[0].content == "hello"
            assert thread[0].ordinal == 0
        finally:
            await store.close()

    def test_repr(self, tmp_path):
        assert "SQLiteMemoryStore" in repr(SQLiteMemoryStore(str(tmp_path / "x.db")))


class TestScopeLocks:
    @pytest.mark.asyncio
    async def test_locks_released_after_append(self, scope):
        store = InMemoryStore()
        await asyncio.gather(*(store.append(scope, Message.user(str(i))) for i in range(5)))
        await store.append(MemoryScope("other", "thread"), Message.user("x"))

        assert len(store._locks) == 0
        assert len(await store.read(scope)) == 5
