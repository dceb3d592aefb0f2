"""Tests for the in-memory and SQL session stores."""

from __future__ import annotations

import asyncio

import pytest

from app.domain.errors import SessionConflictError, SessionNotFoundError
from app.domain.models import UserResponse
from app.services.session_memory import InMemorySessionStore


def _answer(session, question_id=1, category="yes"):
    session.record_response(
        UserResponse(
            question_id=question_id,
            transcript="yes please",
            classified_category=category,
            confidence=0.8,
        )
    )


def test_memory_store_round_trip(store):
    async def scenario():
        session = await store.create("s1")
        _answer(session)
        await store.put(session)
        return session, await store.get("s1")

    saved, loaded = asyncio.run(scenario())

    assert loaded.responses == saved.responses
    assert loaded.current_question_index == 1
    assert loaded.version == saved.version == 1


def test_memory_store_returns_independent_copies(store):
    async def scenario():
        await store.create("s1")
        first = await store.get("s1")
        _answer(first)
        return await store.get("s1")

    assert asyncio.run(scenario()).responses == {}


def test_memory_store_expires_entries(store, clock):
    async def scenario():
        await store.create("s1")
        clock.advance(1799)
        assert await store.exists("s1")
        await store.touch("s1")
        clock.advance(1799)
        assert await store.exists("s1")
        clock.advance(2)
        assert not await store.exists("s1")
        with pytest.raises(SessionNotFoundError):
            await store.get("s1")

    asyncio.run(scenario())


def test_memory_store_create_sweeps_abandoned_sessions(clock):
    store = InMemorySessionStore(ttl_seconds=60, key_prefix="test:", clock=clock)

    async def scenario():
        for index in range(1000):
            await store.create(f"abandoned-{index}")
        clock.advance(3600)
        await store.create("fresh")

    asyncio.run(scenario())

    assert list(store._entries) == ["test:fresh"]


def test_memory_store_put_refreshes_ttl(store, clock):
    async def scenario():
        session = await store.create("s1")
        clock.advance(1700)
        await store.put(session)
        clock.advance(1700)
        return await store.exists("s1")

    assert asyncio.run(scenario()) is True


def test_memory_store_detects_stale_writes(store):
    async def scenario():
        await store.create("s1")
        first = await store.get("s1")
        second = await store.get("s1")
        _answer(first)
        await store.put(first)
        second.increment_retry(1, "late")
        with pytest.raises(SessionConflictError):
            await store.put(second)
        return await store.get("s1")

    current = asyncio.run(scenario())

    assert current.current_question_index == 1
    assert current.retry_count == 0


def test_memory_store_put_and_delete_of_missing_session(store):
    async def scenario():
        session = await store.create("s1")
        assert await store.delete("s1") is True
        assert await store.delete("s1") is False
        with pytest.raises(SessionNotFoundError):
            await store.put(session)
        with pytest.raises(SessionNotFoundError):
            await store.touch("s1")

    asyncio.run(scenario())


def test_memory_store_keys_use_prefix(clock):
    store = InMemorySessionStore(ttl_seconds=60, key_prefix="questionnaire:session:", clock=clock)
    asyncio.run(store.create("abc"))

    assert list(store._entries) == ["questionnaire:session:abc"]


def test_sql_store_round_trip_and_conflicts():
    pytest.importorskip("aiosqlite")
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from app.database import init_models
    from app.services.session_repository import SqlSessionStore

    async def scenario():
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        try:
            await init_models(engine)
            store = SqlSessionStore(async_sessionmaker(engine, expire_on_commit=False))

            await store.create("s1")
            first = await store.get("s1")
            stale = await store.get("s1")
            _answer(first, category="no")
            await store.put(first)

            stale.increment_retry(1)
            with pytest.raises(SessionConflictError):
                await store.put(stale)

            loaded = await store.get("s1")
            assert loaded.responses[1].classified_category == "no"
            assert loaded.version == 1
            assert await store.exists("s1")
            await store.touch("s1")

            assert await store.delete("s1") is True
            assert not await store.exists("s1")
            with pytest.raises(SessionNotFoundError):
                await store.get("s1")
            with pytest.raises(SessionNotFoundError):
                await store.put(loaded)
        finally:
            await engine.dispose()

    asyncio.run(scenario())


def test_sql_store_treats_expired_rows_as_missing():
    pytest.importorskip("aiosqlite")
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
    from sqlalchemy.pool import StaticPool

    from app.database import init_models
    from app.services.session_repository import SqlSessionStore

    async def scenario():
        engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
        try:
            await init_models(engine)
            store = SqlSessionStore(
                async_sessionmaker(engine, expire_on_commit=False), ttl_seconds=-1
            )
            await store.create("s1")
            assert not await store.exists("s1")
            with pytest.raises(SessionNotFoundError):
                await store.get("s1")
        finally:
            await engine.dispose()

    asyncio.run(scenario())
