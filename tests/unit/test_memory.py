"""
Tests unitarios para la memoria persistente (services/memory.py).

Estrategia:
  - SQLite in-memory vía init_db() + create_all_tables()
  - Los stores leen db_module.AsyncSessionLocal en tiempo de ejecución,
    por lo que apuntan automáticamente a la base de datos en memoria.
  - No se mockean repositorios — se usan los reales con la BD en memoria.
"""

import asyncio
from datetime import timedelta

import pytest

import db as db_module
from db import create_all_tables, drop_all_tables
from middleware.error_handler import StoreError, ValidationError
from models.entities import ExtractedFacts
from repositories.conversations import ConversationRepository
from services.memory import (
    ConversationStore,
    ProfileStore,
    build_session_summary,
)


@pytest.fixture(autouse=True)
async def in_memory_db():
    """BD SQLite en memoria, creada y destruida por cada test."""
    db_module.init_db("sqlite+aiosqlite:///:memory:")
    await create_all_tables()
    yield
    await drop_all_tables()
    if db_module.engine is not None:
        await db_module.engine.dispose()


@pytest.fixture
def profiles() -> ProfileStore:
    return ProfileStore()


@pytest.fixture
def conversations() -> ConversationStore:
    return ConversationStore()


async def _count_active(user_id: str, session_id: str) -> int:
    assert db_module.AsyncSessionLocal is not None
    async with db_module.AsyncSessionLocal() as session:
        return await ConversationRepository(session).count_active(user_id, session_id)


# ── ProfileStore ──────────────────────────────────────────────────────────────


class TestProfileStore:
    async def test_summarize_absent_returns_none(self, profiles):
        assert await profiles.summarize("ghost") is None

    async def test_get_or_create_is_idempotent(self, profiles):
        first = await profiles.get_or_create("user_1")
        second = await profiles.get_or_create("user_1")
        assert first.id == second.id
        assert second.total_interactions == 0
        assert second.preferences.interests == []
        assert second.personality.communication_style == "friendly"

    async def test_merge_deduplicates_interests(self, profiles):
        await profiles.merge("user_1", ExtractedFacts(interests=["art"]))
        profile = await profiles.merge("user_1", ExtractedFacts(interests=["art"]))
        assert profile.preferences.interests == ["art"]
        assert profile.total_interactions == 2

    async def test_concurrent_merges_lose_nothing(self, profiles):
        """Fusiones simultáneas: cada una cuenta y todos los intereses quedan."""
        await profiles.get_or_create("user_1")
        await asyncio.gather(
            *[
                profiles.merge("user_1", ExtractedFacts(interests=[f"i{i}"]))
                for i in range(5)
            ]
        )
        summary = await profiles.summarize("user_1")
        assert summary is not None
        assert summary.total_interactions == 5
        assert sorted(summary.preferences.interests) == ["i0", "i1", "i2", "i3", "i4"]

    async def test_merge_unions_keeping_first_seen_order(self, profiles):
        await profiles.merge("user_1", ExtractedFacts(interests=["chess", "art"]))
        profile = await profiles.merge(
            "user_1", ExtractedFacts(interests=["art", "jazz"])
        )
        assert profile.preferences.interests == ["chess", "art", "jazz"]

    async def test_merge_scalars_last_write_wins(self, profiles):
        await profiles.merge("user_1", ExtractedFacts(name="Sam", location="Denver"))
        profile = await profiles.merge("user_1", ExtractedFacts(name="Samuel"))
        assert profile.name == "Samuel"
        assert profile.preferences.location == "Denver"

    async def test_merge_empty_facts_still_counts(self, profiles):
        before = await profiles.merge("user_1", ExtractedFacts())
        after = await profiles.merge("user_1", ExtractedFacts())
        assert after.total_interactions == 2
        assert after.last_interaction >= before.last_interaction

    async def test_mood_history_is_capped(self, profiles):
        for i in range(25):
            profile = await profiles.merge(
                "user_1", ExtractedFacts(), mood="happy" if i < 24 else "sad"
            )
        assert len(profile.personality.mood_history) == 20
        assert profile.personality.mood_history[-1] == "sad"

    async def test_summarize_projection(self, profiles):
        await profiles.merge(
            "user_1",
            ExtractedFacts(name="Sam", favorite_color="green", interests=["art"]),
        )
        summary = await profiles.summarize("user_1")
        assert summary is not None
        assert summary.name == "Sam"
        assert summary.preferences.favorite_color == "green"
        assert summary.preferences.interests == ["art"]
        assert summary.total_interactions == 1

    async def test_purge(self, profiles):
        await profiles.get_or_create("user_1")
        assert await profiles.purge("user_1") == 1
        assert await profiles.summarize("user_1") is None


# ── ConversationStore ─────────────────────────────────────────────────────────


class TestAppendMessage:
    async def test_creates_active_conversation(self, conversations):
        conv = await conversations.append_message("u1", "s1", "user", "hello there")
        assert conv.is_active
        assert conv.user_id == "u1"
        assert conv.session_id == "s1"
        assert [m.content for m in conv.messages] == ["hello there"]

    async def test_user_message_updates_profile(self, conversations, profiles):
        conv = await conversations.append_message(
            "u1", "s1", "user", "My name is Sam and I live in Denver.", "neutral"
        )
        assert conv.messages[0].extracted_info == {"name": "Sam", "location": "Denver"}
        assert conv.messages[0].emotion == "neutral"

        summary = await profiles.summarize("u1")
        assert summary is not None
        assert summary.name == "Sam"
        assert summary.preferences.location == "Denver"
        assert summary.total_interactions == 1
        assert summary.personality.mood_history == ["neutral"]

    async def test_user_message_without_facts_leaves_profile_absent(
        self, conversations, profiles
    ):
        await conversations.append_message("u1", "s1", "user", "nice weather")
        assert await profiles.summarize("u1") is None

    async def test_assistant_message_is_not_extracted(self, conversations, profiles):
        conv = await conversations.append_message(
            "u1", "s1", "assistant", "My name is Alex", "engaged"
        )
        assert conv.messages[0].extracted_info == {}
        assert await profiles.summarize("u1") is None

    async def test_interests_become_topics(self, conversations):
        conv = await conversations.append_message("u1", "s1", "user", "I love jazz")
        assert conv.topics == ["jazz"]

    async def test_invalid_role(self, conversations):
        with pytest.raises(ValidationError):
            await conversations.append_message("u1", "s1", "system", "hi")

    async def test_concurrent_appends_single_active_conversation(self, conversations):
        await asyncio.gather(
            conversations.append_message("u1", "s1", "user", "first"),
            conversations.append_message("u1", "s1", "user", "second"),
        )
        assert await _count_active("u1", "s1") == 1
        context = await conversations.get_context("u1", "s1", 50)
        assert sorted(m.content for m in context) == ["first", "second"]

    async def test_sessions_are_isolated(self, conversations):
        await conversations.append_message("u1", "s1", "user", "A")
        await conversations.append_message("u1", "s2", "user", "B")
        assert [m.content for m in await conversations.get_context("u1", "s1", 50)] == [
            "A"
        ]
        assert [m.content for m in await conversations.get_context("u1", "s2", 50)] == [
            "B"
        ]

    async def test_store_error_propagates(self, conversations):
        await drop_all_tables()
        with pytest.raises(StoreError):
            await conversations.append_message("u1", "s1", "user", "hi")


class TestGetContext:
    async def test_returns_all_in_order(self, conversations):
        for text in ("one", "two", "three"):
            await conversations.append_message("u1", "s1", "user", text)
        context = await conversations.get_context("u1", "s1", limit=50)
        assert [m.content for m in context] == ["one", "two", "three"]

    async def test_limit_keeps_most_recent(self, conversations):
        for text in ("one", "two", "three"):
            await conversations.append_message("u1", "s1", "user", text)
        context = await conversations.get_context("u1", "s1", limit=2)
        assert [m.content for m in context] == ["two", "three"]

    async def test_no_conversation_returns_empty(self, conversations):
        assert await conversations.get_context("u1", "missing", limit=50) == []

    async def test_timestamps_are_utc(self, conversations):
        await conversations.append_message("u1", "s1", "user", "hello")
        await conversations.end_session("u1", "s1")
        await conversations.append_message("u1", "s1", "user", "again")
        [message] = await conversations.get_context("u1", "s1", limit=50)
        [past] = await conversations.past_conversations("u1")
        assert message.timestamp.tzinfo is not None
        assert message.timestamp.utcoffset() == timedelta(0)
        assert past.ended_at is not None and past.ended_at.tzinfo is not None
        assert past.started_at.tzinfo is not None


class TestEndSession:
    def test_summary_format(self):
        assert build_session_summary([], 4) == "Discussed various topics (4 messages)"
        assert (
            build_session_summary(["art", "jazz", "art"], 2)
            == "Discussed art, jazz (2 messages)"
        )

    async def test_end_computes_summary(self, conversations):
        await conversations.append_message("u1", "s1", "user", "hello")
        await conversations.append_message("u1", "s1", "assistant", "hey!")
        ended = await conversations.end_session("u1", "s1")
        assert ended is not None
        assert not ended.is_active
        assert ended.ended_at is not None
        assert ended.summary == "Discussed various topics (2 messages)"

    async def test_end_uses_topics(self, conversations):
        await conversations.append_message("u1", "s1", "user", "I love jazz")
        ended = await conversations.end_session("u1", "s1")
        assert ended is not None
        assert ended.summary == "Discussed jazz (1 messages)"

    async def test_end_nonexistent_is_noop(self, conversations):
        assert await conversations.end_session("u1", "missing") is None

    async def test_end_twice_is_noop(self, conversations):
        await conversations.append_message("u1", "s1", "user", "hello")
        first = await conversations.end_session("u1", "s1")
        second = await conversations.end_session("u1", "s1")
        assert first is not None
        assert second is None
        past = await conversations.past_conversations("u1")
        assert len(past) == 1
        assert past[0].summary == first.summary

    async def test_context_empty_after_end(self, conversations):
        await conversations.append_message("u1", "s1", "user", "hello")
        await conversations.end_session("u1", "s1")
        assert await conversations.get_context("u1", "s1", 50) == []

    async def test_append_after_end_opens_new_conversation(self, conversations):
        await conversations.append_message("u1", "s1", "user", "old")
        await conversations.end_session("u1", "s1")
        conv = await conversations.append_message("u1", "s1", "user", "new")
        assert [m.content for m in conv.messages] == ["new"]
        assert await _count_active("u1", "s1") == 1


class TestPastConversationsAndPurge:
    async def test_past_conversations_newest_first(self, conversations):
        for session_id in ("s1", "s2"):
            await conversations.append_message("u1", session_id, "user", "hello")
            await conversations.end_session("u1", session_id)
        past = await conversations.past_conversations("u1")
        assert [c.session_id for c in past] == ["s2", "s1"]

    async def test_purge_removes_everything(self, conversations, profiles):
        await conversations.append_message("u1", "s1", "user", "My name is Sam")
        await conversations.append_message("u1", "s2", "user", "hello")
        await conversations.end_session("u1", "s2")
        await conversations.append_message("u2", "s1", "user", "hello")

        assert await conversations.purge("u1") == 2
        assert await profiles.purge("u1") == 1
        assert await conversations.get_context("u1", "s1", 50) == []
        assert await conversations.past_conversations("u1") == []
        assert len(await conversations.get_context("u2", "s1", 50)) == 1
