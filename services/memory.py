"""
services/memory.py — Memoria persistente: perfiles de usuario y conversaciones.

  ProfileStore       perfil acumulado por usuario (get_or_create, merge,
                     summarize, purge)
  ConversationStore  registro de mensajes por (user_id, session_id) con ciclo
                     activa → terminada; al guardar un mensaje del usuario
                     extrae hechos y los fusiona en el perfil en la MISMA
                     transacción

Cada operación abre su propia sesión de BD y hace commit al terminar.
Los errores de SQLAlchemy se propagan como StoreError.

Concurrencia: append_message, end_session y las escrituras de ProfileStore se
serializan por usuario con un asyncio.Lock y el commit ocurre dentro del
lock, de modo que "buscar o crear la conversación activa + añadir" y la
fusión del perfil son atómicos dentro del proceso. El índice
único parcial de `conversations` lo respalda entre procesos.

Uso:
    from services.memory import ConversationStore, ProfileStore

    conversations = ConversationStore()
    await conversations.append_message("user_42", "session_1", "user", "Hi, I'm Sam")
    context = await conversations.get_context("user_42", "session_1", limit=8)
    summary = await ProfileStore().summarize("user_42")
"""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import db as db_module
from config import settings
from middleware.error_handler import StoreError, ValidationError
from models.entities import (
    ROLES,
    Conversation,
    ExtractedFacts,
    MemorySummary,
    Message,
    UserProfile,
)
from repositories.conversations import ConversationRepository
from repositories.profiles import ProfileRepository
from services.extraction import extract_information

logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


# ── Infraestructura ───────────────────────────────────────────────────────────


class KeyedLocks:
    """
    Un asyncio.Lock por clave, creado bajo demanda.
    Los locks que nadie sostiene desaparecen solos (WeakValueDictionary).
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        async with lock:
            yield


# Compartido por todas las instancias de ConversationStore del proceso
_USER_LOCKS = KeyedLocks()


@asynccontextmanager
async def _transaction(factory: SessionFactory | None) -> AsyncIterator[AsyncSession]:
    """Sesión con transacción: commit al salir, rollback ante excepción."""
    factory = factory or db_module.AsyncSessionLocal
    assert factory is not None, "init_db() debe ejecutarse antes"
    try:
        async with factory() as session:
            async with session.begin():
                yield session
    except SQLAlchemyError as exc:
        logger.error("memory: error de persistencia: %s", exc)
        raise StoreError("Persistence failure", details=str(exc)) from exc


def build_session_summary(topics: list[str], message_count: int) -> str:
    """Resumen textual determinista de una sesión terminada."""
    unique_topics = list(dict.fromkeys(topics))
    described = ", ".join(unique_topics) or "various topics"
    return f"Discussed {described} ({message_count} messages)"


# ── Perfiles ──────────────────────────────────────────────────────────────────


class ProfileStore:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks or _USER_LOCKS

    async def get_or_create(self, user_id: str) -> UserProfile:
        async with self._locks.hold(user_id):
            async with _transaction(self._session_factory) as session:
                return await ProfileRepository(session).get_or_create(user_id)

    async def merge(
        self, user_id: str, facts: ExtractedFacts, *, mood: str | None = None
    ) -> UserProfile:
        # Mismo lock que append_message: la fusión es leer-modificar-escribir
        async with self._locks.hold(user_id):
            async with _transaction(self._session_factory) as session:
                return await ProfileRepository(session).merge(
                    user_id, facts, mood=mood, mood_limit=settings.MOOD_HISTORY_LIMIT
                )

    async def summarize(self, user_id: str) -> MemorySummary | None:
        """Proyección de memoria del usuario; None si aún no tiene perfil."""
        async with _transaction(self._session_factory) as session:
            profile = await ProfileRepository(session).get(user_id)
        return MemorySummary.from_profile(profile) if profile is not None else None

    async def purge(self, user_id: str) -> int:
        async with self._locks.hold(user_id):
            async with _transaction(self._session_factory) as session:
                return await ProfileRepository(session).delete_for_user(user_id)


# ── Conversaciones ────────────────────────────────────────────────────────────


class ConversationStore:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        locks: KeyedLocks | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._locks = locks or _USER_LOCKS

    async def append_message(
        self,
        user_id: str,
        session_id: str,
        role: str,
        content: str,
        emotion: str | None = None,
    ) -> Conversation:
        """
        Añade un mensaje a la conversación activa de (user_id, session_id),
        creándola si no existe.

        Para mensajes del usuario:
          - extrae hechos del texto
          - si hay alguno, fusiona el perfil (con la emoción como estado de ánimo)
          - los intereses extraídos pasan a ser temas de la conversación
        Todo ocurre en una única transacción.
        """
        if role not in ROLES:
            raise ValidationError(f"Invalid role: {role!r}")

        async with self._locks.hold(user_id):
            async with _transaction(self._session_factory) as session:
                conversations = ConversationRepository(session)
                conversation, created = await conversations.get_or_create_active(
                    user_id, session_id
                )
                if created:
                    logger.info(
                        "memory: nueva conversación user_id=%s session_id=%s",
                        user_id,
                        session_id,
                    )

                facts = (
                    extract_information(content) if role == "user" else ExtractedFacts()
                )
                if not facts.is_empty():
                    await ProfileRepository(session).merge(
                        user_id,
                        facts,
                        mood=emotion,
                        mood_limit=settings.MOOD_HISTORY_LIMIT,
                    )
                    logger.debug(
                        "memory: hechos extraídos user_id=%s keys=%s",
                        user_id,
                        sorted(facts.as_message_info()),
                    )
                if facts.interests:
                    conversation.topics = await conversations.add_topics(
                        conversation.id, facts.interests
                    )

                await conversations.add_message(
                    conversation.id,
                    role,
                    content,
                    emotion=emotion,
                    extracted_info=facts.as_message_info(),
                )
                conversation.messages = await conversations.get_messages(
                    conversation.id
                )
        return conversation

    async def get_context(
        self, user_id: str, session_id: str, limit: int
    ) -> list[Message]:
        """Últimos `limit` mensajes de la conversación activa; [] si no hay."""
        async with _transaction(self._session_factory) as session:
            conversations = ConversationRepository(session)
            conversation = await conversations.get_active(user_id, session_id)
            if conversation is None:
                return []
            return await conversations.get_recent_messages(
                conversation.id, limit=limit
            )

    async def end_session(self, user_id: str, session_id: str) -> Conversation | None:
        """
        Termina la conversación activa y calcula su resumen.
        Si no hay conversación activa no hace nada y devuelve None.
        """
        async with self._locks.hold(user_id):
            async with _transaction(self._session_factory) as session:
                conversations = ConversationRepository(session)
                conversation = await conversations.get_active(user_id, session_id)
                if conversation is None:
                    return None

                count = await conversations.count_messages(conversation.id)
                ended = await conversations.end(
                    conversation.id,
                    summary=build_session_summary(conversation.topics, count),
                    ended_at=datetime.now(timezone.utc),
                )
        logger.info(
            "memory: sesión terminada user_id=%s session_id=%s summary=%r",
            user_id,
            session_id,
            ended.summary,
        )
        return ended

    async def past_conversations(
        self, user_id: str, limit: int = 3
    ) -> list[Conversation]:
        """Resúmenes de las últimas conversaciones terminadas del usuario."""
        async with _transaction(self._session_factory) as session:
            return await ConversationRepository(session).list_ended(
                user_id, limit=limit
            )

    async def purge(self, user_id: str) -> int:
        async with self._locks.hold(user_id):
            async with _transaction(self._session_factory) as session:
                return await ConversationRepository(session).delete_for_user(user_id)
