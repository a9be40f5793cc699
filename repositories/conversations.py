"""
ConversationRepository — CRUD asíncrono sobre `conversations` y `messages`.

Una conversación está identificada por (user_id, session_id) y como máximo
una puede estar activa a la vez. Los mensajes se ordenan por `position`.

Uso:
    async with AsyncSessionLocal() as session:
        repo = ConversationRepository(session)
        conv, created = await repo.get_or_create_active("user_42", "session_1")
        await repo.add_message(conv.id, "user", "Hola", emotion="neutral")
        recent = await repo.get_recent_messages(conv.id, limit=8)
        await session.commit()
"""

from datetime import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db import ConversationRow, MessageRow
from models.entities import Conversation, Message


# ── Helpers ───────────────────────────────────────────────────────────────────


def _row_to_message(row: MessageRow) -> Message:
    return Message(
        id=row.id,
        role=row.role,
        content=row.content,
        timestamp=row.timestamp,
        emotion=row.emotion,
        extracted_info=dict(row.extracted_info or {}),
    )


def _row_to_conversation(
    row: ConversationRow, messages: list[Message] | None = None
) -> Conversation:
    return Conversation(
        id=row.id,
        user_id=row.user_id,
        session_id=row.session_id,
        messages=messages or [],
        summary=row.summary,
        topics=list(row.topics or []),
        started_at=row.started_at,
        ended_at=row.ended_at,
        is_active=row.is_active,
    )


# ── Repositorio ───────────────────────────────────────────────────────────────


class ConversationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ── Conversaciones ────────────────────────────────────────────────────────

    async def _get_active_row(
        self, user_id: str, session_id: str
    ) -> ConversationRow | None:
        result = await self._session.execute(
            select(ConversationRow).where(
                ConversationRow.user_id == user_id,
                ConversationRow.session_id == session_id,
                ConversationRow.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    async def get_active(self, user_id: str, session_id: str) -> Conversation | None:
        """Devuelve la conversación activa (sin mensajes) o None."""
        row = await self._get_active_row(user_id, session_id)
        return _row_to_conversation(row) if row is not None else None

    async def get_or_create_active(
        self, user_id: str, session_id: str
    ) -> tuple[Conversation, bool]:
        """Devuelve (conversación activa, creada). Crea una si no existe."""
        row = await self._get_active_row(user_id, session_id)
        if row is not None:
            return _row_to_conversation(row), False

        row = ConversationRow(
            user_id=user_id,
            session_id=session_id,
            topics=[],
            is_active=True,
        )
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return _row_to_conversation(row), True

    async def add_topics(self, conversation_id: int, topics: list[str]) -> list[str]:
        """Añade temas a la conversación sin duplicados. Devuelve la lista final."""
        row = await self._session.get(ConversationRow, conversation_id)
        assert row is not None
        merged = list(dict.fromkeys([*(row.topics or []), *topics]))
        row.topics = merged
        await self._session.flush()
        return merged

    async def end(
        self, conversation_id: int, *, summary: str, ended_at: datetime
    ) -> Conversation:
        """Marca la conversación como terminada y guarda su resumen."""
        row = await self._session.get(ConversationRow, conversation_id)
        assert row is not None
        row.is_active = False
        row.ended_at = ended_at
        row.summary = summary
        await self._session.flush()
        return _row_to_conversation(row)

    async def list_ended(self, user_id: str, *, limit: int = 3) -> list[Conversation]:
        """Conversaciones terminadas del usuario, la más reciente primero."""
        result = await self._session.execute(
            select(ConversationRow)
            .where(
                ConversationRow.user_id == user_id,
                ConversationRow.is_active.is_(False),
            )
            .order_by(ConversationRow.ended_at.desc())
            .limit(limit)
        )
        return [_row_to_conversation(r) for r in result.scalars().all()]

    async def count_active(self, user_id: str, session_id: str) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(ConversationRow)
            .where(
                ConversationRow.user_id == user_id,
                ConversationRow.session_id == session_id,
                ConversationRow.is_active.is_(True),
            )
        )
        return result.scalar_one()

    # ── Mensajes ──────────────────────────────────────────────────────────────

    async def count_messages(self, conversation_id: int) -> int:
        result = await self._session.execute(
            select(func.count())
            .select_from(MessageRow)
            .where(MessageRow.conversation_id == conversation_id)
        )
        return result.scalar_one()

    async def add_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        *,
        emotion: str | None = None,
        extracted_info: dict[str, str] | None = None,
    ) -> Message:
        """Añade un mensaje al final de la conversación."""
        result = await self._session.execute(
            select(func.max(MessageRow.position)).where(
                MessageRow.conversation_id == conversation_id
            )
        )
        last_position = result.scalar_one_or_none()
        row = MessageRow(
            conversation_id=conversation_id,
            position=0 if last_position is None else last_position + 1,
            role=role,
            content=content,
            emotion=emotion,
            extracted_info=extracted_info or {},
        )
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return _row_to_message(row)

    async def get_messages(self, conversation_id: int) -> list[Message]:
        result = await self._session.execute(
            select(MessageRow)
            .where(MessageRow.conversation_id == conversation_id)
            .order_by(MessageRow.position)
        )
        return [_row_to_message(r) for r in result.scalars().all()]

    async def get_recent_messages(
        self, conversation_id: int, *, limit: int
    ) -> list[Message]:
        """Últimos `limit` mensajes en orden cronológico."""
        if limit <= 0:
            return []
        result = await self._session.execute(
            select(MessageRow)
            .where(MessageRow.conversation_id == conversation_id)
            .order_by(MessageRow.position.desc())
            .limit(limit)
        )
        rows = list(result.scalars().all())
        rows.reverse()
        return [_row_to_message(r) for r in rows]

    # ── Purga ─────────────────────────────────────────────────────────────────

    async def delete_for_user(self, user_id: str) -> int:
        """
        Elimina todas las conversaciones (y sus mensajes) del usuario.
        Devuelve el número de conversaciones borradas.
        """
        conversation_ids = select(ConversationRow.id).where(
            ConversationRow.user_id == user_id
        )
        await self._session.execute(
            delete(MessageRow)
            .where(MessageRow.conversation_id.in_(conversation_ids))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(
            delete(ConversationRow)
            .where(ConversationRow.user_id == user_id)
            .returning(ConversationRow.id)
        )
        return len(result.fetchall())
