"""
db.py — Motor SQLAlchemy async, fábrica de sesiones y tablas ORM.

Tablas:
  user_profiles   — perfil acumulado por usuario (único por user_id)
  conversations   — una conversación por (user_id, session_id); como máximo
                    una activa a la vez (índice único parcial WHERE is_active)
  messages        — mensajes ordenados por `position` dentro de la conversación

Uso:
    import db as db_module
    db_module.init_db("sqlite+aiosqlite:///:memory:")
    await db_module.create_all_tables()
    async with db_module.AsyncSessionLocal() as session:
        ...
"""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    DateTime que siempre se lee con tzinfo=UTC.
    SQLite no guarda la zona horaria y devolvería datetimes naive.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(DeclarativeBase):
    pass


# ── Perfiles ──────────────────────────────────────────────────────────────────


class UserProfileRow(Base):
    __tablename__ = "user_profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    interests: Mapped[list] = mapped_column(JSON, default=list)
    favorite_color: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    communication_style: Mapped[str] = mapped_column(String(50), default="friendly")
    mood_history: Mapped[list] = mapped_column(JSON, default=list)
    total_interactions: Mapped[int] = mapped_column(Integer, default=0)
    last_interaction: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=_now
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=_now)


# ── Conversaciones ────────────────────────────────────────────────────────────


class ConversationRow(Base):
    __tablename__ = "conversations"
    __table_args__ = (
        Index(
            "uq_conversations_active_session",
            "user_id",
            "session_id",
            unique=True,
            sqlite_where=text("is_active"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_conversations_user_active", "user_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    session_id: Mapped[str] = mapped_column(String(255), index=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    topics: Mapped[list] = mapped_column(JSON, default=list)
    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=_now)
    ended_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class MessageRow(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    conversation_id: Mapped[int] = mapped_column(
        ForeignKey("conversations.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)
    role: Mapped[str] = mapped_column(String(20))  # "user" | "assistant"
    content: Mapped[str] = mapped_column(Text)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), default=_now)
    emotion: Mapped[str | None] = mapped_column(String(50), nullable=True)
    extracted_info: Mapped[dict] = mapped_column(JSON, default=dict)


# ── Inicialización ────────────────────────────────────────────────────────────


def init_db(database_url: str) -> None:
    """
    Crea el engine y la fábrica de sesiones globales.

    Para SQLite en memoria se usa StaticPool: todas las sesiones comparten
    la misma conexión y, por tanto, la misma base de datos.
    """
    global engine, AsyncSessionLocal

    kwargs: dict = {}
    if database_url.startswith("sqlite") and ":memory:" in database_url:
        kwargs["poolclass"] = StaticPool
        kwargs["connect_args"] = {"check_same_thread": False}

    engine = create_async_engine(database_url, **kwargs)
    AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


async def create_all_tables() -> None:
    assert engine is not None, "init_db() debe ejecutarse antes"
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all_tables() -> None:
    assert engine is not None, "init_db() debe ejecutarse antes"
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
