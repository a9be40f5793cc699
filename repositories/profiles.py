"""
ProfileRepository — CRUD asíncrono sobre la tabla `user_profiles`.

Uso:
    async with AsyncSessionLocal() as session:
        repo = ProfileRepository(session)
        profile = await repo.get_or_create("user_42")
        profile = await repo.merge("user_42", ExtractedFacts(name="Sam"))
        await session.commit()
"""

from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from db import UserProfileRow
from models.entities import ExtractedFacts, Personality, Preferences, UserProfile

# Dialectos que soportan INSERT … ON CONFLICT DO NOTHING
_UPSERT_INSERTS = {
    "sqlite": sqlite_insert,
    "postgresql": pg_insert,
}


# ── Helpers ───────────────────────────────────────────────────────────────────


def _row_to_entity(row: UserProfileRow) -> UserProfile:
    return UserProfile(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        preferences=Preferences(
            interests=list(row.interests or []),
            favorite_color=row.favorite_color,
            location=row.location,
        ),
        personality=Personality(
            communication_style=row.communication_style or "friendly",
            mood_history=list(row.mood_history or []),
        ),
        total_interactions=row.total_interactions or 0,
        last_interaction=row.last_interaction,
    )


def merge_interests(current: list[str], new: list[str]) -> list[str]:
    """Unión conservando el orden de primera aparición."""
    return list(dict.fromkeys([*current, *new]))


# ── Repositorio ───────────────────────────────────────────────────────────────


class ProfileRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_row(self, user_id: str) -> UserProfileRow | None:
        result = await self._session.execute(
            select(UserProfileRow).where(UserProfileRow.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get(self, user_id: str) -> UserProfile | None:
        row = await self._get_row(user_id)
        return _row_to_entity(row) if row is not None else None

    async def _get_or_create_row(self, user_id: str) -> UserProfileRow:
        """
        Inserta el perfil si no existe y lo devuelve.

        En SQLite/PostgreSQL se usa INSERT … ON CONFLICT DO NOTHING sobre la
        restricción única de `user_id`, por lo que dos inserciones simultáneas
        nunca fallan ni duplican el perfil.
        """
        row = await self._get_row(user_id)
        if row is not None:
            return row

        insert_fn = _UPSERT_INSERTS.get(self._session.bind.dialect.name)
        if insert_fn is not None:
            await self._session.execute(
                insert_fn(UserProfileRow)
                .values(user_id=user_id)
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            row = await self._get_row(user_id)
            assert row is not None
            return row

        row = UserProfileRow(user_id=user_id)
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def get_or_create(self, user_id: str) -> UserProfile:
        return _row_to_entity(await self._get_or_create_row(user_id))

    async def merge(
        self,
        user_id: str,
        facts: ExtractedFacts,
        *,
        mood: str | None = None,
        mood_limit: int = 20,
    ) -> UserProfile:
        """
        Fusiona `facts` en el perfil (creándolo si hace falta).

        - name / location / favorite_color: gana el último valor presente.
        - interests: unión sin duplicados.
        - total_interactions += 1 y last_interaction = ahora, siempre.
        - `mood` (opcional) se añade a personality.mood_history, acotado a
          las últimas `mood_limit` entradas.
        """
        row = await self._get_or_create_row(user_id)

        if facts.name:
            row.name = facts.name
        if facts.location:
            row.location = facts.location
        if facts.favorite_color:
            row.favorite_color = facts.favorite_color
        if facts.interests:
            row.interests = merge_interests(list(row.interests or []), facts.interests)
        if mood:
            row.mood_history = [*(row.mood_history or []), mood][-mood_limit:]

        row.total_interactions = (row.total_interactions or 0) + 1
        row.last_interaction = datetime.now(timezone.utc)

        await self._session.flush()
        return _row_to_entity(row)

    async def delete_for_user(self, user_id: str) -> int:
        """Elimina el perfil del usuario. Devuelve el número de filas borradas."""
        result = await self._session.execute(
            delete(UserProfileRow)
            .where(UserProfileRow.user_id == user_id)
            .returning(UserProfileRow.id)
        )
        return len(result.fetchall())
