"""
Entidades de dominio — representación en memoria (no SQLAlchemy).
Usadas como DTOs entre repositorios y servicios.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Perfil de usuario ─────────────────────────────────────────────────────────


@dataclass
class Preferences:
    interests: list[str] = field(default_factory=list)  # sin duplicados
    favorite_color: str | None = None
    location: str | None = None


@dataclass
class Personality:
    communication_style: str = "friendly"
    mood_history: list[str] = field(default_factory=list)


@dataclass
class UserProfile:
    """Perfil acumulado de un usuario a lo largo de todas sus sesiones."""

    user_id: str
    name: str | None = None
    preferences: Preferences = field(default_factory=Preferences)
    personality: Personality = field(default_factory=Personality)
    total_interactions: int = 0
    last_interaction: datetime = field(default_factory=_now)
    id: int | None = None  # PK asignada por la BD


@dataclass(frozen=True)
class MemorySummary:
    """Proyección de solo lectura del perfil que se inyecta en el prompt."""

    name: str | None
    preferences: Preferences
    personality: Personality
    total_interactions: int
    last_interaction: datetime

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "MemorySummary":
        return cls(
            name=profile.name,
            preferences=profile.preferences,
            personality=profile.personality,
            total_interactions=profile.total_interactions,
            last_interaction=profile.last_interaction,
        )


# ── Hechos extraídos ──────────────────────────────────────────────────────────


@dataclass
class ExtractedFacts:
    """Resultado parcial del extractor; todos los campos son opcionales."""

    name: str | None = None
    location: str | None = None
    favorite_color: str | None = None
    interests: list[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.name or self.location or self.favorite_color or self.interests)

    def as_message_info(self) -> dict[str, str]:
        """Mapa string→string que se guarda junto al mensaje."""
        info: dict[str, str] = {}
        if self.name:
            info["name"] = self.name
        if self.location:
            info["location"] = self.location
        if self.favorite_color:
            info["favoriteColor"] = self.favorite_color
        if self.interests:
            info["interests"] = ", ".join(self.interests)
        return info


# ── Conversaciones ────────────────────────────────────────────────────────────

ROLES = frozenset({"user", "assistant"})


@dataclass
class Message:
    role: str  # "user" | "assistant"
    content: str
    timestamp: datetime = field(default_factory=_now)
    emotion: str | None = None
    extracted_info: dict[str, str] = field(default_factory=dict)
    id: int | None = None


@dataclass
class Conversation:
    user_id: str
    session_id: str
    messages: list[Message] = field(default_factory=list)
    summary: str | None = None
    topics: list[str] = field(default_factory=list)  # sin duplicados
    started_at: datetime = field(default_factory=_now)
    ended_at: datetime | None = None
    is_active: bool = True
    id: int | None = None
