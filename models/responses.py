"""
Modelos Pydantic para respuestas de la REST API.
Serializados en camelCase (FastAPI usa los alias del response_model).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from models.entities import Conversation, MemorySummary, Message


class _ResponseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Salud ─────────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "1.0"


# ── Error estándar ─────────────────────────────────────────────────────────────


class ErrorResponse(BaseModel):
    error: bool = True
    error_code: str
    message: str
    details: str | None = None
    recoverable: bool = False
    timestamp: str  # ISO-8601


# ── Chat ──────────────────────────────────────────────────────────────────────


class MessageResponse(_ResponseModel):
    response: str
    timestamp: datetime


class MessageItemResponse(_ResponseModel):
    role: str
    content: str
    timestamp: datetime
    emotion: str | None = None
    extracted_info: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, message: Message) -> "MessageItemResponse":
        return cls(
            role=message.role,
            content=message.content,
            timestamp=message.timestamp,
            emotion=message.emotion,
            extracted_info=message.extracted_info,
        )


class HistoryResponse(_ResponseModel):
    messages: list[MessageItemResponse] = Field(default_factory=list)


# ── Perfil ────────────────────────────────────────────────────────────────────


class PreferencesResponse(_ResponseModel):
    interests: list[str] = Field(default_factory=list)
    favorite_color: str | None = None
    location: str | None = None


class PersonalityResponse(_ResponseModel):
    communication_style: str
    mood_history: list[str] = Field(default_factory=list)


class MemorySummaryResponse(_ResponseModel):
    name: str | None = None
    preferences: PreferencesResponse
    personality: PersonalityResponse
    total_interactions: int = Field(ge=0)
    last_interaction: datetime

    @classmethod
    def from_entity(cls, summary: MemorySummary) -> "MemorySummaryResponse":
        return cls(
            name=summary.name,
            preferences=PreferencesResponse(
                interests=list(summary.preferences.interests),
                favorite_color=summary.preferences.favorite_color,
                location=summary.preferences.location,
            ),
            personality=PersonalityResponse(
                communication_style=summary.personality.communication_style,
                mood_history=list(summary.personality.mood_history),
            ),
            total_interactions=summary.total_interactions,
            last_interaction=summary.last_interaction,
        )


class ProfileResponse(_ResponseModel):
    profile: MemorySummaryResponse | None = None


# ── Sesiones ──────────────────────────────────────────────────────────────────


class SessionStartResponse(_ResponseModel):
    session_id: str


class StatusMessageResponse(_ResponseModel):
    message: str


class PastSessionResponse(_ResponseModel):
    session_id: str
    summary: str | None = None
    topics: list[str] = Field(default_factory=list)
    ended_at: datetime | None = None

    @classmethod
    def from_entity(cls, conversation: Conversation) -> "PastSessionResponse":
        return cls(
            session_id=conversation.session_id,
            summary=conversation.summary,
            topics=list(conversation.topics),
            ended_at=conversation.ended_at,
        )


class PastSessionsResponse(_ResponseModel):
    sessions: list[PastSessionResponse] = Field(default_factory=list)
