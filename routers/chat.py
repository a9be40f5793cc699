"""
Router de chat, memoria y sesiones.

Endpoints:
  POST   /api/message                        → respuesta del personaje
  GET    /api/profile/{user_id}              → memoria acumulada del usuario
  GET    /api/history/{user_id}/{session_id} → últimos 50 mensajes de la sesión
  POST   /api/session/start                  → genera un sessionId
  POST   /api/session/end                    → termina la sesión (idempotente)
  GET    /api/sessions/{user_id}             → resúmenes de sesiones terminadas
  DELETE /api/user/{user_id}                 → borra perfil y conversaciones
"""

import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from config import settings
from dependencies import get_conversation_store, get_profile_store, get_responder
from models.requests import MessageRequest, SessionEndRequest, SessionStartRequest
from models.responses import (
    HistoryResponse,
    MemorySummaryResponse,
    MessageItemResponse,
    MessageResponse,
    PastSessionResponse,
    PastSessionsResponse,
    ProfileResponse,
    SessionStartResponse,
    StatusMessageResponse,
)
from services.memory import ConversationStore, ProfileStore
from services.responder import Responder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

# Sesiones terminadas que devuelve GET /sessions
PAST_SESSIONS_LIMIT = 3


def new_session_id() -> str:
    """Token opaco: milisegundos desde epoch + sufijo aleatorio."""
    return f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


@router.post("/message", response_model=MessageResponse)
async def send_message(
    body: MessageRequest,
    responder: Responder = Depends(get_responder),
):
    reply = await responder.respond(body.user_id, body.session_id, body.message)
    return MessageResponse(response=reply, timestamp=datetime.now(timezone.utc))


@router.get("/profile/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    profiles: ProfileStore = Depends(get_profile_store),
):
    """Devuelve la memoria del usuario, o `profile: null` si aún no existe."""
    summary = await profiles.summarize(user_id)
    if summary is None:
        return ProfileResponse(profile=None)
    return ProfileResponse(profile=MemorySummaryResponse.from_entity(summary))


@router.get("/history/{user_id}/{session_id}", response_model=HistoryResponse)
async def get_history(
    user_id: str,
    session_id: str,
    conversations: ConversationStore = Depends(get_conversation_store),
):
    messages = await conversations.get_context(
        user_id, session_id, settings.HISTORY_LIMIT
    )
    return HistoryResponse(
        messages=[MessageItemResponse.from_entity(m) for m in messages]
    )


@router.post("/session/start", response_model=SessionStartResponse)
async def start_session(body: SessionStartRequest):
    session_id = new_session_id()
    logger.info("chat: sesión iniciada user_id=%s session_id=%s", body.user_id, session_id)
    return SessionStartResponse(session_id=session_id)


@router.post("/session/end", response_model=StatusMessageResponse)
async def end_session(
    body: SessionEndRequest,
    conversations: ConversationStore = Depends(get_conversation_store),
):
    await conversations.end_session(body.user_id, body.session_id)
    return StatusMessageResponse(message="Session ended successfully")


@router.get("/sessions/{user_id}", response_model=PastSessionsResponse)
async def list_past_sessions(
    user_id: str,
    conversations: ConversationStore = Depends(get_conversation_store),
):
    past = await conversations.past_conversations(user_id, PAST_SESSIONS_LIMIT)
    return PastSessionsResponse(
        sessions=[PastSessionResponse.from_entity(c) for c in past]
    )


@router.delete("/user/{user_id}", response_model=StatusMessageResponse)
async def delete_user_data(
    user_id: str,
    profiles: ProfileStore = Depends(get_profile_store),
    conversations: ConversationStore = Depends(get_conversation_store),
):
    """Borra el perfil y todas las conversaciones del usuario."""
    deleted_conversations = await conversations.purge(user_id)
    deleted_profiles = await profiles.purge(user_id)
    logger.info(
        "chat: datos borrados user_id=%s profiles=%d conversations=%d",
        user_id,
        deleted_profiles,
        deleted_conversations,
    )
    return StatusMessageResponse(message="User data cleared successfully")
