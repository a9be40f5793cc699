"""
Dependencias FastAPI compartidas por los routers.

Los stores abren su propia sesión por operación (ver services/memory.py);
aquí solo se construyen y se inyectan. En tests, `get_generator` se
sustituye con app.dependency_overrides para no llamar a Gemini.
"""

from fastapi import Depends

from services.gemini import generate
from services.memory import ConversationStore, ProfileStore
from services.persona import DEFAULT_PERSONA
from services.responder import GenerateFn, Responder


def get_profile_store() -> ProfileStore:
    return ProfileStore()


def get_conversation_store() -> ConversationStore:
    return ConversationStore()


def get_generator() -> GenerateFn:
    """Backend de generación: prompt → texto."""
    return generate


def get_responder(
    profiles: ProfileStore = Depends(get_profile_store),
    conversations: ConversationStore = Depends(get_conversation_store),
    generator: GenerateFn = Depends(get_generator),
) -> Responder:
    """Inyecta un Responder con el personaje por defecto."""
    return Responder(
        profiles=profiles,
        conversations=conversations,
        generate=generator,
        persona=DEFAULT_PERSONA,
    )
