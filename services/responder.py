"""
services/responder.py — Orquestador de respuestas del personaje.

Flujo por mensaje entrante (terminal al producir la respuesta):

  identidad ──(coincide)──────────────────────────────► responder y persistir
      │
  saludo ─────(coincide y sesión sin contexto)────────► responder y persistir
      │
  contexto → prompt → Gemini ─────────────────────────► responder y persistir
                        │
                        └──(cualquier excepción)──────► disculpa (solo se
                                                        persiste el turno del
                                                        usuario)

Todos los caminos salvo el de fallo persisten exactamente dos mensajes
(usuario y luego asistente). StoreError se propaga sin capturar.

Uso:
    from services.responder import Responder
    from services.gemini import generate

    responder = Responder(
        profiles=ProfileStore(),
        conversations=ConversationStore(),
        generate=generate,
    )
    reply = await responder.respond("user_42", "session_1", "hi")
"""

import logging
import random
from collections.abc import Awaitable, Callable

from config import settings
from middleware.error_handler import UpstreamGenerationError
from services.emotion import detect_emotion
from services.memory import ConversationStore, ProfileStore
from services.persona import (
    DEFAULT_PERSONA,
    FALLBACK_RESPONSES,
    Persona,
    greeting_templates,
    identity_answer,
    is_simple_greeting,
)
from services.prompt import (
    build_generation_input,
    compose_prompt,
    with_emotional_context,
)

logger = logging.getLogger(__name__)

GenerateFn = Callable[[str], Awaitable[str]]

# Emociones con las que se guardan los turnos de cada camino
IDENTITY_EMOTIONS = ("curious", "confident")
GREETING_ASSISTANT_EMOTION = "friendly"
GENERATED_ASSISTANT_EMOTION = "engaged"


class Responder:
    def __init__(
        self,
        *,
        profiles: ProfileStore,
        conversations: ConversationStore,
        generate: GenerateFn,
        persona: Persona = DEFAULT_PERSONA,
        rng: random.Random | None = None,
        context_window: int | None = None,
    ) -> None:
        self._profiles = profiles
        self._conversations = conversations
        self._generate = generate
        self._persona = persona
        self._rng = rng or random.Random()
        self._context_window = context_window or settings.CONTEXT_WINDOW

    async def respond(self, user_id: str, session_id: str, message: str) -> str:
        # 1. Preguntas de identidad
        answer = identity_answer(self._persona, message)
        if answer is not None:
            logger.debug("responder: pregunta de identidad user_id=%s", user_id)
            user_emotion, assistant_emotion = IDENTITY_EMOTIONS
            await self._persist_turns(
                user_id, session_id, message, user_emotion, answer, assistant_emotion
            )
            return answer

        # 2. Memoria y contexto
        memory = await self._profiles.summarize(user_id)
        context = await self._conversations.get_context(
            user_id, session_id, self._context_window
        )
        emotion = detect_emotion(message)

        # 3. Saludo simple al inicio de la sesión
        if is_simple_greeting(message) and not context:
            name = memory.name if memory is not None else None
            greeting = self._rng.choice(greeting_templates(name))
            logger.debug("responder: saludo user_id=%s", user_id)
            await self._persist_turns(
                user_id,
                session_id,
                message,
                emotion,
                greeting,
                GREETING_ASSISTANT_EMOTION,
            )
            return greeting

        # 4. Prompt + generación
        prompt = with_emotional_context(
            compose_prompt(self._persona, memory, context), emotion
        )
        try:
            reply = await self._generate(
                build_generation_input(prompt, message, self._persona)
            )
        except Exception as exc:
            # Cualquier fallo del backend equivale a UpstreamGenerationError
            logger.error(
                "responder: fallo de generación user_id=%s session_id=%s: %s",
                user_id,
                session_id,
                exc.message if isinstance(exc, UpstreamGenerationError) else exc,
                exc_info=True,
            )
            await self._conversations.append_message(
                user_id, session_id, "user", message, emotion
            )
            return self._rng.choice(FALLBACK_RESPONSES)

        await self._persist_turns(
            user_id, session_id, message, emotion, reply, GENERATED_ASSISTANT_EMOTION
        )
        return reply

    async def _persist_turns(
        self,
        user_id: str,
        session_id: str,
        user_message: str,
        user_emotion: str,
        reply: str,
        reply_emotion: str,
    ) -> None:
        await self._conversations.append_message(
            user_id, session_id, "user", user_message, user_emotion
        )
        await self._conversations.append_message(
            user_id, session_id, "assistant", reply, reply_emotion
        )
