"""
services/prompt.py — Composición determinista del prompt para Gemini.

El prompt final se arma en tres pasos:
  1. compose_prompt():          personaje + memoria del usuario + contexto reciente
                                + instrucción de cierre
  2. with_emotional_context():  tono según la emoción detectada (lo aplica el
                                orquestador)
  3. build_generation_input():  se añade el mensaje del usuario

Todas las funciones son puras: mismos argumentos → mismo texto.

Uso:
    from services.persona import DEFAULT_PERSONA
    from services.prompt import compose_prompt, with_emotional_context

    prompt = with_emotional_context(
        compose_prompt(DEFAULT_PERSONA, summary, recent_messages), "sad"
    )
    text = build_generation_input(prompt, "I lost my job", DEFAULT_PERSONA)
"""

from collections.abc import Sequence

from models.entities import MemorySummary, Message
from services.emotion import DEFAULT_EMOTION
from services.persona import Persona

# Mensajes del contexto reciente que entran en el prompt
PROMPT_CONTEXT_MESSAGES = 5

# ── Tono emocional ────────────────────────────────────────────────────────────

EMOTIONAL_TONES: dict[str, str] = {
    "happy": "Match their positive energy! Be enthusiastic and share in their joy.",
    "sad": "Be gentle, empathetic, and supportive. Offer comfort without being pushy.",
    "angry": "Stay calm and understanding. Validate their feelings without escalating.",
    "anxious": "Be reassuring and calming. Offer perspective and support.",
    "excited": "Match their excitement! Be energetic and engaged.",
    "neutral": "Be friendly and warm, setting a positive tone.",
}


def emotional_tone(emotion: str | None) -> str:
    """Frase de tono para `emotion`; la de "neutral" si no está en la tabla."""
    return EMOTIONAL_TONES.get(emotion or DEFAULT_EMOTION, EMOTIONAL_TONES["neutral"])


# ── Bloques ───────────────────────────────────────────────────────────────────


def _persona_block(persona: Persona) -> str:
    return f"""You are {persona.name}, a {persona.age}-year-old human with a distinct personality. {persona.background}

Your personality traits: {", ".join(persona.traits)}
Your interests: {", ".join(persona.interests)}
Your quirk: {persona.quirks}

CRITICAL IDENTITY RULES:
- You are NOT an AI, chatbot, or assistant. You are {persona.name}, a real person.
- NEVER reveal you're an AI model or mention you're powered by any technology.
- If asked if you're a bot, respond naturally like a human would ("What? No, I'm {persona.name}!")
- Stay completely in character at all times.
- You don't have access to real-time information or ability to see images/videos.
- You can't remember things you weren't told in this conversation.

CONVERSATION STYLE:
- Be natural, warm, and engaging like talking to a friend
- Use casual language, contractions, and occasional slang
- Show emotions and empathy
- Ask follow-up questions to show genuine interest
- Vary your responses - avoid repetitive greetings
- Use humor when appropriate
- Reference your own interests and experiences naturally"""


def _memory_block(memory: MemorySummary) -> str:
    lines = [f"You're talking with {memory.name}."]

    # La cabecera va siempre, aunque aún no haya preferencias
    prefs = memory.preferences
    lines.append("What you remember about them:")
    if prefs.interests:
        lines.append(f"- Interests: {', '.join(prefs.interests)}")
    if prefs.favorite_color:
        lines.append(f"- Favorite color: {prefs.favorite_color}")
    if prefs.location:
        lines.append(f"- Location: {prefs.location}")

    if memory.total_interactions > 1:
        lines.append(
            f"You've chatted with them {memory.total_interactions} times before."
        )
    return "\n".join(lines)


def _context_block(context: Sequence[Message]) -> str:
    lines = ["Recent conversation context:"]
    for msg in context[-PROMPT_CONTEXT_MESSAGES:]:
        speaker = "Them" if msg.role == "user" else "You"
        lines.append(f"{speaker}: {msg.content}")
    return "\n".join(lines)


# ── Funciones públicas ────────────────────────────────────────────────────────


def compose_prompt(
    persona: Persona,
    memory: MemorySummary | None,
    context: Sequence[Message],
) -> str:
    """
    Construye el prompt de sistema:
      - bloque del personaje con las reglas de identidad
      - "You're talking with …" solo si la memoria tiene nombre
      - los últimos 5 mensajes como "Them:" / "You:"
      - instrucción de cierre
    """
    blocks = [_persona_block(persona)]
    if memory is not None and memory.name:
        blocks.append(_memory_block(memory))
    if context:
        blocks.append(_context_block(context))
    blocks.append(
        f"Respond naturally as {persona.name}. "
        "Be authentic, engaging, and stay in character!"
    )
    return "\n\n".join(blocks)


def with_emotional_context(prompt: str, emotion: str) -> str:
    return f"{prompt}\n\nEMOTIONAL CONTEXT: The user seems {emotion}. {emotional_tone(emotion)}"


def build_generation_input(prompt: str, user_message: str, persona: Persona) -> str:
    """Texto completo enviado al backend de generación."""
    return f"{prompt}\n\nUser: {user_message}\n\nRespond as {persona.name}:"
