"""
services/emotion.py — Detección de emoción por palabras clave.

La tabla se recorre en orden de declaración y gana la PRIMERA emoción con
alguna palabra clave presente en el texto (subcadena, sin distinguir
mayúsculas). Por eso "happy" se comprueba antes que "excited": un texto con
"excited" devuelve "happy", porque esa palabra también está en su lista.

Uso:
    from services.emotion import detect_emotion

    detect_emotion("I'm so happy today!")   # "happy"
    detect_emotion("I'm worried about it")  # "anxious"
    detect_emotion("The sky is blue")       # "neutral"
"""

DEFAULT_EMOTION = "neutral"

# ── Tabla ordenada (emoción, palabras clave) ──────────────────────────────────

EMOTION_PATTERNS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "happy",
        (
            "happy",
            "excited",
            "great",
            "awesome",
            "wonderful",
            "amazing",
            "love",
            "yay",
            "😊",
            "😄",
            "🎉",
        ),
    ),
    (
        "sad",
        (
            "sad",
            "depressed",
            "down",
            "unhappy",
            "terrible",
            "awful",
            "crying",
            "😢",
            "😞",
        ),
    ),
    (
        "angry",
        ("angry", "furious", "mad", "annoyed", "frustrated", "pissed", "😠", "😡"),
    ),
    (
        "anxious",
        ("worried", "anxious", "nervous", "stressed", "concerned", "scared"),
    ),
    ("neutral", ("okay", "fine", "alright", "normal")),
    ("excited", ("excited", "pumped", "thrilled", "stoked", "can't wait")),
)


def detect_emotion(text: str) -> str:
    """Devuelve la etiqueta de emoción de `text`; "neutral" si nada coincide."""
    lower = text.lower()
    for label, keywords in EMOTION_PATTERNS:
        if any(kw in lower for kw in keywords):
            return label
    return DEFAULT_EMOTION
