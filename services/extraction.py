"""
services/extraction.py — Extracción heurística de hechos del texto del usuario.

Cada hecho tiene su propio extractor, probado por separado:
  - extract_name           "my name is / i'm / i am / call me" + palabra
  - extract_location       "i live in / i'm from / from" + palabras hasta . , o fin
  - extract_favorite_color "favorite color is X" o "i like X (color)"
  - extract_interests      hasta 3 palabras tras cada disparador de interés

`extract_information` los combina; nunca falla y devuelve un resultado vacío
si nada coincide. Nombre, ubicación y color solo miran la primera
coincidencia; los intereses recorren todos los disparadores.

Nota: "i like X" alimenta el color favorito Y los intereses a la vez, y
"i'm/i am" captura cualquier palabra ("I am tired" → name="tired"). Son
heurísticas frágiles que se conservan tal cual.

Uso:
    from services.extraction import extract_information

    facts = extract_information("My name is Sam and I live in Denver.")
    # ExtractedFacts(name="Sam", location="Denver", favorite_color=None, interests=[])
"""

import re

from models.entities import ExtractedFacts

# ── Patrones ──────────────────────────────────────────────────────────────────

_NAME_RE = re.compile(r"(?:my name is|i'm|i am|call me)\s+([a-zA-Z]+)", re.IGNORECASE)

_LOCATION_RE = re.compile(
    r"(?:i live in|i'm from|from)\s+([a-zA-Z\s]+?)(?:\.|,|$)", re.IGNORECASE
)

_COLOR_RE = re.compile(
    r"favorite color is\s+(\w+)|i like\s+(\w+)(?:\s+color)?", re.IGNORECASE
)

# Orden de recorrido de los disparadores de interés
INTEREST_TRIGGERS: tuple[str, ...] = (
    "love",
    "enjoy",
    "like",
    "hobby",
    "interested in",
    "fan of",
)

# Palabras tomadas tras cada disparador
INTEREST_PHRASE_WORDS = 3


# ── Extractores ───────────────────────────────────────────────────────────────


def extract_name(text: str) -> str | None:
    m = _NAME_RE.search(text)
    return m.group(1) if m else None


def extract_location(text: str) -> str | None:
    m = _LOCATION_RE.search(text)
    if m is None:
        return None
    return m.group(1).strip() or None


def extract_favorite_color(text: str) -> str | None:
    m = _COLOR_RE.search(text)
    if m is None:
        return None
    return m.group(1) or m.group(2)


def extract_interests(text: str) -> list[str]:
    """
    Por cada disparador presente en el texto, localiza la primera palabra
    (separando por espacios) que contiene la primera palabra del disparador
    y toma hasta las 3 palabras siguientes como una frase de interés.
    No deduplica: eso ocurre al fusionar el perfil.
    """
    lower = text.lower()
    words = text.split(" ")
    interests: list[str] = []

    for trigger in INTEREST_TRIGGERS:
        if trigger not in lower:
            continue
        head = trigger.split(" ")[0]
        index = next(
            (i for i, word in enumerate(words) if head in word.lower()), -1
        )
        if 0 <= index < len(words) - 1:
            phrase = " ".join(words[index + 1 : index + 1 + INTEREST_PHRASE_WORDS])
            interests.append(phrase)

    return interests


# ── Punto de entrada ──────────────────────────────────────────────────────────


def extract_information(text: str) -> ExtractedFacts:
    return ExtractedFacts(
        name=extract_name(text),
        location=extract_location(text),
        favorite_color=extract_favorite_color(text),
        interests=extract_interests(text),
    )
