"""
services/gemini.py — Singleton del modelo Gemini y llamada de generación.

`generate()` es el único punto del sistema que espera a la red. Cualquier
fallo (error de la API, cuota, timeout o respuesta vacía) se convierte en
UpstreamGenerationError, que el orquestador transforma en una disculpa.

Uso:
    from services.gemini import generate
    text = await generate("You are Alex ... User: hola")
"""

import asyncio
import logging

from langchain_google_genai import ChatGoogleGenerativeAI

from config import settings
from middleware.error_handler import UpstreamGenerationError

logger = logging.getLogger(__name__)

_model: ChatGoogleGenerativeAI | None = None


def get_model() -> ChatGoogleGenerativeAI:
    """
    Devuelve la instancia singleton de ChatGoogleGenerativeAI.
    Se inicializa en el primer llamado y se reutiliza después.
    """
    global _model
    if _model is None:
        _model = ChatGoogleGenerativeAI(
            model=settings.GEMINI_MODEL,
            google_api_key=settings.GEMINI_API_KEY,
            temperature=settings.GEMINI_TEMPERATURE,
            top_p=settings.GEMINI_TOP_P,
            top_k=settings.GEMINI_TOP_K,
            max_output_tokens=settings.GEMINI_MAX_OUTPUT_TOKENS,
        )
    return _model


def reset_model() -> None:
    """Fuerza la reinicialización del singleton. Útil en tests."""
    global _model
    _model = None


def _part_text(part) -> str:
    if isinstance(part, str):
        return part
    if isinstance(part, dict):
        return str(part.get("text", ""))
    return str(part)


def _completion_text(result) -> str:
    raw = result.content if hasattr(result, "content") else result
    if isinstance(raw, list):
        raw = " ".join(_part_text(part) for part in raw)
    return str(raw).strip()


async def generate(prompt: str, *, timeout: float | None = None) -> str:
    """
    Envía `prompt` a Gemini y devuelve el texto de la respuesta.

    El timeout por defecto es settings.GENERATION_TIMEOUT_SECONDS; si vence,
    la llamada se cancela y su resultado se descarta.
    """
    timeout = settings.GENERATION_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        model = get_model()
        result = await asyncio.wait_for(model.ainvoke(prompt), timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning("gemini: timeout tras %.1fs", timeout)
        raise UpstreamGenerationError(
            "Generation timed out", details=f"timeout={timeout}s"
        ) from exc
    except Exception as exc:
        logger.warning("gemini: error en la generación: %s", exc)
        raise UpstreamGenerationError("Generation failed", details=str(exc)) from exc

    text = _completion_text(result)
    if not text:
        raise UpstreamGenerationError("Generation returned an empty completion")
    return text
