"""
Modelos Pydantic para payloads de entrada en la REST API.
Los campos viajan en camelCase (`userId`, `sessionId`).

Todas las cadenas se recortan y se les quitan `<` y `>` antes de validar.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from config import settings


def sanitize_input(value: str) -> str:
    """Elimina `<`/`>` y espacios en los extremos."""
    return value.replace("<", "").replace(">", "").strip()


class _RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _strict_strings(cls, value):
        if not isinstance(value, str):
            raise ValueError("must be a string")
        return sanitize_input(value)


class MessageRequest(_RequestModel):
    user_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
    message: str = Field(min_length=1)

    @field_validator("message")
    @classmethod
    def _max_length(cls, value: str) -> str:
        if len(value) > settings.MAX_MESSAGE_LENGTH:
            raise ValueError(
                f"Message too long. Maximum {settings.MAX_MESSAGE_LENGTH} characters allowed."
            )
        return value


class SessionStartRequest(_RequestModel):
    user_id: str = Field(min_length=1)


class SessionEndRequest(_RequestModel):
    user_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1)
