"""WebSocket relay payload schemas.

Field names on the wire are camelCase (``targetLanguage``, ``annotatedText``);
Python code uses the snake_case attribute names.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codeswitch.services.language.languages import AUTO_DETECT, DEFAULT_TARGET_LANGUAGE


class Envelope(BaseModel):
    """A single JSON text frame in either direction."""

    event: str
    data: Any = None
    seq: int | None = None


class SendTextPayload(BaseModel):
    """Client → server ``sendText``."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    languages: list[str] = Field(default_factory=lambda: [AUTO_DETECT])
    target_language: str = Field(DEFAULT_TARGET_LANGUAGE, alias="targetLanguage")

    @field_validator("text", mode="before")
    @classmethod
    def _text_or_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("languages", mode="before")
    @classmethod
    def _default_languages(cls, v: Any) -> Any:
        if not v:
            return [AUTO_DETECT]
        return v

    @field_validator("target_language", mode="before")
    @classmethod
    def _default_target(cls, v: Any) -> Any:
        if not v:
            return DEFAULT_TARGET_LANGUAGE
        return v

    @classmethod
    def from_wire(cls, data: Any) -> "SendTextPayload":
        """Accept the object form or a bare string (legacy clients)."""
        if isinstance(data, str):
            return cls(text=data)
        if data is None:
            return cls()
        return cls.model_validate(data)


class DetectLanguagesPayload(BaseModel):
    """Client → server ``detectLanguages``."""

    text: str = ""

    @classmethod
    def from_wire(cls, data: Any) -> "DetectLanguagesPayload":
        if isinstance(data, str):
            return cls(text=data)
        if data is None:
            return cls()
        return cls.model_validate(data)


class AnnotatedTextPayload(BaseModel):
    """Server → client ``receiveAnnotatedText``."""

    model_config = ConfigDict(populate_by_name=True)

    annotated_text: str = Field("", alias="annotatedText")
    detected_languages: list[str] = Field(default_factory=list, alias="detectedLanguages")


class LanguageDetectedPayload(BaseModel):
    """Server → client ``languageDetected``."""

    model_config = ConfigDict(populate_by_name=True)

    tagged_text: str = Field("", alias="taggedText")


class TranscriptionPayload(BaseModel):
    """Server → client ``receiveTranscription`` (audio sent over the socket)."""

    model_config = ConfigDict(populate_by_name=True)

    transcribed_text: str = Field("", alias="transcribedText")
