"""Capability wiring: Live or Fallback variants, chosen once at startup.

Nothing downstream checks whether an API key is present; it simply calls
the mapper, translator and transcriber it was given.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from codeswitch.core.config import Settings
from codeswitch.services.language.mapper import (
    FallbackLanguageMapper,
    LanguageMapper,
    LiveLanguageMapper,
)
from codeswitch.services.language.pipeline import TranslationPipeline
from codeswitch.services.language.translator import (
    FallbackTranslator,
    LiveTranslator,
    Translator,
)
from codeswitch.services.llm.base import LLMProvider
from codeswitch.services.llm.openai_provider import OpenAIProvider
from codeswitch.services.speech.transcriber import (
    FallbackTranscriber,
    LiveTranscriber,
    Transcriber,
)

logger = structlog.get_logger(__name__)


@dataclass
class Capabilities:
    mapper: LanguageMapper
    translator: Translator
    transcriber: Transcriber
    llm: LLMProvider | None = None
    closables: list = field(default_factory=list)

    @property
    def pipeline(self) -> TranslationPipeline:
        return TranslationPipeline(self.mapper, self.translator)

    @property
    def text_generation_live(self) -> bool:
        return isinstance(self.mapper, LiveLanguageMapper)

    @property
    def speech_to_text_live(self) -> bool:
        return isinstance(self.transcriber, LiveTranscriber)

    async def aclose(self) -> None:
        for resource in self.closables:
            try:
                await resource.aclose()
            except Exception as e:
                logger.warning("capability_close_failed", error=str(e))


def build_capabilities(settings: Settings) -> Capabilities:
    """Build the capability bundle from configuration."""
    closables: list = []

    llm: LLMProvider | None = None
    mapper: LanguageMapper
    translator: Translator
    if settings.text_generation_enabled:
        llm = OpenAIProvider(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url or None,
            timeout_seconds=settings.llm_timeout_seconds,
        )
        closables.append(llm)
        mapper = LiveLanguageMapper(
            llm,
            temperature=settings.mapping_temperature,
            max_tokens=settings.llm_max_tokens,
        )
        translator = LiveTranslator(
            llm,
            fallback=FallbackTranslator(),
            temperature=settings.translation_temperature,
            max_tokens=settings.llm_max_tokens,
        )
    else:
        logger.warning("openai_api_key_missing_using_fallback_translation")
        mapper = FallbackLanguageMapper()
        translator = FallbackTranslator(delay_ms=settings.fallback_translation_delay_ms)

    transcriber: Transcriber
    if settings.speech_to_text_enabled:
        transcriber = LiveTranscriber(
            api_key=settings.lemonfox_api_key,
            base_url=settings.lemonfox_base_url,
            model=settings.transcription_model,
        )
        closables.append(transcriber)
    else:
        logger.warning("lemonfox_api_key_missing_using_mock_transcription")
        transcriber = FallbackTranscriber(delay_ms=settings.fallback_transcription_delay_ms)

    logger.info(
        "capabilities_ready",
        text_generation="live" if llm is not None else "fallback",
        speech_to_text="live" if settings.speech_to_text_enabled else "fallback",
    )
    return Capabilities(
        mapper=mapper,
        translator=translator,
        transcriber=transcriber,
        llm=llm,
        closables=closables,
    )
