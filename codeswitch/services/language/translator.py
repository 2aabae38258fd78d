"""Translator: turns tag-annotated text into plain text in a target language.

Tags are only disambiguation hints for the model; the returned text never
contains a ``[[...]]`` marker, whichever variant produced it.

Failure policy:
    - FallbackTranslator returns a clearly marked, deterministic and
      reversible placeholder (the tag-free input reversed).
    - LiveTranslator degrades to that placeholder on API errors, timeouts
      and empty output. Only an unreachable capability raises
      TranslationUnavailableError.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod

import structlog

from codeswitch.core.exceptions import CapabilityUnreachableError, TranslationUnavailableError
from codeswitch.services.language.languages import (
    DEFAULT_TARGET_LANGUAGE,
    clean_hints,
    is_auto_detect,
    language_name,
)
from codeswitch.services.language.tags import has_meaningful_content, strip_all_markers
from codeswitch.services.llm.base import LLMProvider

logger = structlog.get_logger(__name__)

TRANSLATION_PROMPT = """Translate the following language-tagged text to {target_name}. The text contains language tags in [[LANG]] format. Translate each segment according to its language tag and provide a natural, fluent translation in {target_name}.{hint_line}

Treat the tags only as hints about the source language of each segment. Do not include any [[...]] tags in your answer.

Tagged text: "{text}"

Return only the translated text in {target_name}:"""

SYSTEM_PROMPT = "You are a professional translator. You answer with the translation only."


def mock_translate(text: str) -> str:
    """Reversible placeholder: ``[MOCK] `` plus the tag-free text reversed."""
    if not isinstance(text, str):
        return ""
    # Reversing can turn "]]ne[[" into a tag, so strip again afterwards.
    return f"[MOCK] {strip_all_markers(strip_all_markers(text)[::-1])}"


def fallback_translation(text: str, target_language: str) -> str:
    return f"[MOCK TRANSLATION TO {target_language.upper()}] {mock_translate(text)}"


def build_translation_prompt(
    tagged_text: str,
    target_language: str,
    source_language_hints: list[str] | None = None,
) -> str:
    hint_line = ""
    if not is_auto_detect(source_language_hints):
        hints = ", ".join(clean_hints(source_language_hints))
        hint_line = f" The author writes in: {hints}."
    return TRANSLATION_PROMPT.format(
        text=tagged_text,
        target_name=language_name(target_language),
        hint_line=hint_line,
    )


def _unquote(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] == '"':
        return text[1:-1].strip()
    return text


class Translator(ABC):
    """Translates tagged text into ``target_language``."""

    @abstractmethod
    async def translate_text(
        self,
        tagged_text: str,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
        source_language_hints: list[str] | None = None,
    ) -> str:
        """Return plain translated text with all tags removed.

        Returns "" when ``tagged_text`` has no meaningful content.

        Raises:
            TranslationUnavailableError: The capability cannot be reached.
        """


class FallbackTranslator(Translator):
    """Deterministic placeholder translator used without a capability.

    ``delay_ms`` spaces the translated emission after the annotated one so
    clients can render the annotation first.
    """

    def __init__(self, delay_ms: int = 0) -> None:
        self._delay = max(delay_ms, 0) / 1000

    async def translate_text(
        self,
        tagged_text: str,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
        source_language_hints: list[str] | None = None,
    ) -> str:
        if not has_meaningful_content(tagged_text):
            return ""
        if self._delay:
            await asyncio.sleep(self._delay)
        return fallback_translation(tagged_text, target_language)


class LiveTranslator(Translator):
    """Translates through the hosted text-generation capability."""

    def __init__(
        self,
        llm: LLMProvider,
        fallback: Translator | None = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> None:
        self._llm = llm
        self._fallback = fallback or FallbackTranslator()
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def translate_text(
        self,
        tagged_text: str,
        target_language: str = DEFAULT_TARGET_LANGUAGE,
        source_language_hints: list[str] | None = None,
    ) -> str:
        if not has_meaningful_content(tagged_text):
            return ""

        prompt = build_translation_prompt(tagged_text, target_language, source_language_hints)
        try:
            result = await self._llm.generate(
                prompt=prompt,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except CapabilityUnreachableError as e:
            logger.error(
                "translation_unavailable",
                error=str(e),
                target_language=target_language,
            )
            raise TranslationUnavailableError() from e
        except Exception as e:
            logger.warning(
                "translation_failed_using_fallback",
                error=str(e),
                target_language=target_language,
                text_len=len(tagged_text),
            )
            return await self._fallback.translate_text(
                tagged_text, target_language, source_language_hints
            )

        # Models sometimes echo the tags back.
        translated = strip_all_markers(_unquote(strip_all_markers(result.text)))
        if not translated:
            logger.warning("translation_empty_output", target_language=target_language)
            return await self._fallback.translate_text(
                tagged_text, target_language, source_language_hints
            )

        logger.debug(
            "translation_ok",
            target_language=target_language,
            text_len=len(tagged_text),
            output_len=len(translated),
        )
        return translated
