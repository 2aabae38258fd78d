"""Mapper → Translator orchestration.

Processing is split into two awaited steps so callers can publish the
annotation (fast path for UI highlighting) before translation finishes:

    annotation = await pipeline.annotate(request)
    result = await pipeline.translate(request, annotation)
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from codeswitch.services.language.languages import (
    AUTO_DETECT,
    DEFAULT_TARGET_LANGUAGE,
)
from codeswitch.services.language.mapper import LanguageMapper
from codeswitch.services.language.tags import has_meaningful_content, parse_tags
from codeswitch.services.language.translator import Translator

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TranslationRequest:
    """One user text batch, immutable once dispatched."""

    text: str
    languages: tuple[str, ...] = (AUTO_DETECT,)
    target_language: str = DEFAULT_TARGET_LANGUAGE
    seq: int | None = None

    @property
    def is_empty(self) -> bool:
        return not has_meaningful_content(self.text)


@dataclass(frozen=True)
class Annotation:
    """Tagged text plus the codes it contains, in first-occurrence order."""

    mapped_text: str = ""
    detected_languages: list[str] = field(default_factory=list)

    @classmethod
    def from_tagged(cls, mapped_text: str) -> "Annotation":
        return cls(mapped_text=mapped_text, detected_languages=parse_tags(mapped_text))


@dataclass(frozen=True)
class TranslationResult:
    mapped_text: str
    translated_text: str
    detected_languages: list[str] = field(default_factory=list)


class TranslationPipeline:
    """Runs the language mapper and translator for a TranslationRequest."""

    def __init__(self, mapper: LanguageMapper, translator: Translator) -> None:
        self._mapper = mapper
        self._translator = translator

    async def annotate(self, request: TranslationRequest) -> Annotation:
        """Tag the request text. Empty input yields an empty annotation."""
        if request.is_empty:
            return Annotation()
        mapped = await self._mapper.map_languages(request.text, list(request.languages))
        annotation = Annotation.from_tagged(mapped)
        logger.debug(
            "pipeline_annotated",
            seq=request.seq,
            detected_languages=annotation.detected_languages,
        )
        return annotation

    async def translate(
        self,
        request: TranslationRequest,
        annotation: Annotation,
    ) -> TranslationResult:
        """Translate an annotation produced by :meth:`annotate`.

        Raises:
            TranslationUnavailableError: Propagated from the translator.
        """
        translated = ""
        if annotation.mapped_text:
            translated = await self._translator.translate_text(
                annotation.mapped_text,
                request.target_language,
                list(request.languages),
            )
        return TranslationResult(
            mapped_text=annotation.mapped_text,
            translated_text=translated,
            detected_languages=list(annotation.detected_languages),
        )

    async def detect(self, text: str) -> str:
        """Auto-detect tagging only, no translation."""
        if not has_meaningful_content(text):
            return ""
        return await self._mapper.map_languages(text, [AUTO_DETECT])
