"""Language mapper: inserts ``[[LANG]]`` tags into mixed-language text.

The mapper never translates and never changes the underlying characters; it
only inserts tags or rewrites the case of existing ones. Two variants exist:

- LiveLanguageMapper asks the text-generation capability to tag the text.
- FallbackLanguageMapper is deterministic: already-tagged input is
  case-normalised, anything else is wrapped in a single ``[[EN]]`` tag. This
  is a placeholder, not a language detector.

The variant is chosen once at startup (codeswitch.services.capabilities).
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

import structlog

from codeswitch.services.language.languages import clean_hints, is_auto_detect
from codeswitch.services.language.tags import (
    contains_tags,
    has_meaningful_content,
    standardize_tags,
    untagged_runs,
)
from codeswitch.services.llm.base import LLMProvider

logger = structlog.get_logger(__name__)

FALLBACK_CODE = "EN"

AUTO_DETECT_PROMPT = """Analyze the following text and tag each language segment with [[LANG]] where LANG is the ISO 639-1 two-letter code. Use these rules:
- Tag before each segment where language changes
- Group largest possible segments (phrases/clauses) of same language, using as few tags as possible
- Use [[UNK]] for unidentifiable segments
- Use [[AMB:lang1/lang2]] for ambiguous segments
- Keep any [[LANG]] tags already present in the text
- Do not translate, correct or rephrase anything

Text: "{text}"

Return only the tagged text:"""

HINTED_PROMPT = """Analyze the following text and tag each language segment with [[LANG]] where LANG is the ISO 639-1 two-letter code. The user specified these languages: {languages}. Prioritize these languages when resolving ambiguities, preferring {primary} when several fit.

Use these rules:
- Tag before each segment where language changes
- Group largest possible segments (phrases/clauses) of same language, using as few tags as possible
- Prioritize user-specified languages: {languages}
- Use [[UNK]] for unidentifiable segments and [[AMB:lang1/lang2]] when no specified language applies
- Keep any [[LANG]] tags already present in the text
- Do not translate, correct or rephrase anything

Text: "{text}"

Return only the tagged text:"""

SYSTEM_PROMPT = (
    "You are a precise language tagger. "
    "You insert [[LANG]] markers into text and never change the text itself."
)


def fallback_tagging(text: str) -> str:
    """Deterministic tagging used when no capability is available."""
    if not has_meaningful_content(text):
        return ""
    if contains_tags(text):
        return standardize_tags(text)
    return f"[[{FALLBACK_CODE}]]{text}"


def build_mapping_prompt(text: str, hint_languages: list[str] | None) -> str:
    """Pick the auto-detect or hinted prompt for ``hint_languages``."""
    if is_auto_detect(hint_languages):
        return AUTO_DETECT_PROMPT.format(text=text)
    hints = clean_hints(hint_languages)
    return HINTED_PROMPT.format(
        text=text,
        languages=", ".join(hints),
        primary=hints[0],
    )


def _preserves_content(tagged: str, original: str) -> bool:
    """True when ``tagged`` is ``original`` with only markers inserted.

    Whitespace may change only where a marker sits in either text; every
    other character, whitespace included, must match exactly.
    """
    runs = untagged_runs(tagged)
    if not runs:
        return False
    pattern = r"\s*".join(re.escape(run) for run in runs)
    return re.fullmatch(pattern, " ".join(untagged_runs(original))) is not None


def _unquote(raw: str, original: str) -> str:
    """Drop quotes the model copied from the prompt's ``Text: "..."`` line."""
    raw = raw.strip()
    if (
        len(raw) >= 2
        and raw[0] == raw[-1] == '"'
        and not original.strip().startswith('"')
    ):
        return raw[1:-1]
    return raw


class LanguageMapper(ABC):
    """Produces tag-annotated text from raw text plus hint languages."""

    @abstractmethod
    async def map_languages(self, text: str, hint_languages: list[str] | None = None) -> str:
        """Return ``text`` with language tags inserted.

        Args:
            text: Raw user text, possibly already partially tagged.
            hint_languages: Ordered hint codes, or ``["auto"]``/empty for
                full auto-detection.

        Returns:
            Tagged text with uppercase codes, or "" when ``text`` has no
            meaningful content. Never raises for capability failures.
        """


class FallbackLanguageMapper(LanguageMapper):
    """Deterministic mapper used when text generation is not configured."""

    async def map_languages(self, text: str, hint_languages: list[str] | None = None) -> str:
        return fallback_tagging(text)


class LiveLanguageMapper(LanguageMapper):
    """Tags text through the hosted text-generation capability."""

    def __init__(
        self,
        llm: LLMProvider,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def map_languages(self, text: str, hint_languages: list[str] | None = None) -> str:
        if not has_meaningful_content(text):
            return ""

        prompt = build_mapping_prompt(text, hint_languages)
        try:
            result = await self._llm.generate(
                prompt=prompt,
                system_prompt=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except Exception as e:
            logger.warning(
                "language_mapping_failed",
                error=str(e),
                text_len=len(text),
            )
            return fallback_tagging(text)

        tagged = standardize_tags(_unquote(result.text, text))
        if not contains_tags(tagged):
            logger.warning("language_mapping_untagged_output", text_len=len(text))
            return fallback_tagging(text)
        if not _preserves_content(tagged, text):
            # The model rewrote the text instead of only tagging it.
            logger.warning(
                "language_mapping_altered_text",
                text_len=len(text),
                output_len=len(tagged),
            )
            return fallback_tagging(text)

        logger.debug(
            "language_mapping_ok",
            text_len=len(text),
            auto_detect=is_auto_detect(hint_languages),
        )
        return tagged
