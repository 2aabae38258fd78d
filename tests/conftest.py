"""Shared pytest fixtures for the Codeswitch test suite.

Provides:
  - MockLLMProvider: records prompts, returns configurable text or raises
  - fallback_capabilities: deterministic mapper/translator/transcriber
  - test_settings: Settings with no API keys that ignore any local .env

No test talks to a real text-generation or speech-to-text API.
"""

from __future__ import annotations

from typing import Any

import pytest

from codeswitch.core.config import Settings
from codeswitch.services.capabilities import Capabilities
from codeswitch.services.language.mapper import FallbackLanguageMapper
from codeswitch.services.language.translator import FallbackTranslator
from codeswitch.services.llm.base import LLMProvider, LLMResponse
from codeswitch.services.speech.transcriber import FallbackTranscriber


# ---------------------------------------------------------------------------
# Mock LLM Provider
# ---------------------------------------------------------------------------


class MockLLMProvider(LLMProvider):
    """Mock LLM provider for testing. Returns configurable responses."""

    def __init__(
        self,
        generate_text: str = "Mock response",
        error: Exception | None = None,
    ) -> None:
        self._generate_text = generate_text
        self._error = error
        self.generate_calls: list[dict[str, Any]] = []

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> LLMResponse:
        self.generate_calls.append(
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        if self._error is not None:
            raise self._error
        return LLMResponse(
            text=self._generate_text,
            input_tokens=50,
            output_tokens=10,
        )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    """Mock LLM provider fixture."""
    return MockLLMProvider()


@pytest.fixture
def test_settings() -> Settings:
    """Settings that ignore any local .env file and have no API keys."""
    return Settings(
        _env_file=None,
        openai_api_key="",
        lemonfox_api_key="",
        client_url="http://localhost:5173",
        fallback_translation_delay_ms=0,
        fallback_transcription_delay_ms=0,
    )


@pytest.fixture
def fallback_capabilities() -> Capabilities:
    """Deterministic capabilities with no artificial delays."""
    return Capabilities(
        mapper=FallbackLanguageMapper(),
        translator=FallbackTranslator(delay_ms=0),
        transcriber=FallbackTranscriber(delay_ms=0),
    )
