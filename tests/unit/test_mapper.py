"""Unit tests for the language mapper (fallback + live variants).

Tests:
  - Fallback wraps untagged text in [[EN]] and normalises tagged text
  - Live standardises model tags and drops quotes copied from the prompt
  - Live falls back when the model errors, returns no tags, or rewrites text
  - Whitespace may only change where a tag was inserted
  - Prompt selection: auto-detect vs. hinted (first hint preferred)
  - Empty input never reaches the capability
"""

from __future__ import annotations

import pytest

from codeswitch.core.exceptions import CapabilityError
from codeswitch.services.language.mapper import (
    FallbackLanguageMapper,
    LiveLanguageMapper,
    build_mapping_prompt,
    fallback_tagging,
)
from codeswitch.services.language.tags import strip_all_markers
from tests.conftest import MockLLMProvider


class TestFallbackTagging:
    def test_untagged_text_wrapped_in_en(self) -> None:
        assert fallback_tagging("Hello world") == "[[EN]]Hello world"

    def test_already_tagged_text_is_standardised(self) -> None:
        assert fallback_tagging("Hello [[fr]]bonjour") == "Hello [[FR]]bonjour"

    @pytest.mark.parametrize("text", ["", "   ", "[[EN]]"])
    def test_empty_content(self, text: str) -> None:
        assert fallback_tagging(text) == ""

    @pytest.mark.asyncio
    async def test_fallback_mapper_ignores_hints(self) -> None:
        mapper = FallbackLanguageMapper()
        assert await mapper.map_languages("Привет", ["ru"]) == "[[EN]]Привет"


class TestMappingPrompt:
    def test_auto_detect_prompt(self) -> None:
        prompt = build_mapping_prompt("hola friend", ["auto"])
        assert "hola friend" in prompt
        assert "The user specified" not in prompt
        assert "[[AMB:lang1/lang2]]" in prompt

    def test_empty_hints_mean_auto(self) -> None:
        assert build_mapping_prompt("x", []) == build_mapping_prompt("x", ["auto"])

    def test_hinted_prompt_prefers_first_hint(self) -> None:
        prompt = build_mapping_prompt("salem hello", ["KZ", "en"])
        assert "kk, en" in prompt
        assert "preferring kk" in prompt


@pytest.mark.asyncio
class TestLiveLanguageMapper:
    async def test_standardises_model_tags(self) -> None:
        llm = MockLLMProvider(generate_text="[[en]]Hello [[fr]]bonjour")
        mapper = LiveLanguageMapper(llm)
        assert await mapper.map_languages("Hello bonjour", ["auto"]) == "[[EN]]Hello [[FR]]bonjour"

    async def test_uses_mapping_temperature(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]Hello")
        mapper = LiveLanguageMapper(llm, temperature=0.1, max_tokens=500)
        await mapper.map_languages("Hello", ["auto"])
        assert llm.generate_calls[0]["temperature"] == 0.1
        assert llm.generate_calls[0]["max_tokens"] == 500

    async def test_strips_copied_quotes(self) -> None:
        llm = MockLLMProvider(generate_text='"[[EN]]Hello [[ES]]amigo"')
        mapper = LiveLanguageMapper(llm)
        assert await mapper.map_languages("Hello amigo") == "[[EN]]Hello [[ES]]amigo"

    async def test_keeps_ambiguous_markers(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]Hello [[amb:es/pt]]como")
        mapper = LiveLanguageMapper(llm)
        result = await mapper.map_languages("Hello como")
        assert result == "[[EN]]Hello [[AMB:ES/PT]]como"

    async def test_capability_error_falls_back(self) -> None:
        llm = MockLLMProvider(error=CapabilityError("boom"))
        mapper = LiveLanguageMapper(llm)
        assert await mapper.map_languages("Hello") == "[[EN]]Hello"

    async def test_untagged_output_falls_back(self) -> None:
        llm = MockLLMProvider(generate_text="Hello")
        mapper = LiveLanguageMapper(llm)
        assert await mapper.map_languages("Hello") == "[[EN]]Hello"

    async def test_rewritten_text_falls_back(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]Hello [[EN]]good day")
        mapper = LiveLanguageMapper(llm)
        result = await mapper.map_languages("Hello bonjour")
        assert result == "[[EN]]Hello bonjour"
        assert strip_all_markers(result) == "Hello bonjour"

    async def test_collapsed_whitespace_falls_back(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]Hello world")
        mapper = LiveLanguageMapper(llm)
        result = await mapper.map_languages("Hello\n\n   world")
        assert result == "[[EN]]Hello\n\n   world"

    async def test_whitespace_may_move_at_inserted_tags(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]Hello\n\n[[FR]] bonjour  ami")
        mapper = LiveLanguageMapper(llm)
        result = await mapper.map_languages("Hello\n\n bonjour  ami")
        assert result == "[[EN]]Hello\n\n[[FR]] bonjour  ami"

    async def test_whitespace_inside_a_segment_must_match(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]Hello [[FR]]bonjour ami")
        mapper = LiveLanguageMapper(llm)
        result = await mapper.map_languages("Hello bonjour  ami")
        assert result == "[[EN]]Hello bonjour  ami"

    async def test_empty_input_skips_capability(self) -> None:
        llm = MockLLMProvider(generate_text="[[EN]]x")
        mapper = LiveLanguageMapper(llm)
        assert await mapper.map_languages("   ") == ""
        assert llm.generate_calls == []

    async def test_hints_reach_prompt(self) -> None:
        llm = MockLLMProvider(generate_text="[[RU]]привет")
        mapper = LiveLanguageMapper(llm)
        await mapper.map_languages("привет", ["ru", "en"])
        assert "ru, en" in llm.generate_calls[0]["prompt"]
