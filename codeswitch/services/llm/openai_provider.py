"""OpenAI-compatible chat-completions provider.

Works against api.openai.com or any OpenAI-compatible base URL.
All calls are bounded by a timeout and logged with structured context.
"""

import asyncio

import openai
import structlog
from openai import AsyncOpenAI

from codeswitch.core.exceptions import (
    CapabilityError,
    CapabilityUnreachableError,
    RateLimitExceededError,
)
from codeswitch.services.llm.base import LLMProvider, LLMResponse

logger = structlog.get_logger(__name__)


def _is_rate_limit(error_text: str) -> bool:
    text = error_text.lower()
    return "429" in text or "rate limit" in text or "quota" in text


class OpenAIProvider(LLMProvider):
    """Chat completions via the official openai SDK."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4",
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or None,
        )
        self._model = model
        self._timeout = timeout_seconds
        logger.info("openai_provider_initialized", model=model, base_url=base_url or "default")

    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Generate a complete response."""
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model,
                    messages=messages,
                    max_tokens=max_tokens,
                    temperature=temperature,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("openai_generate_timeout", prompt_len=len(prompt))
            raise CapabilityError("Text generation timed out") from e
        except openai.APITimeoutError as e:
            logger.error("openai_generate_timeout", prompt_len=len(prompt))
            raise CapabilityError("Text generation timed out") from e
        except openai.APIConnectionError as e:
            logger.error("openai_generate_unreachable", error=str(e), model=self._model)
            raise CapabilityUnreachableError(f"Text generation unreachable: {e}") from e
        except Exception as e:
            message = str(e)
            logger.error(
                "openai_generate_failed",
                error=message,
                model=self._model,
                prompt_len=len(prompt),
            )
            if isinstance(e, openai.RateLimitError) or _is_rate_limit(message):
                raise RateLimitExceededError(
                    "Text generation rate limit exceeded. Retry later."
                ) from e
            raise CapabilityError(f"Text generation failed: {e}") from e

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""
        usage = response.usage
        result = LLMResponse(
            text=text.strip(),
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )
        logger.debug(
            "openai_generate_ok",
            input_tokens=result.input_tokens,
            output_tokens=result.output_tokens,
            prompt_len=len(prompt),
        )
        return result

    async def aclose(self) -> None:
        await self._client.close()
