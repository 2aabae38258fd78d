"""Abstract text-generation provider interface.

The language mapper and translator never import a concrete provider.
The concrete provider is instantiated once in the FastAPI lifespan
(see codeswitch.services.capabilities) and handed to them there.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class LLMResponse:
    """Structured response from an LLM call, including token usage."""

    text: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(ABC):
    """Abstract base class for hosted text-generation providers."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: str = "",
        max_tokens: int = 1000,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Generate a complete response from the LLM.

        Args:
            prompt: The user/input prompt text.
            system_prompt: System-level instructions for the model.
            max_tokens: Maximum tokens in the generated response.
            temperature: Sampling temperature (0.0–1.0).

        Returns:
            LLMResponse with text content and token usage counts.

        Raises:
            CapabilityUnreachableError: The provider could not be reached.
            RateLimitExceededError: The provider rejected the call for quota.
            CapabilityError: Any other API failure or timeout.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Default: nothing to release."""
