"""Provider-agnostic entry point for text generation.

The AI fix stage only ever talks to LLMService; which backend answers is
decided by ``LLM_PROVIDER`` (``gemini`` by default, or ``openai``).
"""

from __future__ import annotations

import logging
import os

from zipship.services.llm_providers import (
    GeminiProvider,
    LLMError,
    LLMProvider,
    OpenAIProvider,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "gemini"

PROVIDERS: dict[str, type[LLMProvider]] = {
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
}


def get_provider_name() -> str:
    return os.environ.get("LLM_PROVIDER", DEFAULT_PROVIDER).strip().lower()


class LLMService:
    """Sends system + user prompts to a configured LLM provider.

    Args:
        provider: Explicit provider; when omitted one is built from ``LLM_PROVIDER``.

    Raises:
        LLMError: If the configured provider is unknown or cannot be initialized.
    """

    def __init__(self, provider: LLMProvider | None = None) -> None:
        self.provider = provider or self.provider_from_env()

    @staticmethod
    def provider_from_env() -> LLMProvider:
        name = get_provider_name()
        provider_cls = PROVIDERS.get(name)
        if provider_cls is None:
            raise LLMError(f"Unknown LLM provider: {name}.")
        logger.debug("Using %s LLM provider", name)
        return provider_cls()

    def build_prompt(self, system_instructions: str, user_content: str) -> str:
        """Join system and user parts into the single prompt providers accept."""
        return f"System instruction:\n{system_instructions}\n\nUser content:\n{user_content}"

    def generate_llm_response(
        self,
        system_instructions: str,
        user_content: str,
        temperature: float = 0.7,
        max_tokens: int | None = None,
        seed: int | None = None,
    ) -> str:
        """Send one prompt and return the provider's text reply.

        Args:
            system_instructions: Task description and output contract.
            user_content: Material to work on.
            temperature: Sampling temperature; lower is more deterministic.
            max_tokens: Response length cap, or None for the provider default.
            seed: Sampling seed where the provider supports one.

        Raises:
            LLMError: If the provider call fails or returns nothing.
        """
        prompt = self.build_prompt(system_instructions, user_content)
        config = self.provider.generate_llm_config(temperature, max_tokens, seed)
        logger.debug("Sending %d-character prompt to %s", len(prompt), type(self.provider).__name__)
        return self.provider.send_prompt(prompt, config)
