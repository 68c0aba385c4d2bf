"""Chat-completion provider selection.

Groq is preferred when configured (OpenAI-compatible endpoint, faster),
with OpenAI as the fallback. When neither key is set the gateway runs
without a model: classification is keyword based and chat replies come
from the built-in knowledge base.
"""

import logging
import os
from dataclasses import dataclass

from openai import AsyncOpenAI

logger = logging.getLogger("voice-gateway-llm")

GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_OPENAI_MODEL = "gpt-4-turbo-preview"
DEFAULT_OPENAI_ANALYSIS_MODEL = "gpt-3.5-turbo"


@dataclass
class LLMConfig:
    """LLM provider configuration."""

    provider: str = "groq"
    groq_api_key: str = ""
    groq_model: str = DEFAULT_GROQ_MODEL
    openai_api_key: str = ""
    openai_model: str = DEFAULT_OPENAI_MODEL
    timeout_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Load LLM config from environment variables."""
        return cls(
            provider=os.getenv("AI_PROVIDER", "groq").lower(),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            groq_model=os.getenv("GROQ_MODEL", DEFAULT_GROQ_MODEL),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            openai_model=os.getenv("OPENAI_MODEL", DEFAULT_OPENAI_MODEL),
            timeout_seconds=float(os.getenv("AI_TIMEOUT_SECONDS", "10")),
        )


@dataclass
class LLMProvider:
    """A configured chat-completion client and its models."""

    name: str
    client: AsyncOpenAI
    chat_model: str
    analysis_model: str


def build_llm_provider(config: LLMConfig) -> LLMProvider | None:
    """Create the chat-completion client for the configured provider.

    Returns None when no API key is available.
    """
    if config.provider == "groq":
        if config.groq_api_key:
            logger.info(f"[Groq] Service initialized with model: {config.groq_model}")
            return LLMProvider(
                name="groq",
                client=AsyncOpenAI(
                    api_key=config.groq_api_key,
                    base_url=GROQ_BASE_URL,
                    timeout=config.timeout_seconds,
                    max_retries=0,
                ),
                chat_model=config.groq_model,
                analysis_model=config.groq_model,
            )
        logger.warning("[AI] GROQ_API_KEY not set, falling back to OpenAI")

    if config.openai_api_key:
        logger.info(f"[OpenAI] Service initialized with model: {config.openai_model}")
        return LLMProvider(
            name="openai",
            client=AsyncOpenAI(
                api_key=config.openai_api_key,
                timeout=config.timeout_seconds,
                max_retries=0,
            ),
            chat_model=config.openai_model,
            analysis_model=DEFAULT_OPENAI_ANALYSIS_MODEL,
        )

    logger.warning("[AI] No API keys configured, will use fallback responses")
    return None
