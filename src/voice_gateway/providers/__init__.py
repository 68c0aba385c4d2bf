"""Clients for the third-party APIs the gateway fronts."""

from voice_gateway.providers.llm import LLMConfig, LLMProvider, build_llm_provider
from voice_gateway.providers.telegram import TelegramConfig, TelegramNotifier
from voice_gateway.providers.vapi import VapiClient, VapiConfig

__all__ = [
    "LLMConfig",
    "LLMProvider",
    "TelegramConfig",
    "TelegramNotifier",
    "VapiClient",
    "VapiConfig",
    "build_llm_provider",
]
